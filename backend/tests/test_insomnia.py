"""
Tests for Insomnia export import.
"""
import json

from postgirl.schemas.import_export import ImportErrorKind, ImportWarningKind, SourceFormat

WORKSPACE_ID = "ws-test"


def _export(*requests, extra=()):
    return {
        "_type": "export",
        "__export_format": 4,
        "resources": [
            {"_id": "wrk_1", "_type": "workspace", "name": "Scratch"},
            *extra,
            *requests,
        ],
    }


def _request(name, **fields):
    return {"_id": f"req_{name}", "_type": "request", "name": name, "method": "POST",
            "url": "https://api.example.com/upload", **fields}


class TestInsomniaImport:

    def test_workspace_becomes_collection(self, coordinator, store, insomnia_export):
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, insomnia_export)

        assert result.success is True
        [summary] = result.collections
        assert summary.name == "Billing"
        assert summary.description == "Billing service"
        assert summary.request_count == 2
        assert summary.folder_count == 1
        assert summary.source_format == SourceFormat.INSOMNIA
        assert summary.original_id == "wrk_1"
        assert result.summary.source_format == "Insomnia v4"
        assert result.summary.source_version == "4"

    def test_request_fields(self, coordinator, store, insomnia_export):
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, insomnia_export)
        listing, create = store.list_requests(result.collections[0].id)

        assert listing.url == "https://billing.example.com/invoices?status=open"
        assert listing.headers == {"Accept": "application/json"}
        assert listing.body is None
        assert listing.body_type == "none"

        assert create.method == "POST"
        assert create.body == '{"amount": 10}'
        assert create.body_type == "raw"

    def test_unsupported_body_encoding_warns_but_succeeds(self, coordinator, store):
        doc = _export(_request("Binary", body={"mimeType": "application/octet-stream", "fileName": "/tmp/blob.bin"}))

        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, doc)

        assert result.success is True
        assert any(w.kind == ImportWarningKind.DATA_LOSS for w in result.warnings)
        assert result.warnings[0].item_name == "Binary"
        [request] = store.list_requests(result.collections[0].id)
        assert request.body is None

    def test_form_params_with_file(self, coordinator, store):
        body = {
            "mimeType": "multipart/form-data",
            "params": [
                {"name": "title", "value": "hello world"},
                {"name": "hidden", "value": "x", "disabled": True},
                {"name": "attachment", "type": "file", "fileName": "/tmp/a.txt"},
            ],
        }
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, _export(_request("Form", body=body)))

        assert result.success is True
        assert [w.kind for w in result.warnings] == [ImportWarningKind.DATA_LOSS]
        [request] = store.list_requests(result.collections[0].id)
        assert request.body == "title=hello%20world"
        assert request.body_type == "form"

    def test_parameters_join_existing_query(self, coordinator, store):
        doc = _export(_request(
            "Search",
            method="GET",
            url="https://api.example.com/search?lang=en",
            parameters=[{"name": "q", "value": "a b"}],
        ))
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, doc)
        [request] = store.list_requests(result.collections[0].id)
        assert request.url == "https://api.example.com/search?lang=en&q=a%20b"

    def test_environments_and_auth_warn(self, coordinator):
        env = {"_id": "env_1", "_type": "environment", "name": "Base Environment", "data": {"host": "x"}}
        doc = _export(_request("Secure", authentication={"type": "bearer", "token": "t"}), extra=[env])

        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, doc)

        assert result.success is True
        assert {(w.kind, w.item_name) for w in result.warnings} == {
            (ImportWarningKind.UNSUPPORTED_FEATURE, "Base Environment"),
            (ImportWarningKind.UNSUPPORTED_FEATURE, "Secure"),
        }

    def test_multiple_workspaces_use_the_first(self, coordinator):
        second = {"_id": "wrk_2", "_type": "workspace", "name": "Other"}
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, _export(extra=[second]))
        assert result.collections[0].name == "Scratch"
        assert result.warnings[0].kind == ImportWarningKind.FORMAT_ISSUE

    def test_bad_request_is_isolated(self, coordinator):
        doc = _export(_request("Broken", headers="not-a-list"), _request("Fine"))
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, doc)
        assert [e.item_name for e in result.errors] == ["Broken"]
        assert result.errors[0].kind == ImportErrorKind.CONVERSION
        assert result.collections[0].request_count == 1

    def test_missing_workspace_is_a_parsing_error(self, coordinator):
        doc = {"_type": "export", "__export_format": 4, "resources": [_request("Orphan")]}
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, doc)
        assert result.success is False
        assert result.collections == []
        assert result.errors[0].kind == ImportErrorKind.PARSING
        assert result.errors[0].message == "Failed to import Insomnia workspace"

    def test_detected_from_raw_text(self, coordinator, insomnia_export):
        result = coordinator.import_collection(WORKSPACE_ID, json.dumps(insomnia_export))
        assert result.collections[0].source_format == SourceFormat.INSOMNIA

    def test_empty_text_does_not_hide_params(self, coordinator, store):
        body = {"mimeType": "application/x-www-form-urlencoded", "text": "", "params": [{"name": "a", "value": "1"}]}
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, _export(_request("Form", body=body)))

        [request] = store.list_requests(result.collections[0].id)
        assert (request.body, request.body_type) == ("a=1", "form")

    def test_empty_text_alone_is_an_empty_body(self, coordinator, store):
        body = {"mimeType": "application/json", "text": ""}
        result = coordinator.import_insomnia_workspace(WORKSPACE_ID, _export(_request("Empty", body=body)))

        assert result.warnings == []
        [request] = store.list_requests(result.collections[0].id)
        assert (request.body, request.body_type) == (None, "none")
