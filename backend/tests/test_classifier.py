"""
Tests for import format detection.
"""
import json

import pytest

from postgirl.schemas.import_export import SourceFormat
from postgirl.services.import_export import DocumentParseError, classify, load_document


class TestClassify:

    def test_postman_collection(self, postman_collection):
        assert classify(json.dumps(postman_collection)) == SourceFormat.POSTMAN

    def test_insomnia_export(self, insomnia_export):
        assert classify(json.dumps(insomnia_export)) == SourceFormat.INSOMNIA

    def test_openapi_document(self, openapi_document):
        assert classify(json.dumps(openapi_document)) == SourceFormat.OPENAPI

    @pytest.mark.parametrize("content", [
        "curl https://api.example.com/users",
        "  curl -X POST https://api.example.com/users\n",
        "$ curl -H 'Accept: */*' https://api.example.com",
    ])
    def test_curl_command(self, content):
        assert classify(content) == SourceFormat.CURL

    def test_curl_requires_whitespace_after_keyword(self):
        assert classify("curly braces") == SourceFormat.POSTMAN

    @pytest.mark.parametrize("content", [
        "{not valid json",
        "",
        "[1, 2, 3]",
        '"just a string"',
        '{"some": "object"}',
    ])
    def test_unrecognised_content_falls_back_to_postman(self, content):
        assert classify(content) == SourceFormat.POSTMAN

    def test_insomnia_requires_resources_array(self):
        assert classify('{"_type": "export", "resources": {}}') == SourceFormat.POSTMAN

    def test_yaml_openapi_document(self):
        content = (
            "openapi: 3.0.0\n"
            "info:\n"
            "  title: YAML API\n"
            "  version: '1'\n"
            "paths: {}\n"
        )
        assert classify(content) == SourceFormat.OPENAPI


class TestLoadDocument:

    def test_returns_mapping(self):
        assert load_document('{"a": 1}') == {"a": 1}

    def test_rejects_non_mapping(self):
        with pytest.raises(DocumentParseError) as exc_info:
            load_document("[1, 2]")
        assert exc_info.value.kind.value == "parsing"

    def test_rejects_garbage(self):
        with pytest.raises(DocumentParseError):
            load_document("{oops")


class TestDeeplyNestedContent:

    DEEP_JSON = "[" * 100000

    def test_classify_falls_back_to_postman(self):
        assert classify(self.DEEP_JSON) == SourceFormat.POSTMAN

    def test_load_document_raises_parse_error(self):
        with pytest.raises(DocumentParseError):
            load_document(self.DEEP_JSON)

    def test_import_reports_parsing_error(self, coordinator):
        result = coordinator.import_collection("ws-test", self.DEEP_JSON)
        assert result.success is False
        assert result.collections == []
        assert result.errors[0].kind.value == "parsing"

    def test_detect_endpoint_answers(self, client):
        response = client.post("/api/v1/import-export/detect", json={"content": self.DEEP_JSON})
        assert response.status_code == 200
        assert response.json() == {"format": "postman"}
