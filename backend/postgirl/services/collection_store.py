"""
Persistence sink/source used by the conversion engine.

The engine only ever talks to the ``CollectionStore`` protocol; the SQLAlchemy
implementation below flushes each entity as it is created so ids are available
immediately, and leaves committing to the caller.
"""
from typing import Protocol

from sqlalchemy.orm import Session

from postgirl.models.collection import Collection
from postgirl.models.request import Request
from postgirl.schemas.collection import CollectionCreate, RequestCreate


class CollectionStore(Protocol):
    def create_collection(self, data: CollectionCreate) -> Collection: ...

    def create_request(self, data: RequestCreate) -> Request: ...

    def get_collection(self, collection_id: str) -> Collection | None: ...

    def list_requests(self, collection_id: str) -> list[Request]: ...


class SqlCollectionStore:
    def __init__(self, db: Session):
        self.db = db

    def create_collection(self, data: CollectionCreate) -> Collection:
        col = Collection(
            workspace_id=data.workspace_id,
            name=data.name,
            description=data.description,
        )
        self.db.add(col)
        self.db.flush()
        return col

    def create_request(self, data: RequestCreate) -> Request:
        req = Request(
            collection_id=data.collection_id,
            name=data.name,
            description=data.description,
            method=data.method,
            url=data.url,
            headers=dict(data.headers),
            body=data.body,
            body_type=data.body_type.value,
            follow_redirects=data.follow_redirects,
            timeout_ms=data.timeout_ms,
            order_index=data.order_index,
        )
        self.db.add(req)
        self.db.flush()
        return req

    def get_collection(self, collection_id: str) -> Collection | None:
        return self.db.query(Collection).filter(Collection.id == collection_id).first()

    def list_requests(self, collection_id: str) -> list[Request]:
        return (
            self.db.query(Request)
            .filter(Request.collection_id == collection_id)
            .order_by(Request.order_index, Request.created_at)
            .all()
        )
