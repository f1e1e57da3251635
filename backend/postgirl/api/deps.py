from fastapi import Depends
from sqlalchemy.orm import Session

from postgirl.database import get_db
from postgirl.services.collection_store import SqlCollectionStore
from postgirl.services.import_export import ConversionCoordinator


def get_store(db: Session = Depends(get_db)) -> SqlCollectionStore:
    return SqlCollectionStore(db)


def get_coordinator(store: SqlCollectionStore = Depends(get_store)) -> ConversionCoordinator:
    return ConversionCoordinator(store)
