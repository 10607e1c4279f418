from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session

from .errors import NotFoundError
from .models import Datastore, DatastoreCluster
from .schemas import ManagedObjectReference

DATASTORE_TYPE = "Datastore"
STORAGE_POD_TYPE = "StoragePod"


@dataclass(frozen=True)
class DatastoreHandle:
    datastore_id: str
    name: str

    @property
    def reference(self) -> ManagedObjectReference:
        return ManagedObjectReference(type=DATASTORE_TYPE, value=self.datastore_id)

    def path(self, subpath: str = "") -> str:
        if not subpath:
            return f"[{self.name}]"
        return f"[{self.name}] {subpath}"


@dataclass(frozen=True)
class StorageClusterHandle:
    cluster_id: str
    name: str
    inventory_path: str = ""

    @property
    def reference(self) -> ManagedObjectReference:
        return ManagedObjectReference(type=STORAGE_POD_TYPE, value=self.cluster_id)


class DatastoreDirectory(Protocol):
    def resolve(self, identifier: str) -> DatastoreHandle: ...


class StorageClusterDirectory(Protocol):
    def resolve(self, identifier: str) -> StorageClusterHandle: ...


class SqlDatastoreDirectory:
    def __init__(self, db: Session) -> None:
        self.db = db

    def resolve(self, identifier: str) -> DatastoreHandle:
        row = self.db.query(Datastore).filter(Datastore.datastore_id == identifier).first()
        if not row:
            raise NotFoundError(f"datastore {identifier!r} not found")
        return DatastoreHandle(datastore_id=row.datastore_id, name=row.name)


class SqlStorageClusterDirectory:
    def __init__(self, db: Session) -> None:
        self.db = db

    def resolve(self, identifier: str) -> StorageClusterHandle:
        row = self.db.query(DatastoreCluster).filter(DatastoreCluster.cluster_id == identifier).first()
        if not row:
            raise NotFoundError(f"datastore cluster {identifier!r} not found")
        return StorageClusterHandle(cluster_id=row.cluster_id, name=row.name, inventory_path=row.inventory_path or "")
