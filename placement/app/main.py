import logging

from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy.orm import Session

from .config import load_config
from .db import get_db, init_db
from .errors import (
    DatastoreResolutionError,
    NoRecommendationError,
    PlacementPrerequisiteError,
    PlacementRequestError,
    StoragePlacementError,
)
from .inventory import SqlDatastoreDirectory, SqlStorageClusterDirectory
from .models import Datastore, DatastoreCluster
from .scheduler_client import RecommendationClient
from .schemas import (
    CloneSpec,
    ConfigSpec,
    DatastoreClusterRegisterRequest,
    DatastoreRegisterRequest,
    VMClonePlacementRequest,
    VMCreatePlacementRequest,
)
from .workflow import StorageDrsWorkflow

CONFIG = load_config()
logging.basicConfig(level=CONFIG.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Storage Placement API", version="0.1.0")

ERROR_STATUS: dict[type[StoragePlacementError], int] = {
    PlacementPrerequisiteError: 400,
    DatastoreResolutionError: 404,
    NoRecommendationError: 409,
    PlacementRequestError: 502,
}


@app.on_event("startup")
def startup() -> None:
    init_db()


def _workflow(db: Session) -> StorageDrsWorkflow:
    client = RecommendationClient(CONFIG, SqlStorageClusterDirectory(db))
    return StorageDrsWorkflow(
        client,
        SqlDatastoreDirectory(db),
        max_scsi_controllers=CONFIG.max_scsi_controllers,
    )


def _placement_failed(exc: StoragePlacementError) -> HTTPException:
    return HTTPException(status_code=ERROR_STATUS.get(type(exc), 500), detail=str(exc))


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok", "scheduler_url": CONFIG.scheduler_url}


@app.post("/api/v1/datastore-clusters")
def register_datastore_cluster(payload: DatastoreClusterRegisterRequest, db: Session = Depends(get_db)) -> dict:
    cluster = db.query(DatastoreCluster).filter(DatastoreCluster.cluster_id == payload.cluster_id).first()
    if cluster:
        cluster.name = payload.name
        cluster.inventory_path = payload.inventory_path
    else:
        cluster = DatastoreCluster(cluster_id=payload.cluster_id, name=payload.name, inventory_path=payload.inventory_path)
        db.add(cluster)
    db.commit()
    return {"cluster_id": cluster.cluster_id, "name": cluster.name, "inventory_path": cluster.inventory_path}


@app.post("/api/v1/datastores")
def register_datastore(payload: DatastoreRegisterRequest, db: Session = Depends(get_db)) -> dict:
    if payload.cluster_id:
        exists = db.query(DatastoreCluster).filter(DatastoreCluster.cluster_id == payload.cluster_id).first()
        if not exists:
            raise HTTPException(status_code=404, detail="datastore cluster not found")
    datastore = db.query(Datastore).filter(Datastore.datastore_id == payload.datastore_id).first()
    if datastore:
        datastore.name = payload.name
        datastore.cluster_id = payload.cluster_id
    else:
        datastore = Datastore(datastore_id=payload.datastore_id, name=payload.name, cluster_id=payload.cluster_id)
        db.add(datastore)
    db.commit()
    return {"datastore_id": datastore.datastore_id, "name": datastore.name, "cluster_id": datastore.cluster_id}


@app.post("/api/v1/placement/create", response_model=ConfigSpec)
def place_for_create(payload: VMCreatePlacementRequest, db: Session = Depends(get_db)) -> ConfigSpec:
    try:
        return _workflow(db).reconcile_for_create(
            payload.spec,
            payload.resource_pool,
            payload.datastore_cluster_id,
            payload.resource_id,
        )
    except StoragePlacementError as exc:
        raise _placement_failed(exc) from exc


@app.post("/api/v1/placement/clone", response_model=CloneSpec)
def place_for_clone(payload: VMClonePlacementRequest, db: Session = Depends(get_db)) -> CloneSpec:
    try:
        return _workflow(db).reconcile_for_clone(
            payload.config_spec,
            payload.clone_spec,
            payload.resource_pool,
            payload.datastore_cluster_id,
            payload.source_devices,
            payload.spec_devices,
            payload.resource_id,
        )
    except StoragePlacementError as exc:
        raise _placement_failed(exc) from exc
