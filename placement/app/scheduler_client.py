from __future__ import annotations

import logging
from typing import Any, Callable

import requests
from pydantic import ValidationError

from .config import PlacementConfig
from .errors import NoRecommendationError, NotFoundError, PlacementPrerequisiteError, PlacementRequestError
from .inventory import StorageClusterDirectory
from .placement_spec import build_placement_request
from .schemas import (
    ClusterRecommendationPayload,
    ConfigSpec,
    DiskPlacement,
    DiskPlacementAction,
    ManagedObjectReference,
    PlacementRequest,
    Recommendation,
    RecommendDatastoresResponse,
    VmPlacement,
)

logger = logging.getLogger(__name__)

STORAGE_PLACEMENT_ACTION = "StoragePlacementAction"

SelectionStrategy = Callable[[list[dict[str, Any]]], dict[str, Any]]


def select_first_recommendation(recommendations: list[dict[str, Any]]) -> dict[str, Any]:
    return recommendations[0]


def parse_recommendation(raw: dict[str, Any]) -> Recommendation:
    """Turn one wire recommendation into tagged placement actions.

    Only the selected recommendation goes through here; alternatives are never
    looked at. The scheduler marks the VM-level action only by an empty per-disk
    relocate list, and that check happens here and nowhere else. Non
    storage-placement actions are dropped.
    """
    try:
        payload = ClusterRecommendationPayload.model_validate(raw)
    except ValidationError as exc:
        raise PlacementRequestError(f"invalid storage DRS recommendation: {exc}") from exc

    actions: list[VmPlacement | DiskPlacementAction] = []
    for action in payload.actions:
        if action.type != STORAGE_PLACEMENT_ACTION:
            continue
        disks = action.relocate_spec.disk
        if not disks:
            if action.destination is None:
                raise PlacementRequestError(
                    f"storage DRS recommendation {payload.key!r} has a VM placement action without a destination"
                )
            actions.append(VmPlacement(datastore=action.destination))
            continue
        actions.append(
            DiskPlacementAction(placements=[DiskPlacement(disk_id=d.disk_id, datastore=d.datastore) for d in disks])
        )
    return Recommendation(key=payload.key, actions=actions)


class RecommendationClient:
    def __init__(self, config: PlacementConfig, clusters: StorageClusterDirectory) -> None:
        self.config = config
        self.clusters = clusters

    @property
    def url(self) -> str:
        return f"{self.config.scheduler_url}/recommend-datastores"

    def recommend_datastores_for_create(
        self,
        spec: ConfigSpec,
        resource_pool: ManagedObjectReference,
        datastore_cluster_id: str,
        resource_tag: str = "",
    ) -> list[dict[str, Any]]:
        """Return the scheduler's recommendations, in order and unparsed."""
        if not self.config.managed:
            raise PlacementPrerequisiteError("assignment of a virtual machine to a datastore cluster requires vCenter")
        try:
            pod = self.clusters.resolve(datastore_cluster_id)
        except NotFoundError as exc:
            raise PlacementPrerequisiteError(f"error locating datastore cluster for initial VM placement: {exc}") from exc

        request = build_placement_request(spec, resource_pool, pod, resource_tag)
        result = self._recommend(request)
        if not result.recommendations:
            raise NoRecommendationError(
                "no storage DRS recommendations were returned. Please check your datastore cluster settings and try again"
            )
        logger.debug("%s: Received %d storage DRS recommendation(s)", resource_tag, len(result.recommendations))
        return result.recommendations

    def _recommend(self, request: PlacementRequest) -> RecommendDatastoresResponse:
        try:
            response = requests.post(self.url, json=request.model_dump(mode="json"), timeout=self.config.timeout_s)
            response.raise_for_status()
            return RecommendDatastoresResponse.model_validate(response.json())
        except requests.Timeout as exc:
            raise PlacementRequestError(
                f"storage DRS recommendation request timed out after {self.config.timeout_s}s"
            ) from exc
        except requests.RequestException as exc:
            raise PlacementRequestError(f"error getting storage DRS recommendations: {exc}") from exc
        except ValueError as exc:
            raise PlacementRequestError(f"invalid storage DRS recommendation response: {exc}") from exc
