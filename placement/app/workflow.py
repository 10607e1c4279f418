from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from .config import DEFAULT_MAX_SCSI_CONTROLLERS
from .disks import device_name, select_and_sort_disks
from .errors import DatastoreResolutionError, NotFoundError
from .inventory import DatastoreDirectory, DatastoreHandle
from .resource import resource_id_string
from .scheduler_client import (
    RecommendationClient,
    SelectionStrategy,
    parse_recommendation,
    select_first_recommendation,
)
from .schemas import (
    CloneSpec,
    ConfigSpec,
    ManagedObjectReference,
    Recommendation,
    VirtualDisk,
    VirtualMachineFileInfo,
    VmPlacement,
)

logger = logging.getLogger(__name__)


class StorageDrsWorkflow:
    """Applies storage DRS placement to VM create and clone specs.

    One scheduler round trip per call. The recommendation picked by ``select`` is
    applied to the caller's spec in place and the same spec object is returned.
    Nothing is retried; on error the spec may be partially updated and should be
    discarded.
    """

    def __init__(
        self,
        client: RecommendationClient,
        datastores: DatastoreDirectory,
        *,
        max_scsi_controllers: int = DEFAULT_MAX_SCSI_CONTROLLERS,
        select: SelectionStrategy = select_first_recommendation,
    ) -> None:
        self.client = client
        self.datastores = datastores
        self.max_scsi_controllers = max_scsi_controllers
        self.select = select

    def reconcile_for_create(
        self,
        spec: ConfigSpec,
        resource_pool: ManagedObjectReference,
        datastore_cluster_id: str,
        resource_id: str = "",
    ) -> ConfigSpec:
        tag = resource_id_string(resource_id)
        logger.debug("%s: Getting storage DRS recommendations for VM creation", tag)
        recommendations = self.client.recommend_datastores_for_create(spec, resource_pool, datastore_cluster_id, tag)
        self.apply_to_config_spec(parse_recommendation(self.select(recommendations)), spec, tag)
        logger.debug("%s: Storage DRS recommendations applied successfully", tag)
        return spec

    def reconcile_for_clone(
        self,
        config_spec: ConfigSpec,
        clone_spec: CloneSpec,
        resource_pool: ManagedObjectReference,
        datastore_cluster_id: str,
        source_devices: Sequence[Any],
        spec_devices: Sequence[Any],
        resource_id: str = "",
    ) -> CloneSpec:
        # The scheduler is asked about the final configuration, not the clone spec,
        # since the final disks may be larger than (or additional to) the source's.
        # spec_devices is the full device list of that final configuration, not
        # just its device changes.
        tag = resource_id_string(resource_id)
        logger.debug("%s: Getting storage DRS recommendations for VM cloning", tag)
        recommendations = self.client.recommend_datastores_for_create(
            config_spec, resource_pool, datastore_cluster_id, tag
        )
        self.apply_to_clone_spec(
            parse_recommendation(self.select(recommendations)), clone_spec, source_devices, spec_devices, tag
        )
        logger.debug("%s: Storage DRS recommendations applied successfully", tag)
        return clone_spec

    def apply_to_config_spec(self, recommendation: Recommendation, spec: ConfigSpec, tag: str = "") -> ConfigSpec:
        for action in recommendation.actions:
            if isinstance(action, VmPlacement):
                self.populate_vmx_datastore(spec, action.datastore, tag)
                continue
            for placement in action.placements:
                for dc in spec.device_change:
                    disk = dc.device
                    if not isinstance(disk, VirtualDisk) or disk.key != placement.disk_id:
                        continue
                    ds = self._datastore_for_disk(disk, placement.datastore, tag)
                    disk.backing.file_name = ds.path()
        return spec

    def apply_to_clone_spec(
        self,
        recommendation: Recommendation,
        clone_spec: CloneSpec,
        source_devices: Sequence[Any],
        spec_devices: Sequence[Any],
        tag: str = "",
    ) -> CloneSpec:
        """Project a recommendation made for a config spec onto a clone spec.

        Recommended disk IDs are keys in the config spec. They are mapped to the
        source VM's disk keys (which the clone spec uses) by ordinal position in
        the (bus, unit) ordering of both device lists. A config spec disk past the
        end of the source disk list does not exist yet on the source and is left
        for the reconfigure that follows the clone.
        """
        source_disks = select_and_sort_disks(source_devices, self.max_scsi_controllers)
        spec_disks = select_and_sort_disks(spec_devices, self.max_scsi_controllers)

        for action in recommendation.actions:
            if isinstance(action, VmPlacement):
                clone_spec.location.datastore = action.datastore.model_copy()
                continue
            for placement in action.placements:
                for i, spec_disk in enumerate(spec_disks):
                    if spec_disk.key != placement.disk_id:
                        continue
                    if i >= len(source_disks):
                        logger.debug(
                            "%s: Disk %r is not on the source virtual machine, skipping clone placement",
                            tag,
                            device_name(spec_disk),
                        )
                        continue
                    source_disk = source_disks[i]
                    for locator in clone_spec.location.disk:
                        if locator.disk_id != source_disk.key:
                            continue
                        ds = self._datastore_for_disk(source_disk, placement.datastore, tag)
                        locator.disk_backing_info.file_name = ds.path()
                        locator.disk_backing_info.datastore = placement.datastore.model_copy()
                        locator.datastore = placement.datastore.model_copy()
        return clone_spec

    def populate_vmx_datastore(self, spec: ConfigSpec, ref: ManagedObjectReference, tag: str = "") -> ConfigSpec:
        try:
            ds = self.datastores.resolve(ref.value)
        except NotFoundError as exc:
            raise DatastoreResolutionError(f"error locating datastore for VM configuration: {exc}") from exc
        logger.debug("%s: Datastore for VMX configuration is %r", tag, ds.name)
        spec.files = VirtualMachineFileInfo(vm_path_name=ds.path())
        return spec

    def _datastore_for_disk(self, disk: VirtualDisk, ref: ManagedObjectReference, tag: str) -> DatastoreHandle:
        try:
            ds = self.datastores.resolve(ref.value)
        except NotFoundError as exc:
            raise DatastoreResolutionError(
                f"error locating recommended datastore {ref.value!r} for disk {device_name(disk)!r}: {exc}"
            ) from exc
        logger.debug("%s: Assigning recommended datastore %r to disk %r", tag, ds.name, device_name(disk))
        return ds
