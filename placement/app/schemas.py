from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class ManagedObjectReference(BaseModel):
    type: str
    value: str


class DeviceConfigOperation(str, Enum):
    add = "add"
    edit = "edit"
    remove = "remove"


class DeviceConfigFileOperation(str, Enum):
    create = "create"
    destroy = "destroy"
    replace = "replace"


class PlacementType(str, Enum):
    create = "create"


class VirtualDiskFlatVer2BackingInfo(BaseModel):
    file_name: str = ""
    datastore: ManagedObjectReference | None = None
    disk_mode: str = "persistent"
    thin_provisioned: bool | None = None


class VirtualDevice(BaseModel):
    device_type: Literal["device"] = "device"
    key: int
    controller_key: int | None = None
    unit_number: int | None = None
    label: str | None = None


class VirtualSCSIController(BaseModel):
    device_type: Literal["scsi_controller"] = "scsi_controller"
    key: int
    bus_number: int
    controller_key: int | None = None
    unit_number: int | None = None
    label: str | None = None


class VirtualDisk(BaseModel):
    device_type: Literal["disk"] = "disk"
    key: int
    controller_key: int | None = None
    unit_number: int | None = None
    label: str | None = None
    capacity_in_kb: int = 0
    backing: VirtualDiskFlatVer2BackingInfo = Field(default_factory=VirtualDiskFlatVer2BackingInfo)


AnyVirtualDevice = Annotated[
    Union[VirtualDisk, VirtualSCSIController, VirtualDevice],
    Field(discriminator="device_type"),
]


class VirtualDeviceConfigSpec(BaseModel):
    operation: DeviceConfigOperation | None = None
    file_operation: DeviceConfigFileOperation | None = None
    device: AnyVirtualDevice


class VirtualMachineFileInfo(BaseModel):
    vm_path_name: str | None = None


class ConfigSpec(BaseModel):
    name: str | None = None
    num_cpus: int | None = None
    memory_mb: int | None = None
    files: VirtualMachineFileInfo | None = None
    device_change: list[VirtualDeviceConfigSpec] = Field(default_factory=list)


class DiskLocator(BaseModel):
    disk_id: int
    datastore: ManagedObjectReference | None = None
    disk_backing_info: VirtualDiskFlatVer2BackingInfo = Field(default_factory=VirtualDiskFlatVer2BackingInfo)


class RelocateSpec(BaseModel):
    datastore: ManagedObjectReference | None = None
    pool: ManagedObjectReference | None = None
    disk: list[DiskLocator] = Field(default_factory=list)


class CloneSpec(BaseModel):
    location: RelocateSpec = Field(default_factory=RelocateSpec)
    power_on: bool = False
    template: bool = False


class PodDiskLocator(BaseModel):
    disk_id: int
    disk_backing_info: VirtualDiskFlatVer2BackingInfo


class VmPodConfigForPlacement(BaseModel):
    storage_pod: ManagedObjectReference
    disk: list[PodDiskLocator] = Field(default_factory=list)


class StorageDrsPodSelectionSpec(BaseModel):
    storage_pod: ManagedObjectReference
    initial_vm_config: list[VmPodConfigForPlacement] = Field(default_factory=list)


class PlacementRequest(BaseModel):
    type: PlacementType = PlacementType.create
    resource_pool: ManagedObjectReference
    config_spec: ConfigSpec
    pod_selection_spec: StorageDrsPodSelectionSpec


# Scheduler response, as it arrives on the wire.


class RelocateDiskPayload(BaseModel):
    disk_id: int
    datastore: ManagedObjectReference


class RelocateSpecPayload(BaseModel):
    datastore: ManagedObjectReference | None = None
    disk: list[RelocateDiskPayload] = Field(default_factory=list)


class ClusterActionPayload(BaseModel):
    type: str = "StoragePlacementAction"
    target: ManagedObjectReference | None = None
    destination: ManagedObjectReference | None = None
    relocate_spec: RelocateSpecPayload = Field(default_factory=RelocateSpecPayload)


class ClusterRecommendationPayload(BaseModel):
    key: str = ""
    reason: str = ""
    rating: int = 0
    actions: list[ClusterActionPayload] = Field(default_factory=list)


class RecommendDatastoresResponse(BaseModel):
    # Kept unparsed; only the selected recommendation is validated.
    recommendations: list[dict[str, Any]] = Field(default_factory=list)


# Parsed recommendation actions.


class VmPlacement(BaseModel):
    kind: Literal["vm"] = "vm"
    datastore: ManagedObjectReference


class DiskPlacement(BaseModel):
    disk_id: int
    datastore: ManagedObjectReference


class DiskPlacementAction(BaseModel):
    kind: Literal["disk"] = "disk"
    placements: list[DiskPlacement] = Field(..., min_length=1)


RecommendationAction = Annotated[Union[VmPlacement, DiskPlacementAction], Field(discriminator="kind")]


class Recommendation(BaseModel):
    key: str = ""
    actions: list[RecommendationAction] = Field(default_factory=list)


# Service requests.


class DatastoreClusterRegisterRequest(BaseModel):
    cluster_id: str = Field(..., description="Managed object ID of the datastore cluster")
    name: str
    inventory_path: str = ""


class DatastoreRegisterRequest(BaseModel):
    datastore_id: str = Field(..., description="Managed object ID of the datastore")
    name: str
    cluster_id: str | None = None


class VMCreatePlacementRequest(BaseModel):
    spec: ConfigSpec
    resource_pool: ManagedObjectReference
    datastore_cluster_id: str
    resource_id: str = ""


class VMClonePlacementRequest(BaseModel):
    config_spec: ConfigSpec
    clone_spec: CloneSpec
    resource_pool: ManagedObjectReference
    datastore_cluster_id: str
    source_devices: list[AnyVirtualDevice] = Field(..., description="Full device list of the source virtual machine")
    spec_devices: list[AnyVirtualDevice] = Field(..., description="Full device list of the final configuration")
    resource_id: str = ""
