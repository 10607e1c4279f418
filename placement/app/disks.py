from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .schemas import VirtualDisk, VirtualSCSIController


def device_name(device: Any) -> str:
    # Disks are named by their slot; missing controller or unit count as 0.
    if device.device_type == "disk":
        return f"disk-{device.controller_key or 0}-{device.unit_number or 0}"
    return f"{device.device_type}-{device.key}"


def select_and_sort_disks(devices: Iterable[Any], max_controllers: int) -> list[VirtualDisk]:
    """Return the virtual disks of a device list in (bus number, unit number) order.

    Only disks attached to SCSI controllers on buses ``0..max_controllers-1`` are
    returned. The ordering is the positional join key used to correlate disks
    between device lists that do not share disk keys, so both lists must enumerate
    their disks in the same logical sequence.
    """
    devices = list(devices)
    controllers = sorted(
        (d for d in devices if isinstance(d, VirtualSCSIController) and 0 <= d.bus_number < max_controllers),
        key=lambda c: (c.bus_number, c.key),
    )
    ordered: list[VirtualDisk] = []
    for controller in controllers:
        on_bus = [d for d in devices if isinstance(d, VirtualDisk) and d.controller_key == controller.key]
        # Disks with no unit number yet are slotted after the assigned ones.
        on_bus.sort(key=lambda d: (d.unit_number is None, d.unit_number or 0, d.key))
        ordered.extend(on_bus)
    return ordered
