RESOURCE_NAME = "vsphere_virtual_machine"


def resource_id_string(resource_id: str | None, name: str = RESOURCE_NAME) -> str:
    return f"{name} (ID = {resource_id or '<new resource>'})"
