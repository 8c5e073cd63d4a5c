from walletpass.profiles.base import Profile, field_group, pass_field, text_module

STATUS_FLOW = ("ISSUED", "PRESENCE", "SCALE", "OPS", "EXITED")

_COLORS = {
    "parent": ("rgb(34, 139, 230)", "rgb(200, 230, 255)"),
    "child": ("rgb(60, 179, 113)", "rgb(200, 255, 220)"),
}


def _apple(pass_type: str, description: str, generic: dict) -> dict:
    background, label = _COLORS[pass_type]
    return {
        "formatVersion": 1,
        "organizationName": "Walletpass Logistics",
        "description": description,
        "backgroundColor": background,
        "foregroundColor": "rgb(255, 255, 255)",
        "labelColor": label,
        "logoText": "Walletpass",
        "generic": generic,
    }


logistics_profile = Profile(
    name="logistics",
    status_flow=STATUS_FLOW,
    parent_prefix="PES",
    child_prefix="TO",
    parent_title="Program Entry Schedule",
    child_title="Transport Order",
    field_map={
        "parent": field_group(
            programName=("Program", "programName"),
            site=("Site", "site"),
            windowFrom=("Window Start", "window.from"),
            windowTo=("Window End", "window.to"),
            capacity=("Capacity", "capacity"),
        ),
        "child": field_group(
            plate=("Plate", "plate"),
            carrier=("Carrier", "carrier"),
            client=("Client", "client"),
            status=("Status", "status"),
            parentId=("Schedule ID", "parentId"),
        ),
    },
    apple_templates={
        "parent": _apple("parent", "Program Entry Schedule", {
            "primaryFields": [pass_field("programName", "Program")],
            "secondaryFields": [pass_field("site", "Site")],
            "auxiliaryFields": [pass_field("windowFrom", "From"), pass_field("windowTo", "To")],
            "backFields": [pass_field("scheduleId", "Schedule ID"), pass_field("capacity", "Capacity")],
        }),
        "child": _apple("child", "Transport Order", {
            "primaryFields": [pass_field("plate", "Plate")],
            "secondaryFields": [pass_field("carrier", "Carrier"), pass_field("status", "Status", "ISSUED")],
            "auxiliaryFields": [pass_field("client", "Client")],
            "backFields": [pass_field("orderId", "Order ID"), pass_field("parentId", "Schedule ID")],
        }),
    },
    google_templates={
        "parent_class": {"issuerName": "Walletpass Logistics", "reviewStatus": "UNDER_REVIEW"},
        "parent_object": {
            "state": "ACTIVE",
            "cardTitle": {"defaultValue": {"language": "en-US", "value": "Program Entry Schedule"}},
            "textModulesData": [
                text_module("site", "Site"),
                text_module("window", "Window"),
                text_module("capacity", "Capacity"),
                text_module("status", "Status", "ISSUED"),
            ],
        },
        "child_object": {
            "state": "ACTIVE",
            "cardTitle": {"defaultValue": {"language": "en-US", "value": "Transport Order"}},
            "textModulesData": [
                text_module("plate", "Plate"),
                text_module("carrier", "Carrier"),
                text_module("client", "Client"),
                text_module("status", "Status", "ISSUED"),
                text_module("parentId", "Schedule ID"),
            ],
        },
    },
)
