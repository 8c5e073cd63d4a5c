from walletpass.profiles.base import Profile, field_group, pass_field, text_module

STATUS_FLOW = ("ACTIVE", "SUSPENDED")


def _apple(description: str, generic: dict) -> dict:
    return {
        "formatVersion": 1,
        "organizationName": "Walletpass Loyalty",
        "description": description,
        "backgroundColor": "rgb(17, 24, 39)",
        "foregroundColor": "rgb(255, 255, 255)",
        "labelColor": "rgb(209, 213, 219)",
        "logoText": "Walletpass",
        "generic": generic,
    }


loyalty_profile = Profile(
    name="loyalty",
    status_flow=STATUS_FLOW,
    parent_prefix="LPR",
    child_prefix="LCR",
    parent_title="Loyalty Program",
    child_title="Loyalty Card",
    field_map={
        "parent": field_group(
            programName=("Program", "programName"),
            site=("Location", "site"),
        ),
        "child": field_group(
            customerName=("Customer", "customerName"),
            memberId=("Member ID", "memberId"),
            points=("Points", "points"),
            status=("Status", "status"),
            parentId=("Program ID", "parentId"),
        ),
    },
    apple_templates={
        "parent": _apple("Loyalty Program", {
            "primaryFields": [pass_field("programName", "Program")],
            "secondaryFields": [pass_field("site", "Location")],
            "backFields": [pass_field("scheduleId", "Program ID")],
        }),
        "child": _apple("Loyalty Card", {
            "primaryFields": [pass_field("customerName", "Customer")],
            "secondaryFields": [pass_field("points", "Points", "0"), pass_field("status", "Status", "ACTIVE")],
            "backFields": [pass_field("memberId", "Member ID"), pass_field("parentId", "Program ID")],
        }),
    },
    google_templates={
        "parent_class": {"issuerName": "Walletpass Loyalty", "reviewStatus": "UNDER_REVIEW"},
        "parent_object": {
            "state": "ACTIVE",
            "cardTitle": {"defaultValue": {"language": "en-US", "value": "Loyalty Program"}},
            "textModulesData": [text_module("site", "Location")],
        },
        "child_object": {
            "state": "ACTIVE",
            "textModulesData": [
                text_module("points", "Points", "0"),
                text_module("memberId", "Member ID"),
                text_module("status", "Status", "ACTIVE"),
            ],
        },
    },
)
