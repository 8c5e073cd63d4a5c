from walletpass.profiles.base import Profile, field_group, pass_field, text_module

STATUS_FLOW = ("SCHEDULED", "CHECKIN", "PROCEDURE", "DISCHARGED")


def _apple(description: str, background: str, label: str, generic: dict) -> dict:
    return {
        "formatVersion": 1,
        "organizationName": "Walletpass Healthcare",
        "description": description,
        "backgroundColor": background,
        "foregroundColor": "rgb(255, 255, 255)",
        "labelColor": label,
        "logoText": "Health",
        "generic": generic,
    }


healthcare_profile = Profile(
    name="healthcare",
    status_flow=STATUS_FLOW,
    parent_prefix="APB",
    child_prefix="PV",
    parent_title="Appointment Batch",
    child_title="Patient Visit",
    field_map={
        "parent": field_group(
            programName=("Appointment Batch", "programName"),
            site=("Location", "site"),
            windowFrom=("Date Start", "window.from"),
            windowTo=("Date End", "window.to"),
            capacity=("Total Slots", "capacity"),
        ),
        "child": field_group(
            patientName=("Patient", "patientName"),
            doctor=("Doctor", "doctor"),
            procedure=("Procedure", "procedure"),
            status=("Status", "status"),
            parentId=("Batch ID", "parentId"),
        ),
    },
    apple_templates={
        "parent": _apple("Appointment Batch", "rgb(100, 149, 237)", "rgb(220, 230, 255)", {
            "primaryFields": [pass_field("programName", "Appointment Batch")],
            "secondaryFields": [pass_field("site", "Location")],
            "auxiliaryFields": [pass_field("windowFrom", "Start Date"), pass_field("windowTo", "End Date")],
            "backFields": [pass_field("batchId", "Batch ID"), pass_field("capacity", "Total Slots")],
        }),
        "child": _apple("Patient Visit", "rgb(72, 201, 176)", "rgb(200, 255, 240)", {
            "primaryFields": [pass_field("patientName", "Patient")],
            "secondaryFields": [pass_field("doctor", "Doctor"), pass_field("status", "Status", "SCHEDULED")],
            "auxiliaryFields": [pass_field("procedure", "Procedure")],
            "backFields": [pass_field("visitId", "Visit ID"), pass_field("parentId", "Batch ID")],
        }),
    },
    google_templates={
        "parent_class": {"issuerName": "Walletpass Healthcare", "reviewStatus": "UNDER_REVIEW"},
        "parent_object": {
            "state": "ACTIVE",
            "cardTitle": {"defaultValue": {"language": "en-US", "value": "Appointment Batch"}},
            "textModulesData": [
                text_module("site", "Location"),
                text_module("window", "Dates"),
                text_module("capacity", "Total Slots"),
                text_module("status", "Status", "SCHEDULED"),
            ],
        },
        "child_object": {
            "state": "ACTIVE",
            "cardTitle": {"defaultValue": {"language": "en-US", "value": "Patient Visit"}},
            "textModulesData": [
                text_module("patientName", "Patient"),
                text_module("doctor", "Doctor"),
                text_module("procedure", "Procedure"),
                text_module("status", "Status", "SCHEDULED"),
                text_module("parentId", "Batch ID"),
            ],
        },
    },
)
