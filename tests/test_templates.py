import pytest

from walletpass.core.errors import NotFoundError
from walletpass.profiles import get_profile, list_profiles
from walletpass.services.templates import (
    format_date,
    format_datetime,
    format_time,
    load_template,
    merge_apple_template,
    merge_shallow,
    populate_apple_fields,
    resolve_field_value,
    stringify,
)


class TestProfiles:
    """Tests for the profile registry."""

    def test_registered_profiles(self):
        assert list_profiles() == ["logistics", "healthcare", "loyalty"]

    @pytest.mark.parametrize(
        "name,flow",
        [
            ("logistics", ["ISSUED", "PRESENCE", "SCALE", "OPS", "EXITED"]),
            ("healthcare", ["SCHEDULED", "CHECKIN", "PROCEDURE", "DISCHARGED"]),
            ("loyalty", ["ACTIVE", "SUSPENDED"]),
        ],
    )
    def test_status_flows(self, name, flow):
        profile = get_profile(name)
        assert list(profile.status_flow) == flow
        assert profile.initial_status == flow[0]

    def test_unknown_profile(self):
        with pytest.raises(NotFoundError):
            get_profile("aviation")

    def test_templates_are_copies(self):
        profile = get_profile("logistics")
        template = profile.apple_template("child")
        template["generic"]["primaryFields"].clear()

        assert profile.apple_template("child")["generic"]["primaryFields"]

    def test_describe(self):
        described = get_profile("healthcare").describe()

        assert described["name"] == "healthcare"
        assert described["fieldMap"]["child"]["patientName"] == {"label": "Patient", "key": "patientName"}


class TestFormatting:
    """Tests for display formatting of pass values."""

    def test_format_datetime(self):
        assert format_datetime("2026-10-19T09:30:00Z") == "10/19/2026, 9:30:00 AM"
        assert format_datetime("2026-10-19T15:05:09Z") == "10/19/2026, 3:05:09 PM"
        assert format_datetime("not a date") == "not a date"
        assert format_datetime(None) == ""

    def test_format_date_and_time(self):
        assert format_date("2026-10-19") == "Oct 19, 2026"
        assert format_time("2026-10-19T00:15:00") == "12:15 AM"

    def test_stringify(self):
        assert stringify(None) == ""
        assert stringify(50.0) == "50"
        assert stringify(2.5) == "2.5"
        assert stringify(True) == "true"


class TestFieldResolution:
    """Tests for resolving template keys against pass data."""

    parent = {
        "id": "PES-2026-10-19-AB12",
        "type": "parent",
        "status": "ISSUED",
        "programName": "Morning Yard",
        "window": {"from": "2026-10-19T08:00:00Z", "to": "2026-10-19T12:00:00Z"},
        "metadata": {"dock": {"number": 7}},
    }

    def test_id_aliases(self):
        for key in ("scheduleId", "orderId", "batchId", "visitId"):
            assert resolve_field_value(key, self.parent) == "PES-2026-10-19-AB12"

    def test_window_bounds(self):
        assert resolve_field_value("windowFrom", self.parent) == "10/19/2026, 8:00:00 AM"
        assert resolve_field_value("windowTo", self.parent) == "10/19/2026, 12:00:00 PM"
        assert resolve_field_value("windowFrom", {**self.parent, "type": "child"}) == ""

    def test_dot_paths_and_missing(self):
        assert resolve_field_value("metadata.dock.number", self.parent) == "7"
        assert resolve_field_value("programName", self.parent) == "Morning Yard"
        assert resolve_field_value("capacity", self.parent) == ""
        assert resolve_field_value("metadata.dock.missing", self.parent) == ""

    def test_populate_keeps_template_default(self):
        style = {
            "primaryFields": [{"key": "programName", "label": "Program", "value": ""}],
            "secondaryFields": [{"key": "site", "label": "Site", "value": "TBD"}],
        }
        populate_apple_fields(style, self.parent)

        assert style["primaryFields"][0]["value"] == "Morning Yard"
        assert style["secondaryFields"][0]["value"] == "TBD"


class TestMerging:
    """Tests for template layering."""

    def test_profile_groups_replace_base_groups(self):
        base = load_template("apple", "child")
        profile = get_profile("logistics").apple_template("child")
        merged = merge_apple_template(base, profile)

        keys = [f["key"] for f in merged["generic"]["primaryFields"]]
        assert keys == ["plate"]
        assert merged["organizationName"] == "Walletpass Logistics"
        assert merged["barcodes"][0]["format"] == "PKBarcodeFormatQR"

    def test_base_group_kept_when_profile_lacks_it(self):
        base = {"generic": {"headerFields": [{"key": "h", "label": "H", "value": ""}]}}
        merged = merge_apple_template(base, {"generic": {"primaryFields": []}})

        assert merged["generic"]["headerFields"][0]["key"] == "h"
        assert merged["generic"]["primaryFields"] == []

    def test_merge_shallow(self):
        merged = merge_shallow({"a": 1, "nested": {"x": 1}}, None, {"nested": {"y": 2}, "b": 2})
        assert merged == {"a": 1, "nested": {"y": 2}, "b": 2}

    def test_load_template_returns_fresh_dict(self):
        first = load_template("google", "loyalty_class")
        first["issuerName"] = "changed"
        assert load_template("google", "loyalty_class")["issuerName"] == "Walletpass"
