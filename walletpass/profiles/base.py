import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class FieldSpec:
    label: str
    key: str


@dataclass(frozen=True)
class Profile:
    """
    A pass family: its legal statuses and its default rendering templates.

    Templates are exposed through accessor methods that return deep copies,
    so renderers can mutate what they get without touching the profile.
    """

    name: str
    status_flow: tuple[str, ...]
    parent_prefix: str
    child_prefix: str
    parent_title: str
    child_title: str
    field_map: Mapping[str, Mapping[str, FieldSpec]]
    apple_templates: Mapping[str, dict[str, Any]] = field(default_factory=dict)
    google_templates: Mapping[str, dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.status_flow:
            raise ValueError(f"Profile {self.name} needs at least one status")
        object.__setattr__(self, "apple_templates", MappingProxyType(dict(self.apple_templates)))
        object.__setattr__(self, "google_templates", MappingProxyType(dict(self.google_templates)))

    @property
    def initial_status(self) -> str:
        return self.status_flow[0]

    def allows(self, status: str) -> bool:
        return status in self.status_flow

    def apple_template(self, pass_type: str) -> dict[str, Any]:
        return copy.deepcopy(self.apple_templates.get(pass_type, {}))

    def google_template(self, key: str) -> dict[str, Any]:
        return copy.deepcopy(self.google_templates.get(key, {}))

    def title_for(self, pass_type: str) -> str:
        return self.parent_title if pass_type == "parent" else self.child_title

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "statusFlow": list(self.status_flow),
            "fieldMap": {
                group: {name: {"label": spec.label, "key": spec.key} for name, spec in specs.items()}
                for group, specs in self.field_map.items()
            },
        }


def field_group(**fields: tuple[str, str]) -> dict[str, FieldSpec]:
    return {name: FieldSpec(label=label, key=key) for name, (label, key) in fields.items()}


def pass_field(key: str, label: str, value: str = "") -> dict[str, str]:
    return {"key": key, "label": label, "value": value}


def text_module(module_id: str, header: str, body: str = "") -> dict[str, str]:
    return {"id": module_id, "header": header, "body": body}
