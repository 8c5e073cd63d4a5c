"""
Profile registry.

Profiles are built at import time and never mutated afterwards.
"""

from walletpass.core.errors import NotFoundError

from .base import FieldSpec, Profile
from .healthcare import healthcare_profile
from .logistics import logistics_profile
from .loyalty import loyalty_profile

_PROFILES: dict[str, Profile] = {
    p.name: p for p in (logistics_profile, healthcare_profile, loyalty_profile)
}


def get_profile(name: str) -> Profile:
    profile = _PROFILES.get(name)
    if profile is None:
        raise NotFoundError(f"Profile not found: {name}")
    return profile


def list_profiles() -> list[str]:
    return list(_PROFILES)


__all__ = [
    "FieldSpec",
    "Profile",
    "get_profile",
    "list_profiles",
]
