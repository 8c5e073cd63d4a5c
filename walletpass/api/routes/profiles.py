from fastapi import APIRouter

from walletpass.profiles import get_profile, list_profiles

router = APIRouter()


@router.get("")
def list_all_profiles():
    """List registered profiles with their status flows."""
    return [get_profile(name).describe() for name in list_profiles()]


@router.get("/{name}")
def get_profile_details(name: str):
    return get_profile(name).describe()
