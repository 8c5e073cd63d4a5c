from typing import Optional

from fastapi import APIRouter, Depends, Response

from walletpass.api.deps import get_lifecycle_engine, get_pass_coordinator
from walletpass.domain.schemas import CreateChildInput, CreateParentInput, GenerateRequest, StatusUpdate
from walletpass.services.lifecycle import PassLifecycleEngine
from walletpass.services.wallets import PassCoordinator
from walletpass.services.wallets.apple import PKPASS_MEDIA_TYPE

router = APIRouter()


@router.post("/parents", status_code=201)
async def create_parent(
    data: CreateParentInput,
    engine: PassLifecycleEngine = Depends(get_lifecycle_engine),
):
    """Create a parent pass (schedule, appointment batch or loyalty program)."""
    record = await engine.create_parent_schedule(data)
    return record.to_wire()


@router.post("/children", status_code=201)
async def create_child(
    data: CreateChildInput,
    engine: PassLifecycleEngine = Depends(get_lifecycle_engine),
):
    record = await engine.create_child_ticket(data)
    return record.to_wire()


@router.get("/{pass_id}")
def get_pass(pass_id: str, engine: PassLifecycleEngine = Depends(get_lifecycle_engine)):
    return engine.require_pass(pass_id).to_wire()


@router.patch("/{pass_id}/status")
async def update_status(
    pass_id: str,
    data: StatusUpdate,
    engine: PassLifecycleEngine = Depends(get_lifecycle_engine),
    coordinator: PassCoordinator = Depends(get_pass_coordinator),
):
    """Move a pass to another status and notify registered Apple devices."""
    record = await engine.update_pass_status(pass_id, data.status)
    await coordinator.on_pass_updated(pass_id)
    return record.to_wire()


@router.get("/{pass_id}/pkpass")
async def download_pkpass(
    pass_id: str,
    engine: PassLifecycleEngine = Depends(get_lifecycle_engine),
    coordinator: PassCoordinator = Depends(get_pass_coordinator),
):
    """Download the .pkpass file for a pass."""
    record = engine.require_pass(pass_id)
    pkpass = await coordinator.get_pkpass_buffer(record.type, record)
    return Response(
        content=pkpass,
        media_type=PKPASS_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{record.id}.pkpass"'},
    )


@router.get("/{pass_id}/google")
async def get_google_pass(
    pass_id: str,
    engine: PassLifecycleEngine = Depends(get_lifecycle_engine),
    coordinator: PassCoordinator = Depends(get_pass_coordinator),
):
    """Google Wallet object (or loyalty class) and save URL for a pass."""
    record = engine.require_pass(pass_id)
    rendered = await coordinator.get_google_object(record.type, record)
    return rendered.to_dict()


@router.post("/{pass_id}/generate")
async def generate_pass(
    pass_id: str,
    data: Optional[GenerateRequest] = None,
    engine: PassLifecycleEngine = Depends(get_lifecycle_engine),
    coordinator: PassCoordinator = Depends(get_pass_coordinator),
):
    """
    Render a pass for both wallets.

    The .pkpass bytes are not inlined; the response reports whether the
    Apple artifact could be built and where to download it.
    """
    data = data or GenerateRequest()
    record = engine.require_pass(pass_id)
    result = await coordinator.generate_pass(
        record,
        include_apple=data.include_apple,
        include_google=data.include_google,
    )
    return {
        "passData": result.pass_data,
        "apple": {
            "available": result.apple_pkpass is not None,
            "downloadUrl": f"/passes/{pass_id}/pkpass" if result.apple_pkpass is not None else None,
        },
        "google": {
            "object": result.google_object,
            "saveUrl": result.google_save_url,
        },
        "errors": result.errors,
    }
