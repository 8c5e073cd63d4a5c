from typing import Optional

from fastapi import APIRouter, Body, Depends, Response

from walletpass.api.deps import get_wallet_pass_service
from walletpass.core.errors import NotFoundError, RenderError
from walletpass.domain.schemas import StatusUpdate
from walletpass.domain.wallet_pass import PassGenerationOptions, WalletPassCreate, WalletPassNotification
from walletpass.services.wallet_passes import WalletPassService
from walletpass.services.wallets.apple import PKPASS_MEDIA_TYPE

router = APIRouter()


def _result_body(result) -> dict:
    return {
        "passData": result.pass_data.to_wire(),
        "applePkpassAvailable": result.apple_pkpass is not None,
        "googleObject": result.google_object,
        "googleSaveUrl": result.google_save_url,
        "errors": result.errors,
    }


@router.post("", status_code=201)
async def create_wallet_pass(
    data: WalletPassCreate,
    service: WalletPassService = Depends(get_wallet_pass_service),
):
    """Create a boarding pass, event ticket, store card, coupon, gift card, transit or generic pass."""
    result = await service.create_wallet_pass(data.input, data.options)
    return _result_body(result)


@router.get("")
def list_wallet_passes(
    passType: Optional[str] = None,  # noqa: N803 - camelCase query parameter
    status: Optional[str] = None,
    service: WalletPassService = Depends(get_wallet_pass_service),
):
    return [p.to_wire() for p in service.list_wallet_passes(pass_type=passType, status=status)]


@router.get("/{pass_id}")
def get_wallet_pass(pass_id: str, service: WalletPassService = Depends(get_wallet_pass_service)):
    record = service.get_wallet_pass(pass_id)
    if record is None:
        raise NotFoundError(f"Pass not found: {pass_id}")
    return record.to_wire()


@router.get("/{pass_id}/pkpass")
async def download_wallet_pkpass(pass_id: str, service: WalletPassService = Depends(get_wallet_pass_service)):
    result = await service.regenerate_pass(pass_id, PassGenerationOptions(platforms=["apple"]))
    if result.apple_pkpass is None:
        raise RenderError(result.errors.get("apple", "Failed to generate Apple Wallet pass"))
    return Response(
        content=result.apple_pkpass,
        media_type=PKPASS_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{pass_id}.pkpass"'},
    )


@router.patch("/{pass_id}/status")
async def update_wallet_pass_status(
    pass_id: str,
    data: StatusUpdate,
    service: WalletPassService = Depends(get_wallet_pass_service),
):
    record = await service.update_wallet_pass_status(pass_id, data.status)
    return record.to_wire()


@router.patch("/{pass_id}/points")
async def update_points(
    pass_id: str,
    points: int = Body(..., embed=True, ge=0),
    service: WalletPassService = Depends(get_wallet_pass_service),
):
    record = await service.update_loyalty_balance(pass_id, points)
    return record.to_wire()


@router.patch("/{pass_id}/balance")
async def update_balance(
    pass_id: str,
    balance: float = Body(..., embed=True),
    service: WalletPassService = Depends(get_wallet_pass_service),
):
    record = await service.update_gift_card_balance(pass_id, balance)
    return record.to_wire()


@router.post("/{pass_id}/notifications")
async def send_notification(
    pass_id: str,
    data: WalletPassNotification,
    service: WalletPassService = Depends(get_wallet_pass_service),
):
    """Send a message to the pass holder through Google Wallet."""
    return await service.send_pass_notification(pass_id, data.header, data.body)


@router.post("/{pass_id}/regenerate")
async def regenerate(
    pass_id: str,
    options: Optional[PassGenerationOptions] = None,
    service: WalletPassService = Depends(get_wallet_pass_service),
):
    result = await service.regenerate_pass(pass_id, options)
    return _result_body(result)
