import asyncio
import hmac
import logging
import time
from datetime import datetime, timezone
from email.utils import formatdate, parsedate_to_datetime

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Response

from walletpass.api.deps import (
    get_device_repository,
    get_lifecycle_engine,
    get_pass_coordinator,
    get_wallet_pass_service,
)
from walletpass.core.ids import parse_iso
from walletpass.core.security import verify_auth_token
from walletpass.domain.wallet_pass import WalletPassRecord
from walletpass.repositories.device import DeviceRepository
from walletpass.repositories.pass_store import PassRecord
from walletpass.services.lifecycle import PassLifecycleEngine
from walletpass.services.wallet_passes import WalletPassService
from walletpass.services.wallets import PassCoordinator
from walletpass.services.wallets.apple import PKPASS_MEDIA_TYPE

logger = logging.getLogger(__name__)

router = APIRouter()


class PassLookup:
    """Finds a serial number among lifecycle passes and multi-type wallet passes."""

    def __init__(
        self,
        engine: PassLifecycleEngine = Depends(get_lifecycle_engine),
        wallet_passes: WalletPassService = Depends(get_wallet_pass_service),
    ):
        self.engine = engine
        self.wallet_passes = wallet_passes

    def find(self, serial_number: str) -> PassRecord | WalletPassRecord | None:
        return self.engine.get_pass(serial_number) or self.wallet_passes.get_wallet_pass(serial_number)

    def last_modified(self, serial_number: str) -> datetime | None:
        record = self.find(serial_number)
        return parse_iso(record.updated_at) if record else None

    def authenticate(self, serial_number: str, authorization: str | None) -> PassRecord | WalletPassRecord:
        auth_token = verify_auth_token(authorization)
        if not auth_token:
            raise HTTPException(status_code=401, detail="Authorization required")

        record = self.find(serial_number)
        expected = _authentication_token(record) if record else None
        if not expected or not hmac.compare_digest(expected, auth_token):
            raise HTTPException(status_code=401, detail="Invalid authentication")
        return record


def _authentication_token(record: PassRecord | WalletPassRecord) -> str | None:
    metadata = record.input.metadata if isinstance(record, WalletPassRecord) else record.metadata
    return (metadata.get("appleWallet") or {}).get("authenticationToken")


@router.post("/v1/devices/{device_library_id}/registrations/{pass_type_id}/{serial_number}")
def register_device_endpoint(
    device_library_id: str,
    pass_type_id: str,
    serial_number: str,
    authorization: str | None = Header(None),
    body: dict = Body(...),
    passes: PassLookup = Depends(),
    devices: DeviceRepository = Depends(get_device_repository),
):
    """Register a device for push notifications."""
    passes.authenticate(serial_number, authorization)

    push_token = body.get("pushToken")
    if not push_token:
        raise HTTPException(status_code=400, detail="pushToken required")

    created = devices.register(device_library_id, pass_type_id, serial_number, push_token)
    logger.info(f"[WebService] Device {device_library_id[:20]}... registered for {serial_number}")

    return Response(status_code=201 if created else 200)


@router.delete("/v1/devices/{device_library_id}/registrations/{pass_type_id}/{serial_number}")
def unregister_device_endpoint(
    device_library_id: str,
    pass_type_id: str,
    serial_number: str,
    authorization: str | None = Header(None),
    passes: PassLookup = Depends(),
    devices: DeviceRepository = Depends(get_device_repository),
):
    """Unregister a device from push notifications."""
    passes.authenticate(serial_number, authorization)
    devices.unregister(device_library_id, pass_type_id, serial_number)
    logger.info(f"[WebService] Device {device_library_id[:20]}... unregistered from {serial_number}")
    return Response(status_code=200)


@router.get("/v1/devices/{device_library_id}/registrations/{pass_type_id}")
def get_serial_numbers(
    device_library_id: str,
    pass_type_id: str,
    passesUpdatedSince: str | None = None,  # noqa: N803 - Apple Wallet API requirement
    passes: PassLookup = Depends(),
    devices: DeviceRepository = Depends(get_device_repository),
):
    """Get list of passes registered to this device that have been updated."""
    serial_numbers = devices.get_serial_numbers_for_device(device_library_id, pass_type_id)

    since_dt = None
    if passesUpdatedSince:
        try:
            since_dt = datetime.fromtimestamp(float(passesUpdatedSince), tz=timezone.utc)
        except (ValueError, TypeError, OverflowError):
            logger.warning(f"[WebService] Ignoring invalid passesUpdatedSince: {passesUpdatedSince}")

    serial_numbers = passes.engine.passes_updated_since(serial_numbers, since_dt, modified_at=passes.last_modified)

    if not serial_numbers:
        return Response(status_code=204)

    return {
        "serialNumbers": serial_numbers,
        "lastUpdated": str(int(time.time())),
    }


@router.get("/v1/passes/{pass_type_id}/{serial_number}")
async def get_latest_pass(
    pass_type_id: str,
    serial_number: str,
    authorization: str | None = Header(None),
    if_modified_since: str | None = Header(None, alias="If-Modified-Since"),
    passes: PassLookup = Depends(),
    coordinator: PassCoordinator = Depends(get_pass_coordinator),
):
    """Download the latest version of a pass."""
    record = passes.authenticate(serial_number, authorization)

    # HTTP dates have second precision
    last_modified = parse_iso(record.updated_at)
    if last_modified:
        last_modified = last_modified.replace(microsecond=0)

    if if_modified_since and last_modified:
        try:
            client_date = parsedate_to_datetime(if_modified_since)
        except (ValueError, TypeError):
            client_date = None
        if client_date is not None:
            if client_date.tzinfo is None:
                client_date = client_date.replace(tzinfo=timezone.utc)
            if last_modified <= client_date:
                return Response(status_code=304)

    if isinstance(record, WalletPassRecord):
        pkpass = await asyncio.to_thread(coordinator.apple.generate_pass, record.id, record.input)
    else:
        pkpass = await coordinator.get_pkpass_buffer(record.type, record)

    headers = {}
    if last_modified:
        headers["Last-Modified"] = formatdate(last_modified.timestamp(), usegmt=True)

    return Response(content=pkpass, media_type=PKPASS_MEDIA_TYPE, headers=headers)


@router.post("/v1/log")
def receive_logs(body: dict = Body(...)):
    """Receive error logs from Apple Wallet."""
    for log in body.get("logs", []):
        logger.info(f"[WebService] Wallet log: {log}")
    return Response(status_code=200)
