"""Shared fixtures: in-memory services, wallet adapters with test doubles, and an ASGI client."""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from google.oauth2 import service_account

from walletpass.api.deps import (
    get_device_repository,
    get_lifecycle_engine,
    get_loyalty_service,
    get_pass_coordinator,
    get_pass_store,
    get_wallet_pass_service,
)
from walletpass.main import app
from walletpass.repositories.device import DeviceRepository
from walletpass.repositories.pass_store import PassStore
from walletpass.services.lifecycle import PassLifecycleEngine
from walletpass.services.loyalty import LoyaltyService
from walletpass.services.wallet_passes import WalletPassService
from walletpass.services.wallets.apple import AppleWalletAdapter, PassSigner
from walletpass.services.wallets.coordinator import PassCoordinator
from walletpass.services.wallets.google import WALLET_SCOPES, GoogleWalletAdapter

ISSUER_ID = "3388000000012345"
PASS_TYPE_ID = "pass.com.example.walletpass"
TEAM_ID = "TEAM123456"


class StubSigner(PassSigner):
    """Signer that skips openssl and returns a fixed signature."""

    def __init__(self):
        super().__init__(cert_path="signer.pem", wwdr_path="wwdr.pem")
        self.signed: list[bytes] = []

    def sign(self, manifest_data: bytes) -> bytes:
        self.signed.append(manifest_data)
        return b"test-signature"


class RecordingAPNs:
    """Stands in for APNsClient; records the push tokens it was asked to notify."""

    def __init__(self):
        self.pushed: list[list[str]] = []

    async def send_to_all_devices(self, push_tokens: list[str]) -> dict:
        self.pushed.append(list(push_tokens))
        return {"success": len(push_tokens), "failed": 0}


# --- Crypto material ---


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate(rsa_key: rsa.RSAPrivateKey) -> x509.Certificate:
    """Self-signed certificate standing in for the pass signer certificate."""
    name = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Walletpass Test"),
        x509.NameAttribute(NameOID.COMMON_NAME, f"Pass Type ID: {PASS_TYPE_ID}"),
    ])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=30))
        .sign(rsa_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def service_account_info(rsa_key: rsa.RSAPrivateKey) -> dict[str, Any]:
    private_key = rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("utf-8")
    return {
        "type": "service_account",
        "project_id": "walletpass-test",
        "private_key_id": "test-key-id",
        "private_key": private_key,
        "client_email": "wallet@walletpass-test.iam.gserviceaccount.com",
        "client_id": "1234567890",
        "token_uri": "https://oauth2.googleapis.com/token",
    }


@pytest.fixture
def google_credentials(service_account_info: dict[str, Any]) -> service_account.Credentials:
    """Service account credentials with a pre-set token, so no token refresh hits the network."""
    credentials = service_account.Credentials.from_service_account_info(
        service_account_info, scopes=WALLET_SCOPES
    )
    credentials.token = "test-access-token"
    return credentials


# --- Services ---


@pytest.fixture
def store() -> PassStore:
    return PassStore()


@pytest.fixture
def engine(store: PassStore) -> PassLifecycleEngine:
    return PassLifecycleEngine(store)


@pytest.fixture
def devices() -> DeviceRepository:
    return DeviceRepository()


@pytest.fixture
def signer() -> StubSigner:
    return StubSigner()


@pytest.fixture
def apple_adapter(signer: StubSigner) -> AppleWalletAdapter:
    return AppleWalletAdapter(
        team_id=TEAM_ID,
        pass_type_id=PASS_TYPE_ID,
        signer=signer,
        web_service_url="https://wallet.example.com/wallet",
    )


@pytest.fixture
def google_adapter() -> GoogleWalletAdapter:
    """Adapter without credentials: no network calls, unsigned save URLs."""
    return GoogleWalletAdapter(issuer_id=ISSUER_ID)


@pytest.fixture
def apns() -> RecordingAPNs:
    return RecordingAPNs()


@pytest.fixture
def coordinator(
    apple_adapter: AppleWalletAdapter,
    google_adapter: GoogleWalletAdapter,
    apns: RecordingAPNs,
    devices: DeviceRepository,
) -> PassCoordinator:
    return PassCoordinator(apple=apple_adapter, google=google_adapter, apns=apns, devices=devices)


@pytest.fixture
def loyalty(engine: PassLifecycleEngine, google_adapter: GoogleWalletAdapter) -> LoyaltyService:
    return LoyaltyService(engine, google=google_adapter)


@pytest.fixture
def wallet_passes(store: PassStore, coordinator: PassCoordinator) -> WalletPassService:
    return WalletPassService(store, coordinator)


@pytest.fixture
async def loyalty_setup(loyalty: LoyaltyService) -> dict[str, Any]:
    """A business with a loyalty program and one customer."""
    business = await loyalty.create_business({"name": "Biz A", "pointsLabel": "Beans"})
    program = await loyalty.create_loyalty_program({"businessId": business.id})
    customer = await loyalty.create_customer_account({"businessId": business.id, "fullName": "Alice"})
    return {"business": business, "program": program, "customer": customer}


# --- HTTP ---


@pytest.fixture
async def client(
    store: PassStore,
    engine: PassLifecycleEngine,
    devices: DeviceRepository,
    coordinator: PassCoordinator,
    loyalty: LoyaltyService,
    wallet_passes: WalletPassService,
) -> AsyncIterator[httpx.AsyncClient]:
    app.dependency_overrides = {
        get_pass_store: lambda: store,
        get_lifecycle_engine: lambda: engine,
        get_device_repository: lambda: devices,
        get_pass_coordinator: lambda: coordinator,
        get_loyalty_service: lambda: loyalty,
        get_wallet_pass_service: lambda: wallet_passes,
    }
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
