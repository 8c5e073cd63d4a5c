import asyncio
from dataclasses import dataclass

import pytest

from walletpass.services.apns import APNsClient
from walletpass.services.wallets.apple import AppleWalletAdapter, PassSigner
from walletpass.services.wallets.coordinator import PassCoordinator


@dataclass
class FakeResponse:
    is_successful: bool
    status: str = "200"
    description: str = ""


class FakeAPNsConnection:
    """Stands in for aioapns.APNs; fails or stalls for chosen tokens."""

    def __init__(self, failing=(), stalling=()):
        self.failing = set(failing)
        self.stalling = set(stalling)
        self.requests = []

    async def send_notification(self, request):
        self.requests.append(request)
        if request.device_token in self.stalling:
            await asyncio.sleep(1)
        if request.device_token in self.failing:
            return FakeResponse(is_successful=False, status="410", description="Unregistered")
        return FakeResponse(is_successful=True)


@pytest.fixture
def apns_client() -> APNsClient:
    return APNsClient(pass_type_id="pass.com.example.walletpass", cert_path="unused.pem", timeout=0.05)


class TestAPNsClient:
    """Tests for Wallet update pushes."""

    async def test_empty_payload_on_pass_topic(self, apns_client):
        connection = FakeAPNsConnection()
        apns_client._client = connection

        assert await apns_client.send_pass_update("token-a") is True

        request = connection.requests[0]
        assert request.message == {}
        assert request.apns_topic == "pass.com.example.walletpass"

    async def test_send_to_all_devices(self, apns_client):
        apns_client._client = FakeAPNsConnection(failing={"token-b"}, stalling={"token-c"})

        results = await apns_client.send_to_all_devices(["token-a", "token-b", "token-c"])

        assert results == {"success": 1, "failed": 2}

    async def test_no_tokens(self, apns_client):
        assert await apns_client.send_to_all_devices([]) == {"success": 0, "failed": 0}


class TestPassCoordinator:
    """Tests for dual-platform rendering and update fan-out."""

    async def test_generate_both_platforms(self, engine, coordinator):
        parent = await engine.create_parent_schedule({"programName": "Morning Yard"})
        child = await engine.create_child_ticket({"parentId": parent.id, "plate": "ABC123A"})

        result = await coordinator.generate_pass(child)

        assert result.apple_pkpass.startswith(b"PK")
        assert result.google_object["id"].endswith(child.id)
        assert result.google_save_url
        assert result.errors == {}
        assert result.pass_data["id"] == child.id

    async def test_loyalty_program_has_no_save_url(self, coordinator, loyalty_setup):
        result = await coordinator.generate_pass(loyalty_setup["program"], include_apple=False)

        assert result.apple_pkpass is None
        assert result.google_object["programName"] == "Biz A Loyalty"
        assert result.google_save_url is None

    async def test_apple_failure_is_isolated(self, engine, google_adapter, devices, tmp_path):
        broken = AppleWalletAdapter(
            team_id="TEAM123456",
            pass_type_id="pass.com.example.walletpass",
            signer=PassSigner(cert_path=str(tmp_path / "missing.pem"), wwdr_path=str(tmp_path / "wwdr.pem")),
        )
        coordinator = PassCoordinator(apple=broken, google=google_adapter, devices=devices)
        parent = await engine.create_parent_schedule({"programName": "Morning Yard"})

        result = await coordinator.generate_pass(parent)

        assert result.apple_pkpass is None
        assert "apple" in result.errors
        assert result.google_object is not None
        assert "google" not in result.errors

    async def test_google_failure_is_isolated(self, coordinator, loyalty, loyalty_setup):
        card = await loyalty.issue_loyalty_card({
            "businessId": loyalty_setup["business"].id,
            "customerId": loyalty_setup["customer"].id,
            "metadata": {"googleWallet": {"objectOverrides": "not-an-object"}},
        })

        result = await coordinator.generate_pass(card)

        assert result.apple_pkpass.startswith(b"PK")
        assert result.google_object is None
        assert result.google_save_url is None
        assert result.errors["google"].startswith("Failed to generate Google Wallet object")
        assert "apple" not in result.errors

    async def test_on_pass_updated(self, coordinator, devices, apns):
        devices.register("device-1", "pass.com.example.walletpass", "TO-1", "token-a")
        devices.register("device-2", "pass.com.example.walletpass", "TO-1", "token-b")
        devices.register("device-3", "pass.com.example.walletpass", "TO-2", "token-c")

        results = await coordinator.on_pass_updated("TO-1")

        assert results == {"success": 2, "failed": 0}
        assert apns.pushed == [["token-a", "token-b"]]

    async def test_on_pass_updated_without_devices(self, coordinator, apns):
        assert await coordinator.on_pass_updated("TO-1") == {"success": 0, "failed": 0}
        assert apns.pushed == []
