import io
import json
import re
import zipfile

import httpx
import pytest

from walletpass.core.errors import (
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    RenderError,
    ValidationError,
)
from walletpass.services.wallet_passes import WalletPassService, barcode_value, parse_wallet_input
from walletpass.services.wallets.apple import AppleWalletAdapter, PassSigner
from walletpass.services.wallets.coordinator import PassCoordinator
from walletpass.services.wallets.google import GoogleWalletAdapter

ISSUER_ID = "3388000000012345"

BOARDING_PASS = {
    "passType": "boardingPass",
    "passengerName": "Ana Torres",
    "carrier": "Aeromexico",
    "carrierCode": "AM",
    "flightNumber": "AM500",
    "originCode": "MEX",
    "destinationCode": "CUN",
    "departureDate": "2026-11-02",
    "departureTime": "07:45",
    "seat": "14C",
    "gate": "B12",
    "confirmationCode": "QX7P2L",
}
EVENT_TICKET = {
    "passType": "eventTicket",
    "eventName": "Jazz Night",
    "venueName": "Teatro Metropolitan",
    "eventDate": "2026-12-05",
    "eventTime": "20:00",
    "ticketNumber": "TKT-0042",
    "section": "A",
    "seat": "12",
}
STORE_CARD = {
    "passType": "storeCard",
    "programName": "Cafe Rewards",
    "memberName": "Alice",
    "memberId": "CR-778812",
    "points": 120,
    "pointsLabel": "Stars",
}
COUPON = {
    "passType": "coupon",
    "offerTitle": "Autumn Sale",
    "discount": "20%",
    "storeName": "Libreria Centro",
    "promoCode": "AUTUMN20",
    "validUntil": "2026-11-30",
}
GIFT_CARD = {
    "passType": "giftCard",
    "cardNumber": "6006491234567890",
    "pin": "4321",
    "balance": 50.0,
    "currency": "USD",
    "merchantName": "Bookshop",
}
TRANSIT = {
    "passType": "transit",
    "transitType": "RAIL",
    "passengerName": "Ana Torres",
    "ticketNumber": "TR-99812",
    "ticketLegs": [
        {
            "originName": "Buenavista",
            "destinationName": "Cuautitlan",
            "departureDateTime": "2026-11-02T08:15:00",
        }
    ],
}
GENERIC = {
    "passType": "generic",
    "cardTitle": "Gym Access",
    "header": "Alice",
    "barcodeValue": "GYM-0001",
    "fields": [{"key": "plan", "label": "Plan", "value": "Annual"}],
}

KINDS = [
    (BOARDING_PASS, "BP", "SCHEDULED", "QX7P2L", "flight"),
    (EVENT_TICKET, "ET", "VALID", "TKT-0042", "eventTicket"),
    (STORE_CARD, "SC", "ACTIVE", "CR-778812", "loyalty"),
    (COUPON, "CP", "ACTIVE", "AUTUMN20", "offer"),
    (GIFT_CARD, "GC", "ACTIVE", "6006491234567890", "giftCard"),
    (TRANSIT, "TR", "ACTIVE", "TR-99812", "transit"),
    (GENERIC, "GN", "ACTIVE", "GYM-0001", "generic"),
]


class TestCreate:
    """Tests for creating each pass kind."""

    @pytest.mark.parametrize("data,prefix,status,barcode,google_type", KINDS)
    async def test_create_each_kind(self, wallet_passes, data, prefix, status, barcode, google_type):
        result = await wallet_passes.create_wallet_pass(data)
        record = result.pass_data

        assert re.fullmatch(rf"{prefix}-\d{{8}}-[0-9A-Z]{{6}}", record.id)
        assert record.status == status
        assert record.barcode_value == barcode
        assert record.hash.startswith("hash_")
        assert result.errors == {}

        with zipfile.ZipFile(io.BytesIO(result.apple_pkpass)) as zf:
            pass_json = json.loads(zf.read("pass.json"))
        assert pass_json["serialNumber"] == record.id

        assert result.google_object["id"] == f"{ISSUER_ID}.{record.id}"
        assert result.google_save_url == f"{GoogleWalletAdapter.SAVE_URL_BASE}/{ISSUER_ID}.{record.id}"
        assert re.fullmatch(rf"{ISSUER_ID}\.{google_type}_class_\d+", record.google_class_id)
        assert record.google_object_id == f"{ISSUER_ID}.{record.id}"
        assert record.apple_pass_type_id == "pass.com.example.walletpass"

        stored = wallet_passes.get_wallet_pass(record.id)
        assert stored.google_object_id == record.google_object_id

    async def test_typed_wrapper_sets_kind(self, wallet_passes):
        data = {k: v for k, v in COUPON.items() if k != "passType"}
        result = await wallet_passes.create_coupon(data)

        assert result.pass_data.pass_type.value == "coupon"
        assert result.pass_data.id.startswith("CP-")

    async def test_invalid_input(self, wallet_passes, store):
        data = {k: v for k, v in BOARDING_PASS.items() if k != "confirmationCode"}

        with pytest.raises(ValidationError):
            await wallet_passes.create_wallet_pass(data)
        assert store.list_wallet_passes() == []

    async def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            parse_wallet_input({"passType": "hotelKey", "roomNumber": "101"})

    async def test_google_only(self, wallet_passes):
        result = await wallet_passes.create_wallet_pass(GENERIC, {"platforms": ["google"]})

        assert result.apple_pkpass is None
        assert result.google_object is not None
        assert result.pass_data.apple_pass_type_id is None

    async def test_explicit_class_id(self, wallet_passes):
        result = await wallet_passes.create_wallet_pass(
            EVENT_TICKET, {"googleClassId": f"{ISSUER_ID}.jazz_night"}
        )
        assert result.google_object["classId"] == f"{ISSUER_ID}.jazz_night"
        assert result.pass_data.google_class_id == f"{ISSUER_ID}.jazz_night"

    async def test_apple_failure_keeps_google(self, store, google_adapter, apns, devices, tmp_path):
        broken = AppleWalletAdapter(
            team_id="TEAM123456",
            pass_type_id="pass.com.example.walletpass",
            signer=PassSigner(cert_path=str(tmp_path / "missing.pem"), wwdr_path=str(tmp_path / "wwdr.pem")),
        )
        service = WalletPassService(
            store, PassCoordinator(apple=broken, google=google_adapter, apns=apns, devices=devices)
        )

        result = await service.create_wallet_pass(GIFT_CARD)

        assert result.apple_pkpass is None
        assert "Certificate files not found" in result.errors["apple"]
        assert result.google_save_url
        assert store.has_wallet_pass(result.pass_data.id)

    def test_barcode_fallbacks(self):
        coupon = parse_wallet_input({k: v for k, v in COUPON.items() if k != "promoCode"})
        transit = parse_wallet_input({k: v for k, v in TRANSIT.items() if k != "ticketNumber"})

        assert barcode_value("CP-1", coupon) == "CP-1"
        assert barcode_value("TR-1", transit) == "TR-1"


class TestApplePassJson:
    """Tests for pass.json of multi-type passes."""

    def test_boarding_pass(self, apple_adapter):
        pass_json = apple_adapter.build_wallet_pass_json("BP-1", parse_wallet_input(BOARDING_PASS))
        style = pass_json["boardingPass"]

        assert style["transitType"] == "PKTransitTypeAir"
        assert [f["value"] for f in style["primaryFields"]] == ["MEX", "CUN"]
        assert pass_json["barcodes"][0]["message"] == "QX7P2L"
        assert pass_json["serialNumber"] == "BP-1"

    def test_gift_card(self, apple_adapter):
        pass_json = apple_adapter.build_wallet_pass_json("GC-1", parse_wallet_input(GIFT_CARD))
        style = pass_json["storeCard"]

        assert style["headerFields"][0]["value"] == "$50.00"
        assert style["primaryFields"][0]["value"] == "****7890"
        assert pass_json["barcodes"][0]["format"] == "PKBarcodeFormatCode128"

    def test_transit(self, apple_adapter):
        pass_json = apple_adapter.build_wallet_pass_json("TR-1", parse_wallet_input(TRANSIT))

        assert pass_json["boardingPass"]["transitType"] == "PKTransitTypeTrain"
        assert pass_json["description"] == "Buenavista → Cuautitlan"

    def test_web_service_from_metadata(self, apple_adapter):
        data = {**STORE_CARD, "metadata": {"appleWallet": {"authenticationToken": "tok-123"}}}
        pass_json = apple_adapter.build_wallet_pass_json("SC-1", parse_wallet_input(data))

        assert pass_json["authenticationToken"] == "tok-123"
        assert pass_json["webServiceURL"] == "https://wallet.example.com/wallet"


class TestGooglePayloads:
    """Tests for Google objects of multi-type passes."""

    async def test_flight_object(self, google_adapter):
        rendered = await google_adapter.generate_pass("BP-1", parse_wallet_input(BOARDING_PASS))
        obj = rendered.object

        assert rendered.resource == "flightObject"
        assert obj["passengerName"] == "Ana Torres"
        assert obj["reservationInfo"]["confirmationCode"] == "QX7P2L"
        assert obj["boardingAndSeatingInfo"]["seatNumber"] == "14C"

    async def test_gift_card_object(self, google_adapter):
        rendered = await google_adapter.generate_pass("GC-1", parse_wallet_input(GIFT_CARD))

        assert rendered.object["balance"] == {"micros": 50_000_000, "currencyCode": "USD"}
        assert rendered.object["barcode"] == {"type": "CODE_128", "value": "6006491234567890"}

    async def test_generic_object(self, google_adapter):
        rendered = await google_adapter.generate_pass("GN-1", parse_wallet_input(GENERIC))
        obj = rendered.object

        assert obj["cardTitle"]["defaultValue"]["value"] == "Gym Access"
        assert obj["header"]["defaultValue"]["value"] == "Alice"
        assert obj["textModulesData"] == [{"id": "plan", "header": "Plan", "body": "Annual"}]


class TestUpdates:
    """Tests for status and balance updates."""

    async def test_status_update(self, wallet_passes):
        created = (await wallet_passes.create_wallet_pass(EVENT_TICKET)).pass_data
        updated = await wallet_passes.update_wallet_pass_status(created.id, "USED")

        assert updated.status == "USED"
        assert updated.hash != created.hash

    async def test_invalid_status(self, wallet_passes):
        created = (await wallet_passes.create_wallet_pass(EVENT_TICKET)).pass_data

        with pytest.raises(InvalidTransitionError):
            await wallet_passes.update_wallet_pass_status(created.id, "BOARDING")
        assert wallet_passes.get_wallet_pass(created.id).status == "VALID"

    async def test_status_pushes_to_devices(self, wallet_passes, devices, apns):
        created = (await wallet_passes.create_wallet_pass(EVENT_TICKET)).pass_data
        devices.register("device-1", "pass.com.example.walletpass", created.id, "push-token-1")

        await wallet_passes.update_wallet_pass_status(created.id, "USED")

        assert apns.pushed == [["push-token-1"]]

    async def test_unknown_pass(self, wallet_passes):
        with pytest.raises(NotFoundError):
            await wallet_passes.update_wallet_pass_status("ET-NOPE", "USED")

    async def test_store_card_points(self, wallet_passes):
        created = (await wallet_passes.create_wallet_pass(STORE_CARD)).pass_data
        updated = await wallet_passes.update_loyalty_balance(created.id, 300)

        assert updated.input.points == 300

    async def test_store_card_points_validation(self, wallet_passes):
        card = (await wallet_passes.create_wallet_pass(STORE_CARD)).pass_data
        coupon = (await wallet_passes.create_wallet_pass(COUPON)).pass_data

        with pytest.raises(InvalidArgumentError):
            await wallet_passes.update_loyalty_balance(card.id, -1)
        with pytest.raises(InvalidArgumentError):
            await wallet_passes.update_loyalty_balance(coupon.id, 10)

    @pytest.mark.parametrize(
        "balance,expected_balance,expected_status",
        [(25.5, 25.5, "ACTIVE"), (0, 0, "DEPLETED"), (-5, 0, "DEPLETED")],
    )
    async def test_gift_card_balance(self, wallet_passes, balance, expected_balance, expected_status):
        card = (await wallet_passes.create_wallet_pass(GIFT_CARD)).pass_data
        updated = await wallet_passes.update_gift_card_balance(card.id, balance)

        assert updated.input.balance == expected_balance
        assert updated.status == expected_status

    async def test_gift_card_balance_on_other_kind(self, wallet_passes):
        card = (await wallet_passes.create_wallet_pass(STORE_CARD)).pass_data

        with pytest.raises(InvalidArgumentError):
            await wallet_passes.update_gift_card_balance(card.id, 10)

    async def test_status_mirrored_to_google(self, store, apple_adapter, google_credentials, apns, devices):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "GET":
                return httpx.Response(200, json={"id": "existing", "state": "ACTIVE"})
            return httpx.Response(200, json=json.loads(request.content or b"{}"))

        google = GoogleWalletAdapter(
            issuer_id=ISSUER_ID,
            credentials=google_credentials,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        service = WalletPassService(
            store, PassCoordinator(apple=apple_adapter, google=google, apns=apns, devices=devices)
        )
        created = (await service.create_wallet_pass(COUPON, {"createClass": True})).pass_data

        assert [(r.method, r.url.path.rsplit("/", 1)[-1]) for r in requests] == [
            ("POST", "offerClass"),
            ("POST", "offerObject"),
        ]

        await service.update_wallet_pass_status(created.id, "REDEEMED")

        put = requests[-1]
        assert put.method == "PUT"
        assert put.url.path.endswith(f"offerObject/{ISSUER_ID}.{created.id}")
        assert json.loads(put.content) == {"id": "existing", "state": "INACTIVE"}


class TestNotificationsAndQueries:
    """Tests for notifications, regeneration and listing."""

    async def test_notification_needs_google_object(self, wallet_passes):
        created = (await wallet_passes.create_wallet_pass(COUPON, {"platforms": ["apple"]})).pass_data

        with pytest.raises(InvalidArgumentError):
            await wallet_passes.send_pass_notification(created.id, "Last day", "Sale ends tonight")

    async def test_notification_without_credentials(self, wallet_passes):
        created = (await wallet_passes.create_wallet_pass(COUPON)).pass_data

        with pytest.raises(RenderError):
            await wallet_passes.send_pass_notification(created.id, "Last day", "Sale ends tonight")

    async def test_regenerate_reuses_class(self, wallet_passes):
        created = (await wallet_passes.create_wallet_pass(TRANSIT)).pass_data
        regenerated = await wallet_passes.regenerate_pass(created.id)

        assert regenerated.pass_data.google_class_id == created.google_class_id
        assert regenerated.google_object["classId"] == created.google_class_id
        assert regenerated.apple_pkpass is not None

    async def test_regenerate_unknown(self, wallet_passes):
        with pytest.raises(NotFoundError):
            await wallet_passes.regenerate_pass("TR-NOPE")

    async def test_list_filters(self, wallet_passes):
        coupon = (await wallet_passes.create_wallet_pass(COUPON)).pass_data
        await wallet_passes.create_wallet_pass(GIFT_CARD)
        await wallet_passes.update_wallet_pass_status(coupon.id, "REDEEMED")

        assert len(wallet_passes.list_wallet_passes()) == 2
        assert [p.id for p in wallet_passes.list_wallet_passes(pass_type="coupon")] == [coupon.id]
        assert [p.id for p in wallet_passes.list_wallet_passes(status="REDEEMED")] == [coupon.id]
        assert wallet_passes.list_wallet_passes(pass_type="giftCard", status="REDEEMED") == []
