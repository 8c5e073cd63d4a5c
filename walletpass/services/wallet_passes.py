"""
Multi-type wallet passes.

Boarding passes, event tickets, store cards, coupons, gift cards, transit
tickets and generic passes rendered straight from their typed input, without
the parent/child lifecycle of profile passes.
"""

import asyncio
import logging
from typing import Any, Optional

import pydantic
from pydantic import TypeAdapter

from walletpass.core.errors import (
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    RenderError,
    ValidationError,
    WalletPassError,
)
from walletpass.core.ids import dated_id, utc_now_iso
from walletpass.domain.wallet_pass import (
    INACTIVE_STATUSES,
    KIND_ID_PREFIXES,
    KIND_STATUS_FLOWS,
    BoardingPassInput,
    CouponInput,
    EventTicketInput,
    GenericPassInput,
    GiftCardInput,
    PassGenerationOptions,
    PassKind,
    StoreCardInput,
    TransitPassInput,
    WalletPassInput,
    WalletPassRecord,
    WalletPassResult,
)
from walletpass.repositories.pass_store import PassStore
from walletpass.services.lifecycle import seal, validate_input
from walletpass.services.wallets.coordinator import PassCoordinator
from walletpass.services.wallets.google_types import GOOGLE_TYPES, money

logger = logging.getLogger(__name__)

ID_SUFFIX_LENGTH = 6

_input_adapter = TypeAdapter(WalletPassInput)


def parse_wallet_input(data: Any) -> WalletPassInput:
    if isinstance(data, pydantic.BaseModel):
        data = data.model_dump(by_alias=True)
    try:
        return _input_adapter.validate_python(data)
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e


def barcode_value(pass_id: str, wallet_input: WalletPassInput) -> str | None:
    """Value encoded in the pass barcode for each kind."""
    kind = PassKind(wallet_input.pass_type)
    if kind is PassKind.BOARDING_PASS:
        return wallet_input.confirmation_code
    if kind is PassKind.EVENT_TICKET:
        return wallet_input.ticket_number
    if kind is PassKind.STORE_CARD:
        return wallet_input.member_id
    if kind is PassKind.COUPON:
        return wallet_input.promo_code or pass_id
    if kind is PassKind.GIFT_CARD:
        return wallet_input.card_number
    if kind is PassKind.TRANSIT:
        return wallet_input.ticket_number or pass_id
    return wallet_input.barcode_value


class WalletPassService:
    def __init__(self, store: PassStore, coordinator: PassCoordinator):
        self.store = store
        self.coordinator = coordinator

    # ===== Create =====

    async def create_wallet_pass(
        self,
        wallet_input: WalletPassInput | dict,
        options: PassGenerationOptions | dict | None = None,
    ) -> WalletPassResult:
        """
        Store a new pass and render it for the requested platforms.

        Render failures are reported per platform in `errors`; the pass
        is stored either way.
        """
        wallet_input = parse_wallet_input(wallet_input)
        options = validate_input(PassGenerationOptions, options or {})
        kind = PassKind(wallet_input.pass_type)

        pass_id = dated_id(KIND_ID_PREFIXES[kind], ID_SUFFIX_LENGTH, compact=True)
        while self.store.has_wallet_pass(pass_id):
            pass_id = dated_id(KIND_ID_PREFIXES[kind], ID_SUFFIX_LENGTH, compact=True)

        now = utc_now_iso()
        record = WalletPassRecord(
            id=pass_id,
            pass_type=kind,
            status=KIND_STATUS_FLOWS[kind][0],
            input=wallet_input,
            created_at=now,
            updated_at=now,
            barcode_value=barcode_value(pass_id, wallet_input),
        )
        seal(record)
        self.store.add_wallet_pass(record)
        logger.info(f"[WalletPass] Created {kind.value} {pass_id}")

        return await self._render(pass_id, options)

    async def create_boarding_pass(self, data: BoardingPassInput | dict, options=None) -> WalletPassResult:
        return await self.create_wallet_pass(self._with_kind(data, PassKind.BOARDING_PASS), options)

    async def create_event_ticket(self, data: EventTicketInput | dict, options=None) -> WalletPassResult:
        return await self.create_wallet_pass(self._with_kind(data, PassKind.EVENT_TICKET), options)

    async def create_store_card(self, data: StoreCardInput | dict, options=None) -> WalletPassResult:
        return await self.create_wallet_pass(self._with_kind(data, PassKind.STORE_CARD), options)

    async def create_coupon(self, data: CouponInput | dict, options=None) -> WalletPassResult:
        return await self.create_wallet_pass(self._with_kind(data, PassKind.COUPON), options)

    async def create_gift_card(self, data: GiftCardInput | dict, options=None) -> WalletPassResult:
        return await self.create_wallet_pass(self._with_kind(data, PassKind.GIFT_CARD), options)

    async def create_transit_pass(self, data: TransitPassInput | dict, options=None) -> WalletPassResult:
        return await self.create_wallet_pass(self._with_kind(data, PassKind.TRANSIT), options)

    async def create_generic_pass(self, data: GenericPassInput | dict, options=None) -> WalletPassResult:
        return await self.create_wallet_pass(self._with_kind(data, PassKind.GENERIC), options)

    @staticmethod
    def _with_kind(data: Any, kind: PassKind) -> dict[str, Any]:
        if isinstance(data, pydantic.BaseModel):
            data = data.model_dump(by_alias=True)
        return {**data, "passType": kind.value}

    # ===== Read =====

    def get_wallet_pass(self, pass_id: str) -> WalletPassRecord | None:
        record = self.store.get_wallet_pass(pass_id)
        return record.model_copy(deep=True) if record else None

    def _require(self, pass_id: str) -> WalletPassRecord:
        record = self.store.get_wallet_pass(pass_id)
        if record is None:
            raise NotFoundError(f"Pass not found: {pass_id}")
        return record

    def list_wallet_passes(
        self,
        pass_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[WalletPassRecord]:
        passes = self.store.list_wallet_passes()
        if pass_type:
            passes = [p for p in passes if p.pass_type.value == pass_type]
        if status:
            passes = [p for p in passes if p.status == status]
        return [p.model_copy(deep=True) for p in passes]

    # ===== Update =====

    def _commit(self, record: WalletPassRecord, **changes: Any) -> WalletPassRecord:
        """Caller holds `store.lock(record.id)`."""
        updated = record.model_copy(deep=True, update=changes)
        updated.updated_at = utc_now_iso()
        seal(updated)
        return self.store.save_wallet_pass(updated)

    async def _mirror_to_google(self, record: WalletPassRecord, updates: dict[str, Any]) -> None:
        """Best-effort update of the pass's Google object."""
        if not record.google_object_id:
            return
        try:
            await self.coordinator.google.update_object(
                record.google_object_id, GOOGLE_TYPES[record.pass_type], updates
            )
        except RenderError as e:
            logger.warning(f"[WalletPass] Failed to update Google pass {record.id}: {e.message}")

    async def update_wallet_pass_status(self, pass_id: str, status: str) -> WalletPassRecord:
        async with self.store.lock(pass_id):
            record = self._require(pass_id)
            if status not in KIND_STATUS_FLOWS[record.pass_type]:
                raise InvalidTransitionError(
                    f"Invalid status '{status}' for pass type '{record.pass_type.value}'"
                )
            updated = self._commit(record, status=status)

        state = "INACTIVE" if status in INACTIVE_STATUSES else "ACTIVE"
        await self._mirror_to_google(updated, {"state": state})
        await self.coordinator.on_pass_updated(pass_id)

        logger.info(f"[WalletPass] {pass_id}: {record.status} -> {status}")
        return updated.model_copy(deep=True)

    async def update_loyalty_balance(self, pass_id: str, points: int) -> WalletPassRecord:
        if points < 0:
            raise InvalidArgumentError(f"Points cannot be negative: {points}")

        async with self.store.lock(pass_id):
            record = self._require(pass_id)
            if record.pass_type is not PassKind.STORE_CARD:
                raise InvalidArgumentError(f"Pass {pass_id} is not a loyalty/store card")
            new_input = record.input.model_copy(update={"points": points})
            updated = self._commit(record, input=new_input)

        await self._mirror_to_google(updated, {
            "loyaltyPoints": {
                "label": new_input.points_label or "Points",
                "balance": {"int": points},
            }
        })
        await self.coordinator.on_pass_updated(pass_id)
        return updated.model_copy(deep=True)

    async def update_gift_card_balance(self, pass_id: str, balance: float) -> WalletPassRecord:
        """Set a gift card balance; a balance of zero or less depletes the card."""
        async with self.store.lock(pass_id):
            record = self._require(pass_id)
            if record.pass_type is not PassKind.GIFT_CARD:
                raise InvalidArgumentError(f"Pass {pass_id} is not a gift card")
            new_input = record.input.model_copy(update={"balance": max(balance, 0)})
            changes: dict[str, Any] = {"input": new_input}
            if balance <= 0:
                changes["status"] = "DEPLETED"
            updated = self._commit(record, **changes)

        await self._mirror_to_google(updated, {
            "balance": money(new_input.balance, new_input.currency),
            "balanceUpdateTime": {"date": updated.updated_at},
        })
        await self.coordinator.on_pass_updated(pass_id)
        return updated.model_copy(deep=True)

    async def send_pass_notification(self, pass_id: str, header: str, body: str) -> dict[str, Any]:
        """Send a message to the pass holder through Google Wallet."""
        record = self._require(pass_id)
        if not record.google_object_id:
            raise InvalidArgumentError(f"Pass {pass_id} has no Google Wallet object")

        result = await self.coordinator.google.add_message(
            record.google_object_id,
            GOOGLE_TYPES[record.pass_type],
            header=header,
            body=body,
        )
        logger.info(f"[WalletPass] Notification sent to {pass_id}")
        return result

    async def regenerate_pass(
        self,
        pass_id: str,
        options: PassGenerationOptions | dict | None = None,
    ) -> WalletPassResult:
        """Re-render a stored pass, reusing its Google class."""
        options = validate_input(PassGenerationOptions, options or {})
        record = self._require(pass_id)
        if not options.google_class_id and record.google_class_id:
            options = options.model_copy(update={"google_class_id": record.google_class_id})
        return await self._render(pass_id, options)

    # ===== Render =====

    async def _render(self, pass_id: str, options: PassGenerationOptions) -> WalletPassResult:
        snapshot = self._require(pass_id).model_copy(deep=True)
        result = WalletPassResult(pass_data=snapshot)
        changes: dict[str, Any] = {}

        async def render_apple() -> None:
            apple = self.coordinator.apple
            try:
                result.apple_pkpass = await asyncio.to_thread(apple.generate_pass, pass_id, snapshot.input)
            except WalletPassError as e:
                logger.warning(f"[WalletPass] Failed to generate Apple pass {pass_id}: {e.message}")
                result.errors["apple"] = e.message
                return
            changes["apple_pass_type_id"] = apple.pass_type_id

        async def render_google() -> None:
            try:
                rendered = await self.coordinator.google.generate_pass(
                    pass_id,
                    snapshot.input,
                    create_class=options.create_class,
                    class_id=options.google_class_id,
                )
            except WalletPassError as e:
                logger.warning(f"[WalletPass] Failed to generate Google pass {pass_id}: {e.message}")
                result.errors["google"] = e.message
                return
            result.google_object = rendered.object
            result.google_save_url = rendered.save_url
            changes["google_class_id"] = rendered.class_id
            changes["google_object_id"] = rendered.object["id"]

        tasks = []
        if "apple" in options.platforms:
            tasks.append(render_apple())
        if "google" in options.platforms:
            tasks.append(render_google())
        await asyncio.gather(*tasks)

        if changes:
            async with self.store.lock(pass_id):
                current = self._require(pass_id)
                # Re-rendering with unchanged platform ids is a read
                if any(getattr(current, key) != value for key, value in changes.items()):
                    current = self._commit(current, **changes)
                result.pass_data = current.model_copy(deep=True)
        return result
