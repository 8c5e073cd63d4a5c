"""
Loyalty domain layer.

Businesses own one loyalty program (a loyalty parent pass); customers of a
business get loyalty cards (loyalty child passes) whose barcode carries
their member id.
"""

import logging
from typing import Any, Callable

from walletpass.core.errors import InvalidArgumentError, NotFoundError, ValidationError
from walletpass.core.ids import dated_id, random_suffix, utc_now_iso
from walletpass.core.security import generate_auth_token
from walletpass.domain.schemas import (
    Business,
    BusinessCreate,
    ChildPass,
    CustomerAccount,
    CustomerAccountCreate,
    LoyaltyCardIssue,
    LoyaltyMessagePush,
    LoyaltyPointsUpdate,
    LoyaltyProgramCreate,
    ParentPass,
)
from walletpass.services.lifecycle import PassLifecycleEngine, validate_input
from walletpass.services.templates import merge_shallow
from walletpass.services.wallets.google import GoogleWalletAdapter, create_google_wallet_adapter

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"


def _unique(build: Callable[[], str], exists: Callable[[str], Any]) -> str:
    value = build()
    while exists(value):
        value = build()
    return value


def generate_member_id(business_id: str) -> str:
    """Member id encoded in the card barcode, e.g. `SBC-K3ZQ7A-8F2KQ0ZD`."""
    biz_suffix = business_id.rsplit("-", 1)[-1] or "BIZ"
    return f"SBC-{biz_suffix}-{random_suffix(8)}"


class LoyaltyService:
    def __init__(self, engine: PassLifecycleEngine, google: GoogleWalletAdapter | None = None):
        self.engine = engine
        self.store = engine.store
        self._google = google

    @property
    def google(self) -> GoogleWalletAdapter:
        """Lazy-initialize Google Wallet adapter."""
        if self._google is None:
            self._google = create_google_wallet_adapter()
        return self._google

    # ===== Businesses & customers =====

    async def create_business(self, data: BusinessCreate | dict) -> Business:
        validated = validate_input(BusinessCreate, data)
        business_id = validated.id or _unique(lambda: dated_id("BIZ", 6), self.store.get_business)

        now = utc_now_iso()
        business = Business(
            id=business_id,
            name=validated.name,
            program_name=validated.program_name or f"{validated.name} Loyalty",
            points_label=validated.points_label or "Points",
            wallet=validated.wallet,
            created_at=now,
            updated_at=now,
        )
        self.store.add_business(business)
        logger.info(f"[Loyalty] Created business {business.id} ({business.name})")
        return business.model_copy(deep=True)

    def get_business(self, business_id: str) -> Business | None:
        business = self.store.get_business(business_id)
        return business.model_copy(deep=True) if business else None

    def _require_business(self, business_id: str) -> Business:
        business = self.store.get_business(business_id)
        if business is None:
            raise NotFoundError(f"Business not found: {business_id}")
        return business

    async def create_customer_account(self, data: CustomerAccountCreate | dict) -> CustomerAccount:
        validated = validate_input(CustomerAccountCreate, data)
        business = self._require_business(validated.business_id)

        customer_id = validated.id or _unique(lambda: dated_id("CUS", 6), self.store.has_customer)
        member_id = validated.member_id or _unique(
            lambda: generate_member_id(business.id), self.store.member_id_exists
        )

        now = utc_now_iso()
        customer = CustomerAccount(
            id=customer_id,
            business_id=business.id,
            full_name=validated.full_name,
            member_id=member_id,
            created_at=now,
            updated_at=now,
        )
        self.store.add_customer(customer)
        logger.info(f"[Loyalty] Created customer {customer.id} for {business.id}")
        return customer.model_copy(deep=True)

    def get_customer_account(self, customer_id: str) -> CustomerAccount | None:
        customer = self.store.get_customer(customer_id)
        return customer.model_copy(deep=True) if customer else None

    # ===== Program & cards =====

    async def create_loyalty_program(self, data: LoyaltyProgramCreate | dict) -> ParentPass:
        """
        Create the loyalty program (parent pass) of a business.

        Wallet blocks are layered business theming < caller metadata < the
        named program fields, one key at a time.
        """
        validated = validate_input(LoyaltyProgramCreate, data)
        business = self._require_business(validated.business_id)
        business_wallet = business.wallet or {}
        caller_meta = validated.metadata

        locations = [loc.model_dump(exclude_none=True, by_alias=True) for loc in validated.locations or []]

        google_wallet = merge_shallow(
            {"issuerName": business.name},
            business_wallet.get("googleWallet"),
            caller_meta.get("googleWallet"),
            {
                k: v for k, v in {
                    "locations": locations,
                    "countryCode": validated.country_code,
                    "homepageUrl": validated.homepage_url,
                }.items() if v
            },
        )
        apple_wallet = merge_shallow(
            business_wallet.get("appleWallet"),
            caller_meta.get("appleWallet"),
            {k: v for k, v in {"relevantText": validated.relevant_text, "locations": locations}.items() if v},
        )

        metadata = {
            **caller_meta,
            "businessId": business.id,
            "businessName": business.name,
            "pointsLabel": business.points_label,
            "googleWallet": google_wallet,
            "appleWallet": apple_wallet,
        }

        program = await self.engine.create_parent_schedule({
            "id": validated.program_id,
            "profile": "loyalty",
            "programName": validated.program_name or business.program_name,
            "site": validated.site,
            "metadata": metadata,
        })

        async with self.store.lock(business.id):
            updated = business.model_copy(
                update={"loyalty_program_id": program.id, "updated_at": utc_now_iso()}
            )
            self.store.save_business(updated)

        logger.info(f"[Loyalty] Program {program.id} set for business {business.id}")
        return program

    async def issue_loyalty_card(self, data: LoyaltyCardIssue | dict) -> ChildPass:
        validated = validate_input(LoyaltyCardIssue, data)
        business = self._require_business(validated.business_id)
        if not business.loyalty_program_id:
            raise ValidationError(f"Business has no loyalty program yet: {business.id}")

        customer = self.store.get_customer(validated.customer_id)
        if customer is None or customer.business_id != business.id:
            raise NotFoundError(f"Customer not found for business: {validated.customer_id}")

        program = self.store.get_pass(business.loyalty_program_id)
        program_meta = program.metadata if program is not None and program.type == "parent" else {}
        caller_meta = validated.metadata

        apple_wallet = merge_shallow(program_meta.get("appleWallet"), caller_meta.get("appleWallet"))
        apple_wallet.setdefault("authenticationToken", generate_auth_token())

        metadata = {
            **caller_meta,
            "businessName": business.name,
            "pointsLabel": business.points_label,
            "googleWallet": merge_shallow(program_meta.get("googleWallet"), caller_meta.get("googleWallet")),
            "appleWallet": apple_wallet,
        }

        card = await self.engine.create_child_ticket({
            "id": validated.card_id,
            "profile": "loyalty",
            "parentId": business.loyalty_program_id,
            "businessId": business.id,
            "customerId": customer.id,
            "customerName": customer.full_name,
            "memberId": customer.member_id,
            "points": validated.initial_points,
            "metadata": metadata,
        })

        # Cards always start ACTIVE regardless of the profile's first status
        card = await self.engine.mutate_pass(card.id, status=ACTIVE)
        logger.info(f"[Loyalty] Issued card {card.id} to {customer.id} ({customer.member_id})")
        return card

    async def update_loyalty_points(self, data: LoyaltyPointsUpdate | dict) -> ChildPass:
        """Set or adjust a card's points. Deltas never take the balance below zero."""
        validated = validate_input(LoyaltyPointsUpdate, data)

        async with self.store.lock(validated.card_id):
            card = self.store.get_pass(validated.card_id)
            if card is None:
                raise NotFoundError(f"Pass not found: {validated.card_id}")
            if card.type != "child" or card.profile != "loyalty":
                raise InvalidArgumentError(f"Not a loyalty card: {validated.card_id}")

            current = card.points or 0
            if validated.set_points is not None:
                next_points = validated.set_points
            else:
                next_points = max(0, current + validated.delta)

            updated = self.engine.commit(card, points=next_points)

        logger.info(f"[Loyalty] {card.id} points {current} -> {next_points}")
        return updated.model_copy(deep=True)

    async def push_loyalty_message(self, data: LoyaltyMessagePush | dict) -> dict[str, Any]:
        """Send a Google Wallet message to a card's loyalty object."""
        validated = validate_input(LoyaltyMessagePush, data)

        if validated.object_id:
            object_id = validated.object_id
        else:
            card = self.engine.require_pass(validated.card_id)
            if card.type != "child" or card.profile != "loyalty":
                raise InvalidArgumentError(f"Not a loyalty card: {card.id}")
            object_id = f"{self.google.issuer_id}.{card.id}"

        result = await self.google.add_message(
            object_id,
            "loyalty",
            header=validated.header,
            body=validated.body,
            message_type=validated.message_type,
        )
        return {"objectId": object_id, "result": result}
