import logging

from fastapi import APIRouter, Body, Depends

from walletpass.api.deps import get_loyalty_service, get_pass_coordinator
from walletpass.core.errors import NotFoundError, RenderError
from walletpass.domain.schemas import (
    BusinessCreate,
    CustomerAccountCreate,
    LoyaltyCardIssue,
    LoyaltyMessagePush,
    LoyaltyProgramCreate,
)
from walletpass.services.loyalty import LoyaltyService
from walletpass.services.wallets import PassCoordinator
from walletpass.services.wallets.google import GoogleRenderResult

logger = logging.getLogger(__name__)

router = APIRouter()


async def _render_google(coordinator: PassCoordinator, pass_type: str, record) -> GoogleRenderResult | None:
    """Google render after a committed change; a failure leaves the stored record as is."""
    try:
        return await coordinator.get_google_object(pass_type, record)
    except RenderError as e:
        logger.warning(f"[Loyalty] Google Wallet render failed for {record.id}: {e.message}")
        return None


@router.post("/businesses", status_code=201)
async def create_business(data: BusinessCreate, loyalty: LoyaltyService = Depends(get_loyalty_service)):
    business = await loyalty.create_business(data)
    return business.to_wire()


@router.get("/businesses/{business_id}")
def get_business(business_id: str, loyalty: LoyaltyService = Depends(get_loyalty_service)):
    business = loyalty.get_business(business_id)
    if business is None:
        raise NotFoundError(f"Business not found: {business_id}")
    return business.to_wire()


@router.post("/customers", status_code=201)
async def create_customer(
    data: CustomerAccountCreate,
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    customer = await loyalty.create_customer_account(data)
    return customer.to_wire()


@router.get("/customers/{customer_id}")
def get_customer(customer_id: str, loyalty: LoyaltyService = Depends(get_loyalty_service)):
    customer = loyalty.get_customer_account(customer_id)
    if customer is None:
        raise NotFoundError(f"Customer not found: {customer_id}")
    return customer.to_wire()


@router.post("/programs", status_code=201)
async def create_program(
    data: LoyaltyProgramCreate,
    loyalty: LoyaltyService = Depends(get_loyalty_service),
    coordinator: PassCoordinator = Depends(get_pass_coordinator),
):
    """Create the business's loyalty program and publish its Google loyalty class."""
    program = await loyalty.create_loyalty_program(data)
    rendered = await _render_google(coordinator, "parent", program)
    return {"program": program.to_wire(), "googleClass": rendered.to_dict() if rendered else None}


@router.post("/cards", status_code=201)
async def issue_card(
    data: LoyaltyCardIssue,
    loyalty: LoyaltyService = Depends(get_loyalty_service),
    coordinator: PassCoordinator = Depends(get_pass_coordinator),
):
    """Issue a loyalty card and return it with its Google Wallet save URL."""
    card = await loyalty.issue_loyalty_card(data)
    rendered = await _render_google(coordinator, "child", card)
    return {
        "card": card.to_wire(),
        "appleDownloadUrl": f"/passes/{card.id}/pkpass",
        "googleSaveUrl": rendered.save_url if rendered else None,
        "googleUpsert": rendered.upsert.to_dict() if rendered else None,
    }


@router.patch("/cards/{card_id}/points")
async def update_points(
    card_id: str,
    body: dict = Body(...),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
    coordinator: PassCoordinator = Depends(get_pass_coordinator),
):
    """Set (`setPoints`) or adjust (`delta`) a card's points."""
    card = await loyalty.update_loyalty_points({**body, "cardId": card_id})
    await coordinator.on_pass_updated(card_id)
    await _render_google(coordinator, "child", card)
    return card.to_wire()


@router.post("/messages")
async def push_message(data: LoyaltyMessagePush, loyalty: LoyaltyService = Depends(get_loyalty_service)):
    return await loyalty.push_loyalty_message(data)
