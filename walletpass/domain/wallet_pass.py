"""
Schemas for the multi-type wallet pass surface.

Each pass kind has its own input model; `WalletPassInput` is the
discriminated union over `passType`.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import EmailStr, Field, HttpUrl

from walletpass.domain.schemas import CamelModel


class PassKind(str, Enum):
    BOARDING_PASS = "boardingPass"
    EVENT_TICKET = "eventTicket"
    STORE_CARD = "storeCard"
    COUPON = "coupon"
    GIFT_CARD = "giftCard"
    TRANSIT = "transit"
    GENERIC = "generic"


# Status flow per kind; index 0 is the initial status
KIND_STATUS_FLOWS: dict[PassKind, tuple[str, ...]] = {
    PassKind.BOARDING_PASS: ("SCHEDULED", "BOARDING", "DEPARTED", "LANDED", "CANCELLED", "DELAYED"),
    PassKind.EVENT_TICKET: ("VALID", "USED", "EXPIRED", "CANCELLED"),
    PassKind.STORE_CARD: ("ACTIVE", "SUSPENDED"),
    PassKind.COUPON: ("ACTIVE", "REDEEMED", "EXPIRED"),
    PassKind.GIFT_CARD: ("ACTIVE", "DEPLETED", "EXPIRED"),
    PassKind.TRANSIT: ("ACTIVE", "EXPIRED", "USED"),
    PassKind.GENERIC: ("ACTIVE", "EXPIRED"),
}

KIND_ID_PREFIXES: dict[PassKind, str] = {
    PassKind.BOARDING_PASS: "BP",
    PassKind.EVENT_TICKET: "ET",
    PassKind.STORE_CARD: "SC",
    PassKind.COUPON: "CP",
    PassKind.GIFT_CARD: "GC",
    PassKind.TRANSIT: "TR",
    PassKind.GENERIC: "GN",
}

# Statuses that deactivate the Google object
INACTIVE_STATUSES = {"EXPIRED", "CANCELLED", "USED", "REDEEMED", "DEPLETED"}


class Location(CamelModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class PassField(CamelModel):
    key: str
    label: str
    value: str


class PassLink(CamelModel):
    url: HttpUrl
    label: str


class BoardingPassInput(CamelModel):
    pass_type: Literal["boardingPass"] = "boardingPass"
    transit_type: str = "AIR"
    passenger_name: str = Field(..., min_length=1)
    passenger_first_name: Optional[str] = None
    passenger_last_name: Optional[str] = None
    carrier: str = Field(..., min_length=1)
    carrier_code: Optional[str] = None
    flight_number: Optional[str] = None
    trip_number: Optional[str] = None
    origin_code: str = Field(..., min_length=2, max_length=4)
    origin_name: Optional[str] = None
    destination_code: str = Field(..., min_length=2, max_length=4)
    destination_name: Optional[str] = None
    departure_date: str
    departure_time: Optional[str] = None
    arrival_date: Optional[str] = None
    arrival_time: Optional[str] = None
    boarding_time: Optional[str] = None
    gate_closes: Optional[str] = None
    seat: Optional[str] = None
    seat_class: Optional[str] = None
    boarding_group: Optional[str] = None
    zone: Optional[str] = None
    departure_terminal: Optional[str] = None
    arrival_terminal: Optional[str] = None
    gate: Optional[str] = None
    confirmation_code: str = Field(..., min_length=1)
    e_ticket_number: Optional[str] = None
    frequent_flyer_program: Optional[str] = None
    frequent_flyer_number: Optional[str] = None
    operating_carrier: Optional[str] = None
    operating_flight_number: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class EventTicketInput(CamelModel):
    pass_type: Literal["eventTicket"] = "eventTicket"
    event_name: str = Field(..., min_length=1)
    event_type: Optional[str] = None
    venue_name: str = Field(..., min_length=1)
    venue_address: Optional[str] = None
    venue_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    venue_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    event_date: str
    event_time: Optional[str] = None
    event_end_date: Optional[str] = None
    event_end_time: Optional[str] = None
    doors_open: Optional[str] = None
    ticket_holder_name: Optional[str] = None
    ticket_number: str = Field(..., min_length=1)
    ticket_type: Optional[str] = None
    section: Optional[str] = None
    row: Optional[str] = None
    seat: Optional[str] = None
    gate: Optional[str] = None
    entrance: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    purchaser_name: Optional[str] = None
    purchaser_email: Optional[EmailStr] = None
    event_details: Optional[str] = None
    terms: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class StoreCardInput(CamelModel):
    pass_type: Literal["storeCard"] = "storeCard"
    program_name: str = Field(..., min_length=1)
    store_name: Optional[str] = None
    member_name: str = Field(..., min_length=1)
    member_id: str = Field(..., min_length=1)
    points: Optional[int] = Field(default=None, ge=0)
    points_label: Optional[str] = None
    secondary_points: Optional[int] = Field(default=None, ge=0)
    secondary_points_label: Optional[str] = None
    tier: Optional[str] = None
    tier_label: Optional[str] = None
    expiration_date: Optional[str] = None
    available_rewards: Optional[str] = None
    background_color: Optional[str] = None
    foreground_color: Optional[str] = None
    logo_url: Optional[HttpUrl] = None
    website: Optional[HttpUrl] = None
    support_phone: Optional[str] = None
    support_email: Optional[EmailStr] = None
    terms: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class CouponInput(CamelModel):
    pass_type: Literal["coupon"] = "coupon"
    offer_title: str = Field(..., min_length=1)
    offer_description: Optional[str] = None
    discount: str = Field(..., min_length=1)
    store_name: str = Field(..., min_length=1)
    store_locations: Optional[list[str]] = None
    promo_code: Optional[str] = None
    valid_from: Optional[str] = None
    valid_until: str
    redemption_type: Optional[Literal["ONLINE", "INSTORE", "BOTH"]] = None
    max_redemptions: Optional[int] = Field(default=None, gt=0)
    terms: Optional[str] = None
    restrictions: Optional[str] = None
    fine_print: Optional[str] = None
    background_color: Optional[str] = None
    logo_url: Optional[HttpUrl] = None
    website: Optional[HttpUrl] = None
    support_url: Optional[HttpUrl] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class GiftCardInput(CamelModel):
    pass_type: Literal["giftCard"] = "giftCard"
    card_number: str = Field(..., min_length=1)
    pin: Optional[str] = None
    balance: float = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    event_number: Optional[str] = None
    card_holder_name: Optional[str] = None
    merchant_name: str = Field(..., min_length=1)
    expiration_date: Optional[str] = None
    background_color: Optional[str] = None
    logo_url: Optional[HttpUrl] = None
    website: Optional[HttpUrl] = None
    balance_check_url: Optional[HttpUrl] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class TicketLeg(CamelModel):
    origin_code: Optional[str] = None
    origin_name: str = Field(..., min_length=1)
    destination_code: Optional[str] = None
    destination_name: str = Field(..., min_length=1)
    departure_date_time: str
    arrival_date_time: Optional[str] = None
    transit_operator: Optional[str] = None
    transit_line: Optional[str] = None
    fare: Optional[str] = None
    platform: Optional[str] = None
    zone: Optional[str] = None
    carriage: Optional[str] = None
    seat: Optional[str] = None
    coach: Optional[str] = None


class TransitPassInput(CamelModel):
    pass_type: Literal["transit"] = "transit"
    transit_type: Literal["BUS", "RAIL", "TRAM", "FERRY", "OTHER"]
    passenger_name: Optional[str] = None
    passenger_type: Optional[Literal["ADULT", "CHILD", "SENIOR", "STUDENT"]] = None
    trip_type: Optional[Literal["ONE_WAY", "ROUND_TRIP"]] = None
    ticket_legs: list[TicketLeg] = Field(..., min_length=1)
    ticket_number: Optional[str] = None
    ticket_status: Optional[Literal["ACTIVE", "EXPIRED", "USED"]] = None
    valid_from: Optional[str] = None
    valid_until: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    operator_name: Optional[str] = None
    background_color: Optional[str] = None
    logo_url: Optional[HttpUrl] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class GenericPassInput(CamelModel):
    pass_type: Literal["generic"] = "generic"
    card_title: str = Field(..., min_length=1)
    header: str = Field(..., min_length=1)
    subheader: Optional[str] = None
    primary_value: Optional[str] = None
    primary_label: Optional[str] = None
    fields: list[PassField] = Field(default_factory=list)
    barcode_value: Optional[str] = None
    barcode_type: Optional[Literal["QR_CODE", "CODE_128", "CODE_39", "AZTEC", "PDF_417"]] = None
    links: list[PassLink] = Field(default_factory=list)
    logo_url: Optional[HttpUrl] = None
    hero_image_url: Optional[HttpUrl] = None
    background_color: Optional[str] = None
    foreground_color: Optional[str] = None
    back_fields: list[PassField] = Field(default_factory=list)
    locations: list[Location] = Field(default_factory=list)
    valid_from: Optional[str] = None
    valid_until: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


WalletPassInput = Annotated[
    Union[
        BoardingPassInput,
        EventTicketInput,
        StoreCardInput,
        CouponInput,
        GiftCardInput,
        TransitPassInput,
        GenericPassInput,
    ],
    Field(discriminator="pass_type"),
]


class PassGenerationOptions(CamelModel):
    platforms: list[Literal["apple", "google"]] = Field(default_factory=lambda: ["apple", "google"])
    create_class: bool = False
    google_class_id: Optional[str] = None


class WalletPassRecord(CamelModel):
    id: str
    pass_type: PassKind
    status: str
    input: WalletPassInput
    created_at: str
    updated_at: str
    barcode_value: Optional[str] = None
    apple_pass_type_id: Optional[str] = None
    google_class_id: Optional[str] = None
    google_object_id: Optional[str] = None
    hash: str = ""
    signature: str = ""


class WalletPassCreate(CamelModel):
    input: WalletPassInput
    options: PassGenerationOptions = Field(default_factory=PassGenerationOptions)


class WalletPassNotification(CamelModel):
    header: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)


class WalletPassResult(CamelModel):
    pass_data: WalletPassRecord
    apple_pkpass: Optional[bytes] = None
    google_object: Optional[dict[str, Any]] = None
    google_save_url: Optional[str] = None
    errors: dict[str, str] = Field(default_factory=dict)
