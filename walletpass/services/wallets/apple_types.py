"""
pass.json builders for the multi-type wallet pass surface.

One builder per PassKind. Each returns the kind-specific part of pass.json
(style dictionary, description, barcodes, colors and extras); the adapter adds
identifiers, organization and assets.
"""

from typing import Any, Callable

from walletpass.domain.wallet_pass import (
    BoardingPassInput,
    CouponInput,
    EventTicketInput,
    GenericPassInput,
    GiftCardInput,
    PassKind,
    StoreCardInput,
    TransitPassInput,
)
from walletpass.services.templates import format_date, format_time, stringify

APPLE_TRANSIT_TYPES = {
    "AIR": "PKTransitTypeAir",
    "FLIGHT": "PKTransitTypeAir",
    "BUS": "PKTransitTypeBus",
    "RAIL": "PKTransitTypeTrain",
    "TRAIN": "PKTransitTypeTrain",
    "TRAM": "PKTransitTypeTrain",
    "FERRY": "PKTransitTypeBoat",
    "BOAT": "PKTransitTypeBoat",
    "OTHER": "PKTransitTypeGeneric",
}

APPLE_BARCODE_FORMATS = {
    "QR_CODE": "PKBarcodeFormatQR",
    "CODE_128": "PKBarcodeFormatCode128",
    # PassKit has no Code 39; Code 128 is the closest linear format
    "CODE_39": "PKBarcodeFormatCode128",
    "AZTEC": "PKBarcodeFormatAztec",
    "PDF_417": "PKBarcodeFormatPDF417",
}

# pass.json style and base template used by each kind
APPLE_STYLES = {
    PassKind.BOARDING_PASS: "boardingPass",
    PassKind.EVENT_TICKET: "eventTicket",
    PassKind.STORE_CARD: "storeCard",
    PassKind.COUPON: "coupon",
    PassKind.GIFT_CARD: "storeCard",
    PassKind.TRANSIT: "boardingPass",
    PassKind.GENERIC: "generic",
}

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "MXN": "MX$", "CAD": "CA$"}


def _field(key: str, label: str, value: Any, **extra: Any) -> dict[str, Any] | None:
    text = stringify(value)
    if not text:
        return None
    return {"key": key, "label": label, "value": text, **extra}


def _fields(*fields: dict[str, Any] | None) -> list[dict[str, Any]]:
    return [f for f in fields if f]


def _barcode(message: str, fmt: str = "PKBarcodeFormatQR") -> list[dict[str, Any]]:
    return [{"format": fmt, "message": message, "messageEncoding": "iso-8859-1"}]


def _colors(background: str | None = None, foreground: str | None = None) -> dict[str, str]:
    colors = {}
    if background:
        colors["backgroundColor"] = background
    if foreground:
        colors["foregroundColor"] = foreground
    return colors


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v not in (None, "", [], {})}


def format_currency(amount: float, currency: str) -> str:
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{amount:,.2f} {currency.upper()}"


def apple_transit_type(value: str) -> str:
    if value.startswith("PKTransitType"):
        return value
    return APPLE_TRANSIT_TYPES.get(value.upper(), "PKTransitTypeGeneric")


def build_boarding_pass(pass_id: str, data: BoardingPassInput) -> dict[str, Any]:
    style = {
        "transitType": apple_transit_type(data.transit_type),
        "headerFields": _fields(_field("gate", "GATE", data.gate)),
        "primaryFields": _fields(
            _field("origin", data.origin_name or data.origin_code, data.origin_code),
            _field("destination", data.destination_name or data.destination_code, data.destination_code),
        ),
        "secondaryFields": _fields(
            _field("passenger", "PASSENGER", data.passenger_name),
            _field("class", "CLASS", data.seat_class or "Economy"),
        ),
        "auxiliaryFields": _fields(
            _field("flightNumber", "FLIGHT", data.flight_number or data.trip_number),
            _field("date", "DATE", format_date(data.departure_date)),
            _field("boardingTime", "BOARDING", data.boarding_time),
            _field("seat", "SEAT", data.seat),
        ),
        "backFields": _fields(
            _field("confirmationCode", "Confirmation Code", data.confirmation_code),
            _field("boardingGroup", "Boarding Group", data.boarding_group),
            _field("departureTerminal", "Departure Terminal", data.departure_terminal),
            _field("arrivalTerminal", "Arrival Terminal", data.arrival_terminal),
            _field("eTicket", "E-Ticket", data.e_ticket_number),
            _field(
                "frequentFlyer",
                data.frequent_flyer_program or "Frequent Flyer",
                data.frequent_flyer_number,
            ),
        ),
    }
    semantics = _compact({
        "airlineCode": data.carrier_code,
        "flightNumber": data.flight_number,
        "departureAirportCode": data.origin_code,
        "departureAirportName": data.origin_name,
        "destinationAirportCode": data.destination_code,
        "destinationAirportName": data.destination_name,
        "departureGate": data.gate,
        "confirmationNumber": data.confirmation_code,
        "passengerName": _compact({
            "givenName": data.passenger_first_name,
            "familyName": data.passenger_last_name,
        }),
    })
    return {
        "description": f"{data.carrier} {data.origin_code} to {data.destination_code}",
        "boardingPass": style,
        "barcodes": _barcode(data.confirmation_code),
        "semantics": semantics,
    }


def build_event_ticket(pass_id: str, data: EventTicketInput) -> dict[str, Any]:
    style = {
        "headerFields": _fields(_field("date", "DATE", format_date(data.event_date))),
        "primaryFields": _fields(_field("eventName", "EVENT", data.event_name)),
        "secondaryFields": _fields(
            _field("venue", "VENUE", data.venue_name),
            _field("location", "LOCATION", data.venue_address),
        ),
        "auxiliaryFields": _fields(
            _field("section", "SEC", data.section),
            _field("row", "ROW", data.row),
            _field("seat", "SEAT", data.seat),
            _field("doors", "DOORS", data.doors_open),
        ),
        "backFields": _fields(
            _field("ticketNumber", "Ticket Number", data.ticket_number),
            _field("purchaser", "Purchased By", data.purchaser_name),
            _field("eventDetails", "Event Details", data.event_details),
            _field("terms", "Terms & Conditions", data.terms),
        ),
    }
    built: dict[str, Any] = {
        "description": data.event_name,
        "eventTicket": style,
        "barcodes": _barcode(data.ticket_number),
        **_colors(data.metadata.get("backgroundColor")),
    }
    semantics = _compact({"eventName": data.event_name, "venueName": data.venue_name})
    if data.venue_latitude is not None and data.venue_longitude is not None:
        location = {"latitude": data.venue_latitude, "longitude": data.venue_longitude}
        semantics["venueLocation"] = location
        built["locations"] = [location]
    built["semantics"] = semantics
    return built


def build_store_card(pass_id: str, data: StoreCardInput) -> dict[str, Any]:
    support = " / ".join(v for v in (data.support_phone, data.support_email) if v)
    style = {
        "headerFields": _fields(
            _field("balance", (data.points_label or "POINTS").upper(), data.points or 0),
        ),
        "primaryFields": _fields(_field("memberName", "MEMBER", data.member_name)),
        "secondaryFields": _fields(
            _field("tier", (data.tier_label or "TIER").upper(), data.tier),
            _field("memberId", "MEMBER ID", data.member_id),
        ),
        "auxiliaryFields": _fields(
            _field("rewards", "REWARDS", data.available_rewards),
            _field("expiration", "EXPIRES", format_date(data.expiration_date)),
        ),
        "backFields": _fields(
            _field("programName", "Program", data.program_name),
            _field("website", "Website", data.website),
            _field("terms", "Terms & Conditions", data.terms),
            _field("support", "Support", support),
        ),
    }
    return {
        "description": data.program_name,
        "logoText": data.store_name or data.program_name,
        "storeCard": style,
        "barcodes": _barcode(data.member_id),
        **_colors(data.background_color, data.foreground_color),
    }


def build_coupon(pass_id: str, data: CouponInput) -> dict[str, Any]:
    style = {
        "headerFields": _fields(_field("discount", "OFF", data.discount)),
        "primaryFields": _fields(_field("offer", "OFFER", data.offer_title)),
        "secondaryFields": _fields(
            _field("store", "STORE", data.store_name),
            _field("promoCode", "CODE", data.promo_code),
        ),
        "auxiliaryFields": _fields(
            _field("validFrom", "VALID FROM", format_date(data.valid_from)),
            _field("expires", "EXPIRES", format_date(data.valid_until)),
        ),
        "backFields": _fields(
            _field("description", "Details", data.offer_description),
            _field("terms", "Terms & Conditions", data.terms or data.fine_print),
            _field("restrictions", "Restrictions", data.restrictions),
            _field("support", "Support", data.support_url),
            _field("website", "Website", data.website),
        ),
    }
    return {
        "description": data.offer_title,
        "logoText": data.store_name,
        "coupon": style,
        "barcodes": _barcode(data.promo_code or pass_id),
        "expirationDate": data.valid_until,
        **_colors(data.background_color),
    }


def build_gift_card(pass_id: str, data: GiftCardInput) -> dict[str, Any]:
    style = {
        "headerFields": _fields(
            _field("balance", "BALANCE", format_currency(data.balance, data.currency)),
        ),
        "primaryFields": _fields(_field("cardNumber", "CARD", f"****{data.card_number[-4:]}")),
        "secondaryFields": _fields(
            _field("holder", "CARD HOLDER", data.card_holder_name),
            _field("pin", "PIN", "****" if data.pin else None),
        ),
        "auxiliaryFields": _fields(
            _field("expires", "EXPIRES", format_date(data.expiration_date) or "Never"),
        ),
        "backFields": _fields(
            _field("fullCardNumber", "Card Number", data.card_number),
            _field("pinBack", "PIN", data.pin),
            _field("checkBalance", "Check Balance", data.balance_check_url or data.website),
        ),
    }
    return {
        "description": f"{data.merchant_name} Gift Card",
        "logoText": data.merchant_name,
        "storeCard": style,
        "barcodes": _barcode(data.card_number, "PKBarcodeFormatCode128"),
        **_colors(data.background_color),
    }


def build_transit(pass_id: str, data: TransitPassInput) -> dict[str, Any]:
    first, last = data.ticket_legs[0], data.ticket_legs[-1]
    zones = ", ".join(leg.zone for leg in data.ticket_legs if leg.zone)
    style = {
        "transitType": apple_transit_type(data.transit_type),
        "headerFields": _fields(_field("platform", "PLATFORM", first.platform)),
        "primaryFields": _fields(
            _field("origin", first.origin_code or "FROM", first.origin_name),
            _field("destination", last.destination_code or "TO", last.destination_name),
        ),
        "secondaryFields": _fields(
            _field("passenger", "PASSENGER", data.passenger_name),
            _field("type", "TYPE", data.passenger_type or "ADULT"),
        ),
        "auxiliaryFields": _fields(
            _field("departs", "DEPARTS", format_time(first.departure_date_time)),
            _field("arrives", "ARRIVES", format_time(last.arrival_date_time)),
            _field("coach", "COACH", first.coach or first.carriage),
            _field("seat", "SEAT", first.seat),
        ),
        "backFields": _fields(
            _field("ticketNumber", "Ticket Number", data.ticket_number or pass_id),
            _field("tripType", "Trip Type", data.trip_type or "ONE_WAY"),
            _field("validUntil", "Valid Until", format_date(data.valid_until)),
            _field("zones", "Zones", zones),
            _field("operator", "Operator", data.operator_name or first.transit_operator),
        ),
    }
    return {
        "description": f"{first.origin_name} → {last.destination_name}",
        "boardingPass": style,
        "barcodes": _barcode(data.ticket_number or pass_id),
        **_colors(data.background_color),
    }


def build_generic(pass_id: str, data: GenericPassInput) -> dict[str, Any]:
    custom = [_field(f.key, f.label, f.value) for f in data.fields]
    back = [_field(f.key, f.label, f.value) for f in data.back_fields]
    back += [_field(f"link_{idx}", link.label, str(link.url)) for idx, link in enumerate(data.links)]
    style = {
        "headerFields": _fields(_field("type", "TYPE", data.subheader)),
        "primaryFields": _fields(_field("title", data.primary_label or data.card_title, data.primary_value or data.header)),
        "secondaryFields": _fields(*custom[:2]),
        "auxiliaryFields": _fields(*custom[2:]),
        "backFields": _fields(*back),
    }
    built: dict[str, Any] = {
        "description": data.card_title,
        "logoText": data.card_title,
        "generic": style,
        **_colors(data.background_color, data.foreground_color),
    }
    if data.barcode_value:
        fmt = APPLE_BARCODE_FORMATS.get(data.barcode_type or "QR_CODE", "PKBarcodeFormatQR")
        built["barcodes"] = _barcode(data.barcode_value, fmt)
    if data.locations:
        built["locations"] = [loc.to_wire() for loc in data.locations]
    if data.valid_until:
        built["expirationDate"] = data.valid_until
    return built


APPLE_BUILDERS: dict[PassKind, Callable[[str, Any], dict[str, Any]]] = {
    PassKind.BOARDING_PASS: build_boarding_pass,
    PassKind.EVENT_TICKET: build_event_ticket,
    PassKind.STORE_CARD: build_store_card,
    PassKind.COUPON: build_coupon,
    PassKind.GIFT_CARD: build_gift_card,
    PassKind.TRANSIT: build_transit,
    PassKind.GENERIC: build_generic,
}
