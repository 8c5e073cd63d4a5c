"""
Google Wallet class/object builders for the multi-type wallet pass surface.
"""

from dataclasses import dataclass
from typing import Any, Callable

from walletpass.core.ids import utc_now_iso
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
from walletpass.services.templates import stringify

GOOGLE_TYPES = {
    PassKind.BOARDING_PASS: "flight",
    PassKind.EVENT_TICKET: "eventTicket",
    PassKind.STORE_CARD: "loyalty",
    PassKind.COUPON: "offer",
    PassKind.GIFT_CARD: "giftCard",
    PassKind.TRANSIT: "transit",
    PassKind.GENERIC: "generic",
}

DEFAULT_LOGO_URI = "https://www.gstatic.com/images/branding/product/2x/wallet_48dp.png"

_CONCESSION_CATEGORIES = {"ADULT", "CHILD", "SENIOR"}


@dataclass
class GooglePayloads:
    class_payload: dict[str, Any]
    object_payload: dict[str, Any]


def resource_names(google_type: str) -> tuple[str, str]:
    """REST collection names for a Google pass type, e.g. ("loyaltyClass", "loyaltyObject")."""
    return f"{google_type}Class", f"{google_type}Object"


def jwt_payload_key(google_type: str) -> str:
    return f"{google_type}Objects"


def localized(value: Any, language: str = "en-US") -> dict[str, Any]:
    return {"defaultValue": {"language": language, "value": stringify(value)}}


def image(uri: Any) -> dict[str, Any]:
    return {"sourceUri": {"uri": str(uri)}}


def text_module(module_id: str, header: str, body: Any) -> dict[str, str] | None:
    text = stringify(body)
    if not text:
        return None
    return {"id": module_id, "header": header, "body": text}


def _modules(*modules: dict[str, str] | None) -> list[dict[str, str]]:
    return [m for m in modules if m]


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v not in (None, "", [], {})}


def _barcode(value: str, barcode_type: str = "QR_CODE") -> dict[str, str]:
    return {"type": barcode_type, "value": value}


def money(amount: float, currency: str) -> dict[str, Any]:
    return {"micros": int(round(amount * 1_000_000)), "currencyCode": currency.upper()}


def local_datetime(date: str | None, time: str | None = None) -> str | None:
    """Combine a date and an optional HH:MM time into an ISO local date-time."""
    if not date:
        return None
    if "T" in date:
        return date
    if not time:
        return f"{date}T00:00:00"
    return f"{date}T{time}:00" if time.count(":") == 1 else f"{date}T{time}"


def _time_interval(start: str | None, end: str | None) -> dict[str, Any] | None:
    interval = _compact({
        "start": {"date": start} if start else None,
        "end": {"date": end} if end else None,
    })
    return interval or None


def build_flight(object_id: str, class_id: str, data: BoardingPassInput) -> GooglePayloads:
    class_payload = _compact({
        "id": class_id,
        "issuerName": data.carrier,
        "reviewStatus": "UNDER_REVIEW",
        "localScheduledDepartureDateTime": local_datetime(data.departure_date, data.departure_time),
        "localScheduledArrivalDateTime": local_datetime(data.arrival_date, data.arrival_time),
        "flightHeader": _compact({
            "carrier": {"carrierIataCode": data.carrier_code or data.carrier[:2].upper()},
            "flightNumber": data.flight_number or data.trip_number,
            "operatingCarrier": (
                {"carrierIataCode": data.operating_carrier} if data.operating_carrier else None
            ),
            "operatingFlightNumber": data.operating_flight_number,
        }),
        "origin": _compact({
            "airportIataCode": data.origin_code,
            "terminal": data.departure_terminal,
            "gate": data.gate,
        }),
        "destination": _compact({
            "airportIataCode": data.destination_code,
            "terminal": data.arrival_terminal,
        }),
        "flightStatus": "SCHEDULED",
        "hexBackgroundColor": "#005293",
    })
    object_payload = _compact({
        "id": object_id,
        "classId": class_id,
        "state": "ACTIVE",
        "passengerName": data.passenger_name,
        "boardingAndSeatingInfo": _compact({
            "seatNumber": data.seat,
            "seatClass": data.seat_class,
            "boardingGroup": data.boarding_group,
        }),
        "reservationInfo": _compact({
            "confirmationCode": data.confirmation_code,
            "eticketNumber": data.e_ticket_number,
            "frequentFlyerInfo": _compact({
                "frequentFlyerProgramName": (
                    localized(data.frequent_flyer_program) if data.frequent_flyer_program else None
                ),
                "frequentFlyerNumber": data.frequent_flyer_number,
            }),
        }),
        "barcode": _barcode(data.confirmation_code),
    })
    return GooglePayloads(class_payload, object_payload)


def build_event_ticket(object_id: str, class_id: str, data: EventTicketInput) -> GooglePayloads:
    class_payload = _compact({
        "id": class_id,
        "issuerName": data.venue_name,
        "reviewStatus": "UNDER_REVIEW",
        "eventName": localized(data.event_name),
        "venue": _compact({
            "name": localized(data.venue_name),
            "address": localized(data.venue_address) if data.venue_address else None,
        }),
        "dateTime": _compact({
            "start": local_datetime(data.event_date, data.event_time),
            "end": local_datetime(data.event_end_date, data.event_end_time),
            "doorsOpen": local_datetime(data.event_date, data.doors_open) if data.doors_open else None,
        }),
        "hexBackgroundColor": data.metadata.get("backgroundColor") or "#800080",
    })
    object_payload = _compact({
        "id": object_id,
        "classId": class_id,
        "state": "ACTIVE",
        "ticketHolderName": data.ticket_holder_name or data.purchaser_name,
        "ticketNumber": data.ticket_number,
        "ticketType": localized(data.ticket_type) if data.ticket_type else None,
        "seatInfo": _compact({
            "section": localized(data.section) if data.section else None,
            "row": localized(data.row) if data.row else None,
            "seat": localized(data.seat) if data.seat else None,
            "gate": localized(data.gate or data.entrance) if (data.gate or data.entrance) else None,
        }),
        "faceValue": money(data.price, data.currency or "USD") if data.price is not None else None,
        "barcode": _barcode(data.ticket_number),
        "textModulesData": _modules(text_module("eventDetails", "Event Details", data.event_details)),
    })
    if data.venue_latitude is not None and data.venue_longitude is not None:
        object_payload["locations"] = [{"latitude": data.venue_latitude, "longitude": data.venue_longitude}]
    return GooglePayloads(class_payload, object_payload)


def build_loyalty(object_id: str, class_id: str, data: StoreCardInput) -> GooglePayloads:
    class_payload = _compact({
        "id": class_id,
        "issuerName": data.store_name or data.program_name,
        "programName": data.program_name,
        "reviewStatus": "UNDER_REVIEW",
        "hexBackgroundColor": data.background_color or "#111827",
        "programLogo": image(data.logo_url or DEFAULT_LOGO_URI),
        "homepageUri": {"uri": str(data.website), "description": "Website"} if data.website else None,
    })
    object_payload = _compact({
        "id": object_id,
        "classId": class_id,
        "state": "ACTIVE",
        "accountId": data.member_id,
        "accountName": data.member_name,
        "loyaltyPoints": {
            "label": data.points_label or "Points",
            "balance": {"int": data.points or 0},
        },
        "secondaryLoyaltyPoints": (
            {
                "label": data.secondary_points_label or "Rewards",
                "balance": {"int": data.secondary_points},
            }
            if data.secondary_points is not None else None
        ),
        "barcode": _barcode(data.member_id),
        "textModulesData": _modules(
            text_module("tier", data.tier_label or "Tier", data.tier),
            text_module("rewards", "Available Rewards", data.available_rewards),
        ),
    })
    return GooglePayloads(class_payload, object_payload)


def build_offer(object_id: str, class_id: str, data: CouponInput) -> GooglePayloads:
    help_uri = data.support_url or data.website
    class_payload = _compact({
        "id": class_id,
        "issuerName": data.store_name,
        "provider": data.store_name,
        "title": data.offer_title,
        "redemptionChannel": data.redemption_type or "BOTH",
        "reviewStatus": "UNDER_REVIEW",
        "hexBackgroundColor": data.background_color or "#dc3545",
        "localizedTitle": localized(data.offer_title),
        "localizedProvider": localized(data.store_name),
        "details": data.offer_description,
        "finePrint": data.fine_print or data.terms,
        "helpUri": {"uri": str(help_uri), "description": "Help"} if help_uri else None,
        "titleImage": image(data.logo_url) if data.logo_url else None,
    })
    object_payload = _compact({
        "id": object_id,
        "classId": class_id,
        "state": "ACTIVE",
        "validTimeInterval": _time_interval(data.valid_from, data.valid_until),
        "barcode": _barcode(data.promo_code or object_id),
        "textModulesData": _modules(
            text_module("offer", "Offer", data.discount),
            text_module("terms", "Terms & Conditions", data.terms),
            text_module("restrictions", "Restrictions", data.restrictions),
        ),
    })
    return GooglePayloads(class_payload, object_payload)


def build_gift_card(object_id: str, class_id: str, data: GiftCardInput) -> GooglePayloads:
    balance_uri = data.balance_check_url or data.website
    class_payload = _compact({
        "id": class_id,
        "issuerName": data.merchant_name,
        "merchantName": data.merchant_name,
        "pinLabel": "PIN",
        "reviewStatus": "UNDER_REVIEW",
        "hexBackgroundColor": data.background_color or "#111827",
        "programLogo": image(data.logo_url) if data.logo_url else None,
        "homepageUri": {"uri": str(balance_uri), "description": "Check Balance"} if balance_uri else None,
    })
    object_payload = _compact({
        "id": object_id,
        "classId": class_id,
        "state": "ACTIVE",
        "cardNumber": data.card_number,
        "pin": data.pin,
        "balance": money(data.balance, data.currency),
        "balanceUpdateTime": {"date": utc_now_iso()},
        "eventNumber": data.event_number,
        "barcode": _barcode(data.card_number, "CODE_128"),
        "textModulesData": _modules(text_module("cardHolder", "Card Holder", data.card_holder_name)),
    })
    return GooglePayloads(class_payload, object_payload)


def _ticket_leg(leg) -> dict[str, Any]:
    return _compact({
        "originStationCode": leg.origin_code,
        "originName": localized(leg.origin_name),
        "destinationStationCode": leg.destination_code,
        "destinationName": localized(leg.destination_name),
        "departureDateTime": leg.departure_date_time,
        "arrivalDateTime": leg.arrival_date_time,
        "transitOperatorName": localized(leg.transit_operator) if leg.transit_operator else None,
        "fareName": localized(leg.fare) if leg.fare else None,
        "carriage": leg.carriage,
        "platform": leg.platform,
        "zone": leg.zone,
        "ticketSeat": _compact({"coach": leg.coach, "seat": leg.seat}),
    })


def build_transit(object_id: str, class_id: str, data: TransitPassInput) -> GooglePayloads:
    operator = data.operator_name or data.ticket_legs[0].transit_operator
    class_payload = _compact({
        "id": class_id,
        "issuerName": operator or "Transit",
        "reviewStatus": "UNDER_REVIEW",
        "transitType": data.transit_type,
        "logo": image(data.logo_url or DEFAULT_LOGO_URI),
        "transitOperatorName": localized(operator) if operator else None,
        "hexBackgroundColor": data.background_color or "#1a73e8",
    })
    object_payload = _compact({
        "id": object_id,
        "classId": class_id,
        "state": "INACTIVE" if data.ticket_status in ("EXPIRED", "USED") else "ACTIVE",
        "passengerType": "SINGLE_PASSENGER",
        "passengerNames": data.passenger_name,
        "tripType": data.trip_type or "ONE_WAY",
        "ticketStatus": "USED" if data.ticket_status == "USED" else None,
        "concessionCategory": data.passenger_type if data.passenger_type in _CONCESSION_CATEGORIES else None,
        "ticketNumber": data.ticket_number,
        "ticketLegs": [_ticket_leg(leg) for leg in data.ticket_legs],
        "ticketCost": (
            {"faceValue": money(data.price, data.currency or "USD")} if data.price is not None else None
        ),
        "validTimeInterval": _time_interval(data.valid_from, data.valid_until),
        "barcode": _barcode(data.ticket_number or object_id),
    })
    return GooglePayloads(class_payload, object_payload)


def build_generic(object_id: str, class_id: str, data: GenericPassInput) -> GooglePayloads:
    class_payload = {
        "id": class_id,
        "issuerName": data.card_title,
        "hexBackgroundColor": data.background_color or "#4a90e2",
    }
    modules = [text_module(f.key, f.label, f.value) for f in [*data.fields, *data.back_fields]]
    object_payload = _compact({
        "id": object_id,
        "classId": class_id,
        "state": "ACTIVE",
        "cardTitle": localized(data.card_title),
        "header": localized(data.primary_value or data.header),
        "subheader": localized(data.subheader) if data.subheader else None,
        "logo": image(data.logo_url) if data.logo_url else None,
        "heroImage": image(data.hero_image_url) if data.hero_image_url else None,
        "hexBackgroundColor": data.background_color or "#4a90e2",
        "barcode": (
            _barcode(data.barcode_value, data.barcode_type or "QR_CODE") if data.barcode_value else None
        ),
        "textModulesData": _modules(*modules),
        "linksModuleData": (
            {
                "uris": [
                    {"id": f"link_{idx}", "uri": str(link.url), "description": link.label}
                    for idx, link in enumerate(data.links)
                ]
            }
            if data.links else None
        ),
        "locations": [loc.to_wire() for loc in data.locations],
        "validTimeInterval": _time_interval(data.valid_from, data.valid_until),
    })
    return GooglePayloads(class_payload, object_payload)


GOOGLE_BUILDERS: dict[PassKind, Callable[[str, str, Any], GooglePayloads]] = {
    PassKind.BOARDING_PASS: build_flight,
    PassKind.EVENT_TICKET: build_event_ticket,
    PassKind.STORE_CARD: build_loyalty,
    PassKind.COUPON: build_offer,
    PassKind.GIFT_CARD: build_gift_card,
    PassKind.TRANSIT: build_transit,
    PassKind.GENERIC: build_generic,
}
