"""
Google Wallet rendering.

Builds class/object payloads from profile templates (or the multi-type
builders), upserts them to the Wallet Objects REST API on a best-effort
basis and produces "Save to Google Wallet" URLs.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

import httpx
from google.auth import exceptions as google_auth_exceptions
from google.auth import jwt as google_jwt
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from walletpass.core.config import settings
from walletpass.core.errors import RenderError
from walletpass.domain.wallet_pass import PassKind
from walletpass.profiles import Profile, get_profile
from walletpass.services.templates import (
    as_pass_dict,
    format_window,
    load_template,
    merge_shallow,
    resolve_field_value,
    stringify,
)
from walletpass.services.wallets.google_types import (
    GOOGLE_BUILDERS,
    GOOGLE_TYPES,
    image,
    jwt_payload_key,
    localized,
    resource_names,
)

logger = logging.getLogger(__name__)

WALLET_SCOPES = ["https://www.googleapis.com/auth/wallet_object.issuer"]

STATUS_COLORS = {
    "ISSUED": "#4A90E2",
    "PRESENCE": "#F5A623",
    "SCALE": "#7B68EE",
    "OPS": "#50E3C2",
    "EXITED": "#7ED321",
    "SCHEDULED": "#4A90E2",
    "CHECKIN": "#F5A623",
    "PROCEDURE": "#E94B3C",
    "DISCHARGED": "#7ED321",
}
DEFAULT_STATUS_COLOR = "#4A90E2"

# Raised by builders on malformed caller metadata
BUILD_ERRORS = (KeyError, TypeError, AttributeError, ValueError, OSError)


def geo_points(locations: Any) -> list[dict[str, Any]]:
    """Keep the locations that carry both coordinates; skip the rest."""
    points = []
    for loc in locations or []:
        if not isinstance(loc, dict) or loc.get("latitude") is None or loc.get("longitude") is None:
            logger.warning(f"[GoogleWallet] Skipping malformed location: {loc}")
            continue
        points.append({"latitude": loc["latitude"], "longitude": loc["longitude"]})
    return points
LOYALTY_COLOR = "#111827"

# Header shown under the card title for lifecycle passes
SECTION_HEADERS = {"parent": "Schedule", "child": "Order"}


class UpsertStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class UpsertOutcome:
    status: UpsertStatus
    reason: Optional[str] = None

    @classmethod
    def created(cls) -> "UpsertOutcome":
        return cls(UpsertStatus.CREATED)

    @classmethod
    def updated(cls) -> "UpsertOutcome":
        return cls(UpsertStatus.UPDATED)

    @classmethod
    def skipped(cls, reason: str) -> "UpsertOutcome":
        return cls(UpsertStatus.SKIPPED, reason)

    @property
    def ok(self) -> bool:
        return self.status is not UpsertStatus.SKIPPED

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "reason": self.reason}


@dataclass
class GoogleRenderResult:
    object: dict[str, Any]
    save_url: str
    upsert: UpsertOutcome
    class_id: str
    resource: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "object": self.object,
            "saveUrl": self.save_url,
            "upsert": self.upsert.to_dict(),
            "classId": self.class_id,
        }


class GoogleWalletAdapter:
    """
    Google Wallet class/object management.

    Object ids are deterministic ({issuerId}.{passId}), so re-rendering a pass
    updates the same object. Without service account credentials nothing is
    sent to Google and save URLs are left unsigned.
    """

    WALLET_API_BASE = "https://walletobjects.googleapis.com/walletobjects/v1"
    SAVE_URL_BASE = "https://pay.google.com/gp/v/save"

    def __init__(
        self,
        issuer_id: str,
        credentials: service_account.Credentials | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
        origins: list[str] | None = None,
    ):
        self.issuer_id = issuer_id
        self.credentials = credentials
        self.timeout = timeout
        self.origins = origins or []
        self._http_client = http_client
        self._ensured_classes: set[str] = set()

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-initialize HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _get_object_id(self, pass_id: str) -> str:
        return f"{self.issuer_id}.{pass_id}"

    def _get_class_id(self, suffix: str) -> str:
        return f"{self.issuer_id}.{suffix}"

    async def _auth_headers(self) -> dict[str, str]:
        if not self.credentials.valid:
            # Token refresh does blocking I/O
            await asyncio.to_thread(self.credentials.refresh, Request())
        return {
            "Authorization": f"Bearer {self.credentials.token}",
            "Content-Type": "application/json",
        }

    def _url(self, resource: str, object_id: str | None = None, action: str | None = None) -> str:
        url = f"{self.WALLET_API_BASE}/{resource}"
        if object_id:
            url += f"/{quote(object_id, safe='')}"
        if action:
            url += f"/{action}"
        return url

    # ===== REST =====

    async def upsert(self, resource: str, payload: dict[str, Any]) -> UpsertOutcome:
        """Insert a class or object, updating it instead when it already exists (409)."""
        if self.credentials is None:
            return UpsertOutcome.skipped("Google Wallet credentials not configured")

        resource_id = payload["id"]
        try:
            headers = await self._auth_headers()
            response = await self.http_client.post(self._url(resource), json=payload, headers=headers)
            if response.status_code == 409:
                response = await self.http_client.put(
                    self._url(resource, resource_id), json=payload, headers=headers
                )
                if response.is_success:
                    logger.info(f"[GoogleWallet] Updated {resource} {resource_id}")
                    return UpsertOutcome.updated()
            elif response.is_success:
                logger.info(f"[GoogleWallet] Created {resource} {resource_id}")
                return UpsertOutcome.created()

            reason = f"HTTP {response.status_code}: {response.text[:200]}"
        except (httpx.HTTPError, google_auth_exceptions.GoogleAuthError) as e:
            reason = f"{type(e).__name__}: {e}"

        logger.warning(f"[GoogleWallet] Upsert of {resource} {resource_id} skipped: {reason}")
        return UpsertOutcome.skipped(reason)

    async def _call(self, method: str, url: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        if self.credentials is None:
            raise RenderError("Google Wallet credentials not configured")
        try:
            headers = await self._auth_headers()
            response = await self.http_client.request(method, url, json=json, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"[GoogleWallet] {method} {url} failed: {e.response.status_code} - {e.response.text}")
            raise RenderError(f"Google Wallet API error {e.response.status_code}") from e
        except (httpx.HTTPError, google_auth_exceptions.GoogleAuthError) as e:
            logger.error(f"[GoogleWallet] {method} {url} failed: {e}")
            raise RenderError(f"Google Wallet API unreachable: {e}") from e
        return response.json() if response.content else {}

    async def update_object(self, object_id: str, google_type: str, updates: dict[str, Any]) -> dict[str, Any]:
        """Fetch an object, shallow-merge `updates` into it and write it back."""
        _, resource = resource_names(google_type)
        current = await self._call("GET", self._url(resource, object_id))
        return await self._call("PUT", self._url(resource, object_id), json={**current, **updates})

    async def add_message(
        self,
        object_id: str,
        google_type: str,
        header: str,
        body: str,
        message_type: str = "TEXT_AND_NOTIFY",
    ) -> dict[str, Any]:
        """Attach a message to an object; TEXT_AND_NOTIFY also pushes a notification."""
        _, resource = resource_names(google_type)
        message = {"header": header, "body": body, "messageType": message_type}
        result = await self._call(
            "POST", self._url(resource, object_id, "addMessage"), json={"message": message}
        )
        logger.info(f"[GoogleWallet] Message sent to {object_id}")
        return result

    # ===== Save URL =====

    def generate_save_url(self, obj: dict[str, Any], payload_key: str) -> str:
        """Generate a JWT-signed save URL, or an unsigned one without credentials."""
        unsigned = f"{self.SAVE_URL_BASE}/{quote(obj['id'], safe='')}"
        if self.credentials is None:
            return unsigned

        claims = {
            "iss": self.credentials.service_account_email,
            "aud": "google",
            "typ": "savetowallet",
            "iat": int(time.time()),
            "origins": self.origins,
            "payload": {payload_key: [obj]},
        }
        try:
            token = google_jwt.encode(self.credentials.signer, claims).decode("utf-8")
        except (ValueError, TypeError, google_auth_exceptions.GoogleAuthError) as e:
            logger.warning(f"[GoogleWallet] Save URL signing failed, using unsigned URL: {e}")
            return unsigned
        return f"{self.SAVE_URL_BASE}/{token}"

    # ===== Lifecycle passes =====

    def build_loyalty_class(self, pass_data: Any, profile: Profile | None = None) -> dict[str, Any]:
        data = as_pass_dict(pass_data)
        profile = profile or get_profile(data["profile"])
        metadata = data.get("metadata") or {}
        gw = metadata.get("googleWallet") or {}

        base = load_template("google", "loyalty_class")
        merged = merge_shallow(base, profile.google_template("parent_class"))

        loyalty_class = {
            **merged,
            "id": self._get_class_id(data["id"]),
            "issuerName": gw.get("issuerName") or merged.get("issuerName") or "Walletpass",
            "programName": data.get("programName") or gw.get("programName") or "Loyalty",
            "hexBackgroundColor": gw.get("backgroundColor") or base.get("hexBackgroundColor") or LOYALTY_COLOR,
        }

        locations = geo_points(gw.get("locations") or metadata.get("locations"))
        if locations:
            loyalty_class["locations"] = locations
        if gw.get("countryCode"):
            loyalty_class["countryCode"] = gw["countryCode"]
        if gw.get("homepageUrl"):
            loyalty_class["homepageUri"] = {
                "uri": gw["homepageUrl"],
                "description": gw.get("homepageLabel") or "Website",
            }
        if gw.get("logoUrl"):
            loyalty_class["programLogo"] = image(gw["logoUrl"])
        if gw.get("heroImageUrl"):
            loyalty_class["heroImage"] = image(gw["heroImageUrl"])
        if gw.get("wordMarkUrl"):
            loyalty_class["wordMark"] = image(gw["wordMarkUrl"])
        if gw.get("updateRequestUrl"):
            loyalty_class["callbackOptions"] = {"updateRequestUrl": gw["updateRequestUrl"]}

        loyalty_class.update(gw.get("classOverrides") or {})
        return loyalty_class

    async def generate_loyalty_class(self, pass_data: Any, profile: Profile | None = None) -> GoogleRenderResult:
        try:
            loyalty_class = self.build_loyalty_class(pass_data, profile)
        except BUILD_ERRORS as e:
            raise RenderError(f"Failed to generate Google Wallet object: {e}") from e
        upsert = await self.upsert("loyaltyClass", loyalty_class)
        return GoogleRenderResult(
            object=loyalty_class,
            save_url="",
            upsert=upsert,
            class_id=loyalty_class["id"],
            resource="loyaltyClass",
        )

    def _resolve_text_modules(self, modules: list[dict[str, Any]], data: dict[str, Any]) -> list[dict[str, Any]]:
        resolved = []
        for module in modules:
            module = dict(module)
            if module.get("id") == "window":
                module["body"] = format_window(data) or module.get("body", "")
            elif module.get("id") == "status":
                module["body"] = stringify(data.get("status"))
            else:
                module["body"] = resolve_field_value(module.get("id", ""), data) or module.get("body", "")
            resolved.append(module)
        return resolved

    def _apply_loyalty_extras(self, obj: dict[str, Any], gw: dict[str, Any]) -> None:
        locations = geo_points(gw.get("locations"))
        if locations:
            obj["locations"] = locations

        links = [link for link in gw.get("links") or [] if link.get("url") or link.get("uri")]
        if links:
            obj["linksModuleData"] = {
                "uris": [
                    {
                        "id": str(link.get("id") or idx + 1),
                        "description": link.get("label") or link.get("description") or "",
                        "uri": link.get("url") or link.get("uri"),
                    }
                    for idx, link in enumerate(links)
                ]
            }

        images = [m for m in gw.get("imageModules") or [] if m.get("imageUrl") or m.get("uri")]
        if images:
            obj["imageModulesData"] = [
                {"id": m.get("id") or f"image_{idx + 1}", "mainImage": image(m.get("imageUrl") or m.get("uri"))}
                for idx, m in enumerate(images)
            ]

        messages = [m for m in gw.get("messages") or [] if m.get("header") and m.get("body")]
        if messages:
            obj["messages"] = [
                {
                    "id": m.get("id") or f"msg_{idx + 1}",
                    "header": m["header"],
                    "body": m["body"],
                    "messageType": m.get("messageType") or "TEXT",
                }
                for idx, m in enumerate(messages)
            ]

    def build_pass_object(
        self,
        pass_data: Any,
        profile: Profile | str | None = None,
        pass_type: str | None = None,
    ) -> tuple[dict[str, Any], str]:
        """Build the Google object for a lifecycle pass. Returns (object, resource)."""
        data = as_pass_dict(pass_data)
        pass_type = pass_type or data.get("type", "child")
        if profile is None or isinstance(profile, str):
            profile = get_profile(profile or data["profile"])

        is_loyalty = profile.name == "loyalty"
        metadata = data.get("metadata") or {}
        gw = metadata.get("googleWallet") or {}

        base = load_template("google", "loyalty_object" if is_loyalty else f"{pass_type}_object")
        obj = merge_shallow(base, profile.google_template(f"{pass_type}_object"))

        if is_loyalty and pass_type == "child":
            class_id = self._get_class_id(data["parentId"])
        else:
            class_id = self._get_class_id(f"{profile.name}_{pass_type}")

        obj["id"] = self._get_object_id(data["id"])
        obj["classId"] = class_id
        obj["textModulesData"] = self._resolve_text_modules(obj.get("textModulesData") or [], data)
        obj["barcode"] = {
            **(obj.get("barcode") or {"type": "QR_CODE"}),
            "value": data.get("memberId") or data["id"],
        }

        if is_loyalty:
            obj["hexBackgroundColor"] = LOYALTY_COLOR
            obj["accountId"] = data.get("memberId") or data["id"]
            obj["accountName"] = data.get("customerName") or ""
            obj["loyaltyPoints"] = {
                **(obj.get("loyaltyPoints") or {}),
                "label": metadata.get("pointsLabel") or "Points",
                "balance": {"int": data.get("points") or 0},
            }
            self._apply_loyalty_extras(obj, gw)
            obj.update(gw.get("objectOverrides") or {})
            # LoyaltyObject has no cardTitle/header; the class programName is the title
            return obj, "loyaltyObject"

        title = profile.title_for(pass_type)
        if pass_type == "parent":
            body = data.get("programName") or ""
        else:
            body = (
                data.get("customerName") or data.get("memberId") or data.get("plate")
                or data.get("patientName") or data["id"]
            )
        obj["cardTitle"] = localized(title)
        obj["header"] = localized(body)
        obj["subheader"] = localized(f"{SECTION_HEADERS[pass_type]} {data['id']}")
        obj["hexBackgroundColor"] = STATUS_COLORS.get(data.get("status"), DEFAULT_STATUS_COLOR)
        return obj, "genericObject"

    async def _ensure_generic_class(self, class_id: str) -> None:
        if class_id in self._ensured_classes or self.credentials is None:
            return
        outcome = await self.upsert("genericClass", {"id": class_id})
        if outcome.ok:
            self._ensured_classes.add(class_id)

    async def generate_pass_object(
        self,
        pass_data: Any,
        profile: Profile | str | None = None,
        pass_type: str | None = None,
    ) -> GoogleRenderResult:
        """
        Render a lifecycle pass for Google Wallet.

        Loyalty parents become a loyalty class; everything else becomes an
        object plus a save URL. Upsert failures never prevent the save URL.
        """
        data = as_pass_dict(pass_data)
        pass_type = pass_type or data.get("type", "child")
        if profile is None or isinstance(profile, str):
            profile = get_profile(profile or data["profile"])

        if profile.name == "loyalty" and pass_type == "parent":
            return await self.generate_loyalty_class(data, profile)

        try:
            obj, resource = self.build_pass_object(data, profile, pass_type)
        except BUILD_ERRORS as e:
            raise RenderError(f"Failed to generate Google Wallet object: {e}") from e
        logger.debug(f"[GoogleWallet] {resource} for {data['id']}: {obj}")

        if resource == "genericObject":
            await self._ensure_generic_class(obj["classId"])
        upsert = await self.upsert(resource, obj)
        google_type = resource.removesuffix("Object")
        save_url = self.generate_save_url(obj, jwt_payload_key(google_type))
        return GoogleRenderResult(
            object=obj,
            save_url=save_url,
            upsert=upsert,
            class_id=obj["classId"],
            resource=resource,
        )

    # ===== Multi-type passes =====

    async def generate_pass(
        self,
        pass_id: str,
        wallet_input: Any,
        create_class: bool = False,
        class_id: str | None = None,
    ) -> GoogleRenderResult:
        try:
            kind = PassKind(wallet_input.pass_type)
            google_type = GOOGLE_TYPES[kind]
            class_resource, object_resource = resource_names(google_type)
            class_id = class_id or self._get_class_id(f"{google_type}_class_{int(time.time() * 1000)}")
            payloads = GOOGLE_BUILDERS[kind](self._get_object_id(pass_id), class_id, wallet_input)
        except BUILD_ERRORS as e:
            raise RenderError(f"Failed to generate Google Wallet object: {e}") from e
        if create_class:
            await self.upsert(class_resource, payloads.class_payload)
        upsert = await self.upsert(object_resource, payloads.object_payload)

        return GoogleRenderResult(
            object=payloads.object_payload,
            save_url=self.generate_save_url(payloads.object_payload, jwt_payload_key(google_type)),
            upsert=upsert,
            class_id=class_id,
            resource=object_resource,
        )


def load_service_account(credentials_path: str | None) -> service_account.Credentials | None:
    if not credentials_path or not os.path.isfile(credentials_path):
        if credentials_path:
            logger.warning(f"[GoogleWallet] Credentials file not found: {credentials_path}")
        return None
    return service_account.Credentials.from_service_account_file(credentials_path, scopes=WALLET_SCOPES)


def create_google_wallet_adapter() -> GoogleWalletAdapter:
    """Factory function to create GoogleWalletAdapter from settings."""
    return GoogleWalletAdapter(
        issuer_id=settings.google_wallet_issuer_id,
        credentials=load_service_account(settings.google_wallet_credentials_path),
        timeout=settings.google_http_timeout,
        origins=settings.google_wallet_origins,
    )
