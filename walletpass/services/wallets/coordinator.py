"""
Pass Coordinator for unified wallet operations.

Orchestrates rendering across the Apple and Google adapters and fans out
APNs pushes when a pass changes.
"""

import asyncio
import logging
from typing import Any, Optional

from walletpass.core.errors import WalletPassError
from walletpass.domain.schemas import PassGenerationResult
from walletpass.repositories.device import DeviceRepository
from walletpass.services.apns import APNsClient, create_apns_client
from walletpass.services.templates import as_pass_dict
from walletpass.services.wallets.apple import AppleWalletAdapter, create_apple_wallet_adapter
from walletpass.services.wallets.google import (
    GoogleRenderResult,
    GoogleWalletAdapter,
    create_google_wallet_adapter,
)

logger = logging.getLogger(__name__)


class PassCoordinator:
    """
    Coordinates operations across Apple and Google Wallet adapters.

    Provides a unified interface for:
    - Single-platform renders (pkpass bytes, Google object + save URL)
    - Dual-platform generation with per-platform error reporting
    - Update pushes to registered Apple devices
    """

    def __init__(
        self,
        apple: Optional[AppleWalletAdapter] = None,
        google: Optional[GoogleWalletAdapter] = None,
        apns: Optional[APNsClient] = None,
        devices: Optional[DeviceRepository] = None,
    ):
        self._apple = apple
        self._google = google
        self._apns = apns
        self.devices = devices or DeviceRepository()

    @property
    def apple(self) -> AppleWalletAdapter:
        """Lazy-initialize Apple Wallet adapter."""
        if self._apple is None:
            self._apple = create_apple_wallet_adapter()
        return self._apple

    @property
    def google(self) -> GoogleWalletAdapter:
        """Lazy-initialize Google Wallet adapter."""
        if self._google is None:
            self._google = create_google_wallet_adapter()
        return self._google

    @property
    def apns(self) -> APNsClient:
        """Lazy-initialize APNs client."""
        if self._apns is None:
            self._apns = create_apns_client()
        return self._apns

    async def get_pkpass_buffer(self, pass_type: str, pass_data: Any) -> bytes:
        """Render a .pkpass; signing shells out to openssl, so it runs in a thread."""
        return await asyncio.to_thread(self.apple.generate_pkpass, pass_data, None, pass_type)

    async def get_google_object(self, pass_type: str, pass_data: Any) -> GoogleRenderResult:
        return await self.google.generate_pass_object(pass_data, None, pass_type)

    async def generate_pass(
        self,
        pass_data: Any,
        include_apple: bool = True,
        include_google: bool = True,
    ) -> PassGenerationResult:
        """
        Render a pass for the requested platforms concurrently.

        A platform failure is logged and reported in `errors`; it never
        prevents the other platform's artifact.
        """
        data = as_pass_dict(pass_data)
        pass_type = data.get("type", "child")
        result = PassGenerationResult(pass_data=data)

        async def render_apple() -> None:
            try:
                result.apple_pkpass = await self.get_pkpass_buffer(pass_type, data)
            except WalletPassError as e:
                logger.warning(f"[PassCoordinator] Apple Wallet render failed for {data['id']}: {e.message}")
                result.errors["apple"] = e.message

        async def render_google() -> None:
            try:
                rendered = await self.get_google_object(pass_type, data)
            except WalletPassError as e:
                logger.warning(f"[PassCoordinator] Google Wallet render failed for {data['id']}: {e.message}")
                result.errors["google"] = e.message
                return
            result.google_object = rendered.object
            result.google_save_url = rendered.save_url or None

        tasks = []
        if include_apple:
            tasks.append(render_apple())
        if include_google:
            tasks.append(render_google())
        await asyncio.gather(*tasks)

        return result

    async def on_pass_updated(self, pass_id: str) -> dict:
        """
        Handle pass update - notify every Apple device holding the pass.

        Google objects are rewritten by the renders themselves, so only
        Apple needs a push here.
        """
        push_tokens = self.devices.get_push_tokens(pass_id)
        if not push_tokens:
            return {"success": 0, "failed": 0}

        try:
            results = await self.apns.send_to_all_devices(push_tokens)
        except (OSError, ValueError) as e:
            logger.error(f"[PassCoordinator] APNs unavailable for {pass_id}: {e}")
            return {"success": 0, "failed": len(push_tokens)}

        logger.info(f"[PassCoordinator] Pushed update for {pass_id}: {results}")
        return results

    async def close(self) -> None:
        if self._google is not None:
            await self._google.close()


def create_pass_coordinator(devices: Optional[DeviceRepository] = None) -> PassCoordinator:
    """Factory function to create PassCoordinator."""
    return PassCoordinator(devices=devices)
