import asyncio
import logging

from aioapns import APNs, NotificationRequest

from walletpass.core.config import settings

logger = logging.getLogger(__name__)


class APNsClient:
    """Apple Push Notification service client for Wallet pass updates.

    Wallet pushes carry an empty payload; the device then asks the web
    service for the passes that changed.
    """

    def __init__(
        self,
        pass_type_id: str,
        cert_path: str,
        use_sandbox: bool = True,
        timeout: float = 10.0,
    ):
        self.cert_path = cert_path
        self.pass_type_id = pass_type_id
        self.use_sandbox = use_sandbox
        self.timeout = timeout
        self._client: APNs | None = None

    def _get_client(self) -> APNs:
        if self._client is None:
            self._client = APNs(client_cert=self.cert_path, use_sandbox=self.use_sandbox)
        return self._client

    async def _send_single(self, push_token: str, client: APNs) -> bool:
        """Send a single push notification using the given client."""
        request = NotificationRequest(
            device_token=push_token,
            message={},
            apns_topic=self.pass_type_id,
        )
        try:
            response = await asyncio.wait_for(client.send_notification(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[APNs] Push to {push_token[:20]}... timed out after {self.timeout}s")
            return False
        except Exception as e:
            logger.error(f"[APNs] Push error for {push_token[:20]}...: {e}")
            return False

        if response.is_successful:
            logger.info(f"[APNs] Push sent successfully to {push_token[:20]}...")
            return True
        logger.warning(f"[APNs] Push failed: {response.status} - {response.description}")
        return False

    async def send_pass_update(self, push_token: str) -> bool:
        """Send a push notification to update a Wallet pass."""
        return await self._send_single(push_token, self._get_client())

    async def send_to_all_devices(self, push_tokens: list[str]) -> dict:
        """Send push notifications to multiple devices."""
        results = {"success": 0, "failed": 0}
        if not push_tokens:
            return results

        client = self._get_client()
        tasks = [self._send_single(token, client) for token in push_tokens]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for outcome in outcomes:
            if outcome is True:
                results["success"] += 1
            else:
                results["failed"] += 1

        return results


def create_apns_client() -> APNsClient:
    """Factory function to create APNsClient from settings."""
    return APNsClient(
        cert_path=settings.apns_cert_path,
        pass_type_id=settings.apple_pass_type_id,
        use_sandbox=settings.apns_use_sandbox,
        timeout=settings.apns_timeout,
    )
