"""
Wallet adapters for Apple and Google Wallet.

This package provides:
- AppleWalletAdapter: pass.json building, signing and .pkpass packaging
- GoogleWalletAdapter: class/object payloads, REST upserts and save URLs
- PassCoordinator: Orchestrates operations across both platforms
"""

from .apple import AppleWalletAdapter, PassSigner, create_apple_wallet_adapter
from .google import GoogleRenderResult, GoogleWalletAdapter, UpsertOutcome, create_google_wallet_adapter
from .coordinator import PassCoordinator, create_pass_coordinator

__all__ = [
    "AppleWalletAdapter",
    "PassSigner",
    "create_apple_wallet_adapter",
    "GoogleRenderResult",
    "GoogleWalletAdapter",
    "UpsertOutcome",
    "create_google_wallet_adapter",
    "PassCoordinator",
    "create_pass_coordinator",
]
