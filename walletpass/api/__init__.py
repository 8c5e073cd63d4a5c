from fastapi import APIRouter

from .routes import health, loyalty, passes, profiles, wallet, wallet_passes

api_router = APIRouter()

# Health check
api_router.include_router(health.router, tags=["health"])

# Profile registry
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])

# Lifecycle passes
api_router.include_router(passes.router, prefix="/passes", tags=["passes"])
api_router.include_router(loyalty.router, prefix="/loyalty", tags=["loyalty"])

# Multi-type wallet passes
api_router.include_router(wallet_passes.router, prefix="/wallet-passes", tags=["wallet-passes"])

# Apple Wallet web service (device registration and pass updates)
api_router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
