from functools import lru_cache

from walletpass.repositories.device import DeviceRepository
from walletpass.repositories.pass_store import PassStore
from walletpass.services.lifecycle import PassLifecycleEngine
from walletpass.services.loyalty import LoyaltyService
from walletpass.services.wallet_passes import WalletPassService
from walletpass.services.wallets import PassCoordinator, create_pass_coordinator


@lru_cache
def get_pass_store() -> PassStore:
    return PassStore()


@lru_cache
def get_device_repository() -> DeviceRepository:
    return DeviceRepository()


@lru_cache
def get_lifecycle_engine() -> PassLifecycleEngine:
    return PassLifecycleEngine(get_pass_store())


@lru_cache
def get_pass_coordinator() -> PassCoordinator:
    return create_pass_coordinator(devices=get_device_repository())


@lru_cache
def get_loyalty_service() -> LoyaltyService:
    return LoyaltyService(get_lifecycle_engine(), google=get_pass_coordinator().google)


@lru_cache
def get_wallet_pass_service() -> WalletPassService:
    return WalletPassService(get_pass_store(), get_pass_coordinator())
