import asyncio
import weakref

from walletpass.core.errors import ValidationError
from walletpass.domain.schemas import Business, ChildPass, CustomerAccount, ParentPass
from walletpass.domain.wallet_pass import WalletPassRecord

PassRecord = ParentPass | ChildPass


class PassStore:
    """
    In-memory repository for passes, businesses, customers and wallet passes.

    Constructed once and injected into the services. Records are keyed by id;
    mutations of a single record are serialized with `lock(record_id)`.
    """

    def __init__(self):
        self._passes: dict[str, PassRecord] = {}
        self._businesses: dict[str, Business] = {}
        self._customers: dict[str, CustomerAccount] = {}
        self._wallet_passes: dict[str, WalletPassRecord] = {}
        # Entries disappear once no coroutine holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock(self, record_id: str) -> asyncio.Lock:
        lock = self._locks.get(record_id)
        if lock is None:
            lock = self._locks[record_id] = asyncio.Lock()
        return lock

    # ===== Passes =====

    def add_pass(self, record: PassRecord) -> PassRecord:
        if record.id in self._passes:
            raise ValidationError(f"Pass already exists: {record.id}")
        self._passes[record.id] = record
        return record

    def save_pass(self, record: PassRecord) -> PassRecord:
        self._passes[record.id] = record
        return record

    def get_pass(self, pass_id: str) -> PassRecord | None:
        return self._passes.get(pass_id)

    def has_pass(self, pass_id: str) -> bool:
        return pass_id in self._passes

    def list_passes(self) -> list[PassRecord]:
        return list(self._passes.values())

    # ===== Businesses =====

    def add_business(self, business: Business) -> Business:
        if business.id in self._businesses:
            raise ValidationError(f"Business already exists: {business.id}")
        self._businesses[business.id] = business
        return business

    def save_business(self, business: Business) -> Business:
        self._businesses[business.id] = business
        return business

    def get_business(self, business_id: str) -> Business | None:
        return self._businesses.get(business_id)

    # ===== Customers =====

    def add_customer(self, customer: CustomerAccount) -> CustomerAccount:
        if customer.id in self._customers:
            raise ValidationError(f"Customer already exists: {customer.id}")
        if self.member_id_exists(customer.member_id):
            raise ValidationError(f"Member ID already in use: {customer.member_id}")
        self._customers[customer.id] = customer
        return customer

    def get_customer(self, customer_id: str) -> CustomerAccount | None:
        return self._customers.get(customer_id)

    def has_customer(self, customer_id: str) -> bool:
        return customer_id in self._customers

    def member_id_exists(self, member_id: str) -> bool:
        return any(c.member_id == member_id for c in self._customers.values())

    # ===== Wallet passes =====

    def add_wallet_pass(self, record: WalletPassRecord) -> WalletPassRecord:
        if record.id in self._wallet_passes:
            raise ValidationError(f"Wallet pass already exists: {record.id}")
        self._wallet_passes[record.id] = record
        return record

    def save_wallet_pass(self, record: WalletPassRecord) -> WalletPassRecord:
        self._wallet_passes[record.id] = record
        return record

    def get_wallet_pass(self, pass_id: str) -> WalletPassRecord | None:
        return self._wallet_passes.get(pass_id)

    def has_wallet_pass(self, pass_id: str) -> bool:
        return pass_id in self._wallet_passes

    def list_wallet_passes(self) -> list[WalletPassRecord]:
        return list(self._wallet_passes.values())
