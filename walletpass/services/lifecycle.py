"""
Pass Lifecycle Engine.

Creates parent and child passes, enforces each profile's status flow and
keeps the hash/signature integrity markers fresh on every mutation.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, TypeVar

import pydantic

from walletpass.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from walletpass.core.ids import dated_id, parse_iso, utc_now_iso
from walletpass.core.security import hash_event, sign_credential
from walletpass.domain.schemas import (
    ChildPass,
    CreateChildInput,
    CreateParentInput,
    ParentPass,
)
from walletpass.profiles import get_profile
from walletpass.repositories.pass_store import PassRecord, PassStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)
SealedT = TypeVar("SealedT", bound=pydantic.BaseModel)

PARENT_SUFFIX_LENGTH = 4
CHILD_SUFFIX_LENGTH = 4


def validate_input(model: type[ModelT], data: Any) -> ModelT:
    """Coerce a dict (or an already-built model) into `model`, raising our ValidationError."""
    if isinstance(data, model):
        return data
    if isinstance(data, pydantic.BaseModel):
        data = data.model_dump(by_alias=True)
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e


def seal(record: SealedT) -> SealedT:
    """Recompute hash and signature for a record in place."""
    record.hash = hash_event(record.model_dump(by_alias=True, mode="json"))
    record.signature = sign_credential(record.hash)
    return record


class PassLifecycleEngine:
    def __init__(self, store: PassStore):
        self.store = store

    def _unique_id(self, build) -> str:
        pass_id = build()
        while self.store.has_pass(pass_id):
            pass_id = build()
        return pass_id

    async def create_parent_schedule(self, data: CreateParentInput | dict) -> ParentPass:
        """Create a parent pass (schedule, appointment batch or loyalty program)."""
        validated = validate_input(CreateParentInput, data)
        profile = get_profile(validated.profile)

        pass_id = validated.id or self._unique_id(
            lambda: dated_id(profile.parent_prefix, PARENT_SUFFIX_LENGTH)
        )
        now = utc_now_iso()
        record = ParentPass(
            id=pass_id,
            profile=validated.profile,
            program_name=validated.program_name,
            site=validated.site,
            window=validated.window,
            capacity=validated.capacity,
            metadata=validated.metadata,
            status=profile.initial_status,
            created_at=now,
            updated_at=now,
        )
        seal(record)
        self.store.add_pass(record)

        logger.info(f"[Lifecycle] Created parent {record.id} ({record.profile})")
        return record.model_copy(deep=True)

    async def create_child_ticket(self, data: CreateChildInput | dict) -> ChildPass:
        """Create a child pass attached to an existing parent."""
        validated = validate_input(CreateChildInput, data)

        parent = self.store.get_pass(validated.parent_id)
        if parent is None or parent.type != "parent":
            raise NotFoundError(f"Parent pass not found: {validated.parent_id}")

        profile = get_profile(validated.profile)
        if parent.profile != profile.name:
            logger.warning(
                f"[Lifecycle] Child profile {profile.name} differs from parent {parent.id} ({parent.profile})"
            )

        parent_suffix = parent.id.rsplit("-", 1)[-1]
        pass_id = validated.id or self._unique_id(
            lambda: dated_id(profile.child_prefix, CHILD_SUFFIX_LENGTH, parent_suffix)
        )
        now = utc_now_iso()
        record = ChildPass(
            **validated.model_dump(exclude={"id", "profile", "metadata"}),
            id=pass_id,
            profile=validated.profile,
            metadata=validated.metadata,
            status=profile.initial_status,
            created_at=now,
            updated_at=now,
        )
        seal(record)
        self.store.add_pass(record)

        logger.info(f"[Lifecycle] Created child {record.id} under {parent.id}")
        return record.model_copy(deep=True)

    async def update_pass_status(self, pass_id: str, new_status: str) -> PassRecord:
        """
        Move a pass to another status of its profile's flow.

        Only membership is checked: any status in the flow is reachable from
        any other, backwards included.
        """
        async with self.store.lock(pass_id):
            current = self.store.get_pass(pass_id)
            if current is None:
                raise NotFoundError(f"Pass not found: {pass_id}")

            profile = get_profile(current.profile)
            if not profile.allows(new_status):
                raise InvalidTransitionError(
                    f"Invalid status '{new_status}' for profile '{profile.name}'"
                )

            updated = self.commit(current, status=new_status)

        logger.info(f"[Lifecycle] {pass_id}: {current.status} -> {new_status}")
        return updated.model_copy(deep=True)

    def commit(self, current: PassRecord, **changes: Any) -> PassRecord:
        """
        Store a changed copy of `current`, bumping updated_at and resealing it.

        Callers must hold `store.lock(current.id)`.
        """
        updated = current.model_copy(deep=True, update=changes)
        updated.updated_at = utc_now_iso()
        seal(updated)
        return self.store.save_pass(updated)

    async def mutate_pass(self, pass_id: str, **changes: Any) -> PassRecord:
        """Apply attribute changes to a stored pass under its lock."""
        async with self.store.lock(pass_id):
            current = self.store.get_pass(pass_id)
            if current is None:
                raise NotFoundError(f"Pass not found: {pass_id}")
            updated = self.commit(current, **changes)
        return updated.model_copy(deep=True)

    def get_pass(self, pass_id: str) -> PassRecord | None:
        record = self.store.get_pass(pass_id)
        return record.model_copy(deep=True) if record else None

    def require_pass(self, pass_id: str) -> PassRecord:
        record = self.get_pass(pass_id)
        if record is None:
            raise NotFoundError(f"Pass not found: {pass_id}")
        return record

    def last_modified(self, pass_id: str) -> datetime | None:
        record = self.store.get_pass(pass_id)
        return parse_iso(record.updated_at) if record else None

    def passes_updated_since(
        self,
        pass_ids: Iterable[str],
        since: datetime | None,
        modified_at: Optional[Callable[[str], datetime | None]] = None,
    ) -> list[str]:
        """
        Filter `pass_ids` down to the passes changed strictly after `since`.

        `modified_at` looks up a serial's last change; it defaults to
        `last_modified` so callers can widen the lookup to other stores.
        Unknown ids are dropped.
        """
        modified_at = modified_at or self.last_modified
        changed = []
        for pass_id in pass_ids:
            modified = modified_at(pass_id)
            if modified is None:
                continue
            if since is None or modified > since:
                changed.append(pass_id)
        return changed
