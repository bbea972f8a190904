"""Create-or-update orchestration shared by every reconciliation policy.

A policy supplies the entity-specific hooks:

- ``validate_external_record``: reject records missing required fields.
- ``map_fields``: copy fields from the record onto an entity (idempotent,
  never raises for bad field values).
- ``detect_changes``: compare a freshly mapped entity with a stored one.
- ``perform_additional_sync``: optional post-processing, no-op by default.

The fixed orchestration lives in the free functions ``synchronize`` and
``requires_synchronization`` so it can be exercised against any policy.
``ReconciliationPolicy`` also exposes both as methods for convenience.

Order within ``synchronize``::

    validate -> resolve id -> create or reuse entity -> map fields
             -> stamp audit fields -> additional sync -> return entity

Validation runs before anything is mutated.  The engine holds no state of
its own; callers must not run two syncs against the same entity instance
at once.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import ClassVar, Generic, TypeVar

from directory_sync.config import ReconciliationSettings
from directory_sync.reconciliation import extractor
from directory_sync.reconciliation.errors import (
    InvalidExternalRecord,
    MissingIdentifier,
)
from directory_sync.reconciliation.extractor import ExternalRecord
from directory_sync.reconciliation.models import BaseEntity

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=BaseEntity)

ID_KEYS = ("Id", "id", "ID")


class ReconciliationPolicy(ABC, Generic[EntityT]):
    """Entity-specific hooks for reconciling external records.

    Args:
        settings: Reconciliation settings; built-in defaults when omitted.
    """

    entity_type: ClassVar[type[BaseEntity]]

    def __init__(self, settings: ReconciliationSettings | None = None) -> None:
        self.settings = settings or ReconciliationSettings()

    @property
    def entity_name(self) -> str:
        return self.entity_type.__name__

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_external_record(self, record: ExternalRecord) -> None:
        """Raise ``MissingRequiredField`` if *record* cannot be reconciled."""

    @abstractmethod
    def map_fields(
        self, record: ExternalRecord, entity: EntityT, is_update: bool = False
    ) -> None:
        """Copy fields from *record* onto *entity* in place."""

    @abstractmethod
    def detect_changes(self, candidate: EntityT, existing: EntityT) -> bool:
        """Return ``True`` if *candidate* differs meaningfully from *existing*."""

    def perform_additional_sync(
        self, record: ExternalRecord, entity: EntityT, is_update: bool
    ) -> None:
        """Post-processing after audit stamping.  Does nothing by default."""
        logger.debug(
            "No additional sync for %s %s", self.entity_name, entity.id
        )

    def is_inert(self, existing: EntityT) -> bool:
        """Return ``True`` if *existing* must not be touched by any sync."""
        return False

    # ------------------------------------------------------------------
    # Identifier resolution
    # ------------------------------------------------------------------

    def find_external_id(self, record: ExternalRecord) -> str | None:
        """Return the first identifier found under "Id", "id" or "ID"."""
        for key in ID_KEYS:
            value = extractor.get_string(record, key)
            if value:
                return value
        return None

    def extract_external_id(self, record: ExternalRecord) -> str:
        """Return the record's identifier.

        Raises:
            MissingIdentifier: If no recognised identifier key is present.
        """
        external_id = self.find_external_id(record)
        if not external_id:
            raise MissingIdentifier(self.entity_name)
        return external_id

    def resolve_external_id(self, record: ExternalRecord) -> str:
        """Identifier used by ``synchronize``; policies may self-heal here."""
        return self.extract_external_id(record)

    def new_entity(self) -> EntityT:
        return self.entity_type()  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Orchestration shortcuts
    # ------------------------------------------------------------------

    def synchronize(
        self,
        record: ExternalRecord | None,
        existing: EntityT | None = None,
        actor: str | None = None,
    ) -> EntityT:
        return synchronize(self, record, existing, actor)

    def requires_synchronization(
        self, record: ExternalRecord | None, existing: EntityT | None
    ) -> bool:
        return requires_synchronization(self, record, existing)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def synchronize(
    policy: ReconciliationPolicy[EntityT],
    record: ExternalRecord | None,
    existing: EntityT | None = None,
    actor: str | None = None,
) -> EntityT:
    """Create a new entity from *record*, or update *existing* with it.

    Args:
        policy: The entity-specific policy.
        record: External record for the entity.
        existing: Stored entity to update, or ``None`` to create one.
        actor: Principal recorded in the audit fields; the configured
            default actor when omitted.

    Returns:
        The created or updated entity, for the caller to persist.

    Raises:
        InvalidExternalRecord: If *record* is ``None`` or not a mapping.
        MissingRequiredField: If the policy rejects the record.
    """
    if record is None:
        raise InvalidExternalRecord(
            f"External {policy.entity_name} record is required"
        )
    if not isinstance(record, Mapping):
        raise InvalidExternalRecord(
            f"External {policy.entity_name} record must be a mapping, "
            f"got {type(record).__name__}"
        )

    policy.validate_external_record(record)
    external_id = policy.resolve_external_id(record)

    is_update = existing is not None
    logger.debug(
        "Synchronizing %s with external id %s (update=%s)",
        policy.entity_name,
        external_id,
        is_update,
    )

    if existing is not None and policy.is_inert(existing):
        logger.warning(
            "Skipping synchronization of inactive %s %s",
            policy.entity_name,
            existing.id,
        )
        return existing

    entity = existing if existing is not None else policy.new_entity()
    policy.map_fields(record, entity, is_update)

    by = actor or policy.settings.default_actor
    now = datetime.now(timezone.utc)
    if is_update:
        entity.modified_at = now
        entity.modified_by = by
        logger.debug("Marked %s %s as modified", policy.entity_name, entity.id)
    else:
        if entity.created_at is None:
            entity.created_at = now
        if not entity.created_by:
            entity.created_by = by
        if not entity.id:
            entity.id = str(uuid.uuid4())
        logger.debug("Created new %s %s", policy.entity_name, entity.id)

    policy.perform_additional_sync(record, entity, is_update)
    return entity


def requires_synchronization(
    policy: ReconciliationPolicy[EntityT],
    record: ExternalRecord | None,
    existing: EntityT | None,
) -> bool:
    """Return ``True`` if *record* differs from *existing*.

    Maps the record onto a throwaway entity and lets the policy compare it
    with *existing*; nothing passed in is mutated.  A missing argument
    always needs a sync; an inert entity never does, whatever the record
    holds.  Any error during the check is logged and treated as "changed".
    """
    if record is None or existing is None:
        return True
    if policy.is_inert(existing):
        logger.debug(
            "%s %s is inactive, no synchronization needed",
            policy.entity_name,
            existing.id,
        )
        return False

    try:
        policy.validate_external_record(record)
        candidate = policy.new_entity()
        policy.map_fields(record, candidate, False)
        has_changes = policy.detect_changes(candidate, existing)
    except Exception:
        logger.exception(
            "Change detection failed for %s %s, assuming changed",
            policy.entity_name,
            existing.id,
        )
        return True

    if has_changes:
        logger.debug(
            "Detected changes in %s %s", policy.entity_name, existing.id
        )
    return has_changes
