"""Reconciliation of external directory records with local entities.

Public API for turning loosely-typed external records (channels, teams,
users) into strongly-typed local entities, either by creating a new entity
or by updating a stored one.

Architecture
------------
One fixed orchestration (``contract.synchronize``) drives three policies
that each supply validation, field mapping and change detection for their
entity type.  The engine does no I/O: the caller fetches the external
record and the stored entity, and persists whatever comes back.

Modules:

- ``models``     -- ``Channel``, ``Team``, ``User`` and their enums.
- ``extractor``  -- never-raising typed reads from external records.
- ``comparer``   -- whitespace-insensitive string comparison.
- ``contract``   -- ``ReconciliationPolicy``, ``synchronize``,
  ``requires_synchronization``.
- ``channel``, ``team``, ``user`` -- the concrete policies.
- ``errors``     -- ``InvalidExternalRecord``, ``MissingRequiredField``,
  ``MissingIdentifier``.

Usage example
-------------
::

    from directory_sync.reconciliation import create_reconciler

    teams = create_reconciler("team")

    record = {"Id": "t1", "DisplayName": "Math", "IsArchived": True}
    stored = repository.get_team_by_external_id("t1")   # may be None

    if teams.requires_synchronization(record, stored):
        team = teams.synchronize(record, stored, actor="admin@example.com")
        repository.save(team)
"""

from directory_sync.config import ReconciliationSettings

from .channel import ChannelReconciler
from .comparer import has_string_changed, has_value_changed
from .contract import (
    ReconciliationPolicy,
    requires_synchronization,
    synchronize,
)
from .errors import (
    InvalidExternalRecord,
    MissingIdentifier,
    MissingRequiredField,
    ReconciliationError,
)
from .models import (
    BaseEntity,
    Channel,
    ChannelStatus,
    Team,
    TeamSettings,
    TeamStatus,
    TeamVisibility,
    User,
)
from .team import TeamReconciler
from .user import UserReconciler

_POLICY_MAP: dict[str, type[ReconciliationPolicy]] = {
    "channel": ChannelReconciler,
    "team": TeamReconciler,
    "user": UserReconciler,
}


def create_reconciler(
    kind: str, settings: ReconciliationSettings | None = None
) -> ReconciliationPolicy:
    """Create the reconciliation policy for an entity kind.

    Args:
        kind: One of ``"channel"``, ``"team"``, ``"user"``.
        settings: Optional settings shared by the policy.

    Returns:
        A ``ReconciliationPolicy`` instance.

    Raises:
        ValueError: If the kind is not recognised.
    """
    cls = _POLICY_MAP.get(kind)
    if cls is None:
        raise ValueError(
            f"Unknown entity kind: '{kind}'. Valid kinds: {sorted(_POLICY_MAP.keys())}"
        )
    return cls(settings)


__all__ = [
    "BaseEntity",
    "Channel",
    "ChannelReconciler",
    "ChannelStatus",
    "InvalidExternalRecord",
    "MissingIdentifier",
    "MissingRequiredField",
    "ReconciliationError",
    "ReconciliationPolicy",
    "Team",
    "TeamReconciler",
    "TeamSettings",
    "TeamStatus",
    "TeamVisibility",
    "User",
    "UserReconciler",
    "create_reconciler",
    "has_string_changed",
    "has_value_changed",
    "requires_synchronization",
    "synchronize",
]
