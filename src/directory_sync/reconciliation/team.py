"""Team reconciliation policy.

The external archive flag drives the local ``status``, and the status in
turn decides whether the display name and description carry the archival
marker.  Applying the marker is idempotent; restoring a team strips
exactly one marker.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from directory_sync.reconciliation import extractor
from directory_sync.reconciliation.comparer import (
    has_string_changed,
    has_value_changed,
)
from directory_sync.reconciliation.contract import ReconciliationPolicy
from directory_sync.reconciliation.errors import MissingRequiredField
from directory_sync.reconciliation.extractor import ExternalRecord
from directory_sync.reconciliation.models import (
    Team,
    TeamSettings,
    TeamStatus,
    TeamVisibility,
)

logger = logging.getLogger(__name__)


def parse_visibility(value: str | None) -> TeamVisibility:
    """Parse an external visibility string; anything but "public" is private."""
    if value and value.strip().lower() == "public":
        return TeamVisibility.PUBLIC
    return TeamVisibility.PRIVATE


class TeamReconciler(ReconciliationPolicy[Team]):
    """Map external team records onto ``Team`` entities."""

    entity_type = Team

    def map_fields(
        self, record: ExternalRecord, entity: Team, is_update: bool = False
    ) -> None:
        entity.external_id = self.find_external_id(record)
        entity.display_name = extractor.get_string(record, "DisplayName", "") or ""
        entity.description = extractor.get_string(record, "Description", "") or ""
        entity.visibility = parse_visibility(
            extractor.get_string(record, "Visibility", "Private")
        )

        self._apply_archive_state(
            entity, extractor.get_bool(record, "IsArchived", False)
        )

        owner = self._first_owner(record)
        if owner:
            entity.owner = owner

        created = extractor.get_datetime(record, "CreatedDateTime")
        if created is not None and not is_update:
            entity.created_at = created

        team_settings = extractor.get_record(record, "TeamSettings")
        if team_settings is not None:
            entity.settings = self._map_settings(team_settings, entity.settings)

        member_count = extractor.get_optional_int(record, "MemberCount")
        if member_count is not None:
            logger.debug(
                "Team %s reports %d members", entity.external_id, member_count
            )

        logger.debug(
            "Mapped team %s (%s)", entity.external_id, entity.display_name
        )

    def validate_external_record(self, record: ExternalRecord) -> None:
        external_id = self.find_external_id(record)
        if not external_id:
            raise MissingRequiredField("Id", self.entity_name)
        if not extractor.get_string(record, "DisplayName"):
            raise MissingRequiredField("DisplayName", self.entity_name)
        logger.debug("Team record %s is valid", external_id)

    def detect_changes(self, candidate: Team, existing: Team) -> bool:
        has_changes = False

        if has_string_changed(candidate.display_name, existing.display_name):
            logger.debug(
                "Team display name changed: '%s' -> '%s'",
                existing.display_name,
                candidate.display_name,
            )
            has_changes = True
        if has_string_changed(candidate.description, existing.description):
            logger.debug("Team description changed")
            has_changes = True
        if has_value_changed(candidate.visibility, existing.visibility):
            logger.debug(
                "Team visibility changed: %s -> %s",
                existing.visibility.value,
                candidate.visibility.value,
            )
            has_changes = True
        if has_value_changed(candidate.status, existing.status):
            logger.debug(
                "Team status changed: %s -> %s",
                existing.status.value,
                candidate.status.value,
            )
            has_changes = True
        if has_string_changed(candidate.owner, existing.owner):
            logger.debug(
                "Team owner changed: '%s' -> '%s'",
                existing.owner,
                candidate.owner,
            )
            has_changes = True

        if (candidate.external_id or "").lower() != (
            existing.external_id or ""
        ).lower():
            logger.warning(
                "External id mismatch for team %s: record %s, local %s",
                existing.id,
                candidate.external_id,
                existing.external_id,
            )

        return has_changes

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply_archive_state(self, entity: Team, is_archived: bool) -> None:
        prefix = self.settings.archive_prefix
        if is_archived:
            if entity.status != TeamStatus.ARCHIVED:
                logger.info(
                    "Team %s is archived upstream, archiving locally",
                    entity.external_id,
                )
                entity.status = TeamStatus.ARCHIVED
            if not entity.display_name.startswith(prefix):
                entity.display_name = prefix + entity.display_name
            if entity.description and not entity.description.startswith(prefix):
                entity.description = prefix + entity.description
        elif entity.status == TeamStatus.ARCHIVED:
            logger.info(
                "Team %s was restored upstream, reactivating locally",
                entity.external_id,
            )
            entity.status = TeamStatus.ACTIVE
            entity.display_name = entity.get_base_display_name(prefix)
            entity.description = entity.get_base_description(prefix)

    @staticmethod
    def _first_owner(record: ExternalRecord) -> str | None:
        owners = extractor.get_array(record, "Owners")
        if not owners:
            return None
        first = owners[0]
        if not isinstance(first, Mapping):
            logger.debug(
                "Ignoring owner entry of type %s", type(first).__name__
            )
            return None
        return extractor.get_string(first, "UserPrincipalName")

    @staticmethod
    def _map_settings(
        team_settings: ExternalRecord, current: TeamSettings | None
    ) -> TeamSettings:
        base = current or TeamSettings()
        values = base.model_dump()

        member = extractor.get_record(team_settings, "MemberSettings")
        if member is not None:
            values["allow_create_update_channels"] = extractor.get_bool(
                member, "AllowCreateUpdateChannels", True
            )
            values["allow_delete_channels"] = extractor.get_bool(
                member, "AllowDeleteChannels", True
            )

        messaging = extractor.get_record(team_settings, "MessagingSettings")
        if messaging is not None:
            values["allow_user_edit_messages"] = extractor.get_bool(
                messaging, "AllowUserEditMessages", True
            )
            values["allow_user_delete_messages"] = extractor.get_bool(
                messaging, "AllowUserDeleteMessages", True
            )

        return TeamSettings(**values)
