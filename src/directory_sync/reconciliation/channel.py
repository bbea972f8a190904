"""Channel reconciliation policy.

Channels are the one entity that tolerates a record without an identifier:
validation logs the gap and a fresh identifier is generated instead of
failing.  A channel named like a team's general channel, or flagged as
favourite-by-default, is always a standard channel.
"""

from __future__ import annotations

import logging
import uuid

from directory_sync.reconciliation import extractor
from directory_sync.reconciliation.comparer import (
    has_string_changed,
    has_value_changed,
)
from directory_sync.reconciliation.contract import ReconciliationPolicy
from directory_sync.reconciliation.errors import MissingRequiredField
from directory_sync.reconciliation.extractor import ExternalRecord
from directory_sync.reconciliation.models import Channel, ChannelStatus

logger = logging.getLogger(__name__)


class ChannelReconciler(ReconciliationPolicy[Channel]):
    """Map external channel records onto ``Channel`` entities."""

    entity_type = Channel

    def map_fields(
        self, record: ExternalRecord, entity: Channel, is_update: bool = False
    ) -> None:
        if not entity.id:
            entity.id = self.find_external_id(record) or str(uuid.uuid4())
        if not entity.team_id:
            entity.team_id = extractor.get_string(record, "TeamId", "") or ""

        entity.display_name = extractor.get_string(record, "DisplayName", "") or ""
        entity.description = extractor.get_string(record, "Description", "") or ""
        entity.channel_type = (
            extractor.get_string(
                record, "MembershipType", self.settings.default_membership_type
            )
            or self.settings.default_membership_type
        )
        entity.external_url = extractor.get_string(record, "WebUrl")

        # Counters never go negative
        entity.files_count = max(0, extractor.get_int(record, "FilesCount", 0))
        entity.files_size = max(0, extractor.get_int(record, "FilesSize", 0))
        entity.message_count = max(0, extractor.get_int(record, "MessageCount", 0))
        entity.last_activity_at = extractor.get_datetime(record, "LastActivityDate")
        entity.last_message_at = extractor.get_datetime(record, "LastMessageDate")

        entity.notification_settings = extractor.get_string(
            record, "NotificationSettings"
        )
        entity.is_moderation_enabled = extractor.get_bool(
            record, "IsModerationEnabled", False
        )
        entity.category = extractor.get_string(record, "Category")
        entity.tags = extractor.get_string(record, "Tags")
        entity.sort_order = extractor.get_int(record, "SortOrder", 0)

        entity.is_general = self._is_general(record, entity.display_name)
        if entity.is_general and entity.channel_type != "Standard":
            logger.debug(
                "General channel %s reported as '%s', forcing Standard",
                entity.id,
                entity.channel_type,
            )
            entity.channel_type = "Standard"
        entity.is_private = entity.channel_type.lower() == "private"

        # Archival is decided elsewhere; mapping always lands on Active
        entity.status = ChannelStatus.ACTIVE

        logger.debug(
            "Mapped channel %s (%s)", entity.id, entity.display_name
        )

    def validate_external_record(self, record: ExternalRecord) -> None:
        if not self.find_external_id(record):
            logger.warning(
                "Channel record has no 'Id', a new identifier will be generated"
            )
        if not extractor.get_string(record, "DisplayName"):
            raise MissingRequiredField("DisplayName", self.entity_name)

    def resolve_external_id(self, record: ExternalRecord) -> str:
        return self.find_external_id(record) or str(uuid.uuid4())

    def detect_changes(self, candidate: Channel, existing: Channel) -> bool:
        has_changes = False

        if has_string_changed(candidate.display_name, existing.display_name):
            logger.debug(
                "Channel display name changed: '%s' -> '%s'",
                existing.display_name,
                candidate.display_name,
            )
            has_changes = True
        if has_string_changed(candidate.description, existing.description):
            has_changes = True
        if has_string_changed(candidate.channel_type, existing.channel_type):
            has_changes = True
        if has_value_changed(candidate.is_private, existing.is_private):
            has_changes = True
        if has_value_changed(candidate.is_general, existing.is_general):
            has_changes = True

        if (
            has_value_changed(candidate.message_count, existing.message_count)
            or has_value_changed(candidate.files_count, existing.files_count)
            or has_value_changed(candidate.files_size, existing.files_size)
        ):
            logger.debug("Channel %s statistics changed", existing.id)
            has_changes = True

        return has_changes

    def _is_general(self, record: ExternalRecord, display_name: str) -> bool:
        name = display_name.casefold()
        if any(name == n.casefold() for n in self.settings.general_channel_names):
            return True
        return extractor.get_optional_bool(record, "isFavoriteByDefault") is True
