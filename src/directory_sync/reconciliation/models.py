"""Pydantic models for the local side of directory reconciliation.

Defines the entities the reconciliation engine maps external records onto:

- ``BaseEntity``: identifier, audit fields and the ``is_active`` soft-delete flag.
- ``Channel``: a sub-channel of a team.
- ``Team``: a directory group, with an archival lifecycle.
- ``User``: a directory account.

The models are mutable: policies update the instance handed to them in
place, and the caller persists it afterwards.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel

from directory_sync.config import ARCHIVE_PREFIX


class ChannelStatus(str, Enum):
    """Lifecycle status of a channel."""

    ACTIVE = "Active"
    ARCHIVED = "Archived"


class TeamStatus(str, Enum):
    """Lifecycle status of a team."""

    ACTIVE = "Active"
    ARCHIVED = "Archived"


class TeamVisibility(str, Enum):
    """Who can discover and join a team."""

    PUBLIC = "Public"
    PRIVATE = "Private"


class BaseEntity(BaseModel):
    """Fields shared by every locally stored entity.

    Attributes:
        id: Local identifier, assigned once at creation.
        created_at: When the entity was first created (UTC).
        created_by: Principal that created the entity.
        modified_at: When the entity was last updated (UTC).
        modified_by: Principal that last updated the entity.
        is_active: ``False`` once the entity is soft-deleted.
    """

    id: str = ""
    created_at: datetime | None = None
    created_by: str = ""
    modified_at: datetime | None = None
    modified_by: str | None = None
    is_active: bool = True

    def mark_as_modified(self, modified_by: str) -> None:
        """Stamp the modification audit fields with the current UTC time."""
        self.modified_at = datetime.now(timezone.utc)
        self.modified_by = modified_by

    def mark_as_deleted(self, deleted_by: str) -> None:
        """Soft-delete the entity and stamp the modification audit fields."""
        self.is_active = False
        self.mark_as_modified(deleted_by)


class Channel(BaseEntity):
    """A channel inside a team.

    ``channel_type`` holds the external membership type (``"Standard"``,
    ``"Private"``, ...).  ``is_private`` and ``is_general`` are derived
    from it and from the display name during mapping.
    """

    team_id: str = ""
    display_name: str = ""
    description: str = ""
    channel_type: str = "Standard"
    external_url: str | None = None
    files_count: int = 0
    files_size: int = 0
    message_count: int = 0
    last_activity_at: datetime | None = None
    last_message_at: datetime | None = None
    notification_settings: str | None = None
    is_moderation_enabled: bool = False
    category: str | None = None
    tags: str | None = None
    sort_order: int = 0
    is_private: bool = False
    is_general: bool = False
    status: ChannelStatus = ChannelStatus.ACTIVE


class TeamSettings(BaseModel):
    """Member and messaging permissions reported for a team."""

    allow_create_update_channels: bool = True
    allow_delete_channels: bool = True
    allow_user_edit_messages: bool = True
    allow_user_delete_messages: bool = True


class Team(BaseEntity):
    """A directory group.

    While ``status`` is ``ARCHIVED`` the display name and description carry
    an archival marker prefix; the base accessors return them without it.
    """

    external_id: str | None = None
    display_name: str = ""
    description: str = ""
    visibility: TeamVisibility = TeamVisibility.PRIVATE
    status: TeamStatus = TeamStatus.ACTIVE
    owner: str = ""
    settings: TeamSettings | None = None

    @property
    def is_archived(self) -> bool:
        return self.status == TeamStatus.ARCHIVED

    def get_base_display_name(self, prefix: str = ARCHIVE_PREFIX) -> str:
        """Display name with one leading archival marker removed."""
        return _strip_prefix(self.display_name, prefix)

    def get_base_description(self, prefix: str = ARCHIVE_PREFIX) -> str:
        """Description with one leading archival marker removed."""
        return _strip_prefix(self.description, prefix)


class User(BaseEntity):
    """A directory account.

    ``upn`` (user principal name) is the address other systems use for the
    account.  ``position`` holds the job title.
    """

    external_id: str | None = None
    first_name: str = ""
    last_name: str = ""
    upn: str = ""
    phone: str | None = None
    alternate_email: str | None = None
    position: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return self.full_name

    @property
    def email(self) -> str:
        return self.upn


def _strip_prefix(value: str, prefix: str) -> str:
    if prefix and value.startswith(prefix):
        return value[len(prefix) :]
    return value
