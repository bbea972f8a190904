"""Tests for the team reconciliation policy.

Covers:
- New and updated teams, visibility parsing
- Archive marker applied once, stripped once on restore
- Owner from the first owner entry, left alone when unusable
- Creation timestamp honoured on create only
- Team settings mapping
- Validation of identifier and display name
- Change detection and the external id consistency warning
"""

from datetime import datetime, timezone

import pytest

from directory_sync.config import ReconciliationSettings
from directory_sync.reconciliation import (
    MissingRequiredField,
    Team,
    TeamReconciler,
    TeamSettings,
    TeamStatus,
    TeamVisibility,
)
from directory_sync.reconciliation.team import parse_visibility


class TestTeamMapping:
    def test_new_team(self, team_reconciler, team_record):
        team = team_reconciler.synchronize(team_record(), actor="test@example.com")

        assert team.external_id == "12345-67890"
        assert team.display_name == "Test Team"
        assert team.description == "Test Description"
        assert team.visibility == TeamVisibility.PUBLIC
        assert team.status == TeamStatus.ACTIVE
        assert team.created_by == "test@example.com"
        assert team.created_at is not None
        assert team.id and team.id != team.external_id

    def test_existing_team_updated_in_place(self, team_reconciler, team_record):
        existing = Team(
            id="local-team",
            external_id="12345-67890",
            display_name="Old Name",
            visibility=TeamVisibility.PRIVATE,
        )

        result = team_reconciler.synchronize(
            team_record(DisplayName="Updated Team Name"),
            existing,
            actor="updater@example.com",
        )

        assert result is existing
        assert result.display_name == "Updated Team Name"
        assert result.visibility == TeamVisibility.PUBLIC
        assert result.modified_by == "updater@example.com"
        assert result.modified_at is not None
        assert result.id == "local-team"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Public", TeamVisibility.PUBLIC),
            ("PUBLIC", TeamVisibility.PUBLIC),
            ("private", TeamVisibility.PRIVATE),
            ("HiddenMembership", TeamVisibility.PRIVATE),
            ("", TeamVisibility.PRIVATE),
            (None, TeamVisibility.PRIVATE),
        ],
    )
    def test_parse_visibility(self, raw, expected):
        assert parse_visibility(raw) == expected

    def test_created_timestamp_honoured_on_create(self, team_reconciler, team_record):
        team = team_reconciler.synchronize(
            team_record(CreatedDateTime="2021-09-01T07:00:00Z")
        )
        assert team.created_at == datetime(2021, 9, 1, 7, 0, tzinfo=timezone.utc)

    def test_created_timestamp_ignored_on_update(self, team_reconciler, team_record):
        original = datetime(2023, 1, 1, tzinfo=timezone.utc)
        existing = Team(id="t", created_at=original)
        team_reconciler.synchronize(
            team_record(CreatedDateTime="2021-09-01T07:00:00Z"), existing
        )
        assert existing.created_at == original

    def test_mapping_is_idempotent(self, team_reconciler, team_record):
        record = team_record(IsArchived=True)
        team = Team()

        team_reconciler.map_fields(record, team)
        first = team.model_copy(deep=True)
        team_reconciler.map_fields(record, team)

        assert team == first


class TestArchiveMarker:
    def test_scenario_archive_existing_team(self, team_reconciler):
        existing = Team(
            id="local", external_id="t1", display_name="Math",
            status=TeamStatus.ACTIVE,
        )
        record = {"Id": "t1", "DisplayName": "Math", "IsArchived": True}

        team_reconciler.synchronize(record, existing)

        assert existing.status == TeamStatus.ARCHIVED
        assert existing.display_name == "ARCHIVED - Math"

    def test_scenario_archive_twice_no_double_prefix(self, team_reconciler):
        existing = Team(id="local", external_id="t1", display_name="Math")
        record = {"Id": "t1", "DisplayName": "Math", "IsArchived": True}

        team_reconciler.synchronize(record, existing)
        team_reconciler.synchronize(record, existing)

        assert existing.display_name == "ARCHIVED - Math"
        assert existing.status == TeamStatus.ARCHIVED

    def test_description_prefixed_when_present(self, team_reconciler, team_record):
        team = team_reconciler.synchronize(team_record(IsArchived=True))
        assert team.display_name == "ARCHIVED - Test Team"
        assert team.description == "ARCHIVED - Test Description"

    def test_empty_description_not_prefixed(self, team_reconciler, team_record):
        team = team_reconciler.synchronize(
            team_record(IsArchived=True, Description="")
        )
        assert team.description == ""

    def test_record_already_carrying_marker(self, team_reconciler, team_record):
        team = team_reconciler.synchronize(
            team_record(IsArchived=True, DisplayName="ARCHIVED - Test Team")
        )
        assert team.display_name == "ARCHIVED - Test Team"

    def test_restore_strips_marker(self, team_reconciler, team_record):
        existing = Team(id="local", external_id="12345-67890")
        team_reconciler.synchronize(team_record(IsArchived=True), existing)
        team_reconciler.synchronize(team_record(IsArchived=False), existing)

        assert existing.status == TeamStatus.ACTIVE
        assert existing.display_name == "Test Team"
        assert existing.description == "Test Description"

    def test_restore_strips_exactly_one_marker(self, team_reconciler):
        existing = Team(id="local", status=TeamStatus.ARCHIVED)
        record = {
            "Id": "t1",
            "DisplayName": "ARCHIVED - ARCHIVED - Math",
            "IsArchived": False,
        }
        team_reconciler.synchronize(record, existing)
        assert existing.display_name == "ARCHIVED - Math"

    def test_configured_prefix(self, team_record):
        reconciler = TeamReconciler(ReconciliationSettings(archive_prefix="[OLD] "))
        team = reconciler.synchronize(team_record(IsArchived=True))
        assert team.display_name == "[OLD] Test Team"


class TestOwner:
    def test_first_owner_upn(self, team_reconciler, team_record):
        team = team_reconciler.synchronize(
            team_record(
                Owners=[
                    {"UserPrincipalName": "owner@example.com"},
                    {"UserPrincipalName": "second@example.com"},
                ]
            )
        )
        assert team.owner == "owner@example.com"

    @pytest.mark.parametrize(
        "owners",
        [[], "owner@example.com", ["owner@example.com"], [{"Mail": "x"}], None],
    )
    def test_unusable_owner_data_keeps_existing(
        self, team_reconciler, team_record, owners
    ):
        existing = Team(id="local", owner="keep@example.com")
        team_reconciler.synchronize(team_record(Owners=owners), existing)
        assert existing.owner == "keep@example.com"


class TestTeamSettings:
    def test_settings_mapped(self, team_reconciler, team_record):
        team = team_reconciler.synchronize(
            team_record(
                TeamSettings={
                    "MemberSettings": {
                        "AllowCreateUpdateChannels": False,
                        "AllowDeleteChannels": "false",
                    },
                    "MessagingSettings": {"AllowUserDeleteMessages": False},
                }
            )
        )
        assert team.settings == TeamSettings(
            allow_create_update_channels=False,
            allow_delete_channels=False,
            allow_user_edit_messages=True,
            allow_user_delete_messages=False,
        )

    def test_absent_settings_left_untouched(self, team_reconciler, team_record):
        current = TeamSettings(allow_delete_channels=False)
        existing = Team(id="local", settings=current)
        team_reconciler.synchronize(team_record(), existing)
        assert existing.settings == current

    def test_partial_settings_keep_other_section(self, team_reconciler, team_record):
        existing = Team(
            id="local", settings=TeamSettings(allow_user_edit_messages=False)
        )
        team_reconciler.synchronize(
            team_record(TeamSettings={"MemberSettings": {}}), existing
        )
        assert existing.settings.allow_user_edit_messages is False


class TestTeamValidation:
    def test_missing_id(self, team_reconciler, team_record):
        record = team_record()
        del record["Id"]
        with pytest.raises(MissingRequiredField) as exc_info:
            team_reconciler.validate_external_record(record)
        assert exc_info.value.field_name == "Id"

    def test_missing_display_name(self, team_reconciler, team_record):
        with pytest.raises(MissingRequiredField, match="DisplayName"):
            team_reconciler.synchronize(team_record(DisplayName=None))

    def test_valid_record(self, team_reconciler, team_record):
        team_reconciler.validate_external_record(team_record())

    def test_extract_external_id(self, team_reconciler, team_record):
        assert team_reconciler.extract_external_id(team_record()) == "12345-67890"


class TestTeamChangeDetection:
    def _stored(self, **fields):
        base = dict(
            id="local",
            external_id="12345-67890",
            display_name="Test Team",
            description="Test Description",
            visibility=TeamVisibility.PUBLIC,
        )
        base.update(fields)
        return Team(**base)

    def test_no_changes(self, team_reconciler, team_record):
        assert team_reconciler.requires_synchronization(
            team_record(), self._stored()
        ) is False

    def test_display_name_change(self, team_reconciler, team_record):
        assert team_reconciler.requires_synchronization(
            team_record(DisplayName="Changed"), self._stored()
        )

    def test_visibility_change(self, team_reconciler, team_record):
        assert team_reconciler.requires_synchronization(
            team_record(Visibility="Private"), self._stored()
        )

    def test_archive_change(self, team_reconciler, team_record):
        assert team_reconciler.requires_synchronization(
            team_record(IsArchived=True), self._stored()
        )

    def test_already_archived_no_change(self, team_reconciler, team_record):
        stored = self._stored(
            display_name="ARCHIVED - Test Team",
            description="ARCHIVED - Test Description",
            status=TeamStatus.ARCHIVED,
        )
        assert not team_reconciler.requires_synchronization(
            team_record(IsArchived=True), stored
        )

    def test_owner_change(self, team_reconciler, team_record):
        assert team_reconciler.requires_synchronization(
            team_record(Owners=[{"UserPrincipalName": "new@example.com"}]),
            self._stored(owner="old@example.com"),
        )

    def test_external_id_mismatch_only_warns(
        self, team_reconciler, team_record, caplog
    ):
        stored = self._stored(external_id="other-id")
        assert team_reconciler.requires_synchronization(
            team_record(), stored
        ) is False
        assert "External id mismatch" in caplog.text

    def test_external_id_compared_case_insensitively(
        self, team_reconciler, team_record, caplog
    ):
        stored = self._stored(external_id="12345-67890".upper())
        team_reconciler.requires_synchronization(team_record(), stored)
        assert "External id mismatch" not in caplog.text
