"""Shared pytest fixtures for directory-sync tests."""

from datetime import datetime, timezone

import pytest
from dotenv import load_dotenv

from directory_sync.config import ReconciliationSettings
from directory_sync.reconciliation import (
    ChannelReconciler,
    TeamReconciler,
    UserReconciler,
)

load_dotenv()

CONFIG_ENV_VARS = (
    "DIRECTORY_SYNC_CONFIG",
    "DIRECTORY_SYNC_ACTOR",
    "DIRECTORY_SYNC_ARCHIVE_PREFIX",
    "DIRECTORY_SYNC_DEBUG",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def _isolate_config_env(monkeypatch):
    """Keep a developer's own .env or shell settings out of the tests."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    return ReconciliationSettings()


@pytest.fixture
def channel_reconciler(settings):
    return ChannelReconciler(settings)


@pytest.fixture
def team_reconciler(settings):
    return TeamReconciler(settings)


@pytest.fixture
def user_reconciler(settings):
    return UserReconciler(settings)


@pytest.fixture
def channel_record():
    """Factory fixture for external channel records."""

    def _create(**overrides):
        record = {
            "Id": "test-channel-id",
            "DisplayName": "Homework",
            "Description": "Homework questions",
            "MembershipType": "Standard",
            "WebUrl": "https://teams.example.com/l/channel/1",
            "FilesCount": 5,
            "FilesSize": 1024000,
            "MessageCount": 100,
            "IsModerationEnabled": False,
            "Category": "Class",
            "Tags": "important",
            "SortOrder": 1,
            "LastActivityDate": datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
            "LastMessageDate": "2024-03-01T09:30:00Z",
            "NotificationSettings": "AllActivity",
        }
        record.update(overrides)
        return record

    return _create


@pytest.fixture
def team_record():
    """Factory fixture for external team records."""

    def _create(**overrides):
        record = {
            "Id": "12345-67890",
            "DisplayName": "Test Team",
            "Description": "Test Description",
            "Visibility": "Public",
            "IsArchived": False,
        }
        record.update(overrides)
        return record

    return _create


@pytest.fixture
def user_record():
    """Factory fixture for external user records."""

    def _create(**overrides):
        record = {
            "Id": "test-user-id",
            "GivenName": "Jan",
            "Surname": "Kowalski",
            "UserPrincipalName": "jan.kowalski@example.com",
            "Mail": "jan.kowalski@example.org",
            "JobTitle": "Lecturer",
            "MobilePhone": "+48 600 000 000",
            "AccountEnabled": True,
        }
        record.update(overrides)
        return record

    return _create
