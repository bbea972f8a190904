"""User reconciliation policy.

Soft-deleted users (``is_active`` is ``False``) are inert: no record can
change them and they never need a sync.  Deactivation is an explicit
administrative action, so an external "account disabled" flag is only
reported, never applied.
"""

from __future__ import annotations

import logging

from directory_sync.reconciliation import extractor
from directory_sync.reconciliation.comparer import has_string_changed
from directory_sync.reconciliation.contract import ReconciliationPolicy
from directory_sync.reconciliation.errors import MissingRequiredField
from directory_sync.reconciliation.extractor import ExternalRecord
from directory_sync.reconciliation.models import User

logger = logging.getLogger(__name__)

# Observed for diagnostics only, there is no local field for them yet
_OBSERVED_ONLY = (
    "Department",
    "OnPremisesDomainName",
    "OnPremisesSamAccountName",
)


class UserReconciler(ReconciliationPolicy[User]):
    """Map external user records onto ``User`` entities."""

    entity_type = User

    def is_inert(self, existing: User) -> bool:
        return not existing.is_active

    def map_fields(
        self, record: ExternalRecord, entity: User, is_update: bool = False
    ) -> None:
        if is_update and not entity.is_active:
            logger.warning(
                "Skipping mapping for soft-deleted user %s", entity.id
            )
            return

        entity.external_id = self.find_external_id(record)
        entity.first_name = extractor.get_string(record, "GivenName", "") or ""
        entity.last_name = extractor.get_string(record, "Surname", "") or ""

        upn = extractor.get_string(record, "UserPrincipalName", "")
        if upn:
            entity.upn = upn

        entity.phone = extractor.get_string(
            record, "MobilePhone"
        ) or self._first_business_phone(record)
        entity.alternate_email = extractor.get_string(record, "Mail")
        entity.position = extractor.get_string(record, "JobTitle")

        if not extractor.get_bool(record, "AccountEnabled", True) and entity.is_active:
            logger.warning(
                "User %s is disabled upstream but active locally; "
                "leaving local status unchanged",
                entity.upn,
            )

        created = extractor.get_datetime(record, "CreatedDateTime")
        if created is not None and not is_update:
            entity.created_at = created

        for key in _OBSERVED_ONLY:
            value = extractor.get_string(record, key)
            if value:
                logger.debug("User %s %s: %s", entity.upn, key, value)

        logger.debug(
            "Mapped user %s (external id %s)", entity.upn, entity.external_id
        )

    def validate_external_record(self, record: ExternalRecord) -> None:
        if not self.find_external_id(record):
            raise MissingRequiredField("Id", self.entity_name)
        if not extractor.get_string(record, "UserPrincipalName"):
            raise MissingRequiredField("UserPrincipalName", self.entity_name)

    def detect_changes(self, candidate: User, existing: User) -> bool:
        if not existing.is_active:
            logger.info(
                "Skipping change detection for soft-deleted user %s",
                existing.id,
            )
            return False

        has_changes = False

        if has_string_changed(candidate.first_name, existing.first_name):
            logger.debug(
                "User first name changed: '%s' -> '%s'",
                existing.first_name,
                candidate.first_name,
            )
            has_changes = True
        if has_string_changed(candidate.last_name, existing.last_name):
            has_changes = True
        if has_string_changed(candidate.upn, existing.upn):
            logger.warning(
                "User principal name changed: '%s' -> '%s'",
                existing.upn,
                candidate.upn,
            )
            has_changes = True
        if has_string_changed(candidate.phone, existing.phone):
            has_changes = True
        if has_string_changed(candidate.position, existing.position):
            has_changes = True

        return has_changes

    @staticmethod
    def _first_business_phone(record: ExternalRecord) -> str | None:
        phones = extractor.get_array(record, "BusinessPhones")
        if not phones:
            return None
        first = phones[0]
        if isinstance(first, str) and first.strip():
            return first.strip()
        return None
