"""Error taxonomy for the reconciliation engine.

All errors derive from ``ReconciliationError``, itself a ``ValueError``, so
callers that already treat bad input as ``ValueError`` keep working.

- ``InvalidExternalRecord``: the external record is absent or not a mapping.
- ``MissingRequiredField``: a field the entity cannot exist without is
  absent or blank.
- ``MissingIdentifier``: none of the recognised identifier keys is present.

Field extraction problems are never raised; see ``extractor``.
"""

from __future__ import annotations


class ReconciliationError(ValueError):
    """Base class for reconciliation failures."""


class InvalidExternalRecord(ReconciliationError):
    """The external record itself is missing or malformed."""


class MissingRequiredField(ReconciliationError):
    """A required field is absent from the external record.

    Attributes:
        field_name: Name of the missing external field.
        entity_type: Name of the entity being reconciled.
    """

    def __init__(self, field_name: str, entity_type: str = "") -> None:
        self.field_name = field_name
        self.entity_type = entity_type
        subject = f"{entity_type} record" if entity_type else "Record"
        super().__init__(
            f"{subject} is missing required field '{field_name}'"
        )


class MissingIdentifier(MissingRequiredField):
    """No identifier key ("Id", "id", "ID") is present in the record."""

    def __init__(self, entity_type: str = "") -> None:
        super().__init__("Id", entity_type)
