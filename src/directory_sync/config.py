"""Reconciliation settings.

Reads policy settings from explicit arguments, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    Arguments > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    DIRECTORY_SYNC_ACTOR: Principal written to audit fields when the caller
        supplies none (optional, default: "sync")
    DIRECTORY_SYNC_ARCHIVE_PREFIX: Marker prepended to archived team names
        (optional, default: "ARCHIVED - ")
    DIRECTORY_SYNC_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_ACTOR = "sync"
ARCHIVE_PREFIX = "ARCHIVED - "
DEFAULT_MEMBERSHIP_TYPE = "Standard"
DEFAULT_GENERAL_CHANNEL_NAMES = ("General", "Ogólny")


@dataclass
class ReconciliationSettings:
    default_actor: str = DEFAULT_ACTOR
    archive_prefix: str = ARCHIVE_PREFIX
    general_channel_names: list[str] = field(
        default_factory=lambda: list(DEFAULT_GENERAL_CHANNEL_NAMES)
    )
    default_membership_type: str = DEFAULT_MEMBERSHIP_TYPE
    debug: bool = False


def validate_config(settings: ReconciliationSettings) -> None:
    """Validate settings and raise ValueError if invalid.

    Args:
        settings: ReconciliationSettings instance to validate.

    Raises:
        ValueError: If the actor, prefix or membership type is blank, or
            no general channel name is configured.
    """
    settings.default_actor = settings.default_actor.strip()
    if not settings.default_actor:
        raise ValueError(
            "Default actor cannot be empty. Set DIRECTORY_SYNC_ACTOR or "
            "'reconciliation.default_actor' in config.yml."
        )

    # The prefix keeps its trailing separator, only reject all-blank values
    if not settings.archive_prefix.strip():
        raise ValueError(
            "Archive prefix cannot be empty. Set DIRECTORY_SYNC_ARCHIVE_PREFIX "
            "or 'reconciliation.archive_prefix' in config.yml."
        )

    settings.general_channel_names = [
        name.strip() for name in settings.general_channel_names if name.strip()
    ]
    if not settings.general_channel_names:
        raise ValueError(
            "At least one general channel name must be configured."
        )

    settings.default_membership_type = settings.default_membership_type.strip()
    if not settings.default_membership_type:
        raise ValueError("Default membership type cannot be empty.")


def load_config(
    default_actor: str | None = None,
    archive_prefix: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> ReconciliationSettings:
    """Load settings with unified precedence.

    Resolution order for each field (highest to lowest):
        argument > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        default_actor: Override for the audit actor.
        archive_prefix: Override for the team archival marker.
        debug: Enable debug logging.
        yaml_fallbacks: Non-None values from the YAML ``reconciliation``
            section, used when neither argument nor env var is set.

    Returns:
        Validated ReconciliationSettings instance.

    Raises:
        ValueError: If a resolved value is invalid.
    """
    fb = yaml_fallbacks or {}

    final_actor = (
        default_actor
        or os.getenv("DIRECTORY_SYNC_ACTOR")
        or fb.get("default_actor")
        or DEFAULT_ACTOR
    )
    final_prefix = (
        archive_prefix
        or os.getenv("DIRECTORY_SYNC_ARCHIVE_PREFIX")
        or fb.get("archive_prefix")
        or ARCHIVE_PREFIX
    )

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("DIRECTORY_SYNC_DEBUG")
        final_debug = (
            env_debug if env_debug is not None else bool(fb.get("debug", False))
        )

    # YAML-only fields; an explicit empty value is left for validate_config
    general_names = fb.get("general_channel_names")
    if general_names is None:
        general_names = list(DEFAULT_GENERAL_CHANNEL_NAMES)
    membership_type = fb.get("default_membership_type")
    if membership_type is None:
        membership_type = DEFAULT_MEMBERSHIP_TYPE

    settings = ReconciliationSettings(
        default_actor=final_actor,
        archive_prefix=final_prefix,
        general_channel_names=list(general_names),
        default_membership_type=membership_type,
        debug=final_debug,
    )

    validate_config(settings)
    logger.debug(
        "Reconciliation settings: actor=%s, archive_prefix=%r",
        settings.default_actor,
        settings.archive_prefix,
    )

    return settings
