"""Bootstrap for processes that host the reconciliation engine.

Loads settings from every source in precedence order, configures logging,
and builds one policy per entity kind sharing those settings.
"""

import logging
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

from directory_sync.config import ReconciliationSettings, load_config
from directory_sync.config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from directory_sync.config_schema import UnifiedConfig, build_config
from directory_sync.logger import setup_logging
from directory_sync.reconciliation import (
    ChannelReconciler,
    TeamReconciler,
    UserReconciler,
)

logger = logging.getLogger(__name__)


@dataclass
class Reconcilers:
    settings: ReconciliationSettings
    channels: ChannelReconciler
    teams: TeamReconciler
    users: UserReconciler


def load_settings(
    overrides: dict[str, Any] | None = None,
) -> tuple[ReconciliationSettings, UnifiedConfig]:
    """Resolve settings from arguments, env vars, .env and YAML.

    Args:
        overrides: Optional ``default_actor``, ``archive_prefix`` and
            ``debug`` values that win over every other source.

    Returns:
        Tuple of (validated settings, parsed YAML config).

    Raises:
        ValueError: If any source holds an invalid value.
    """
    # .env first so ${VAR} references in YAML can see its values
    load_dotenv()

    unified = UnifiedConfig()
    yaml_fallbacks: dict[str, Any] | None = None
    config_files = discover_config_files()
    if config_files:
        unified = build_config(load_hierarchical_config())
        yaml_fallbacks = {
            k: v
            for k, v in unified.reconciliation.model_dump().items()
            if v is not None
        }
        logger.info("Configuration loaded from: %s", config_files[0])

    opts = overrides or {}
    settings = load_config(
        default_actor=opts.get("default_actor"),
        archive_prefix=opts.get("archive_prefix"),
        debug=opts.get("debug", False),
        yaml_fallbacks=yaml_fallbacks,
    )
    return settings, unified


def bootstrap(
    overrides: dict[str, Any] | None = None,
    mode: str = "cli",
    configure_logging: bool = True,
) -> Reconcilers:
    """Load settings, set up logging and build the three policies.

    Raises:
        RuntimeError: If configuration is invalid.
    """
    try:
        settings, unified = load_settings(overrides)
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        raise RuntimeError(f"Configuration error: {e}") from e

    if configure_logging:
        setup_logging(
            mode=mode,
            debug=settings.debug,
            log_file=unified.logging.file,
            debug_format=unified.logging.format,
            level=unified.logging.level,
        )

    logger.info(
        "Reconciliation ready (actor=%s)", settings.default_actor
    )
    return Reconcilers(
        settings=settings,
        channels=ChannelReconciler(settings),
        teams=TeamReconciler(settings),
        users=UserReconciler(settings),
    )
