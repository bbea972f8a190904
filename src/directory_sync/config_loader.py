"""
YAML configuration discovery and loading for directory_sync.

Finds config files by convention, expands ``!include`` directives and
``${VAR}`` references, and merges the files so that the most specific
(project-level) file wins.

Usage:
    from directory_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DIRECTORY_SYNC_CONFIG"
PROJECT_CONFIG_DIR = ".directory_sync"

# ${VAR} or ${VAR:-fallback}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


# ---------------------------------------------------------------------------
# Environment references
# ---------------------------------------------------------------------------


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-fallback}`` in *value*.

    An unset or empty variable expands to its fallback, or to ``""`` when
    there is none.  An unterminated ``${`` is kept as-is.
    """

    def _expand(match: re.Match) -> str:
        current = os.environ.get(match.group(1))
        if current:
            return current
        fallback = match.group(2)
        return fallback if fallback is not None else ""

    return _ENV_REF.sub(_expand, value)


def _expand_tree(node: Any) -> Any:
    if isinstance(node, str):
        return interpolate_env_vars(node)
    if isinstance(node, dict):
        return {key: _expand_tree(item) for key, item in node.items()}
    if isinstance(node, list):
        return [_expand_tree(item) for item in node]
    return node


# ---------------------------------------------------------------------------
# !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with an ``!include`` tag.

    A subclass keeps the tag off the global ``yaml.SafeLoader``.  Each load
    carries the chain of files being included so cycles are rejected.
    """


def _include(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    chain: list[Path] = getattr(loader, "_include_stack", [])
    if target in chain:
        cycle = " -> ".join(str(p) for p in [*chain, target])
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} "
            f"(referenced from {Path(loader.name).resolve()})"
        )
    return _read_yaml(target, chain=[*chain, target])


ConfigLoader.add_constructor("!include", _include)


def _read_yaml(path: Path, *, chain: list[Path] | None = None) -> Any:
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = chain or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config files, highest precedence first.

    Candidates:
        1. The file named by ``DIRECTORY_SYNC_CONFIG``.
        2. ``.directory_sync/config.yml`` in the working directory.
        3. ``.directory_sync/config.yaml`` in the working directory.
        4. ``~/.config/directory_sync/config.yml``.
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / PROJECT_CONFIG_DIR
    candidates.append(project_dir / "config.yml")
    candidates.append(project_dir / "config.yaml")
    candidates.append(
        Path.home() / ".config" / "directory_sync" / "config.yml"
    )

    return [p for p in candidates if p.exists()]


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load every discovered config file and merge them.

    Files are applied from lowest to highest precedence; a later file's
    top-level sections replace earlier ones wholesale.  Environment
    references are expanded after the merge.  With no files the result
    is ``{}``.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using built-in defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _read_yaml(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s does not contain a mapping (%s), skipping",
                path,
                type(data).__name__,
            )

    return _expand_tree(merged)
