"""multifolder configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (MULTIFOLDER_DB, MULTIFOLDER_VERIFY_FOLDERS)
  3. Per-project multifolder.yaml  (current directory)
  4. Global ~/.multifolder/config.yaml
  5. Hardcoded defaults

All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".multifolder"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "multifolder.yaml"

DEFAULT_DB_PATH: str = ".multifolder.db"

# Known top-level sections; anything else produces a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["database", "membership"])

_TRUE_STRINGS = frozenset(["1", "true", "yes", "on"])
_FALSE_STRINGS = frozenset(["0", "false", "no", "off", ""])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file or environment variable has an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class DatabaseCfg:
    """Storage configuration (multifolder.yaml: database:)."""

    path: str = DEFAULT_DB_PATH
    busy_timeout: float = 5.0


@dataclass
class MembershipCfg:
    """Write-behaviour configuration (multifolder.yaml: membership:).

    Attributes:
        verify_folders: Reject folder ids missing from the folder mirror.
            Off by default: folder ids are trusted as the legacy system did.
        notify_on_noop: Emit an "added" event even when the pair already existed.
    """

    verify_folders: bool = False
    notify_on_noop: bool = False


@dataclass
class MultifolderConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    membership: MembershipCfg = field(default_factory=MembershipCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _as_bool(value: Any, key: str, source: str = "") -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    where = f" in '{source}'" if source else ""
    raise ConfigError(f"'{key}'{where} must be true or false, got '{value}'")


def _as_section(data: dict[str, Any], name: str, source: Path | str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' in '{source}' must be a mapping, got {type(section).__name__}")
    return section


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at the top level")
    return raw


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any], source: str = "config") -> MultifolderConfig:
    """Build a *MultifolderConfig* from one raw YAML layer or the merged layers."""
    cfg = MultifolderConfig()

    if "database" in data:
        d = _as_section(data, "database", source)
        try:
            busy_timeout = float(d.get("busy_timeout", cfg.database.busy_timeout))
        except (TypeError, ValueError):
            raise ConfigError(
                f"database.busy_timeout in '{source}' must be a number, "
                f"got '{d.get('busy_timeout')}'"
            ) from None
        if busy_timeout < 0:
            raise ConfigError(
                f"database.busy_timeout in '{source}' must be >= 0, got {busy_timeout}"
            )
        cfg.database = DatabaseCfg(
            path=str(d.get("path", cfg.database.path)),
            busy_timeout=busy_timeout,
        )

    if "membership" in data:
        m = _as_section(data, "membership", source)
        cfg.membership = MembershipCfg(
            verify_folders=_as_bool(
                m.get("verify_folders", cfg.membership.verify_folders),
                "membership.verify_folders",
                source,
            ),
            notify_on_noop=_as_bool(
                m.get("notify_on_noop", cfg.membership.notify_on_noop),
                "membership.notify_on_noop",
                source,
            ),
        )

    return cfg


def _apply_env_overrides(cfg: MultifolderConfig) -> MultifolderConfig:
    """Apply MULTIFOLDER_* environment variable overrides (layer 2)."""
    if path := os.environ.get("MULTIFOLDER_DB"):
        cfg.database.path = path
    if (verify := os.environ.get("MULTIFOLDER_VERIFY_FOLDERS")) is not None:
        cfg.membership.verify_folders = _as_bool(verify, "MULTIFOLDER_VERIFY_FOLDERS")
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> MultifolderConfig:
    """Load and return a merged *MultifolderConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *multifolder.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file is malformed or a value has the wrong type.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _warn_unknown_keys(raw_global, global_path)
        _cfg_from_dict(raw_global, source=str(global_path))
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        _cfg_from_dict(raw_project, source=str(project_cfg_path))
        merged = _deep_merge(merged, raw_project)

    # Each layer was validated against its own file above.
    cfg = _cfg_from_dict(merged, source="merged config")

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.multifolder/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# multifolder global configuration.\n"
            "# Per-project settings in ./multifolder.yaml override these.\n"
            "\n"
            "membership:\n"
            "  verify_folders: false\n"
            "  notify_on_noop: false\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
