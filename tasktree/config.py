"""Configuration defaults, env vars, and config-file loading."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .aggregate import DEFAULT_TEMPLATE
from .errors import ConfigError
from .parser import DEFAULT_IGNORE_TAG

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".tasktree.yaml"
DEFAULT_INLINE_FIELD = "COMPLETE"

ENV_VARS = {
    "vault_root": "TASKTREE_VAULT",
    "ignore_tag": "TASKTREE_IGNORE_TAG",
    "inline_field": "TASKTREE_INLINE_FIELD",
    "template": "TASKTREE_TEMPLATE",
    "auto_propagate": "TASKTREE_AUTO_PROPAGATE",
}


@dataclass
class Settings:
    """Runtime settings for one vault."""

    vault_root: str = "."
    ignore_tag: str = DEFAULT_IGNORE_TAG
    # Inline field that renders progress, e.g. COMPLETE:[[project]]
    inline_field: str = DEFAULT_INLINE_FIELD
    template: str = DEFAULT_TEMPLATE
    # When off, parents are never rewritten; progress is still reported.
    auto_propagate: bool = True

    def __post_init__(self) -> None:
        for name in ("ignore_tag", "inline_field", "template"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise ConfigError(f"{name} must be a string, got {value!r}")
        self.ignore_tag = self.ignore_tag.lstrip("#")
        if not self.ignore_tag:
            raise ConfigError("ignore_tag must not be empty")
        if not self.inline_field:
            raise ConfigError("inline_field must not be empty")

    def merged(self, overrides: Mapping[str, Any]) -> Settings:
        """Return a copy with every non-None value of ``overrides`` applied."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown setting(s): {', '.join(unknown)}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "auto_propagate" in changes:
            changes["auto_propagate"] = _parse_bool(changes["auto_propagate"])
        return replace(self, **changes)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def settings_from_env(env: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect settings from ``TASKTREE_*`` environment variables."""
    env = os.environ if env is None else env
    found: dict[str, Any] = {}
    for name, var in ENV_VARS.items():
        value = env.get(var)
        if value:
            found[name] = value
    return found


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read settings from a YAML mapping."""
    p = Path(path)
    try:
        with open(p, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {p}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{p} must contain a mapping of settings")
    logger.debug("Loaded settings from %s", p)
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def load_settings(
    vault_root: str | None = None,
    config_path: str | None = None,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> Settings:
    """Build settings from defaults, config file, environment, then overrides.

    The config file defaults to ``.tasktree.yaml`` in the vault root and is
    optional unless ``config_path`` is given explicitly.
    """
    from_env = settings_from_env(env)
    root = vault_root or from_env.get("vault_root") or "."

    if config_path is not None:
        from_file = read_config_file(config_path)
    else:
        default_path = Path(root) / CONFIG_FILENAME
        from_file = read_config_file(default_path) if default_path.is_file() else {}

    settings = Settings().merged(from_file).merged(from_env)
    return settings.merged({**overrides, "vault_root": vault_root or settings.vault_root})
