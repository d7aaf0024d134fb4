"""Validator configuration loaded from ``config.yml``.

Example::

    validation:
      violation_examples: 5
      disabled_rules: [C0]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(".covo") / "config.yml"


class ConfigError(Exception):
    """Raised when a config file is readable but invalid."""


@dataclass(frozen=True)
class ValidatorConfig:
    """Settings of one validation run."""

    violation_examples: int = 5  # examples listed per failed rule
    disabled_rules: tuple[str, ...] = ()

    def is_enabled(self, rule_id: str) -> bool:
        return rule_id not in self.disabled_rules


def load_config(path: Path | None = None) -> ValidatorConfig:
    """Load the ``validation`` section of a config file.

    With *path* ``None`` the default ``.covo/config.yml`` under the current
    directory is used.  A missing file, unreadable YAML, or a missing section
    falls back to defaults.  Invalid values raise :class:`ConfigError`.
    """
    config_path = path if path is not None else Path.cwd() / DEFAULT_CONFIG_PATH
    if not config_path.is_file():
        if path is not None:
            msg = f"Config file not found: {config_path}"
            raise ConfigError(msg)
        return ValidatorConfig()

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using default settings", config_path)
        return ValidatorConfig()

    if not isinstance(data, dict):
        return ValidatorConfig()

    section = data.get("validation")
    if not isinstance(section, dict):
        return ValidatorConfig()

    defaults = ValidatorConfig()

    examples_raw = section.get("violation_examples", defaults.violation_examples)
    try:
        violation_examples = int(examples_raw)
    except (TypeError, ValueError) as exc:
        msg = f"{config_path.name}: violation_examples must be an integer"
        raise ConfigError(msg) from exc
    if violation_examples < 1:
        msg = f"{config_path.name}: violation_examples must be positive"
        raise ConfigError(msg)

    disabled_raw = section.get("disabled_rules", [])
    if isinstance(disabled_raw, str):
        disabled_raw = [disabled_raw]
    if not isinstance(disabled_raw, list):
        msg = f"{config_path.name}: disabled_rules must be a list"
        raise ConfigError(msg)
    # Lazy import to avoid circular dependency:
    # config -> validation/__init__ -> engine -> config
    from covo.validation.rules import RULE_IDS

    disabled = tuple(str(rule_id) for rule_id in disabled_raw)
    unknown = [rule_id for rule_id in disabled if rule_id not in RULE_IDS]
    if unknown:
        msg = (
            f"{config_path.name}: unknown rule ids in disabled_rules: {', '.join(unknown)}, "
            f"must be among {list(RULE_IDS)}"
        )
        raise ConfigError(msg)

    return ValidatorConfig(violation_examples=violation_examples, disabled_rules=disabled)
