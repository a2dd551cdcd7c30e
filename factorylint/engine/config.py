"""
Configuration management for the factorylint engine.

This module provides configuration loading with sensible defaults for
finding limits, severities, and path exclusions.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional
import logging
import os

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_NAMES = [".factorylint.yml", ".factorylint.yaml", "factorylint.yml", "factorylint.yaml"]


@dataclass
class EngineConfig:
    """Configuration for the factorylint engine."""

    # Rule execution settings
    enabled_rules: List[str] = field(default_factory=lambda: ["*"])
    max_findings_per_file: int = 50
    max_total_findings: int = 1000

    # Rule severity overrides (rule_id -> severity)
    rule_severities: Dict[str, str] = field(default_factory=dict)

    # Extra fnmatch patterns for paths that should never be analyzed
    exclude: List[str] = field(default_factory=list)


def _defaults() -> Dict[str, Any]:
    return {
        "enabled_rules": ["*"],
        "max_findings_per_file": 50,
        "max_total_findings": 1000,
        "rule_severities": {},
        "exclude": [],
    }


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Path to config file (YAML). If None, uses defaults.

    Returns:
        EngineConfig instance

    Raises:
        ConfigError: If the file is not valid YAML or has unknown keys
    """
    merged_config = _defaults()

    if not config_path or not os.path.exists(config_path):
        return EngineConfig(**merged_config)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            file_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {config_path}: {e}") from e

    if not isinstance(file_config, dict):
        raise ConfigError(f"Config {config_path} must be a mapping, got {type(file_config).__name__}")

    known = {f.name for f in fields(EngineConfig)}
    unknown = set(file_config) - known
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(sorted(unknown))}")

    # Deep merge rule severities, replace everything else
    severities = file_config.pop("rule_severities", None) or {}
    merged_config.update(file_config)
    merged_config["rule_severities"].update(severities)

    for severity in merged_config["rule_severities"].values():
        if severity not in ("info", "warn", "error"):
            raise ConfigError(f"Invalid severity '{severity}' in {config_path}")

    logger.debug("Loaded config from %s", config_path)
    return EngineConfig(**merged_config)


def get_default_config() -> EngineConfig:
    """Get default configuration without loading from file."""
    return load_config(None)


def save_config(config: EngineConfig, config_path: str) -> None:
    """
    Save configuration to file.

    Args:
        config: EngineConfig to save
        config_path: Path where to save the config
    """
    config_dict = {
        "enabled_rules": config.enabled_rules,
        "max_findings_per_file": config.max_findings_per_file,
        "max_total_findings": config.max_total_findings,
        "rule_severities": config.rule_severities,
        "exclude": config.exclude,
    }

    directory = os.path.dirname(config_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.dump(config_dict, f, default_flow_style=False, indent=2)


def find_config_file(start_path: str = ".") -> Optional[str]:
    """
    Find configuration file by walking up the directory tree.

    Looks for .factorylint.yml, .factorylint.yaml, factorylint.yml and
    factorylint.yaml, in that order, in each directory.

    Args:
        start_path: File or directory to start searching from

    Returns:
        Path to config file or None if not found
    """
    current_path = os.path.abspath(start_path)
    if os.path.isfile(current_path):
        current_path = os.path.dirname(current_path)

    while True:
        for config_name in CONFIG_NAMES:
            config_path = os.path.join(current_path, config_name)
            if os.path.exists(config_path):
                return config_path

        parent_path = os.path.dirname(current_path)
        if parent_path == current_path:
            break
        current_path = parent_path

    return None


def get_rule_severity(rule_id: str, config: EngineConfig, default_severity: str = "warn") -> str:
    """
    Get the configured severity for a rule, falling back to default.

    Args:
        rule_id: Rule identifier (e.g., "factory.create_list")
        config: Engine configuration
        default_severity: Fallback severity if not configured

    Returns:
        Severity level ("info", "warn", or "error")
    """
    return config.rule_severities.get(rule_id, default_severity)
