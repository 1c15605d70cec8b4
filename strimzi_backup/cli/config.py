"""CLI configuration.

Defaults come from a YAML file, then from STRIMZI_BACKUP_* environment
variables. Command-line options override both.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigurationError
from ..restore.restorer import DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "STRIMZI_BACKUP_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".strimzi-backup" / "config.yaml"

ENV_OVERRIDES = {
    "STRIMZI_BACKUP_KUBECONFIG": "kubeconfig",
    "STRIMZI_BACKUP_NAMESPACE": "namespace",
    "STRIMZI_BACKUP_TIMEOUT": "timeout_ms",
    "STRIMZI_BACKUP_LOG_LEVEL": "log_level",
}


@dataclass
class Config:
    """Runtime configuration.

    Attributes:
        kubeconfig: Path to the kubeconfig file (optional)
        namespace: Default namespace (optional)
        timeout_ms: Restore wait timeout in milliseconds
        log_level: Default log level name
    """

    kubeconfig: Optional[str] = None
    namespace: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    log_level: str = "INFO"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load configuration from file and environment.

        Args:
            path: Config file path (defaults to $STRIMZI_BACKUP_CONFIG or
                ~/.strimzi-backup/config.yaml)

        Returns:
            Config instance

        Raises:
            ConfigurationError: If the file or a value is invalid
        """
        if path is None:
            env_path = os.environ.get(CONFIG_PATH_ENV)
            path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        values: dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

            if not isinstance(data, dict):
                raise ConfigurationError(f"Config file {path} must contain a mapping")

            for key in ("kubeconfig", "namespace", "timeout_ms", "log_level"):
                if data.get(key) is not None:
                    values[key] = data[key]
            logger.debug(f"Loaded configuration from {path}")

        for env_name, key in ENV_OVERRIDES.items():
            env_value = os.environ.get(env_name)
            if env_value:
                values[key] = env_value

        config = cls(**values)
        config.timeout_ms = _parse_timeout(config.timeout_ms)
        config.log_level = str(config.log_level).upper()
        return config


def _parse_timeout(value: Any) -> int:
    try:
        timeout_ms = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid timeout value: {value!r}") from e

    if timeout_ms <= 0:
        raise ConfigurationError(f"Timeout must be positive, got {timeout_ms}")
    return timeout_ms
