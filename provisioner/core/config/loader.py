"""
Configuration loader — reads provision.yml into ProvisionSettings.

Configuration is optional: with no file the built-in defaults provision
``taknone/liveproto`` exactly as the stock installer does. A file can
override any field; unknown keys are rejected so typos are loud.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# Default config filename, looked up in the current directory
PROVISION_CONFIG_FILE = "provision.yml"

# Env var naming an explicit config file
CONFIG_ENV_VAR = "PROVISION_CONFIG"

DEFAULT_REQUIRED_EXTENSIONS: tuple[str, ...] = (
    "openssl", "gmp", "xml", "zip", "mbstring", "curl",
    "bcmath", "intl", "json", "dom", "fileinfo", "zlib",
)


class ConfigError(Exception):
    """Raised when provisioner configuration is invalid or missing."""


class ProvisionSettings(BaseModel):
    """Tunable inputs of a provisioning run."""

    model_config = ConfigDict(extra="forbid")

    target_package: str = "taknone/liveproto"
    scratch_dir_name: str = "liveproto-demo"
    project_name: str = "liveproto/demo"
    project_description: str = "LiveProto demo"

    required_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_REQUIRED_EXTENSIONS),
    )
    expected_int_size: int = 64

    composer_installer_url: str = "https://getcomposer.org/installer"
    composer_installer_file: str = "composer-setup.php"
    composer_install_dirs: list[str] = Field(
        default_factory=lambda: ["/usr/local/bin", "~/.local/bin"],
    )
    composer_min_major: int = 2

    command_timeout: float | None = None   # None: wait for every command
    download_timeout: float = 60

    def scratch_dir(self, home: Path) -> Path:
        return home / self.scratch_dir_name

    def install_dirs(self, home: Path) -> list[Path]:
        """Composer install-dir candidates with ``~`` expanded against ``home``."""
        dirs: list[Path] = []
        for raw in self.composer_install_dirs:
            if raw == "~" or raw.startswith("~/"):
                dirs.append(home / raw[2:])
            else:
                dirs.append(Path(raw))
        return dirs


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Locate the config file: ``$PROVISION_CONFIG``, else ./provision.yml.

    Returns:
        Path to the config file, or None if neither exists.
    """
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)

    candidate = (start_dir or Path.cwd()) / PROVISION_CONFIG_FILE
    if candidate.is_file():
        return candidate
    return None


def load_settings(path: Path | None = None) -> ProvisionSettings:
    """Load and validate provisioner settings.

    Args:
        path: Explicit path to a config file. If None, searches with
            :func:`find_config_file` and falls back to defaults.

    Returns:
        Validated ProvisionSettings.

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found, using defaults", PROVISION_CONFIG_FILE)
            return ProvisionSettings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading provisioner config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return ProvisionSettings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "provision" key or be flat
    settings_data = data.get("provision", data) if "provision" in data else data
    if not isinstance(settings_data, dict):
        raise ConfigError(f"Expected 'provision' to be a mapping in {path}")

    try:
        settings = ProvisionSettings.model_validate(settings_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid provisioner configuration: {e}") from e

    logger.debug("Loaded settings for target '%s'", settings.target_package)
    return settings
