"""Configuration manager for loading and saving Podpipe config."""

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from podpipe.config.crypto import CredentialEncryptor
from podpipe.config.defaults import DEFAULT_GLOBAL_CONFIG, get_default_config_content
from podpipe.config.schema import GlobalConfig
from podpipe.utils.errors import InvalidConfigError
from podpipe.utils.paths import get_config_dir, get_config_file, get_key_file

logger = logging.getLogger(__name__)

SOCIAL_PASSWORD_ENV = "PODPIPE_SOCIAL_PASSWORD"


class ConfigManager:
    """Manages the Podpipe configuration file."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize the config manager.

        Args:
            config_dir: Optional custom config directory. Defaults to XDG config dir.
        """
        if config_dir is None:
            self.config_dir = get_config_dir()
            self.config_file = get_config_file()
            self.key_file = get_key_file()
        else:
            self.config_dir = config_dir
            self.config_file = config_dir / "config.yaml"
            self.key_file = config_dir / ".keyfile"

        self.encryptor = CredentialEncryptor(self.key_file)

    def load_config(self) -> GlobalConfig:
        """Load and validate global configuration.

        The stored social password is decrypted; ``PODPIPE_SOCIAL_PASSWORD``
        overrides it when set.

        Returns:
            Validated GlobalConfig instance

        Raises:
            InvalidConfigError: If config is invalid
            EncryptionError: If the stored password cannot be decrypted
        """
        if not self.config_file.exists():
            self._create_default_config()
            config = DEFAULT_GLOBAL_CONFIG.model_copy(deep=True)
        else:
            try:
                with open(self.config_file) as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    raise InvalidConfigError(
                        f"Invalid configuration in {self.config_file}: expected a mapping"
                    )
                config = GlobalConfig(**data)
            except (yaml.YAMLError, ValidationError) as e:
                raise InvalidConfigError(
                    f"Invalid configuration in {self.config_file}: {e}"
                ) from e

            password = config.social.password
            if password and self.encryptor.looks_encrypted(password):
                config.social.password = self.encryptor.decrypt(password)

        env_password = os.environ.get(SOCIAL_PASSWORD_ENV)
        if env_password:
            config.social.password = env_password

        return config

    def save_config(self, config: GlobalConfig) -> None:
        """Save global configuration, encrypting the social password.

        Args:
            config: GlobalConfig instance to save
        """
        data = config.model_dump(mode="json")

        if data["social"].get("password"):
            data["social"]["password"] = self.encryptor.encrypt(data["social"]["password"])

        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        logger.debug("Saved configuration to %s", self.config_file)

    def _create_default_config(self) -> None:
        """Create default config.yaml file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(get_default_config_content())
