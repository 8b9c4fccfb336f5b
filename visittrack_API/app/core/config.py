# config.py
# Description: Configuration for the VisitTrack sync engine, image host and notes analysis.
#
"""
Configuration loading for VisitTrack.

Settings are read from a TOML file (``[store]``, ``[media]``, ``[analysis]``,
``[logging]`` tables) and may be overridden by environment variables. The
resulting ``SyncConfig`` is passed explicitly into every repository call; no
module reads ambient settings on its own.
"""
#
# Imports
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional
from urllib.parse import urlsplit
#
# 3rd-party Libraries
import tomli
from loguru import logger
#
# Local Imports
from visittrack_API.app.core.Sync.exceptions import ConfigError
#
########################################################################################################################
#
# Functions:

CONFIG_PATH_ENV_VAR = "VISITTRACK_CONFIG_PATH"


@dataclass
class SyncConfig:
    """Where the row store lives and how persistent the client is with it."""
    store_url: str = ""
    timeout_seconds: float = 30.0
    lock_busy_retries: int = 2
    retry_backoff_seconds: float = 1.5

    def validated_url(self) -> str:
        """
        Return the trimmed store URL, refusing values that can never work.

        Raises:
            ConfigError: If no URL is configured or it points at the script editor.
        """
        url = (self.store_url or "").strip()
        if not url:
            raise ConfigError("No row store URL is configured", setting="store.store_url")

        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigError(f"Row store URL is not an http(s) URL: {url}", setting="store.store_url")

        if "script.google.com" in parts.netloc:
            if "/edit" in parts.path or parts.path.endswith("/dev"):
                raise ConfigError(
                    "The configured URL is the script editor or test deployment (/edit or /dev). "
                    "Deploy the script as a web app and use the URL ending in /exec.",
                    setting="store.store_url",
                )
            if not parts.path.endswith("/exec"):
                logger.warning(f"Row store URL on script.google.com usually ends in /exec: {parts.path}")
        return url


@dataclass
class MediaConfig:
    """Image host used for visit photos."""
    imgbb_api_key: str = ""
    upload_url: str = "https://api.imgbb.com/1/upload"
    timeout_seconds: float = 60.0


@dataclass
class AnalysisConfig:
    """LLM used to summarise visit notes."""
    api_key: str = ""
    model: str = "gemini-2.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: float = 60.0


@dataclass
class AppConfig:
    """Top-level configuration."""
    store: SyncConfig = field(default_factory=SyncConfig)
    media: MediaConfig = field(default_factory=MediaConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    log_level: str = "INFO"

    @classmethod
    def from_toml(cls, config_path: Optional[Path] = None) -> 'AppConfig':
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to config file. If None, uses the default locations.

        Returns:
            AppConfig instance, with environment overrides applied.
        """
        if config_path is None:
            config_path = get_config_path()

        config = cls()
        if config_path is None or not config_path.exists():
            logger.warning(f"No config file found ({config_path}), using defaults")
            config._apply_env_overrides()
            return config

        logger.info(f"Loading VisitTrack config from: {config_path}")
        try:
            with open(config_path, "rb") as f:
                toml_data = tomli.load(f)

            config = cls(
                store=SyncConfig(**_known_keys(SyncConfig, toml_data.get("store", {}))),
                media=MediaConfig(**_known_keys(MediaConfig, toml_data.get("media", {}))),
                analysis=AnalysisConfig(**_known_keys(AnalysisConfig, toml_data.get("analysis", {}))),
                log_level=toml_data.get("logging", {}).get("log_level", "INFO"),
            )
        except (tomli.TOMLDecodeError, OSError, TypeError) as e:
            logger.error(f"Error loading config from {config_path}: {e}")
            logger.warning("Using default configuration")
            config = cls()

        config._apply_env_overrides()
        return config

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        env_mappings = {
            "VISITTRACK_STORE_URL": ("store", "store_url", str),
            "VISITTRACK_TIMEOUT_SECONDS": ("store", "timeout_seconds", float),
            "VISITTRACK_LOCK_BUSY_RETRIES": ("store", "lock_busy_retries", int),
            "VISITTRACK_IMGBB_API_KEY": ("media", "imgbb_api_key", str),
            "GEMINI_API_KEY": ("analysis", "api_key", str),
            "VISITTRACK_ANALYSIS_MODEL": ("analysis", "model", str),
        }

        for env_var, (section, attr, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                try:
                    setattr(getattr(self, section), attr, converter(value))
                    logger.debug(f"Override from env: {env_var} -> {section}.{attr}")
                except ValueError as e:
                    logger.warning(f"Failed to apply env override {env_var}: {e}")

        log_level = os.environ.get("VISITTRACK_LOG_LEVEL")
        if log_level:
            self.log_level = log_level.upper()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary, with secrets masked."""
        return {
            "store": self.store.__dict__,
            "media": {**self.media.__dict__, "imgbb_api_key": _mask(self.media.imgbb_api_key)},
            "analysis": {**self.analysis.__dict__, "api_key": _mask(self.analysis.api_key)},
            "log_level": self.log_level,
        }


def _known_keys(dataclass_type, section: Dict[str, Any]) -> Dict[str, Any]:
    known = dataclass_type.__dataclass_fields__.keys()
    unknown = set(section) - set(known)
    if unknown:
        logger.warning(f"Ignoring unknown {dataclass_type.__name__} settings: {sorted(unknown)}")
    return {k: v for k, v in section.items() if k in known}


def _mask(secret: str) -> str:
    if not secret:
        return ""
    return secret[:3] + "***"


def get_config_path() -> Optional[Path]:
    """Determines the path to the configuration file."""
    # Priority: Environment variable > user config dir > working directory
    env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if env_path:
        path = Path(env_path).expanduser().resolve()
        logger.debug(f"Using config path from {CONFIG_PATH_ENV_VAR}: {path}")
        return path

    possible_paths = [
        Path.home() / ".config" / "visittrack" / "config.toml",
        Path("config.toml"),
    ]
    for path in possible_paths:
        if path.exists():
            return path
    return None

#
# End of config.py
########################################################################################################################
