"""
Configuration management for Playlist-Sorter

This module loads application settings from YAML files and environment
variables. Settings are grouped into dataclass sections:
- Spotify API settings (credentials, redirect, scopes)
- Network behaviour (timeouts, retries, rate limiting)
- Sorter screen preferences (grid columns, page size, refresh policy)
- Logging output
- Token storage locations

Sensitive values (client id and secret) are best provided through
environment variables or a .env file rather than the YAML file.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field, asdict
from dotenv import load_dotenv

from ..utils.exceptions import ConfigError

# Load environment variables from .env file if present
load_dotenv()


@dataclass
class SpotifyConfig:
    """
    Spotify API credentials and OAuth settings

    The scope covers everything the sorter touches: reading private and
    collaborative playlists, modifying playlists and reading playback state.
    """
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = "http://127.0.0.1:8888/callback"
    scope: str = (
        "playlist-read-private playlist-read-collaborative "
        "playlist-modify-private playlist-modify-public "
        "user-read-playback-state user-read-currently-playing"
    )


@dataclass
class NetworkConfig:
    """
    Network and HTTP configuration settings

    max_retries is handed to spotipy; it stays at 0 so a failed request
    surfaces straight to the user instead of being retried silently.
    """
    request_timeout: int = 10
    max_retries: int = 0
    rate_limit: int = 10  # requests per second


@dataclass
class SorterConfig:
    """Preferences for the sorter screen"""
    columns: int = 3
    page_size: int = 50
    cancel_stale_refreshes: bool = False


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls log level, optional rotating log file and console formatting.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class SecurityConfig:
    """Where OAuth tokens and user configuration are stored"""
    token_storage_path: str = "~/.playlist-sorter/token_cache.json"
    config_directory: str = "~/.playlist-sorter/"


class Settings:
    """
    Main settings class that manages all configuration

    Loads settings from the first YAML file found, then applies environment
    variable overrides. Precedence, highest first:
    1. Environment variables
    2. YAML configuration file
    3. Dataclass defaults
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations

        Raises:
            ConfigError: If the explicit config file is missing, or a found
                         config file cannot be parsed
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".playlist-sorter"
        self.loaded_from: Optional[Path] = None
        self.errors: List[str] = []

        self.spotify = SpotifyConfig()
        self.network = NetworkConfig()
        self.sorter = SorterConfig()
        self.logging = LoggingConfig()
        self.security = SecurityConfig()

        self._load_config()
        self._load_environment_variables()

    def _sections(self) -> Dict[str, Any]:
        return {
            'spotify': self.spotify,
            'network': self.network,
            'sorter': self.sorter,
            'logging': self.logging,
            'security': self.security,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        Searches for configuration files in order of precedence; the first
        file found is used.
        """
        if self.config_path and not Path(self.config_path).exists():
            raise ConfigError(
                f"Configuration file not found: {self.config_path}",
                details={'file_path': str(self.config_path)}
            )

        config_paths = [
            self.config_path,
            self.config_dir / "config.yaml",
            Path("config/config.yaml"),
            Path("config.yaml")
        ]

        config_data: Dict[str, Any] = {}
        for path in config_paths:
            if path and Path(path).exists():
                config_data = self._read_yaml(Path(path))
                self.loaded_from = Path(path)
                break

        self._apply_config(config_data)

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML syntax in configuration file: {e}",
                details={'file_path': str(path), 'original_error': str(e)}
            ) from e
        except OSError as e:
            raise ConfigError(
                f"Failed to read configuration file: {e}",
                details={'file_path': str(path), 'original_error': str(e)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(
                "Configuration file must contain a YAML dictionary",
                details={'file_path': str(path)}
            )
        return data

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Only attributes that exist on the section dataclass are updated;
        unknown sections and keys are ignored.
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """Apply environment variable overrides"""
        env_mappings = {
            'SPOTIFY_CLIENT_ID': lambda v: setattr(self.spotify, 'client_id', v),
            'SPOTIFY_CLIENT_SECRET': lambda v: setattr(self.spotify, 'client_secret', v),
            'SPOTIFY_REDIRECT_URL': lambda v: setattr(self.spotify, 'redirect_url', v),
            'PLAYLIST_SORTER_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def get_config_directory(self) -> Path:
        """Expanded configuration directory path"""
        return Path(self.security.config_directory).expanduser()

    def get_token_storage_path(self) -> Path:
        """
        Expanded token cache path, with its parent directory created

        Returns:
            Path object for the token cache file handed to spotipy
        """
        path = Path(self.security.token_storage_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        """
        Serialize settings to a dictionary

        Args:
            redact: Blank out client credentials

        Returns:
            Mapping of section name to section values
        """
        data = {name: asdict(section) for name, section in self._sections().items()}
        if redact:
            for key in ('client_id', 'client_secret'):
                if data['spotify'][key]:
                    data['spotify'][key] = "***"
        return data

    def validate(self) -> bool:
        """
        Validate current configuration

        Messages for every problem found are stored in ``errors``.

        Returns:
            True if configuration is valid, False otherwise
        """
        errors = []

        if not self.spotify.client_id or not self.spotify.client_secret:
            errors.append("Spotify client_id and client_secret are required")

        if not isinstance(self.sorter.columns, int) or self.sorter.columns < 1:
            errors.append(f"Invalid grid column count: {self.sorter.columns}")

        # Spotify accepts at most 50 playlists per page
        if not isinstance(self.sorter.page_size, int) or not 1 <= self.sorter.page_size <= 50:
            errors.append(f"Invalid playlist page size: {self.sorter.page_size}")

        if not isinstance(self.network.rate_limit, int) or self.network.rate_limit < 1:
            errors.append(f"Invalid rate limit: {self.network.rate_limit}")

        if self.logging.level.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"Invalid log level: {self.logging.level}")

        self.errors = errors
        return not errors

    def __str__(self) -> str:
        sections = [
            f"Columns: {self.sorter.columns}",
            f"Page size: {self.sorter.page_size}",
            f"Rate limit: {self.network.rate_limit}/s",
            f"Log level: {self.logging.level}",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance, created on first access
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global _settings
    _settings = Settings(config_path)
    return _settings
