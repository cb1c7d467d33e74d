import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence
from urllib.parse import urlparse

import yaml

from .exceptions import ConfigError
from .http_gateway import ApiCredentials

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_PORT = 443


def _normalize_api_url(url: str) -> str:
    """Normalize an appliance URL and ensure it has a scheme and host."""
    u = url.strip().rstrip("/")
    # Collapse extra slashes after :// (e.g. https:///host -> https://host)
    u = re.sub(r"(https?):///+", r"\1://", u)
    parsed = urlparse(u)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigError(
            f"API URL has no scheme/host: {url!r}. "
            "Use e.g. https://192.168.1.1 (the port is configured separately)."
        )
    return u


def _parse_port(raw: object, where: str) -> int:
    if isinstance(raw, bool):
        raise ConfigError(f"{where} must be an integer between 1 and 65535")
    try:
        port = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where} must be an integer between 1 and 65535, got {raw!r}") from exc
    if not 1 <= port <= 65535:
        raise ConfigError(f"{where} must be an integer between 1 and 65535, got {port}")
    return port


def _parse_timeout(raw: object, where: str) -> int:
    try:
        timeout = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where} must be an integer (seconds)") from exc
    if timeout <= 0:
        raise ConfigError(f"{where} must be greater than 0, got {timeout}")
    return timeout


def _read_secret_file(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    p = Path(path)
    if not p.is_file():
        logger.warning("Secret file %s does not exist", p)
        return None
    return p.read_text(encoding="utf-8").strip()


def _secret(raw: dict, key: str) -> Optional[str]:
    """Read ``key`` directly, or from the file named by ``<key>_file``."""
    value = raw.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    file_value = raw.get(f"{key}_file")
    if isinstance(file_value, str) and file_value.strip():
        return _read_secret_file(file_value.strip())
    return None


@dataclass(frozen=True)
class ApiProfile:
    """Connection details for one OPNsense appliance."""

    api_url: str  # e.g. "https://192.168.1.1"
    port: int
    api_key: str
    api_secret: str = field(repr=False)
    name: str = "default"
    is_default: bool = False

    @property
    def credentials(self) -> ApiCredentials:
        return ApiCredentials(self.api_key, self.api_secret)

    def build_url(self, endpoint: str) -> str:
        return f"{self.api_url}:{self.port}{endpoint}"


class ProfileStore(Protocol):
    def get_default_api_profile(self) -> Optional[ApiProfile]:
        ...


class StaticProfileStore:
    """Read-only profile store backed by an in-memory list."""

    def __init__(self, profiles: Sequence[ApiProfile] = ()):
        self._profiles = tuple(profiles)

    @property
    def profiles(self) -> List[ApiProfile]:
        return list(self._profiles)

    def get_default_api_profile(self) -> Optional[ApiProfile]:
        for profile in self._profiles:
            if profile.is_default:
                return profile
        return self._profiles[0] if self._profiles else None


@dataclass
class Settings:
    profile_store: StaticProfileStore
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    log_level: str = "INFO"
    log_dir: Optional[Path] = None


def _parse_profile(raw: object, index: int) -> ApiProfile:
    if not isinstance(raw, dict):
        raise ConfigError(f"profiles[{index}] must be a mapping/object")

    name = raw.get("name", f"profile{index}")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"profiles[{index}] needs a non-empty name")
    name = name.strip()

    api_url = raw.get("api_url")
    if not isinstance(api_url, str) or not api_url.strip():
        raise ConfigError(f"Profile {name!r} is missing api_url")

    api_key = _secret(raw, "api_key")
    api_secret = _secret(raw, "api_secret")
    if not api_key:
        raise ConfigError(f"Profile {name!r} is missing api_key/api_key_file")
    if not api_secret:
        raise ConfigError(f"Profile {name!r} is missing api_secret/api_secret_file")

    is_default = raw.get("default", False)
    if not isinstance(is_default, bool):
        raise ConfigError(f"Profile {name!r} default must be boolean")

    return ApiProfile(
        api_url=_normalize_api_url(api_url),
        port=_parse_port(raw.get("port", DEFAULT_PORT), f"Profile {name!r} port"),
        api_key=api_key,
        api_secret=api_secret,
        name=name,
        is_default=is_default,
    )


def _load_settings_from_yaml(path: str) -> Settings:
    """Load settings from a single YAML config file."""
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"OPNMANAGER_CONFIG_FILE not found: {path}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read YAML config: {path}", original_error=exc) from exc

    if not isinstance(raw, dict):
        raise ConfigError("YAML config root must be a mapping/object")

    profiles_raw = raw.get("profiles")
    if not isinstance(profiles_raw, list) or not profiles_raw:
        raise ConfigError("profiles must be a non-empty list")
    profiles = [_parse_profile(item, i) for i, item in enumerate(profiles_raw)]

    defaults = [pr.name for pr in profiles if pr.is_default]
    if len(defaults) > 1:
        logger.warning("Multiple default profiles configured (%s); using %s", ", ".join(defaults), defaults[0])

    runtime = raw.get("runtime") or {}
    if not isinstance(runtime, dict):
        raise ConfigError("runtime must be a mapping/object")

    log_dir = runtime.get("log_dir")
    if log_dir is not None and not isinstance(log_dir, str):
        raise ConfigError("runtime.log_dir must be a string or null")

    return Settings(
        profile_store=StaticProfileStore(profiles),
        timeout=_parse_timeout(runtime.get("timeout", DEFAULT_TIMEOUT_SECONDS), "runtime.timeout"),
        log_level=str(runtime.get("log_level", "INFO")),
        log_dir=Path(log_dir) if log_dir else None,
    )


def _load_settings_from_env() -> Settings:
    api_url = os.getenv("OPNSENSE_API_URL")
    api_key = os.getenv("OPNSENSE_API_KEY") or _read_secret_file(os.getenv("OPNSENSE_API_KEY_FILE"))
    api_secret = os.getenv("OPNSENSE_API_SECRET") or _read_secret_file(os.getenv("OPNSENSE_API_SECRET_FILE"))

    profiles: List[ApiProfile] = []
    if api_url and api_key and api_secret:
        profiles.append(
            ApiProfile(
                api_url=_normalize_api_url(api_url),
                port=_parse_port(os.getenv("OPNSENSE_PORT", str(DEFAULT_PORT)), "OPNSENSE_PORT"),
                api_key=api_key.strip(),
                api_secret=api_secret.strip(),
                name="env",
                is_default=True,
            )
        )
    else:
        logger.debug("OPNSENSE_API_URL / OPNSENSE_API_KEY / OPNSENSE_API_SECRET not all set; no profile configured")

    log_dir = os.getenv("LOG_DIR")
    return Settings(
        profile_store=StaticProfileStore(profiles),
        timeout=_parse_timeout(os.getenv("OPNSENSE_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS)), "OPNSENSE_TIMEOUT"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=Path(log_dir) if log_dir else None,
    )


def load_settings() -> Settings:
    """Load settings from a YAML file (OPNMANAGER_CONFIG_FILE) or the environment."""
    config_file = os.getenv("OPNMANAGER_CONFIG_FILE")
    if config_file:
        return _load_settings_from_yaml(config_file)
    return _load_settings_from_env()
