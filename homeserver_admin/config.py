import json
import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

logger = logging.getLogger("homeserver_admin.config")

# Config lives in the repository root (one level up from this file's folder)
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
REPO_ROOT = os.path.dirname(SCRIPT_DIR)
DEFAULT_CONFIG_PATH = os.path.join(REPO_ROOT, "homeserver_admin.json")

DEFAULT_CONFIG = {
    "admin_base_url": "",
    "admin_token": "",
    "listen_host": "127.0.0.1",
    "listen_port": 8089,
    "cors_origins": [],
    "timeout": None,
}

# Environment wins over the file
ENV_OVERRIDES = {
    "ADMIN_BASE_URL": "admin_base_url",
    "ADMIN_TOKEN": "admin_token",
    "WEBDAV_CORS_ORIGINS": "cors_origins",
    "WEBDAV_TIMEOUT": "timeout",
}

SECRET_KEYS = {"admin_token"}


class ConfigurationError(Exception):
    """Required settings are missing; raised before any network call."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing configuration: {', '.join(self.missing)}")


def config_path() -> str:
    return os.getenv("HOMESERVER_ADMIN_CONFIG", DEFAULT_CONFIG_PATH)


def load_config() -> dict:
    path = config_path()
    logger.debug("Loading config from %s", path)
    if os.path.exists(path):
        try:
            with open(path, "r") as f:
                config = json.load(f)
            return {**DEFAULT_CONFIG, **config}
        except (OSError, ValueError) as e:
            logger.error("Error loading config %s: %s", path, e)
    return DEFAULT_CONFIG.copy()


def save_config(config: dict) -> bool:
    path = config_path()
    logger.debug("Saving config to %s", path)
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w") as f:
            json.dump(config, f, indent=2)
        return True
    except OSError as e:
        logger.error("Error saving config %s: %s", path, e)
        return False


def coerce_value(key: str, raw):
    """Convert a string from the environment or the CLI to the stored type."""
    if not isinstance(raw, str):
        return raw
    if key == "cors_origins":
        return [o.strip() for o in raw.split(",") if o.strip()]
    if key == "timeout":
        return float(raw) if raw.strip() else None
    if key == "listen_port":
        return int(raw)
    return raw


@dataclass
class ProxySettings:
    admin_base_url: str = ""
    admin_token: str = ""
    listen_host: str = "127.0.0.1"
    listen_port: int = 8089
    cors_origins: List[str] = field(default_factory=list)
    timeout: Optional[float] = None

    @property
    def dav_url(self) -> str:
        return self.admin_base_url.rstrip("/") + "/dav"

    def missing(self) -> List[str]:
        missing = []
        if not self.admin_base_url:
            missing.append("ADMIN_BASE_URL")
        if not self.admin_token:
            missing.append("ADMIN_TOKEN")
        return missing

    def require(self) -> "ProxySettings":
        missing = self.missing()
        if missing:
            raise ConfigurationError(missing)
        return self

    def diagnostics(self) -> dict:
        """Safe description of the configuration; never contains the token."""
        return {
            "adminBaseUrl": self.admin_base_url or "missing",
            "hasToken": bool(self.admin_token),
        }


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ProxySettings:
    environ = os.environ if environ is None else environ
    config = load_config()
    for env_key, key in ENV_OVERRIDES.items():
        value = environ.get(env_key)
        if value:
            try:
                config[key] = coerce_value(key, value)
            except ValueError:
                logger.error("Ignoring invalid %s=%r", env_key, value)

    timeout = config.get("timeout")
    if timeout is not None and not isinstance(timeout, (int, float)):
        logger.error("Ignoring invalid timeout %r", timeout)
        timeout = None

    return ProxySettings(
        admin_base_url=config.get("admin_base_url") or "",
        admin_token=config.get("admin_token") or "",
        listen_host=config.get("listen_host") or DEFAULT_CONFIG["listen_host"],
        listen_port=int(config.get("listen_port") or DEFAULT_CONFIG["listen_port"]),
        cors_origins=list(config.get("cors_origins") or []),
        timeout=timeout,
    )
