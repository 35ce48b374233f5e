"""
config.py - Defaults and remote-store settings.

Values here can be overridden by environment variables; CLI flags override both.
Remote (Cloudflare KV) credentials come from `kv.json` in the working directory,
or CF_ACCOUNT_ID / CF_NAMESPACE_ID / CF_API_TOKEN when the file is absent.
"""

from dataclasses import dataclass
import json
import logging
import os

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # standard: 6 digits
DEFAULT_TIME_STEP = 30      # TOTP step (seconds)
DATABASE_FILE = os.environ.get("TOTP_DB", "totp.db")
KV_CONFIG_FILE = os.environ.get("TOTP_KV_CONFIG", "kv.json")
KV_KEY_PREFIX = "totp:"
KV_LEGACY_KEY = "totp_entries"
HTTP_TIMEOUT = 10.0         # seconds, per request
LIVE_REFRESH_INTERVAL = 0.25  # loop tick; sub-second so boundaries show promptly
LOW_TIME_WARNING = 5        # seconds left before `loop` highlights a code

_ENV_KEYS = {
    "account_id": "CF_ACCOUNT_ID",
    "namespace_id": "CF_NAMESPACE_ID",
    "api_token": "CF_API_TOKEN",
}


@dataclass(frozen=True)
class KVConfig:
    account_id: str
    namespace_id: str
    api_token: str


def _from_mapping(data) -> KVConfig | None:
    values = {field: str(data.get(field) or "").strip() for field in _ENV_KEYS}
    if not all(values.values()):
        return None
    return KVConfig(**values)


def load_kv_config(path: str | None = None, environ=None) -> KVConfig | None:
    """
    Resolve Cloudflare KV credentials.

    - `path` (default KV_CONFIG_FILE) is read first; a JSON object with
      account_id, namespace_id and api_token.
    - An unreadable or incomplete file falls through to the environment.
    - Returns None when neither source is complete.
    """
    path = path or KV_CONFIG_FILE
    environ = os.environ if environ is None else environ

    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                cfg = _from_mapping(json.load(f))
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Ignoring %s: %s", path, e)
            cfg = None
        if cfg is not None:
            return cfg
        logger.debug("%s is incomplete, trying environment", path)

    return _from_mapping({field: environ.get(env) for field, env in _ENV_KEYS.items()})
