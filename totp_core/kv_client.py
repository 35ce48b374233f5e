"""
kv_client.py - Cloudflare Workers KV as the remote backup store.

Layout in the namespace: one value per credential, key = KV_KEY_PREFIX + name,
value = JSON {"name", "secret", "issuer"}. Older backups kept the whole set as
a single JSON array under KV_LEGACY_KEY; fetch_all still reads it, and
per-key values win over it.

Authentication is a bearer API token. No retries here: sync is one-shot and
safe to run again.
"""

from typing import Any
from urllib.parse import quote
import json
import logging

import requests

from totp_core.config import HTTP_TIMEOUT, KV_KEY_PREFIX, KV_LEGACY_KEY, KVConfig
from totp_core.errors import RemoteStoreError, SyncUnavailable
from totp_core.models import Credential

logger = logging.getLogger(__name__)

API_BASE = "https://api.cloudflare.com/client/v4"


class CloudflareKV:
    def __init__(
        self,
        account_id: str,
        namespace_id: str,
        api_token: str,
        prefix: str = KV_KEY_PREFIX,
        timeout: float = HTTP_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.prefix = prefix
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {api_token}"})
        self.base_url = (
            f"{API_BASE}/accounts/{account_id}/storage/kv/namespaces/{namespace_id}"
        )

    @classmethod
    def from_config(cls, cfg: KVConfig, **kwargs) -> "CloudflareKV":
        return cls(cfg.account_id, cfg.namespace_id, cfg.api_token, **kwargs)

    def _value_url(self, key: str) -> str:
        return f"{self.base_url}/values/{quote(key, safe='')}"

    # --- reads -------------------------------------------------------------
    def _get(self, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.get(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise SyncUnavailable(f"Cloudflare KV unreachable: {e}") from e
        return response

    def list_keys(self) -> list[str]:
        """All key names under the prefix, following the listing cursor."""
        names: list[str] = []
        cursor = None
        while True:
            params: dict[str, Any] = {"prefix": self.prefix, "limit": 1000}
            if cursor:
                params["cursor"] = cursor
            response = self._get(f"{self.base_url}/keys", params=params)
            if response.status_code != 200:
                raise SyncUnavailable(
                    f"Failed to list Cloudflare KV keys: HTTP {response.status_code}"
                )
            try:
                payload = response.json()
                names.extend(item["name"] for item in payload["result"])
            except (ValueError, KeyError, TypeError) as e:
                raise SyncUnavailable(f"Unexpected key listing from Cloudflare KV: {e}") from e
            cursor = (payload.get("result_info") or {}).get("cursor")
            if not cursor:
                return names

    def _read_json(self, key: str) -> Any:
        response = self._get(self._value_url(key))
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise SyncUnavailable(
                f"Failed to read '{key}' from Cloudflare KV: HTTP {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise SyncUnavailable(f"Value '{key}' in Cloudflare KV is not JSON") from e

    def fetch_all(self) -> dict[str, Credential]:
        """
        Snapshot of the remote set, name -> Credential.

        Raises:
            SyncUnavailable: transport error, non-2xx reply or unreadable value.
        """
        snapshot: dict[str, Credential] = {}

        legacy = self._read_json(KV_LEGACY_KEY)
        if isinstance(legacy, list):
            for record in legacy:
                credential = self._to_credential(record, KV_LEGACY_KEY)
                snapshot[credential.name] = credential

        for key in self.list_keys():
            record = self._read_json(key)
            if record is None:
                continue  # deleted between listing and read
            credential = self._to_credential(record, key)
            snapshot[credential.name] = credential

        logger.info("Loaded %d entries from Cloudflare KV", len(snapshot))
        return snapshot

    @staticmethod
    def _to_credential(record, key: str) -> Credential:
        try:
            return Credential.from_record(record)
        except ValueError as e:
            raise SyncUnavailable(f"Malformed entry under '{key}': {e}") from e

    # --- writes ------------------------------------------------------------
    def put(self, name: str, credential: Credential) -> None:
        """
        Write one credential.

        Raises:
            RemoteStoreError: transport error or non-2xx reply
        """
        body = json.dumps(credential.to_record())
        try:
            response = self.session.put(
                self._value_url(self.prefix + name),
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteStoreError(f"Failed to write '{name}': {e}") from e
        if not 200 <= response.status_code < 300:
            raise RemoteStoreError(
                f"Failed to write '{name}': HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.debug("Wrote '%s' to Cloudflare KV", name)
