import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from totp_core.errors import RemoteStoreError, SyncUnavailable  # noqa: E402
from totp_core.service import TOTPService  # noqa: E402
from totp_db import CredentialStore  # noqa: E402

FIXED_TIME = 1_700_000_000


class FakeClipboard:
    def __init__(self):
        self.text = None

    def copy(self, text):
        self.text = text


class FakeQRDecoder:
    def __init__(self, payload):
        self.payload = payload
        self.paths = []

    def decode(self, path):
        self.paths.append(path)
        return self.payload


class MemoryRemote:
    """In-memory stand-in for the Cloudflare KV client."""

    def __init__(self, entries=None, fail_on=(), unavailable=False):
        self.entries = dict(entries or {})
        self.fail_on = set(fail_on)
        self.unavailable = unavailable
        self.puts = []

    def fetch_all(self):
        if self.unavailable:
            raise SyncUnavailable("remote down")
        return dict(self.entries)

    def put(self, name, credential):
        if name in self.fail_on:
            raise RemoteStoreError(f"Failed to write '{name}': HTTP 500", status_code=500)
        self.puts.append(name)
        self.entries[name] = credential


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "totp.db")


@pytest.fixture
def store(db_path):
    return CredentialStore(db_path)


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def service(store, clipboard):
    return TOTPService(store, clipboard=clipboard, clock=lambda: FIXED_TIME)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    for key in ("CF_ACCOUNT_ID", "CF_NAMESPACE_ID", "CF_API_TOKEN"):
        monkeypatch.delenv(key, raising=False)
