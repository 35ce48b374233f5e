import io
import json
import sqlite3

import pyotp
import pytest

from conftest import FIXED_TIME, FakeQRDecoder, MemoryRemote
from totp_core.errors import (
    EmptySecret,
    InvalidEncoding,
    NameNotFound,
    OTPError,
    SyncUnavailable,
)
from totp_core.models import Credential
from totp_core.service import TOTPService


def test_add_get_delete_scenario(service):
    service.add("github", "JBSWY3DPEHPK3PXP", "GitHub")

    code, remaining = service.code("github", timestamp=FIXED_TIME)
    assert len(code) == 6 and code.isdigit()
    assert code == pyotp.TOTP("JBSWY3DPEHPK3PXP").at(FIXED_TIME)
    assert remaining == 30 - FIXED_TIME % 30

    service.delete("github")
    with pytest.raises(NameNotFound):
        service.code("github")


def test_add_stores_canonical_secret(service, store):
    service.add("x", "jbsw y3dp-ehpk 3pxp")
    assert store.get("x").secret == "JBSWY3DPEHPK3PXP"


def test_add_existing_name_updates_in_place(service, store):
    service.add("x", "MZXW6", "Old")
    service.add("x", "JBSWY3DPEHPK3PXP", "New")
    assert store.list() == [Credential("x", "JBSWY3DPEHPK3PXP", "New")]


@pytest.mark.parametrize("secret,error", [("bad!", InvalidEncoding), ("", EmptySecret)])
def test_add_rejects_bad_secret_without_writing(service, store, secret, error):
    with pytest.raises(error):
        service.add("x", secret)
    assert store.list() == []


def test_add_rejects_empty_name(service):
    with pytest.raises(ValueError):
        service.add("  ", "MZXW6")


def test_update(service):
    service.add("x", "MZXW6", "Old")
    assert service.update("x", issuer="New") == Credential("x", "MZXW6", "New")
    assert service.update("x", secret="jbswy3dpehpk3pxp").secret == "JBSWY3DPEHPK3PXP"
    assert service.get("x").issuer == "New"


def test_update_missing(service):
    with pytest.raises(NameNotFound):
        service.update("nope", issuer="X")


def test_delete_missing(service):
    with pytest.raises(NameNotFound) as exc:
        service.delete("nope")
    assert exc.value.name == "nope"


def test_code_uses_clock(service):
    service.add("x", "JBSWY3DPEHPK3PXP")
    assert service.code("x") == service.code("x", timestamp=FIXED_TIME)


def test_codes_for_all_entries(service):
    service.add("b", "MZXW6")
    service.add("a", "JBSWY3DPEHPK3PXP")
    rows = service.codes()
    assert [c.name for c, _ in rows] == ["a", "b"]
    assert rows[0][1].code == pyotp.TOTP("JBSWY3DPEHPK3PXP").at(FIXED_TIME)


def test_copy_puts_code_on_clipboard(service, clipboard):
    service.add("x", "JBSWY3DPEHPK3PXP")
    result = service.copy("x")
    assert clipboard.text == result.code


def test_copy_without_clipboard(store):
    service = TOTPService(store)
    service.add("x", "MZXW6")
    with pytest.raises(OTPError):
        service.copy("x")


def test_add_from_qr(store):
    decoder = FakeQRDecoder("otpauth://totp/GitHub:alice?secret=jbswy3dpehpk3pxp&issuer=GitHub")
    service = TOTPService(store, qr_decoder=decoder)
    entry = service.add_from_qr("code.png")
    assert decoder.paths == ["code.png"]
    assert entry == Credential("GitHub", "JBSWY3DPEHPK3PXP", "GitHub")
    assert store.get("GitHub") == entry


def test_add_from_qr_with_name(store):
    service = TOTPService(store, qr_decoder=FakeQRDecoder("otpauth://totp/GitHub:alice?secret=MZXW6"))
    assert service.add_from_qr("x.png", name="work").name == "work"


def test_export_import_round_trip(service, tmp_path):
    service.add("github", "JBSWY3DPEHPK3PXP", "GitHub")
    service.add("aws", "MZXW6YTBOI")
    buf = io.StringIO()
    assert service.export_to(buf) == 2

    from totp_db import CredentialStore

    other = TOTPService(CredentialStore(str(tmp_path / "other.db")))
    buf.seek(0)
    added, updated = other.import_from(buf)
    assert sorted(added) == ["aws", "github"]
    assert updated == []
    assert other.list() == service.list()


def test_import_is_idempotent(service):
    payload = json.dumps([{"name": "a", "secret": "MZXW6", "issuer": "A"}])
    assert service.import_from(io.StringIO(payload)) == (["a"], [])
    assert service.import_from(io.StringIO(payload)) == ([], ["a"])
    assert service.list() == [Credential("a", "MZXW6", "A")]


def test_import_overwrites_existing(service):
    service.add("a", "JBSWY3DPEHPK3PXP", "Local")
    service.import_from(io.StringIO(json.dumps([{"name": "a", "secret": "MZXW6", "issuer": "File"}])))
    assert service.get("a") == Credential("a", "MZXW6", "File")


def test_import_with_bad_record_writes_nothing(service):
    payload = json.dumps([{"name": "good", "secret": "MZXW6"}, {"name": "bad", "secret": "!!"}])
    with pytest.raises(InvalidEncoding):
        service.import_from(io.StringIO(payload))
    assert service.list() == []


# --- sync ------------------------------------------------------------------
def test_sync_both_directions(service):
    service.add("local-only", "MZXW6")
    service.add("shared", "JBSWY3DPEHPK3PXP", "Local")
    remote = MemoryRemote({
        "remote-only": Credential("remote-only", "GEZDGNBVGY3TQOJQ", "R"),
        "shared": Credential("shared", "JBSWY3DPEHPK3PXP", "Remote"),
    })

    report = service.sync(remote)

    assert report.ok
    assert report.pulled == ["remote-only"]
    assert sorted(report.pushed) == ["local-only", "shared"]
    assert service.get("remote-only") == Credential("remote-only", "GEZDGNBVGY3TQOJQ", "R")
    assert remote.entries["shared"].issuer == "Local"
    assert service.plan_sync(remote).is_empty


def test_sync_twice_is_a_noop(service):
    service.add("a", "MZXW6")
    remote = MemoryRemote({"b": Credential("b", "MZXW6")})
    service.sync(remote)
    remote.puts.clear()
    report = service.sync(remote)
    assert (report.pulled, report.pushed, report.failed) == ([], [], {})
    assert remote.puts == []


def test_pull_only(service):
    service.add("a", "MZXW6")
    remote = MemoryRemote({"b": Credential("b", "MZXW6")})
    report = service.sync(remote, direction="pull")
    assert report.pulled == ["b"] and report.pushed == []
    assert "a" not in remote.entries


def test_push_only(service):
    service.add("a", "MZXW6")
    remote = MemoryRemote({"b": Credential("b", "MZXW6")})
    report = service.sync(remote, direction="push")
    assert report.pushed == ["a"] and report.pulled == []
    assert service.list() == [Credential("a", "MZXW6")]


def test_sync_unknown_direction(service):
    with pytest.raises(ValueError):
        service.sync(MemoryRemote(), direction="sideways")


def test_sync_remote_unavailable_leaves_local_untouched(service):
    service.add("a", "MZXW6")
    remote = MemoryRemote({"b": Credential("b", "MZXW6")}, unavailable=True)
    with pytest.raises(SyncUnavailable):
        service.sync(remote)
    assert service.list() == [Credential("a", "MZXW6")]
    assert remote.puts == []


def test_sync_local_unreadable(service, monkeypatch):
    def broken():
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(service.store, "list", broken)
    remote = MemoryRemote({"b": Credential("b", "MZXW6")})
    with pytest.raises(SyncUnavailable):
        service.sync(remote)
    assert remote.puts == []


def test_sync_continues_after_remote_write_failure(service):
    service.add("a", "MZXW6")
    service.add("b", "MZXW6")
    service.add("c", "MZXW6")
    remote = MemoryRemote(fail_on={"b"})

    report = service.sync(remote)

    assert sorted(report.pushed) == ["a", "c"]
    assert list(report.failed) == ["b"]
    assert not report.ok

    remote.fail_on.clear()
    assert service.sync(remote).pushed == ["b"]


def test_sync_skips_remote_entry_with_bad_secret(service):
    remote = MemoryRemote({
        "bad": Credential("bad", "not base32!"),
        "good": Credential("good", "mzxw6"),
    })
    report = service.sync(remote)
    assert report.pulled == ["good"]
    assert "bad" in report.failed
    assert service.get("good").secret == "MZXW6"
