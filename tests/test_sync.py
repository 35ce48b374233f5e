import random

from totp_core.models import Credential, credential_map
from totp_core.sync import PULL, PUSH, SyncReport, reconcile


def cred(name, secret="JBSWY3DPEHPK3PXP", issuer=None):
    return Credential(name, secret, issuer)


def test_local_only_is_pushed():
    plan = reconcile({"a": cred("a")}, {})
    assert plan.local_upserts == {}
    assert plan.remote_upserts == {"a": cred("a")}


def test_remote_only_is_pulled():
    plan = reconcile({}, {"b": cred("b")})
    assert plan.local_upserts == {"b": cred("b")}
    assert plan.remote_upserts == {}


def test_identical_is_noop():
    plan = reconcile({"a": cred("a", issuer="X")}, {"a": cred("a", issuer="X")})
    assert plan.is_empty


def test_conflict_local_wins():
    mine = cred("a", "JBSWY3DPEHPK3PXP", "Mine")
    theirs = cred("a", "MZXW6YTBOI", "Theirs")
    plan = reconcile({"a": mine}, {"a": theirs})
    assert plan.local_upserts == {}
    assert plan.remote_upserts["a"].issuer == "Mine"
    assert plan.remote_upserts["a"].secret == "JBSWY3DPEHPK3PXP"


def test_issuer_only_difference_is_a_conflict():
    plan = reconcile({"a": cred("a", issuer="New")}, {"a": cred("a", issuer="Old")})
    assert list(plan.remote_upserts) == ["a"]


def test_secret_formatting_is_not_a_conflict():
    plan = reconcile(
        {"a": cred("a", "JBSWY3DPEHPK3PXP")},
        {"a": cred("a", "jbsw y3dp ehpk 3pxp")},
    )
    assert plan.is_empty


def test_empty_and_missing_issuer_are_equal():
    plan = reconcile({"a": cred("a", issuer="")}, {"a": cred("a", issuer=None)})
    assert plan.is_empty


def test_created_at_is_ignored():
    mine = Credential("a", "JBSWY3DPEHPK3PXP", created_at="2024-01-01T00:00:00+00:00")
    theirs = Credential("a", "JBSWY3DPEHPK3PXP")
    assert reconcile({"a": mine}, {"a": theirs}).is_empty


def test_mixed_plan_and_actions():
    local = {"both": cred("both"), "mine": cred("mine"), "edited": cred("edited", issuer="new")}
    remote = {"both": cred("both"), "theirs": cred("theirs"), "edited": cred("edited", issuer="old")}
    plan = reconcile(local, remote)
    assert set(plan.local_upserts) == {"theirs"}
    assert set(plan.remote_upserts) == {"mine", "edited"}
    assert plan.actions() == {"theirs": PULL, "mine": PUSH, "edited": PUSH}


def test_plan_unpacks_as_pair():
    local_upserts, remote_upserts = reconcile({"a": cred("a")}, {"b": cred("b")})
    assert list(local_upserts) == ["b"]
    assert list(remote_upserts) == ["a"]


def test_inputs_are_not_modified():
    local = {"a": cred("a")}
    remote = {"b": cred("b")}
    reconcile(local, remote)
    assert local == {"a": cred("a")}
    assert remote == {"b": cred("b")}


SECRETS = ["JBSWY3DPEHPK3PXP", "MZXW6YTBOI", "GEZDGNBVGY3TQOJQ"]
ISSUERS = [None, "GitHub", "Google"]


def random_side(rng, names):
    return {
        name: cred(name, rng.choice(SECRETS), rng.choice(ISSUERS))
        for name in names
        if rng.random() < 0.6
    }


def apply(local, remote, plan):
    local = {**local, **plan.local_upserts}
    remote = {**remote, **plan.remote_upserts}
    return local, remote


def test_every_name_gets_exactly_one_outcome():
    rng = random.Random(6238)
    names = [f"n{i}" for i in range(12)]
    for _ in range(200):
        local = random_side(rng, names)
        remote = random_side(rng, names)
        plan = reconcile(local, remote)
        assert not set(plan.local_upserts) & set(plan.remote_upserts)
        for name in set(local) | set(remote):
            if name in plan.local_upserts:
                assert name not in local
            elif name in plan.remote_upserts:
                assert name in local
            else:
                assert local[name].content() == remote[name].content()


def test_applying_plan_reaches_fixed_point():
    rng = random.Random(4226)
    names = [f"n{i}" for i in range(12)]
    for _ in range(200):
        local = random_side(rng, names)
        remote = random_side(rng, names)
        new_local, new_remote = apply(local, remote, reconcile(local, remote))

        assert reconcile(new_local, new_remote).is_empty
        assert set(new_local) == set(new_remote) == set(local) | set(remote)
        # local content never changes for names it already had
        for name, credential in local.items():
            assert new_local[name] == credential


def test_sync_report_ok():
    assert SyncReport().ok
    assert not SyncReport(failed={"a": "boom"}).ok


def test_credential_map_keeps_last():
    first, second = cred("a", issuer="1"), cred("a", issuer="2")
    assert credential_map([first, second]) == {"a": second}
