"""
sync.py - Local-authoritative reconciliation between two credential sets.

Policy, per name in the union of both sides:
- local only             -> push (remote upsert)
- remote only            -> pull (local upsert)
- both, same content     -> nothing
- both, content differs  -> push the local values (local wins)

Known limitation: local wins unconditionally, so edits made on two different
devices between syncs are not detected; the device that syncs last overwrites
the remote copy. There are no timestamps or version vectors to break ties.

`reconcile` is pure. Applying the plan (and handling per-entry failures) is
the caller's job, see TOTPService.sync.
"""

from dataclasses import dataclass, field
from typing import Mapping, NamedTuple
import logging

from totp_core.models import Credential

logger = logging.getLogger(__name__)

PULL = "pull"
PUSH = "push"


class SyncPlan(NamedTuple):
    local_upserts: dict[str, Credential]
    remote_upserts: dict[str, Credential]

    @property
    def is_empty(self) -> bool:
        return not self.local_upserts and not self.remote_upserts

    def actions(self) -> dict[str, str]:
        """name -> 'pull' | 'push' for every name that needs a write."""
        out = {name: PULL for name in self.local_upserts}
        out.update({name: PUSH for name in self.remote_upserts})
        return out


@dataclass
class SyncReport:
    pulled: list[str] = field(default_factory=list)
    pushed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def reconcile(
    local: Mapping[str, Credential],
    remote: Mapping[str, Credential],
) -> SyncPlan:
    """
    Compute the writes that make `local` and `remote` converge.

    Returns SyncPlan(local_upserts, remote_upserts). A name never appears in
    both. Applying both and reconciling again yields an empty plan.
    """
    local_upserts: dict[str, Credential] = {}
    remote_upserts: dict[str, Credential] = {}

    for name in sorted(set(local) | set(remote)):
        mine = local.get(name)
        theirs = remote.get(name)
        if theirs is None:
            remote_upserts[name] = mine
        elif mine is None:
            local_upserts[name] = theirs
        elif mine.content() != theirs.content():
            logger.debug("Conflict on '%s': keeping local values", name)
            remote_upserts[name] = mine

    logger.debug("Plan: pull=%d push=%d", len(local_upserts), len(remote_upserts))
    return SyncPlan(local_upserts, remote_upserts)
