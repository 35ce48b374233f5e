"""
live.py - Continuous refresh for `loop`.

Each tick recomputes every code from the clock; nothing is cached between
ticks, so a window boundary crossed mid-sleep shows up on the next read.
The loop only reads. Ctrl+C (KeyboardInterrupt) ends it; the CLI catches that.
"""

from typing import Callable, Iterator, NamedTuple, Sequence
import time

from totp_core.config import LIVE_REFRESH_INTERVAL
from totp_core.models import Credential
from totp_core.otp_core import generate


class LiveRow(NamedTuple):
    name: str
    issuer: str | None
    code: str
    seconds_remaining: int
    changed: bool


def iter_live_rows(
    credentials: Sequence[Credential],
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
    interval: float = LIVE_REFRESH_INTERVAL,
    ticks: int | None = None,
) -> Iterator[list[LiveRow]]:
    """
    Yield one list of rows per tick, then sleep `interval`.

    `changed` is True the first time a code is shown and whenever it differs
    from the previous tick. `ticks=None` runs until interrupted.
    """
    keys = [(c, c.key_bytes()) for c in credentials]
    last_codes: dict[str, str] = {}
    tick = 0
    while ticks is None or tick < ticks:
        now = clock()
        rows = []
        for credential, key in keys:
            code, remaining = generate(key, now)
            rows.append(LiveRow(
                credential.name,
                credential.issuer,
                code,
                remaining,
                last_codes.get(credential.name) != code,
            ))
            last_codes[credential.name] = code
        yield rows
        tick += 1
        if ticks is None or tick < ticks:
            sleep(interval)
