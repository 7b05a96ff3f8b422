import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .api_client import StreamSnapshot


# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"\.(\d+)")


class LiveDecision(str, Enum):
    NOOP = "noop"
    NOTIFY = "notify"
    SUPPRESS = "suppress"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value.replace("Z", "+00:00"), count=1)
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def decide(was_live: bool, snapshot: Optional[StreamSnapshot], last_notified: Optional[str]) -> LiveDecision:
    """Decide what a fresh snapshot means for one watched channel.

    Only an offline to live edge can notify, and then only when the session
    started strictly after the last notified one. A live snapshot without a
    session start always notifies.
    """
    if snapshot is None or was_live:
        return LiveDecision.NOOP
    previous = parse_timestamp(last_notified)
    if previous is None:
        return LiveDecision.NOTIFY
    started = parse_timestamp(snapshot.started_at)
    if started is None or started > previous:
        return LiveDecision.NOTIFY
    return LiveDecision.SUPPRESS
