import secrets
import string
from datetime import datetime, timezone

_BASE36 = string.digits + string.ascii_uppercase


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Millisecond-precision ISO-8601 timestamp with a Z suffix."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def random_suffix(length: int) -> str:
    """Uppercase base36 suffix from a CSPRNG."""
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def dated_id(prefix: str, length: int, *parts: str, compact: bool = False) -> str:
    """
    Build an id like `PES-2026-10-19-K3ZQ` (or `BP-20261019-K3ZQ7A` when compact).

    Extra parts are inserted between the date and the random suffix.
    """
    date = utc_now().strftime("%Y%m%d" if compact else "%Y-%m-%d")
    return "-".join([prefix, date, *parts, random_suffix(length)])
