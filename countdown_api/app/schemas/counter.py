"""
Counter record and request payload schemas.

A counter pairs a title with a target absolute instant.  Targets travel
and rest as RFC 3339 text with an explicit UTC offset or ``Z`` marker;
timezone‑naive local times are rejected.  Accepted targets are
normalised to UTC and written with a ``Z`` suffix, so
``2030-01-01T02:00:00+02:00`` is stored as ``2030-01-01T00:00:00Z``.

A leap second (``23:59:60``) is accepted and clamped to ``:59`` since
``datetime`` cannot represent it.

``Counter`` is deliberately lenient about field *content*: records read
back from disk may carry an empty title or an unparseable target and
must still load.  Older files stored instants as a nine‑element array
``[year, ordinal_day, hour, minute, second, nanosecond, offset_hours,
offset_minutes, offset_seconds]``; those are converted to RFC 3339 text
on load, and any other non‑string target is kept as it was stored.
Content checks happen in :func:`validate`, which the store calls before
every write.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from countdown_api.app.core.exceptions import InvalidInput

_RFC3339_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt ]"
    r"(?P<time>\d{2}:\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$"
)

TARGET_FORMAT_HINT = "expected RFC3339 with offset, e.g. 2030-01-01T00:00:00Z"


def parse_instant(value: Any) -> datetime:
    """Parse RFC 3339 text into an aware ``datetime``.

    Raises ``InvalidInput`` for non‑strings, naive timestamps and
    anything that is not a real calendar instant.
    """
    if not isinstance(value, str):
        raise InvalidInput("target must be a string")
    match = _RFC3339_RE.match(value.strip())
    if not match:
        raise InvalidInput(f"Invalid datetime ({TARGET_FORMAT_HINT})")
    # datetime only keeps microseconds
    frac = (match.group("frac") or "")[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset in ("Z", "z"):
        offset = "+00:00"
    second = match.group("second")
    if second == "60" and match.group("time").endswith(":59"):
        second = "59"
    text = f"{match.group('date')}T{match.group('time')}:{second}.{frac}{offset}"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidInput(f"Invalid datetime ({TARGET_FORMAT_HINT})") from exc


def format_instant(moment: datetime) -> str:
    """Render an aware ``datetime`` as RFC 3339 UTC text with a ``Z`` suffix."""
    text = moment.astimezone(timezone.utc).isoformat()
    return text.replace("+00:00", "Z")


def legacy_instant(value: Any) -> Optional[str]:
    """Convert the old array encoding of an instant to RFC 3339 UTC text.

    Returns ``None`` when ``value`` is not such an array or does not
    describe a real instant.
    """
    if not isinstance(value, (list, tuple)) or len(value) != 9:
        return None
    if not all(isinstance(part, int) and not isinstance(part, bool) for part in value):
        return None
    year, ordinal, hour, minute, second, nanosecond, off_h, off_m, off_s = value
    try:
        day = date(year, 1, 1) + timedelta(days=ordinal - 1)
        if ordinal < 1 or day.year != year:
            return None
        offset = timezone(timedelta(hours=off_h, minutes=off_m, seconds=off_s))
        moment = datetime(
            day.year, day.month, day.day, hour, minute, second, nanosecond // 1000, tzinfo=offset
        )
        return format_instant(moment)
    except (ValueError, OverflowError):
        return None


def normalize_target(value: Any) -> str:
    moment = parse_instant(value)
    try:
        return format_instant(moment)
    except OverflowError as exc:
        raise InvalidInput(f"Invalid datetime ({TARGET_FORMAT_HINT})") from exc


def clean_title(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidInput("title must be a string")
    title = value.strip()
    if not title:
        raise InvalidInput("title must not be empty")
    return title


def validate(title: Any, target: Any) -> Tuple[str, str]:
    """Check a title/target pair before it is written.

    Returns the trimmed title and the normalised target text.  Raises
    ``InvalidInput`` on the first problem found; never has side effects.
    """
    return clean_title(title), normalize_target(target)


def utc_now() -> str:
    return format_instant(datetime.now(timezone.utc))


class Counter(BaseModel):
    """A stored counter as held by the store and returned by the API."""

    model_config = ConfigDict(frozen=True)

    id: StrictStr = Field(..., examples=["9f1c1e4e-6f0e-4a51-9a55-3b8f5f0d2c11"])
    title: StrictStr = Field(..., examples=["Launch"])
    # str for everything this process writes; stored oddities pass through
    target: Any = Field(..., examples=["2030-01-01T00:00:00Z"])
    created_at: Any = Field(None, examples=["2026-10-18T09:30:00Z"])

    @field_validator("target", "created_at", mode="before")
    @classmethod
    def upgrade_legacy_instant(cls, v: Any) -> Any:
        converted = legacy_instant(v)
        return v if converted is None else converted


class CounterPayload(BaseModel):
    """Request body for creating or replacing a counter.

    Both fields are required strings; unknown fields are rejected rather
    than ignored.
    """

    model_config = ConfigDict(extra="forbid")

    title: StrictStr = Field(..., examples=["Launch"])
    target: StrictStr = Field(..., examples=["2030-01-01T00:00:00Z"])

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        return clean_title(v)

    @field_validator("target")
    @classmethod
    def check_target(cls, v: str) -> str:
        return normalize_target(v)
