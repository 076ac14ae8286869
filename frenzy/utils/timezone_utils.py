"""
Timezone utility functions for NFL Frenzy

Stored instants are UTC. Providers hand out a mix of explicit-offset
strings, naive UTC strings and naive US Eastern wall-clock strings; the
helpers here turn all of them into aware UTC datetimes.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum

import pytz
from flask import current_app, has_app_context

EASTERN = pytz.timezone("America/New_York")


class TzConvention(str, Enum):
    """How a provider's timestamp string should be read"""

    UTC = "utc"
    FIXED_OFFSET = "fixed_offset"
    EASTERN_LOCAL = "eastern_local"


def get_app_timezone():
    """Get the application's configured display timezone"""
    timezone_name = "UTC"
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Return an aware UTC datetime; naive values are assumed to be UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(get_app_timezone())


def isoformat_utc(dt):
    """ISO-8601 string with a Z suffix, or None"""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def second_sunday_of_march(year):
    first = date(year, 3, 1)
    first_sunday = first + timedelta(days=(6 - first.weekday()) % 7)
    return first_sunday + timedelta(days=7)


def first_sunday_of_november(year):
    first = date(year, 11, 1)
    return first + timedelta(days=(6 - first.weekday()) % 7)


def is_eastern_dst(local_dt):
    """
    Whether a naive US Eastern wall-clock time falls inside daylight time.

    DST runs from 02:00 local on the second Sunday of March to 02:00 local
    on the first Sunday of November.
    """
    start = datetime.combine(second_sunday_of_march(local_dt.year), datetime.min.time())
    start = start.replace(hour=2)
    end = datetime.combine(first_sunday_of_november(local_dt.year), datetime.min.time())
    end = end.replace(hour=2)
    naive = local_dt.replace(tzinfo=None)
    return start <= naive < end


def eastern_local_to_utc(local_dt):
    """Interpret naive wall-clock fields as US Eastern civil time"""
    offset = timedelta(hours=-4) if is_eastern_dst(local_dt) else timedelta(hours=-5)
    naive = local_dt.replace(tzinfo=None)
    return (naive - offset).replace(tzinfo=timezone.utc)


def parse_kickoff(raw, convention=TzConvention.UTC, offset_minutes=0):
    """
    Parse a provider timestamp into an aware UTC datetime.

    Strings that carry their own offset (or a trailing Z) are trusted as
    is. Naive strings are read according to ``convention``. Anything that
    cannot be parsed yields None.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        parsed = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        return parsed.astimezone(timezone.utc)

    convention = TzConvention(convention)
    if convention is TzConvention.EASTERN_LOCAL:
        return eastern_local_to_utc(parsed)
    if convention is TzConvention.FIXED_OFFSET:
        return (parsed - timedelta(minutes=offset_minutes or 0)).replace(
            tzinfo=timezone.utc
        )
    return parsed.replace(tzinfo=timezone.utc)


def eastern_date(dt):
    """Calendar date of an instant as seen in US Eastern time"""
    return ensure_utc(dt).astimezone(EASTERN).date()


def week_lock_time(kickoffs):
    """
    Instant at which a week's picks lock.

    That is the earliest kickoff falling on a Sunday (Eastern calendar),
    or the earliest kickoff overall when the week has no Sunday game.
    Returns None when no kickoff is known.
    """
    known = sorted(ensure_utc(k) for k in kickoffs if k is not None)
    if not known:
        return None
    for kickoff in known:
        if eastern_date(kickoff).weekday() == 6:
            return kickoff
    return known[0]


def format_game_time(dt, format_str="%a %m/%d at %I:%M %p"):
    """Format a game time in the application's timezone"""
    if dt is None:
        return "TBD"
    return convert_to_app_timezone(dt).strftime(format_str)
