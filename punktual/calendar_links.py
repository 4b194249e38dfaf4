"""Calendar link generation.

Maps an :class:`EventData` to one "add to calendar" URL per supported
platform, plus an inline iCalendar payload for Apple Calendar. Everything in
here is pure: no database, no network, and missing input never raises. An
event without a title or start date produces empty links.
"""

import hashlib
import logging
from datetime import date, datetime, time, timedelta, timezone
from urllib.parse import quote, urlencode
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from icalendar import Alarm, Calendar
from icalendar import Event as ICalEvent
from icalendar import vRecur

from punktual.schemas import EventData, Platform

logger = logging.getLogger("punktual.calendar_links")

GOOGLE_URL = "https://calendar.google.com/calendar/render"
OUTLOOK_URL = "https://outlook.live.com/calendar/0/deeplink/compose"
OFFICE365_URL = "https://outlook.office.com/calendar/0/deeplink/compose"
YAHOO_URL = "https://calendar.yahoo.com/"

PRODID = "-//Punktual//Punktual//EN"
UID_DOMAIN = "punktual.co"

DEFAULT_START = time(10, 0)
DEFAULT_DURATION = timedelta(hours=1)

# weeklyDays uses 0 = Sunday
ICAL_WEEKDAYS = ["SU", "MO", "TU", "WE", "TH", "FR", "SA"]

UTC_STAMP = "%Y%m%dT%H%M%SZ"
UTC_ISO = "%Y-%m-%dT%H:%M:%SZ"
DATE_COMPACT = "%Y%m%d"
DATE_ISO = "%Y-%m-%d"


def has_required_fields(event: EventData) -> bool:
    return bool(event.title.strip()) and event.start_date is not None


def empty_links() -> dict[str, str]:
    return {platform.value: "" for platform in Platform}


def _zone(name: str):
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return timezone.utc


def event_window(event: EventData) -> tuple[date | datetime, date | datetime]:
    """Start and end of the event.

    All-day events give dates with an exclusive end (last day + 1), timed
    events give aware UTC datetimes. Callers must check
    :func:`has_required_fields` first.
    """
    last_day = max(event.end_date or event.start_date, event.start_date)
    if event.is_all_day:
        return event.start_date, last_day + timedelta(days=1)

    zone = _zone(event.timezone)
    start_time = event.start_time or DEFAULT_START
    start = datetime.combine(event.start_date, start_time, tzinfo=zone)
    if event.end_time is not None:
        end = datetime.combine(last_day, event.end_time, tzinfo=zone)
    else:
        end = datetime.combine(last_day, start_time, tzinfo=zone) + DEFAULT_DURATION
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def recurrence_rule(event: EventData) -> vRecur | None:
    if not event.is_recurring or not event.recurrence_pattern:
        return None
    rule = {"freq": event.recurrence_pattern.upper(), "interval": event.recurrence_interval}
    if event.recurrence_count:
        rule["count"] = event.recurrence_count
    elif event.recurrence_end_date:
        if event.is_all_day:
            rule["until"] = event.recurrence_end_date
        else:
            # UNTIL must have the same value type as DTSTART
            rule["until"] = datetime.combine(
                event.recurrence_end_date, time(23, 59, 59), tzinfo=_zone(event.timezone)
            ).astimezone(timezone.utc)
    if event.recurrence_pattern == "weekly" and event.weekly_days:
        rule["byday"] = [ICAL_WEEKDAYS[day] for day in event.weekly_days]
    return vRecur(rule)


def _reminder_minutes(event: EventData) -> int | None:
    if event.reminder_time is None:
        return None
    try:
        minutes = int(event.reminder_time)
    except ValueError:
        logger.debug("Ignoring reminder code %r", event.reminder_time)
        return None
    return minutes if minutes >= 0 else None


def _uid(event: EventData, start, end) -> str:
    digest = hashlib.sha1(f"{event.title}|{start.isoformat()}|{end.isoformat()}".encode("utf-8"))
    return f"{digest.hexdigest()[:20]}@{UID_DOMAIN}"


def generate_ics(event: EventData, dtstamp: datetime | None = None) -> str:
    """Render the event as an iCalendar (RFC 5545) document.

    ``dtstamp`` defaults to now; pass it to get byte-identical output for the
    same event.
    """
    if not has_required_fields(event):
        return ""

    start, end = event_window(event)

    vevent = ICalEvent()
    vevent.add("uid", _uid(event, start, end))
    vevent.add("dtstamp", dtstamp or datetime.now(timezone.utc))
    vevent.add("dtstart", start)
    vevent.add("dtend", end)
    vevent.add("summary", event.title)
    if event.description:
        vevent.add("description", event.description)
    if event.location:
        vevent.add("location", event.location)

    rule = recurrence_rule(event)
    if rule is not None:
        vevent.add("rrule", rule)

    minutes = _reminder_minutes(event)
    if minutes is not None:
        alarm = Alarm()
        alarm.add("action", "DISPLAY")
        alarm.add("description", event.title)
        alarm.add("trigger", timedelta(minutes=-minutes))
        vevent.add_component(alarm)

    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add_component(vevent)
    return cal.to_ical().decode("utf-8")


def _query(params: dict) -> str:
    return urlencode(params, quote_via=quote)


def google_link(event: EventData) -> str:
    start, end = event_window(event)
    fmt = DATE_COMPACT if event.is_all_day else UTC_STAMP
    params = {
        "action": "TEMPLATE",
        "text": event.title,
        "dates": f"{start.strftime(fmt)}/{end.strftime(fmt)}",
        "details": event.description,
        "location": event.location,
    }
    rule = recurrence_rule(event)
    if rule is not None:
        params["recur"] = "RRULE:" + rule.to_ical().decode("utf-8")
    return f"{GOOGLE_URL}?{_query(params)}"


def _outlook_link(base_url: str, event: EventData) -> str:
    start, end = event_window(event)
    fmt = DATE_ISO if event.is_all_day else UTC_ISO
    params = {
        "path": "/calendar/action/compose",
        "rru": "addevent",
        "subject": event.title,
        "startdt": start.strftime(fmt),
        "enddt": end.strftime(fmt),
        "body": event.description,
        "location": event.location,
    }
    if event.is_all_day:
        params["allday"] = "true"
    return f"{base_url}?{_query(params)}"


def outlook_link(event: EventData) -> str:
    return _outlook_link(OUTLOOK_URL, event)


def office365_link(event: EventData) -> str:
    return _outlook_link(OFFICE365_URL, event)


def yahoo_link(event: EventData) -> str:
    start, end = event_window(event)
    params = {"v": "60", "title": event.title}
    if event.is_all_day:
        params.update(st=start.strftime(DATE_COMPACT), et=end.strftime(DATE_COMPACT), dur="allday")
    else:
        params.update(st=start.strftime(UTC_STAMP), et=end.strftime(UTC_STAMP))
    params.update(desc=event.description, in_loc=event.location)
    return f"{YAHOO_URL}?{_query(params)}"


def apple_link(event: EventData, dtstamp: datetime | None = None) -> str:
    return "data:text/calendar;charset=utf8," + quote(generate_ics(event, dtstamp), safe="")


def generate_calendar_links(event: EventData, dtstamp: datetime | None = None) -> dict[str, str]:
    """One link per platform, keyed by platform id."""
    if not has_required_fields(event):
        return empty_links()

    outlook = outlook_link(event)
    return {
        Platform.GOOGLE.value: google_link(event),
        Platform.APPLE.value: apple_link(event, dtstamp),
        Platform.OUTLOOK.value: outlook,
        Platform.OFFICE365.value: office365_link(event),
        Platform.OUTLOOKCOM.value: outlook,
        Platform.YAHOO.value: yahoo_link(event),
    }
