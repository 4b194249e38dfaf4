from datetime import date, datetime, timezone
from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from punktual.calendar_links import (
    event_window,
    generate_calendar_links,
    generate_ics,
)
from punktual.schemas import EventData

STAMP = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _params(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def _ics_lines(ics: str) -> list[str]:
    return ics.split("\r\n")


@pytest.fixture
def timed_event():
    return EventData(
        title="Launch",
        description="Product launch call",
        location="Online",
        start_date="2025-06-01",
        start_time="09:00",
        end_date="2025-06-01",
        end_time="10:00",
    )


def test_every_platform_gets_a_link(timed_event):
    links = generate_calendar_links(timed_event)
    assert set(links) == {"google", "apple", "outlook", "office365", "outlookcom", "yahoo"}
    assert all(links.values())
    assert links["outlookcom"] == links["outlook"]


def test_missing_title_or_date_gives_empty_links_without_raising():
    assert set(generate_calendar_links(EventData(start_date="2025-06-01")).values()) == {""}
    assert set(generate_calendar_links(EventData(title="Launch")).values()) == {""}
    assert generate_ics(EventData(title="   ", start_date="2025-06-01")) == ""


def test_google_link(timed_event):
    url = generate_calendar_links(timed_event)["google"]
    assert url.startswith("https://calendar.google.com/calendar/render?")
    params = _params(url)
    assert params["action"] == "TEMPLATE"
    assert params["text"] == "Launch"
    assert params["dates"] == "20250601T090000Z/20250601T100000Z"
    assert params["details"] == "Product launch call"
    assert params["location"] == "Online"


def test_outlook_and_office365_links(timed_event):
    links = generate_calendar_links(timed_event)
    assert links["outlook"].startswith("https://outlook.live.com/calendar/0/deeplink/compose?")
    assert links["office365"].startswith("https://outlook.office.com/calendar/0/deeplink/compose?")
    params = _params(links["office365"])
    assert params["subject"] == "Launch"
    assert params["startdt"] == "2025-06-01T09:00:00Z"
    assert params["enddt"] == "2025-06-01T10:00:00Z"
    assert "allday" not in params


def test_yahoo_link(timed_event):
    params = _params(generate_calendar_links(timed_event)["yahoo"])
    assert params["v"] == "60"
    assert params["st"] == "20250601T090000Z"
    assert params["et"] == "20250601T100000Z"
    assert params["in_loc"] == "Online"


def test_text_is_percent_encoded():
    event = EventData(title="Q&A / Launch", start_date="2025-06-01", start_time="09:00", end_time="10:00")
    url = generate_calendar_links(event)["google"]
    assert "text=Q%26A%20%2F%20Launch" in url


@pytest.mark.parametrize(
    "start_time, end_date, end_time",
    [("09:00", "2025-06-01", "09:30"), ("23:00", "2025-06-02", "01:00"), ("00:00", "2025-06-03", "00:00")],
)
def test_timed_links_start_before_end(start_time, end_date, end_time):
    event = EventData(
        title="Launch", start_date="2025-06-01", start_time=start_time, end_date=end_date, end_time=end_time
    )
    links = generate_calendar_links(event)
    google_start, google_end = _params(links["google"])["dates"].split("/")
    assert google_start < google_end
    outlook = _params(links["outlook"])
    assert outlook["startdt"] < outlook["enddt"]
    yahoo = _params(links["yahoo"])
    assert yahoo["st"] < yahoo["et"]


def test_local_times_are_converted_to_utc():
    event = EventData(
        title="Launch",
        start_date="2025-06-01",
        start_time="09:00",
        end_time="10:00",
        timezone="America/New_York",
    )
    assert _params(generate_calendar_links(event)["google"])["dates"] == "20250601T130000Z/20250601T140000Z"


def test_unknown_timezone_falls_back_to_utc():
    event = EventData(title="Launch", start_date="2025-06-01", start_time="09:00", timezone="Mars/Olympus")
    start, _ = event_window(event)
    assert start == datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


def test_missing_end_defaults_to_one_hour():
    event = EventData(title="Launch", start_date="2025-06-01", start_time="16:30")
    start, end = event_window(event)
    assert (end - start).total_seconds() == 3600


class TestAllDay:
    def test_single_day_uses_exclusive_end(self):
        event = EventData(title="Offsite", start_date="2025-06-01", is_all_day=True)
        links = generate_calendar_links(event)
        assert _params(links["google"])["dates"] == "20250601/20250602"
        outlook = _params(links["outlook"])
        assert outlook["startdt"] == "2025-06-01"
        assert outlook["enddt"] == "2025-06-02"
        assert outlook["allday"] == "true"
        yahoo = _params(links["yahoo"])
        assert yahoo["dur"] == "allday"
        assert yahoo["st"] == "20250601"

    @pytest.mark.parametrize("days", [1, 2, 3, 7])
    def test_ics_end_is_start_plus_span(self, days):
        start = date(2025, 6, 28)
        last = date.fromordinal(start.toordinal() + days - 1)
        event = EventData(title="Conference", start_date=start, end_date=last, is_all_day=True)
        lines = _ics_lines(generate_ics(event, dtstamp=STAMP))
        expected_end = date.fromordinal(start.toordinal() + days)
        assert f"DTSTART;VALUE=DATE:{start:%Y%m%d}" in lines
        assert f"DTEND;VALUE=DATE:{expected_end:%Y%m%d}" in lines


class TestIcs:
    def test_vevent_fields(self, timed_event):
        ics = generate_ics(timed_event, dtstamp=STAMP)
        lines = _ics_lines(ics)
        assert lines[0] == "BEGIN:VCALENDAR"
        assert "BEGIN:VEVENT" in lines
        assert "SUMMARY:Launch" in lines
        assert "DESCRIPTION:Product launch call" in lines
        assert "LOCATION:Online" in lines
        assert "DTSTART:20250601T090000Z" in lines
        assert "DTEND:20250601T100000Z" in lines
        assert any(line.startswith("UID:") and line.endswith("@punktual.co") for line in lines)

    def test_output_is_deterministic_for_fixed_stamp(self, timed_event):
        assert generate_ics(timed_event, dtstamp=STAMP) == generate_ics(timed_event, dtstamp=STAMP)

    def test_long_lines_are_folded(self):
        event = EventData(title="Launch", description="word " * 60, start_date="2025-06-01", start_time="09:00")
        ics = generate_ics(event, dtstamp=STAMP)
        assert all(len(line.encode("utf-8")) <= 75 for line in _ics_lines(ics))
        assert any(line.startswith(" ") for line in _ics_lines(ics))

    def test_reminder_adds_alarm(self, timed_event):
        timed_event.reminder_time = "15"
        lines = _ics_lines(generate_ics(timed_event, dtstamp=STAMP))
        assert "BEGIN:VALARM" in lines
        assert "TRIGGER:-PT15M" in lines

    def test_unparseable_reminder_is_ignored(self, timed_event):
        timed_event.reminder_time = "soon"
        assert "BEGIN:VALARM" not in generate_ics(timed_event, dtstamp=STAMP)

    def test_weekly_recurrence(self):
        event = EventData(
            title="Standup",
            start_date="2025-06-02",
            start_time="09:00",
            end_time="09:15",
            is_recurring=True,
            recurrence_pattern="weekly",
            recurrence_count=4,
            weekly_days=[3, 1],
        )
        rrule = next(line for line in _ics_lines(generate_ics(event, dtstamp=STAMP)) if line.startswith("RRULE:"))
        assert "FREQ=WEEKLY" in rrule
        assert "COUNT=4" in rrule
        assert "BYDAY=MO,WE" in rrule
        assert _params(generate_calendar_links(event)["google"])["recur"].startswith("RRULE:FREQ=WEEKLY")

    def test_apple_link_inlines_the_calendar(self, timed_event):
        link = generate_calendar_links(timed_event)["apple"]
        assert link.startswith("data:text/calendar;charset=utf8,")
        body = unquote(link.split(",", 1)[1])
        assert "BEGIN:VCALENDAR" in body
        assert "SUMMARY:Launch" in body
