from datetime import datetime

from punktual.schemas import ButtonData, Completeness, EventData

TITLE = "Event title"
START_DATE = "Start date"
START_TIME = "Start time"
END_DATE = "End date"
END_TIME = "End time"
PLATFORMS = "At least one calendar platform"
END_BEFORE_START = "End must be after start"


def ends_before_start(event: EventData) -> bool:
    if event.start_date is None:
        return False
    end_date = event.end_date or event.start_date
    if event.is_all_day or event.start_time is None or event.end_time is None:
        return end_date < event.start_date
    return datetime.combine(end_date, event.end_time) < datetime.combine(event.start_date, event.start_time)


def check_completeness(event: EventData, button: ButtonData) -> Completeness:
    """Which required fields are still missing, in the order the form shows them."""
    missing = []
    if not event.title.strip():
        missing.append(TITLE)
    if event.start_date is None:
        missing.append(START_DATE)
    if event.start_time is None and not event.is_all_day:
        missing.append(START_TIME)
    if event.end_date is None:
        missing.append(END_DATE)
    if event.end_time is None and not event.is_all_day:
        missing.append(END_TIME)
    if not button.selected_platforms:
        missing.append(PLATFORMS)
    if ends_before_start(event):
        missing.append(END_BEFORE_START)
    return Completeness(complete=not missing, missing=missing)
