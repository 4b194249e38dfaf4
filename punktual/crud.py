import secrets
import string
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import Session

from punktual import models
from punktual.schemas import ButtonData, EventData

ALPHABET = string.ascii_uppercase + string.digits
SHORT_ID_LENGTH = 8
MAX_ID_ATTEMPTS = 10


# ---------- Short links ----------

def generate_short_id(length: int = SHORT_ID_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))

def create_short_link(
    db: Session, original_url: str, event_title: str | None = None, user_id: str | None = None
) -> models.ShortLink | None:
    """Store a new short link; None if no unused id was found."""
    for _ in range(MAX_ID_ATTEMPTS):
        short_id = generate_short_id()
        if not db.query(models.ShortLink).filter_by(short_id=short_id).first():
            break
    else:
        return None
    link = models.ShortLink(
        short_id=short_id, original_url=original_url, event_title=event_title, user_id=user_id
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    return link

def get_short_link(db: Session, short_id: str) -> models.ShortLink | None:
    return db.query(models.ShortLink).filter_by(short_id=short_id).first()

def get_active_short_link(db: Session, short_id: str) -> models.ShortLink | None:
    return db.query(models.ShortLink).filter_by(short_id=short_id, is_active=True).first()

def deactivate_short_link(db: Session, short_id: str, user_id: str) -> bool:
    link = db.query(models.ShortLink).filter_by(short_id=short_id, user_id=user_id).first()
    if not link:
        return False
    link.is_active = False
    db.commit()
    return True

def get_user_short_links(db: Session, user_id: str, skip: int = 0, limit: int = 100) -> list[models.ShortLink]:
    return (
        db.query(models.ShortLink)
        .filter_by(user_id=user_id)
        .order_by(models.ShortLink.created_at.desc(), models.ShortLink.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )

def count_user_short_links(db: Session, user_id: str) -> int:
    return db.query(models.ShortLink).filter_by(user_id=user_id).count()

def increment_click(db: Session, short_id: str) -> None:
    # Single UPDATE so concurrent redirects don't lose counts
    db.query(models.ShortLink).filter_by(short_id=short_id).update(
        {models.ShortLink.click_count: models.ShortLink.click_count + 1},
        synchronize_session=False,
    )
    db.commit()


# ---------- Events & quota ----------

def month_start(today: date | None = None) -> date:
    today = today or datetime.now(timezone.utc).date()
    return today.replace(day=1)

def get_usage(db: Session, user_id: str, month: date) -> int:
    usage = db.query(models.UsageTracking).filter_by(user_id=user_id, month=month).first()
    return usage.events_created if usage else 0

def create_event(
    db: Session, user_id: str, event_data: EventData, button_data: ButtonData, html_code: str, month: date
) -> tuple[models.Event, models.GeneratedButton]:
    """Persist the event, its button and the usage bump in one transaction."""
    recurrence = None
    if event_data.is_recurring and event_data.recurrence_pattern:
        recurrence = event_data.model_dump(
            mode="json",
            by_alias=True,
            include={
                "recurrence_pattern", "recurrence_interval", "recurrence_count",
                "recurrence_end_date", "weekly_days",
            },
        )
    event = models.Event(
        user_id=user_id,
        title=event_data.title.strip(),
        description=event_data.description,
        location=event_data.location,
        start_date=event_data.start_date,
        start_time=event_data.start_time.strftime("%H:%M") if event_data.start_time else None,
        end_date=event_data.end_date,
        end_time=event_data.end_time.strftime("%H:%M") if event_data.end_time else None,
        timezone=event_data.timezone,
        is_all_day=event_data.is_all_day,
        reminder_time=event_data.reminder_time,
        recurrence=recurrence,
    )
    db.add(event)
    db.flush()

    button = models.GeneratedButton(
        event_id=event.id,
        button_style=button_data.button_style,
        button_size=button_data.button_size,
        button_layout=button_data.button_layout,
        color_theme=button_data.color_theme,
        text_color=button_data.text_color,
        selected_platforms=[p.value for p in button_data.ordered_platforms()],
        show_icons=button_data.show_icons,
        html_code=html_code,
    )
    db.add(button)

    usage = db.query(models.UsageTracking).filter_by(user_id=user_id, month=month).first()
    if usage:
        usage.events_created = (usage.events_created or 0) + 1
    else:
        db.add(models.UsageTracking(user_id=user_id, month=month, events_created=1))

    db.commit()
    db.refresh(event)
    db.refresh(button)
    return event, button

def get_user_events(db: Session, user_id: str, skip: int = 0, limit: int = 100) -> list[models.Event]:
    return (
        db.query(models.Event)
        .filter_by(user_id=user_id)
        .order_by(models.Event.created_at.desc(), models.Event.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )

def count_user_events(db: Session, user_id: str) -> int:
    return db.query(models.Event).filter_by(user_id=user_id).count()


# ---------- Click tracking ----------

def has_recent_click(db: Session, event_id: str, ip_address: str, window_seconds: int, now: datetime) -> bool:
    since = now - timedelta(seconds=window_seconds)
    return (
        db.query(models.EventClick)
        .filter(
            models.EventClick.event_id == event_id,
            models.EventClick.ip_address == ip_address,
            models.EventClick.clicked_at >= since,
        )
        .first()
        is not None
    )

def record_click(
    db: Session, event_id: str, platform: str, ip_address: str, user_agent: str, referrer: str, now: datetime
) -> models.EventClick:
    click = models.EventClick(
        event_id=event_id,
        platform=platform,
        ip_address=ip_address,
        user_agent=user_agent[:512],
        referrer=referrer[:2048],
        clicked_at=now,
    )
    db.add(click)
    db.commit()
    db.refresh(click)
    return click


# ---------- User data ----------

def delete_user_data(db: Session, user_id: str) -> dict[str, int]:
    event_ids = [row.id for row in db.query(models.Event.id).filter_by(user_id=user_id)]
    counts = {
        "short_links": db.query(models.ShortLink).filter_by(user_id=user_id).delete(synchronize_session=False),
        "buttons": 0,
        "clicks": 0,
    }
    if event_ids:
        counts["buttons"] = (
            db.query(models.GeneratedButton)
            .filter(models.GeneratedButton.event_id.in_(event_ids))
            .delete(synchronize_session=False)
        )
        counts["clicks"] = (
            db.query(models.EventClick)
            .filter(models.EventClick.event_id.in_([str(i) for i in event_ids]))
            .delete(synchronize_session=False)
        )
    counts["events"] = db.query(models.Event).filter_by(user_id=user_id).delete(synchronize_session=False)
    db.query(models.UsageTracking).filter_by(user_id=user_id).delete(synchronize_session=False)
    db.commit()
    return counts
