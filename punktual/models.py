from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from punktual.database import Base


class ShortLink(Base):
    __tablename__ = "short_links"

    id = Column(Integer, primary_key=True, index=True)
    short_id = Column(String(16), unique=True, index=True, nullable=False)
    original_url = Column(Text, nullable=False)
    event_title = Column(String(255))
    user_id = Column(String(64), index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    click_count = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    location = Column(String(512), default="")
    start_date = Column(Date, nullable=False)
    start_time = Column(String(5))
    end_date = Column(Date)
    end_time = Column(String(5))
    timezone = Column(String(64), default="UTC")
    is_all_day = Column(Boolean, default=False)
    reminder_time = Column(String(8))
    recurrence = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class GeneratedButton(Base):
    __tablename__ = "generated_buttons"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), index=True, nullable=False)
    button_style = Column(String(16))
    button_size = Column(String(16))
    button_layout = Column(String(16))
    color_theme = Column(String(32))
    text_color = Column(String(32))
    selected_platforms = Column(JSON)
    show_icons = Column(Boolean, default=True)
    html_code = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UsageTracking(Base):
    __tablename__ = "usage_tracking"
    __table_args__ = (UniqueConstraint("user_id", "month"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    month = Column(Date, nullable=False)
    events_created = Column(Integer, nullable=False, default=0)


class EventClick(Base):
    __tablename__ = "event_clicks"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String(64), index=True, nullable=False)
    platform = Column(String(16), nullable=False)
    ip_address = Column(String(64))
    user_agent = Column(String(512))
    referrer = Column(String(2048))
    clicked_at = Column(DateTime(timezone=True), nullable=False)
