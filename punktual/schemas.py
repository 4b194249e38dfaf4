import re
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Platform(str, Enum):
    GOOGLE = "google"
    APPLE = "apple"
    OUTLOOK = "outlook"
    OFFICE365 = "office365"
    OUTLOOKCOM = "outlookcom"
    YAHOO = "yahoo"

PLATFORM_NAMES = {
    Platform.GOOGLE: "Google Calendar",
    Platform.APPLE: "Apple Calendar",
    Platform.OUTLOOK: "Microsoft Outlook",
    Platform.OFFICE365: "Office 365",
    Platform.OUTLOOKCOM: "Outlook.com",
    Platform.YAHOO: "Yahoo Calendar",
}


CSS_COLOUR = re.compile(
    r"#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})"
    r"|(?:rgb|rgba|hsl|hsla)\(\s*[0-9.%]+(?:\s*[,\s/]\s*[0-9.%]+){2,3}\s*\)"
    r"|[a-zA-Z]{3,30}"
)


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire (the form's field names)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Event / button form state ----------

class EventData(CamelModel):
    title: str = ""
    description: str = ""
    location: str = ""
    start_date: date | None = None
    start_time: time | None = None
    end_date: date | None = None
    end_time: time | None = None
    is_all_day: bool = False
    timezone: str = "UTC"
    reminder_time: str | None = None

    is_recurring: bool = False
    recurrence_pattern: Literal["daily", "weekly", "monthly", "yearly"] | None = None
    recurrence_interval: int = Field(1, ge=1)
    recurrence_count: int | None = Field(None, ge=1)
    recurrence_end_date: date | None = None
    weekly_days: list[int] = Field(default_factory=list)

    # Form inputs send "" for untouched fields
    @field_validator(
        "start_date", "start_time", "end_date", "end_time",
        "recurrence_end_date", "reminder_time", "recurrence_pattern",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("weekly_days")
    @classmethod
    def _check_weekdays(cls, value: list[int]) -> list[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError("weeklyDays must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(value))


class ButtonData(CamelModel):
    button_style: Literal["standard", "minimal", "pill", "outlined"] = "standard"
    button_size: Literal["small", "medium", "large"] = "medium"
    button_layout: Literal["dropdown", "individual"] = "dropdown"
    color_theme: str = "#4D90FF"
    text_color: str = "#FFFFFF"
    selected_platforms: set[Platform] = Field(default_factory=set)
    show_icons: bool = True
    custom_text: str = "Add to Calendar"

    @field_validator("color_theme", "text_color")
    @classmethod
    def _check_colour(cls, value: str) -> str:
        # Written straight into the snippet's <style> block
        value = value.strip()
        if not CSS_COLOUR.fullmatch(value):
            raise ValueError("must be a CSS colour (#hex, rgb()/rgba()/hsl()/hsla() or a colour name)")
        return value

    @field_validator("selected_platforms", mode="before")
    @classmethod
    def _platforms_from_mapping(cls, value):
        # The form keeps selection as {"google": true, "apple": false, ...}
        if isinstance(value, dict):
            return [name for name, selected in value.items() if selected]
        return value

    def ordered_platforms(self) -> list[Platform]:
        return [p for p in Platform if p in self.selected_platforms]


class Completeness(BaseModel):
    complete: bool
    missing: list[str]


class StatusRequest(CamelModel):
    event_data: EventData = Field(default_factory=EventData)
    button_data: ButtonData = Field(default_factory=ButtonData)


class CodeRequest(StatusRequest):
    output_type: Literal["button", "links", "css", "js"] = "button"
    minified: bool = False


class CodeOut(BaseModel):
    code: str


# ---------- Short links ----------

class ShortLinkCreate(CamelModel):
    original_url: str = ""
    event_title: str | None = None


class ShortLinkCreated(CamelModel):
    success: bool = True
    short_url: str
    short_id: str


class CalendarShortLinksCreate(CamelModel):
    calendar_links: dict[str, str]
    event_title: str | None = None


class ShortLinkOut(CamelModel):
    short_id: str
    original_url: str
    event_title: str | None = None
    is_active: bool
    click_count: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PaginatedShortLinks(BaseModel):
    items: list[ShortLinkOut]
    total: int
    skip: int
    limit: int


class QrOut(BaseModel):
    qr_base64: str
    media_type: str


# ---------- Events ----------

class EventCreate(CamelModel):
    event_data: EventData
    button_data: ButtonData = Field(default_factory=ButtonData)


class EventOut(CamelModel):
    id: int
    user_id: str
    title: str
    description: str | None = None
    location: str | None = None
    start_date: date
    start_time: str | None = None
    end_date: date | None = None
    end_time: str | None = None
    timezone: str | None = None
    is_all_day: bool = False
    reminder_time: str | None = None
    recurrence: dict[str, Any] | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ButtonOut(CamelModel):
    id: int
    event_id: int
    button_style: str | None = None
    button_size: str | None = None
    button_layout: str | None = None
    color_theme: str | None = None
    text_color: str | None = None
    selected_platforms: list[str] | None = None
    show_icons: bool = True
    html_code: str

    model_config = ConfigDict(from_attributes=True)


class EventCreated(BaseModel):
    success: bool = True
    event: EventOut
    button: ButtonOut
    code: str


class PaginatedEvents(BaseModel):
    items: list[EventOut]
    total: int
    skip: int
    limit: int


class QuotaOut(BaseModel):
    used: int
    limit: int
    remaining: int


# ---------- Misc ----------

class TrackClick(CamelModel):
    event_id: str = ""
    platform: str = ""


class TrackClickOut(BaseModel):
    success: bool = True
    tracked: bool
    message: str


class DataDeletion(BaseModel):
    confirmation: str = ""


class CsrfTokenOut(BaseModel):
    token: str
    success: bool = True


class MessageOut(BaseModel):
    ok: bool
    detail: str


class ErrorOut(BaseModel):
    error: str
