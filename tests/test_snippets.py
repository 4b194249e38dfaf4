from html import escape

import pytest
from pydantic import ValidationError

from punktual.calendar_links import generate_calendar_links
from punktual.schemas import ButtonData, EventData
from punktual.snippets import (
    MISSING_EVENT_COMMENT,
    MISSING_PLATFORM_COMMENT,
    OutputType,
    button_css,
    generate_calendar_code,
)


@pytest.fixture
def event(launch_event):
    return EventData(**launch_event)


def test_incomplete_event_gets_a_hint(event):
    assert generate_calendar_code(EventData(), ButtonData(selected_platforms=["google"])) == MISSING_EVENT_COMMENT
    assert generate_calendar_code(event, ButtonData()) == MISSING_PLATFORM_COMMENT


def test_dropdown_button_lists_selected_platforms(event):
    button = ButtonData(selected_platforms=["yahoo", "google"])
    html = generate_calendar_code(event, button)
    links = generate_calendar_links(event)

    assert 'class="punktual-container"' in html
    assert escape(links["google"]) in html
    assert escape(links["yahoo"]) in html
    assert "Apple Calendar" not in html
    # Platforms keep their canonical order, not selection order
    assert html.index("Google Calendar") < html.index("Yahoo Calendar")
    assert "<style>" in html
    assert "<script>" in html


def test_individual_layout_has_no_dropdown_script(event):
    button = ButtonData(selected_platforms=["google", "outlook"], button_layout="individual")
    html = generate_calendar_code(event, button)
    assert html.count('class="punktual-button"') == 2
    assert "<script>" not in html


def test_links_output_escapes_the_title():
    event = EventData(title="<b>Launch</b>", start_date="2025-06-01", start_time="09:00")
    html = generate_calendar_code(event, ButtonData(selected_platforms=["google"]), OutputType.LINKS)
    assert "&lt;b&gt;Launch&lt;/b&gt;" in html
    assert "<b>" not in html
    assert "Add to Google Calendar" in html


def test_custom_text_and_icons(event):
    button = ButtonData(selected_platforms=["google"], custom_text="Save the date", show_icons=False)
    html = generate_calendar_code(event, button)
    assert "Save the date" in html
    assert "📅" not in html


def test_minified_output_is_single_line(event):
    html = generate_calendar_code(event, ButtonData(selected_platforms=["google"]), "button", minified=True)
    assert "\n" not in html
    assert "><" in html


@pytest.mark.parametrize(
    "size, padding", [("small", "8px 12px"), ("medium", "10px 16px"), ("large", "12px 20px")]
)
def test_css_follows_button_size(size, padding):
    assert f"padding: {padding};" in button_css(ButtonData(button_size=size))


def test_outlined_style_uses_border_colour():
    css = button_css(ButtonData(button_style="outlined", color_theme="#123456"))
    assert "border: 2px solid #123456;" in css
    assert "background-color: transparent;" in css


@pytest.mark.parametrize("colour", ["rgb(77, 144, 255)", "rgba(0,0,0,0.5)", "#abc", "rebeccapurple"])
def test_css_colour_forms_are_accepted(colour):
    assert f"background-color: {colour};" in button_css(ButtonData(color_theme=colour))


@pytest.mark.parametrize(
    "colour", ["red}</style><script>alert(1)</script><style>", "#12345", "url(x)", "red; display: none"]
)
def test_hostile_colour_is_rejected(colour):
    with pytest.raises(ValidationError):
        ButtonData(selected_platforms=["google"], color_theme=colour)
    with pytest.raises(ValidationError):
        ButtonData(text_color=colour)


def test_css_and_js_output_types(event):
    button = ButtonData(selected_platforms=["google"], button_style="pill")
    assert "border-radius: 9999px;" in generate_calendar_code(event, button, "css")
    assert "addEventListener" in generate_calendar_code(event, button, "js")
