"""Embeddable HTML for the generated calendar button."""

import re
import uuid
from enum import Enum
from html import escape

from punktual.calendar_links import generate_calendar_links, has_required_fields
from punktual.schemas import PLATFORM_NAMES, ButtonData, EventData

MISSING_EVENT_COMMENT = "<!-- Please fill in the event title and date to generate code -->"
MISSING_PLATFORM_COMMENT = "<!-- Please select at least one calendar platform -->"


class OutputType(str, Enum):
    BUTTON = "button"
    LINKS = "links"
    CSS = "css"
    JS = "js"


SIZE_STYLES = {
    "small": ("8px 12px", "14px"),
    "medium": ("10px 16px", "16px"),
    "large": ("12px 20px", "18px"),
}

RADIUS = {"standard": "6px", "minimal": "4px", "pill": "9999px", "outlined": "6px"}


def _minify(text: str) -> str:
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"\s*([{};:,])\s*", r"\1", text)
    return text.strip()


def _minify_html(text: str) -> str:
    return re.sub(r">\s+<", "><", re.sub(r"\s+", " ", text)).strip()


def _active_platforms(event: EventData, button: ButtonData) -> list[tuple[str, str, str]]:
    links = generate_calendar_links(event)
    return [
        (platform.value, PLATFORM_NAMES[platform], links.get(platform.value, ""))
        for platform in button.ordered_platforms()
    ]


def button_css(button: ButtonData, minified: bool = False) -> str:
    padding, font_size = SIZE_STYLES[button.button_size]
    if button.button_style == "outlined":
        colours = (
            f"background-color: transparent; color: {button.color_theme}; "
            f"border: 2px solid {button.color_theme};"
        )
    elif button.button_style == "minimal":
        colours = f"background-color: transparent; color: {button.color_theme}; border: none;"
    else:
        colours = f"background-color: {button.color_theme}; color: {button.text_color}; border: none;"

    css = f"""
.punktual-container {{
  position: relative;
  display: inline-block;
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
}}

.punktual-button {{
  display: inline-flex;
  align-items: center;
  gap: 6px;
  padding: {padding};
  font-size: {font_size};
  font-weight: 600;
  border-radius: {RADIUS[button.button_style]};
  cursor: pointer;
  text-decoration: none;
  transition: all 0.2s ease;
  {colours}
}}

.punktual-button:hover {{
  opacity: 0.9;
  transform: translateY(-1px);
}}

.punktual-dropdown {{
  display: none;
  position: absolute;
  top: 100%;
  left: 0;
  background: white;
  border: 1px solid #ddd;
  border-radius: 6px;
  box-shadow: 0 4px 12px rgba(0,0,0,0.1);
  min-width: 200px;
  z-index: 1000;
  margin-top: 4px;
}}

.punktual-dropdown-item {{
  display: block;
  padding: 8px 16px;
  color: #333;
  font-size: 14px;
  text-decoration: none;
}}

.punktual-dropdown-item:hover {{
  background-color: #f5f5f5;
}}
"""
    return _minify(css) if minified else css.strip()


def button_js(minified: bool = False) -> str:
    js = """
document.addEventListener('DOMContentLoaded', function() {
  document.querySelectorAll('.punktual-container > button.punktual-button').forEach(function(button) {
    button.addEventListener('click', function(e) {
      e.preventDefault();
      var dropdown = this.parentNode.querySelector('.punktual-dropdown');
      if (dropdown) {
        dropdown.style.display = dropdown.style.display === 'block' ? 'none' : 'block';
      }
    });
  });
  document.addEventListener('click', function(event) {
    if (!event.target.closest('.punktual-container')) {
      document.querySelectorAll('.punktual-dropdown').forEach(function(dropdown) {
        dropdown.style.display = 'none';
      });
    }
  });
});
"""
    return _minify(js) if minified else js.strip()


def _button_html(event: EventData, button: ButtonData, minified: bool) -> str:
    platforms = _active_platforms(event, button)
    label = escape(button.custom_text or "Add to Calendar")
    icon = "📅 " if button.show_icons else ""
    button_id = f"punktual-{uuid.uuid4().hex[:12]}"

    if button.button_layout == "individual":
        body = "\n  ".join(
            f'<a href="{escape(url)}" target="_blank" rel="noopener" class="punktual-button">{icon}{escape(name)}</a>'
            for _, name, url in platforms
        )
        html = f'<!-- Punktual Calendar Buttons -->\n<div class="punktual-container">\n  {body}\n</div>'
    else:
        items = "\n    ".join(
            f'<a href="{escape(url)}" target="_blank" rel="noopener" class="punktual-dropdown-item">{escape(name)}</a>'
            for _, name, url in platforms
        )
        html = f"""<!-- Punktual Calendar Button -->
<div class="punktual-container">
  <button id="{button_id}" class="punktual-button">{icon}{label} ▼</button>
  <div id="{button_id}-dropdown" class="punktual-dropdown">
    {items}
  </div>
</div>"""

    html += f"\n\n<style>\n{button_css(button, minified)}\n</style>"
    if button.button_layout == "dropdown":
        html += f"\n\n<script>\n{button_js(minified)}\n</script>"
    return _minify_html(html) if minified else html


def _links_html(event: EventData, button: ButtonData, minified: bool) -> str:
    items = "\n    ".join(
        f'<li><a href="{escape(url)}" target="_blank" rel="noopener">Add to {escape(name)}</a></li>'
        for _, name, url in _active_platforms(event, button)
    )
    html = f"""<!-- Punktual Direct Links -->
<div>
  <p>Add "{escape(event.title)}" to your calendar:</p>
  <ul>
    {items}
  </ul>
</div>"""
    return _minify_html(html) if minified else html


RENDERERS = {
    OutputType.BUTTON: _button_html,
    OutputType.LINKS: _links_html,
    OutputType.CSS: lambda event, button, minified: button_css(button, minified),
    OutputType.JS: lambda event, button, minified: button_js(minified),
}


def generate_calendar_code(
    event: EventData,
    button: ButtonData,
    output_type: OutputType | str = OutputType.BUTTON,
    minified: bool = False,
) -> str:
    if not has_required_fields(event):
        return MISSING_EVENT_COMMENT
    if not button.selected_platforms:
        return MISSING_PLATFORM_COMMENT
    return RENDERERS[OutputType(output_type)](event, button, minified)
