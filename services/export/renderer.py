"""Placeholder slide stills rendered with Pillow."""

from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from services.content_store import SlideRecord
from services.narration.content import extract_slide_content

DEFAULT_BACKGROUND = "#1f2937"
DEFAULT_FOREGROUND = "#f9fafb"
FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
]


def _load_font(size: int):
    for path in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _wrap(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> list[str]:
    lines: list[str] = []
    for paragraph in text.splitlines():
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}".strip()
            if draw.textlength(candidate, font=font) <= max_width or not current:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


def _theme_color(theme: dict, key: str, default: str) -> str:
    value = theme.get(key) if isinstance(theme, dict) else None
    if isinstance(value, str) and value.startswith("#") and len(value) in (4, 7):
        return value
    return default


def render_slide_image(
    slide: SlideRecord,
    slide_number: int,
    dimensions: tuple[int, int],
    output_path: Path,
    theme: dict | None = None,
) -> Path:
    """Draw the slide title and text onto a plain background and save it as PNG."""
    width, height = dimensions
    theme = theme or {}
    background = _theme_color(theme, "backgroundColor", DEFAULT_BACKGROUND)
    foreground = _theme_color(theme, "textColor", DEFAULT_FOREGROUND)

    img = Image.new("RGB", (width, height), color=background)
    draw = ImageDraw.Draw(img)

    margin = width // 16
    title_size = max(16, height // 14)
    body_size = max(12, height // 28)
    title_font = _load_font(title_size)
    body_font = _load_font(body_size)

    y = margin
    title = slide.title or f"Slide {slide_number}"
    for line in _wrap(draw, title, title_font, width - 2 * margin):
        draw.text((margin, y), line, fill=foreground, font=title_font)
        y += int(title_size * 1.3)

    y += margin // 2
    body = extract_slide_content(slide.blocks)
    line_height = int(body_size * 1.4)
    for line in _wrap(draw, body, body_font, width - 2 * margin):
        if y + line_height > height - margin:
            break
        draw.text((margin, y), line, fill=foreground, font=body_font)
        y += line_height

    img.save(output_path, format="PNG")
    return output_path
