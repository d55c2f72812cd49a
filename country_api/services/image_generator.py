import logging
import os
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from country_api.config import get_settings
from country_api.schemas.country import SummaryData
from country_api.services.transform import format_gdp

logger = logging.getLogger(__name__)
settings = get_settings()

IMAGE_WIDTH = 800
IMAGE_HEIGHT = 600

GRADIENT_TOP = (30, 60, 114)
GRADIENT_BOTTOM = (42, 82, 152)
TEXT_COLOR = (255, 255, 255)


def get_image_path() -> str:
    return settings.image_path


def _load_font(size: int, bold: bool = False):
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        return ImageFont.load_default()


def _draw_gradient(draw: ImageDraw.ImageDraw):
    for y in range(IMAGE_HEIGHT):
        ratio = y / (IMAGE_HEIGHT - 1)
        color = tuple(
            int(top + (bottom - top) * ratio)
            for top, bottom in zip(GRADIENT_TOP, GRADIENT_BOTTOM)
        )
        draw.line([(0, y), (IMAGE_WIDTH, y)], fill=color)


def _draw_centered(draw: ImageDraw.ImageDraw, y: int, text: str, font):
    width = draw.textlength(text, font=font)
    draw.text(((IMAGE_WIDTH - width) / 2, y), text, font=font, fill=TEXT_COLOR)


def generate_summary_image(summary: SummaryData, image_path: Optional[str] = None) -> str:
    """
    Render the summary card (totals, top countries by GDP, refresh time) to PNG.

    The file is written next to its final location and then moved into
    place, so readers never see a half-written image.
    """
    image_path = image_path or get_image_path()
    os.makedirs(os.path.dirname(image_path) or ".", exist_ok=True)

    img = Image.new("RGB", (IMAGE_WIDTH, IMAGE_HEIGHT))
    draw = ImageDraw.Draw(img)
    _draw_gradient(draw)

    _draw_centered(draw, 50, "Country Statistics Summary", _load_font(40, bold=True))
    _draw_centered(draw, 125, f"Total Countries: {summary.total_countries}", _load_font(30))
    _draw_centered(draw, 195, f"Top {len(summary.top_countries)} Countries by GDP", _load_font(26, bold=True))

    row_font = _load_font(22)
    y = 250
    for rank, country in enumerate(summary.top_countries, start=1):
        gdp = format_gdp(country.estimated_gdp) if country.estimated_gdp is not None else "N/A"
        draw.text((100, y), f"{rank}. {country.name} - {gdp}", font=row_font, fill=TEXT_COLOR)
        y += 40

    refreshed = summary.last_refreshed_at.strftime("%Y-%m-%d %H:%M:%S UTC")
    _draw_centered(draw, IMAGE_HEIGHT - 60, f"Last Refreshed At: {refreshed}", _load_font(18))

    tmp_path = f"{image_path}.tmp"
    img.save(tmp_path, format="PNG")
    os.replace(tmp_path, image_path)

    logger.info(f"✅ Summary image generated at {image_path}")
    return image_path
