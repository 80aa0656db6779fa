import base64
from dataclasses import dataclass
from typing import Sequence, Tuple

OVERLAY_FONT_STACK = "Inter, system-ui, -apple-system, sans-serif"
# Longest side of a freshly placed image
IMAGE_FIT_SIZE = 150.0
GRAYSCALE_FILTER_ID = "grayscale"


@dataclass(frozen=True)
class TextOverlay:
    """Free text drawn over the chart. x/y are measured from the top-left of the plot area."""
    id: str = ""
    text: str = "New Text"
    x: float = 100.0
    y: float = 100.0
    font_size: float = 16.0
    font_family: str = OVERLAY_FONT_STACK
    color: str = "#ffffff"
    bold: bool = False
    italic: bool = False
    underline: bool = False
    opacity: float = 1.0
    rotation: float = 0.0


@dataclass(frozen=True)
class ImageOverlay:
    """Picture drawn over the chart, usually a data URI. Rotation turns it about its own center."""
    id: str = ""
    src: str = ""
    x: float = 100.0
    y: float = 100.0
    scale: float = 1.0
    original_width: float = 0.0
    original_height: float = 0.0
    rotation: float = 0.0
    opacity: float = 1.0
    grayscale: bool = False

    @property
    def width(self) -> float:
        return max(self.original_width * self.scale, 0.0)

    @property
    def height(self) -> float:
        return max(self.original_height * self.scale, 0.0)


def fit_scale(width: float, height: float) -> float:
    longest = max(width, height)
    if longest <= 0:
        return 1.0
    return min(IMAGE_FIT_SIZE / longest, 1.0)


def next_overlay_id(prefix: str, existing: Sequence) -> str:
    taken = {item.id for item in existing}
    n = len(existing) + 1
    while f"{prefix}-{n}" in taken:
        n += 1
    return f"{prefix}-{n}"


def add_text_overlay(overlays: Sequence[TextOverlay], **values) -> Tuple[TextOverlay, ...]:
    overlay = TextOverlay(id=next_overlay_id("text", overlays), **values)
    return tuple(overlays) + (overlay,)


def add_image_overlay(overlays: Sequence[ImageOverlay], src: str, width: float, height: float,
                      **values) -> Tuple[ImageOverlay, ...]:
    values.setdefault("scale", fit_scale(width, height))
    overlay = ImageOverlay(id=next_overlay_id("image", overlays), src=src, original_width=width,
                           original_height=height, **values)
    return tuple(overlays) + (overlay,)


def remove_overlay(overlays: Sequence, overlay_id: str) -> tuple:
    return tuple(o for o in overlays if o.id != overlay_id)


def image_data_uri(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def overlay_origin(margins, x: float, y: float) -> Tuple[float, float]:
    return margins.left + x, margins.top + y
