import asyncio
import logging
import os
from dataclasses import dataclass, replace
from io import BytesIO
from typing import Callable, Optional, Sequence

import cairosvg
from PIL import Image, ImageColor

from .chart_config import EXPORT_FORMATS, ChartConfig, clamp
from .errors import ExportError
from .graph_bar import build_scene

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "barplot"
MIN_QUALITY = 1
MAX_QUALITY = 6

# Dialog states
IDLE = "idle"
DIALOG_OPEN = "dialog_open"
EXPORTING = "exporting"


@dataclass(frozen=True)
class ExportOptions:
    format: str = "png"
    filename: str = DEFAULT_FILENAME
    scale: int = 2
    transparent: bool = False
    device_pixel_ratio: float = 1.0


@dataclass(frozen=True)
class ExportResult:
    ok: bool
    filename: Optional[str] = None
    data: Optional[bytes] = None
    path: Optional[str] = None
    error: Optional[str] = None


def options_from_config(config: ChartConfig, device_pixel_ratio: float = 1.0) -> ExportOptions:
    return ExportOptions(format=config.export_format, filename=config.export_file_name,
                         scale=config.export_scale, transparent=config.export_transparent,
                         device_pixel_ratio=device_pixel_ratio)


def resolve_filename(name: Optional[str], fmt: str) -> str:
    base = (name or "").strip() or DEFAULT_FILENAME
    ext = f".{fmt}"
    return base if base.lower().endswith(ext) else base + ext


def quality_scale(scale) -> int:
    try:
        return int(clamp(int(scale), MIN_QUALITY, MAX_QUALITY))
    except (TypeError, ValueError, OverflowError):
        return MIN_QUALITY


def pixel_scale(options: ExportOptions) -> float:
    dpr = options.device_pixel_ratio if options.device_pixel_ratio and options.device_pixel_ratio > 0 else 1.0
    return quality_scale(options.scale) * dpr


def pdf_orientation(width: float, height: float) -> str:
    return "landscape" if width >= height else "portrait"


# ==========================================
# RENDERERS
# ==========================================
def render_svg(config: ChartConfig, bars: Sequence, transparent: bool = False,
               measured_width: Optional[float] = None) -> bytes:
    return build_scene(config, bars, transparent=transparent, measured_width=measured_width) \
        .get_svg_document().encode("utf-8")


def _rasterize(config: ChartConfig, bars: Sequence, options: ExportOptions,
               measured_width: Optional[float]) -> Image.Image:
    engine = build_scene(config, bars, transparent=options.transparent, measured_width=measured_width)
    scale = pixel_scale(options)
    out_w = max(int(round(engine.width_pixels * scale)), 1)
    out_h = max(int(round(engine.height_pixels * scale)), 1)

    png = cairosvg.svg2png(bytestring=engine.get_svg_string().encode("utf-8"),
                           output_width=out_w, output_height=out_h)
    if not png:
        raise ExportError("Rasterizer returned no image data")
    chart = Image.open(BytesIO(png)).convert("RGBA")

    if options.transparent:
        canvas = Image.new("RGBA", chart.size, (0, 0, 0, 0))
    else:
        canvas = Image.new("RGBA", chart.size, ImageColor.getcolor(config.background_color, "RGBA"))
    canvas.alpha_composite(chart)
    return canvas


def render_png(config: ChartConfig, bars: Sequence, options: ExportOptions,
               measured_width: Optional[float] = None) -> bytes:
    buf = BytesIO()
    _rasterize(config, bars, options, measured_width).save(buf, format="PNG")
    return buf.getvalue()


def render_pdf(config: ChartConfig, bars: Sequence, options: ExportOptions,
               measured_width: Optional[float] = None) -> bytes:
    """Single page the size of the chart, holding the raster rendering."""
    image = _rasterize(config, bars, options, measured_width)
    # PDF pages have no alpha channel
    flat = Image.new("RGB", image.size, (255, 255, 255))
    flat.paste(image, mask=image.getchannel("A"))

    scale = pixel_scale(options)
    logger.debug("PDF page %sx%s px (%s)", image.width / scale, image.height / scale,
                 pdf_orientation(image.width, image.height))
    buf = BytesIO()
    flat.save(buf, format="PDF", resolution=72.0 * scale)
    return buf.getvalue()


def export_chart(config: ChartConfig, bars: Sequence, options: ExportOptions,
                 measured_width: Optional[float] = None) -> bytes:
    fmt = options.format
    if fmt == "svg":
        return render_svg(config, bars, options.transparent, measured_width)
    if fmt == "png":
        return render_png(config, bars, options, measured_width)
    if fmt == "pdf":
        return render_pdf(config, bars, options, measured_width)
    raise ExportError(f"Unsupported export format: {fmt!r}")


def write_export(data: bytes, directory: str, filename: str) -> str:
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, filename)
    with open(path, "wb") as f:
        f.write(data)
    return path


# ==========================================
# EXPORT DIALOG SESSION
# ==========================================
class ExportSession:
    """
    idle -> dialog_open -> exporting -> idle, falling back to dialog_open when an export fails.
    Rendering runs in a worker thread; only one export may be in flight.
    """

    def __init__(self, config: ChartConfig, bars: Sequence, output_dir: Optional[str] = None,
                 measured_width: Optional[float] = None,
                 on_settings_change: Optional[Callable[[ChartConfig], None]] = None,
                 renderer: Callable = export_chart):
        self.config = config
        self.bars = list(bars)
        self.output_dir = output_dir
        self.measured_width = measured_width
        self.on_settings_change = on_settings_change
        self._renderer = renderer
        self.state = IDLE
        self.last_error: Optional[str] = None

    @property
    def is_exporting(self) -> bool:
        return self.state == EXPORTING

    def open_dialog(self, device_pixel_ratio: float = 1.0) -> ExportOptions:
        if self.state == IDLE:
            self.state = DIALOG_OPEN
        return options_from_config(self.config, device_pixel_ratio)

    def close_dialog(self) -> bool:
        if self.state == EXPORTING:
            return False
        self.state = IDLE
        return True

    def _run(self, options: ExportOptions, filename: str) -> ExportResult:
        data = self._renderer(self.config, self.bars, options, self.measured_width)
        path = write_export(data, self.output_dir, filename) if self.output_dir else None
        return ExportResult(ok=True, filename=filename, data=data, path=path)

    async def confirm(self, options: ExportOptions) -> ExportResult:
        if self.state == EXPORTING:
            return ExportResult(ok=False, error="An export is already running")
        if self.state != DIALOG_OPEN:
            return ExportResult(ok=False, error="Export dialog is not open")
        if options.format not in EXPORT_FORMATS:
            return ExportResult(ok=False, error=f"Unsupported export format: {options.format!r}")

        filename = resolve_filename(options.filename, options.format)
        self.state = EXPORTING
        try:
            result = await asyncio.to_thread(self._run, options, filename)
        except (ExportError, OSError, ValueError, SyntaxError, MemoryError) as e:
            logger.exception("Export of %s failed", filename)
            self.last_error = str(e) or e.__class__.__name__
            self.state = DIALOG_OPEN
            return ExportResult(ok=False, filename=filename, error=self.last_error)
        finally:
            if self.state == EXPORTING:
                self.state = DIALOG_OPEN

        self.state = IDLE
        self.last_error = None
        saved_name = (options.filename or "").strip() or DEFAULT_FILENAME
        self.config = replace(self.config, export_format=options.format, export_file_name=saved_name,
                              export_scale=quality_scale(options.scale), export_transparent=options.transparent)
        if self.on_settings_change is not None:
            self.on_settings_change(self.config)
        logger.info("Exported %s (%d bytes)", filename, len(result.data or b""))
        return result

    def confirm_blocking(self, options: ExportOptions) -> ExportResult:
        """For callers without a running event loop, e.g. a Streamlit script."""
        return asyncio.run(self.confirm(options))
