import asyncio
import threading
from io import BytesIO

import pytest

try:
    import cairosvg  # noqa: F401
except (ImportError, OSError):
    pytest.skip("cairosvg or the cairo library is not available", allow_module_level=True)

from PIL import Image

from barplot.bar_data import reset_data
from barplot.chart_config import ChartConfig
from barplot.errors import ExportError
from barplot.export import (DIALOG_OPEN, EXPORTING, IDLE, ExportOptions, ExportSession, export_chart,
                            options_from_config, pdf_orientation, pixel_scale, quality_scale, render_svg,
                            resolve_filename)


def fake_renderer(config, bars, options, measured_width=None):
    return f"{options.format}:{len(bars)}".encode()


def failing_renderer(config, bars, options, measured_width=None):
    raise ExportError("rasterizer exploded")


def open_session(**kwargs):
    kwargs.setdefault("renderer", fake_renderer)
    session = ExportSession(ChartConfig(), reset_data(), **kwargs)
    session.open_dialog()
    return session


class TestHelpers:
    @pytest.mark.parametrize("name,fmt,expected", [
        ("  ", "png", "barplot.png"),
        (None, "svg", "barplot.svg"),
        ("sales", "pdf", "sales.pdf"),
        ("sales.PNG", "png", "sales.PNG"),
        ("sales.png", "svg", "sales.png.svg"),
    ])
    def test_resolve_filename(self, name, fmt, expected):
        assert resolve_filename(name, fmt) == expected

    def test_quality_is_clamped(self):
        assert quality_scale(0) == 1
        assert quality_scale(9) == 6
        assert quality_scale(3.7) == 3
        assert quality_scale("x") == 1

    def test_pixel_scale_uses_device_ratio(self):
        assert pixel_scale(ExportOptions(scale=2, device_pixel_ratio=1.5)) == 3
        assert pixel_scale(ExportOptions(scale=2, device_pixel_ratio=0)) == 2

    def test_pdf_orientation(self):
        assert pdf_orientation(960, 576) == "landscape"
        assert pdf_orientation(500, 500) == "landscape"
        assert pdf_orientation(400, 800) == "portrait"

    def test_options_from_config(self):
        config = ChartConfig(export_format="pdf", export_file_name="q3", export_scale=4)
        assert options_from_config(config) == ExportOptions("pdf", "q3", 4, False, 1.0)


class TestRendering:
    def test_svg_document(self):
        data = render_svg(ChartConfig(), reset_data())
        assert data.startswith(b"<?xml")
        assert b"<svg" in data

    def test_png_size_and_background(self):
        data = export_chart(ChartConfig(), reset_data(), ExportOptions(format="png", scale=2))
        image = Image.open(BytesIO(data))
        assert image.size == (1920, 1152)
        assert image.convert("RGBA").getpixel((0, 0)) == (255, 255, 255, 255)

    def test_transparent_png(self):
        options = ExportOptions(format="png", scale=1, transparent=True)
        image = Image.open(BytesIO(export_chart(ChartConfig(), reset_data(), options))).convert("RGBA")
        assert image.getpixel((0, 0))[3] == 0

    def test_pdf(self):
        data = export_chart(ChartConfig(), reset_data(), ExportOptions(format="pdf", scale=1))
        assert data.startswith(b"%PDF")

    def test_unknown_format(self):
        with pytest.raises(ExportError):
            export_chart(ChartConfig(), reset_data(), ExportOptions(format="gif"))


class TestExportSession:
    def test_dialog_states(self):
        session = ExportSession(ChartConfig(), reset_data(), renderer=fake_renderer)
        assert session.state == IDLE
        session.open_dialog()
        assert session.state == DIALOG_OPEN
        assert session.close_dialog()
        assert session.state == IDLE

    def test_confirm_requires_open_dialog(self):
        session = ExportSession(ChartConfig(), reset_data(), renderer=fake_renderer)
        result = session.confirm_blocking(ExportOptions())
        assert not result.ok
        assert session.state == IDLE

    def test_successful_export_updates_settings(self):
        seen = []
        session = open_session(on_settings_change=seen.append)
        result = session.confirm_blocking(ExportOptions(format="svg", filename="q3", scale=12, transparent=True))

        assert result.ok
        assert result.filename == "q3.svg"
        assert result.data == b"svg:5"
        assert session.state == IDLE
        assert session.config.export_format == "svg"
        assert session.config.export_scale == 6
        assert session.config.export_transparent
        assert seen == [session.config]

    def test_blank_filename_is_saved_as_default(self):
        session = open_session()
        result = session.confirm_blocking(ExportOptions(format="svg", filename="   "))

        assert result.ok
        assert result.filename == "barplot.svg"
        assert session.config.export_file_name == "barplot"

    def test_filename_is_saved_trimmed(self):
        session = open_session()
        session.confirm_blocking(ExportOptions(format="svg", filename="  q3  "))
        assert session.config.export_file_name == "q3"

    def test_failure_keeps_dialog_and_settings(self):
        seen = []
        session = open_session(renderer=failing_renderer, on_settings_change=seen.append)
        result = session.confirm_blocking(ExportOptions(format="pdf"))

        assert not result.ok
        assert "exploded" in result.error
        assert session.state == DIALOG_OPEN
        assert session.last_error == result.error
        assert session.config.export_format == "png"
        assert seen == []

    def test_unsupported_format_is_rejected(self):
        session = open_session()
        result = session.confirm_blocking(ExportOptions(format="bmp"))
        assert not result.ok
        assert session.state == DIALOG_OPEN

    def test_writes_to_output_dir(self, tmp_path):
        session = open_session(output_dir=str(tmp_path / "out"))
        result = session.confirm_blocking(ExportOptions(format="png", filename="chart"))
        assert result.path == str(tmp_path / "out" / "chart.png")
        assert (tmp_path / "out" / "chart.png").read_bytes() == b"png:5"

    def test_single_export_in_flight(self):
        release = threading.Event()

        def slow_renderer(config, bars, options, measured_width=None):
            release.wait(5)
            return b"done"

        session = open_session(renderer=slow_renderer)

        async def scenario():
            first = asyncio.ensure_future(session.confirm(ExportOptions(format="png")))
            await asyncio.sleep(0)
            assert session.is_exporting
            assert not session.close_dialog()
            second = await session.confirm(ExportOptions(format="png"))
            release.set()
            return await first, second

        first, second = asyncio.run(scenario())
        assert first.ok
        assert not second.ok
        assert session.state == IDLE

    def test_exporting_state_is_visible_to_renderer(self):
        states = []

        def spying_renderer(config, bars, options, measured_width=None):
            states.append(session.state)
            return b""

        session = open_session(renderer=spying_renderer)
        session.confirm_blocking(ExportOptions())
        assert states == [EXPORTING]
