import io
import logging
import os
import sys
from dataclasses import replace

import streamlit as st
from PIL import Image

# Add parent directory to path so we can import barplot
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from barplot.axis_sync import apply_axis_field, sync_axes
from barplot.bar_data import add_bar, apply_palette, remove_bar, reset_data, reset_settings, reset_studio
from barplot.chart_config import (AUTO, CORNER_STYLES, ERROR_BAR_MODES, EXPORT_FORMATS, FONT_OPTIONS, GRID_STYLES,
                                  ORIENTATIONS, PALETTES, Manual, setting_value)
from barplot.data_import import DELIMITER_PRESETS, prepare_import, build_bars, resolve_delimiter, validation_messages
from barplot.errors import DataImportError
from barplot.events import ChartEvents, HighlightTracker
from barplot.export import ExportOptions, ExportSession
from barplot.graph_bar import BarChartEngine
from barplot.interactive_viewer import render_interactive_chart
from barplot.layout import compute_layout
from barplot.nav import render_sidebar
from barplot.overlays import add_image_overlay, add_text_overlay, image_data_uri, remove_overlay
from barplot.persistence import StudioState, dumps_state, loads_state

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

MIME_TYPES = {"png": "image/png", "svg": "image/svg+xml", "pdf": "application/pdf"}

st.set_page_config(layout="wide", page_title="Bar Chart Studio")
render_sidebar()

# --- CSS Tweaks ---
st.markdown("""
    <style>
        header {visibility: hidden;}
        .block-container { padding-top: 2rem !important; padding-bottom: 1rem; }
        .stTextArea textarea { font-family: monospace; }
    </style>
""", unsafe_allow_html=True)

# ==========================================
# STATE
# ==========================================
if "studio" not in st.session_state:
    st.session_state.studio = loads_state(None)
studio: StudioState = st.session_state.studio

# Settings sections opened from the chart preview stay open for a moment
if "highlights" not in st.session_state:
    st.session_state.highlights = HighlightTracker()
highlights: HighlightTracker = st.session_state.highlights
events = ChartEvents()
events.on_highlight(highlights.signal)


def store(index, config=None, bars=None):
    old_config, old_bars = studio.charts[index]
    studio.charts[index] = (config if config is not None else old_config, bars if bars is not None else old_bars)


def optional_number(label, setting, key, **kwargs):
    """Number input with an Auto checkbox. Returns AUTO or Manual(value)."""
    c1, c2 = st.columns([1, 2])
    auto = c1.checkbox("Auto", value=setting_value(setting) is None, key=f"{key}_auto")
    if auto:
        c2.caption(f"{label}: auto")
        return AUTO
    current = setting_value(setting)
    return Manual(c2.number_input(label, value=float(current) if current is not None else 0.0, key=key, **kwargs))


# ==========================================
# SIDEBAR: STUDIO
# ==========================================
st.sidebar.title("⚙️ Studio")

comparison = st.sidebar.checkbox("Comparison mode", value=studio.comparison)
if comparison and len(studio.charts) < 2:
    config0, bars0 = studio.charts[0]
    studio.charts.append((replace(config0), list(bars0)))
studio.comparison = comparison

active = 0
if studio.comparison:
    active = st.sidebar.radio("Editing chart", [0, 1], format_func=lambda i: f"Chart {i + 1}", horizontal=True)

config, bars = studio.charts[active]
k = f"c{active}"

with st.sidebar.expander("Reset", expanded=False):
    r1, r2, r3 = st.columns(3)
    if r1.button("Data", key=f"{k}_reset_data"):
        store(active, bars=reset_data(config.palette_name))
        st.rerun()
    if r2.button("Settings", key=f"{k}_reset_settings"):
        new_config, new_bars = reset_settings(bars)
        store(active, new_config, new_bars)
        st.rerun()
    if r3.button("All", key=f"{k}_reset_all"):
        new_config, new_bars = reset_studio()
        store(active, new_config, new_bars)
        st.rerun()

with st.sidebar.expander("💾 Save / Load", expanded=False):
    st.download_button("Save studio (JSON)", dumps_state(studio), file_name="barplot-studio.json",
                       mime="application/json")
    uploaded = st.file_uploader("Load studio", type=["json"], key="studio_upload")
    if uploaded is not None and st.button("Load", key="studio_load"):
        st.session_state.studio = loads_state(uploaded.getvalue().decode("utf-8", errors="replace"))
        st.rerun()

# ==========================================
# SIDEBAR: CHART BASICS
# ==========================================
st.sidebar.markdown("### Chart Basics")
palette = st.sidebar.selectbox("Palette", list(PALETTES), index=list(PALETTES).index(config.palette_name),
                               key=f"{k}_palette")
if palette != config.palette_name:
    bars = apply_palette(bars, palette)
orientation = st.sidebar.selectbox("Orientation", ORIENTATIONS, index=ORIENTATIONS.index(config.orientation),
                                   key=f"{k}_orientation")
font_names = list(FONT_OPTIONS)
current_font = next((name for name, stack in FONT_OPTIONS.items() if stack == config.font_family), "Custom")
if current_font == "Custom":
    # Font stacks loaded from a saved file stay selectable
    font_names.append("Custom")
font_name = st.sidebar.selectbox("Font", font_names, index=font_names.index(current_font), key=f"{k}_font")
font_family = FONT_OPTIONS.get(font_name, config.font_family)

with st.sidebar.expander("Dimensions", expanded=highlights.is_active("chartBasics")):
    custom_width = optional_number("Width (px)", config.custom_width, f"{k}_width", min_value=0.0, step=10.0)
    custom_height = optional_number("Height (px)", config.custom_height, f"{k}_height", min_value=0.0, step=10.0)
    aspect_ratio = st.slider("Aspect ratio (height / width)", 0.2, 2.0, float(config.clamped_aspect_ratio),
                             step=0.05, key=f"{k}_aspect",
                             disabled=not replace(config, custom_width=custom_width,
                                                  custom_height=custom_height).aspect_ratio_active)
    canvas_padding = st.slider("Canvas padding", 0.0, 80.0, float(config.canvas_padding), key=f"{k}_pad")
    background_color = st.color_picker("Background", config.background_color, key=f"{k}_bg")

with st.sidebar.expander("Title", expanded=highlights.is_active("title")):
    title = st.text_input("Title", config.title, key=f"{k}_title")
    t1, t2, t3 = st.columns(3)
    title_bold = t1.checkbox("Bold", config.title_bold, key=f"{k}_tb")
    title_italic = t2.checkbox("Italic", config.title_italic, key=f"{k}_ti")
    title_underline = t3.checkbox("Underline", config.title_underline, key=f"{k}_tu")
    title_font_size = st.slider("Title size", 10.0, 48.0, float(config.title_font_size), key=f"{k}_tfs")
    title_offset_y = st.slider("Title offset Y", -40.0, 40.0, float(config.title_offset_y), key=f"{k}_toy")
    subtitle = st.text_input("Subtitle", config.subtitle, key=f"{k}_subtitle")
    subtitle_font_size = st.slider("Subtitle size", 8.0, 36.0, float(config.subtitle_font_size), key=f"{k}_sfs")

config = replace(
    config, palette_name=palette, orientation=orientation, font_family=font_family, custom_width=custom_width, custom_height=custom_height,
    aspect_ratio=aspect_ratio, canvas_padding=canvas_padding, background_color=background_color,
    title=title, title_bold=title_bold, title_italic=title_italic, title_underline=title_underline,
    title_font_size=title_font_size, title_offset_y=title_offset_y,
    subtitle=subtitle, subtitle_font_size=subtitle_font_size,
)

# ==========================================
# SIDEBAR: AXES
# ==========================================
st.sidebar.markdown("### Axes")
synced = st.sidebar.checkbox("Sync axis styling (from X)", value=config.axes_synced, key=f"{k}_sync")
if synced != config.axes_synced:
    config = sync_axes(config, "x")

for axis_key, label in (("x", "X-Axis"), ("y", "Y-Axis")):
    axis = config.x_axis if axis_key == "x" else config.y_axis
    with st.sidebar.expander(label, expanded=highlights.is_active(f"{axis_key}Axis")):
        edits = {
            "title": st.text_input("Title", axis.title, key=f"{k}_{axis_key}_title"),
            "title_font_size": st.slider("Title size", 8.0, 32.0, float(axis.title_font_size),
                                         key=f"{k}_{axis_key}_tfs"),
            "tick_font_size": st.slider("Tick size", 6.0, 24.0, float(axis.tick_font_size),
                                        key=f"{k}_{axis_key}_kfs"),
            "show_axis_lines": st.checkbox("Axis line", axis.show_axis_lines, key=f"{k}_{axis_key}_line"),
            "axis_line_width": st.slider("Line width", 0.5, 6.0, float(axis.axis_line_width),
                                         key=f"{k}_{axis_key}_lw"),
            "axis_line_color": st.color_picker("Line color", axis.axis_line_color, key=f"{k}_{axis_key}_lc"),
            "show_tick_labels": st.checkbox("Tick labels", axis.show_tick_labels, key=f"{k}_{axis_key}_ticks"),
            "tick_label_orientation": st.slider("Tick rotation", -90.0, 90.0, float(axis.tick_label_orientation),
                                                key=f"{k}_{axis_key}_rot"),
            "show_grid_lines": st.checkbox("Grid lines", axis.show_grid_lines, key=f"{k}_{axis_key}_grid"),
            "grid_line_style": st.selectbox("Grid style", GRID_STYLES, index=GRID_STYLES.index(axis.grid_line_style),
                                            key=f"{k}_{axis_key}_gs"),
        }
    for name, value in edits.items():
        if getattr(axis, name) != value:
            config = apply_axis_field(config, axis_key, name, value)

with st.sidebar.expander("Value axis range", expanded=highlights.is_active("yAxis")):
    y_min = optional_number("Min", config.y_axis_min, f"{k}_ymin")
    y_max = optional_number("Max", config.y_axis_max, f"{k}_ymax")
    y_step = optional_number("Tick step", config.y_axis_tick_step, f"{k}_ystep", min_value=0.0)
config = replace(config, y_axis_min=y_min, y_axis_max=y_max, y_axis_tick_step=y_step)

# ==========================================
# SIDEBAR: DESIGN
# ==========================================
st.sidebar.markdown("### Design")
with st.sidebar.expander("Bars", expanded=highlights.is_active("design")):
    bar_gap = st.slider("Gap", 0.0, 0.9, float(config.bar_gap), step=0.05, key=f"{k}_gap")
    bar_corner_radius = st.slider("Corner radius", 0.0, 96.0, float(config.bar_corner_radius), key=f"{k}_radius")
    bar_corner_style = st.selectbox("Rounded corners", CORNER_STYLES,
                                    index=CORNER_STYLES.index(config.bar_corner_style), key=f"{k}_cs")
    bar_opacity = st.slider("Opacity", 0.0, 1.0, float(config.bar_opacity), key=f"{k}_opacity")
    show_border = st.checkbox("Borders", config.show_border, key=f"{k}_border")
    global_border_width = st.slider("Border width", 0.0, 8.0, float(config.global_border_width), key=f"{k}_bw")
    show_plot_box = st.checkbox("Plot box", config.show_plot_box, key=f"{k}_box")

with st.sidebar.expander("Value labels", expanded=highlights.is_active("valueLabels")):
    show_value_labels = st.checkbox("Show", config.show_value_labels, key=f"{k}_vl")
    value_label_font_size = st.slider("Size", 8.0, 32.0, float(config.value_label_font_size), key=f"{k}_vls")
    value_label_offset_y = st.slider("Offset Y", -40.0, 40.0, float(config.value_label_offset_y), key=f"{k}_vly")

with st.sidebar.expander("Error bars", expanded=highlights.is_active("errorBars")):
    show_error_bars = st.checkbox("Show", config.show_error_bars, key=f"{k}_eb")
    error_bar_mode = st.selectbox("Color mode", ERROR_BAR_MODES, index=ERROR_BAR_MODES.index(config.error_bar_mode),
                                  key=f"{k}_ebm")
    error_bar_color = st.color_picker("Color", config.error_bar_color, key=f"{k}_ebc")
    error_bar_width = st.slider("Width", 0.0, 6.0, float(config.error_bar_width), key=f"{k}_ebw")
    error_bar_cap_width = st.slider("Cap width", 0.0, 40.0, float(config.error_bar_cap_width), key=f"{k}_ebcap")

with st.sidebar.expander("Overlays", expanded=False):
    st.caption("Positions are measured from the top-left of the plot area.")
    texts = list(config.additional_text_elements)
    for i, item in enumerate(texts):
        key = f"{k}_ot_{item.id}"
        o1, o2 = st.columns([4, 1])
        body = o1.text_input("Text", item.text, key=f"{key}_text")
        if o2.button("✕", key=f"{key}_del"):
            store(active, config=replace(config, additional_text_elements=remove_overlay(texts, item.id)))
            st.rerun()
        p1, p2 = st.columns(2)
        x = p1.number_input("X", value=float(item.x), step=5.0, key=f"{key}_x")
        y = p2.number_input("Y", value=float(item.y), step=5.0, key=f"{key}_y")
        font_size = st.slider("Size", 6.0, 72.0, float(item.font_size), key=f"{key}_fs")
        color = st.color_picker("Color", item.color, key=f"{key}_color")
        s1, s2, s3 = st.columns(3)
        bold = s1.checkbox("Bold", item.bold, key=f"{key}_b")
        italic = s2.checkbox("Italic", item.italic, key=f"{key}_i")
        underline = s3.checkbox("Underline", item.underline, key=f"{key}_u")
        opacity = st.slider("Opacity", 0.0, 1.0, float(item.opacity), key=f"{key}_op")
        rotation = st.slider("Rotation", -180.0, 180.0, float(item.rotation), key=f"{key}_rot")
        texts[i] = replace(item, text=body, x=x, y=y, font_size=font_size, color=color, bold=bold, italic=italic,
                           underline=underline, opacity=opacity, rotation=rotation)
        st.markdown("---")
    if st.button("➕ Add text", key=f"{k}_ot_add"):
        texts = list(add_text_overlay(texts))

    images = list(config.additional_image_elements)
    for i, item in enumerate(images):
        key = f"{k}_oi_{item.id}"
        o1, o2 = st.columns([4, 1])
        o1.image(item.src, width=80)
        if o2.button("✕", key=f"{key}_del"):
            store(active, config=replace(config, additional_image_elements=remove_overlay(images, item.id)))
            st.rerun()
        p1, p2 = st.columns(2)
        x = p1.number_input("X", value=float(item.x), step=5.0, key=f"{key}_x")
        y = p2.number_input("Y", value=float(item.y), step=5.0, key=f"{key}_y")
        scale = st.slider("Scale", 0.05, 3.0, float(item.scale), step=0.05, key=f"{key}_scale")
        opacity = st.slider("Opacity", 0.0, 1.0, float(item.opacity), key=f"{key}_op")
        rotation = st.slider("Rotation", -180.0, 180.0, float(item.rotation), key=f"{key}_rot")
        grayscale = st.checkbox("Grayscale", item.grayscale, key=f"{key}_gray")
        images[i] = replace(item, x=x, y=y, scale=scale, opacity=opacity, rotation=rotation, grayscale=grayscale)
        st.markdown("---")
    picture = st.file_uploader("Image", type=["png", "jpg", "jpeg", "gif", "webp"], key=f"{k}_oi_upload")
    if picture is not None and st.button("➕ Add image", key=f"{k}_oi_add"):
        data = picture.getvalue()
        try:
            with Image.open(io.BytesIO(data)) as img:
                img_width, img_height = img.size
        except OSError as e:
            st.error(f"Could not read image: {e}")
        else:
            images = list(add_image_overlay(images, image_data_uri(data, picture.type or "image/png"),
                                            img_width, img_height))

config = replace(
    config, bar_gap=bar_gap, bar_corner_radius=bar_corner_radius, bar_corner_style=bar_corner_style,
    bar_opacity=bar_opacity, show_border=show_border, global_border_width=global_border_width,
    show_plot_box=show_plot_box, show_value_labels=show_value_labels, value_label_font_size=value_label_font_size,
    value_label_offset_y=value_label_offset_y, show_error_bars=show_error_bars, error_bar_mode=error_bar_mode,
    error_bar_color=error_bar_color, error_bar_width=error_bar_width, error_bar_cap_width=error_bar_cap_width,
    additional_text_elements=tuple(texts), additional_image_elements=tuple(images),
)
store(active, config, bars)

# ==========================================
# MAIN: DATA
# ==========================================
col_data, col_preview = st.columns([1, 2])

with col_data:
    st.subheader(f"Data (Chart {active + 1})" if studio.comparison else "Data")
    for bar in bars:
        c1, c2, c3, c4 = st.columns([3, 2, 2, 1])
        label = c1.text_input("Label", bar.label, key=f"{k}_lbl_{bar.id}", label_visibility="collapsed")
        value = c2.number_input("Value", value=float(bar.value), key=f"{k}_val_{bar.id}",
                                label_visibility="collapsed")
        error = c3.number_input("Error", value=float(bar.error), min_value=0.0, key=f"{k}_err_{bar.id}",
                                label_visibility="collapsed")
        if c4.button("✕", key=f"{k}_del_{bar.id}"):
            store(active, bars=remove_bar(bars, bar.id))
            st.rerun()
        if (label, value, error) != (bar.label, bar.value, bar.error):
            bars = [replace(b, label=label, value=value, error=error) if b.id == bar.id else b for b in bars]
    if st.button("➕ Add bar", key=f"{k}_add"):
        bars = add_bar(bars, config.palette_name)
    store(active, bars=bars)

    with st.expander("Import CSV", expanded=False):
        raw_text = st.text_area("Delimited text", "name,value,sd\nAlpha,12,1.5\nBeta,7,0.8\nGamma,15,2",
                                height=120, key=f"{k}_csv")
        i1, i2, i3 = st.columns(3)
        preset = i1.selectbox("Separator", list(DELIMITER_PRESETS) + ["custom"], key=f"{k}_sep")
        custom_sep = i2.text_input("Custom", "", max_chars=1, key=f"{k}_custom_sep")
        decimal = i3.selectbox("Decimal", [".", ","], key=f"{k}_dec")
        has_header = st.checkbox("First row is a header", True, key=f"{k}_hdr")

        try:
            preview = prepare_import(raw_text, resolve_delimiter(preset, custom_sep), has_header, decimal)
            messages = validation_messages(preview)
        except DataImportError as e:
            preview, messages = None, [str(e)]

        for msg in messages:
            st.warning(msg)
        if preview is not None and preview.truncated:
            st.caption(f"Only the first rows will be imported ({preview.truncated} rows ignored).")
        if st.button("Import", key=f"{k}_import", disabled=bool(messages)):
            store(active, bars=build_bars(preview, config.palette_name, decimal))
            st.rerun()

# ==========================================
# MAIN: PREVIEW & EXPORT
# ==========================================
with col_preview:
    preview_cols = st.columns(2) if studio.comparison else [st.container()]
    for index, target in enumerate(preview_cols):
        chart_config, chart_bars = studio.charts[index]
        layout = compute_layout(chart_config, chart_bars)
        engine = BarChartEngine(chart_config, chart_bars, layout=layout).draw()
        with target:
            render_interactive_chart(engine.get_svg_string(), layout.width, layout.height,
                                     height=520 if studio.comparison else 720)
            auto = layout.auto_values
            st.caption(f"{auto.width:.0f} × {auto.height:.0f} px · axis {auto.axis_min:g} to {auto.axis_max:g}"
                       + (f" · step {auto.tick_step:g}" if auto.tick_step else ""))
            if index == active and engine.hooks:
                f1, f2 = st.columns([3, 1])
                element_id = f1.selectbox("Chart element", [h.element_id for h in engine.hooks],
                                          key=f"{k}_element")
                if f2.button("Show settings", key=f"{k}_element_go") and events.dispatch(engine.hooks, element_id):
                    st.rerun()

    st.markdown("---")
    st.subheader("Export")
    e1, e2, e3, e4 = st.columns(4)
    export_format = e1.selectbox("Format", EXPORT_FORMATS, index=EXPORT_FORMATS.index(config.export_format),
                                 key=f"{k}_fmt")
    export_name = e2.text_input("File name", config.export_file_name, key=f"{k}_fname")
    export_scale = e3.slider("Quality", 1, 6, int(config.export_scale), key=f"{k}_scale")
    export_transparent = e4.checkbox("Transparent", config.export_transparent, key=f"{k}_transp")

    if st.button("Prepare export", key=f"{k}_export"):
        session = ExportSession(config, bars, on_settings_change=lambda c: store(active, config=c))
        session.open_dialog()
        result = session.confirm_blocking(ExportOptions(format=export_format, filename=export_name,
                                                        scale=export_scale, transparent=export_transparent))
        if result.ok:
            st.session_state[f"{k}_export_result"] = result
        else:
            st.error(f"Export failed: {result.error}")

    result = st.session_state.get(f"{k}_export_result")
    if result is not None:
        mime = MIME_TYPES[result.filename.rsplit(".", 1)[-1].lower()]
        st.download_button(f"Download {result.filename}", result.data, file_name=result.filename, mime=mime)
