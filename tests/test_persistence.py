import json
from dataclasses import replace

from barplot.bar_data import create_bar, reset_data
from barplot.chart_config import AUTO, ChartConfig, Manual
from barplot.overlays import ImageOverlay, TextOverlay
from barplot.persistence import (StudioState, bars_from_list, config_from_dict, dumps_state, load_state,
                                 loads_state, save_state, snake_case)


def custom_chart():
    config = ChartConfig(title="Harvest", palette_name="warm", custom_width=Manual(800), orientation="horizontal",
                         y_axis_tick_step=Manual(5), export_scale=3)
    config = replace(config, x_axis=replace(config.x_axis, tick_offset_y=4, grid_line_style="dotted"))
    bars = [replace(create_bar(0, "warm"), label="Apples", value=12.5, error=1, group="Fruit",
                    border_width=Manual(3), pattern="crosshatch"),
            create_bar(1, "warm")]
    return config, bars


def test_snake_case():
    assert snake_case("titleIsBold") == "title_is_bold"
    assert snake_case("yAxisMin") == "y_axis_min"
    assert snake_case("already_snake") == "already_snake"


def test_round_trip():
    state = StudioState(charts=[custom_chart()])
    loaded = loads_state(dumps_state(state))
    assert loaded.charts == state.charts
    assert not loaded.comparison


def test_comparison_pair_round_trip():
    state = StudioState(charts=[custom_chart(), (ChartConfig(), reset_data())], comparison=True)
    text = dumps_state(state)
    assert isinstance(json.loads(text)["settings"], list)

    loaded = loads_state(text)
    assert loaded.comparison
    assert loaded.charts == state.charts


def test_browser_save_format():
    text = json.dumps({"settings": {
        "paletteName": "cool",
        "titleIsBold": False,
        "customWidth": 800,
        "customHeight": None,
        "xAxisTickFontSize": 14,
        "yAxisTickOffsetX": -6,
        "yAxisMax": 50,
        "data": [{"id": "7", "label": "A", "value": 3, "errorMargin": 1, "fillColor": "#ffffff"}],
    }})
    config, bars = loads_state(text).charts[0]
    assert config.palette_name == "cool"
    assert config.title_bold is False
    assert config.custom_width == Manual(800.0)
    assert config.custom_height == AUTO
    assert config.x_axis.tick_font_size == 14
    assert config.y_axis.tick_offset_x == -6
    assert config.y_axis_max == Manual(50.0)
    assert bars[0].id == "1"
    assert (bars[0].label, bars[0].value, bars[0].fill_color) == ("A", 3.0, "#ffffff")


def test_bare_settings_object():
    config, bars = loads_state(json.dumps({"title": "Old save"})).charts[0]
    assert config.title == "Old save"
    assert len(bars) == 5


def test_malformed_input_falls_back():
    for text in ("{not json", "[1, 2]", "", None, '"text"'):
        state = loads_state(text)
        assert state.charts == [(ChartConfig(), reset_data())]
        assert not state.comparison


def test_bad_fields_are_ignored():
    config = config_from_dict({"title": 5, "barGap": "wide", "showBorder": "yes", "paletteName": "neon",
                               "canvasPadding": 10, "xAxis": {"title": "Fruit", "tickFontSize": "big"}})
    assert config.title == ChartConfig().title
    assert config.bar_gap == 0.3
    assert config.show_border is True
    assert config.palette_name == "vibrant"
    assert config.canvas_padding == 10.0
    assert config.x_axis.title == "Fruit"
    assert config.x_axis.tick_font_size == 12


def test_bars_fall_back_to_template():
    bars = bars_from_list([{"value": "x", "pattern": "stars"}, "junk"], "vibrant")
    assert bars[0].value == 10.0
    assert bars[0].pattern == "solid"
    assert bars[1] == create_bar(1)
    assert bars_from_list("nope", "vibrant") == reset_data()


def test_file_round_trip(tmp_path):
    path = str(tmp_path / "studio.json")
    state = StudioState(charts=[custom_chart()])
    save_state(path, state)
    assert load_state(path).charts == state.charts


def test_missing_file(tmp_path):
    assert load_state(str(tmp_path / "absent.json")).charts == [(ChartConfig(), reset_data())]


def test_overlays_round_trip():
    config = ChartConfig(
        additional_text_elements=(TextOverlay(id="text-1", text="Note", x=20, y=-5, bold=True, rotation=15),),
        additional_image_elements=(ImageOverlay(id="image-1", src="data:image/png;base64,AAAA", scale=0.5,
                                                original_width=300, original_height=200, grayscale=True),),
    )
    state = StudioState(charts=[(config, reset_data())])
    loaded = loads_state(dumps_state(state))
    assert loaded.charts == state.charts


def test_browser_overlays():
    config = config_from_dict({
        "additionalTextElements": [
            {"id": "text-9", "text": "Peak", "x": 40, "y": 12, "fontSize": 20, "isBold": True, "isItalic": True,
             "color": "#ff0000", "opacity": 0.5},
            {"text": "No id"},
            "junk",
        ],
        "additionalImageElements": [
            {"id": "img", "src": "data:image/png;base64,AAAA", "originalWidth": 300, "originalHeight": 150,
             "scale": 0.5},
            {"id": "empty", "src": ""},
        ],
    })
    first, second = config.additional_text_elements
    assert (first.id, first.text, first.x, first.font_size) == ("text-9", "Peak", 40.0, 20.0)
    assert first.bold and first.italic and not first.underline
    assert first.opacity == 0.5
    assert second.id == "text-2"
    assert second.font_size == 16.0

    (image,) = config.additional_image_elements
    assert image.id == "img"
    assert (image.width, image.height) == (150.0, 75.0)


def test_malformed_overlays_are_dropped():
    config = config_from_dict({"additionalTextElements": "text", "additionalImageElements": None})
    assert config.additional_text_elements == ()
    assert config.additional_image_elements == ()
