import pytest

from barplot.chart_config import PALETTES
from barplot.data_import import (MAX_IMPORT_ROWS, ColumnMapping, ImportIssue, build_bars, guess_mapping, import_csv,
                                 parse_delimited, parse_numeric, prepare_import, resolve_delimiter,
                                 validation_messages)
from barplot.errors import DataImportError


class TestDelimiters:
    def test_presets(self):
        assert resolve_delimiter("tab") == "\t"
        assert resolve_delimiter("semicolon") == ";"
        assert resolve_delimiter("custom", "#") == "#"

    @pytest.mark.parametrize("preset,custom", [("custom", ""), ("custom", "::"), ("colon-ish", "")])
    def test_invalid(self, preset, custom):
        with pytest.raises(DataImportError):
            resolve_delimiter(preset, custom)


def test_parse_delimited_quotes_blank_rows_and_padding():
    rows = parse_delimited('name,"note, with comma"\n\nA,1,extra\nB\n')
    assert rows == [["name", "note, with comma", ""], ["A", "1", "extra"], ["B", "", ""]]


def test_parse_delimited_spaces():
    assert parse_delimited("a  b\n1  2", " ") == [["a", "b"], ["1", "2"]]


@pytest.mark.parametrize("cell,decimal,expected", [
    ("12.5", ".", (12.5, True)),
    ("1,234.5", ".", (1234.5, True)),
    ("1.234,5", ",", (1234.5, True)),
    (" 7 ", ".", (7.0, True)),
    ("abc", ".", (None, False)),
    ("12abc", ".", (None, False)),
    ("inf", ".", (None, False)),
    ("", ".", (None, False)),
])
def test_parse_numeric(cell, decimal, expected):
    assert parse_numeric(cell, decimal) == expected


def test_parse_numeric_blank_allowed():
    assert parse_numeric("  ", allow_blank=True) == (None, True)


class TestGuessMapping:
    def test_keywords(self):
        assert guess_mapping(["Name", "Score", "SD", "Group"]) == ColumnMapping(0, 1, 2, 3)

    def test_falls_back_to_leftmost(self):
        assert guess_mapping(["x", "y"]) == ColumnMapping(label=0, value=1)

    def test_single_column_has_no_value(self):
        assert guess_mapping(["only"]) == ColumnMapping(label=0)

    def test_empty(self):
        assert guess_mapping([]) == ColumnMapping()


class TestPrepareImport:
    def test_headers_and_issues(self):
        preview = prepare_import("Label,Value\nA,1\n,2\nC,x\n")
        assert preview.headers == ("Label", "Value")
        assert preview.mapping == ColumnMapping(label=0, value=1)
        assert preview.issues == (ImportIssue("label", (2,)), ImportIssue("value", (3,)))
        assert validation_messages(preview) == ["Missing names found in rows 2", "Non-numeric values found in rows 3"]

    def test_without_header(self):
        preview = prepare_import("A;1\nB;2", delimiter=";", has_header=False)
        assert preview.headers == ("Column 1", "Column 2")
        assert len(preview.rows) == 2

    def test_blank_header_cells_are_named(self):
        assert prepare_import("Label,\nA,1").headers == ("Label", "Column 2")

    def test_rows_are_capped(self):
        text = "label,value\n" + "\n".join(f"B{i},{i}" for i in range(MAX_IMPORT_ROWS + 5))
        preview = prepare_import(text)
        assert len(preview.rows) == MAX_IMPORT_ROWS
        assert preview.truncated == 5

    def test_out_of_range_mapping_is_cleared(self):
        preview = prepare_import("a,b\n1,2", mapping=ColumnMapping(label=0, value=9))
        assert preview.mapping.value is None
        assert "Choose a column to use for the numeric values." in validation_messages(preview)

    def test_empty_text(self):
        preview = prepare_import("")
        assert validation_messages(preview) == ["No columns were detected with the current separator."]

    def test_long_issue_lists_are_shortened(self):
        issue = ImportIssue("error", tuple(range(1, 9)))
        assert issue.message == "Non-numeric errors found in rows 1, 2, 3, 4, 5…"


class TestBuildBars:
    def test_builds_bars(self):
        text = "Fruit name;Amount;Error;Group\nApples;1,5;0,2;Tree\n;3;;\n"
        bars = import_csv(text, "cool", delimiter=";", decimal=",")
        assert [b.id for b in bars] == ["1", "2"]
        assert [b.label for b in bars] == ["Apples", "Item 2"]
        assert [b.value for b in bars] == [1.5, 3.0]
        assert [b.error for b in bars] == [0.2, 0.0]
        assert [b.group for b in bars] == ["Tree", None]
        assert bars[0].fill_color == PALETTES["cool"][0]

    def test_invalid_values_become_zero(self):
        assert import_csv("label,value\nA,n/a", "vibrant")[0].value == 0.0

    def test_requires_value_column(self):
        with pytest.raises(DataImportError):
            import_csv("only\nA\nB", "vibrant")

    def test_requires_columns(self):
        with pytest.raises(DataImportError):
            build_bars(prepare_import(""), "vibrant")
