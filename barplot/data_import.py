import csv
import io
import logging
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from .bar_data import BarDatum, create_bar
from .errors import DataImportError

logger = logging.getLogger(__name__)

MAX_IMPORT_ROWS = 30

DELIMITER_PRESETS = {
    "comma": ",",
    "semicolon": ";",
    "tab": "\t",
    "pipe": "|",
    "space": " ",
}

LABEL_KEYWORDS = ("label", "name", "title")
VALUE_KEYWORDS = ("value", "amount", "score", "total", "count", "number")
ERROR_KEYWORDS = ("error", "err", "uncert", "sd", "stdev")
GROUP_KEYWORDS = ("group", "category", "series", "segment")

ISSUE_PREFIXES = {
    "label": "Missing names",
    "value": "Non-numeric values",
    "error": "Non-numeric errors",
}


@dataclass(frozen=True)
class ColumnMapping:
    label: Optional[int] = None
    value: Optional[int] = None
    error: Optional[int] = None
    group: Optional[int] = None


@dataclass(frozen=True)
class ImportIssue:
    column: str
    # 1-based data row numbers
    rows: Tuple[int, ...]

    @property
    def message(self) -> str:
        sample = ", ".join(str(r) for r in self.rows[:5])
        suffix = "…" if len(self.rows) > 5 else ""
        return f"{ISSUE_PREFIXES.get(self.column, 'Column issue')} found in rows {sample}{suffix}"


@dataclass(frozen=True)
class ImportPreview:
    headers: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]
    mapping: ColumnMapping
    issues: Tuple[ImportIssue, ...]
    truncated: int = 0


def resolve_delimiter(preset: str, custom: str = "") -> str:
    if preset == "custom":
        if len(custom) != 1:
            raise DataImportError("Custom separator must be a single character")
        return custom
    if preset in DELIMITER_PRESETS:
        return DELIMITER_PRESETS[preset]
    if len(preset) == 1:
        return preset
    raise DataImportError(f"Unknown separator: {preset!r}")


def parse_delimited(text: str, delimiter: str = ",") -> List[List[str]]:
    """Split delimited text into rows, honouring quotes. Blank rows are dropped and short rows padded."""
    reader = csv.reader(io.StringIO(text), delimiter=delimiter, skipinitialspace=(delimiter == " "))
    rows = [row for row in reader if any(cell != "" for cell in row)]
    if not rows:
        return []
    width = max(len(r) for r in rows)
    return [r + [""] * (width - len(r)) for r in rows]


def parse_numeric(cell: Optional[str], decimal: str = ".", allow_blank: bool = False) -> Tuple[Optional[float], bool]:
    """Parse a number written with the given decimal separator. Returns (value, is_valid)."""
    text = (cell or "").strip()
    if not text:
        return None, allow_blank

    text = "".join(text.split())
    if decimal == ",":
        text = text.replace(".", "").replace(",", ".")
    else:
        text = text.replace(",", "")
    try:
        value = float(text)
    except ValueError:
        return None, False
    if not math.isfinite(value):
        return None, False
    return value, True


def guess_mapping(headers: Sequence[str]) -> ColumnMapping:
    if not headers:
        return ColumnMapping()
    names = [h.strip().lower() for h in headers]
    available = list(range(len(headers)))

    def take(keywords):
        for keyword in keywords:
            for i in available:
                if keyword in names[i]:
                    available.remove(i)
                    return i
        return None

    label = take(LABEL_KEYWORDS)
    value = take(VALUE_KEYWORDS)
    error = take(ERROR_KEYWORDS)
    group = take(GROUP_KEYWORDS)

    # Fall back to the leftmost unused columns
    if label is None and available:
        label = available.pop(0)
    if value is None and len(headers) >= 2 and available:
        value = available.pop(0)
    return ColumnMapping(label=label, value=value, error=error, group=group)


def _clamp_mapping(mapping: ColumnMapping, count: int) -> ColumnMapping:
    def ok(i):
        return i if i is not None and 0 <= i < count else None
    return ColumnMapping(ok(mapping.label), ok(mapping.value), ok(mapping.error), ok(mapping.group))


def _find_issues(rows, mapping: ColumnMapping, decimal: str) -> List[ImportIssue]:
    issues = []
    if mapping.label is not None:
        bad = tuple(i + 1 for i, r in enumerate(rows) if not r[mapping.label].strip())
        if bad:
            issues.append(ImportIssue("label", bad))
    if mapping.value is not None:
        bad = tuple(i + 1 for i, r in enumerate(rows) if not parse_numeric(r[mapping.value], decimal)[1])
        if bad:
            issues.append(ImportIssue("value", bad))
    if mapping.error is not None:
        bad = tuple(i + 1 for i, r in enumerate(rows)
                    if not parse_numeric(r[mapping.error], decimal, allow_blank=True)[1])
        if bad:
            issues.append(ImportIssue("error", bad))
    return issues


def prepare_import(text: str, delimiter: str = ",", has_header: bool = True, decimal: str = ".",
                   mapping: Optional[ColumnMapping] = None) -> ImportPreview:
    parsed = parse_delimited(text or "", delimiter)
    if not parsed:
        return ImportPreview(headers=(), rows=(), mapping=ColumnMapping(), issues=())

    width = len(parsed[0])
    if has_header:
        headers = tuple(h.strip() or f"Column {i + 1}" for i, h in enumerate(parsed[0]))
        data = parsed[1:]
    else:
        headers = tuple(f"Column {i + 1}" for i in range(width))
        data = parsed

    truncated = max(len(data) - MAX_IMPORT_ROWS, 0)
    if truncated:
        logger.info("Import limited to %d rows, %d ignored", MAX_IMPORT_ROWS, truncated)
    data = data[:MAX_IMPORT_ROWS]

    mapping = _clamp_mapping(mapping if mapping is not None else guess_mapping(headers), width)
    return ImportPreview(
        headers=headers,
        rows=tuple(tuple(r) for r in data),
        mapping=mapping,
        issues=tuple(_find_issues(data, mapping, decimal)),
        truncated=truncated,
    )


def validation_messages(preview: ImportPreview) -> List[str]:
    messages = []
    if not preview.headers:
        messages.append("No columns were detected with the current separator.")
        return messages
    if preview.mapping.label is None:
        messages.append("Choose a column to use for the bar names.")
    if preview.mapping.value is None:
        messages.append("Choose a column to use for the numeric values.")
    if not preview.rows:
        messages.append("No data rows detected to import.")
    messages.extend(issue.message for issue in preview.issues)
    return messages


def build_bars(preview: ImportPreview, palette_name: str, decimal: str = ".") -> List[BarDatum]:
    m = preview.mapping
    if not preview.headers or m.label is None or m.value is None:
        raise DataImportError("; ".join(validation_messages(preview)) or "Nothing to import")

    bars = []
    for i, row in enumerate(preview.rows):
        value, _ = parse_numeric(row[m.value], decimal)
        error = None
        if m.error is not None:
            error, _ = parse_numeric(row[m.error], decimal, allow_blank=True)
        group = row[m.group].strip() if m.group is not None else ""
        bars.append(replace(
            create_bar(i, palette_name),
            label=row[m.label].strip() or f"Item {i + 1}",
            value=value if value is not None else 0.0,
            error=error if error is not None else 0.0,
            group=group or None,
        ))
    return bars


def import_csv(text: str, palette_name: str, delimiter: str = ",", has_header: bool = True,
               decimal: str = ".", mapping: Optional[ColumnMapping] = None) -> List[BarDatum]:
    preview = prepare_import(text, delimiter, has_header, decimal, mapping)
    for issue in preview.issues:
        logger.warning("CSV import: %s", issue.message)
    return build_bars(preview, palette_name, decimal)
