class BarplotError(Exception):
    """Base error for the barplot package."""


class ExportError(BarplotError):
    """Raised when a chart cannot be rasterized, encoded or written."""


class DataImportError(BarplotError):
    """Raised when delimited text cannot be mapped onto bars at all."""
