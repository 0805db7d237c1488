"""Published-sheet access, row parsing, tab discovery and analytics."""

from .published_sheet import PublishedSheetSource, TableSheetSource, TabFetchError

__all__ = ["PublishedSheetSource", "TableSheetSource", "TabFetchError"]
