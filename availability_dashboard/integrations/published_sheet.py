"""Access to the published spreadsheet, one tab at a time.

The publisher exposes every tab as a CSV document through the
visualisation endpoint.  That endpoint is unversioned and forgiving in
unhelpful ways: an unknown tab name may come back as a 4xx, as an HTML
error page, or as the *first* tab of the workbook (usually a summary
dashboard).  Callers therefore never trust a successful fetch on its
own; see :mod:`tab_resolver` for the validation step.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Mapping, Optional

import requests

log = logging.getLogger(__name__)


class TabFetchError(RuntimeError):
    """A single tab could not be fetched; the caller should try another name."""

    def __init__(self, tab_name: str, message: str):
        super().__init__(f"{tab_name}: {message}")
        self.tab_name = tab_name


class PublishedSheetSource:
    """Fetches tabs of a published Google Sheet as CSV text over HTTP."""

    def __init__(
        self,
        sheet_id: str,
        url_template: str,
        timeout: float = 15,
        max_concurrent: int = 8,
        session: Optional[requests.Session] = None,
    ):
        if not sheet_id:
            raise RuntimeError("GOOGLE_SHEET_ID is not configured.")
        self.sheet_id = sheet_id
        self.url = url_template.format(sheet_id=sheet_id)
        self.timeout = timeout
        self.session = session or requests.Session()
        # Bounds in-flight requests across every concurrent probe.
        self._slots = threading.BoundedSemaphore(max(1, max_concurrent))

    def fetch_published_tab(self, tab_name: str) -> str:
        with self._slots:
            try:
                response = self.session.get(
                    self.url,
                    params={"sheet": tab_name},
                    headers={"Accept": "text/csv"},
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                raise TabFetchError(tab_name, f"request failed: {exc}") from exc

        log.debug(
            "Tab response: tab=%s status=%s bytes=%d",
            tab_name,
            response.status_code,
            len(response.content),
        )
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise TabFetchError(tab_name, f"HTTP {response.status_code}") from exc
        return response.text


class TableSheetSource:
    """Serves tabs from an in-memory ``tab_name -> csv text`` table.

    Stands in for :class:`PublishedSheetSource` wherever the network
    should not be touched.  ``calls`` records every requested name.
    """

    def __init__(self, tabs: Mapping[str, str]):
        self.tabs: Dict[str, str] = dict(tabs)
        self.calls = []
        self._lock = threading.Lock()

    def fetch_published_tab(self, tab_name: str) -> str:
        with self._lock:
            self.calls.append(tab_name)
        try:
            return self.tabs[tab_name]
        except KeyError:
            raise TabFetchError(tab_name, "no such tab") from None
