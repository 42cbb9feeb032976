# src/jobrelay/io/sheets.py
"""
Google Sheets writer (gspread).

Header layout is always: ["Done", ...data columns..., "userID"].
- "Done" is a checkbox column, every appended row starts unchecked.
- "userID" is filled by the caller (or left blank for the Apps Script side).
- Data columns already in the sheet keep their order; new ones are
  inserted just before "userID" so existing rows stay aligned. A tab whose
  header lacks the bookkeeping columns gets them by inserting/moving whole
  sheet columns, never by relabelling row 1 alone.
- Rows are only ever appended; tabs and rows are never deleted.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import gspread
from google.auth.exceptions import GoogleAuthError
from gspread.exceptions import GSpreadException, WorksheetNotFound
from requests.exceptions import RequestException

from jobrelay.config import Settings
from jobrelay.errors import ConfigError, SheetWriteError
from jobrelay.models import Destination
from jobrelay.pipeline.normalize import cell_value

logger = logging.getLogger(__name__)

TICK_COL = "Done"
USER_COL = "userID"
TOKEN_URI = "https://oauth2.googleapis.com/token"
NEW_TAB_ROWS = 1000
MIN_TAB_COLS = 26
LAYOUT_MAX_ROWS = 100000

# What a Sheets call can raise: API errors, auth refresh errors, and the
# transport errors of the requests session gspread runs on.
SHEETS_ERRORS = (GSpreadException, GoogleAuthError, RequestException)

_PEM_RE = re.compile(r"BEGIN [A-Z ]*PRIVATE KEY")


# ---- Auth ---------------------------------------------------------------------

def normalize_private_key(raw: Optional[str]) -> str:
    """
    Accept a service-account key in any of the forms people paste into env vars:
    a full JSON document, a PEM string (with literal "\\n" escapes), or base64
    of either.
    """
    if not raw:
        return ""
    key = str(raw).strip().strip("'\"")
    if key.startswith("{"):
        try:
            key = str(json.loads(key).get("private_key") or "")
        except ValueError:
            pass
    if not _PEM_RE.search(key):
        try:
            decoded = base64.b64decode(key, validate=False).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            decoded = ""
        if decoded.strip().startswith("{"):
            try:
                decoded = str(json.loads(decoded).get("private_key") or "")
            except ValueError:
                pass
        if _PEM_RE.search(decoded):
            key = decoded
    return key.replace("\\r\\n", "\n").replace("\\n", "\n").strip()


def open_client(settings: Settings) -> gspread.Client:
    """Service-account gspread client from a key file or from env credentials."""
    if settings.google_service_account_file:
        return gspread.service_account(filename=settings.google_service_account_file)
    if not settings.google_client_email:
        raise ConfigError("GOOGLE_CLIENT_EMAIL not set")
    key = normalize_private_key(settings.google_private_key)
    if not key or not _PEM_RE.search(key):
        raise ConfigError("Service-account private key missing/malformed")
    return gspread.service_account_from_dict(
        {
            "type": "service_account",
            "client_email": settings.google_client_email,
            "private_key": key,
            "token_uri": TOKEN_URI,
        }
    )


# ---- Header shape -------------------------------------------------------------

def column_letters(one_based_index: int) -> str:
    if one_based_index <= 0:
        raise ValueError("one_based_index must be >= 1")
    out: List[str] = []
    value = one_based_index
    while value > 0:
        value, remainder = divmod(value - 1, 26)
        out.append(chr(ord("A") + remainder))
    return "".join(reversed(out))


def data_columns(headers: Iterable[Any], tick_col: str = TICK_COL, user_col: str = USER_COL) -> List[str]:
    """Unique, non-blank header names minus the bookkeeping columns, order kept."""
    seen = set()
    out: List[str] = []
    for h in headers or []:
        name = str(h or "").strip()
        if not name or name in (tick_col, user_col) or name in seen:
            continue
        seen.add(name)
        out.append(name)
    return out


def enforce_header_shape(headers: Iterable[Any], tick_col: str = TICK_COL, user_col: str = USER_COL) -> List[str]:
    return [tick_col, *data_columns(headers, tick_col, user_col), user_col]


def build_values(
    rows: Sequence[Dict[str, Any]],
    headers: Sequence[str],
    tick_col: str = TICK_COL,
) -> List[List[Any]]:
    """Project dict rows onto `headers`; the checkbox cell is always False."""
    values: List[List[Any]] = []
    for row in rows:
        line: List[Any] = []
        for h in headers:
            if h == tick_col:
                line.append(False)
            else:
                line.append(cell_value((row or {}).get(h)))
        values.append(line)
    return values


def _column_range(sheet_id: int, start: int, end: int) -> Dict[str, Any]:
    return {"sheetId": sheet_id, "dimension": "COLUMNS", "startIndex": start, "endIndex": end}


def layout_requests(sheet_id: int, need_cols: int, max_rows: int = LAYOUT_MAX_ROWS) -> List[Dict[str, Any]]:
    return [
        {
            "updateSheetProperties": {
                "properties": {"sheetId": sheet_id, "gridProperties": {"frozenRowCount": 1}},
                "fields": "gridProperties.frozenRowCount",
            }
        },
        {
            "repeatCell": {
                "range": {"sheetId": sheet_id},
                "cell": {"userEnteredFormat": {"wrapStrategy": "CLIP", "verticalAlignment": "MIDDLE"}},
                "fields": "userEnteredFormat.wrapStrategy,userEnteredFormat.verticalAlignment",
            }
        },
        {
            "repeatCell": {
                "range": {
                    "sheetId": sheet_id,
                    "startRowIndex": 0,
                    "endRowIndex": 1,
                    "startColumnIndex": 0,
                    "endColumnIndex": need_cols,
                },
                "cell": {
                    "userEnteredFormat": {
                        "textFormat": {"bold": True},
                        "backgroundColor": {"red": 0.95, "green": 0.95, "blue": 0.95},
                    }
                },
                "fields": "userEnteredFormat.textFormat.bold,userEnteredFormat.backgroundColor",
            }
        },
        {
            "updateDimensionProperties": {
                "range": {"sheetId": sheet_id, "dimension": "ROWS", "startIndex": 1, "endIndex": max_rows},
                "properties": {"pixelSize": 22},
                "fields": "pixelSize",
            }
        },
        {
            "autoResizeDimensions": {
                "dimensions": {"sheetId": sheet_id, "dimension": "COLUMNS", "startIndex": 0, "endIndex": need_cols}
            }
        },
        {
            "setDataValidation": {
                "range": {
                    "sheetId": sheet_id,
                    "startRowIndex": 1,
                    "endRowIndex": max_rows,
                    "startColumnIndex": 0,
                    "endColumnIndex": 1,
                },
                "rule": {"condition": {"type": "BOOLEAN"}, "showCustomUi": True},
            }
        },
        {"setBasicFilter": {"filter": {"range": {"sheetId": sheet_id}}}},
    ]


# ---- Per-destination locks ----------------------------------------------------

_LOCKS: Dict[Tuple[str, str], threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def destination_lock(destination: Destination) -> threading.Lock:
    key = (destination.spreadsheet_id, destination.sheet_name)
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[key] = lock
        return lock


# ---- Writer -------------------------------------------------------------------

@dataclass
class SyncResult:
    appended: int
    headers: List[str]


class SheetSynchronizer:
    """Writes row dicts into one tab of a spreadsheet (see module docstring)."""

    def __init__(
        self,
        client: gspread.Client,
        *,
        tick_col: str = TICK_COL,
        user_col: str = USER_COL,
        value_input_option: str = "RAW",
        apply_layout: bool = True,
    ):
        self.client = client
        self.tick_col = tick_col
        self.user_col = user_col
        self.value_input_option = value_input_option
        self.apply_layout = apply_layout

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "SheetSynchronizer":
        try:
            client = open_client(settings)
        except (GoogleAuthError, ValueError, OSError) as exc:
            raise ConfigError(f"Google credentials unusable: {exc}") from exc
        return cls(client, **kwargs)

    # -- reads (debug helpers) --

    def list_tabs(self, spreadsheet_id: str) -> List[Tuple[str, int]]:
        sh = self.client.open_by_key(spreadsheet_id)
        return [(ws.title, ws.id) for ws in sh.worksheets()]

    def read_header(self, destination: Destination) -> List[str]:
        sh = self.client.open_by_key(destination.spreadsheet_id)
        return sh.worksheet(destination.sheet_name).row_values(1)

    # -- write --

    def _resolve_tab(self, sh: gspread.Spreadsheet, name: str, need_cols: int) -> gspread.Worksheet:
        try:
            return sh.worksheet(name)
        except WorksheetNotFound:
            logger.info("Creating tab %r", name)
            return sh.add_worksheet(title=name, rows=NEW_TAB_ROWS, cols=max(need_cols, MIN_TAB_COLS))

    def _reconcile_header(self, sh: gspread.Spreadsheet, ws: gspread.Worksheet, headers: Sequence[str]) -> List[str]:
        """
        Merge the existing header with the new column names and write it to row 1.
        Returns the final header order.

        Cells below the header never change columns relative to their header:
        when "Done" is missing from column A, or "userID" is not last, or new
        data columns go in before "userID", whole sheet columns are inserted or
        moved so the existing rows follow along.
        """
        existing = [str(h) for h in ws.row_values(1)]
        if not existing:
            final = enforce_header_shape(headers, self.tick_col, self.user_col)
            if len(final) > ws.col_count:
                ws.add_cols(len(final) - ws.col_count)
            self._write_header(ws, final)
            return final

        requests: List[Dict[str, Any]] = []
        inserted = 0
        layout = list(existing)
        if layout[0] != self.tick_col:
            requests.append({"insertDimension": {"range": _column_range(ws.id, 0, 1), "inheritFromBefore": False}})
            layout.insert(0, self.tick_col)
            inserted += 1

        user_in_sheet = True
        if layout[-1] != self.user_col:
            if self.user_col in layout[1:]:
                idx = layout.index(self.user_col, 1)
                requests.append(
                    {"moveDimension": {"source": _column_range(ws.id, idx, idx + 1), "destinationIndex": len(layout)}}
                )
                layout.append(layout.pop(idx))
            else:
                layout.append(self.user_col)
                user_in_sheet = False

        # stray bookkeeping names in the middle lose their header, not their data
        middle = ["" if h in (self.tick_col, self.user_col) else h for h in layout[1:-1]]
        known = {h.strip() for h in middle}
        added = [h for h in data_columns(headers, self.tick_col, self.user_col) if h not in known]
        if added and user_in_sheet:
            user_index = len(layout) - 1
            requests.append(
                {
                    "insertDimension": {
                        "range": _column_range(ws.id, user_index, user_index + len(added)),
                        "inheritFromBefore": True,
                    }
                }
            )
            inserted += len(added)
        final = [self.tick_col, *middle, *added, self.user_col]

        if requests:
            sh.batch_update({"requests": requests})
        col_count = ws.col_count + inserted
        if len(final) > col_count:
            ws.add_cols(len(final) - col_count)

        if existing != final:
            self._write_header(ws, final)
        return final

    def _write_header(self, ws: gspread.Worksheet, final: Sequence[str]) -> None:
        end_col = column_letters(len(final))
        ws.batch_clear(["1:1"])
        ws.update(range_name=f"A1:{end_col}1", values=[list(final)], value_input_option=self.value_input_option)

    def _apply_layout(self, sh: gspread.Spreadsheet, ws: gspread.Worksheet, need_cols: int) -> None:
        try:
            sh.batch_update({"requests": layout_requests(ws.id, need_cols)})
        except SHEETS_ERRORS as exc:
            logger.warning("Sheet layout failed for %r (data already written): %s", ws.title, exc)

    def write(self, rows: Sequence[Dict[str, Any]], destination: Destination, headers: Sequence[str]) -> SyncResult:
        """
        Append `rows` (dicts keyed by header name) under a reconciled header.
        An empty `rows` list touches nothing and returns appended=0.
        """
        destination.require()
        if not rows:
            return SyncResult(appended=0, headers=enforce_header_shape(headers, self.tick_col, self.user_col))

        with destination_lock(destination):
            try:
                sh = self.client.open_by_key(destination.spreadsheet_id)
                need = len(enforce_header_shape(headers, self.tick_col, self.user_col))
                ws = self._resolve_tab(sh, destination.sheet_name, need)
                final = self._reconcile_header(sh, ws, headers)
                values = build_values(rows, final, self.tick_col)
                ws.append_rows(
                    values,
                    value_input_option=self.value_input_option,
                    insert_data_option="INSERT_ROWS",
                    table_range="A1",
                )
            except SHEETS_ERRORS as exc:
                raise SheetWriteError(
                    f"write to {destination.spreadsheet_id}/{destination.sheet_name} failed: {exc}"
                ) from exc

            logger.info("Appended %d rows to sheet %s (%s)", len(values), destination.spreadsheet_id, destination.sheet_name)
            if self.apply_layout:
                self._apply_layout(sh, ws, len(final))
        return SyncResult(appended=len(values), headers=final)
