from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from questionnaire import CATEGORIES, CATEGORY_TITLES

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
SHEET_COLUMNS: List[str] = ["Timestamp", "Name", "Organization"] + [CATEGORY_TITLES[code] for code in CATEGORIES]
DEFAULT_SHEETS_TIMEOUT = 10.0

# One worker keeps appends in submission order and the lazy connect single-threaded.
_SAVE_POOL = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sheet-save")


@dataclass(frozen=True)
class Submission:
    name: str
    organization: str
    scores: Dict[str, int]
    submitted_at: datetime = field(default_factory=datetime.now)

    def to_row(self) -> List[object]:
        return [
            self.submitted_at.strftime("%Y-%m-%d %H:%M:%S"),
            self.name,
            self.organization,
            *[self.scores[code] for code in CATEGORIES],
        ]


class SheetResultStore:
    """Append-only result log backed by the first worksheet of a spreadsheet."""

    def __init__(self, worksheet):
        self.worksheet = worksheet

    @classmethod
    def from_service_account_info(
        cls, credentials_info: Dict[str, object], sheet_id: str, timeout: float = DEFAULT_SHEETS_TIMEOUT
    ) -> "SheetResultStore":
        return cls.open(Credentials.from_service_account_info(credentials_info, scopes=SCOPES), sheet_id, timeout)

    @classmethod
    def from_service_account_file(
        cls, path: str, sheet_id: str, timeout: float = DEFAULT_SHEETS_TIMEOUT
    ) -> "SheetResultStore":
        return cls.open(Credentials.from_service_account_file(path, scopes=SCOPES), sheet_id, timeout)

    @classmethod
    def open(cls, creds: Credentials, sheet_id: str, timeout: float = DEFAULT_SHEETS_TIMEOUT) -> "SheetResultStore":
        client = gspread.authorize(creds)
        # gspread waits forever on a stalled request unless told otherwise.
        client.set_timeout(timeout)
        spreadsheet = client.open_by_key(sheet_id)
        logger.info("Connected to Google Sheet %r", spreadsheet.title)
        worksheet = spreadsheet.sheet1
        if not worksheet.row_values(1):
            worksheet.append_row(SHEET_COLUMNS)
        return cls(worksheet)

    def append_result(self, submission: Submission) -> None:
        # The Sheets API appends server side, so concurrent submissions never overwrite each other.
        self.worksheet.append_row(submission.to_row(), value_input_option="USER_ENTERED")


def result_store_configured(
    sheet_id: Optional[str],
    credentials_json: Optional[str] = None,
    credentials_file: Optional[str] = None,
) -> bool:
    return bool(sheet_id and (credentials_json or credentials_file))


def connect_result_store(
    sheet_id: Optional[str],
    credentials_json: Optional[str] = None,
    credentials_file: Optional[str] = None,
    timeout: float = DEFAULT_SHEETS_TIMEOUT,
) -> Optional[SheetResultStore]:
    """Open the result sheet, or return None when persistence is not configured or unreachable."""
    if not result_store_configured(sheet_id, credentials_json, credentials_file):
        logger.warning("Google Sheets credentials missing. Result logging disabled.")
        return None
    try:
        if credentials_json:
            return SheetResultStore.from_service_account_info(json.loads(credentials_json), sheet_id, timeout)
        return SheetResultStore.from_service_account_file(credentials_file, sheet_id, timeout)  # type: ignore[arg-type]
    except (ValueError, OSError, GoogleAuthError, gspread.exceptions.GSpreadException) as exc:
        logger.error("Error loading Google Sheet: %s", exc)
        return None


def save_submission(store: Optional[SheetResultStore], submission: Submission) -> bool:
    """Best-effort append. Failures are logged and never reach the user."""
    if store is None:
        logger.info("Result logging disabled; submission from %s not stored.", submission.organization)
        return False
    try:
        store.append_result(submission)
    except Exception:
        logger.exception("Failed to save results to Google Sheet.")
        return False
    logger.info("Results saved to Google Sheet for %s.", submission.organization)
    return True


def _connect_and_save(get_store: Callable[[], Optional[SheetResultStore]], submission: Submission) -> bool:
    try:
        store = get_store()
    except Exception:
        logger.exception("Error loading Google Sheet.")
        return False
    return save_submission(store, submission)


def save_submission_in_background(
    get_store: Callable[[], Optional[SheetResultStore]], submission: Submission
) -> "Future[bool]":
    """Queue the connect and append off the request thread; the caller does not wait."""
    return _SAVE_POOL.submit(_connect_and_save, get_store, submission)
