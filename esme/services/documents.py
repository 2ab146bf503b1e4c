"""
Plain-text extraction from Google Docs, Sheets and Slides.
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional
from urllib.parse import quote
import logging
import requests

from ..errors import DocumentFetchError

logger = logging.getLogger(__name__)

GOOGLE_DOC = "application/vnd.google-apps.document"
GOOGLE_SHEET = "application/vnd.google-apps.spreadsheet"
GOOGLE_SLIDES = "application/vnd.google-apps.presentation"

DOCS_API_URL = "https://docs.googleapis.com/v1/documents"
SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SLIDES_API_URL = "https://slides.googleapis.com/v1/presentations"

# Sheets are sampled, not read in full
MAX_SHEET_ROWS = 100
MAX_SHEET_COLS = 50


@dataclass
class DocumentContent:
    name: str
    mime_type: Optional[str]
    content: str


def column_letter(n: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA."""
    letters = ""
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def extract_doc_text(document: Dict[str, Any]) -> str:
    parts = []
    for element in (document.get("body") or {}).get("content") or []:
        paragraph = element.get("paragraph")
        if not paragraph:
            continue
        for item in paragraph.get("elements") or []:
            content = (item.get("textRun") or {}).get("content")
            if content:
                parts.append(content)
    return "".join(parts).strip()


def _text_runs(text: Dict[str, Any]) -> List[str]:
    runs = []
    for element in (text or {}).get("textElements") or []:
        content = (element.get("textRun") or {}).get("content")
        if content and content.strip():
            runs.append(content.strip())
    return runs


def extract_slides_text(presentation: Dict[str, Any]) -> str:
    blocks = []
    for index, slide in enumerate(presentation.get("slides") or [], start=1):
        texts = []
        for element in slide.get("pageElements") or []:
            shape = element.get("shape")
            if shape:
                texts.extend(_text_runs(shape.get("text")))

            table = element.get("table")
            if table:
                for row in table.get("tableRows") or []:
                    for cell in row.get("tableCells") or []:
                        texts.extend(f"[Table Cell]: {run}" for run in _text_runs(cell.get("text")))

        if texts:
            blocks.append(f"--- Slide {index} ---\n" + "\n".join(texts))

    return "\n\n".join(blocks).strip()


def format_sheet_values(sheet_name: str, values: List[List[Any]]) -> str:
    rows = "\n".join(" | ".join(str(cell) for cell in row) for row in values)
    return f"\n[Sheet: {sheet_name} (Data Sample)]\n{rows}"


class DocumentFetcher:
    """Reads document content with a user's Google access token."""

    def __init__(self, access_token: str, timeout: int = 30):
        self.access_token = access_token
        self.timeout = timeout

    def fetch(self, drive_file_id: str, mime_type: Optional[str]) -> DocumentContent:
        if mime_type == GOOGLE_DOC:
            document = self._get(f"{DOCS_API_URL}/{drive_file_id}")
            return DocumentContent(
                name=document.get("title") or "Untitled Doc",
                mime_type=mime_type,
                content=extract_doc_text(document)
            )

        if mime_type == GOOGLE_SLIDES:
            presentation = self._get(f"{SLIDES_API_URL}/{drive_file_id}")
            return DocumentContent(
                name=presentation.get("title") or "Untitled Slides",
                mime_type=mime_type,
                content=extract_slides_text(presentation)
            )

        if mime_type == GOOGLE_SHEET:
            return self._fetch_sheet(drive_file_id)

        raise DocumentFetchError(f"Unsupported mimeType: {mime_type}")

    def _fetch_sheet(self, spreadsheet_id: str) -> DocumentContent:
        meta = self._get(
            f"{SHEETS_API_URL}/{spreadsheet_id}",
            params={"fields": "properties.title,sheets.properties.title"}
        )
        title = (meta.get("properties") or {}).get("title") or "Untitled Sheet"

        parts = []
        for sheet in meta.get("sheets") or []:
            sheet_name = (sheet.get("properties") or {}).get("title")
            if not sheet_name:
                continue

            escaped = sheet_name.replace("'", "''")
            cell_range = f"'{escaped}'!A1:{column_letter(MAX_SHEET_COLS)}{MAX_SHEET_ROWS}"
            values = self._get(
                f"{SHEETS_API_URL}/{spreadsheet_id}/values/{quote(cell_range, safe='')}",
                params={"valueRenderOption": "FORMATTED_VALUE"}
            ).get("values") or []

            if values:
                parts.append(format_sheet_values(sheet_name, values))

        return DocumentContent(name=title, mime_type=GOOGLE_SHEET, content="\n\n---\n\n".join(parts))

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = requests.get(
                url,
                headers={"Authorization": f"Bearer {self.access_token}"},
                params=params,
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"Google API request failed for {url}: {e}")
            raise DocumentFetchError(str(e)) from e
        except ValueError as e:
            raise DocumentFetchError(f"Invalid JSON from Google API: {e}") from e
