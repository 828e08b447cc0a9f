"""
Full-Text Extraction Module

Extracts the text of a whole paper for interpretation. Each page's text is
preceded by a "=== page N ===" marker line so the chunk planner can split
at page boundaries.

Supported inputs:
- PDF (digital text layer, via pdfplumber)
- TXT (read as a single page)

Extraction never raises for an unreadable file: failures are logged with a
category and an empty string is returned, which the orchestrator turns into
an ExtractionError.
"""

import re
from pathlib import Path

import pdfplumber

from paperlens.config import DEBUG_MODE
from paperlens.interpretation.result_types import format_page_marker
from paperlens.logging_config import Timer, debug_log, error, warning

SUPPORTED_EXTENSIONS = ('.pdf', '.txt')

_WHITESPACE_RUN = re.compile(r'\s+')


def _collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim the ends."""
    return _WHITESPACE_RUN.sub(' ', text).strip()


class PdfTextExtractor:
    """
    Page-marked text extractor.

    Example:
        extractor = PdfTextExtractor()
        text = extractor.extract_full_text("paper.pdf")
        # "=== page 1 ===\nAbstract ...\n\n=== page 2 ===\n..."
    """

    def extract_full_text(self, file_path) -> str:
        """
        Extract the whole document with page markers.

        Args:
            file_path: Path to a .pdf or .txt file

        Returns:
            Page-marked text, or "" when nothing could be extracted
        """
        file_path = Path(file_path)

        if not file_path.exists():
            error(f"[EXTRACTOR] File not found: {file_path}")
            return ""

        extension = file_path.suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            error(f"[EXTRACTOR] Unsupported file type: {extension}. "
                  f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}")
            return ""

        with Timer(f"Extracting {file_path.name}"):
            if extension == '.txt':
                pages = self._read_text_file(file_path)
            else:
                pages, error_type = self._extract_pdf_pages(file_path)
                if error_type:
                    debug_log(f"[EXTRACTOR] {file_path.name}: extraction failed ({error_type})")
                    return ""

        if not pages:
            warning(f"[EXTRACTOR] {file_path.name}: no extractable text "
                    f"(the file may contain only scanned images)")
            return ""

        debug_log(f"[EXTRACTOR] {file_path.name}: {len(pages)} pages with text")
        return self.join_pages(pages)

    @staticmethod
    def join_pages(pages: list[tuple[int, str]]) -> str:
        """Render (page_number, text) pairs as marker-separated text."""
        return "\n\n".join(f"{format_page_marker(number)}\n{text}" for number, text in pages)

    def _read_text_file(self, file_path: Path) -> list[tuple[int, str]]:
        try:
            with open(file_path, encoding='utf-8', errors='ignore') as f:
                text = f.read().strip()
        except OSError as e:
            error(f"[EXTRACTOR] Failed to read text file {file_path.name}: {e}")
            return []
        return [(1, text)] if text else []

    def _extract_pdf_pages(self, file_path: Path) -> tuple[list[tuple[int, str]], str | None]:
        """
        Extract per-page text from a PDF using pdfplumber.

        Empty pages are skipped but keep their page number for the pages after them.

        Returns:
            (pages, error_type) where error_type is None on success,
            or one of: 'password', 'corrupted', 'permission', 'empty', 'unknown'
        """
        pages: list[tuple[int, str]] = []

        try:
            with pdfplumber.open(file_path) as pdf:
                page_count = len(pdf.pages)
                debug_log(f"[EXTRACTOR] PDF has {page_count} pages")

                if page_count == 0:
                    error("[EXTRACTOR] PDF has no pages")
                    return [], 'empty'

                for number, page in enumerate(pdf.pages, 1):
                    if DEBUG_MODE and number % 10 == 0:
                        debug_log(f"[EXTRACTOR] Extracting page {number}/{page_count}")

                    page_text = _collapse_whitespace(page.extract_text() or "")
                    if page_text:
                        pages.append((number, page_text))

            return pages, None

        except Exception as e:
            error_msg = str(e).lower()

            # Categorize error types
            if "password" in error_msg or "encrypted" in error_msg:
                error("[EXTRACTOR] PDF is password-protected or encrypted")
                return [], 'password'
            elif "damaged" in error_msg or "corrupt" in error_msg or "invalid" in error_msg:
                error("[EXTRACTOR] PDF file appears to be corrupted or damaged")
                return [], 'corrupted'
            elif "permission" in error_msg:
                error("[EXTRACTOR] Permission denied when accessing PDF")
                return [], 'permission'
            else:
                error(f"[EXTRACTOR] Failed to extract PDF text: {e}", exc_info=True)
                return [], 'unknown'


def extract_full_text(file_path) -> str:
    """Module-level shortcut for PdfTextExtractor().extract_full_text()."""
    return PdfTextExtractor().extract_full_text(file_path)
