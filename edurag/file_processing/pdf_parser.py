"""PDF text extraction with pypdf.

Pages that fail to extract are skipped; a file that cannot be opened at all
(corrupted, encrypted) raises FileProcessingError.
"""

import logging
from pathlib import Path
from typing import Optional

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from edurag.exceptions import FileProcessingError

logger = logging.getLogger(__name__)


class PDFParser:
    """Parser for PDF documents.

    Attributes:
        max_pages: Maximum pages to extract (None = all pages)
    """

    def __init__(self, max_pages: Optional[int] = None) -> None:
        self.max_pages = max_pages

    def extract_text(self, file_path: Path) -> str:
        """Extract text page by page, pages separated by blank lines.

        Raises:
            FileProcessingError: If the PDF cannot be read
        """
        try:
            reader = PdfReader(file_path)
            if reader.is_encrypted:
                raise FileProcessingError(
                    f"{file_path.name} is password protected", file_path=str(file_path)
                )
            pages = reader.pages
        except (PdfReadError, OSError, ValueError) as e:
            logger.error(f"Failed to read PDF {file_path}: {e}")
            raise FileProcessingError(
                f"Failed to process {file_path.name}. The file may be corrupted.",
                file_path=str(file_path),
            ) from e

        total = len(pages) if self.max_pages is None else min(len(pages), self.max_pages)
        texts = []
        for page_num in range(total):
            try:
                text = pages[page_num].extract_text()
            except Exception as e:
                logger.warning(f"Failed to extract text from page {page_num + 1}: {e}")
                continue
            if text and text.strip():
                texts.append(text)

        logger.info(f"Extracted {len(texts)}/{total} pages from {file_path.name}")
        return "\n\n".join(texts)
