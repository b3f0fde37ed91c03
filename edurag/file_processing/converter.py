"""File processing converter.

Routes an uploaded file to the parser for its format and returns cleaned
text ready for chunking. Supported: PDF, DOCX, TXT, Markdown.
"""

import logging
from pathlib import Path
from typing import Union

from edurag.exceptions import FileProcessingError
from edurag.file_processing.docx_parser import DOCXParser
from edurag.file_processing.pdf_parser import PDFParser
from edurag.file_processing.text_cleaner import TextCleaner

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {".pdf", ".docx", ".txt", ".md"}


class FileConverter:
    """Converter for extracting text from supported file formats."""

    def __init__(self) -> None:
        self.pdf_parser = PDFParser()
        self.docx_parser = DOCXParser()

    def is_supported(self, file_path: Union[str, Path]) -> bool:
        return Path(file_path).suffix.lower() in SUPPORTED_FORMATS

    def convert(self, file_path: Union[str, Path]) -> str:
        """Extract and clean text from a file.

        Args:
            file_path: Path to the file

        Returns:
            Cleaned text (may be empty if the file has no text)

        Raises:
            FileProcessingError: Missing file, unsupported format or unreadable file

        Example:
            >>> converter = FileConverter()
            >>> text = converter.convert(Path("lecture.pdf"))
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileProcessingError(f"File not found: {file_path}", file_path=str(file_path))

        suffix = file_path.suffix.lower()
        if suffix not in SUPPORTED_FORMATS:
            supported = ", ".join(sorted(SUPPORTED_FORMATS))
            raise FileProcessingError(
                f"Unsupported format: {suffix or file_path.name}. Supported: {supported}",
                file_path=str(file_path),
            )

        logger.info(f"Processing {suffix[1:].upper()}: {file_path.name}")
        if suffix == ".pdf":
            raw = self.pdf_parser.extract_text(file_path)
        elif suffix == ".docx":
            raw = self.docx_parser.extract_text(file_path)
        else:
            raw = self._read_text_file(file_path)

        return TextCleaner.clean(raw)

    @staticmethod
    def _read_text_file(file_path: Path) -> str:
        try:
            return file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning(f"UTF-8 decode failed for {file_path.name}, trying latin-1")
            return file_path.read_text(encoding="latin-1")
