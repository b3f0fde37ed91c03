"""Text extraction from uploaded documents."""

from edurag.file_processing.converter import SUPPORTED_FORMATS, FileConverter
from edurag.file_processing.docx_parser import DOCXParser
from edurag.file_processing.pdf_parser import PDFParser
from edurag.file_processing.text_cleaner import TextCleaner

__all__ = [
    "FileConverter",
    "PDFParser",
    "DOCXParser",
    "TextCleaner",
    "SUPPORTED_FORMATS",
]
