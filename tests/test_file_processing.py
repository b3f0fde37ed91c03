"""Unit tests for file processing module.

Tests for DOCX/PDF parsers, text cleaner, file converter and error handling.
"""

import pytest
from docx import Document as DocxDocument

from edurag.exceptions import FileProcessingError
from edurag.file_processing import DOCXParser, FileConverter, PDFParser, TextCleaner


class TestDOCXParser:
    """Tests for DOCX parser."""

    @pytest.fixture
    def parser(self):
        """Create DOCX parser instance."""
        return DOCXParser()

    @pytest.fixture
    def temp_docx_file(self, tmp_path):
        """Create a real DOCX file with a paragraph and a table."""
        docx_path = tmp_path / "lesson.docx"
        document = DocxDocument()
        document.add_paragraph("Test paragraph content")
        document.add_paragraph("   ")
        document.add_paragraph("Another paragraph")
        table = document.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Term"
        table.rows[0].cells[1].text = "Definition"
        document.save(str(docx_path))
        return docx_path

    def test_extract_paragraphs_and_tables(self, parser, temp_docx_file):
        """Test extraction from valid DOCX file."""
        text = parser.extract_text(temp_docx_file)

        assert text.splitlines() == [
            "Test paragraph content",
            "Another paragraph",
            "Term | Definition",
        ]

    def test_invalid_docx(self, parser, tmp_path):
        """Test that a non-zip file is rejected."""
        bad_file = tmp_path / "broken.docx"
        bad_file.write_bytes(b"this is not a docx file")

        with pytest.raises(FileProcessingError):
            parser.extract_text(bad_file)


class TestPDFParser:
    """Tests for PDF parser."""

    def test_invalid_pdf(self, tmp_path):
        bad_file = tmp_path / "broken.pdf"
        bad_file.write_bytes(b"not a pdf at all")

        with pytest.raises(FileProcessingError):
            PDFParser().extract_text(bad_file)


class TestTextCleaner:
    """Tests for text normalization."""

    def test_empty(self):
        assert TextCleaner.clean("") == ""
        assert TextCleaner.clean(None) == ""

    def test_removes_control_chars(self):
        assert TextCleaner.clean("Hel\x00lo\x07 world�") == "Hello world"

    def test_normalizes_whitespace(self):
        raw = "  First   line  \r\nSecond\tline\r\n\n\n\nThird  "
        assert TextCleaner.clean(raw) == "First line\nSecond line\n\nThird"

    def test_is_text_usable(self):
        assert TextCleaner.is_text_usable("Some words")
        assert not TextCleaner.is_text_usable("   ")
        assert not TextCleaner.is_text_usable("12345 --- 678")
        assert not TextCleaner.is_text_usable("abc", min_length=10)


class TestFileConverter:
    """Tests for file converter."""

    @pytest.fixture
    def converter(self):
        """Create file converter instance."""
        return FileConverter()

    def test_is_supported(self, converter):
        """Test format detection."""
        assert converter.is_supported("notes.PDF")
        assert converter.is_supported("notes.docx")
        assert converter.is_supported("notes.md")
        assert not converter.is_supported("notes.doc")
        assert not converter.is_supported("sheet.xlsx")

    def test_convert_text_file(self, converter, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("Line one.   \n\n\n\nLine two.", encoding="utf-8")

        assert converter.convert(path) == "Line one.\n\nLine two."

    def test_convert_latin1_text(self, converter, tmp_path):
        path = tmp_path / "legacy.txt"
        path.write_bytes("Caf\xe9 au lait.".encode("latin-1"))

        assert converter.convert(path) == "Café au lait."

    def test_convert_docx(self, converter, tmp_path):
        path = tmp_path / "lesson.docx"
        document = DocxDocument()
        document.add_paragraph("Photosynthesis happens in chloroplasts.")
        document.save(str(path))

        assert converter.convert(path) == "Photosynthesis happens in chloroplasts."

    def test_unsupported_format(self, converter, tmp_path):
        """Test error for unsupported format."""
        path = tmp_path / "table.xlsx"
        path.write_bytes(b"data")

        with pytest.raises(FileProcessingError, match="Unsupported format"):
            converter.convert(path)

    def test_missing_file(self, converter, tmp_path):
        with pytest.raises(FileProcessingError, match="not found"):
            converter.convert(tmp_path / "missing.pdf")
