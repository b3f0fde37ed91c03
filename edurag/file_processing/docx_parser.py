"""DOCX text extraction with python-docx."""

import logging
from pathlib import Path

from docx import Document as load_docx
from docx.opc.exceptions import PackageNotFoundError

from edurag.exceptions import FileProcessingError

logger = logging.getLogger(__name__)


class DOCXParser:
    """Парсер для .docx файлов: параграфы и таблицы."""

    def extract_text(self, file_path: Path) -> str:
        """Extract paragraphs, then table rows as "cell | cell".

        Raises:
            FileProcessingError: If the file is not a valid .docx
        """
        try:
            doc = load_docx(str(file_path))
        except (PackageNotFoundError, KeyError, ValueError, OSError) as e:
            logger.error(f"Cannot open {file_path.name}: {type(e).__name__}: {str(e)[:100]}")
            raise FileProcessingError(
                f"Cannot extract text from {file_path.name}", file_path=str(file_path)
            ) from e

        lines = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
        paragraph_count = len(lines)

        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    lines.append(" | ".join(cells))

        logger.info(
            f"✓ Extracted {paragraph_count} paragraphs and "
            f"{len(lines) - paragraph_count} table rows from {file_path.name}"
        )
        return "\n".join(lines)
