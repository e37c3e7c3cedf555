"""
Extracción de texto de documentos.
Un lector por extensión: texto plano, PDF, Word, PowerPoint y Excel. Se pueden
registrar más sin tocar el resto.
"""
import logging
import re
from pathlib import Path
from typing import Callable, Dict, List, Union

from docx import Document as DocxDocument
from openpyxl import load_workbook
from pptx import Presentation
from pypdf import PdfReader

from ..errors import ExtractionFailedError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
MIN_TEXT_LENGTH = 10

ExtractFn = Callable[[Path], str]

_WHITESPACE = re.compile(r"\s+")
_UNUSUAL_CHARS = re.compile(r"[^\w\s.,!?;:()\-\"']")


def clean_text(text: str) -> str:
    """Colapsa espacios y elimina caracteres poco habituales."""
    text = _WHITESPACE.sub(" ", text)
    text = _UNUSUAL_CHARS.sub("", text)
    return text.strip()


def read_plain_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def read_pdf(path: Path) -> str:
    """Texto de todas las páginas; las que no se pueden leer se saltan."""
    reader = PdfReader(str(path))
    pages = []
    for number, page in enumerate(reader.pages, start=1):
        try:
            pages.append(page.extract_text() or "")
        except Exception as e:
            logger.warning(f"{path.name}: página {number} ilegible ({e})")
    return "\n".join(pages)


def read_docx(path: Path) -> str:
    """Párrafos y celdas de tablas de un documento Word."""
    document = DocxDocument(str(path))
    parts = [p.text for p in document.paragraphs if p.text]
    for table in document.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells if cell.text)
    return "\n".join(parts)


def read_pptx(path: Path) -> str:
    """Texto de cada diapositiva, en orden."""
    presentation = Presentation(str(path))
    parts = []
    for slide in presentation.slides:
        for shape in slide.shapes:
            if shape.has_text_frame and shape.text_frame.text:
                parts.append(shape.text_frame.text)
    return "\n".join(parts)


def read_xlsx(path: Path) -> str:
    """Una línea por fila con valores, recorriendo todas las hojas."""
    workbook = load_workbook(str(path), read_only=True, data_only=True)
    try:
        lines = []
        for sheet in workbook.worksheets:
            for row in sheet.iter_rows(values_only=True):
                values = [str(v) for v in row if v is not None and str(v).strip()]
                if values:
                    lines.append(" ".join(values))
        return "\n".join(lines)
    finally:
        workbook.close()


class DocumentReader:
    """Registro de extractores por extensión de archivo."""

    def __init__(self, max_file_size: int = MAX_FILE_SIZE):
        self.max_file_size = max_file_size
        self._readers: Dict[str, ExtractFn] = {
            ".txt": read_plain_text,
            ".md": read_plain_text,
            ".pdf": read_pdf,
            ".docx": read_docx,
            ".pptx": read_pptx,
            ".xlsx": read_xlsx,
        }

    def register(self, extension: str, reader: ExtractFn) -> None:
        ext = extension.lower()
        if not ext.startswith("."):
            ext = f".{ext}"
        self._readers[ext] = reader

    @property
    def supported_extensions(self) -> List[str]:
        return sorted(self._readers)

    def read(self, file_path: Union[str, Path]) -> str:
        """
        Extrae y limpia el texto de un documento.

        Raises:
            ExtractionFailedError: Archivo inexistente, demasiado grande, con
                extensión no soportada, ilegible o sin texto suficiente
        """
        path = Path(file_path)
        if not path.is_file():
            raise ExtractionFailedError(f"Archivo no encontrado: {path}")

        size = path.stat().st_size
        if size > self.max_file_size:
            raise ExtractionFailedError(
                f"Archivo demasiado grande: {size / 1024 / 1024:.1f}MB "
                f"(máximo {self.max_file_size / 1024 / 1024:.0f}MB)"
            )

        ext = path.suffix.lower()
        reader = self._readers.get(ext)
        if reader is None:
            raise ExtractionFailedError(
                f"Extensión no soportada: {ext or '(sin extensión)'}. "
                f"Soportadas: {', '.join(self.supported_extensions)}"
            )

        logger.info(f"📄 Extrayendo texto de {path.name}")
        try:
            raw = reader(path)
        except ExtractionFailedError:
            raise
        except Exception as e:
            raise ExtractionFailedError(f"No se pudo extraer texto de {path.name}: {e}") from e

        text = clean_text(raw or "")
        if len(text) < MIN_TEXT_LENGTH:
            raise ExtractionFailedError(f"El documento {path.name} no contiene texto suficiente")

        logger.info(f"Texto extraído: {len(text)} caracteres")
        return text
