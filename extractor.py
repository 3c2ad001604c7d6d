import io
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from pypdf import PasswordType, PdfReader

from config import MB, Settings, get_settings
from errors import ExtractionError, ValidationError

log = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

_BLANK_RUNS = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class SourceDocument:
    """User input for one run: either an uploaded PDF or pasted text, never both."""

    data: Optional[bytes] = None
    content_type: Optional[str] = None
    filename: Optional[str] = None
    text: Optional[str] = None

    @classmethod
    def from_upload(cls, data: bytes, content_type: Optional[str], filename: Optional[str] = None) -> "SourceDocument":
        return cls(data=data, content_type=content_type, filename=filename)

    @classmethod
    def from_text(cls, text: str) -> "SourceDocument":
        return cls(text=text)

    @property
    def is_binary(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class ExtractedText:
    text: str
    page_count: int
    source_kind: str
    warnings: Tuple[str, ...] = ()


def normalize_text(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    return _BLANK_RUNS.sub("\n\n", text).strip()


def _check_pdf(source: SourceDocument, settings: Settings) -> Tuple[str, ...]:
    if source.content_type != PDF_MIME_TYPE:
        raise ValidationError("Only PDF files are allowed!", detail=f"got content type {source.content_type!r}")

    size = len(source.data)
    if size > settings.max_upload_bytes:
        raise ValidationError(
            f"File size exceeds {settings.max_upload_bytes // MB}MB limit.",
            detail=f"{size} bytes",
            status_code=413,
        )
    if size == 0:
        raise ExtractionError("Failed to parse PDF", detail="file is empty")

    if size > settings.warn_upload_bytes:
        log.warning("Large upload %s (%d bytes), processing may take longer", source.filename, size)
        return ("Large file detected. Processing may take longer and results might be affected due to file size.",)
    return ()


def _extract_pdf(source: SourceDocument, settings: Settings) -> ExtractedText:
    warnings = _check_pdf(source, settings)

    try:
        reader = PdfReader(io.BytesIO(source.data))
        # Owner-password-only files open with an empty user password.
        locked = reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED
        pages = [] if locked else [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        log.error("PDF Parse Error: %s", e)
        raise ExtractionError("Failed to parse PDF", detail=str(e)) from e

    if locked:
        raise ExtractionError("Failed to parse PDF", detail="document is encrypted")

    text = normalize_text("\n\n".join(p for p in pages if p.strip()))
    if not text:
        raise ExtractionError("Failed to parse PDF", detail="no extractable text found")

    log.info("Extracted %d characters from %d page(s)", len(text), len(pages))
    return ExtractedText(text=text, page_count=len(pages), source_kind="pdf", warnings=warnings)


def _extract_plain(source: SourceDocument, settings: Settings) -> ExtractedText:
    text = normalize_text(source.text)
    if len(text) < settings.min_text_chars:
        raise ValidationError(
            f"Text must be at least {settings.min_text_chars} characters long.",
            detail=f"got {len(text)} characters",
        )
    return ExtractedText(text=text, page_count=1, source_kind="text")


def extract(source: SourceDocument, settings: Optional[Settings] = None) -> ExtractedText:
    """
    Turn a PDF upload or pasted text into normalized plain text.

    Size and type checks happen before the document is parsed, so an
    oversized or mistyped upload never reaches pypdf.
    """
    settings = settings or get_settings()

    if source.data is not None and source.text is not None:
        raise ValidationError("Provide either a PDF or text, not both")
    if source.data is not None:
        return _extract_pdf(source, settings)
    if source.text is not None:
        return _extract_plain(source, settings)
    raise ValidationError("No file uploaded")
