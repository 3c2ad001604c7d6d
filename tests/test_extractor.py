"""Tests for the text extractor."""

from __future__ import annotations

import pytest

import extractor
from config import MB, Settings
from conftest import encrypt_pdf, make_pdf
from errors import ExtractionError, ValidationError
from extractor import PDF_MIME_TYPE, SourceDocument, extract, normalize_text


class TestNormalizeText:
    def test_line_endings_and_blank_runs(self):
        raw = "  Title\r\n\r\n\r\n\r\nBody line   \rNext\n"
        assert normalize_text(raw) == "Title\n\nBody line\nNext"

    def test_empty(self):
        assert normalize_text(" \n\n ") == ""


class TestPlainText:
    def test_passes_through(self, sample_text, settings):
        result = extract(SourceDocument.from_text(sample_text), settings)
        assert result.text == sample_text
        assert result.source_kind == "text"
        assert result.page_count == 1
        assert result.warnings == ()

    def test_too_short(self, settings):
        with pytest.raises(ValidationError) as exc:
            extract(SourceDocument.from_text("too short"), settings)
        assert "100" in exc.value.message

    def test_whitespace_does_not_count(self, settings):
        padded = " " * 200 + "x" * 50 + "\n" * 200
        with pytest.raises(ValidationError):
            extract(SourceDocument.from_text(padded), settings)


class TestPdf:
    def test_pages_in_order(self, sample_pdf, settings):
        result = extract(SourceDocument.from_upload(sample_pdf, PDF_MIME_TYPE, "paper.pdf"), settings)
        assert result.source_kind == "pdf"
        assert result.page_count == 2
        first = result.text.index("Chlorophyll fluorescence")
        second = result.text.index("yield dropped")
        assert first < second

    def test_idempotent(self, sample_pdf, settings):
        source = SourceDocument.from_upload(sample_pdf, PDF_MIME_TYPE)
        assert extract(source, settings) == extract(source, settings)

    def test_wrong_content_type(self, sample_pdf, settings):
        with pytest.raises(ValidationError):
            extract(SourceDocument.from_upload(sample_pdf, "image/png"), settings)

    def test_malformed(self, settings):
        with pytest.raises(ExtractionError):
            extract(SourceDocument.from_upload(b"this is not a pdf at all", PDF_MIME_TYPE), settings)

    def test_empty_file(self, settings):
        with pytest.raises(ExtractionError):
            extract(SourceDocument.from_upload(b"", PDF_MIME_TYPE), settings)

    def test_no_text(self, settings):
        blank = make_pdf([""])
        with pytest.raises(ExtractionError) as exc:
            extract(SourceDocument.from_upload(blank, PDF_MIME_TYPE), settings)
        assert "no extractable text" in exc.value.detail

    def test_over_hard_ceiling(self, settings):
        data = b"\0" * (60 * MB)
        with pytest.raises(ValidationError) as exc:
            extract(SourceDocument.from_upload(data, PDF_MIME_TYPE), settings)
        assert exc.value.status_code == 413
        assert "50MB" in exc.value.message

    def test_soft_threshold_warns(self, sample_pdf):
        small = Settings(warn_upload_bytes=10, max_upload_bytes=10 * MB)
        result = extract(SourceDocument.from_upload(sample_pdf, PDF_MIME_TYPE), small)
        assert len(result.warnings) == 1
        assert "Large file" in result.warnings[0]


class TestSourceDocument:
    def test_both_inputs_rejected(self, sample_pdf, sample_text, settings):
        source = SourceDocument(data=sample_pdf, content_type=PDF_MIME_TYPE, text=sample_text)
        with pytest.raises(ValidationError):
            extract(source, settings)

    def test_no_input_rejected(self, settings):
        with pytest.raises(ValidationError):
            extract(SourceDocument(), settings)


class TestDamagedPdf:
    def test_single_byte_corruption(self, sample_pdf, settings):
        """Every one-byte corruption either still parses or fails as ExtractionError."""
        for offset in range(len(sample_pdf)):
            damaged = sample_pdf[:offset] + b"/" + sample_pdf[offset + 1:]
            try:
                extract(SourceDocument.from_upload(damaged, PDF_MIME_TYPE), settings)
            except ExtractionError:
                pass

    def test_parser_type_error(self, sample_pdf, settings, monkeypatch):
        def broken_reader(stream):
            raise TypeError("argument of type 'NumberObject' is not iterable")

        monkeypatch.setattr(extractor, "PdfReader", broken_reader)
        with pytest.raises(ExtractionError) as exc:
            extract(SourceDocument.from_upload(sample_pdf, PDF_MIME_TYPE), settings)
        assert "NumberObject" in exc.value.detail


class TestEncryptedPdf:
    def test_owner_password_only(self, sample_pdf, settings):
        locked = encrypt_pdf(sample_pdf, user_password="", owner_password="x")
        result = extract(SourceDocument.from_upload(locked, PDF_MIME_TYPE), settings)
        assert "yield dropped" in result.text
        assert result.page_count == 2

    def test_user_password_required(self, sample_pdf, settings):
        locked = encrypt_pdf(sample_pdf, user_password="secret", owner_password="x")
        with pytest.raises(ExtractionError) as exc:
            extract(SourceDocument.from_upload(locked, PDF_MIME_TYPE), settings)
        assert exc.value.detail == "document is encrypted"
