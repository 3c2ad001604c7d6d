"""Shared fixtures for the pipeline test suite.

No test talks to Gemini: live-provider tests run against FakeClient, which
replays canned generate_content responses.
"""

from __future__ import annotations

import io
import logging
import sys
from types import SimpleNamespace

import pytest
from pypdf import PdfReader, PdfWriter

from config import Settings
from providers import FallbackProvider, LiveProvider

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
    force=True,
)

SAMPLE_TEXT = (
    "Photosynthesis converts light energy into chemical energy. In this study we "
    "measured chlorophyll fluorescence in 40 wheat cultivars under drought stress."
)
assert len(SAMPLE_TEXT) >= 150


def make_pdf(pages: list[str]) -> bytes:
    """Build a minimal single-font PDF with one line of text per page."""
    n = len(pages)
    kids = " ".join(f"{4 + 2 * i} 0 R" for i in range(n))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {n} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for i, text in enumerate(pages):
        escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        stream = f"BT /F1 12 Tf 72 720 Td ({escaped}) Tj ET".encode("latin-1")
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {5 + 2 * i} 0 R >>"
            ).encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + body + b"\nendobj\n"

    xref = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
    return bytes(out)


def encrypt_pdf(data: bytes, user_password: str, owner_password: str) -> bytes:
    writer = PdfWriter(clone_from=PdfReader(io.BytesIO(data)))
    writer.encrypt(user_password=user_password, owner_password=owner_password)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Fake google-genai client
# ---------------------------------------------------------------------------


def text_response(text):
    return SimpleNamespace(text=text)


def image_response(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def image_part(data=b"\x89PNG\r\n\x1a\nfake", mime_type="image/png", thought=None):
    return SimpleNamespace(
        thought=thought,
        text=None,
        inline_data=SimpleNamespace(data=data, mime_type=mime_type),
    )


def thought_part(text="Planning the layout..."):
    return SimpleNamespace(thought=True, text=text, inline_data=None)


class FakeModels:
    def __init__(self):
        self.calls = []
        self.replies = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeClient:
    def __init__(self, *replies):
        self.models = FakeModels()
        self.models.replies.extend(replies)


class SpyProvider(FallbackProvider):
    """Fallback provider that counts how often each stage reached it."""

    def __init__(self, settings):
        super().__init__(settings, sleep=lambda _: None)
        self.directive_calls = 0
        self.render_calls = 0

    def write_directive(self, request, options, truncated):
        self.directive_calls += 1
        return super().write_directive(request, options, truncated)

    def render(self, directive):
        self.render_calls += 1
        return super().render(directive)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(fallback_prompt_delay=0, fallback_image_delay=0)


@pytest.fixture
def live_settings() -> Settings:
    return Settings(api_key="test-key", fallback_prompt_delay=0, fallback_image_delay=0)


@pytest.fixture
def fallback(settings) -> FallbackProvider:
    return FallbackProvider(settings, sleep=lambda _: None)


@pytest.fixture
def spy(settings) -> SpyProvider:
    return SpyProvider(settings)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def live(live_settings, fake_client) -> LiveProvider:
    return LiveProvider(live_settings.api_key, live_settings, client=fake_client)


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_TEXT


@pytest.fixture
def sample_pdf() -> bytes:
    return make_pdf(["Chlorophyll fluorescence under drought", "Results: yield dropped by 12 percent"])
