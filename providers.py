"""
Live and fallback backends for the two model calls.

One provider is picked at startup from the credential; the stages never
check for the key themselves.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from change_modality.txt_to_image import (
    PLACEHOLDER_IMAGE_URL,
    artifact_from_response,
    image_request_config,
)
from config import Settings, get_settings
from errors import UpstreamError
from schemas import Artifact, GenerationDirective, PresentationOptions

log = logging.getLogger(__name__)

UPSTREAM_ERRORS = (genai_errors.APIError, genai_errors.UnknownApiResponseError, httpx.HTTPError)


class Provider(ABC):
    live = False

    @abstractmethod
    def write_directive(self, request: str, options: PresentationOptions, truncated: bool) -> GenerationDirective:
        """Turn the directive request into a GenerationDirective."""

    @abstractmethod
    def render(self, directive: GenerationDirective) -> Artifact:
        """Turn a directive into an image Artifact."""

    def status(self) -> Dict[str, bool]:
        return {"llm": self.live, "image": self.live}


class LiveProvider(Provider):
    live = True

    def __init__(self, api_key: str, settings: Settings, client=None):
        self.settings = settings
        self.client = client or genai.Client(api_key=api_key)

    def write_directive(self, request: str, options: PresentationOptions, truncated: bool) -> GenerationDirective:
        log.info("Calling %s for prompt generation", self.settings.text_model)
        try:
            response = self.client.models.generate_content(
                model=self.settings.text_model,
                contents=request,
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )
        except UPSTREAM_ERRORS as e:
            log.error("LLM Error: %s", e)
            raise UpstreamError("Failed to generate prompt", detail=str(e)) from e

        directive = GenerationDirective.from_model_reply(response.text, source_truncated=truncated)
        if directive.origin == "raw":
            log.warning("Failed to parse LLM JSON, returning raw content")
        return directive

    def render(self, directive: GenerationDirective) -> Artifact:
        log.info("Calling %s for image generation", self.settings.image_model)
        try:
            response = self.client.models.generate_content(
                model=self.settings.image_model,
                contents=directive.text,
                config=image_request_config(self.settings),
            )
        except UPSTREAM_ERRORS as e:
            log.error("Image generation error: %s", e)
            raise UpstreamError("Failed to generate infographic", detail=str(e)) from e

        artifact = artifact_from_response(response)
        log.info("Infographic image generated (%s)", artifact.mime_type)
        return artifact


class FallbackProvider(Provider):
    """Deterministic stand-in used when no API key is configured."""

    live = False

    def __init__(self, settings: Settings, sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self._sleep = sleep

    def write_directive(self, request: str, options: PresentationOptions, truncated: bool) -> GenerationDirective:
        log.info("Using mock LLM response (no API key)")
        self._sleep(self.settings.fallback_prompt_delay)
        return GenerationDirective(
            text=f"Mock prompt for {options.audience}",
            origin="fallback",
            source_truncated=truncated,
        )

    def render(self, directive: GenerationDirective) -> Artifact:
        log.info("Using mock image response (no API key)")
        self._sleep(self.settings.fallback_image_delay)
        return Artifact(url=PLACEHOLDER_IMAGE_URL, is_fallback=True)


def select_provider(settings: Optional[Settings] = None, client=None) -> Provider:
    settings = settings or get_settings()
    if settings.has_api_key:
        log.info("API key present, using live Gemini provider")
        return LiveProvider(settings.api_key, settings, client=client)
    log.info("API key missing, using fallback provider")
    return FallbackProvider(settings)
