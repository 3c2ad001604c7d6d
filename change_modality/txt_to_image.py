# change_modality/txt_to_image.py

"""
Directive -> infographic image.

    generate(directive, provider) -> Artifact

The provider does the actual call; this module owns the request
configuration and how the image is found in Gemini's reply.
"""

import base64
from typing import Any, Union

from google.genai import types

from config import Settings
from errors import UpstreamError, ValidationError
from schemas import Artifact, GenerationDirective

PLACEHOLDER_IMAGE_URL = "https://placehold.co/600x800/8b5cf6/ffffff?text=Infographic+Generated"
DEFAULT_IMAGE_MIME = "image/png"


def image_request_config(settings: Settings) -> types.GenerateContentConfig:
    tools = None
    if settings.image_search_grounding:
        tools = [types.Tool(google_search=types.GoogleSearch())]

    return types.GenerateContentConfig(
        response_modalities=["TEXT", "IMAGE"],
        image_config=types.ImageConfig(
            aspect_ratio=settings.image_aspect_ratio,
            image_size=settings.image_size,
        ),
        tools=tools,
    )


def find_image_part(response: Any) -> Any:
    """
    Return the first image part of a generate_content response.

    Thought parts are skipped even when they carry inline data.
    """
    candidates = getattr(response, "candidates", None) or []
    content = getattr(candidates[0], "content", None) if candidates else None
    parts = getattr(content, "parts", None) if content is not None else None
    if parts is None:
        raise UpstreamError("Failed to generate infographic", detail="Invalid response structure")

    for part in parts:
        if getattr(part, "thought", None):
            continue
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            return part

    raise UpstreamError("Failed to generate infographic", detail="No image data in response")


def to_data_uri(data: Union[bytes, str], mime_type: str = DEFAULT_IMAGE_MIME) -> str:
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type or DEFAULT_IMAGE_MIME};base64,{data}"


def artifact_from_response(response: Any) -> Artifact:
    inline = find_image_part(response).inline_data
    mime_type = getattr(inline, "mime_type", None) or DEFAULT_IMAGE_MIME
    return Artifact(url=to_data_uri(inline.data, mime_type), mime_type=mime_type)


def generate(directive: Union[GenerationDirective, str], provider) -> Artifact:
    if isinstance(directive, str):
        directive = GenerationDirective(text=directive, origin="raw")

    if not directive.text or not directive.text.strip():
        raise ValidationError("Missing prompt")

    return provider.render(directive)
