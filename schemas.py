
# schemas.py

import json
from typing import Optional, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from errors import UpstreamError

# PRESENTATION OPTIONS

Language = Literal["Deutsch", "English"]

Audience = Literal[
    "General public",
    "High school students",
    "Undergraduate",
    "Graduate/Professional",
    "Expert researchers",
]

Focus = Literal[
    "Balanced overview",
    "Core scientific concepts",
    "Methodology & process",
    "Results & findings",
    "Broader implications",
]

Terms = Literal[
    "Include & Explain",
    "Include without explanation",
    "Exclude, simplify to context",
]

REQUIRED_OPTION_FIELDS = ("language", "audience", "focus", "terms")


class PresentationOptions(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    language: Language = "Deutsch"
    audience: Audience = "General public"
    focus: Focus = "Balanced overview"
    terms: Terms = "Include & Explain"
    style_notes: Optional[str] = Field(default=None, alias="styleNotes")


# STAGE RESULTS

DirectiveOrigin = Literal["parsed", "raw", "fallback"]


class GenerationDirective(BaseModel):
    """
    Instruction text for the image model.

    origin records how the text was obtained:
      parsed   - the language model answered with {"prompt": ...}
      raw      - the answer was not that JSON shape, the whole reply is used
      fallback - no credential configured, deterministic placeholder
    """

    model_config = ConfigDict(frozen=True)

    text: str
    origin: DirectiveOrigin
    source_truncated: bool = False

    @property
    def is_fallback(self) -> bool:
        return self.origin == "fallback"

    @classmethod
    def from_model_reply(cls, raw: Optional[str], source_truncated: bool = False) -> "GenerationDirective":
        if raw is None or not raw.strip():
            raise UpstreamError("Failed to generate prompt", detail="Language model returned an empty reply")

        reply = raw.strip()
        try:
            parsed = json.loads(reply)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, dict):
            prompt = parsed.get("prompt")
            if isinstance(prompt, str) and prompt.strip():
                return cls(text=prompt.strip(), origin="parsed", source_truncated=source_truncated)

        return cls(text=reply, origin="raw", source_truncated=source_truncated)


class Artifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    mime_type: str = "image/png"
    is_fallback: bool = False

    @property
    def is_inline(self) -> bool:
        return self.url.startswith("data:")


# REQUEST SCHEMAS

class TextRequest(BaseModel):
    text: Optional[str] = None


class PromptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    language: Optional[str] = None
    audience: Optional[str] = None
    focus: Optional[str] = None
    terms: Optional[str] = None
    style_notes: Optional[str] = Field(default=None, alias="styleNotes")


class InfographicRequest(BaseModel):
    prompt: Optional[str] = None


# RESPONSE SCHEMAS

class ExtractResponse(BaseModel):
    text: str
    pages: int
    warnings: List[str] = []


class PromptResponse(BaseModel):
    prompt: str
    origin: DirectiveOrigin
    truncated: bool
    fallback: bool


class InfographicResponse(BaseModel):
    imageUrl: str
    fallback: bool


class StatusResponse(BaseModel):
    llm: bool
    image: bool
    mode: Literal["live", "fallback"]


class RunResult(BaseModel):
    stage: str
    status: str
    error: Optional[str] = None
    error_detail: Optional[str] = None
    failed_stage: Optional[str] = None
    artifact: Optional[Artifact] = None
    directive: Optional[GenerationDirective] = None
    history: List[str] = []
    warnings: List[str] = []
