import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as SchemaError

from config import Settings, get_settings
from errors import ValidationError
from schemas import GenerationDirective, PresentationOptions, REQUIRED_OPTION_FIELDS

log = logging.getLogger(__name__)


# -----------------------------
# Input checks
# -----------------------------

def validate_options(raw: Union[PresentationOptions, Mapping[str, Any]]) -> PresentationOptions:
    """
    Build PresentationOptions from request fields.

    Unlike the model defaults, nothing is filled in here: a missing or
    blank required field is an error.
    """
    if isinstance(raw, PresentationOptions):
        return raw

    values: Dict[str, Any] = dict(raw)
    missing = [
        name for name in REQUIRED_OPTION_FIELDS
        if not isinstance(values.get(name), str) or not values[name].strip()
    ]
    if missing:
        raise ValidationError("Missing required parameters", detail=", ".join(missing))

    notes = values.get("style_notes", values.get("styleNotes"))
    try:
        return PresentationOptions(
            language=values["language"].strip(),
            audience=values["audience"].strip(),
            focus=values["focus"].strip(),
            terms=values["terms"].strip(),
            style_notes=notes.strip() if isinstance(notes, str) and notes.strip() else None,
        )
    except SchemaError as e:
        bad = sorted({str(err["loc"][0]) for err in e.errors()})
        raise ValidationError("Invalid option value", detail=", ".join(bad)) from e


def truncate_source(text: str, limit: int) -> Tuple[str, bool]:
    """Character-count prefix of text, plus whether anything was cut."""
    if len(text) <= limit:
        return text, False
    return text[:limit], True


# -----------------------------
# Directive request
# -----------------------------

TERMS_RULES = {
    "Include & Explain": "Use the technical terms from the source and add a short plain-language explanation next to each one.",
    "Include without explanation": "Use the technical terms from the source as they are, without explanations.",
    "Exclude, simplify to context": "Avoid technical terms entirely; describe each concept in everyday words from its context.",
}


def build_directive_request(text: str, options: PresentationOptions, truncated: bool = False) -> str:
    if truncated:
        source_note = f"(truncated to the first {len(text)} characters for context limit)"
    else:
        source_note = "(complete)"

    style = options.style_notes or "None, choose a clean and readable style."

    return f"""
You are generating a prompt for an image model that creates a single infographic summarizing a scientific PDF.

INPUT DATA:
- PDF text {source_note}:
{text}

- Output language: {options.language}
- Level / audience: {options.audience}
- Technical terms: {options.terms}
- Focus: {options.focus}
- Style notes: {style}

TASK:
Create a complete image-model prompt that:
  - Summarizes the entire PDF into one infographic
  - Adjusts language, visuals, and detail level to the audience "{options.audience}"
  - Handles technical terms exactly as instructed: {TERMS_RULES[options.terms]}
  - Follows the focus mode "{options.focus}"
  - Writes every visible label and heading in {options.language}
  - Respects the style notes above when they are given
  - Provides clear visual layout instructions (structure, hierarchy, sections)
  - Includes labels, icons, and simple diagram descriptions
  - Is explicit enough for the image model to generate the infographic without ambiguity

OUTPUT FORMAT:
{{
  "prompt": "<FINAL_IMAGE_PROMPT>"
}}

Return JSON ONLY.
"""


# -----------------------------
# Core synthesis function
# -----------------------------

def synthesize(
    text: str,
    options: Union[PresentationOptions, Mapping[str, Any]],
    provider,
    settings: Optional[Settings] = None,
) -> GenerationDirective:
    """
    Derive the image directive from extracted text.

    Inputs are checked before the provider is called, so a bad request
    never costs a model call.
    """
    settings = settings or get_settings()

    if not text or not text.strip():
        raise ValidationError("Missing required parameters", detail="text")
    options = validate_options(options)

    source, truncated = truncate_source(text, settings.max_prompt_source_chars)
    if truncated:
        log.info("Source text truncated from %d to %d characters", len(text), len(source))

    request = build_directive_request(source, options, truncated)
    return provider.write_directive(request, options, truncated)
