
import logging
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from change_modality.txt_to_image import generate
from config import Settings, get_settings
from errors import PipelineError, ValidationError
from extractor import SourceDocument, extract
from llm import synthesize
from pipeline import Stage, handle_request
from providers import Provider, select_provider
from schemas import (
    ExtractResponse,
    InfographicRequest,
    InfographicResponse,
    PresentationOptions,
    PromptRequest,
    PromptResponse,
    RunResult,
    StatusResponse,
    TextRequest,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

log.info("--- Server Startup ---")
log.info("API key present: %s", settings.has_api_key)

# Chosen once; every request shares it.
provider = select_provider(settings)

app = FastAPI(
    title="Infographic Pipeline",
    description="PDF or text in, one generated infographic out",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_provider() -> Provider:
    return provider


ProviderDep = Annotated[Provider, Depends(get_provider)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


@app.exception_handler(PipelineError)
def pipeline_error_handler(request: Request, exc: PipelineError):
    log.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _read_upload(pdf: UploadFile, settings: Settings) -> SourceDocument:
    # Starlette has already spooled the body; this only caps what is copied into memory.
    data = pdf.file.read(settings.max_upload_bytes + 1)
    return SourceDocument.from_upload(data, pdf.content_type, pdf.filename)


# ── Health / status ───────────────────────────────────────────────────

@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/status", response_model=StatusResponse)
def status(provider: ProviderDep):
    flags = provider.status()
    return StatusResponse(
        llm=flags["llm"],
        image=flags["image"],
        mode="live" if provider.live else "fallback",
    )


# ── Single stages ─────────────────────────────────────────────────────

@app.post("/api/upload", response_model=ExtractResponse)
def upload(settings: SettingsDep, pdf: Optional[UploadFile] = File(None)):
    if pdf is None:
        raise ValidationError("No file uploaded")

    extracted = extract(_read_upload(pdf, settings), settings)
    return ExtractResponse(text=extracted.text, pages=extracted.page_count, warnings=list(extracted.warnings))


@app.post("/api/process-text", response_model=ExtractResponse)
def process_text(request: TextRequest, settings: SettingsDep):
    if request.text is None:
        raise ValidationError("Missing text")

    extracted = extract(SourceDocument.from_text(request.text), settings)
    return ExtractResponse(text=extracted.text, pages=extracted.page_count, warnings=list(extracted.warnings))


@app.post("/api/generate-prompt", response_model=PromptResponse)
def generate_prompt(request: PromptRequest, provider: ProviderDep, settings: SettingsDep):
    directive = synthesize(
        request.text or "",
        request.model_dump(exclude={"text"}),
        provider,
        settings,
    )
    return PromptResponse(
        prompt=directive.text,
        origin=directive.origin,
        truncated=directive.source_truncated,
        fallback=directive.is_fallback,
    )


@app.post("/api/generate-infographic", response_model=InfographicResponse)
def generate_infographic(request: InfographicRequest, provider: ProviderDep):
    artifact = generate(request.prompt or "", provider)
    return InfographicResponse(imageUrl=artifact.url, fallback=artifact.is_fallback)


# ── Full run ──────────────────────────────────────────────────────────

@app.post("/api/infographic", response_model=RunResult)
def infographic(
    provider: ProviderDep,
    settings: SettingsDep,
    pdf: Optional[UploadFile] = File(None),
    text: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    audience: Optional[str] = Form(None),
    focus: Optional[str] = Form(None),
    terms: Optional[str] = Form(None),
    styleNotes: Optional[str] = Form(None),
):
    if pdf is not None and text is not None:
        raise ValidationError("Provide either a PDF or text, not both")
    if pdf is not None:
        source = _read_upload(pdf, settings)
    elif text is not None:
        source = SourceDocument.from_text(text)
    else:
        raise ValidationError("No file uploaded")

    # Fields the form leaves out take the wizard's defaults.
    options = PresentationOptions().model_dump()
    submitted = {"language": language, "audience": audience, "focus": focus, "terms": terms, "style_notes": styleNotes}
    options.update({k: v for k, v in submitted.items() if v is not None})

    run = handle_request(source, options, provider, settings)
    result = run.to_result()
    if run.stage is Stage.FAILED:
        return JSONResponse(status_code=run.error.status_code, content=result.model_dump(mode="json"))
    return result


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
