
import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union, Mapping, Any

from change_modality.txt_to_image import generate
from config import Settings, get_settings
from errors import ExtractionError, PipelineError, UpstreamError
from extractor import ExtractedText, SourceDocument, extract
from llm import synthesize
from schemas import Artifact, GenerationDirective, PresentationOptions, RunResult

log = logging.getLogger(__name__)


class Stage(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    SYNTHESIZING = "synthesizing"
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"


# Forward-only. FAILED is reachable from every in-progress stage.
_NEXT = {
    Stage.IDLE: Stage.EXTRACTING,
    Stage.EXTRACTING: Stage.SYNTHESIZING,
    Stage.SYNTHESIZING: Stage.GENERATING,
    Stage.GENERATING: Stage.COMPLETE,
}

STATUS_MESSAGES = {
    Stage.SYNTHESIZING: "Generating infographic prompt...",
    Stage.GENERATING: "Creating infographic...",
    Stage.COMPLETE: "Completed!",
}


class PipelineRun:
    """
    One extract -> synthesize -> generate run.

    Ends either COMPLETE with exactly one artifact, or FAILED with exactly
    one error. Nothing is retried; a new run starts from a new instance.
    """

    def __init__(
        self,
        source: SourceDocument,
        options: Union[PresentationOptions, Mapping[str, Any]],
        provider,
        settings: Optional[Settings] = None,
        on_status: Optional[Callable[[Stage, str], None]] = None,
    ):
        self.source = source
        self.options = options
        self.provider = provider
        self.settings = settings or get_settings()
        self.on_status = on_status

        self.stage = Stage.IDLE
        self.status = ""
        self.error: Optional[PipelineError] = None
        self.failed_stage: Optional[Stage] = None
        self.history: List[Tuple[Stage, str]] = []

        self.extracted: Optional[ExtractedText] = None
        self.directive: Optional[GenerationDirective] = None
        self._artifact: Optional[Artifact] = None

    @property
    def artifact(self) -> Optional[Artifact]:
        if self.stage is not Stage.COMPLETE:
            return None
        return self._artifact

    def _enter(self, stage: Stage, status: str) -> None:
        if stage is not Stage.FAILED and _NEXT.get(self.stage) is not stage:
            raise RuntimeError(f"Illegal transition {self.stage.value} -> {stage.value}")

        self.stage = stage
        self.status = status
        self.history.append((stage, status))
        log.info("Pipeline stage %s: %s", stage.value, status)
        if self.on_status is not None:
            self.on_status(stage, status)

    def _fail(self, error: PipelineError) -> None:
        self.error = error
        self.failed_stage = self.stage
        log.error("Pipeline failed during %s: %s", self.failed_stage.value, error)
        self._enter(Stage.FAILED, f"An error occurred: {error}")

    def run(self) -> "PipelineRun":
        if self.stage is not Stage.IDLE:
            raise RuntimeError("A pipeline run can only be started once")

        extracting = "Uploading and analyzing PDF..." if self.source.is_binary else "Analyzing text..."
        try:
            self._enter(Stage.EXTRACTING, extracting)
            self.extracted = extract(self.source, self.settings)

            self._enter(Stage.SYNTHESIZING, STATUS_MESSAGES[Stage.SYNTHESIZING])
            self.directive = synthesize(self.extracted.text, self.options, self.provider, self.settings)

            self._enter(Stage.GENERATING, STATUS_MESSAGES[Stage.GENERATING])
            self._artifact = generate(self.directive, self.provider)
        except PipelineError as e:
            self._artifact = None
            self._fail(e)
            return self
        except Exception as e:
            log.exception("Unexpected error during %s", self.stage.value)
            wrap = ExtractionError if self.stage is Stage.EXTRACTING else UpstreamError
            self._artifact = None
            self._fail(wrap(f"Unexpected error during {self.stage.value}", detail=f"{type(e).__name__}: {e}"))
            return self

        self._enter(Stage.COMPLETE, STATUS_MESSAGES[Stage.COMPLETE])
        return self

    def to_result(self) -> RunResult:
        return RunResult(
            stage=self.stage.value,
            status=self.status,
            error=self.error.message if self.error else None,
            error_detail=self.error.detail if self.error else None,
            failed_stage=self.failed_stage.value if self.failed_stage else None,
            artifact=self.artifact,
            directive=self.directive,
            history=[status for _, status in self.history],
            warnings=list(self.extracted.warnings) if self.extracted else [],
        )


def handle_request(
    source: SourceDocument,
    options: Union[PresentationOptions, Mapping[str, Any]],
    provider,
    settings: Optional[Settings] = None,
) -> PipelineRun:
    return PipelineRun(source, options, provider, settings).run()
