"""
Error taxonomy shared by every stage.

All three kinds end a pipeline run the same way; they differ only in who is
at fault and in the HTTP status the API answers with.
"""
from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base class for anything that can stop a pipeline run."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class ValidationError(PipelineError):
    """Bad or missing input. The caller has to fix it, retrying won't help."""

    status_code = 400


class ExtractionError(PipelineError):
    """The input was accepted but could not be turned into text."""

    status_code = 422


class UpstreamError(PipelineError):
    """The language or image model failed, or answered with an unexpected shape."""

    status_code = 502
