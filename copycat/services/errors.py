"""
Exceptions raised by the generation services and pipeline.

Malformed aspect ratios, unknown copy modes and over-long prompts are not
errors: those are resolved by fallbacks in the pure helpers.
"""

from typing import Optional


class InvalidCanvasError(ValueError):
    """Mask canvas with a non-positive width or height."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        super().__init__(f"Invalid canvas size {width}x{height}: both dimensions must be > 0")


class ExternalCallError(Exception):
    """
    Failure of an outbound call: non-2xx response, timeout, network error,
    or a response missing an expected field.
    """

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.message = message
        self.status_code = status_code
        prefix = f"{service} error"
        if status_code is not None:
            prefix = f"{service} error ({status_code})"
        super().__init__(f"{prefix}: {message}")


class AttemptStateError(RuntimeError):
    """A generation attempt was moved to a terminal state twice."""


class GenerationFailedError(Exception):
    """Terminal failure of one generation attempt."""

    def __init__(self, attempt_id: Optional[str], message: str, stage: Optional[str] = None):
        self.attempt_id = attempt_id
        self.message = message
        self.stage = stage
        super().__init__(f"Creative generation failed: {message}")
