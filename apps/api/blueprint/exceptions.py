from __future__ import annotations

from typing import Optional


class BlueprintError(Exception):
    """Base class for errors raised by the content pipeline."""


class InvalidBlueprintError(BlueprintError):
    """The submitted topic tree cannot be processed (e.g. blank root name)."""


class SourceResolutionError(BlueprintError):
    """
    The search backend was unreachable or answered with a non-success status.

    Never retried: the owning topic records the placeholder instead.
    """

    def __init__(self, message: str, topic: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.topic = topic
        self.status_code = status_code


class SynthesisBackendError(BlueprintError):
    """One generation variant failed or returned a rejected result."""

    def __init__(self, message: str, variant: str):
        super().__init__(message)
        self.message = message
        self.variant = variant
