"""Error taxonomy for the verification engine.

Per-case errors (decode, overlap, capture) are converted into error outcomes
at the evaluator/orchestrator boundary and never abort a run.
ConfigurationError is the only run-level failure.
"""

from __future__ import annotations


class VerificationError(Exception):
    """Base class for all engine errors."""


class DecodeError(VerificationError):
    """An image could not be decoded (missing, corrupt, unsupported, empty)."""


class NoOverlapError(VerificationError):
    """Two frames share no comparable region."""


class CaptureError(VerificationError):
    """The capture collaborator failed to produce an image."""

    def __init__(self, message: str, locator: str = ""):
        super().__init__(message)
        self.locator = locator


class ConfigurationError(VerificationError):
    """The run configuration is unusable. Fatal to the whole run."""
