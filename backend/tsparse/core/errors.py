from __future__ import annotations

"""Controlled errors for the resolution pipeline and its side channels.

Failure policy:
- Optional-enhancement stages (normalizer, preference store, usage log) raise
  these internally and absorb them at their own boundary.
- Only the terminal "could not understand" outcome reaches the user, and it is
  a result value, not an exception.
"""


class TsparseError(RuntimeError):
    """Base error; callers at stage boundaries catch and log it."""


class NormalizerError(TsparseError):
    """Raised when the language-model provider fails or returns an invalid payload."""


class StorageError(TsparseError):
    """Raised when the usage log or the format counter table cannot be read or written."""


class ResolutionCancelled(TsparseError):
    """Raised inside an attempt that a newer input has superseded."""
