"""Time resolution pipeline.

- formats: the 7 Discord timestamp formats, markup rendering and detection
- date_parser: deterministic, forward-biased natural-language parsing
- normalizer: language-model intent normalization (optional)
- preferences: format usage histogram
- orchestrator: the single-shot pipeline shared by the service and the desktop session
- session: debounce and supersession for one UI surface
"""

from tsparse.resolution.formats import FORMATS, detect_existing, preview, render
from tsparse.resolution.orchestrator import (
    InputSource,
    ResolutionMethod,
    ResolutionState,
    ResolvedTimestamp,
    Resolver,
)
from tsparse.resolution.session import ResolutionSession

__all__ = [
    "FORMATS",
    "InputSource",
    "ResolutionMethod",
    "ResolutionSession",
    "ResolutionState",
    "ResolvedTimestamp",
    "Resolver",
    "detect_existing",
    "preview",
    "render",
]
