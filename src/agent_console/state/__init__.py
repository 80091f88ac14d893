"""Session, step and browser state mirrored from the agent backend."""

from .models import BrowserState, Session, SessionState, Step, StepPatch
from .timeline import DisplayStep, display_status, display_timeline, reconcile

__all__ = [
    "BrowserState",
    "DisplayStep",
    "Session",
    "SessionState",
    "Step",
    "StepPatch",
    "display_status",
    "display_timeline",
    "reconcile",
]
