"""Event dispatcher: pure reducers from inbound messages to session state."""

from __future__ import annotations

from typing import Callable

from .protocol.messages import (
    InboundMessage,
    InterventionStatus,
    LiveUrl,
    LoadingChanged,
    ScreenshotFrame,
    SessionCreated,
    StepUpdate,
    TaskComplete,
    TaskError,
    TaskStarted,
    UrlChanged,
)
from .state.models import Session, SessionState
from .state.timeline import reconcile

Reducer = Callable[[SessionState, InboundMessage, int], SessionState]


def _update_session(state: SessionState, **changes) -> SessionState:
    # Session-scoped messages before the first session_created have nothing to update.
    if state.session is None:
        return state
    return state.model_copy(update={"session": state.session.model_copy(update=changes)})


def _update_browser(state: SessionState, **changes) -> SessionState:
    return state.model_copy(update={"browser": state.browser.model_copy(update=changes)})


def _session_created(state: SessionState, message: SessionCreated, epoch: int) -> SessionState:
    return state.model_copy(
        update={
            "session": Session(id=message.session_id),
            "epoch": epoch,
            "error_message": None,
        }
    )


def _task_started(state: SessionState, message: TaskStarted, epoch: int) -> SessionState:
    state = _update_session(
        state,
        status="running",
        task_name=message.task_name,
        task_summary=message.task_summary,
        definition_of_done=message.definition_of_done,
    )
    return state.model_copy(update={"steps": tuple(message.steps), "error_message": None})


def _step_update(state: SessionState, message: StepUpdate, epoch: int) -> SessionState:
    state = state.model_copy(update={"steps": reconcile(state.steps, message.step)})
    if message.live_url and message.live_url != state.browser.live_url:
        state = _update_browser(state, live_url=message.live_url)
    return state


def _screenshot(state: SessionState, message: ScreenshotFrame, epoch: int) -> SessionState:
    return _update_browser(
        state,
        screenshot=message.image,
        url=message.url or state.browser.url,
        is_loading=False,
    )


def _url_changed(state: SessionState, message: UrlChanged, epoch: int) -> SessionState:
    return _update_browser(state, url=message.url)


def _loading(state: SessionState, message: LoadingChanged, epoch: int) -> SessionState:
    return _update_browser(state, is_loading=message.is_loading)


def _intervention_status(state: SessionState, message: InterventionStatus, epoch: int) -> SessionState:
    return _update_session(state, is_user_controlled=message.is_user_controlled)


def _live_url(state: SessionState, message: LiveUrl, epoch: int) -> SessionState:
    return _update_browser(state, live_url=message.live_url)


def _task_complete(state: SessionState, message: TaskComplete, epoch: int) -> SessionState:
    return _update_session(state, status="waiting")


def _task_error(state: SessionState, message: TaskError, epoch: int) -> SessionState:
    if state.session is None:
        return state
    state = _update_session(state, status="error")
    return state.model_copy(update={"error_message": message.message})


REDUCERS: dict[str, Reducer] = {
    "session_created": _session_created,
    "task_started": _task_started,
    "step_update": _step_update,
    "screenshot": _screenshot,
    "url_changed": _url_changed,
    "loading": _loading,
    "intervention_status": _intervention_status,
    "live_url": _live_url,
    "task_complete": _task_complete,
    "task_error": _task_error,
}


def is_stale(state: SessionState, message: InboundMessage, epoch: int) -> bool:
    """Return True when ``message`` belongs to a connection or session that was superseded."""

    if epoch < state.epoch:
        return True
    if isinstance(message, SessionCreated) or state.session is None:
        return False
    return message.session_id is not None and message.session_id != state.session.id


def apply_message(state: SessionState, message: InboundMessage | None, epoch: int = 0) -> SessionState:
    """Return the state that results from applying ``message``.

    Unknown message types and stale messages leave ``state`` untouched.
    """

    if message is None or is_stale(state, message, epoch):
        return state
    reducer = REDUCERS.get(message.type)
    if reducer is None:
        return state
    return reducer(state, message, epoch)


def mark_complete(state: SessionState) -> SessionState:
    """Terminal transition after the operator confirms the outcome."""

    return _update_session(state, status="complete")


__all__ = ["REDUCERS", "apply_message", "is_stale", "mark_complete"]
