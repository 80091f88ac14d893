"""Saved task payloads that can be started without a chat round trip."""

from .loader import TaskLoadError, TaskLoader, load_tasks
from .models import StartTaskData, TaskPreset

__all__ = ["StartTaskData", "TaskLoadError", "TaskLoader", "TaskPreset", "load_tasks"]
