"""
Application Module
==================
Core application controller and business logic.

Key Components:
    - ReadingController: Central business logic coordinator
    - BookProjection: Derived state of a book after each load
    - AppConfig: Application configuration
"""

from .config import AppConfig
from .controller import BookProjection, ReadingController
from .events import (
    AppEvent,
    EventType,
    LogEvent,
    ProgressEvent,
    StateEvent,
)

__all__ = [
    "AppConfig",
    "BookProjection",
    "ReadingController",
    "AppEvent",
    "EventType",
    "LogEvent",
    "ProgressEvent",
    "StateEvent",
]
