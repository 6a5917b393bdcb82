"""Slack Jira bot package initialisation."""

from .background import TaskRunner  # noqa: F401
from .config import AppSettings, get_settings  # noqa: F401
from .handlers import HandlerResult, MultiHandler  # noqa: F401
from .logging_config import configure_logging  # noqa: F401

__all__ = [
    "AppSettings",
    "get_settings",
    "TaskRunner",
    "HandlerResult",
    "MultiHandler",
    "configure_logging",
]
