"""Base agent with common dependency wiring."""

from __future__ import annotations

from datadna.core.config import AppSettings


class BaseAgent:
    """Common base for all DataDNA engine components.

    Settings are injected at construction time; collaborators (stores,
    caches, reasoning service, writers) are added by subclasses as
    keyword-only arguments.
    """

    def __init__(self, *, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()
