"""Dictionary-shaped request/response surface for a desktop shell.

Keys follow the shell's camelCase conventions; everything else in
vidscribe uses Python names.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from vidscribe.core.orchestrator import Orchestrator, OrchestratorEvent
from vidscribe.exceptions import VidscribeError
from vidscribe.util.logging import get_logger
from vidscribe.util.types import ToolPaths

logger = get_logger(__name__)

Picker = Callable[[], "str | Path | None"]
Notifier = Callable[[str, dict[str, Any]], None]


class ShellBridge:
    """Adapts the Orchestrator to the shell's message contract.

    Args:
        orchestrator: The facade to delegate to.
        picker: Opens a file chooser and returns the selection, if any.
        notify: Receives ``(channel, payload)`` push notifications.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        *,
        picker: Picker | None = None,
        notify: Notifier | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._picker = picker
        if notify is not None:
            orchestrator.subscribe(lambda event: _forward(notify, event))

    def select_media(self) -> str | None:
        if self._picker is None:
            return None
        selected = self._picker()
        return str(selected) if selected else None

    def check_status(self) -> dict[str, Any]:
        return self._orchestrator.status().to_dict()

    def initialize_with_options(self, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Initialize with ``{"skipDependencyCheck"?, "paths"?: {cmake, make, python}}``."""
        options = options or {}
        raw_paths = options.get("paths") or {}
        tool_paths = ToolPaths(
            cmake=raw_paths.get("cmake") or None,
            make=raw_paths.get("make") or None,
            python=raw_paths.get("python") or None,
        )
        state = self._orchestrator.initialize(
            bool(options.get("forceDownload", False)),
            skip_dependency_check=bool(options.get("skipDependencyCheck", False)),
            tool_paths=tool_paths,
        )
        return state.to_dict()

    def transcribe(self, path: str | Path) -> dict[str, Any]:
        """Return ``{transcript, model}`` or ``{error}``."""
        try:
            return self._orchestrator.transcribe(Path(path)).to_dict()
        except VidscribeError as exc:
            logger.error("Transcription request failed: %s", exc)
            return {"error": str(exc)}


def _forward(notify: Notifier, event: OrchestratorEvent) -> None:
    notify(event.kind, event.payload)
