"""Facade the shell talks to: readiness, transcription and notifications."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from vidscribe.config.schema import VidscribeConfig
from vidscribe.core.acquisition import AcquisitionManager
from vidscribe.core.transcriber import InvocationDriver
from vidscribe.exceptions import NotReadyError, TranscriptionError, VidscribeError
from vidscribe.util.logging import get_logger
from vidscribe.util.types import (
    EnvironmentDescriptor,
    ReadinessState,
    ToolPaths,
    TranscriptionResult,
)

logger = get_logger(__name__)

READINESS_CHANGED = "readiness-changed"
PROGRESS = "progress"
STARTED_MESSAGE = "Starting transcription process..."


@dataclass(frozen=True)
class OrchestratorEvent:
    """A push notification for the shell."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[OrchestratorEvent], None]


class Orchestrator:
    """Owns readiness state and serialises transcription jobs.

    Args:
        config: Application configuration.
        env: Environment snapshot injected by the composition root.
        acquisition: Optional acquisition manager (for testing).
        driver: Optional invocation driver (for testing).
    """

    def __init__(
        self,
        config: VidscribeConfig,
        env: EnvironmentDescriptor,
        *,
        acquisition: AcquisitionManager | None = None,
        driver: InvocationDriver | None = None,
    ) -> None:
        self._config = config
        self._acquisition = acquisition or AcquisitionManager(config, env)
        self._driver = driver or InvocationDriver(
            config, self._acquisition, ensure_ready=self._require_ready
        )
        self._state = ReadinessState()
        self._listeners: list[Listener] = []
        self._job_lock = threading.Lock()

    @property
    def acquisition(self) -> AcquisitionManager:
        return self._acquisition

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for events. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, payload: dict[str, Any]) -> None:
        event = OrchestratorEvent(kind, payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed for %s event", kind)

    def status(self) -> ReadinessState:
        """Last known readiness. Never probes anything."""
        return self._state

    def initialize(
        self,
        force_download: bool = False,
        *,
        skip_dependency_check: bool = False,
        tool_paths: ToolPaths | None = None,
    ) -> ReadinessState:
        """Acquire binary and model and publish the resulting readiness.

        Acquisition failures do not raise; they are returned as a FAILED
        state carrying the reason.
        """
        logger.info("Starting engine initialization")
        try:
            self._acquisition.ensure_ready(
                force_download,
                skip_dependency_check=skip_dependency_check,
                tool_paths=tool_paths,
            )
        except VidscribeError as exc:
            logger.error("Initialization failed: %s", exc)
            self._state = ReadinessState.failed(str(exc), exc.remediation)
        else:
            self._state = ReadinessState.ready()
        self._emit(READINESS_CHANGED, self._state.to_dict())
        return self._state

    def _require_ready(self) -> None:
        if self._state.is_ready:
            return
        state = self.initialize()
        if not state.is_ready:
            raise NotReadyError(
                f"Engine is not initialized: {state.reason}",
                remediation=state.remediation,
            )

    def transcribe(self, media_path: Path) -> TranscriptionResult:
        """Transcribe one file. Concurrent callers wait their turn.

        Raises:
            NotReadyError: If the engine cannot be initialized.
            TranscriptionError: If the pipeline fails; the cause is chained.
        """
        with self._job_lock:
            self._emit(PROGRESS, {"status": "started", "message": STARTED_MESSAGE})
            try:
                result = self._driver.transcribe(Path(media_path))
            except NotReadyError as exc:
                self._emit(PROGRESS, {"status": "error", "message": str(exc)})
                raise
            except VidscribeError as exc:
                message = f"Transcription failed: {exc}"
                self._emit(PROGRESS, {"status": "error", "message": message})
                raise TranscriptionError(message, remediation=exc.remediation) from exc
            except (OSError, ValueError) as exc:
                message = f"Transcription failed: {exc}"
                self._emit(PROGRESS, {"status": "error", "message": message})
                raise TranscriptionError(message) from exc
            self._emit(PROGRESS, {"status": "completed"})
            return result
