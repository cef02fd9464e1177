"""Media-to-text pipeline around the engine executable.

The InvocationDriver is the primary entry point for transcription. It
makes sure the engine is ready, extracts audio, runs the engine, finds
the transcript it wrote and removes every temporary file.
"""

from __future__ import annotations

import shutil
import subprocess
import time
from collections.abc import Callable
from pathlib import Path
from types import TracebackType

from vidscribe.config.paths import default_temp_dir
from vidscribe.config.schema import VidscribeConfig
from vidscribe.core import binary as binaries
from vidscribe.core.acquisition import AcquisitionManager
from vidscribe.core.media import extract_audio, is_audio_file, resolve_ffmpeg
from vidscribe.exceptions import EngineInvocationError, OutputNotFoundError, TranscriptionError
from vidscribe.util.logging import get_logger
from vidscribe.util.process import run_command, tail
from vidscribe.util.types import TranscriptionResult

logger = get_logger(__name__)


class TranscriptionJob:
    """Temporary files for one transcription, removed on exit.

    Use as a context manager; every file the job created or recovered is
    deleted when the block exits, whether or not it raised.

    Args:
        source_media_path: Media file to transcribe.
        temp_dir: Scratch directory.
        timestamp_ms: Uniquifier for file names.
    """

    def __init__(self, source_media_path: Path, temp_dir: Path, timestamp_ms: int) -> None:
        self.source_media_path = source_media_path
        self.is_audio_already = is_audio_file(source_media_path)
        self.temp_dir = temp_dir
        self.stem = source_media_path.stem
        self.timestamp_ms = timestamp_ms
        self.audio_name = f"{self.stem}-{timestamp_ms}.wav"
        self.temp_audio_path = temp_dir / self.audio_name
        self.temp_output_path = temp_dir / f"{self.audio_name}.txt"
        self.result_text: str | None = None
        self._recovered_from: Path | None = None

    @property
    def output_prefix(self) -> Path:
        """Value passed to the engine's ``-of`` flag."""
        return self.temp_dir / self.audio_name

    def output_candidates(self) -> list[Path]:
        """Names other engine versions have used for the transcript, in order."""
        names = [
            f"{self.temp_audio_path.name}.txt",
            f"{self.stem}-{self.timestamp_ms}.wav.txt",
            f"{self.stem}.txt",
            f"{self.stem}.wav.txt",
            "transcript.txt",
        ]
        return [self.temp_dir / name for name in dict.fromkeys(names)]

    def recover_output(self) -> Path:
        """Return the transcript path, copying a fallback into place if needed.

        Raises:
            OutputNotFoundError: If no candidate file exists.
        """
        if self.temp_output_path.is_file():
            return self.temp_output_path

        logger.warning("Expected output file not found: %s", self.temp_output_path)
        try:
            logger.info("Files in temp directory: %s", sorted(p.name for p in self.temp_dir.iterdir()))
        except OSError as exc:
            logger.debug("Could not list %s: %s", self.temp_dir, exc)

        for candidate in self.output_candidates():
            if candidate.is_file():
                logger.info("Found alternative output at %s", candidate)
                shutil.copyfile(candidate, self.temp_output_path)
                self._recovered_from = candidate
                return self.temp_output_path
        raise OutputNotFoundError("Transcription completed but output file not found")

    def cleanup(self) -> None:
        """Delete temp files. Failures are logged, never raised."""
        for path in (self.temp_output_path, self.temp_audio_path, self._recovered_from):
            if path is None:
                continue
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Error cleaning up %s: %s", path, exc)

    def __enter__(self) -> TranscriptionJob:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()


class InvocationDriver:
    """Runs media files through ffmpeg and the engine.

    Args:
        config: Application configuration.
        acquisition: Provides paths, the binary and the search context.
        ensure_ready: Readiness hook; defaults to ``acquisition.ensure_ready``.
        clock: Time source in seconds, used for unique file names.
    """

    def __init__(
        self,
        config: VidscribeConfig,
        acquisition: AcquisitionManager,
        *,
        ensure_ready: Callable[[], object] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._acquisition = acquisition
        self._ensure_ready = ensure_ready or acquisition.ensure_ready
        self._clock = clock

    @property
    def temp_dir(self) -> Path:
        return self._config.paths.temp_dir or default_temp_dir()

    def transcribe(self, media_path: Path) -> TranscriptionResult:
        """Transcribe a video or audio file.

        Args:
            media_path: Path to the media file.

        Returns:
            Transcript text and the model file name that produced it.

        Raises:
            TranscriptionError: If the file is missing or any pipeline step
                fails, including filesystem errors in the scratch directory.
            AcquisitionError: If the engine cannot be made ready.
        """
        self._ensure_ready()

        media_path = media_path.expanduser()
        if not media_path.is_file():
            raise TranscriptionError(f"Media file not found: {media_path}")

        job = TranscriptionJob(media_path, self.temp_dir, int(self._clock() * 1000))
        logger.info(
            "Processing %s file: %s",
            "audio" if job.is_audio_already else "video",
            media_path,
        )
        try:
            with job:
                ffmpeg = resolve_ffmpeg(self._acquisition.env, self._acquisition.search)
                extract_audio(
                    media_path,
                    job.temp_audio_path,
                    ffmpeg,
                    timeout=self._config.transcription.extract_timeout_seconds,
                )
                self._run_engine(job)
                transcript_path = job.recover_output()
                # The engine can split a multibyte character across tokens.
                job.result_text = transcript_path.read_text(encoding="utf-8", errors="replace")
                logger.info("Transcription length: %d characters", len(job.result_text))
        except (OSError, ValueError) as exc:
            raise TranscriptionError(f"Could not process {media_path.name}: {exc}") from exc

        return TranscriptionResult(
            transcript=job.result_text,
            model=self._config.engine.model_filename,
        )

    def engine_command(self, job: TranscriptionJob) -> list[str | Path]:
        """Build the engine argv, preferring the launcher script."""
        acquisition = self._acquisition
        platform = acquisition.env.platform
        descriptor = acquisition.binary
        program: Path = descriptor.path

        if self._config.transcription.use_launcher:
            launcher = binaries.launcher_path(acquisition.paths.engine_dir, platform)
            if not launcher.is_file() and descriptor.path.is_file():
                try:
                    binaries.write_launcher(acquisition.paths.engine_dir, descriptor, platform)
                except OSError as exc:
                    logger.warning("Failed to create launcher script: %s", exc)
            if launcher.is_file():
                program = launcher
        logger.info("Using launcher script: %s", "yes" if program != descriptor.path else "no")

        return [
            program,
            "-m", acquisition.paths.model_path.resolve(),
            "-f", job.temp_audio_path.resolve(),
            "-of", job.output_prefix.resolve(),
            "-otxt",
        ]

    def _run_engine(self, job: TranscriptionJob) -> None:
        acquisition = self._acquisition
        binary_dir = acquisition.binary.path.parent
        args = self.engine_command(job)
        env = binaries.library_env(binary_dir, acquisition.env.platform)
        timeout = self._config.transcription.engine_timeout_seconds

        try:
            result = run_command(args, cwd=binary_dir, env=env, timeout=timeout)
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise EngineInvocationError(f"Transcription process failed: {exc}") from exc
        if result.stderr:
            logger.debug("Engine stderr: %s", tail(result.stderr))
        if result.returncode != 0:
            raise EngineInvocationError(
                f"Transcription process failed (exit {result.returncode}):\n{tail(result.stderr)}"
            )
