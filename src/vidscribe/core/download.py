"""Model and prebuilt-binary downloads.

Engine and model network traffic lives here; ffmpeg fetching is left to
static-ffmpeg. HTTP goes through httpx with redirects handled by hand so
the redirect limit and error messages stay under our control.
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import tempfile
import time
import zipfile
from collections.abc import Callable
from pathlib import Path

import httpx
from huggingface_hub import hf_hub_url

from vidscribe.config.paths import binary_name
from vidscribe.config.schema import DownloadConfig
from vidscribe.core.binary import VARIANT_ORDER, iter_walk, make_executable
from vidscribe.exceptions import DownloadError
from vidscribe.util.logging import get_logger
from vidscribe.util.process import run_command, tail
from vidscribe.util.types import BinaryDescriptor, EnvironmentDescriptor, NameVariant, Platform

logger = get_logger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 307, 308})
CHUNK_SIZE = 1 << 18  # 256 KiB
DOWNLOAD_SCRIPT = Path("models") / "download-ggml-model.py"

ProgressCallback = Callable[[int, int], None]


def model_url(model_repo: str, model_filename: str) -> str:
    """Resolve URL for a ggml model file on the HuggingFace Hub."""
    return hf_hub_url(model_repo, filename=model_filename)


def _stream_to_file(
    client: httpx.Client,
    url: str,
    dest: Path,
    *,
    max_redirects: int,
    progress_callback: ProgressCallback | None = None,
) -> None:
    redirects = 0
    current = httpx.URL(url)
    while True:
        logger.info("Downloading from: %s", current)
        with client.stream("GET", current) as response:
            if response.status_code in REDIRECT_STATUSES:
                if redirects >= max_redirects:
                    raise DownloadError(f"Too many redirects ({redirects})")
                location = response.headers.get("location")
                if not location:
                    raise DownloadError("Redirect with no location header")
                redirects += 1
                current = current.join(location)
                logger.info("Following redirect to: %s", current)
                continue

            if response.status_code != 200:
                raise DownloadError(
                    f"Download failed with status code: {response.status_code}"
                )

            total = int(response.headers.get("Content-Length", 0) or 0)
            done = 0
            with open(dest, "wb") as handle:
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    handle.write(chunk)
                    done += len(chunk)
                    if progress_callback is not None:
                        progress_callback(done, total)
            return


def download_direct(
    url: str,
    dest: Path,
    *,
    max_redirects: int = 5,
    min_size: int = 1_000_000,
    user_agent: str = "vidscribe",
    timeout: float = 60.0,
    transport: httpx.BaseTransport | None = None,
    progress_callback: ProgressCallback | None = None,
) -> Path:
    """Download *url* to *dest* over HTTP(S), following a bounded number of redirects.

    The body is streamed to a temporary file beside *dest* and moved into
    place only after it passes the size check, so a truncated or error
    response never replaces a good model file.

    Args:
        url: Source URL.
        dest: Final location.
        max_redirects: Redirect hops allowed before giving up.
        min_size: Smallest acceptable file size in bytes.
        user_agent: User-Agent header.
        timeout: Network timeout in seconds.
        transport: Custom httpx transport (tests inject a MockTransport).
        progress_callback: Optional callback(downloaded_bytes, total_bytes).

    Returns:
        *dest*.

    Raises:
        DownloadError: On HTTP errors, redirect problems, or an undersized file.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    temp_path = dest.with_name(f"{dest.name}.{int(time.time() * 1000)}.part")
    try:
        try:
            with httpx.Client(
                follow_redirects=False,
                headers={"User-Agent": user_agent},
                timeout=timeout,
                transport=transport,
            ) as client:
                _stream_to_file(
                    client,
                    url,
                    temp_path,
                    max_redirects=max_redirects,
                    progress_callback=progress_callback,
                )
        except httpx.HTTPError as exc:
            raise DownloadError(f"Request to {url} failed: {exc}") from exc

        size = temp_path.stat().st_size if temp_path.is_file() else 0
        if size < min_size:
            raise DownloadError("Downloaded file is too small or doesn't exist")
        os.replace(temp_path, dest)
    finally:
        temp_path.unlink(missing_ok=True)

    logger.info("Downloaded %s (%d bytes)", dest.name, dest.stat().st_size)
    return dest


def download_with_script(
    engine_dir: Path,
    model: str,
    model_filename: str,
    dest: Path,
    *,
    python_cmd: str,
    timeout: float | None = None,
) -> Path:
    """Fetch the model with the engine's own download script.

    Runs ``<python> models/download-ggml-model.py <model>`` inside the
    checkout and copies the result to *dest*.

    Raises:
        DownloadError: If the script is missing, fails, or produces nothing.
    """
    logger.info("Trying download via the engine's download script")
    if not engine_dir.is_dir():
        raise DownloadError(f"Engine directory not found at {engine_dir}")
    script = engine_dir / DOWNLOAD_SCRIPT
    if not script.is_file():
        raise DownloadError(f"Download script not found at {script}")

    try:
        result = run_command(
            [python_cmd, DOWNLOAD_SCRIPT.as_posix(), model],
            cwd=engine_dir,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise DownloadError(f"Download script could not run: {exc}") from exc
    if result.returncode != 0:
        raise DownloadError(
            f"Download script failed (exit {result.returncode}):\n{tail(result.stderr)}"
        )
    if result.stderr.strip():
        logger.warning("Download script warnings: %s", tail(result.stderr, 5))

    downloaded = engine_dir / "models" / model_filename
    if not downloaded.is_file():
        raise DownloadError("Model download completed but file not found")
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(downloaded, dest)
    return dest


def download_model(
    dest: Path,
    *,
    model: str,
    model_filename: str,
    url: str,
    engine_dir: Path,
    settings: DownloadConfig | None = None,
    python_cmd: str = "python3",
    transport: httpx.BaseTransport | None = None,
    sleep: Callable[[float], None] | None = None,
    progress_callback: ProgressCallback | None = None,
) -> Path:
    """Download the model with retries.

    Attempt 1 is a direct HTTP download; later attempts use the engine's
    download script. Attempts are separated by a linear backoff.

    Raises:
        DownloadError: After every attempt has failed. ``attempts`` holds
            the number of attempts made.
    """
    settings = settings or DownloadConfig()
    sleep = sleep or time.sleep
    attempts = settings.max_attempts
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        logger.info("Download attempt %d/%d", attempt, attempts)
        try:
            if attempt == 1:
                download_direct(
                    url,
                    dest,
                    max_redirects=settings.max_redirects,
                    min_size=settings.min_size_bytes,
                    user_agent=settings.user_agent,
                    transport=transport,
                    progress_callback=progress_callback,
                )
            else:
                download_with_script(
                    engine_dir, model, model_filename, dest, python_cmd=python_cmd
                )
            logger.info("Model downloaded successfully")
            return dest
        except (DownloadError, OSError) as exc:
            last_error = exc
            logger.error("Download attempt %d failed: %s", attempt, exc)
            if attempt < attempts:
                delay = attempt * settings.backoff_seconds
                logger.info("Waiting %.1fs before next attempt", delay)
                sleep(delay)

    raise DownloadError(
        f"Failed to download model after {attempts} attempts: {last_error}",
        attempts=attempts,
    )


def release_asset_pattern(env: EnvironmentDescriptor) -> re.Pattern[str]:
    """Regex matching release asset names for this platform and architecture."""
    platform_name = {Platform.MAC: "macos", Platform.WIN: "win32", Platform.LINUX: "linux"}[
        env.platform
    ]
    return re.compile(
        rf"whisper.*{re.escape(platform_name)}.*{re.escape(env.architecture)}",
        re.IGNORECASE,
    )


def fetch_prebuilt_binary(
    api_url: str,
    env: EnvironmentDescriptor,
    engine_dir: Path,
    *,
    user_agent: str = "vidscribe",
    timeout: float = 60.0,
    max_depth: int = 6,
    transport: httpx.BaseTransport | None = None,
) -> BinaryDescriptor:
    """Install a prebuilt engine binary from the latest GitHub release.

    Raises:
        DownloadError: If no asset matches or the download fails. Callers
            treat this as a signal to build from source.
    """
    pattern = release_asset_pattern(env)
    try:
        with httpx.Client(
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            timeout=timeout,
            transport=transport,
        ) as client:
            response = client.get(api_url)
            if response.status_code != 200:
                raise DownloadError(
                    f"API request failed with status code: {response.status_code}"
                )
            assets = response.json().get("assets", [])
            asset = next((a for a in assets if pattern.search(a.get("name", ""))), None)
            if asset is None:
                raise DownloadError(
                    f"No prebuilt binary for {env.platform.value} {env.architecture}"
                )

            logger.info("Downloading prebuilt asset %s", asset["name"])
            with tempfile.TemporaryDirectory(prefix="vidscribe-") as tmp:
                archive = Path(tmp) / asset["name"]
                with client.stream("GET", asset["browser_download_url"]) as download:
                    if download.status_code != 200:
                        raise DownloadError(
                            f"Download failed with status code: {download.status_code}"
                        )
                    with open(archive, "wb") as handle:
                        for chunk in download.iter_bytes(CHUNK_SIZE):
                            handle.write(chunk)
                return _install_asset(archive, env.platform, engine_dir, max_depth)
    except httpx.HTTPError as exc:
        raise DownloadError(f"Prebuilt download failed: {exc}") from exc
    except (ValueError, KeyError) as exc:
        raise DownloadError(f"Unexpected release metadata: {exc}") from exc


def _install_asset(
    archive: Path,
    platform: Platform,
    engine_dir: Path,
    max_depth: int,
) -> BinaryDescriptor:
    engine_dir.mkdir(parents=True, exist_ok=True)
    if not zipfile.is_zipfile(archive):
        target = engine_dir / binary_name(NameVariant.LEGACY, platform)
        shutil.copyfile(archive, target)
        make_executable(target, platform)
        return BinaryDescriptor(target, NameVariant.LEGACY)

    extract_dir = archive.parent / "extracted"
    with zipfile.ZipFile(archive) as bundle:
        bundle.extractall(extract_dir)
    for variant in VARIANT_ORDER:
        name = binary_name(variant, platform)
        match = next(iter_walk(extract_dir, [name], max_depth), None)
        if match is None:
            continue
        # Shared libraries ship beside the executable in release archives.
        for sibling in match.parent.iterdir():
            if sibling.is_file():
                shutil.copy2(sibling, engine_dir / sibling.name)
        target = engine_dir / name
        make_executable(target, platform)
        return BinaryDescriptor(target, variant)
    raise DownloadError(f"Archive {archive.name} does not contain an engine binary")
