import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


async def probe_duration(file_path: Path, ffprobe_path: str = "ffprobe", timeout: float = 30.0) -> float | None:
    """
    Duration of a media file in seconds, read from the container with ffprobe.
    Returns None if ffprobe is missing, fails, or prints something unparsable.
    """
    cmd = [
        ffprobe_path,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(file_path),
    ]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.warning(f"ffprobe unavailable ({ffprobe_path}): {e}")
        return None

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.warning(f"ffprobe timed out (>{timeout:.0f}s) on {file_path.name}")
        return None

    if proc.returncode != 0:
        logger.warning(f"ffprobe failed on {file_path.name}: {stderr.decode(errors='replace').strip()}")
        return None

    try:
        duration = round(float(stdout.decode().strip()), 2)
    except ValueError:
        logger.warning(f"Invalid duration value from ffprobe for {file_path.name}: {stdout!r}")
        return None

    logger.info(f"Media duration: {duration:.2f}s ({file_path.name})")
    return duration
