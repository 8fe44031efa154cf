from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from allscreenshots_cli.app.core.errors import DisplayError, FileWriteError
from allscreenshots_cli.app.core.inputs import extract_domain
from allscreenshots_cli.app.display.terminal import ImageDisplay, image_dimensions

logger = logging.getLogger(__name__)


class ResultMaterializer:
    """Writes capture results to disk and hands them to the image display."""

    def __init__(self, display: Optional[ImageDisplay] = None):
        self.display = display

    async def save(self, path: Path, data: bytes) -> Path:
        path = Path(path)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as exc:
            raise FileWriteError(f"{path}: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(data), path)
        return path

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def show(self, data: bytes) -> bool:
        """Display ``data``; failures are logged and reported, never raised."""
        if self.display is None:
            return False
        try:
            self.display.display_bytes(data)
        except DisplayError as exc:
            logger.warning("Could not display image: %s", exc)
            return False
        return True

    @staticmethod
    def dimensions(data: bytes) -> Optional[Tuple[int, int]]:
        return image_dimensions(data)

    @staticmethod
    def batch_path(output_dir: Path, url: str, index: int, suffix: str) -> Path:
        filename = f"{index + 1:03d}_{extract_domain(url)}.{suffix}"
        return Path(output_dir) / filename

    @staticmethod
    def watch_path(output_dir: Path, url: str, suffix: str, now: Optional[datetime] = None) -> Path:
        timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        filename = f"{extract_domain(url)}_{timestamp}.{suffix}"
        return Path(output_dir) / filename
