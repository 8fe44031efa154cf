from __future__ import annotations

import io
from typing import Optional, Protocol, Tuple

from PIL import Image, UnidentifiedImageError
from rich.console import Console
from rich.style import Style
from rich.text import Text

from allscreenshots_cli.app.core.errors import DisplayError

UPPER_HALF_BLOCK = "▀"


class ImageDisplay(Protocol):
    def display_bytes(self, data: bytes) -> None: ...


def decode_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DisplayError(f"Failed to decode image: {exc}") from exc
    return image


def image_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return None


class TerminalImage:
    """Render an image into the terminal with truecolor half-block cells.

    Each character cell shows two vertical pixels: the foreground colour paints
    the upper half block, the background colour the lower half.
    """

    def __init__(self, width: int = 80, height: int = 24, console: Optional[Console] = None):
        self.width = max(1, width)
        self.height = max(1, height)
        self.console = console or Console()

    def display_bytes(self, data: bytes) -> None:
        self.display_image(decode_image(data))

    def display_image(self, image: Image.Image) -> None:
        try:
            self.console.print(self.render(image))
        except OSError as exc:
            raise DisplayError(f"Failed to display image: {exc}") from exc

    def render(self, image: Image.Image) -> Text:
        rgb = image.convert("RGB")
        cols, rows = self._fit(rgb.size)
        pixels = rgb.resize((cols, rows * 2), Image.Resampling.LANCZOS).load()

        text = Text(no_wrap=True, overflow="crop")
        for row in range(rows):
            for col in range(cols):
                top = pixels[col, row * 2]
                bottom = pixels[col, row * 2 + 1]
                text.append(
                    UPPER_HALF_BLOCK,
                    Style(color=f"rgb({top[0]},{top[1]},{top[2]})", bgcolor=f"rgb({bottom[0]},{bottom[1]},{bottom[2]})"),
                )
            if row < rows - 1:
                text.append("\n")
        return text

    def _fit(self, size: Tuple[int, int]) -> Tuple[int, int]:
        width, height = size
        max_cols = self.width
        max_rows = self.height
        # one cell is two pixels tall
        scale = min(max_cols / width, (max_rows * 2) / height)
        cols = max(1, int(width * scale))
        rows = max(1, int(height * scale / 2))
        return cols, rows
