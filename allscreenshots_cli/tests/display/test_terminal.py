import io

import pytest
from PIL import Image
from rich.console import Console

from allscreenshots_cli.app.core.errors import DisplayError
from allscreenshots_cli.app.display.terminal import UPPER_HALF_BLOCK, TerminalImage, decode_image, image_dimensions
from allscreenshots_cli.app.services.materializer import ResultMaterializer


def test_render_fits_image_into_half_block_cells(png_bytes):
    terminal = TerminalImage(width=10, height=10, console=Console(file=io.StringIO()))
    text = terminal.render(decode_image(png_bytes))

    rows = text.plain.split("\n")
    # 4x2 pixels scaled to 10 columns wide -> 5 pixel rows -> 2 cell rows
    assert len(rows) == 2
    assert all(set(row) == {UPPER_HALF_BLOCK} for row in rows)
    assert len(rows[0]) == 10


def test_display_bytes_writes_to_console(png_bytes):
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=True, color_system="truecolor", width=200)
    TerminalImage(width=8, height=4, console=console).display_bytes(png_bytes)
    assert UPPER_HALF_BLOCK in buffer.getvalue()


def test_undecodable_bytes_raise_display_error():
    with pytest.raises(DisplayError):
        TerminalImage(console=Console(file=io.StringIO())).display_bytes(b"<html>not an image</html>")


def test_oversized_image_is_reported_not_raised(monkeypatch, png_bytes):
    # 4x2 is over twice the limit, so Pillow refuses to open it
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1)
    materializer = ResultMaterializer(TerminalImage(console=Console(file=io.StringIO())))

    with pytest.raises(DisplayError):
        decode_image(png_bytes)
    assert materializer.show(png_bytes) is False
    assert image_dimensions(png_bytes) is None
