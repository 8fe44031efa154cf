import pytest

from allscreenshots_cli.app.core.errors import (
    InputFileNotFoundError,
    InputValidationError,
    InvalidUrlError,
)
from allscreenshots_cli.app.core.inputs import (
    extract_domain,
    normalize_url,
    parse_background,
    parse_block_level,
    parse_duration,
    parse_format,
    parse_layout,
    parse_wait_until,
    read_urls_from_file,
    validate_batch_size,
    validate_compose_size,
    validate_non_negative,
    validate_range,
)
from allscreenshots_cli.app.services.models import BlockLevel, ImageFormat, LayoutType, WaitUntil


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("example.com", "https://example.com"),
        ("  example.com/path?q=1 ", "https://example.com/path?q=1"),
        ("http://x.com", "http://x.com"),
        ("https://sub.example.co.uk", "https://sub.example.co.uk"),
    ],
)
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected


@pytest.mark.parametrize("raw", ["https://", "not a url", ""])
def test_normalize_url_rejects_garbage(raw):
    with pytest.raises(InvalidUrlError) as excinfo:
        normalize_url(raw)
    assert excinfo.value.url == raw


def test_extract_domain_replaces_dots():
    assert extract_domain("https://www.example.com/a/b") == "www_example_com"
    assert extract_domain("https://") == "screenshot"


def test_read_urls_skips_comments_and_blank_lines(tmp_path):
    source = tmp_path / "urls.txt"
    source.write_text("# my sites\nhttps://a.com\n\n   \nb.com  \n# done\n")
    assert read_urls_from_file(source) == ["https://a.com", "b.com"]


def test_read_urls_requires_existing_non_empty_file(tmp_path):
    with pytest.raises(InputFileNotFoundError):
        read_urls_from_file(tmp_path / "missing.txt")
    empty = tmp_path / "empty.txt"
    empty.write_text("# nothing here\n")
    with pytest.raises(InputValidationError, match="No URLs found"):
        read_urls_from_file(empty)


def test_validate_batch_size_bounds():
    validate_batch_size(["https://a.com"] * 100)
    with pytest.raises(InputValidationError, match="No URLs provided"):
        validate_batch_size([])
    with pytest.raises(InputValidationError, match=r"Too many URLs \(101\)"):
        validate_batch_size(["https://a.com"] * 101)


def test_parse_format_aliases_and_pdf_gate():
    assert parse_format("JPG") is ImageFormat.JPEG
    assert parse_format("pdf") is ImageFormat.PDF
    with pytest.raises(InputValidationError, match="png, jpeg, or webp"):
        parse_format("pdf", allow_pdf=False)
    with pytest.raises(InputValidationError):
        parse_format("gif")


def test_parse_enumerated_options():
    assert parse_wait_until("NetworkIdle") is WaitUntil.NETWORK_IDLE
    assert parse_block_level("proplus") is BlockLevel.PRO_PLUS
    with pytest.raises(InputValidationError):
        parse_wait_until("eventually")
    with pytest.raises(InputValidationError):
        parse_block_level("maximum")


@pytest.mark.parametrize(
    "raw, seconds",
    [
        ("5s", 5.0),
        ("30", 30.0),
        ("1m", 60.0),
        ("2min", 120.0),
        ("1h30m", 5400.0),
        ("500ms", 0.5),
        ("1.5s", 1.5),
    ],
)
def test_parse_duration(raw, seconds):
    assert parse_duration(raw) == pytest.approx(seconds)


@pytest.mark.parametrize("raw", ["", "soon", "0s", "5x", "-5s"])
def test_parse_duration_rejects_invalid(raw):
    with pytest.raises(InputValidationError):
        parse_duration(raw)


@pytest.mark.parametrize("count, ok", [(1, False), (2, True), (20, True), (21, False)])
def test_compose_size_bounds(count, ok):
    urls = [f"https://site{i}.com" for i in range(count)]
    if ok:
        validate_compose_size(urls)
    else:
        with pytest.raises(InputValidationError, match="between 2 and 20"):
            validate_compose_size(urls)


def test_parse_layout():
    assert parse_layout(" Masonry ") is LayoutType.MASONRY
    with pytest.raises(InputValidationError, match="Invalid layout 'spiral'"):
        parse_layout("spiral")


@pytest.mark.parametrize(
    "raw, expected",
    [("#ffffff", "#ffffff"), ("#A1b2C3", "#A1b2C3"), ("Transparent", "transparent")],
)
def test_parse_background(raw, expected):
    assert parse_background(raw) == expected


@pytest.mark.parametrize("raw", ["white", "#fff", "#gggggg", "ffffff"])
def test_parse_background_rejects_invalid(raw):
    with pytest.raises(InputValidationError):
        parse_background(raw)


def test_numeric_bounds():
    assert validate_range("--quality", 100, 1, 100) == 100
    with pytest.raises(InputValidationError, match=r"--quality must be between 1 and 100 \(got 0\)"):
        validate_range("--quality", 0, 1, 100)
    assert validate_non_negative("--spacing", 0) == 0
    with pytest.raises(InputValidationError, match="--spacing must not be negative"):
        validate_non_negative("--spacing", -1)
