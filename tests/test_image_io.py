import io
from pathlib import Path

import pytest
from PIL import Image

from kroppit.config import PSD_MIME_TYPE
from kroppit.errors import DecodeFailureError, InvalidInputError
from kroppit.image_io import (
    decode_image, encode_png, guess_mime_type, read_image_source, save_download, unique_path,
)


def _encoded(img: Image.Image, fmt: str, **kwargs) -> bytes:
    buf = io.BytesIO()
    img.save(buf, fmt, **kwargs)
    return buf.getvalue()


@pytest.mark.parametrize("name, mime", [
    ("photo.jpg", "image/jpeg"),
    ("photo.PNG", "image/png"),
    ("anim.gif", "image/gif"),
    ("layers.psd", PSD_MIME_TYPE),
    ("notes.txt", "text/plain"),
    ("noextension", "application/octet-stream"),
])
def test_guess_mime_type(name, mime):
    assert guess_mime_type(Path(name)) == mime


def test_read_image_source_rejects_non_images(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(InvalidInputError):
        read_image_source(path)


def test_read_image_source_returns_bytes_and_mime(tmp_path):
    path = tmp_path / "pic.png"
    data = _encoded(Image.new("RGB", (4, 3), "red"), "PNG")
    path.write_bytes(data)
    assert read_image_source(path) == (data, "image/png")


def test_read_missing_file_is_a_decode_failure(tmp_path):
    with pytest.raises(DecodeFailureError):
        read_image_source(tmp_path / "gone.png")


def test_decode_png_keeps_alpha():
    data = _encoded(Image.new("RGBA", (6, 4), (1, 2, 3, 4)), "PNG")
    img = decode_image(data, "image/png")
    assert img.mode == "RGBA"
    assert img.size == (6, 4)
    assert img.getpixel((0, 0)) == (1, 2, 3, 4)


def test_decode_converts_palette_and_grayscale_to_rgb():
    assert decode_image(_encoded(Image.new("L", (3, 3), 128), "PNG"), "image/png").mode == "RGB"
    assert decode_image(_encoded(Image.new("P", (3, 3), 5), "GIF"), "image/gif").mode in ("RGB", "RGBA")


def test_decode_honours_exif_orientation():
    img = Image.new("RGB", (40, 20), "blue")
    exif = Image.Exif()
    exif[0x0112] = 6  # rotate 90 CW
    data = _encoded(img, "JPEG", exif=exif.tobytes())
    assert decode_image(data, "image/jpeg").size == (20, 40)


def test_decode_garbage_raises():
    with pytest.raises(DecodeFailureError):
        decode_image(b"definitely not an image", "image/png")


def test_decode_rejects_non_image_mime():
    with pytest.raises(InvalidInputError):
        decode_image(b"", "application/pdf")


def test_encode_png_round_trip():
    img = Image.new("RGBA", (5, 5), (9, 8, 7, 6))
    decoded = Image.open(io.BytesIO(encode_png(img)))
    assert decoded.format == "PNG"
    assert decoded.getpixel((2, 2)) == (9, 8, 7, 6)


def test_unique_path_appends_counter(tmp_path):
    target = tmp_path / "kropped.png"
    assert unique_path(target) == target
    target.write_bytes(b"x")
    assert unique_path(target) == tmp_path / "kropped-01.png"
    (tmp_path / "kropped-01.png").write_bytes(b"x")
    assert unique_path(target) == tmp_path / "kropped-02.png"


def test_save_download_names_file_by_timestamp(tmp_path):
    folder = tmp_path / "downloads"
    first = save_download(b"png-bytes", folder, stamp=1700000000123)
    second = save_download(b"other", folder, stamp=1700000000123)
    assert first.name == "kropped-image-1700000000123.png"
    assert second.name == "kropped-image-1700000000123-01.png"
    assert first.read_bytes() == b"png-bytes"
