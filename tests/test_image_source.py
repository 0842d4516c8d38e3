import base64
import io

import pytest
from PIL import Image

from errors import ImageDecodeError
from image_source import DecodeWorker, decode_image, load_source_image, read_reference


def png_bytes(size, color=(255, 0, 0, 255)):
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, "PNG")
    return buffer.getvalue()


def test_decode_reports_natural_size():
    source = decode_image(png_bytes((320, 200)), "memory")
    assert (source.width, source.height) == (320, 200)
    assert source.image.width() == 320
    assert source.image.height() == 200
    assert not source.is_released


def test_decode_applies_exif_orientation():
    img = Image.new("RGB", (40, 20), (10, 200, 10))
    exif = img.getexif()
    exif[0x0112] = 6  # rotate 90 degrees clockwise on display
    buffer = io.BytesIO()
    img.save(buffer, "JPEG", exif=exif)

    source = decode_image(buffer.getvalue(), "rotated.jpg")
    assert (source.width, source.height) == (20, 40)


def test_invalid_bytes_raise_decode_error():
    with pytest.raises(ImageDecodeError) as excinfo:
        decode_image(b"definitely not an image", "broken.png")
    assert excinfo.value.reference == "broken.png"


def test_load_from_path_and_file_url(image_file):
    by_path = load_source_image(str(image_file))
    by_url = load_source_image(image_file.as_uri())
    assert (by_path.width, by_path.height) == (640, 480)
    assert (by_url.width, by_url.height) == (640, 480)


def test_load_from_base64_data_url():
    payload = base64.b64encode(png_bytes((16, 8))).decode("ascii")
    source = load_source_image(f"data:image/png;base64,{payload}")
    assert (source.width, source.height) == (16, 8)


def test_missing_file_raises_decode_error(tmp_path):
    with pytest.raises(ImageDecodeError):
        load_source_image(str(tmp_path / "nope.png"))


def test_empty_and_malformed_references():
    with pytest.raises(ImageDecodeError):
        read_reference("")
    with pytest.raises(ImageDecodeError):
        read_reference("data:image/png;base64")
    with pytest.raises(ImageDecodeError):
        read_reference("data:image/png;base64,@@@not-base64@@@")


def test_remote_reference_needs_fetcher():
    with pytest.raises(ImageDecodeError, match="no fetcher"):
        read_reference("https://cdn.example.com/art.png")

    data = png_bytes((4, 4))
    assert read_reference("https://cdn.example.com/art.png", fetcher=lambda ref: data) == data


def test_fetcher_failure_becomes_decode_error():
    def fetcher(reference):
        raise ConnectionError("host unreachable")

    with pytest.raises(ImageDecodeError, match="host unreachable"):
        read_reference("https://cdn.example.com/art.png", fetcher=fetcher)


def test_release_drops_bitmap():
    source = decode_image(png_bytes((8, 8)))
    source.release()
    assert source.is_released
    assert source.image is None


def test_decode_worker_reports_success_and_failure(image_file, tmp_path):
    results = []

    worker = DecodeWorker(3, str(image_file))
    worker.signals.decoded.connect(lambda generation, source: results.append(("ok", generation, source.width)))
    worker.run()

    failing = DecodeWorker(4, str(tmp_path / "missing.png"))
    failing.signals.failed.connect(lambda generation, error: results.append(("err", generation, type(error))))
    failing.run()

    assert results == [("ok", 3, 640), ("err", 4, ImageDecodeError)]
