import threading
from pathlib import Path

import pytest

from domains.export_pipeline.codec import DecodedImage
from domains.export_pipeline.errors import DecodeError
from domains.export_pipeline.worker import ExportWorker


class FakeCodec:
    """Stands in for psd-tools/Pillow.

    Documents are plain text ``"<width>x<height>"``; anything else fails to
    decode. Encoded output is ``b"<FORMAT> <width>x<height>"``.
    """

    def __init__(self):
        self.decoded: list[bytes] = []
        self._lock = threading.Lock()

    def decode(self, data: bytes) -> DecodedImage:
        with self._lock:
            self.decoded.append(data)
        try:
            width, height = (int(v) for v in data.decode().split("x"))
        except ValueError as e:
            raise DecodeError(f"not a document: {data[:16]!r}") from e
        return DecodedImage(width=width, height=height, pixels=bytes(width * height * 4))

    def encode(self, width, height, pixels, output_format) -> bytes:
        return f"{output_format.encoder_id} {width}x{height}".encode()

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.decoded)


def write_document(path: Path, width: int = 4, height: int = 3) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{width}x{height}")
    return path


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def fake_worker(fake_codec) -> ExportWorker:
    return ExportWorker(
        decoder=fake_codec.decode,
        encoder=fake_codec.encode,
        settle_delay=0,
        stability_interval=0,
    )


@pytest.fixture
def make_document():
    return write_document
