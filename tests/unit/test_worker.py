import io
import threading
import time

import pytest
from PIL import Image
from psd_tools import PSDImage

from domains.export_pipeline import codec
from domains.export_pipeline.codec import DecodedImage
from domains.export_pipeline.worker import ExportWorker, wait_until_stable
from psd_export.models.schemas import ExportRequest, FailureReason, OutputFormat


def test_exports_next_to_source(tmp_path, fake_worker, make_document):
    doc = make_document(tmp_path / "art" / "cover.psd", 8, 6)

    outcome = fake_worker.run(doc, OutputFormat.PNG)

    assert outcome.success
    assert outcome.reason is None
    assert outcome.output_path == tmp_path / "art" / "cover.png"
    assert outcome.output_path.read_bytes() == b"PNG 8x6"


def test_jpg_extension_and_overwrite(tmp_path, fake_worker, make_document):
    doc = make_document(tmp_path / "cover.v2.psd", 2, 2)
    existing = tmp_path / "cover.v2.jpg"
    existing.write_bytes(b"stale output that is longer than the new one")

    outcome = fake_worker.execute(ExportRequest(path=doc, output_format=OutputFormat.JPG))

    assert outcome.success
    assert outcome.output_path == existing
    assert existing.read_bytes() == b"JPEG 2x2"


def test_missing_document_is_unreadable(tmp_path, fake_worker):
    outcome = fake_worker.run(tmp_path / "gone.psd", OutputFormat.PNG)

    assert not outcome.success
    assert outcome.reason is FailureReason.UNREADABLE_DOCUMENT
    assert not (tmp_path / "gone.png").exists()


def test_corrupt_document_is_unparseable(tmp_path, fake_worker):
    doc = tmp_path / "broken.psd"
    doc.write_bytes(b"\x00garbage")

    outcome = fake_worker.run(doc, OutputFormat.PNG)

    assert not outcome.success
    assert outcome.reason is FailureReason.UNPARSEABLE_DOCUMENT
    assert "not a document" in outcome.detail
    assert not (tmp_path / "broken.png").exists()


def test_unexpected_decoder_exception_is_classified(tmp_path):
    def exploding_decoder(data):
        raise RuntimeError("boom")

    worker = ExportWorker(decoder=exploding_decoder, settle_delay=0, stability_interval=0)
    doc = tmp_path / "a.psd"
    doc.write_bytes(b"8BPS")

    outcome = worker.run(doc, OutputFormat.PNG)

    assert outcome.reason is FailureReason.UNPARSEABLE_DOCUMENT
    assert "boom" in outcome.detail


def test_bad_pixel_buffer(tmp_path):
    worker = ExportWorker(
        decoder=lambda data: DecodedImage(width=4, height=4, pixels=b"\x00" * 10),
        settle_delay=0,
        stability_interval=0,
    )
    doc = tmp_path / "short.psd"
    doc.write_bytes(b"8BPS")

    outcome = worker.run(doc, OutputFormat.PNG)

    assert outcome.reason is FailureReason.IMAGE_BUFFER_CONSTRUCTION_FAILURE


def test_unwritable_output(tmp_path, fake_worker, make_document):
    doc = make_document(tmp_path / "cover.psd")
    (tmp_path / "cover.png").mkdir()

    outcome = fake_worker.run(doc, OutputFormat.PNG)

    assert not outcome.success
    assert outcome.reason is FailureReason.UNWRITABLE_OUTPUT


def test_settle_waits_for_writer(tmp_path, fake_codec, make_document):
    doc = make_document(tmp_path / "growing.psd", 1, 1)
    worker = ExportWorker(
        decoder=fake_codec.decode,
        encoder=fake_codec.encode,
        settle_delay=0.01,
        stability_interval=0.05,
        stability_timeout=2.0,
    )

    def finish_writing():
        time.sleep(0.02)
        doc.write_text("30x30")

    writer = threading.Thread(target=finish_writing)
    writer.start()
    outcome = worker.run(doc, OutputFormat.PNG, settle=True)
    writer.join()

    assert outcome.success
    assert outcome.output_path.read_bytes() == b"PNG 30x30"


def test_wait_until_stable(tmp_path):
    doc = tmp_path / "still.psd"
    doc.write_bytes(b"8BPS")

    assert wait_until_stable(doc, 0.01, 1.0) is True
    assert wait_until_stable(tmp_path / "missing.psd", 0.01, 1.0) is False


def test_psd_round_trip_keeps_dimensions(tmp_path):
    doc = tmp_path / "real.psd"
    PSDImage.frompil(Image.new("RGB", (7, 5), (200, 30, 90))).save(str(doc))

    decoded = codec.decode(doc.read_bytes())
    assert (decoded.width, decoded.height) == (7, 5)
    assert len(decoded.pixels) == 7 * 5 * 4

    worker = ExportWorker(settle_delay=0, stability_interval=0)
    for output_format, pillow_format in ((OutputFormat.PNG, "PNG"), (OutputFormat.JPG, "JPEG")):
        outcome = worker.run(doc, output_format)
        assert outcome.success
        with Image.open(outcome.output_path) as exported:
            assert exported.format == pillow_format
            assert exported.size == (7, 5)


def test_codec_rejects_garbage_and_mismatched_buffers():
    worker = ExportWorker(settle_delay=0, stability_interval=0)
    assert worker.decoder is codec.decode

    with pytest.raises(codec.DecodeError, match="PSD"):
        codec.decode(b"definitely not a psd")

    with pytest.raises(codec.ImageBufferError):
        codec.encode(2, 2, b"\x00" * 15, OutputFormat.PNG)


def test_jpeg_flattens_transparency():
    pixels = bytes([0, 0, 0, 0]) * 4  # fully transparent 2x2
    data = codec.encode(2, 2, pixels, OutputFormat.JPG)

    with Image.open(io.BytesIO(data)) as image:
        assert image.mode == "RGB"
        r, g, b = image.getpixel((0, 0))
        assert min(r, g, b) > 240
