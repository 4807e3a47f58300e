"""
Shared test helpers: synthetic images and fake engines
"""

import struct
import sys
import zlib
from pathlib import Path

import cv2
import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from snapshot_ocr.engines.base import (
    BaseFingerprintEngine,
    BaseOCREngine,
    FeaturePrintAnalysis,
    NormalizedRect,
    Orientation,
    TextAnalysis,
    TextObservation,
)
from snapshot_ocr.errors import CollaboratorFailure


def png_bytes(width: int = 120, height: int = 200, color=(255, 255, 255)) -> bytes:
    """Encode a solid colour BGR image as PNG"""
    image = np.full((height, width, 3), color, dtype=np.uint8)
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


def _png_chunk(chunk_type: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + chunk_type + payload + struct.pack(">I", crc)


def corrupt_png_bytes(width: int = 120, height: int = 200) -> bytes:
    """
    PNG whose image data is split over two IDAT chunks, the second with
    the invalid type b"ID\\x00T"

    The header parses, so the failure only shows once pixels are read.
    Noise keeps the first chunk from holding the whole image.
    """
    noise = np.random.default_rng(0).integers(0, 256, (height, width, 3), dtype=np.uint8)
    ok, buffer = cv2.imencode(".png", noise)
    assert ok
    data = buffer.tobytes()
    chunks = []
    idat = b""
    pos = 8
    while pos < len(data):
        length, = struct.unpack(">I", data[pos:pos + 4])
        chunk_type = data[pos + 4:pos + 8]
        payload = data[pos + 8:pos + 8 + length]
        pos += 12 + length
        if chunk_type == b"IDAT":
            idat += payload
        else:
            chunks.append((chunk_type, payload))

    half = len(idat) // 2
    out = data[:8]
    for chunk_type, payload in chunks:
        if chunk_type == b"IEND":
            out += _png_chunk(b"IDAT", idat[:half])
            out += _png_chunk(b"ID\x00T", idat[half:])
        out += _png_chunk(chunk_type, payload)
    return out


def observation(text: str, confidence: float = 0.9, height: float = 0.1,
                y: float = 0.5) -> TextObservation:
    return TextObservation(text, confidence, NormalizedRect(0.1, y, 0.5, height))


class FakeOCREngine(BaseOCREngine):
    """
    Returns canned observations

    ``observations`` is a list, or a callable taking the image width.
    Images whose width is in ``failing_widths`` raise CollaboratorFailure.
    """

    def __init__(self, observations=None, failing_widths=()):
        if observations is None:
            observations = [observation("$1,234.56")]
        self.observations = observations
        self.failing_widths = set(failing_widths)
        self.calls = 0

    @property
    def name(self) -> str:
        return "FakeOCR"

    @property
    def is_available(self) -> bool:
        return True

    def recognize(self, image, orientation=Orientation.UP) -> TextAnalysis:
        self.calls += 1
        height, width = image.shape[:2]
        if width in self.failing_widths:
            raise CollaboratorFailure(self.name, "simulated failure")
        if callable(self.observations):
            found = self.observations(width)
        else:
            found = self.observations
        return TextAnalysis(list(found), (width, height), engine_name=self.name)


class FakeFingerprintEngine(BaseFingerprintEngine):
    """
    Descriptors are labels derived from the image width (b"w120")

    Distances come from ``distances`` (either argument order), otherwise
    0.0 for equal descriptors and 1.0 for different ones. Descriptors in
    ``undecodable`` raise ValueError.
    """

    def __init__(self, distances=None, revision: int = 1,
                 failing_widths=(), undecodable=()):
        self.distances = distances or {}
        self._revision = revision
        self.failing_widths = set(failing_widths)
        self.undecodable = set(undecodable)
        self.generated = 0

    @property
    def name(self) -> str:
        return "FakePrint"

    @property
    def revision(self) -> int:
        return self._revision

    def generate(self, image) -> FeaturePrintAnalysis:
        width = image.shape[1]
        if width in self.failing_widths:
            raise CollaboratorFailure(self.name, "simulated failure")
        self.generated += 1
        return FeaturePrintAnalysis(f"w{width}".encode(), self._revision, self.name)

    def distance(self, descriptor_a: bytes, descriptor_b: bytes) -> float:
        for descriptor in (descriptor_a, descriptor_b):
            if descriptor in self.undecodable:
                raise ValueError(f"cannot decode {descriptor!r}")
        if (descriptor_a, descriptor_b) in self.distances:
            return self.distances[(descriptor_a, descriptor_b)]
        if (descriptor_b, descriptor_a) in self.distances:
            return self.distances[(descriptor_b, descriptor_a)]
        return 0.0 if descriptor_a == descriptor_b else 1.0


@pytest.fixture
def make_png():
    return png_bytes


@pytest.fixture
def make_observation():
    return observation


@pytest.fixture
def ocr_engine_factory():
    return FakeOCREngine


@pytest.fixture
def fingerprint_engine_factory():
    return FakeFingerprintEngine


@pytest.fixture
def make_corrupt_png():
    return corrupt_png_bytes
