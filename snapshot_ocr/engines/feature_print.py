"""
Feature print engine

Perceptual fingerprints for screenshots. Two screenshots of the same banking
app screen share layout and colour scheme, so the descriptor combines:
- a low resolution grayscale layout map (zero mean, unit length)
- a Hellinger-normalized HSV colour histogram

Descriptor wire format (little endian):
    b"SOFP" | uint16 revision | uint32 float count | float32 * count
"""

import struct
import time
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from ..errors import CollaboratorFailure
from .base import BaseFingerprintEngine, FeaturePrintAnalysis

MAGIC = b"SOFP"
HEADER = struct.Struct("<4sHI")

# bump whenever the descriptor layout or normalization changes
FEATURE_PRINT_REVISION = 1


@dataclass
class FeaturePrintConfig:
    """Feature print settings"""
    layout_size: Tuple[int, int] = (24, 40)       # (width, height) of the layout map
    hist_bins: Tuple[int, int, int] = (8, 4, 4)   # H, S, V bins
    layout_weight: float = 0.7
    color_weight: float = 0.3


class FeaturePrintEngine(BaseFingerprintEngine):
    """OpenCV based perceptual fingerprint engine"""

    def __init__(self, config: FeaturePrintConfig = None):
        self.config = config or FeaturePrintConfig()

    @property
    def name(self) -> str:
        return "FeaturePrint"

    @property
    def revision(self) -> int:
        return FEATURE_PRINT_REVISION

    def generate(self, image: np.ndarray) -> FeaturePrintAnalysis:
        """
        Generate the fingerprint of an image

        Args:
            image: BGR or grayscale image

        Returns:
            FeaturePrintAnalysis: encoded descriptor and its revision
        """
        start_time = time.time()

        if image is None or image.size == 0:
            raise CollaboratorFailure(self.name, "empty image")

        try:
            vector = self._feature_vector(image)
        except cv2.error as e:
            raise CollaboratorFailure(self.name, str(e)) from e

        return FeaturePrintAnalysis(
            descriptor=self.encode(vector),
            revision=self.revision,
            engine_name=self.name,
            processing_time=time.time() - start_time,
        )

    def distance(self, descriptor_a: bytes, descriptor_b: bytes) -> float:
        """
        Half the euclidean distance between two unit vectors, in [0, 1]
        """
        a = self.decode(descriptor_a)
        b = self.decode(descriptor_b)
        if a.shape != b.shape:
            raise ValueError(
                f"descriptor length mismatch: {a.shape[0]} != {b.shape[0]}"
            )
        return float(np.linalg.norm(a - b) / 2.0)

    def encode(self, vector: np.ndarray) -> bytes:
        data = vector.astype('<f4')
        return HEADER.pack(MAGIC, self.revision, data.shape[0]) + data.tobytes()

    def decode(self, descriptor: bytes) -> np.ndarray:
        """Decode a descriptor, validating header and length"""
        if descriptor is None or len(descriptor) < HEADER.size:
            raise ValueError("descriptor too short")
        magic, revision, count = HEADER.unpack_from(descriptor)
        if magic != MAGIC:
            raise ValueError("not a feature print descriptor")
        if revision != self.revision:
            raise ValueError(f"unsupported descriptor revision {revision}")
        payload = descriptor[HEADER.size:]
        if len(payload) != count * 4:
            raise ValueError("truncated descriptor")
        return np.frombuffer(payload, dtype='<f4').astype(np.float64)

    def _feature_vector(self, image: np.ndarray) -> np.ndarray:
        if len(image.shape) == 2:
            bgr = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        elif image.shape[2] == 4:
            bgr = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
        else:
            bgr = image

        # 1. Layout map
        gray = cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
        layout = cv2.resize(gray, self.config.layout_size,
                            interpolation=cv2.INTER_AREA).astype(np.float64).ravel()
        layout -= layout.mean()
        layout = _unit(layout)

        # 2. Colour histogram
        hsv = cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)
        hist = cv2.calcHist([hsv], [0, 1, 2], None, list(self.config.hist_bins),
                            [0, 180, 0, 256, 0, 256]).astype(np.float64).ravel()
        total = hist.sum()
        if total > 0:
            hist /= total
        color = _unit(np.sqrt(hist))

        vector = np.concatenate([
            layout * np.sqrt(self.config.layout_weight),
            color * np.sqrt(self.config.color_weight),
        ])
        return _unit(vector)


def _unit(vector: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector
    return vector / norm


__all__ = [
    'FeaturePrintEngine',
    'FeaturePrintConfig',
    'FEATURE_PRINT_REVISION',
]
