"""
Engine base classes

Interfaces every OCR / fingerprint engine implements, and the closed set of
analysis results they return. Consumers dispatch on ``AnalysisKind`` instead
of probing result types at runtime.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Union

import cv2
import numpy as np

from ..errors import RevisionMismatch


class Orientation(Enum):
    """Orientation of the image content (EXIF semantics)"""
    UP = "up"
    DOWN = "down"        # rotated 180 degrees
    LEFT = "left"        # rotated 90 degrees counter-clockwise
    RIGHT = "right"      # rotated 90 degrees clockwise


def apply_orientation(image: np.ndarray, orientation: Orientation) -> np.ndarray:
    """Rotate the image so that its content is upright"""
    if orientation == Orientation.DOWN:
        return cv2.rotate(image, cv2.ROTATE_180)
    if orientation == Orientation.LEFT:
        return cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
    if orientation == Orientation.RIGHT:
        return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return image


@dataclass(frozen=True)
class NormalizedRect:
    """Bounding box in normalized [0, 1] coordinates, origin bottom-left"""
    x: float
    y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @classmethod
    def from_pixels(cls, left: float, top: float, width: float, height: float,
                    image_width: int, image_height: int) -> 'NormalizedRect':
        """Convert a top-left origin pixel box into a normalized rect"""
        if image_width <= 0 or image_height <= 0:
            return cls(0.0, 0.0, 0.0, 0.0)
        x = min(max(left / image_width, 0.0), 1.0)
        w = min(max(width / image_width, 0.0), 1.0 - x)
        bottom = top + height
        y = min(max(1.0 - bottom / image_height, 0.0), 1.0)
        h = min(max(height / image_height, 0.0), 1.0 - y)
        return cls(x, y, w, h)

    @classmethod
    def from_points(cls, points: List[List[float]],
                    image_width: int, image_height: int) -> 'NormalizedRect':
        """Create from a 4-point polygon (PaddleOCR format)"""
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        left, top = min(xs), min(ys)
        return cls.from_pixels(left, top, max(xs) - left, max(ys) - top,
                               image_width, image_height)


@dataclass(frozen=True)
class TextObservation:
    """One recognized text fragment as reported by an OCR engine"""
    text: str
    confidence: float  # 0.0 - 1.0
    bbox: NormalizedRect


class AnalysisKind(Enum):
    """Kind of analysis an engine produced"""
    TEXT = "text"
    FEATURE_PRINT = "feature_print"


@dataclass
class TextAnalysis:
    """Text recognition result"""
    observations: List[TextObservation]
    image_size: Tuple[int, int]  # (width, height) in pixels
    engine_name: str = ""
    processing_time: float = 0.0
    warnings: List[str] = field(default_factory=list)

    @property
    def kind(self) -> AnalysisKind:
        return AnalysisKind.TEXT

    @property
    def full_text(self) -> str:
        return "\n".join(o.text for o in self.observations)


@dataclass
class FeaturePrintAnalysis:
    """Perceptual fingerprint of an image"""
    descriptor: bytes
    revision: int
    engine_name: str = ""
    processing_time: float = 0.0

    @property
    def kind(self) -> AnalysisKind:
        return AnalysisKind.FEATURE_PRINT


AnalysisResult = Union[TextAnalysis, FeaturePrintAnalysis]


class BaseOCREngine(ABC):
    """OCR engine abstract base class"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine display name"""
        pass

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the engine can be used"""
        pass

    @abstractmethod
    def recognize(self, image: np.ndarray,
                  orientation: Orientation = Orientation.UP) -> TextAnalysis:
        """
        Recognize text in an image

        Args:
            image: preprocessed image (BGR or grayscale)
            orientation: orientation of the image content

        Returns:
            TextAnalysis: fragments with normalized bounding boxes

        Raises:
            CollaboratorFailure: the engine is unavailable or errored
        """
        pass


class BaseFingerprintEngine(ABC):
    """Fingerprint engine abstract base class"""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def revision(self) -> int:
        """Revision tag of the descriptors this engine produces"""
        pass

    @abstractmethod
    def generate(self, image: np.ndarray) -> FeaturePrintAnalysis:
        """
        Generate a fingerprint for an image

        Raises:
            CollaboratorFailure: descriptor generation failed
        """
        pass

    @abstractmethod
    def distance(self, descriptor_a: bytes, descriptor_b: bytes) -> float:
        """
        Distance between two descriptors of this engine's revision
        (0.0 = identical, larger = more different)

        Raises:
            ValueError: a descriptor cannot be decoded
        """
        pass

    def compare(self, descriptor_a: bytes, revision_a: int,
                descriptor_b: bytes, revision_b: int) -> float:
        """Distance between two descriptors, rejecting mixed revisions"""
        if revision_a != revision_b:
            raise RevisionMismatch(revision_a, revision_b)
        if revision_a != self.revision:
            raise RevisionMismatch(revision_a, self.revision)
        return self.distance(descriptor_a, descriptor_b)


# Public API
__all__ = [
    'Orientation',
    'apply_orientation',
    'NormalizedRect',
    'TextObservation',
    'AnalysisKind',
    'TextAnalysis',
    'FeaturePrintAnalysis',
    'AnalysisResult',
    'BaseOCREngine',
    'BaseFingerprintEngine',
]
