"""
PaddleOCR engine

Text recognition with PaddleOCR (optional extra ``paddle``):
- Line-level detection and recognition
- Works with both the 2.x ``ocr()`` and the 3.x ``predict()`` API
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

import cv2
import numpy as np

from ..errors import CollaboratorFailure
from .base import (
    BaseOCREngine, NormalizedRect, Orientation, TextAnalysis, TextObservation,
    apply_orientation,
)

logger = logging.getLogger(__name__)


@dataclass
class PaddleOCRConfig:
    """PaddleOCR settings"""
    lang: str = "en"
    use_angle_cls: bool = False  # extra model download when enabled
    drop_score: float = 0.5


class PaddleOCREngine(BaseOCREngine):
    """PaddleOCR engine"""

    def __init__(self, config: Optional[PaddleOCRConfig] = None, **kwargs):
        self.config = config or PaddleOCRConfig()

        if 'lang' in kwargs:
            self.config.lang = kwargs['lang']
        if 'use_angle_cls' in kwargs:
            self.config.use_angle_cls = kwargs['use_angle_cls']

        self._model = None
        self._available = self._initialize()

    @property
    def name(self) -> str:
        return "PaddleOCR"

    @property
    def is_available(self) -> bool:
        return self._available

    def _initialize(self) -> bool:
        """Load the PaddleOCR model"""
        # keep paddle's own download / progress logging quiet
        logging.getLogger('ppocr').setLevel(logging.WARNING)
        logging.getLogger('paddleocr').setLevel(logging.WARNING)

        try:
            from paddleocr import PaddleOCR
        except ImportError as e:
            logger.warning("PaddleOCR is not installed: %s "
                           "(pip install 'snapshot-ocr[paddle]')", e)
            return False

        try:
            self._model = PaddleOCR(
                lang=self.config.lang,
                use_angle_cls=self.config.use_angle_cls,
            )
        except (RuntimeError, OSError, ValueError) as e:
            logger.warning("PaddleOCR model initialization failed: %s", e)
            return False
        return True

    def recognize(self, image: np.ndarray,
                  orientation: Orientation = Orientation.UP) -> TextAnalysis:
        """
        Recognize text in an image

        Args:
            image: input image (BGR or grayscale)
            orientation: orientation of the image content

        Returns:
            TextAnalysis: one observation per detected line
        """
        start_time = time.time()

        if not self._available or self._model is None:
            raise CollaboratorFailure(self.name, "PaddleOCR is not available")

        image = apply_orientation(image, orientation)
        if len(image.shape) == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        height, width = image.shape[:2]

        try:
            if hasattr(self._model, 'predict'):
                # PaddleOCR 3.x
                raw = self._parse_predict_result(self._model.predict(input=image))
            else:
                # PaddleOCR 2.x: [[points, (text, score)], ...]
                result = self._model.ocr(image, cls=self.config.use_angle_cls)
                raw = [(line[0], line[1][0], float(line[1][1]))
                       for line in (result[0] or [])] if result else []
        except (RuntimeError, ValueError, IndexError, TypeError) as e:
            raise CollaboratorFailure(self.name, str(e)) from e

        observations = []
        for points, text, score in raw:
            if not text or score < self.config.drop_score:
                continue
            observations.append(TextObservation(
                text=text,
                confidence=score,
                bbox=NormalizedRect.from_points(points, width, height),
            ))

        return TextAnalysis(
            observations=observations,
            image_size=(width, height),
            engine_name=self.name,
            processing_time=time.time() - start_time,
        )

    def _parse_predict_result(self, result: Any) -> List[tuple]:
        """Flatten a PaddleOCR 3.x result into (points, text, score) tuples"""
        parsed = []
        for res in result or []:
            if isinstance(res, dict):
                texts = res.get('rec_texts', [])
                scores = res.get('rec_scores', [])
                boxes = res.get('dt_polys', [])
            else:
                texts = getattr(res, 'rec_texts', [])
                scores = getattr(res, 'rec_scores', [])
                boxes = getattr(res, 'dt_polys', [])
            for i, (text, score) in enumerate(zip(texts, scores)):
                if i >= len(boxes):
                    break
                parsed.append((np.asarray(boxes[i]).tolist(), text, float(score)))
        return parsed


# Public API
__all__ = [
    'PaddleOCREngine',
    'PaddleOCRConfig',
]
