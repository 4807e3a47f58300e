"""
Screenshot analysis

Image bytes to detected monetary value:
1. Preprocessing (decode, downscale)
2. OCR
3. Prominence ranking
4. Parsing and candidate scoring
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from .engines.base import BaseOCREngine, Orientation, TextAnalysis
from .errors import CollaboratorFailure, NoValueDetected
from .preprocessor import ImagePreprocessor, PreprocessResult
from .prominence import ProminenceRanker, TextFragment
from .scoring import CandidateScorer, DetectionCandidate

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    """Result of analyzing one screenshot"""
    candidate: DetectionCandidate
    fragments: List[TextFragment]
    engine_name: str = ""
    processing_time: float = 0.0
    preprocessing_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, debug: bool = False) -> Dict[str, Any]:
        result = {
            "value": self.candidate.value,
            "text": self.candidate.text,
            "confidence": round(self.candidate.confidence, 4),
            "score": round(self.candidate.score, 4),
            "engine_name": self.engine_name,
            "processing_time": round(self.processing_time, 3),
        }

        if debug:
            result["_debug"] = {
                "preprocessing": self.preprocessing_info,
                "fragments": [
                    {
                        "text": f.text,
                        "confidence": round(f.confidence, 4),
                        "priority": f.priority,
                        "height_px": round(f.height_px, 1),
                        "point_size": round(f.estimated_point_size, 1),
                    }
                    for f in self.fragments
                ],
            }

        return result

    def to_json(self, indent: int = 2, debug: bool = False) -> str:
        return json.dumps(self.to_dict(debug), indent=indent, ensure_ascii=False)


class ScreenshotAnalyzer:
    """Runs the value extraction chain on a single screenshot"""

    def __init__(self, ocr_engine: BaseOCREngine,
                 preprocessor: Optional[ImagePreprocessor] = None,
                 ranker: Optional[ProminenceRanker] = None,
                 scorer: Optional[CandidateScorer] = None):
        self.ocr_engine = ocr_engine
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.ranker = ranker or ProminenceRanker()
        self.scorer = scorer or CandidateScorer()

    def analyze(self, image_data: bytes,
                orientation: Orientation = Orientation.UP) -> AnalysisOutcome:
        """
        Detect the monetary value shown on a screenshot

        Args:
            image_data: encoded image bytes
            orientation: orientation of the image content

        Returns:
            AnalysisOutcome: best candidate and the ranked fragments

        Raises:
            InvalidImage: the bytes are not a decodable image
            CollaboratorFailure: the OCR engine failed
            NoValueDetected: no candidate survived scoring
        """
        start_time = time.time()

        preprocessed = self.preprocessor.process_bytes(image_data)
        text_analysis = self._recognize(preprocessed.image, orientation)

        fragments = self.ranker.rank(text_analysis.observations,
                                     text_analysis.image_size)
        logger.debug("%d fragment(s) from %s", len(fragments), text_analysis.engine_name)

        candidate = self.scorer.extract(fragments)
        if candidate is None:
            raise NoValueDetected()

        return AnalysisOutcome(
            candidate=candidate,
            fragments=fragments,
            engine_name=text_analysis.engine_name or self.ocr_engine.name,
            processing_time=time.time() - start_time,
            preprocessing_info=_preprocessing_info(preprocessed),
        )

    def _recognize(self, image: np.ndarray, orientation: Orientation) -> TextAnalysis:
        try:
            return self.ocr_engine.recognize(image, orientation)
        except CollaboratorFailure:
            raise
        except Exception as e:
            raise CollaboratorFailure(self.ocr_engine.name, str(e)) from e


def _preprocessing_info(result: PreprocessResult) -> Dict[str, Any]:
    return {
        "original_size": result.original_size,
        "processed_size": result.processed_size,
        "steps": result.preprocessing_applied,
    }


__all__ = [
    'AnalysisOutcome',
    'ScreenshotAnalyzer',
]
