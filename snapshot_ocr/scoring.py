"""
Candidate scoring module

Multi-criteria selection of the monetary value on a screenshot:
- 40% prominence (priority rank)
- 30% OCR confidence
- 20% currency symbol / code present
- 10% number format quality
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .currency import CurrencyParser, assess_number_format, detects_currency_symbol
from .errors import CurrencyParseError
from .prominence import TextFragment

logger = logging.getLogger(__name__)


@dataclass
class DetectionWeights:
    """Weights and thresholds of the detection algorithm"""
    priority_weight: float = 0.4
    confidence_weight: float = 0.3
    currency_symbol_weight: float = 0.2
    format_weight: float = 0.1

    min_confidence: float = 0.75  # minimum OCR confidence
    max_priority: int = 3         # only the top 3 rank levels
    min_score: float = 0.6        # minimum combined score


@dataclass
class DetectionCandidate:
    """A parsed monetary value candidate"""
    value: float
    text: str
    confidence: float
    score: float
    priority: int = 0

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "text": self.text,
            "confidence": round(self.confidence, 4),
            "score": round(self.score, 4),
            "priority": self.priority,
        }


class CandidateScorer:
    """Scores ranked fragments and picks the most likely monetary value"""

    def __init__(self, weights: Optional[DetectionWeights] = None,
                 parser: Optional[CurrencyParser] = None):
        self.weights = weights or DetectionWeights()
        self.parser = parser or CurrencyParser()

    def score(self, fragment: TextFragment, value: float) -> float:
        """
        Combined score of a fragment (0.0 - 1.0)

        Args:
            fragment: ranked text fragment
            value: the amount parsed from the fragment text

        Returns:
            float: weighted score
        """
        w = self.weights

        # 1. Priority (rank 1 -> 1.0)
        if fragment.priority <= w.max_priority:
            priority_score = max(0.0, 1.0 - (fragment.priority - 1) / w.max_priority)
        else:
            priority_score = 0.0

        # 2. OCR confidence
        confidence_score = fragment.confidence if fragment.confidence >= w.min_confidence else 0.0

        # 3. Currency symbol bonus
        symbol_score = 1.0 if detects_currency_symbol(fragment.text) else 0.0

        # 4. Number format
        format_score = assess_number_format(fragment.text)

        return (priority_score * w.priority_weight
                + confidence_score * w.confidence_weight
                + symbol_score * w.currency_symbol_weight
                + format_score * w.format_weight)

    def candidates(self, fragments: Iterable[TextFragment]) -> List[DetectionCandidate]:
        """All fragments that pass filtering and the minimum score, in input order"""
        w = self.weights
        result = []

        for fragment in fragments:
            if fragment.confidence < w.min_confidence:
                continue
            if fragment.priority > w.max_priority:
                continue

            try:
                value = self.parser.parse(fragment.text)
            except CurrencyParseError:
                continue

            score = self.score(fragment, value)
            if score < w.min_score:
                logger.debug("Rejected %r: score %.3f below %.2f",
                             fragment.text, score, w.min_score)
                continue

            result.append(DetectionCandidate(
                value=value,
                text=fragment.text,
                confidence=fragment.confidence,
                score=score,
                priority=fragment.priority,
            ))

        return result

    def select_best(self, candidates: Iterable[DetectionCandidate]) -> Optional[DetectionCandidate]:
        """Highest score wins; on a tie the first candidate is kept"""
        best = None
        for candidate in candidates:
            if best is None or candidate.score > best.score:
                best = candidate
        return best

    def extract(self, fragments: Iterable[TextFragment]) -> Optional[DetectionCandidate]:
        """Filter, parse, score and select in one step"""
        return self.select_best(self.candidates(fragments))
