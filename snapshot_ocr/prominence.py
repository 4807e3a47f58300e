"""
Prominence ranking

Ranks OCR fragments by rendered text height: on a banking screen the
balance is almost always the largest text.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .engines.base import NormalizedRect, TextObservation

# pixels -> points at 72 DPI on a 96 DPI baseline
POINTS_PER_PIXEL = 0.75


@dataclass(frozen=True)
class TextFragment:
    """A recognized text fragment with its visual priority"""
    text: str
    confidence: float
    bbox: NormalizedRect
    priority: int  # 1 = most prominent
    height_px: float
    estimated_point_size: float

    @property
    def priority_description(self) -> str:
        return {1: "Highest", 2: "High", 3: "Medium"}.get(self.priority, "Low")


class ProminenceRanker:
    """Assigns dense, tie-aware priority ranks from text height"""

    def rank(self, observations: Sequence[TextObservation],
             image_size: Tuple[int, int]) -> List[TextFragment]:
        """
        Rank fragments by rendered height

        Fragments are returned sorted by height, tallest first. Equal heights
        share a rank; the first fragment after a height break gets its
        1-based position in the sorted list as rank.

        Args:
            observations: OCR fragments
            image_size: (width, height) of the analyzed image in pixels

        Returns:
            List[TextFragment]: ranked fragments (empty input -> [])
        """
        if not observations:
            return []

        image_height = image_size[1]
        measured = [(o, o.bbox.height * image_height) for o in observations]
        # sorted() is stable: equal heights keep OCR order
        measured = sorted(measured, key=lambda item: item[1], reverse=True)

        fragments = []
        priority = 1
        last_height: Optional[float] = None
        for index, (observation, height) in enumerate(measured):
            if last_height is not None and height < last_height:
                priority = index + 1

            fragments.append(TextFragment(
                text=observation.text,
                confidence=observation.confidence,
                bbox=observation.bbox,
                priority=priority,
                height_px=height,
                estimated_point_size=height * POINTS_PER_PIXEL,
            ))
            last_height = height

        return fragments


def rank_fragments(observations: Sequence[TextObservation],
                   image_size: Tuple[int, int]) -> List[TextFragment]:
    """Shortcut for ProminenceRanker().rank()"""
    return ProminenceRanker().rank(observations, image_size)
