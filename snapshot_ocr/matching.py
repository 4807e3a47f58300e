"""
Series matching

Proposes a series for a record by comparing its fingerprint against the
fingerprints of records that already belong to a series.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .engines.base import BaseFingerprintEngine
from .errors import RevisionMismatch
from .models import ScreenshotRecord

logger = logging.getLogger(__name__)


@dataclass
class MatchingConfig:
    """Series matching settings"""
    # best average distance must be strictly below this to auto-assign
    auto_assignment_threshold: float = 0.25


@dataclass
class MatchResult:
    """Average distance between a record and one series"""
    series_id: str
    average_distance: float
    matched_count: int


class SeriesMatcher:
    """Fingerprint based series matcher"""

    def __init__(self, engine: BaseFingerprintEngine,
                 config: Optional[MatchingConfig] = None):
        self.engine = engine
        self.config = config or MatchingConfig()

    def match(self, record: ScreenshotRecord,
              history: Iterable[ScreenshotRecord]) -> Optional[str]:
        """
        Find the series a record most likely belongs to

        Args:
            record: record to match (needs fingerprint data and revision)
            history: fingerprinted records, usually RecordStore.fingerprinted()

        Returns:
            The id of the closest series if its average distance is below
            the threshold, otherwise None (left for manual assignment)
        """
        results = self.detailed_matches(record, history)
        if not results:
            return None

        best = results[0]
        threshold = self.config.auto_assignment_threshold
        if best.average_distance < threshold:
            logger.debug("Record %s -> series %s (distance %.4f < %.4f)",
                         record.id, best.series_id, best.average_distance, threshold)
            return best.series_id

        logger.debug("Record %s: best distance %.4f >= %.4f, no assignment",
                     record.id, best.average_distance, threshold)
        return None

    def detailed_matches(self, record: ScreenshotRecord,
                         history: Iterable[ScreenshotRecord]) -> List[MatchResult]:
        """
        Average distance to every comparable series, closest first

        Series without a single valid comparison are left out.
        """
        if record.fingerprint_data is None or record.fingerprint_revision is None:
            return []

        groups = self._group_by_series(record, history)

        results = []
        for series_id, members in groups.items():
            distances = []
            for other in members:
                try:
                    distances.append(self.engine.compare(
                        record.fingerprint_data, record.fingerprint_revision,
                        other.fingerprint_data, other.fingerprint_revision,
                    ))
                except (RevisionMismatch, ValueError) as e:
                    logger.debug("Skipping comparison %s <-> %s: %s",
                                 record.id, other.id, e)

            if distances:
                results.append(MatchResult(
                    series_id=series_id,
                    average_distance=sum(distances) / len(distances),
                    matched_count=len(distances),
                ))

        # stable: equal distances keep first-seen series order
        results.sort(key=lambda r: r.average_distance)
        return results

    def _group_by_series(self, record: ScreenshotRecord,
                         history: Iterable[ScreenshotRecord]) -> Dict[str, List[ScreenshotRecord]]:
        """Same-revision, fingerprinted, assigned records by series"""
        groups: Dict[str, List[ScreenshotRecord]] = {}
        for other in history:
            if other.id == record.id:
                continue
            if (other.fingerprint_data is None
                    or other.fingerprint_revision != record.fingerprint_revision
                    or other.series_id is None):
                continue
            groups.setdefault(other.series_id, []).append(other)
        return groups
