"""
Data model

- ScreenshotRecord: a financial data point candidate built from a screenshot
- Series: a named category (e.g. one bank account) records point to
- ProcessingState: per-record lifecycle tag
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class ProcessingState(Enum):
    """Processing state of a record"""
    PENDING = "pending"
    ANALYZING = "analyzing"      # transient, set right before OCR
    PARTIAL = "partial"          # value extracted, no series
    FULL = "full"                # value and series resolved
    FAILED = "failed"
    HUMAN_CONFIRMED = "humanConfirmed"  # terminal


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Series:
    """A named category records can be assigned to"""
    name: str
    color: str = ""  # hex colour, "#RRGGBB"
    sort_order: int = 0
    is_default: bool = False
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ScreenshotRecord:
    """A screenshot and everything extracted from it"""
    id: str = field(default_factory=_new_id)
    source_image: Optional[bytes] = None
    value: Optional[float] = None
    series_id: Optional[str] = None
    state: ProcessingState = ProcessingState.PENDING
    human_confirmed: bool = False
    value_extraction_attempted: bool = False

    # analysis metadata
    extracted_value: Optional[float] = None
    extracted_text: Optional[str] = None
    analysis_confidence: Optional[float] = None
    analysis_date: Optional[datetime] = None
    analysis_error: Optional[str] = None

    # visual fingerprint
    fingerprint_data: Optional[bytes] = None
    fingerprint_revision: Optional[int] = None

    captured_at: Optional[datetime] = None  # from image metadata, None if unknown
    created_at: datetime = field(default_factory=datetime.now)
    image_attached_at: Optional[datetime] = None

    @classmethod
    def from_screenshot(cls, image_data: bytes,
                        captured_at: Optional[datetime] = None) -> 'ScreenshotRecord':
        """Create a pending record for a captured / imported screenshot"""
        return cls(
            source_image=image_data,
            captured_at=captured_at,
            image_attached_at=datetime.now(),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'ScreenshotRecord':
        """Create a pending record from an image file, dated from its metadata"""
        from .metadata import ImageMetadataExtractor

        path = Path(path)
        return cls.from_screenshot(
            path.read_bytes(),
            captured_at=ImageMetadataExtractor.extract_date(path),
        )

    @property
    def has_image(self) -> bool:
        return self.source_image is not None

    @property
    def has_fingerprint(self) -> bool:
        return self.fingerprint_data is not None

    def confirm(self, value: Optional[float] = None,
                series_id: Optional[str] = None) -> None:
        """
        Record a manual edit

        The record leaves the automatic pipeline for good: it moves to
        HUMAN_CONFIRMED and no pass selects it again.
        """
        if value is not None:
            self.value = value
        if series_id is not None:
            self.series_id = series_id
        self.human_confirmed = True
        self.state = ProcessingState.HUMAN_CONFIRMED

    def copy(self) -> 'ScreenshotRecord':
        """Shallow copy, used by the store to hand out snapshots"""
        return replace(self)
