"""
Tesseract OCR engine

Text recognition with Tesseract (pytesseract):
- LSTM mode (--oem 1)
- Per-line confidence scores
- Bounding boxes normalized to [0, 1] with a bottom-left origin
- Word boxes merged into lines so that "$1,234.56" stays one fragment
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np
import pytesseract
from pytesseract import Output

from ..errors import CollaboratorFailure
from .base import (
    BaseOCREngine, NormalizedRect, Orientation, TextAnalysis, TextObservation,
    apply_orientation,
)


class OCRMode(Enum):
    """OCR engine mode"""
    LEGACY = 0          # legacy engine
    LSTM = 1            # LSTM engine (recommended)
    LEGACY_LSTM = 2
    DEFAULT = 3


class PageSegMode(Enum):
    """Page segmentation mode"""
    AUTO_ONLY = 2
    FULLY_AUTO = 3            # default
    SINGLE_COLUMN = 4
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SPARSE_TEXT = 11          # screenshots: scattered labels and values
    SPARSE_TEXT_OSD = 12


@dataclass
class TesseractConfig:
    """Tesseract settings"""
    language: str = "eng+deu+fra"
    oem: OCRMode = OCRMode.LSTM
    psm: PageSegMode = PageSegMode.SPARSE_TEXT
    custom_config: str = ""


class TesseractEngine(BaseOCREngine):
    """Tesseract OCR engine"""

    def __init__(self, config: Optional[TesseractConfig] = None, **kwargs):
        self.config = config or TesseractConfig()

        # kwargs override the config
        if 'language' in kwargs:
            self.config.language = kwargs['language']
        if 'psm' in kwargs:
            self.config.psm = kwargs['psm']

        self._tesseract_version = None
        self._available = self._verify_tesseract()

    @property
    def name(self) -> str:
        return "Tesseract"

    @property
    def is_available(self) -> bool:
        return self._available

    def _verify_tesseract(self) -> bool:
        """Check that the tesseract binary can be called"""
        try:
            version = pytesseract.get_tesseract_version()
            self._tesseract_version = str(version)
            return True
        except (pytesseract.TesseractNotFoundError, OSError):
            return False

    def _build_config(self) -> str:
        """Build the tesseract config string"""
        config_parts = [
            f"--oem {self.config.oem.value}",
            f"--psm {self.config.psm.value}",
        ]

        if self.config.custom_config:
            config_parts.append(self.config.custom_config)

        return " ".join(config_parts)

    def recognize(self, image: np.ndarray,
                  orientation: Orientation = Orientation.UP) -> TextAnalysis:
        """
        Recognize text in an image

        Args:
            image: preprocessed image (grayscale or BGR)
            orientation: orientation of the image content

        Returns:
            TextAnalysis: one observation per recognized line
        """
        start_time = time.time()

        if not self._available:
            raise CollaboratorFailure(self.name, "tesseract is not installed")

        image = apply_orientation(image, orientation)
        height, width = image.shape[:2]

        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.config.language,
                config=self._build_config(),
                output_type=Output.DICT
            )
        except (pytesseract.TesseractError, RuntimeError) as e:
            raise CollaboratorFailure(self.name, str(e)) from e

        observations = self._build_line_observations(data, width, height)

        return TextAnalysis(
            observations=observations,
            image_size=(width, height),
            engine_name=self.name,
            processing_time=time.time() - start_time,
        )

    def _build_line_observations(self, data: Dict[str, list],
                                 width: int, height: int) -> List[TextObservation]:
        """Group tesseract words by (block, paragraph, line) into observations"""
        lines: Dict[Tuple[int, int, int], List[int]] = {}
        for i in range(len(data['text'])):
            if not data['text'][i].strip():
                continue
            conf = float(data['conf'][i])
            if conf < 0:
                continue
            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            lines.setdefault(key, []).append(i)

        observations = []
        for key in sorted(lines):
            indices = sorted(lines[key], key=lambda i: data['left'][i])
            left = min(data['left'][i] for i in indices)
            top = min(data['top'][i] for i in indices)
            right = max(data['left'][i] + data['width'][i] for i in indices)
            bottom = max(data['top'][i] + data['height'][i] for i in indices)
            confs = [float(data['conf'][i]) for i in indices]

            observations.append(TextObservation(
                text=" ".join(data['text'][i].strip() for i in indices),
                # tesseract reports 0-100
                confidence=min(confs) / 100.0,
                bbox=NormalizedRect.from_pixels(
                    left, top, right - left, bottom - top, width, height
                ),
            ))

        return observations


# Public API
__all__ = [
    'TesseractEngine',
    'TesseractConfig',
    'OCRMode',
    'PageSegMode',
]
