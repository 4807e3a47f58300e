"""
Engine module

OCR engines (Tesseract, PaddleOCR) and the fingerprint engine behind one
interface each.
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import BaseOCREngine, BaseFingerprintEngine


class EngineType(Enum):
    """OCR engine type"""
    TESSERACT = "tesseract"      # Tesseract OCR (default)
    PADDLEOCR = "paddleocr"      # PaddleOCR (optional extra)

    @classmethod
    def from_string(cls, value: str) -> 'EngineType':
        """Look up an EngineType by its string value"""
        value_lower = value.lower()
        for engine_type in cls:
            if engine_type.value == value_lower:
                return engine_type
        raise ValueError(f"Unknown engine type: {value}")

    @property
    def display_name(self) -> str:
        names = {
            EngineType.TESSERACT: "Tesseract",
            EngineType.PADDLEOCR: "PaddleOCR",
        }
        return names.get(self, self.value)


def get_available_engines() -> list:
    """List the engine types whose backends are importable"""
    # Tesseract is assumed to be installed
    available = [EngineType.TESSERACT]

    try:
        import paddleocr  # noqa: F401
        available.append(EngineType.PADDLEOCR)
    except ImportError:
        pass

    return available


def create_engine(engine_type: EngineType, **kwargs) -> 'BaseOCREngine':
    """
    Create an OCR engine

    Args:
        engine_type: engine type
        **kwargs: engine specific options

    Returns:
        BaseOCREngine: engine instance
    """
    if engine_type == EngineType.TESSERACT:
        from .tesseract_engine import TesseractEngine
        return TesseractEngine(**kwargs)

    elif engine_type == EngineType.PADDLEOCR:
        from .paddle_engine import PaddleOCREngine
        return PaddleOCREngine(**kwargs)

    else:
        raise ValueError(f"Unknown engine type: {engine_type}")


def create_fingerprint_engine(**kwargs) -> 'BaseFingerprintEngine':
    """Create the fingerprint engine"""
    from .feature_print import FeaturePrintEngine
    return FeaturePrintEngine(**kwargs)


__all__ = [
    'EngineType',
    'get_available_engines',
    'create_engine',
    'create_fingerprint_engine',
]
