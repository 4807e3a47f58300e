"""
Error definitions

Error taxonomy of the extraction / matching pipeline:
- InvalidImage: image bytes could not be decoded
- CollaboratorFailure: OCR or fingerprint engine call failed
- ParseFailure / OutOfRange: text is not a usable monetary value
- RevisionMismatch: fingerprints of different revisions were compared
- NoValueDetected: no candidate survived scoring
"""


class SnapshotOCRError(Exception):
    """Base class of all pipeline errors"""


class InvalidImage(SnapshotOCRError, ValueError):
    """The image could not be decoded"""


class CollaboratorFailure(SnapshotOCRError, RuntimeError):
    """An OCR or fingerprint engine call failed"""

    def __init__(self, engine_name: str, message: str):
        super().__init__(f"{engine_name} failed: {message}")
        self.engine_name = engine_name


class CurrencyParseError(SnapshotOCRError, ValueError):
    """Text could not be turned into a monetary value"""


class ParseFailure(CurrencyParseError):
    """Cleaned text is not a number"""


class OutOfRange(CurrencyParseError):
    """Parsed number is negative, not finite or too large"""


class RevisionMismatch(SnapshotOCRError, ValueError):
    """Fingerprints of different revisions cannot be compared"""

    def __init__(self, left: int, right: int):
        super().__init__(f"fingerprint revision mismatch: {left} != {right}")
        self.left = left
        self.right = right


class NoValueDetected(SnapshotOCRError):
    """No monetary value candidate survived scoring"""

    def __init__(self, message: str = "No monetary value detected in screenshot"):
        super().__init__(message)


__all__ = [
    'SnapshotOCRError',
    'InvalidImage',
    'CollaboratorFailure',
    'CurrencyParseError',
    'ParseFailure',
    'OutOfRange',
    'RevisionMismatch',
    'NoValueDetected',
]
