"""snapshot-ocr: monetary values and series from banking screenshots"""

__version__ = "0.1.0"

from .analysis import AnalysisOutcome, ScreenshotAnalyzer
from .coordinator import PassReport, PipelineConfig, PipelineCoordinator
from .currency import CurrencyParser
from .matching import SeriesMatcher
from .models import ProcessingState, ScreenshotRecord, Series
from .preprocessor import ImagePreprocessor
from .prominence import ProminenceRanker
from .scoring import CandidateScorer, DetectionCandidate
from .series_manager import SeriesManager
from .store import RecordStore

__all__ = [
    "AnalysisOutcome",
    "ScreenshotAnalyzer",
    "PassReport",
    "PipelineConfig",
    "PipelineCoordinator",
    "CurrencyParser",
    "SeriesMatcher",
    "ProcessingState",
    "ScreenshotRecord",
    "Series",
    "ImagePreprocessor",
    "ProminenceRanker",
    "CandidateScorer",
    "DetectionCandidate",
    "SeriesManager",
    "RecordStore",
]
