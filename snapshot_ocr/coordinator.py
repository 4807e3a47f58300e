"""
Pipeline coordinator

Drives records through the processing state machine with three
independent passes over the record store:
1. Fingerprint generation
2. Value extraction (OCR, ranking, parsing, scoring)
3. Series matching

pending -> analyzing -> partial / full, any automatic state -> failed,
any state -> human_confirmed (terminal).

Every pass is safe to run repeatedly. Each record is re-read, processed
and saved inside its own exclusive section, and one record's failure
never stops the pass.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .analysis import ScreenshotAnalyzer
from .engines import EngineType, create_engine, create_fingerprint_engine
from .engines.base import BaseFingerprintEngine, BaseOCREngine
from .engines.feature_print import FeaturePrintConfig
from .engines.paddle_engine import PaddleOCRConfig
from .engines.tesseract_engine import TesseractConfig
from .errors import CollaboratorFailure, SnapshotOCRError
from .matching import MatchingConfig, SeriesMatcher
from .models import ProcessingState, ScreenshotRecord
from .preprocessor import ImagePreprocessor, PreprocessConfig
from .prominence import ProminenceRanker
from .scoring import CandidateScorer, DetectionWeights
from .store import (
    RecordNotFound,
    RecordStore,
    needs_fingerprint,
    needs_series,
    needs_value,
)

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Pipeline settings"""
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    detection: DetectionWeights = field(default_factory=DetectionWeights)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    tesseract: TesseractConfig = field(default_factory=TesseractConfig)
    paddle: PaddleOCRConfig = field(default_factory=PaddleOCRConfig)
    feature_print: FeaturePrintConfig = field(default_factory=FeaturePrintConfig)
    engine_type: EngineType = EngineType.TESSERACT  # OCR engine to use


@dataclass
class PassReport:
    """Outcome counts of one pass"""
    name: str
    selected: int = 0
    succeeded: int = 0
    failed: int = 0
    unchanged: int = 0  # skipped or nothing to change

    def __str__(self) -> str:
        return (f"{self.name}: {self.selected} selected, {self.succeeded} succeeded, "
                f"{self.failed} failed, {self.unchanged} unchanged")


class PipelineCoordinator:
    """Runs the processing passes over a record store"""

    def __init__(self, store: RecordStore,
                 ocr_engine: Optional[BaseOCREngine] = None,
                 fingerprint_engine: Optional[BaseFingerprintEngine] = None,
                 config: Optional[PipelineConfig] = None):
        self.store = store
        self.config = config or PipelineConfig()

        # engines are created on first use when not injected
        self._ocr_engine = ocr_engine
        self._fingerprint_engine = fingerprint_engine
        self._engine_lock = threading.Lock()

        self.preprocessor = ImagePreprocessor(self.config.preprocess)
        self.ranker = ProminenceRanker()
        self.scorer = CandidateScorer(self.config.detection)

        self._pass_locks: Dict[str, threading.Lock] = {
            "fingerprint": threading.Lock(),
            "extraction": threading.Lock(),
            "matching": threading.Lock(),
        }

    # --- engines ---

    @property
    def ocr_engine(self) -> BaseOCREngine:
        with self._engine_lock:
            if self._ocr_engine is None:
                self._ocr_engine = self._create_ocr_engine(self.config.engine_type)
            return self._ocr_engine

    @property
    def fingerprint_engine(self) -> BaseFingerprintEngine:
        with self._engine_lock:
            if self._fingerprint_engine is None:
                self._fingerprint_engine = create_fingerprint_engine(
                    config=self.config.feature_print)
            return self._fingerprint_engine

    def _create_ocr_engine(self, engine_type: EngineType) -> BaseOCREngine:
        logger.info("Initializing %s engine", engine_type.display_name)
        if engine_type == EngineType.PADDLEOCR:
            engine = create_engine(engine_type, config=self.config.paddle)
            if engine.is_available:
                return engine
            logger.warning("%s is not available, falling back to Tesseract",
                           engine_type.display_name)
        return create_engine(EngineType.TESSERACT, config=self.config.tesseract)

    # --- passes ---

    def generate_missing_fingerprints(self) -> PassReport:
        """
        Fingerprint every record with an image and no descriptor

        A failed generation leaves the record untouched, so the next run
        retries it.
        """
        with self._pass_locks["fingerprint"]:
            return self._run_pass(
                "fingerprint",
                self.store.needing_fingerprint(),
                needs_fingerprint,
                self._fingerprint_record,
            )

    def extract_pending_values(self) -> PassReport:
        """
        Extract the monetary value of every record not yet attempted

        The attempt is recorded before OCR runs, so failures are not
        retried automatically.
        """
        with self._pass_locks["extraction"]:
            return self._run_pass(
                "extraction",
                self.store.needing_value(),
                needs_value,
                self._extract_record,
            )

    def match_unassigned_series(self) -> PassReport:
        """Assign a series to fingerprinted records that have none"""
        with self._pass_locks["matching"]:
            matcher = SeriesMatcher(self.fingerprint_engine, self.config.matching)
            history = self.store.fingerprinted()
            return self._run_pass(
                "matching",
                self.store.needing_series(),
                needs_series,
                lambda record: self._match_record(record, matcher, history),
            )

    def run_all(self) -> List[PassReport]:
        """Fingerprint, extract, then match"""
        return [
            self.generate_missing_fingerprints(),
            self.extract_pending_values(),
            self.match_unassigned_series(),
        ]

    def _run_pass(self, name: str, selected: List[ScreenshotRecord],
                  eligible: Callable[[ScreenshotRecord], bool],
                  process: Callable[[ScreenshotRecord], Optional[bool]]) -> PassReport:
        """
        Process the selected records one at a time

        process() returns True on success, False on a handled failure and
        None when the record was left unchanged.
        """
        report = PassReport(name=name, selected=len(selected))

        for snapshot in selected:
            with self.store.locked(snapshot.id):
                try:
                    record = self.store.get(snapshot.id)
                except RecordNotFound:
                    report.unchanged += 1
                    continue

                # eligibility re-checked under the lock
                if not eligible(record):
                    logger.debug("%s: record %s no longer eligible", name, record.id)
                    report.unchanged += 1
                    continue

                try:
                    outcome = process(record)
                except RecordNotFound:
                    logger.info("%s: record %s was deleted while processing", name, record.id)
                    outcome = None
                except Exception:
                    logger.exception("%s: unexpected error on record %s", name, record.id)
                    outcome = False

            if outcome is True:
                report.succeeded += 1
            elif outcome is False:
                report.failed += 1
            else:
                report.unchanged += 1

        if report.selected:
            logger.info("%s", report)
        return report

    # --- per-record steps (called with the record lock held) ---

    def _fingerprint_record(self, record: ScreenshotRecord) -> bool:
        # failures are not persisted, the record stays selectable
        try:
            image = self.preprocessor.process_bytes(record.source_image).image
            analysis = self._generate_fingerprint(image)
        except SnapshotOCRError as e:
            logger.warning("Fingerprint failed for record %s: %s", record.id, e)
            return False

        record.fingerprint_data = analysis.descriptor
        record.fingerprint_revision = analysis.revision
        self.store.save(record)
        logger.debug("Fingerprinted record %s (revision %d)", record.id, analysis.revision)
        return True

    def _generate_fingerprint(self, image):
        engine = self.fingerprint_engine
        try:
            return engine.generate(image)
        except CollaboratorFailure:
            raise
        except Exception as e:
            raise CollaboratorFailure(engine.name, str(e)) from e

    def _extract_record(self, record: ScreenshotRecord) -> bool:
        record.value_extraction_attempted = True
        record.state = ProcessingState.ANALYZING
        self.store.save(record)

        try:
            analyzer = ScreenshotAnalyzer(self.ocr_engine, self.preprocessor,
                                          self.ranker, self.scorer)
            outcome = analyzer.analyze(record.source_image)
        except SnapshotOCRError as e:
            logger.warning("Extraction failed for record %s: %s", record.id, e)
            self._mark_failed(record, str(e))
            return False
        except Exception as e:
            logger.exception("Unexpected error extracting record %s", record.id)
            self._mark_failed(record, f"{type(e).__name__}: {e}")
            return False

        candidate = outcome.candidate
        record.value = candidate.value
        record.extracted_value = candidate.value
        record.extracted_text = candidate.text
        record.analysis_confidence = candidate.confidence
        record.analysis_date = datetime.now()
        record.analysis_error = None
        record.state = (ProcessingState.FULL if record.series_id is not None
                        else ProcessingState.PARTIAL)
        self.store.save(record)
        logger.debug("Record %s: value %s from %r (score %.3f)",
                     record.id, candidate.value, candidate.text, candidate.score)
        return True

    def _mark_failed(self, record: ScreenshotRecord, message: str) -> None:
        record.state = ProcessingState.FAILED
        record.analysis_error = message
        record.analysis_date = datetime.now()
        self.store.save(record)

    def _match_record(self, record: ScreenshotRecord, matcher: SeriesMatcher,
                      history: List[ScreenshotRecord]) -> Optional[bool]:
        series_id = matcher.match(record, history)
        if series_id is None:
            return None

        record.series_id = series_id
        if record.state == ProcessingState.PARTIAL:
            record.state = ProcessingState.FULL
        self.store.save(record)
        logger.debug("Record %s assigned to series %s", record.id, series_id)

        # later records in this pass compare against the assignment
        for index, member in enumerate(history):
            if member.id == record.id:
                history[index] = record.copy()
                break
        else:
            history.append(record.copy())
        return True


__all__ = [
    'PipelineConfig',
    'PassReport',
    'PipelineCoordinator',
]
