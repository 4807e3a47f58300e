"""
Screenshot analyzer tests
"""

import json

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from snapshot_ocr.analysis import ScreenshotAnalyzer
from snapshot_ocr.engines.base import AnalysisKind, TextAnalysis
from snapshot_ocr.errors import CollaboratorFailure, InvalidImage, NoValueDetected
from snapshot_ocr.preprocessor import ImagePreprocessor, PreprocessConfig


class TestScreenshotAnalyzer:
    """Bytes to detected value"""

    def test_detects_balance(self, make_png, make_observation, ocr_engine_factory):
        engine = ocr_engine_factory([
            make_observation("Checking", 0.99, height=0.03, y=0.9),
            make_observation("$1,234.56", 0.9, height=0.06, y=0.7),
            make_observation("Last 30 days: $45.00", 0.95, height=0.02, y=0.2),
        ])
        outcome = ScreenshotAnalyzer(engine).analyze(make_png())

        assert outcome.candidate.value == pytest.approx(1234.56)
        assert outcome.candidate.text == "$1,234.56"
        assert outcome.fragments[0].priority == 1
        assert outcome.engine_name == "FakeOCR"

    def test_no_value(self, make_png, make_observation, ocr_engine_factory):
        engine = ocr_engine_factory([make_observation("Welcome back", 0.99)])
        with pytest.raises(NoValueDetected, match="No monetary value detected"):
            ScreenshotAnalyzer(engine).analyze(make_png())

    def test_nothing_recognized(self, make_png, ocr_engine_factory):
        with pytest.raises(NoValueDetected):
            ScreenshotAnalyzer(ocr_engine_factory([])).analyze(make_png())

    def test_invalid_image(self, ocr_engine_factory):
        engine = ocr_engine_factory()
        with pytest.raises(InvalidImage):
            ScreenshotAnalyzer(engine).analyze(b"\x00\x01")
        assert engine.calls == 0

    def test_engine_failure(self, make_png, ocr_engine_factory):
        engine = ocr_engine_factory(failing_widths={120})
        with pytest.raises(CollaboratorFailure):
            ScreenshotAnalyzer(engine).analyze(make_png(width=120))

    def test_unexpected_engine_error_wrapped(self, make_png, ocr_engine_factory):
        def explode(width):
            raise KeyError("internal")

        with pytest.raises(CollaboratorFailure) as exc_info:
            ScreenshotAnalyzer(ocr_engine_factory(explode)).analyze(make_png())
        assert exc_info.value.engine_name == "FakeOCR"

    def test_engine_sees_downscaled_image(self, make_png, make_observation, ocr_engine_factory):
        widths = []

        def record_width(width):
            widths.append(width)
            return [make_observation("$10.00")]

        preprocessor = ImagePreprocessor(PreprocessConfig(max_dimension=100))
        analyzer = ScreenshotAnalyzer(ocr_engine_factory(record_width), preprocessor=preprocessor)
        analyzer.analyze(make_png(width=120, height=400))

        assert widths == [30]

    def test_to_json(self, make_png, ocr_engine_factory):
        outcome = ScreenshotAnalyzer(ocr_engine_factory()).analyze(make_png())

        data = json.loads(outcome.to_json())
        assert data["value"] == pytest.approx(1234.56)
        assert "_debug" not in data

        debug = outcome.to_dict(debug=True)["_debug"]
        assert debug["fragments"][0]["text"] == "$1,234.56"


class TestTextAnalysis:
    """Result variants"""

    def test_kind_and_text(self, make_observation):
        analysis = TextAnalysis([make_observation("a"), make_observation("b")], (10, 10))
        assert analysis.kind == AnalysisKind.TEXT
        assert analysis.full_text == "a\nb"
