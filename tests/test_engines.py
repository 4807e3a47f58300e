"""
Engine adapter tests (no OCR binaries required)
"""

import pytest
import sys
from pathlib import Path

import numpy as np
import pytesseract

sys.path.insert(0, str(Path(__file__).parent.parent))

from snapshot_ocr.engines import EngineType, create_engine, get_available_engines
from snapshot_ocr.engines.base import NormalizedRect, Orientation, apply_orientation
from snapshot_ocr.engines.paddle_engine import PaddleOCREngine
from snapshot_ocr.engines.tesseract_engine import TesseractConfig, TesseractEngine
from snapshot_ocr.errors import CollaboratorFailure


@pytest.fixture
def offline_tesseract(monkeypatch):
    def missing():
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(pytesseract, "get_tesseract_version", missing)
    return TesseractEngine()


class TestEngineType:
    """Engine registry"""

    def test_from_string(self):
        assert EngineType.from_string("Tesseract") == EngineType.TESSERACT
        assert EngineType.from_string("paddleocr") == EngineType.PADDLEOCR

    def test_unknown(self):
        with pytest.raises(ValueError):
            EngineType.from_string("vision")

    def test_display_name(self):
        assert EngineType.PADDLEOCR.display_name == "PaddleOCR"

    def test_create_tesseract(self, offline_tesseract):
        engine = create_engine(EngineType.TESSERACT, language="eng")
        assert isinstance(engine, TesseractEngine)
        assert engine.config.language == "eng"

    def test_available_without_paddle(self, monkeypatch):
        # a None entry makes the import fail
        monkeypatch.setitem(sys.modules, "paddleocr", None)
        assert get_available_engines() == [EngineType.TESSERACT]


class TestNormalizedRect:
    """Coordinate conversion"""

    def test_from_pixels_flips_origin(self):
        rect = NormalizedRect.from_pixels(10, 20, 30, 40, 100, 200)
        assert rect.x == pytest.approx(0.1)
        assert rect.width == pytest.approx(0.3)
        assert rect.height == pytest.approx(0.2)
        # bottom edge at 60 px from the top -> 0.7 from the bottom
        assert rect.y == pytest.approx(0.7)

    def test_from_points(self):
        rect = NormalizedRect.from_points([[10, 20], [40, 20], [40, 60], [10, 60]], 100, 200)
        assert rect.height == pytest.approx(0.2)
        assert rect.max_x == pytest.approx(0.4)

    def test_degenerate_image(self):
        assert NormalizedRect.from_pixels(1, 1, 1, 1, 0, 0).height == 0.0


class TestOrientation:
    """Rotation to upright"""

    @pytest.mark.parametrize("orientation, shape", [
        (Orientation.UP, (20, 40)),
        (Orientation.DOWN, (20, 40)),
        (Orientation.LEFT, (40, 20)),
        (Orientation.RIGHT, (40, 20)),
    ])
    def test_shapes(self, orientation, shape):
        image = np.zeros((20, 40), dtype=np.uint8)
        assert apply_orientation(image, orientation).shape == shape


class TestTesseractEngine:
    """Tesseract adapter"""

    def test_unavailable_raises(self, offline_tesseract):
        assert not offline_tesseract.is_available
        with pytest.raises(CollaboratorFailure):
            offline_tesseract.recognize(np.zeros((10, 10), dtype=np.uint8))

    def test_config_string(self, offline_tesseract):
        offline_tesseract.config.custom_config = "-c preserve_interword_spaces=1"
        assert offline_tesseract._build_config() == "--oem 1 --psm 11 -c preserve_interword_spaces=1"

    def test_words_grouped_into_lines(self, offline_tesseract):
        data = {
            'text': ["Balance", "", "$1,234.56", "EUR", "noise"],
            'conf': [96, -1, 88, 91, -1],
            'block_num': [1, 1, 2, 2, 3],
            'par_num': [1, 1, 1, 1, 1],
            'line_num': [1, 1, 1, 1, 1],
            'left': [10, 0, 10, 120, 0],
            'top': [10, 0, 50, 52, 0],
            'width': [80, 0, 100, 30, 5],
            'height': [10, 0, 30, 20, 5],
        }
        observations = offline_tesseract._build_line_observations(data, 200, 100)

        assert [o.text for o in observations] == ["Balance", "$1,234.56 EUR"]
        assert observations[1].confidence == pytest.approx(0.88)
        assert observations[1].bbox.height == pytest.approx(0.3)
        assert observations[1].bbox.width == pytest.approx(0.7)

    def test_custom_config(self, offline_tesseract):
        engine = TesseractEngine(TesseractConfig(language="deu"))
        assert engine.config.language == "deu"


class TestPaddleOCREngine:
    """PaddleOCR adapter result parsing"""

    @pytest.fixture
    def engine(self, monkeypatch):
        monkeypatch.setattr(PaddleOCREngine, "_initialize", lambda self: False)
        return PaddleOCREngine()

    def test_unavailable_raises(self, engine):
        with pytest.raises(CollaboratorFailure):
            engine.recognize(np.zeros((10, 10, 3), dtype=np.uint8))

    def test_parse_predict_result(self, engine):
        result = [{
            'rec_texts': ["Total", "$99.00"],
            'rec_scores': [0.98, 0.91],
            'dt_polys': [
                np.array([[0, 0], [10, 0], [10, 5], [0, 5]]),
                np.array([[0, 10], [30, 10], [30, 25], [0, 25]]),
            ],
        }]
        parsed = engine._parse_predict_result(result)

        assert [text for _, text, _ in parsed] == ["Total", "$99.00"]
        assert parsed[1][0] == [[0, 10], [30, 10], [30, 25], [0, 25]]
        assert parsed[1][2] == pytest.approx(0.91)

    def test_parse_empty(self, engine):
        assert engine._parse_predict_result(None) == []
