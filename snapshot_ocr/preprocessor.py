"""
Image preprocessing module

Prepares screenshots for OCR and fingerprinting:
- Decoding from bytes or file (Pillow, with an OpenCV fallback)
- Exif orientation handling
- Downscaling of oversized images to a maximum dimension
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image as PILImage
from PIL import ImageOps

from .errors import InvalidImage

logger = logging.getLogger(__name__)


@dataclass
class PreprocessConfig:
    """Preprocessing settings"""
    max_dimension: int = 4096  # longest side in pixels
    auto_orientation: bool = True  # apply the Exif orientation tag


@dataclass
class PreprocessResult:
    """Preprocessing result"""
    image: np.ndarray
    original_size: Tuple[int, int]  # (width, height)
    processed_size: Tuple[int, int]
    scale: float = 1.0
    preprocessing_applied: List[str] = field(default_factory=list)


class ImagePreprocessor:
    """Image preprocessing class"""

    def __init__(self, config: Optional[PreprocessConfig] = None):
        self.config = config or PreprocessConfig()

    def decode(self, data: bytes) -> np.ndarray:
        """
        Decode image bytes (Exif orientation aware)

        Args:
            data: encoded image (PNG, JPEG, HEIF if a plugin is installed, ...)

        Returns:
            BGR numpy array, upright

        Raises:
            InvalidImage: the bytes are not a decodable image
        """
        if not data:
            raise InvalidImage("Invalid image data: empty")

        if self.config.auto_orientation:
            try:
                with PILImage.open(io.BytesIO(data)) as pil_image:
                    pil_image = ImageOps.exif_transpose(pil_image)
                    return _pil_to_bgr(pil_image)
            except Exception as e:
                # Pillow reports broken chunks as SyntaxError; fall back to OpenCV below
                logger.debug("Pillow could not decode image: %s", e)

        buffer = np.frombuffer(data, dtype=np.uint8)
        try:
            image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        except cv2.error as e:
            raise InvalidImage(f"Invalid image data: {e}") from e
        if image is None:
            raise InvalidImage("Invalid image data")
        return image

    def load_image(self, image_path: Union[str, Path]) -> np.ndarray:
        """
        Read an image file

        Raises:
            FileNotFoundError: the file does not exist
            InvalidImage: the file is not a decodable image
        """
        path = Path(image_path)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {image_path}")
        return self.decode(path.read_bytes())

    def process(self, image: np.ndarray) -> PreprocessResult:
        """
        Downscale an image whose longest side exceeds max_dimension

        Images within the limit are returned unchanged (same array).

        Args:
            image: input image (BGR or grayscale)

        Returns:
            PreprocessResult: preprocessing result
        """
        if image is None or image.size == 0:
            raise InvalidImage("Invalid image data: empty image")

        h, w = image.shape[:2]
        original_size = (w, h)
        preprocessing_applied = []
        scale = 1.0

        max_dim = max(h, w)
        if max_dim > self.config.max_dimension:
            scale = self.config.max_dimension / max_dim
            # the longest side lands exactly on max_dimension
            if w >= h:
                new_width = self.config.max_dimension
                new_height = max(1, round(h * scale))
            else:
                new_height = self.config.max_dimension
                new_width = max(1, round(w * scale))
            image = cv2.resize(image, (new_width, new_height),
                               interpolation=cv2.INTER_AREA)
            preprocessing_applied.append(f"downscale({scale:.3f})")
            logger.debug("Downscaled image %sx%s -> %sx%s",
                         w, h, new_width, new_height)

        return PreprocessResult(
            image=image,
            original_size=original_size,
            processed_size=(image.shape[1], image.shape[0]),
            scale=scale,
            preprocessing_applied=preprocessing_applied,
        )

    def process_bytes(self, data: bytes) -> PreprocessResult:
        """Decode image bytes and preprocess them"""
        return self.process(self.decode(data))

    def process_file(self, image_path: Union[str, Path]) -> PreprocessResult:
        """
        Read an image file and preprocess it

        Args:
            image_path: image file path

        Returns:
            PreprocessResult: preprocessing result
        """
        image = self.load_image(image_path)
        return self.process(image)


def _pil_to_bgr(pil_image: PILImage.Image) -> np.ndarray:
    """Convert a Pillow image to a BGR numpy array"""
    if pil_image.mode == 'RGB':
        return cv2.cvtColor(np.array(pil_image), cv2.COLOR_RGB2BGR)
    if pil_image.mode == 'RGBA':
        return cv2.cvtColor(np.array(pil_image), cv2.COLOR_RGBA2BGR)
    if pil_image.mode == 'L':
        return cv2.cvtColor(np.array(pil_image), cv2.COLOR_GRAY2BGR)
    return cv2.cvtColor(np.array(pil_image.convert('RGB')), cv2.COLOR_RGB2BGR)


def preprocess_image(image_path: str,
                     config: Optional[PreprocessConfig] = None) -> PreprocessResult:
    """
    Shortcut: preprocess an image file

    Args:
        image_path: image file path
        config: preprocessing settings (defaults when omitted)

    Returns:
        PreprocessResult: preprocessing result
    """
    preprocessor = ImagePreprocessor(config)
    return preprocessor.process_file(image_path)
