"""
Image metadata

Capture date of a screenshot, in order of preference:
1. EXIF DateTimeOriginal (when the picture was taken)
2. TIFF DateTime
3. File creation / modification time
"""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from PIL import Image as PILImage
from PIL import ExifTags

logger = logging.getLogger(__name__)

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

EXIF_IFD = ExifTags.IFD.Exif
TAG_DATETIME_ORIGINAL = ExifTags.Base.DateTimeOriginal
TAG_DATETIME = ExifTags.Base.DateTime


class ImageMetadataExtractor:
    """Reads capture dates from image metadata"""

    @classmethod
    def extract_date(cls, path: Union[str, Path]) -> Optional[datetime]:
        """Capture date of an image file, None if nothing is known"""
        path = Path(path)
        try:
            with PILImage.open(path) as image:
                date = cls._date_from_exif(image)
        except OSError as e:
            logger.debug("Cannot read metadata of %s: %s", path, e)
            date = None

        if date is not None:
            return date
        return cls._file_date(path)

    @classmethod
    def extract_date_from_bytes(cls, data: bytes) -> Optional[datetime]:
        """Capture date from in-memory image bytes (no file fallback)"""
        try:
            with PILImage.open(io.BytesIO(data)) as image:
                return cls._date_from_exif(image)
        except OSError:
            return None

    @classmethod
    def extract_date_with_fallback(cls, path: Union[str, Path]) -> datetime:
        return cls.extract_date(path) or datetime.now()

    @classmethod
    def _date_from_exif(cls, image: PILImage.Image) -> Optional[datetime]:
        exif = image.getexif()
        if not exif:
            return None

        original = exif.get_ifd(EXIF_IFD).get(TAG_DATETIME_ORIGINAL)
        date = parse_exif_date(original)
        if date is None:
            date = parse_exif_date(exif.get(TAG_DATETIME))
        return date

    @staticmethod
    def _file_date(path: Path) -> Optional[datetime]:
        try:
            stat = path.stat()
        except OSError:
            return None
        # st_birthtime only exists on macOS / BSD
        timestamp = getattr(stat, "st_birthtime", None) or stat.st_mtime
        return datetime.fromtimestamp(timestamp)


def parse_exif_date(value) -> Optional[datetime]:
    """Parse an EXIF "YYYY:MM:DD HH:MM:SS" string (local time)"""
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip().rstrip("\x00"), EXIF_DATE_FORMAT)
    except ValueError:
        return None
