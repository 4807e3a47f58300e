"""
Currency parsing module

Turns locale-ambiguous amounts into floats:
- US ($1,234.56), European (1.234,56 EUR) and Swiss (1'234.56 CHF) formats
- Currency symbol / ISO code detection
- Number format quality assessment used by the candidate scorer
"""

import math
import re
from typing import Optional

from .errors import OutOfRange, ParseFailure

CURRENCY_SYMBOLS = "$€£¥₹₽¢₣₤₧₨₩₪₫₱₡₭₮₴₵₸₺₼₾₿"
CURRENCY_CODES = ("USD", "EUR", "GBP", "CHF", "JPY", "CNY", "CAD", "AUD", "NZD")

SYMBOL_PATTERN = re.compile(f"[{re.escape(CURRENCY_SYMBOLS)}]")
CODE_PATTERN = re.compile(r"\b(?:" + "|".join(CURRENCY_CODES) + r")\b")

# exactly two digits after the only comma, at the end of the text
DECIMAL_COMMA_PATTERN = re.compile(r",\d{2}$")
NON_NUMERIC_PATTERN = re.compile(r"[^0-9.]")

# exclusive upper bound for monetary values
MAX_VALUE = 1_000_000_000_000


class CurrencyParser:
    """Currency string parser"""

    def parse(self, text: str) -> float:
        """
        Parse a currency string

        Args:
            text: OCR text such as "$1,234.56" or "1.234,56 EUR"

        Returns:
            float: the amount

        Raises:
            ParseFailure: no number could be read
            OutOfRange: negative, not finite, or >= 10^12
        """
        cleaned = self.clean(text or "")

        try:
            value = float(cleaned)
        except ValueError:
            raise ParseFailure(f"Not a monetary value: {text!r}") from None

        if not math.isfinite(value) or value < 0 or value >= MAX_VALUE:
            raise OutOfRange(f"Monetary value out of range: {text!r}")

        return value

    def try_parse(self, text: str) -> Optional[float]:
        """Like parse(), but returns None instead of raising"""
        try:
            return self.parse(text)
        except (ParseFailure, OutOfRange):
            return None

    def clean(self, text: str) -> str:
        """Reduce text to a canonical decimal string ("1234.56")"""
        # 1. Currency symbols and codes
        cleaned = SYMBOL_PATTERN.sub("", text)
        cleaned = CODE_PATTERN.sub("", cleaned)

        # 2. Whitespace
        cleaned = cleaned.strip()

        # 3. Decimal vs. thousands separators
        last_dot = cleaned.rfind(".")
        last_comma = cleaned.rfind(",")

        if last_dot >= 0 and last_comma >= 0:
            if last_comma > last_dot:
                # European: 1.234,56
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                # US: 1,234.56
                cleaned = cleaned.replace(",", "")
        elif last_comma >= 0:
            if cleaned.count(",") == 1 and DECIMAL_COMMA_PATTERN.search(cleaned):
                # decimal comma: 12,50 / 1'234,50
                cleaned = cleaned.replace("'", "").replace(",", ".")
            else:
                # thousands: 1,234 / 1,234,567
                cleaned = cleaned.replace(",", "")
        else:
            # Swiss thousands separator
            cleaned = cleaned.replace("'", "")

        # 4. Digits, dots and a leading minus only
        negative = cleaned.startswith("-")
        cleaned = NON_NUMERIC_PATTERN.sub("", cleaned)
        if negative:
            cleaned = "-" + cleaned

        return cleaned


def detects_currency_symbol(text: str) -> bool:
    """True if the text carries a currency symbol or a 3-letter code"""
    if not text:
        return False
    return bool(SYMBOL_PATTERN.search(text) or CODE_PATTERN.search(text))


def assess_number_format(text: str) -> float:
    """
    Score how much a string looks like a formatted amount (0.0 - 1.0)

    - thousands separator (, or '): +0.4
    - decimal separator (. or ,): +0.3
    - 4 to 12 digits: +0.3
    """
    if not text:
        return 0.0

    score = 0.0
    if "," in text or "'" in text:
        score += 0.4
    if "." in text or "," in text:
        score += 0.3

    digit_count = sum(1 for c in text if c.isdigit())
    if 4 <= digit_count <= 12:
        score += 0.3

    return min(score, 1.0)


def parse_currency(text: str) -> Optional[float]:
    """Shortcut: parse a currency string, None when it is not an amount"""
    return CurrencyParser().try_parse(text)
