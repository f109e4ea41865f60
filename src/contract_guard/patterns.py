"""Built-in pattern detectors for structured sensitive data.

Detectors run in catalog order against text that earlier rules and
detectors have already masked, so an earlier detector wins any span it
claims.  Numeric detectors are digit-anchored (``(?<!\\d)`` / ``(?!\\d)``)
so that a short pattern never bites a piece out of a longer digit run.
"""

from __future__ import annotations
import re
from dataclasses import dataclass

from .errors import UnknownDetectorError


@dataclass(frozen=True, slots=True)
class PatternDetector:
    """A named, toggleable recognizer with its placeholder prefix."""
    id: str
    label: str
    pattern: re.Pattern
    prefix: str                  # e.g. "[AMOUNT_" → "[AMOUNT_1]"
    default_enabled: bool = True

    def placeholder(self, n: int) -> str:
        return f"{self.prefix}{n}]"


_NUMBER = r"(?:[1-9]\d{0,2}(?:,\d{3})+|\d+)(?:\.\d{1,2})?"

_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?"

CATALOG: tuple[PatternDetector, ...] = (
    # Money: currency symbol/code first, or a Chinese/English unit after
    PatternDetector("money", "金额 (Money)", re.compile(
        r"(?:RMB|CNY|¥|￥|\$|€|£)\s?" + _NUMBER
        + r"|(?<![\d.,])" + _NUMBER
        + r"\s?(?:万元|亿元|元|万|亿|美元|美金|USD|Dollars)",
        re.IGNORECASE,
    ), "[AMOUNT_"),

    # Email
    PatternDetector("email", "电子邮箱 (Email)", re.compile(
        r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}"
    ), "[EMAIL_"),

    # Dates: 2024-01-31, 2024/1/31, 2024.1.31, 2024年1月31日, 31 Jan 2024, January 31, 2024
    PatternDetector("date", "日期 (Date)", re.compile(
        r"(?<!\d)\d{4}[-/.年]\d{1,2}[-/.月]\d{1,2}日?(?!\d)"
        r"|(?<!\d)\d{1,2}(?:st|nd|rd|th)?\s+" + _MONTH + r",?\s+\d{4}(?!\d)"
        r"|\b" + _MONTH + r"\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}(?!\d)",
        re.IGNORECASE,
    ), "[DATE_"),

    # Phone / ID: CN mobile (+86 optional), landline 010-12345678, 15/18-digit ID card.
    # Runs before bank cards: an exact 15/18-digit run is taken as an ID number.
    PatternDetector("phone", "电话/证件 (Tel/ID)", re.compile(
        r"(?<!\d)(?:\+?86[\s\-]?)?1[3-9]\d{9}(?!\d)"
        r"|(?<!\d)\d{3,4}\s*-\s*\d{7,8}(?!\d)"
        r"|(?<!\d)(?:\d{17}[\dXx]|\d{15})(?!\d)"
    ), "[PHONE_"),

    # Bank card: 13 to 30 digits, contiguous or in 4-digit groups split by space/dash
    PatternDetector("bank", "银行卡号 (Bank Card)", re.compile(
        r"(?<!\d)(?:\d{4}(?:[\- ]\d{4}){2}(?:[\- ]\d{1,4}){1,4}|\d{13,30})(?!\d)"
    ), "[BANK_"),

    # Company: name ending in a legal-entity suffix; broad, so off by default
    PatternDetector("company", "公司名称 (Company)", re.compile(
        r"[\u4e00-\u9fa5A-Za-z0-9（）() \t]{2,50}"
        r"(?:有限公司|责任公司|集团|分公司|Co\.,\s?Ltd\.?|Inc\.|Corp\.)"
    ), "[COMPANY_", default_enabled=False),
)

_BY_ID: dict[str, PatternDetector] = {d.id: d for d in CATALOG}

DEFAULT_ENABLED: frozenset[str] = frozenset(d.id for d in CATALOG if d.default_enabled)


def detector_ids() -> list[str]:
    """All detector ids, in catalog (application) order."""
    return [d.id for d in CATALOG]


def get_detector(detector_id: str) -> PatternDetector:
    try:
        return _BY_ID[detector_id]
    except KeyError:
        raise UnknownDetectorError(detector_id) from None


def enabled_in_order(enabled_ids: set[str] | frozenset[str]) -> list[PatternDetector]:
    """Resolve an enabled-id set to detectors in catalog order.

    Raises UnknownDetectorError for ids not in the catalog.
    """
    for detector_id in enabled_ids:
        get_detector(detector_id)
    return [d for d in CATALOG if d.id in enabled_ids]
