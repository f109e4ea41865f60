"""Masking engine: manual rules first, then pattern detectors.

Usage:
    from contract_guard import MaskRule, compute_masking, unmask

    rules = [MaskRule("1", "TechCorp", "[PARTY_A]")]
    result = compute_masking("TechCorp pays $5,000.", rules, {"money"})
    print(result.masked_text)     # "[PARTY_A] pays [AMOUNT_1]."

    print(unmask(result.masked_text, result.placeholder_map))
    # "TechCorp pays $5,000."
"""

from __future__ import annotations
import logging
import re
from typing import Iterable

from .patterns import enabled_in_order
from .types import MaskingResult, MaskRule

logger = logging.getLogger(__name__)

# Both bracket widths match either width, so a rule captured as
# "ABC（北京）公司" also masks "ABC(北京)公司".
_OPEN_BRACKETS = "(（"
_CLOSE_BRACKETS = ")）"


def build_rule_pattern(target: str) -> re.Pattern:
    """Literal pattern for a rule target, bracket-width insensitive."""
    parts: list[str] = []
    for ch in target:
        if ch in _OPEN_BRACKETS:
            parts.append(r"[(（]")
        elif ch in _CLOSE_BRACKETS:
            parts.append(r"[)）]")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts))


def compute_masking(
    original: str,
    rules: Iterable[MaskRule],
    enabled_detector_ids: set[str] | frozenset[str],
) -> MaskingResult:
    """Mask original text.  Pure and deterministic for fixed inputs.

    1. Manual rules, longest target first (stable for equal lengths), each
       replaced globally; rules with no match are left out of the map.
    2. Enabled detectors in catalog order over the partially masked text,
       numbering placeholders per detector from 1.
    """
    text = original
    placeholder_map: dict[str, str] = {}
    total = 0

    # --- Manual rules ---
    for rule in sorted(rules, key=lambda r: len(r.target), reverse=True):
        if not rule.target:
            continue
        placeholder = rule.placeholder
        text, count = build_rule_pattern(rule.target).subn(lambda _m: placeholder, text)
        if not count:
            logger.debug("mask rule %s matched nothing, skipped", rule.id)
            continue
        placeholder_map[placeholder] = rule.target
        total += count

    # --- Pattern detectors ---
    for detector in enabled_in_order(enabled_detector_ids):
        counter = 0

        def _replace(m: re.Match, detector=detector) -> str:
            nonlocal counter
            counter += 1
            placeholder = detector.placeholder(counter)
            placeholder_map[placeholder] = m.group()
            return placeholder

        text = detector.pattern.sub(_replace, text)
        if counter:
            logger.debug("detector %s masked %d span(s)", detector.id, counter)
        total += counter

    return MaskingResult(masked_text=text, placeholder_map=placeholder_map, total_replacements=total)
