"""RuleBook: the mask rules and enabled detectors of one masking workflow.

The rule list and the enabled-detector set are plain data: they come from
a management UI or a config file, and go back out via to_dict().
"""

from __future__ import annotations
import itertools
import logging
import time
from dataclasses import replace
from typing import Any

from .errors import RuleError
from .masking import compute_masking
from .patterns import DEFAULT_ENABLED, get_detector
from .types import MaskingResult, MaskRule

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


def _new_rule_id() -> str:
    return f"{int(time.time() * 1000)}-{next(_ids)}"


class RuleBook:
    """Mask-rule list plus enabled-detector set.

    Rule identity is ``id``; ``target`` is also a de-duplication key, so
    adding a rule for an existing target replaces the old rule.
    """

    __slots__ = ("_rules", "_enabled")

    def __init__(
        self,
        rules: list[MaskRule] | None = None,
        enabled: set[str] | frozenset[str] | None = None,
    ) -> None:
        self._rules: list[MaskRule] = []
        self._enabled: set[str] = set()
        for rule in rules or []:
            self.add_rule(rule.target, rule.placeholder, rule_id=rule.id)
        for detector_id in DEFAULT_ENABLED if enabled is None else enabled:
            self.enable(detector_id)

    # ------------------------------------------------------------------
    # Mask rules
    # ------------------------------------------------------------------

    @property
    def rules(self) -> list[MaskRule]:
        return list(self._rules)

    def add_rule(self, target: str, placeholder: str, *, rule_id: str | None = None) -> MaskRule:
        """Add a rule for a selected string, replacing any rule for the same target."""
        target = _check_target(target)
        if not placeholder:
            raise RuleError("placeholder must not be empty")
        rule = MaskRule(id=rule_id or _new_rule_id(), target=target, placeholder=placeholder)
        self._rules = [r for r in self._rules if r.target != target and r.id != rule.id]
        self._rules.append(rule)
        logger.debug("mask rule %s: %d chars -> %s", rule.id, len(target), placeholder)
        return rule

    def update_rule(
        self,
        rule_id: str,
        *,
        target: str | None = None,
        placeholder: str | None = None,
    ) -> MaskRule:
        """Edit a rule in place, keeping its id and position."""
        for idx, rule in enumerate(self._rules):
            if rule.id != rule_id:
                continue
            changes: dict[str, str] = {}
            if target is not None:
                changes["target"] = _check_target(target)
            if placeholder is not None:
                if not placeholder:
                    raise RuleError("placeholder must not be empty")
                changes["placeholder"] = placeholder
            updated = replace(rule, **changes)
            self._rules[idx] = updated
            # another rule with the edited target is now a duplicate
            self._rules = [
                r for r in self._rules if r.id == rule_id or r.target != updated.target
            ]
            return updated
        raise RuleError(f"no mask rule with id {rule_id!r}")

    def remove_rule(self, rule_id: str) -> None:
        self._rules = [r for r in self._rules if r.id != rule_id]

    # ------------------------------------------------------------------
    # Detectors
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> frozenset[str]:
        return frozenset(self._enabled)

    def enable(self, detector_id: str) -> None:
        get_detector(detector_id)
        self._enabled.add(detector_id)

    def disable(self, detector_id: str) -> None:
        get_detector(detector_id)
        self._enabled.discard(detector_id)

    def toggle(self, detector_id: str) -> bool:
        """Flip a detector; returns whether it is now enabled."""
        if detector_id in self._enabled:
            self.disable(detector_id)
            return False
        self.enable(detector_id)
        return True

    # ------------------------------------------------------------------
    # Masking / serialization
    # ------------------------------------------------------------------

    def compute(self, original: str) -> MaskingResult:
        return compute_masking(original, self._rules, self._enabled)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mask_rules": [
                {"id": r.id, "target": r.target, "placeholder": r.placeholder}
                for r in self._rules
            ],
            "detectors": sorted(self._enabled),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleBook":
        book = cls(enabled=set(data.get("detectors", DEFAULT_ENABLED)))
        for raw in data.get("mask_rules", []):
            book.add_rule(raw["target"], raw["placeholder"], rule_id=raw.get("id"))
        return book


def _check_target(target: str) -> str:
    target = target.strip()
    if not target:
        raise RuleError("target must not be empty")
    # a selection spanning an existing placeholder
    if "[" in target and "]" in target:
        raise RuleError(f"target {target!r} already contains a placeholder")
    return target
