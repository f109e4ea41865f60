"""Reconciliation engine: risk spans over a mutable working document.

Usage:
    doc = ReviewDocument("Pay $5,000 fee.", risks)
    doc.select_first()
    doc.accept(doc.selected_id, animate=False)
    doc.working_text            # "Pay $50,000 fee."
    doc.undo()
    doc.working_text            # "Pay $5,000 fee."

The working text is the only mutable document state.  Visible and active
risks, the ordering used for navigation and the display segments are all
recomputed from (working text, risks) on every call, since any accept can
shift or consume the text other risks point at.
"""

from __future__ import annotations
import logging
import time
from dataclasses import replace
from typing import Callable, Iterable

from . import locator
from .errors import UnknownRiskError
from .types import HistoryEntry, ReviewSummary, RiskAnnotation, RiskLevel, Segment
from .vault import PlaceholderVault

logger = logging.getLogger(__name__)

# Seconds an accepted span stays highlighted before focus moves on.
ANIMATION_WINDOW = 0.6

NEXT = "next"
PREV = "prev"


class ReviewDocument:
    """Working text, risk annotations, focus and undo history of one review."""

    def __init__(
        self,
        working_text: str,
        risks: Iterable[RiskAnnotation] = (),
        *,
        vault: PlaceholderVault | None = None,
        clock: Callable[[], float] = time.monotonic,
        animation_window: float = ANIMATION_WINDOW,
    ) -> None:
        self._text = working_text
        self._risks: tuple[RiskAnnotation, ...] = tuple(risks)
        self._selected_id: str | None = None
        self._history: list[HistoryEntry] = []
        self._vault = vault or PlaceholderVault()
        self._clock = clock
        self._animation_window = animation_window
        # accept animation: risk id, replacement offset, focus to apply afterwards, deadline
        self._animating_id: str | None = None
        self._animating_offset: int | None = None
        self._pending_focus: str | None = None
        self._deadline: float | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def working_text(self) -> str:
        return self._text

    @property
    def risks(self) -> list[RiskAnnotation]:
        return list(self._risks)

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def animating_id(self) -> str | None:
        return self._animating_id

    @property
    def vault(self) -> PlaceholderVault:
        return self._vault

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    def load_risks(self, risks: Iterable[RiskAnnotation]) -> None:
        """Replace the risk list (a fresh analysis).  Clears focus and history."""
        self._risks = tuple(risks)
        self._selected_id = None
        self._history.clear()
        self._cancel_animation()

    def get_risk(self, risk_id: str) -> RiskAnnotation:
        return self._risks[self._index(risk_id)]

    def selected_risk(self) -> RiskAnnotation | None:
        if self._selected_id is None:
            return None
        return self.get_risk(self._selected_id)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def visible_risks(self) -> list[RiskAnnotation]:
        """Addressed risks, plus unaddressed ones still found in the text."""
        return [
            r for r in self._risks
            if r.is_addressed or locator.contains(self._text, r.original_text)
        ]

    def active_risks(self) -> list[RiskAnnotation]:
        """Unaddressed visible risks, by first offset in the working text."""
        located = []
        for order, risk in enumerate(self._risks):
            if risk.is_addressed:
                continue
            offset = locator.index_of(self._text, risk.original_text)
            if offset != -1:
                located.append((offset, order, risk))
        located.sort(key=lambda item: (item[0], item[1]))
        return [risk for _, _, risk in located]

    def segment_document(self, *, unmasked: bool = False) -> list[Segment]:
        """Split the working text into plain and highlighted runs.

        Each candidate highlights one occurrence only: the first one still
        inside a plain run.  Later repeats of the same text stay plain.
        A just-accepted span is marked animating at the offset where the
        replacement was made.
        Joining the segment texts always gives back the working text
        (unless ``unmasked`` asks for placeholders to be restored).
        """
        candidates: list[tuple[int, int, str, RiskAnnotation, bool]] = []
        for order, risk in enumerate(self.active_risks()):
            offset = locator.index_of(self._text, risk.original_text)
            candidates.append((offset, order, risk.original_text, risk, False))
        if self._animating_id is not None and self._animating_offset is not None:
            risk = self.get_risk(self._animating_id)
            if risk.suggested_text:
                candidates.append((self._animating_offset, -1, risk.suggested_text, risk, True))
        candidates.sort(key=lambda c: (c[0], c[1]))

        segments: list[Segment] = [Segment(self._text)]
        for offset, _, needle, risk, animating in candidates:
            if animating:
                # the swapped-in text sits exactly where the replacement was made
                segments = _split_at(segments, offset, needle, risk)
            else:
                segments = _split_first(segments, needle, risk, animating)

        segments = [s for s in segments if s.text]
        if unmasked and self._vault.active:
            segments = [replace(s, text=self._vault.unmask(s.text)) for s in segments]
        return segments

    def summary(self) -> ReviewSummary:
        visible_ids = {r.id for r in self.visible_risks()}
        pending = {level: 0 for level in RiskLevel}
        hidden = 0
        for risk in self._risks:
            if risk.is_addressed:
                continue
            pending[risk.level] += 1
            if risk.id not in visible_ids:
                hidden += 1
        return ReviewSummary(
            total=len(self._risks),
            addressed=sum(1 for r in self._risks if r.is_addressed),
            active=len(self.active_risks()),
            hidden=hidden,
            pending_by_level=pending,
        )

    def focus_position(self) -> tuple[int | None, int]:
        """(1-based position of the selection among active risks, active count)."""
        ids = [r.id for r in self.active_risks()]
        position = ids.index(self._selected_id) + 1 if self._selected_id in ids else None
        return position, len(ids)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def accept(self, risk_id: str, *, animate: bool = True) -> str | None:
        """Apply a risk's suggested text to its first occurrence.

        Returns the id focus moves to (after the animation, when animating).
        If the original text is gone the risk is still marked addressed.
        """
        idx = self._index(risk_id)
        risk = self._risks[idx]
        if risk.is_addressed:
            logger.debug("accept: risk %s already addressed", risk_id)
            return None
        self.finish_animation()
        self._push_history()
        next_id = self._next_focus(risk_id)

        offset = locator.index_of(self._text, risk.original_text)
        if offset == -1:
            logger.debug("accept: text of risk %s no longer present", risk_id)
        self._text = locator.replace_first(self._text, risk.original_text, risk.suggested_text)
        self._mark_addressed(idx)
        logger.debug("accepted risk %s, next focus %s", risk_id, next_id)

        if animate:
            self._animating_id = risk_id
            self._animating_offset = offset if offset != -1 else None
            self._pending_focus = next_id
            self._deadline = self._clock() + self._animation_window
        else:
            self._selected_id = next_id
        return next_id

    def ignore(self, risk_id: str) -> str | None:
        """Mark a risk addressed without touching the text; focus moves at once."""
        idx = self._index(risk_id)
        if self._risks[idx].is_addressed:
            logger.debug("ignore: risk %s already addressed", risk_id)
            return None
        self.finish_animation()
        self._push_history()
        next_id = self._next_focus(risk_id)
        self._mark_addressed(idx)
        self._selected_id = next_id
        logger.debug("ignored risk %s, next focus %s", risk_id, next_id)
        return next_id

    def undo(self) -> bool:
        """Restore the state from before the last accept/ignore."""
        if not self._history:
            return False
        entry = self._history.pop()
        self._cancel_animation()
        self._text = entry.snapshot_text
        self._risks = entry.snapshot_risks
        self._selected_id = entry.selected_id
        logger.debug("undo, %d step(s) left", len(self._history))
        return True

    # ------------------------------------------------------------------
    # Animation
    # ------------------------------------------------------------------

    def finish_animation(self) -> None:
        """End an accept animation now and move focus on."""
        if self._animating_id is None:
            return
        focus = self._pending_focus
        self._cancel_animation()
        self._selected_id = focus

    def tick(self, now: float | None = None) -> bool:
        """Finish the animation once its window has elapsed.  True if it did."""
        if self._animating_id is None or self._deadline is None:
            return False
        if (self._clock() if now is None else now) < self._deadline:
            return False
        self.finish_animation()
        return True

    # ------------------------------------------------------------------
    # Focus
    # ------------------------------------------------------------------

    def select(self, risk_id: str | None) -> None:
        if risk_id is not None:
            self._index(risk_id)
        self._selected_id = risk_id

    def navigate(self, direction: str) -> str | None:
        """Move focus to the next/previous active risk, wrapping around."""
        if direction not in (NEXT, PREV):
            raise ValueError(f"direction must be {NEXT!r} or {PREV!r}, not {direction!r}")
        ids = [r.id for r in self.active_risks()]
        if not ids:
            return self._selected_id
        if self._selected_id in ids:
            step = 1 if direction == NEXT else -1
            target = (ids.index(self._selected_id) + step) % len(ids)
        else:
            target = 0 if direction == NEXT else len(ids) - 1
        self._selected_id = ids[target]
        return self._selected_id

    def select_first(self, level: RiskLevel | None = None) -> str | None:
        """Focus the first active risk, optionally of one severity."""
        self._selected_id = next(
            (r.id for r in self.active_risks() if level is None or r.level == level),
            None,
        )
        return self._selected_id

    # ------------------------------------------------------------------
    # Unmasking
    # ------------------------------------------------------------------

    def display(self, text: str) -> str:
        """Text as shown in original-text view."""
        return self._vault.unmask(text)

    def export_text(self) -> str:
        """The working text with every placeholder restored."""
        return self._vault.unmask(self._text)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _index(self, risk_id: str) -> int:
        for idx, risk in enumerate(self._risks):
            if risk.id == risk_id:
                return idx
        raise UnknownRiskError(risk_id)

    def _push_history(self) -> None:
        self._history.append(HistoryEntry(
            snapshot_text=self._text,
            snapshot_risks=self._risks,
            selected_id=self._selected_id,
        ))

    def _mark_addressed(self, idx: int) -> None:
        risks = list(self._risks)
        risks[idx] = replace(risks[idx], is_addressed=True)
        self._risks = tuple(risks)

    def _next_focus(self, risk_id: str) -> str | None:
        """The active risk after risk_id once it is gone, wrapping to the first."""
        ids = [r.id for r in self.active_risks()]
        if risk_id not in ids:
            return ids[0] if ids else None
        pos = ids.index(risk_id)
        ids.remove(risk_id)
        if not ids:
            return None
        return ids[pos] if pos < len(ids) else ids[0]

    def _cancel_animation(self) -> None:
        self._animating_id = None
        self._animating_offset = None
        self._pending_focus = None
        self._deadline = None


def _split_at(
    segments: list[Segment],
    offset: int,
    needle: str,
    risk: RiskAnnotation,
) -> list[Segment]:
    """Mark needle as animating at an absolute offset, if that span is still plain."""
    start = 0
    for idx, seg in enumerate(segments):
        end = start + len(seg.text)
        if seg.is_plain and start <= offset and offset + len(needle) <= end:
            pos = offset - start
            pieces = [
                Segment(seg.text[:pos]),
                Segment(needle, risk_id=risk.id, level=risk.level, is_animating=True),
                Segment(seg.text[pos + len(needle):]),
            ]
            return segments[:idx] + pieces + segments[idx + 1:]
        start = end
    return segments


def _split_first(
    segments: list[Segment],
    needle: str,
    risk: RiskAnnotation,
    animating: bool,
) -> list[Segment]:
    """Highlight the first occurrence of needle that lies in a plain run."""
    for idx, seg in enumerate(segments):
        if not seg.is_plain:
            continue
        pos = locator.index_of(seg.text, needle)
        if pos == -1:
            continue
        pieces = [
            Segment(seg.text[:pos]),
            Segment(needle, risk_id=risk.id, level=risk.level, is_animating=animating),
            Segment(seg.text[pos + len(needle):]),
        ]
        return segments[:idx] + pieces + segments[idx + 1:]
    return segments
