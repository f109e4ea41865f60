"""Review pipeline: document, mask, identify risks, session, store.

Usage:

    pipeline = ReviewPipeline.create(identifier)
    masking = pipeline.mask(document, rulebook)          # None = send original
    session = pipeline.analyze(document, masking)        # model call + save
    review = pipeline.open(session)                      # accept/ignore/undo
    ...
    pipeline.save(session, review)
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

from .analyzer import DEFAULT_RULES_CONTEXT, RiskIdentifier
from .reconcile import ReviewDocument
from .rules import RuleBook
from .session import build_session, open_session, snapshot_session
from .store import MemorySessionStore
from .types import (
    ContractStance,
    ContractSummary,
    Document,
    MaskingResult,
    ReviewSession,
    ReviewStrictness,
)

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def save_session(self, session: ReviewSession) -> None: ...
    def load_recent_sessions(self) -> list[ReviewSession]: ...


@dataclass
class ReviewPipeline:
    """Glue between the masking engine, a risk identifier and a store."""

    identifier: RiskIdentifier
    store: SessionStore
    stance: ContractStance = ContractStance.NEUTRAL
    strictness: ReviewStrictness = ReviewStrictness.BALANCED
    rules_context: str = DEFAULT_RULES_CONTEXT
    clock: Callable[[], float] = field(default=time.time)

    @classmethod
    def create(cls, identifier: RiskIdentifier, **kwargs) -> "ReviewPipeline":
        """Factory: a pipeline with its own in-memory store."""
        return cls(identifier=identifier, store=MemorySessionStore(), **kwargs)

    def mask(self, document: Document, rulebook: RuleBook | None) -> MaskingResult | None:
        """Mask a document locally; None when masking is skipped."""
        if rulebook is None:
            return None
        return rulebook.compute(document.content)

    def analyze(
        self,
        document: Document,
        masking: MaskingResult | None = None,
        *,
        stance: ContractStance | None = None,
        strictness: ReviewStrictness | None = None,
        rules_context: str | None = None,
        summarize: bool = False,
    ) -> ReviewSession:
        """Send the (masked) text to the identifier and save the session.

        Identifier errors propagate and nothing is saved.
        """
        text = masking.masked_text if masking is not None else document.content
        summary = self._summarize(text) if summarize else None
        risks = self.identifier(
            text,
            stance or self.stance,
            strictness or self.strictness,
            rules_context if rules_context is not None else self.rules_context,
        )
        logger.info("identified %d risk(s) in %s", len(risks), document.name)
        session = build_session(document, masking, risks, self.clock(), summary=summary)
        self.store.save_session(session)
        return session

    def open(self, session: ReviewSession) -> ReviewDocument:
        return open_session(session)

    def save(self, session: ReviewSession, review: ReviewDocument) -> ReviewSession:
        """Persist the review's current text and risks under the session id."""
        updated = snapshot_session(session, review, self.clock())
        self.store.save_session(updated)
        return updated

    def recent(self) -> list[ReviewSession]:
        return self.store.load_recent_sessions()

    def _summarize(self, text: str) -> ContractSummary | None:
        summarize = getattr(self.identifier, "summarize", None)
        if summarize is None:
            return None
        try:
            return summarize(text)
        except Exception:
            # a missing summary never blocks the review
            logger.warning("contract summary failed", exc_info=True)
            return ContractSummary(main_subject="Could not analyze text.")
