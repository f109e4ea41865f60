"""Session assembler. Packs a finished analysis into a ReviewSession.

Analysis and persistence happen elsewhere: the caller runs the risk
identifier first and hands the result to a session store afterwards.
"""

from __future__ import annotations
from typing import Any, Iterable

from .reconcile import ReviewDocument
from .types import (
    ContractSummary,
    Document,
    MaskingResult,
    ReviewSession,
    RiskAnnotation,
    RiskLevel,
)
from .vault import PlaceholderVault


def build_session(
    document: Document,
    masking: MaskingResult | None,
    risks: Iterable[RiskAnnotation],
    now: float,
    *,
    working_text: str | None = None,
    summary: ContractSummary | None = None,
    session_id: str | None = None,
) -> ReviewSession:
    """Assemble a session.  Pure: ``now`` (epoch seconds) also seeds the id.

    The working text defaults to the masked text when masking was used,
    else to the document text.
    """
    if working_text is None:
        working_text = masking.masked_text if masking is not None else document.content
    return ReviewSession(
        id=session_id or str(int(now * 1000)),
        document=document,
        risks=list(risks),
        timestamp=now,
        working_text=working_text,
        masking=masking,
        summary=summary,
    )


def open_session(session: ReviewSession, **kwargs: Any) -> ReviewDocument:
    """Reopen a saved session for review, from its saved text (not re-masked)."""
    vault = PlaceholderVault(session.masking.placeholder_map if session.masking else None)
    return ReviewDocument(session.working_text, session.risks, vault=vault, **kwargs)


def snapshot_session(session: ReviewSession, review: ReviewDocument, now: float) -> ReviewSession:
    """A new session record carrying the review's current text and risks."""
    return build_session(
        session.document,
        session.masking,
        review.risks,
        now,
        working_text=review.working_text,
        summary=session.summary,
        session_id=session.id,
    )


# ----------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------

def risk_to_dict(risk: RiskAnnotation) -> dict[str, Any]:
    return {
        "id": risk.id,
        "original_text": risk.original_text,
        "risk_description": risk.risk_description,
        "reason": risk.reason,
        "level": risk.level.value,
        "suggested_text": risk.suggested_text,
        "is_addressed": risk.is_addressed,
    }


def risk_from_dict(data: dict[str, Any]) -> RiskAnnotation:
    return RiskAnnotation(
        id=data["id"],
        original_text=data["original_text"],
        risk_description=data.get("risk_description", ""),
        reason=data.get("reason", ""),
        level=RiskLevel(data.get("level", RiskLevel.MEDIUM.value)),
        suggested_text=data.get("suggested_text", ""),
        is_addressed=bool(data.get("is_addressed", False)),
    )


def session_to_dict(session: ReviewSession) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": session.id,
        "document": {
            "name": session.document.name,
            "content": session.document.content,
            "last_modified": session.document.last_modified,
        },
        "risks": [risk_to_dict(r) for r in session.risks],
        "timestamp": session.timestamp,
        "working_text": session.working_text,
        "masking": None,
        "summary": None,
    }
    if session.masking is not None:
        out["masking"] = {
            "masked_text": session.masking.masked_text,
            "placeholder_map": dict(session.masking.placeholder_map),
            "total_replacements": session.masking.total_replacements,
        }
    if session.summary is not None:
        out["summary"] = {
            "type": session.summary.type,
            "parties": list(session.summary.parties),
            "amount": session.summary.amount,
            "duration": session.summary.duration,
            "main_subject": session.summary.main_subject,
        }
    return out


def session_from_dict(data: dict[str, Any]) -> ReviewSession:
    doc = data["document"]
    masking = data.get("masking")
    summary = data.get("summary")
    return ReviewSession(
        id=data["id"],
        document=Document(
            name=doc.get("name", ""),
            content=doc.get("content", ""),
            last_modified=doc.get("last_modified", 0.0),
        ),
        risks=[risk_from_dict(r) for r in data.get("risks", [])],
        timestamp=data.get("timestamp", 0.0),
        working_text=data.get("working_text", doc.get("content", "")),
        masking=MaskingResult(
            masked_text=masking["masked_text"],
            placeholder_map=dict(masking.get("placeholder_map", {})),
            total_replacements=masking.get("total_replacements", 0),
        ) if masking else None,
        summary=ContractSummary(**summary) if summary else None,
    )
