"""Risk-identification adapter between a chat model and the review engine.

The transport is not ours: a ``complete`` callable takes OpenAI-format
messages and returns the model's reply text.  This module builds the
prompts and turns whatever JSON shape comes back into a strict list of
RiskAnnotation.  Malformed output means zero risks, never an exception;
exceptions raised by ``complete`` itself propagate untouched.
"""

from __future__ import annotations
import json
import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .types import (
    ContractStance,
    ContractSummary,
    ReviewStrictness,
    RiskAnnotation,
    RiskLevel,
)

logger = logging.getLogger(__name__)

DEFAULT_RULES_CONTEXT = (
    "Standard commercial contract rules, focus on liability caps and payment terms."
)

# Characters of contract text sent for the summary prompt
MAX_SUMMARY_CHARS = 10000

Messages = list[dict[str, str]]
CompleteFn = Callable[[Messages], str]
RiskIdentifier = Callable[[str, ContractStance, ReviewStrictness, str], list[RiskAnnotation]]

_FENCED = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

# Keys that mark a bare object as one risk rather than a wrapper
_RISK_KEYS = ("originalText", "original_text", "riskDescription", "risk_description", "reason")


@dataclass
class KnowledgeRule:
    """A review rule from the knowledge base, fed to the model as context."""
    name: str
    description: str
    category: str = "General"
    risk_level: RiskLevel = RiskLevel.MEDIUM


def build_rules_context(rules: list[KnowledgeRule] | None) -> str:
    if not rules:
        return DEFAULT_RULES_CONTEXT
    return "\n".join(
        f"- [{r.category}] {r.name} ({r.risk_level.value}): {r.description}" for r in rules
    )


# ----------------------------------------------------------------------
# Prompts
# ----------------------------------------------------------------------

def build_risk_messages(
    text: str,
    stance: ContractStance,
    strictness: ReviewStrictness,
    rules_context: str,
) -> Messages:
    system = (
        "You are a senior legal consultant. Review the contract.\n"
        f"My Stance: {stance.value}\n"
        f"Review Strategy: {strictness.value}\n"
        f"Knowledge Base: {rules_context}\n"
        "Respond ONLY with a JSON array."
    )
    user = (
        "Identify risks based on my stance. For each risk:\n"
        "1. Quote the *exact* original text snippet.\n"
        "2. Provide a safer, rewritten version.\n\n"
        "Return a raw JSON array of objects with keys: originalText, riskDescription, "
        "reason, level (HIGH/MEDIUM/LOW), suggestedText.\n\n"
        f'Contract Text:\n"{text}"'
    )
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


def build_summary_messages(text: str) -> Messages:
    user = (
        "Analyze the following legal contract text and extract key information.\n"
        "Return a JSON object with keys: type, parties (array), amount, duration, mainSubject.\n\n"
        f'Text: "{text[:MAX_SUMMARY_CHARS]}..."'
    )
    return [
        {"role": "system", "content": "You are a legal assistant. Respond in pure JSON."},
        {"role": "user", "content": user},
    ]


def build_draft_messages(contract_type: str, requirements: str) -> Messages:
    user = (
        "Draft a professional legal contract.\n"
        f"Type: {contract_type}\n"
        f"Requirements: {requirements}\n\n"
        "Return only the contract text in Markdown format."
    )
    return [
        {"role": "system", "content": "You are an expert legal drafter."},
        {"role": "user", "content": user},
    ]


# ----------------------------------------------------------------------
# Response parsing
# ----------------------------------------------------------------------

class PayloadKind(str, Enum):
    ARRAY = "array"          # [ {...}, ... ]
    SINGLE = "single"        # { "originalText": ... }
    WRAPPED = "wrapped"      # { "risks": [ ... ] }
    MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class ParsedRisks:
    kind: PayloadKind
    items: list[Any] = field(default_factory=list)


def extract_json(content: str) -> Any | None:
    """Parse JSON from a reply that may wrap it in prose or a code fence."""
    if not content or not content.strip():
        return None
    try:
        return json.loads(content)
    except ValueError:
        pass

    m = _FENCED.search(content)
    if m:
        try:
            return json.loads(m.group(1))
        except ValueError:
            pass

    # outermost [...] or {...}, whichever opens first
    first_bracket, first_brace = content.find("["), content.find("{")
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        start, end = first_bracket, content.rfind("]")
    else:
        start, end = first_brace, content.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(content[start:end + 1])
        except ValueError:
            pass
    return None


def classify_payload(payload: Any) -> ParsedRisks:
    if isinstance(payload, list):
        return ParsedRisks(PayloadKind.ARRAY, payload)
    if isinstance(payload, dict):
        if any(payload.get(k) for k in _RISK_KEYS):
            return ParsedRisks(PayloadKind.SINGLE, [payload])
        for value in payload.values():
            if isinstance(value, list):
                return ParsedRisks(PayloadKind.WRAPPED, value)
    return ParsedRisks(PayloadKind.MALFORMED)


def _field(item: dict, camel: str, snake: str) -> str:
    # JSON null counts as missing
    value = item.get(camel)
    if value is None:
        value = item.get(snake)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _level(raw: Any) -> RiskLevel:
    try:
        return RiskLevel(str(raw).strip().upper())
    except ValueError:
        return RiskLevel.MEDIUM


def normalize_risks(parsed: ParsedRisks, *, provider: str, now: float) -> list[RiskAnnotation]:
    """Build RiskAnnotations from parsed items, dropping ones without a quote."""
    stamp = int(now * 1000)
    risks: list[RiskAnnotation] = []
    for index, item in enumerate(parsed.items):
        if not isinstance(item, dict):
            logger.warning("dropping non-object risk item at %d", index)
            continue
        original = _field(item, "originalText", "original_text")
        if not original:
            logger.warning("dropping risk item %d without originalText", index)
            continue
        risks.append(RiskAnnotation(
            id=f"risk-{provider}-{index}-{stamp}",
            original_text=original,
            risk_description=_field(item, "riskDescription", "risk_description"),
            reason=_field(item, "reason", "reason"),
            level=_level(item.get("level")),
            suggested_text=_field(item, "suggestedText", "suggested_text"),
        ))
    return risks


def parse_risk_response(content: str, *, provider: str, now: float) -> list[RiskAnnotation]:
    parsed = classify_payload(extract_json(content))
    if parsed.kind is PayloadKind.MALFORMED:
        logger.warning("unusable risk response from %s: %.100r", provider, content)
        return []
    return normalize_risks(parsed, provider=provider, now=now)


def parse_summary_response(content: str) -> ContractSummary:
    data = extract_json(content)
    if not isinstance(data, dict):
        logger.warning("unusable summary response: %.100r", content)
        return ContractSummary(main_subject="Could not analyze text.")
    parties = data.get("parties") or []
    return ContractSummary(
        type=str(data.get("type") or "Unknown"),
        parties=[str(p) for p in parties] if isinstance(parties, list) else [str(parties)],
        amount=str(data.get("amount") or "Unknown"),
        duration=str(data.get("duration") or "Unknown"),
        main_subject=str(data.get("mainSubject") or data.get("main_subject") or ""),
    )


# ----------------------------------------------------------------------
# Identifier
# ----------------------------------------------------------------------

class ChatRiskIdentifier:
    """RiskIdentifier over any chat-completion callable."""

    def __init__(
        self,
        complete: CompleteFn,
        *,
        provider: str = "chat",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.complete = complete
        self.provider = provider
        self.clock = clock

    def __call__(
        self,
        text: str,
        stance: ContractStance,
        strictness: ReviewStrictness,
        rules_context: str,
    ) -> list[RiskAnnotation]:
        content = self.complete(build_risk_messages(text, stance, strictness, rules_context))
        return parse_risk_response(content, provider=self.provider, now=self.clock())

    def summarize(self, text: str) -> ContractSummary:
        return parse_summary_response(self.complete(build_summary_messages(text)))

    def draft(self, contract_type: str, requirements: str) -> str:
        """Draft a new contract as Markdown.  Transport errors propagate."""
        return self.complete(build_draft_messages(contract_type, requirements)).strip()
