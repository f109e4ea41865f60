"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum


class RiskLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ContractStance(str, Enum):
    PARTY_A = "甲方 (我方)"
    PARTY_B = "乙方 (我方)"
    NEUTRAL = "中立第三方"


class ReviewStrictness(str, Enum):
    AGGRESSIVE = "强势 (最大限度争取利益)"
    BALANCED = "均势 (公平公正)"
    LOOSE = "宽松 (促成交易优先)"


@dataclass(frozen=True, slots=True)
class Document:
    """An uploaded contract.  Never mutated after creation."""
    name: str
    content: str
    last_modified: float = 0.0     # epoch seconds


@dataclass(frozen=True, slots=True)
class MaskRule:
    """A literal string replaced by a placeholder wherever it occurs."""
    id: str
    target: str
    placeholder: str


@dataclass(slots=True)
class MaskingResult:
    """Result of masking a document."""
    masked_text: str
    placeholder_map: dict[str, str] = field(default_factory=dict)  # placeholder → original
    total_replacements: int = 0


@dataclass(frozen=True, slots=True)
class RiskAnnotation:
    """A risk span reported by the analyzer.

    Only ``is_addressed`` ever changes, and it changes by building a new
    record (``dataclasses.replace``), so history snapshots can share them.
    """
    id: str
    original_text: str
    risk_description: str
    reason: str
    level: RiskLevel
    suggested_text: str
    is_addressed: bool = False


@dataclass(frozen=True, slots=True)
class Segment:
    """One run of the working text as handed to the renderer."""
    text: str
    risk_id: str | None = None
    level: RiskLevel | None = None
    is_animating: bool = False

    @property
    def is_plain(self) -> bool:
        return self.risk_id is None


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    snapshot_text: str
    snapshot_risks: tuple[RiskAnnotation, ...]
    selected_id: str | None


@dataclass(frozen=True, slots=True)
class ReviewSummary:
    total: int
    addressed: int
    active: int
    hidden: int                        # unaddressed but no longer locatable
    pending_by_level: dict[RiskLevel, int]


@dataclass(slots=True)
class ContractSummary:
    type: str = "Unknown"
    parties: list[str] = field(default_factory=list)
    amount: str = "Unknown"
    duration: str = "Unknown"
    main_subject: str = ""


@dataclass(slots=True)
class ReviewSession:
    """The persisted unit of a review."""
    id: str
    document: Document
    risks: list[RiskAnnotation]
    timestamp: float
    working_text: str
    masking: MaskingResult | None = None
    summary: ContractSummary | None = None
