"""Contract Guard: local masking and risk reconciliation for contract review."""

from .masking import compute_masking, build_rule_pattern
from .vault import PlaceholderVault, unmask
from .rules import RuleBook
from .reconcile import ReviewDocument
from .session import build_session, open_session
from .pipeline import ReviewPipeline
from .analyzer import ChatRiskIdentifier, parse_risk_response
from .store import MemorySessionStore
from .store_sqlite import SqliteSessionStore
from .config import create_pipeline, load_config, load_from_yaml
from .types import (
    ContractStance, Document, MaskingResult, MaskRule, ReviewSession,
    ReviewStrictness, RiskAnnotation, RiskLevel, Segment,
)

__all__ = [
    "compute_masking", "build_rule_pattern",
    "PlaceholderVault", "unmask",
    "RuleBook",
    "ReviewDocument",
    "build_session", "open_session",
    "ReviewPipeline",
    "ChatRiskIdentifier", "parse_risk_response",
    "MemorySessionStore", "SqliteSessionStore",
    "create_pipeline", "load_config", "load_from_yaml",
    "ContractStance", "Document", "MaskingResult", "MaskRule", "ReviewSession",
    "ReviewStrictness", "RiskAnnotation", "RiskLevel", "Segment",
]
__version__ = "0.1.0"
