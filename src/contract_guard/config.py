"""YAML/dict config loader for contract-guard.

Supports loading from a YAML file or a plain dict (for embedding in a
larger application config).

Example YAML:

    contract_guard:
      detectors:
        - money
        - email
        - date
        - phone
        - bank
      mask_rules:
        - target: TechCorp
          placeholder: "[PARTY_A]"
      review:
        stance: NEUTRAL              # PARTY_A | PARTY_B | NEUTRAL
        strictness: BALANCED         # AGGRESSIVE | BALANCED | LOOSE
        rules_context: "Liability caps must not be below contract value."
        provider: gemini
      store:
        backend: sqlite              # "memory" or "sqlite"
        path: ~/.contract-guard/sessions.db
        limit: 20
"""

from __future__ import annotations
from pathlib import Path
from typing import Any

from .analyzer import DEFAULT_RULES_CONTEXT, RiskIdentifier
from .patterns import DEFAULT_ENABLED
from .pipeline import ReviewPipeline
from .rules import RuleBook
from .store import DEFAULT_LIMIT, MemorySessionStore
from .store_sqlite import SqliteSessionStore
from .types import ContractStance, ReviewStrictness


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "contract_guard" key or flat
    if "contract_guard" in data:
        data = data["contract_guard"] or {}

    review = data.get("review") or {}
    store = data.get("store") or {}
    return {
        "detectors": set(data.get("detectors", DEFAULT_ENABLED)),
        "mask_rules": list(data.get("mask_rules") or []),
        "stance": ContractStance[review.get("stance", "NEUTRAL").upper()],
        "strictness": ReviewStrictness[review.get("strictness", "BALANCED").upper()],
        "rules_context": review.get("rules_context", DEFAULT_RULES_CONTEXT),
        "provider": review.get("provider", "chat"),
        "store_backend": store.get("backend", "memory"),
        "store_path": store.get("path", "sessions.db"),
        "store_limit": int(store.get("limit", DEFAULT_LIMIT)),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    with open(path, encoding="utf-8") as f:
        return load_config(yaml.safe_load(f))


def _normalized(config: dict[str, Any]) -> dict[str, Any]:
    return config if "store_backend" in config else load_config(config)


def create_rulebook(config: dict[str, Any]) -> RuleBook:
    cfg = _normalized(config)
    return RuleBook.from_dict({"mask_rules": cfg["mask_rules"], "detectors": cfg["detectors"]})


def create_store(config: dict[str, Any]) -> MemorySessionStore | SqliteSessionStore:
    cfg = _normalized(config)
    if cfg["store_backend"] == "sqlite":
        return SqliteSessionStore(db_path=cfg["store_path"], limit=cfg["store_limit"])
    return MemorySessionStore(limit=cfg["store_limit"])


def create_pipeline(config: dict[str, Any], identifier: RiskIdentifier) -> ReviewPipeline:
    """Create a fully configured pipeline from a config dict."""
    cfg = _normalized(config)
    return ReviewPipeline(
        identifier=identifier,
        store=create_store(cfg),
        stance=cfg["stance"],
        strictness=cfg["strictness"],
        rules_context=cfg["rules_context"],
    )
