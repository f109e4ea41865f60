"""Tests for the rule book and the span locator."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from contract_guard import RuleBook
from contract_guard.errors import RuleError, UnknownDetectorError
from contract_guard.locator import contains, find_all, index_of, replace_first
from contract_guard.patterns import DEFAULT_ENABLED


# ── Span locator ─────────────────────────────────────────────────────

def test_find_all_offsets():
    assert find_all("abc abc abc", "abc") == [0, 4, 8]


def test_find_all_non_overlapping():
    assert find_all("aaaa", "aa") == [0, 2]


def test_find_all_empty_or_absent():
    assert find_all("abc", "") == []
    assert find_all("abc", "x") == []


def test_index_of_from_offset():
    assert index_of("fee fee", "fee") == 0
    assert index_of("fee fee", "fee", 1) == 4
    assert index_of("fee", "") == -1


def test_locator_is_case_sensitive_and_literal():
    assert not contains("Fee", "fee")
    assert not contains("a+b", "a.b")
    assert contains("cost (net)", "(net)")


def test_replace_first_only():
    assert replace_first("fee fee", "fee", "cost") == "cost fee"
    assert replace_first("fee", "gone", "x") == "fee"


# ── Rule book ────────────────────────────────────────────────────────

def test_default_detectors():
    assert RuleBook().enabled == DEFAULT_ENABLED


def test_add_rule_trims_target():
    book = RuleBook()
    rule = book.add_rule("  TechCorp \n", "[PARTY_A]")
    assert rule.target == "TechCorp"


def test_readding_target_replaces_rule():
    book = RuleBook()
    book.add_rule("TechCorp", "[PARTY_A]", rule_id="a")
    book.add_rule("TechCorp", "[CLIENT]", rule_id="b")
    assert [(r.id, r.placeholder) for r in book.rules] == [("b", "[CLIENT]")]


def test_rejects_empty_and_masked_targets():
    book = RuleBook()
    with pytest.raises(RuleError):
        book.add_rule("   ", "[X]")
    with pytest.raises(RuleError):
        book.add_rule("pays [AMOUNT_1] now", "[X]")
    with pytest.raises(RuleError):
        book.add_rule("Alice", "")


def test_update_rule_keeps_identity():
    book = RuleBook()
    book.add_rule("Alice", "[NAME]", rule_id="r1")
    book.add_rule("Bob", "[OTHER]", rule_id="r2")
    updated = book.update_rule("r1", placeholder="[PARTY_A]")
    assert updated.id == "r1"
    assert [r.id for r in book.rules] == ["r1", "r2"]
    assert book.rules[0].placeholder == "[PARTY_A]"


def test_update_rule_onto_existing_target_drops_duplicate():
    book = RuleBook()
    book.add_rule("Alice", "[NAME]", rule_id="r1")
    book.add_rule("Bob", "[OTHER]", rule_id="r2")
    book.update_rule("r2", target="Alice")
    assert [(r.id, r.target) for r in book.rules] == [("r2", "Alice")]


def test_update_unknown_rule():
    with pytest.raises(RuleError):
        RuleBook().update_rule("missing", placeholder="[X]")


def test_remove_rule():
    book = RuleBook()
    book.add_rule("Alice", "[NAME]", rule_id="r1")
    book.remove_rule("r1")
    assert book.rules == []


def test_toggle_detectors():
    book = RuleBook(enabled=set())
    assert book.toggle("company") is True
    assert book.enabled == {"company"}
    assert book.toggle("company") is False
    with pytest.raises(UnknownDetectorError):
        book.enable("fingerprint")


def test_compute_uses_rules_and_detectors():
    book = RuleBook(enabled={"money"})
    book.add_rule("TechCorp", "[PARTY_A]")
    result = book.compute("TechCorp pays $5,000.")
    assert result.masked_text == "[PARTY_A] pays [AMOUNT_1]."


def test_dict_round_trip():
    book = RuleBook(enabled={"email", "bank"})
    book.add_rule("TechCorp", "[PARTY_A]", rule_id="r1")
    data = book.to_dict()
    assert data == {
        "mask_rules": [{"id": "r1", "target": "TechCorp", "placeholder": "[PARTY_A]"}],
        "detectors": ["bank", "email"],
    }
    again = RuleBook.from_dict(data)
    assert again.rules == book.rules
    assert again.enabled == book.enabled
