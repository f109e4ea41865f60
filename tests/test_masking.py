"""Tests for the masking engine: manual rules, detectors and unmask."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from contract_guard import MaskRule, compute_masking, unmask
from contract_guard.errors import UnknownDetectorError
from contract_guard.masking import build_rule_pattern
from contract_guard.patterns import CATALOG, DEFAULT_ENABLED, detector_ids


# ── Manual rules ─────────────────────────────────────────────────────

def test_longest_target_wins():
    rules = [MaskRule("1", "TechCorp", "[A]"), MaskRule("2", "Tech", "[B]")]
    result = compute_masking("TechCorp Inc", rules, set())
    assert result.masked_text == "[A] Inc"
    assert result.placeholder_map == {"[A]": "TechCorp"}


def test_longest_target_wins_regardless_of_insertion_order():
    rules = [MaskRule("2", "Tech", "[B]"), MaskRule("1", "TechCorp", "[A]")]
    result = compute_masking("TechCorp Inc and Tech Ltd", rules, set())
    assert result.masked_text == "[A] Inc and [B] Ltd"
    assert result.total_replacements == 2


def test_rule_replaces_every_occurrence():
    rules = [MaskRule("1", "Alice", "[NAME]")]
    result = compute_masking("Alice signs. Alice pays.", rules, set())
    assert result.masked_text == "[NAME] signs. [NAME] pays."
    assert result.total_replacements == 2


def test_bracket_width_normalization():
    rules = [MaskRule("1", "ABC（北京）公司", "[CO]")]
    result = compute_masking("甲方：ABC(北京)公司，乙方：ABC（北京）公司", rules, set())
    assert result.masked_text == "甲方：[CO]，乙方：[CO]"
    assert result.total_replacements == 2


def test_half_width_rule_matches_full_width_text():
    pattern = build_rule_pattern("ABC(北京)公司")
    assert pattern.fullmatch("ABC（北京）公司")
    assert pattern.fullmatch("ABC(北京）公司")


def test_rule_target_is_literal():
    pattern = build_rule_pattern("a.b*c")
    assert pattern.search("axbbc") is None
    assert pattern.search("see a.b*c here")


def test_unmatched_rule_is_skipped():
    rules = [MaskRule("1", "Nobody", "[GHOST]"), MaskRule("2", "Alice", "[NAME]")]
    result = compute_masking("Alice signs.", rules, set())
    assert "[GHOST]" not in result.placeholder_map
    assert result.placeholder_map == {"[NAME]": "Alice"}
    assert result.total_replacements == 1


def test_placeholder_is_inserted_literally():
    rules = [MaskRule("1", "Alice", r"[\1 NAME]")]
    result = compute_masking("Alice signs.", rules, set())
    assert result.masked_text == r"[\1 NAME] signs."


def test_masking_is_deterministic():
    rules = [MaskRule("1", "TechCorp", "[PARTY_A]")]
    text = "TechCorp pays $5,000 to bob@dev.io on 2024-01-31."
    first = compute_masking(text, rules, DEFAULT_ENABLED)
    second = compute_masking(text, rules, DEFAULT_ENABLED)
    assert first == second


def test_round_trip_with_literal_rules():
    doc = "TechCorp pays DevSolutions on time. TechCorp signs first."
    rules = [
        MaskRule("1", "TechCorp", "[PARTY_A]"),
        MaskRule("2", "DevSolutions", "[PARTY_B]"),
    ]
    result = compute_masking(doc, rules, set())
    assert "TechCorp" not in result.masked_text
    assert unmask(result.masked_text, result.placeholder_map) == doc


def test_round_trip_with_detectors():
    doc = "Pay $5,000 to alice@example.com by 2024-01-31, call 13800138000."
    result = compute_masking(doc, [], DEFAULT_ENABLED)
    for placeholder in result.placeholder_map:
        assert placeholder in result.masked_text
    assert unmask(result.masked_text, result.placeholder_map) == doc


# ── Detectors ────────────────────────────────────────────────────────

def test_catalog_order_is_fixed():
    assert detector_ids() == ["money", "email", "date", "phone", "bank", "company"]
    assert [d.placeholder(1) for d in CATALOG][0] == "[AMOUNT_1]"


def test_company_detector_off_by_default():
    assert "company" not in DEFAULT_ENABLED
    assert DEFAULT_ENABLED == {"money", "email", "date", "phone", "bank"}


def test_money_symbol():
    result = compute_masking("Pay $5,000 fee.", [], {"money"})
    assert result.masked_text == "Pay [AMOUNT_1] fee."
    assert result.placeholder_map == {"[AMOUNT_1]": "$5,000"}


def test_money_chinese_units():
    result = compute_masking("合同金额100万元，定金￥2,000.50", [], {"money"})
    assert result.masked_text == "合同金额[AMOUNT_1]，定金[AMOUNT_2]"
    assert result.placeholder_map["[AMOUNT_1]"] == "100万元"
    assert result.placeholder_map["[AMOUNT_2]"] == "￥2,000.50"


def test_money_trailing_code():
    result = compute_masking("a fee of 500 USD", [], {"money"})
    assert result.masked_text == "a fee of [AMOUNT_1]"


def test_money_ignores_bare_numbers():
    text = "Payment terms are Net 90 days."
    assert compute_masking(text, [], {"money"}).masked_text == text


def test_email():
    result = compute_masking("Contact alice@example.com or bob@dev.io", [], {"email"})
    assert result.masked_text == "Contact [EMAIL_1] or [EMAIL_2]"


def test_dates():
    result = compute_masking(
        "签订于2023年10月10日, due 2024-01-31, or 31 Jan 2024, or January 31, 2024.",
        [], {"date"},
    )
    assert result.masked_text == (
        "签订于[DATE_1], due [DATE_2], or [DATE_3], or [DATE_4]."
    )


def test_phone_mobile_landline_and_id():
    result = compute_masking(
        "手机 +86 13800138000，座机 010-12345678，身份证 11010119900307451X",
        [], {"phone"},
    )
    assert result.masked_text == "手机 [PHONE_1]，座机 [PHONE_2]，身份证 [PHONE_3]"


def test_phone_does_not_bite_into_longer_digit_runs():
    text = "账号 6222021381380013800"
    assert compute_masking(text, [], {"phone"}).masked_text == text


def test_bank_card_contiguous_and_grouped():
    result = compute_masking(
        "卡号 6222021234567890123 或 4111 1111 1111 1111", [], {"phone", "bank"},
    )
    assert result.masked_text == "卡号 [BANK_1] 或 [BANK_2]"


def test_bank_card_with_dashes_is_not_a_landline():
    result = compute_masking("Card: 4111-1111-1111-1111", [], {"phone", "bank"})
    assert result.masked_text == "Card: [BANK_1]"


def test_eighteen_digit_account_goes_to_phone_detector():
    # phone/ID runs before bank: an exact 18-digit run reads as an ID number
    result = compute_masking("账号 622202123456789012", [], {"phone", "bank"})
    assert result.masked_text == "账号 [PHONE_1]"


def test_sixteen_digit_card_goes_to_bank_detector():
    result = compute_masking("账号 6222021234567890", [], {"phone", "bank"})
    assert result.masked_text == "账号 [BANK_1]"


def test_money_and_bank_mask_each_span_once():
    result = compute_masking("Card 6222021234567890123 pays $5,000.", [], {"money", "bank"})
    assert result.masked_text == "Card [BANK_1] pays [AMOUNT_1]."
    assert result.placeholder_map == {
        "[AMOUNT_1]": "$5,000",
        "[BANK_1]": "6222021234567890123",
    }
    assert result.total_replacements == 2


def test_company_suffix():
    result = compute_masking("甲方：北京星辰科技有限公司", [], {"company"})
    assert result.masked_text == "甲方：[COMPANY_1]"
    assert result.placeholder_map["[COMPANY_1]"] == "北京星辰科技有限公司"


def test_detectors_skip_text_masked_by_rules():
    rules = [MaskRule("1", "13800138000", "[CONTACT]")]
    result = compute_masking("Call 13800138000.", rules, {"phone"})
    assert result.masked_text == "Call [CONTACT]."
    assert result.placeholder_map == {"[CONTACT]": "13800138000"}


def test_unknown_detector():
    with pytest.raises(UnknownDetectorError):
        compute_masking("text", [], {"fingerprint"})


# ── Unmask ───────────────────────────────────────────────────────────

def test_unmask_longest_placeholder_first():
    mapping = {"PARTY": "Alice", "PARTY_B": "Bob"}
    assert unmask("PARTY_B and PARTY", mapping) == "Bob and Alice"


def test_unmask_leaves_unknown_tokens():
    assert unmask("[X] and [AMOUNT_9]", {"[X]": "x"}) == "x and [AMOUNT_9]"
