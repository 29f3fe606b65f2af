"""
Tests for safety and compliance rules.
"""
import logging

import pytest

from publish_gate.config import DEFAULT_BRAND_KEYWORDS
from publish_gate.rules import (
    allowed_during_quiet_hours,
    check_brand_compliance,
    check_doxxing,
    check_evidence_requirement,
    check_hate_harassment,
    check_illegal_instructions,
    check_political_targeting,
    check_sexual_content,
    has_brand_mention,
    has_numeric_claims,
    requires_brand_mention,
    run_safety_checks,
)
from publish_gate.schemas import ActionKind, CandidateAction, Evidence, ReasonCode


def _action(text, kind="post", evidence=()):
    return CandidateAction(platform="x", action_kind=kind, text=text, evidence=evidence)


class TestHardRules:

    def test_hate_harassment(self):
        assert check_hate_harassment("death to all trans people")
        assert not check_hate_harassment("We welcome everyone to the agent marketplace")

    def test_sexual_content(self):
        assert check_sexual_content("check my onlyfans link")
        assert check_sexual_content("NSFW thread")
        assert not check_sexual_content("sextant navigation")

    def test_doxxing(self):
        assert check_doxxing("home address: 42 Elm Street")
        assert check_doxxing("SSN: 123-45-6789")
        assert check_doxxing("personal info of @someone")
        assert not check_doxxing("our office address is on the website")

    def test_illegal_instructions(self):
        assert check_illegal_instructions("how to make a bomb at home")
        assert check_illegal_instructions("hack into bank systems")
        assert not check_illegal_instructions("how to make a bot with agent://")

    def test_political_targeting(self):
        assert check_political_targeting("Democrats are evil and everyone knows it")
        assert check_political_targeting("vote for Jane Doe")
        assert not check_political_targeting("the vote on the RFC passed")


class TestRunSafetyChecks:

    def test_clean_text(self):
        assert run_safety_checks("Agenium v2 is out with a new agent registry") == []

    def test_reports_every_violation_in_table_order(self):
        codes = run_safety_checks("how to make a bomb and watch porn")
        assert codes == [ReasonCode.SEXUAL_CONTENT, ReasonCode.ILLEGAL_INSTRUCTIONS]

    def test_political_dropped_by_default(self, caplog):
        with caplog.at_level(logging.INFO, logger="publish_gate.rules"):
            codes = run_safety_checks("Republicans are destroying everything")
        assert codes == []
        assert "Political targeting" in caplog.text

    def test_political_reported_when_enforced(self):
        codes = run_safety_checks("Republicans are destroying everything", enforce_political=True)
        assert codes == [ReasonCode.POLITICAL_TARGETING]


class TestBrand:

    def test_brand_mention_is_case_insensitive(self):
        assert has_brand_mention("Try AGENIUM today", DEFAULT_BRAND_KEYWORDS)
        assert has_brand_mention("resolve agent://alice", DEFAULT_BRAND_KEYWORDS)
        assert not has_brand_mention("Check out this cool protocol!", DEFAULT_BRAND_KEYWORDS)

    def test_custom_keywords(self):
        assert has_brand_mention("Built on Foo", ["foo"])
        assert not has_brand_mention("Built on Agenium", ["foo"])

    @pytest.mark.parametrize("kind", ["post", "submit", "discussion", "issue"])
    def test_broadcast_kinds_require_brand(self, kind):
        assert requires_brand_mention(ActionKind(kind))
        assert check_brand_compliance(_action("Check out this cool protocol!", kind), DEFAULT_BRAND_KEYWORDS) == (
            ReasonCode.BRAND_MISSING
        )

    @pytest.mark.parametrize("kind", ["reply", "comment", "dm"])
    def test_conversational_kinds_exempt(self, kind):
        assert not requires_brand_mention(ActionKind(kind))
        assert check_brand_compliance(_action("Thanks!", kind), DEFAULT_BRAND_KEYWORDS) is None


class TestEvidence:

    @pytest.mark.parametrize("text", [
        "Agenium achieves 10,000 req/s!",
        "p95 latency of 5ms",
        "99.9% uptime this quarter",
        "coverage: 87%",
        "3x faster than before",
        "we reached 1000 agents",
    ])
    def test_numeric_claims_detected(self, text):
        assert has_numeric_claims(text)

    def test_plain_text_has_no_claim(self):
        assert not has_numeric_claims("Agenium v2 is live, try it")

    def test_claim_without_evidence_blocked(self):
        assert check_evidence_requirement(_action("Agenium achieves 10,000 req/s!")) == (
            ReasonCode.NO_EVIDENCE_FOR_CLAIM
        )

    def test_claim_with_evidence_passes(self):
        evidence = (Evidence(kind="metric", source="bench", value="10000", timestamp="2024-02-15T12:00:00Z"),)
        assert check_evidence_requirement(_action("Agenium achieves 10,000 req/s!", evidence=evidence)) is None


class TestQuietHoursEligibility:

    @pytest.mark.parametrize("kind,expected", [
        ("reply", True),
        ("comment", True),
        ("post", False),
        ("submit", False),
        ("dm", False),
    ])
    def test_exempt_kinds(self, kind, expected):
        assert allowed_during_quiet_hours(ActionKind(kind)) is expected
