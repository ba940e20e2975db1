"""
Gate Policy Tests
==================

Tests for the deterministic admissibility gate and drift check.
The gate decides which excerpts may ever reach the rewriter, so
every check must fail closed.

Coverage:
    - Text normalization and overlap ratio
    - Negative indicators on token boundaries
    - Keyword matching on normalized substrings
    - Evidence-quote fallback
"""

from __future__ import annotations

import pytest

from annexfacts.config import GateConfig
from annexfacts.gate.policy import GatePolicy, normalize_text, overlap_ratio, tokenize
from annexfacts.schemas.signals import Evidence, SignalKey


@pytest.fixture
def policy():
    return GatePolicy(GateConfig())


class TestNormalization:

    def test_normalize_text(self):
        assert normalize_text("  Pre-Processing:\tTokenization!  ") == "pre processing tokenization"

    def test_underscores_are_separators(self):
        assert normalize_text("feature_engineering") == "feature engineering"

    def test_tokenize_empty(self):
        assert tokenize("") == []
        assert tokenize("--- !!") == []


class TestOverlap:

    def test_identical(self):
        assert overlap_ratio("Docker on AWS", "Docker on AWS") == 1.0

    def test_relative_to_shorter_side(self):
        assert overlap_ratio("Docker on AWS", "The system runs Docker on AWS") == 1.0

    def test_disjoint(self):
        assert overlap_ratio("Docker on AWS", "Quantum annealing hardware") == 0.0

    def test_empty_side(self):
        assert overlap_ratio("", "anything") == 0.0
        assert overlap_ratio("anything", "") == 0.0

    def test_threshold_is_inclusive(self):
        # 1 of 5 tokens shared → exactly 0.2
        policy = GatePolicy(GateConfig(overlap_threshold=0.2))
        assert policy.has_sufficient_overlap("a b c d docker", "docker v w x y z")

    def test_below_threshold(self, policy):
        assert not policy.has_sufficient_overlap(
            "The service is deployed on Kubernetes",
            "Weather forecasts predict sunny skies tomorrow afternoon",
        )


class TestNegativeIndicators:

    @pytest.mark.parametrize("text", [
        "We may use Kubernetes in the future.",
        "A GPU cluster might be added.",
        "Docker support is planned.",
        "Runtime: TBD",
        "The runtime is to be decided.",
        "Currently a prototype on Python 3.11.",
        "We plan to migrate to Kubernetes.",
        "Prototypes run on Docker.",
        "Prototyping on Kubernetes.",
        "We are planning a GPU cluster.",
        "The team plans to adopt Kubernetes.",
        "Maybe we will use a GPU cluster.",
    ])
    def test_hedged_text_is_flagged(self, policy, text):
        assert policy.contains_negative_indicator(text)

    @pytest.mark.parametrize("text", [
        "Mayday alerts are routed to the on-call server.",
        "The couldron service runs in Docker.",
        "Futures are priced with an XGBoost model.",
    ])
    def test_indicator_inside_a_word_is_not_flagged(self, policy, text):
        assert not policy.contains_negative_indicator(text)


class TestKeywords:

    def test_stem_matches(self, policy):
        assert policy.contains_any_keyword("Tokenization and normalization", SignalKey.PREPROCESSING_STEPS)

    def test_hyphenated_keyword_matches_after_normalization(self, policy):
        assert policy.contains_any_keyword("Pre-processing pipeline", SignalKey.PREPROCESSING_STEPS)

    def test_keyword_of_another_signal_does_not_count(self, policy):
        assert not policy.contains_any_keyword("Accuracy 0.91", SignalKey.MODEL_TYPE)


class TestAdmits:

    def test_blank_text_rejected(self, policy):
        assert not policy.admits(SignalKey.MODEL_TYPE, None)
        assert not policy.admits(SignalKey.MODEL_TYPE, "   ")

    def test_keyword_text_admitted(self, policy):
        assert policy.admits(SignalKey.MODEL_TYPE, "Model type: XGBoost classifier")

    def test_negative_indicator_overrides_keyword(self, policy):
        assert not policy.admits(SignalKey.RUNTIME_ENVIRONMENT, "We may use Kubernetes in the future.")

    def test_no_keyword_rejected(self, policy):
        assert not policy.admits(SignalKey.MODEL_TYPE, "We trained something on the data.")

    def test_clean_evidence_quote_admits(self, policy):
        ev = [Evidence(filename="m.txt", quote="gradient-boosted XGBoost")]
        assert policy.admits(SignalKey.MODEL_TYPE, "Our classifier is gradient boosted.", ev)

    def test_hedged_evidence_quote_does_not_admit(self, policy):
        ev = [Evidence(filename="m.txt", quote="we might try XGBoost")]
        assert not policy.admits(SignalKey.MODEL_TYPE, "Our classifier is gradient boosted.", ev)

    def test_custom_tables(self):
        policy = GatePolicy(GateConfig(
            field_keywords={SignalKey.MODEL_TYPE: ("catboost",)},
            negative_indicators=("experimental",),
        ))
        assert policy.admits(SignalKey.MODEL_TYPE, "We may use CatBoost")
        assert not policy.admits(SignalKey.MODEL_TYPE, "Experimental CatBoost model")
        assert not policy.admits(SignalKey.DATA_SOURCES, "S3 bucket")
