#!/usr/bin/env python3
"""Tests for scoring.py - weighted scores and pass thresholds."""

import pytest

from scenario_validation.scoring import DEFAULT_MINIMUM_SCORE, minimum_score_for, score_rules, to_progress
from scenario_validation.validation_types import RuleResult, RuleType, ValidationRule


def rules_with_weights(*weights):
    return [ValidationRule(id=f"r{i}", type=RuleType.COMMAND, weight=w) for i, w in enumerate(weights)]


def results(*passed):
    return [RuleResult(f"r{i}", p) for i, p in enumerate(passed)]


def test_all_passed():
    summary = score_rules(rules_with_weights(1, 1), results(True, True))

    assert summary.score == 1.0
    assert summary.progress == 100
    assert summary.passed is True


def test_half_passed_fails_default_threshold():
    summary = score_rules(rules_with_weights(1, 1), results(True, False))

    assert summary.score == 0.5
    assert summary.progress == 50
    assert summary.passed is False


def test_weights_control_share():
    summary = score_rules(rules_with_weights(1, 0.5), results(True, False))

    assert summary.earned_weight == 1
    assert summary.total_weight == 1.5
    assert summary.score == pytest.approx(2 / 3)
    assert summary.progress == 67


def test_custom_threshold():
    summary = score_rules(rules_with_weights(3, 1), results(True, False), minimum_score=75)

    assert summary.progress == 75
    assert summary.passed is True


def test_zero_total_weight_scores_zero():
    summary = score_rules(rules_with_weights(0, 0), results(True, True))

    assert summary.score == 0.0
    assert summary.progress == 0
    assert summary.passed is False


@pytest.mark.parametrize("score,progress", [
    (0.0, 0),
    (0.125, 13),
    (0.5, 50),
    (1 / 3, 33),
    (1.0, 100),
])
def test_progress_rounding(score, progress):
    assert to_progress(score) == progress


def test_minimum_score_default():
    assert minimum_score_for({}) == DEFAULT_MINIMUM_SCORE == 100
    assert minimum_score_for({"validationCriteria": {"rules": []}}) == 100


def test_minimum_score_from_step():
    assert minimum_score_for({"validationCriteria": {"minimumScore": 60}}) == 60
    assert minimum_score_for({"validationCriteria": {"minimumScore": 0}}) == 0
