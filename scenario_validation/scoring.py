"""Weighted scoring of rule results against a step's pass threshold."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from scenario_validation.validation_types import RuleResult, ValidationRule

logger = logging.getLogger(__name__)

# Percentage required to pass when a step does not set minimumScore
DEFAULT_MINIMUM_SCORE = 100


@dataclass(frozen=True)
class ScoreSummary:
    """
    Aggregate of one evaluation pass.

    Attributes:
        score: Earned weight over total weight (0.0-1.0)
        progress: score as a rounded integer percentage
        passed: Whether progress reached the minimum score
        earned_weight: Sum of weights of passing rules
        total_weight: Sum of weights of all rules
    """
    score: float
    progress: int
    passed: bool
    earned_weight: float
    total_weight: float


def minimum_score_for(step: Mapping[str, Any]) -> float:
    """Return the step's minimumScore, defaulting to DEFAULT_MINIMUM_SCORE."""
    criteria = step.get('validationCriteria') or {}
    minimum = criteria.get('minimumScore')
    return DEFAULT_MINIMUM_SCORE if minimum is None else minimum


def to_progress(score: float) -> int:
    """Round a 0-1 score to a percentage, halves rounding up."""
    return int(math.floor(score * 100 + 0.5))


def score_rules(rules: Sequence[ValidationRule], results: Sequence[RuleResult], minimum_score: float = DEFAULT_MINIMUM_SCORE) -> ScoreSummary:
    """
    Score rule results; each rule is all-or-nothing and weight sets its share.

    Args:
        rules: Rules in evaluation order
        results: Results aligned with rules
        minimum_score: Percentage needed to pass

    Returns:
        ScoreSummary for the evaluation
    """
    total_weight = sum(rule.weight for rule in rules)
    earned_weight = sum(rule.weight for rule, result in zip(rules, results) if result.passed)

    score = earned_weight / total_weight if total_weight > 0 else 0.0
    score = min(max(score, 0.0), 1.0)
    progress = to_progress(score)

    logger.debug(f"Score {earned_weight}/{total_weight} -> {progress}% (minimum {minimum_score}%)")

    return ScoreSummary(
        score=score,
        progress=progress,
        passed=progress >= minimum_score,
        earned_weight=earned_weight,
        total_weight=total_weight,
    )
