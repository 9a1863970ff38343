"""Scenario validation engine: rule extraction, evaluation, scoring and feedback."""

from scenario_validation.rule_evaluator import RuleEvaluator
from scenario_validation.rule_extractor import extract_rules
from scenario_validation.state_checks import (
    StateCheckError,
    StateCheckLookupError,
    StateCheckParseError,
    StateCheckRegistry,
)
from scenario_validation.validation_types import RuleResult, RuleType, ValidationResult, ValidationRule
from scenario_validation.validator import (
    ScenarioValidator,
    get_next_hint,
    is_step_complete,
    validate_command,
)

__all__ = [
    "RuleEvaluator",
    "RuleResult",
    "RuleType",
    "ScenarioValidator",
    "StateCheckError",
    "StateCheckLookupError",
    "StateCheckParseError",
    "StateCheckRegistry",
    "ValidationResult",
    "ValidationRule",
    "extract_rules",
    "get_next_hint",
    "is_step_complete",
    "validate_command",
]
