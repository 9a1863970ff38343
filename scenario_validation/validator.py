"""
Scenario Validator - Entry points used by the terminal after each command.

Typical use:

    validator = ScenarioValidator(state_checks=registry)
    result = validator.validate_command(command, output, step, context, history)
    if not result.passed:
        hint = validator.get_next_hint(result, step)

Rules are derived from the step on every call; nothing is remembered between
calls.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from scenario_validation.feedback import NO_RULES_MESSAGE, generate_feedback
from scenario_validation.feedback import get_next_hint as _next_hint
from scenario_validation.rule_evaluator import RuleEvaluator
from scenario_validation.rule_extractor import extract_rules
from scenario_validation.scoring import minimum_score_for, score_rules
from scenario_validation.state_checks import StateCheckRegistry
from scenario_validation.validation_types import ValidationResult

logger = logging.getLogger(__name__)


class ScenarioValidator:
    """
    Validates learner commands against scenario step requirements.

    Attributes:
        state_checks: Registry resolving state checks named in scenario content
    """

    def __init__(self, state_checks: Optional[StateCheckRegistry] = None):
        self.state_checks = state_checks
        self._evaluator = RuleEvaluator()

    def validate_command(
        self,
        command: str,
        output: str,
        step: Mapping[str, Any],
        context: Any = None,
        executed_commands: Optional[Sequence[str]] = None,
    ) -> ValidationResult:
        """
        Validate a command execution against a scenario step.

        Args:
            command: The command that was executed
            output: The output of the command
            step: The current scenario step
            context: Command execution context, passed to state checks only
            executed_commands: Commands executed earlier in this step

        Returns:
            ValidationResult with feedback and progress
        """
        rules = extract_rules(step, self.state_checks)

        if not rules:
            return ValidationResult(
                passed=True,
                matched_rules=[],
                failed_rules=[],
                feedback=NO_RULES_MESSAGE,
                progress=100,
                score=1.0,
                rule_results=[],
            )

        history: List[str] = [*(executed_commands or []), command]
        rule_results = [self._evaluator.evaluate(rule, command, output, context, history) for rule in rules]

        summary = score_rules(rules, rule_results, minimum_score_for(step))
        logger.debug(f"Step {step.get('id', '?')}: '{command}' -> {summary.progress}%")

        return ValidationResult(
            passed=summary.passed,
            matched_rules=[r.rule_id for r in rule_results if r.passed],
            failed_rules=[r.rule_id for r in rule_results if not r.passed],
            feedback=generate_feedback(rule_results, summary.passed, summary.progress),
            progress=summary.progress,
            score=summary.score,
            rule_results=rule_results,
        )

    def is_step_complete(self, step: Mapping[str, Any], executed_commands: Sequence[str], context: Any = None) -> bool:
        """
        Lightweight completeness probe over the command history.

        Only the last command is evaluated, with empty output, so steps whose
        rules depend on command output can report incomplete here while
        validate_command() reports them passed.
        """
        rules = extract_rules(step, self.state_checks)

        if not rules:
            return len(executed_commands) > 0

        last_command = executed_commands[-1] if executed_commands else ''
        history = list(executed_commands)
        rule_results = [self._evaluator.evaluate(rule, last_command, '', context, history) for rule in rules]

        return score_rules(rules, rule_results, minimum_score_for(step)).passed

    @staticmethod
    def get_next_hint(result: ValidationResult, step: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """Return guidance for the first failed rule, or None if the step passed."""
        return _next_hint(result, step)


# Shared validator for module-level functions
_validator = ScenarioValidator()


def validate_command(
    command: str,
    output: str,
    step: Mapping[str, Any],
    context: Any = None,
    executed_commands: Optional[Sequence[str]] = None,
) -> ValidationResult:
    """Validate with a validator that has no state check registry."""
    return _validator.validate_command(command, output, step, context, executed_commands)


def is_step_complete(step: Mapping[str, Any], executed_commands: Sequence[str], context: Any = None) -> bool:
    """Module-level shortcut for ScenarioValidator.is_step_complete()."""
    return _validator.is_step_complete(step, executed_commands, context)


def get_next_hint(result: ValidationResult, step: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    """Module-level shortcut for ScenarioValidator.get_next_hint()."""
    return _next_hint(result, step)
