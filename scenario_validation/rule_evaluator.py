"""
Rule Evaluator - Checks one validation rule against a learner's commands.

Key Features:
- command rules: single pattern over the command history, or every expected
  command in any order (require_all_commands)
- output rules: pattern search over the captured output
- state rules: caller-supplied predicate over the command context
- sequence rules: ordered command patterns, interleaving allowed

Evaluation never raises for bad rule content; problems become failed results.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Sequence

from scenario_validation.validation_types import RuleResult, RuleType, ValidationRule

logger = logging.getLogger(__name__)

# Flags too generic to tell expected commands apart
IGNORED_FLAGS = frozenset({'--format=csv', '-i'})

# Output markers of a GPU that has dropped off the PCIe bus (XID 79)
RESET_FAULT_SIGNATURES = ('XID 79', 'fallen off the bus')

RESET_FLAG = '--gpu-reset'
SHORT_RESET_FLAG = re.compile(r'\s-r\b')

Check = Callable[[ValidationRule, str, str, Any, Sequence[str]], RuleResult]


class RuleEvaluator:
    """
    Rule evaluation engine for scenario step validation.

    Holds no state between calls; one instance can evaluate any number of rules.
    """

    def __init__(self):
        self._checks: Dict[RuleType, Check] = {
            RuleType.COMMAND: self._check_command,
            RuleType.OUTPUT: self._check_output,
            RuleType.STATE: self._check_state,
            RuleType.SEQUENCE: self._check_sequence,
        }

    def evaluate(self, rule: ValidationRule, command: str, output: str, context: Any, history: Sequence[str]) -> RuleResult:
        """
        Evaluate a rule against the current command.

        Args:
            rule: Rule to evaluate
            command: Command just submitted
            output: Output captured for that command
            context: Opaque command context, forwarded to state checks only
            history: All commands submitted in this step, current one last

        Returns:
            RuleResult for the rule
        """
        check = self._checks.get(RuleType.coerce(rule.type))
        if check is None:
            return RuleResult(rule.id, False, "Unknown rule type")

        result = check(rule, command, output, context, history)
        logger.debug(f"Rule {rule.id} ({rule.type}): {'passed' if result.passed else 'failed'}")
        return result

    def _check_command(self, rule: ValidationRule, command: str, output: str, context: Any, history: Sequence[str]) -> RuleResult:
        if rule.require_all_commands and rule.expected_commands:
            return self._check_all_commands(rule, history)

        pattern = rule.match_pattern
        if pattern is None:
            return RuleResult(rule.id, False, "No pattern defined")

        passed = bool(pattern.search(command)) or any(pattern.search(cmd) for cmd in history)
        if passed and is_reset_attempt(command) and has_reset_fault(output):
            # The reset cannot succeed on this fault; attempting it is the lesson
            return RuleResult(rule.id, True, "GPU reset attempted (XID 79: reset not possible, as expected)")

        return RuleResult(rule.id, passed, "Command requirement met" if passed else rule.error_message)

    def _check_all_commands(self, rule: ValidationRule, history: Sequence[str]) -> RuleResult:
        executed = [expected for expected in rule.expected_commands
                    if any(command_covers(cmd, expected) for cmd in history)]
        total = len(rule.expected_commands)

        if len(executed) < total:
            return RuleResult(rule.id, False, f"⏳ Keep going! {len(executed)}/{total} commands completed")

        return RuleResult(rule.id, True, "All suggested commands executed successfully")

    def _check_output(self, rule: ValidationRule, command: str, output: str, context: Any, history: Sequence[str]) -> RuleResult:
        if rule.pattern is None:
            return RuleResult(rule.id, False, "No pattern defined")

        passed = bool(rule.pattern.search(output))
        return RuleResult(rule.id, passed, "Output requirement met" if passed else rule.error_message)

    def _check_state(self, rule: ValidationRule, command: str, output: str, context: Any, history: Sequence[str]) -> RuleResult:
        if rule.state_check is None:
            return RuleResult(rule.id, False, "No state check function")

        try:
            passed = rule.state_check(context)
            if not isinstance(passed, bool):
                raise TypeError(f"state check returned non-boolean value: {passed!r}")
        except Exception as e:
            logger.debug(f"State check for rule {rule.id} raised: {e}")
            return RuleResult(rule.id, False, f"State check error: {e}")

        return RuleResult(rule.id, passed, "State requirement met" if passed else rule.error_message)

    def _check_sequence(self, rule: ValidationRule, command: str, output: str, context: Any, history: Sequence[str]) -> RuleResult:
        patterns = rule.sequence_patterns
        if not patterns:
            return RuleResult(rule.id, False, "No sequence defined")

        position = 0
        for cmd in history:
            if patterns[position].search(cmd):
                position += 1
                if position == len(patterns):
                    return RuleResult(rule.id, True, "Sequence completed")

        return RuleResult(rule.id, False, f"Sequence incomplete: {position}/{len(patterns)} commands executed")


def command_covers(command: str, expected: str) -> bool:
    """
    Check whether a submitted command satisfies an expected command.

    The base command must match exactly (case-insensitive). Every further
    token of the expected command must appear in the submitted command,
    except generic flags in IGNORED_FLAGS; ``key=value`` tokens only need
    their ``key`` so ``--query-gpu=temperature`` accepts
    ``--query-gpu=temperature.gpu,power.draw``.

    Example:
        >>> command_covers("nvidia-smi -q -d ECC", "nvidia-smi -q")
        True
        >>> command_covers("nvidia-smi", "dcgmi diag")
        False
    """
    expected_parts = expected.strip().lower().split()
    normalized = command.strip().lower()
    parts = normalized.split()

    if not expected_parts or not parts or parts[0] != expected_parts[0]:
        return False

    for part in expected_parts[1:]:
        if part in IGNORED_FLAGS:
            continue
        if '=' in part:
            part = part.split('=')[0]
        if part not in normalized:
            return False
    return True


def is_reset_attempt(command: str) -> bool:
    """True for ``--gpu-reset`` or ``nvidia-smi ... -r`` style commands."""
    return RESET_FLAG in command or ('nvidia-smi' in command and bool(SHORT_RESET_FLAG.search(command)))


def has_reset_fault(output: str) -> bool:
    """True when output carries a known irrecoverable-fault signature."""
    return bool(output) and any(signature in output for signature in RESET_FAULT_SIGNATURES)


def evaluate_rules(rules: List[ValidationRule], command: str, output: str, context: Any, history: Sequence[str]) -> List[RuleResult]:
    """Convenience function evaluating every rule with a fresh evaluator."""
    evaluator = RuleEvaluator()
    return [evaluator.evaluate(rule, command, output, context, history) for rule in rules]
