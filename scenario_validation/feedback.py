"""
Feedback Generator - Learner-facing messages for validation results.
"""

from typing import Any, Mapping, Optional, Sequence

from scenario_validation.validation_types import RuleResult, ValidationResult

NO_RULES_MESSAGE = "✓ Step completed"
COMPLETED_MESSAGE = "✓ Step completed successfully! Moving to next step."
THRESHOLD_MET_MESSAGE = "✓ Step requirements met ({progress}% complete). You may proceed."
NO_MATCH_MESSAGE = "✗ This command doesn't match the step requirements. Type \"hint\" for guidance."
PARTIAL_MESSAGE = "⚠ Partially correct ({passed}/{total} requirements met). Progress: {progress}%"
GENERIC_HINT = "Review the step objectives and try a different approach. Type \"hint\" for more guidance."


def generate_feedback(rule_results: Sequence[RuleResult], passed: bool, progress: int) -> str:
    """
    Summarize rule results in one line.

    Args:
        rule_results: Per-rule results in rule order
        passed: Whether the step threshold was reached
        progress: Weighted progress percentage

    Returns:
        Feedback message
    """
    if not rule_results:
        return NO_RULES_MESSAGE

    if passed:
        if progress == 100:
            return COMPLETED_MESSAGE
        return THRESHOLD_MET_MESSAGE.format(progress=progress)

    failed = [r for r in rule_results if not r.passed]
    total = len(rule_results)

    if len(failed) == total:
        if failed[0].message:
            return f"✗ {failed[0].message}"
        return NO_MATCH_MESSAGE

    return PARTIAL_MESSAGE.format(passed=total - len(failed), total=total, progress=progress)


def get_next_hint(result: ValidationResult, step: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    """
    Guidance for the first unmet requirement, or None once the step passed.

    ``step`` is accepted for callers that pass it; hints come from the result.
    """
    if result.passed:
        return None

    for rule_result in result.rule_results:
        if not rule_result.passed and rule_result.message:
            return rule_result.message

    return GENERIC_HINT
