"""
Rule Extractor - Normalizes a scenario step into a uniform list of rules.

A step states what it expects in one of three shapes, tried in order:
1. validationCriteria.rules - explicit engine rules
2. validationRules - legacy scenario rules (command-executed, output-match, state-check)
3. objectives - free text, scanned for commands to run and output to expect

The first strategy that yields at least one rule wins.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from scenario_validation.objective_parser import find_command, find_expected_output
from scenario_validation.state_checks import StateCheckError, StateCheckRegistry
from scenario_validation.validation_types import RuleType, StateCheck, ValidationRule, as_tuple

logger = logging.getLogger(__name__)

LEGACY_TYPE_MAP = {
    'command-executed': RuleType.COMMAND,
    'output-match': RuleType.OUTPUT,
    'state-check': RuleType.STATE,
}

# Objective-derived output checks count half as much as command checks
INFERRED_OUTPUT_WEIGHT = 0.5


def extract_rules(step: Mapping[str, Any], state_checks: Optional[StateCheckRegistry] = None) -> List[ValidationRule]:
    """
    Derive validation rules from a scenario step.

    Args:
        step: Scenario step mapping (camelCase keys as authored)
        state_checks: Registry used to resolve named state checks

    Returns:
        List of ValidationRule objects, empty when the step has nothing to check

    Raises:
        re.error: If rule data contains a malformed regular expression
    """
    for strategy in RULE_STRATEGIES:
        rules = strategy(step, state_checks)
        if rules:
            logger.debug(f"Step {step.get('id', '?')}: {len(rules)} rule(s) from {strategy.__name__}")
            return rules
    return []


def _from_validation_criteria(step: Mapping[str, Any], state_checks: Optional[StateCheckRegistry]) -> List[ValidationRule]:
    """Translate explicit validationCriteria rules one to one."""
    criteria = step.get('validationCriteria') or {}
    specs = criteria.get('rules')
    if not isinstance(specs, list):
        return []

    rules = []
    for idx, spec in enumerate(specs):
        weight = spec.get('weight')
        rules.append(ValidationRule(
            id=str(spec.get('id', f"criteria-{idx}")),
            type=RuleType.coerce(spec.get('type', '')),
            error_message=spec.get('errorMessage') or '',
            weight=1 if weight is None else weight,
            pattern=_compile(spec.get('pattern')),
            command_pattern=spec.get('commandPattern'),
            expected_commands=spec.get('expectedCommands') or (),
            require_all_commands=bool(spec.get('requireAllCommands', False)),
            sequence=spec.get('sequence') or (),
            state_check=_state_check(spec.get('stateCheck'), spec.get('stateParams'), state_checks),
        ))
    return rules


def _from_legacy_rules(step: Mapping[str, Any], state_checks: Optional[StateCheckRegistry]) -> List[ValidationRule]:
    """Map legacy validationRules kinds onto rule types."""
    specs = step.get('validationRules')
    if not isinstance(specs, list):
        return []

    step_commands = step.get('expectedCommands')
    rules = []

    for idx, spec in enumerate(specs):
        require_all = bool(spec.get('requireAllCommands', False))

        # The UI checklist shows the step's commands; validate against the same list
        if require_all and step_commands:
            commands = as_tuple(step_commands)
        else:
            commands = as_tuple(spec.get('expectedCommands'))

        rule_type = LEGACY_TYPE_MAP.get(spec.get('type'), RuleType.COMMAND)
        command_pattern = build_command_pattern(commands) if rule_type is RuleType.COMMAND else None

        output_pattern = spec.get('outputPattern')
        rules.append(ValidationRule(
            id=f"rule-{idx}",
            type=rule_type,
            error_message=spec.get('description') or '',
            weight=1,
            pattern=re.compile(output_pattern, re.IGNORECASE) if output_pattern else None,
            command_pattern=command_pattern,
            expected_commands=commands,
            require_all_commands=require_all,
            state_check=_state_check(spec.get('stateCheck'), spec.get('stateParams'), state_checks),
        ))
    return rules


def _from_objectives(step: Mapping[str, Any], state_checks: Optional[StateCheckRegistry]) -> List[ValidationRule]:
    """Infer command and output rules from objective text."""
    rules = []

    for idx, objective in enumerate(step.get('objectives') or []):
        command = find_command(objective)
        if command:
            rules.append(ValidationRule(
                id=f"objective-{idx}",
                type=RuleType.COMMAND,
                error_message=f"Try running the {command} command",
                weight=1,
                pattern=re.compile(_flexible_whitespace(command), re.IGNORECASE),
            ))

        expected = find_expected_output(objective)
        if expected:
            rules.append(ValidationRule(
                id=f"output-{idx}",
                type=RuleType.OUTPUT,
                error_message=f"Output should contain: {expected}",
                weight=INFERRED_OUTPUT_WEIGHT,
                pattern=re.compile(re.escape(expected), re.IGNORECASE),
            ))
    return rules


RULE_STRATEGIES: Sequence[Callable[[Mapping[str, Any], Optional[StateCheckRegistry]], List[ValidationRule]]] = (
    _from_validation_criteria,
    _from_legacy_rules,
    _from_objectives,
)


def build_command_pattern(commands: Sequence[str]) -> Optional[str]:
    """
    Build one alternation pattern accepting any of the given commands.

    A single-word command matches on its own or followed by flags only, so
    ``sinfo`` accepts ``sinfo -N`` but not ``sinfo help``. A multi-word
    command matches as a prefix with any amount of whitespace between words.
    """
    patterns = []
    for command in commands:
        parts = command.split()
        if not parts:
            continue
        if len(parts) == 1:
            patterns.append(rf'^{re.escape(parts[0])}(?:\s+(?:-\w+|--[\w-]+))*$')
        else:
            patterns.append('^' + _flexible_whitespace(command))
    return '|'.join(patterns) or None


def _flexible_whitespace(command: str) -> str:
    """Escape each word of a command and allow any whitespace between them."""
    return r'\s+'.join(re.escape(part) for part in command.split())


def _compile(pattern: Any) -> Optional[re.Pattern]:
    """Compile a rule pattern case-insensitively; empty or missing means no pattern."""
    if pattern is None or pattern == '':
        return None
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern, re.IGNORECASE)


def _state_check(check: Any, params: Optional[Dict[str, Any]], state_checks: Optional[StateCheckRegistry]) -> Optional[StateCheck]:
    """Return a callable check as-is or resolve a named one through the registry."""
    if check is None or callable(check):
        return check

    if state_checks is None:
        logger.warning(f"State check '{check}' named but no state check registry configured")
        return None

    try:
        return state_checks.resolve(str(check), params)
    except StateCheckError as e:
        logger.warning(f"Cannot resolve state check '{check}': {e}")
        return None
