#!/usr/bin/env python3
"""Command-line tool for checking scenario validation rules."""

import argparse
import json
import logging
import re
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import yaml

from scenario_validation.rule_extractor import extract_rules
from scenario_validation.step_loader import (
    ScenarioLoadError,
    find_step,
    iter_steps,
    load_scenario,
    validate_step_definition,
)
from scenario_validation.validator import ScenarioValidator
from scenario_validation.validation_types import ValidationRule

logger = logging.getLogger(__name__)


def validate_steps(args) -> int:
    """Validate every step definition in a scenario file.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 on success, 1 on errors, 2 if the file cannot be loaded
    """
    try:
        scenario = load_scenario(args.scenario)
    except ScenarioLoadError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    errors = []
    count = 0
    for idx, step in enumerate(iter_steps(scenario)):
        count += 1
        step_id = step.get('id', f"#{idx}") if isinstance(step, dict) else f"#{idx}"
        for detail in validate_step_definition(step):
            errors.append(f"[ERROR] {args.scenario}: step {step_id}: {detail}")

    if errors:
        for error in errors:
            print(error, file=sys.stderr)
        return 1

    print(f"Step validation passed: {count} steps")
    return 0


def _rule_to_dict(rule: ValidationRule) -> Dict:
    data = {'id': rule.id, 'type': str(getattr(rule.type, 'value', rule.type)), 'weight': rule.weight}
    if rule.match_pattern is not None:
        data['pattern'] = rule.match_pattern.pattern
    if rule.expected_commands:
        data['expectedCommands'] = list(rule.expected_commands)
    if rule.require_all_commands:
        data['requireAllCommands'] = True
    if rule.sequence:
        data['sequence'] = list(rule.sequence)
    if rule.state_check is not None:
        data['stateCheck'] = getattr(rule.state_check, '__name__', 'callable')
    if rule.error_message:
        data['errorMessage'] = rule.error_message
    return data


def show_rules(args) -> int:
    """Print the rules derived from one step.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 on success, 2 if the step cannot be loaded
    """
    try:
        step = find_step(load_scenario(args.scenario), args.step)
        rules = extract_rules(step)
    except ScenarioLoadError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2
    except KeyError:
        print(f"[ERROR] {args.scenario}: no step with id {args.step}", file=sys.stderr)
        return 2
    except re.error as e:
        print(f"[ERROR] {args.scenario}: invalid regex pattern: {e}", file=sys.stderr)
        return 2

    print(f"=== Effective Validation Rules for step {step.get('id', '?')} ===")
    print(yaml.dump([_rule_to_dict(rule) for rule in rules], default_flow_style=False, sort_keys=False, allow_unicode=True))
    return 0


def check_command(args) -> int:
    """Validate one command against a step and print feedback.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 if the step passed, 1 if not, 2 on loading errors
    """
    try:
        step = find_step(load_scenario(args.scenario), args.step)
        output = Path(args.output_file).read_text(encoding='utf-8') if args.output_file else ''
        result = ScenarioValidator().validate_command(args.command, output, step, None, args.history)
    except ScenarioLoadError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2
    except KeyError:
        print(f"[ERROR] {args.scenario}: no step with id {args.step}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"[ERROR] Cannot read output file: {e}", file=sys.stderr)
        return 2
    except re.error as e:
        print(f"[ERROR] {args.scenario}: invalid regex pattern: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(result.feedback)
        hint = ScenarioValidator.get_next_hint(result, step)
        if hint and f"✗ {hint}" != result.feedback:
            print(f"  Hint: {hint}")

    return 0 if result.passed else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the scenario validation tool."""
    parser = argparse.ArgumentParser(
        prog='scenario-validate',
        description="Check scenario step validation rules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s validate-steps scenarios/gpu-health.yaml
  %(prog)s show-rules scenarios/gpu-health.yaml --step step-1
  %(prog)s check scenarios/gpu-health.yaml --step step-1 --command "nvidia-smi -q"
        """
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log rule derivation and scoring details'
    )

    subparsers = parser.add_subparsers(
        dest='command_name',
        required=True,
        help='Command to run'
    )

    # validate-steps subcommand
    parser_steps = subparsers.add_parser(
        'validate-steps',
        help='Validate step definitions against the step schema'
    )
    parser_steps.add_argument('scenario', help='Scenario YAML or JSON file')

    # show-rules subcommand
    parser_rules = subparsers.add_parser(
        'show-rules',
        help='Show the rules derived from a step'
    )
    parser_rules.add_argument('scenario', help='Scenario YAML or JSON file')
    parser_rules.add_argument('--step', help='Step id (default: first step)')

    # check subcommand
    parser_check = subparsers.add_parser(
        'check',
        help='Validate a command against a step'
    )
    parser_check.add_argument('scenario', help='Scenario YAML or JSON file')
    parser_check.add_argument('--step', help='Step id (default: first step)')
    parser_check.add_argument('--command', required=True, help='Command the learner submitted')
    parser_check.add_argument('--output-file', help='File holding the captured command output')
    parser_check.add_argument(
        '--history',
        nargs='*',
        default=[],
        help='Commands executed earlier in the step, oldest first'
    )
    parser_check.add_argument('--json', action='store_true', help='Print the full result as JSON')

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s [%(name)s] %(message)s")

    handlers: Dict[str, Callable[..., int]] = {
        'validate-steps': validate_steps,
        'show-rules': show_rules,
        'check': check_command,
    }

    return handlers[args.command_name](args)


if __name__ == "__main__":
    sys.exit(main())
