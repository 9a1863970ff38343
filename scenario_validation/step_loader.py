"""
Scenario Loader - Reads scenario files and checks step definitions.

Scenario files are YAML (JSON is accepted, being a YAML subset) holding either
a single step or a mapping with a ``steps`` list:

    id: gpu-health-check
    steps:
      - id: step-1
        objectives:
          - Run `nvidia-smi -q` to inspect the GPUs
        expectedCommands:
          - nvidia-smi -q
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

import yaml
from jsonschema import Draft7Validator

from scenario_validation.rule_extractor import extract_rules
from scenario_validation.state_checks import parse_state_check_expression, StateCheckParseError

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "step_schema.json"

# Global scenario cache, keyed by resolved path
_scenario_cache: Dict[Path, Dict[str, Any]] = {}


class ScenarioLoadError(ValueError):
    """Raised when a scenario file cannot be read or parsed."""
    pass


def load_step_schema() -> Dict[str, Any]:
    """Load the JSON Schema for step definitions."""
    with open(SCHEMA_PATH, encoding='utf-8') as f:
        return json.load(f)


_step_validator = Draft7Validator(load_step_schema())


def load_scenario(path: Path, use_cache: bool = True) -> Dict[str, Any]:
    """
    Load a scenario file.

    Args:
        path: Path to a YAML or JSON scenario file
        use_cache: Whether to reuse a previously loaded copy (default: True)

    Returns:
        Scenario mapping

    Raises:
        ScenarioLoadError: If the file is missing, unparsable, or not a mapping
    """
    path = Path(path)
    key = path.resolve()

    if use_cache and key in _scenario_cache:
        return _scenario_cache[key]

    try:
        content = path.read_text(encoding='utf-8')
    except OSError as e:
        raise ScenarioLoadError(f"Cannot read scenario {path}: {e}")

    try:
        scenario = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ScenarioLoadError(f"Failed to parse YAML in {path}: {e}")

    if not isinstance(scenario, dict):
        raise ScenarioLoadError(f"Scenario {path} must be a mapping, got {type(scenario).__name__}")

    logger.debug(f"Loaded scenario {path}")

    if use_cache:
        _scenario_cache[key] = scenario

    return scenario


def iter_steps(scenario: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    """Yield the steps of a scenario; a bare step yields itself."""
    if 'steps' in scenario:
        for step in scenario.get('steps') or []:
            yield step
    else:
        yield scenario


def find_step(scenario: Mapping[str, Any], step_id: Optional[str] = None) -> Mapping[str, Any]:
    """
    Find a step by id, or the first step when step_id is None.

    Raises:
        KeyError: If no step matches
    """
    for step in iter_steps(scenario):
        if step_id is None or (isinstance(step, Mapping) and step.get('id') == step_id):
            return step
    raise KeyError(step_id if step_id is not None else "<first step>")


def validate_step_definition(step: Any) -> List[str]:
    """
    Check a step definition against the step schema and rule compilation.

    Returns:
        List of error details (empty if the step is valid)
    """
    errors = []

    for error in sorted(_step_validator.iter_errors(step), key=lambda e: list(e.absolute_path)):
        location = '/'.join(str(p) for p in error.absolute_path) or '<step>'
        errors.append(f"{location}: {error.message}")

    if errors:
        return errors

    for spec in _named_state_checks(step):
        try:
            parse_state_check_expression(spec)
        except StateCheckParseError as e:
            errors.append(f"stateCheck: {e}")

    try:
        extract_rules(step)
    except re.error as e:
        errors.append(f"Invalid regex pattern: {e}")

    return errors


def _named_state_checks(step: Mapping[str, Any]) -> List[str]:
    specs = list(step.get('validationRules') or [])
    specs.extend((step.get('validationCriteria') or {}).get('rules') or [])
    return [spec['stateCheck'] for spec in specs if isinstance(spec.get('stateCheck'), str)]
