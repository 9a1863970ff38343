"""
State Check Registry - Named predicates over the command context.

Scenario files cannot carry Python callables, so a legacy ``state-check`` rule
names its predicate instead:

    validationRules:
      - type: state-check
        description: All GPUs must report healthy
        stateCheck: gpu-healthy
        stateParams:
          min_count: 8

The application that owns the simulated cluster registers the predicates; the
validation engine only resolves names to callables and forwards the opaque
context to them.

Expression forms accepted by resolve():
- bare name: gpu-healthy
- call form: temperature-normal(max_celsius="85")
- list arguments: nvlink-active(links=["0", "1"])
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from scenario_validation.validation_types import StateCheck

logger = logging.getLogger(__name__)


class StateCheckError(Exception):
    """Base exception for state check registry errors."""
    pass


class StateCheckParseError(StateCheckError):
    """Exception raised when a state check expression cannot be parsed."""
    pass


class StateCheckLookupError(StateCheckError):
    """Exception raised when a state check name is not registered."""
    pass


_NAME = r'[A-Za-z_][\w-]*'


class StateCheckRegistry:
    """
    Mapping of state check names to predicate functions.

    Predicates are called as ``func(context, **params)`` and must return a bool.
    """

    def __init__(self):
        self._checks: Dict[str, Callable[..., bool]] = {}

    def register(self, name: str, func: Optional[Callable[..., bool]] = None):
        """
        Register a predicate under ``name``.

        Usable directly or as a decorator:

            >>> registry = StateCheckRegistry()
            >>> @registry.register("gpu-healthy")
            ... def gpu_healthy(ctx):
            ...     return True
        """
        if not re.fullmatch(_NAME, name):
            raise StateCheckParseError(f"Invalid state check name: {name!r}")

        def decorator(f: Callable[..., bool]) -> Callable[..., bool]:
            self._checks[name] = f
            return f

        if func is not None:
            return decorator(func)
        return decorator

    def names(self) -> List[str]:
        return sorted(self._checks)

    def __contains__(self, name: str) -> bool:
        return name in self._checks

    def resolve(self, expression: str, params: Optional[Dict[str, Any]] = None) -> StateCheck:
        """
        Resolve an expression to a single-argument predicate over the context.

        Args:
            expression: State check name, optionally in call form
            params: Extra keyword arguments (legacy ``stateParams``); values in
                the expression take precedence

        Returns:
            Callable taking the command context and returning a bool

        Raises:
            StateCheckParseError: If the expression is malformed
            StateCheckLookupError: If the name is not registered
        """
        name, kwargs = parse_state_check_expression(expression)

        if name not in self._checks:
            available = ', '.join(self.names()) or 'none registered'
            raise StateCheckLookupError(
                f"Unknown state check: {name}. Available state checks: {available}"
            )

        func = self._checks[name]
        bound = dict(params or {})
        bound.update(kwargs)

        def check(context: Any) -> bool:
            result = func(context, **bound)
            if not isinstance(result, bool):
                raise StateCheckError(
                    f"State check {name} returned non-boolean value: {result!r}"
                )
            return result

        check.__name__ = f"state_check[{name}]"
        return check


def parse_state_check_expression(expression: str) -> Tuple[str, Dict[str, Any]]:
    """
    Parse a state check expression into its name and keyword arguments.

    Example:
        >>> parse_state_check_expression('gpu-healthy')
        ('gpu-healthy', {})
        >>> parse_state_check_expression('temperature-normal(max_celsius="85")')
        ('temperature-normal', {'max_celsius': '85'})
    """
    expression = expression.strip()

    match = re.match(rf'^({_NAME})(?:\((.*)\))?$', expression)
    if not match:
        raise StateCheckParseError(
            f"Invalid state check expression format: {expression}. "
            "Expected format: name or name(key=\"value\")"
        )

    name = match.group(1)
    args_str = (match.group(2) or '').strip()

    if not args_str:
        return name, {}

    return name, _parse_keyword_args(args_str, expression)


def _parse_keyword_args(args_str: str, original_expr: str) -> Dict[str, Any]:
    """Parse keyword argument format: key="value" or key=["a", "b"]."""
    kwargs = {}
    kwarg_pattern = r'(\w+)\s*=\s*(\[[^\]]*\]|"[^"]*")'

    consumed = 0
    for match in re.finditer(kwarg_pattern, args_str):
        separator = args_str[consumed:match.start()].strip()
        if separator not in ('', ','):
            raise StateCheckParseError(f"Failed to parse arguments in: {original_expr}")
        kwargs[match.group(1)] = _parse_value(match.group(2))
        consumed = match.end()

    if not kwargs or args_str[consumed:].strip():
        raise StateCheckParseError(f"Failed to parse arguments in: {original_expr}")

    return kwargs


def _parse_value(value_str: str) -> Any:
    value_str = value_str.strip()
    if value_str.startswith('['):
        return re.findall(r'"([^"]*)"', value_str)
    return value_str[1:-1]
