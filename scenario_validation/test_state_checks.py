#!/usr/bin/env python3
"""
Test suite for the state check registry.

Tests registration, expression parsing, parameter binding and error handling.
"""

import pytest

from scenario_validation.state_checks import (
    StateCheckError,
    StateCheckLookupError,
    StateCheckParseError,
    StateCheckRegistry,
    parse_state_check_expression,
)


@pytest.fixture
def registry():
    registry = StateCheckRegistry()

    @registry.register("gpu-healthy")
    def gpu_healthy(ctx, gpu="all"):
        if gpu == "all":
            return all(ctx["healthy"].values())
        return ctx["healthy"][gpu]

    registry.register("temperature-normal", lambda ctx, max_celsius="85": ctx["temp"] <= int(max_celsius))
    registry.register("broken", lambda ctx: "yes")
    return registry


# ============================================================================
# Registration
# ============================================================================

def test_register_as_decorator_returns_function(registry):
    def ecc_cleared(ctx):
        return True

    assert registry.register("ecc-cleared")(ecc_cleared) is ecc_cleared
    assert "ecc-cleared" in registry


def test_names_sorted(registry):
    assert registry.names() == ["broken", "gpu-healthy", "temperature-normal"]


def test_register_rejects_invalid_name():
    with pytest.raises(StateCheckParseError):
        StateCheckRegistry().register("not a name", lambda ctx: True)


# ============================================================================
# Expression parsing
# ============================================================================

def test_parse_bare_name():
    assert parse_state_check_expression("gpu-healthy") == ("gpu-healthy", {})


def test_parse_empty_call():
    assert parse_state_check_expression("slurm-online()") == ("slurm-online", {})


def test_parse_keyword_arguments():
    name, kwargs = parse_state_check_expression('temperature-normal(max_celsius="80", gpu="3")')
    assert name == "temperature-normal"
    assert kwargs == {"max_celsius": "80", "gpu": "3"}


def test_parse_list_argument():
    _, kwargs = parse_state_check_expression('nvlink-active(links=["0", "1"])')
    assert kwargs == {"links": ["0", "1"]}


@pytest.mark.parametrize("expression", [
    "",
    "gpu healthy",
    "gpu-healthy(",
    'gpu-healthy("0")',
    'gpu-healthy(gpu=0)',
    'gpu-healthy(gpu="0" junk)',
])
def test_parse_rejects_malformed(expression):
    with pytest.raises(StateCheckParseError):
        parse_state_check_expression(expression)


# ============================================================================
# Resolution
# ============================================================================

def test_resolve_binds_params(registry):
    check = registry.resolve("gpu-healthy", {"gpu": "1"})
    assert check({"healthy": {"0": True, "1": False}}) is False


def test_expression_args_override_params(registry):
    check = registry.resolve('gpu-healthy(gpu="0")', {"gpu": "1"})
    assert check({"healthy": {"0": True, "1": False}}) is True


def test_resolve_default_params(registry):
    check = registry.resolve("temperature-normal")
    assert check({"temp": 70}) is True
    assert check({"temp": 90}) is False


def test_resolve_unknown_name(registry):
    with pytest.raises(StateCheckLookupError) as exc_info:
        registry.resolve("nvlink-active")
    assert "gpu-healthy" in str(exc_info.value)


def test_non_boolean_result_raises(registry):
    check = registry.resolve("broken")
    with pytest.raises(StateCheckError):
        check({})


def test_error_hierarchy():
    assert issubclass(StateCheckParseError, StateCheckError)
    assert issubclass(StateCheckLookupError, StateCheckError)
