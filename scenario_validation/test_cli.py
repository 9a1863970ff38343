#!/usr/bin/env python3
"""Tests for cli.py - the scenario-validate command."""

import json

import pytest

from scenario_validation.cli import main


SCENARIO_YAML = """\
id: fabric
steps:
  - id: check-ports
    objectives:
      - Run `ibstat` to check port state
      - The port shows "Active"
  - id: reset-gpu
    objectives:
      - Reset the failed GPU
    validationRules:
      - type: command-executed
        description: Try resetting GPU 0
        expectedCommands:
          - nvidia-smi -r
"""


@pytest.fixture
def scenario_file(tmp_path):
    path = tmp_path / "fabric.yaml"
    path.write_text(SCENARIO_YAML)
    return str(path)


def test_validate_steps_passes(scenario_file, capsys):
    assert main(["validate-steps", scenario_file]) == 0
    assert "2 steps" in capsys.readouterr().out


def test_validate_steps_reports_errors(tmp_path, capsys):
    path = tmp_path / "broken.yaml"
    path.write_text("steps:\n  - id: s1\n    validationRules: []\n")

    assert main(["validate-steps", str(path)]) == 1
    err = capsys.readouterr().err
    assert "[ERROR]" in err
    assert "step s1" in err


def test_validate_steps_missing_file(tmp_path, capsys):
    assert main(["validate-steps", str(tmp_path / "missing.yaml")]) == 2
    assert "[ERROR]" in capsys.readouterr().err


def test_show_rules(scenario_file, capsys):
    assert main(["show-rules", scenario_file, "--step", "check-ports"]) == 0
    out = capsys.readouterr().out

    assert "objective-0" in out
    assert "output-1" in out
    assert "weight: 0.5" in out


def test_show_rules_unknown_step(scenario_file, capsys):
    assert main(["show-rules", scenario_file, "--step", "nope"]) == 2
    assert "no step with id nope" in capsys.readouterr().err


def test_check_partial(scenario_file, tmp_path, capsys):
    output = tmp_path / "out.txt"
    output.write_text("Port 1:\n  State: Down\n")

    code = main(["check", scenario_file, "--step", "check-ports", "--command", "ibstat", "--output-file", str(output)])

    assert code == 1
    out = capsys.readouterr().out
    assert "Partially correct (1/2 requirements met). Progress: 67%" in out
    assert "Hint: Output should contain: Active" in out


def test_check_passes(scenario_file, tmp_path, capsys):
    output = tmp_path / "out.txt"
    output.write_text("State: Active\n")

    code = main(["check", scenario_file, "--step", "check-ports", "--command", "ibstat", "--output-file", str(output)])

    assert code == 0
    assert "Step completed successfully" in capsys.readouterr().out


def test_check_json_with_history(scenario_file, capsys):
    code = main([
        "check", scenario_file,
        "--step", "reset-gpu",
        "--command", "ls",
        "--history", "nvidia-smi -r -i 0",
        "--json",
    ])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["passed"] is True
    assert data["matchedRules"] == ["rule-0"]


def test_check_failure_prints_rule_message(scenario_file, capsys):
    assert main(["check", scenario_file, "--step", "reset-gpu", "--command", "ls"]) == 1
    out = capsys.readouterr().out

    assert "✗ Try resetting GPU 0" in out
    assert "Hint:" not in out


def test_subcommand_required(capsys):
    with pytest.raises(SystemExit):
        main([])
