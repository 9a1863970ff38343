"""
Validation Types - Rule and result structures shared by the validation engine.

Rules are immutable values. Every regular expression a rule needs is compiled
once when the rule is built, so a malformed pattern surfaces while the step is
being read rather than on every command the learner types.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union


class RuleType(str, Enum):
    """Kinds of checks a validation rule can perform."""
    COMMAND = "command"
    OUTPUT = "output"
    STATE = "state"
    SEQUENCE = "sequence"

    @classmethod
    def coerce(cls, value: Union[str, "RuleType"]) -> Union["RuleType", str]:
        """Return the matching RuleType, or the raw value for unknown kinds."""
        try:
            return cls(value)
        except ValueError:
            return value


StateCheck = Callable[[Any], bool]


def as_tuple(value: Any) -> Tuple[Any, ...]:
    """Normalize a list-valued field; a bare string counts as one entry."""
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class ValidationRule:
    """
    A single weighted, pass/fail requirement derived from a scenario step.

    Attributes:
        id: Rule identifier, unique within a step
        type: RuleType, or the raw kind string when it is not recognized
        error_message: Message shown when the rule fails
        weight: Share of the step score this rule controls
        pattern: Compiled pattern matched against command or output
        command_pattern: Pattern source for command rules
        expected_commands: Commands checked in require_all_commands mode
        require_all_commands: Require every expected command, in any order
        sequence: Ordered command patterns for sequence rules
        state_check: Caller-supplied predicate over the command context
    """
    id: str
    type: Union[RuleType, str]
    error_message: str = ""
    weight: float = 1
    pattern: Optional[re.Pattern] = None
    command_pattern: Optional[str] = None
    expected_commands: Tuple[str, ...] = ()
    require_all_commands: bool = False
    sequence: Tuple[str, ...] = ()
    state_check: Optional[StateCheck] = field(default=None, compare=False, repr=False)
    command_regex: Optional[re.Pattern] = field(init=False, default=None, compare=False, repr=False)
    sequence_patterns: Tuple[re.Pattern, ...] = field(init=False, default=(), compare=False, repr=False)

    def __post_init__(self):
        # Frozen dataclass: derived fields are set through object.__setattr__
        object.__setattr__(self, "expected_commands", as_tuple(self.expected_commands))
        object.__setattr__(self, "sequence", as_tuple(self.sequence))

        if self.command_pattern:
            object.__setattr__(self, "command_regex", re.compile(self.command_pattern, re.IGNORECASE))

        object.__setattr__(
            self,
            "sequence_patterns",
            tuple(re.compile(step, re.IGNORECASE) for step in self.sequence),
        )

    @property
    def match_pattern(self) -> Optional[re.Pattern]:
        """Pattern used for single-pattern command checks."""
        return self.pattern if self.pattern is not None else self.command_regex


@dataclass(frozen=True)
class RuleResult:
    """Outcome of evaluating one rule."""
    rule_id: str
    passed: bool
    message: Optional[str] = None


@dataclass
class ValidationResult:
    """
    Overall outcome of validating a command against a scenario step.

    Attributes:
        passed: Whether the step's minimum score was reached
        matched_rules: Ids of rules that passed
        failed_rules: Ids of rules that failed
        feedback: Short message for the learner
        progress: Weighted score as an integer percentage (0-100)
        score: Weighted score (0.0-1.0)
        rule_results: Per-rule results in rule order
    """
    passed: bool
    matched_rules: List[str]
    failed_rules: List[str]
    feedback: str
    progress: int
    score: float
    rule_results: List[RuleResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used by scenario content."""
        return {
            "passed": self.passed,
            "matchedRules": list(self.matched_rules),
            "failedRules": list(self.failed_rules),
            "feedback": self.feedback,
            "progress": self.progress,
            "score": self.score,
            "ruleResults": [
                {"ruleId": r.rule_id, "passed": r.passed, "message": r.message}
                for r in self.rule_results
            ],
        }
