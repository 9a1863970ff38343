"""
Objective Parser - Finds checkable requirements in free-text step objectives.

Objectives are short markdown strings written for learners, for example:

    Run `dcgmi diag -r 1` for quick GPU diagnostics
    Use `nvidia-smi -L`, the listing shows "Tesla"

Inline code spans are located with markdown-it-py so that a command written as
code is taken verbatim; objectives without code spans fall back to a plain
word scan.
"""

import re
from typing import List, Optional

from markdown_it import MarkdownIt
from markdown_it.token import Token

# "Run nvidia-smi", "Use ibstat", "Execute dcgmi diag"
PLAIN_COMMAND_PATTERN = re.compile(r'(?:run|use|execute)\s+([a-z-]+(?:\s+[a-z-]+)*)', re.IGNORECASE)

# Text immediately before a code span that marks it as a command to run
CODE_COMMAND_LEAD = re.compile(r'\b(?:run|use|execute)(?:\s+the)?\s*$', re.IGNORECASE)

# 'should see "X"', 'displays "X"', 'shows "X"'
EXPECTED_OUTPUT_PATTERN = re.compile(r'(?:should see|displays?|shows?)\s+"([^"]+)"', re.IGNORECASE)


class ObjectiveParser:
    """Markdown-aware scanner for objective strings."""

    def __init__(self):
        """Initialize parser with markdown-it-py instance."""
        self._md = MarkdownIt()

    def inline_tokens(self, objective: str) -> List[Token]:
        """
        Flatten the inline children of a parsed objective.

        Example:
            >>> parser = ObjectiveParser()
            >>> [t.type for t in parser.inline_tokens("Run `ibstat` now")]
            ['text', 'code_inline', 'text']
        """
        children: List[Token] = []
        for token in self._md.parse(objective):
            if token.type == "inline" and token.children:
                children.extend(token.children)
        return children

    def find_command(self, objective: str) -> Optional[str]:
        """
        Return the first command an objective asks the learner to run.

        A code span preceded by run/use/execute wins; otherwise the first
        run/use/execute followed by plain words is used.

        Example:
            >>> parser = ObjectiveParser()
            >>> parser.find_command("Run `dcgmi diag -r 1` for quick GPU diagnostics")
            'dcgmi diag -r 1'
            >>> parser.find_command("Run ibstat")
            'ibstat'
        """
        preceding = ""
        for token in self.inline_tokens(objective):
            if token.type == "code_inline":
                if CODE_COMMAND_LEAD.search(preceding) and token.content.strip():
                    return token.content.strip()
                preceding += token.content
            elif token.type in ("softbreak", "hardbreak"):
                preceding += " "
            else:
                preceding += token.content

        match = PLAIN_COMMAND_PATTERN.search(objective)
        if match:
            return match.group(1).strip()
        return None

    def find_expected_output(self, objective: str) -> Optional[str]:
        """
        Return quoted text the learner should see in the output.

        Example:
            >>> ObjectiveParser().find_expected_output('You should see "Active"')
            'Active'
        """
        match = EXPECTED_OUTPUT_PATTERN.search(objective)
        return match.group(1) if match else None


# Global parser instance for module-level functions
_parser = ObjectiveParser()


def find_command(objective: str) -> Optional[str]:
    """Module-level shortcut for ObjectiveParser.find_command()."""
    return _parser.find_command(objective)


def find_expected_output(objective: str) -> Optional[str]:
    """Module-level shortcut for ObjectiveParser.find_expected_output()."""
    return _parser.find_expected_output(objective)
