"""
Suppression system for factorylint rules.

A comment of the form ``# factorylint: ignore[factory.create_list]`` on a
line suppresses findings from matching rules that start on that line.
Several patterns may be separated by commas and may use globs
(``factory.*``).
"""

import fnmatch
import re
from typing import Dict, List, Set

_IGNORE_PATTERN = re.compile(r'#\s*factorylint:\s*ignore\s*\[\s*([^\]]+)\s*\]', re.IGNORECASE)


class SuppressionParser:
    """Parser for factorylint suppression comments."""

    def __init__(self, text: str):
        self.text = text
        self.data = text.encode('utf-8')
        self.line_suppressions: Dict[int, Set[str]] = {}  # line_number -> {rule_patterns}

        for line_num, line in enumerate(text.split('\n'), 1):
            patterns = self._extract_suppression_patterns(line)
            if patterns:
                self.line_suppressions[line_num] = patterns

    def _extract_suppression_patterns(self, line: str) -> Set[str]:
        """Extract suppression patterns from a line."""
        patterns = set()
        for match in _IGNORE_PATTERN.finditer(line):
            for pattern in match.group(1).split(','):
                pattern = pattern.strip()
                if pattern:
                    patterns.add(pattern)
        return patterns

    def is_suppressed(self, rule_id: str, start_byte: int) -> bool:
        """Check if a rule finding should be suppressed."""
        line_num = self._byte_to_line(start_byte)
        return any(
            rule_id == pattern or fnmatch.fnmatch(rule_id, pattern)
            for pattern in self.line_suppressions.get(line_num, ())
        )

    def _byte_to_line(self, byte_offset: int) -> int:
        """Convert byte offset to 1-based line number."""
        if byte_offset < 0:
            return 1
        return self.data[:byte_offset].count(b'\n') + 1


def filter_suppressed_findings(findings: List, text: str) -> List:
    """Filter out suppressed findings from a list."""
    if not findings:
        return findings

    parser = SuppressionParser(text)
    return [
        finding for finding in findings
        if not parser.is_suppressed(finding.rule, finding.start_byte)
    ]
