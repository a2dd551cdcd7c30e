"""
Tests for suppression comments.
"""

from factorylint.engine.suppressions import SuppressionParser, filter_suppressed_findings
from factorylint.engine.types import Finding


SOURCE = (
    "3.times { create :user } # factorylint: ignore[factory.create_list]\n"
    "3.times { create :post }\n"
    "3.times { create :tag } # factorylint: ignore[factory.*]\n"
    "3.times { create :tag } # factorylint: ignore[other.rule, factory.create_list]\n"
)


def line_start(line_number):
    return len("".join(SOURCE.splitlines(keepends=True)[:line_number - 1]).encode())


def finding_on(line_number, rule="factory.create_list"):
    start = line_start(line_number)
    return Finding(rule=rule, message="Prefer create_list.", file="a.rb",
                   start_byte=start, end_byte=start + 7, severity="warn")


class TestSuppressionParser:

    def setup_method(self):
        self.parser = SuppressionParser(SOURCE)

    def test_exact_rule_id(self):
        assert self.parser.is_suppressed("factory.create_list", line_start(1))

    def test_other_line_not_suppressed(self):
        assert not self.parser.is_suppressed("factory.create_list", line_start(2))

    def test_glob_pattern(self):
        assert self.parser.is_suppressed("factory.create_list", line_start(3))

    def test_comma_separated_patterns(self):
        assert self.parser.is_suppressed("other.rule", line_start(4))
        assert self.parser.is_suppressed("factory.create_list", line_start(4))

    def test_unrelated_rule_not_suppressed(self):
        assert not self.parser.is_suppressed("style.other", line_start(1))


class TestFilterSuppressedFindings:

    def test_filters_only_suppressed(self):
        findings = [finding_on(line) for line in (1, 2, 3, 4)]
        kept = filter_suppressed_findings(findings, SOURCE)
        assert kept == [findings[1]]

    def test_empty(self):
        assert filter_suppressed_findings([], SOURCE) == []
