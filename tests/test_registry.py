"""
Tests for the rule and adapter registry.
"""

from factorylint.engine.registry import Registry
from factorylint.engine.ruby_adapter import RubyAdapter
from factorylint.engine.types import Requires, RuleMeta
from factorylint.rules.factory_create_list import FactoryCreateListRule


class DummyRule:
    meta = RuleMeta(id="style.dummy", category="style", priority="P2", autofix_safety="suggest-only",
                    langs=["ruby"])
    requires = Requires()

    def visit(self, ctx):
        return []


class TestRegistry:

    def setup_method(self):
        self.registry = Registry()

    def test_register_rule_ignores_duplicates(self):
        self.registry.register_rule(FactoryCreateListRule())
        self.registry.register_rule(FactoryCreateListRule())
        assert self.registry.get_rule_ids() == ["factory.create_list"]

    def test_enabled_rules_by_pattern(self):
        self.registry.register_rule(FactoryCreateListRule())
        self.registry.register_rule(DummyRule())

        def ids(patterns):
            return [rule.meta.id for rule in self.registry.get_enabled_rules(patterns, "ruby")]

        assert ids(["*"]) == ["factory.create_list", "style.dummy"]
        assert ids(["factory.*"]) == ["factory.create_list"]
        assert ids(["style.dummy", "nothing.*"]) == ["style.dummy"]
        assert ids([]) == []

    def test_rules_filtered_by_language(self):
        self.registry.register_rule(FactoryCreateListRule())
        assert self.registry.get_enabled_rules(["*"], "python") == []

    def test_adapter_for_file(self):
        adapter = RubyAdapter()
        self.registry.register_adapter("ruby", adapter)
        assert self.registry.get_adapter_for_file("spec/a_spec.rb") is adapter
        assert self.registry.get_adapter_for_file("lib/tasks/db.rake") is adapter
        assert self.registry.get_adapter_for_file("README.md") is None
        assert self.registry.list_supported_languages() == ["ruby"]

    def test_discover_rules(self):
        assert self.registry.discover_rules(["factorylint.rules"]) >= 1
        assert "factory.create_list" in self.registry.get_rule_ids()
        # Discovery is idempotent
        assert self.registry.discover_rules(["factorylint.rules"]) == 0

    def test_discover_missing_package(self, caplog):
        assert self.registry.discover_rules(["no_such_package_xyz"]) == 0
        assert "no_such_package_xyz" in caplog.text

    def test_extract_rule_classes(self):
        module = type("module", (), {"RULES": [DummyRule]})
        self.registry._extract_rules_from_module(module, "dummy")
        assert self.registry.get_rule("style.dummy") is not None

    def test_clear(self):
        self.registry.register_rule(DummyRule())
        self.registry.clear()
        assert self.registry.get_all_rules() == []
