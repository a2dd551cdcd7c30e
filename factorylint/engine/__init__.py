"""
factorylint Tree-sitter engine package.

This package provides the syntax tree, the node pattern matcher, the Ruby
adapter and the machinery that runs rules and applies their corrections.
"""

from .types import (
    Finding, RuleMeta, Rule, RuleContext, Edit, Requires,
    LanguageAdapter, Severity
)

from .syntax import SourceRange, SyntaxNode

from .node_pattern import NodeMatcher, PatternSyntaxError, compile_pattern, match

from .errors import FactorylintError, ParserUnavailableError, ConfigError, EditConflictError

from .registry import (
    register_rule, register_adapter, get_adapter, get_rule,
    get_all_rules, get_enabled_rules, list_supported_languages, clear
)

from .config import (
    EngineConfig, load_config, get_default_config, save_config, find_config_file, get_rule_severity
)

__all__ = [
    # Types
    "Finding", "RuleMeta", "Rule", "RuleContext", "Edit", "Requires",
    "LanguageAdapter", "Severity",

    # Syntax tree and patterns
    "SourceRange", "SyntaxNode", "NodeMatcher", "PatternSyntaxError", "compile_pattern", "match",

    # Errors
    "FactorylintError", "ParserUnavailableError", "ConfigError", "EditConflictError",

    # Registry
    "register_rule", "register_adapter", "get_adapter", "get_rule",
    "get_all_rules", "get_enabled_rules", "list_supported_languages", "clear",

    # Config
    "EngineConfig", "load_config", "get_default_config", "save_config", "find_config_file", "get_rule_severity"
]
