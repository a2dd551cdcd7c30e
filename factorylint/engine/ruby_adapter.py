"""
Ruby language adapter for tree-sitter.

Parses Ruby with tree-sitter-ruby and converts the concrete syntax tree into
SyntaxNodes shaped like the Ruby ``parser`` gem AST, so rules can be written
against familiar s-expressions such as ``(send (int 3) :times)``.
"""
import logging
import os
import re
import threading
from typing import Any, List, Optional, Tuple

from .errors import ParserUnavailableError
from .syntax import SourceRange, SyntaxNode
from .types import LanguageAdapter

logger = logging.getLogger(__name__)

# Named tree-sitter nodes that never count as statements
_NON_STATEMENTS = frozenset(["comment", "empty_statement"])

_KEYWORD_LITERALS = {"nil": "nil", "true": "true", "false": "false", "self": "self"}

_VARIABLES = {
    "instance_variable": "ivar",
    "class_variable": "cvar",
    "global_variable": "gvar",
}

_PARAMETERS = {
    "identifier": "arg",
    "optional_parameter": "optarg",
    "splat_parameter": "restarg",
    "hash_splat_parameter": "kwrestarg",
    "block_parameter": "blockarg",
    "keyword_parameter": "kwarg",
    "destructured_parameter": "mlhs",
}


_NUMBERED_PARAMETER = re.compile(r"_[1-9]\Z")

# Nested blocks own their implicit parameters
_BLOCK_TYPES = frozenset(["block", "numblock", "itblock"])


def implicit_parameter(body: Optional[SyntaxNode]) -> Any:
    """Find the implicit block parameter a block body reads.

    Returns:
        "it" for a bare ``it`` read, the highest numbered parameter (e.g. 2
        for ``_1 + _2``) when ``_1``..``_9`` are used, or None
    """
    highest = 0
    uses_it = False
    stack = [body] if body is not None else []
    while stack:
        node = stack.pop()
        if node.type in _BLOCK_TYPES:
            # Only the call a nested block hangs off belongs to the outer body
            send = node.children[0]
            if isinstance(send, SyntaxNode):
                stack.extend(child for child in send.children[2:] if isinstance(child, SyntaxNode))
                if isinstance(send.children[0], SyntaxNode):
                    stack.append(send.children[0])
            continue
        if node.type == "lvar" and _NUMBERED_PARAMETER.match(node.children[0]):
            highest = max(highest, int(node.children[0][1:]))
        elif node.type == "send" and node.children == (None, "it"):
            uses_it = True
        stack.extend(node.child_nodes())

    if highest:
        return highest
    return "it" if uses_it else None


def parse_integer(text: str) -> Optional[int]:
    """Parse a Ruby integer literal (underscores, 0x/0b/0o/0d prefixes, leading-0 octal)."""
    digits = text.replace("_", "").lower()
    sign = 1
    if digits[:1] in ("-", "+"):
        sign = -1 if digits[0] == "-" else 1
        digits = digits[1:]
    try:
        if digits.startswith("0d"):
            return sign * int(digits[2:])
        if len(digits) > 1 and digits[0] == "0" and digits[1].isdigit():
            return sign * int(digits, 8)
        return sign * int(digits, 0)
    except ValueError:
        return None


class _TreeConverter:
    """Converts one tree-sitter tree into SyntaxNodes."""

    def __init__(self, source: bytes):
        self.source = source

    def span(self, start: int, end: int) -> SourceRange:
        return SourceRange(start, end, self.source[start:end].decode("utf-8", errors="replace"))

    def text(self, ts_node) -> str:
        return self.source[ts_node.start_byte:ts_node.end_byte].decode("utf-8", errors="replace")

    def node(self, node_type: str, children, ts_node, **kwargs) -> SyntaxNode:
        return SyntaxNode(node_type, tuple(children), self.span(ts_node.start_byte, ts_node.end_byte), **kwargs)

    def named(self, ts_node) -> List[Any]:
        return [child for child in ts_node.named_children if child.type not in _NON_STATEMENTS]

    def convert(self, ts_node) -> SyntaxNode:
        handler = getattr(self, "_on_" + ts_node.type, None)
        if handler is not None:
            return handler(ts_node)
        if ts_node.type in _KEYWORD_LITERALS:
            return self.node(_KEYWORD_LITERALS[ts_node.type], (), ts_node)
        if ts_node.type in _VARIABLES:
            return self.node(_VARIABLES[ts_node.type], (self.text(ts_node),), ts_node)
        return self._generic(ts_node)

    def _generic(self, ts_node) -> SyntaxNode:
        children = self.named(ts_node)
        if not children:
            return self.node(ts_node.type, (self.text(ts_node),), ts_node)
        return self.node(ts_node.type, [self.convert(child) for child in children], ts_node)

    def statements(self, ts_nodes) -> Optional[SyntaxNode]:
        """One statement stays as-is, several are wrapped in (begin ...), none is None."""
        converted = [self.convert(child) for child in ts_nodes if child.type not in _NON_STATEMENTS]
        if not converted:
            return None
        if len(converted) == 1:
            return converted[0]
        return SyntaxNode("begin", tuple(converted), self.span(converted[0].start_byte, converted[-1].end_byte))

    # --- literals ---

    def _on_program(self, ts_node) -> SyntaxNode:
        return self.node("begin", [self.convert(child) for child in self.named(ts_node)], ts_node)

    def _on_integer(self, ts_node) -> SyntaxNode:
        return self.node("int", (parse_integer(self.text(ts_node)),), ts_node)

    def _on_float(self, ts_node) -> SyntaxNode:
        try:
            value = float(self.text(ts_node).replace("_", ""))
        except ValueError:
            value = None
        return self.node("float", (value,), ts_node)

    def _on_simple_symbol(self, ts_node) -> SyntaxNode:
        return self.node("sym", (self.text(ts_node)[1:],), ts_node)

    def _on_hash_key_symbol(self, ts_node) -> SyntaxNode:
        return self.node("sym", (self.text(ts_node),), ts_node)

    def _on_string(self, ts_node) -> SyntaxNode:
        parts = self.named(ts_node)
        if all(part.type == "string_content" for part in parts):
            return self.node("str", ("".join(self.text(part) for part in parts),), ts_node)
        return self.node("dstr", [self.convert(part) for part in parts], ts_node)

    def _on_constant(self, ts_node) -> SyntaxNode:
        return self.node("const", (None, self.text(ts_node)), ts_node)

    def _on_scope_resolution(self, ts_node) -> SyntaxNode:
        scope = ts_node.child_by_field_name("scope")
        name = ts_node.child_by_field_name("name")
        if scope is not None:
            parent = self.convert(scope)
        else:
            parent = SyntaxNode("cbase", (), self.span(ts_node.start_byte, ts_node.start_byte + 2))
        return self.node("const", (parent, self.text(name) if name is not None else ""), ts_node)

    def _on_identifier(self, ts_node) -> SyntaxNode:
        name = self.text(ts_node)
        if _NUMBERED_PARAMETER.match(name):
            return self.node("lvar", (name,), ts_node)
        # Without local-variable tracking a bare identifier reads as a receiverless call
        return self.node("send", (None, name), ts_node)

    def _on_unary(self, ts_node) -> SyntaxNode:
        operator = ts_node.child_by_field_name("operator")
        operand = ts_node.child_by_field_name("operand")
        if operator is not None and operand is not None and self.text(operator) == "-" \
                and operand.type in ("integer", "float"):
            # -3 is a negative literal, not a call to -@
            literal = self.convert(operand)
            value = literal.children[0]
            return self.node(literal.type, (-value if value is not None else None,), ts_node)
        return self._generic(ts_node)

    def _on_pair(self, ts_node) -> SyntaxNode:
        key = ts_node.child_by_field_name("key")
        value = ts_node.child_by_field_name("value")
        return self.node("pair", (
            self.convert(key) if key is not None else None,
            self.convert(value) if value is not None else None,
        ), ts_node)

    def _on_parenthesized_statements(self, ts_node) -> SyntaxNode:
        return self.node("begin", [self.convert(child) for child in self.named(ts_node)], ts_node)

    # --- calls and blocks ---

    def _on_call(self, ts_node) -> SyntaxNode:
        receiver_ts = ts_node.child_by_field_name("receiver")
        method_ts = ts_node.child_by_field_name("method")
        arguments_ts = ts_node.child_by_field_name("arguments")
        block_ts = ts_node.child_by_field_name("block")
        operator_ts = ts_node.child_by_field_name("operator")

        receiver = self.convert(receiver_ts) if receiver_ts is not None else None
        method = self.text(method_ts) if method_ts is not None else "call"
        arguments, begin, end = (), None, None
        if arguments_ts is not None:
            arguments, begin, end = self._arguments(arguments_ts)

        send_type = "csend" if operator_ts is not None and self.text(operator_ts) == "&." else "send"
        parts = [part for part in (receiver_ts, method_ts, arguments_ts) if part is not None]
        send_end = max(part.end_byte for part in parts) if parts else ts_node.end_byte
        send = SyntaxNode(
            send_type,
            (receiver, method) + tuple(arguments),
            self.span(ts_node.start_byte, send_end),
            begin=begin,
            end=end,
        )
        if block_ts is None:
            return send
        args, body = self._block(block_ts)
        if not args.children:
            implicit = implicit_parameter(body)
            if implicit == "it":
                return self.node("itblock", (send, "it", body), ts_node)
            if implicit is not None:
                return self.node("numblock", (send, implicit, body), ts_node)
        return self.node("block", (send, args, body), ts_node)

    def _arguments(self, ts_node) -> Tuple[List[SyntaxNode], Optional[SourceRange], Optional[SourceRange]]:
        begin = end = None
        tokens = ts_node.children
        if tokens and tokens[0].type == "(" and tokens[-1].type == ")":
            begin = self.span(tokens[0].start_byte, tokens[0].end_byte)
            end = self.span(tokens[-1].start_byte, tokens[-1].end_byte)

        arguments: List[SyntaxNode] = []
        pairs: List[SyntaxNode] = []
        for child in self.named(ts_node):
            converted = self.convert(child)
            if converted.type == "pair":
                pairs.append(converted)
                continue
            if pairs:
                arguments.append(self._keyword_hash(pairs))
                pairs = []
            arguments.append(converted)
        if pairs:
            arguments.append(self._keyword_hash(pairs))
        return arguments, begin, end

    def _keyword_hash(self, pairs: List[SyntaxNode]) -> SyntaxNode:
        # Braceless keyword options become one (hash ...) spanning all pairs
        return SyntaxNode("hash", tuple(pairs), self.span(pairs[0].start_byte, pairs[-1].end_byte))

    def _block(self, ts_node) -> Tuple[SyntaxNode, Optional[SyntaxNode]]:
        params_ts = None
        statements = []
        for child in self.named(ts_node):
            if child.type == "block_parameters":
                params_ts = child
            elif child.type in ("block_body", "body_statement"):
                statements.extend(child.named_children)
            else:
                statements.append(child)

        if params_ts is not None:
            params = [self._parameter(param) for param in self.named(params_ts)]
            args = self.node("args", params, params_ts)
        else:
            args = SyntaxNode("args", (), None)
        return args, self.statements(statements)

    def _parameter(self, ts_node) -> SyntaxNode:
        node_type = _PARAMETERS.get(ts_node.type)
        if node_type is None:
            return self.convert(ts_node)
        name = ts_node.child_by_field_name("name")
        return self.node(node_type, (self.text(name if name is not None else ts_node),), ts_node)


class RubyAdapter(LanguageAdapter):
    """Tree-sitter adapter for the Ruby language."""

    def __init__(self):
        self._parser = None
        self._lock = threading.Lock()

    @property
    def language_id(self) -> str:
        return "ruby"

    @property
    def file_extensions(self) -> Tuple[str, ...]:
        return (".rb", ".rake", ".gemspec")

    def _get_parser(self):
        """Get or create the tree-sitter parser."""
        if self._parser is None:
            try:
                import tree_sitter
                import tree_sitter_ruby

                language = tree_sitter.Language(tree_sitter_ruby.language())
                self._parser = tree_sitter.Parser(language)
                logger.debug("Ruby parser initialized")
            except ImportError as e:
                raise ParserUnavailableError(f"tree-sitter-ruby not available: {e}") from e
            except (TypeError, ValueError) as e:
                raise ParserUnavailableError(f"could not initialize Ruby parser: {e}") from e
        return self._parser

    def ensure_parser(self) -> None:
        """Fail early with ParserUnavailableError if the grammar cannot load."""
        self._get_parser()

    def parse(self, text) -> Optional[SyntaxNode]:
        """Parse Ruby source and return the root SyntaxNode ``(begin ...)``."""
        source = text.encode("utf-8") if isinstance(text, str) else text
        # tree-sitter parsers are not safe to share between threads
        with self._lock:
            tree = self._get_parser().parse(source)
        if tree.root_node.has_error:
            logger.debug("syntax errors in parsed Ruby source; results may be partial")
        return _TreeConverter(source).convert(tree.root_node)

    def list_files(self, paths: List[str]) -> List[str]:
        """List all Ruby files in the given paths."""
        ruby_files = []

        for path in paths:
            if os.path.isfile(path):
                if any(path.endswith(ext) for ext in self.file_extensions):
                    ruby_files.append(path)
            elif os.path.isdir(path):
                for root, dirs, files in os.walk(path):
                    dirs[:] = [d for d in dirs if not d.startswith('.')]
                    for file in files:
                        if any(file.endswith(ext) for ext in self.file_extensions):
                            ruby_files.append(os.path.join(root, file))

        return ruby_files

    def byte_to_linecol(self, text: str, byte: int) -> Tuple[int, int]:
        """Convert byte offset to (line, column) 1-based."""
        text_bytes = text.encode('utf-8')
        byte = max(0, min(byte, len(text_bytes)))
        lines = text_bytes[:byte].decode('utf-8', errors='ignore').split('\n')
        return (len(lines), len(lines[-1]) + 1)


default_ruby_adapter = RubyAdapter()
