"""
Declarative tree patterns and the matcher that interprets them.

A pattern is a small immutable value describing the expected shape of a
SyntaxNode. ``match(pattern, node)`` returns a read-only mapping of capture
names to the matched sub-nodes/values, or ``None`` when the node does not
have that shape. Matching never raises and never touches the tree.

Patterns can be built directly from the dataclasses below or compiled from
a compact text form::

    (send ${(const nil _) nil} :create (sym $_) $...)

Text syntax:

    (type p ...)   node of ``type`` whose children match ``p ...``
    _              anything (including an absent node)
    ...            the remaining children, zero or more
    nil            an absent node
    :name          symbol literal
    42, -1         integer literal
    "text"         string literal
    {p q ...}      first alternative that matches
    $p             capture, named by position ("0", "1", ...)
    $name=p        capture with an explicit name
    #name          reference to another compiled pattern (predicate only)
    type           node of ``type`` with any children
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


Bindings = Mapping[str, Any]


class PatternSyntaxError(ValueError):
    """Raised when a pattern is malformed. Only happens while building patterns."""


@dataclass(frozen=True)
class Wildcard:
    """Matches any child, including None."""


@dataclass(frozen=True)
class Value:
    """Matches a raw literal child (symbol name, integer, string or None)."""
    value: Any


@dataclass(frozen=True)
class Rest:
    """Matches the remaining children of a node as one unit."""


@dataclass(frozen=True)
class Ref:
    """Delegates to another named pattern. Its captures are not exported."""
    name: str
    pattern: "Pattern"


@dataclass(frozen=True)
class Capture:
    """Binds whatever ``pattern`` matched to ``name``."""
    name: str
    pattern: "Pattern"

    def __post_init__(self):
        if self.name in capture_names(self.pattern):
            raise PatternSyntaxError(f"duplicate capture name '{self.name}'")


@dataclass(frozen=True)
class NodeOf:
    """Matches a node with tag ``type`` and positional ``children``.

    Only the last child pattern may be a rest (``Rest`` or a capture of one).
    """
    type: str
    children: Tuple["Pattern", ...] = ()

    def __post_init__(self):
        for index, child in enumerate(self.children):
            if _is_rest(child) and index != len(self.children) - 1:
                raise PatternSyntaxError(f"'...' must be the last child of ({self.type} ...)")
        _check_unique(self.children)


@dataclass(frozen=True)
class Alternation:
    """Matches if any alternative matches, trying them in declared order."""
    alternatives: Tuple["Pattern", ...]

    def __post_init__(self):
        if not self.alternatives:
            raise PatternSyntaxError("empty alternation")
        expected = set(capture_names(self.alternatives[0]))
        for alternative in self.alternatives:
            if _is_rest(alternative):
                raise PatternSyntaxError("'...' cannot be an alternative")
            if set(capture_names(alternative)) != expected:
                raise PatternSyntaxError("all alternatives must capture the same names")


Pattern = Union[Wildcard, Value, Rest, Ref, Capture, NodeOf, Alternation]


def _is_rest(pattern: Any) -> bool:
    return isinstance(pattern, Rest) or (isinstance(pattern, Capture) and isinstance(pattern.pattern, Rest))


def _check_unique(patterns) -> None:
    seen = set()
    for pattern in patterns:
        for name in capture_names(pattern):
            if name in seen:
                raise PatternSyntaxError(f"duplicate capture name '{name}'")
            seen.add(name)


def capture_names(pattern: Any) -> Tuple[str, ...]:
    """Capture slot names of a pattern, in textual order."""
    if isinstance(pattern, Capture):
        return (pattern.name,) + capture_names(pattern.pattern)
    if isinstance(pattern, NodeOf):
        names: Tuple[str, ...] = ()
        for child in pattern.children:
            names += capture_names(child)
        return names
    if isinstance(pattern, Alternation):
        return capture_names(pattern.alternatives[0])
    return ()


# === Matching ===

def match(pattern: Any, node: Any) -> Optional[Bindings]:
    """Match ``node`` against ``pattern``.

    Returns:
        A read-only mapping of capture name to node/value (a tuple for rest
        captures), or None when the node does not match.
    """
    bindings: Dict[str, Any] = {}
    if not _match(pattern, node, bindings):
        return None
    return MappingProxyType(bindings)


def _match(pattern: Any, node: Any, bindings: Dict[str, Any]) -> bool:
    if isinstance(pattern, NodeOf):
        return _match_node(pattern, node, bindings)
    if isinstance(pattern, Value):
        return type(node) is type(pattern.value) and node == pattern.value
    if isinstance(pattern, (Wildcard, Rest)):
        return True
    if isinstance(pattern, Capture):
        if not _match(pattern.pattern, node, bindings):
            return False
        bindings[pattern.name] = node
        return True
    if isinstance(pattern, Alternation):
        for alternative in pattern.alternatives:
            attempt: Dict[str, Any] = {}
            if _match(alternative, node, attempt):
                bindings.update(attempt)
                return True
        return False
    if isinstance(pattern, Ref):
        return _match(pattern.pattern, node, {})
    return False


def _match_node(pattern: NodeOf, node: Any, bindings: Dict[str, Any]) -> bool:
    # Tag first; attribute access is guarded so foreign objects are plain non-matches
    if getattr(node, "type", None) != pattern.type:
        return False
    children = getattr(node, "children", None)
    if not isinstance(children, tuple):
        return False

    fixed = pattern.children
    rest = None
    if fixed and _is_rest(fixed[-1]):
        rest = fixed[-1]
        fixed = fixed[:-1]

    if rest is None and len(children) != len(fixed):
        return False
    if len(children) < len(fixed):
        return False

    for child_pattern, child in zip(fixed, children):
        if not _match(child_pattern, child, bindings):
            return False

    if isinstance(rest, Capture):
        bindings[rest.name] = tuple(children[len(fixed):])
    return True


# === Text form ===

_TOKEN_RE = re.compile(r"""
    (?P<space>\s+)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<lbrace>\{)
  | (?P<rbrace>\})
  | (?P<rest>\.\.\.)
  | (?P<capture>\$(?:(?P<capname>[A-Za-z_]\w*)=)?)
  | (?P<ref>\#[A-Za-z_]\w*\??)
  | (?P<symbol>:[A-Za-z_]\w*[?!=]?)
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<int>-?\d+)
  | (?P<ident>[A-Za-z_]\w*)
""", re.VERBOSE)


def _tokenize(source: str) -> List[Tuple[str, str, Optional[str]]]:
    tokens = []
    position = 0
    while position < len(source):
        found = _TOKEN_RE.match(source, position)
        if not found:
            raise PatternSyntaxError(f"unexpected character {source[position]!r} at offset {position}")
        position = found.end()
        kind = found.lastgroup
        if kind == "capname":
            kind = "capture"
        if kind == "space":
            continue
        tokens.append((kind, found.group(kind), found.group("capname")))
    return tokens


class _PatternParser:
    """Recursive-descent parser for the pattern text form."""

    def __init__(self, source: str, refs: Mapping[str, Any]):
        self.source = source
        self.refs = refs
        self.tokens = _tokenize(source)
        self.position = 0
        self.positional = 0

    def parse(self) -> Pattern:
        pattern = self._parse_one()
        if self.position != len(self.tokens):
            raise PatternSyntaxError(f"trailing input in pattern: {self.source!r}")
        _check_unique([pattern])
        return pattern

    def _next(self) -> Tuple[str, str, Optional[str]]:
        if self.position >= len(self.tokens):
            raise PatternSyntaxError(f"unexpected end of pattern: {self.source!r}")
        token = self.tokens[self.position]
        self.position += 1
        return token

    def _peek(self) -> Optional[str]:
        if self.position >= len(self.tokens):
            return None
        return self.tokens[self.position][0]

    def _parse_one(self) -> Pattern:
        kind, text, capname = self._next()

        if kind == "capture":
            if capname is None:
                capname = str(self.positional)
                self.positional += 1
            return Capture(capname, self._parse_one())
        if kind == "lparen":
            node_type_kind, node_type, _ = self._next()
            if node_type_kind != "ident":
                raise PatternSyntaxError(f"expected node type after '(' in {self.source!r}")
            children = []
            while self._peek() != "rparen":
                children.append(self._parse_one())
            self._next()
            return NodeOf(node_type, tuple(children))
        if kind == "lbrace":
            alternatives = []
            while self._peek() != "rbrace":
                alternatives.append(self._parse_one())
            self._next()
            return Alternation(tuple(alternatives))
        if kind == "rest":
            return Rest()
        if kind == "ref":
            name = text[1:]
            if name not in self.refs:
                raise PatternSyntaxError(f"unknown pattern reference '#{name}'")
            target = self.refs[name]
            return Ref(name, getattr(target, "pattern", target))
        if kind == "symbol":
            return Value(text[1:])
        if kind == "int":
            return Value(int(text))
        if kind == "string":
            return Value(re.sub(r"\\(.)", r"\1", text[1:-1]))
        if kind == "ident":
            if text == "_":
                return Wildcard()
            if text == "nil":
                return Value(None)
            return NodeOf(text, (Rest(),))

        raise PatternSyntaxError(f"unexpected {text!r} in pattern {self.source!r}")


def compile_pattern(source: str, refs: Optional[Mapping[str, Any]] = None) -> Pattern:
    """Compile pattern text into a Pattern value.

    Args:
        source: Pattern text, see module docstring
        refs: Patterns (or NodeMatchers) available as ``#name``

    Raises:
        PatternSyntaxError: If the text is malformed
    """
    return _PatternParser(source, refs or {}).parse()


class NodeMatcher:
    """A named, compiled pattern.

    ``matcher.match(node)`` returns the bindings mapping. Calling the matcher
    returns captures positionally: None on no match, True when the pattern
    captures nothing, the value for a single capture, otherwise a tuple.
    """

    def __init__(self, name: str, source: str, refs: Optional[Mapping[str, Any]] = None):
        self.name = name
        self.source = source
        self.pattern = compile_pattern(source, refs)
        self.capture_names = capture_names(self.pattern)

    def match(self, node: Any) -> Optional[Bindings]:
        return match(self.pattern, node)

    def __call__(self, node: Any) -> Any:
        bindings = self.match(node)
        if bindings is None:
            return None
        if not self.capture_names:
            return True
        if len(self.capture_names) == 1:
            return bindings[self.capture_names[0]]
        return tuple(bindings[name] for name in self.capture_names)

    def __repr__(self) -> str:
        return f"NodeMatcher({self.name!r}, {self.source!r})"
