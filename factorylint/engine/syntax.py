"""
Immutable syntax tree used by factorylint rules.

Nodes follow the s-expression shape of the Ruby ``parser`` gem, e.g.
``(block (send (int 3) :times) (args) (send nil :create (sym :user)))``.
Children are either nodes, raw literal values (``int``, ``str`` symbol
names, ``float``) or ``None`` for an absent node such as a missing receiver.
"""

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple


@dataclass(frozen=True)
class SourceRange:
    """Byte range into the original source plus the text it covers."""
    start_byte: int
    end_byte: int
    text: str


@dataclass(frozen=True)
class SyntaxNode:
    """A read-only node of the syntax tree.

    Attributes:
        type: Syntactic kind, e.g. "int", "send", "block", "args"
        children: Ordered children (nodes, raw values or None)
        range: Source range of the whole expression
        begin: Opening delimiter token, e.g. "(" of an argument list
        end: Closing delimiter token
    """
    type: str
    children: Tuple[Any, ...] = ()
    range: Optional[SourceRange] = None
    begin: Optional[SourceRange] = None
    end: Optional[SourceRange] = None

    @property
    def source(self) -> str:
        """Verbatim source text of the node."""
        return self.range.text if self.range else ""

    @property
    def start_byte(self) -> int:
        return self.range.start_byte if self.range else 0

    @property
    def end_byte(self) -> int:
        return self.range.end_byte if self.range else 0

    def child_nodes(self) -> Iterator["SyntaxNode"]:
        """Yield only the children that are nodes."""
        for child in self.children:
            if isinstance(child, SyntaxNode):
                yield child

    def walk(self) -> Iterator["SyntaxNode"]:
        """Depth-first, pre-order walk over this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(list(node.child_nodes())))

    def __repr__(self) -> str:
        parts = [self.type]
        for child in self.children:
            if child is None:
                parts.append("nil")
            elif isinstance(child, str):
                parts.append(f":{child}")
            else:
                parts.append(repr(child))
        return "(" + " ".join(parts) + ")"


def is_node(value: Any, node_type: Optional[str] = None) -> bool:
    """Check that value is a SyntaxNode, optionally of a given type."""
    if not isinstance(value, SyntaxNode):
        return False
    return node_type is None or value.type == node_type


def block_parts(node: Any) -> Optional[Tuple[Any, Any, Any]]:
    """Return (send, args, body) of a block node, or None."""
    if not is_node(node, "block") or len(node.children) != 3:
        return None
    send, args, body = node.children
    return send, args, body


def send_parts(node: Any) -> Optional[Tuple[Any, str, Tuple[Any, ...]]]:
    """Return (receiver, method_name, arguments) of a send node, or None."""
    if not (is_node(node, "send") or is_node(node, "csend")):
        return None
    if len(node.children) < 2 or not isinstance(node.children[1], str):
        return None
    return node.children[0], node.children[1], tuple(node.children[2:])


def node_value(node: Any) -> Any:
    """Return the literal value of a single-valued node like (int 3) or (sym :a)."""
    if not isinstance(node, SyntaxNode) or len(node.children) != 1:
        return None
    value = node.children[0]
    return None if isinstance(value, SyntaxNode) else value


def uses_parentheses(node: Any) -> bool:
    """Check whether a call node's arguments were written inside ( and )."""
    if not isinstance(node, SyntaxNode) or node.begin is None or node.end is None:
        return False
    return node.begin.text == "(" and node.end.text == ")"
