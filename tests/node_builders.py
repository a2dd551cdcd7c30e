"""
Hand-built SyntaxNode trees for tests that do not need a parser.

Ranges are computed by locating text in the source, so trees carry the same
byte offsets and verbatim text a parsed tree would.
"""

from typing import Any, Optional

from factorylint.engine.syntax import SourceRange, SyntaxNode


class SourceBuilder:
    """Builds nodes whose ranges point into ``source``."""

    def __init__(self, source: str):
        self.source = source
        self.data = source.encode("utf-8")

    def range(self, text: str, after: int = 0) -> SourceRange:
        start = self.data.index(text.encode("utf-8"), after)
        return SourceRange(start, start + len(text.encode("utf-8")), text)

    def node(self, node_type: str, *children: Any, text: Optional[str] = None,
             after: int = 0, parens: bool = False) -> SyntaxNode:
        node_range = self.range(text, after) if text is not None else None
        begin = end = None
        if parens and node_range is not None:
            begin = self.range("(", node_range.start_byte)
            end = SourceRange(node_range.end_byte - 1, node_range.end_byte, ")")
        return SyntaxNode(node_type, children, node_range, begin=begin, end=end)

    # Shorthands for the literal nodes most tests need

    def int(self, value: int, text: Optional[str] = None, after: int = 0) -> SyntaxNode:
        return self.node("int", value, text=text or str(value), after=after)

    def sym(self, name: str, after: int = 0) -> SyntaxNode:
        return self.node("sym", name, text=f":{name}", after=after)

    def const(self, name: str, after: int = 0) -> SyntaxNode:
        return self.node("const", None, name, text=name, after=after)

    def times(self, count: SyntaxNode) -> SyntaxNode:
        return self.node("send", count, "times", text=f"{count.source}.times", after=count.start_byte)

    def block(self, send: SyntaxNode, args: SyntaxNode, body: Any) -> SyntaxNode:
        text = self.data[send.start_byte:].decode("utf-8")
        return SyntaxNode("block", (send, args, body),
                          SourceRange(send.start_byte, len(self.data), text))


def no_args() -> SyntaxNode:
    """The (args) node of a block written without parameters."""
    return SyntaxNode("args", ())
