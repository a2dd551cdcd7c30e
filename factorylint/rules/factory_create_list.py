"""
Rule: factory.create_list (Ruby)

Prefer ``create_list`` over ``n.times { create :obj }`` calls.

    # bad
    3.times { create :user }

    # good
    create_list :user, 3

    # good: the iteration index changes each record
    3.times { |n| create :user, created_at: n.months.ago }

The autofix replaces the whole block expression and keeps the call style of
the original ``create`` (parenthesized or bare) and the verbatim text of
every trailing argument.
"""

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

from ..engine.node_pattern import NodeMatcher
from ..engine.syntax import SyntaxNode, block_parts, uses_parentheses
from ..engine.types import Edit, Finding, Requires, RuleContext, RuleMeta


REPEAT_METHOD = "times"
CREATE_METHOD = "create"
BULK_CREATE_METHOD = "create_list"

MESSAGE = "Prefer create_list."

N_TIMES = NodeMatcher("n_times", f"(send $count_node=(int $count=_) :{REPEAT_METHOD})")

TIMES_BLOCK_WITHOUT_ARGS = NodeMatcher(
    "times_block_without_args",
    "(block #n_times (args) ...)",
    refs={"n_times": N_TIMES},
)

FACTORY_CALL = NodeMatcher(
    "factory_call",
    f"(send $receiver={{(const nil _) nil}} :{CREATE_METHOD} (sym $factory=_) $options=...)",
)


@dataclass(frozen=True)
class DetectedIdiom:
    """Everything the rewrite needs, bound from one ``N.times { create ... }`` block."""
    block: SyntaxNode
    repeat_call: SyntaxNode
    count_node: SyntaxNode
    count: int
    create_call: SyntaxNode
    receiver: Optional[SyntaxNode]
    factory: str
    options: Tuple[SyntaxNode, ...]


def detect(node: Any) -> Optional[DetectedIdiom]:
    """Recognize ``N.times { [Const.]create :name, ... }`` with a parameterless block.

    Returns None for anything else; non-matching code is the normal case.
    """
    if TIMES_BLOCK_WITHOUT_ARGS.match(node) is None:
        return None
    parts = block_parts(node)
    if parts is None:
        return None
    repeat_call, _args, body = parts

    repeat = N_TIMES.match(repeat_call)
    call = FACTORY_CALL.match(body)
    if repeat is None or call is None:
        return None
    if not isinstance(repeat["count"], int) or isinstance(repeat["count"], bool):
        return None

    return DetectedIdiom(
        block=node,
        repeat_call=repeat_call,
        count_node=repeat["count_node"],
        count=repeat["count"],
        create_call=body,
        receiver=call["receiver"],
        factory=call["factory"],
        options=call["options"],
    )


class _ReplacementBuilder:
    """Emits fixed tokens and verbatim slices of the original source."""

    def __init__(self):
        self._parts: List[str] = []

    def token(self, text: str) -> "_ReplacementBuilder":
        self._parts.append(text)
        return self

    def verbatim(self, node: SyntaxNode) -> "_ReplacementBuilder":
        self._parts.append(node.source)
        return self

    def build(self) -> str:
        return "".join(self._parts)


def generate_replacement(idiom: DetectedIdiom) -> str:
    """Build ``[Receiver.]create_list :factory, N[, option...]`` for a detected idiom."""
    arguments = _ReplacementBuilder().token(f":{idiom.factory}, {idiom.count}")
    for option in idiom.options:
        arguments.token(", ").verbatim(option)

    builder = _ReplacementBuilder()
    if idiom.receiver is not None:
        builder.verbatim(idiom.receiver).token(".")
    builder.token(BULK_CREATE_METHOD)
    if uses_parentheses(idiom.create_call):
        builder.token("(").token(arguments.build()).token(")")
    else:
        builder.token(" ").token(arguments.build())
    return builder.build()


def replacement_edit(idiom: DetectedIdiom) -> Edit:
    """The edit replacing exactly the block expression with its create_list form."""
    return Edit(
        start_byte=idiom.block.start_byte,
        end_byte=idiom.block.end_byte,
        replacement=generate_replacement(idiom),
    )


class FactoryCreateListRule:
    """Flag ``n.times { create :obj }`` and suggest ``create_list :obj, n``."""

    meta = RuleMeta(
        id="factory.create_list",
        category="factory",
        priority="P2",
        autofix_safety="safe",
        description="Prefer create_list over n.times { create :obj }",
        langs=["ruby"],
    )

    requires = Requires(syntax=True)

    def visit(self, ctx: RuleContext) -> Iterator[Finding]:
        """Find repeated single-record factory calls."""
        if ctx.tree is None:
            return

        for node in ctx.walk_nodes():
            if node.type != "block":
                continue
            idiom = detect(node)
            if idiom is None:
                continue

            yield Finding(
                rule=self.meta.id,
                message=MESSAGE,
                file=ctx.file_path,
                start_byte=idiom.repeat_call.start_byte,
                end_byte=idiom.repeat_call.end_byte,
                severity="warn",
                autofix=[replacement_edit(idiom)],
                meta={
                    "factory": idiom.factory,
                    "count": idiom.count,
                    "replacement": generate_replacement(idiom),
                },
            )


RULES = [FactoryCreateListRule()]
