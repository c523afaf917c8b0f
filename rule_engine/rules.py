from typing import List, Sequence

from .errors import EmptyRuleSet, InvalidTree
from .models import OPERATORS, Node, OperatorName


def make_operand(condition: str) -> Node:
    """Leaf holding one condition; ``condition`` must be a ``str``.

    The text is checked at evaluation time so rules may reference predicates
    that are registered later.
    """
    return Node(kind="operand", value=condition)


def make_operator(op: OperatorName, left: Node, right: Node) -> Node:
    # A node may only have one parent: reusing any part of ``left`` on the right gets a copy.
    if isinstance(left, Node) and isinstance(right, Node):
        left_ids = {id(node) for node in left.walk()}
        if any(id(node) in left_ids for node in right.walk()):
            right = right.model_copy(deep=True)
    return Node(kind="operator", value=op, left=left, right=right)


def combine_rules(rules: Sequence[Node], op: OperatorName = "AND") -> Node:
    """Fold rules into one tree by pairing neighbours level by level.

    ``[r1, r2, r3, r4, r5]`` becomes ``(((r1 op r2) op (r3 op r4)) op r5)``,
    so depth grows with log2 of the rule count. A single rule is returned
    as-is. With two or more, every rule is copied whole under new operator
    nodes so no sub-tree ends up with two parents, even when the same rule is
    passed twice. Input trees are never modified.
    """
    if op not in OPERATORS:
        raise InvalidTree(f"Unknown operator: {op!r}")
    rules = list(rules)
    if not rules:
        raise EmptyRuleSet()
    for index, rule in enumerate(rules):
        if not isinstance(rule, Node):
            raise InvalidTree(f"Rule at position {index} is not a node: {rule!r}")
    if len(rules) == 1:
        return rules[0]

    level: List[Node] = [rule.model_copy(deep=True) for rule in rules]
    while len(level) > 1:
        paired = [
            Node(kind="operator", value=op, left=level[i], right=level[i + 1])
            for i in range(0, len(level) - 1, 2)
        ]
        if len(level) % 2:
            paired.append(level[-1])
        level = paired
    return level[0]
