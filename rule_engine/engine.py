from typing import Any, List, Mapping, Optional

from .errors import InvalidTree
from .models import OPERATORS, Node
from .predicates import DEFAULT_REGISTRY, PredicateRegistry


class RuleEngine:
    def __init__(self, registry: Optional[PredicateRegistry] = None):
        self.registry = registry or DEFAULT_REGISTRY

    def evaluate(self, node: Optional[Node], facts: Mapping[str, Any]) -> bool:
        # Explicit stack of [operator, right_started] so deep trees do not hit the recursion limit.
        pending: List[list] = []
        current = node
        while True:
            while True:
                self._check_node(current)
                if current.kind == "operand":
                    result = self.registry.evaluate(current.value, facts)
                    break
                pending.append([current, False])
                current = current.left

            while pending:
                parent, right_started = pending[-1]
                # AND settled by False, OR settled by True: the right side is never evaluated.
                if right_started or result != (parent.value == "AND"):
                    pending.pop()
                    continue
                pending[-1][1] = True
                current = parent.right
                break
            else:
                return result

    def validate_tree(self, node: Optional[Node], check_conditions: bool = False) -> None:
        """Walk the whole tree, including branches evaluation would skip.

        Raises InvalidTree on the first structural defect and, with
        ``check_conditions``, MalformedCondition on the first operand that
        no registered grammar accepts.
        """
        stack: List[Optional[Node]] = [node]
        while stack:
            current = stack.pop()
            self._check_node(current)
            if current.kind == "operand":
                if check_conditions:
                    self.registry.parse(current.value)
            else:
                stack.extend([current.right, current.left])

    @staticmethod
    def _check_node(node: Optional[Node]) -> None:
        if node is None:
            raise InvalidTree("Expected a node, got None")
        if node.kind == "operand":
            if node.left is not None or node.right is not None:
                raise InvalidTree(f"Operand {node.value!r} must not have children")
            return
        if node.kind != "operator":
            raise InvalidTree(f"Unknown node kind: {node.kind!r}")
        if node.value not in OPERATORS:
            raise InvalidTree(f"Unknown operator: {node.value!r}")
        if node.left is None or node.right is None:
            raise InvalidTree(f"Operator {node.value} is missing a child")


_default_engine = RuleEngine()


def evaluate(
    node: Optional[Node],
    facts: Mapping[str, Any],
    registry: Optional[PredicateRegistry] = None,
) -> bool:
    engine = RuleEngine(registry) if registry is not None else _default_engine
    return engine.evaluate(node, facts)


def validate_tree(
    node: Optional[Node],
    registry: Optional[PredicateRegistry] = None,
    check_conditions: bool = False,
) -> None:
    engine = RuleEngine(registry) if registry is not None else _default_engine
    engine.validate_tree(node, check_conditions)
