from typing import Any, Dict, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, model_validator

NodeKind = Literal["operator", "operand"]
OperatorName = Literal["AND", "OR"]
OPERATORS = ("AND", "OR")

# Scalar types a fact may hold
FactValue = Union[int, float, str, bool]


class Node(BaseModel):
    kind: NodeKind
    value: str  # "AND"/"OR" for operators, a condition such as "age > 30" for operands
    left: Optional["Node"] = None
    right: Optional["Node"] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_operator(self) -> bool:
        return self.kind == "operator"

    @property
    def is_operand(self) -> bool:
        return self.kind == "operand"

    def walk(self) -> Iterator["Node"]:
        """Pre-order, left before right. Iterative so tree depth is not bounded by the stack."""
        stack: List[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            for child in (node.right, node.left):
                if child is not None:
                    stack.append(child)

    def depth(self) -> int:
        deepest = 0
        stack: List[Tuple[Node, int]] = [(self, 1)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            for child in (node.left, node.right):
                if child is not None:
                    stack.append((child, level + 1))
        return deepest

    def conditions(self) -> List[str]:
        """Operand conditions in left-to-right order."""
        return [node.value for node in self.walk() if node.is_operand]

    def to_expression(self) -> str:
        parts: List[str] = []
        stack: List[Union[Node, str, None]] = [self]
        while stack:
            item = stack.pop()
            if item is None:
                parts.append("?")
            elif isinstance(item, str):
                parts.append(item)
            elif item.is_operand:
                parts.append(item.value)
            else:
                parts.append("(")
                stack.extend([")", item.right, f" {item.value} ", item.left])
        return "".join(parts)


class NodeDocument(BaseModel):
    """One level of the persisted form ``{type, value, left?, right?}``.

    Children stay raw mappings here; the serializer validates them level by
    level so arbitrarily deep documents never recurse.
    """

    type: NodeKind
    value: StrictStr
    left: Optional[Dict[str, Any]] = None
    right: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_operand_is_leaf(self) -> "NodeDocument":
        if self.type == "operand" and (self.left is not None or self.right is not None):
            raise ValueError(f"Operand document {self.value!r} must not have children")
        return self


class RuleDocument(BaseModel):
    # Stores commonly add their own bookkeeping keys (ids, timestamps) next to these.
    rule_name: StrictStr = Field(min_length=1)
    ast: Dict[str, Any]

    model_config = ConfigDict(extra="ignore")
