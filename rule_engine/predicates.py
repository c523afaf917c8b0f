"""Operand condition parsing and evaluation.

A condition is a single comparison such as ``age > 30`` or
``department == 'Sales'``. Conditions are parsed by the grammars held in a
:class:`PredicateRegistry` and compared with the comparator registered for
their operator symbol, so new operators or condition shapes can be added
without touching the tree evaluator.
"""

import functools
import logging
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from . import config
from .errors import FactTypeMismatch, MalformedCondition, MissingFact

logger = logging.getLogger(__name__)

NUMBER = "number"
STRING = "string"
BOOLEAN = "boolean"
ALL_KINDS = frozenset({NUMBER, STRING, BOOLEAN})

_FIELD = r"(?P<field>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)"
_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?")
_ITEM_RE = re.compile(r"""\s*('[^']*'|"[^"]*"|[^,'"]+?)\s*(,|$)""")


@dataclass(frozen=True)
class Condition:
    field: str
    op: str
    literal: Any  # a scalar, or a tuple of scalars for membership operators
    kind: str
    source: str


@dataclass(frozen=True)
class Comparator:
    symbol: str
    compare: Callable[[Any, Any], bool]
    kinds: FrozenSet[str] = ALL_KINDS
    membership: bool = False


Parser = Callable[[str, "PredicateRegistry"], Optional[Condition]]


def kind_of(value: Any) -> Optional[str]:
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, (int, float)):
        return NUMBER
    if isinstance(value, str):
        return STRING
    return None


def parse_literal(text: str, condition: str) -> Any:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        body = text[1:-1]
        if text[0] in body:
            raise MalformedCondition(condition, f"unbalanced quotes in literal {text}")
        return body
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if _INT_RE.fullmatch(text):
        return int(text)
    if _FLOAT_RE.fullmatch(text):
        return float(text)
    raise MalformedCondition(condition, f"unrecognized literal {text!r}")


def _operator_pattern(symbols: Iterable[str]) -> str:
    parts = []
    # Longest first so ">=" wins over ">"
    for symbol in sorted(symbols, key=len, reverse=True):
        escaped = r"\s+".join(re.escape(word) for word in symbol.split())
        if symbol[0].isalpha():
            parts.append(rf"(?<=\s){escaped}(?=[\s\(\[])")
        else:
            parts.append(escaped)
    return "|".join(parts)


def _check_kind(condition: str, comparator: Comparator, kind: str) -> None:
    if kind not in comparator.kinds:
        raise MalformedCondition(
            condition, f"operator {comparator.symbol!r} does not accept {kind} literals"
        )


def parse_comparison(condition: str, registry: "PredicateRegistry") -> Optional[Condition]:
    """``<field> <op> <literal>``, e.g. ``age >= 30`` or ``department = 'Sales'``."""
    symbols = [c.symbol for c in registry.comparators.values() if not c.membership]
    if not symbols:
        return None
    match = re.fullmatch(
        rf"\s*{_FIELD}\s*(?P<op>{_operator_pattern(symbols)})\s*(?P<literal>.+?)\s*",
        condition,
    )
    if not match:
        return None
    comparator = registry.comparator(" ".join(match.group("op").split()))
    literal = parse_literal(match.group("literal"), condition)
    kind = kind_of(literal)
    _check_kind(condition, comparator, kind)
    return Condition(
        field=match.group("field"),
        op=comparator.symbol,
        literal=literal,
        kind=kind,
        source=condition,
    )


def parse_membership(condition: str, registry: "PredicateRegistry") -> Optional[Condition]:
    """``<field> in (<lit>, ...)`` and ``<field> not in [<lit>, ...]``."""
    symbols = [c.symbol for c in registry.comparators.values() if c.membership]
    if not symbols:
        return None
    match = re.fullmatch(
        rf"\s*{_FIELD}\s*(?P<op>{_operator_pattern(symbols)})\s*"
        r"(?P<open>[\(\[])(?P<items>.*)(?P<close>[\)\]])\s*",
        condition,
    )
    if not match:
        return None
    if (match.group("open"), match.group("close")) not in {("(", ")"), ("[", "]")}:
        raise MalformedCondition(condition, "mismatched brackets")
    comparator = registry.comparator(" ".join(match.group("op").split()))
    items = _split_items(match.group("items"), condition)
    kinds = {kind_of(item) for item in items}
    if len(kinds) != 1:
        raise MalformedCondition(condition, "membership list mixes literal types")
    kind = kinds.pop()
    _check_kind(condition, comparator, kind)
    return Condition(
        field=match.group("field"),
        op=comparator.symbol,
        literal=items,
        kind=kind,
        source=condition,
    )


def _split_items(body: str, condition: str) -> Tuple[Any, ...]:
    body = body.strip()
    if not body:
        raise MalformedCondition(condition, "empty membership list")
    items: List[Any] = []
    pos = 0
    while pos < len(body):
        match = _ITEM_RE.match(body, pos)
        if not match:
            raise MalformedCondition(condition, "unreadable membership list")
        items.append(parse_literal(match.group(1), condition))
        pos = match.end()
    return tuple(items)


class PredicateRegistry:
    def __init__(
        self,
        comparators: Iterable[Comparator] = (),
        parsers: Iterable[Parser] = (),
        cache_size: Optional[int] = None,
    ):
        self.comparators: Dict[str, Comparator] = {}
        self.parsers: List[Parser] = []
        if cache_size is None:
            cache_size = config.settings.parse_cache_size
        self._parse_cached = functools.lru_cache(maxsize=cache_size)(self._parse)
        for comparator in comparators:
            self.register_comparator(comparator)
        for parser in parsers:
            self.register_parser(parser)

    def register_comparator(self, comparator: Comparator) -> None:
        symbol = " ".join(comparator.symbol.split())
        if symbol != comparator.symbol or not symbol:
            raise ValueError(f"Invalid operator symbol: {comparator.symbol!r}")
        self.comparators[symbol] = comparator
        self._parse_cached.cache_clear()
        logger.debug("Registered comparator %r for %s", symbol, sorted(comparator.kinds))

    def register_parser(self, parser: Parser, first: bool = False) -> None:
        if first:
            self.parsers.insert(0, parser)
        else:
            self.parsers.append(parser)
        self._parse_cached.cache_clear()
        logger.debug("Registered condition parser %s", getattr(parser, "__name__", parser))

    def comparator(self, symbol: str) -> Comparator:
        try:
            return self.comparators[symbol]
        except KeyError:
            raise MalformedCondition(symbol, "no comparator registered for operator") from None

    def parse(self, condition: str) -> Condition:
        if not isinstance(condition, str):
            raise MalformedCondition(condition, "condition must be a string")
        return self._parse_cached(condition)

    def _parse(self, condition: str) -> Condition:
        first_error: Optional[MalformedCondition] = None
        for parser in self.parsers:
            try:
                parsed = parser(condition, self)
            except MalformedCondition as exc:
                # A later grammar may still accept the text.
                first_error = first_error or exc
                continue
            if parsed is not None:
                return parsed
        if first_error is not None:
            raise first_error
        raise MalformedCondition(condition)

    def evaluate(self, condition: str, facts: Mapping[str, Any]) -> bool:
        parsed = self.parse(condition)
        if parsed.field not in facts:
            raise MissingFact(parsed.field)
        value = facts[parsed.field]
        if kind_of(value) != parsed.kind:
            raise FactTypeMismatch(parsed.field, value, parsed.kind)

        literal = parsed.literal
        if parsed.kind == STRING and not config.settings.string_case_sensitive:
            value = value.casefold()
            if isinstance(literal, tuple):
                literal = tuple(item.casefold() for item in literal)
            else:
                literal = literal.casefold()
        return bool(self.comparators[parsed.op].compare(value, literal))


def _contains(value: Any, items: Tuple[Any, ...]) -> bool:
    return value in items


def _not_contains(value: Any, items: Tuple[Any, ...]) -> bool:
    return value not in items


def default_registry() -> PredicateRegistry:
    numeric = frozenset({NUMBER})
    return PredicateRegistry(
        comparators=[
            Comparator(">", operator.gt, numeric),
            Comparator("<", operator.lt, numeric),
            Comparator(">=", operator.ge, numeric),
            Comparator("<=", operator.le, numeric),
            Comparator("==", operator.eq),
            Comparator("!=", operator.ne),
            Comparator("=", operator.eq),
            Comparator("in", _contains, membership=True),
            Comparator("not in", _not_contains, membership=True),
        ],
        parsers=[parse_comparison, parse_membership],
    )


DEFAULT_REGISTRY = default_registry()


def parse_condition(condition: str, registry: Optional[PredicateRegistry] = None) -> Condition:
    return (registry or DEFAULT_REGISTRY).parse(condition)


def evaluate_operand(
    condition: str,
    facts: Mapping[str, Any],
    registry: Optional[PredicateRegistry] = None,
) -> bool:
    return (registry or DEFAULT_REGISTRY).evaluate(condition, facts)
