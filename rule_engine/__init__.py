import logging

from .config import Settings, settings
from .engine import RuleEngine, evaluate, validate_tree
from .errors import (
    CorruptDocument,
    EmptyRuleSet,
    FactTypeMismatch,
    InvalidTree,
    MalformedCondition,
    MissingFact,
    RuleEngineError,
)
from .models import Node, NodeDocument, RuleDocument
from .predicates import (
    Comparator,
    Condition,
    PredicateRegistry,
    default_registry,
    evaluate_operand,
    parse_condition,
)
from .rules import combine_rules, make_operand, make_operator
from .serialization import (
    decode,
    decode_rule,
    dump_yaml,
    dumps_json,
    encode,
    encode_rule,
    load_yaml,
    loads_json,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Node",
    "NodeDocument",
    "RuleDocument",
    "make_operand",
    "make_operator",
    "combine_rules",
    "Comparator",
    "Condition",
    "PredicateRegistry",
    "default_registry",
    "parse_condition",
    "evaluate_operand",
    "RuleEngine",
    "evaluate",
    "validate_tree",
    "encode",
    "decode",
    "encode_rule",
    "decode_rule",
    "dump_yaml",
    "load_yaml",
    "dumps_json",
    "loads_json",
    "Settings",
    "settings",
    "RuleEngineError",
    "MissingFact",
    "MalformedCondition",
    "FactTypeMismatch",
    "InvalidTree",
    "EmptyRuleSet",
    "CorruptDocument",
]
