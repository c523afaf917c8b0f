from typing import Any


class RuleEngineError(Exception):
    """Base class for every error raised by the rule engine."""


class MissingFact(RuleEngineError, LookupError):
    def __init__(self, field: str):
        super().__init__(f"Fact not provided: {field}")
        self.field = field


class MalformedCondition(RuleEngineError, ValueError):
    def __init__(self, condition: Any, reason: str = "unrecognized syntax"):
        super().__init__(f"Malformed condition {condition!r}: {reason}")
        self.condition = condition
        self.reason = reason


class FactTypeMismatch(RuleEngineError, TypeError):
    """A fact holds a value the condition's literal cannot be compared with."""

    def __init__(self, field: str, value: Any, expected: str):
        super().__init__(
            f"Fact {field!r} has value {value!r} ({type(value).__name__}), expected {expected}"
        )
        self.field = field
        self.value = value
        self.expected = expected


class InvalidTree(RuleEngineError, ValueError):
    pass


class EmptyRuleSet(RuleEngineError, ValueError):
    def __init__(self, message: str = "Cannot combine an empty rule set"):
        super().__init__(message)


class CorruptDocument(RuleEngineError, ValueError):
    pass
