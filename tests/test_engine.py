import pytest

from rule_engine.engine import RuleEngine, evaluate, validate_tree
from rule_engine.errors import InvalidTree, MalformedCondition, MissingFact
from rule_engine.models import Node
from rule_engine.predicates import Comparator, STRING, default_registry
from rule_engine.rules import make_operand, make_operator

TRUE = make_operand("flag == true")
FALSE = make_operand("flag != true")
FACTS = {"flag": True}


@pytest.mark.parametrize(
    "op, left, right, expected",
    [
        ("AND", TRUE, TRUE, True),
        ("AND", TRUE, FALSE, False),
        ("AND", FALSE, TRUE, False),
        ("AND", FALSE, FALSE, False),
        ("OR", TRUE, TRUE, True),
        ("OR", TRUE, FALSE, True),
        ("OR", FALSE, TRUE, True),
        ("OR", FALSE, FALSE, False),
    ],
)
def test_operator_truth_table(op, left, right, expected):
    assert evaluate(make_operator(op, left, right), FACTS) is expected


def test_and_does_not_evaluate_right_when_left_is_false():
    tree = make_operator("AND", FALSE, make_operand("height > 180"))
    assert evaluate(tree, FACTS) is False

    tree = make_operator("AND", FALSE, make_operand("not a condition"))
    assert evaluate(tree, FACTS) is False


def test_or_does_not_evaluate_right_when_left_is_true():
    tree = make_operator("OR", TRUE, make_operand("height > 180"))
    assert evaluate(tree, FACTS) is True


def test_short_circuit_skips_structurally_invalid_branch():
    broken = Node(kind="operator", value="XOR", left=TRUE, right=TRUE)
    assert evaluate(make_operator("AND", FALSE, broken), FACTS) is False


def test_right_side_errors_surface_when_reached():
    tree = make_operator("AND", TRUE, make_operand("height > 180"))
    with pytest.raises(MissingFact):
        evaluate(tree, FACTS)

    tree = make_operator("OR", FALSE, make_operand("height >"))
    with pytest.raises(MalformedCondition):
        evaluate(tree, FACTS)


def test_nested_tree():
    tree = make_operator(
        "OR",
        make_operator("AND", make_operand("age > 30"), make_operand("department == 'Sales'")),
        make_operator("AND", make_operand("salary > 50000"), make_operand("experience > 5")),
    )

    assert evaluate(tree, {"age": 25, "department": "Sales", "salary": 60000, "experience": 6})
    assert not evaluate(tree, {"age": 25, "department": "Sales", "salary": 40000, "experience": 6})


def test_none_node_is_invalid():
    with pytest.raises(InvalidTree):
        evaluate(None, FACTS)


@pytest.mark.parametrize(
    "node",
    [
        Node(kind="operator", value="XOR", left=TRUE, right=TRUE),
        Node(kind="operator", value="and", left=TRUE, right=TRUE),
        Node(kind="operator", value="AND", left=TRUE),
        Node(kind="operator", value="OR", right=TRUE),
        Node(kind="operand", value="flag == true", left=TRUE),
        Node.model_construct(kind="bogus", value="flag == true"),
    ],
)
def test_invalid_trees(node):
    with pytest.raises(InvalidTree):
        evaluate(node, FACTS)


def test_validate_tree_reaches_skipped_branches():
    tree = make_operator("AND", FALSE, Node(kind="operator", value="AND", left=TRUE))

    assert evaluate(tree, FACTS) is False
    with pytest.raises(InvalidTree, match="missing a child"):
        validate_tree(tree)


def test_validate_tree_checks_conditions_on_request():
    tree = make_operator("OR", TRUE, make_operand("height >"))

    validate_tree(tree)
    with pytest.raises(MalformedCondition):
        validate_tree(tree, check_conditions=True)


def test_validate_tree_accepts_well_formed_tree():
    tree = make_operator("AND", make_operand("age > 30"), make_operand("department in ('Sales')"))
    validate_tree(tree, check_conditions=True)


def test_engine_with_custom_registry():
    registry = default_registry()
    registry.register_comparator(
        Comparator("startswith", lambda value, prefix: value.startswith(prefix), frozenset({STRING}))
    )
    engine = RuleEngine(registry)
    tree = make_operator("AND", make_operand("age > 30"), make_operand("name startswith 'Al'"))

    assert engine.evaluate(tree, {"age": 40, "name": "Alice"}) is True
    assert evaluate(tree, {"age": 40, "name": "Bob"}, registry=registry) is False
    with pytest.raises(MalformedCondition):
        evaluate(tree, {"age": 40, "name": "Alice"})


def test_evaluation_leaves_facts_untouched():
    facts = {"age": 35, "department": "Sales"}
    snapshot = dict(facts)
    evaluate(make_operator("AND", make_operand("age > 30"), make_operand("department = 'sales'")), facts)
    assert facts == snapshot


def _and_chain(levels, first, right_condition):
    tree = first
    for _ in range(levels):
        tree = Node(kind="operator", value="AND", left=tree, right=make_operand(right_condition))
    return tree


def test_deep_trees_evaluate_without_recursion():
    tree = _and_chain(3000, make_operand("flag == true"), "flag == true")

    assert tree.depth() == 3001
    assert evaluate(tree, FACTS) is True


def test_deep_trees_short_circuit_from_the_bottom():
    tree = _and_chain(3000, make_operand("flag != true"), "not a condition")

    assert evaluate(tree, FACTS) is False


def test_validate_tree_handles_deep_trees():
    tree = _and_chain(3000, make_operand("flag == true"), "flag == true")
    validate_tree(tree, check_conditions=True)

    broken = Node(kind="operator", value="AND", left=tree, right=None)
    with pytest.raises(InvalidTree):
        validate_tree(broken)
