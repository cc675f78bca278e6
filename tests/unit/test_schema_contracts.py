"""Flow and execution schema contracts."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from support import add_label, build_flow, question, start

from decisionflow.schemas.enums import ComparisonOperator, ComparisonSource, EffectKind, NodeType
from decisionflow.schemas.execution_models import ExecutionState
from decisionflow.schemas.flow_models import BranchNode, EffectNode, Flow, QuestionData, parse_node


def test_legacy_node_types_are_normalized() -> None:
    """Editor payloads using logic/action load as branch/effect nodes."""
    flow = Flow.model_validate(
        {
            "id": "legacy",
            "name": "Legacy",
            "bound_subject_groups": ["OPS"],
            "nodes": [
                {"id": "s", "type": "start", "position": {"x": 10, "y": 20}},
                {
                    "id": "l",
                    "type": "logic",
                    "data": {
                        "field_key": "priority",
                        "operator": "equals",
                        "comparison_source": "question",
                        "referenced_question_node_id": "q",
                    },
                },
                {
                    "id": "a",
                    "type": "action",
                    "data": {"effect_kind": "addLabel", "label_text": "x"},
                },
            ],
            "edges": [],
        }
    )
    branch_node = flow.get_node("l")
    effect_node = flow.get_node("a")
    assert isinstance(branch_node, BranchNode)
    assert branch_node.type == NodeType.BRANCH
    assert branch_node.data.comparison_source == ComparisonSource.PRIOR_ANSWER
    assert isinstance(effect_node, EffectNode)
    assert effect_node.data.effect_kind == EffectKind.ADD_LABEL


def test_choice_questions_require_choices() -> None:
    with pytest.raises(ValidationError):
        QuestionData(prompt="Pick", answer_kind="single", choices=[])
    with pytest.raises(ValidationError):
        QuestionData(prompt="When", answer_kind="date", choices=["today"])


def test_unknown_operator_loads_as_text_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="decisionflow.schemas.flow_models"):
        node = parse_node(
            {"id": "b", "type": "branch", "data": {"field_key": "f", "operator": "startsWith"}}
        )
    assert isinstance(node, BranchNode)
    assert node.data.operator == "startsWith"
    assert not isinstance(node.data.operator, ComparisonOperator)
    assert "Unknown comparison operator" in caplog.text


def test_known_operator_names_resolve_to_enum() -> None:
    node = parse_node(
        {"id": "b", "type": "branch", "data": {"field_key": "f", "operator": "greaterThan"}}
    )
    assert isinstance(node, BranchNode)
    assert node.data.operator is ComparisonOperator.GREATER_THAN


def test_prior_answer_branch_requires_reference() -> None:
    with pytest.raises(ValidationError):
        parse_node(
            {
                "id": "b",
                "type": "branch",
                "data": {
                    "field_key": "f",
                    "operator": "equals",
                    "comparison_source": "prior_answer",
                },
            }
        )


@pytest.mark.parametrize(
    "data",
    [
        {"effect_kind": "set_field"},
        {"effect_kind": "add_label"},
        {"effect_kind": "add_comment", "comment_body": ""},
    ],
)
def test_effects_require_kind_specific_fields(data: dict) -> None:
    with pytest.raises(ValidationError):
        parse_node({"id": "e", "type": "effect", "data": data})


def test_flow_rejects_duplicate_node_ids() -> None:
    with pytest.raises(ValidationError):
        build_flow([start(), question("q"), question("q")], [])


def test_flow_rejects_second_start_node() -> None:
    with pytest.raises(ValidationError):
        build_flow([start("s1"), start("s2")], [])


def test_flow_requires_name_and_groups() -> None:
    with pytest.raises(ValidationError):
        build_flow([start()], [], name="   ")
    with pytest.raises(ValidationError):
        build_flow([start()], [], bound_subject_groups=[])
    with pytest.raises(ValidationError):
        build_flow([start()], [], bound_subject_groups=["  "])


def test_flow_ids_must_not_contain_key_separator() -> None:
    with pytest.raises(ValidationError):
        build_flow([start()], [], id="x:1")
    with pytest.raises(ValidationError):
        build_flow([start()], [], id="  ")
    assert build_flow([start()], [], id="x-1").id == "x-1"


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(ValidationError):
        parse_node({"id": "s", "type": "start", "data": {}})
    with pytest.raises(ValueError, match="Unsupported node type"):
        parse_node({"id": "x", "type": "decision"})


def test_flow_lookup_helpers() -> None:
    flow = build_flow([start(), question("q"), add_label("e", "x")], [("start", "q"), ("q", "e")])
    assert flow.find_start_node().id == "start"
    assert flow.get_node("missing") is None
    assert [edge.target_node_id for edge in flow.outgoing_edges("q")] == ["e"]


def test_default_execution_state() -> None:
    state = ExecutionState.initial("start")
    assert state.completed is False
    assert state.reached_terminal is False
    assert state.current_node_id == "start"
    assert state.answers == {}
    assert state.path == []
    assert state.last_action_succeeded is None
    assert state.version == 0
    assert state == ExecutionState.initial("start")


def test_execution_state_round_trips_answer_variants() -> None:
    state = ExecutionState(
        current_node_id="q",
        answers={"a": "x", "b": 3, "c": 2.5, "d": ["m", "n"], "e": None},
    )
    restored = ExecutionState.model_validate_json(state.model_dump_json())
    assert restored.answers == state.answers
    assert isinstance(restored.answers["b"], int)
