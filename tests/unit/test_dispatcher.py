"""Effect dispatch tests."""

from __future__ import annotations

import asyncio

from support import FakeSubjectProvider

from decisionflow.engine.dispatcher import ActionDispatcher
from decisionflow.errors import ProviderError
from decisionflow.schemas.enums import EffectKind
from decisionflow.schemas.flow_models import EffectData, EffectNode, parse_node


def _effect(**data):
    return parse_node({"id": "e1", "type": "effect", "data": data})


def test_set_field_echoes_written_value() -> None:
    provider = FakeSubjectProvider()
    node = _effect(effect_kind="set_field", field_key="priority", field_value="High")
    result = asyncio.run(ActionDispatcher(provider).execute(node, "PROJ-1"))
    assert result.success is True
    assert result.data == {"fieldKey": "priority", "value": "High"}
    assert provider.fields["PROJ-1"]["priority"] == "High"


def test_add_label_echoes_label() -> None:
    provider = FakeSubjectProvider()
    node = _effect(effect_kind="addLabel", label_text="triaged")
    result = asyncio.run(ActionDispatcher(provider).execute(node, "PROJ-1"))
    assert result.success is True
    assert result.data == {"label": "triaged"}
    assert provider.labels == {"PROJ-1": ["triaged"]}


def test_add_comment_wraps_body_and_returns_provider_response() -> None:
    provider = FakeSubjectProvider()
    node = _effect(effect_kind="add_comment", comment_body="Looks good")
    result = asyncio.run(ActionDispatcher(provider).execute(node, "PROJ-1"))
    assert result.success is True
    assert result.data == {"id": "10001", "body": {"type": "doc", "text": "Looks good"}}


def test_provider_failure_is_normalized() -> None:
    provider = FakeSubjectProvider()
    provider.fail(
        "add_label",
        ProviderError("API error: 403", status_code=403, detail={"errorMessages": ["nope"]}),
    )
    node = _effect(effect_kind="add_label", label_text="triaged")
    result = asyncio.run(ActionDispatcher(provider).execute(node, "PROJ-1"))
    assert result.success is False
    assert result.error == "API error: 403"
    assert result.data == {"errorMessages": ["nope"]}


def test_failure_messages_are_redacted() -> None:
    provider = FakeSubjectProvider()
    provider.fail("write_field", RuntimeError("rejected api_token=ATATTsecretsecretsecret1234"))
    node = _effect(effect_kind="set_field", field_key="x", field_value=1)
    result = asyncio.run(ActionDispatcher(provider).execute(node, "PROJ-1"))
    assert result.success is False
    assert "ATATTsecret" not in (result.error or "")
    assert "[REDACTED]" in (result.error or "")


def test_empty_exception_message_falls_back_to_type_name() -> None:
    provider = FakeSubjectProvider()
    provider.fail("add_comment", TimeoutError())
    node = _effect(effect_kind="add_comment", comment_body="hi")
    result = asyncio.run(ActionDispatcher(provider).execute(node, "PROJ-1"))
    assert result.success is False
    assert result.error == "TimeoutError"
    assert result.data is None


def test_effect_missing_kind_attributes_fails_without_provider_call() -> None:
    provider = FakeSubjectProvider()
    node = EffectNode.model_construct(
        id="e1",
        type="effect",
        data=EffectData.model_construct(effect_kind=EffectKind.ADD_LABEL, label_text=None),
    )
    result = asyncio.run(ActionDispatcher(provider).execute(node, "PROJ-1"))
    assert result.success is False
    assert "lacks the attributes of a add_label effect" in (result.error or "")
    assert provider.calls == []
