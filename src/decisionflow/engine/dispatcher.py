"""Executes effect nodes against the subject field provider."""

from __future__ import annotations

import logging

from decisionflow.providers.base import SubjectFieldProvider
from decisionflow.schemas.enums import EffectKind
from decisionflow.schemas.execution_models import ActionResult
from decisionflow.schemas.flow_models import EffectNode
from decisionflow.security.redaction import redact_mapping, redact_text

LOGGER = logging.getLogger(__name__)


class ActionDispatcher:
    """Runs one effect and reports a structured result; provider errors never escape."""

    def __init__(self, provider: SubjectFieldProvider) -> None:
        self.provider = provider

    async def execute(self, effect_node: EffectNode, subject_id: str) -> ActionResult:
        data = effect_node.data
        LOGGER.info(
            "Executing %s effect %s on %s", data.effect_kind.value, effect_node.id, subject_id
        )
        try:
            if data.effect_kind == EffectKind.SET_FIELD and data.field_key:
                await self.provider.write_field(subject_id, data.field_key, data.field_value)
                return ActionResult.ok({"fieldKey": data.field_key, "value": data.field_value})
            if data.effect_kind == EffectKind.ADD_LABEL and data.label_text:
                await self.provider.add_label(subject_id, data.label_text)
                return ActionResult.ok({"label": data.label_text})
            if data.effect_kind == EffectKind.ADD_COMMENT and data.comment_body:
                response = await self.provider.add_comment(
                    subject_id, self.provider.rich_text(data.comment_body)
                )
                return ActionResult.ok(response)
        except Exception as exc:  # noqa: BLE001
            error = redact_text(str(exc)) or type(exc).__name__
            LOGGER.warning("Effect %s failed on %s: %s", effect_node.id, subject_id, error)
            return ActionResult.failed(error, data=redact_mapping(getattr(exc, "detail", None)))
        return ActionResult.failed(
            f"Effect {effect_node.id} lacks the attributes of a {data.effect_kind.value} effect"
        )
