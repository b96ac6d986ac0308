"""Flow definition repository over IDocumentStore (implements IFlowRepository).

Reads the tenant's flow (companies/{tenant}/approvalFlows/{process_type}) and
falls back to the global approvalFlows/{process_type} document. Two stored
shapes are accepted:

    current: {approval_order, completion_rule, due_days, enabled,
              levels: [{level, approvers: [{value, text}]}]}
    legacy:  {approvalOrder | approvalSequence, dueDays, enabled,
              selectedRoles: {"level1": [{value, text}], ...},
              levels: [{level, value, isActive}]}

save_flow writes the current shape plus the legacy selectedRoles /
approvalOrder mirror so the browser settings page keeps working.
"""

from __future__ import annotations

import re
from typing import Any

from hse_portal.application.interfaces.repositories import IDocumentStore
from hse_portal.domain.entities import (
    FLOW_NOT_CONFIGURED,
    FlowDefinition,
    FlowNotConfigured,
    Level,
    RoleReference,
    parse_role_reference,
)
from hse_portal.domain.enums import ApprovalPolicy, CompletionRule
from hse_portal.domain.exceptions import (
    InvalidFlowDefinitionException,
    ValidationException,
)
from hse_portal.infrastructure.firebase.collections import (
    global_flow_path,
    tenant_flow_path,
)
from hse_portal.shared.telemetry.logging import get_logger
from hse_portal.shared.utils.datetime import utc_now

logger = get_logger(__name__)

_LEVEL_KEY = re.compile(r"^level(\d+)$")


def _policy(data: dict[str, Any], process_type: str) -> ApprovalPolicy:
    raw = (
        data.get("approval_order")
        or data.get("approvalOrder")
        or data.get("approvalSequence")
        or ApprovalPolicy.SEQUENTIAL.value
    )
    try:
        return ApprovalPolicy(str(raw).lower())
    except ValueError:
        raise InvalidFlowDefinitionException(
            process_type, f"unknown approval order {raw!r}"
        ) from None


def _completion_rule(data: dict[str, Any], process_type: str) -> CompletionRule:
    raw = data.get("completion_rule") or data.get("completionRule") or CompletionRule.ALL.value
    try:
        return CompletionRule(str(raw).lower())
    except ValueError:
        raise InvalidFlowDefinitionException(
            process_type, f"unknown completion rule {raw!r}"
        ) from None


def _due_days(data: dict[str, Any]) -> int | None:
    raw = data.get("due_days", data.get("dueDays"))
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _role_entries(raw: Any) -> list[dict[str, str]]:
    """Normalize a level's approvers to [{value, text}] (accepts strings and dicts)."""
    if raw is None:
        return []
    items = raw if isinstance(raw, list) else [raw]
    entries = []
    for item in items:
        if isinstance(item, str):
            entries.append({"value": item, "text": ""})
        elif isinstance(item, dict) and item.get("value"):
            entries.append({"value": str(item["value"]), "text": str(item.get("text") or "")})
    return entries


def _raw_levels(data: dict[str, Any]) -> list[tuple[int, list[dict[str, str]]]]:
    """(stored level number, role entries) pairs from either stored shape."""
    selected = data.get("selectedRoles") or {}
    levels: list[tuple[int, list[dict[str, str]]]] = []
    for item in data.get("levels") or []:
        if not isinstance(item, dict) or item.get("isActive") is False:
            continue
        try:
            number = int(item.get("level"))
        except (TypeError, ValueError):
            continue
        if "approvers" in item:
            entries = _role_entries(item["approvers"])
        else:
            entries = _role_entries(item.get("value"))
            labels = {e["value"]: e["text"] for e in _role_entries(selected.get(f"level{number}"))}
            for entry in entries:
                entry["text"] = entry["text"] or labels.get(entry["value"], "")
        levels.append((number, entries))
    if levels:
        return levels
    for key, roles in selected.items():
        match = _LEVEL_KEY.match(str(key))
        if match:
            levels.append((int(match.group(1)), _role_entries(roles)))
    return levels


def flow_from_document(process_type: str, data: dict[str, Any]) -> FlowDefinition | FlowNotConfigured:
    """Build a FlowDefinition from a stored document (either shape).

    Levels without approvers are skipped (unfinished rows in the settings UI)
    and the rest renumbered 1..n in stored order. Disabled flows and flows
    with no usable level are "not configured".

    Raises:
        InvalidFlowDefinitionException: If an approver role string or the
            approval order cannot be interpreted.
    """
    if data.get("enabled") is False:
        return FLOW_NOT_CONFIGURED
    raw_levels = sorted(
        ((n, entries) for n, entries in _raw_levels(data) if entries),
        key=lambda pair: pair[0],
    )
    if not raw_levels:
        return FLOW_NOT_CONFIGURED

    levels = []
    for index, (stored_number, entries) in enumerate(raw_levels, start=1):
        if stored_number != index:
            logger.warning(
                "Flow %s: stored level %s renumbered to %s", process_type, stored_number, index
            )
        refs: list[RoleReference] = []
        labels: dict[str, str] = {}
        for entry in entries:
            try:
                ref = parse_role_reference(entry["value"])
            except ValidationException as e:
                raise InvalidFlowDefinitionException(
                    process_type, f"level {index}: {e.message}"
                ) from e
            if ref in refs:
                continue
            refs.append(ref)
            if entry["text"]:
                labels[ref.encode()] = entry["text"]
        levels.append(Level(index=index, role_refs=tuple(refs), labels=labels))

    return FlowDefinition(
        process_type=process_type,
        policy=_policy(data, process_type),
        levels=tuple(levels),
        completion_rule=_completion_rule(data, process_type),
        enabled=True,
        due_days=_due_days(data),
    )


def flow_to_document(flow: FlowDefinition) -> dict[str, Any]:
    levels = [
        {
            "level": level.index,
            "approvers": [
                {"value": ref.encode(), "text": level.label_for(ref)}
                for ref in level.role_refs
            ],
        }
        for level in flow.levels
    ]
    return {
        "process_type": flow.process_type,
        "enabled": flow.enabled,
        "approval_order": flow.policy.value,
        "completion_rule": flow.completion_rule.value,
        "due_days": flow.due_days,
        "levels": levels,
        # Legacy mirror read by the browser settings page.
        "processType": flow.process_type,
        "approvalOrder": flow.policy.value,
        "selectedRoles": {f"level{lv['level']}": lv["approvers"] for lv in levels},
        "updated_at": utc_now(),
    }


class FlowRepository:
    """Tenant flow with global fallback; disabled or empty flows are not configured."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def get_flow(
        self, tenant_id: str, process_type: str
    ) -> FlowDefinition | FlowNotConfigured:
        doc = await self._store.read(tenant_flow_path(tenant_id, process_type))
        if doc is None:
            doc = await self._store.read(global_flow_path(process_type))
        if doc is None:
            return FLOW_NOT_CONFIGURED
        return flow_from_document(process_type, doc.data)

    async def save_flow(self, tenant_id: str, flow: FlowDefinition) -> None:
        await self._store.write(
            tenant_flow_path(tenant_id, flow.process_type), flow_to_document(flow)
        )
        logger.info(
            "Saved approval flow %s for tenant %s (%s levels, %s)",
            flow.process_type,
            tenant_id,
            len(flow.levels),
            flow.policy.value,
        )
