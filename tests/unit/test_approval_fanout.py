"""Unit tests for ApprovalFanout: targets, task ids, titles, priority, due dates."""

from datetime import datetime, timedelta, timezone

import pytest

from hse_portal.application.services import ApprovalFanout, ApprovalStateMachine
from hse_portal.application.services.approval_fanout import (
    task_id,
    task_priority,
    task_title,
)
from hse_portal.domain.enums import ApprovalPolicy, Decision, TaskPriority, TaskStatus
from tests.factories import make_flow, make_request


@pytest.fixture
def fanout(state_machine: ApprovalStateMachine) -> ApprovalFanout:
    return ApprovalFanout(state_machine, default_due_days=3)


async def test_sequential_targets_first_open_level_only(fanout: ApprovalFanout) -> None:
    flow = make_flow(["user_alice", "user_frank"], ["user_bob"])
    request = make_request(flow)

    assignments = await fanout.actionable_assignments(flow, request)

    assert [(i, a.identity) for i, a in assignments] == [(1, "alice"), (1, "frank")]


async def test_sequential_skips_approvers_who_already_acted(
    fanout: ApprovalFanout, state_machine: ApprovalStateMachine
) -> None:
    flow = make_flow(["user_alice", "user_frank"], ["user_bob"])
    request = make_request(flow)
    request = await state_machine.apply_action("alice", 1, Decision.APPROVE, "", flow, request)

    assert [a.identity for a in await fanout.actionable_approvers(flow, request)] == ["frank"]

    request = await state_machine.apply_action("frank", 1, Decision.APPROVE, "", flow, request)
    assignments = await fanout.actionable_assignments(flow, request)
    assert [(i, a.identity) for i, a in assignments] == [(2, "bob")]


async def test_parallel_targets_every_open_level_and_dedupes(fanout: ApprovalFanout) -> None:
    flow = make_flow(
        ["user_alice"],
        ["user_bob", "function_supervisor"],
        ["L+1"],
        policy=ApprovalPolicy.PARALLEL,
    )
    request = make_request(flow)

    assignments = await fanout.actionable_assignments(flow, request)

    # alice (supervisor) and bob (L+1 of dave) appear once, at their earliest level.
    assert [(i, a.identity) for i, a in assignments] == [(1, "alice"), (2, "bob")]


async def test_no_targets_for_terminal_request(fanout: ApprovalFanout) -> None:
    flow = make_flow(["user_alice"])
    approved = make_request(None)
    assert await fanout.actionable_assignments(flow, approved) == []


async def test_build_tasks(fanout: ApprovalFanout) -> None:
    flow = make_flow(["user_alice", "user_bob"], policy=ApprovalPolicy.PARALLEL)
    request = make_request(flow, payload={"purpose": "Server room visit"})
    now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    tasks = fanout.build_tasks(
        flow, request, await fanout.actionable_assignments(flow, request), now=now
    )

    assert [t.id for t in tasks] == ["req-1_r1_l1_alice", "req-1_r1_l1_bob"]
    task = tasks[0]
    assert task.title == "Server room visit"
    assert task.priority == TaskPriority.MEDIUM
    assert task.status == TaskStatus.PENDING
    assert task.due_at == now + timedelta(days=3)
    assert task.created_at == now
    assert (task.tenant_id, task.request_id, task.level_index) == ("acme", "req-1", 1)


def test_due_date_uses_flow_due_days(fanout: ApprovalFanout) -> None:
    start = datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert fanout.due_date(make_flow(["user_a"], due_days=7), start) == start + timedelta(days=7)
    assert fanout.due_date(make_flow(["user_a"]), start) == start + timedelta(days=3)


def test_task_id_is_per_revision_level_and_assignee() -> None:
    request = make_request(make_flow(["user_a"]), request_id="abc")
    assert task_id(request, 2, "u/1") == "abc_r1_l2_u_1"
    request.revision = 3
    assert task_id(request, 2, "u1") == "abc_r3_l2_u1"


@pytest.mark.parametrize(
    ("process_type", "payload", "expected"),
    [
        ("incident", {}, TaskPriority.HIGH),
        ("permit", {}, TaskPriority.HIGH),
        ("fleet", {"description": "Urgent delivery run"}, TaskPriority.HIGH),
        ("removal", {"priority": "Critical"}, TaskPriority.HIGH),
        ("fleet", {"riskLevel": {"label": "High"}}, TaskPriority.HIGH),
        ("training", {}, TaskPriority.MEDIUM),
        ("inspection", {"notes": "routine"}, TaskPriority.MEDIUM),
        ("access", {}, TaskPriority.MEDIUM),
        ("fleet", {"description": "weekly pool car"}, TaskPriority.LOW),
        ("company_creation", {}, TaskPriority.LOW),
    ],
)
def test_task_priority(process_type: str, payload: dict, expected: TaskPriority) -> None:
    assert task_priority(process_type, payload) == expected


@pytest.mark.parametrize(
    ("process_type", "payload", "expected"),
    [
        ("access", {}, "Access Request"),
        ("training", {"trainingTitle": "Working at Height"}, "Training Approval: Working at Height"),
        (
            "incident",
            {"incidentType": "Slip", "location": "Warehouse"},
            "Incident Review: Slip - Warehouse",
        ),
        ("inspection", {}, "Inspection Approval: Safety Inspection - Facility"),
        ("permit", {"workType": "Hot work"}, "Work Permit: Hot work - Site"),
        ("fleet", {"vehicleType": "Van"}, "Fleet Request: Van"),
        ("company_creation", {"companyName": "Acme Ltd"}, "Company Registration: Acme Ltd"),
        ("removal", {}, "Property Removal: Company Property - Request"),
        ("waste_disposal", {}, "Waste disposal Approval Required"),
    ],
)
def test_task_title(process_type: str, payload: dict, expected: str) -> None:
    assert task_title(process_type, payload) == expected
