"""Use case tests over the in-memory store with a fake directory and recording notifier."""

import asyncio

import pytest

from hse_portal.application.dtos import CurrentActor
from hse_portal.application.use_cases.approvals import (
    ActOnRequestUseCase,
    ApprovalSideEffects,
    GetFlowUseCase,
    GetRequestApprovalUseCase,
    ResubmitRequestUseCase,
    SaveFlowUseCase,
    SubmitRequestUseCase,
    WatchRequestApprovalUseCase,
    WithdrawRequestUseCase,
)
from hse_portal.domain.entities import FLOW_NOT_CONFIGURED
from hse_portal.domain.enums import (
    ApprovalPolicy,
    CompletionRule,
    Decision,
    LevelStatus,
    OverallStatus,
    TaskStatus,
)
from hse_portal.domain.exceptions import (
    ApprovalConflictException,
    DocumentAlreadyExistsException,
    RequestClosedException,
    ResourceNotFoundException,
    UnauthorizedActionException,
    VersionConflictException,
)
from hse_portal.infrastructure.memory import InMemoryDocumentStore
from hse_portal.infrastructure.repositories import (
    FlowRepository,
    RequestRepository,
    TaskRepository,
)
from hse_portal.infrastructure.services import ApprovalTemplateRenderer
from tests.factories import TENANT_ID, RecordingNotifier, make_flow

SEQUENTIAL_FLOW = make_flow(["user_alice"], ["function_manager"])
PARALLEL_PAIR = make_flow(["user_alice", "user_bob"], policy=ApprovalPolicy.PARALLEL)


@pytest.fixture
def flow_repo(store: InMemoryDocumentStore) -> FlowRepository:
    return FlowRepository(store)


@pytest.fixture
def request_repo(store: InMemoryDocumentStore) -> RequestRepository:
    return RequestRepository(store)


@pytest.fixture
def task_repo(store: InMemoryDocumentStore) -> TaskRepository:
    return TaskRepository(store)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def side_effects(task_repo: TaskRepository, notifier: RecordingNotifier) -> ApprovalSideEffects:
    return ApprovalSideEffects(task_repo, notifier, ApprovalTemplateRenderer())


@pytest.fixture
def submit(flow_repo, request_repo, side_effects, resolver_factory) -> SubmitRequestUseCase:
    return SubmitRequestUseCase(flow_repo, request_repo, side_effects, resolver_factory)


@pytest.fixture
def act(flow_repo, request_repo, side_effects, resolver_factory) -> ActOnRequestUseCase:
    return ActOnRequestUseCase(flow_repo, request_repo, side_effects, resolver_factory)


@pytest.fixture
def resubmit(flow_repo, request_repo, side_effects, resolver_factory) -> ResubmitRequestUseCase:
    return ResubmitRequestUseCase(flow_repo, request_repo, side_effects, resolver_factory)


@pytest.fixture
def viewer(flow_repo, request_repo, resolver_factory) -> GetRequestApprovalUseCase:
    return GetRequestApprovalUseCase(flow_repo, request_repo, resolver_factory)


async def _submit(submit: SubmitRequestUseCase, **kwargs):
    params = {
        "tenant_id": TENANT_ID,
        "process_type": "access",
        "submitter_id": "dave",
        "department": "Operations",
        "payload": {"purpose": "Plant room access"},
    }
    params.update(kwargs)
    return await submit.execute(**params)


async def _act(act: ActOnRequestUseCase, request_id: str, actor_id: str, decision=Decision.APPROVE, **kwargs):
    return await act.execute(
        tenant_id=TENANT_ID,
        process_type="access",
        request_id=request_id,
        actor_id=actor_id,
        decision=decision,
        **kwargs,
    )


async def test_submit_without_flow_is_auto_approved(
    submit: SubmitRequestUseCase, notifier: RecordingNotifier, task_repo: TaskRepository
) -> None:
    result = await _submit(submit)

    assert not result.flow_configured
    assert result.request.overall_status == OverallStatus.APPROVED
    assert result.request.version is not None
    assert notifier.sent == []
    assert await task_repo.list_for_request(TENANT_ID, result.request.id) == []


async def test_submit_assigns_first_level_only(
    submit: SubmitRequestUseCase, flow_repo: FlowRepository, notifier: RecordingNotifier
) -> None:
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)

    result = await _submit(submit, request_id="req-1")

    assert result.flow_configured
    assert result.request.id == "req-1"
    assert result.request.overall_status == OverallStatus.PENDING
    assert [a.identity for a in result.notified] == ["alice"]
    assert [(t.assignee_id, t.level_index, t.title) for t in result.tasks] == [
        ("alice", 1, "Plant room access")
    ]
    assert notifier.recipients_of("approval_requested") == ["alice"]
    payload = notifier.sent[0][1]
    assert payload.subject == "Approval required: Plant room access"
    assert payload.request_id == "req-1"


async def test_submit_generates_id_and_refuses_duplicates(
    submit: SubmitRequestUseCase, flow_repo: FlowRepository
) -> None:
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)

    generated = await _submit(submit)
    assert generated.request.id

    await _submit(submit, request_id="dup")
    with pytest.raises(DocumentAlreadyExistsException):
        await _submit(submit, request_id="dup")


async def test_sequential_flow_end_to_end(
    submit, act, flow_repo, task_repo, notifier: RecordingNotifier
) -> None:
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    await _submit(submit, request_id="req-1")

    first = await _act(act, "req-1", "alice", comment="ok")

    assert first.level_index == 1
    assert first.attempts == 1
    assert first.request.overall_status == OverallStatus.PENDING
    assert [a.identity for a in first.notified] == ["bob"]
    statuses = {
        (t.assignee_id, t.level_index): t.status
        for t in await task_repo.list_for_request(TENANT_ID, "req-1")
    }
    assert statuses == {("alice", 1): TaskStatus.COMPLETED, ("bob", 2): TaskStatus.PENDING}

    second = await _act(act, "req-1", "bob")

    assert second.level_index == 2
    assert second.request.overall_status == OverallStatus.APPROVED
    assert notifier.recipients_of("request_approved") == ["dave"]
    tasks = await task_repo.list_for_request(TENANT_ID, "req-1")
    assert all(t.status != TaskStatus.PENDING for t in tasks)


async def test_rejection_is_final_and_announced(
    submit, act, flow_repo, task_repo, notifier: RecordingNotifier
) -> None:
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    await _submit(submit, request_id="req-1")

    result = await _act(act, "req-1", "alice", Decision.REJECT, comment="wrong room")

    assert result.request.overall_status == OverallStatus.REJECTED
    assert notifier.recipients_of("request_rejected") == ["dave"]
    with pytest.raises(UnauthorizedActionException):
        await _act(act, "req-1", "bob")
    tasks = await task_repo.list_for_request(TENANT_ID, "req-1")
    assert [t.status for t in tasks] == [TaskStatus.COMPLETED]


async def test_act_refusals(submit, act, flow_repo, request_repo) -> None:
    with pytest.raises(ResourceNotFoundException):
        await _act(act, "missing", "alice")

    await _submit(submit, request_id="auto")
    with pytest.raises(UnauthorizedActionException):
        await _act(act, "auto", "alice")

    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    await _submit(submit, request_id="req-1")
    with pytest.raises(UnauthorizedActionException):
        await _act(act, "req-1", "frank")
    with pytest.raises(UnauthorizedActionException):
        await _act(act, "req-1", "bob", level_index=2)

    stored = await request_repo.get(TENANT_ID, "access", "req-1")
    assert all(not state.actions for state in stored.approvals.values())


async def test_concurrent_parallel_approvals_both_recorded(
    submit, act, flow_repo, request_repo
) -> None:
    await flow_repo.save_flow(TENANT_ID, PARALLEL_PAIR)
    await _submit(submit, request_id="req-1")

    results = await asyncio.gather(_act(act, "req-1", "alice"), _act(act, "req-1", "bob"))

    assert {r.level_index for r in results} == {1}
    stored = await request_repo.get(TENANT_ID, "access", "req-1")
    assert sorted(a.actor_id for a in stored.approvals[1].actions) == ["alice", "bob"]
    assert stored.overall_status == OverallStatus.APPROVED


class RivalWriteOnce(RequestRepository):
    """Runs a competing action right before the first save, forcing a version conflict."""

    def __init__(self, store, rival) -> None:
        super().__init__(store)
        self.rival = rival

    async def save(self, request):
        if self.rival is not None:
            rival, self.rival = self.rival, None
            await rival()
        return await super().save(request)


async def test_lost_race_is_retried(
    store, submit, act, flow_repo, side_effects, resolver_factory
) -> None:
    await flow_repo.save_flow(TENANT_ID, PARALLEL_PAIR)
    await _submit(submit, request_id="req-1")
    racing = ActOnRequestUseCase(
        flow_repo,
        RivalWriteOnce(store, lambda: _act(act, "req-1", "bob")),
        side_effects,
        resolver_factory,
    )

    result = await _act(racing, "req-1", "alice")

    assert result.attempts == 2
    assert result.request.overall_status == OverallStatus.APPROVED
    assert [a.actor_id for a in result.request.approvals[1].actions] == ["bob", "alice"]


async def test_action_invalidated_by_rival_is_a_conflict(
    store, submit, act, flow_repo, side_effects, resolver_factory, request_repo
) -> None:
    await flow_repo.save_flow(TENANT_ID, PARALLEL_PAIR)
    await _submit(submit, request_id="req-1")
    racing = ActOnRequestUseCase(
        flow_repo,
        RivalWriteOnce(store, lambda: _act(act, "req-1", "bob", Decision.REJECT)),
        side_effects,
        resolver_factory,
    )

    with pytest.raises(ApprovalConflictException):
        await _act(racing, "req-1", "alice")

    stored = await request_repo.get(TENANT_ID, "access", "req-1")
    assert stored.overall_status == OverallStatus.REJECTED
    assert [a.actor_id for a in stored.approvals[1].actions] == ["bob"]


async def test_retry_keeps_the_level_picked_first(
    store, submit, act, flow_repo, side_effects, resolver_factory, request_repo
) -> None:
    flow = make_flow(
        ["user_alice", "user_bob"],
        ["user_alice"],
        policy=ApprovalPolicy.PARALLEL,
        completion_rule=CompletionRule.ANY,
    )
    await flow_repo.save_flow(TENANT_ID, flow)
    await _submit(submit, request_id="req-1")
    racing = ActOnRequestUseCase(
        flow_repo,
        RivalWriteOnce(store, lambda: _act(act, "req-1", "bob")),
        side_effects,
        resolver_factory,
    )

    with pytest.raises(ApprovalConflictException) as exc_info:
        await _act(racing, "req-1", "alice")

    assert exc_info.value.details["level_index"] == 1
    stored = await request_repo.get(TENANT_ID, "access", "req-1")
    assert [a.actor_id for a in stored.approvals[1].actions] == ["bob"]
    assert stored.level_state(2).actions == []


async def test_gives_up_after_max_attempts(
    store, submit, flow_repo, side_effects, resolver_factory
) -> None:
    class AlwaysStale(RequestRepository):
        saves = 0

        async def save(self, request):
            AlwaysStale.saves += 1
            raise VersionConflictException(request.id, request.version or "")

    await flow_repo.save_flow(TENANT_ID, PARALLEL_PAIR)
    await _submit(submit, request_id="req-1")
    stubborn = ActOnRequestUseCase(
        flow_repo, AlwaysStale(store), side_effects, resolver_factory, max_attempts=3
    )

    with pytest.raises(ApprovalConflictException):
        await _act(stubborn, "req-1", "alice")
    assert AlwaysStale.saves == 3


async def test_notification_failure_does_not_undo_action(
    submit, flow_repo, request_repo, task_repo, resolver_factory
) -> None:
    class BrokenNotifier:
        async def notify(self, recipients, payload):
            raise ConnectionError("smtp down")

    side_effects = ApprovalSideEffects(task_repo, BrokenNotifier(), ApprovalTemplateRenderer())
    act = ActOnRequestUseCase(flow_repo, request_repo, side_effects, resolver_factory)
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    await _submit(submit, request_id="req-1")

    result = await _act(act, "req-1", "alice")

    assert result.request.level_state(1).is_completed
    stored = await request_repo.get(TENANT_ID, "access", "req-1")
    assert stored.level_state(1).is_completed


async def test_resubmit_after_rejection_starts_new_revision(
    submit, act, resubmit, flow_repo, task_repo, notifier: RecordingNotifier
) -> None:
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    await _submit(submit, request_id="req-1")
    await _act(act, "req-1", "alice")
    await _act(act, "req-1", "bob", Decision.REJECT, comment="add dates")

    result = await resubmit.execute(
        tenant_id=TENANT_ID,
        process_type="access",
        request_id="req-1",
        actor_id="dave",
        payload={"purpose": "Plant room access, Monday"},
    )

    request = result.request
    assert request.revision == 2
    assert request.overall_status == OverallStatus.PENDING
    assert request.payload == {"purpose": "Plant room access, Monday"}
    assert len(request.approvals[1].actions) == 1
    assert [(t.assignee_id, t.revision) for t in result.tasks] == [("alice", 2)]
    assert notifier.recipients_of("approval_requested") == ["alice", "bob", "alice"]

    again = await _act(act, "req-1", "alice")
    assert again.level_index == 1
    assert again.request.overall_status == OverallStatus.PENDING


async def test_only_submitter_may_resubmit(submit, resubmit, flow_repo) -> None:
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    await _submit(submit, request_id="req-1")

    with pytest.raises(UnauthorizedActionException):
        await resubmit.execute(
            tenant_id=TENANT_ID, process_type="access", request_id="req-1", actor_id="alice"
        )
    with pytest.raises(ResourceNotFoundException):
        await resubmit.execute(
            tenant_id=TENANT_ID, process_type="access", request_id="nope", actor_id="dave"
        )


async def test_withdraw(submit, act, flow_repo, request_repo, task_repo) -> None:
    withdraw = WithdrawRequestUseCase(request_repo, task_repo)
    dave = CurrentActor(id="dave", tenant_id=TENANT_ID, display_name="Dave")
    frank = CurrentActor(id="frank", tenant_id=TENANT_ID, display_name="Frank")
    admin = CurrentActor(id="alice", tenant_id=TENANT_ID, display_name="Alice", is_admin=True)
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    for request_id in ("req-1", "req-2", "req-3"):
        await _submit(submit, request_id=request_id)

    with pytest.raises(UnauthorizedActionException):
        await withdraw.execute(tenant_id=TENANT_ID, process_type="access", request_id="req-1", actor=frank)

    await withdraw.execute(tenant_id=TENANT_ID, process_type="access", request_id="req-1", actor=dave)
    assert await request_repo.get(TENANT_ID, "access", "req-1") is None
    assert await task_repo.list_for_request(TENANT_ID, "req-1") == []

    await withdraw.execute(tenant_id=TENANT_ID, process_type="access", request_id="req-2", actor=admin)
    assert await request_repo.get(TENANT_ID, "access", "req-2") is None

    await _act(act, "req-3", "alice", Decision.REJECT)
    with pytest.raises(RequestClosedException):
        await withdraw.execute(tenant_id=TENANT_ID, process_type="access", request_id="req-3", actor=dave)
    with pytest.raises(ResourceNotFoundException):
        await withdraw.execute(tenant_id=TENANT_ID, process_type="access", request_id="req-1", actor=dave)


async def test_view_for_approver_and_bystander(submit, viewer, flow_repo) -> None:
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    await _submit(submit, request_id="req-1")

    view = await viewer.execute(
        tenant_id=TENANT_ID, process_type="access", request_id="req-1", viewer_id="alice"
    )

    assert view.flow_configured
    assert view.actionable_levels == [1]
    assert [lv.status for lv in view.levels] == [LevelStatus.PENDING, LevelStatus.LOCKED]
    assert [a.identity for a in view.actionable_approvers] == ["alice"]
    assert view.issues == []

    bystander = await viewer.execute(
        tenant_id=TENANT_ID, process_type="access", request_id="req-1", viewer_id="frank"
    )
    assert bystander.actionable_levels == []

    with pytest.raises(ResourceNotFoundException):
        await viewer.execute(tenant_id=TENANT_ID, process_type="access", request_id="nope")


async def test_view_without_flow(submit, viewer) -> None:
    await _submit(submit, request_id="req-1")
    view = await viewer.execute(tenant_id=TENANT_ID, process_type="access", request_id="req-1")
    assert not view.flow_configured
    assert view.levels == []
    assert view.request.overall_status == OverallStatus.APPROVED


async def test_watch_pushes_fresh_views(submit, act, viewer, flow_repo, request_repo) -> None:
    await flow_repo.save_flow(TENANT_ID, SEQUENTIAL_FLOW)
    await _submit(submit, request_id="req-1")
    watch = WatchRequestApprovalUseCase(request_repo, viewer)
    updates = []

    async def on_update(view) -> None:
        updates.append(view)

    unsubscribe = await watch.execute(
        tenant_id=TENANT_ID,
        process_type="access",
        request_id="req-1",
        on_update=on_update,
        viewer_id="bob",
    )
    await _act(act, "req-1", "alice")
    await request_repo.delete(TENANT_ID, "access", "req-1")
    await unsubscribe()

    assert updates[0].actionable_levels == []
    assert updates[1].actionable_levels == [2]
    assert updates[1].levels[0].status == LevelStatus.APPROVED
    assert updates[-1] is None
    assert len(updates) == 3


async def test_flow_use_cases(flow_repo) -> None:
    get_flow = GetFlowUseCase(flow_repo)
    assert await get_flow.execute(tenant_id=TENANT_ID, process_type="access") is FLOW_NOT_CONFIGURED

    saved = await SaveFlowUseCase(flow_repo).execute(tenant_id=TENANT_ID, flow=SEQUENTIAL_FLOW)

    assert saved == SEQUENTIAL_FLOW
    assert await get_flow.execute(tenant_id=TENANT_ID, process_type="access") == SEQUENTIAL_FLOW
