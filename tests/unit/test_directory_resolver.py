"""Unit tests for DirectoryResolver (direct, function and hierarchy references)."""

from hse_portal.application.dtos import ResolutionContext
from hse_portal.application.services import DirectoryResolver
from hse_portal.domain.entities import (
    DirectUserRef,
    FunctionRef,
    HierarchyRef,
    Level,
)
from hse_portal.domain.enums import ConfigurationIssueKind
from tests.factories import TENANT_ID, FakeDirectory, make_user

OPS = ResolutionContext(submitter_id="dave", request_department="Operations")


async def test_direct_user_resolves_to_that_user(resolver: DirectoryResolver) -> None:
    approvers = await resolver.resolve(DirectUserRef("alice"), OPS)
    assert [a.identity for a in approvers] == ["alice"]
    assert approvers[0].display_name == "Alice"
    assert approvers[0].title == "Supervisor"


async def test_direct_user_of_another_tenant_is_unresolved(resolver: DirectoryResolver) -> None:
    assert await resolver.resolve(DirectUserRef("mallory"), OPS) == []
    assert await resolver.resolve(DirectUserRef("nobody"), OPS) == []


async def test_function_prefers_request_department(resolver: DirectoryResolver) -> None:
    approvers = await resolver.resolve(FunctionRef("manager"), OPS)
    assert [a.identity for a in approvers] == ["bob"]


async def test_function_falls_back_to_all_departments(resolver: DirectoryResolver) -> None:
    context = ResolutionContext(submitter_id="dave", request_department="Logistics")
    approvers = await resolver.resolve(FunctionRef("Manager"), context)
    assert {a.identity for a in approvers} == {"bob", "carol"}


async def test_function_without_department_matches_everyone(resolver: DirectoryResolver) -> None:
    context = ResolutionContext(submitter_id="dave")
    approvers = await resolver.resolve(FunctionRef("manager"), context)
    assert {a.identity for a in approvers} == {"bob", "carol"}


async def test_function_ignores_inactive_users(resolver: DirectoryResolver) -> None:
    assert await resolver.resolve(FunctionRef("HSE Officer"), OPS) == []


async def test_hierarchy_l1_is_submitters_line_manager(resolver: DirectoryResolver) -> None:
    approvers = await resolver.resolve(HierarchyRef(1), OPS)
    assert [a.identity for a in approvers] == ["bob"]


async def test_hierarchy_without_manager_is_unresolved(resolver: DirectoryResolver) -> None:
    context = ResolutionContext(submitter_id="frank", request_department="Operations")
    assert await resolver.resolve(HierarchyRef(1), context) == []


async def test_hierarchy_beyond_l1_is_unsupported(directory: FakeDirectory) -> None:
    directory.add(make_user("bob", job_title="Manager", line_manager_id="alice"))
    resolver = DirectoryResolver(directory, TENANT_ID)
    level = Level(index=2, role_refs=(HierarchyRef(2),))

    resolution = await resolver.resolve_level(level, OPS)

    assert resolution.approvers == ()
    assert [i.kind for i in resolution.issues] == [
        ConfigurationIssueKind.UNSUPPORTED_HIERARCHY_DEPTH
    ]
    assert resolution.issues[0].role == "L+2"


async def test_resolve_level_dedupes_and_keeps_first_occurrence_order(
    resolver: DirectoryResolver,
) -> None:
    level = Level(
        index=1,
        role_refs=(DirectUserRef("bob"), HierarchyRef(1), DirectUserRef("alice")),
    )
    resolution = await resolver.resolve_level(level, OPS)
    assert [a.identity for a in resolution.approvers] == ["bob", "alice"]
    assert resolution.identities == frozenset({"bob", "alice"})
    assert resolution.issues == ()


async def test_resolve_level_flags_unresolved_function(resolver: DirectoryResolver) -> None:
    ref = FunctionRef("finance_lead")
    level = Level(index=1, role_refs=(ref,), labels={ref.encode(): "Finance Lead"})

    resolution = await resolver.resolve_level(level, OPS)

    assert resolution.approvers == ()
    assert len(resolution.issues) == 1
    issue = resolution.issues[0]
    assert issue.kind == ConfigurationIssueKind.UNRESOLVED_APPROVER
    assert issue.level_index == 1
    assert issue.role == "function_finance_lead"
    assert "Finance Lead" in issue.message


async def test_directory_reads_are_memoized_per_resolver(directory: FakeDirectory) -> None:
    resolver = DirectoryResolver(directory, TENANT_ID)
    level = Level(index=1, role_refs=(FunctionRef("manager"), DirectUserRef("bob")))

    await resolver.resolve_level(level, OPS)
    await resolver.resolve_level(level, OPS)
    await resolver.resolve(FunctionRef("supervisor"), OPS)
    await resolver.resolve(DirectUserRef("bob"), OPS)

    assert directory.list_calls == 1
    # bob was loaded by the active-user scan.
    assert directory.get_user_calls == 0


async def test_directory_failure_resolves_to_nobody() -> None:
    class BrokenDirectory:
        async def get_user(self, tenant_id: str, user_id: str):
            raise ConnectionError("directory down")

        async def list_active_users(self, tenant_id: str):
            raise ConnectionError("directory down")

    resolver = DirectoryResolver(BrokenDirectory(), TENANT_ID)

    assert await resolver.resolve(DirectUserRef("alice"), OPS) == []
    assert await resolver.resolve(FunctionRef("manager"), OPS) == []
    assert await resolver.resolve(HierarchyRef(1), OPS) == []
