"""Tests for the use case span decorator."""

import pytest

from hse_portal.domain.exceptions import UnauthorizedActionException
from hse_portal.shared.telemetry import add_span_event, traced


class _UseCase:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    @traced("test.execute")
    async def execute(self, *, tenant_id: str, request_id: str, fail: bool = False) -> str:
        """Echo the request id."""
        self.calls.append({"tenant_id": tenant_id, "request_id": request_id})
        add_span_event("test.event", {"n": 1})
        if fail:
            raise UnauthorizedActionException(
                actor_id="frank", request_id=request_id, level_index=1, reason="no"
            )
        return request_id


async def test_traced_returns_result_and_keeps_metadata() -> None:
    use_case = _UseCase()

    assert await use_case.execute(tenant_id="acme", request_id="r1") == "r1"
    assert use_case.calls == [{"tenant_id": "acme", "request_id": "r1"}]
    assert _UseCase.execute.__name__ == "execute"
    assert _UseCase.execute.__doc__ == "Echo the request id."


async def test_traced_propagates_domain_errors() -> None:
    with pytest.raises(UnauthorizedActionException):
        await _UseCase().execute(tenant_id="acme", request_id="r1", fail=True)


def test_span_event_outside_a_span_is_ignored() -> None:
    add_span_event("nothing.recording")
