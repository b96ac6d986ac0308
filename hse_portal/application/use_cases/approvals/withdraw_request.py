"""Withdraw request use case: delete an open request and its tasks."""

from __future__ import annotations

from hse_portal.application.dtos.actor import CurrentActor
from hse_portal.application.interfaces.repositories import (
    IRequestRepository,
    ITaskRepository,
)
from hse_portal.domain.exceptions import (
    RequestClosedException,
    ResourceNotFoundException,
    UnauthorizedActionException,
)
from hse_portal.shared.telemetry import traced
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class WithdrawRequestUseCase:
    """Deletes a request before it reaches a terminal status (submitter or administrator)."""

    def __init__(
        self, request_repo: IRequestRepository, task_repo: ITaskRepository
    ) -> None:
        self._request_repo = request_repo
        self._task_repo = task_repo

    @traced("approvals.withdraw")
    async def execute(
        self,
        *,
        tenant_id: str,
        process_type: str,
        request_id: str,
        actor: CurrentActor,
    ) -> None:
        """Raises ResourceNotFoundException, UnauthorizedActionException or RequestClosedException."""
        request = await self._request_repo.get(tenant_id, process_type, request_id)
        if request is None:
            raise ResourceNotFoundException("request", request_id)
        if request.submitter_id != actor.id and not actor.is_admin:
            raise UnauthorizedActionException(
                actor_id=actor.id,
                request_id=request_id,
                level_index=None,
                reason="only the submitter or an administrator may withdraw a request",
            )
        if request.overall_status.is_terminal:
            raise RequestClosedException(
                request_id, request.overall_status.value, "withdraw"
            )
        await self._request_repo.delete(tenant_id, process_type, request_id)
        deleted = await self._task_repo.delete_for_request(tenant_id, request_id)
        logger.info(
            "Request %s withdrawn by %s (%s tasks removed)", request_id, actor.id, deleted
        )
