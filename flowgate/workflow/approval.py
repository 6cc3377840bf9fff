# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Approval Gate

Suspends a run until a human approves or rejects it, or until a timeout
elapses. Each approval is keyed by its own id, owns its own timer and
waiter, and never affects any other approval.

State machine per approval::

    pending -> approved | rejected | timed_out | cancelled

Every terminal state is final. A timeout closes the registry entry as well
as the waiter, so a late click on an email link reports ``already_resolved``
instead of recording a decision the workflow never acted on.
"""

import asyncio
import inspect
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set

from .exceptions import ApprovalConflictError
from .models import ApprovalOutcome, ApprovalStatus, ApprovalSummary, ResolveResult


logger = logging.getLogger(__name__)


class ApprovalNotifier:
    """
    Side channel that tells a human an approval is waiting.

    Implementations deliver the two callback URLs (e.g. by email). Called
    fire-and-forget; raising only gets logged.
    """

    async def notify(
        self,
        approval_id: str,
        payload: Dict[str, Any],
        approve_url: str,
        reject_url: str
    ) -> None:
        logger.info(
            "Approval %s waiting: approve=%s reject=%s",
            approval_id, approve_url, reject_url
        )


class PendingApproval:
    """Registry entry: audit fields plus the waiter and its timer"""

    def __init__(
        self,
        approval_id: str,
        payload: Dict[str, Any],
        loop: asyncio.AbstractEventLoop,
        run_id: Optional[str] = None,
        node_id: Optional[str] = None,
    ):
        self.approval_id = approval_id
        self.payload = payload
        self.run_id = run_id
        self.node_id = node_id
        self.created_at = datetime.now(timezone.utc)
        self.status = ApprovalStatus.PENDING
        self.resolved_at: Optional[datetime] = None

        self.loop = loop
        self.waiter: asyncio.Future = loop.create_future()
        self.timer: Optional[asyncio.TimerHandle] = None

    def close(self, status: ApprovalStatus) -> None:
        self.status = status
        self.resolved_at = datetime.now(timezone.utc)

    def summary(self) -> ApprovalSummary:
        return ApprovalSummary(
            approval_id=self.approval_id,
            status=self.status,
            payload=self.payload,
            created_at=self.created_at,
            resolved_at=self.resolved_at,
            run_id=self.run_id,
            node_id=self.node_id,
        )


class ApprovalGate:
    """
    Process-wide approval registry.

    ``request_approval`` is awaited by approval nodes; ``resolve`` is called
    by whatever receives the approve/reject callback and may run on another
    thread.
    """

    def __init__(
        self,
        notifier: Optional[ApprovalNotifier] = None,
        base_url: str = "http://localhost:3001",
    ):
        self.notifier = notifier or ApprovalNotifier()
        self.base_url = base_url.rstrip("/")
        self._approvals: Dict[str, PendingApproval] = {}
        self._lock = threading.Lock()
        self._notifications: Set[asyncio.Task] = set()

    def approve_url(self, approval_id: str) -> str:
        return f"{self.base_url}/approve/{approval_id}?action=yes"

    def reject_url(self, approval_id: str) -> str:
        return f"{self.base_url}/approve/{approval_id}?action=no"

    async def request_approval(
        self,
        approval_id: str,
        payload: Dict[str, Any],
        timeout: Optional[float],
        run_id: Optional[str] = None,
        node_id: Optional[str] = None,
    ) -> ApprovalOutcome:
        """
        Register an approval, notify the approver and wait for the decision.

        Args:
            approval_id: Unique id, embedded in the callback URLs
            payload: Data shown to the approver
            timeout: Seconds to wait; None waits until resolved

        Returns:
            ApprovalOutcome with ``timed_out=True`` if the timer fired first

        Raises:
            ApprovalConflictError: If ``approval_id`` is already registered
        """
        loop = asyncio.get_running_loop()
        approval = PendingApproval(approval_id, payload, loop, run_id=run_id, node_id=node_id)

        with self._lock:
            if approval_id in self._approvals:
                raise ApprovalConflictError(approval_id)
            self._approvals[approval_id] = approval

        if timeout is not None:
            approval.timer = loop.call_later(max(timeout, 0), self._expire, approval)

        logger.info("Created pending approval %s (timeout=%ss)", approval_id, timeout)
        self._send_notification(approval)

        try:
            return await approval.waiter
        except asyncio.CancelledError:
            with self._lock:
                if approval.status == ApprovalStatus.PENDING:
                    approval.close(ApprovalStatus.CANCELLED)
            if approval.timer is not None:
                approval.timer.cancel()
            logger.info("Approval %s cancelled while waiting", approval_id)
            raise

    def resolve(self, approval_id: str, approved: bool) -> ResolveResult:
        """
        Record a human decision.

        Only the first decision counts; later calls get ALREADY_RESOLVED.
        Safe to call from any thread.
        """
        with self._lock:
            approval = self._approvals.get(approval_id)
            if approval is None:
                return ResolveResult.NOT_FOUND
            if approval.status != ApprovalStatus.PENDING:
                return ResolveResult.ALREADY_RESOLVED
            approval.close(ApprovalStatus.APPROVED if approved else ApprovalStatus.REJECTED)

        outcome = ApprovalOutcome(approval_id=approval_id, approved=approved)
        try:
            approval.loop.call_soon_threadsafe(self._settle, approval, outcome)
        except RuntimeError:
            # The waiting run's loop is gone; the decision stays on record.
            logger.warning("Approval %s resolved after its event loop closed", approval_id)

        logger.info("Approval %s was %s", approval_id, approval.status.value)
        return ResolveResult.OK

    def get(self, approval_id: str) -> Optional[ApprovalSummary]:
        with self._lock:
            approval = self._approvals.get(approval_id)
            return approval.summary() if approval else None

    def list_approvals(self, status: Optional[ApprovalStatus] = None) -> List[ApprovalSummary]:
        with self._lock:
            return [
                a.summary() for a in self._approvals.values()
                if status is None or a.status == status
            ]

    def prune(self, older_than_seconds: float) -> int:
        """
        Drop closed entries resolved more than ``older_than_seconds`` ago.
        Pending entries are never dropped. Returns the number removed.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=older_than_seconds)
        with self._lock:
            stale = [
                approval_id for approval_id, a in self._approvals.items()
                if a.status != ApprovalStatus.PENDING
                and a.resolved_at is not None
                and a.resolved_at <= cutoff
            ]
            for approval_id in stale:
                del self._approvals[approval_id]
        return len(stale)

    # ------------------------------------------------------------------
    # Loop-side callbacks
    # ------------------------------------------------------------------

    def _settle(self, approval: PendingApproval, outcome: ApprovalOutcome) -> None:
        if approval.timer is not None:
            approval.timer.cancel()
        if not approval.waiter.done():
            approval.waiter.set_result(outcome)

    def _expire(self, approval: PendingApproval) -> None:
        with self._lock:
            if approval.status != ApprovalStatus.PENDING:
                return
            approval.close(ApprovalStatus.TIMED_OUT)

        logger.info("Timed out waiting for approval %s", approval.approval_id)
        if not approval.waiter.done():
            approval.waiter.set_result(
                ApprovalOutcome(approval_id=approval.approval_id, approved=False, timed_out=True)
            )

    def _send_notification(self, approval: PendingApproval) -> None:
        approval_id = approval.approval_id
        try:
            pending = self.notifier.notify(
                approval_id,
                approval.payload,
                self.approve_url(approval_id),
                self.reject_url(approval_id),
            )
        except Exception as e:
            logger.error("Failed to notify approver for %s: %s", approval_id, e)
            return

        if inspect.isawaitable(pending):
            task = asyncio.ensure_future(pending)
            self._notifications.add(task)
            task.add_done_callback(lambda t: self._notification_done(approval_id, t))

    def _notification_done(self, approval_id: str, task: asyncio.Task) -> None:
        self._notifications.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Failed to notify approver for %s: %s", approval_id, task.exception())
