# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the approval gate
"""

import asyncio
import threading
import time

import pytest
from unittest.mock import AsyncMock, MagicMock

from flowgate.workflow.approval import ApprovalGate
from flowgate.workflow.exceptions import ApprovalConflictError
from flowgate.workflow.models import ApprovalStatus, ResolveResult


@pytest.mark.asyncio
async def test_approve_settles_waiter(gate):
    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {"amount": 10}, timeout=5))
    await asyncio.sleep(0)

    assert gate.resolve("ap-1", True) == ResolveResult.OK
    outcome = await waiter

    assert outcome.approved is True
    assert outcome.timed_out is False
    assert gate.get("ap-1").status == ApprovalStatus.APPROVED


@pytest.mark.asyncio
async def test_reject_settles_waiter(gate):
    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {}, timeout=5))
    await asyncio.sleep(0)

    gate.resolve("ap-1", False)
    outcome = await waiter

    assert outcome.approved is False
    assert outcome.timed_out is False
    assert gate.get("ap-1").status == ApprovalStatus.REJECTED


@pytest.mark.asyncio
async def test_timeout_is_a_normal_outcome(gate):
    started = time.monotonic()
    outcome = await asyncio.wait_for(gate.request_approval("ap-1", {}, timeout=0.05), timeout=1)
    elapsed = time.monotonic() - started

    assert 0.04 <= elapsed < 0.5

    assert outcome.approved is False
    assert outcome.timed_out is True
    assert gate.get("ap-1").status == ApprovalStatus.TIMED_OUT


@pytest.mark.asyncio
async def test_resolve_after_timeout_reports_already_resolved(gate):
    await gate.request_approval("ap-1", {}, timeout=0.01)

    assert gate.resolve("ap-1", True) == ResolveResult.ALREADY_RESOLVED
    assert gate.get("ap-1").status == ApprovalStatus.TIMED_OUT


@pytest.mark.asyncio
async def test_double_resolve(gate):
    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {}, timeout=5))
    await asyncio.sleep(0)

    assert gate.resolve("ap-1", True) == ResolveResult.OK
    assert gate.resolve("ap-1", False) == ResolveResult.ALREADY_RESOLVED
    outcome = await waiter

    assert outcome.approved is True


def test_resolve_unknown_id(gate):
    assert gate.resolve("nope", True) == ResolveResult.NOT_FOUND


@pytest.mark.asyncio
async def test_early_resolution_cancels_timer(gate):
    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {}, timeout=0.05))
    await asyncio.sleep(0)
    gate.resolve("ap-1", True)
    await waiter

    await asyncio.sleep(0.1)

    summary = gate.get("ap-1")
    assert summary.status == ApprovalStatus.APPROVED


@pytest.mark.asyncio
async def test_concurrent_approvals_are_independent(gate):
    first = asyncio.ensure_future(gate.request_approval("ap-1", {}, timeout=0.05))
    second = asyncio.ensure_future(gate.request_approval("ap-2", {}, timeout=5))
    await asyncio.sleep(0)

    first_outcome = await first
    assert first_outcome.timed_out is True
    assert gate.get("ap-2").status == ApprovalStatus.PENDING

    gate.resolve("ap-2", True)
    second_outcome = await second
    assert second_outcome.approved is True
    assert second_outcome.timed_out is False


@pytest.mark.asyncio
async def test_duplicate_id_conflicts(gate):
    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {}, timeout=5))
    await asyncio.sleep(0)

    with pytest.raises(ApprovalConflictError):
        await gate.request_approval("ap-1", {}, timeout=5)

    gate.resolve("ap-1", True)
    await waiter


@pytest.mark.asyncio
async def test_resolve_from_another_thread(gate):
    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {}, timeout=5))
    await asyncio.sleep(0)

    results = []
    thread = threading.Thread(target=lambda: results.append(gate.resolve("ap-1", True)))
    thread.start()
    thread.join()

    outcome = await asyncio.wait_for(waiter, timeout=1)
    assert results == [ResolveResult.OK]
    assert outcome.approved is True


@pytest.mark.asyncio
async def test_cancelled_waiter_closes_entry(gate):
    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {}, timeout=5))
    await asyncio.sleep(0)

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert gate.get("ap-1").status == ApprovalStatus.CANCELLED
    assert gate.resolve("ap-1", True) == ResolveResult.ALREADY_RESOLVED


@pytest.mark.asyncio
async def test_notifier_receives_callback_urls(gate):
    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {"to": "ops@example.com"}, timeout=5))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    gate.notifier.notify.assert_awaited_once_with(
        "ap-1",
        {"to": "ops@example.com"},
        "https://flows.example.com/approve/ap-1?action=yes",
        "https://flows.example.com/approve/ap-1?action=no",
    )

    gate.resolve("ap-1", True)
    await waiter


@pytest.mark.asyncio
async def test_failing_notifier_does_not_block_approval():
    notifier = MagicMock()
    notifier.notify = AsyncMock(side_effect=RuntimeError("mail server down"))
    gate = ApprovalGate(notifier=notifier)

    waiter = asyncio.ensure_future(gate.request_approval("ap-1", {}, timeout=5))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    gate.resolve("ap-1", True)
    outcome = await waiter
    assert outcome.approved is True


@pytest.mark.asyncio
async def test_list_and_prune(gate):
    pending = asyncio.ensure_future(gate.request_approval("ap-pending", {}, timeout=5))
    await gate.request_approval("ap-expired", {}, timeout=0)

    assert [a.approval_id for a in gate.list_approvals(ApprovalStatus.PENDING)] == ["ap-pending"]
    assert len(gate.list_approvals()) == 2

    assert gate.prune(older_than_seconds=0) == 1
    assert gate.get("ap-expired") is None
    assert gate.get("ap-pending") is not None

    gate.resolve("ap-pending", False)
    await pending


@pytest.mark.asyncio
async def test_summary_carries_audit_fields(gate):
    waiter = asyncio.ensure_future(
        gate.request_approval("ap-1", {"k": "v"}, timeout=5, run_id="run_1", node_id="gate")
    )
    await asyncio.sleep(0)

    summary = gate.get("ap-1")
    assert summary.run_id == "run_1"
    assert summary.node_id == "gate"
    assert summary.payload == {"k": "v"}
    assert summary.resolved_at is None

    gate.resolve("ap-1", True)
    await waiter
    assert gate.get("ap-1").resolved_at is not None


def test_callback_urls(gate):
    assert gate.approve_url("abc") == "https://flows.example.com/approve/abc?action=yes"
    assert gate.reject_url("abc") == "https://flows.example.com/approve/abc?action=no"
