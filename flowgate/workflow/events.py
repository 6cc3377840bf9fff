# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Lifecycle notifications for live progress views and telemetry.

Listeners are best-effort: the engine never awaits them and a failing
listener never changes the outcome of a run.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Set

from .models import ExecutionResult


logger = logging.getLogger(__name__)


class ExecutionListener:
    """
    Base listener. Override either hook; both may be plain or async methods.
    """

    def on_node_starting(self, node_id: str, node_type: str, inputs: Dict[str, Any]) -> Any:
        pass

    def on_node_complete(
        self,
        node_id: str,
        node_type: str,
        result: ExecutionResult,
        inputs: Dict[str, Any]
    ) -> Any:
        pass


class CallbackListener(ExecutionListener):
    """Adapts a pair of callables to the listener interface"""

    def __init__(
        self,
        on_starting: Optional[Callable[..., Any]] = None,
        on_complete: Optional[Callable[..., Any]] = None,
    ):
        self._on_starting = on_starting
        self._on_complete = on_complete

    def on_node_starting(self, node_id, node_type, inputs):
        if self._on_starting:
            return self._on_starting(node_id, node_type, inputs)

    def on_node_complete(self, node_id, node_type, result, inputs):
        if self._on_complete:
            return self._on_complete(node_id, node_type, result, inputs)


# Keeps fire-and-forget tasks alive until they finish
_background_tasks: Set[asyncio.Task] = set()


def _log_task_failure(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.warning("Execution listener failed: %s", task.exception())


def notify(listener: Optional[ExecutionListener], hook: str, *args: Any) -> None:
    """
    Invoke ``listener.<hook>(*args)`` without letting it affect execution.

    Coroutines returned by async hooks are scheduled, not awaited.
    """
    if listener is None:
        return

    try:
        outcome = getattr(listener, hook)(*args)
    except Exception as e:
        logger.warning("Execution listener %s failed: %s", hook, e)
        return

    if inspect.isawaitable(outcome):
        task = asyncio.ensure_future(outcome)
        _background_tasks.add(task)
        task.add_done_callback(_log_task_failure)
