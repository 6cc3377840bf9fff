# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node Executor Registry

Maps a node type to the handler that executes it. Every handler shares one
contract::

    handler(config, inputs, trigger_data, business_context) -> data

and signals failure by raising. Handlers may be coroutine functions or plain
callables.
"""

import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .exceptions import UnknownNodeTypeError
from .models import NodeType


NodeHandler = Callable[
    [Dict[str, Any], Dict[str, Any], Dict[str, Any], Optional[Dict[str, Any]]],
    Union[Any, Awaitable[Any]]
]


class NodeExecutorRegistry:
    """Node type -> handler lookup used by the engine for dispatch"""

    def __init__(self, handlers: Optional[Dict[str, NodeHandler]] = None):
        self._handlers: Dict[str, NodeHandler] = {}
        for node_type, handler in (handlers or {}).items():
            self.register(node_type, handler)

    def register(self, node_type: Union[str, NodeType], handler: NodeHandler) -> None:
        """Register (or replace) the handler for a node type"""
        if not callable(handler):
            raise TypeError(f"Handler for '{_key(node_type)}' is not callable")
        self._handlers[_key(node_type)] = handler

    def handler(self, node_type: Union[str, NodeType]) -> Callable[[NodeHandler], NodeHandler]:
        """Decorator form of register()"""
        def decorator(func: NodeHandler) -> NodeHandler:
            self.register(node_type, func)
            return func
        return decorator

    def unregister(self, node_type: Union[str, NodeType]) -> None:
        self._handlers.pop(_key(node_type), None)

    def get(self, node_type: Union[str, NodeType]) -> NodeHandler:
        try:
            return self._handlers[_key(node_type)]
        except KeyError:
            raise UnknownNodeTypeError(_key(node_type))

    def __contains__(self, node_type: Union[str, NodeType]) -> bool:
        return _key(node_type) in self._handlers

    @property
    def node_types(self) -> List[str]:
        return sorted(self._handlers)

    async def execute(
        self,
        node_type: Union[str, NodeType],
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Dispatch to the registered handler and await it if needed"""
        handler = self.get(node_type)
        result = handler(config, inputs, trigger_data, business_context)
        if inspect.isawaitable(result):
            result = await result
        return result


def _key(node_type: Union[str, NodeType]) -> str:
    return node_type.value if isinstance(node_type, NodeType) else str(node_type)
