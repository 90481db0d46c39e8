from typing import Dict, List, Callable, Any
import asyncio
from concurrent.futures import ThreadPoolExecutor
import logging

from learnhub.core.constants import AuthEventEnum

logger = logging.getLogger(__name__)

class EventBus:
    """In-process publish/subscribe for auth-state changes."""

    def __init__(self):
        self._handlers: Dict[AuthEventEnum, List[Callable]] = {}
        self._executor = ThreadPoolExecutor(max_workers=4)

    def subscribe(self, event_type: AuthEventEnum, handler: Callable):
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: AuthEventEnum, handler: Callable):
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    async def publish(self, event_type: AuthEventEnum, data: Dict[str, Any]):
        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            return

        loop = asyncio.get_running_loop()
        tasks = []
        for handler in handlers:
            if asyncio.iscoroutinefunction(handler):
                tasks.append(asyncio.create_task(handler(event_type, data)))
            else:
                tasks.append(loop.run_in_executor(self._executor, handler, event_type, data))

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(f"Error in {event_type.value} handler {handler.__name__}: {result}")

event_bus = EventBus()
