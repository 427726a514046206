"""Background job queue used for credit score updates and staff summaries"""

import logging
from typing import Any, Awaitable, Callable, Dict, Protocol

JobHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class JobQueue(Protocol):
    """Generic enqueue interface; scheduling and retries belong to the queue backend"""

    async def enqueue(self, job: str, payload: Dict[str, Any]) -> None: ...


class UnknownJobError(LookupError):
    pass


class InProcessJobQueue:
    """Runs registered handlers in the current event loop as soon as a job is enqueued"""

    def __init__(self) -> None:
        self._handlers: Dict[str, JobHandler] = {}

    def register(self, job: str, handler: JobHandler) -> None:
        self._handlers[job] = handler

    async def enqueue(self, job: str, payload: Dict[str, Any]) -> None:
        handler = self._handlers.get(job)
        if handler is None:
            raise UnknownJobError(f"No handler registered for job '{job}'")

        logging.info("Running job", extra={"job": job})
        await handler(payload)
