"""TraceCollector ABC — sink for the records in ``tracing.events``."""

from __future__ import annotations

from abc import ABC, abstractmethod

from command_router.tracing.events import TraceEvent


class TraceCollector(ABC):
    """Buffers trace records per trace id until ``flush``.

    The router opens one trace id per ``route`` or ``dispatch`` call; the
    registry adds its ``skill_conflict`` and ``dispatch`` records to the
    dispatch trace.
    """

    @abstractmethod
    async def emit(self, event: TraceEvent) -> None: ...

    @abstractmethod
    async def flush(self, trace_id: str) -> None: ...
