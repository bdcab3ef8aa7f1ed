"""JSONL file-based trace collector."""

from __future__ import annotations

import logging
from pathlib import Path

from command_router.tracing.events import TraceEvent, TraceRecord, trace_record_adapter
from command_router.tracing.interface import TraceCollector

logger = logging.getLogger(__name__)


class JSONLTraceCollector(TraceCollector):
    """One ``<trace_dir>/<trace_id>.jsonl`` file per trace, one record per line."""

    def __init__(self, trace_dir: str = "./traces") -> None:
        self._dir = Path(trace_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._buffers: dict[str, list[TraceEvent]] = {}

    @property
    def trace_dir(self) -> Path:
        return self._dir

    def pending(self, trace_id: str) -> list[TraceEvent]:
        """Records emitted for ``trace_id`` and not yet flushed."""
        return list(self._buffers.get(trace_id, []))

    async def emit(self, event: TraceEvent) -> None:
        self._buffers.setdefault(event.trace_id, []).append(event)

    async def flush(self, trace_id: str) -> None:
        events = self._buffers.pop(trace_id, [])
        if not events:
            return
        with open(self._dir / f"{trace_id}.jsonl", "a") as f:
            f.writelines(e.model_dump_json() + "\n" for e in events)

    def load(self, trace_id: str) -> list[TraceRecord]:
        """Read a flushed trace back as typed records; unknown lines are skipped."""
        path = self._dir / f"{trace_id}.jsonl"
        if not path.exists():
            return []
        records: list[TraceRecord] = []
        for line in path.read_text().splitlines():
            if not line.strip():
                continue
            try:
                records.append(trace_record_adapter.validate_json(line))
            except ValueError:
                logger.warning("Skipping malformed trace line in %s", path.name)
        return records
