"""JSONL span export.

Writes finished OpenTelemetry spans (query execution, transactions) to
daily files so slow or failing statements can be inspected afterwards.

Structure:
    {traces_dir}/YYYY-MM-DD.jsonl

Each line is a JSON object with span data:
    {"ts": ..., "name": ..., "trace_id": ..., "duration_ms": ..., "status": ..., "attrs": {...}}
"""

import json
import logging
from datetime import datetime
from pathlib import Path

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from sqlite_mcp.config import Settings, get_settings

logger = logging.getLogger(__name__)


class JSONLSpanExporter(SpanExporter):
    """Export spans to one JSONL file per day."""

    def __init__(self, traces_dir: Path):
        self.traces_dir = traces_dir
        self._current_file: Path | None = None
        self._current_date: str | None = None

    def _get_trace_file(self) -> Path:
        """Get the current trace file, rotating daily."""
        today = datetime.now().strftime("%Y-%m-%d")

        if self._current_date != today:
            self.traces_dir.mkdir(parents=True, exist_ok=True)
            self._current_file = self.traces_dir / f"{today}.jsonl"
            self._current_date = today

        return self._current_file

    @staticmethod
    def _record(span: ReadableSpan) -> dict:
        record = {
            "ts": span.start_time,
            "name": span.name,
            "trace_id": format(span.context.trace_id, "032x"),
            "span_id": format(span.context.span_id, "016x"),
            "parent_id": format(span.parent.span_id, "016x") if span.parent else None,
            "duration_ms": (span.end_time - span.start_time) / 1_000_000,
            "status": span.status.status_code.name,
            "attrs": dict(span.attributes) if span.attributes else {},
        }
        if span.status.description:
            record["error"] = span.status.description
        return record

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        if not spans:
            return SpanExportResult.SUCCESS

        try:
            trace_file = self._get_trace_file()
            with open(trace_file, "a") as f:
                for span in spans:
                    f.write(json.dumps(self._record(span), default=str) + "\n")
            return SpanExportResult.SUCCESS

        except Exception as e:
            logger.error(f"Failed to export spans: {e}")
            return SpanExportResult.FAILURE

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


def setup_trace_exporter(settings: Settings | None = None) -> JSONLSpanExporter | None:
    """Create the exporter when a traces directory is configured.

    Returns:
        Configured exporter or None if trace export is disabled
    """
    traces_path = (settings or get_settings()).get_traces_path()
    if traces_path is None:
        logger.debug("Trace export disabled, skipping exporter setup")
        return None

    logger.info(f"Setting up trace exporter: {traces_path}/")
    return JSONLSpanExporter(traces_path)


def load_spans(traces_dir: Path, day: str | None = None) -> list[dict]:
    """Read the spans recorded on one day (default: today).

    Malformed lines are skipped.
    """
    day = day or datetime.now().strftime("%Y-%m-%d")
    trace_file = traces_dir / f"{day}.jsonl"
    if not trace_file.exists():
        return []

    spans = []
    with open(trace_file) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                spans.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug(f"Skipping malformed trace line in {trace_file}")
    return spans
