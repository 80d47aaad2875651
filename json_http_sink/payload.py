"""
Batch payload codec.

Turns a batch of LogRecords into the JSON envelope POSTed to the endpoint:

    {
      "timestamp": "2024-01-15T10:30:00.123456+00:00",
      "count": 2,
      "metadata": {"appVersion": ..., "deviceId": ..., "sessionId": ..., "hostname": ...},
      "logs": [{"timestamp": ..., "level": "INFO", "levelValue": 20, "message": ...}, ...]
    }
"""

import gzip
import json
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from .metadata import MetadataProvider
from .records import LogRecord


class PayloadCodec:
    """Builds and encodes batch envelopes."""

    def __init__(
        self,
        include_stack_trace: bool = True,
        include_metadata: bool = True,
        metadata_provider: MetadataProvider | None = None,
        compress: bool = False,
    ):
        self.include_stack_trace = include_stack_trace
        self.include_metadata = include_metadata
        self.metadata_provider = metadata_provider or MetadataProvider()
        self.compress = compress

    def build(self, records: Sequence[LogRecord]) -> dict[str, Any]:
        """Build the JSON-serializable envelope for ``records``."""
        payload: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "count": len(records),
        }

        if self.include_metadata:
            provider = self.metadata_provider
            payload["metadata"] = {
                "appVersion": provider.app_version,
                "deviceId": provider.device_id,
                "sessionId": provider.session_id,
                "hostname": provider.hostname(),
            }

        # MDC is read once, at serialization time, and shared by every record
        mdc = self.metadata_provider.mdc_snapshot()
        payload["logs"] = [self.record_to_json(record, mdc) for record in records]
        return payload

    def record_to_json(self, record: LogRecord, mdc: dict[str, str] | None = None) -> dict[str, Any]:
        """Serialize one record. ``record.context`` is laid over ``mdc``."""
        entry: dict[str, Any] = {
            "timestamp": record.timestamp.astimezone(UTC).isoformat(),
            "level": record.level.name,
            "levelValue": int(record.level),
            "message": str(record.message),
        }

        if record.logger_name is not None:
            entry["logger"] = record.logger_name
        if record.tag is not None:
            entry["tag"] = record.tag
        if record.class_name is not None:
            entry["class"] = record.class_name
        if record.method_name is not None:
            entry["method"] = record.method_name
        if record.line_number is not None:
            entry["line"] = record.line_number

        if record.error is not None:
            entry["error"] = {
                "message": str(record.error),
                "type": type(record.error).__name__,
            }

        if self.include_stack_trace and record.stack_trace:
            entry["stackTrace"] = record.stack_trace

        context = dict(mdc or {})
        if record.context:
            context.update(record.context)
        if context:
            entry["mdc"] = context

        return entry

    def encode(self, records: Sequence[LogRecord]) -> bytes:
        """
        Serialize ``records`` to the request body.

        Raises:
            TypeError, ValueError: if the envelope is not JSON-serializable
        """
        body = json.dumps(self.build(records)).encode("utf-8")
        if self.compress:
            body = gzip.compress(body)
        return body
