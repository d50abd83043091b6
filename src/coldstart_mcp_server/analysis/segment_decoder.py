"""
Decodes one X-Ray trace record into named timing segments.

A record from BatchGetTraces looks like:

    {
        "Id": "1-5c7954d9-560bf598fb3f88607c3751e0",
        "Segments": [
            {"Id": "2cd1290ee882c1b0", "Document": "{\"origin\": \"AWS::Lambda\", ...}"},
            {"Id": "3f252a557b9d011f", "Document": "{\"origin\": \"AWS::Lambda::Function\", ...}"}
        ]
    }

Each Document is JSON encoded on its own. The decoded durations of a cold start
trace come out as:

    AWS::Lambda             376.0
    AWS::Lambda::Function     2.5
    Overhead                  0.7
    Initialization          173.4
    Invocation                1.3
    Setup                   200.1   (derived, no id)
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import (
    INITIALIZATION_SEGMENT,
    LAMBDA_FUNCTION_ORIGIN,
    LAMBDA_ORIGIN,
    SETUP_SEGMENT,
    Segment,
    TraceDetail,
    TraceStatus,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_DECIMAL = Decimal("0.1")


class MalformedTraceError(ValueError):
    """Raised when a trace record cannot be decoded at all."""

    def __init__(self, trace_id: Optional[str], message: str):
        super().__init__(f"Malformed trace {trace_id}: {message}")
        self.trace_id = trace_id


def round_ms(value: float) -> float:
    """Round to one decimal, halves away from zero, on the exact binary value."""
    return float(Decimal(value).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def segment_duration_ms(document: Mapping[str, Any]) -> float:
    return round_ms((document["end_time"] - document["start_time"]) * 1000)


def to_iso_timestamp(epoch_seconds: float) -> str:
    """Epoch seconds -> '2019-03-06T15:38:27.308Z' (milliseconds truncated)."""
    moment = _EPOCH + timedelta(milliseconds=int(epoch_seconds * 1000))
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _decode_segments(trace_id: str, segments: List[Mapping[str, Any]]) -> List[Tuple[Mapping[str, Any], Dict[str, Any]]]:
    decoded = []
    for segment in segments:
        try:
            document = json.loads(segment["Document"])
        except (KeyError, TypeError, json.JSONDecodeError) as e:
            raise MalformedTraceError(trace_id, f"undecodable segment document ({e})") from e
        decoded.append((segment, document))
    return decoded


def _find_by_origin(decoded, origin: str):
    for segment, document in decoded:
        if document.get("origin") == origin:
            return segment, document
    return None, None


def is_in_progress(document: Mapping[str, Any]) -> bool:
    """True for a segment X-Ray has not closed yet, which has no end_time."""
    return bool(document.get("in_progress")) or "start_time" not in document or "end_time" not in document


def decode_trace(raw_trace: Mapping[str, Any]) -> TraceDetail:
    """
    Turn one raw trace record into a TraceDetail.

    Raises MalformedTraceError when the AWS::Lambda segment is missing. Any other
    missing piece, or a segment still in progress, yields an INCOMPLETE detail
    with no durations.
    """
    trace_id = raw_trace.get("Id")
    decoded = _decode_segments(trace_id, raw_trace.get("Segments") or [])

    lambda_segment, lambda_document = _find_by_origin(decoded, LAMBDA_ORIGIN)
    if lambda_document is None:
        raise MalformedTraceError(trace_id, f"no {LAMBDA_ORIGIN} segment")

    function_name = lambda_document.get("name") or ""
    timestamp = to_iso_timestamp(lambda_document["start_time"]) if "start_time" in lambda_document else ""

    function_segment, function_document = _find_by_origin(decoded, LAMBDA_FUNCTION_ORIGIN)
    if function_document is None:
        logger.warning(f"Missing lambda function segment for {trace_id}")
        return TraceDetail.incomplete(function_name, trace_id, timestamp, f"missing {LAMBDA_FUNCTION_ORIGIN} segment")

    if is_in_progress(lambda_document) or is_in_progress(function_document):
        logger.warning(f"Lambda segment still in progress for {trace_id}")
        return TraceDetail.incomplete(function_name, trace_id, timestamp, "segment in progress")

    lambda_time = segment_duration_ms(lambda_document)
    function_time = segment_duration_ms(function_document)
    segments = [
        Segment(name=lambda_document["origin"], id=lambda_segment.get("Id"), duration=lambda_time),
        Segment(name=function_document["origin"], id=function_segment.get("Id"), duration=function_time),
    ]

    # A warm invocation carries no subsegments on the function segment
    if not function_document.get("subsegments"):
        logger.warning(f"Missing subsegments for {trace_id}")
        return TraceDetail.incomplete(function_name, trace_id, timestamp, "missing subsegments")

    raw_subsegments = function_document["subsegments"]
    if any(is_in_progress(sub) for sub in raw_subsegments):
        logger.warning(f"Subsegment still in progress for {trace_id}")
        return TraceDetail.incomplete(function_name, trace_id, timestamp, "segment in progress")
    if not all(sub.get("name") for sub in raw_subsegments):
        logger.warning(f"Unnamed subsegment for {trace_id}")
        return TraceDetail.incomplete(function_name, trace_id, timestamp, "unnamed subsegment")

    subsegments = [
        Segment(name=sub["name"], id=sub.get("id"), duration=segment_duration_ms(sub))
        for sub in raw_subsegments
    ]

    initialization = next((sub for sub in subsegments if sub.name == INITIALIZATION_SEGMENT), None)
    if initialization is None:
        logger.warning(f"Missing Initialization subsegment for {trace_id}")
        return TraceDetail.incomplete(function_name, trace_id, timestamp, f"missing {INITIALIZATION_SEGMENT} subsegment")

    # May be negative when segment clocks disagree
    setup = Segment(
        name=SETUP_SEGMENT,
        id=None,
        duration=round_ms(lambda_time - function_time - initialization.duration),
    )

    return TraceDetail(
        function_name=function_name,
        trace_id=trace_id,
        timestamp=timestamp,
        durations=segments + subsegments + [setup],
        status=TraceStatus.USABLE,
    )
