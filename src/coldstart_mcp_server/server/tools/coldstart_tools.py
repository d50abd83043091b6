"""
Cold start tools for the Cold Start MCP server.

Two levels of detail:
- analyze_cold_starts: Initialization statistics for one function
- get_cold_start_traces: the decoded traces behind those statistics
"""

import logging
from typing import Dict, Any, Union

from ..server import mcp_server
from ...analysis import pipeline
from ...analysis.pipeline import ColdStartAnalyzer, parse_start_time
from ...analysis.statistics import summarize_segments
from ...api_client.client_factory import get_current_tracing_client
from ...config.settings import settings

logger = logging.getLogger(__name__)


def _analyzer() -> ColdStartAnalyzer:
    return ColdStartAnalyzer(
        get_current_tracing_client(),
        batch_size=settings.XRAY_BATCH_SIZE,
        indexing=settings.PERCENTILE_INDEXING
    )


def _validate(start_time, function_name: str):
    if not function_name or not function_name.strip():
        return {"status": "error", "message": "function_name is required"}
    if len(function_name) > 256:
        return {"status": "error", "message": "Invalid function_name"}
    try:
        parse_start_time(start_time)
    except ValueError as e:
        return {"status": "error", "message": str(e)}
    return None

# ============================================================================
# COLD START STATISTICS
# ============================================================================

@mcp_server.tool()
async def analyze_cold_starts(
    start_time: Union[str, int],
    function_name: str
) -> Dict[str, Any]:
    """
    Cold start statistics for a Lambda function, from start_time until now.

    Pulls every X-Ray trace of the function in the window, decodes the cold start
    segments and reports mean, min, max, median and 90th percentile of the
    Initialization phase in milliseconds. Traces without an Initialization
    subsegment (warm invocations) are left out.

    Args:
        start_time: Window start as ISO-8601 UTC (e.g. "2026-10-19T08:00:00Z")
                    or milliseconds since the epoch
        function_name: The Lambda function name as it appears in X-Ray

    Returns:
        Dict with status and the report: functionName, datapoints, average, min,
        max, median, ninetieth and rawData (comma-joined sorted values)
    """
    invalid = _validate(start_time, function_name)
    if invalid:
        return invalid

    try:
        report = await pipeline.analyze_cold_starts(start_time, function_name, backend=get_current_tracing_client())

        result = {"status": "success", **report.to_report()}
        if report.datapoints == 0:
            result["message"] = "No cold start traces found in the specified time range"
        if report.unprocessed_trace_ids:
            result["unprocessed_trace_ids"] = report.unprocessed_trace_ids
        return result

    except Exception as e:
        logger.error(f"Error in analyze_cold_starts: {str(e)}")
        return {
            "status": "error",
            "message": f"Failed to analyze cold starts: {str(e)}"
        }

# ============================================================================
# DECODED TRACES
# ============================================================================

@mcp_server.tool()
async def get_cold_start_traces(
    start_time: Union[str, int],
    function_name: str,
    include_incomplete: bool = False,
    limit: int = 50
) -> Dict[str, Any]:
    """
    Decoded X-Ray traces of a Lambda function, from start_time until now.

    Each trace lists its timing segments (AWS::Lambda, AWS::Lambda::Function,
    the function's subsegments and the derived Setup time) in milliseconds.
    Use this to look behind the numbers returned by analyze_cold_starts.

    Args:
        start_time: Window start as ISO-8601 UTC or milliseconds since the epoch
        function_name: The Lambda function name as it appears in X-Ray
        include_incomplete: Also list traces that have no usable durations
        limit: Maximum number of traces to return

    Returns:
        Dict with counts, per-segment statistics and the list of traces
    """
    invalid = _validate(start_time, function_name)
    if invalid:
        return invalid

    try:
        details, unprocessed = await _analyzer().collect(start_time, function_name)

        usable_count = sum(1 for detail in details if detail.is_usable)
        listed = details if include_incomplete else [detail for detail in details if detail.is_usable]
        limited = listed[:max(limit, 0)]

        return {
            "status": "success",
            "functionName": function_name,
            "total_found": len(details),
            "usable_count": usable_count,
            "incomplete_count": len(details) - usable_count,
            "returned_count": len(limited),
            "unprocessed_trace_ids": unprocessed,
            "segment_statistics": summarize_segments(details),
            "traces": [detail.to_dict() for detail in limited]
        }

    except Exception as e:
        logger.error(f"Error in get_cold_start_traces: {str(e)}")
        return {
            "status": "error",
            "message": f"Failed to get cold start traces: {str(e)}"
        }
