import json
from typing import Dict, List, Optional, Sequence

import pytest

from coldstart_mcp_server.api_client.xray_client import TraceBatch, TraceSummaryPage

LAMBDA_START = 1551886707.5


def segment(segment_id: str, document: Dict) -> Dict:
    return {"Id": segment_id, "Document": json.dumps(document)}


def make_trace(
    trace_id: str = "1-5c7954d9-560bf598fb3f88607c3751e0",
    function_name: str = "aws-coldstart-python37-dev-1536",
    lambda_ms: float = 376.0,
    function_ms: float = 2.5,
    subsegments: Optional[List[Dict]] = None,
    include_function_segment: bool = True,
    include_subsegments: bool = True,
    include_lambda_segment: bool = True,
    start: float = LAMBDA_START,
) -> Dict:
    """Raw BatchGetTraces record shaped like the Lambda runtime's instrumentation."""
    if subsegments is None:
        subsegments = [
            {"name": "Overhead", "id": "51b1a64aa8e9f0f3", "start_time": start + 0.3, "end_time": start + 0.3007},
            {"name": "Initialization", "id": "1b94ef3ef1233694", "start_time": start + 0.01, "end_time": start + 0.1834},
            {"name": "Invocation", "id": "f7a89c8152f3451b", "start_time": start + 0.2, "end_time": start + 0.2013},
        ]

    segments = []
    if include_lambda_segment:
        segments.append(segment("2cd1290ee882c1b0", {
            "id": "2cd1290ee882c1b0",
            "name": function_name,
            "origin": "AWS::Lambda",
            "start_time": start,
            "end_time": start + lambda_ms / 1000,
        }))
    if include_function_segment:
        function_document = {
            "id": "3f252a557b9d011f",
            "name": function_name,
            "origin": "AWS::Lambda::Function",
            "start_time": start + 0.3,
            "end_time": start + 0.3 + function_ms / 1000,
        }
        if include_subsegments:
            function_document["subsegments"] = subsegments
        segments.append(segment("3f252a557b9d011f", function_document))

    return {"Id": trace_id, "Duration": lambda_ms / 1000, "LimitExceeded": False, "Segments": segments}


def make_init_trace(trace_id: str, init_ms: float, start: float = LAMBDA_START) -> Dict:
    """A usable trace whose Initialization subsegment lasts exactly `init_ms`."""
    return make_trace(
        trace_id=trace_id,
        lambda_ms=500.0,
        function_ms=10.0,
        start=start,
        subsegments=[{"name": "Initialization", "id": f"init-{trace_id}", "start_time": start, "end_time": start + init_ms / 1000}],
    )


class FakeTracingBackend:
    """Serves scripted summary pages and trace records, recording every call."""

    def __init__(
        self,
        pages: Optional[List[TraceSummaryPage]] = None,
        traces: Optional[Dict[str, Dict]] = None,
        unprocessed: Sequence[str] = (),
    ):
        self.pages = pages or [TraceSummaryPage(summaries=[])]
        self.traces = traces or {}
        self.unprocessed = set(unprocessed)
        self.summary_calls: List[Dict] = []
        self.batch_calls: List[List[str]] = []

    async def list_trace_summaries(self, start_time, end_time, filter_expression, next_token=None):
        self.summary_calls.append({
            "start_time": start_time,
            "end_time": end_time,
            "filter_expression": filter_expression,
            "next_token": next_token,
        })
        return self.pages[len(self.summary_calls) - 1]

    async def batch_get_traces(self, trace_ids):
        self.batch_calls.append(list(trace_ids))
        return TraceBatch(
            traces=[self.traces[trace_id] for trace_id in trace_ids if trace_id not in self.unprocessed],
            unprocessed_trace_ids=[trace_id for trace_id in trace_ids if trace_id in self.unprocessed],
        )


def backend_for(traces: List[Dict], page_size: int = 10, unprocessed: Sequence[str] = ()) -> FakeTracingBackend:
    """Backend listing `traces` as summaries, `page_size` per page."""
    summaries = [{"Id": trace["Id"], "Duration": trace["Duration"], "ResponseTime": trace["Duration"]} for trace in traces]
    pages = []
    for offset in range(0, max(len(summaries), 1), page_size):
        has_more = offset + page_size < len(summaries)
        pages.append(TraceSummaryPage(
            summaries=summaries[offset:offset + page_size],
            next_token=f"token-{offset + page_size}" if has_more else None,
        ))
    return FakeTracingBackend(pages=pages, traces={trace["Id"]: trace for trace in traces}, unprocessed=unprocessed)


@pytest.fixture
def cold_start_traces():
    init_times = [100, 150, 120, 300, 110, 130]
    return [make_init_trace(f"1-trace-{i}", init_ms) for i, init_ms in enumerate(init_times)]
