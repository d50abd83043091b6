"""
Retrieves trace summaries and trace details from the tracing backend.
"""

import logging
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence

from ..api_client.xray_client import TracingBackend
from .models import TraceDetail, TraceSummary
from .segment_decoder import decode_trace

logger = logging.getLogger(__name__)

# BatchGetTraces accepts a max of 5 IDs
MAX_TRACE_IDS_PER_BATCH = 5


def build_filter_expression(function_name: str) -> str:
    return f'service("{function_name}")'


def chunked(items: Sequence[str], size: int) -> Iterator[List[str]]:
    for offset in range(0, len(items), size):
        yield list(items[offset:offset + size])


class TraceFetcher:
    """
    Pages through trace summaries and fetches trace details in batches.

    Calls are made one at a time: each summary page needs the previous page's
    continuation token, and detail batches are issued in order so results keep
    the order of the requested IDs.
    """

    def __init__(self, backend: TracingBackend, batch_size: int = MAX_TRACE_IDS_PER_BATCH):
        if not 1 <= batch_size <= MAX_TRACE_IDS_PER_BATCH:
            raise ValueError(f"batch_size must be between 1 and {MAX_TRACE_IDS_PER_BATCH}, got {batch_size}")
        self.backend = backend
        self.batch_size = batch_size
        self.unprocessed_trace_ids: List[str] = []

    async def fetch_summaries(
        self,
        function_name: str,
        start_time: datetime,
        end_time: Optional[datetime] = None
    ) -> List[TraceSummary]:
        """
        Fetch every trace summary for `function_name` between start_time and end_time.

        end_time defaults to now. All pages are requested with the same window and
        filter; only the continuation token changes between calls.
        """
        if end_time is None:
            end_time = datetime.now(timezone.utc)
        filter_expression = build_filter_expression(function_name)

        summaries: List[TraceSummary] = []
        next_token = None
        pages = 0
        while True:
            page = await self.backend.list_trace_summaries(start_time, end_time, filter_expression, next_token)
            pages += 1
            summaries.extend(
                TraceSummary(
                    id=summary["Id"],
                    duration=summary.get("Duration"),
                    response_time=summary.get("ResponseTime"),
                )
                for summary in page.summaries
            )
            next_token = page.next_token
            if not next_token:
                break

        logger.debug(f"Fetched {len(summaries)} trace summaries in {pages} page(s) for {function_name}")
        return summaries

    async def fetch_details(self, trace_ids: Sequence[str]) -> List[TraceDetail]:
        """
        Fetch and decode the traces for `trace_ids`, batch_size IDs per call.

        IDs the backend reports as unprocessed are skipped and collected in
        `unprocessed_trace_ids`.
        """
        self.unprocessed_trace_ids = []
        details: List[TraceDetail] = []
        for chunk in chunked(trace_ids, self.batch_size):
            batch = await self.backend.batch_get_traces(chunk)
            if batch.unprocessed_trace_ids:
                logger.warning(f"Tracing backend did not process {len(batch.unprocessed_trace_ids)} trace(s): {batch.unprocessed_trace_ids}")
                self.unprocessed_trace_ids.extend(batch.unprocessed_trace_ids)
            details.extend(decode_trace(trace) for trace in batch.traces)
        return details
