"""
Cold start analysis: trace summaries -> decoded trace details -> statistics.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from ..api_client.xray_client import TracingBackend, create_xray_client
from ..config.settings import settings
from .models import StatisticsReport, TraceDetail
from .statistics import PercentileIndexing, aggregate
from .trace_fetcher import MAX_TRACE_IDS_PER_BATCH, TraceFetcher

logger = logging.getLogger(__name__)

StartTime = Union[str, int, float, datetime]


def parse_start_time(value: StartTime) -> datetime:
    """
    Normalise a start time to an aware UTC datetime.

    Accepts a datetime, an ISO-8601 string ("Z" suffix allowed, naive values are
    taken as UTC) or a number of milliseconds since the epoch.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid start time: {value!r}")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.isdigit():
            return parse_start_time(int(text))
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Invalid start time: {value!r}") from e
    else:
        raise ValueError(f"Invalid start time: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ColdStartAnalyzer:
    """
    Runs one cold start analysis against a tracing backend.

    Holds no state between runs; every call to analyze() fetches and decodes
    from scratch.
    """

    def __init__(
        self,
        backend: TracingBackend,
        batch_size: int = MAX_TRACE_IDS_PER_BATCH,
        indexing: PercentileIndexing = PercentileIndexing.RANK
    ):
        self.backend = backend
        self.batch_size = batch_size
        self.indexing = PercentileIndexing(indexing)

    async def collect(self, start_time: StartTime, function_name: str) -> Tuple[List[TraceDetail], List[str]]:
        """Fetch and decode every trace of `function_name` from start_time until now."""
        window_start = parse_start_time(start_time)
        fetcher = TraceFetcher(self.backend, batch_size=self.batch_size)

        summaries = await fetcher.fetch_summaries(function_name, window_start)
        logger.info(f"get [{len(summaries)}] traces")

        details = await fetcher.fetch_details([summary.id for summary in summaries])
        logger.info(f"got [{len(details)}] trace details")
        return details, fetcher.unprocessed_trace_ids

    async def analyze(self, start_time: StartTime, function_name: str) -> StatisticsReport:
        details, unprocessed = await self.collect(start_time, function_name)
        report = aggregate(function_name, details, self.indexing)
        report.unprocessed_trace_ids = unprocessed
        return report


async def analyze_cold_starts(
    start_time: StartTime,
    function_name: str,
    backend: Optional[TracingBackend] = None
) -> StatisticsReport:
    """
    Compute Initialization statistics for `function_name` from start_time until now.

    Without a backend an X-Ray client is built from settings.
    """
    analyzer = ColdStartAnalyzer(
        backend or create_xray_client(),
        batch_size=settings.XRAY_BATCH_SIZE,
        indexing=settings.PERCENTILE_INDEXING
    )
    return await analyzer.analyze(start_time, function_name)
