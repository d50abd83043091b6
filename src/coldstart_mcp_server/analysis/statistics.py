"""
Descriptive statistics over the Initialization phase of cold start traces.
"""

import logging
import math
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import INITIALIZATION_SEGMENT, StatisticsReport, TraceDetail

logger = logging.getLogger(__name__)


class PercentileIndexing(str, Enum):
    """
    How median and ninetieth are picked from the sorted values.

    RANK takes the element at one-based rank ceil(n * p). ZERO_BASED uses
    ceil(n * p) directly as a zero-based index, which is what historical reports
    were computed with; it lands one element higher.
    """
    RANK = "rank"
    ZERO_BASED = "zero_based"


def percentile_index(count: int, fraction: float, indexing: PercentileIndexing = PercentileIndexing.RANK) -> Optional[int]:
    """Zero-based index into `count` sorted values, clamped to the last one."""
    if count <= 0:
        return None
    index = math.ceil(count * fraction)
    if indexing is PercentileIndexing.RANK:
        index -= 1
    return min(max(index, 0), count - 1)


def pick(sorted_values: Sequence[float], fraction: float, indexing: PercentileIndexing = PercentileIndexing.RANK) -> Optional[float]:
    index = percentile_index(len(sorted_values), fraction, indexing)
    if index is None:
        return None
    return sorted_values[index]


def usable_traces(details: Iterable[TraceDetail]) -> List[TraceDetail]:
    return [detail for detail in details if detail.is_usable]


def aggregate(
    function_name: str,
    details: Iterable[TraceDetail],
    indexing: PercentileIndexing = PercentileIndexing.RANK
) -> StatisticsReport:
    """
    Build the Initialization statistics report.

    Only usable traces count. With none, datapoints is 0 and every statistic
    is None.
    """
    indexing = PercentileIndexing(indexing)
    usable = usable_traces(details)
    init_times = [float(detail.duration_of(INITIALIZATION_SEGMENT)) for detail in usable]

    if not init_times:
        logger.info(f"No usable cold start traces for {function_name}")
        return StatisticsReport(function_name=function_name, datapoints=0)

    sorted_times = sorted(init_times)
    return StatisticsReport(
        function_name=function_name,
        datapoints=len(usable),
        average=sum(init_times) / len(init_times),
        min=sorted_times[0],
        max=sorted_times[-1],
        median=pick(sorted_times, 0.5, indexing),
        ninetieth=pick(sorted_times, 0.9, indexing),
        raw_data=sorted_times,
    )


def summarize_segments(details: Iterable[TraceDetail]) -> Dict[str, Dict[str, Any]]:
    """Count, average, min and max per segment name across usable traces."""
    by_name: Dict[str, List[float]] = {}
    for detail in usable_traces(details):
        for segment in detail.durations:
            by_name.setdefault(segment.name, []).append(segment.duration)

    return {
        name: {
            "count": len(values),
            "average_ms": round(sum(values) / len(values), 1),
            "min_ms": min(values),
            "max_ms": max(values),
        }
        for name, values in by_name.items()
    }
