# Cold start analysis pipeline
from .models import Segment, StatisticsReport, TraceDetail, TraceStatus, TraceSummary
from .segment_decoder import MalformedTraceError, decode_trace
from .statistics import PercentileIndexing, aggregate
from .trace_fetcher import MAX_TRACE_IDS_PER_BATCH, TraceFetcher
from .pipeline import ColdStartAnalyzer, analyze_cold_starts, parse_start_time

__all__ = [
    "Segment", "StatisticsReport", "TraceDetail", "TraceStatus", "TraceSummary",
    "MalformedTraceError", "decode_trace",
    "PercentileIndexing", "aggregate",
    "MAX_TRACE_IDS_PER_BATCH", "TraceFetcher",
    "ColdStartAnalyzer", "analyze_cold_starts", "parse_start_time",
]
