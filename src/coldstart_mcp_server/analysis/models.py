"""
Data model for cold start analysis.

Everything here is built fresh for a single analysis run and thrown away once
the report is returned. Python attributes are snake_case; the camelCase aliases
are the names used in tool output.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Segment names produced by the Lambda runtime's X-Ray instrumentation
LAMBDA_ORIGIN = "AWS::Lambda"
LAMBDA_FUNCTION_ORIGIN = "AWS::Lambda::Function"
INITIALIZATION_SEGMENT = "Initialization"
SETUP_SEGMENT = "Setup"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class TraceSummary(_WireModel):
    """One entry of a trace summary listing. Durations are in seconds."""

    id: str
    duration: Optional[float] = None
    response_time: Optional[float] = Field(default=None, alias="responseTime")


class Segment(_WireModel):
    """A named timing interval. Duration is in milliseconds, one decimal."""

    name: str
    id: Optional[str] = None
    duration: float


class TraceStatus(str, Enum):
    USABLE = "usable"
    INCOMPLETE = "incomplete"


class TraceDetail(_WireModel):
    """
    A decoded trace.

    A trace whose instrumentation shape is incomplete (no function segment, no
    subsegments, no Initialization subsegment) is still a valid result: it has
    status INCOMPLETE, a reason, and no durations.
    """

    function_name: str = Field(alias="functionName")
    trace_id: str = Field(alias="traceId")
    timestamp: str
    durations: List[Segment] = Field(default_factory=list)
    status: TraceStatus = TraceStatus.USABLE
    reason: Optional[str] = None

    @classmethod
    def incomplete(cls, function_name: str, trace_id: str, timestamp: str, reason: str) -> "TraceDetail":
        return cls(
            function_name=function_name,
            trace_id=trace_id,
            timestamp=timestamp,
            durations=[],
            status=TraceStatus.INCOMPLETE,
            reason=reason,
        )

    @property
    def is_usable(self) -> bool:
        return self.status is TraceStatus.USABLE and bool(self.durations)

    def duration_of(self, name: str) -> Optional[float]:
        """Duration of the first segment called `name`, or None."""
        for segment in self.durations:
            if segment.name == name:
                return segment.duration
        return None


class StatisticsReport(_WireModel):
    """
    Initialization-duration statistics for one function.

    All statistics are None when there are no usable traces. unprocessed_trace_ids
    lists traces the backend did not return; it is not part of the report.
    """

    function_name: str = Field(alias="functionName")
    datapoints: int = 0
    average: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    median: Optional[float] = None
    ninetieth: Optional[float] = None
    raw_data: List[float] = Field(default_factory=list, alias="rawData")
    unprocessed_trace_ids: List[str] = Field(default_factory=list, exclude=True)

    def to_report(self) -> Dict[str, Any]:
        """External report shape, with rawData as a comma-joined string."""
        report = self.to_dict()
        report["rawData"] = ",".join(_format_number(value) for value in self.raw_data)
        return report


def _format_number(value: float) -> str:
    # 120.0 -> "120", 173.4 -> "173.4"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
