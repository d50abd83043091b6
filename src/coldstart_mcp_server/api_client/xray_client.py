import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config.settings import settings

# Disable botocore info logging to reduce console output
logging.getLogger("botocore").setLevel(logging.WARNING)
logging.getLogger("boto3").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


class TracingBackendError(Exception):
    """A call to the tracing backend failed."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


@dataclass
class TraceSummaryPage:
    """One page of a trace summary listing."""
    summaries: List[Dict[str, Any]]
    next_token: Optional[str] = None


@dataclass
class TraceBatch:
    """Raw trace records returned for one batch of trace IDs."""
    traces: List[Dict[str, Any]]
    unprocessed_trace_ids: List[str] = field(default_factory=list)


class TracingBackend(Protocol):
    """The two tracing backend operations the analysis needs."""

    async def list_trace_summaries(
        self,
        start_time: datetime,
        end_time: datetime,
        filter_expression: str,
        next_token: Optional[str] = None
    ) -> TraceSummaryPage:
        ...

    async def batch_get_traces(self, trace_ids: Sequence[str]) -> TraceBatch:
        ...


class XRayTracingClient:
    """
    A client for the AWS X-Ray trace APIs.

    boto3 is synchronous, so each call runs in a worker thread and is awaited
    before the caller moves on.
    """
    def __init__(self, region_name: Optional[str] = None, profile_name: Optional[str] = None, client: Any = None):
        self.region_name = region_name
        self.profile_name = profile_name
        if client is None:
            session = boto3.Session(profile_name=profile_name, region_name=region_name)
            client = session.client("xray")
        self._client = client

    async def _call(self, operation: str, **params) -> Dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(f"X-Ray {operation} error {code}: {e}")
            raise TracingBackendError(operation, f"{code}: {e}") from e
        except BotoCoreError as e:
            logger.error(f"X-Ray {operation} request error: {e}")
            raise TracingBackendError(operation, str(e)) from e

    async def list_trace_summaries(
        self,
        start_time: datetime,
        end_time: datetime,
        filter_expression: str,
        next_token: Optional[str] = None
    ) -> TraceSummaryPage:
        """
        Fetch one page of trace summaries.

        Args:
            start_time: Start of the time window
            end_time: End of the time window
            filter_expression: X-Ray filter expression, e.g. service("my-function")
            next_token: Continuation token from the previous page, if any

        Returns:
            TraceSummaryPage with the raw summaries and the next continuation token
        """
        params = {
            "StartTime": start_time,
            "EndTime": end_time,
            "FilterExpression": filter_expression,
        }
        # X-Ray rejects an explicit null token
        if next_token:
            params["NextToken"] = next_token

        logger.debug(f"GetTraceSummaries {filter_expression} {start_time.isoformat()} - {end_time.isoformat()}")
        response = await self._call("get_trace_summaries", **params)
        return TraceSummaryPage(
            summaries=response.get("TraceSummaries", []),
            next_token=response.get("NextToken")
        )

    async def batch_get_traces(self, trace_ids: Sequence[str]) -> TraceBatch:
        """
        Fetch full trace records for up to 5 trace IDs.

        Args:
            trace_ids: The trace IDs to fetch

        Returns:
            TraceBatch with the raw trace records and any IDs X-Ray did not process
        """
        logger.debug(f"BatchGetTraces {list(trace_ids)}")
        response = await self._call("batch_get_traces", TraceIds=list(trace_ids))
        return TraceBatch(
            traces=response.get("Traces", []),
            unprocessed_trace_ids=response.get("UnprocessedTraceIds", [])
        )

# Factory function to create tracing client instances
def create_xray_client(region_name: Optional[str] = None, profile_name: Optional[str] = None) -> XRayTracingClient:
    """
    Create an X-Ray client.

    Args:
        region_name: Optional AWS region (defaults to settings.AWS_REGION)
        profile_name: Optional AWS profile (defaults to settings.AWS_PROFILE)

    Returns:
        XRayTracingClient instance
    """
    return XRayTracingClient(
        region_name=region_name or settings.AWS_REGION,
        profile_name=profile_name or settings.AWS_PROFILE
    )
