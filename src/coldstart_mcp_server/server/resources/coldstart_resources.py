"""
Cold start resources for the MCP server.

Tells LLMs how to choose a window for the cold start tools and how to read
their output.
"""

from ..server import mcp_server

@mcp_server.resource("coldstart://usage-guide")
def get_coldstart_usage_guide() -> str:
    """Guide for the cold start tools - read this FIRST."""
    return """# COLD START TOOLS USAGE GUIDE

## Choosing the window
The window always ends NOW. Only `start_time` is passed:
1. get_current_datetime() or get_time_range(hours_back=N)
2. Take `start_time.iso_utc` (or `start_time.milliseconds`)
3. analyze_cold_starts(start_time=..., function_name="my-function")

X-Ray keeps traces for 30 days.

## Reading analyze_cold_starts
| Field | Meaning |
|-------|---------|
| datapoints | Number of cold start traces used |
| average, min, max | Initialization duration in ms |
| median, ninetieth | Initialization duration at rank ceil(n/2) and ceil(n*0.9) |
| rawData | All Initialization durations, sorted, comma-separated |

`datapoints: 0` with null statistics means no cold starts were traced in the
window. Warm invocations have no Initialization subsegment and are not counted.

## Segments (get_cold_start_traces)
- **AWS::Lambda**: the whole invocation as seen by the Lambda service
- **AWS::Lambda::Function**: time spent in the function runtime segment
- **Initialization**: function init (imports, globals, handler setup)
- **Invocation**, **Overhead**: other subsegments reported by the runtime
- **Setup**: derived as AWS::Lambda - AWS::Lambda::Function - Initialization;
  time spent provisioning the execution environment. Can be slightly negative
  when segment clocks disagree.
"""
