from datetime import datetime, timezone, timedelta
from ..server import mcp_server

import json

def _time_point(moment: datetime) -> dict:
    return {
        'milliseconds': int(moment.timestamp() * 1000),
        'iso_utc': moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
        'human_readable': moment.strftime('%Y-%m-%d %H:%M:%S UTC')
    }

@mcp_server.tool()
def get_current_datetime() -> str:
    """Get the current date and time in UTC.

    Trace windows always end at the moment the analysis runs, so call this first
    when working out a start_time for analyze_cold_starts.
    """
    now_utc = datetime.now(timezone.utc)

    result = {
        'timezone': 'UTC',
        'now': _time_point(now_utc),
        'date_only': now_utc.strftime('%Y-%m-%d'),
        'time_only': now_utc.strftime('%H:%M:%S')
    }

    # Common start times for cold start windows
    result['start_times'] = {
        label: _time_point(now_utc - delta)
        for label, delta in (
            ('15_minutes_ago', timedelta(minutes=15)),
            ('1_hour_ago', timedelta(hours=1)),
            ('6_hours_ago', timedelta(hours=6)),
            ('24_hours_ago', timedelta(hours=24)),
        )
    }

    return json.dumps(result, indent=2)

@mcp_server.tool()
def get_time_range(hours_back: float = 1) -> str:
    """Get a rolling window ending now, for use as analyze_cold_starts' start_time.

    Args:
        hours_back: Number of hours to go back from the current time (default: 1)

    X-Ray keeps traces for 30 days; longer windows return nothing extra.
    """
    if hours_back <= 0:
        return json.dumps({'error': f"hours_back must be positive, got {hours_back}"}, indent=2)

    now_utc = datetime.now(timezone.utc)
    start_time_utc = now_utc - timedelta(hours=hours_back)

    result = {
        'timezone': 'UTC',
        'query_period_hours': hours_back,
        'start_time': _time_point(start_time_utc),
        'end_time': _time_point(now_utc)
    }

    return json.dumps(result, indent=2)
