"""Default constants for the usage endpoint, thresholds and scheduling."""

from __future__ import annotations

from datetime import timedelta

APP_NAME = "usage-pulse"

# Anthropic OAuth usage endpoint (same data as Claude Code's /usage)
USAGE_API_URL = "https://api.anthropic.com/api/oauth/usage"
OAUTH_BETA_HEADER = "oauth-2025-04-20"
REQUEST_TIMEOUT_SECONDS = 30
CREDENTIALS_FILE = "~/.claude/.credentials.json"

# Thresholds (percentage)
CRITICAL_THRESHOLD = 90
WARNING_THRESHOLD = 70
EXHAUSTED_PERCENTAGE = 100
RENOTIFY_STEP = 5  # Re-alert on every further 5-point increase

# Retry / backoff
MAX_RETRY_COUNT = 3  # Delays 2s, 4s, 8s
BACKOFF_BASE_SECONDS = 2.0

# Refresh interval bounds (seconds)
DEFAULT_REFRESH_INTERVAL = 60
MIN_REFRESH_INTERVAL = 30
MAX_REFRESH_INTERVAL = 600

# Network reachability probe
NETWORK_PROBE_INTERVAL_SECONDS = 15
NETWORK_PROBE_HOST = "api.anthropic.com"
NETWORK_PROBE_PORT = 443
NETWORK_PROBE_TIMEOUT_SECONDS = 3.0

# Display metrics: (snapshot field, name, icon, window length), in display order
METRIC_WINDOWS: tuple[tuple[str, str, str, timedelta], ...] = (
    ("five_hour", "5-Hour Session", "clock", timedelta(hours=5)),
    ("seven_day", "Weekly Limit", "calendar", timedelta(days=7)),
    ("seven_day_opus", "Opus Only", "target", timedelta(days=7)),
    ("seven_day_sonnet", "Sonnet Only", "bolt", timedelta(days=7)),
)

# Alert delivery
ALERT_TITLE = "Claude usage warning"
ALERT_SOUND = "default"
ALERT_INTERRUPTION_LEVEL = "time-sensitive"
ALERT_ID_PREFIX = "usage-warning-"

# Daemon
PID_FILE_NAME = "usage-pulse.pid"
LOG_FILE_NAME = "usage-pulse.log"
