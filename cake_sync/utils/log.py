"""
Console logging for the sync job.
Every line is timestamped and tagged so cron output can be grepped per run.
"""

import sys
from datetime import datetime

LEVEL_PREFIXES = {
    "INFO": "ℹ️ ",
    "SUCCESS": "✅",
    "ERROR": "❌",
    "WARNING": "⚠️ ",
    "PROGRESS": "⏳",
}


def log_step(message: str, level: str = "INFO", tag: str = "CAKE-SYNC") -> None:
    """Print a timestamped log line. ERROR lines go to stderr."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    prefix = LEVEL_PREFIXES.get(level, "")
    stream = sys.stderr if level == "ERROR" else sys.stdout
    print(f"[{timestamp}] [{tag}] {prefix} {message}", file=stream)


def mask_secret(value: str, visible: int = 4) -> str:
    """Keep only the last few characters of a secret for log output."""
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
