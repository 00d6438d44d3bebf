import datetime
import time
from typing import Optional


def iso_timestamp(ts: Optional[float] = None) -> str:
    dt = datetime.datetime.fromtimestamp(ts if ts is not None else time.time(), tz=datetime.timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_now() -> str:
    return iso_timestamp()


def format_uptime(seconds: float) -> str:
    """Render an uptime like ``1日 2時間 3分 4秒``, dropping leading zero units."""
    seconds = max(0, int(seconds))
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if days > 0:
        return f"{days}日 {hours}時間 {minutes}分 {secs}秒"
    if hours > 0:
        return f"{hours}時間 {minutes}分 {secs}秒"
    if minutes > 0:
        return f"{minutes}分 {secs}秒"
    return f"{secs}秒"
