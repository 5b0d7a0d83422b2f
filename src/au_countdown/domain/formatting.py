"""Countdown display strings.

CARD style (product cards):  "Expired", "1h 5m", "4m 10s", "9s"
LIST style (auction list):   "Ended", "2d 3h 4m", "3h 4m", "12m"
"""

from src.au_common.enums import CountdownStyle


def format_time_left(seconds: int, style: CountdownStyle = CountdownStyle.CARD) -> str:
    if style is CountdownStyle.LIST:
        return _format_list(seconds)
    return _format_card(seconds)


def _format_card(seconds: int) -> str:
    if seconds <= 0:
        return "Expired"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _format_list(seconds: int) -> str:
    if seconds <= 0:
        return "Ended"
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
