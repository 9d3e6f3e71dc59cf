from typing import Optional


def format_duration(seconds: float) -> str:
    """1h 2m 3s / 2m 3s / 3s"""
    total = int(max(0, seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_distance(meters: float) -> str:
    if meters >= 1000:
        return f"{meters / 1000:.2f} km"
    return f"{round(meters)} m"


def accuracy_label(accuracy: Optional[float]) -> str:
    if not accuracy:
        return "Unknown"
    if accuracy <= 10:
        return "High"
    if accuracy <= 50:
        return "Medium"
    return "Low"
