from runkit.integrations.time.abc import Time
from runkit.integrations.time.real import RealTime

__all__ = [
    "RealTime",
    "Time",
]
