from runkit.integrations.remote.abc import Remote
from runkit.integrations.remote.real import RealRemote

__all__ = [
    "RealRemote",
    "Remote",
]
