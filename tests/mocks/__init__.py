"""Mock objects for testing."""

from .mock_adapter import HANG, ScriptedAdapter, Verbatim, make_descriptor
from .mock_clock import FakeClock
from .mock_redis import FakeRedis

__all__ = [
    "HANG",
    "FakeClock",
    "FakeRedis",
    "ScriptedAdapter",
    "Verbatim",
    "make_descriptor",
]
