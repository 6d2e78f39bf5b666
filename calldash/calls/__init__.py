"""
CallDash Call Data Module
"""

from .repository import CallSummaryRepository, CallSummaryStore, InMemoryCallSummaryRepository
from .router import create_calls_router

__all__ = [
    "CallSummaryRepository",
    "CallSummaryStore",
    "InMemoryCallSummaryRepository",
    "create_calls_router",
]
