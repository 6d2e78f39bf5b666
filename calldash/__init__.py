"""
CallDash API
Authentication and call-summary backend for the AI call dashboard
"""

__version__ = "0.1.0"

from . import auth
from . import calls
from . import utils

__all__ = ["auth", "calls", "utils"]
