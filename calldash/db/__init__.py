"""
CallDash Database Layer
"""

from .models import Base, UserDB, create_schema
from .pool import DatabaseConnectionPool

__all__ = ["Base", "UserDB", "create_schema", "DatabaseConnectionPool"]
