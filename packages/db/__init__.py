"""Database models and utilities."""

from .models import (
    ComplaintHistoryTable,
    ComplaintTable,
    DepartmentTable,
    NatureTypeTable,
    UserTable,
)

__all__ = [
    "ComplaintHistoryTable",
    "ComplaintTable",
    "DepartmentTable",
    "NatureTypeTable",
    "UserTable",
]
