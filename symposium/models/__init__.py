from symposium.models.base import Base, engine, AsyncSessionFactory, session_scope, create_tables
from symposium.models.models import (
    Registration,
    Department,
    Year,
    EventName,
    PaymentStatus,
    ApprovalMethod,
)

__all__ = [
    "Base",
    "engine",
    "AsyncSessionFactory",
    "session_scope",
    "create_tables",
    "Registration",
    "Department",
    "Year",
    "EventName",
    "PaymentStatus",
    "ApprovalMethod",
]
