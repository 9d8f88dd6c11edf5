"""
Declarative base and shared column groups.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import declarative_base

Base = declarative_base()


@dataclass
class AuditFields:
    """
    Audit columns embedded by value in a row (mapped with ``composite()``).

    Attributes:
        created_at: Row creation timestamp
        updated_at: Last modification timestamp
        created_by: User that created the row
        updated_by: User that last modified the row
    """
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
