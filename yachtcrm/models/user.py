"""
User Model.

A broker account.  Rows are provisioned lazily from the identity
provider's session claims the first time the broker writes data.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from yachtcrm.models.enums import UserRole


class User(BaseModel):
    """Represents a broker account."""

    id: str  # identity-provider subject
    email: str
    name: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.BROKER
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
