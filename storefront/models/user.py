from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: Optional[str] = None
    email: str = Field(unique=True, index=True)
    mobile: Optional[str] = Field(default=None, index=True)
    password_hash: str

    # Account Status
    is_active: bool = Field(default=True)
    is_superuser: bool = Field(default=False)  # Admin console access

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
