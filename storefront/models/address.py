from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class Address(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    label: str = Field(default="Home")  # Home, Office, ...
    full_name: str
    mobile: str
    address_line1: str
    address_line2: Optional[str] = None
    landmark: Optional[str] = None
    city: str
    state: str
    pincode: str
    country: str = Field(default="India")

    # At most one default address per user
    is_default: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
