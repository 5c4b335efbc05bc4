from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime

class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: str = Field(index=True)
    slug: str = Field(index=True, unique=True)
    sku: Optional[str] = None

    # Pricing
    price: float

    # Inventory
    stock_quantity: int = Field(default=0)
    is_in_stock: bool = Field(default=True)
    weight_kg: Optional[float] = None  # Used for carrier rate lookups

    # Metadata
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
