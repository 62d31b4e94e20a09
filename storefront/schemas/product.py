from pydantic import BaseModel, ConfigDict
from typing import Optional
from decimal import Decimal


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    category_id: Optional[str] = None
    price: Decimal
    stock_quantity: int
    is_available: bool
