from pydantic import BaseModel, Field, AliasChoices
from typing import Optional, Dict, Any


class AddToCartRequest(BaseModel):
    product_id: int = Field(..., validation_alias=AliasChoices("product_id", "productId"))
    quantity: int = Field(default=1, ge=1)
    options: Optional[Dict[str, Any]] = None
