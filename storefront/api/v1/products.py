from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import or_
from storefront.database import get_db
from storefront.schemas.product import ProductResponse
from storefront.schemas.common import ResponseModel
from storefront.models.product import Product
from storefront.utils.pagination import paginate
from typing import Optional

router = APIRouter()


@router.get("/search", response_model=ResponseModel)
def search_products(
    query: str = Query("", max_length=255),
    category_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Search available products by name or description"""
    products_query = db.query(Product).filter(Product.is_available == True)
    
    if query:
        products_query = products_query.filter(
            or_(
                Product.name.ilike(f"%{query}%"),
                Product.description.ilike(f"%{query}%")
            )
        )
    if category_id:
        products_query = products_query.filter(Product.category_id == category_id)
    
    total = products_query.count()
    offset = (page - 1) * limit
    products = products_query.order_by(Product.name.asc()).offset(offset).limit(limit).all()
    
    return ResponseModel(
        success=True,
        data={
            "items": [ProductResponse.model_validate(p).model_dump(mode="json") for p in products],
            "pagination": paginate(page, limit, total)
        }
    )


@router.get("/{product_id}", response_model=ResponseModel)
def get_product(product_id: int, db: Session = Depends(get_db)):
    """Get product details"""
    product = db.query(Product).filter(
        Product.id == product_id,
        Product.is_available == True
    ).first()
    
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    
    return ResponseModel(
        success=True,
        data=ProductResponse.model_validate(product).model_dump(mode="json")
    )
