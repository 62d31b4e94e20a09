from storefront.models.customer import Customer
from storefront.models.admin import Admin, AdminRole
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.models.cart import CartItem
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.online_user import OnlineUser, UserType, ClientSource
from storefront.models.user_activity import UserActivity, EntityType

__all__ = [
    "Customer",
    "Admin",
    "AdminRole",
    "Category",
    "Product",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OnlineUser",
    "UserType",
    "ClientSource",
    "UserActivity",
    "EntityType"
]
