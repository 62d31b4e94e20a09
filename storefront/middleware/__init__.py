from storefront.middleware.auth_context import AuthContextMiddleware
from storefront.middleware.activity_tracker import ActivityTrackerMiddleware

__all__ = ["AuthContextMiddleware", "ActivityTrackerMiddleware"]
