"""
Server entry point for the storefront API
"""
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(__file__))

from storefront.main import app

application = app

if __name__ == "__main__":
    import uvicorn
    from storefront.config import settings
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="info" if not settings.DEBUG else "debug"
    )
