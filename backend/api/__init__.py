"""
API routers package - exports all FastAPI routers.
"""

from api.chat import router as chat_router

__all__ = ["chat_router"]
