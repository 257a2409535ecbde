"""API Routes Module"""
from .routes import include_routers
from .auth_routes import auth_router

__all__ = ['include_routers', 'auth_router']
