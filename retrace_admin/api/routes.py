"""
API Routes

Routers of the admin backend:
- Authentication (login gate, session check, logout, bearer token check)
"""

from retrace_admin.api.auth_routes import auth_router


def include_routers(app):
    """Include all routers in the FastAPI app"""
    app.include_router(auth_router)
