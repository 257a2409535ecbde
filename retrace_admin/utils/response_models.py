"""
Request and response models for the admin gate endpoints.

Admin API responses share one envelope:
- success: boolean indicating operation success
- error: short error label when success=False
- details: optional operator-facing hint (never contains secrets)
"""

from typing import Optional
from pydantic import BaseModel, Field, StrictStr


class LoginRequest(BaseModel):
    """Body of POST /auth/login"""
    password: StrictStr = Field(..., min_length=1)


class LoginSuccess(BaseModel):
    success: bool = True


class LoginFailure(BaseModel):
    error: str
    remainingAttempts: Optional[int] = None
    retryAfter: Optional[int] = None


class SessionStatus(BaseModel):
    """Body of GET /auth/check"""
    authenticated: bool


class ErrorResponse(BaseModel):
    """Standard error envelope of bearer-protected routes."""
    success: bool = False
    error: str
    details: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": "Unauthorized",
                "details": "Missing or invalid bearer token.",
            }
        }
    }


def success_response() -> dict:
    """Body of a successful login, logout or bearer token check."""
    return {"success": True}


def error_response(error: str) -> dict:
    """Generic error envelope."""
    return {"success": False, "error": error}
