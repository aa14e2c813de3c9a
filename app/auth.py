# app/auth.py
from typing import Optional
import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .application.ports.caller import CallerContext, PUBLIC_CALLER, ROLE_ADMIN
from .config import settings
from .utils import decode_jwt_token

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)


def _token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    # Fallback to cookie
    return request.cookies.get("access_token")


def get_caller(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme)) -> CallerContext:
    """Anonymous requests are public callers; a bad token is still an error."""
    token = _token(request, credentials)
    if not token:
        return PUBLIC_CALLER
    payload = decode_jwt_token(token)
    if not payload:
        logger.warning("JWT token decode failed - invalid or expired token")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    role = ROLE_ADMIN if payload.get("role") == settings.ADMIN_ROLE else payload.get("role") or PUBLIC_CALLER.role
    user_id = payload.get("sub")
    return CallerContext(role=role, user_id=str(user_id) if user_id is not None else None)


def require_admin(caller: CallerContext = Depends(get_caller)) -> CallerContext:
    if caller.user_id is None and not caller.is_admin:
        raise HTTPException(status_code=401, detail="Authentication required")
    if not caller.is_admin:
        logger.warning(f"User {caller.user_id} attempted an admin operation")
        raise HTTPException(status_code=403, detail="Admin access required")
    return caller
