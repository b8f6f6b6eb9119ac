"""
Authentication utilities

Sessions are issued by the external auth provider as HS256 JWTs and
arrive either as a bearer token or in the session cookie. This module
only verifies them and exposes the session's email.
"""
from fastapi import Depends, HTTPException, Request
import jwt
from typing import Optional, Mapping, Dict, Any
import logging
import os

logger = logging.getLogger(__name__)

JWT_SECRET = os.environ.get('JWT_SECRET', 'watchlist-secret-key-change-in-production')
JWT_ALGORITHM = "HS256"
SESSION_COOKIE = "session_token"


def _extract_token(headers: Mapping[str, str], cookies: Optional[Mapping[str, str]] = None) -> Optional[str]:
    authorization = headers.get("authorization") or headers.get("Authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    if cookies:
        return cookies.get(SESSION_COOKIE)
    return None


def get_session(headers: Mapping[str, str], cookies: Optional[Mapping[str, str]] = None) -> Optional[Dict[str, Any]]:
    """
    Resolve the current session from request headers/cookies.

    Returns:
        {"user": {"id": ..., "email": ...}} or None when there is no
        token, or the token is expired/invalid/has no email.
    """
    token = _extract_token(headers, cookies)
    if not token:
        return None

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Session token expired")
        return None
    except jwt.InvalidTokenError:
        logger.info("Invalid session token")
        return None

    email = payload.get("email")
    if not email:
        return None
    return {"user": {"id": payload.get("sub"), "email": email}}


async def get_optional_session(request: Request) -> Optional[Dict[str, Any]]:
    """FastAPI dependency: the session or None, never raises"""
    return get_session(request.headers, request.cookies)


async def get_current_email(session: Optional[Dict[str, Any]] = Depends(get_optional_session)) -> str:
    """FastAPI dependency: the signed-in user's email, 401 otherwise"""
    if not session:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session["user"]["email"]
