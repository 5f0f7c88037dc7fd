"""
Bearer-token authentication for the API.

Tokens are JWTs issued by the auth provider and verified with PyJWT.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import Settings, settings

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    uid: str
    email: str = ""
    name: str = ""
    email_verified: bool = False
    is_admin: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0] or self.uid


def decode_token(token: str, cfg: Settings = settings) -> Dict[str, Any]:
    options = {"verify_aud": bool(cfg.jwt_audience)}
    return jwt.decode(
        token,
        cfg.jwt_secret,
        algorithms=cfg.jwt_algorithms,
        audience=cfg.jwt_audience or None,
        options=options,
    )


def principal_from_claims(claims: Dict[str, Any], cfg: Settings = settings) -> Principal:
    uid = str(claims.get("uid") or claims.get("sub") or "")
    return Principal(
        uid=uid,
        email=str(claims.get("email") or ""),
        name=str(claims.get("name") or ""),
        email_verified=bool(claims.get("email_verified", False)),
        is_admin=bool(claims.get("admin", False)) or uid in cfg.admin_uids,
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(status_code=401, detail="No valid authorization token provided")

    services = getattr(request.app.state, "services", None)
    cfg = services.cfg if services is not None else settings

    try:
        claims = decode_token(credentials.credentials, cfg)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")

    principal = principal_from_claims(claims, cfg)
    if not principal.uid:
        raise HTTPException(status_code=401, detail="Invalid token")
    if cfg.require_verified_email and not principal.email_verified:
        raise HTTPException(status_code=403, detail="Email not verified")
    return principal


async def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    return user
