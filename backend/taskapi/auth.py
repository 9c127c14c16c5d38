import logging
import time
from typing import Dict, Optional

import requests
from fastapi import Depends, Header, HTTPException, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwk, jwt
from jose.exceptions import JOSEError
from jose.utils import base64url_decode
from sqlalchemy.orm import Session

from . import config, crud
from .database import get_db

logger = logging.getLogger(__name__)

# auto_error is off so the missing-token case gets our own 401, and so that
# deployments without a user pool can run with no token at all
security = HTTPBearer(auto_error=False)

jwks_cache: Optional[Dict] = None
jwks_cache_time: float = 0


def token_auth_enabled() -> bool:
    return bool(config.COGNITO_USER_POOL_ID)


def get_jwks() -> Dict:
    """Fetch and cache the user pool's signing keys"""
    global jwks_cache, jwks_cache_time

    now = time.time()
    if jwks_cache and (now - jwks_cache_time) < config.JWKS_CACHE_SECONDS:
        return jwks_cache

    response = requests.get(config.cognito_jwks_url(), timeout=10)
    response.raise_for_status()
    jwks_cache = response.json()
    jwks_cache_time = now
    return jwks_cache


def _find_key(kid: str) -> Dict:
    for key in get_jwks().get("keys", []):
        if key.get("kid") == kid:
            return key
    raise HTTPException(status_code=401, detail="Public key not found in JWKs")


def verify_token(token: str) -> Dict:
    """
    Verify a Cognito JWT and return its claims.
    Raises HTTPException(401) for anything that does not check out.
    """
    try:
        kid = jwt.get_unverified_headers(token)["kid"]
        public_key = jwk.construct(_find_key(kid))

        message, encoded_signature = token.rsplit(".", 1)
        if not public_key.verify(message.encode(), base64url_decode(encoded_signature.encode())):
            raise HTTPException(status_code=401, detail="Invalid token signature")

        claims = jwt.get_unverified_claims(token)
        if time.time() > claims["exp"]:
            raise HTTPException(status_code=401, detail="Token has expired")

        token_use = claims.get("token_use")
        if token_use == "id":
            audience = claims.get("aud")
        elif token_use == "access":
            audience = claims.get("client_id")
        else:
            raise HTTPException(status_code=401, detail="Invalid token use")
        if audience != config.COGNITO_USER_POOL_WEB_CLIENT_ID:
            raise HTTPException(status_code=401, detail="Invalid token audience")

        return claims

    except HTTPException:
        raise
    except JOSEError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=401, detail=f"Invalid token structure: {e}")
    except requests.RequestException as e:
        logger.error("could not fetch JWKs: %s", e)
        raise HTTPException(status_code=401, detail="Token verification failed")


def get_current_user_id(
        credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
        x_user_id: Optional[str] = Header(None),
        user_id: Optional[str] = Query(None, alias="userId"),
        db: Session = Depends(get_db),
) -> Optional[str]:
    """
    FastAPI dependency resolving the acting user, if any.
    With a user pool configured the bearer token is mandatory and any
    X-User-Id or userId sent alongside it must name the same user.
    Otherwise the X-User-Id header wins over the userId query parameter.
    """
    if not token_auth_enabled():
        return x_user_id or user_id or None

    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    claims = verify_token(credentials.credentials)
    email = claims.get("email")
    if not email:
        raise HTTPException(status_code=401, detail="Token carries no email claim")
    token_user_id = crud.get_or_create_user(db, email.lower(), claims.get("name")).id
    _check_claimed_id(token_user_id, x_user_id, user_id)
    return token_user_id


def _check_claimed_id(token_user_id: str, *claimed: Optional[str]) -> None:
    for other in claimed:
        if other and other != token_user_id:
            raise HTTPException(status_code=403, detail="User ID does not match token")


def require_user_id(user_id: Optional[str] = Depends(get_current_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID is required")
    return user_id


def resolve_owner(db: Session, current_user_id: Optional[str], body_user_id: Optional[str]) -> str:
    """Owner for a new record: the resolved caller first, then the id sent in the body."""
    if token_auth_enabled():
        _check_claimed_id(current_user_id, body_user_id)
    owner = current_user_id or body_user_id
    if not owner:
        raise HTTPException(status_code=400, detail="User ID is required")
    if not crud.get_user(db, owner):
        raise HTTPException(status_code=404, detail="User not found")
    return owner
