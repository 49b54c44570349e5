from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import hmac
import jwt  # PyJWT
import logging
import os
import requests
import time
from typing import Optional
from app.core.exceptions import Unauthorized
from app.db.session import get_db

logger = logging.getLogger(__name__)

SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
CRON_SECRET = os.getenv("CRON_SECRET")

# Cache for JWKS (Public Keys)
JWKS_CACHE = None
JWKS_CACHE_TIMESTAMP = None
JWKS_CACHE_TTL = 3600  # Cache for 1 hour
JWKS_STALE_LIMIT = 86400  # Stale keys usable for a day if Supabase is unreachable


def get_jwks(supabase_url: str, force_refresh: bool = False):
    """
    Fetch JWKS from Supabase with caching and retry logic.
    Only successful fetches are cached so failures are retried next time.
    """
    global JWKS_CACHE, JWKS_CACHE_TIMESTAMP

    if JWKS_CACHE and JWKS_CACHE_TIMESTAMP and not force_refresh:
        if time.time() - JWKS_CACHE_TIMESTAMP < JWKS_CACHE_TTL:
            return JWKS_CACHE

    max_retries = 3
    last_error = None
    jwks_url = f"{supabase_url}/auth/v1/.well-known/jwks.json"

    for attempt in range(max_retries):
        try:
            r = requests.get(jwks_url, timeout=10)
            r.raise_for_status()
            JWKS_CACHE = r.json()
            JWKS_CACHE_TIMESTAMP = time.time()
            logger.info("Fetched JWKS with %s keys", len(JWKS_CACHE.get("keys", [])))
            return JWKS_CACHE
        except (requests.exceptions.RequestException, ValueError) as e:
            last_error = str(e)
            logger.warning("JWKS fetch failed (attempt %s/%s): %s", attempt + 1, max_retries, last_error)
            if attempt < max_retries - 1:
                time.sleep(1)

    logger.error("Failed to fetch JWKS after %s attempts: %s", max_retries, last_error)
    if JWKS_CACHE and JWKS_CACHE_TIMESTAMP and time.time() - JWKS_CACHE_TIMESTAMP < JWKS_STALE_LIMIT:
        logger.warning("Using stale JWKS cache as fallback")
        return JWKS_CACHE
    return None


def _signing_key_from_jwks(jwks: dict, kid: Optional[str]):
    for key in jwks.get("keys", []):
        if kid is None or key.get("kid") == kid:
            return jwt.PyJWK(key).key
    raise Unauthorized("No matching signing key for token")


def verify_supabase_token(authorization: Optional[str] = Header(None)) -> dict:
    """
    Verify a Supabase access token and return its claims.
    HS256 tokens are checked with SUPABASE_JWT_SECRET, ES256 / RS256 with the
    project's published JWKS.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Missing or malformed authorization header")

    token = authorization[len("Bearer "):].strip()
    if not token or token.lower() in ("null", "undefined", "none") or token.count(".") != 2:
        raise Unauthorized("Invalid token format")

    try:
        header = jwt.get_unverified_header(token)
    except jwt.DecodeError as e:
        raise Unauthorized(f"Invalid token header: {e}")
    algo = header.get("alg")

    if algo == "HS256":
        if not SUPABASE_JWT_SECRET:
            logger.error("SUPABASE_JWT_SECRET is missing in environment variables")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server misconfiguration: SUPABASE_JWT_SECRET not set",
            )
        key = SUPABASE_JWT_SECRET
    elif algo in ("ES256", "RS256"):
        if not SUPABASE_URL:
            logger.error("SUPABASE_URL is missing for %s verification", algo)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server misconfiguration: SUPABASE_URL not set",
            )
        jwks = get_jwks(SUPABASE_URL)
        if not jwks:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service temporarily unavailable. Please try again in a moment.",
            )
        try:
            key = _signing_key_from_jwks(jwks, header.get("kid"))
        except jwt.PyJWTError as e:
            raise Unauthorized(f"Invalid signing key: {e}")
    else:
        raise Unauthorized(f"Unsupported token algorithm: {algo}")

    try:
        # Decode and verify in one step; the payload is never decoded again
        payload = jwt.decode(
            token,
            key,
            algorithms=[algo],
            audience="authenticated",
            options={"verify_aud": True},
        )
    except jwt.PyJWTError as e:
        logger.info("%s verification failed: %s", algo, e)
        raise Unauthorized("Invalid token signature")
    return payload


def _ensure_user(db: Session, user_id: str, email: Optional[str]) -> None:
    """Create the profile row on first sight of a Supabase user."""
    from app.models.user import User

    if db.query(User.id).filter(User.id == user_id).first():
        return
    try:
        db.add(User(id=user_id, email=email.lower() if email else None))
        db.commit()
        logger.info("Created profile for user %s (lazy sync)", user_id)
    except IntegrityError:
        # Created by a concurrent request
        db.rollback()


def get_current_user_id(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> str:
    """
    FastAPI dependency that verifies the Supabase token and returns the user id
    (the token's `sub`). This is the main dependency to use in route handlers.
    """
    payload = verify_supabase_token(authorization)
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Token missing user ID claim")

    try:
        _ensure_user(db, user_id, payload.get("email"))
    except SQLAlchemyError:
        logger.exception("Database error while syncing user %s", user_id)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database temporarily unavailable. Please try again in a moment.",
        )
    return user_id


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Guard for scheduler-invoked routes. Closed when CRON_SECRET is unset."""
    if not CRON_SECRET:
        logger.error("CRON_SECRET is not configured, rejecting cron call")
        raise Unauthorized("Cron secret is not configured")
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {CRON_SECRET}"):
        raise Unauthorized("Invalid cron secret")
