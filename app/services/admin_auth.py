"""
Admin gateway auth — password exchange for a bearer token.

Tokens are random strings stored in Redis under admin:session:<token> with a TTL,
so expiry needs no cleanup job.
"""
import hmac
import logging
import secrets

from app.config import ADMIN_PASSWORD, ADMIN_TOKEN_TTL
from app.extensions import redis_client as r

logger = logging.getLogger('services.admin_auth')

TOKEN_PREFIX = 'admin:session:'
TOKEN_BYTES = 48  # → 64 url-safe characters


class AdminNotConfigured(Exception):
    """ADMIN_PASSWORD is unset — the admin gateway is disabled."""


def check_password(password) -> bool:
    if not ADMIN_PASSWORD:
        raise AdminNotConfigured("ADMIN_PASSWORD must be set in environment")
    if not isinstance(password, str):
        return False
    return hmac.compare_digest(password.encode(), ADMIN_PASSWORD.encode())


def issue_token() -> str:
    token = secrets.token_urlsafe(TOKEN_BYTES)
    r.setex(f'{TOKEN_PREFIX}{token}', ADMIN_TOKEN_TTL, '1')
    logger.info("Admin session issued (ttl=%ds)", ADMIN_TOKEN_TTL)
    return token


def verify_token(token) -> bool:
    """True when the token exists and has not expired."""
    if not token:
        return False
    try:
        return r.get(f'{TOKEN_PREFIX}{token}') is not None
    except Exception as e:
        logger.error("Admin token lookup failed: %s", e)
        return False


def revoke_token(token):
    if token:
        r.delete(f'{TOKEN_PREFIX}{token}')


def bearer_token(auth_header):
    """'Bearer abc' → 'abc'; anything else → None."""
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()
