from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from typing import Optional
import secrets
import logging

from voucherhub.config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _matches(provided: Optional[str], expected: Optional[str]) -> bool:
    if not provided or not expected:
        return False
    return secrets.compare_digest(provided.encode(), expected.encode())


def _reject() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing API key",
        headers={"WWW-Authenticate": "ApiKey"},
    )


def require_admin(api_key: Optional[str] = Depends(api_key_header)) -> None:
    """Back-office routes. Open when ADMIN_API_KEY is unset."""
    if not settings.ADMIN_API_KEY:
        return
    if not _matches(api_key, settings.ADMIN_API_KEY):
        logger.warning("Rejected admin request with a bad API key")
        raise _reject()


def require_cashier(api_key: Optional[str] = Depends(api_key_header)) -> None:
    """Cashier routes. The admin key is accepted too."""
    if not settings.CASHIER_API_KEY and not settings.ADMIN_API_KEY:
        return
    if _matches(api_key, settings.CASHIER_API_KEY) or _matches(api_key, settings.ADMIN_API_KEY):
        return
    logger.warning("Rejected cashier request with a bad API key")
    raise _reject()
