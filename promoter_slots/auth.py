import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import ADMIN_API_TOKEN

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ADMIN_ACTOR = "admin"


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Authorize admin routes with a static bearer token.

    Returns the actor name recorded in approved_by / marked_by fields.
    """
    if not ADMIN_API_TOKEN:
        # Local development without a configured token
        return ADMIN_ACTOR

    if not credentials or not credentials.credentials:
        logger.warning("⚠️ Admin request without bearer token")
        raise HTTPException(status_code=401, detail="Not authenticated")

    if not hmac.compare_digest(credentials.credentials.encode(), ADMIN_API_TOKEN.encode()):
        logger.warning("⚠️ Admin request with invalid bearer token")
        raise HTTPException(status_code=401, detail="Invalid token")

    return ADMIN_ACTOR
