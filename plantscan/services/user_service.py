"""
User Service
Resolves the authenticated user behind a request (Supabase Auth)
"""

import asyncio
import logging
from typing import Optional

from supabase import Client

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_user_id(supabase_client: Optional[Client], authorization: Optional[str]) -> Optional[str]:
    """
    Return the Supabase user id for an Authorization header

    Returns:
        user id string, or None for anonymous / invalid / unverifiable tokens
    """
    token = bearer_token(authorization)
    if not token or not supabase_client:
        return None
    try:
        response = await asyncio.to_thread(supabase_client.auth.get_user, token)
        user = getattr(response, "user", None)
        if user and getattr(user, "id", None):
            return str(user.id)
        return None
    except Exception as e:
        logger.warning(f"Could not verify user token: {e}")
        return None
