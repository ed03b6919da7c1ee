"""
Database connection management.

Provides cached async Supabase clients for database and auth operations.
"""

from supabase import acreate_client, AsyncClient
from typing import Optional
import structlog

from config.settings import settings
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


_client: Optional[AsyncClient] = None
_auth_client: Optional[AsyncClient] = None


async def get_supabase_client() -> AsyncClient:
    """
    Get cached Supabase client instance.

    Only one client is created per process.
    Call reset_connection() to reconnect.

    Returns:
        AsyncClient: Supabase client

    Raises:
        DatabaseError: If connection fails
    """
    global _client
    if _client is not None:
        return _client

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        _client = await acreate_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_key
        )

        logger.info(
            "supabase_connected",
            status="success"
        )

        return _client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseError("connect", str(e)) from e


async def get_auth_client() -> AsyncClient:
    """
    Get the client used for identity creation.

    Kept separate from the data client: signing up a member stores a session
    on the client that performed the sign-up.

    Returns:
        AsyncClient: Supabase client used only for auth calls
    """
    global _auth_client
    if _auth_client is not None:
        return _auth_client

    try:
        _auth_client = await acreate_client(
            settings.supabase_url,
            settings.supabase_key
        )
        return _auth_client
    except Exception as e:
        logger.error(
            "auth_client_failed",
            error=str(e)
        )
        raise DatabaseError("auth client setup", str(e)) from e


# Convenience alias
db = get_supabase_client


# ===================
# HELPER FUNCTIONS
# ===================

async def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        client = await get_supabase_client()

        gyms = await client.table("gyms").select("id", count="exact").limit(1).execute()

        return {
            "status": "healthy",
            "gyms_count": gyms.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }


def reset_connection():
    """
    Reset the cached database connections.

    Call this if connection becomes stale or after config changes.
    """
    global _client, _auth_client
    _client = None
    _auth_client = None
    logger.info("database_connection_reset")
