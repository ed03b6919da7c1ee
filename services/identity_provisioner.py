"""
Identity provisioner: creates auth identities for imported members and staff.

The hosted auth provider allows only a few sign-ups per minute, so every
sign-up is preceded by a fixed pacing delay. A rate-limited call is retried
exactly once after a longer cool-down. Any other failure falls back to a
locally generated id; identity problems never fail the row.
"""

import asyncio
import uuid
from typing import Awaitable, Callable, Optional
import structlog

from exceptions import IdentityProviderError, IdentityRateLimitError

logger = structlog.get_logger(__name__)


DEFAULT_PACING_SECONDS = 1.5
DEFAULT_COOLDOWN_SECONDS = 10.0


def generate_temp_password() -> str:
    """Throwaway password; imported members reset it on first login."""
    return f"Temp{uuid.uuid4().hex[:8]}!"


def generate_local_id() -> str:
    """Opaque id used when no auth identity can be created."""
    return str(uuid.uuid4())


def is_rate_limit_error(error: Exception) -> bool:
    """True if the provider rejected the call for exceeding its rate limit."""
    if isinstance(error, IdentityRateLimitError):
        return True
    status = getattr(error, "status", None) or getattr(error, "status_code", None)
    if status == 429:
        return True
    message = getattr(error, "message", None) or str(error)
    return "rate limit" in message.lower()


class SupabaseIdentityProvider:
    """
    Identity collaborator backed by Supabase Auth.

    create_identity(email, password) -> user id.
    """

    def __init__(self, auth_client):
        self.client = auth_client

    async def create_identity(self, email: str, password: str) -> str:
        try:
            response = await self.client.auth.sign_up({
                "email": email,
                "password": password,
            })
        except Exception as e:
            if is_rate_limit_error(e):
                raise IdentityRateLimitError(
                    message=getattr(e, "message", None) or str(e),
                    details={"email": email}
                ) from e
            raise IdentityProviderError(
                message=getattr(e, "message", None) or str(e),
                details={"email": email}
            ) from e

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise IdentityProviderError(
                message="Sign-up returned no user",
                details={"email": email}
            )
        return str(user.id)


class IdentityProvisioner:
    """
    Paced, best-effort identity creation.

    Success and fallback both return a usable id; only the logs tell them apart.
    """

    def __init__(
        self,
        provider,
        pacing_seconds: float = DEFAULT_PACING_SECONDS,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.pacing_seconds = pacing_seconds
        self.cooldown_seconds = cooldown_seconds
        self._sleep = sleep

    async def provision(self, email: Optional[str], row_number: Optional[int] = None) -> str:
        """
        Get an id for a new member or staff record.

        Args:
            email: Email to register; None skips the provider entirely
            row_number: 1-based row, for logs

        Returns:
            Provider user id, or a locally generated id on fallback
        """
        if not email:
            return generate_local_id()

        password = generate_temp_password()

        await self._sleep(self.pacing_seconds)

        try:
            return await self.provider.create_identity(email, password)

        except Exception as e:
            if not is_rate_limit_error(e):
                logger.warning(
                    "identity_creation_failed",
                    row=row_number,
                    email=email,
                    error=str(e)
                )
                return generate_local_id()

        logger.warning(
            "identity_rate_limited",
            row=row_number,
            email=email,
            cooldown_seconds=self.cooldown_seconds
        )
        await self._sleep(self.cooldown_seconds)

        try:
            return await self.provider.create_identity(email, password)

        except Exception as e:
            logger.warning(
                "identity_creation_failed_after_retry",
                row=row_number,
                email=email,
                error=str(e)
            )
            return generate_local_id()
