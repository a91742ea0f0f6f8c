"""FastAPI dependency injection providers."""

import secrets
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricewatch.config import Settings, settings
from pricewatch.db.session import async_session_factory

_bearer_scheme = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    return settings


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for services that open their own sessions per operation."""
    return async_session_factory


async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is committed on success or rolled back on error.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    secret: Optional[str] = Query(default=None),
    config: Settings = Depends(get_settings),
) -> None:
    """Authorize trigger routes with the shared CRON_SECRET.

    Accepts ``Authorization: Bearer <secret>`` or ``?secret=<secret>``.
    Raises 500 when no secret is configured and 401 when it does not match.
    """
    if not config.CRON_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="CRON_SECRET is not configured",
        )

    provided = credentials.credentials if credentials else secret
    if not provided or not secrets.compare_digest(provided.encode(), config.CRON_SECRET.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
