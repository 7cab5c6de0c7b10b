import logging
from typing import AsyncGenerator
from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app import config
from app.database import async_session_maker
from app.services.auth import InvalidTokenError, TokenExpiredError, TokenSignatureError, read_token

logger = logging.getLogger(__name__)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def verify_session(x_session_token: str = Header(None, alias="X-Session-Token")):
    if not x_session_token:
        raise HTTPException(status_code=401, detail="Missing session token")

    if not config.SESSION_SECRET:
        logger.error("[AUTH]: SESSION_SECRET is missing on server")
        raise HTTPException(status_code=500, detail="Server config error")

    try:
        return read_token(x_session_token, config.SESSION_SECRET, config.SESSION_TTL_SECONDS)
    except TokenSignatureError:
        logger.warning("[AUTH FAIL]: Session token signature mismatch")
        raise HTTPException(status_code=403, detail="Data integrity check failed")
    except TokenExpiredError:
        raise HTTPException(status_code=401, detail="Session expired")
    except InvalidTokenError as e:
        logger.warning(f"[AUTH ERROR]: {e}")
        raise HTTPException(status_code=401, detail="Invalid session token")
