import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app.dependencies import get_session
from app.models.schemas import LoginRequest, LoginResponse
from app.services.auth import AuthenticationError, authenticate, issue_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/auth/verify", response_model=LoginResponse)
async def verify_credentials(credentials: LoginRequest, session: AsyncSession = Depends(get_session)):
    """
    Checks a customer number and registered name, and issues a signed
    session token for the X-Session-Token header.
    """
    user_id = (credentials.user_id or "").strip()
    name = (credentials.name or "").strip()

    if not user_id or not name or not credentials.user_type:
        raise HTTPException(status_code=400, detail="Incomplete fields")

    if not config.SESSION_SECRET:
        logger.error("[AUTH]: SESSION_SECRET is missing on server")
        raise HTTPException(status_code=500, detail="Server config error")

    try:
        user = await authenticate(session, user_id, name, credentials.user_type)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except SQLAlchemyError as e:
        logger.error(f"/auth/verify error: {e}")
        raise HTTPException(status_code=500, detail="Server error") from e

    return {"success": True, "user": user, "token": issue_token(user, config.SESSION_SECRET)}
