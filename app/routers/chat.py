import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_session, verify_session
from app.models.schemas import ChatRequest, ChatResponse
from app.services.advisor import AdvisorService
from app.services.llm import LLMError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    user=Depends(verify_session),
    session: AsyncSession = Depends(get_session),
):
    message = (request.message or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")

    advisor = AdvisorService(session)

    try:
        reply = await advisor.answer(user, message)
    except LLMError as e:
        logger.error(f"Chat API error ({e.status_code}): {e}")
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e
    except Exception as e:
        logger.exception(f"Unexpected chat error for {user['type']} {user['id']}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    return {"response": reply}
