from fastapi import APIRouter, Depends, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_session, verify_session
from app.models.schemas import AnalysisRequest, ToolResult
from app.services.analysis import AnalysisService, UnknownToolError

router = APIRouter(tags=["analysis"])


def _check_subject(user: dict, params: BaseModel):
    """Customers may only analyze their own records."""
    company_id = getattr(params, "company_id", None)
    user_id = getattr(params, "user_id", None)

    if company_id is not None and (user["type"] != "company" or company_id != user["id"]):
        raise HTTPException(status_code=403, detail="Access denied for this company")
    if user_id is not None and (user["type"] != "personal" or user_id != user["id"]):
        raise HTTPException(status_code=403, detail="Access denied for this user")


@router.post("/analysis", response_model=ToolResult)
async def run_analysis_tool(
    request: AnalysisRequest,
    user=Depends(verify_session),
    session: AsyncSession = Depends(get_session),
):
    if not request.tool or request.parameters is None:
        raise HTTPException(status_code=400, detail="Both tool and parameters are required")

    try:
        params = AnalysisService.parse_parameters(request.tool, request.parameters)
    except UnknownToolError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": f"Invalid parameters for {request.tool}", "errors": jsonable_encoder(e.errors())},
        ) from e

    _check_subject(user, params)

    return await AnalysisService(session).run(request.tool, params)
