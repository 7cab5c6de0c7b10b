from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_session, verify_session
from app.models.schemas import ReportParams, ReportPeriod, ReportType, ToolResult
from app.services.analysis import AnalysisService

router = APIRouter(tags=["reports"])


@router.get("/reports", response_model=ToolResult)
async def get_report(
    report_type: ReportType = Query("summary"),
    period: ReportPeriod = Query("monthly"),
    user=Depends(verify_session),
    session: AsyncSession = Depends(get_session),
):
    """Financial report for the signed-in customer."""
    if user["type"] == "company":
        params = ReportParams(company_id=user["id"], report_type=report_type, period=period)
    else:
        params = ReportParams(user_id=user["id"], report_type=report_type, period=period)

    return await AnalysisService(session).run("generate_financial_report", params)
