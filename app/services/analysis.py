import functools
import logging
from datetime import UTC, date, datetime

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.schemas import (
    AnalyzeKPIParams,
    OptimizationParams,
    ReportParams,
    ScenarioParams,
    ToolResult,
    TrendParams,
    WhatIfParams,
)
from app.services.analytics import AnalyticsService
from app.services.metrics import (
    AnalysisInputError,
    InsufficientDataError,
    analyze_kpis,
    calculate_scenarios,
    forecast_trends,
    optimize_budget,
    personal_recommendations,
    summarize_personal,
    what_if,
)

logger = logging.getLogger(__name__)

# Months of history per report period
REPORT_PERIOD_MONTHS = {"monthly": 6, "quarterly": 3, "yearly": 12}

FORECAST_HISTORY_MONTHS = 12


class UnknownToolError(Exception):
    pass


def tool_handler(failure_message: str):
    """
    Turns analysis failures into unsuccessful ToolResults: bad input keeps
    its own message, store errors are logged and reported under
    `failure_message`.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, params):
            try:
                return await func(self, params)
            except AnalysisInputError as e:
                return ToolResult(success=False, message=str(e))
            except SQLAlchemyError as e:
                logger.error(f"{failure_message}: {e}")
                return ToolResult(success=False, message=failure_message, error=str(e))

        return wrapper

    return decorator


class AnalysisService:
    # tool name -> (parameter model, method name)
    TOOLS = {
        "analyze_company_kpis": (AnalyzeKPIParams, "analyze_company_kpis"),
        "predict_financial_trends": (TrendParams, "predict_financial_trends"),
        "suggest_budget_optimization": (OptimizationParams, "suggest_budget_optimization"),
        "calculate_scenarios": (ScenarioParams, "calculate_scenarios"),
        "what_if_analysis": (WhatIfParams, "what_if_analysis"),
        "generate_financial_report": (ReportParams, "generate_financial_report"),
    }

    def __init__(self, session: AsyncSession, today: date | None = None):
        self.analytics = AnalyticsService(session)
        self.today = today

    def _today(self) -> date:
        return self.today or date.today()

    @classmethod
    def parse_parameters(cls, tool: str, parameters: dict) -> BaseModel:
        """Validates raw tool parameters; raises UnknownToolError or pydantic's ValidationError."""
        if tool not in cls.TOOLS:
            raise UnknownToolError(f"Unknown analysis tool: {tool}")
        model, _ = cls.TOOLS[tool]
        return model.model_validate(parameters)

    async def run(self, tool: str, parameters: dict | BaseModel) -> ToolResult:
        if not isinstance(parameters, BaseModel):
            parameters = self.parse_parameters(tool, parameters)
        elif tool not in self.TOOLS:
            raise UnknownToolError(f"Unknown analysis tool: {tool}")

        _, method_name = self.TOOLS[tool]
        return await getattr(self, method_name)(parameters)

    # --- Company tools ---

    @tool_handler("Error analyzing company KPIs")
    async def analyze_company_kpis(self, params: AnalyzeKPIParams) -> ToolResult:
        kpis = await self.analytics.get_company_kpis(params.company_id, params.months)
        if not kpis:
            return ToolResult(success=False, message=f"No KPIs found for company {params.company_id}")

        analysis = analyze_kpis(kpis, include_history=params.include_comparisons)
        return ToolResult(
            success=True,
            message="KPI analysis completed",
            data={"company_id": params.company_id, **analysis},
        )

    @tool_handler("Error forecasting financial trends")
    async def predict_financial_trends(self, params: TrendParams) -> ToolResult:
        history = await self.analytics.get_company_history(params.company_id, FORECAST_HISTORY_MONTHS)
        forecast = forecast_trends(history, params.forecast_months, params.include_seasonality)
        return ToolResult(
            success=True,
            message=f"Trend forecast generated for {params.forecast_months} months",
            data={"company_id": params.company_id, **forecast},
        )

    @tool_handler("Error generating budget optimization")
    async def suggest_budget_optimization(self, params: OptimizationParams) -> ToolResult:
        kpis = await self.analytics.get_company_kpis(params.company_id, 1)
        if not kpis:
            return ToolResult(success=False, message="No current data found for budget optimization")

        optimization = optimize_budget(kpis[0], params.target_margin_increase, params.priority_areas)
        return ToolResult(
            success=True,
            message="Budget optimization analysis completed",
            data={"company_id": params.company_id, **optimization},
        )

    @tool_handler("Error calculating financial scenarios")
    async def calculate_scenarios(self, params: ScenarioParams) -> ToolResult:
        kpis = await self.analytics.get_company_kpis(params.company_id, 1)
        if not kpis:
            return ToolResult(success=False, message="No base data found for scenario calculation")

        scenarios = [scenario.model_dump() for scenario in params.scenarios]
        result = calculate_scenarios(kpis[0], scenarios)
        return ToolResult(
            success=True,
            message=f"Analysis of {len(scenarios)} scenarios completed",
            data={"company_id": params.company_id, **result},
        )

    @tool_handler("Error running what-if analysis")
    async def what_if_analysis(self, params: WhatIfParams) -> ToolResult:
        kpis = await self.analytics.get_company_kpis(params.company_id, params.months)
        result = what_if(kpis, params.revenue_change, params.expense_changes)
        return ToolResult(
            success=True,
            message="What-if analysis completed",
            data={"company_id": params.company_id, **result},
        )

    # --- Reports ---

    @tool_handler("Error generating financial report")
    async def generate_financial_report(self, params: ReportParams) -> ToolResult:
        if params.company_id and params.user_id:
            raise AnalysisInputError("Specify either company_id or user_id, not both")
        if params.company_id:
            return await self._company_report(params)
        if params.user_id:
            return await self._personal_report(params)
        raise AnalysisInputError("Either company_id or user_id is required to generate a report")

    async def _company_report(self, params: ReportParams) -> ToolResult:
        kpis = await self.analytics.get_company_kpis(params.company_id, REPORT_PERIOD_MONTHS[params.period])
        if not kpis:
            return ToolResult(success=False, message=f"No KPIs found for company {params.company_id}")

        latest = kpis[0]
        margin = latest.net_margin_pct
        report = {
            "type": "company",
            "company_id": params.company_id,
            "period": params.period,
            "generated_at": datetime.now(UTC).isoformat(),
            "executive_summary": {
                "current_revenue": round(latest.revenue, 2),
                "net_margin_pct": round(margin, 2) if margin is not None else None,
                "revenue_mom_pct": round(latest.revenue_mom_pct, 2) if latest.revenue_mom_pct is not None else None,
                "status": "Healthy" if margin is not None and margin > 15 else "Needs attention",
            },
        }

        if params.report_type == "detailed":
            report["details"] = [kpi.to_dict() for kpi in kpis]
        elif params.report_type == "trends":
            try:
                report["trends"] = forecast_trends(list(reversed(kpis)))
            except InsufficientDataError as e:
                report["trends"] = None
                report["notes"] = [str(e)]
        elif params.report_type == "recommendations":
            analysis = analyze_kpis(kpis, include_history=False)
            report["alerts"] = analysis["alerts"]
            report["recommendations"] = analysis["recommendations"]

        message = "Detailed report generated" if params.report_type == "detailed" else "Report generated"
        return ToolResult(success=True, message=message, data=report)

    async def _personal_report(self, params: ReportParams) -> ToolResult:
        try:
            user_id = int(params.user_id)
        except ValueError as e:
            raise AnalysisInputError(f"Invalid personal user id: {params.user_id}") from e

        transactions = await self.analytics.get_personal_transactions(user_id)
        summary = summarize_personal(transactions, self._today())

        report = {
            "type": "personal",
            "user_id": user_id,
            "period": params.period,
            "generated_at": datetime.now(UTC).isoformat(),
            **summary,
            "recommendations": [],
        }
        if params.report_type == "recommendations":
            report["recommendations"] = personal_recommendations(summary)

        return ToolResult(success=True, message="Personal report generated", data=report)
