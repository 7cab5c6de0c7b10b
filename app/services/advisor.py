import json
import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app.models.schemas import AnalyzeKPIParams, OptimizationParams, ReportParams
from app.services import llm
from app.services.analysis import AnalysisService
from app.services.metrics import company_decisions, summarize_personal
from constants import DEFAULT_AREA_RECOMMENDATION, GENERIC_RECOMMENDATIONS, PROMPTS

logger = logging.getLogger(__name__)

CHAT_KPI_MONTHS = 6
DECISION_WINDOW_MONTHS = 3
CHAT_TRANSACTION_LIMIT = 50
TARGET_MARGIN_INCREASE = 5.0


@dataclass
class FinancialContext:
    text: str = ""
    recommendations: list[str] = field(default_factory=list)
    from_analysis: bool = False


def _money(value: float | None) -> str:
    return "N/A" if value is None else f"${value:,.2f}"


def _percent(value: float | None, digits: int = 2) -> str:
    return "N/A" if value is None else f"{value:.{digits}f}%"


class AdvisorService:
    """Builds the financial context for a chat turn and turns it into a prompt."""

    def __init__(self, session: AsyncSession, today: date | None = None, analysis_enabled: bool | None = None):
        self.analysis = AnalysisService(session, today)
        self.analytics = self.analysis.analytics
        self.today = today
        self.analysis_enabled = config.ANALYSIS_ENABLED if analysis_enabled is None else analysis_enabled

    async def answer(self, user: dict, message: str) -> str:
        context = await self.build_context(user)
        prompt = self.build_prompt(user, message, context)
        return await llm.generate_reply(prompt)

    async def build_context(self, user: dict) -> FinancialContext:
        if self.analysis_enabled:
            try:
                context = await self._analysis_context(user)
            except Exception as e:
                logger.warning(f"Analysis layer failed for {user['type']} {user['id']}: {e!r}")
                context = None
            if context is not None:
                logger.info(f"Analysis context built for {user['type']} {user['id']}")
                return context
            logger.warning(f"Analysis layer unavailable for {user['type']} {user['id']}, using direct context")

        return await self._direct_context(user)

    # --- Analysis layer ---

    async def _analysis_context(self, user: dict) -> FinancialContext | None:
        user_id = user["id"]

        if user["type"] == "company":
            result = await self.analysis.run(
                "analyze_company_kpis",
                AnalyzeKPIParams(company_id=user_id, months=CHAT_KPI_MONTHS, include_comparisons=True),
            )
            if not result.success:
                return None

            optimization = await self.analysis.run(
                "suggest_budget_optimization",
                OptimizationParams(company_id=user_id, target_margin_increase=TARGET_MARGIN_INCREASE),
            )
            recommendations = []
            if optimization.success:
                recommendations = [
                    f"{opt['area']}: {opt['recommendations'][0] if opt['recommendations'] else DEFAULT_AREA_RECOMMENDATION}"
                    for opt in optimization.data["optimizations"]
                ]
            summary = f"KPI analysis for company {user_id}: {result.message}"
        else:
            result = await self.analysis.run(
                "generate_financial_report",
                ReportParams(user_id=user_id, report_type="recommendations"),
            )
            if not result.success:
                return None

            recommendations = list(result.data["recommendations"])
            summary = f"Personal financial report for user {user_id}: {result.message}"

        text = PROMPTS["analysis_context"].format(
            user_type=user["type"],
            user_id=user_id,
            summary=summary,
            data=json.dumps(result.data, indent=2, ensure_ascii=False, default=str),
        )
        return FinancialContext(
            text=text,
            recommendations=recommendations or list(GENERIC_RECOMMENDATIONS),
            from_analysis=True,
        )

    # --- Direct store reads ---

    async def _direct_context(self, user: dict) -> FinancialContext:
        try:
            if user["type"] == "company":
                return FinancialContext(text=await self._company_context(user["id"]))
            return FinancialContext(text=await self._personal_context(user["id"]))
        except SQLAlchemyError as e:
            logger.error(f"Error reading financial data for {user['type']} {user['id']}: {e}")
            return FinancialContext()

    async def _company_context(self, company_id: str) -> str:
        kpis = await self.analytics.get_company_kpis(company_id, CHAT_KPI_MONTHS)
        if not kpis:
            return ""

        kpi_lines = "\n".join(
            f"- Month: {k.month_label}\n"
            f"  Revenue: {_money(k.revenue)}\n"
            f"  Expenses: {_money(k.expenses)}\n"
            f"  Net margin: {_percent(k.net_margin_pct)}\n"
            f"  MoM growth: {_percent(k.revenue_mom_pct)}\n"
            f"  Infrastructure share: {_percent(k.pct_infrastructure, 1)}\n"
            f"  Personnel share: {_percent(k.pct_personnel, 1)}\n"
            f"  Marketing share: {_percent(k.pct_marketing, 1)}"
            for k in kpis
        )
        distribution_lines = "\n".join(
            f"- {k.month_label}:\n"
            f"  Infrastructure: {_money(k.infrastructure)}\n"
            f"  Personnel: {_money(k.personnel)}\n"
            f"  Marketing: {_money(k.marketing)}\n"
            f"  Services: {_money(k.services)}\n"
            f"  Costs: {_money(k.costs)}"
            for k in kpis
        )
        decisions = company_decisions(kpis[:DECISION_WINDOW_MONTHS])
        decision_lines = (
            "\n".join(
                f"- KPI: {d['kpi']} | Month: {d['month']} | Value: {d['value']}\n  Recommendation: {d['decision']}"
                for d in decisions
            )
            or "No recommendations available"
        )

        return PROMPTS["company_context"].format(
            user_id=company_id,
            kpi_lines=kpi_lines,
            distribution_lines=distribution_lines,
            decision_lines=decision_lines,
        )

    async def _personal_context(self, user_id: str) -> str:
        try:
            customer_number = int(user_id)
        except ValueError:
            return ""

        transactions = await self.analytics.get_personal_transactions(customer_number, CHAT_TRANSACTION_LIMIT)
        summary = summarize_personal(transactions, self.today or date.today())
        overall = summary["overall"]

        category_lines = "\n".join(
            f"- {c['category']}: {_money(c['total'])}" for c in summary["top_categories"][:5]
        ) or "- No expenses recorded"
        transaction_lines = "\n".join(
            f"- {tx['date']}: {tx['type']} {_money(tx['amount'])} - "
            f"{tx['description'] or tx['category'] or 'No description'}"
            for tx in summary["recent_transactions"][:5]
        ) or "- No transactions recorded"

        return PROMPTS["personal_context"].format(
            user_id=user_id,
            total_income=_money(overall["total_income"]),
            total_expense=_money(overall["total_expense"]),
            balance=_money(overall["balance"]),
            status="Positive" if overall["balance"] >= 0 else "Negative",
            category_lines=category_lines,
            transaction_lines=transaction_lines,
        )

    # --- Prompt ---

    def build_prompt(self, user: dict, message: str, context: FinancialContext) -> str:
        is_company = user["type"] == "company"
        recommendations = context.recommendations

        recommendations_section = ""
        if recommendations:
            numbered = "\n".join(f"{i}. {rec}" for i, rec in enumerate(recommendations, start=1))
            recommendations_section = f"\nSMART RECOMMENDATIONS:\n{numbered}\n"

        return PROMPTS["system"].format(
            audience="businesses" if is_company else "individual customers",
            user_type_label="Business" if is_company else "Personal",
            user_id=user["id"],
            mode_label="Advanced analysis" if context.from_analysis else "Direct data",
            financial_context=context.text.strip(),
            recommendations_section=recommendations_section,
            recommendation_priority=(
                "PRIORITIZE the smart recommendations, they come from the analysis layer"
                if recommendations
                else "use the available data to give personalized advice"
            ),
            language=config.RESPONSE_LANGUAGE,
            message=message,
        )
