"""
Derived financial metrics.

Everything here is pure arithmetic over small in-memory collections: monthly
company KPI rows (tens at most) and personal transaction rows. Store access
lives in ``AnalyticsService``; wrapping results for callers lives in
``AnalysisService``.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Mapping, Sequence

from constants import AREA_RECOMMENDATIONS, DEFAULT_AREA_RECOMMENDATION, OPTIMIZATION_NEXT_STEPS

EXPENSE_AREAS = ("infrastructure", "personnel", "marketing", "services", "costs")

# area -> (label, share attribute, difficulty)
OPTIMIZABLE_AREAS = {
    "marketing": ("Marketing", "pct_marketing", "Low"),
    "personnel": ("Personnel", "pct_personnel", "High"),
    "infrastructure": ("Infrastructure", "pct_infrastructure", "Medium"),
}

DEFAULT_PRIORITY_AREAS = ("marketing", "personnel", "infrastructure")

MAX_FORECAST_MONTHS = 12
MIN_FORECAST_HISTORY = 3


class AnalysisInputError(ValueError):
    """Input cannot be analyzed (bad parameters or not enough data)."""


class InsufficientDataError(AnalysisInputError):
    pass


def _pct(part: float, whole: float) -> float | None:
    if not whole:
        return None
    return part / whole * 100


def _round(value: float | None, digits: int = 2) -> float | None:
    if value is None:
        return None
    return round(value, digits)


def _add_months(month: date, count: int) -> date:
    years, month_index = divmod(month.month - 1 + count, 12)
    return date(month.year + years, month_index + 1, 1)


@dataclass
class CompanyKPI:
    """One month of company figures plus the ratios derived from them."""

    month: date
    revenue: float
    infrastructure: float = 0.0
    personnel: float = 0.0
    marketing: float = 0.0
    services: float = 0.0
    costs: float = 0.0
    revenue_mom_pct: float | None = None

    @property
    def expenses(self) -> float:
        return sum(getattr(self, area) for area in EXPENSE_AREAS)

    @property
    def net_income(self) -> float:
        return self.revenue - self.expenses

    @property
    def net_margin_pct(self) -> float | None:
        return _pct(self.net_income, self.revenue)

    @property
    def pct_infrastructure(self) -> float | None:
        return _pct(self.infrastructure, self.expenses)

    @property
    def pct_personnel(self) -> float | None:
        return _pct(self.personnel, self.expenses)

    @property
    def pct_marketing(self) -> float | None:
        return _pct(self.marketing, self.expenses)

    @property
    def month_label(self) -> str:
        return self.month.strftime("%Y-%m")

    def to_dict(self) -> dict:
        return {
            "month": self.month_label,
            "revenue": _round(self.revenue),
            "expenses": _round(self.expenses),
            "net_income": _round(self.net_income),
            "net_margin_pct": _round(self.net_margin_pct),
            "infrastructure": _round(self.infrastructure),
            "personnel": _round(self.personnel),
            "marketing": _round(self.marketing),
            "services": _round(self.services),
            "costs": _round(self.costs),
            "pct_infrastructure": _round(self.pct_infrastructure, 1),
            "pct_personnel": _round(self.pct_personnel, 1),
            "pct_marketing": _round(self.pct_marketing, 1),
            "revenue_mom_pct": _round(self.revenue_mom_pct),
        }


def build_kpis(rows: Iterable[Mapping]) -> list[CompanyKPI]:
    """
    Turns monthly rows (oldest first) into KPI rows, filling in the
    month-over-month revenue change from the preceding row.
    """
    kpis: list[CompanyKPI] = []
    previous = None
    for row in rows:
        kpi = CompanyKPI(
            month=row["month"],
            revenue=float(row["revenue"] or 0),
            **{area: float(row[area] or 0) for area in EXPENSE_AREAS},
        )
        if previous is not None:
            kpi.revenue_mom_pct = _pct(kpi.revenue - previous.revenue, previous.revenue)
        kpis.append(kpi)
        previous = kpi
    return kpis


def analyze_kpis(kpis: Sequence[CompanyKPI], include_history: bool = True) -> dict:
    """Trend summary, alerts and recommendations over KPI rows (newest first)."""
    if not kpis:
        raise InsufficientDataError("No KPI rows to analyze")

    latest, oldest = kpis[0], kpis[-1]
    margins = [k.net_margin_pct for k in kpis if k.net_margin_pct is not None]

    alerts = []
    recommendations = []

    margin = latest.net_margin_pct
    if margin is not None and margin < 10:
        alerts.append("Net margin very low (<10%)")
    if latest.revenue_mom_pct is not None and latest.revenue_mom_pct < -5:
        alerts.append("Significant month-over-month revenue decline")
    if latest.pct_personnel is not None and latest.pct_personnel > 40:
        alerts.append("Personnel expenses high (>40% of total)")

    if margin is not None and margin < 15:
        recommendations.append("Consider expense optimization to improve margin")
    if latest.pct_marketing is not None and latest.pct_marketing < 5:
        recommendations.append("Evaluate increasing marketing investment")

    return {
        "period": f"{oldest.month_label} to {latest.month_label}",
        "current": latest.to_dict(),
        "trends": {
            "revenue": {
                "current": _round(latest.revenue),
                "period_growth_pct": _round(_pct(latest.revenue - oldest.revenue, oldest.revenue)),
                "mom_pct": _round(latest.revenue_mom_pct),
            },
            "net_margin": {
                "current": _round(margin),
                "period_average": _round(sum(margins) / len(margins)) if margins else None,
                "best_month": _round(max(margins)) if margins else None,
                "worst_month": _round(min(margins)) if margins else None,
            },
            "expense_distribution": {
                "infrastructure": _round(latest.pct_infrastructure, 1),
                "personnel": _round(latest.pct_personnel, 1),
                "marketing": _round(latest.pct_marketing, 1),
            },
        },
        "alerts": alerts,
        "recommendations": recommendations,
        "history": [k.to_dict() for k in kpis] if include_history else None,
    }


def forecast_trends(kpis: Sequence[CompanyKPI], forecast_months: int = 3, include_seasonality: bool = True) -> dict:
    """
    Linear projection of revenue and expenses from the last three months
    (rows oldest first). Confidence drops by 15 points per projected month
    and never goes below 30.
    """
    if not 1 <= forecast_months <= MAX_FORECAST_MONTHS:
        raise AnalysisInputError(f"forecast_months must be between 1 and {MAX_FORECAST_MONTHS}")
    if len(kpis) < MIN_FORECAST_HISTORY:
        raise InsufficientDataError(f"Not enough data for a forecast (minimum {MIN_FORECAST_HISTORY} months)")

    recent = kpis[-MIN_FORECAST_HISTORY:]
    last = kpis[-1]
    revenue_trend = (recent[-1].revenue - recent[0].revenue) / 2
    expense_trend = (recent[-1].expenses - recent[0].expenses) / 2

    predictions = []
    for i in range(1, forecast_months + 1):
        revenue = max(0.0, last.revenue + revenue_trend * i)
        expenses = max(0.0, last.expenses + expense_trend * i)
        profit = revenue - expenses
        predictions.append(
            {
                "month": _add_months(last.month, i).strftime("%Y-%m"),
                "projected_revenue": _round(revenue),
                "projected_expenses": _round(expenses),
                "projected_profit": _round(profit),
                "projected_margin_pct": _round(_pct(profit, revenue)),
                "confidence": max(30, 90 - i * 15),
            }
        )

    return {
        "forecast_period": f"{predictions[0]['month']} to {predictions[-1]['month']}",
        "history_used": len(kpis),
        "predictions": predictions,
        "notes": [
            "Projections follow the linear trend of the last three months",
            "Confidence decreases with the projection horizon",
            "Seasonality flagged for review" if include_seasonality else "No seasonality analysis",
        ],
    }


def optimize_budget(
    kpi: CompanyKPI,
    target_margin_increase: float = 5.0,
    priority_areas: Sequence[str] | None = None,
) -> dict:
    """Suggests a 5/10/15% cut per area depending on its share of expenses."""
    areas = list(dict.fromkeys(priority_areas if priority_areas is not None else DEFAULT_PRIORITY_AREAS))

    optimizations = []
    total_saving = 0.0
    for area in areas:
        if area not in OPTIMIZABLE_AREAS:
            continue
        label, share_attr, difficulty = OPTIMIZABLE_AREAS[area]

        share = getattr(kpi, share_attr) or 0.0
        amount = getattr(kpi, area)

        if share > 30:
            reduction = 15
        elif share > 20:
            reduction = 10
        else:
            reduction = 5

        saving = amount * reduction / 100
        total_saving += saving
        new_amount = amount - saving

        optimizations.append(
            {
                "area": label,
                "current": {"amount": _round(amount), "share_pct": _round(share, 1)},
                "suggested": {
                    "reduction_pct": reduction,
                    "estimated_saving": _round(saving),
                    "new_amount": _round(new_amount),
                    "new_share_pct": _round(_pct(new_amount, kpi.expenses), 1),
                },
                "margin_impact_pct": _round(_pct(saving, kpi.revenue)),
                "difficulty": difficulty,
                "recommendations": list(AREA_RECOMMENDATIONS.get(area, [DEFAULT_AREA_RECOMMENDATION])),
            }
        )

    achievable = _pct(total_saving, kpi.revenue)
    current_margin = kpi.net_margin_pct

    return {
        "current": {
            "net_margin_pct": _round(current_margin),
            "revenue": _round(kpi.revenue),
            "total_expenses": _round(kpi.expenses),
        },
        "target": {
            "target_margin_pct": _round(current_margin + target_margin_increase) if current_margin is not None else None,
            "required_improvement": _round(kpi.revenue * target_margin_increase / 100),
            "achievable_margin_increase_pct": _round(achievable),
        },
        "optimizations": optimizations,
        "summary": {
            "total_estimated_saving": _round(total_saving),
            "feasibility": "High" if achievable is not None and achievable >= target_margin_increase else "Partial",
            "implementation_window": "3-6 months",
            "overall_risk": "Medium",
        },
        "next_steps": list(OPTIMIZATION_NEXT_STEPS),
    }


def _evaluate_scenario(base: CompanyKPI, scenario: Mapping) -> dict:
    revenue_change = float(scenario.get("revenue_change") or 0)
    expense_changes = scenario.get("expense_changes") or {}

    new_revenue = base.revenue * (1 + revenue_change / 100)
    breakdown = {
        area: getattr(base, area) * (1 + float(expense_changes.get(area) or 0) / 100) for area in EXPENSE_AREAS
    }
    new_expenses = sum(breakdown.values())
    new_profit = new_revenue - new_expenses
    new_margin = _pct(new_profit, new_revenue)
    base_margin = base.net_margin_pct

    if new_profit > 0:
        viability = "High" if new_margin is not None and new_margin > 10 else "Medium"
    else:
        viability = "Low"

    favorable = new_margin is not None and (base_margin is None or new_margin > base_margin)

    return {
        "name": scenario["name"],
        "applied_changes": {
            "revenue": f"{'+' if revenue_change > 0 else ''}{revenue_change:g}%",
            "expenses": {area: expense_changes[area] for area in EXPENSE_AREAS if area in expense_changes},
        },
        "results": {
            "revenue": {
                "base": _round(base.revenue),
                "new": _round(new_revenue),
                "difference": _round(new_revenue - base.revenue),
                "change_pct": revenue_change,
            },
            "expenses": {
                "base": _round(base.expenses),
                "new": _round(new_expenses),
                "difference": _round(new_expenses - base.expenses),
                "breakdown": {area: _round(value) for area, value in breakdown.items()},
            },
            "profit": {
                "base": _round(base.net_income),
                "new": _round(new_profit),
                "difference": _round(new_profit - base.net_income),
                "change_pct": _round(_pct(new_profit - base.net_income, base.net_income)),
            },
            "margin": {
                "base": _round(base_margin),
                "new": _round(new_margin),
                "difference": _round(new_margin - base_margin)
                if new_margin is not None and base_margin is not None
                else None,
            },
        },
        "evaluation": {
            "viability": viability,
            "risk": "High" if abs(revenue_change) > 20 else "Medium",
            "verdict": "Favorable" if favorable else "Unfavorable",
        },
    }


def calculate_scenarios(base: CompanyKPI, scenarios: Sequence[Mapping]) -> dict:
    """Recalculates revenue, expenses and margin for each what-if scenario."""
    if not scenarios:
        raise AnalysisInputError("At least one scenario is required")

    results = [_evaluate_scenario(base, scenario) for scenario in scenarios]

    def margin_of(result):
        value = result["results"]["margin"]["new"]
        return float("-inf") if value is None else value

    new_revenues = [r["results"]["revenue"]["new"] for r in results]
    new_margins = [r["results"]["margin"]["new"] for r in results if r["results"]["margin"]["new"] is not None]

    return {
        "base": {
            "revenue": _round(base.revenue),
            "expenses": _round(base.expenses),
            "profit": _round(base.net_income),
            "margin_pct": _round(base.net_margin_pct),
        },
        "scenarios": results,
        # max() keeps the first of equal margins
        "best_scenario": max(results, key=margin_of)["name"],
        "comparison": {
            "revenue_range": {"min": min(new_revenues), "max": max(new_revenues)},
            "margin_range": {
                "min": min(new_margins) if new_margins else None,
                "max": max(new_margins) if new_margins else None,
            },
        },
    }


def what_if(kpis: Sequence[CompanyKPI], revenue_change: float, expense_changes: Mapping[str, float]) -> dict:
    """Applies one scenario to the average of the given months."""
    if not kpis:
        raise InsufficientDataError("No KPI rows for what-if analysis")

    count = len(kpis)
    months = sorted(k.month for k in kpis)
    base = CompanyKPI(
        month=months[-1],
        revenue=sum(k.revenue for k in kpis) / count,
        **{area: sum(getattr(k, area) for k in kpis) / count for area in EXPENSE_AREAS},
    )

    result = calculate_scenarios(
        base, [{"name": "what-if", "revenue_change": revenue_change, "expense_changes": dict(expense_changes)}]
    )
    result["window"] = {
        "months": count,
        "from": months[0].strftime("%Y-%m"),
        "to": months[-1].strftime("%Y-%m"),
    }
    return result


def company_decisions(kpis: Sequence[CompanyKPI]) -> list[dict]:
    """Rule-based recommendations for every month in the window."""
    decisions = []

    def add(kpi, name, value, text):
        decisions.append({"kpi": name, "month": kpi.month_label, "value": _round(value), "decision": text})

    for kpi in kpis:
        if kpi.net_margin_pct is not None and kpi.net_margin_pct < 10:
            add(kpi, "net_margin_pct", kpi.net_margin_pct, "Review pricing and cut non-essential spending")
        if kpi.revenue_mom_pct is not None and kpi.revenue_mom_pct < -5:
            add(kpi, "revenue_mom_pct", kpi.revenue_mom_pct, "Investigate the revenue drop and reinforce sales")
        if kpi.pct_personnel is not None and kpi.pct_personnel > 40:
            add(kpi, "pct_personnel", kpi.pct_personnel, "Review headcount costs and automate processes")
        if kpi.pct_marketing is not None and kpi.pct_marketing < 5:
            add(kpi, "pct_marketing", kpi.pct_marketing, "Consider a measured increase in marketing")
    return decisions


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def summarize_personal(transactions: Sequence[Mapping], today: date, recent_limit: int = 10) -> dict:
    """
    Totals, per-category expenses and current-month figures for personal
    transactions (newest first). An empty list yields zeros.
    """
    total_income = 0.0
    total_expense = 0.0
    month_income = 0.0
    month_expense = 0.0
    by_category: dict[str, float] = defaultdict(float)
    month_start = today.replace(day=1)

    for tx in transactions:
        amount = float(tx["amount"] or 0)
        in_month = _as_date(tx["date"]) >= month_start
        if tx["type"] == "income":
            total_income += amount
            if in_month:
                month_income += amount
        elif tx["type"] == "expense":
            total_expense += amount
            by_category[tx.get("category") or "Uncategorized"] += amount
            if in_month:
                month_expense += amount

    top_categories = sorted(by_category.items(), key=lambda item: item[1], reverse=True)

    return {
        "overall": {
            "total_income": _round(total_income),
            "total_expense": _round(total_expense),
            "balance": _round(total_income - total_expense),
            "transactions_analyzed": len(transactions),
        },
        "current_month": {
            "income": _round(month_income),
            "expense": _round(month_expense),
            "balance": _round(month_income - month_expense),
        },
        "expenses_by_category": {name: _round(total) for name, total in by_category.items()},
        "top_categories": [{"category": name, "total": _round(total)} for name, total in top_categories],
        "recent_transactions": [
            {
                "date": _as_date(tx["date"]).isoformat(),
                "type": tx["type"],
                "amount": _round(float(tx["amount"] or 0)),
                "category": tx.get("category"),
                "description": tx.get("description"),
            }
            for tx in transactions[:recent_limit]
        ],
    }


def personal_recommendations(summary: Mapping) -> list[str]:
    recommendations = []
    month = summary["current_month"]

    if month["balance"] < 0:
        recommendations.append("Your monthly balance is negative. Consider cutting expenses or increasing income.")
    elif month["balance"] > month["income"] * 0.2:
        recommendations.append("Great job! You are saving more than 20% of your income.")

    if summary["top_categories"]:
        top = summary["top_categories"][0]
        recommendations.append(f"Your largest expense is {top['category']}: ${top['total']:,.2f}")

    if summary["overall"]["balance"] > 0:
        recommendations.append("Consider investing part of your positive balance to earn returns.")

    return recommendations
