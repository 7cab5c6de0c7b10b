from datetime import date
from decimal import Decimal

import pytest

from app.services.metrics import (
    AnalysisInputError,
    CompanyKPI,
    InsufficientDataError,
    analyze_kpis,
    build_kpis,
    calculate_scenarios,
    company_decisions,
    forecast_trends,
    optimize_budget,
    personal_recommendations,
    summarize_personal,
    what_if,
)


def month_row(month, revenue, costs=0, **areas):
    row = {"month": month, "revenue": Decimal(str(revenue)), "costs": Decimal(str(costs))}
    for area in ("infrastructure", "personnel", "marketing", "services"):
        row[area] = Decimal(str(areas.get(area, 0)))
    return row


@pytest.fixture
def struggling_quarter():
    """Three months, newest first; the latest month trips every alert."""
    oldest = CompanyKPI(
        month=date(2025, 1, 1), revenue=800, infrastructure=100, personnel=300, marketing=50, services=100, costs=50
    )
    middle = CompanyKPI(
        month=date(2025, 2, 1), revenue=900, infrastructure=100, personnel=300, marketing=50, services=100, costs=50
    )
    latest = CompanyKPI(
        month=date(2025, 3, 1),
        revenue=1000,
        infrastructure=100,
        personnel=450,
        marketing=20,
        services=200,
        costs=180,
        revenue_mom_pct=-10.0,
    )
    return [latest, middle, oldest]


# --- KPI rows ---


def test_build_kpis_fills_month_over_month():
    kpis = build_kpis(
        [
            month_row(date(2025, 1, 1), 1000, costs=400),
            month_row(date(2025, 2, 1), 1100, costs=400),
            month_row(date(2025, 3, 1), 990, costs=400),
        ]
    )

    assert kpis[0].revenue_mom_pct is None
    assert kpis[1].revenue_mom_pct == pytest.approx(10.0)
    assert kpis[2].revenue_mom_pct == pytest.approx(-10.0)


def test_kpi_derived_ratios():
    kpi = CompanyKPI(
        month=date(2025, 1, 1), revenue=1000, infrastructure=200, personnel=300, marketing=100, services=100, costs=100
    )

    assert kpi.expenses == 800
    assert kpi.net_income == 200
    assert kpi.net_margin_pct == pytest.approx(20.0)
    assert kpi.pct_personnel == pytest.approx(37.5)
    assert kpi.to_dict()["month"] == "2025-01"


def test_kpi_ratios_without_revenue_or_expenses():
    kpi = CompanyKPI(month=date(2025, 1, 1), revenue=0)

    assert kpi.net_margin_pct is None
    assert kpi.pct_marketing is None


# --- KPI analysis ---


def test_analyze_kpis_alerts_and_recommendations(struggling_quarter):
    analysis = analyze_kpis(struggling_quarter)

    assert analysis["period"] == "2025-01 to 2025-03"
    assert analysis["trends"]["revenue"]["period_growth_pct"] == 25.0
    assert analysis["trends"]["revenue"]["mom_pct"] == -10.0

    margin = analysis["trends"]["net_margin"]
    assert margin["current"] == 5.0
    assert margin["best_month"] == 33.33
    assert margin["worst_month"] == 5.0
    assert margin["period_average"] == 21.11

    assert len(analysis["alerts"]) == 3
    assert "Net margin very low (<10%)" in analysis["alerts"]
    assert analysis["recommendations"] == [
        "Consider expense optimization to improve margin",
        "Evaluate increasing marketing investment",
    ]
    assert len(analysis["history"]) == 3


def test_analyze_kpis_healthy_month_without_history():
    healthy = CompanyKPI(
        month=date(2025, 1, 1), revenue=1000, infrastructure=200, personnel=300, marketing=100, services=100, costs=100
    )

    analysis = analyze_kpis([healthy], include_history=False)

    assert analysis["alerts"] == []
    assert analysis["recommendations"] == []
    assert analysis["history"] is None
    assert analysis["trends"]["revenue"]["period_growth_pct"] == 0.0


def test_analyze_kpis_requires_rows():
    with pytest.raises(InsufficientDataError):
        analyze_kpis([])


# --- Forecast ---


def test_forecast_trends_linear_projection():
    history = build_kpis(
        [
            month_row(date(2025, 1, 1), 1000, costs=600),
            month_row(date(2025, 2, 1), 1100, costs=650),
            month_row(date(2025, 3, 1), 1200, costs=700),
        ]
    )

    forecast = forecast_trends(history, forecast_months=3)
    first, last = forecast["predictions"][0], forecast["predictions"][-1]

    assert forecast["forecast_period"] == "2025-04 to 2025-06"
    assert forecast["history_used"] == 3
    assert first["projected_revenue"] == 1300.0
    assert first["projected_expenses"] == 750.0
    assert first["projected_profit"] == 550.0
    assert first["projected_margin_pct"] == 42.31
    assert first["confidence"] == 75
    assert last["projected_revenue"] == 1500.0
    assert last["confidence"] == 45


def test_forecast_confidence_floor_and_year_rollover():
    history = build_kpis(
        [
            month_row(date(2025, 9, 1), 1000, costs=500),
            month_row(date(2025, 10, 1), 1000, costs=500),
            month_row(date(2025, 11, 1), 1000, costs=500),
        ]
    )

    forecast = forecast_trends(history, forecast_months=5, include_seasonality=False)
    months = [p["month"] for p in forecast["predictions"]]

    assert months == ["2025-12", "2026-01", "2026-02", "2026-03", "2026-04"]
    assert forecast["predictions"][-1]["confidence"] == 30
    assert forecast["notes"][-1] == "No seasonality analysis"


def test_forecast_clamps_projected_revenue_at_zero():
    history = build_kpis(
        [
            month_row(date(2025, 1, 1), 300, costs=50),
            month_row(date(2025, 2, 1), 200, costs=50),
            month_row(date(2025, 3, 1), 100, costs=50),
        ]
    )

    prediction = forecast_trends(history, forecast_months=1)["predictions"][0]

    assert prediction["projected_revenue"] == 0.0
    assert prediction["projected_profit"] == -50.0
    assert prediction["projected_margin_pct"] is None


def test_forecast_needs_three_months():
    history = build_kpis([month_row(date(2025, 1, 1), 100), month_row(date(2025, 2, 1), 100)])

    with pytest.raises(InsufficientDataError):
        forecast_trends(history)


@pytest.mark.parametrize("months", [0, 13])
def test_forecast_rejects_horizon_out_of_range(months):
    with pytest.raises(AnalysisInputError):
        forecast_trends([], forecast_months=months)


# --- Budget optimization ---


@pytest.fixture
def balanced_month():
    return CompanyKPI(
        month=date(2025, 3, 1),
        revenue=10000,
        infrastructure=2500,
        personnel=3500,
        marketing=500,
        services=1500,
        costs=2000,
    )


def test_optimize_budget_reduction_tiers(balanced_month):
    result = optimize_budget(balanced_month)
    by_area = {opt["area"]: opt for opt in result["optimizations"]}

    assert [opt["area"] for opt in result["optimizations"]] == ["Marketing", "Personnel", "Infrastructure"]
    assert by_area["Personnel"]["suggested"]["reduction_pct"] == 15
    assert by_area["Infrastructure"]["suggested"]["reduction_pct"] == 10
    assert by_area["Marketing"]["suggested"]["reduction_pct"] == 5

    assert by_area["Personnel"]["suggested"]["estimated_saving"] == 525.0
    assert by_area["Personnel"]["margin_impact_pct"] == 5.25
    assert by_area["Personnel"]["difficulty"] == "High"
    assert by_area["Infrastructure"]["difficulty"] == "Medium"
    assert by_area["Marketing"]["difficulty"] == "Low"
    assert by_area["Marketing"]["recommendations"][0] == "Evaluate the ROI of current campaigns"

    assert result["summary"]["total_estimated_saving"] == 800.0
    assert result["target"]["achievable_margin_increase_pct"] == 8.0
    assert result["target"]["required_improvement"] == 500.0
    assert result["target"]["target_margin_pct"] == 5.0
    assert result["summary"]["feasibility"] == "High"


def test_optimize_budget_partial_feasibility(balanced_month):
    result = optimize_budget(balanced_month, target_margin_increase=10)

    assert result["summary"]["feasibility"] == "Partial"


def test_optimize_budget_skips_unknown_and_duplicate_areas(balanced_month):
    result = optimize_budget(balanced_month, priority_areas=["services", "marketing", "marketing"])

    assert [opt["area"] for opt in result["optimizations"]] == ["Marketing"]
    assert result["summary"]["total_estimated_saving"] == 25.0


def test_optimize_budget_totals_unrounded_savings():
    month = CompanyKPI(
        month=date(2025, 3, 1),
        revenue=1,
        infrastructure=0.08,
        personnel=0.08,
        marketing=0.08,
        costs=1,
    )

    result = optimize_budget(month)

    # Each area saves 0.004, which rounds to zero on its own
    assert [opt["suggested"]["estimated_saving"] for opt in result["optimizations"]] == [0.0, 0.0, 0.0]
    assert result["summary"]["total_estimated_saving"] == 0.01
    assert result["target"]["achievable_margin_increase_pct"] == 1.2


# --- Scenarios ---


@pytest.fixture
def base_month():
    return CompanyKPI(
        month=date(2025, 3, 1),
        revenue=10000,
        infrastructure=1000,
        personnel=3000,
        marketing=1000,
        services=1000,
        costs=2000,
    )


def test_calculate_scenarios(base_month):
    result = calculate_scenarios(
        base_month,
        [
            {"name": "Growth", "revenue_change": 10, "expense_changes": {"marketing": 20}},
            {"name": "Cuts", "revenue_change": -25, "expense_changes": {"personnel": -10}},
        ],
    )
    growth, cuts = result["scenarios"]

    assert result["base"] == {"revenue": 10000.0, "expenses": 8000.0, "profit": 2000.0, "margin_pct": 20.0}

    assert growth["applied_changes"]["revenue"] == "+10%"
    assert growth["results"]["revenue"]["new"] == 11000.0
    assert growth["results"]["expenses"]["new"] == 8200.0
    assert growth["results"]["expenses"]["breakdown"]["marketing"] == 1200.0
    assert growth["results"]["profit"]["new"] == 2800.0
    assert growth["results"]["profit"]["change_pct"] == 40.0
    assert growth["results"]["margin"]["new"] == 25.45
    assert growth["evaluation"] == {"viability": "High", "risk": "Medium", "verdict": "Favorable"}

    assert cuts["applied_changes"]["revenue"] == "-25%"
    assert cuts["results"]["profit"]["new"] == -200.0
    assert cuts["evaluation"] == {"viability": "Low", "risk": "High", "verdict": "Unfavorable"}

    assert result["best_scenario"] == "Growth"
    assert result["comparison"]["revenue_range"] == {"min": 7500.0, "max": 11000.0}
    assert result["comparison"]["margin_range"] == {"min": -2.67, "max": 25.45}


def test_calculate_scenarios_first_scenario_wins_ties(base_month):
    same = {"revenue_change": 5, "expense_changes": {}}
    result = calculate_scenarios(base_month, [{"name": "First", **same}, {"name": "Second", **same}])

    assert result["best_scenario"] == "First"


def test_calculate_scenarios_ignores_unknown_expense_keys(base_month):
    result = calculate_scenarios(
        base_month, [{"name": "Travel", "revenue_change": 0, "expense_changes": {"travel": 50}}]
    )
    scenario = result["scenarios"][0]

    assert scenario["applied_changes"]["expenses"] == {}
    assert scenario["results"]["expenses"]["new"] == 8000.0
    assert scenario["evaluation"]["verdict"] == "Unfavorable"


def test_calculate_scenarios_requires_a_scenario(base_month):
    with pytest.raises(AnalysisInputError):
        calculate_scenarios(base_month, [])


def test_what_if_uses_window_average():
    kpis = build_kpis(
        [
            month_row(date(2025, 1, 1), 900, costs=500),
            month_row(date(2025, 2, 1), 1000, costs=600),
            month_row(date(2025, 3, 1), 1100, costs=700),
        ]
    )

    result = what_if(kpis, revenue_change=10, expense_changes={"costs": -10})
    scenario = result["scenarios"][0]

    assert result["window"] == {"months": 3, "from": "2025-01", "to": "2025-03"}
    assert result["base"]["revenue"] == 1000.0
    assert result["base"]["expenses"] == 600.0
    assert scenario["results"]["revenue"]["new"] == 1100.0
    assert scenario["results"]["expenses"]["new"] == 540.0
    assert scenario["results"]["margin"]["new"] == 50.91


def test_what_if_requires_data():
    with pytest.raises(InsufficientDataError):
        what_if([], revenue_change=0, expense_changes={})


def test_company_decisions(struggling_quarter):
    decisions = company_decisions(struggling_quarter[:1])

    assert [d["kpi"] for d in decisions] == ["net_margin_pct", "revenue_mom_pct", "pct_personnel", "pct_marketing"]
    assert all(d["month"] == "2025-03" for d in decisions)


# --- Personal finances ---


@pytest.fixture
def personal_transactions():
    # Newest first, as read from the store
    return [
        {"date": date(2025, 5, 15), "type": "expense", "amount": Decimal("200.00"), "category": "Food", "description": "Groceries"},
        {"date": date(2025, 5, 1), "type": "income", "amount": Decimal("3000.00"), "category": "Salary", "description": None},
        {"date": date(2025, 4, 28), "type": "expense", "amount": Decimal("500.00"), "category": "Rent", "description": None},
        {"date": date(2025, 4, 10), "type": "expense", "amount": Decimal("100.00"), "category": None, "description": None},
        {"date": date(2025, 4, 1), "type": "income", "amount": Decimal("2500.00"), "category": "Salary", "description": None},
    ]


def test_summarize_personal(personal_transactions):
    summary = summarize_personal(personal_transactions, today=date(2025, 5, 20))

    assert summary["overall"] == {
        "total_income": 5500.0,
        "total_expense": 800.0,
        "balance": 4700.0,
        "transactions_analyzed": 5,
    }
    assert summary["current_month"] == {"income": 3000.0, "expense": 200.0, "balance": 2800.0}
    assert summary["expenses_by_category"] == {"Food": 200.0, "Rent": 500.0, "Uncategorized": 100.0}
    assert [c["category"] for c in summary["top_categories"]] == ["Rent", "Food", "Uncategorized"]
    assert summary["recent_transactions"][0]["date"] == "2025-05-15"


def test_summarize_personal_empty():
    summary = summarize_personal([], today=date(2025, 5, 20))

    assert summary["overall"]["balance"] == 0.0
    assert summary["top_categories"] == []
    assert personal_recommendations(summary) == []


def test_personal_recommendations(personal_transactions):
    summary = summarize_personal(personal_transactions, today=date(2025, 5, 20))

    recommendations = personal_recommendations(summary)

    assert recommendations[0].startswith("Great job!")
    assert recommendations[1] == "Your largest expense is Rent: $500.00"
    assert recommendations[2].startswith("Consider investing")


def test_personal_recommendations_negative_month():
    transactions = [
        {"date": date(2025, 5, 3), "type": "expense", "amount": Decimal("900"), "category": "Travel", "description": None},
        {"date": date(2025, 5, 2), "type": "income", "amount": Decimal("400"), "category": None, "description": None},
    ]
    summary = summarize_personal(transactions, today=date(2025, 5, 20))

    recommendations = personal_recommendations(summary)

    assert recommendations[0].startswith("Your monthly balance is negative")
    assert len(recommendations) == 2
