from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.sql import CompanyMonthlyDB, PersonalTransactionDB
from app.services.metrics import CompanyKPI, build_kpis


class AnalyticsService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_company_kpis(self, company_id: str, months: int = 6) -> list[CompanyKPI]:
        """
        Returns the latest `months` KPI rows, newest first.

        One extra older month is read so the oldest returned row still gets
        its month-over-month revenue change.
        """
        stmt = (
            select(
                CompanyMonthlyDB.month,
                CompanyMonthlyDB.revenue,
                CompanyMonthlyDB.infrastructure,
                CompanyMonthlyDB.personnel,
                CompanyMonthlyDB.marketing,
                CompanyMonthlyDB.services,
                CompanyMonthlyDB.costs,
            )
            .where(CompanyMonthlyDB.company_id == company_id)
            .order_by(desc(CompanyMonthlyDB.month))
            .limit(months + 1)
        )

        result = await self.session.execute(stmt)
        rows = result.mappings().all()

        kpis = build_kpis(reversed(rows))
        kpis.reverse()
        return kpis[:months]

    async def get_company_history(self, company_id: str, months: int = 12) -> list[CompanyKPI]:
        """Same rows as get_company_kpis, oldest first (forecast input)."""
        kpis = await self.get_company_kpis(company_id, months)
        return list(reversed(kpis))

    async def get_personal_transactions(self, user_id: int, limit: int | None = None):
        """Personal transactions, newest first."""
        stmt = (
            select(
                PersonalTransactionDB.date,
                PersonalTransactionDB.type,
                PersonalTransactionDB.amount,
                PersonalTransactionDB.category,
                PersonalTransactionDB.description,
            )
            .where(PersonalTransactionDB.user_id == user_id)
            .order_by(desc(PersonalTransactionDB.date), desc(PersonalTransactionDB.id))
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return result.mappings().all()
