from sqlalchemy import Column, Integer, Date, DateTime, Numeric, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class PersonalUserDB(Base):
    __tablename__ = "personal_users"

    # Customer number
    id = Column(Integer, primary_key=True, index=True, autoincrement=False)
    name = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    transactions = relationship("PersonalTransactionDB", back_populates="user")


class CompanyDB(Base):
    __tablename__ = "companies"

    id = Column(Text, primary_key=True, index=True)
    name = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    months = relationship("CompanyMonthlyDB", back_populates="company")


class PersonalTransactionDB(Base):
    __tablename__ = "personal_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("personal_users.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    type = Column(Text, nullable=False)  # 'income' or 'expense'
    amount = Column(Numeric(12, 2), nullable=False)

    category = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    user = relationship("PersonalUserDB", back_populates="transactions")


class CompanyMonthlyDB(Base):
    __tablename__ = "company_monthly"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Text, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    # First day of the month
    month = Column(Date, nullable=False)

    revenue = Column(Numeric(14, 2), nullable=False, default=0)

    # Expense breakdown; total expenses are derived from these
    infrastructure = Column(Numeric(14, 2), nullable=False, default=0)
    personnel = Column(Numeric(14, 2), nullable=False, default=0)
    marketing = Column(Numeric(14, 2), nullable=False, default=0)
    services = Column(Numeric(14, 2), nullable=False, default=0)
    costs = Column(Numeric(14, 2), nullable=False, default=0)

    company = relationship("CompanyDB", back_populates="months")

    __table_args__ = (UniqueConstraint("company_id", "month", name="uq_company_month"),)
