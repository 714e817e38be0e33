"""Pydantic schemas for API request/response validation"""

import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from investor_ledger.domain.models import (
    Company,
    EditScope,
    InterestPreview,
    InvestorAccount,
    PeriodSummary,
    Statement,
    TransactionKind,
    WeightedRate,
)
from investor_ledger.domain.ledger import sort_transactions
from investor_ledger.utils.money import round_money


def money(value: Decimal) -> str:
    """Presentation rounding to cents"""
    return str(round_money(value))


class CompanyCreateRequest(BaseModel):
    """Request body for POST /v1/companies"""

    name: str = Field(..., min_length=1, description="Company name (unique)")
    default_rate: Optional[Decimal] = Field(None, description="Rate seeded into new accounts, percent p.a.")


class CompanyResponse(BaseModel):
    company_id: str
    name: str
    default_rate: str
    is_active: bool

    @classmethod
    def from_domain(cls, company: Company) -> "CompanyResponse":
        return cls(
            company_id=company.id,
            name=company.name,
            default_rate=money(company.default_rate),
            is_active=company.is_active,
        )


class AccountSummary(BaseModel):
    """Account line in a company listing"""

    account_id: str
    name: str
    current_balance: str
    current_rate: str
    reinvesting: bool


class CompanyDetailResponse(CompanyResponse):
    accounts: List[AccountSummary] = []


class AccountCreateRequest(BaseModel):
    """Request body for POST /v1/accounts"""

    company_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, description="Investor name")
    initial_investment: Decimal = Field(..., description="Starting principal")
    start_date: str = Field(..., description="YYYY-MM-DD or DD-MMM-YYYY")
    interest_rate: Optional[Decimal] = Field(None, description="Percent p.a.; defaults to the company rate")
    reinvesting: bool = True
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class TransactionSchema(BaseModel):
    """Ledger entry as returned to clients; index is its position in date order"""

    index: int
    sequence: int
    date: datetime.date
    kind: TransactionKind
    amount: str
    description: str
    metadata: Dict[str, Any] = {}


class AccountResponse(BaseModel):
    """Account snapshot after a read or a successful mutation"""

    account_id: str
    company_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    opening_rate: str
    current_rate: str
    reinvesting: bool
    start_date: datetime.date
    is_active: bool
    current_balance: str
    transactions: List[TransactionSchema]

    @classmethod
    def from_domain(cls, account: InvestorAccount) -> "AccountResponse":
        return cls(
            account_id=account.id,
            company_id=account.company_id,
            name=account.name,
            email=account.email,
            phone=account.phone,
            address=account.address,
            opening_rate=money(account.opening_rate),
            current_rate=money(account.current_rate),
            reinvesting=account.reinvesting,
            start_date=account.start_date,
            is_active=account.is_active,
            current_balance=money(account.current_balance),
            transactions=[
                TransactionSchema(
                    index=index,
                    sequence=txn.sequence,
                    date=txn.date,
                    kind=txn.kind,
                    amount=money(txn.amount),
                    description=txn.description,
                    metadata=txn.metadata,
                )
                for index, txn in enumerate(sort_transactions(account.transactions))
            ],
        )


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/accounts/{account_id}/transactions"""

    kind: TransactionKind
    date: str = Field(..., description="YYYY-MM-DD or DD-MMM-YYYY")
    amount: Decimal
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class TransactionUpdateRequest(BaseModel):
    """Request body for PUT /v1/accounts/{account_id}/transactions/{index}"""

    kind: Optional[TransactionKind] = None
    date: Optional[str] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    scope: EditScope = EditScope.SINGLE


class RateChangeRequest(BaseModel):
    """Request body for POST /v1/accounts/{account_id}/rate-changes"""

    new_rate: Decimal
    effective_date: str
    reason: Optional[str] = None
    recalculate_future: bool = True


class QuarterlyInterestRequest(BaseModel):
    """Request body for POST /v1/accounts/{account_id}/interest/quarterly"""

    quarter: str = Field(..., pattern=r"^[Qq][1-4]$")
    year: int = Field(..., ge=1900, le=2200)
    reinvest: Optional[bool] = Field(None, description="Defaults to the account's reinvesting flag")


class StatementRowSchema(BaseModel):
    date: datetime.date
    kind: TransactionKind
    description: str
    amount: str
    balance_after: Optional[str] = None


class PeriodSummarySchema(BaseModel):
    start_date: datetime.date
    end_date: datetime.date
    opening_balance: str
    investments: str
    interest_earned: str
    withdrawals: str
    ending_balance: str

    @classmethod
    def from_domain(cls, summary: PeriodSummary) -> "PeriodSummarySchema":
        return cls(
            start_date=summary.start,
            end_date=summary.end,
            opening_balance=money(summary.opening_balance),
            investments=money(summary.investments),
            interest_earned=money(summary.interest_earned),
            withdrawals=money(summary.withdrawals),
            ending_balance=money(summary.ending_balance),
        )


class StatementResponse(BaseModel):
    """Response for GET /v1/accounts/{account_id}/statement"""

    account_id: str
    name: str
    reinvesting: bool
    current_rate: str
    current_balance: str
    lifetime_interest: str
    yearly_interest: str
    summary: PeriodSummarySchema
    rows: List[StatementRowSchema]

    @classmethod
    def from_domain(cls, statement: Statement) -> "StatementResponse":
        return cls(
            account_id=statement.account.id,
            name=statement.account.name,
            reinvesting=statement.account.reinvesting,
            current_rate=money(statement.current_rate),
            current_balance=money(statement.current_balance),
            lifetime_interest=money(statement.lifetime_interest),
            yearly_interest=money(statement.yearly_interest),
            summary=PeriodSummarySchema.from_domain(statement.summary),
            rows=[
                StatementRowSchema(
                    date=row.transaction.date,
                    kind=row.transaction.kind,
                    description=row.transaction.description,
                    amount=money(row.transaction.amount),
                    balance_after=money(row.balance_after) if row.balance_after is not None else None,
                )
                for row in statement.rows
            ],
        )


class WeightedRateSchema(BaseModel):
    quarter_name: str
    quarter_start: datetime.date
    quarter_end: datetime.date
    change_date: datetime.date
    old_rate: str
    new_rate: str
    days_before_change: int
    days_after_change: int
    total_days: int
    weighted_rate: str

    @classmethod
    def from_domain(cls, weighted: WeightedRate) -> "WeightedRateSchema":
        return cls(
            quarter_name=weighted.quarter_name,
            quarter_start=weighted.quarter_start,
            quarter_end=weighted.quarter_end,
            change_date=weighted.change_date,
            old_rate=money(weighted.old_rate),
            new_rate=money(weighted.new_rate),
            days_before_change=weighted.days_before_change,
            days_after_change=weighted.days_after_change,
            total_days=weighted.total_days,
            weighted_rate=money(weighted.weighted_rate),
        )


class RateOutlookResponse(BaseModel):
    """Response for GET /v1/accounts/{account_id}/rate-outlook"""

    account_id: str
    current_rate: str
    upcoming: Optional[WeightedRateSchema] = None


class InterestPreviewResponse(BaseModel):
    """Response for GET /v1/accounts/{account_id}/interest/preview"""

    account_id: str
    quarter_name: str
    quarter_start: datetime.date
    quarter_end: datetime.date
    balance_at_quarter_start: str
    rate: str
    flat_quarterly: str
    day_counted: str
    difference: str

    @classmethod
    def from_domain(cls, account_id: str, preview: InterestPreview) -> "InterestPreviewResponse":
        return cls(
            account_id=account_id,
            quarter_name=preview.quarter_name,
            quarter_start=preview.quarter_start,
            quarter_end=preview.quarter_end,
            balance_at_quarter_start=money(preview.balance_at_quarter_start),
            rate=money(preview.rate),
            flat_quarterly=money(preview.flat_quarterly),
            day_counted=money(preview.day_counted),
            difference=money(preview.flat_quarterly - preview.day_counted),
        )
