"""SQLAlchemy ORM models for companies, investor accounts and their ledgers"""

import uuid
from sqlalchemy import (
    Column,
    Text,
    Boolean,
    Numeric,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(18, 2)
RATE = Numeric(9, 4)


class CompanyRecord(Base):
    """Company grouping investor accounts"""

    __tablename__ = "company"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False, unique=True)
    default_rate = Column(RATE, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    accounts = relationship("InvestorAccountRecord", back_populates="company")


class InvestorAccountRecord(Base):
    """Investor account; current_balance is a cache rewritten on every save"""

    __tablename__ = "investor_account"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey("company.id"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    opening_rate = Column(RATE, nullable=False)
    reinvesting = Column(Boolean, nullable=False, default=True)
    start_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    current_balance = Column(MONEY, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    company = relationship("CompanyRecord", back_populates="accounts")
    entries = relationship(
        "LedgerEntryRecord",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="LedgerEntryRecord.sequence",
    )


class LedgerEntryRecord(Base):
    """One ledger transaction; (entry_date, sequence) reproduces the original order"""

    __tablename__ = "ledger_entry"
    __table_args__ = (UniqueConstraint("account_id", "sequence", name="uq_ledger_entry_account_sequence"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(
        UUID(as_uuid=True), ForeignKey("investor_account.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    entry_date = Column(Date, nullable=False)
    kind = Column(Text, nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(Text, nullable=False, default="")
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("InvestorAccountRecord", back_populates="entries")


class TransactionRevisionRecord(Base):
    """Before/after snapshot of an edited or deleted entry (written only when enabled)"""

    __tablename__ = "transaction_revision"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(
        UUID(as_uuid=True), ForeignKey("investor_account.id", ondelete="CASCADE"), nullable=False, index=True
    )
    operation = Column(Text, nullable=False)  # edit | delete
    sequence = Column(Integer, nullable=False)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
