"""Unit tests for the account mutation service"""

import pytest
from datetime import date
from decimal import Decimal
from investor_ledger.domain.accounts import (
    add_transaction,
    archive_account,
    calculate_quarterly_interest,
    change_rate,
    create_account,
    delete_transaction,
    edit_transaction,
)
from investor_ledger.domain.exceptions import (
    InvalidAmountError,
    InvalidDateError,
    InvariantViolationError,
    NotFoundError,
)
from investor_ledger.domain.ledger import compute_balance, sort_transactions
from investor_ledger.domain.models import AccountDetails, Company, EditScope, InterestMethod, TransactionKind


def _by_kind(account, kind):
    return [t for t in sort_transactions(account.transactions) if t.kind is kind]


def test_create_account_seeds_initial_transaction(account):
    assert len(account.transactions) == 1
    initial = account.transactions[0]
    assert initial.kind is TransactionKind.INITIAL
    assert initial.date == date(2023, 1, 1)
    assert initial.amount == Decimal("100000")
    assert account.opening_rate == Decimal("12")
    assert account.current_balance == Decimal("100000")


def test_create_account_uses_explicit_rate(company):
    account = create_account(
        company,
        AccountDetails(
            name="Sam Saver",
            initial_investment="2500.50",
            start_date="15-Mar-2023",
            interest_rate=Decimal("9.5"),
            reinvesting=False,
        ),
    )
    assert account.opening_rate == Decimal("9.5")
    assert account.start_date == date(2023, 3, 15)
    assert account.reinvesting is False


def test_create_account_rejects_archived_company(company):
    archived = Company(id=company.id, name=company.name, default_rate=company.default_rate, is_active=False)
    with pytest.raises(InvariantViolationError):
        create_account(archived, AccountDetails(name="X", initial_investment="10", start_date="2023-01-01"))


def test_create_account_rejects_bad_input(company):
    with pytest.raises(InvalidAmountError):
        create_account(company, AccountDetails(name="X", initial_investment="-10", start_date="2023-01-01"))
    with pytest.raises(InvalidDateError):
        create_account(company, AccountDetails(name="X", initial_investment="10", start_date="2023-02-30"))


def test_add_investment_reprices_later_interest(account):
    """Posting principal before an existing accrual reprices that accrual"""
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-01-01", "3000")
    account = add_transaction(
        account,
        TransactionKind.INTEREST_EARNED,
        "2023-03-31",
        "3090",
        description="Q1 2023 Interest Earned/Reinvested @ 12.00%",
    )
    assert account.current_balance == Decimal("106090")

    account = add_transaction(account, TransactionKind.INVESTMENT, "01-Feb-2023", "50000")

    march = [t for t in _by_kind(account, TransactionKind.INTEREST_EARNED) if t.date == date(2023, 3, 31)][0]
    assert march.amount == Decimal("4590.00")
    assert account.current_balance == Decimal("157590.00")


def test_add_transaction_before_initial_is_rejected(account):
    with pytest.raises(InvariantViolationError):
        add_transaction(account, TransactionKind.INVESTMENT, "2022-12-31", "100")


def test_add_transaction_rejects_rate_change_kind(account):
    with pytest.raises(InvariantViolationError):
        add_transaction(account, TransactionKind.RATE_CHANGE, "2023-02-01", "0")


def test_add_transaction_rejects_unknown_kind(account):
    with pytest.raises(InvariantViolationError):
        add_transaction(account, "dividend", "2023-02-01", "10")


def test_same_day_withdrawals_respect_remaining_balance(company):
    """
    $200,000 before 15-Jun, then $20,000 out: a second same-day withdrawal of
    $190,000 fails, $180,000 succeeds.
    """
    account = create_account(
        company,
        AccountDetails(name="Pat", initial_investment="200000", start_date="2023-01-01"),
    )
    account = add_transaction(account, TransactionKind.WITHDRAWAL, "2023-06-15", "20000")

    with pytest.raises(InvalidAmountError) as exc_info:
        add_transaction(account, TransactionKind.WITHDRAWAL, "2023-06-15", "190000")
    assert "$180,000.00" in exc_info.value.message

    account = add_transaction(account, TransactionKind.WITHDRAWAL, "2023-06-15", "180000")
    assert account.current_balance == Decimal("0")


def test_withdrawal_checked_against_balance_on_its_date(account):
    """A later investment does not fund an earlier withdrawal"""
    account = add_transaction(account, TransactionKind.INVESTMENT, "2023-06-01", "50000")
    with pytest.raises(InvalidAmountError):
        add_transaction(account, TransactionKind.WITHDRAWAL, "2023-05-01", "120000")


def test_delete_sole_initial_is_rejected_and_account_unchanged(account):
    before = list(account.transactions)
    with pytest.raises(InvariantViolationError):
        delete_transaction(account, 0)
    assert account.transactions == before
    assert compute_balance(account.transactions) == Decimal("100000")


def test_delete_unknown_index(account):
    with pytest.raises(NotFoundError):
        delete_transaction(account, 5)


def test_delete_uncovering_later_withdrawal_is_rejected(account):
    account = add_transaction(account, TransactionKind.INVESTMENT, "2023-02-01", "50000")
    account = add_transaction(account, TransactionKind.WITHDRAWAL, "2023-06-01", "140000")
    before = list(account.transactions)

    with pytest.raises(InvalidAmountError) as exc_info:
        delete_transaction(account, 1)
    assert "$100,000.00" in exc_info.value.message
    assert account.transactions == before


def test_fee_uncovering_later_withdrawal_is_rejected(account):
    account = add_transaction(account, TransactionKind.WITHDRAWAL, "2023-06-01", "90000")

    with pytest.raises(InvalidAmountError):
        add_transaction(account, TransactionKind.FEE, "2023-03-01", "20000")
    with pytest.raises(InvalidAmountError):
        add_transaction(account, TransactionKind.ADJUSTMENT, "2023-03-01", "-10000.01")

    account = add_transaction(account, TransactionKind.FEE, "2023-03-01", "10000")
    assert account.current_balance == Decimal("0")


def test_delete_investment_reprices_interest(account):
    account = add_transaction(account, TransactionKind.INVESTMENT, "2023-02-01", "50000")
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-03-31", "4500")

    account = delete_transaction(account, 1)

    interest = _by_kind(account, TransactionKind.INTEREST_EARNED)[0]
    assert interest.amount == Decimal("3000.00")
    assert _by_kind(account, TransactionKind.INVESTMENT) == []


def test_edit_single_scope_leaves_other_entries(account):
    account = add_transaction(account, TransactionKind.INVESTMENT, "2023-02-01", "50000")
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-03-31", "4500")

    edited = edit_transaction(account, 1, {"amount": "60000"}, EditScope.SINGLE)

    investment = _by_kind(edited, TransactionKind.INVESTMENT)[0]
    assert investment.amount == Decimal("60000")
    assert investment.metadata["edited"] is True
    assert investment.sequence == _by_kind(account, TransactionKind.INVESTMENT)[0].sequence
    assert _by_kind(edited, TransactionKind.INTEREST_EARNED)[0].amount == Decimal("4500")


def test_edit_this_and_future_uses_day_counted_method(account):
    account = add_transaction(account, TransactionKind.INVESTMENT, "2023-02-01", "50000")
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-03-31", "4500")

    edited = edit_transaction(account, 1, {"amount": "60000"}, EditScope.THIS_AND_FUTURE)

    interest = _by_kind(edited, TransactionKind.INTEREST_EARNED)[0]
    # 160,000 * 12% * 31 / 365
    assert interest.amount == Decimal("1630.68")
    assert interest.metadata["method"] == InterestMethod.DAY_COUNTED.value


def test_edit_can_move_entry_in_time(account):
    account = add_transaction(account, TransactionKind.INVESTMENT, "2023-02-01", "50000")
    edited = edit_transaction(account, 1, {"date": "2023-05-01"})
    assert _by_kind(edited, TransactionKind.INVESTMENT)[0].date == date(2023, 5, 1)


def test_edit_moving_investment_later_reprices_skipped_interest(account):
    """Interest between the old and new dates loses the moved principal"""
    account = add_transaction(account, TransactionKind.INVESTMENT, "2023-02-01", "50000")
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-03-31", "4500")

    edited = edit_transaction(account, 1, {"date": "2023-05-01"}, EditScope.THIS_AND_FUTURE)

    march = _by_kind(edited, TransactionKind.INTEREST_EARNED)[0]
    # 100,000 * 12% * 31 / 365
    assert march.amount == Decimal("1019.18")
    assert march.metadata["recalculated"] is True
    assert _by_kind(edited, TransactionKind.INVESTMENT)[0].amount == Decimal("50000")


def test_edit_interest_entry_keeps_its_own_amount(account):
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-01-31", "2000")
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-02-28", "900")

    edited = edit_transaction(account, 1, {"amount": "5000"}, EditScope.THIS_AND_FUTURE)

    january, february = _by_kind(edited, TransactionKind.INTEREST_EARNED)
    assert january.amount == Decimal("5000")
    # 105,000 * 12% * 28 / 365
    assert february.amount == Decimal("966.58")


def test_edit_uncovering_later_withdrawal_is_rejected(account):
    account = add_transaction(account, TransactionKind.INVESTMENT, "2023-02-01", "50000")
    account = add_transaction(account, TransactionKind.WITHDRAWAL, "2023-06-01", "140000")

    with pytest.raises(InvalidAmountError) as exc_info:
        edit_transaction(account, 1, {"amount": "30000"})
    assert "$140,000.00" in exc_info.value.message
    assert "01-Jun-2023" in exc_info.value.message


def test_edit_withdrawal_beyond_balance_is_rejected(account):
    account = add_transaction(account, TransactionKind.WITHDRAWAL, "2023-02-01", "1000")
    with pytest.raises(InvalidAmountError):
        edit_transaction(account, 1, {"amount": "100001"})


def test_change_rate_reprices_future_interest(account):
    account = add_transaction(
        account,
        TransactionKind.INTEREST_EARNED,
        "2023-06-30",
        "3000",
        description="Q2 2023 Interest Earned/Reinvested @ 12.00%",
    )

    account = change_rate(account, "10", "01-Apr-2023", reason="Board decision")

    rate_change = _by_kind(account, TransactionKind.RATE_CHANGE)[0]
    assert rate_change.amount == Decimal("0")
    assert rate_change.metadata["old_rate"] == "12"
    assert rate_change.metadata["new_rate"] == "10"
    assert rate_change.description == "RATE CHANGE: 12.00% → 10.00% effective 01-Apr-2023 - Board decision"

    interest = _by_kind(account, TransactionKind.INTEREST_EARNED)[0]
    assert interest.amount == Decimal("2500.00")
    assert interest.description == "Q2 2023 Interest Earned/Reinvested @ 10.00%"
    assert account.rate_on(date(2023, 3, 31)) == Decimal("12")
    assert account.rate_on(date(2023, 4, 1)) == Decimal("10")


def test_change_rate_without_recalculation_keeps_balance(account):
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-06-30", "3000")
    balance_before = compute_balance(account.transactions)

    account = change_rate(account, "10", "2023-04-01", recalculate_future=False)

    assert compute_balance(account.transactions) == balance_before
    assert _by_kind(account, TransactionKind.INTEREST_EARNED)[0].amount == Decimal("3000")


def test_change_rate_uncovering_later_withdrawal_is_rejected(account):
    """The withdrawal relies on interest that a zero rate would erase"""
    account = add_transaction(account, TransactionKind.INTEREST_EARNED, "2023-03-31", "3000")
    account = add_transaction(account, TransactionKind.WITHDRAWAL, "2023-06-01", "103000")

    with pytest.raises(InvalidAmountError):
        change_rate(account, "0", "2023-02-01")

    assert change_rate(account, "0", "2023-02-01", recalculate_future=False).current_balance == Decimal("0")


def test_change_rate_rejects_out_of_range_rate(account):
    with pytest.raises(InvalidAmountError):
        change_rate(account, "150", "2023-04-01")


def test_quarterly_interest_reinvested(account):
    account = calculate_quarterly_interest(account, "Q2", 2023)

    interest = _by_kind(account, TransactionKind.INTEREST_EARNED)
    assert len(interest) == 1
    assert interest[0].date == date(2023, 6, 30)
    assert interest[0].amount == Decimal("3000.00")
    assert interest[0].description == "Q2 2023 Interest Earned/Reinvested @ 12.00%"
    assert interest[0].metadata["quarter"] == "Q2 2023"
    assert _by_kind(account, TransactionKind.INTEREST_PAID) == []
    assert account.current_balance == Decimal("103000.00")


def test_quarterly_interest_paid_out(account):
    account = calculate_quarterly_interest(account, 2, 2023, reinvest=False)

    assert _by_kind(account, TransactionKind.INTEREST_EARNED)[0].description == "Q2 2023 Interest Earned @ 12.00%"
    paid = _by_kind(account, TransactionKind.INTEREST_PAID)
    assert len(paid) == 1
    assert paid[0].amount == Decimal("3000.00")
    assert account.current_balance == Decimal("100000.00")
    assert account.reinvesting is False


def test_quarterly_interest_remembers_reinvest_choice(account):
    assert account.reinvesting is True
    account = calculate_quarterly_interest(account, "Q2", 2023, reinvest=False)
    account = calculate_quarterly_interest(account, "Q3", 2023)

    assert _by_kind(account, TransactionKind.INTEREST_EARNED)[1].description == "Q3 2023 Interest Earned @ 12.00%"
    assert len(_by_kind(account, TransactionKind.INTEREST_PAID)) == 2


def test_quarterly_interest_twice_is_rejected(account):
    account = calculate_quarterly_interest(account, "Q2", 2023)
    with pytest.raises(InvariantViolationError):
        calculate_quarterly_interest(account, "Q2", 2023)


def test_quarterly_interest_without_opening_balance(account):
    """Account opened on 01-Jan has no balance before Q1 starts"""
    with pytest.raises(InvalidAmountError):
        calculate_quarterly_interest(account, "Q1", 2023)


def test_archived_account_rejects_mutations(account):
    archived = archive_account(account)
    assert archived.is_active is False
    with pytest.raises(InvariantViolationError):
        add_transaction(archived, TransactionKind.INVESTMENT, "2023-02-01", "10")
