"""Golden values for the per-type valuators."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from factories import investment, tx

from wealthtrack.models import InvestmentType, TransactionKind
from wealthtrack.services.valuation import (
    VALUATORS,
    cost_basis,
    price_symbol,
    units_held,
    value_investment,
)


def test_every_investment_type_has_a_valuator():
    assert set(VALUATORS) == set(InvestmentType)


def test_fixed_deposit_compounds_principal_parameter():
    fd = investment(
        InvestmentType.FIXED_DEPOSIT,
        date(2020, 1, 1),
        principal_minor=1_000_000,
        interest_rate=Decimal("10"),
        compounding="yearly",
    )
    # 731 days is 2.0014 years of 365.25 days
    value = value_investment(fd, [], date(2022, 1, 1))
    assert abs(value - 1_210_158) <= 1
    assert cost_basis(fd, [], date(2022, 1, 1)) == 1_000_000


def test_fixed_deposit_stops_growing_at_maturity():
    fd = investment(
        InvestmentType.FIXED_DEPOSIT,
        date(2020, 1, 1),
        principal_minor=500_000,
        interest_rate=Decimal("7"),
        maturity_date=date(2021, 1, 1),
    )
    at_maturity = value_investment(fd, [], date(2021, 1, 1))
    assert at_maturity > 500_000
    assert value_investment(fd, [], date(2023, 6, 30)) == at_maturity


def test_fixed_deposit_uses_deposit_transactions_over_parameters():
    fd = investment(InvestmentType.FIXED_DEPOSIT, date(2024, 1, 1), principal_minor=999_999)
    history = [
        tx(TransactionKind.DEPOSIT, date(2024, 1, 1), 100_000),
        tx(TransactionKind.WITHDRAWAL, date(2024, 2, 1), -40_000),
    ]
    assert value_investment(fd, history, date(2024, 3, 1)) == 60_000


def test_recurring_deposit_synthesises_monthly_installments():
    rd = investment(InvestmentType.RECURRING_DEPOSIT, date(2024, 1, 31), installment_minor=1_000)
    assert value_investment(rd, [], date(2024, 4, 30)) == 4_000
    assert cost_basis(rd, [], date(2024, 4, 29)) == 3_000


def test_recurring_deposit_installments_compound_independently():
    rd = investment(
        InvestmentType.RECURRING_DEPOSIT,
        date(2023, 1, 1),
        installment_minor=10_000,
        interest_rate=Decimal("6"),
        compounding="monthly",
    )
    value = value_investment(rd, [], date(2023, 12, 31))
    assert 123_000 < value < 125_000


def test_fund_value_uses_supplied_price():
    fund = investment(InvestmentType.EQUITY_FUND, date(2024, 1, 1), symbol="NIFTYBEES")
    history = [
        tx(TransactionKind.BUY, date(2024, 1, 5), 100_000, units="10", unit_price_minor="10000"),
        tx(TransactionKind.SELL, date(2024, 2, 5), 48_000, units="4", unit_price_minor="12000"),
    ]
    assert units_held(history, date(2024, 3, 1)) == Decimal("6")
    assert value_investment(fund, history, date(2024, 3, 1), Decimal("15000")) == 90_000


def test_fund_value_falls_back_to_last_transaction_price():
    shares = investment(InvestmentType.SHARES, date(2024, 1, 1), symbol="INFY")
    history = [
        tx(TransactionKind.BUY, date(2024, 1, 5), 150_000, units="10", unit_price_minor="15000"),
        tx(TransactionKind.BUY, date(2024, 2, 5), 160_000, units="10", unit_price_minor="16000"),
    ]
    assert value_investment(shares, history, date(2024, 3, 1)) == 320_000
    assert value_investment(shares, history, date(2024, 1, 31)) == 150_000


def test_fund_without_units_is_valued_at_cost_basis():
    fund = investment(InvestmentType.DEBT_FUND, date(2024, 1, 1))
    history = [tx(TransactionKind.BUY, date(2024, 1, 5), 250_000)]
    assert value_investment(fund, history, date(2024, 6, 30)) == 250_000


def test_bonus_units_count_towards_holdings():
    shares = investment(InvestmentType.SHARES, date(2024, 1, 1), symbol="TCS")
    history = [
        tx(TransactionKind.BUY, date(2024, 1, 5), 100_000, units="10", unit_price_minor="10000"),
        tx(TransactionKind.BONUS, date(2024, 2, 5), 0, units="10"),
    ]
    assert value_investment(shares, history, date(2024, 3, 1), Decimal("6000")) == 120_000


def test_gold_applies_purity_factor_to_spot_price():
    gold = investment(InvestmentType.GOLD, date(2024, 1, 1), units=Decimal("10"), purity="22K")
    assert value_investment(gold, [], date(2024, 6, 30), Decimal("600000")) == 5_500_000
    assert price_symbol(gold, "XAU-INR-GRAM") == "XAU-INR-GRAM"


def test_gold_without_price_falls_back_to_cost_basis():
    gold = investment(InvestmentType.GOLD, date(2024, 1, 1), units=Decimal("10"), principal_minor=4_500_000)
    assert value_investment(gold, [], date(2024, 6, 30)) == 4_500_000


def test_loan_outstanding_is_principal_less_repayments():
    loan = investment(InvestmentType.LOAN, date(2024, 1, 1), principal_minor=1_000_000)
    history = [
        tx(TransactionKind.DEPOSIT, date(2024, 2, 1), 200_000),
        tx(TransactionKind.DEPOSIT, date(2024, 3, 1), 100_000),
        tx(TransactionKind.DEPOSIT, date(2024, 4, 1), 100_000),
    ]
    assert value_investment(loan, history, date(2024, 3, 31)) == 700_000
    assert value_investment(loan, [tx(TransactionKind.DEPOSIT, date(2024, 2, 1), 5_000_000)], date(2024, 3, 1)) == 0


def test_loan_without_repayments_follows_emi_schedule():
    loan = investment(
        InvestmentType.LOAN,
        date(2024, 1, 10),
        principal_minor=120_000,
        installment_minor=10_000,
        interest_rate=Decimal("0"),
    )
    assert value_investment(loan, [], date(2024, 4, 15)) == 90_000


def test_savings_account_balance_mode():
    savings = investment(InvestmentType.SAVINGS_ACCOUNT, date(2024, 1, 1))
    history = [
        tx(TransactionKind.DEPOSIT, date(2024, 1, 2), 5_000),
        tx(TransactionKind.WITHDRAWAL, date(2024, 1, 20), -2_000),
        tx(TransactionKind.INTEREST, date(2024, 1, 31), 10),
    ]
    assert value_investment(savings, history, date(2024, 1, 31)) == 3_000


def test_fixed_asset_appreciates_annually():
    flat = investment(
        InvestmentType.FIXED_ASSET,
        date(2020, 1, 1),
        principal_minor=10_000_000,
        appreciation_rate=Decimal("0"),
    )
    assert value_investment(flat, [], date(2024, 1, 1)) == 10_000_000
    rising = investment(
        InvestmentType.FIXED_ASSET,
        date(2020, 1, 1),
        principal_minor=10_000_000,
        appreciation_rate=Decimal("5"),
    )
    assert value_investment(rising, [], date(2024, 1, 1)) > 12_000_000


def test_expected_expense_counts_only_inside_its_window():
    expense = investment(
        InvestmentType.EXPECTED_EXPENSE,
        date(2024, 3, 1),
        principal_minor=300_000,
        maturity_date=date(2024, 12, 31),
    )
    assert value_investment(expense, [], date(2024, 2, 29)) == 0
    assert value_investment(expense, [], date(2024, 6, 30)) == 300_000
    assert value_investment(expense, [], date(2025, 1, 31)) == 0


def test_override_wins_over_computation():
    fund = investment(InvestmentType.EQUITY_FUND, date(2024, 1, 1))
    history = [tx(TransactionKind.BUY, date(2024, 1, 5), 100_000, units="10", unit_price_minor="10000")]
    assert value_investment(fund, history, date(2024, 3, 1), Decimal("1"), override=123_456) == 123_456


def test_transactions_after_as_of_are_ignored():
    savings = investment(InvestmentType.SAVINGS_ACCOUNT, date(2024, 1, 1))
    history = [
        tx(TransactionKind.DEPOSIT, date(2024, 1, 2), 5_000),
        tx(TransactionKind.DEPOSIT, date(2024, 5, 2), 7_000),
    ]
    assert value_investment(savings, history, date(2024, 3, 31)) == 5_000
