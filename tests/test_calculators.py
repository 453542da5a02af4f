import random
from decimal import Decimal

import pytest

from stockcoach.calculators import (
    DividendFrequency,
    compare_dca_vs_lump_sum,
    compound_interest,
    dividend_income,
    dollar_cost_average,
    future_value,
    position_size,
    profit_loss,
    required_contribution,
    required_return,
    risk_reward,
    rule_of_72,
    shares_for_income,
    simulated_prices,
    stop_loss,
)


def test_profit_loss_with_commissions() -> None:
    result = profit_loss(50, 60, 100, buy_commission=10, sell_commission=10)

    assert result.total_cost == Decimal("5010.00")
    assert result.total_proceeds == Decimal("5990.00")
    assert result.gross_profit == Decimal("1000.00")
    assert result.net_profit == Decimal("980.00")
    assert result.percent_gain == Decimal("19.56")
    assert result.break_even_price == Decimal("50.20")
    assert result.profit_per_share == Decimal("9.80")


def test_profit_loss_reports_losses() -> None:
    result = profit_loss("20.50", "18", 10)

    assert result.net_profit == Decimal("-25.00")
    assert result.percent_gain == Decimal("-12.20")


@pytest.mark.parametrize(
    "args",
    [(0, 10, 1), (10, -1, 1), (10, 12, 0)],
)
def test_profit_loss_rejects_bad_inputs(args) -> None:
    with pytest.raises(ValueError):
        profit_loss(*args)


def test_negative_commission_is_rejected() -> None:
    with pytest.raises(ValueError):
        profit_loss(10, 12, 1, sell_commission=-1)


def test_position_size() -> None:
    result = position_size(50000, 2, 100, 95)

    assert result.max_risk_amount == Decimal("1000.00")
    assert result.risk_per_share == Decimal("5.00")
    assert result.shares_count == 200
    assert result.total_investment == Decimal("20000.00")
    assert result.percent_of_account == Decimal("40.00")
    assert result.potential_loss == Decimal("1000.00")


def test_position_size_rounds_shares_down() -> None:
    result = position_size(10000, 1, 33, 30)

    assert result.shares_count == 33
    assert result.potential_loss == Decimal("99.00")


@pytest.mark.parametrize(
    "args",
    [(0, 2, 100, 95), (1000, 0, 100, 95), (1000, 101, 100, 95), (1000, 2, 100, 100)],
)
def test_position_size_rejects_bad_inputs(args) -> None:
    with pytest.raises(ValueError):
        position_size(*args)


def test_stop_loss() -> None:
    assert stop_loss(10000, 1, 50, 100) == Decimal("49.00")

    with pytest.raises(ValueError):
        stop_loss(10000, 1, 50, 0)


def test_risk_reward() -> None:
    good = risk_reward(100, 95, 112)
    assert good.risk_per_share == Decimal("5.00")
    assert good.reward_per_share == Decimal("12.00")
    assert good.ratio == Decimal("2.40")
    assert good.is_good_ratio

    assert not risk_reward(100, 95, 105).is_good_ratio
    assert risk_reward(100, 95, 110).is_good_ratio


def test_risk_reward_requires_ordered_prices() -> None:
    with pytest.raises(ValueError):
        risk_reward(100, 101, 120)
    with pytest.raises(ValueError):
        risk_reward(100, 95, 100)


def test_compound_interest_monthly() -> None:
    result = compound_interest(10000, "0.08", 10, 12)

    assert result.final_amount == Decimal("22196.40")
    assert result.total_interest == Decimal("12196.40")
    assert result.effective_annual_rate == Decimal("0.0830")
    assert len(result.yearly_breakdown) == 11
    assert result.yearly_breakdown[0].balance == Decimal("10000.00")
    assert result.yearly_breakdown[-1].balance == result.final_amount


def test_compound_interest_breakdown_tracks_each_year() -> None:
    result = compound_interest(1000, "0.10", 2, 1)

    assert [year.balance for year in result.yearly_breakdown] == [
        Decimal("1000.00"),
        Decimal("1100.00"),
        Decimal("1210.00"),
    ]
    assert [year.interest_earned for year in result.yearly_breakdown] == [
        Decimal("0.00"),
        Decimal("100.00"),
        Decimal("110.00"),
    ]
    assert result.yearly_breakdown[-1].total_interest == Decimal("210.00")
    assert result.effective_annual_rate == Decimal("0.1000")


@pytest.mark.parametrize(
    "args",
    [(-1, "0.05", 1, 12), (1000, "-0.05", 1, 12), (1000, "0.05", -1, 12), (1000, "0.05", 1, 0)],
)
def test_compound_interest_rejects_bad_inputs(args) -> None:
    with pytest.raises(ValueError):
        compound_interest(*args)


def test_future_value_lump_sum() -> None:
    result = future_value(1000, 12, 1)

    assert result.future_value == Decimal("1126.83")
    assert result.total_contributions == Decimal("1000.00")
    assert result.total_interest == Decimal("126.83")
    assert result.effective_return == Decimal("12.68")
    projection = result.yearly_projections[0]
    assert projection.start_balance == Decimal("1000.00")
    assert projection.contributions == Decimal("0.00")
    assert projection.end_balance == Decimal("1126.83")


def test_future_value_with_contributions_and_no_growth() -> None:
    result = future_value(10000, 0, 20, monthly_contribution=500)

    assert result.future_value == Decimal("130000.00")
    assert result.total_interest == Decimal("0.00")
    assert len(result.yearly_projections) == 20
    assert result.yearly_projections[0].contributions == Decimal("6000.00")


def test_future_value_requires_positive_years() -> None:
    with pytest.raises(ValueError):
        future_value(1000, 8, 0)


def test_required_contribution() -> None:
    assert required_contribution(12000, 0, 0, 1) == Decimal("1000.00")
    assert required_contribution(1000, 1000, 5, 1) == Decimal("0.00")

    monthly = required_contribution(100000, 0, 6, 10)
    reached = future_value(0, 6, 10, monthly_contribution=monthly).future_value
    assert abs(reached - Decimal("100000")) < 2


def test_dollar_cost_average() -> None:
    result = dollar_cost_average(100, [10, 20])

    assert result.total_invested == Decimal("200.00")
    assert result.total_shares == Decimal("15.000")
    assert result.average_cost_per_share == Decimal("13.33")
    assert result.current_value == Decimal("300.00")
    assert result.total_return == Decimal("100.00")
    assert result.percent_return == Decimal("50.00")
    second = result.monthly_breakdown[1]
    assert second.month == 2
    assert second.shares_bought == Decimal("5.000")
    assert second.average_cost == Decimal("13.33")


@pytest.mark.parametrize("args", [(0, [10]), (100, []), (100, [10, 0])])
def test_dollar_cost_average_rejects_bad_inputs(args) -> None:
    with pytest.raises(ValueError):
        dollar_cost_average(*args)


def test_lump_sum_wins_in_rising_market() -> None:
    result = compare_dca_vs_lump_sum(200, [10, 20])

    assert result.lump_sum_value == Decimal("400.00")
    assert result.lump_sum_return == Decimal("200.00")
    assert result.lump_sum_percent_return == Decimal("100.00")
    assert result.dca_wins is False


def test_dca_wins_in_falling_market() -> None:
    result = compare_dca_vs_lump_sum(200, [20, 10])

    assert result.dca.current_value == Decimal("150.00")
    assert result.lump_sum_value == Decimal("100.00")
    assert result.dca_wins is True


def test_simulated_prices_stay_in_band() -> None:
    prices = simulated_prices(24, 50, "0.15", rng=random.Random(7))

    assert len(prices) == 24
    assert prices[0] == Decimal("50")
    assert all(Decimal("25") <= price <= Decimal("75") for price in prices)
    assert prices == simulated_prices(24, 50, "0.15", rng=random.Random(7))


def test_dividend_income_quarterly() -> None:
    result = dividend_income(100, "0.50", 100)

    assert result.annual_dividend_per_share == Decimal("2.00")
    assert result.annual_yield == Decimal("0.0200")
    assert result.annual_income == Decimal("200.00")
    assert result.monthly_income == Decimal("16.67")
    assert result.quarterly_income == Decimal("50.00")
    assert result.payments_per_year == 4


def test_dividend_income_monthly() -> None:
    result = dividend_income(100, "0.25", 10, "monthly")

    assert result.payments_per_year == 12
    assert result.annual_income == Decimal("30.00")
    assert result.monthly_income == Decimal("2.50")
    assert result.annual_yield == Decimal("0.0300")


def test_dividend_income_rejects_unknown_frequency() -> None:
    with pytest.raises(ValueError):
        dividend_income(100, "0.25", 10, "weekly")
    with pytest.raises(ValueError):
        dividend_income(0, "0.25", 10)


def test_shares_for_income() -> None:
    result = shares_for_income(100, "0.50", 500)
    assert result.shares_needed == 3000
    assert result.investment_required == Decimal("300000.00")

    rounded_up = shares_for_income(100, "0.70", 100, DividendFrequency.QUARTERLY)
    assert rounded_up.shares_needed == 429
    assert rounded_up.investment_required == Decimal("42900.00")


def test_rule_of_72() -> None:
    result = rule_of_72(8)

    assert result.years_to_double == Decimal("9.00")
    assert result.actual_years_to_double == Decimal("9.01")
    assert [point.years for point in result.doubling_schedule] == [0, 5, 10, 15, 20, 25, 30, 35]
    assert result.doubling_schedule[0].value == Decimal("1000.00")
    assert result.doubling_schedule[1].multiplier == Decimal("1.47")
    assert result.doubling_schedule[1].value == Decimal("1469.33")


def test_rule_of_72_at_the_upper_bound() -> None:
    result = rule_of_72(100)

    assert result.actual_years_to_double == Decimal("1.00")
    assert [point.years for point in result.doubling_schedule] == [0, 1, 2, 3]

    with pytest.raises(ValueError):
        rule_of_72(101)
    with pytest.raises(ValueError):
        rule_of_72(0)


def test_required_return() -> None:
    assert required_return(10) == Decimal("7.20")

    with pytest.raises(ValueError):
        required_return(0)
