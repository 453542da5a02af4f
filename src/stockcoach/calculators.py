"""Investing calculators: trade planning, growth projections, dividends."""

from __future__ import annotations

import random
from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from enum import Enum
from typing import Optional, Sequence, Tuple

from .money import AmountLike, require_positive, to_cents, to_decimal

HUNDRED = Decimal("100")
GOOD_RISK_REWARD = Decimal("2")
MONTHS_PER_YEAR = 12
BASIS_POINT = Decimal("0.0001")
SHARE_STEP = Decimal("0.001")
RULE_OF_72 = Decimal("72")
DOUBLING_BASE = Decimal("1000")
MAX_SCHEDULE_YEARS = 40


@dataclass(slots=True)
class ProfitLoss:
    total_cost: Decimal
    total_proceeds: Decimal
    gross_profit: Decimal
    net_profit: Decimal
    percent_gain: Decimal
    break_even_price: Decimal
    profit_per_share: Decimal


@dataclass(slots=True)
class PositionSize:
    max_risk_amount: Decimal
    risk_per_share: Decimal
    shares_count: int
    total_investment: Decimal
    percent_of_account: Decimal
    potential_loss: Decimal


@dataclass(slots=True)
class RiskReward:
    risk_per_share: Decimal
    reward_per_share: Decimal
    ratio: Decimal
    is_good_ratio: bool


def profit_loss(
    buy_price: AmountLike,
    sell_price: AmountLike,
    shares: AmountLike,
    *,
    buy_commission: AmountLike = 0,
    sell_commission: AmountLike = 0,
) -> ProfitLoss:
    """Return the gain or loss of a round trip including commissions.

    >>> profit_loss(50, 60, 100, buy_commission=10, sell_commission=10).net_profit
    Decimal('980.00')
    """

    buy = to_decimal(buy_price)
    sell = to_decimal(sell_price)
    quantity = to_decimal(shares)
    buy_fee = to_decimal(buy_commission)
    sell_fee = to_decimal(sell_commission)
    if buy <= 0:
        raise ValueError("Buy price must be positive.")
    if sell < 0:
        raise ValueError("Sell price must be zero or greater.")
    if quantity <= 0:
        raise ValueError("Number of shares must be positive.")
    if buy_fee < 0 or sell_fee < 0:
        raise ValueError("Commissions must be zero or greater.")

    purchase_cost = buy * quantity
    total_cost = purchase_cost + buy_fee
    sale_proceeds = sell * quantity
    total_proceeds = sale_proceeds - sell_fee
    net_profit = total_proceeds - total_cost
    return ProfitLoss(
        total_cost=to_cents(total_cost),
        total_proceeds=to_cents(total_proceeds),
        gross_profit=to_cents(sale_proceeds - purchase_cost),
        net_profit=to_cents(net_profit),
        percent_gain=to_cents(net_profit / total_cost * HUNDRED),
        break_even_price=to_cents((total_cost + sell_fee) / quantity),
        profit_per_share=to_cents(net_profit / quantity),
    )


def position_size(
    account_balance: AmountLike,
    risk_percent: AmountLike,
    entry_price: AmountLike,
    stop_loss_price: AmountLike,
) -> PositionSize:
    """Size a long position so hitting the stop loses ``risk_percent`` of the account."""

    balance = to_decimal(account_balance)
    risk = to_decimal(risk_percent)
    entry = to_decimal(entry_price)
    stop = to_decimal(stop_loss_price)
    if balance <= 0:
        raise ValueError("Account balance must be positive.")
    if risk <= 0 or risk > HUNDRED:
        raise ValueError("Risk percent must be between 0 and 100.")
    require_positive(entry)
    require_positive(stop)
    if stop >= entry:
        raise ValueError("Stop loss must be below entry price for a long position.")

    max_risk = balance * risk / HUNDRED
    risk_per_share = entry - stop
    shares = int((max_risk / risk_per_share).to_integral_value(rounding=ROUND_FLOOR))
    investment = shares * entry
    return PositionSize(
        max_risk_amount=to_cents(max_risk),
        risk_per_share=to_cents(risk_per_share),
        shares_count=shares,
        total_investment=to_cents(investment),
        percent_of_account=to_cents(investment / balance * HUNDRED),
        potential_loss=to_cents(shares * risk_per_share),
    )


def stop_loss(
    account_balance: AmountLike,
    risk_percent: AmountLike,
    entry_price: AmountLike,
    shares: AmountLike,
) -> Decimal:
    quantity = to_decimal(shares)
    if quantity <= 0:
        raise ValueError("Number of shares must be positive.")
    max_risk = to_decimal(account_balance) * to_decimal(risk_percent) / HUNDRED
    return to_cents(to_decimal(entry_price) - max_risk / quantity)


def risk_reward(
    entry_price: AmountLike,
    stop_loss_price: AmountLike,
    target_price: AmountLike,
) -> RiskReward:
    entry = to_decimal(entry_price)
    stop = to_decimal(stop_loss_price)
    target = to_decimal(target_price)
    if stop >= entry:
        raise ValueError("Stop loss must be below entry price.")
    if target <= entry:
        raise ValueError("Target price must be above entry price.")

    risk_per_share = entry - stop
    reward_per_share = target - entry
    ratio = reward_per_share / risk_per_share
    return RiskReward(
        risk_per_share=to_cents(risk_per_share),
        reward_per_share=to_cents(reward_per_share),
        ratio=to_cents(ratio),
        is_good_ratio=ratio >= GOOD_RISK_REWARD,
    )


# Growth projections --------------------------------------------------------
@dataclass(slots=True)
class YearlyBalance:
    year: int
    balance: Decimal
    interest_earned: Decimal
    total_interest: Decimal


@dataclass(slots=True)
class CompoundInterest:
    final_amount: Decimal
    total_interest: Decimal
    effective_annual_rate: Decimal
    yearly_breakdown: Tuple[YearlyBalance, ...]


def compound_interest(
    principal: AmountLike,
    annual_rate: AmountLike,
    years: int,
    compounding_frequency: int = 12,
) -> CompoundInterest:
    """Grow ``principal`` by ``A = P(1 + r/n)^(nt)``.

    ``annual_rate`` is a fraction (``0.08`` for 8%) and ``compounding_frequency``
    counts compounding periods per year.

    >>> compound_interest(10000, "0.08", 10).final_amount
    Decimal('22196.40')
    """

    amount = to_decimal(principal)
    rate = to_decimal(annual_rate)
    if amount < 0:
        raise ValueError("Principal must be zero or greater.")
    if rate < 0:
        raise ValueError("Annual rate must be zero or greater.")
    if years < 0:
        raise ValueError("Years must be zero or greater.")
    if compounding_frequency <= 0:
        raise ValueError("Compounding frequency must be positive.")

    growth = 1 + rate / compounding_frequency
    breakdown = []
    previous = amount
    balance = amount
    for year in range(years + 1):
        balance = amount * growth ** (compounding_frequency * year)
        breakdown.append(
            YearlyBalance(
                year=year,
                balance=to_cents(balance),
                interest_earned=to_cents(balance - previous),
                total_interest=to_cents(balance - amount),
            )
        )
        previous = balance
    return CompoundInterest(
        final_amount=to_cents(balance),
        total_interest=to_cents(balance - amount),
        effective_annual_rate=_quantize(growth**compounding_frequency - 1, BASIS_POINT),
        yearly_breakdown=tuple(breakdown),
    )


@dataclass(slots=True)
class YearlyProjection:
    year: int
    start_balance: Decimal
    contributions: Decimal
    interest_earned: Decimal
    end_balance: Decimal


@dataclass(slots=True)
class FutureValue:
    future_value: Decimal
    total_contributions: Decimal
    total_interest: Decimal
    effective_return: Decimal
    yearly_projections: Tuple[YearlyProjection, ...]


def future_value(
    current_investment: AmountLike,
    annual_return: AmountLike,
    years: int,
    *,
    monthly_contribution: AmountLike = 0,
) -> FutureValue:
    """Project a lump sum plus month-end contributions at ``annual_return`` percent.

    Interest compounds monthly and is applied before each contribution.
    """

    balance = to_decimal(current_investment)
    rate = to_decimal(annual_return)
    monthly = to_decimal(monthly_contribution)
    if balance < 0:
        raise ValueError("Current investment must be zero or greater.")
    if monthly < 0:
        raise ValueError("Monthly contribution must be zero or greater.")
    if rate < 0:
        raise ValueError("Annual return must be zero or greater.")
    if years <= 0:
        raise ValueError("Years must be positive.")

    growth = 1 + rate / HUNDRED / MONTHS_PER_YEAR
    yearly_contribution = monthly * MONTHS_PER_YEAR
    contributed = balance
    projections = []
    for year in range(1, years + 1):
        start = balance
        for _ in range(MONTHS_PER_YEAR):
            balance = balance * growth + monthly
        contributed += yearly_contribution
        projections.append(
            YearlyProjection(
                year=year,
                start_balance=to_cents(start),
                contributions=to_cents(yearly_contribution),
                interest_earned=to_cents(balance - start - yearly_contribution),
                end_balance=to_cents(balance),
            )
        )
    interest = balance - contributed
    return FutureValue(
        future_value=to_cents(balance),
        total_contributions=to_cents(contributed),
        total_interest=to_cents(interest),
        effective_return=to_cents(interest / contributed * HUNDRED) if contributed > 0 else to_cents(0),
        yearly_projections=tuple(projections),
    )


def required_contribution(
    target_amount: AmountLike,
    current_investment: AmountLike,
    annual_return: AmountLike,
    years: int,
) -> Decimal:
    """Monthly contribution needed to reach ``target_amount``; zero if already on track."""

    target = to_decimal(target_amount)
    current = to_decimal(current_investment)
    rate = to_decimal(annual_return)
    if target <= 0 or years <= 0 or rate < 0 or current < 0:
        raise ValueError("Target and years must be positive; return and investment non-negative.")

    monthly_rate = rate / HUNDRED / MONTHS_PER_YEAR
    months = years * MONTHS_PER_YEAR
    growth = (1 + monthly_rate) ** months
    shortfall = target - current * growth
    if shortfall <= 0:
        return to_cents(0)
    if monthly_rate == 0:
        return to_cents(shortfall / months)
    return to_cents(shortfall * monthly_rate / (growth - 1))


# Dollar-cost averaging -----------------------------------------------------
@dataclass(slots=True)
class DcaMonth:
    month: int
    price: Decimal
    shares_bought: Decimal
    total_shares: Decimal
    total_invested: Decimal
    average_cost: Decimal
    current_value: Decimal


@dataclass(slots=True)
class DollarCostAverage:
    total_invested: Decimal
    total_shares: Decimal
    average_cost_per_share: Decimal
    current_value: Decimal
    total_return: Decimal
    percent_return: Decimal
    monthly_breakdown: Tuple[DcaMonth, ...]


@dataclass(slots=True)
class DcaComparison:
    dca: DollarCostAverage
    lump_sum_value: Decimal
    lump_sum_return: Decimal
    lump_sum_percent_return: Decimal
    dca_wins: bool


def dollar_cost_average(
    monthly_investment: AmountLike, prices: Sequence[AmountLike]
) -> DollarCostAverage:
    """Invest a fixed amount at each monthly price in ``prices``."""

    budget = to_decimal(monthly_investment)
    quotes = [to_decimal(price) for price in prices]
    if budget <= 0:
        raise ValueError("Monthly investment must be positive.")
    if not quotes:
        raise ValueError("At least one monthly price is required.")
    if any(price <= 0 for price in quotes):
        raise ValueError("Prices must be positive.")

    shares = Decimal("0")
    invested = Decimal("0")
    breakdown = []
    for month, price in enumerate(quotes, start=1):
        bought = budget / price
        shares += bought
        invested += budget
        breakdown.append(
            DcaMonth(
                month=month,
                price=to_cents(price),
                shares_bought=_quantize(bought, SHARE_STEP),
                total_shares=_quantize(shares, SHARE_STEP),
                total_invested=to_cents(invested),
                average_cost=to_cents(invested / shares),
                current_value=to_cents(shares * price),
            )
        )
    value = shares * quotes[-1]
    gain = value - invested
    return DollarCostAverage(
        total_invested=to_cents(invested),
        total_shares=_quantize(shares, SHARE_STEP),
        average_cost_per_share=to_cents(invested / shares),
        current_value=to_cents(value),
        total_return=to_cents(gain),
        percent_return=to_cents(gain / invested * HUNDRED),
        monthly_breakdown=tuple(breakdown),
    )


def compare_dca_vs_lump_sum(total_amount: AmountLike, prices: Sequence[AmountLike]) -> DcaComparison:
    """Spread ``total_amount`` over ``prices`` versus buying everything at the first price."""

    total = to_decimal(total_amount)
    if total <= 0:
        raise ValueError("Total amount must be positive.")
    if not prices:
        raise ValueError("At least one monthly price is required.")
    dca = dollar_cost_average(total / len(prices), prices)
    first = to_decimal(prices[0])
    last = to_decimal(prices[-1])
    lump_value = total / first * last
    lump_gain = lump_value - total
    return DcaComparison(
        dca=dca,
        lump_sum_value=to_cents(lump_value),
        lump_sum_return=to_cents(lump_gain),
        lump_sum_percent_return=to_cents(lump_gain / total * HUNDRED),
        dca_wins=dca.current_value > to_cents(lump_value),
    )


def simulated_prices(
    months: int,
    start_price: AmountLike,
    volatility: AmountLike = "0.1",
    *,
    rng: Optional[random.Random] = None,
) -> Tuple[Decimal, ...]:
    """Random-walk monthly prices held between 50% and 150% of ``start_price``."""

    if months <= 0:
        raise ValueError("Number of months must be positive.")
    start = to_decimal(start_price)
    swing = to_decimal(volatility)
    require_positive(start)
    require_positive(swing, allow_zero=True)
    rng = rng or random.Random()

    floor = start * Decimal("0.5")
    cap = start * Decimal("1.5")
    current = start
    prices = [start]
    for _ in range(1, months):
        change = (Decimal(str(rng.random())) - Decimal("0.5")) * 2 * swing * current
        current = min(max(current + change, floor), cap)
        prices.append(to_cents(current))
    return tuple(prices)


# Dividends -----------------------------------------------------------------
class DividendFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUALLY = "semiannually"
    ANNUALLY = "annually"

    @property
    def payments_per_year(self) -> int:
        return {"monthly": 12, "quarterly": 4, "semiannually": 2, "annually": 1}[self.value]


@dataclass(slots=True)
class DividendIncome:
    annual_dividend_per_share: Decimal
    annual_yield: Decimal
    annual_income: Decimal
    monthly_income: Decimal
    quarterly_income: Decimal
    payments_per_year: int


@dataclass(slots=True)
class SharesForIncome:
    shares_needed: int
    investment_required: Decimal


def dividend_income(
    stock_price: AmountLike,
    dividend_per_share: AmountLike,
    shares: AmountLike,
    frequency: DividendFrequency | str = DividendFrequency.QUARTERLY,
) -> DividendIncome:
    """Yield and income for ``shares`` paying ``dividend_per_share`` each period.

    ``annual_yield`` is a fraction (``0.02`` for 2%).
    """

    price = to_decimal(stock_price)
    dividend = to_decimal(dividend_per_share)
    quantity = to_decimal(shares)
    payments = DividendFrequency(frequency).payments_per_year
    if price <= 0:
        raise ValueError("Stock price must be positive.")
    if dividend < 0:
        raise ValueError("Dividend per share must be zero or greater.")
    if quantity < 0:
        raise ValueError("Number of shares must be zero or greater.")

    annual_per_share = dividend * payments
    annual_income = annual_per_share * quantity
    return DividendIncome(
        annual_dividend_per_share=to_cents(annual_per_share),
        annual_yield=_quantize(annual_per_share / price, BASIS_POINT),
        annual_income=to_cents(annual_income),
        monthly_income=to_cents(annual_income / MONTHS_PER_YEAR),
        quarterly_income=to_cents(annual_income / 4),
        payments_per_year=payments,
    )


def shares_for_income(
    stock_price: AmountLike,
    dividend_per_share: AmountLike,
    target_monthly_income: AmountLike,
    frequency: DividendFrequency | str = DividendFrequency.QUARTERLY,
) -> SharesForIncome:
    price = to_decimal(stock_price)
    dividend = to_decimal(dividend_per_share)
    target = to_decimal(target_monthly_income)
    payments = DividendFrequency(frequency).payments_per_year
    if price <= 0 or dividend <= 0 or target <= 0:
        raise ValueError("Price, dividend and target income must be positive.")

    needed = _ceil(target * MONTHS_PER_YEAR / (dividend * payments))
    return SharesForIncome(shares_needed=needed, investment_required=to_cents(needed * price))


# Rule of 72 ----------------------------------------------------------------
@dataclass(slots=True)
class DoublingPoint:
    years: int
    multiplier: Decimal
    value: Decimal


@dataclass(slots=True)
class DoublingTime:
    years_to_double: Decimal
    actual_years_to_double: Decimal
    doubling_schedule: Tuple[DoublingPoint, ...]


def rule_of_72(annual_return: AmountLike) -> DoublingTime:
    """Estimate doubling time as ``72 / rate`` next to the exact ``ln 2 / ln(1 + r)``.

    The schedule follows $1,000 for up to four doublings or 40 years.
    """

    rate = to_decimal(annual_return)
    if rate <= 0:
        raise ValueError("Annual return must be positive.")
    if rate > HUNDRED:
        raise ValueError("Annual return above 100% is unrealistic.")

    estimate = RULE_OF_72 / rate
    growth = 1 + rate / HUNDRED
    exact = Decimal(2).ln() / growth.ln()
    horizon = min(_ceil(estimate * 4), MAX_SCHEDULE_YEARS)
    step = _ceil(estimate / 2)
    schedule = tuple(
        DoublingPoint(
            years=year,
            multiplier=to_cents(growth**year),
            value=to_cents(DOUBLING_BASE * growth**year),
        )
        for year in range(0, horizon + 1, step)
    )
    return DoublingTime(
        years_to_double=to_cents(estimate),
        actual_years_to_double=to_cents(exact),
        doubling_schedule=schedule,
    )


def required_return(years_to_double: AmountLike) -> Decimal:
    """Annual return percentage that doubles money in ``years_to_double`` years."""

    years = to_decimal(years_to_double)
    if years <= 0:
        raise ValueError("Years must be positive.")
    return to_cents(RULE_OF_72 / years)


def _quantize(value: Decimal, step: Decimal) -> Decimal:
    return value.quantize(step, rounding=ROUND_HALF_UP)


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


__all__ = [
    "CompoundInterest",
    "DcaComparison",
    "DcaMonth",
    "DividendFrequency",
    "DividendIncome",
    "DollarCostAverage",
    "DoublingPoint",
    "DoublingTime",
    "FutureValue",
    "PositionSize",
    "ProfitLoss",
    "RiskReward",
    "SharesForIncome",
    "YearlyBalance",
    "YearlyProjection",
    "compare_dca_vs_lump_sum",
    "compound_interest",
    "dividend_income",
    "dollar_cost_average",
    "future_value",
    "position_size",
    "profit_loss",
    "required_contribution",
    "required_return",
    "risk_reward",
    "rule_of_72",
    "shares_for_income",
    "simulated_prices",
    "stop_loss",
]
