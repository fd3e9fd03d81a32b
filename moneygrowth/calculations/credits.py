"""
Credit Calculations

Amortization estimate, debt payoff ordering and debt-to-income health.

DESIGN DECISION: These are pure functions of the credits and a
reference date. Nothing here touches the store, so the same numbers
appear in the Credits page, the reports and the AI prompts.
"""

import math
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from moneygrowth.models.finance import Credit


class DebtStrategy(str, Enum):
    """
    SNOWBALL: smallest remaining balance first (quick wins).
    AVALANCHE: highest TAE first (least interest paid).
    CASHFLOW: smallest balance/payment ratio first (frees monthly cash soonest).
    """
    SNOWBALL = "snowball"
    AVALANCHE = "avalanche"
    CASHFLOW = "cashflow"


class CreditStatus(BaseModel):
    """Remaining balance and progress of one credit at a given date."""

    credit_id: str
    name: str
    remaining_amount: float = Field(ge=0)
    paid_amount: float = Field(ge=0)
    progress_percent: float = Field(ge=0, le=100)
    monthly_payment: float
    tae: float


class CreditSummary(BaseModel):
    total_debt: float = 0.0
    total_monthly_payment: float = 0.0
    credits: list[CreditStatus] = Field(default_factory=list)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end (day of month ignored)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def calculate_remaining_amount(credit: Credit, today: Optional[date] = None) -> float:
    """
    Estimate the outstanding balance of a credit.

    Walks month by month from the start date: each payment first covers
    the month's interest (TIN / 12) and the rest reduces the balance.
    Returns 0 once the end date has passed and never goes negative.
    """
    today = today or date.today()

    months_passed = months_between(credit.start_date, today)
    if months_passed <= 0:
        return credit.total_amount

    if today > credit.end_date:
        return 0.0

    monthly_rate = credit.tin / 100 / 12
    balance = credit.total_amount

    for _ in range(months_passed):
        interest = balance * monthly_rate
        balance -= credit.monthly_payment - interest
        if balance <= 0:
            balance = 0.0
            break

    return max(balance, 0.0)


def credit_status(credit: Credit, today: Optional[date] = None) -> CreditStatus:
    remaining = calculate_remaining_amount(credit, today)
    paid = max(credit.total_amount - remaining, 0.0)
    progress = (paid / credit.total_amount * 100) if credit.total_amount > 0 else 100.0
    return CreditStatus(
        credit_id=credit.id,
        name=credit.name,
        remaining_amount=remaining,
        paid_amount=paid,
        progress_percent=min(progress, 100.0),
        monthly_payment=credit.monthly_payment,
        tae=credit.tae,
    )


def credit_summary(credits: list[Credit], today: Optional[date] = None) -> CreditSummary:
    """Totals across all credits for the Credits page header."""
    statuses = [credit_status(c, today) for c in credits]
    active = [s for s in statuses if s.remaining_amount > 0]
    return CreditSummary(
        total_debt=sum(s.remaining_amount for s in statuses),
        total_monthly_payment=sum(s.monthly_payment for s in active),
        credits=statuses,
    )


def order_credits(
    credits: list[Credit],
    strategy: DebtStrategy,
    today: Optional[date] = None,
) -> list[CreditStatus]:
    """
    Order the still-open credits by a payoff strategy.

    Credits with nothing left to pay are left out.
    """
    statuses = [
        s for s in (credit_status(c, today) for c in credits)
        if s.remaining_amount > 0
    ]

    if strategy == DebtStrategy.SNOWBALL:
        return sorted(statuses, key=lambda s: s.remaining_amount)
    if strategy == DebtStrategy.AVALANCHE:
        return sorted(statuses, key=lambda s: s.tae, reverse=True)

    def payoff_ratio(status: CreditStatus) -> float:
        if status.monthly_payment <= 0:
            return math.inf
        return status.remaining_amount / status.monthly_payment

    return sorted(statuses, key=payoff_ratio)


def debt_to_income_ratio(credits: list[Credit], monthly_income: float) -> Optional[float]:
    """
    Monthly debt payments as a percentage of monthly income.

    None when there is no income to compare against.
    """
    if monthly_income <= 0:
        return None
    total_payments = sum(c.monthly_payment for c in credits)
    return total_payments / monthly_income * 100


DEBT_HEALTH_UNKNOWN = "Desconocida"

_DEBT_HEALTH_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (20, "Saludable"),
    (36, "Buena"),
    (43, "Moderada"),
)


def debt_health(ratio: Optional[float]) -> str:
    """Label a debt-to-income ratio."""
    if ratio is None:
        return DEBT_HEALTH_UNKNOWN
    for limit, label in _DEBT_HEALTH_THRESHOLDS:
        if ratio <= limit:
            return label
    return "De Riesgo"


TOXICITY_LABELS: dict[int, str] = {
    1: "Sano",
    2: "Bajo",
    3: "Moderado",
    4: "Elevado",
    5: "Tóxico",
}


def toxicity_level(score: float) -> tuple[int, str]:
    """
    Map a 0-10 toxicity score onto the five-step scale.

    A score of 0 still counts as level 1.
    """
    level = min(max(math.ceil(score / 2), 1), 5)
    return level, TOXICITY_LABELS[level]
