"""
Compound Interest Projection

Backs the calculator page: how an initial investment plus a fixed
monthly contribution grows at a given interest rate.

Interest is compounded monthly on the running balance and the
contribution is added at the end of each month.
"""

from enum import Enum

from pydantic import BaseModel, Field


class RatePeriod(str, Enum):
    ANNUAL = "annual"
    MONTHLY = "monthly"


class ProjectionStep(str, Enum):
    YEARS = "years"
    MONTHS = "months"


class ProjectionPoint(BaseModel):
    """Balance after `period` years or months."""

    period: int
    balance: float
    contributions: float
    interest: float


class CompoundInterestParams(BaseModel):
    initial_investment: float = Field(default=1000.0, ge=0)
    monthly_contribution: float = Field(default=100.0, ge=0)
    years: int = Field(default=10, ge=0, le=100)
    interest_rate: float = Field(default=7.0, description="Rate in %")
    rate_period: RatePeriod = RatePeriod.ANNUAL


def monthly_rate(interest_rate: float, rate_period: RatePeriod) -> float:
    """Rate applied each month, as a fraction."""
    if rate_period == RatePeriod.ANNUAL:
        return interest_rate / 100 / 12
    return interest_rate / 100


def compound_interest_projection(
    params: CompoundInterestParams,
    step: ProjectionStep = ProjectionStep.YEARS,
) -> list[ProjectionPoint]:
    """
    Project the balance period by period.

    The first point (period 0) is the initial investment. With zero
    years or a negative rate there is nothing to project and the list
    is empty.
    """
    if params.years <= 0 or params.interest_rate < 0:
        return []

    rate = monthly_rate(params.interest_rate, params.rate_period)
    balance = params.initial_investment
    contributions = params.initial_investment
    points = [ProjectionPoint(period=0, balance=balance, contributions=contributions, interest=0.0)]

    for month in range(1, params.years * 12 + 1):
        balance += balance * rate + params.monthly_contribution
        contributions += params.monthly_contribution
        if step == ProjectionStep.MONTHS or month % 12 == 0:
            points.append(ProjectionPoint(
                period=month if step == ProjectionStep.MONTHS else month // 12,
                balance=balance,
                contributions=contributions,
                interest=balance - contributions,
            ))

    return points


def projection_result(
    params: CompoundInterestParams,
    points: list[ProjectionPoint],
) -> ProjectionPoint:
    """Final figures; the initial investment alone when nothing was projected."""
    if len(points) > 1:
        return points[-1]
    return ProjectionPoint(
        period=0,
        balance=params.initial_investment,
        contributions=params.initial_investment,
        interest=0.0,
    )
