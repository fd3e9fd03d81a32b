"""
Tests for recurrence, credit maths, alerts, achievements and projections.
"""

from datetime import date

import pytest

from moneygrowth.calculations import (
    CompoundInterestParams,
    DebtStrategy,
    ProjectionStep,
    RatePeriod,
    add_months,
    build_alerts,
    calculate_remaining_amount,
    compound_interest_projection,
    credit_status,
    credit_summary,
    debt_health,
    debt_to_income_ratio,
    evaluate_achievements,
    expand_transactions_for_year,
    instances_in_month,
    monthly_equivalent,
    order_credits,
    projection_result,
    toxicity_level,
)
from moneygrowth.calculations.credits import months_between
from moneygrowth.models import (
    AlertType,
    Budget,
    BudgetType,
    Credit,
    CreditSubcategory,
    Frequency,
    Goal,
    InsurancePolicy,
    InsurancePolicyType,
    Receipt,
    ReceiptType,
    UserData,
)

from tests.factories import make_expense, make_income


def make_credit(name="Préstamo", total=1200.0, payment=100.0, tin=0.0, tae=0.0,
                start=date(2024, 1, 1), end=date(2024, 12, 1)) -> Credit:
    return Credit(
        name=name,
        total_amount=total,
        monthly_payment=payment,
        tin=tin,
        tae=tae,
        start_date=start,
        end_date=end,
        subcategory=CreditSubcategory.LOAN,
    )


class TestRecurrence:
    """Tests for expanding recurring transactions."""

    def test_add_months_clamps_day(self):
        """Test month arithmetic at month ends."""
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
        assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)

    def test_monthly_starts_in_its_first_month(self):
        """Test that nothing is generated before the series starts."""
        tx = make_expense(frequency=Frequency.MONTHLY, on=date(2024, 3, 15))
        instances = expand_transactions_for_year([tx], 2024)

        assert len(instances) == 10
        assert instances[0].date == date(2024, 3, 15)
        assert instances[0].instance_id == f"{tx.id}|2024-2"

    def test_monthly_on_the_31st_occurs_every_month(self):
        """Test that short months get the occurrence on their last day."""
        tx = make_income(amount=1000, frequency=Frequency.MONTHLY, on=date(2024, 1, 31))
        instances = expand_transactions_for_year([tx], 2024)

        assert len(instances) == 12
        assert sum(i.amount for i in instances) == 12000
        assert [i.date.day for i in instances] == [31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
        assert instances[1].instance_id == f"{tx.id}|2024-1"

    @pytest.mark.parametrize("year,february", [(2024, date(2024, 2, 29)), (2025, date(2025, 2, 28))])
    def test_february_in_leap_and_common_years(self, year, february):
        """Test the 29th and 30th across February."""
        on_29th = make_expense(frequency=Frequency.MONTHLY, on=date(2023, 1, 29))
        on_30th = make_expense(frequency=Frequency.MONTHLY, on=date(2023, 1, 30))

        for tx in (on_29th, on_30th):
            february_instances = instances_in_month(expand_transactions_for_year([tx], year), year, 2)
            assert [i.date for i in february_instances] == [february]
            assert february_instances[0].instance_id == f"{tx.id}|{year}-1"

    def test_quarterly_on_the_31st(self):
        """Test that a quarterly series dated the 31st keeps its four payments."""
        tx = make_expense(frequency=Frequency.QUARTERLY, on=date(2023, 1, 31))
        instances = expand_transactions_for_year([tx], 2024)

        assert [i.date for i in instances] == [
            date(2024, 1, 31),
            date(2024, 4, 30),
            date(2024, 7, 31),
            date(2024, 10, 31),
        ]

    def test_annual_on_leap_day(self):
        """Test an annual payment started on February 29th."""
        tx = make_expense(frequency=Frequency.ANNUALLY, on=date(2024, 2, 29))
        assert [i.date for i in expand_transactions_for_year([tx], 2025)] == [date(2025, 2, 28)]

    def test_quarterly_and_semiannual(self):
        """Test the fixed months of quarterly and semiannual series."""
        quarterly = make_expense(frequency=Frequency.QUARTERLY, on=date(2023, 5, 10))
        semiannual = make_expense(frequency=Frequency.SEMIANNUALLY, on=date(2023, 2, 1))

        assert [i.date.month for i in expand_transactions_for_year([quarterly], 2024)] == [1, 4, 7, 10]
        assert [i.date.month for i in expand_transactions_for_year([semiannual], 2024)] == [1, 7]

    def test_annual_keeps_its_month(self):
        """Test that an annual series occurs in its own month."""
        tx = make_expense(frequency=Frequency.ANNUALLY, on=date(2022, 6, 1))
        instances = expand_transactions_for_year([tx], 2024)
        assert [i.date for i in instances] == [date(2024, 6, 1)]

    def test_one_off_only_in_its_year(self):
        """Test one-off transactions and their instance id."""
        tx = make_expense(on=date(2024, 5, 5))
        instances = expand_transactions_for_year([tx], 2024)

        assert instances[0].instance_id == f"{tx.id}|2024-05-05"
        assert expand_transactions_for_year([tx], 2023) == []

    def test_no_instances_before_start_year(self):
        """Test that a series does not reach back in time."""
        tx = make_expense(frequency=Frequency.MONTHLY, on=date(2025, 1, 1))
        assert expand_transactions_for_year([tx], 2024) == []

    def test_excluded_instances(self):
        """Test the exclusion map and month filtering."""
        tx = make_expense(frequency=Frequency.MONTHLY, on=date(2024, 1, 1))
        instances = expand_transactions_for_year([tx], 2024, {f"{tx.id}|2024-1": True})

        february = instances_in_month(instances, 2024, 2, include_excluded=True)
        assert february[0].is_excluded is True
        assert instances_in_month(instances, 2024, 2) == []
        assert len(instances_in_month(instances, 2024, 3)) == 1

    def test_monthly_equivalent(self):
        """Test the monthly share of recurring amounts."""
        assert monthly_equivalent(1200, Frequency.ANNUALLY) == 100
        assert monthly_equivalent(1200, Frequency.ANNUALLY, 6) == 200
        assert monthly_equivalent(300, Frequency.QUARTERLY) == 100
        assert monthly_equivalent(40, Frequency.MONTHLY) == 40
        assert monthly_equivalent(75, None) == 75


class TestCredits:
    """Tests for credit status and debt strategy."""

    def test_months_between(self):
        """Test whole months between two dates."""
        assert months_between(date(2024, 1, 15), date(2024, 4, 1)) == 3
        assert months_between(date(2024, 11, 1), date(2025, 2, 1)) == 3

    def test_remaining_without_interest(self):
        """Test the balance of an interest-free credit."""
        credit = make_credit()
        assert calculate_remaining_amount(credit, date(2023, 12, 1)) == 1200
        assert calculate_remaining_amount(credit, date(2024, 4, 10)) == 900
        assert calculate_remaining_amount(credit, date(2025, 1, 1)) == 0

    def test_remaining_with_interest(self):
        """Test that each payment covers the month's interest first."""
        credit = make_credit(total=1000, payment=100, tin=12, end=date(2026, 1, 1))
        assert calculate_remaining_amount(credit, date(2024, 2, 1)) == pytest.approx(910)

    def test_remaining_never_negative(self):
        """Test the floor at zero."""
        credit = make_credit(total=150, payment=100, end=date(2024, 12, 1))
        assert calculate_remaining_amount(credit, date(2024, 6, 1)) == 0

    def test_credit_status_progress(self):
        """Test paid amount and progress."""
        status = credit_status(make_credit(), date(2024, 4, 10))
        assert status.paid_amount == 300
        assert status.progress_percent == 25

    def test_credit_summary(self):
        """Test totals over several credits."""
        today = date(2024, 1, 1)
        finished = make_credit(name="Viejo", start=date(2020, 1, 1), end=date(2021, 1, 1))
        summary = credit_summary([make_credit(), finished], today)
        assert summary.total_debt == 1200
        assert summary.total_monthly_payment == 100

    def test_order_credits_by_strategy(self):
        """Test snowball, avalanche and cashflow orderings."""
        big = make_credit(name="Hipoteca", total=5000, payment=500, tae=5, end=date(2030, 1, 1))
        small = make_credit(name="Tarjeta", total=1000, payment=50, tae=20, end=date(2030, 1, 1))
        today = date(2024, 1, 1)

        def names(strategy):
            return [s.name for s in order_credits([big, small], strategy, today)]

        assert names(DebtStrategy.SNOWBALL) == ["Tarjeta", "Hipoteca"]
        assert names(DebtStrategy.AVALANCHE) == ["Tarjeta", "Hipoteca"]
        assert names(DebtStrategy.CASHFLOW) == ["Hipoteca", "Tarjeta"]

    def test_order_credits_skips_paid_off(self):
        """Test that finished credits are left out of the plan."""
        finished = make_credit(start=date(2020, 1, 1), end=date(2021, 1, 1))
        assert order_credits([finished], DebtStrategy.SNOWBALL, date(2024, 1, 1)) == []

    def test_debt_to_income_ratio(self):
        """Test the ratio and its health label."""
        assert debt_to_income_ratio([make_credit(payment=300)], 1000) == 30
        assert debt_to_income_ratio([make_credit()], 0) is None

        assert debt_health(None) == "Desconocida"
        assert debt_health(20) == "Saludable"
        assert debt_health(30) == "Buena"
        assert debt_health(40) == "Moderada"
        assert debt_health(50) == "De Riesgo"

    def test_toxicity_level(self):
        """Test the five-step toxicity scale."""
        assert toxicity_level(0) == (1, "Sano")
        assert toxicity_level(5) == (3, "Moderado")
        assert toxicity_level(10) == (5, "Tóxico")


class TestAlerts:
    """Tests for derived alerts."""

    def test_receipt_cancellation_window(self):
        """Test that auto-renewing receipts warn inside the notice period."""
        receipt = Receipt(
            type=ReceiptType.RECEIPT,
            title="Gimnasio",
            amount=40,
            date=date(2024, 6, 15),
            auto_renews=True,
            cancellation_reminder=True,
            cancellation_notice_months=1,
        )
        alerts = build_alerts([receipt], [], today=date(2024, 5, 20))
        assert alerts[0].type == AlertType.CANCELLATION_REMINDER
        assert alerts[0].source_id == receipt.id

        assert build_alerts([receipt], [], today=date(2024, 5, 10)) == []
        assert build_alerts([receipt], [], today=date(2024, 6, 15)) == []

    def test_receipt_without_auto_renewal_is_silent(self):
        """Test that only auto-renewing receipts warn."""
        receipt = Receipt(
            type=ReceiptType.RECEIPT,
            title="Revista",
            amount=5,
            date=date(2024, 6, 15),
            auto_renews=False,
            cancellation_reminder=True,
            cancellation_notice_months=1,
        )
        assert build_alerts([receipt], [], today=date(2024, 6, 1)) == []

    def test_insurance_renewal(self):
        """Test the insurance renewal reminder."""
        policy = InsurancePolicy(
            name="Hogar",
            policy_type=InsurancePolicyType.HOME,
            premium=300,
            payment_frequency=Frequency.ANNUALLY,
            renewal_date=date(2024, 6, 15),
            cancellation_reminder=True,
            cancellation_notice_months=2,
        )
        alerts = build_alerts([], [policy], today=date(2024, 4, 20))
        assert [a.type for a in alerts] == [AlertType.INSURANCE_REMINDER]

    def test_budget_warning(self):
        """Test warnings for spending limits near or over their target."""
        budget = Budget(name="Ocio", category="Ocio", target_amount=100, type=BudgetType.SPENDING_LIMIT)
        today = date(2024, 3, 20)

        near = expand_transactions_for_year([make_expense(amount=95, on=date(2024, 3, 1))], 2024)
        alerts = build_alerts([], [], budgets=[budget], instances=near, today=today)
        assert "cerca del límite" in alerts[0].message
        assert alerts[0].date == date(2024, 3, 31)

        over = expand_transactions_for_year([make_expense(amount=120, on=date(2024, 3, 1))], 2024)
        alerts = build_alerts([], [], budgets=[budget], instances=over, today=today)
        assert "Has superado" in alerts[0].message

        low = expand_transactions_for_year([make_expense(amount=20, on=date(2024, 3, 1))], 2024)
        assert build_alerts([], [], budgets=[budget], instances=low, today=today) == []

    def test_goal_deadline(self):
        """Test warnings for goals close to their deadline."""
        goal = Goal(
            name="Viaje",
            target_amount=1000,
            current_amount=400,
            start_date=date(2024, 1, 1),
            deadline=date(2024, 7, 10),
        )
        done = goal.model_copy(update={"current_amount": 1000})

        alerts = build_alerts([], [], goals=[goal, done], today=date(2024, 6, 20))
        assert len(alerts) == 1
        assert alerts[0].type == AlertType.GOAL_WARNING
        assert "600.00 €" in alerts[0].message

    def test_alerts_sorted_by_date(self):
        """Test that the soonest alert comes first."""
        later = Receipt(
            type=ReceiptType.RECEIPT, title="B", amount=1, date=date(2024, 7, 1),
            auto_renews=True, cancellation_reminder=True, cancellation_notice_months=3,
        )
        sooner = later.model_copy(update={"id": "sooner", "title": "A", "date": date(2024, 6, 1)})
        alerts = build_alerts([later, sooner], [], today=date(2024, 5, 1))
        assert [a.title for a in alerts] == ["A", "B"]


class TestAchievements:
    """Tests for achievement evaluation."""

    def test_empty_data_earns_nothing(self):
        """Test a fresh data bag."""
        assert evaluate_achievements(UserData()) == []

    def test_first_transaction_and_goal(self):
        """Test achievements earned by records."""
        data = UserData(
            transactions=[make_income()],
            goals=[Goal(
                name="Fondo",
                target_amount=100,
                current_amount=100,
                start_date=date(2024, 1, 1),
                deadline=date(2024, 12, 1),
            )],
        )
        earned = evaluate_achievements(data)
        assert "first_transaction" in earned
        assert "first_goal" in earned
        assert "goal_completed" in earned
        assert "ten_transactions" not in earned


class TestCompoundInterest:
    """Tests for the compound interest projection."""

    def test_initial_investment_grows_monthly(self):
        """Test monthly compounding of an annual rate."""
        params = CompoundInterestParams(
            initial_investment=1000, monthly_contribution=0, years=1, interest_rate=12,
        )
        points = compound_interest_projection(params)

        assert [p.period for p in points] == [0, 1]
        assert points[0].balance == 1000
        assert points[-1].balance == pytest.approx(1126.825, abs=0.001)
        assert points[-1].contributions == 1000
        assert points[-1].interest == pytest.approx(126.825, abs=0.001)

    def test_contributions_at_month_end(self):
        """Test a monthly contribution with no starting capital."""
        params = CompoundInterestParams(
            initial_investment=0, monthly_contribution=100, years=1, interest_rate=12,
        )
        result = projection_result(params, compound_interest_projection(params))

        assert result.balance == pytest.approx(1268.25, abs=0.01)
        assert result.contributions == 1200
        assert result.interest == pytest.approx(68.25, abs=0.01)

    def test_monthly_rate_matches_annual(self):
        """Test that 1 % a month is the same as 12 % a year."""
        annual = CompoundInterestParams(years=3, interest_rate=12, rate_period=RatePeriod.ANNUAL)
        monthly = CompoundInterestParams(years=3, interest_rate=1, rate_period=RatePeriod.MONTHLY)

        assert compound_interest_projection(annual)[-1].balance == pytest.approx(
            compound_interest_projection(monthly)[-1].balance
        )

    def test_zero_rate_only_adds_contributions(self):
        """Test the projection without interest."""
        params = CompoundInterestParams(
            initial_investment=1000, monthly_contribution=100, years=2, interest_rate=0,
        )
        points = compound_interest_projection(params)

        assert [p.balance for p in points] == [1000, 2200, 3400]
        assert all(p.interest == 0 for p in points)

    def test_month_by_month(self):
        """Test the monthly view of the projection."""
        params = CompoundInterestParams(years=2)
        points = compound_interest_projection(params, ProjectionStep.MONTHS)

        assert len(points) == 25
        assert points[12].balance == compound_interest_projection(params)[1].balance

    def test_nothing_to_project(self):
        """Test zero years and negative rates."""
        empty = CompoundInterestParams(initial_investment=500, years=0)
        assert compound_interest_projection(empty) == []
        assert projection_result(empty, []).balance == 500
        assert compound_interest_projection(CompoundInterestParams(interest_rate=-1)) == []
