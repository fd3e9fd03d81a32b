"""
Alerts

Alerts are derived, never stored: they are recomputed from the active
view's receipts, policies, budgets and goals every time they are shown.
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from moneygrowth.calculations.recurrence import TransactionInstance, add_months
from moneygrowth.calculations.reports import budget_progress
from moneygrowth.models.finance import (
    Alert,
    AlertType,
    Budget,
    BudgetType,
    Goal,
    InsurancePolicy,
    Receipt,
)

BUDGET_WARNING_PERCENT = 90.0
GOAL_WARNING_DAYS = 30


def _in_notice_window(due: date, notice_months: int, today: date) -> bool:
    return add_months(due, -notice_months) <= today < due


def receipt_alerts(receipts: Iterable[Receipt], today: date) -> list[Alert]:
    """Auto-renewing receipts whose cancellation notice period has started."""
    alerts = []
    for receipt in receipts:
        if not (receipt.cancellation_reminder and receipt.cancellation_notice_months and receipt.auto_renews):
            continue
        if _in_notice_window(receipt.date, receipt.cancellation_notice_months, today):
            alerts.append(Alert(
                id=f"alert-receipt-{receipt.id}",
                type=AlertType.CANCELLATION_REMINDER,
                message=f"Recordatorio para cancelar tu recibo '{receipt.title}'.",
                date=receipt.date,
                source_id=receipt.id,
                title=receipt.title,
            ))
    return alerts


def insurance_alerts(policies: Iterable[InsurancePolicy], today: date) -> list[Alert]:
    """Policies whose renewal is inside the cancellation notice period."""
    alerts = []
    for policy in policies:
        if not (policy.cancellation_reminder and policy.cancellation_notice_months):
            continue
        if _in_notice_window(policy.renewal_date, policy.cancellation_notice_months, today):
            alerts.append(Alert(
                id=f"alert-insurance-{policy.id}",
                type=AlertType.INSURANCE_REMINDER,
                message=f"Tu seguro '{policy.name}' está próximo a renovarse.",
                date=policy.renewal_date,
                source_id=policy.id,
                title=policy.name,
            ))
    return alerts


def budget_alerts(
    budgets: Iterable[Budget],
    instances: list[TransactionInstance],
    today: date,
) -> list[Alert]:
    """Spending limits at or above 90% of their target this month."""
    alerts = []
    month_end = add_months(today.replace(day=1), 1) - timedelta(days=1)
    for budget in budgets:
        if budget.type != BudgetType.SPENDING_LIMIT:
            continue
        progress = budget_progress(budget, instances, today)
        if progress.progress_percent < BUDGET_WARNING_PERCENT:
            continue
        if progress.is_over:
            message = f"Has superado el presupuesto '{budget.name}' ({progress.progress_percent:.0f}%)."
        else:
            message = f"Estás cerca del límite del presupuesto '{budget.name}' ({progress.progress_percent:.0f}%)."
        alerts.append(Alert(
            id=f"alert-budget-{budget.id}",
            type=AlertType.BUDGET_WARNING,
            message=message,
            date=month_end,
            source_id=budget.id,
            title=budget.name,
        ))
    return alerts


def goal_alerts(goals: Iterable[Goal], today: date) -> list[Alert]:
    """Unfinished goals whose deadline is less than 30 days away."""
    alerts = []
    for goal in goals:
        if goal.is_completed:
            continue
        days_left = (goal.deadline - today).days
        if 0 <= days_left <= GOAL_WARNING_DAYS:
            missing = goal.target_amount - goal.current_amount
            alerts.append(Alert(
                id=f"alert-goal-{goal.id}",
                type=AlertType.GOAL_WARNING,
                message=f"Faltan {days_left} días para la meta '{goal.name}' y quedan {missing:.2f} € por ahorrar.",
                date=goal.deadline,
                source_id=goal.id,
                title=goal.name,
            ))
    return alerts


def build_alerts(
    receipts: Iterable[Receipt],
    policies: Iterable[InsurancePolicy],
    budgets: Iterable[Budget] = (),
    goals: Iterable[Goal] = (),
    instances: Optional[list[TransactionInstance]] = None,
    today: Optional[date] = None,
) -> list[Alert]:
    """All alerts for a view, soonest first."""
    today = today or date.today()
    alerts = receipt_alerts(receipts, today) + insurance_alerts(policies, today)
    alerts += budget_alerts(budgets, instances or [], today)
    alerts += goal_alerts(goals, today)
    return sorted(alerts, key=lambda a: a.date)
