"""Pure calculations over the finance state."""

from moneygrowth.calculations.achievements import (
    ACHIEVEMENT_DEFINITIONS,
    ACHIEVEMENTS_BY_ID,
    AchievementDefinition,
    evaluate_achievements,
)
from moneygrowth.calculations.alerts import build_alerts
from moneygrowth.calculations.credits import (
    CreditStatus,
    CreditSummary,
    DebtStrategy,
    calculate_remaining_amount,
    credit_status,
    credit_summary,
    debt_health,
    debt_to_income_ratio,
    order_credits,
    toxicity_level,
)
from moneygrowth.calculations.projections import (
    CompoundInterestParams,
    ProjectionPoint,
    ProjectionStep,
    RatePeriod,
    compound_interest_projection,
    projection_result,
)
from moneygrowth.calculations.recurrence import (
    TransactionInstance,
    add_months,
    expand_transactions_for_year,
    instances_in_month,
    monthly_equivalent,
)
from moneygrowth.calculations.reports import (
    BudgetProgress,
    GoalProgress,
    MonthlyReport,
    NoTransactionsError,
    ReceiptSortKey,
    accounting_csv_filename,
    annual_summary,
    budget_progress,
    expense_by_category,
    export_accounting_csv,
    goal_progress,
    monthly_report,
    monthly_report_filename,
    receipt_type_label,
    render_monthly_report_text,
    sort_receipts,
    upcoming_annual_payments,
)

__all__ = [
    "ACHIEVEMENT_DEFINITIONS",
    "ACHIEVEMENTS_BY_ID",
    "AchievementDefinition",
    "BudgetProgress",
    "CompoundInterestParams",
    "CreditStatus",
    "CreditSummary",
    "DebtStrategy",
    "GoalProgress",
    "MonthlyReport",
    "NoTransactionsError",
    "ProjectionPoint",
    "ProjectionStep",
    "RatePeriod",
    "ReceiptSortKey",
    "TransactionInstance",
    "accounting_csv_filename",
    "add_months",
    "annual_summary",
    "budget_progress",
    "build_alerts",
    "calculate_remaining_amount",
    "compound_interest_projection",
    "credit_status",
    "credit_summary",
    "debt_health",
    "debt_to_income_ratio",
    "evaluate_achievements",
    "expand_transactions_for_year",
    "expense_by_category",
    "export_accounting_csv",
    "goal_progress",
    "instances_in_month",
    "monthly_equivalent",
    "monthly_report",
    "monthly_report_filename",
    "order_credits",
    "projection_result",
    "receipt_type_label",
    "render_monthly_report_text",
    "sort_receipts",
    "toxicity_level",
    "upcoming_annual_payments",
]
