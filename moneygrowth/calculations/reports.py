"""
Reports and Exports

Monthly financial report, annual accounting grid (CSV export), budget
and goal progress, and the upcoming annual payments list.

All functions take EXPANDED transaction instances (see recurrence) so a
monthly subscription shows up in every month it is paid.
"""

import csv
import io
from collections import defaultdict
from enum import Enum
from datetime import date, datetime
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from moneygrowth.calculations.credits import (
    CreditStatus,
    credit_status,
    debt_health,
    debt_to_income_ratio,
)
from moneygrowth.calculations.recurrence import (
    TransactionInstance,
    add_months,
    instances_in_month,
)
from moneygrowth.models.finance import (
    Budget,
    BudgetType,
    Credit,
    Frequency,
    Goal,
    InsurancePolicy,
    Receipt,
    ReceiptType,
    TransactionType,
)


MONTH_LABELS: tuple[str, ...] = (
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio", "Julio",
    "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
)

HEALTH_ADVICE: dict[str, str] = {
    "Desconocida": (
        "No hay suficientes datos de ingresos mensuales para calcular "
        "el ratio de endeudamiento."
    ),
    "Saludable": (
        "Tu nivel de deuda es bajo en comparación con tus ingresos. "
        "¡Excelente trabajo!"
    ),
    "Buena": (
        "Tu nivel de deuda es manejable. Sigue así y evita contraer "
        "nuevas deudas innecesarias."
    ),
    "Moderada": (
        "Tu nivel de deuda es algo elevado. Es un buen momento para "
        "crear un plan y reducirlo."
    ),
    "De Riesgo": (
        "Tu nivel de deuda es muy alto. Es crucial priorizar su "
        "reducción para mejorar tu salud financiera."
    ),
}


class NoTransactionsError(ValueError):
    """Raised when an export is requested for a year without transactions."""

    def __init__(self, year: int):
        self.year = year
        super().__init__("No hay transacciones para exportar en el año seleccionado.")


# =============================================================================
# REPORT MODELS
# =============================================================================

class CategoryAmount(BaseModel):
    name: str
    value: float


class FinancialHealth(BaseModel):
    status: str
    advice: str


class GoalProgress(BaseModel):
    goal_id: str
    name: str
    current_amount: float
    target_amount: float
    progress_percent: float = Field(ge=0, le=100)
    remaining_amount: float = Field(ge=0)
    days_left: int
    monthly_needed: Optional[float] = None


class BudgetProgress(BaseModel):
    budget_id: str
    name: str
    type: BudgetType
    category: Optional[str] = None
    spent: float
    target_amount: float
    progress_percent: float = Field(ge=0)
    remaining: float

    @property
    def is_over(self) -> bool:
        return self.progress_percent > 100


class MonthlyReport(BaseModel):
    year: int
    month: int
    total_income: float
    total_expenses: float
    balance: float
    debt_to_income_ratio: Optional[float] = None
    financial_health: FinancialHealth
    expense_by_category: list[CategoryAmount] = Field(default_factory=list)
    credits: list[CreditStatus] = Field(default_factory=list)
    goals: list[GoalProgress] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=datetime.now)


class MonthSummary(BaseModel):
    month: int
    income: float = 0.0
    expense: float = 0.0
    saving: float = 0.0

    @property
    def balance(self) -> float:
        return self.income - self.expense - self.saving


class UpcomingPayment(BaseModel):
    name: str
    date: date
    amount: float
    source_id: str


# =============================================================================
# TOTALS
# =============================================================================

def _is_outflow(instance: TransactionInstance) -> bool:
    return instance.type in (TransactionType.EXPENSE, TransactionType.SAVING)


def total_income(instances: Iterable[TransactionInstance]) -> float:
    return sum(i.amount for i in instances if i.type == TransactionType.INCOME)


def total_outflow(instances: Iterable[TransactionInstance]) -> float:
    """Expenses plus savings."""
    return sum(i.amount for i in instances if _is_outflow(i))


def expense_by_category(instances: Iterable[TransactionInstance]) -> list[CategoryAmount]:
    """Outflow per category, largest first."""
    totals: dict[str, float] = defaultdict(float)
    for instance in instances:
        if _is_outflow(instance):
            totals[instance.category or "Ahorro"] += instance.amount
    return sorted(
        (CategoryAmount(name=name, value=value) for name, value in totals.items()),
        key=lambda c: c.value,
        reverse=True,
    )


def goal_progress(goal: Goal, today: Optional[date] = None) -> GoalProgress:
    """How far a goal is, and how much per month would still be needed."""
    today = today or date.today()
    remaining = max(goal.target_amount - goal.current_amount, 0.0)
    progress = min(goal.current_amount / goal.target_amount * 100, 100.0)
    days_left = (goal.deadline - today).days

    monthly_needed = None
    if remaining > 0 and days_left > 0:
        months_left = max((goal.deadline.year - today.year) * 12 + goal.deadline.month - today.month, 1)
        monthly_needed = remaining / months_left

    return GoalProgress(
        goal_id=goal.id,
        name=goal.name,
        current_amount=goal.current_amount,
        target_amount=goal.target_amount,
        progress_percent=progress,
        remaining_amount=remaining,
        days_left=days_left,
        monthly_needed=monthly_needed,
    )


def budget_progress(
    budget: Budget,
    instances: Iterable[TransactionInstance],
    today: Optional[date] = None,
) -> BudgetProgress:
    """
    Spending-limit budgets compare this month's expenses in their
    category against the limit. Saving funds compare what has been
    put aside against the target.
    """
    today = today or date.today()

    if budget.type == BudgetType.SPENDING_LIMIT:
        spent = sum(
            i.amount
            for i in instances_in_month(instances, today.year, today.month)
            if i.type == TransactionType.EXPENSE and i.category == budget.category
        )
    else:
        spent = budget.current_amount

    return BudgetProgress(
        budget_id=budget.id,
        name=budget.name,
        type=budget.type,
        category=budget.category,
        spent=spent,
        target_amount=budget.target_amount,
        progress_percent=spent / budget.target_amount * 100,
        remaining=budget.target_amount - spent,
    )


# =============================================================================
# MONTHLY REPORT
# =============================================================================

def monthly_report(
    instances: Iterable[TransactionInstance],
    year: int,
    month: int,
    credits: list[Credit],
    goals: list[Goal],
    today: Optional[date] = None,
) -> MonthlyReport:
    """
    Build the monthly report.

    Excluded instances are ignored. The debt ratio compares the sum of
    all credit payments with the month's income.
    """
    today = today or date.today()
    monthly = instances_in_month(instances, year, month)

    income = total_income(monthly)
    outflow = total_outflow(monthly)
    ratio = debt_to_income_ratio(credits, income)
    status = debt_health(ratio)

    return MonthlyReport(
        year=year,
        month=month,
        total_income=income,
        total_expenses=outflow,
        balance=income - outflow,
        debt_to_income_ratio=ratio,
        financial_health=FinancialHealth(status=status, advice=HEALTH_ADVICE[status]),
        expense_by_category=expense_by_category(monthly),
        credits=[credit_status(c, today) for c in credits],
        goals=[goal_progress(g, today) for g in goals],
    )


def render_monthly_report_text(report: MonthlyReport, currency: str = "€") -> str:
    """Printable Markdown version of a monthly report."""
    def money(value: float) -> str:
        return f"{value:,.2f} {currency}"

    lines = [
        f"# Informe Financiero - {MONTH_LABELS[report.month - 1]} {report.year}",
        "",
        f"Generado: {report.generated_at.strftime('%d/%m/%Y %H:%M')}",
        "",
        "## Resumen",
        f"- Ingresos: {money(report.total_income)}",
        f"- Gastos y ahorro: {money(report.total_expenses)}",
        f"- Balance: {money(report.balance)}",
        "",
        "## Salud financiera",
    ]
    if report.debt_to_income_ratio is not None:
        lines.append(f"- Ratio de endeudamiento: {report.debt_to_income_ratio:.1f}%")
    lines.append(f"- Estado: {report.financial_health.status}")
    lines.append(f"- {report.financial_health.advice}")

    if report.expense_by_category:
        lines += ["", "## Gastos por categoría"]
        lines += [f"- {c.name}: {money(c.value)}" for c in report.expense_by_category]

    if report.credits:
        lines += ["", "## Créditos"]
        lines += [
            f"- {c.name}: pendiente {money(c.remaining_amount)} "
            f"({c.progress_percent:.0f}% pagado), cuota {money(c.monthly_payment)}"
            for c in report.credits
        ]

    if report.goals:
        lines += ["", "## Metas"]
        lines += [
            f"- {g.name}: {money(g.current_amount)} de {money(g.target_amount)} "
            f"({g.progress_percent:.0f}%)"
            for g in report.goals
        ]

    return "\n".join(lines) + "\n"


def monthly_report_filename(report: MonthlyReport) -> str:
    return f"informe_financiero_{report.year}_{report.month:02d}.md"


# =============================================================================
# ANNUAL VIEWS
# =============================================================================

def annual_summary(instances: Iterable[TransactionInstance], year: int) -> list[MonthSummary]:
    """Income, expense and saving per month of `year` (excluded instances skipped)."""
    months = [MonthSummary(month=m) for m in range(1, 13)]
    for instance in instances:
        if instance.is_excluded or instance.date.year != year:
            continue
        summary = months[instance.date.month - 1]
        if instance.type == TransactionType.INCOME:
            summary.income += instance.amount
        elif instance.type == TransactionType.EXPENSE:
            summary.expense += instance.amount
        else:
            summary.saving += instance.amount
    return months


def accounting_csv_filename(year: int) -> str:
    return f"informe_contable_{year}.csv"


def export_accounting_csv(instances: list[TransactionInstance], year: int) -> str:
    """
    Annual accounting grid as CSV text (with a leading BOM for Excel).

    Rows: INGRESOS total, then each income category with a non-zero
    total; GASTOS total and its categories; AHORRO when anything was
    saved; BALANCE = income - expenses. Columns: the twelve months and
    the annual total, two decimals, every data cell quoted.

    Raises:
        NoTransactionsError: If there are no instances for `year`
    """
    in_year = [i for i in instances if i.date.year == year]
    if not in_year:
        raise NoTransactionsError(year)

    grids: dict[TransactionType, dict[str, list[float]]] = {
        t: defaultdict(lambda: [0.0] * 13) for t in TransactionType
    }
    for instance in in_year:
        if instance.is_excluded:
            continue
        row = grids[instance.type][instance.category or "Ahorro"]
        row[instance.date.month - 1] += instance.amount
        row[12] += instance.amount

    def column_totals(grid: dict[str, list[float]]) -> list[float]:
        return [sum(row[i] for row in grid.values()) for i in range(13)]

    def fmt(values: list[float]) -> list[str]:
        return [f"{v:.2f}" for v in values]

    income_totals = column_totals(grids[TransactionType.INCOME])
    expense_totals = column_totals(grids[TransactionType.EXPENSE])
    saving_totals = column_totals(grids[TransactionType.SAVING])
    balance = [income_totals[i] - expense_totals[i] for i in range(13)]

    buffer = io.StringIO()
    buffer.write("\ufeff")
    csv.writer(buffer, lineterminator="\n").writerow(
        ["Categoría", *MONTH_LABELS, "Total Anual"]
    )
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    writer.writerow(["INGRESOS", *fmt(income_totals)])
    for category in sorted(grids[TransactionType.INCOME]):
        row = grids[TransactionType.INCOME][category]
        if row[12] > 0:
            writer.writerow([f"  {category}", *fmt(row)])

    writer.writerow(["GASTOS", *fmt(expense_totals)])
    for category in sorted(grids[TransactionType.EXPENSE]):
        row = grids[TransactionType.EXPENSE][category]
        if row[12] > 0:
            writer.writerow([f"  {category}", *fmt(row)])

    if saving_totals[12] > 0:
        writer.writerow(["AHORRO", *fmt(saving_totals)])

    writer.writerow(["BALANCE", *fmt(balance)])
    return buffer.getvalue().rstrip("\n")


# =============================================================================
# DASHBOARD HELPERS
# =============================================================================

def upcoming_annual_payments(
    receipts: list[Receipt],
    policies: list[InsurancePolicy],
    today: Optional[date] = None,
    limit: int = 4,
) -> list[UpcomingPayment]:
    """Annual receipts and premiums due within the next twelve months."""
    today = today or date.today()
    horizon = add_months(today, 12)

    payments = [
        UpcomingPayment(name=r.title, date=r.date, amount=r.amount, source_id=r.id)
        for r in receipts
        if r.frequency == Frequency.ANNUALLY and today <= r.date <= horizon
    ]
    payments += [
        UpcomingPayment(name=p.name, date=p.renewal_date, amount=p.premium, source_id=p.id)
        for p in policies
        if p.payment_frequency == Frequency.ANNUALLY and today <= p.renewal_date <= horizon
    ]
    payments.sort(key=lambda p: p.date)
    return payments[:limit]


# =============================================================================
# RECEIPT LIST
# =============================================================================

class ReceiptSortKey(str, Enum):
    TITLE = "title"
    TYPE = "type"
    AMOUNT = "amount"
    DATE = "date"


def receipt_type_label(receipt: Receipt) -> str:
    return "Factura" if receipt.type == ReceiptType.INVOICE else "Recibo"


def sort_receipts(
    receipts: Iterable[Receipt],
    key: ReceiptSortKey = ReceiptSortKey.DATE,
    descending: bool = True,
) -> list[Receipt]:
    """Receipts and invoices in one list, newest first by default."""
    sort_value = {
        ReceiptSortKey.TITLE: lambda r: r.title.casefold(),
        ReceiptSortKey.TYPE: receipt_type_label,
        ReceiptSortKey.AMOUNT: lambda r: r.amount,
        ReceiptSortKey.DATE: lambda r: r.date,
    }[key]
    return sorted(receipts, key=sort_value, reverse=descending)
