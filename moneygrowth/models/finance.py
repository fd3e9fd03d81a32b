"""
Domain Models for MoneyGrowth

These Pydantic models define the records held in the state container.

DESIGN DECISION: The whole application state is persisted as ONE JSON
blob. JSON keys are camelCase (via alias generator) so backups written
by earlier versions of the app import unchanged, while Python code
works with snake_case attributes.

Relationships are by string id only (a transaction may point at a
credit, a policy, a goal or a budget). There is no referential
integrity beyond the cleanup performed by the store operations.
"""

import datetime as dt
from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate a fresh record id."""
    return str(uuid4())


class FinanceModel(BaseModel):
    """Base for every persisted record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_json_dict(self) -> dict:
        """Serialize with the camelCase keys used by the persisted blob."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Kind of ledger entry."""
    INCOME = "income"
    EXPENSE = "expense"
    SAVING = "saving"


class CreditSubcategory(str, Enum):
    """Kind of credit. Doubles as the subcategory of its linked expense."""
    FINANCING = "Financiación"
    CARD = "Tarjeta"
    MORTGAGE = "Hipoteca"
    LOAN = "Préstamo"


class InsurancePolicyType(str, Enum):
    """Insurance line. Doubles as the subcategory of its linked expense."""
    CAR = "Coche"
    HOME = "Hogar"
    LIFE = "Vida"
    HEALTH = "Salud"
    OTHER = "Otros"


class ReceiptType(str, Enum):
    """
    RECEIPT: recurring payment (subscriptions, utilities...).
    INVOICE: one-off bill kept for taxes.
    """
    RECEIPT = "receipt"
    INVOICE = "invoice"


class Frequency(str, Enum):
    """Recurrence of a transaction, receipt or premium."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUALLY = "semiannually"
    ANNUALLY = "annually"


class BudgetType(str, Enum):
    SPENDING_LIMIT = "spending-limit"
    SAVING_FUND = "saving-fund"


class BudgetPriority(str, Enum):
    ESSENTIAL = "essential"
    SECONDARY = "secondary"


class AlertType(str, Enum):
    CANCELLATION_REMINDER = "cancellation_reminder"
    INSURANCE_REMINDER = "insurance_reminder"
    BUDGET_WARNING = "budget_warning"
    GOAL_WARNING = "goal_warning"


class InsightType(str, Enum):
    FORECAST = "forecast"
    SAVINGS = "savings"


class ViewType(str, Enum):
    USER = "user"
    GROUP = "group"


class WidgetType(str, Enum):
    """Dashboard widgets a user can enable."""
    AI_SUMMARY = "AI_SUMMARY"
    ALERTS = "ALERTS"
    ANNUAL_PAYMENTS = "ANNUAL_PAYMENTS"
    MONTHLY_SUMMARY = "MONTHLY_SUMMARY"
    GOALS = "GOALS"
    SAVINGS_SUMMARY = "SAVINGS_SUMMARY"
    FINANCIAL_SUMMARY = "FINANCIAL_SUMMARY"
    EXPENSE_DISTRIBUTION = "EXPENSE_DISTRIBUTION"
    ACHIEVEMENTS = "ACHIEVEMENTS"


# =============================================================================
# DEFAULT TAXONOMIES
# =============================================================================

OTHER_CATEGORY = "Otros"
CREDIT_CATEGORY = "Créditos"
INSURANCE_CATEGORY = "Seguros"
GOAL_SAVING_CATEGORY = "Ahorro"
BUDGET_SAVING_CATEGORY = "Ahorro a Fondo"
DEFAULT_CATEGORY_ICON = "💰"

DEFAULT_INCOME_CATEGORIES: tuple[str, ...] = (
    "Nómina", "Freelance", "Regalos", "Retiro de Ahorros", "Otros",
)

DEFAULT_EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Vivienda", "Transporte", "Alimentación", "Compras", "Ocio", "Salud",
    "Cuidado Personal", "Familia y Niños", "Mascotas", "Créditos", "Finanzas",
    "Seguros", "Regalos y Donaciones", "Otros",
)

DEFAULT_INVOICE_CATEGORIES: tuple[str, ...] = (
    "Trabajo", "Material Oficina", "Viajes", "Otros",
)

DEFAULT_EXPENSE_SUBCATEGORIES: dict[str, list[str]] = {
    "Vivienda": [
        "Alquiler", "Luz", "Agua", "Gas", "Internet y Teléfono", "Comunidad",
        "IBI", "Seguro de Hogar", "Reparaciones", "Mobiliario y Decoración",
        "Alarma", "Derrama",
    ],
    "Transporte": [
        "Combustible", "Transporte Público", "Mantenimiento Vehículo",
        "Parking", "Peajes", "Seguro de Vehículo", "ITV",
        "Impuesto de Circulación", "Taxis/VTC",
    ],
    "Alimentación": [
        "Supermercado", "Restaurantes", "Cafeterías y Bares",
        "Comida a Domicilio",
    ],
    "Compras": [
        "Ropa y Calzado", "Tecnología", "Hogar y Decoración",
        "Libros y Papelería",
    ],
    "Ocio": [
        "Suscripciones (Streaming, etc.)", "Cine y Espectáculos",
        "Gimnasio y Deporte", "Vacaciones y Viajes", "Hobbies",
        "Salidas y Eventos",
    ],
    "Salud": [
        "Farmacia", "Médico", "Seguro de Salud", "Dentista", "Óptica",
        "Fisioterapia",
    ],
    "Cuidado Personal": [
        "Peluquería y Estética", "Productos de Higiene y Cosmética",
    ],
    "Familia y Niños": [
        "Guardería/Colegio", "Universidad", "Actividades extraescolares",
        "Juguetes y Ropa", "Material escolar", "Canguro",
    ],
    "Mascotas": ["Comida", "Veterinario", "Accesorios", "Peluquería canina"],
    "Créditos": [s.value for s in CreditSubcategory],
    "Finanzas": ["Comisiones", "Asesoría", "Impuestos"],
    "Seguros": [p.value for p in InsurancePolicyType],
    "Regalos y Donaciones": ["Regalos", "Donaciones ONG", "Celebraciones"],
    "Otros": [],
}

PROFILE_COLORS: tuple[str, ...] = (
    "#38bdf8", "#f472b6", "#34d399", "#fbbf24", "#a78bfa", "#f87171",
    "#2dd4bf", "#fb923c",
)

DEFAULT_DASHBOARD_SHORTCUTS: tuple[str, ...] = (
    "accounting", "invoices", "credits", "insurance", "goals",
)

DEFAULT_DASHBOARD_WIDGETS: tuple[WidgetType, ...] = (
    WidgetType.FINANCIAL_SUMMARY,
    WidgetType.EXPENSE_DISTRIBUTION,
    WidgetType.AI_SUMMARY,
    WidgetType.ALERTS,
    WidgetType.MONTHLY_SUMMARY,
    WidgetType.ANNUAL_PAYMENTS,
    WidgetType.GOALS,
    WidgetType.SAVINGS_SUMMARY,
)


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Category(FinanceModel):
    """A user-defined (or default) income/expense category."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(default=DEFAULT_CATEGORY_ICON)


class Transaction(FinanceModel):
    """
    A single income/expense/saving ledger entry.

    A transaction with a frequency is recurring: it stands for one
    instance per period from its date onwards (see calculations.recurrence).
    """

    id: str = Field(default_factory=new_id)
    type: TransactionType
    category: str = Field(default="")
    subcategory: Optional[str] = None
    amount: float = Field(..., gt=0, description="Amount in euros")
    date: date
    description: str = Field(default="")
    frequency: Optional[Frequency] = None

    # Links to the record that generated this entry
    credit_id: Optional[str] = None
    insurance_id: Optional[str] = None
    goal_id: Optional[str] = None
    goal_contribution_id: Optional[str] = None
    budget_id: Optional[str] = None
    budget_contribution_id: Optional[str] = None

    notes: Optional[str] = None
    prorate_over_months: Optional[int] = Field(default=None, ge=1, le=24)
    is_excluded: Optional[bool] = None
    owner_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_category(self) -> "Transaction":
        """Every non-saving entry needs a category."""
        if self.type != TransactionType.SAVING and not self.category:
            raise ValueError("Category is required for income and expense transactions")
        return self

    @property
    def is_recurring(self) -> bool:
        return self.frequency is not None


class ToxicityReport(FinanceModel):
    """AI assessment of how unfavourable a credit is (0 good, 10 toxic)."""

    score: float = Field(..., ge=0, le=10)
    explanation: str = Field(default="")


class Credit(FinanceModel):
    """A loan or financing record."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    total_amount: float = Field(..., ge=0)
    monthly_payment: float = Field(..., gt=0)
    tin: float = Field(..., ge=0, le=100, description="Nominal annual rate (%)")
    tae: float = Field(..., ge=0, le=100, description="Annual equivalent rate (%)")
    start_date: date
    end_date: date
    subcategory: CreditSubcategory
    toxicity_report: Optional[ToxicityReport] = None
    notes: Optional[str] = None
    owner_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_dates(self) -> "Credit":
        if self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class Receipt(FinanceModel):
    """
    A recurring receipt or a one-off invoice.

    For INVOICE, date is the issue date. For RECEIPT, it is the next due date.
    """

    id: str = Field(default_factory=new_id)
    type: ReceiptType
    title: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., ge=0)
    date: date
    description: str = Field(default="")
    contract_file: Optional[str] = None
    invoice_category: Optional[str] = None
    is_tax_deductible: Optional[bool] = None

    # Recurring receipts only
    frequency: Optional[Frequency] = None
    auto_renews: Optional[bool] = None
    prorate_over_months: Optional[int] = Field(default=None, ge=1, le=24)
    cancellation_reminder: Optional[bool] = None
    cancellation_notice_months: Optional[int] = Field(default=None, ge=1, le=24)
    notes: Optional[str] = None
    owner_id: Optional[str] = None


class InsurancePolicy(FinanceModel):
    """An insurance policy. Its premium is tracked as a linked expense."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    policy_type: InsurancePolicyType
    subcategory: Optional[str] = None
    premium: float = Field(..., gt=0)
    payment_frequency: Frequency
    renewal_date: date
    cancellation_reminder: bool = False
    cancellation_notice_months: Optional[int] = Field(default=None, ge=1, le=24)
    contract_file: Optional[str] = None
    notes: Optional[str] = None
    prorate_over_months: Optional[int] = Field(default=None, ge=1, le=24)
    owner_id: Optional[str] = None


class Alert(FinanceModel):
    """A derived reminder. Never persisted."""

    id: str
    type: AlertType
    message: str
    date: date
    source_id: str
    title: str


# =============================================================================
# GOALS AND BUDGETS
# =============================================================================

class Contribution(FinanceModel):
    """One deposit into a goal or a saving-fund budget."""

    id: str = Field(default_factory=new_id)
    date: date
    amount: float = Field(..., gt=0)
    description: Optional[str] = None
    is_excluded: Optional[bool] = None


class Goal(FinanceModel):
    """A savings target with contribution history."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: float = Field(..., gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    start_date: date
    deadline: date
    notes: Optional[str] = None
    contribution_history: list[Contribution] = Field(default_factory=list)
    create_transactions: Optional[bool] = None
    owner_id: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.current_amount >= self.target_amount


class Budget(FinanceModel):
    """
    A budget.

    SPENDING_LIMIT caps the monthly expense of one category.
    SAVING_FUND accumulates contributions like a goal.
    """

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    category: Optional[str] = None
    target_amount: float = Field(..., gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    type: BudgetType
    priority: BudgetPriority = BudgetPriority.ESSENTIAL
    deadline: Optional[date] = None
    notes: Optional[str] = None
    contribution_history: list[Contribution] = Field(default_factory=list)
    create_transactions: Optional[bool] = None
    owner_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_category(self) -> "Budget":
        if self.type == BudgetType.SPENDING_LIMIT and not self.category:
            raise ValueError("A spending-limit budget needs a category")
        return self


# =============================================================================
# USERS, GAMIFICATION, AI HISTORY
# =============================================================================

class User(FinanceModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = None


class Group(FinanceModel):
    """A set of users whose data is viewed together."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    user_ids: list[str] = Field(default_factory=list)


class Achievement(FinanceModel):
    id: str
    unlocked_date: datetime = Field(default_factory=datetime.now)


class SavedInsight(FinanceModel):
    id: str = Field(default_factory=new_id)
    type: InsightType
    content: str
    date: datetime = Field(default_factory=datetime.now)


class ScannedReceiptData(FinanceModel):
    """What the AI could read from a receipt photo. Every field may be missing."""

    amount: Optional[float] = None
    date: Optional[dt.date] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image_issues: list[str] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        """Anything that is not YYYY-MM-DD is replaced by today."""
        if v is None or isinstance(v, date):
            return v
        try:
            return date.fromisoformat(str(v))
        except ValueError:
            return date.today()


class SuggestedBudget(FinanceModel):
    category: str
    target_amount: float = Field(..., ge=0)
    priority: BudgetPriority = BudgetPriority.ESSENTIAL


class BudgetSuggestion(FinanceModel):
    """A 50/30/20 budget proposal generated by the AI."""

    summary: str
    suggested_budgets: list[SuggestedBudget] = Field(default_factory=list)


# =============================================================================
# STATE
# =============================================================================

class UserData(FinanceModel):
    """
    The per-user data bag.

    Every field has a default so partial blobs from older backups load.
    """

    transactions: list[Transaction] = Field(default_factory=list)
    credits: list[Credit] = Field(default_factory=list)
    receipts: list[Receipt] = Field(default_factory=list)
    insurance_policies: list[InsurancePolicy] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)

    income_categories: list[Category] = Field(default_factory=list)
    expense_categories: list[Category] = Field(default_factory=list)
    hidden_default_income_categories: list[str] = Field(default_factory=list)
    hidden_default_expense_categories: list[str] = Field(default_factory=list)
    expense_subcategories: dict[str, list[str]] = Field(default_factory=dict)
    invoice_categories: list[str] = Field(default_factory=list)
    insurance_subcategories: dict[str, list[str]] = Field(default_factory=dict)

    excluded_instances: dict[str, bool] = Field(default_factory=dict)
    achievements: list[Achievement] = Field(default_factory=list)
    saved_insights: list[SavedInsight] = Field(default_factory=list)

    dashboard_shortcuts: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DASHBOARD_SHORTCUTS)
    )
    dashboard_widgets: list[WidgetType] = Field(
        default_factory=lambda: list(DEFAULT_DASHBOARD_WIDGETS)
    )

    @field_validator("dashboard_widgets", mode="before")
    @classmethod
    def drop_unknown_widgets(cls, v):
        """Widgets removed from the app are silently dropped on load."""
        if not isinstance(v, list):
            return v
        known = {w.value for w in WidgetType}
        return [w for w in v if (w.value if isinstance(w, WidgetType) else w) in known]


class ActiveView(FinanceModel):
    type: ViewType = ViewType.USER
    id: str


class AppState(FinanceModel):
    """Everything the application persists."""

    users: list[User] = Field(..., min_length=1)
    groups: list[Group] = Field(default_factory=list)
    active_view: ActiveView
    user_data: dict[str, UserData] = Field(default_factory=dict)

    @model_validator(mode="after")
    def ensure_user_data(self) -> "AppState":
        """Every user owns a data bag; the active view must exist."""
        for user in self.users:
            self.user_data.setdefault(user.id, UserData())

        if self.active_view.type == ViewType.USER:
            known = {u.id for u in self.users}
        else:
            known = {g.id for g in self.groups}
        if self.active_view.id not in known:
            self.active_view = ActiveView(type=ViewType.USER, id=self.users[0].id)
        return self


def initial_state() -> AppState:
    """A fresh state with one user."""
    user = User(name="Usuario Principal", color=PROFILE_COLORS[0])
    return AppState(
        users=[user],
        active_view=ActiveView(type=ViewType.USER, id=user.id),
        user_data={user.id: UserData()},
    )
