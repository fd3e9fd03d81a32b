"""Data models package."""

from moneygrowth.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from moneygrowth.models.finance import (
    BUDGET_SAVING_CATEGORY,
    CREDIT_CATEGORY,
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_EXPENSE_SUBCATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    DEFAULT_INVOICE_CATEGORIES,
    GOAL_SAVING_CATEGORY,
    INSURANCE_CATEGORY,
    OTHER_CATEGORY,
    PROFILE_COLORS,
    Achievement,
    ActiveView,
    Alert,
    AlertType,
    AppState,
    Budget,
    BudgetPriority,
    BudgetSuggestion,
    BudgetType,
    Category,
    Contribution,
    Credit,
    CreditSubcategory,
    Frequency,
    Goal,
    Group,
    InsightType,
    InsurancePolicy,
    InsurancePolicyType,
    Receipt,
    ReceiptType,
    SavedInsight,
    ScannedReceiptData,
    SuggestedBudget,
    ToxicityReport,
    Transaction,
    TransactionType,
    User,
    UserData,
    ViewType,
    WidgetType,
    initial_state,
    new_id,
)

__all__ = [
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Taxonomies
    "BUDGET_SAVING_CATEGORY",
    "CREDIT_CATEGORY",
    "DEFAULT_EXPENSE_CATEGORIES",
    "DEFAULT_EXPENSE_SUBCATEGORIES",
    "DEFAULT_INCOME_CATEGORIES",
    "DEFAULT_INVOICE_CATEGORIES",
    "GOAL_SAVING_CATEGORY",
    "INSURANCE_CATEGORY",
    "OTHER_CATEGORY",
    "PROFILE_COLORS",
    # Records
    "Achievement",
    "ActiveView",
    "Alert",
    "AlertType",
    "AppState",
    "Budget",
    "BudgetPriority",
    "BudgetSuggestion",
    "BudgetType",
    "Category",
    "Contribution",
    "Credit",
    "CreditSubcategory",
    "Frequency",
    "Goal",
    "Group",
    "InsightType",
    "InsurancePolicy",
    "InsurancePolicyType",
    "Receipt",
    "ReceiptType",
    "SavedInsight",
    "ScannedReceiptData",
    "SuggestedBudget",
    "ToxicityReport",
    "Transaction",
    "TransactionType",
    "User",
    "UserData",
    "ViewType",
    "WidgetType",
    "initial_state",
    "new_id",
]
