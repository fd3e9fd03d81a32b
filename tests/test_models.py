"""
Tests for MoneyGrowth

Test strategy:
1. Unit tests for individual components (models, calculations)
2. Integration tests for flows (with in-memory storage and fake models)
3. No real API calls in tests (use fakes)
"""

import json
from datetime import date
from uuid import uuid4

import pytest

from moneygrowth.models import (
    ActiveView,
    AppState,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Budget,
    BudgetType,
    Credit,
    CreditSubcategory,
    Goal,
    ScannedReceiptData,
    ToxicityReport,
    Transaction,
    TransactionType,
    User,
    UserData,
    ViewType,
    WidgetType,
    initial_state,
)


class TestFinanceModels:
    """Tests for the persisted records."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(
            type=TransactionType.EXPENSE,
            category="Alimentación",
            subcategory="Supermercado",
            amount=42.3,
            date=date(2024, 5, 2),
        )
        assert tx.category == "Alimentación"
        assert tx.is_recurring is False
        assert tx.id

    def test_transaction_requires_category_unless_saving(self):
        """Test that income and expenses need a category but savings don't."""
        with pytest.raises(ValueError, match="Category is required"):
            Transaction(type=TransactionType.INCOME, amount=10, date=date(2024, 1, 1))

        saving = Transaction(type=TransactionType.SAVING, amount=10, date=date(2024, 1, 1))
        assert saving.category == ""

    def test_transaction_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Transaction(
                type=TransactionType.EXPENSE,
                category="Ocio",
                amount=-5,
                date=date(2024, 1, 1),
            )

    def test_transaction_rejects_zero_amount(self):
        """Test that a transaction must move some money."""
        with pytest.raises(ValueError, match="greater than 0"):
            Transaction(
                type=TransactionType.EXPENSE,
                category="Ocio",
                amount=0,
                date=date(2024, 1, 1),
            )

    def test_transaction_accepts_camel_case_keys(self):
        """Test that records load from the camelCase blob format."""
        tx = Transaction.model_validate({
            "type": "expense",
            "category": "Créditos",
            "amount": 200,
            "date": "2024-02-01",
            "frequency": "monthly",
            "creditId": "c-1",
            "prorateOverMonths": 3,
        })
        assert tx.credit_id == "c-1"
        assert tx.prorate_over_months == 3
        assert tx.is_recurring is True

    def test_to_json_dict_uses_camel_case_and_drops_none(self):
        """Test serialization to the persisted format."""
        tx = Transaction(
            type=TransactionType.EXPENSE,
            category="Ocio",
            amount=12.5,
            date=date(2024, 1, 3),
            goal_id="g-1",
        )
        data = tx.to_json_dict()
        assert data["goalId"] == "g-1"
        assert data["date"] == "2024-01-03"
        assert "subcategory" not in data
        assert "ownerId" not in data

    def test_credit_rejects_end_before_start(self):
        """Test credit date validation."""
        with pytest.raises(ValueError, match="End date cannot be before start date"):
            Credit(
                name="Coche",
                total_amount=10000,
                monthly_payment=200,
                tin=5,
                tae=5.5,
                start_date=date(2024, 6, 1),
                end_date=date(2024, 1, 1),
                subcategory=CreditSubcategory.LOAN,
            )

    def test_toxicity_score_is_bounded(self):
        """Test that toxicity scores stay within 0-10."""
        with pytest.raises(ValueError):
            ToxicityReport(score=11)

    def test_spending_limit_budget_needs_category(self):
        """Test that a spending limit must name a category."""
        with pytest.raises(ValueError, match="needs a category"):
            Budget(name="Sin categoría", target_amount=100, type=BudgetType.SPENDING_LIMIT)

        fund = Budget(name="Vacaciones", target_amount=1000, type=BudgetType.SAVING_FUND)
        assert fund.category is None

    def test_goal_completion(self):
        """Test the completed flag of a goal."""
        goal = Goal(
            name="Coche",
            target_amount=500,
            current_amount=500,
            start_date=date(2024, 1, 1),
            deadline=date(2024, 12, 31),
        )
        assert goal.is_completed is True

    def test_scanned_receipt_invalid_date_becomes_today(self):
        """Test that an unreadable date from a receipt photo falls back to today."""
        scanned = ScannedReceiptData(amount=9.99, date="31/02/2024")
        assert scanned.date == date.today()

        scanned = ScannedReceiptData(date="2024-03-05")
        assert scanned.date == date(2024, 3, 5)

    def test_scanned_receipt_keeps_a_real_date(self):
        """Test that a readable receipt date is stored as a date."""
        scanned = ScannedReceiptData(amount=1, date="2024-02-03")
        assert scanned.date == date(2024, 2, 3)
        assert ScannedReceiptData.model_validate({"date": date(2024, 2, 3)}).date == date(2024, 2, 3)
        assert ScannedReceiptData().date is None


class TestAppState:
    """Tests for the state blob."""

    def test_initial_state_has_one_user(self):
        """Test the fresh state."""
        state = initial_state()
        assert len(state.users) == 1
        assert state.users[0].name == "Usuario Principal"
        assert state.active_view.type == ViewType.USER
        assert state.active_view.id == state.users[0].id
        assert state.users[0].id in state.user_data

    def test_missing_user_data_is_created(self):
        """Test that every user gets a data bag on load."""
        user = User(name="Ana")
        state = AppState(
            users=[user],
            active_view=ActiveView(type=ViewType.USER, id=user.id),
        )
        assert isinstance(state.user_data[user.id], UserData)

    def test_unknown_active_view_falls_back_to_first_user(self):
        """Test that a dangling view id is repaired."""
        user = User(name="Ana")
        state = AppState(
            users=[user],
            active_view=ActiveView(type=ViewType.GROUP, id="missing"),
        )
        assert state.active_view == ActiveView(type=ViewType.USER, id=user.id)

    def test_state_requires_a_user(self):
        """Test that a state without users is rejected."""
        with pytest.raises(ValueError):
            AppState(users=[], active_view=ActiveView(id="x"))

    def test_unknown_widgets_are_dropped(self):
        """Test that widgets no longer offered are ignored on load."""
        data = UserData.model_validate({"dashboardWidgets": ["ALERTS", "OLD_WIDGET"]})
        assert data.dashboard_widgets == [WidgetType.ALERTS]

    def test_partial_user_data_loads_with_defaults(self):
        """Test that older blobs missing fields still load."""
        data = UserData.model_validate({"transactions": []})
        assert data.credits == []
        assert data.excluded_instances == {}
        assert WidgetType.FINANCIAL_SUMMARY in data.dashboard_widgets

    def test_state_round_trips_through_json(self):
        """Test that the serialized blob validates back into the same state."""
        state = initial_state()
        blob = json.dumps(state.to_json_dict())
        restored = AppState.model_validate_json(blob)
        assert restored.users[0].id == state.users[0].id
        assert "userData" in json.loads(blob)
        assert "activeView" in json.loads(blob)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            description="State saved",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_log_dict(self):
        """Test conversion to a structured log dict."""
        correlation_id = uuid4()
        event = AuditEventBuilder.state_imported(users=2, correlation_id=correlation_id)
        log = event.to_log_dict()
        assert log["event_type"] == "state_imported"
        assert log["correlation_id"] == str(correlation_id)

    def test_audit_event_json_line_round_trip(self):
        """Test that a JSON line can be read back."""
        event = AuditEventBuilder.state_reset()
        restored = AuditEvent.model_validate_json(event.to_json_line())
        assert restored.event_id == event.event_id
        assert restored.severity == AuditSeverity.WARNING
        assert restored.is_user_action is True

    def test_state_load_failed_is_an_error(self):
        """Test severity of a failed load."""
        event = AuditEventBuilder.state_load_failed(error="bad json")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "bad json"
