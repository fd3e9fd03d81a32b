"""
Tests for the finance store: operations, derived views and group views.
"""

import json
from datetime import date

import pytest

from moneygrowth.models import (
    ActiveView,
    Budget,
    BudgetType,
    Credit,
    CreditSubcategory,
    Frequency,
    Goal,
    InsightType,
    InsurancePolicy,
    InsurancePolicyType,
    Receipt,
    ReceiptType,
    SavedInsight,
    ToxicityReport,
    TransactionType,
    ViewType,
    WidgetType,
)
from moneygrowth.services.storage import ImportValidationError, NotFoundError
from moneygrowth.store import BUDGET_DELETED_PREFIX, GOAL_DELETED_PREFIX, FinanceStore

from tests.factories import make_expense, make_income


def make_credit(**kwargs) -> Credit:
    data = dict(
        name="Préstamo coche",
        total_amount=12000,
        monthly_payment=250,
        tin=6,
        tae=6.5,
        start_date=date(2024, 1, 5),
        end_date=date(2028, 1, 5),
        subcategory=CreditSubcategory.LOAN,
    )
    data.update(kwargs)
    return Credit(**data)


def make_goal(**kwargs) -> Goal:
    data = dict(
        name="Vacaciones",
        target_amount=1000,
        start_date=date(2024, 1, 1),
        deadline=date(2024, 12, 31),
    )
    data.update(kwargs)
    return Goal(**data)


class TestTransactions:
    """Tests for ledger operations."""

    def test_add_transaction_goes_to_active_user(self, store):
        """Test that a new transaction lands in the active user's bag."""
        tx = store.add_transaction(make_expense())
        user_id = store.active_view.id
        assert [t.id for t in store.state.user_data[user_id].transactions] == [tx.id]

    def test_update_transaction(self, store):
        """Test replacing a transaction."""
        tx = store.add_transaction(make_expense(amount=10))
        store.update_transaction(tx.model_copy(update={"amount": 99}))
        assert store.transactions[0].amount == 99

    def test_update_unknown_transaction_raises(self, store):
        """Test that updating a missing record fails."""
        with pytest.raises(NotFoundError):
            store.update_transaction(make_expense())

    def test_delete_transaction(self, store):
        """Test deleting a transaction."""
        tx = store.add_transaction(make_expense())
        store.delete_transaction(tx.id)
        assert store.transactions == []

    def test_toggle_instance_exclusion(self, store):
        """Test excluding and re-including one occurrence."""
        tx = store.add_transaction(make_expense(frequency=Frequency.MONTHLY, on=date(2024, 1, 10)))
        instance_id = f"{tx.id}|2024-2"

        assert store.toggle_transaction_instance_exclusion(instance_id) is True
        march = [i for i in store.get_expanded_transactions_for_year(2024) if i.instance_id == instance_id]
        assert march[0].is_excluded is True

        assert store.toggle_transaction_instance_exclusion(instance_id) is False
        assert store.excluded_instances[instance_id] is False

    def test_expanded_transactions_for_year(self, store):
        """Test that recurring transactions are expanded for the view."""
        store.add_transaction(make_income(frequency=Frequency.MONTHLY, on=date(2024, 7, 1)))
        assert len(store.get_expanded_transactions_for_year(2024)) == 6


class TestCredits:
    """Tests for credits and their linked monthly expense."""

    def test_add_credit_creates_monthly_expense(self, store):
        """Test that adding a credit adds its payment as a recurring expense."""
        credit = store.add_credit(make_credit())
        linked = [t for t in store.transactions if t.credit_id == credit.id]
        assert len(linked) == 1
        assert linked[0].type == TransactionType.EXPENSE
        assert linked[0].category == "Créditos"
        assert linked[0].subcategory == "Préstamo"
        assert linked[0].frequency == Frequency.MONTHLY
        assert linked[0].amount == 250
        assert linked[0].date == date(2024, 1, 5)

    def test_update_credit_syncs_linked_expense(self, store):
        """Test that editing the credit updates its expense."""
        credit = store.add_credit(make_credit())
        store.update_credit(credit.model_copy(update={"monthly_payment": 300, "name": "Coche"}))
        linked = next(t for t in store.transactions if t.credit_id == credit.id)
        assert linked.amount == 300
        assert linked.description == "Coche"

    def test_delete_credit_removes_linked_expense(self, store):
        """Test that deleting a credit removes its expense."""
        credit = store.add_credit(make_credit())
        store.add_transaction(make_expense())
        store.delete_credit(credit.id)
        assert store.credits == []
        assert all(t.credit_id is None for t in store.transactions)
        assert len(store.transactions) == 1

    def test_toxicity_report_set_and_cleared(self, store):
        """Test storing and clearing a toxicity report."""
        credit = store.add_credit(make_credit())
        store.update_credit_toxicity(credit.id, ToxicityReport(score=7.5, explanation="TAE alta"))
        assert store.credits[0].toxicity_report.score == 7.5

        store.delete_credit_toxicity(credit.id)
        assert store.credits[0].toxicity_report is None


class TestInsuranceAndReceipts:
    """Tests for policies (with linked expense) and receipts."""

    def test_add_policy_creates_expense(self, store):
        """Test that a policy's premium becomes an expense."""
        policy = store.add_insurance_policy(InsurancePolicy(
            name="Mapfre Hogar",
            policy_type=InsurancePolicyType.HOME,
            premium=320,
            payment_frequency=Frequency.ANNUALLY,
            renewal_date=date(2024, 9, 1),
            prorate_over_months=4,
        ))
        linked = next(t for t in store.transactions if t.insurance_id == policy.id)
        assert linked.category == "Seguros"
        assert linked.subcategory == "Hogar"
        assert linked.frequency == Frequency.ANNUALLY
        assert linked.prorate_over_months == 4
        assert linked.date == date(2024, 9, 1)

    def test_update_and_delete_policy(self, store):
        """Test that edits reach the linked expense and deletes remove it."""
        policy = store.add_insurance_policy(InsurancePolicy(
            name="Coche",
            policy_type=InsurancePolicyType.CAR,
            premium=500,
            payment_frequency=Frequency.ANNUALLY,
            renewal_date=date(2024, 3, 1),
        ))
        store.update_insurance_policy(policy.model_copy(update={"premium": 450}))
        assert next(t for t in store.transactions if t.insurance_id == policy.id).amount == 450

        store.delete_insurance_policy(policy.id)
        assert store.insurance_policies == []
        assert store.transactions == []

    def test_receipt_crud(self, store):
        """Test adding, editing and deleting a receipt."""
        receipt = store.add_receipt(Receipt(
            type=ReceiptType.RECEIPT,
            title="Netflix",
            amount=12.99,
            date=date(2024, 4, 1),
            frequency=Frequency.MONTHLY,
        ))
        store.update_receipt(receipt.model_copy(update={"amount": 13.99}))
        assert store.receipts[0].amount == 13.99

        store.delete_receipt(receipt.id)
        assert store.receipts == []


class TestGoals:
    """Tests for goals and contributions."""

    def test_initial_amount_becomes_contribution_and_saving(self, store):
        """Test that money already saved is recorded as the first contribution."""
        goal = store.add_goal(make_goal(current_amount=200, create_transactions=True))
        assert goal.contribution_history[0].amount == 200
        assert goal.contribution_history[0].description == "Aportación inicial"

        saving = next(t for t in store.transactions if t.goal_id == goal.id)
        assert saving.type == TransactionType.SAVING
        assert saving.description == "Aportación inicial a: Vacaciones"
        assert saving.goal_contribution_id == goal.contribution_history[0].id

    def test_add_funds(self, store):
        """Test adding money to a goal."""
        goal = store.add_goal(make_goal(create_transactions=True))
        contribution = store.add_funds_to_goal(goal.id, 150, "Extra", on=date(2024, 5, 1))

        stored = store.goals[0]
        assert stored.current_amount == 150
        assert stored.contribution_history[-1].id == contribution.id
        saving = next(t for t in store.transactions if t.goal_contribution_id == contribution.id)
        assert saving.description == "Aportación a: Vacaciones"
        assert saving.date == date(2024, 5, 1)

    def test_add_funds_without_transactions(self, store):
        """Test that goals without the option create no saving."""
        goal = store.add_goal(make_goal())
        store.add_funds_to_goal(goal.id, 100)
        assert store.transactions == []

    def test_add_funds_rejects_non_positive_amount(self, store):
        """Test the contribution amount check."""
        goal = store.add_goal(make_goal())
        with pytest.raises(ValueError, match="must be positive"):
            store.add_funds_to_goal(goal.id, 0)

    def test_excluding_contribution_updates_total_and_saving(self, store):
        """Test that an excluded contribution stops counting."""
        goal = store.add_goal(make_goal(create_transactions=True))
        first = store.add_funds_to_goal(goal.id, 100, on=date(2024, 2, 1))
        store.add_funds_to_goal(goal.id, 50, on=date(2024, 3, 1))

        store.update_goal_contribution(goal.id, first.model_copy(update={"is_excluded": True}))

        assert store.goals[0].current_amount == 50
        saving = next(t for t in store.transactions if t.goal_contribution_id == first.id)
        assert saving.is_excluded is True
        february = [i for i in store.get_expanded_transactions_for_year(2024) if i.id == saving.id]
        assert february[0].is_excluded is True

    def test_delete_contribution(self, store):
        """Test removing a contribution and its saving."""
        goal = store.add_goal(make_goal(create_transactions=True))
        contribution = store.add_funds_to_goal(goal.id, 100)
        store.delete_goal_contribution(goal.id, contribution.id)
        assert store.goals[0].current_amount == 0
        assert store.transactions == []

    def test_delete_excluded_contribution_keeps_total(self, store):
        """Test that removing an excluded contribution leaves the active sum."""
        goal = store.add_goal(make_goal())
        store.add_funds_to_goal(goal.id, 100)
        skipped = store.add_funds_to_goal(goal.id, 50)
        store.update_goal_contribution(goal.id, skipped.model_copy(update={"is_excluded": True}))
        assert store.goals[0].current_amount == 100

        store.delete_goal_contribution(goal.id, skipped.id)

        assert store.goals[0].current_amount == 100
        assert [c.amount for c in store.goals[0].contribution_history] == [100]

    def test_delete_unknown_contribution_raises(self, store):
        """Test deleting a missing contribution."""
        goal = store.add_goal(make_goal())
        with pytest.raises(NotFoundError):
            store.delete_goal_contribution(goal.id, "missing")

    def test_delete_goal_keeps_savings_unlinked(self, store):
        """Test that savings survive their goal, marked as such."""
        goal = store.add_goal(make_goal(current_amount=100, create_transactions=True))
        store.delete_goal(goal.id)

        assert store.goals == []
        saving = store.transactions[0]
        assert saving.goal_id is None
        assert saving.description.startswith(GOAL_DELETED_PREFIX)


class TestBudgets:
    """Tests for spending limits and saving funds."""

    def test_spending_limit_has_no_contributions(self, store):
        """Test that a spending limit never records contributions."""
        budget = store.add_budget(Budget(
            name="Ocio",
            category="Ocio",
            target_amount=200,
            current_amount=50,
            type=BudgetType.SPENDING_LIMIT,
        ))
        assert budget.contribution_history == []

    def test_saving_fund_initial_contribution(self, store):
        """Test that a saving fund records its starting balance."""
        budget = store.add_budget(
            Budget(
                name="Colchón",
                target_amount=3000,
                current_amount=500,
                type=BudgetType.SAVING_FUND,
                create_transactions=True,
            ),
            on=date(2024, 2, 1),
        )
        saving = next(t for t in store.transactions if t.budget_id == budget.id)
        assert saving.category == "Ahorro a Fondo"
        assert saving.amount == 500
        assert saving.date == date(2024, 2, 1)

    def test_budget_funds_and_contributions(self, store):
        """Test adding, excluding and deleting fund contributions."""
        budget = store.add_budget(Budget(name="Fondo", target_amount=1000, type=BudgetType.SAVING_FUND))
        first = store.add_funds_to_budget(budget.id, 200)
        second = store.add_funds_to_budget(budget.id, 100)
        assert store.budgets[0].current_amount == 300

        store.update_budget_contribution(budget.id, first.model_copy(update={"is_excluded": True}))
        assert store.budgets[0].current_amount == 100

        store.delete_budget_contribution(budget.id, second.id)
        assert store.budgets[0].current_amount == 0

    def test_delete_excluded_fund_contribution(self, store):
        """Test that an excluded contribution is not subtracted twice."""
        budget = store.add_budget(Budget(name="Fondo", target_amount=1000, type=BudgetType.SAVING_FUND))
        store.add_funds_to_budget(budget.id, 200)
        skipped = store.add_funds_to_budget(budget.id, 100)
        store.update_budget_contribution(budget.id, skipped.model_copy(update={"is_excluded": True}))

        store.delete_budget_contribution(budget.id, skipped.id)

        assert store.budgets[0].current_amount == 200

    def test_delete_budget_unlinks_savings(self, store):
        """Test that deleting a fund keeps its savings with a marker."""
        budget = store.add_budget(Budget(
            name="Fondo",
            target_amount=1000,
            type=BudgetType.SAVING_FUND,
            create_transactions=True,
        ))
        store.add_funds_to_budget(budget.id, 100)
        store.delete_budget(budget.id)
        saving = store.transactions[0]
        assert saving.budget_id is None
        assert saving.description.startswith(BUDGET_DELETED_PREFIX)

    def test_update_budget(self, store):
        """Test replacing a budget."""
        budget = store.add_budget(Budget(
            name="Ocio", category="Ocio", target_amount=200, type=BudgetType.SPENDING_LIMIT,
        ))
        store.update_budget(budget.model_copy(update={"target_amount": 250}))
        assert store.budgets[0].target_amount == 250


class TestUsersAndGroups:
    """Tests for users, groups and the active view."""

    def test_add_user_gets_color_and_data(self, store):
        """Test that a new user gets a colour and an empty bag."""
        user = store.add_user("Luis")
        assert user.color
        assert user.id in store.state.user_data

    def test_update_user(self, store):
        """Test renaming a user."""
        user = store.users[0]
        store.update_user(user.id, name="Ana")
        assert store.users[0].name == "Ana"

    def test_last_user_cannot_be_deleted(self, store):
        """Test that at least one user remains."""
        with pytest.raises(ValueError, match="last user"):
            store.delete_user(store.users[0].id)

    def test_delete_user_cleans_up(self, family):
        """Test that deleting a user removes its data and memberships."""
        store = family.store
        store.switch_view(ActiveView(type=ViewType.USER, id=family.luis.id))
        store.delete_user(family.luis.id)

        assert family.luis.id not in store.state.user_data
        assert store.groups[0].user_ids == [family.ana.id]
        assert store.active_view.id == family.ana.id

    def test_group_needs_members(self, store):
        """Test that empty groups are rejected."""
        with pytest.raises(ValueError, match="at least one member"):
            store.add_group("Vacía", [])

    def test_group_rejects_unknown_members(self, store):
        """Test that group members must exist."""
        with pytest.raises(NotFoundError):
            store.add_group("Casa", ["nobody"])

    def test_update_and_delete_group(self, family):
        """Test editing a group and deleting it while it is the view."""
        store = family.store
        store.update_group(family.group.id, "Familia", [family.ana.id])
        assert store.groups[0].name == "Familia"

        store.switch_view(ActiveView(type=ViewType.GROUP, id=family.group.id))
        store.delete_group(family.group.id)
        assert store.groups == []
        assert store.active_view.type == ViewType.USER

    def test_switch_view_validates_target(self, store):
        """Test that the view must point at an existing user or group."""
        with pytest.raises(NotFoundError):
            store.switch_view(ActiveView(type=ViewType.GROUP, id="missing"))

    def test_group_view_merges_records_with_owner(self, family):
        """Test that a group view shows every member's records, tagged."""
        store = family.store
        store.add_transaction(make_expense(amount=10), owner_id=family.ana.id)
        store.add_transaction(make_expense(amount=20), owner_id=family.luis.id)

        store.switch_view(ActiveView(type=ViewType.GROUP, id=family.group.id))
        owners = sorted((t.amount, t.owner_id) for t in store.transactions)
        assert owners == [(10, family.ana.id), (20, family.luis.id)]
        assert [u.id for u in store.group_members] == [family.ana.id, family.luis.id]

    def test_group_view_update_reaches_owner(self, family):
        """Test that editing a merged record updates the owner's bag only."""
        store = family.store
        store.add_transaction(make_expense(amount=20), owner_id=family.luis.id)
        store.switch_view(ActiveView(type=ViewType.GROUP, id=family.group.id))

        tx = store.transactions[0]
        store.update_transaction(tx.model_copy(update={"amount": 25}))

        stored = store.state.user_data[family.luis.id].transactions[0]
        assert stored.amount == 25
        assert stored.owner_id is None
        assert store.state.user_data[family.ana.id].transactions == []

    def test_group_view_exclusion_is_stored_with_owner(self, family):
        """Test that excluding an occurrence from a group view lands on the owner."""
        store = family.store
        tx = store.add_transaction(
            make_expense(frequency=Frequency.MONTHLY, on=date(2024, 1, 1)),
            owner_id=family.luis.id,
        )
        store.switch_view(ActiveView(type=ViewType.GROUP, id=family.group.id))
        store.toggle_transaction_instance_exclusion(f"{tx.id}|2024-0")
        assert store.state.user_data[family.luis.id].excluded_instances == {f"{tx.id}|2024-0": True}

    def test_records_returned_are_copies(self, store):
        """Test that mutating a derived record does not touch the state."""
        store.add_transaction(make_expense(amount=10))
        store.transactions[0].amount = 999
        assert store.transactions[0].amount == 10


class TestCategories:
    """Tests for category management."""

    def test_default_categories_are_listed_sorted(self, store):
        """Test the default taxonomy."""
        names = [c.name for c in store.expense_categories]
        assert "Vivienda" in names
        assert names == sorted(names, key=str.casefold)

    def test_custom_category_is_added(self, store):
        """Test adding a custom category."""
        store.add_expense_category("Viajes", "✈️")
        category = next(c for c in store.expense_categories if c.name == "Viajes")
        assert category.icon == "✈️"

    def test_rename_custom_category_renames_transactions_and_budgets(self, store):
        """Test that a rename reaches the records using it."""
        category = store.add_expense_category("Viajes")
        store.add_transaction(make_expense(category="Viajes"))
        store.add_budget(Budget(
            name="Viajes", category="Viajes", target_amount=100, type=BudgetType.SPENDING_LIMIT,
        ))

        store.update_expense_category(category.id, name="Escapadas")

        assert store.transactions[0].category == "Escapadas"
        assert store.budgets[0].category == "Escapadas"

    def test_rename_default_category_hides_default(self, store):
        """Test that a renamed default category replaces the default."""
        store.add_transaction(make_expense(category="Ocio"))
        store.update_expense_category("Ocio", name="Tiempo libre")

        names = [c.name for c in store.expense_categories]
        assert "Ocio" not in names
        assert "Tiempo libre" in names
        assert store.transactions[0].category == "Tiempo libre"

    def test_delete_category_moves_transactions_to_other(self, store):
        """Test that deleting a category reassigns its transactions."""
        store.add_transaction(make_expense(category="Ocio", subcategory="Hobbies"))
        store.add_budget(Budget(
            name="Ocio", category="Ocio", target_amount=100, type=BudgetType.SPENDING_LIMIT,
        ))
        store.delete_expense_category("Ocio")

        tx = store.transactions[0]
        assert tx.category == "Otros"
        assert tx.subcategory is None
        assert store.budgets == []
        assert "Ocio" not in [c.name for c in store.expense_categories]

    def test_other_category_cannot_be_deleted(self, store):
        """Test that 'Otros' is always available."""
        with pytest.raises(NotFoundError):
            store.delete_expense_category("Otros")
        with pytest.raises(NotFoundError):
            store.delete_income_category("Otros")

    def test_income_category_lifecycle(self, store):
        """Test income category add, rename and delete."""
        category = store.add_income_category("Alquileres")
        store.add_transaction(make_income(category="Alquileres"))
        store.update_income_category(category.id, name="Rentas")
        assert store.transactions[0].category == "Rentas"

        store.delete_income_category(category.id)
        assert store.transactions[0].category == "Otros"

    def test_expense_subcategories(self, store):
        """Test subcategory add, rename and delete."""
        store.add_expense_subcategory("Ocio", "Conciertos")
        assert "Conciertos" in store.expense_subcategories["Ocio"]

        store.add_transaction(make_expense(category="Ocio", subcategory="Conciertos"))
        store.update_expense_subcategory("Ocio", "Conciertos", "Música en directo")
        assert store.transactions[0].subcategory == "Música en directo"

        store.delete_expense_subcategory("Ocio", "Música en directo")
        assert store.transactions[0].subcategory is None

    def test_insurance_subcategories(self, store):
        """Test insurance subcategory add, rename and delete."""
        store.add_insurance_subcategory(InsurancePolicyType.CAR, "Todo riesgo")
        assert store.insurance_subcategories["Coche"] == ["Todo riesgo"]

        store.add_insurance_policy(InsurancePolicy(
            name="Coche",
            policy_type=InsurancePolicyType.CAR,
            subcategory="Todo riesgo",
            premium=600,
            payment_frequency=Frequency.ANNUALLY,
            renewal_date=date(2024, 5, 1),
        ))
        store.update_insurance_subcategory(InsurancePolicyType.CAR, "Todo riesgo", "Terceros")
        assert store.insurance_policies[0].subcategory == "Terceros"

        store.delete_insurance_subcategory(InsurancePolicyType.CAR, "Terceros")
        assert store.insurance_policies[0].subcategory is None

    def test_invoice_categories(self, store):
        """Test adding an invoice category."""
        store.add_invoice_category("Formación")
        store.add_invoice_category("Formación")
        assert store.invoice_categories.count("Formación") == 1
        assert "Trabajo" in store.invoice_categories


class TestAchievementsAndDashboard:
    """Tests for achievements, saved insights and dashboard settings."""

    def test_check_achievements_grants_once(self, store):
        """Test that achievements unlock once."""
        store.add_transaction(make_expense())
        assert store.check_achievements() == ["first_transaction"]
        assert store.check_achievements() == []
        assert [a.id for a in store.achievements] == ["first_transaction"]

    def test_no_achievements_in_group_view(self, family):
        """Test that achievements are only granted to a user view."""
        store = family.store
        store.switch_view(ActiveView(type=ViewType.GROUP, id=family.group.id))
        assert store.grant_achievement("first_goal") is False

    def test_saved_insights(self, store):
        """Test saving and deleting an insight."""
        insight = store.add_saved_insight(SavedInsight(type=InsightType.FORECAST, content="Todo bien"))
        assert store.saved_insights[0].content == "Todo bien"
        store.delete_saved_insight(insight.id)
        assert store.saved_insights == []

    def test_dashboard_settings(self, store):
        """Test shortcuts and widgets."""
        store.update_dashboard_shortcuts(["credits"])
        store.update_dashboard_widgets([WidgetType.ALERTS])
        assert store.dashboard_shortcuts == ["credits"]
        assert store.dashboard_widgets == [WidgetType.ALERTS]

    def test_alerts_for_view(self, store):
        """Test that alerts are derived from the view's records."""
        store.add_receipt(Receipt(
            type=ReceiptType.RECEIPT,
            title="Gimnasio",
            amount=40,
            date=date(2024, 6, 15),
            frequency=Frequency.ANNUALLY,
            auto_renews=True,
            cancellation_reminder=True,
            cancellation_notice_months=1,
        ))
        alerts = store.get_alerts(date(2024, 5, 20))
        assert [a.title for a in alerts] == ["Gimnasio"]


class TestImportExport:
    """Tests for the JSON backup format."""

    def test_export_then_import(self, store):
        """Test that an exported backup restores the same records."""
        store.add_transaction(make_expense(amount=33))
        blob = store.to_json()
        assert '"userData"' in blob

        restored = FinanceStore.from_json(blob)
        assert restored.transactions[0].amount == 33

    def test_import_rejects_invalid_json(self, store):
        """Test the message for a file that is not JSON."""
        with pytest.raises(ImportValidationError, match="no es un JSON válido"):
            store.import_json("{not json")

    def test_import_rejects_foreign_json(self, store):
        """Test the message for JSON that is not a backup."""
        with pytest.raises(ImportValidationError, match="no parece una copia de seguridad"):
            store.import_json(json.dumps({"hello": "world"}))

    def test_import_rejects_invalid_state(self, store):
        """Test the message for a backup with invalid records."""
        before = store.state
        blob = json.dumps({"users": [], "userData": {}, "activeView": {"id": "x"}})
        with pytest.raises(ImportValidationError, match="datos no válidos"):
            store.import_json(blob)
        assert store.state is before

    def test_import_replaces_state(self, store):
        """Test that a valid backup overwrites everything."""
        other = FinanceStore()
        other.add_user("Luis")
        store.import_json(other.to_json().encode("utf-8"))
        assert [u.name for u in store.users] == ["Usuario Principal", "Luis"]
