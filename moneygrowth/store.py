"""
Finance Store

The single shared state container. Every page of the app reads the
derived view of the active user or group from here, and every mutation
goes through one of the operations below.

DESIGN DECISION: Mutations of a user's data bag all pass through
`_modify_user_data`. Records are located across users with
`_find_owner_id`, so operations that receive a record coming from a
merged group view still land in the right data bag.

Records returned by the derived properties are copies tagged with their
`owner_id`; mutating them has no effect until they are passed back to
an update operation.
"""

import json
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

import structlog
from pydantic import ValidationError

from moneygrowth.calculations.achievements import evaluate_achievements
from moneygrowth.calculations.alerts import build_alerts
from moneygrowth.calculations.recurrence import (
    TransactionInstance,
    expand_transactions_for_year,
)
from moneygrowth.models.finance import (
    BUDGET_SAVING_CATEGORY,
    CREDIT_CATEGORY,
    DEFAULT_CATEGORY_ICON,
    DEFAULT_DASHBOARD_SHORTCUTS,
    DEFAULT_DASHBOARD_WIDGETS,
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
    AppState,
    Budget,
    BudgetType,
    Category,
    Contribution,
    Credit,
    Frequency,
    Goal,
    Group,
    InsurancePolicy,
    InsurancePolicyType,
    Receipt,
    SavedInsight,
    ToxicityReport,
    Transaction,
    TransactionType,
    User,
    UserData,
    ViewType,
    WidgetType,
    initial_state,
)
from moneygrowth.services.storage import ImportValidationError, NotFoundError


logger = structlog.get_logger(__name__)

GOAL_DELETED_PREFIX = "(Meta eliminada) "
BUDGET_DELETED_PREFIX = "(Presupuesto eliminado) "
INITIAL_CONTRIBUTION = "Aportación inicial"


class FinanceStore:
    """
    Owns the application state and exposes its operations.

    Usage:
        store = FinanceStore()
        store.add_transaction(Transaction(type="expense", category="Ocio",
                                          amount=12.5, date=date.today()))
        store.transactions  # derived view of the active user/group
    """

    def __init__(self, state: Optional[AppState] = None):
        self._state = state or initial_state()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> AppState:
        return self._state

    def replace_state(self, state: AppState) -> None:
        """Overwrite the whole state (import, reset)."""
        self._state = state

    def to_json(self) -> str:
        """Export the state in the persisted camelCase format."""
        return json.dumps(self._state.to_json_dict(), ensure_ascii=False, indent=2)

    @staticmethod
    def parse_state(raw: str | bytes) -> AppState:
        """
        Parse and validate a backup.

        Raises:
            ImportValidationError: If the content is not a valid backup
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ImportValidationError(
                "El archivo no es un JSON válido."
            ) from e

        if not isinstance(data, dict) or "users" not in data or "userData" not in data:
            raise ImportValidationError(
                "El archivo no parece una copia de seguridad de MoneyGrowth."
            )

        try:
            return AppState.model_validate(data)
        except ValidationError as e:
            raise ImportValidationError(
                f"La copia de seguridad contiene datos no válidos ({e.error_count()} errores)."
            ) from e

    @classmethod
    def from_json(cls, raw: str | bytes) -> "FinanceStore":
        return cls(cls.parse_state(raw))

    def import_json(self, raw: str | bytes) -> AppState:
        """Validate a backup and overwrite the current state with it."""
        state = self.parse_state(raw)
        self.replace_state(state)
        logger.info("state_imported", users=len(state.users), groups=len(state.groups))
        return state

    # =========================================================================
    # INTERNAL SEAMS
    # =========================================================================

    def _target_user_id(self) -> str:
        """The user that receives new records: active user, or the first user in a group view."""
        view = self._state.active_view
        if view.type == ViewType.USER and view.id in self._state.user_data:
            return view.id
        return self._state.users[0].id

    def _view_user_ids(self) -> list[str]:
        view = self._state.active_view
        if view.type == ViewType.USER:
            return [view.id]
        group = self._get_group(view.id, required=False)
        return list(group.user_ids) if group else []

    def _find_owner_id(self, collection: str, item_id: str) -> Optional[str]:
        for user_id, data in self._state.user_data.items():
            if any(item.id == item_id for item in getattr(data, collection)):
                return user_id
        return None

    def _require_owner(self, collection: str, item_id: str, owner_id: Optional[str] = None) -> str:
        if owner_id and owner_id in self._state.user_data:
            items = getattr(self._state.user_data[owner_id], collection)
            if any(item.id == item_id for item in items):
                return owner_id
        found = self._find_owner_id(collection, item_id)
        if found is None:
            raise NotFoundError(f"{collection} item not found: {item_id}")
        return found

    @contextmanager
    def _modify_user_data(self, owner_id: str) -> Iterator[UserData]:
        data = self._state.user_data.get(owner_id)
        if data is None:
            raise NotFoundError(f"User not found: {owner_id}")
        yield data

    @staticmethod
    def _stored(record, **updates):
        """Copy of a record as it is kept in a data bag (never owner-tagged)."""
        return record.model_copy(update={"owner_id": None, **updates})

    @staticmethod
    def _replace(items: list, record) -> None:
        for i, item in enumerate(items):
            if item.id == record.id:
                items[i] = record
                return
        raise NotFoundError(f"Record not found: {record.id}")

    def _get_group(self, group_id: str, required: bool = True) -> Optional[Group]:
        for group in self._state.groups:
            if group.id == group_id:
                return group
        if required:
            raise NotFoundError(f"Group not found: {group_id}")
        return None

    def _get_user(self, user_id: str) -> User:
        for user in self._state.users:
            if user.id == user_id:
                return user
        raise NotFoundError(f"User not found: {user_id}")

    def _merged(self, collection: str) -> list:
        view = self._state.active_view
        if view.type == ViewType.USER:
            data = self._state.user_data.get(view.id)
            return [item.model_copy() for item in getattr(data, collection)] if data else []

        merged = []
        for user_id in self._view_user_ids():
            data = self._state.user_data.get(user_id)
            if data is None:
                continue
            merged.extend(
                item.model_copy(update={"owner_id": user_id})
                for item in getattr(data, collection)
            )
        return merged

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(self, transaction: Transaction, owner_id: Optional[str] = None) -> Transaction:
        target = owner_id or self._target_user_id()
        stored = self._stored(transaction)
        with self._modify_user_data(target) as data:
            data.transactions.append(stored)
        logger.debug("transaction_added", transaction_id=stored.id, owner_id=target)
        return stored

    def update_transaction(self, transaction: Transaction) -> Transaction:
        owner = self._require_owner("transactions", transaction.id, transaction.owner_id)
        stored = self._stored(transaction)
        with self._modify_user_data(owner) as data:
            self._replace(data.transactions, stored)
        return stored

    def delete_transaction(self, transaction_id: str) -> None:
        owner = self._require_owner("transactions", transaction_id)
        with self._modify_user_data(owner) as data:
            data.transactions = [t for t in data.transactions if t.id != transaction_id]

    def toggle_transaction_instance_exclusion(self, instance_id: str) -> bool:
        """
        Flip the exclusion of one occurrence. Returns the new state.

        The flag is stored with the owner of the transaction, so it also
        works from a group view.
        """
        transaction_id = instance_id.split("|", 1)[0]
        owner = self._find_owner_id("transactions", transaction_id) or self._target_user_id()
        with self._modify_user_data(owner) as data:
            excluded = not data.excluded_instances.get(instance_id, False)
            data.excluded_instances[instance_id] = excluded
        return excluded

    @property
    def excluded_instances(self) -> dict[str, bool]:
        combined: dict[str, bool] = {}
        for user_id in self._view_user_ids():
            data = self._state.user_data.get(user_id)
            if data:
                combined.update(data.excluded_instances)
        return combined

    def get_expanded_transactions_for_year(self, year: int) -> list[TransactionInstance]:
        return expand_transactions_for_year(self.transactions, year, self.excluded_instances)

    # =========================================================================
    # CREDITS
    # =========================================================================

    @staticmethod
    def _credit_transaction_fields(credit: Credit) -> dict:
        return {
            "category": CREDIT_CATEGORY,
            "subcategory": credit.subcategory.value,
            "amount": credit.monthly_payment,
            "description": credit.name,
            "notes": credit.notes,
        }

    def add_credit(self, credit: Credit, owner_id: Optional[str] = None) -> Credit:
        """Add a credit together with its monthly expense."""
        target = owner_id or self._target_user_id()
        stored = self._stored(credit)
        linked = Transaction(
            type=TransactionType.EXPENSE,
            date=credit.start_date,
            frequency=Frequency.MONTHLY,
            credit_id=stored.id,
            **self._credit_transaction_fields(credit),
        )
        with self._modify_user_data(target) as data:
            data.credits.append(stored)
            data.transactions.append(linked)
        return stored

    def update_credit(self, credit: Credit) -> Credit:
        owner = self._require_owner("credits", credit.id, credit.owner_id)
        stored = self._stored(credit)
        fields = self._credit_transaction_fields(credit)
        with self._modify_user_data(owner) as data:
            self._replace(data.credits, stored)
            data.transactions = [
                t.model_copy(update=fields) if t.credit_id == credit.id else t
                for t in data.transactions
            ]
        return stored

    def delete_credit(self, credit_id: str) -> None:
        owner = self._require_owner("credits", credit_id)
        with self._modify_user_data(owner) as data:
            data.credits = [c for c in data.credits if c.id != credit_id]
            data.transactions = [t for t in data.transactions if t.credit_id != credit_id]

    def update_credit_toxicity(self, credit_id: str, report: Optional[ToxicityReport]) -> None:
        owner = self._require_owner("credits", credit_id)
        with self._modify_user_data(owner) as data:
            data.credits = [
                c.model_copy(update={"toxicity_report": report}) if c.id == credit_id else c
                for c in data.credits
            ]

    def delete_credit_toxicity(self, credit_id: str) -> None:
        self.update_credit_toxicity(credit_id, None)

    # =========================================================================
    # RECEIPTS
    # =========================================================================

    def add_receipt(self, receipt: Receipt, owner_id: Optional[str] = None) -> Receipt:
        target = owner_id or self._target_user_id()
        stored = self._stored(receipt)
        with self._modify_user_data(target) as data:
            data.receipts.append(stored)
        return stored

    def update_receipt(self, receipt: Receipt) -> Receipt:
        owner = self._require_owner("receipts", receipt.id, receipt.owner_id)
        stored = self._stored(receipt)
        with self._modify_user_data(owner) as data:
            self._replace(data.receipts, stored)
        return stored

    def delete_receipt(self, receipt_id: str) -> None:
        owner = self._require_owner("receipts", receipt_id)
        with self._modify_user_data(owner) as data:
            data.receipts = [r for r in data.receipts if r.id != receipt_id]

    # =========================================================================
    # INSURANCE
    # =========================================================================

    @staticmethod
    def _policy_transaction_fields(policy: InsurancePolicy) -> dict:
        return {
            "amount": policy.premium,
            "description": policy.name,
            "subcategory": policy.policy_type.value,
            "frequency": policy.payment_frequency,
            "notes": policy.notes,
            "prorate_over_months": policy.prorate_over_months,
        }

    def add_insurance_policy(self, policy: InsurancePolicy, owner_id: Optional[str] = None) -> InsurancePolicy:
        """Add a policy together with the expense for its premium."""
        target = owner_id or self._target_user_id()
        stored = self._stored(policy)
        linked = Transaction(
            type=TransactionType.EXPENSE,
            category=INSURANCE_CATEGORY,
            date=policy.renewal_date,
            insurance_id=stored.id,
            **self._policy_transaction_fields(policy),
        )
        with self._modify_user_data(target) as data:
            data.insurance_policies.append(stored)
            data.transactions.append(linked)
        return stored

    def update_insurance_policy(self, policy: InsurancePolicy) -> InsurancePolicy:
        owner = self._require_owner("insurance_policies", policy.id, policy.owner_id)
        stored = self._stored(policy)
        fields = self._policy_transaction_fields(policy)
        with self._modify_user_data(owner) as data:
            self._replace(data.insurance_policies, stored)
            data.transactions = [
                t.model_copy(update=fields) if t.insurance_id == policy.id else t
                for t in data.transactions
            ]
        return stored

    def delete_insurance_policy(self, policy_id: str) -> None:
        owner = self._require_owner("insurance_policies", policy_id)
        with self._modify_user_data(owner) as data:
            data.insurance_policies = [p for p in data.insurance_policies if p.id != policy_id]
            data.transactions = [t for t in data.transactions if t.insurance_id != policy_id]

    # =========================================================================
    # GOALS
    # =========================================================================

    def add_goal(self, goal: Goal, owner_id: Optional[str] = None) -> Goal:
        """
        Add a goal.

        A goal that starts with money in it records that amount as its
        initial contribution (and as a saving transaction when the goal
        creates transactions).
        """
        target = owner_id or self._target_user_id()
        history: list[Contribution] = []
        linked: Optional[Transaction] = None

        if goal.current_amount > 0:
            initial = Contribution(
                date=goal.start_date,
                amount=goal.current_amount,
                description=INITIAL_CONTRIBUTION,
            )
            history.append(initial)
            if goal.create_transactions:
                linked = Transaction(
                    type=TransactionType.SAVING,
                    category=GOAL_SAVING_CATEGORY,
                    amount=goal.current_amount,
                    date=goal.start_date,
                    description=f"Aportación inicial a: {goal.name}",
                    goal_id=goal.id,
                    goal_contribution_id=initial.id,
                )

        stored = self._stored(goal, contribution_history=history)
        with self._modify_user_data(target) as data:
            if linked:
                data.transactions.append(linked)
            data.goals.append(stored)
        return stored

    def update_goal(self, goal: Goal) -> Goal:
        owner = self._require_owner("goals", goal.id, goal.owner_id)
        stored = self._stored(goal)
        with self._modify_user_data(owner) as data:
            self._replace(data.goals, stored)
        return stored

    def delete_goal(self, goal_id: str) -> None:
        """Delete a goal. Its saving transactions are kept but unlinked."""
        owner = self._require_owner("goals", goal_id)
        with self._modify_user_data(owner) as data:
            data.goals = [g for g in data.goals if g.id != goal_id]
            data.transactions = [
                t.model_copy(update={
                    "goal_id": None,
                    "goal_contribution_id": None,
                    "description": f"{GOAL_DELETED_PREFIX}{t.description}",
                }) if t.goal_id == goal_id else t
                for t in data.transactions
            ]

    def add_funds_to_goal(
        self,
        goal_id: str,
        amount: float,
        description: Optional[str] = None,
        on: Optional[date] = None,
    ) -> Contribution:
        if amount <= 0:
            raise ValueError("Contribution amount must be positive")
        owner = self._require_owner("goals", goal_id)
        on = on or date.today()
        contribution = Contribution(date=on, amount=amount, description=description)

        with self._modify_user_data(owner) as data:
            goal = next(g for g in data.goals if g.id == goal_id)
            if goal.create_transactions:
                data.transactions.append(Transaction(
                    type=TransactionType.SAVING,
                    category=GOAL_SAVING_CATEGORY,
                    amount=amount,
                    date=on,
                    description=f"Aportación a: {goal.name}",
                    goal_id=goal_id,
                    goal_contribution_id=contribution.id,
                ))
            goal.current_amount += amount
            goal.contribution_history.append(contribution)
        return contribution

    def update_goal_contribution(self, goal_id: str, contribution: Contribution) -> None:
        owner = self._require_owner("goals", goal_id)
        with self._modify_user_data(owner) as data:
            goal = next(g for g in data.goals if g.id == goal_id)
            self._replace(goal.contribution_history, contribution)
            goal.current_amount = _active_total(goal.contribution_history)
            data.transactions = _sync_contribution_transactions(
                data.transactions, "goal_contribution_id", contribution
            )

    def delete_goal_contribution(self, goal_id: str, contribution_id: str) -> None:
        owner = self._require_owner("goals", goal_id)
        with self._modify_user_data(owner) as data:
            goal = next(g for g in data.goals if g.id == goal_id)
            removed = next((c for c in goal.contribution_history if c.id == contribution_id), None)
            if removed is None:
                raise NotFoundError(f"Contribution not found: {contribution_id}")
            goal.contribution_history = [c for c in goal.contribution_history if c.id != contribution_id]
            goal.current_amount = _active_total(goal.contribution_history)
            data.transactions = [
                t for t in data.transactions if t.goal_contribution_id != contribution_id
            ]

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def add_budget(
        self,
        budget: Budget,
        owner_id: Optional[str] = None,
        on: Optional[date] = None,
    ) -> Budget:
        """Add a budget. Only saving funds record an initial contribution."""
        target = owner_id or self._target_user_id()
        on = on or date.today()
        history: list[Contribution] = []
        linked: Optional[Transaction] = None

        if budget.type == BudgetType.SAVING_FUND and budget.current_amount > 0:
            initial = Contribution(
                date=on,
                amount=budget.current_amount,
                description=INITIAL_CONTRIBUTION,
            )
            history.append(initial)
            if budget.create_transactions:
                linked = Transaction(
                    type=TransactionType.SAVING,
                    category=BUDGET_SAVING_CATEGORY,
                    amount=budget.current_amount,
                    date=on,
                    description=f"Aportación inicial a: {budget.name}",
                    budget_id=budget.id,
                    budget_contribution_id=initial.id,
                )

        stored = self._stored(budget, contribution_history=history)
        with self._modify_user_data(target) as data:
            if linked:
                data.transactions.append(linked)
            data.budgets.append(stored)
        return stored

    def update_budget(self, budget: Budget) -> Budget:
        owner = self._require_owner("budgets", budget.id, budget.owner_id)
        stored = self._stored(budget)
        with self._modify_user_data(owner) as data:
            self._replace(data.budgets, stored)
        return stored

    def delete_budget(self, budget_id: str) -> None:
        owner = self._require_owner("budgets", budget_id)
        with self._modify_user_data(owner) as data:
            data.budgets = [b for b in data.budgets if b.id != budget_id]
            data.transactions = [
                t.model_copy(update={
                    "budget_id": None,
                    "budget_contribution_id": None,
                    "description": f"{BUDGET_DELETED_PREFIX}{t.description}",
                }) if t.budget_id == budget_id else t
                for t in data.transactions
            ]

    def add_funds_to_budget(
        self,
        budget_id: str,
        amount: float,
        description: Optional[str] = None,
        on: Optional[date] = None,
    ) -> Contribution:
        if amount <= 0:
            raise ValueError("Contribution amount must be positive")
        owner = self._require_owner("budgets", budget_id)
        on = on or date.today()
        contribution = Contribution(date=on, amount=amount, description=description)

        with self._modify_user_data(owner) as data:
            budget = next(b for b in data.budgets if b.id == budget_id)
            if budget.create_transactions:
                data.transactions.append(Transaction(
                    type=TransactionType.SAVING,
                    category=BUDGET_SAVING_CATEGORY,
                    amount=amount,
                    date=on,
                    description=f"Aportación a: {budget.name}",
                    budget_id=budget_id,
                    budget_contribution_id=contribution.id,
                ))
            budget.current_amount += amount
            budget.contribution_history.append(contribution)
        return contribution

    def update_budget_contribution(self, budget_id: str, contribution: Contribution) -> None:
        owner = self._require_owner("budgets", budget_id)
        with self._modify_user_data(owner) as data:
            budget = next(b for b in data.budgets if b.id == budget_id)
            self._replace(budget.contribution_history, contribution)
            budget.current_amount = _active_total(budget.contribution_history)
            data.transactions = _sync_contribution_transactions(
                data.transactions, "budget_contribution_id", contribution
            )

    def delete_budget_contribution(self, budget_id: str, contribution_id: str) -> None:
        owner = self._require_owner("budgets", budget_id)
        with self._modify_user_data(owner) as data:
            budget = next(b for b in data.budgets if b.id == budget_id)
            removed = next((c for c in budget.contribution_history if c.id == contribution_id), None)
            if removed is None:
                raise NotFoundError(f"Contribution not found: {contribution_id}")
            budget.contribution_history = [
                c for c in budget.contribution_history if c.id != contribution_id
            ]
            budget.current_amount = _active_total(budget.contribution_history)
            data.transactions = [
                t for t in data.transactions if t.budget_contribution_id != contribution_id
            ]

    # =========================================================================
    # USERS, GROUPS, VIEW
    # =========================================================================

    def add_user(self, name: str) -> User:
        color = PROFILE_COLORS[len(self._state.users) % len(PROFILE_COLORS)]
        user = User(name=name, color=color)
        self._state.users.append(user)
        self._state.user_data[user.id] = UserData()
        logger.info("user_added", user_id=user.id)
        return user

    def update_user(self, user_id: str, name: Optional[str] = None, color: Optional[str] = None) -> User:
        user = self._get_user(user_id)
        if name is not None:
            user.name = name
        if color is not None:
            user.color = color
        return user

    def delete_user(self, user_id: str) -> None:
        """Remove a user, its data and its group memberships."""
        self._get_user(user_id)
        if len(self._state.users) == 1:
            raise ValueError("The last user cannot be deleted")

        self._state.users = [u for u in self._state.users if u.id != user_id]
        self._state.user_data.pop(user_id, None)
        for group in self._state.groups:
            group.user_ids = [uid for uid in group.user_ids if uid != user_id]

        view = self._state.active_view
        if view.type == ViewType.USER and view.id == user_id:
            self._state.active_view = ActiveView(type=ViewType.USER, id=self._state.users[0].id)
        logger.info("user_deleted", user_id=user_id)

    def switch_view(self, view: ActiveView) -> None:
        if view.type == ViewType.USER:
            self._get_user(view.id)
        else:
            self._get_group(view.id)
        self._state.active_view = view

    def _check_members(self, user_ids: list[str]) -> None:
        if not user_ids:
            raise ValueError("A group needs at least one member")
        for user_id in user_ids:
            self._get_user(user_id)

    def add_group(self, name: str, user_ids: list[str]) -> Group:
        self._check_members(user_ids)
        group = Group(name=name, user_ids=list(user_ids))
        self._state.groups.append(group)
        return group

    def update_group(self, group_id: str, name: str, user_ids: list[str]) -> Group:
        group = self._get_group(group_id)
        self._check_members(user_ids)
        group.name = name
        group.user_ids = list(user_ids)
        return group

    def delete_group(self, group_id: str) -> None:
        self._get_group(group_id)
        self._state.groups = [g for g in self._state.groups if g.id != group_id]
        view = self._state.active_view
        if view.type == ViewType.GROUP and view.id == group_id:
            self._state.active_view = ActiveView(type=ViewType.USER, id=self._state.users[0].id)

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def add_income_category(self, name: str, icon: str = DEFAULT_CATEGORY_ICON) -> Category:
        category = Category(name=name, icon=icon)
        with self._modify_user_data(self._target_user_id()) as data:
            data.income_categories.append(category)
        return category

    def add_expense_category(self, name: str, icon: str = DEFAULT_CATEGORY_ICON) -> Category:
        category = Category(name=name, icon=icon)
        with self._modify_user_data(self._target_user_id()) as data:
            data.expense_categories.append(category)
        return category

    @staticmethod
    def _rename_category(
        data: UserData,
        tx_type: TransactionType,
        old: str,
        new: str,
    ) -> None:
        data.transactions = [
            t.model_copy(update={"category": new})
            if t.type == tx_type and t.category == old else t
            for t in data.transactions
        ]
        if tx_type != TransactionType.EXPENSE:
            return
        data.budgets = [
            b.model_copy(update={"category": new}) if b.category == old else b
            for b in data.budgets
        ]
        if old in data.expense_subcategories:
            data.expense_subcategories[new] = data.expense_subcategories.pop(old)

    def update_income_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> None:
        """
        Rename (or re-icon) an income category.

        A default category cannot be edited in place: it is hidden for the
        target user and replaced with an equivalent custom category.
        """
        owner = self._find_owner_id("income_categories", category_id)
        if owner:
            with self._modify_user_data(owner) as data:
                category = next(c for c in data.income_categories if c.id == category_id)
                old_name = category.name
                if icon:
                    category.icon = icon
                if name and name != old_name:
                    category.name = name
                    self._rename_category(data, TransactionType.INCOME, old_name, name)
            return

        if category_id not in DEFAULT_INCOME_CATEGORIES:
            raise NotFoundError(f"Income category not found: {category_id}")

        new_name = name or category_id
        with self._modify_user_data(self._target_user_id()) as data:
            if new_name != category_id:
                self._rename_category(data, TransactionType.INCOME, category_id, new_name)
            if category_id not in data.hidden_default_income_categories:
                data.hidden_default_income_categories.append(category_id)
            data.income_categories.append(
                Category(name=new_name, icon=icon or DEFAULT_CATEGORY_ICON)
            )

    def update_expense_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> None:
        """
        Rename (or re-icon) an expense category.

        Renames reach the transactions, budgets and subcategory map. A
        renamed default category is replaced for every user of the view.
        """
        owner = self._find_owner_id("expense_categories", category_id)
        if owner:
            with self._modify_user_data(owner) as data:
                category = next(c for c in data.expense_categories if c.id == category_id)
                old_name = category.name
                if icon:
                    category.icon = icon
                if name and name != old_name:
                    category.name = name
                    self._rename_category(data, TransactionType.EXPENSE, old_name, name)
            return

        if category_id not in DEFAULT_EXPENSE_CATEGORIES:
            raise NotFoundError(f"Expense category not found: {category_id}")

        new_name = name or category_id
        if new_name == category_id:
            return

        for user_id in self._view_user_ids():
            if user_id not in self._state.user_data:
                continue
            with self._modify_user_data(user_id) as data:
                self._rename_category(data, TransactionType.EXPENSE, category_id, new_name)
                if category_id not in data.hidden_default_expense_categories:
                    data.hidden_default_expense_categories.append(category_id)
                data.expense_categories.append(
                    Category(name=new_name, icon=icon or DEFAULT_CATEGORY_ICON)
                )

    def delete_income_category(self, category_id: str) -> None:
        """Delete an income category; its transactions move to 'Otros'."""
        owner = self._find_owner_id("income_categories", category_id)
        if owner:
            with self._modify_user_data(owner) as data:
                name = next(c.name for c in data.income_categories if c.id == category_id)
                data.income_categories = [c for c in data.income_categories if c.id != category_id]
                self._move_to_other(data, TransactionType.INCOME, name)
            return

        if category_id not in DEFAULT_INCOME_CATEGORIES or category_id == OTHER_CATEGORY:
            raise NotFoundError(f"Income category not found: {category_id}")
        with self._modify_user_data(self._target_user_id()) as data:
            if category_id not in data.hidden_default_income_categories:
                data.hidden_default_income_categories.append(category_id)
            self._move_to_other(data, TransactionType.INCOME, category_id)

    def delete_expense_category(self, category_id: str) -> None:
        """
        Delete an expense category.

        Its transactions move to 'Otros' without subcategory, and its
        budgets and subcategories are removed.
        """
        owner = self._find_owner_id("expense_categories", category_id)
        if owner:
            with self._modify_user_data(owner) as data:
                name = next(c.name for c in data.expense_categories if c.id == category_id)
                data.expense_categories = [c for c in data.expense_categories if c.id != category_id]
                self._move_to_other(data, TransactionType.EXPENSE, name)
            return

        if category_id not in DEFAULT_EXPENSE_CATEGORIES or category_id == OTHER_CATEGORY:
            raise NotFoundError(f"Expense category not found: {category_id}")
        with self._modify_user_data(self._target_user_id()) as data:
            if category_id not in data.hidden_default_expense_categories:
                data.hidden_default_expense_categories.append(category_id)
            self._move_to_other(data, TransactionType.EXPENSE, category_id)

    @staticmethod
    def _move_to_other(data: UserData, tx_type: TransactionType, name: str) -> None:
        update = {"category": OTHER_CATEGORY}
        if tx_type == TransactionType.EXPENSE:
            update["subcategory"] = None
        data.transactions = [
            t.model_copy(update=update) if t.type == tx_type and t.category == name else t
            for t in data.transactions
        ]
        if tx_type == TransactionType.EXPENSE:
            data.budgets = [b for b in data.budgets if b.category != name]
            data.expense_subcategories.pop(name, None)

    def add_expense_subcategory(self, category: str, subcategory: str) -> None:
        with self._modify_user_data(self._target_user_id()) as data:
            names = data.expense_subcategories.setdefault(category, [])
            if subcategory not in names:
                names.append(subcategory)

    def update_expense_subcategory(self, category: str, old_name: str, new_name: str) -> None:
        with self._modify_user_data(self._target_user_id()) as data:
            if category in data.expense_subcategories:
                data.expense_subcategories[category] = [
                    new_name if s == old_name else s for s in data.expense_subcategories[category]
                ]
            data.transactions = [
                t.model_copy(update={"subcategory": new_name})
                if t.category == category and t.subcategory == old_name else t
                for t in data.transactions
            ]

    def delete_expense_subcategory(self, category: str, subcategory: str) -> None:
        with self._modify_user_data(self._target_user_id()) as data:
            if category in data.expense_subcategories:
                data.expense_subcategories[category] = [
                    s for s in data.expense_subcategories[category] if s != subcategory
                ]
            data.transactions = [
                t.model_copy(update={"subcategory": None})
                if t.category == category and t.subcategory == subcategory else t
                for t in data.transactions
            ]

    def add_insurance_subcategory(self, policy_type: InsurancePolicyType, subcategory: str) -> None:
        key = InsurancePolicyType(policy_type).value
        with self._modify_user_data(self._target_user_id()) as data:
            names = data.insurance_subcategories.setdefault(key, [])
            if subcategory not in names:
                names.append(subcategory)

    def update_insurance_subcategory(
        self,
        policy_type: InsurancePolicyType,
        old_name: str,
        new_name: str,
    ) -> None:
        key = InsurancePolicyType(policy_type)
        with self._modify_user_data(self._target_user_id()) as data:
            if key.value in data.insurance_subcategories:
                data.insurance_subcategories[key.value] = [
                    new_name if s == old_name else s
                    for s in data.insurance_subcategories[key.value]
                ]
            data.insurance_policies = [
                p.model_copy(update={"subcategory": new_name})
                if p.policy_type == key and p.subcategory == old_name else p
                for p in data.insurance_policies
            ]

    def delete_insurance_subcategory(self, policy_type: InsurancePolicyType, subcategory: str) -> None:
        key = InsurancePolicyType(policy_type)
        with self._modify_user_data(self._target_user_id()) as data:
            if key.value in data.insurance_subcategories:
                data.insurance_subcategories[key.value] = [
                    s for s in data.insurance_subcategories[key.value] if s != subcategory
                ]
            data.insurance_policies = [
                p.model_copy(update={"subcategory": None})
                if p.policy_type == key and p.subcategory == subcategory else p
                for p in data.insurance_policies
            ]

    def add_invoice_category(self, name: str, owner_id: Optional[str] = None) -> None:
        with self._modify_user_data(owner_id or self._target_user_id()) as data:
            if name not in data.invoice_categories:
                data.invoice_categories.append(name)

    # =========================================================================
    # ACHIEVEMENTS, INSIGHTS, DASHBOARD
    # =========================================================================

    def grant_achievement(self, achievement_id: str) -> bool:
        """Unlock an achievement for the active user. Returns True if newly unlocked."""
        view = self._state.active_view
        if view.type != ViewType.USER:
            return False
        with self._modify_user_data(view.id) as data:
            if any(a.id == achievement_id for a in data.achievements):
                return False
            data.achievements.append(Achievement(id=achievement_id))
        logger.info("achievement_granted", achievement_id=achievement_id, user_id=view.id)
        return True

    def check_achievements(self) -> list[str]:
        """Grant every achievement the active user has earned. Returns the new ones."""
        view = self._state.active_view
        if view.type != ViewType.USER:
            return []
        earned = evaluate_achievements(self._state.user_data[view.id])
        return [a for a in earned if self.grant_achievement(a)]

    def add_saved_insight(self, insight: SavedInsight) -> SavedInsight:
        with self._modify_user_data(self._target_user_id()) as data:
            data.saved_insights.append(insight)
        return insight

    def delete_saved_insight(self, insight_id: str) -> None:
        owner = self._require_owner("saved_insights", insight_id)
        with self._modify_user_data(owner) as data:
            data.saved_insights = [i for i in data.saved_insights if i.id != insight_id]

    def update_dashboard_shortcuts(self, shortcuts: list[str]) -> None:
        with self._modify_user_data(self._target_user_id()) as data:
            data.dashboard_shortcuts = list(shortcuts)

    def update_dashboard_widgets(self, widgets: list[WidgetType]) -> None:
        with self._modify_user_data(self._target_user_id()) as data:
            data.dashboard_widgets = [WidgetType(w) for w in widgets]

    # =========================================================================
    # DERIVED VIEW
    # =========================================================================

    @property
    def users(self) -> list[User]:
        return self._state.users

    @property
    def groups(self) -> list[Group]:
        return self._state.groups

    @property
    def active_view(self) -> ActiveView:
        return self._state.active_view

    @property
    def active_view_target(self) -> User | Group | None:
        view = self._state.active_view
        if view.type == ViewType.USER:
            return next((u for u in self._state.users if u.id == view.id), None)
        return self._get_group(view.id, required=False)

    @property
    def group_members(self) -> list[User]:
        view = self._state.active_view
        if view.type != ViewType.GROUP:
            return []
        group = self._get_group(view.id, required=False)
        if group is None:
            return []
        return [u for u in self._state.users if u.id in group.user_ids]

    @property
    def transactions(self) -> list[Transaction]:
        return self._merged("transactions")

    @property
    def credits(self) -> list[Credit]:
        return self._merged("credits")

    @property
    def receipts(self) -> list[Receipt]:
        return self._merged("receipts")

    @property
    def insurance_policies(self) -> list[InsurancePolicy]:
        return self._merged("insurance_policies")

    @property
    def goals(self) -> list[Goal]:
        return self._merged("goals")

    @property
    def budgets(self) -> list[Budget]:
        return self._merged("budgets")

    @property
    def achievements(self) -> list[Achievement]:
        return self._merged("achievements")

    @property
    def saved_insights(self) -> list[SavedInsight]:
        return self._merged("saved_insights")

    def _categories_for_view(self, collection: str, hidden_field: str, defaults: tuple[str, ...]) -> list[Category]:
        user_ids = [uid for uid in self._view_user_ids() if uid in self._state.user_data]
        hidden = {
            name
            for uid in user_ids
            for name in getattr(self._state.user_data[uid], hidden_field)
        }
        by_name: dict[str, Category] = {}
        for name in defaults:
            if name not in hidden:
                by_name[name] = Category(id=name, name=name, icon=DEFAULT_CATEGORY_ICON)
        for uid in user_ids:
            for category in getattr(self._state.user_data[uid], collection):
                by_name[category.name] = category
        return sorted(by_name.values(), key=lambda c: c.name.casefold())

    @property
    def income_categories(self) -> list[Category]:
        return self._categories_for_view(
            "income_categories", "hidden_default_income_categories", DEFAULT_INCOME_CATEGORIES
        )

    @property
    def expense_categories(self) -> list[Category]:
        return self._categories_for_view(
            "expense_categories", "hidden_default_expense_categories", DEFAULT_EXPENSE_CATEGORIES
        )

    @property
    def invoice_categories(self) -> list[str]:
        names = set(DEFAULT_INVOICE_CATEGORIES)
        for uid in self._view_user_ids():
            data = self._state.user_data.get(uid)
            if data:
                names.update(data.invoice_categories)
        return sorted(names)

    def _merge_subcategories(self, base: dict[str, list[str]], field: str) -> dict[str, list[str]]:
        combined = {key: list(values) for key, values in base.items()}
        for uid in self._view_user_ids():
            data = self._state.user_data.get(uid)
            if not data:
                continue
            for key, values in getattr(data, field).items():
                merged = combined.setdefault(key, [])
                merged.extend(v for v in values if v not in merged)
        return combined

    @property
    def expense_subcategories(self) -> dict[str, list[str]]:
        return self._merge_subcategories(DEFAULT_EXPENSE_SUBCATEGORIES, "expense_subcategories")

    @property
    def insurance_subcategories(self) -> dict[str, list[str]]:
        base = {p.value: [] for p in InsurancePolicyType}
        return self._merge_subcategories(base, "insurance_subcategories")

    @property
    def dashboard_shortcuts(self) -> list[str]:
        view = self._state.active_view
        if view.type == ViewType.USER and view.id in self._state.user_data:
            return list(self._state.user_data[view.id].dashboard_shortcuts)
        return list(DEFAULT_DASHBOARD_SHORTCUTS)

    @property
    def dashboard_widgets(self) -> list[WidgetType]:
        view = self._state.active_view
        if view.type == ViewType.USER and view.id in self._state.user_data:
            return list(self._state.user_data[view.id].dashboard_widgets)
        return list(DEFAULT_DASHBOARD_WIDGETS)

    def get_alerts(self, today: Optional[date] = None) -> list[Alert]:
        today = today or date.today()
        return build_alerts(
            self.receipts,
            self.insurance_policies,
            budgets=self.budgets,
            goals=self.goals,
            instances=self.get_expanded_transactions_for_year(today.year),
            today=today,
        )

    @property
    def alerts(self) -> list[Alert]:
        return self.get_alerts()


def _active_total(history: list[Contribution]) -> float:
    return sum(c.amount for c in history if not c.is_excluded)


def _sync_contribution_transactions(
    transactions: list[Transaction],
    link_field: str,
    contribution: Contribution,
) -> list[Transaction]:
    """Mirror an edited contribution onto the saving transaction it produced."""
    return [
        t.model_copy(update={
            "amount": contribution.amount,
            "date": contribution.date,
            "is_excluded": contribution.is_excluded,
        }) if getattr(t, link_field) == contribution.id else t
        for t in transactions
    ]
