"""
Main Orchestrator for MoneyGrowth

This module ties the store, storage, AI agents and audit log together
and defines the end-to-end flows behind the UI:
1. State (load → mutate → save, backup import/export, CSV and report export)
2. Insights (AI analyses bound to the store)
3. Chat (assistant conversation that can record transactions)

DESIGN DECISION: The flows enforce the boundaries:
- The AI never writes to the store on its own; flows decide what is saved
- A rejected import never touches the current state
- Every step is audited, with one correlation id per user action
"""

import json
from datetime import date
from typing import Optional
from uuid import UUID

import structlog

from moneygrowth.agents import ChatReply, FinanceAIAgent, FinanceChatAgent
from moneygrowth.audit import AuditLogger, create_correlation_id
from moneygrowth.calculations.reports import (
    accounting_csv_filename,
    export_accounting_csv,
    monthly_report,
    monthly_report_filename,
    render_monthly_report_text,
)
from moneygrowth.config import get_settings
from moneygrowth.models.audit import AuditEventType
from moneygrowth.models.finance import (
    AppState,
    Budget,
    BudgetSuggestion,
    BudgetType,
    InsightType,
    SavedInsight,
    ScannedReceiptData,
    ToxicityReport,
    initial_state,
)
from moneygrowth.services.image import assess_receipt_image
from moneygrowth.services.storage import (
    ImportValidationError,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonLinesAuditStorage,
    NotFoundError,
    StateStorageInterface,
    StorageError,
)
from moneygrowth.store import FinanceStore


logger = structlog.get_logger(__name__)


class StateFlow:
    """
    Orchestrates persistence of the state.

    Flow:
    1. Load → read the stored blob (a corrupt blob falls back to a fresh state)
    2. Mutate → the UI calls store operations directly
    3. Save → persist after every mutation

    Backups are exchanged as the same JSON blob that is persisted.
    """

    def __init__(
        self,
        store: Optional[FinanceStore] = None,
        state_storage: Optional[StateStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store or FinanceStore()
        self._state_storage = state_storage
        self._audit_logger = audit_logger
        self._settings = get_settings().app

    @property
    def store(self) -> FinanceStore:
        return self._store

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    async def load(self, correlation_id: Optional[UUID] = None) -> FinanceStore:
        """Load the stored state into the store. Never raises on bad data."""
        correlation_id = correlation_id or create_correlation_id()

        state: Optional[AppState] = None
        if self._state_storage:
            try:
                state = await self._state_storage.load_state()
            except StorageError as e:
                logger.warning("state_load_failed", error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_state_load_failed(
                        error=str(e),
                        correlation_id=correlation_id,
                    )

        self._store.replace_state(state or initial_state())

        if self._audit_logger:
            await self._audit_logger.log_state_loaded(
                users=len(self._store.users),
                transactions=sum(len(d.transactions) for d in self._store.state.user_data.values()),
                correlation_id=correlation_id,
            )
        return self._store

    async def save(self, correlation_id: Optional[UUID] = None) -> bool:
        """
        Persist the current state.

        Returns False when no storage is configured.

        Raises:
            StorageError: If the write fails (after it is audited)
        """
        if not self._state_storage:
            return False

        try:
            saved = await self._state_storage.save_state(self._store.state)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="StorageError",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_state_saved(correlation_id=correlation_id)
        return saved

    async def import_backup(
        self,
        raw: bytes,
        correlation_id: Optional[UUID] = None,
    ) -> AppState:
        """
        Overwrite the state with an uploaded backup and persist it.

        Raises:
            ImportValidationError: If the file is too large or invalid;
                the current state is left untouched
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            if len(raw) > self._settings.max_import_size_bytes:
                raise ImportValidationError(
                    f"El archivo supera el tamaño máximo de {self._settings.max_import_size_mb} MB."
                )
            state = self._store.import_json(raw)
        except ImportValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_import_rejected(
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_state_imported(
                users=len(state.users),
                correlation_id=correlation_id,
            )
        await self.save(correlation_id)
        return state

    async def export_backup(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, bytes]:
        """Returns (file_name, content) of the full backup."""
        today = today or date.today()
        content = self._store.to_json().encode("utf-8")
        file_name = f"moneygrowth_backup_{today.isoformat()}.json"
        await self._audit_export(AuditEventType.STATE_EXPORTED, file_name, content, correlation_id)
        return file_name, content

    async def export_accounting_csv(
        self,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, bytes]:
        """
        Returns (file_name, content) of the yearly accounting CSV.

        Raises:
            NoTransactionsError: If the year has no transactions
        """
        instances = self._store.get_expanded_transactions_for_year(year)
        content = export_accounting_csv(instances, year).encode("utf-8")
        file_name = accounting_csv_filename(year)
        await self._audit_export(AuditEventType.CSV_EXPORTED, file_name, content, correlation_id)
        return file_name, content

    async def export_monthly_report(
        self,
        year: int,
        month: int,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, bytes]:
        """Returns (file_name, content) of the printable monthly report."""
        report = monthly_report(
            self._store.get_expanded_transactions_for_year(year),
            year,
            month,
            credits=self._store.credits,
            goals=self._store.goals,
            today=today,
        )
        content = render_monthly_report_text(report, self._settings.currency_symbol).encode("utf-8")
        file_name = monthly_report_filename(report)
        await self._audit_export(AuditEventType.REPORT_EXPORTED, file_name, content, correlation_id)
        return file_name, content

    async def _audit_export(
        self,
        event_type: AuditEventType,
        file_name: str,
        content: bytes,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_export(
                event_type=event_type,
                file_name=file_name,
                size=len(content),
                correlation_id=correlation_id,
            )

    async def reset(self, correlation_id: Optional[UUID] = None) -> FinanceStore:
        """Erase every record and start over with a single user."""
        correlation_id = correlation_id or create_correlation_id()
        self._store.replace_state(initial_state())
        if self._audit_logger:
            await self._audit_logger.log_state_reset(correlation_id=correlation_id)
        await self.save(correlation_id)
        return self._store

    async def check_achievements(self, correlation_id: Optional[UUID] = None) -> list[str]:
        """Unlock newly earned achievements and persist them."""
        unlocked = self._store.check_achievements()
        if not unlocked:
            return []
        if self._audit_logger:
            for achievement_id in unlocked:
                await self._audit_logger.log_achievement_unlocked(
                    achievement_id=achievement_id,
                    correlation_id=correlation_id,
                )
        await self.save(correlation_id)
        return unlocked


def build_financial_context(store: FinanceStore) -> str:
    """The active view's data as the JSON handed to the AI."""
    return json.dumps(
        {
            "transactions": [t.to_json_dict() for t in store.transactions],
            "budgets": [b.to_json_dict() for b in store.budgets],
            "goals": [g.to_json_dict() for g in store.goals],
            "credits": [c.to_json_dict() for c in store.credits],
            "receipts": [r.to_json_dict() for r in store.receipts],
            "insurancePolicies": [p.to_json_dict() for p in store.insurance_policies],
        },
        ensure_ascii=False,
        indent=2,
    )


class InsightFlow:
    """
    Orchestrates the AI analyses.

    Every call is audited as completed or failed. Results are only
    written to the store where the user asked for it (toxicity report,
    saved insight, accepted budget suggestion).
    """

    def __init__(
        self,
        state_flow: StateFlow,
        agent: Optional[FinanceAIAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._state_flow = state_flow
        self._agent = agent or FinanceAIAgent()
        self._audit_logger = audit_logger
        self._settings = get_settings().app

    @property
    def store(self) -> FinanceStore:
        return self._state_flow.store

    @property
    def is_configured(self) -> bool:
        return self._agent.is_configured

    async def _audit_ai(self, operation: str, correlation_id: Optional[UUID]) -> None:
        if not self._audit_logger:
            return
        if self._agent.service_failed:
            await self._audit_logger.log_external_service_error(
                service=f"gemini:{operation}",
                error_message=self._agent.last_error or "",
                correlation_id=correlation_id,
            )
        elif self._agent.last_error:
            await self._audit_logger.log_ai_failed(
                operation=operation,
                error_message=self._agent.last_error,
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_ai_completed(
                operation=operation,
                correlation_id=correlation_id,
            )

    async def analyze_credit(
        self,
        credit_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ToxicityReport:
        """Score a credit and keep the report on it (only when the call succeeded)."""
        correlation_id = correlation_id or create_correlation_id()
        credit = next((c for c in self.store.credits if c.id == credit_id), None)
        if credit is None:
            raise NotFoundError(f"Credit not found: {credit_id}")

        report = await self._agent.analyze_credit_toxicity(credit)
        await self._audit_ai("analyze_credit_toxicity", correlation_id)
        if not self._agent.last_error:
            self.store.update_credit_toxicity(credit_id, report)
            await self._state_flow.save(correlation_id)
        return report

    async def ask(self, query: str, correlation_id: Optional[UUID] = None) -> str:
        answer = await self._agent.get_financial_insights(query, build_financial_context(self.store))
        await self._audit_ai("get_financial_insights", correlation_id)
        return answer

    async def summary(self, today: Optional[date] = None, correlation_id: Optional[UUID] = None) -> str:
        answer = await self._agent.get_ai_financial_summary(self.store.transactions, today)
        await self._audit_ai("get_ai_financial_summary", correlation_id)
        return answer

    async def forecast(self, correlation_id: Optional[UUID] = None) -> str:
        answer = await self._agent.get_predictive_analysis(build_financial_context(self.store))
        await self._audit_ai("get_predictive_analysis", correlation_id)
        return answer

    async def savings(self, correlation_id: Optional[UUID] = None) -> str:
        answer = await self._agent.get_savings_recommendations(build_financial_context(self.store))
        await self._audit_ai("get_savings_recommendations", correlation_id)
        return answer

    async def debt_advice(self, query: str, correlation_id: Optional[UUID] = None) -> str:
        answer = await self._agent.get_debt_advice(query, self.store.credits)
        await self._audit_ai("get_debt_advice", correlation_id)
        return answer

    async def savings_opportunities(self, correlation_id: Optional[UUID] = None) -> str:
        answer = await self._agent.find_savings_opportunities(
            self.store.receipts,
            self.store.insurance_policies,
        )
        await self._audit_ai("find_savings_opportunities", correlation_id)
        return answer

    async def scan_receipt(
        self,
        image: bytes,
        correlation_id: Optional[UUID] = None,
    ) -> ScannedReceiptData:
        """
        Read a receipt photo. The result pre-fills a form; nothing is saved.

        The photo is checked locally first; mild quality problems are
        returned in `image_issues`.

        Raises:
            ValueError: If the image is larger than the configured limit
            UnreadableImageError: If the file is not a usable photo
        """
        if len(image) > self._settings.max_scan_size_bytes:
            raise ValueError(
                f"La imagen supera el tamaño máximo de {self._settings.max_scan_size_mb} MB."
            )
        check = assess_receipt_image(image)
        scanned = await self._agent.analyze_receipt_image(image, check.mime_type)
        await self._audit_ai("analyze_receipt_image", correlation_id)
        return scanned.model_copy(update={"image_issues": check.issues})

    async def suggest_budgets(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetSuggestion:
        suggestion = await self._agent.get_ai_budget_suggestion(self.store.transactions, today)
        await self._audit_ai("get_ai_budget_suggestion", correlation_id)
        return suggestion

    async def apply_budget_suggestion(
        self,
        suggestion: BudgetSuggestion,
        correlation_id: Optional[UUID] = None,
    ) -> list[Budget]:
        """Turn every suggested limit into a spending-limit budget."""
        correlation_id = correlation_id or create_correlation_id()
        created = [
            self.store.add_budget(Budget(
                name=f"Presupuesto {item.category}",
                category=item.category,
                target_amount=item.target_amount,
                type=BudgetType.SPENDING_LIMIT,
                priority=item.priority,
            ))
            for item in suggestion.suggested_budgets
            if item.target_amount > 0
        ]
        if self._audit_logger:
            await self._audit_logger.log_budgets_suggested(
                count=len(created),
                correlation_id=correlation_id,
            )
        await self._state_flow.save(correlation_id)
        return created

    async def save_insight(
        self,
        insight_type: InsightType,
        content: str,
        correlation_id: Optional[UUID] = None,
    ) -> SavedInsight:
        insight = self.store.add_saved_insight(SavedInsight(type=insight_type, content=content))
        await self._state_flow.save(correlation_id)
        return insight


class ChatFlow:
    """
    Orchestrates the assistant conversation.

    Transactions the assistant records are audited one by one and the
    state is saved once per message.
    """

    def __init__(
        self,
        state_flow: StateFlow,
        chat_agent: Optional[FinanceChatAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._state_flow = state_flow
        self._chat_agent = chat_agent or FinanceChatAgent(state_flow.store)
        self._audit_logger = audit_logger

    @property
    def messages(self):
        return self._chat_agent.messages

    def reset(self) -> None:
        self._chat_agent.reset()

    async def send(
        self,
        text: str,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ChatReply:
        correlation_id = correlation_id or create_correlation_id()
        reply = await self._chat_agent.send_message(text, today)

        if reply.transactions:
            if self._audit_logger:
                for tx in reply.transactions:
                    await self._audit_logger.log_assistant_transaction(
                        transaction_id=tx.id,
                        transaction_type=tx.type.value,
                        amount=tx.amount,
                        category=tx.category,
                        correlation_id=correlation_id,
                    )
            await self._state_flow.save(correlation_id)
        return reply


def create_app_components(
    use_storage: bool = True,
) -> tuple[StateFlow, InsightFlow, ChatFlow]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to persist to the local JSON file.
                    Set to False for an in-memory session (tests, demos).

    Returns:
        (state_flow, insight_flow, chat_flow)
    """
    settings = get_settings()

    if use_storage:
        state_storage = JsonFileStateStorage()
        audit_file = settings.storage.audit_file
        audit_logger = AuditLogger(JsonLinesAuditStorage(audit_file) if audit_file else None)
    else:
        state_storage = InMemoryStateStorage()
        audit_logger = AuditLogger()  # Local-only logging

    store = FinanceStore()
    state_flow = StateFlow(
        store=store,
        state_storage=state_storage,
        audit_logger=audit_logger,
    )
    insight_flow = InsightFlow(
        state_flow,
        agent=FinanceAIAgent(settings.gemini),
        audit_logger=audit_logger,
    )
    chat_flow = ChatFlow(
        state_flow,
        chat_agent=FinanceChatAgent(store, settings.gemini),
        audit_logger=audit_logger,
    )
    return state_flow, insight_flow, chat_flow
