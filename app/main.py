"""
Streamlit Frontend for MoneyGrowth

The personal and group finance tracker the user interacts with daily.

DESIGN PRINCIPLES:
1. Every page reads the ACTIVE VIEW (one user or a group) from the store
2. Every mutation is saved immediately
3. AI features are optional: without a Gemini key they answer with a notice
4. Clear error messages, in Spanish
5. No hidden actions: AI results are only saved when the user asks

Run with:
    streamlit run app/main.py
"""

import asyncio
from datetime import date

import streamlit as st

from moneygrowth.audit import configure_logging, create_correlation_id
from moneygrowth.calculations import (
    ACHIEVEMENT_DEFINITIONS,
    CompoundInterestParams,
    DebtStrategy,
    NoTransactionsError,
    ProjectionStep,
    RatePeriod,
    ReceiptSortKey,
    annual_summary,
    budget_progress,
    compound_interest_projection,
    credit_status,
    credit_summary,
    debt_health,
    debt_to_income_ratio,
    expense_by_category,
    goal_progress,
    instances_in_month,
    monthly_equivalent,
    monthly_report,
    order_credits,
    projection_result,
    receipt_type_label,
    sort_receipts,
    toxicity_level,
    upcoming_annual_payments,
)
from moneygrowth.calculations.reports import MONTH_LABELS, total_income, total_outflow
from moneygrowth.config import get_settings, validate_all_settings
from moneygrowth.models import (
    ActiveView,
    Budget,
    BudgetPriority,
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
    Transaction,
    TransactionType,
    ViewType,
    WidgetType,
)
from moneygrowth.orchestrator import ChatFlow, InsightFlow, StateFlow, create_app_components
from moneygrowth.services.storage import ImportValidationError, StorageError
from moneygrowth.store import FinanceStore


# Page configuration
st.set_page_config(
    page_title="MoneyGrowth",
    page_icon="🌱",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .success-box {
        padding: 16px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 16px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 16px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .info-box {
        padding: 16px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


FREQUENCY_LABELS = {
    None: "Puntual",
    Frequency.MONTHLY: "Mensual",
    Frequency.QUARTERLY: "Trimestral",
    Frequency.SEMIANNUALLY: "Semestral",
    Frequency.ANNUALLY: "Anual",
}

TYPE_LABELS = {
    TransactionType.INCOME: "Ingreso",
    TransactionType.EXPENSE: "Gasto",
    TransactionType.SAVING: "Ahorro",
}

WIDGET_LABELS = {
    WidgetType.FINANCIAL_SUMMARY: "Resumen financiero",
    WidgetType.EXPENSE_DISTRIBUTION: "Distribución de gastos",
    WidgetType.AI_SUMMARY: "Resumen IA",
    WidgetType.ALERTS: "Alertas",
    WidgetType.MONTHLY_SUMMARY: "Resumen mensual",
    WidgetType.ANNUAL_PAYMENTS: "Pagos anuales",
    WidgetType.GOALS: "Metas",
    WidgetType.SAVINGS_SUMMARY: "Ahorro",
    WidgetType.ACHIEVEMENTS: "Logros",
}

STRATEGY_LABELS = {
    DebtStrategy.SNOWBALL: "Bola de nieve (saldo menor primero)",
    DebtStrategy.AVALANCHE: "Avalancha (TAE más alta primero)",
    DebtStrategy.CASHFLOW: "Flujo de caja (libera cuota antes)",
}

PAGES = [
    "🏠 Panel",
    "📒 Contabilidad",
    "🧮 Presupuestos",
    "🎯 Metas",
    "💳 Créditos",
    "🛡️ Seguros",
    "🧾 Recibos y Facturas",
    "📊 Informes",
    "📈 Calculadora",
    "🔔 Alertas",
    "🤖 IA",
    "🏷️ Categorías",
    "🏆 Logros",
    "⚙️ Ajustes",
]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.log_level)
    try:
        state_flow, insight_flow, chat_flow = create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"No se pudo inicializar el almacenamiento: {e}")
        state_flow, insight_flow, chat_flow = create_app_components(use_storage=False)
    run_async(state_flow.load())
    return state_flow, insight_flow, chat_flow


def money(value: float) -> str:
    return f"{value:,.2f} {get_settings().app.currency_symbol}"


def persist(state_flow: StateFlow, message: str = None) -> None:
    """Save after a mutation, unlock achievements and refresh the page."""
    correlation_id = create_correlation_id()
    try:
        run_async(state_flow.save(correlation_id))
        unlocked = run_async(state_flow.check_achievements(correlation_id))
    except StorageError as e:
        st.error(f"No se pudieron guardar los cambios: {e}")
        return
    if message:
        st.session_state.flash = message
    if unlocked:
        names = {a.id: f"{a.icon} {a.name}" for a in ACHIEVEMENT_DEFINITIONS}
        st.session_state.unlocked = [names[a] for a in unlocked if a in names]
    st.rerun()


def show_flash() -> None:
    if st.session_state.get("flash"):
        st.success(st.session_state.pop("flash"))
    for name in st.session_state.pop("unlocked", []):
        st.toast(f"¡Logro desbloqueado! {name}")


def owner_selector(store: FinanceStore, key: str):
    """In a group view, ask which member owns a new record."""
    if store.active_view.type != ViewType.GROUP:
        return None
    members = store.group_members
    if not members:
        return None
    member = st.selectbox(
        "Propietario",
        members,
        format_func=lambda u: u.name,
        key=f"owner_{key}",
    )
    return member.id


def main():
    """Main application entry point."""
    state_flow, insight_flow, chat_flow = get_components()
    store = state_flow.store

    # Sidebar navigation
    st.sidebar.title("🌱 MoneyGrowth")
    render_view_switcher(state_flow)
    st.sidebar.markdown("---")

    page = st.sidebar.radio("Ir a:", PAGES, index=0)

    if not insight_flow.is_configured:
        st.sidebar.info("Sin API Key de Gemini: las funciones de IA están desactivadas.")

    show_flash()

    if page == "🏠 Panel":
        render_dashboard_page(state_flow, insight_flow)
    elif page == "📒 Contabilidad":
        render_accounting_page(state_flow)
    elif page == "🧮 Presupuestos":
        render_budgets_page(state_flow, insight_flow)
    elif page == "🎯 Metas":
        render_goals_page(state_flow)
    elif page == "💳 Créditos":
        render_credits_page(state_flow, insight_flow)
    elif page == "🛡️ Seguros":
        render_insurance_page(state_flow)
    elif page == "🧾 Recibos y Facturas":
        render_receipts_page(state_flow, insight_flow)
    elif page == "📊 Informes":
        render_reports_page(state_flow)
    elif page == "📈 Calculadora":
        render_calculator_page()
    elif page == "🔔 Alertas":
        render_alerts_page(store)
    elif page == "🤖 IA":
        render_ai_page(state_flow, insight_flow, chat_flow)
    elif page == "🏷️ Categorías":
        render_categories_page(state_flow)
    elif page == "🏆 Logros":
        render_achievements_page(store)
    elif page == "⚙️ Ajustes":
        render_settings_page(state_flow)


def render_view_switcher(state_flow: StateFlow):
    """Pick the user or group whose data is shown."""
    store = state_flow.store
    options = [ActiveView(type=ViewType.USER, id=u.id) for u in store.users]
    options += [ActiveView(type=ViewType.GROUP, id=g.id) for g in store.groups]
    names = {u.id: f"👤 {u.name}" for u in store.users}
    names.update({g.id: f"👥 {g.name}" for g in store.groups})

    current = next(
        (i for i, v in enumerate(options) if v.id == store.active_view.id),
        0,
    )
    selected = st.sidebar.selectbox(
        "Vista",
        options,
        index=current,
        format_func=lambda v: names[v.id],
    )
    if selected.id != store.active_view.id:
        store.switch_view(selected)
        persist(state_flow)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(state_flow: StateFlow, insight_flow: InsightFlow):
    """Render the dashboard with the widgets the user enabled."""
    store = state_flow.store
    target = store.active_view_target
    st.title(f"🏠 Panel de {target.name if target else 'Usuario'}")

    today = date.today()
    instances = store.get_expanded_transactions_for_year(today.year)
    this_month = instances_in_month(instances, today.year, today.month)
    widgets = store.dashboard_widgets

    if WidgetType.FINANCIAL_SUMMARY in widgets:
        income = total_income(this_month)
        outflow = total_outflow(this_month)
        col1, col2, col3 = st.columns(3)
        col1.metric("Ingresos del mes", money(income))
        col2.metric("Gastos y ahorro", money(outflow))
        col3.metric("Balance", money(income - outflow))

    if WidgetType.AI_SUMMARY in widgets:
        st.subheader("🤖 Resumen IA")
        if st.button("Generar resumen de los últimos 30 días"):
            with st.spinner("Analizando tus movimientos..."):
                st.session_state.ai_summary = run_async(insight_flow.summary(today))
        if st.session_state.get("ai_summary"):
            st.markdown(st.session_state.ai_summary)

    left, right = st.columns(2)

    with left:
        if WidgetType.EXPENSE_DISTRIBUTION in widgets:
            st.subheader("Distribución de gastos")
            by_category = expense_by_category(this_month)
            if by_category:
                st.bar_chart(
                    [{"Categoría": c.name, "Importe": c.value} for c in by_category],
                    x="Categoría",
                    y="Importe",
                )
            else:
                st.info("Aún no hay gastos este mes.")

        if WidgetType.GOALS in widgets:
            st.subheader("Metas")
            goals = store.goals
            if not goals:
                st.info("No tienes metas todavía.")
            for goal in goals[:4]:
                progress = goal_progress(goal, today)
                st.progress(progress.progress_percent / 100, text=f"{goal.name}: {progress.progress_percent:.0f}%")

        if WidgetType.ACHIEVEMENTS in widgets:
            st.subheader("Logros")
            st.write(f"{len(store.achievements)} de {len(ACHIEVEMENT_DEFINITIONS)} desbloqueados")

    with right:
        if WidgetType.ALERTS in widgets:
            st.subheader("Alertas")
            alerts = store.get_alerts(today)
            if not alerts:
                st.success("Todo en orden.")
            for alert in alerts[:3]:
                st.warning(f"{alert.date.strftime('%d/%m/%Y')} · {alert.message}")

        if WidgetType.ANNUAL_PAYMENTS in widgets:
            st.subheader("Próximos pagos anuales")
            payments = upcoming_annual_payments(store.receipts, store.insurance_policies, today)
            if not payments:
                st.info("No hay pagos anuales en los próximos 12 meses.")
            for payment in payments:
                st.write(f"**{payment.name}** · {payment.date.strftime('%d/%m/%Y')} · {money(payment.amount)}")

        if WidgetType.SAVINGS_SUMMARY in widgets:
            st.subheader("Ahorro")
            saved_goals = sum(g.current_amount for g in store.goals)
            saved_funds = sum(b.current_amount for b in store.budgets if b.type == BudgetType.SAVING_FUND)
            st.metric("Total ahorrado", money(saved_goals + saved_funds))

    if WidgetType.MONTHLY_SUMMARY in widgets:
        st.subheader(f"Resumen {today.year}")
        summary = annual_summary(instances, today.year)
        st.bar_chart(
            [
                {"Mes": MONTH_LABELS[m.month - 1][:3], "Ingresos": m.income, "Gastos": m.expense}
                for m in summary
            ],
            x="Mes",
            y=["Ingresos", "Gastos"],
        )


# =============================================================================
# ACCOUNTING
# =============================================================================

def render_accounting_page(state_flow: StateFlow):
    """Render the ledger of one month, with recurring instances expanded."""
    store = state_flow.store
    st.title("📒 Contabilidad")

    today = date.today()
    col1, col2 = st.columns(2)
    year = col1.number_input("Año", min_value=2000, max_value=2100, value=today.year, step=1)
    month = col2.selectbox(
        "Mes",
        list(range(1, 13)),
        index=today.month - 1,
        format_func=lambda m: MONTH_LABELS[m - 1],
    )

    with st.expander("➕ Nueva transacción"):
        render_transaction_form(state_flow)

    instances = store.get_expanded_transactions_for_year(int(year))
    monthly = instances_in_month(instances, int(year), month, include_excluded=True)
    active = [i for i in monthly if not i.is_excluded]

    col1, col2, col3 = st.columns(3)
    col1.metric("Ingresos", money(total_income(active)))
    col2.metric("Gastos y ahorro", money(total_outflow(active)))
    col3.metric("Balance", money(total_income(active) - total_outflow(active)))

    st.markdown("---")
    if not monthly:
        st.info("No hay transacciones en este mes.")

    originals = {t.id: t for t in store.transactions}
    for instance in sorted(monthly, key=lambda i: i.date):
        col1, col2, col3, col4 = st.columns([5, 2, 1, 1])
        label = f"{instance.date.strftime('%d/%m')} · {TYPE_LABELS[instance.type]} · {instance.category or 'Ahorro'}"
        if instance.subcategory:
            label += f" / {instance.subcategory}"
        if instance.description:
            label += f" · {instance.description}"
        if instance.is_recurring:
            label += f" 🔁 {FREQUENCY_LABELS[instance.frequency]}"
        if instance.is_excluded:
            label = f"~~{label}~~"
        col1.markdown(label)
        col2.markdown(f"**{money(instance.amount)}**")

        if instance.is_recurring:
            toggle = "Incluir" if instance.is_excluded else "Excluir"
            if col3.button(toggle, key=f"exclude_{instance.instance_id}"):
                store.toggle_transaction_instance_exclusion(instance.instance_id)
                persist(state_flow)

        linked = instance.credit_id or instance.insurance_id or instance.goal_id or instance.budget_id
        if not linked and col4.button("🗑️", key=f"delete_{instance.instance_id}"):
            store.delete_transaction(instance.id)
            persist(state_flow, "Transacción eliminada.")

        original = originals.get(instance.id)
        if original and not linked:
            with st.expander("Editar", expanded=False):
                render_transaction_edit_form(state_flow, original, instance.instance_id)

    st.markdown("---")
    st.subheader("Exportar")
    try:
        file_name, content = run_async(state_flow.export_accounting_csv(int(year)))
        st.download_button("⬇️ Informe contable CSV", content, file_name=file_name, mime="text/csv")
    except NoTransactionsError as e:
        st.info(str(e))


def render_transaction_form(state_flow: StateFlow):
    store = state_flow.store
    tx_type = st.radio(
        "Tipo",
        [TransactionType.EXPENSE, TransactionType.INCOME, TransactionType.SAVING],
        format_func=lambda t: TYPE_LABELS[t],
        horizontal=True,
        key="new_tx_type",
    )
    if tx_type == TransactionType.INCOME:
        categories = [c.name for c in store.income_categories]
    elif tx_type == TransactionType.EXPENSE:
        categories = [c.name for c in store.expense_categories]
    else:
        categories = ["Ahorro"]

    category = st.selectbox("Categoría", categories, key="new_tx_category")
    subcategories = store.expense_subcategories.get(category, []) if tx_type == TransactionType.EXPENSE else []
    owner_id = owner_selector(store, "tx")

    with st.form("new_transaction", clear_on_submit=True):
        subcategory = st.selectbox("Subcategoría", [None] + subcategories, format_func=lambda s: s or "—")
        amount = st.number_input("Importe", min_value=0.01, value=10.0, step=1.0)
        tx_date = st.date_input("Fecha", value=date.today())
        description = st.text_input("Descripción")
        frequency = st.selectbox("Frecuencia", list(FREQUENCY_LABELS), format_func=lambda f: FREQUENCY_LABELS[f])
        notes = st.text_area("Notas")
        submitted = st.form_submit_button("Guardar", type="primary")

    if submitted:
        try:
            transaction = Transaction(
                type=tx_type,
                category=category,
                subcategory=subcategory,
                amount=amount,
                date=tx_date,
                description=description,
                frequency=frequency,
                notes=notes or None,
            )
        except ValueError as e:
            st.error(f"Datos no válidos: {e}")
            return
        store.add_transaction(transaction, owner_id)
        persist(state_flow, "Transacción añadida.")


def render_transaction_edit_form(state_flow: StateFlow, transaction: Transaction, key: str):
    with st.form(f"edit_{key}"):
        amount = st.number_input("Importe", min_value=0.01, value=float(transaction.amount), step=1.0)
        description = st.text_input("Descripción", value=transaction.description)
        tx_date = st.date_input("Fecha", value=transaction.date)
        if st.form_submit_button("Actualizar"):
            updated = transaction.model_copy(update={
                "amount": amount,
                "description": description,
                "date": tx_date,
            })
            state_flow.store.update_transaction(updated)
            persist(state_flow, "Transacción actualizada.")


# =============================================================================
# BUDGETS
# =============================================================================

def render_budgets_page(state_flow: StateFlow, insight_flow: InsightFlow):
    """Render spending limits and saving funds."""
    store = state_flow.store
    st.title("🧮 Presupuestos")
    today = date.today()

    with st.expander("➕ Nuevo presupuesto"):
        budget_type = st.radio(
            "Tipo",
            list(BudgetType),
            format_func=lambda t: "Límite de gasto" if t == BudgetType.SPENDING_LIMIT else "Fondo de ahorro",
            horizontal=True,
        )
        owner_id = owner_selector(store, "budget")
        with st.form("new_budget", clear_on_submit=True):
            name = st.text_input("Nombre")
            category = None
            if budget_type == BudgetType.SPENDING_LIMIT:
                category = st.selectbox("Categoría", [c.name for c in store.expense_categories])
            target = st.number_input("Objetivo mensual / total", min_value=1.0, value=200.0, step=10.0)
            current = 0.0
            create_transactions = False
            if budget_type == BudgetType.SAVING_FUND:
                current = st.number_input("Saldo inicial", min_value=0.0, value=0.0, step=10.0)
                create_transactions = st.checkbox("Registrar aportaciones como transacciones de ahorro")
            priority = st.selectbox(
                "Prioridad",
                list(BudgetPriority),
                format_func=lambda p: "Esencial" if p == BudgetPriority.ESSENTIAL else "Secundario",
            )
            if st.form_submit_button("Crear", type="primary"):
                try:
                    budget = Budget(
                        name=name,
                        category=category,
                        target_amount=target,
                        current_amount=current,
                        type=budget_type,
                        priority=priority,
                        create_transactions=create_transactions,
                    )
                except ValueError as e:
                    st.error(f"Datos no válidos: {e}")
                else:
                    store.add_budget(budget, owner_id)
                    persist(state_flow, "Presupuesto creado.")

    with st.expander("🤖 Sugerencia de presupuesto con IA (50/30/20)"):
        if st.button("Analizar mis últimos 3 meses"):
            with st.spinner("Calculando..."):
                st.session_state.budget_suggestion = run_async(insight_flow.suggest_budgets(today))
        suggestion = st.session_state.get("budget_suggestion")
        if suggestion:
            st.markdown(suggestion.summary)
            for item in suggestion.suggested_budgets:
                st.write(f"- **{item.category}**: {money(item.target_amount)} ({item.priority.value})")
            if suggestion.suggested_budgets and st.button("Crear estos presupuestos"):
                created = run_async(insight_flow.apply_budget_suggestion(suggestion))
                st.session_state.budget_suggestion = None
                persist(state_flow, f"{len(created)} presupuestos creados.")

    instances = store.get_expanded_transactions_for_year(today.year)
    budgets = store.budgets
    if not budgets:
        st.info("No tienes presupuestos todavía.")

    for budget in budgets:
        progress = budget_progress(budget, instances, today)
        st.markdown(f"### {budget.name}")
        label = f"{money(progress.spent)} de {money(budget.target_amount)}"
        st.progress(min(progress.progress_percent, 100) / 100, text=label)
        if progress.is_over:
            st.error(f"Has superado el límite en {money(-progress.remaining)}.")

        col1, col2 = st.columns(2)
        if budget.type == BudgetType.SAVING_FUND:
            with col1.form(f"fund_{budget.id}", clear_on_submit=True):
                amount = st.number_input("Aportar", min_value=0.01, value=50.0, key=f"fund_amount_{budget.id}")
                if st.form_submit_button("Añadir fondos"):
                    store.add_funds_to_budget(budget.id, amount)
                    persist(state_flow, "Aportación registrada.")
            render_contributions(state_flow, budget, is_goal=False)
        if col2.button("🗑️ Eliminar presupuesto", key=f"delete_budget_{budget.id}"):
            store.delete_budget(budget.id)
            persist(state_flow, "Presupuesto eliminado.")


def render_contributions(state_flow: StateFlow, record, is_goal: bool):
    """Contribution history of a goal or saving fund, with exclude/delete."""
    store = state_flow.store
    if not record.contribution_history:
        return
    with st.expander(f"Historial de aportaciones ({len(record.contribution_history)})"):
        for contribution in record.contribution_history:
            col1, col2, col3 = st.columns([5, 1, 1])
            text = f"{contribution.date.strftime('%d/%m/%Y')} · {money(contribution.amount)} · {contribution.description or ''}"
            col1.markdown(f"~~{text}~~" if contribution.is_excluded else text)
            toggle = "Incluir" if contribution.is_excluded else "Excluir"
            if col2.button(toggle, key=f"toggle_{contribution.id}"):
                updated = contribution.model_copy(update={"is_excluded": not contribution.is_excluded})
                if is_goal:
                    store.update_goal_contribution(record.id, updated)
                else:
                    store.update_budget_contribution(record.id, updated)
                persist(state_flow)
            if col3.button("🗑️", key=f"delete_contribution_{contribution.id}"):
                if is_goal:
                    store.delete_goal_contribution(record.id, contribution.id)
                else:
                    store.delete_budget_contribution(record.id, contribution.id)
                persist(state_flow, "Aportación eliminada.")


# =============================================================================
# GOALS
# =============================================================================

def render_goals_page(state_flow: StateFlow):
    store = state_flow.store
    st.title("🎯 Metas")
    today = date.today()

    with st.expander("➕ Nueva meta"):
        owner_id = owner_selector(store, "goal")
        with st.form("new_goal", clear_on_submit=True):
            name = st.text_input("Nombre")
            target = st.number_input("Objetivo", min_value=1.0, value=1000.0, step=50.0)
            current = st.number_input("Ya ahorrado", min_value=0.0, value=0.0, step=50.0)
            start = st.date_input("Inicio", value=today)
            deadline = st.date_input("Fecha límite", value=date(today.year + 1, today.month, 1))
            create_transactions = st.checkbox("Registrar aportaciones como transacciones de ahorro")
            notes = st.text_area("Notas")
            if st.form_submit_button("Crear", type="primary"):
                try:
                    goal = Goal(
                        name=name,
                        target_amount=target,
                        current_amount=current,
                        start_date=start,
                        deadline=deadline,
                        create_transactions=create_transactions,
                        notes=notes or None,
                    )
                except ValueError as e:
                    st.error(f"Datos no válidos: {e}")
                else:
                    store.add_goal(goal, owner_id)
                    persist(state_flow, "Meta creada.")

    goals = store.goals
    if not goals:
        st.info("Define tu primera meta de ahorro.")

    for goal in goals:
        progress = goal_progress(goal, today)
        st.markdown(f"### {'🏆 ' if goal.is_completed else ''}{goal.name}")
        st.progress(
            progress.progress_percent / 100,
            text=f"{money(goal.current_amount)} de {money(goal.target_amount)}",
        )
        details = f"Quedan {progress.days_left} días"
        if progress.monthly_needed:
            details += f" · necesitas {money(progress.monthly_needed)} al mes"
        st.caption(details)

        col1, col2 = st.columns(2)
        with col1.form(f"goal_funds_{goal.id}", clear_on_submit=True):
            amount = st.number_input("Aportar", min_value=0.01, value=50.0, key=f"goal_amount_{goal.id}")
            description = st.text_input("Concepto", key=f"goal_desc_{goal.id}")
            if st.form_submit_button("Añadir fondos"):
                store.add_funds_to_goal(goal.id, amount, description or None)
                persist(state_flow, "Aportación registrada.")
        if col2.button("🗑️ Eliminar meta", key=f"delete_goal_{goal.id}"):
            store.delete_goal(goal.id)
            persist(state_flow, "Meta eliminada.")
        render_contributions(state_flow, goal, is_goal=True)


# =============================================================================
# CREDITS
# =============================================================================

def render_credits_page(state_flow: StateFlow, insight_flow: InsightFlow):
    """Render credits, debt strategy and AI toxicity analysis."""
    store = state_flow.store
    st.title("💳 Créditos")
    today = date.today()

    with st.expander("➕ Nuevo crédito"):
        owner_id = owner_selector(store, "credit")
        with st.form("new_credit", clear_on_submit=True):
            name = st.text_input("Nombre")
            subcategory = st.selectbox("Tipo", list(CreditSubcategory), format_func=lambda s: s.value)
            total = st.number_input("Importe total", min_value=0.0, value=10000.0, step=100.0)
            payment = st.number_input("Cuota mensual", min_value=0.01, value=250.0, step=10.0)
            col1, col2 = st.columns(2)
            tin = col1.number_input("TIN (%)", min_value=0.0, max_value=100.0, value=5.0)
            tae = col2.number_input("TAE (%)", min_value=0.0, max_value=100.0, value=5.5)
            start = st.date_input("Inicio", value=today)
            end = st.date_input("Fin", value=date(today.year + 4, today.month, 1))
            notes = st.text_area("Notas")
            if st.form_submit_button("Crear", type="primary"):
                try:
                    credit = Credit(
                        name=name,
                        subcategory=subcategory,
                        total_amount=total,
                        monthly_payment=payment,
                        tin=tin,
                        tae=tae,
                        start_date=start,
                        end_date=end,
                        notes=notes or None,
                    )
                except ValueError as e:
                    st.error(f"Datos no válidos: {e}")
                else:
                    store.add_credit(credit, owner_id)
                    persist(state_flow, "Crédito añadido junto a su cuota mensual.")

    credits = store.credits
    if not credits:
        st.info("No tienes créditos registrados.")
        return

    summary = credit_summary(credits, today)
    col1, col2, col3 = st.columns(3)
    col1.metric("Deuda pendiente", money(summary.total_debt))
    col2.metric("Cuotas mensuales", money(summary.total_monthly_payment))

    instances = store.get_expanded_transactions_for_year(today.year)
    income = total_income(instances_in_month(instances, today.year, today.month))
    ratio = debt_to_income_ratio(credits, income)
    col3.metric(
        "Endeudamiento",
        f"{ratio:.1f}%" if ratio is not None else "—",
        help=f"Salud: {debt_health(ratio)}",
    )

    for credit in credits:
        status = credit_status(credit, today)
        st.markdown(f"### {credit.name} · {credit.subcategory.value}")
        st.progress(status.progress_percent / 100, text=f"Pendiente {money(status.remaining_amount)}")
        st.caption(f"Cuota {money(credit.monthly_payment)} · TIN {credit.tin}% · TAE {credit.tae}% · hasta {credit.end_date.strftime('%m/%Y')}")

        if credit.toxicity_report:
            _, label = toxicity_level(credit.toxicity_report.score)
            st.markdown(f"**Toxicidad: {credit.toxicity_report.score:.1f}/10 ({label})**")
            st.write(credit.toxicity_report.explanation)

        col1, col2, col3 = st.columns(3)
        if col1.button("🔍 Analizar toxicidad", key=f"toxicity_{credit.id}"):
            with st.spinner("Analizando..."):
                report = run_async(insight_flow.analyze_credit(credit.id))
            if report.score == 0:
                st.warning(report.explanation)
            else:
                persist(state_flow, "Análisis guardado.")
        if credit.toxicity_report and col2.button("Borrar análisis", key=f"clear_toxicity_{credit.id}"):
            store.delete_credit_toxicity(credit.id)
            persist(state_flow)
        if col3.button("🗑️ Eliminar", key=f"delete_credit_{credit.id}"):
            store.delete_credit(credit.id)
            persist(state_flow, "Crédito y cuota eliminados.")

    st.markdown("---")
    st.subheader("Estrategia de pago")
    strategy = st.radio("Estrategia", list(DebtStrategy), format_func=lambda s: STRATEGY_LABELS[s])
    for position, status in enumerate(order_credits(credits, strategy, today), start=1):
        st.write(f"{position}. **{status.name}** · pendiente {money(status.remaining_amount)}")

    st.subheader("Asesor de deudas")
    question = st.text_input("Pregunta", placeholder="¿Qué deuda debería pagar primero?")
    if st.button("Preguntar", type="primary") and question:
        with st.spinner("Pensando..."):
            st.markdown(run_async(insight_flow.debt_advice(question)))


# =============================================================================
# INSURANCE
# =============================================================================

def render_insurance_page(state_flow: StateFlow):
    store = state_flow.store
    st.title("🛡️ Seguros")
    today = date.today()

    with st.expander("➕ Nueva póliza"):
        policy_type = st.selectbox("Tipo", list(InsurancePolicyType), format_func=lambda p: p.value)
        subcategories = store.insurance_subcategories.get(policy_type.value, [])
        owner_id = owner_selector(store, "policy")
        with st.form("new_policy", clear_on_submit=True):
            name = st.text_input("Nombre / compañía")
            subcategory = st.selectbox("Subcategoría", [None] + subcategories, format_func=lambda s: s or "—")
            premium = st.number_input("Prima", min_value=0.01, value=300.0, step=10.0)
            frequency = st.selectbox(
                "Frecuencia de pago",
                list(Frequency),
                index=3,
                format_func=lambda f: FREQUENCY_LABELS[f],
            )
            prorate = st.number_input("Fraccionar en meses (0 = no)", min_value=0, max_value=24, value=0)
            renewal = st.date_input("Renovación", value=today)
            reminder = st.checkbox("Avisarme antes de la renovación")
            notice = st.number_input("Meses de preaviso", min_value=1, max_value=24, value=1)
            notes = st.text_area("Notas")
            if st.form_submit_button("Crear", type="primary"):
                try:
                    policy = InsurancePolicy(
                        name=name,
                        policy_type=policy_type,
                        subcategory=subcategory,
                        premium=premium,
                        payment_frequency=frequency,
                        prorate_over_months=prorate or None,
                        renewal_date=renewal,
                        cancellation_reminder=reminder,
                        cancellation_notice_months=notice if reminder else None,
                        notes=notes or None,
                    )
                except ValueError as e:
                    st.error(f"Datos no válidos: {e}")
                else:
                    store.add_insurance_policy(policy, owner_id)
                    persist(state_flow, "Póliza añadida junto a su gasto.")

    policies = store.insurance_policies
    if not policies:
        st.info("No tienes pólizas registradas.")

    for policy in policies:
        monthly = monthly_equivalent(policy.premium, policy.payment_frequency, policy.prorate_over_months)
        col1, col2 = st.columns([5, 1])
        col1.markdown(
            f"**{policy.name}** · {policy.policy_type.value}"
            f"{' / ' + policy.subcategory if policy.subcategory else ''} · "
            f"{money(policy.premium)} {FREQUENCY_LABELS[policy.payment_frequency].lower()} "
            f"(≈ {money(monthly)}/mes) · renueva {policy.renewal_date.strftime('%d/%m/%Y')}"
        )
        if col2.button("🗑️", key=f"delete_policy_{policy.id}"):
            store.delete_insurance_policy(policy.id)
            persist(state_flow, "Póliza eliminada.")


# =============================================================================
# RECEIPTS AND INVOICES
# =============================================================================

def render_receipts_page(state_flow: StateFlow, insight_flow: InsightFlow):
    """Render recurring receipts and one-off invoices."""
    store = state_flow.store
    st.title("🧾 Recibos y Facturas")
    today = date.today()

    with st.expander("📷 Escanear un recibo con IA"):
        photo = st.file_uploader("Foto del recibo", type=["jpg", "jpeg", "png", "webp"])
        if photo and st.button("Leer recibo"):
            with st.spinner("Leyendo..."):
                try:
                    st.session_state.scanned = run_async(
                        insight_flow.scan_receipt(photo.getvalue())
                    )
                except ValueError as e:
                    st.error(str(e))
        scanned = st.session_state.get("scanned")
        if scanned:
            st.info(
                f"Importe: {scanned.amount or '—'} · Fecha: {scanned.date or '—'} · "
                f"{scanned.description or ''} · Categoría: {scanned.category or '—'}"
            )
            for issue in scanned.image_issues:
                st.warning(issue)

    scanned = st.session_state.get("scanned")
    with st.expander("➕ Nuevo recibo o factura", expanded=bool(scanned)):
        receipt_type = st.radio(
            "Tipo",
            list(ReceiptType),
            format_func=lambda t: "Recibo recurrente" if t == ReceiptType.RECEIPT else "Factura",
            horizontal=True,
        )
        owner_id = owner_selector(store, "receipt")
        with st.form("new_receipt", clear_on_submit=True):
            title = st.text_input("Título", value=(scanned.description if scanned else "") or "")
            amount = st.number_input(
                "Importe",
                min_value=0.0,
                value=float(scanned.amount) if scanned and scanned.amount else 0.0,
            )
            receipt_date = st.date_input(
                "Fecha (próximo cargo para recibos)",
                value=scanned.date if scanned and scanned.date else today,
            )
            description = st.text_input("Descripción")
            invoice_category = None
            is_tax_deductible = None
            frequency = None
            auto_renews = None
            reminder = None
            notice = None
            if receipt_type == ReceiptType.INVOICE:
                invoice_category = st.selectbox("Categoría de factura", store.invoice_categories)
                is_tax_deductible = st.checkbox("Deducible")
            else:
                frequency = st.selectbox("Frecuencia", list(Frequency), format_func=lambda f: FREQUENCY_LABELS[f])
                auto_renews = st.checkbox("Se renueva automáticamente")
                reminder = st.checkbox("Avisarme para cancelar")
                notice = st.number_input("Meses de preaviso", min_value=1, max_value=24, value=1)
            if st.form_submit_button("Guardar", type="primary"):
                try:
                    receipt = Receipt(
                        type=receipt_type,
                        title=title,
                        amount=amount,
                        date=receipt_date,
                        description=description,
                        invoice_category=invoice_category,
                        is_tax_deductible=is_tax_deductible,
                        frequency=frequency,
                        auto_renews=auto_renews,
                        cancellation_reminder=reminder,
                        cancellation_notice_months=notice if reminder else None,
                    )
                except ValueError as e:
                    st.error(f"Datos no válidos: {e}")
                else:
                    store.add_receipt(receipt, owner_id)
                    st.session_state.scanned = None
                    persist(state_flow, "Guardado.")

    receipts_tab, invoices_tab, all_tab = st.tabs(["Recibos", "Facturas", "Todos"])
    with all_tab:
        render_receipt_list(store)
    with receipts_tab:
        for receipt in [r for r in store.receipts if r.type == ReceiptType.RECEIPT]:
            render_receipt_row(state_flow, receipt)
        if st.button("💡 Buscar oportunidades de ahorro"):
            with st.spinner("Revisando tus gastos recurrentes..."):
                st.markdown(run_async(insight_flow.savings_opportunities()))
    with invoices_tab:
        for receipt in [r for r in store.receipts if r.type == ReceiptType.INVOICE]:
            render_receipt_row(state_flow, receipt)


RECEIPT_SORT_LABELS = {
    ReceiptSortKey.DATE: "Fecha",
    ReceiptSortKey.AMOUNT: "Importe",
    ReceiptSortKey.TITLE: "Título",
    ReceiptSortKey.TYPE: "Tipo",
}


def render_receipt_list(store: FinanceStore):
    """All receipts and invoices in one sortable table."""
    if not store.receipts:
        st.info("No hay recibos ni facturas.")
        return
    col1, col2 = st.columns(2)
    key = col1.selectbox(
        "Ordenar por",
        list(ReceiptSortKey),
        format_func=lambda k: RECEIPT_SORT_LABELS[k],
        key="receipt_sort_key",
    )
    descending = col2.radio(
        "Orden",
        [True, False],
        format_func=lambda d: "Descendente" if d else "Ascendente",
        horizontal=True,
        key="receipt_sort_order",
    )
    st.dataframe(
        [
            {
                "Título": r.title,
                "Tipo": receipt_type_label(r),
                "Categoría": (r.invoice_category or "-") if r.type == ReceiptType.INVOICE else "-",
                "Importe": round(r.amount, 2),
                "Fecha": r.date.strftime("%d/%m/%Y"),
            }
            for r in sort_receipts(store.receipts, key, descending)
        ],
        use_container_width=True,
    )


def render_receipt_row(state_flow: StateFlow, receipt: Receipt):
    col1, col2 = st.columns([5, 1])
    text = f"**{receipt.title}** · {money(receipt.amount)} · {receipt.date.strftime('%d/%m/%Y')}"
    if receipt.frequency:
        text += f" · {FREQUENCY_LABELS[receipt.frequency]}"
    if receipt.invoice_category:
        text += f" · {receipt.invoice_category}"
    if receipt.is_tax_deductible:
        text += " · deducible"
    col1.markdown(text)
    if col2.button("🗑️", key=f"delete_receipt_{receipt.id}"):
        state_flow.store.delete_receipt(receipt.id)
        persist(state_flow, "Eliminado.")


# =============================================================================
# REPORTS AND ALERTS
# =============================================================================

def render_reports_page(state_flow: StateFlow):
    store = state_flow.store
    st.title("📊 Informes")
    today = date.today()

    col1, col2 = st.columns(2)
    year = int(col1.number_input("Año", min_value=2000, max_value=2100, value=today.year, step=1))
    month = col2.selectbox(
        "Mes",
        list(range(1, 13)),
        index=today.month - 1,
        format_func=lambda m: MONTH_LABELS[m - 1],
    )

    instances = store.get_expanded_transactions_for_year(year)
    report = monthly_report(instances, year, month, store.credits, store.goals, today)

    col1, col2, col3 = st.columns(3)
    col1.metric("Ingresos", money(report.total_income))
    col2.metric("Gastos y ahorro", money(report.total_expenses))
    col3.metric("Balance", money(report.balance))

    st.markdown(f"""
    <div class="info-box">
        <h4>Salud financiera: {report.financial_health.status}</h4>
        <p>{report.financial_health.advice}</p>
    </div>
    """, unsafe_allow_html=True)

    if report.expense_by_category:
        st.subheader("Gastos por categoría")
        st.dataframe(
            [{"Categoría": c.name, "Importe": round(c.value, 2)} for c in report.expense_by_category],
            use_container_width=True,
        )

    file_name, content = run_async(state_flow.export_monthly_report(year, month, today))
    st.download_button("⬇️ Descargar informe", content, file_name=file_name, mime="text/markdown")

    st.subheader(f"Resumen anual {year}")
    st.dataframe(
        [
            {
                "Mes": MONTH_LABELS[m.month - 1],
                "Ingresos": round(m.income, 2),
                "Gastos": round(m.expense, 2),
                "Ahorro": round(m.saving, 2),
                "Balance": round(m.balance, 2),
            }
            for m in annual_summary(instances, year)
        ],
        use_container_width=True,
    )


def render_calculator_page():
    """Compound interest projection."""
    st.title("📈 Calculadora de interés compuesto")

    col1, col2 = st.columns(2)
    initial = col1.number_input("Inversión inicial", min_value=0.0, value=1000.0, step=100.0)
    contribution = col2.number_input("Aportación mensual", min_value=0.0, value=100.0, step=10.0)
    years = int(col1.number_input("Periodo (años)", min_value=0, max_value=100, value=10, step=1))
    rate = col2.number_input("Tipo de interés (%)", min_value=0.0, value=7.0, step=0.1)
    rate_period = col1.selectbox(
        "Periodicidad del tipo",
        list(RatePeriod),
        format_func=lambda p: "Anual" if p == RatePeriod.ANNUAL else "Mensual",
    )
    step = col2.radio(
        "Ver por",
        list(ProjectionStep),
        format_func=lambda s: "Años" if s == ProjectionStep.YEARS else "Meses",
        horizontal=True,
    )

    params = CompoundInterestParams(
        initial_investment=initial,
        monthly_contribution=contribution,
        years=years,
        interest_rate=rate,
        rate_period=rate_period,
    )
    points = compound_interest_projection(params, step)
    result = projection_result(params, points)

    if points:
        st.line_chart(
            [
                {
                    "Periodo": p.period,
                    "Balance": round(p.balance, 2),
                    "Aportaciones": round(p.contributions, 2),
                    "Interés ganado": round(p.interest, 2),
                }
                for p in points
            ],
            x="Periodo",
            y=["Balance", "Aportaciones", "Interés ganado"],
        )

    col1, col2, col3 = st.columns(3)
    col1.metric("Balance final", money(result.balance))
    col2.metric("Total aportado", money(result.contributions))
    col3.metric("Interés ganado", money(result.interest))


def render_alerts_page(store: FinanceStore):
    st.title("🔔 Alertas")
    alerts = store.get_alerts()
    if not alerts:
        st.success("No hay alertas pendientes.")
    for alert in alerts:
        st.markdown(f"""
        <div class="warning-box">
            <h4>{alert.title}</h4>
            <p>{alert.message}</p>
            <p><small>{alert.date.strftime('%d/%m/%Y')}</small></p>
        </div>
        """, unsafe_allow_html=True)


# =============================================================================
# AI
# =============================================================================

def render_ai_page(state_flow: StateFlow, insight_flow: InsightFlow, chat_flow: ChatFlow):
    """Render AI analyses, saved insights and the chat assistant."""
    st.title("🤖 Inteligencia Artificial")
    store = insight_flow.store

    analysis_tab, saved_tab, chat_tab = st.tabs(["Análisis", "Guardados", "Asistente"])

    with analysis_tab:
        question = st.text_input("Pregunta sobre tus finanzas", placeholder="¿En qué gasto más cada mes?")
        if st.button("Preguntar", type="primary") and question:
            with st.spinner("Analizando..."):
                st.markdown(run_async(insight_flow.ask(question)))

        col1, col2 = st.columns(2)
        if col1.button("🔮 Previsión a 3 meses"):
            with st.spinner("Calculando previsión..."):
                st.session_state.last_insight = (InsightType.FORECAST, run_async(insight_flow.forecast()))
        if col2.button("💡 Recomendaciones de ahorro"):
            with st.spinner("Buscando ahorros..."):
                st.session_state.last_insight = (InsightType.SAVINGS, run_async(insight_flow.savings()))

        last = st.session_state.get("last_insight")
        if last:
            insight_type, content = last
            st.markdown(content)
            if insight_flow.is_configured and st.button("💾 Guardar análisis"):
                run_async(insight_flow.save_insight(insight_type, content))
                st.session_state.last_insight = None
                persist(state_flow, "Análisis guardado.")

    with saved_tab:
        insights = sorted(store.saved_insights, key=lambda i: i.date, reverse=True)
        if not insights:
            st.info("Aún no has guardado ningún análisis.")
        for insight in insights:
            title = "Previsión" if insight.type == InsightType.FORECAST else "Ahorro"
            with st.expander(f"{title} · {insight.date.strftime('%d/%m/%Y %H:%M')}"):
                st.markdown(insight.content)
                if st.button("🗑️ Eliminar", key=f"delete_insight_{insight.id}"):
                    store.delete_saved_insight(insight.id)
                    persist(state_flow)

    with chat_tab:
        for message in chat_flow.messages:
            with st.chat_message("assistant" if message.role == "model" else "user"):
                st.markdown(message.text)
        prompt = st.chat_input("Escribe un mensaje...")
        if prompt:
            reply = run_async(chat_flow.send(prompt))
            if reply.transactions:
                persist(state_flow, f"{len(reply.transactions)} transacción(es) añadida(s) por el asistente.")
            st.rerun()
        if st.button("Nueva conversación"):
            chat_flow.reset()
            st.rerun()


# =============================================================================
# CATEGORIES
# =============================================================================

def render_categories_page(state_flow: StateFlow):
    store = state_flow.store
    st.title("🏷️ Categorías")

    income_tab, expense_tab, invoice_tab, insurance_tab = st.tabs(
        ["Ingresos", "Gastos", "Facturas", "Seguros"]
    )

    with income_tab:
        render_category_editor(
            state_flow,
            store.income_categories,
            add=store.add_income_category,
            update=store.update_income_category,
            delete=store.delete_income_category,
            key="income",
        )

    with expense_tab:
        render_category_editor(
            state_flow,
            store.expense_categories,
            add=store.add_expense_category,
            update=store.update_expense_category,
            delete=store.delete_expense_category,
            key="expense",
        )
        st.markdown("---")
        st.subheader("Subcategorías")
        category = st.selectbox("Categoría", [c.name for c in store.expense_categories], key="sub_category")
        render_subcategory_editor(
            state_flow,
            store.expense_subcategories.get(category, []),
            add=lambda name: store.add_expense_subcategory(category, name),
            rename=lambda old, new: store.update_expense_subcategory(category, old, new),
            delete=lambda name: store.delete_expense_subcategory(category, name),
            key=f"expense_{category}",
        )

    with invoice_tab:
        for name in store.invoice_categories:
            st.write(f"- {name}")
        with st.form("new_invoice_category", clear_on_submit=True):
            name = st.text_input("Nueva categoría de factura")
            if st.form_submit_button("Añadir") and name:
                store.add_invoice_category(name)
                persist(state_flow)

    with insurance_tab:
        policy_type = st.selectbox("Tipo de póliza", list(InsurancePolicyType), format_func=lambda p: p.value)
        render_subcategory_editor(
            state_flow,
            store.insurance_subcategories.get(policy_type.value, []),
            add=lambda name: store.add_insurance_subcategory(policy_type, name),
            rename=lambda old, new: store.update_insurance_subcategory(policy_type, old, new),
            delete=lambda name: store.delete_insurance_subcategory(policy_type, name),
            key=f"insurance_{policy_type.value}",
        )


def render_category_editor(state_flow: StateFlow, categories, add, update, delete, key: str):
    for category in categories:
        col1, col2, col3 = st.columns([4, 2, 1])
        col1.write(f"{category.icon} {category.name}")
        new_name = col2.text_input(
            "Renombrar",
            value=category.name,
            key=f"rename_{key}_{category.id}",
            label_visibility="collapsed",
        )
        if new_name and new_name != category.name:
            update(category.id, name=new_name)
            persist(state_flow, "Categoría renombrada.")
        if category.name != "Otros" and col3.button("🗑️", key=f"delete_{key}_{category.id}"):
            delete(category.id)
            persist(state_flow, "Categoría eliminada. Sus transacciones pasan a 'Otros'.")

    with st.form(f"new_{key}_category", clear_on_submit=True):
        col1, col2 = st.columns([4, 1])
        name = col1.text_input("Nueva categoría")
        icon = col2.text_input("Icono", value="💰")
        if st.form_submit_button("Añadir") and name:
            add(name, icon)
            persist(state_flow, "Categoría añadida.")


def render_subcategory_editor(state_flow: StateFlow, names: list[str], add, rename, delete, key: str):
    for name in names:
        col1, col2, col3 = st.columns([4, 2, 1])
        col1.write(name)
        new_name = col2.text_input(
            "Renombrar",
            value=name,
            key=f"rename_sub_{key}_{name}",
            label_visibility="collapsed",
        )
        if new_name and new_name != name:
            rename(name, new_name)
            persist(state_flow)
        if col3.button("🗑️", key=f"delete_sub_{key}_{name}"):
            delete(name)
            persist(state_flow)

    with st.form(f"new_sub_{key}", clear_on_submit=True):
        name = st.text_input("Nueva subcategoría")
        if st.form_submit_button("Añadir") and name:
            add(name)
            persist(state_flow)


# =============================================================================
# ACHIEVEMENTS
# =============================================================================

def render_achievements_page(store: FinanceStore):
    st.title("🏆 Logros")
    if store.active_view.type == ViewType.GROUP:
        st.info("Los logros son personales: cambia a la vista de un usuario para verlos.")
    unlocked = {a.id: a for a in store.achievements}
    cols = st.columns(3)
    for index, definition in enumerate(ACHIEVEMENT_DEFINITIONS):
        with cols[index % 3]:
            achievement = unlocked.get(definition.id)
            if achievement:
                st.markdown(f"### {definition.icon} {definition.name}")
                st.caption(f"{definition.description} · {achievement.unlocked_date.strftime('%d/%m/%Y')}")
            else:
                st.markdown(f"### 🔒 {definition.name}")
                st.caption(definition.description)


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(state_flow: StateFlow):
    """Render users, groups, dashboard, backups and connection status."""
    store = state_flow.store
    st.title("⚙️ Ajustes")

    st.markdown("### Usuarios")
    for user in store.users:
        col1, col2, col3 = st.columns([4, 2, 1])
        col1.markdown(f"<span style='color:{user.color}'>●</span> {user.name}", unsafe_allow_html=True)
        new_name = col2.text_input("Nombre", value=user.name, key=f"user_{user.id}", label_visibility="collapsed")
        if new_name and new_name != user.name:
            store.update_user(user.id, name=new_name)
            persist(state_flow)
        if len(store.users) > 1 and col3.button("🗑️", key=f"delete_user_{user.id}"):
            store.delete_user(user.id)
            persist(state_flow, "Usuario eliminado.")
    with st.form("new_user", clear_on_submit=True):
        name = st.text_input("Nuevo usuario")
        if st.form_submit_button("Añadir usuario") and name:
            store.add_user(name)
            persist(state_flow, "Usuario añadido.")

    st.markdown("### Grupos")
    for group in store.groups:
        with st.expander(f"👥 {group.name}"):
            with st.form(f"group_{group.id}"):
                name = st.text_input("Nombre", value=group.name)
                members = st.multiselect(
                    "Miembros",
                    [u.id for u in store.users],
                    default=[uid for uid in group.user_ids if any(u.id == uid for u in store.users)],
                    format_func=lambda uid: next(u.name for u in store.users if u.id == uid),
                )
                if st.form_submit_button("Actualizar"):
                    try:
                        store.update_group(group.id, name, members)
                    except ValueError as e:
                        st.error(str(e))
                    else:
                        persist(state_flow)
            if st.button("🗑️ Eliminar grupo", key=f"delete_group_{group.id}"):
                store.delete_group(group.id)
                persist(state_flow, "Grupo eliminado.")
    with st.form("new_group", clear_on_submit=True):
        name = st.text_input("Nuevo grupo")
        members = st.multiselect(
            "Miembros",
            [u.id for u in store.users],
            format_func=lambda uid: next(u.name for u in store.users if u.id == uid),
        )
        if st.form_submit_button("Crear grupo") and name:
            try:
                store.add_group(name, members)
            except ValueError:
                st.error("Un grupo necesita al menos un miembro.")
            else:
                persist(state_flow, "Grupo creado.")

    if store.active_view.type == ViewType.USER:
        st.markdown("### Panel")
        widgets = st.multiselect(
            "Widgets visibles",
            list(WidgetType),
            default=store.dashboard_widgets,
            format_func=lambda w: WIDGET_LABELS[w],
        )
        if widgets != store.dashboard_widgets and st.button("Guardar panel"):
            store.update_dashboard_widgets(widgets)
            persist(state_flow, "Panel actualizado.")

    st.markdown("---")
    st.markdown("### Copia de seguridad")
    file_name, content = run_async(state_flow.export_backup())
    st.download_button("⬇️ Exportar datos (JSON)", content, file_name=file_name, mime="application/json")

    backup = st.file_uploader("Importar copia de seguridad", type=["json"])
    if backup and st.button("Importar (sobrescribe todos los datos)"):
        try:
            run_async(state_flow.import_backup(backup.getvalue()))
        except ImportValidationError as e:
            st.markdown(f"""
            <div class="error-box">
                <h4>❌ Importación rechazada</h4>
                <p>{e}</p>
            </div>
            """, unsafe_allow_html=True)
        else:
            persist(state_flow, "Datos importados correctamente.")

    with st.expander("⚠️ Borrar todos los datos"):
        confirm = st.checkbox("Entiendo que no se puede deshacer")
        if confirm and st.button("Borrar todo", type="primary"):
            run_async(state_flow.reset())
            persist(state_flow, "Datos borrados.")

    st.markdown("---")
    st.markdown("### Estado de la conexión")
    status = validate_all_settings()
    services = [
        ("Gemini (IA)", "gemini"),
        ("Almacenamiento local", "storage"),
        ("Aplicación", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configurado")
        else:
            error = status.get(f"{key}_error", "No configurado")
            st.error(f"❌ {name} - {error}")

    if state_flow.audit_logger:
        with st.expander("📜 Actividad reciente"):
            events = run_async(state_flow.audit_logger.recent_events(limit=20))
            if not events:
                st.info("Sin actividad registrada.")
            for event in events:
                st.write(f"{event.timestamp.strftime('%d/%m/%Y %H:%M')} · {event.description}")

    st.markdown(
        "Configura la aplicación con un archivo `.env` "
        "(consulta `.env.example` para ver las variables)."
    )


if __name__ == "__main__":
    main()
