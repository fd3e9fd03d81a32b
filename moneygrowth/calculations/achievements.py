"""
Achievements

A fixed catalogue of milestones. Each definition carries a predicate
over a user's data bag; the store grants every achievement whose
predicate holds (granting is idempotent).
"""

from dataclasses import dataclass
from typing import Callable

from moneygrowth.models.finance import UserData


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    icon: str
    condition: Callable[[UserData], bool]


ACHIEVEMENT_DEFINITIONS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        id="first_transaction",
        name="Primer Paso",
        description="Registra tu primera transacción.",
        icon="🌱",
        condition=lambda d: len(d.transactions) >= 1,
    ),
    AchievementDefinition(
        id="ten_transactions",
        name="Contable Constante",
        description="Registra 10 transacciones.",
        icon="📒",
        condition=lambda d: len(d.transactions) >= 10,
    ),
    AchievementDefinition(
        id="first_budget",
        name="Planificador",
        description="Crea tu primer presupuesto.",
        icon="🧮",
        condition=lambda d: len(d.budgets) >= 1,
    ),
    AchievementDefinition(
        id="first_goal",
        name="Soñador",
        description="Define tu primera meta de ahorro.",
        icon="🎯",
        condition=lambda d: len(d.goals) >= 1,
    ),
    AchievementDefinition(
        id="goal_completed",
        name="Meta Cumplida",
        description="Alcanza el objetivo de una meta.",
        icon="🏆",
        condition=lambda d: any(g.is_completed for g in d.goals),
    ),
    AchievementDefinition(
        id="first_credit",
        name="Cara a la Deuda",
        description="Registra un crédito para controlarlo.",
        icon="💳",
        condition=lambda d: len(d.credits) >= 1,
    ),
    AchievementDefinition(
        id="debt_analyzed",
        name="Detective de Deudas",
        description="Analiza la toxicidad de un crédito con IA.",
        icon="🔍",
        condition=lambda d: any(c.toxicity_report is not None for c in d.credits),
    ),
    AchievementDefinition(
        id="first_insight",
        name="Visionario",
        description="Guarda tu primer análisis de IA.",
        icon="🔮",
        condition=lambda d: len(d.saved_insights) >= 1,
    ),
)

ACHIEVEMENTS_BY_ID: dict[str, AchievementDefinition] = {
    a.id: a for a in ACHIEVEMENT_DEFINITIONS
}


def evaluate_achievements(data: UserData) -> list[str]:
    """Ids of every achievement whose condition holds for `data`."""
    return [a.id for a in ACHIEVEMENT_DEFINITIONS if a.condition(data)]
