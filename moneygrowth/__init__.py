"""
MoneyGrowth - Source Package

Personal and group finance tracking: transactions, budgets, credits,
insurance policies, receipts, goals and AI-assisted insights.

DESIGN PRINCIPLES:
1. One state container, mutated through explicit operations
2. Calculations are pure functions over the state
3. AI suggests, the user decides
4. Every significant action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "MoneyGrowth Team"
