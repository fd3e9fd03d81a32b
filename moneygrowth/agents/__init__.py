"""AI agents package."""

from moneygrowth.agents.ai_agents import FinanceAIAgent, parse_json_object
from moneygrowth.agents.chat import ChatMessage, ChatReply, FinanceChatAgent

__all__ = [
    "ChatMessage",
    "ChatReply",
    "FinanceAIAgent",
    "FinanceChatAgent",
    "parse_json_object",
]
