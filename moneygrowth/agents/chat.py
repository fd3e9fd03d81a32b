"""
Chat Assistant

A conversation with Gemini that can record income and expenses.

The model is given ONE tool, `addTransaction`. When it calls the tool,
the transaction is built and validated here (never trusted as-is), added
to the store dated today, and the result is sent back so the model can
confirm it to the user in its own words.
"""

from datetime import date
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, ValidationError

from moneygrowth.config import GeminiSettings, get_settings
from moneygrowth.models.finance import Transaction, TransactionType
from moneygrowth.store import FinanceStore


logger = structlog.get_logger(__name__)

ADD_TRANSACTION = "addTransaction"
ASSISTANT_DEFAULT_DESCRIPTION = "Añadido por Asistente IA"
ACTION_COMPLETED = "Acción completada."
NOT_CONFIGURED_MESSAGE = (
    "El asistente necesita una API Key de Gemini. Configúrala para poder "
    "conversar y registrar movimientos."
)
ERROR_MESSAGE = "Lo siento, ha ocurrido un error al procesar tu mensaje. Inténtalo de nuevo."
GREETING = (
    "¡Hola! Soy tu asistente de MoneyGrowth. Puedo registrar gastos e "
    'ingresos por ti, por ejemplo: "Añade 25€ de gasolina" o "Registra mi '
    'nómina de 1.800€".'
)

SYSTEM_INSTRUCTION = (
    "Eres el asistente de MoneyGrowth. Ayudas a registrar ingresos y gastos "
    "y respondes en español, de forma breve. Usa la herramienta addTransaction "
    "cuando el usuario quiera apuntar un movimiento. Si falta el importe, "
    "pregúntalo antes de registrar nada."
)


class ChatMessage(BaseModel):
    role: str = Field(description="'user' or 'model'")
    text: str


class ChatReply(BaseModel):
    """The assistant's answer and the transactions it created."""

    text: str
    transactions: list[Transaction] = Field(default_factory=list)


def build_add_transaction_tool(income: list[str], expense: list[str]):
    """Declare the addTransaction function with the view's categories."""
    schema = genai.protos.Schema
    kind = genai.protos.Type
    return genai.protos.Tool(function_declarations=[
        genai.protos.FunctionDeclaration(
            name=ADD_TRANSACTION,
            description=(
                "Añade un ingreso o un gasto. La fecha es hoy. "
                "El campo type debe ser 'income' o 'expense'."
            ),
            parameters=schema(
                type=kind.OBJECT,
                properties={
                    "type": schema(
                        type=kind.STRING,
                        description="'income' para ingresos, 'expense' para gastos.",
                    ),
                    "amount": schema(
                        type=kind.NUMBER,
                        description="Importe en euros.",
                    ),
                    "category": schema(
                        type=kind.STRING,
                        description=(
                            f"Categoría. Ingresos: {', '.join(income)}. "
                            f"Gastos: {', '.join(expense)}."
                        ),
                    ),
                    "description": schema(
                        type=kind.STRING,
                        description="Descripción opcional.",
                    ),
                },
                required=["type", "amount", "category"],
            ),
        )
    ])


def _function_calls(response) -> list[Any]:
    parts = response.candidates[0].content.parts
    return [
        part.function_call for part in parts
        if getattr(part, "function_call", None) and part.function_call.name
    ]


def _function_response(payload: dict):
    return genai.protos.Part(
        function_response=genai.protos.FunctionResponse(
            name=ADD_TRANSACTION,
            response=payload,
        )
    )


class FinanceChatAgent:
    """
    Conversational assistant bound to a store.

    The conversation history lives in the agent; `reset()` starts over.
    Tests pass `model`: an object with `start_chat(history=...)` returning
    a chat with an async `send_message_async` and a `history` list.
    """

    def __init__(
        self,
        store: FinanceStore,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        self._store = store
        self._settings = settings or get_settings().gemini
        self._model = model
        self._history: list = []
        self.messages: list[ChatMessage] = [ChatMessage(role="model", text=GREETING)]
        if self._settings.is_configured and model is None:
            genai.configure(api_key=self._settings.api_key)

    @property
    def is_configured(self) -> bool:
        return self._model is not None or self._settings.is_configured

    def reset(self) -> None:
        self._history = []
        self.messages = [ChatMessage(role="model", text=GREETING)]

    def bind_store(self, store: FinanceStore) -> None:
        self._store = store

    def _build_model(self):
        if self._model is not None:
            return self._model
        tool = build_add_transaction_tool(
            [c.name for c in self._store.income_categories],
            [c.name for c in self._store.expense_categories],
        )
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_INSTRUCTION,
            tools=[tool],
            generation_config={"temperature": self._settings.chat_temperature},
        )

    def _add_transaction(self, args: dict, today: date) -> Transaction:
        transaction = Transaction(
            type=TransactionType(str(args.get("type", "")).lower()),
            amount=float(args["amount"]),
            category=str(args.get("category") or ""),
            description=args.get("description") or ASSISTANT_DEFAULT_DESCRIPTION,
            date=today,
        )
        if transaction.type == TransactionType.SAVING:
            raise ValueError("The assistant only records income and expenses")
        return self._store.add_transaction(transaction)

    async def send_message(self, text: str, today: Optional[date] = None) -> ChatReply:
        """Send a user message; returns the reply and any created transactions."""
        self.messages.append(ChatMessage(role="user", text=text))

        if not self.is_configured:
            reply = ChatReply(text=NOT_CONFIGURED_MESSAGE)
            self.messages.append(ChatMessage(role="model", text=reply.text))
            return reply

        today = today or date.today()
        created: list[Transaction] = []
        try:
            chat = self._build_model().start_chat(history=self._history)
            response = await chat.send_message_async(text)
            calls = _function_calls(response)

            if not calls:
                reply_text = response.text.strip()
            else:
                results = []
                for call in calls:
                    if call.name != ADD_TRANSACTION:
                        results.append(_function_response({"error": f"unknown function {call.name}"}))
                        continue
                    try:
                        transaction = self._add_transaction(dict(call.args), today)
                    except (KeyError, TypeError, ValueError, ValidationError) as e:
                        logger.warning("assistant_transaction_rejected", error=str(e))
                        results.append(_function_response({"error": str(e)}))
                        continue
                    created.append(transaction)
                    results.append(_function_response({
                        "result": "ok",
                        "id": transaction.id,
                    }))

                follow_up = await chat.send_message_async(results)
                try:
                    reply_text = follow_up.text.strip()
                except ValueError:
                    # no text parts in the follow-up
                    reply_text = ""
                reply_text = reply_text or ACTION_COMPLETED

            self._history = list(chat.history)
        except Exception as e:
            logger.error("chat_failed", error=str(e), error_type=type(e).__name__)
            reply_text = ERROR_MESSAGE

        self.messages.append(ChatMessage(role="model", text=reply_text))
        return ChatReply(text=reply_text, transactions=created)
