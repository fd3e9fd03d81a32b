"""
AI Agents for MoneyGrowth

DESIGN DECISION: Every Gemini call goes through one seam, `_safe_run`.
The AI layer is an optional helper, never a dependency of the ledger:

1. Without an API key no request is sent; the documented fallback is
   returned instead.
2. Transient Google API failures are retried (tenacity). Anything that
   still fails is logged and answered with the fallback.
3. Structured answers are requested as JSON and parsed into our own
   pydantic models, so a malformed answer can never reach the store.

BOUNDARIES:
- The agents only READ the data they are given. Saving a toxicity
  report, an insight or a suggested budget is done by the flows in
  the orchestrator, after the user asks for it.
- The AI NEVER invents figures: prompts only carry the user's own data.
"""

import json
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from moneygrowth.calculations.credits import months_between
from moneygrowth.config import GeminiSettings, get_settings
from moneygrowth.models.finance import (
    BudgetSuggestion,
    Credit,
    InsurancePolicy,
    Receipt,
    ReceiptType,
    ScannedReceiptData,
    ToxicityReport,
    Transaction,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.ResourceExhausted,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
)

ADVISOR_PERSONA = (
    "Eres MoneyGrowth AI, un asesor financiero cercano y claro. "
    "Responde siempre en español, con Markdown (títulos, listas, negritas). "
    "Usa solo los datos proporcionados; si falta información, dilo. "
    "No menciones que eres un modelo de lenguaje ni que lees JSON."
)

# Fallbacks returned when the key is missing or the call fails
TOXICITY_FALLBACK = ToxicityReport(
    score=0,
    explanation=(
        "No se pudo analizar el crédito. La API Key de Gemini no está "
        "configurada o hubo un error."
    ),
)
INSIGHTS_FALLBACK = (
    "Lo siento, no se pudo generar el análisis. Comprueba que la API Key "
    "de Gemini esté configurada correctamente."
)
RECEIPT_FALLBACK_DESCRIPTION = (
    "No se pudo analizar el recibo. Revisa la API Key de Gemini o "
    "introduce los datos manualmente."
)
SUMMARY_FALLBACK = "No se pudo generar el resumen. Revisa la configuración de la API Key de Gemini."
NO_RECENT_TRANSACTIONS = "No hay transacciones recientes para analizar."
FORECAST_FALLBACK = "No se pudo generar la previsión. Revisa la configuración de la API Key de Gemini."
SAVINGS_FALLBACK = "No se pudieron generar las recomendaciones. Revisa la configuración de la API Key de Gemini."
DEBT_FALLBACK = (
    "Lo siento, no he podido generar el consejo sobre deudas. Comprueba "
    "la API Key de Gemini e inténtalo de nuevo."
)
BUDGET_FALLBACK_SUMMARY = (
    "No se pudo generar la sugerencia. Comprueba la API Key de Gemini y "
    "que tengas suficientes transacciones registradas."
)
OPPORTUNITIES_FALLBACK = (
    "No se pudieron buscar oportunidades de ahorro. Revisa la "
    "configuración de la API Key de Gemini."
)

RECEIPT_SCAN_CATEGORIES = (
    "Vivienda, Transporte, Alimentación, Ocio, Salud, Finanzas, Seguros, "
    "Compras, Regalos, Otros"
)


def parse_json_object(text: str) -> dict:
    """
    Extract the JSON object from a model answer.

    Tolerates code fences or prose around the object.

    Raises:
        ValueError: If no JSON object is found
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in model response")
    data = json.loads(text[start:end])
    if not isinstance(data, dict):
        raise ValueError("Model response is not a JSON object")
    return data


def dump_records(records: Iterable[Any]) -> str:
    """Serialize records for a prompt (camelCase JSON, like the backups)."""
    return json.dumps(
        [r.to_json_dict() for r in records],
        ensure_ascii=False,
        indent=2,
    )


def recent_transactions(
    transactions: Iterable[Transaction],
    days: int,
    today: Optional[date] = None,
) -> list[Transaction]:
    today = today or date.today()
    since = today - timedelta(days=days)
    return [t for t in transactions if t.date >= since]


class FinanceAIAgent:
    """
    Gemini-backed analyses for the AI pages.

    RESPONSIBILITIES:
    - Credit toxicity scoring
    - Free questions, forecasts and savings advice over the user's data
    - Reading receipt photos
    - 50/30/20 budget proposals

    BOUNDARIES:
    - NEVER mutates the store
    - ALWAYS returns a value (fallback on any failure)

    After each call `last_error` holds why it fell back, and
    `service_failed` is set when Gemini itself returned an API error.

    Tests pass `model`: an object with an async `generate_content_async`,
    used for every call instead of a real Gemini model.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model
        self.last_error: Optional[str] = None
        self.service_failed = False
        if self._settings.is_configured and model is None:
            genai.configure(api_key=self._settings.api_key)

    @property
    def is_configured(self) -> bool:
        return self._model is not None or self._settings.is_configured

    def _build_model(
        self,
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
        json_output: bool = False,
    ):
        if self._model is not None:
            return self._model
        generation_config = {
            "temperature": self._settings.temperature if temperature is None else temperature,
            "max_output_tokens": self._settings.max_tokens,
        }
        if json_output:
            generation_config["response_mime_type"] = "application/json"
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=system_instruction,
            generation_config=generation_config,
        )

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(
        self,
        contents: Any,
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
        json_output: bool = False,
    ) -> str:
        model = self._build_model(system_instruction, temperature, json_output)
        response = await model.generate_content_async(contents)
        return response.text.strip()

    async def _safe_run(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        fallback: T,
    ) -> T:
        """Run one AI operation; any failure yields `fallback`."""
        self.last_error = None
        self.service_failed = False
        if not self.is_configured:
            logger.warning("gemini_not_configured", operation=operation)
            self.last_error = "GEMINI_API_KEY is not set"
            return fallback

        try:
            result = await call()
        except Exception as e:
            self.last_error = str(e)
            self.service_failed = isinstance(e, google_exceptions.GoogleAPIError)
            logger.error(
                "gemini_call_failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            return fallback

        logger.info("gemini_call_completed", operation=operation)
        return result

    # =========================================================================
    # CREDITS
    # =========================================================================

    async def analyze_credit_toxicity(self, credit: Credit) -> ToxicityReport:
        """
        Score how unfavourable a credit is, from 0 (healthy) to 10 (toxic).

        The fallback has score 0 so the UI can tell it apart from a real
        assessment.
        """
        term = max(months_between(credit.start_date, credit.end_date), 1)
        prompt = f"""Eres un asesor financiero experto. Valora lo "tóxico" que es este crédito para una persona media.
Ten en cuenta la cuota frente al importe, el TIN, la TAE y la duración.

Datos del crédito:
- Importe total: {credit.total_amount} €
- Cuota mensual: {credit.monthly_payment} €
- TIN: {credit.tin}%
- TAE: {credit.tae}%
- Duración: {term} meses

Responde SOLO con un objeto JSON con este formato:
{{"score": <número de 1 a 10>, "explanation": "<explicación breve y sencilla>"}}"""

        async def call() -> ToxicityReport:
            text = await self._generate(prompt, json_output=True)
            data = parse_json_object(text)
            if not isinstance(data.get("score"), (int, float)) or not isinstance(data.get("explanation"), str):
                raise ValueError("Invalid toxicity response format")
            return ToxicityReport(score=data["score"], explanation=data["explanation"])

        return await self._safe_run("analyze_credit_toxicity", call, TOXICITY_FALLBACK)

    async def get_debt_advice(self, query: str, credits: list[Credit]) -> str:
        system = ADVISOR_PERSONA + """
Tu especialidad es la gestión de deudas:
- Llama a cada crédito por su nombre.
- Si te preguntan por estrategias, explica "Bola de Nieve" (primero el saldo más pequeño) y "Avalancha" (primero la TAE más alta) y propone un orden de pago.
- Si hay varias TAE altas, menciona la consolidación de deuda con sus pros y contras.
- Tono positivo y sin juicios."""
        contents = (
            f"MIS CRÉDITOS:\n{dump_records(credits)}\n\n"
            f'MI PREGUNTA:\n"{query}"'
        )

        async def call() -> str:
            return await self._generate(contents, system, self._settings.chat_temperature)

        return await self._safe_run("get_debt_advice", call, DEBT_FALLBACK)

    # =========================================================================
    # FREE ANALYSES
    # =========================================================================

    async def get_financial_insights(self, query: str, financial_data: str) -> str:
        """Answer a free question about the user's data."""
        contents = (
            f"MIS DATOS FINANCIEROS:\n{financial_data}\n\n"
            f'MI PREGUNTA:\n"{query}"'
        )

        async def call() -> str:
            return await self._generate(contents, ADVISOR_PERSONA, self._settings.chat_temperature)

        return await self._safe_run("get_financial_insights", call, INSIGHTS_FALLBACK)

    async def get_ai_financial_summary(
        self,
        transactions: list[Transaction],
        today: Optional[date] = None,
    ) -> str:
        """Two or three sentences about the last 30 days."""
        recent = recent_transactions(transactions, 30, today)
        if not recent:
            return NO_RECENT_TRANSACTIONS

        system = ADVISOR_PERSONA + """
Resume las transacciones de los últimos 30 días en 2 o 3 frases:
compara gastos con ingresos, señala la categoría con más gasto y añade una recomendación.
Destaca cifras y categorías en negrita."""
        contents = f"Transacciones:\n{dump_records(recent)}"

        async def call() -> str:
            return await self._generate(contents, system, 0.6)

        return await self._safe_run("get_ai_financial_summary", call, SUMMARY_FALLBACK)

    async def get_predictive_analysis(self, financial_data: str) -> str:
        """Income and expense forecast for the next three months."""
        system = ADVISOR_PERSONA + """
Haz una previsión para los próximos 3 meses:
- Estima ingresos y gastos totales de cada mes.
- Señala las tendencias clave que veas en el historial.
- Cierra con un resumen breve. Puedes usar tablas."""
        contents = f"Historial:\n{financial_data}"

        async def call() -> str:
            return await self._generate(contents, system, self._settings.chat_temperature)

        return await self._safe_run("get_predictive_analysis", call, FORECAST_FALLBACK)

    async def get_savings_recommendations(self, financial_data: str) -> str:
        system = ADVISOR_PERSONA + """
Ayuda al usuario a ahorrar:
- Identifica las 3 categorías donde más podría recortar.
- Da 1 o 2 consejos concretos por categoría.
- Si hay recibos o seguros caros, sugiere buscar alternativas.
- Termina con una frase de ánimo."""
        contents = f"Gastos:\n{financial_data}"

        async def call() -> str:
            return await self._generate(contents, system, 0.7)

        return await self._safe_run("get_savings_recommendations", call, SAVINGS_FALLBACK)

    async def find_savings_opportunities(
        self,
        receipts: list[Receipt],
        policies: list[InsurancePolicy],
    ) -> str:
        """Look for cheaper alternatives among recurring receipts and policies."""
        system = ADVISOR_PERSONA + """
Eres el "Cazador de Ahorros". Revisa los seguros y recibos recurrentes:
- Elige los 2 o 3 gastos más altos o más fáciles de renegociar.
- Para cada uno da un consejo accionable (comparadores, renegociar, cambiar de tarifa).
- Si todo parece optimizado, felicita al usuario y recuérdale revisar sus contratos cada año."""
        recurring = [r for r in receipts if r.type == ReceiptType.RECEIPT]
        contents = (
            f"Seguros:\n{dump_records(policies)}\n"
            f"Recibos:\n{dump_records(recurring)}"
        )

        async def call() -> str:
            return await self._generate(contents, system, 0.7)

        return await self._safe_run("find_savings_opportunities", call, OPPORTUNITIES_FALLBACK)

    # =========================================================================
    # STRUCTURED ANSWERS
    # =========================================================================

    async def analyze_receipt_image(self, image: bytes, mime_type: str) -> ScannedReceiptData:
        """
        Read amount, date, merchant and a category from a receipt photo.

        A date not in YYYY-MM-DD becomes today. Fields the model could not
        read stay empty for the user to fill in.
        """
        prompt = (
            "Analiza la imagen de este recibo o factura. Extrae el importe total, "
            "la fecha (formato YYYY-MM-DD), el comercio o una descripción breve, "
            f"y sugiere una categoría de gasto entre: {RECEIPT_SCAN_CATEGORIES}. "
            'Responde SOLO con JSON: {"amount": n, "date": "...", "description": "...", "category": "..."}'
        )
        contents = [{"mime_type": mime_type, "data": image}, prompt]

        async def call() -> ScannedReceiptData:
            text = await self._generate(contents, json_output=True)
            data = parse_json_object(text)
            return ScannedReceiptData(
                amount=data.get("amount"),
                date=data.get("date"),
                description=data.get("description"),
                category=data.get("category"),
            )

        fallback = ScannedReceiptData(description=RECEIPT_FALLBACK_DESCRIPTION)
        return await self._safe_run("analyze_receipt_image", call, fallback)

    async def get_ai_budget_suggestion(
        self,
        transactions: list[Transaction],
        today: Optional[date] = None,
    ) -> BudgetSuggestion:
        """Propose monthly spending limits with the 50/30/20 rule."""
        recent = recent_transactions(transactions, 90, today)
        system = """Eres un asesor financiero experto. Propón un presupuesto mensual con la regla 50/30/20
(50% necesidades, 30% deseos, 20% ahorro) a partir de las transacciones de los últimos 3 meses:
1. Calcula el ingreso mensual medio (transacciones 'income').
2. Agrupa los gastos ('expense') por categoría y clasifica cada una como 'essential' o 'secondary'.
3. Sugiere un límite mensual por categoría sin superar el 50% (essential) ni el 30% (secondary) del ingreso.
4. Escribe un resumen breve en Markdown.
Responde SOLO con JSON:
{"summary": "...", "suggestedBudgets": [{"category": "...", "targetAmount": n, "priority": "essential|secondary"}]}"""
        contents = f"Transacciones de los últimos 3 meses:\n{dump_records(recent)}"

        async def call() -> BudgetSuggestion:
            text = await self._generate(contents, system, json_output=True)
            return BudgetSuggestion.model_validate(parse_json_object(text))

        fallback = BudgetSuggestion(summary=BUDGET_FALLBACK_SUMMARY)
        return await self._safe_run("get_ai_budget_suggestion", call, fallback)
