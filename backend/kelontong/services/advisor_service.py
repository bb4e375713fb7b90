# Overview: Service-layer operations for the AI advisor; prompt building and the Gemini client.

"""
AI Advisor

The advisor is an external collaborator reached through two async calls:
- summarize_business_health(products, transactions, summary) -> text
- chat(message, context) -> text

Failure policy:
- analyze_business_health() and chat_with_accountant() never raise. Any
  failure (missing key, HTTP/transport error, timeout, malformed body) is
  logged and replaced with a fixed message; an empty reply gets its own
  fixed message.
- Checkout, inventory and reporting never wait on the advisor.

Stale replies:
- AdvisorSession stamps each request with the current generation. Moving to
  another view bumps the generation; a reply that resolves afterwards is
  dropped without touching the session.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence

import httpx

from ..models import FinancialSummary, Product, Transaction
from ..validation import AdvisorError
from .reporting_service import LOW_STOCK_THRESHOLD, format_rupiah, low_stock

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
RECENT_TRANSACTION_LIMIT = 10
CHAT_CONTEXT_PRODUCT_LIMIT = 5

ANALYSIS_PLACEHOLDER = "Analisis sedang diproses..."
ANALYSIS_EMPTY_REPLY = "Maaf, tidak dapat menghasilkan analisis saat ini."
ANALYSIS_FAILURE = "Terjadi kesalahan saat menghubungi asisten AI. Pastikan API Key valid."
CHAT_EMPTY_REPLY = "Tidak ada respons."
CHAT_FAILURE = "Maaf, sistem sedang sibuk."


class View(str, Enum):
    DASHBOARD = "DASHBOARD"
    POS = "POS"
    INVENTORY = "INVENTORY"
    FINANCE = "FINANCE"
    AI_ADVISOR = "AI_ADVISOR"


def build_analysis_prompt(
    products: Sequence[Product],
    transactions: Sequence[Transaction],
    summary: FinancialSummary,
    *,
    threshold: int = LOW_STOCK_THRESHOLD,
    recent_limit: int = RECENT_TRANSACTION_LIMIT,
) -> str:
    low = [f"{p.name} ({p.stock} {p.unit})" for p in low_stock(products, threshold)]
    recent = "\n".join(
        f"{tx.date.date().isoformat()}: {tx.type.value} - {format_rupiah(tx.total)}"
        for tx in list(transactions)[-recent_limit:]
    )

    return f"""
Bertindaklah sebagai Profesor Akuntansi Senior dan Konsultan Bisnis berpengalaman untuk Toko Kelontong.

Berikut adalah data keuangan terkini toko kami:

1. Rangkuman Keuangan:
   - Pendapatan (Omzet): {format_rupiah(summary.revenue)}
   - HPP (Cost of Goods Sold): {format_rupiah(summary.cogs)}
   - Laba Kotor: {format_rupiah(summary.gross_profit)}
   - Pengeluaran Operasional: {format_rupiah(summary.expenses)}
   - Laba Bersih: {format_rupiah(summary.net_profit)}

2. Inventaris & Stok:
   - Total Produk: {len(products)} SKU
   - Stok Menipis (< {threshold} unit): {", ".join(low) if low else "Tidak ada"}

3. Transaksi Terakhir (Sampel):
{recent}

Tugas Anda:
Berikan analisis singkat, tajam, dan actionable (dapat ditindaklanjuti) mengenai kesehatan bisnis saya.
Fokus pada arus kas, efisiensi stok, dan profitabilitas. Gunakan bahasa Indonesia yang profesional namun mudah dipahami oleh pemilik toko.
Jika ada stok menipis, beri peringatan keras. Jika margin tipis, beri saran pricing.
""".strip()


def build_chat_context(
    summary: FinancialSummary,
    products: Sequence[Product],
    *,
    limit: int = CHAT_CONTEXT_PRODUCT_LIMIT,
) -> str:
    top = [p.to_dict() for p in list(products)[:limit]]
    return (
        f"Summary: {json.dumps(summary.to_dict(), ensure_ascii=False)}\n"
        f"Top Products: {json.dumps(top, ensure_ascii=False)}"
    )


def build_chat_prompt(message: str, context: str) -> str:
    return f"""
Context Data Bisnis:
{context}

User Question: {message}

System Instruction:
Anda adalah asisten AI ERP untuk Toko Kelontong. Jawablah pertanyaan pengguna berdasarkan data konteks di atas.
Jelaskan konsep akuntansi (seperti Laba Rugi, HPP, Margin) dengan sederhana jika ditanya.
Berikan saran bisnis yang praktis.
""".strip()


def _extract_text(body: Any) -> str:
    """Join the text parts of the first candidate. No candidates means an empty reply."""
    if not isinstance(body, dict):
        raise AdvisorError("Advisor response is not a JSON object")
    candidates = body.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class Advisor(Protocol):
    async def summarize_business_health(
        self,
        products: Sequence[Product],
        transactions: Sequence[Transaction],
        summary: FinancialSummary,
    ) -> str: ...

    async def chat(self, message: str, context: str) -> str: ...


class GeminiAdvisor:
    """Gemini generateContent over httpx."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 20.0,
        low_stock_threshold: int = LOW_STOCK_THRESHOLD,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.low_stock_threshold = low_stock_threshold
        self.transport = transport

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs) -> "GeminiAdvisor":
        return cls(
            config.get("GEMINI_API_KEY"),
            model=config.get("ADVISOR_MODEL", DEFAULT_MODEL),
            base_url=config.get("ADVISOR_BASE_URL", DEFAULT_BASE_URL),
            timeout=float(config.get("ADVISOR_TIMEOUT_SECONDS", 20.0)),
            low_stock_threshold=int(config.get("LOW_STOCK_THRESHOLD", LOW_STOCK_THRESHOLD)),
            **kwargs,
        )

    async def _generate(self, prompt: str, *, thinking_budget: int | None = None) -> str:
        if not self.api_key:
            raise AdvisorError("GEMINI_API_KEY is not configured")

        payload: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if thinking_budget is not None:
            payload["generationConfig"] = {"thinkingConfig": {"thinkingBudget": thinking_budget}}

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            response = await client.post(
                f"/models/{self.model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()

        try:
            body = response.json()
        except ValueError as exc:
            raise AdvisorError("Advisor response is not valid JSON") from exc
        return _extract_text(body)

    async def summarize_business_health(
        self,
        products: Sequence[Product],
        transactions: Sequence[Transaction],
        summary: FinancialSummary,
    ) -> str:
        prompt = build_analysis_prompt(
            products, transactions, summary, threshold=self.low_stock_threshold,
        )
        # Speed over deep reasoning for the dashboard summary
        return await self._generate(prompt, thinking_budget=0)

    async def chat(self, message: str, context: str) -> str:
        return await self._generate(build_chat_prompt(message, context))


async def analyze_business_health(
    advisor: Advisor | None,
    products: Sequence[Product],
    transactions: Sequence[Transaction],
    summary: FinancialSummary,
    *,
    timeout: float | None = None,
) -> str:
    if advisor is None:
        logger.warning("No advisor configured; returning fallback analysis")
        return ANALYSIS_FAILURE
    try:
        text = await asyncio.wait_for(
            advisor.summarize_business_health(products, transactions, summary),
            timeout,
        )
    except Exception:
        logger.exception("Advisor analysis failed")
        return ANALYSIS_FAILURE
    return text if text and text.strip() else ANALYSIS_EMPTY_REPLY


async def chat_with_accountant(
    advisor: Advisor | None,
    message: str,
    context: str,
    *,
    timeout: float | None = None,
) -> str:
    if advisor is None:
        logger.warning("No advisor configured; returning fallback chat reply")
        return CHAT_FAILURE
    try:
        text = await asyncio.wait_for(advisor.chat(message, context), timeout)
    except Exception:
        logger.exception("Advisor chat failed")
        return CHAT_FAILURE
    return text if text and text.strip() else CHAT_EMPTY_REPLY


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "user" | "model"
    text: str


class AdvisorSession:
    """
    Per-operator advisor state: active view, dashboard analysis and chat.

    `shop` is anything exposing products(), transactions(), summary() and
    chat_context(); a snapshot is taken when each request starts.
    """

    def __init__(self, shop, advisor: Advisor | None, *, timeout: float | None = None):
        self.shop = shop
        self.advisor = advisor
        self.timeout = timeout
        self.view = View.DASHBOARD
        self.analysis = ANALYSIS_PLACEHOLDER
        self.analysis_loading = False
        self.chat_history: list[ChatMessage] = []
        self.chat_loading = False
        self._generation = 0

    @property
    def needs_analysis(self) -> bool:
        """The dashboard fetches an analysis automatically until one has arrived."""
        return self.view is View.DASHBOARD and self.analysis == ANALYSIS_PLACEHOLDER

    def navigate(self, view: View) -> None:
        if view is self.view:
            return
        self.view = view
        self._generation += 1
        # In-flight requests belong to the previous view now
        self.analysis_loading = False
        self.chat_loading = False

    async def refresh_analysis(self) -> str | None:
        """Fetch a new analysis. Returns None when the reply arrived too late to use."""
        generation = self._generation
        self.analysis_loading = True
        text = await analyze_business_health(
            self.advisor,
            self.shop.products(),
            self.shop.transactions(),
            self.shop.summary(),
            timeout=self.timeout,
        )
        if generation != self._generation:
            logger.info("Discarding analysis that resolved after the view changed")
            return None
        self.analysis = text
        self.analysis_loading = False
        return text

    async def send_chat(self, message: str) -> str | None:
        """Ask the accountant. Blank messages and late replies are dropped."""
        if not message or not message.strip():
            return None

        generation = self._generation
        self.chat_history.append(ChatMessage(role="user", text=message))
        self.chat_loading = True
        reply = await chat_with_accountant(
            self.advisor, message, self.shop.chat_context(), timeout=self.timeout,
        )
        if generation != self._generation:
            logger.info("Discarding chat reply that resolved after the view changed")
            return None
        self.chat_history.append(ChatMessage(role="model", text=reply))
        self.chat_loading = False
        return reply
