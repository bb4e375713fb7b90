import asyncio
import json
from datetime import datetime, timedelta

import httpx

from kelontong.models import FinancialSummary, Transaction, TransactionType
from kelontong.seed_data import INITIAL_PRODUCTS
from kelontong.services import advisor_service
from kelontong.services.advisor_service import (
    ANALYSIS_EMPTY_REPLY,
    ANALYSIS_FAILURE,
    ANALYSIS_PLACEHOLDER,
    CHAT_EMPTY_REPLY,
    CHAT_FAILURE,
    GeminiAdvisor,
    View,
    analyze_business_health,
    chat_with_accountant,
)


def _reply(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def _advisor(handler, api_key="test-key"):
    return GeminiAdvisor(api_key, transport=httpx.MockTransport(handler))


class GatedAdvisor:
    """Replies only once `gate` is set, so tests can move the session in between."""

    def __init__(self, text="Stok kopi menipis."):
        self.gate = asyncio.Event()
        self.text = text

    async def summarize_business_health(self, products, transactions, summary):
        await self.gate.wait()
        return self.text

    async def chat(self, message, context):
        await self.gate.wait()
        return self.text


class SlowAdvisor:
    async def summarize_business_health(self, products, transactions, summary):
        await asyncio.sleep(1)
        return "late"

    async def chat(self, message, context):
        await asyncio.sleep(1)
        return "late"


def test_analysis_prompt_lists_low_stock_and_recent_transactions():
    transactions = [
        Transaction(
            id=str(i), date=datetime(2024, 5, 1) + timedelta(days=i), type=TransactionType.EXPENSE, total=1000 * i,
        )
        for i in range(1, 13)
    ]
    prompt = advisor_service.build_analysis_prompt(
        INITIAL_PRODUCTS, transactions, FinancialSummary(revenue=65000, cogs=58000, gross_profit=7000),
    )

    assert "Pendapatan (Omzet): Rp65.000" in prompt
    assert "Total Produk: 7 SKU" in prompt
    assert "Kopi Kapal Api (8 sachet)" in prompt
    assert "2024-05-13: EXPENSE - Rp12.000" in prompt
    assert "2024-05-04: EXPENSE - Rp3.000" in prompt
    assert "2024-05-03: EXPENSE" not in prompt


def test_summarize_posts_generate_content_without_thinking():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_reply("Bisnis sehat."))

    text = asyncio.run(
        _advisor(handler).summarize_business_health(INITIAL_PRODUCTS, [], FinancialSummary())
    )

    assert text == "Bisnis sehat."
    assert seen["url"] == (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
    )
    assert seen["key"] == "test-key"
    assert seen["body"]["generationConfig"] == {"thinkingConfig": {"thinkingBudget": 0}}
    assert "Profesor Akuntansi" in seen["body"]["contents"][0]["parts"][0]["text"]


def test_chat_sends_context_and_question():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_reply("HPP adalah harga pokok."))

    text = asyncio.run(_advisor(handler).chat("Apa itu HPP?", "Summary: {}"))

    prompt = seen["body"]["contents"][0]["parts"][0]["text"]
    assert text == "HPP adalah harga pokok."
    assert "generationConfig" not in seen["body"]
    assert "Summary: {}" in prompt
    assert "User Question: Apa itu HPP?" in prompt


def test_http_error_becomes_fallback_message():
    advisor = _advisor(lambda request: httpx.Response(500, json={"error": "boom"}))

    analysis = asyncio.run(analyze_business_health(advisor, INITIAL_PRODUCTS, [], FinancialSummary()))
    reply = asyncio.run(chat_with_accountant(advisor, "Halo", "ctx"))

    assert analysis == ANALYSIS_FAILURE
    assert reply == CHAT_FAILURE


def test_missing_api_key_never_reaches_the_network():
    def handler(request):
        raise AssertionError("request should not be sent")

    advisor = _advisor(handler, api_key=None)
    assert asyncio.run(chat_with_accountant(advisor, "Halo", "ctx")) == CHAT_FAILURE
    assert asyncio.run(chat_with_accountant(None, "Halo", "ctx")) == CHAT_FAILURE


def test_empty_reply_gets_its_own_message():
    advisor = _advisor(lambda request: httpx.Response(200, json={"candidates": []}))

    analysis = asyncio.run(analyze_business_health(advisor, INITIAL_PRODUCTS, [], FinancialSummary()))
    reply = asyncio.run(chat_with_accountant(advisor, "Halo", "ctx"))

    assert analysis == ANALYSIS_EMPTY_REPLY
    assert reply == CHAT_EMPTY_REPLY


def test_timeout_becomes_fallback_message():
    analysis = asyncio.run(
        analyze_business_health(SlowAdvisor(), INITIAL_PRODUCTS, [], FinancialSummary(), timeout=0.01)
    )
    assert analysis == ANALYSIS_FAILURE


def test_session_fetches_analysis_once_on_dashboard(shop):
    advisor = GatedAdvisor("Laba tipis.")
    advisor.gate.set()
    session = shop.advisor_session()
    session.advisor = advisor

    assert session.needs_analysis is True
    assert asyncio.run(session.refresh_analysis()) == "Laba tipis."
    assert session.analysis == "Laba tipis."
    assert session.analysis_loading is False
    assert session.needs_analysis is False


def test_analysis_resolving_after_navigation_is_discarded(shop):
    advisor = GatedAdvisor()
    session = shop.advisor_session()
    session.advisor = advisor

    async def scenario():
        task = asyncio.create_task(session.refresh_analysis())
        await asyncio.sleep(0)
        assert session.analysis_loading is True
        session.navigate(View.POS)
        advisor.gate.set()
        return await task

    assert asyncio.run(scenario()) is None
    assert session.analysis == ANALYSIS_PLACEHOLDER
    assert session.analysis_loading is False


def test_chat_records_both_sides(shop):
    advisor = GatedAdvisor("Naikkan harga 5%.")
    advisor.gate.set()
    session = shop.advisor_session()
    session.advisor = advisor
    session.navigate(View.AI_ADVISOR)

    assert asyncio.run(session.send_chat("   ")) is None
    assert session.chat_history == []

    assert asyncio.run(session.send_chat("Bagaimana margin saya?")) == "Naikkan harga 5%."
    assert [(m.role, m.text) for m in session.chat_history] == [
        ("user", "Bagaimana margin saya?"),
        ("model", "Naikkan harga 5%."),
    ]
    assert session.chat_loading is False


def test_chat_reply_after_leaving_view_is_dropped(shop):
    advisor = GatedAdvisor()
    session = shop.advisor_session()
    session.advisor = advisor
    session.navigate(View.AI_ADVISOR)

    async def scenario():
        task = asyncio.create_task(session.send_chat("Halo"))
        await asyncio.sleep(0)
        session.navigate(View.FINANCE)
        advisor.gate.set()
        return await task

    assert asyncio.run(scenario()) is None
    assert [m.role for m in session.chat_history] == ["user"]
