"""Tests for the keyword chat responder."""

import pytest

from chatbot import (
    BOOKING,
    BUSINESS_HOURS,
    FALLBACK_RULE,
    FEES,
    GREETING,
    PRACTICE_AREAS,
    RULES,
    ChatResponder,
    ResponseRule,
    generate_reply,
    match_rule,
)
from schemas import InsertChatMessage
from storage import MemStorage


@pytest.mark.parametrize("text,rule", [
    ("Qual o horário de atendimento?", BUSINESS_HOURS),
    ("qual o horario?", BUSINESS_HOURS),
    ("Vocês fazem atendimento presencial?", BUSINESS_HOURS),
    ("Qual a especialidade do escritório?", PRACTICE_AREAS),
    ("Trabalham com direito imobiliário?", PRACTICE_AREAS),
    ("Em que área vocês atuam?", PRACTICE_AREAS),
    ("Quero marcar uma consulta", BOOKING),
    ("Como faço o agendamento?", BOOKING),
    ("Qual o preço?", FEES),
    ("Quanto custa, qual o valor?", FEES),
    ("Como são cobrados os honorários?", FEES),
    ("olá", GREETING),
    ("Oi", GREETING),
    ("Bom dia", GREETING),
    ("BOA TARDE", GREETING),
    ("Preciso de ajuda com um contrato", FALLBACK_RULE),
])
def test_match_rule(text, rule):
    assert match_rule(text) is rule


def test_rules_are_ordered_first_match_wins():
    # Mentions hours and booking; hours come first.
    assert match_rule("Qual o horário para consulta?") is BUSINESS_HOURS
    # Mentions practice area and fees; areas come first.
    assert match_rule("Qual o valor para causas de direito civil?") is PRACTICE_AREAS
    # A greeting plus a booking question is a booking question.
    assert match_rule("Olá, quero uma consulta") is BOOKING


def test_rule_order_is_data():
    assert [rule.name for rule in RULES] == [
        "business_hours", "practice_areas", "booking", "fees", "greeting",
    ]


def test_reply_is_deterministic():
    replies = {generate_reply("olá") for _ in range(5)}
    assert replies == {GREETING.response}


def test_empty_and_odd_text_fall_back():
    assert generate_reply("") == FALLBACK_RULE.response
    assert generate_reply("???") == FALLBACK_RULE.response


def test_custom_rules():
    rules = [ResponseRule("ping", ("ping",), "pong")]
    assert generate_reply("PING!", rules) == "pong"
    assert generate_reply("olá", rules) == FALLBACK_RULE.response


def test_respond_stores_bot_reply_in_same_session():
    storage = MemStorage()
    responder = ChatResponder(storage)
    user_message = storage.create_chat_message(
        InsertChatMessage(session_id="s1", message="Qual o horário de atendimento?")
    )
    bot_message = responder.respond(user_message)
    assert bot_message.sender == "bot"
    assert bot_message.session_id == "s1"
    assert bot_message.message == BUSINESS_HOURS.response
    assert [m.id for m in storage.list_chat_messages("s1")] == [user_message.id, bot_message.id]
