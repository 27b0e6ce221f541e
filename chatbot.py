"""Keyword-driven replies for the site's chat widget.

Rules are checked in order against the lowercased message and the first one
with a matching keyword wins; anything unmatched gets the fallback reply.
There is no conversation memory: the same text always gets the same answer.
"""

import logging
from typing import NamedTuple, Sequence, Tuple

from schemas import ChatMessage, InsertChatMessage
from storage import MemStorage

logger = logging.getLogger(__name__)


class ResponseRule(NamedTuple):
    name: str
    keywords: Tuple[str, ...]
    response: str

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


BUSINESS_HOURS = ResponseRule(
    name="business_hours",
    keywords=("horário", "horario", "atendimento"),
    response=(
        "Nosso horário de atendimento é de segunda a sexta-feira, das 9h às 18h. "
        "Fora desse horário, deixe sua mensagem que retornaremos no próximo dia útil."
    ),
)

PRACTICE_AREAS = ResponseRule(
    name="practice_areas",
    keywords=("área", "especialidade", "direito"),
    response=(
        "Atuamos em Direito do Trabalho, Direito Previdenciário, Direito de Família e "
        "Sucessão, Direito Civil, Direito Imobiliário e Direito Administrativo. "
        "Em qual dessas áreas podemos ajudar?"
    ),
)

BOOKING = ResponseRule(
    name="booking",
    keywords=("consulta", "agendamento"),
    response=(
        "Para agendar uma consulta, preencha o formulário de contato no site ou escreva "
        "para atendimento@valencaesoares.com.br informando seu nome, telefone e o assunto. "
        "Nossa equipe confirmará data e horário com você."
    ),
)

FEES = ResponseRule(
    name="fees",
    keywords=("preço", "valor", "honorário"),
    response=(
        "Os honorários variam conforme a complexidade de cada caso e seguem a tabela da OAB. "
        "Na primeira consulta avaliamos sua situação e apresentamos uma proposta transparente."
    ),
)

GREETING = ResponseRule(
    name="greeting",
    keywords=("oi", "olá", "bom dia", "boa tarde", "boa noite"),
    response=(
        "Olá! Bem-vindo ao escritório Valença & Soares Advocacia. Sou o assistente virtual "
        "e posso informar sobre horários, áreas de atuação, consultas e honorários. "
        "Como posso ajudar?"
    ),
)

FALLBACK_RULE = ResponseRule(
    name="fallback",
    keywords=(),
    response=(
        "Obrigado pela sua mensagem! Um de nossos advogados entrará em contato em breve. "
        "Se preferir, deixe seu nome e telefone para agilizarmos o retorno."
    ),
)

RULES: Tuple[ResponseRule, ...] = (BUSINESS_HOURS, PRACTICE_AREAS, BOOKING, FEES, GREETING)


def match_rule(text: str, rules: Sequence[ResponseRule] = RULES) -> ResponseRule:
    lowered = text.lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule
    return FALLBACK_RULE


def generate_reply(text: str, rules: Sequence[ResponseRule] = RULES) -> str:
    return match_rule(text, rules).response


class ChatResponder:
    """Answers a stored user message with a bot message in the same session."""

    def __init__(self, storage: MemStorage, rules: Sequence[ResponseRule] = RULES):
        self.storage = storage
        self.rules = tuple(rules)

    def respond(self, user_message: ChatMessage) -> ChatMessage:
        rule = match_rule(user_message.message, self.rules)
        logger.debug("Chat session %s matched rule %s", user_message.session_id, rule.name)
        return self.storage.create_chat_message(InsertChatMessage(
            session_id=user_message.session_id,
            message=rule.response,
            sender="bot",
        ))
