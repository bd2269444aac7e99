# portaria/services/text_normalizer.py
"""
Query text preparation for embedding search.

Short queries carry too little signal for the embedding model, so they are
padded with access-log vocabulary. Queries that don't mention a visitor role
get the raw text repeated next to person-oriented tokens, which pulls the
embedding toward visitor records rather than addresses or vehicles.
"""

import unicodedata

from portaria.config import settings

CONTEXT_TOKENS = (
    "VISITANTE",
    "PESSOA",
    "DOCUMENTO",
    "NOME COMPLETO",
    "Registro de acesso condomínio",
    "Entrada saída veículo",
    "Controle acesso portaria",
)

VISITOR_KEYWORDS = (
    "VISITA",
    "VISITANTE",
    "PESSOA",
    "PEDREIRO",
    "FAXINEIRO",
    "ENTREGADOR",
    "MOTORISTA",
    "PRESTADOR",
    "PRESTADOR DE SERVIÇO",
)


def strip_accents(raw: str) -> str:
    """Drop combining marks, upper-case and trim: 'João ' -> 'JOAO'."""
    decomposed = unicodedata.normalize("NFD", raw)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).upper().strip()


def normalize(raw: str) -> str:
    text = strip_accents(raw)
    if len(text) >= settings.SHORT_QUERY_LENGTH:
        return text

    context = " ".join(CONTEXT_TOKENS)
    if any(keyword in text for keyword in VISITOR_KEYWORDS):
        return f"{context} {text}"
    return f"PESSOA NOME {text} VISITANTE {text} {context} {text}"
