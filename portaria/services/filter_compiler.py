# portaria/services/filter_compiler.py
"""
Compiles a SearchQuery into a predicate tree that any backend can translate.
The Qdrant translation lives in vector_store.to_qdrant_filter().

Field → condition:
  pessoa_nome         → OR(text pessoa_nome, text busca_otimizada.nomes_relacionados)
  pessoa_documento    → value
  morador_nome        → text
  residencia_*        → value
  veiculo_placa       → value on original_record.veiculo.placa
  data_inicio/fim     → range on entrada_data, expanded to whole-day bounds
  booleans and enums  → value
"""

from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from portaria.schemas.search import SearchQuery

NAME_FIELD = "pessoa_nome"
RELATED_NAMES_FIELD = "original_record.busca_otimizada.nomes_relacionados"
PLATE_FIELD = "original_record.veiculo.placa"
ENTRY_DATE_FIELD = "entrada_data"

DAY_START = "T00:00:00"
DAY_END = "T23:59:59"

_VALUE_FIELDS = (
    "pessoa_documento",
    "residencia_numero",
    "residencia_rua",
)
_FLAG_FIELDS = (
    "ainda_dentro",
    "tem_veiculo",
    "periodo_dia",
    "dia_semana",
)


@dataclass(frozen=True)
class MatchCondition:
    key: str
    value: Any
    mode: Literal["value", "text"] = "value"   # text = full-text index match


@dataclass(frozen=True)
class RangeCondition:
    key: str
    gte: Optional[str] = None
    lte: Optional[str] = None


@dataclass(frozen=True)
class AllOf:
    conditions: tuple["Predicate", ...]


@dataclass(frozen=True)
class AnyOf:
    conditions: tuple["Predicate", ...]


Predicate = Union[MatchCondition, RangeCondition, AllOf, AnyOf]


def person_name_filter(name: str) -> AnyOf:
    """Name variants may be indexed apart from the main name, so match either field."""
    return AnyOf((
        MatchCondition(NAME_FIELD, name, "text"),
        MatchCondition(RELATED_NAMES_FIELD, name, "text"),
    ))


def compile_filter(params: SearchQuery) -> Optional[AllOf]:
    """Return an AND of every present field, or None when no structured field is set."""
    conditions: list[Predicate] = []

    if params.pessoa_nome:
        conditions.append(person_name_filter(params.pessoa_nome))

    for name in _VALUE_FIELDS:
        value = getattr(params, name)
        if value:
            conditions.append(MatchCondition(name, value))

    if params.morador_nome:
        conditions.append(MatchCondition("morador_nome", params.morador_nome, "text"))

    if params.veiculo_placa:
        conditions.append(MatchCondition(PLATE_FIELD, params.veiculo_placa))

    if params.data_inicio:
        conditions.append(RangeCondition(ENTRY_DATE_FIELD, gte=params.data_inicio.isoformat() + DAY_START))
    if params.data_fim:
        conditions.append(RangeCondition(ENTRY_DATE_FIELD, lte=params.data_fim.isoformat() + DAY_END))

    # False is a real filter value here, so test against None
    for name in _FLAG_FIELDS:
        value = getattr(params, name)
        if value is not None:
            conditions.append(MatchCondition(name, value))

    return AllOf(tuple(conditions)) if conditions else None
