# portaria/schemas/search.py
from pydantic import BaseModel, Field
from datetime import date
from typing import Literal, Optional

from portaria.config import settings
from portaria.schemas.access_record import AccessRecord

PeriodoDia = Literal["manha", "tarde", "noite"]
DiaSemana = Literal["segunda", "terca", "quarta", "quinta", "sexta", "sabado", "domingo"]
SearchStrategy = Literal["hybrid", "vector", "filtered_vector", "scroll"]


class SearchQuery(BaseModel):
    """Free text and/or structured predicates. limit/offset always carry defaults."""

    query: Optional[str] = None
    pessoa_nome: Optional[str] = None
    pessoa_documento: Optional[str] = None
    morador_nome: Optional[str] = None
    residencia_numero: Optional[str] = None
    residencia_rua: Optional[str] = None
    veiculo_placa: Optional[str] = None
    data_inicio: Optional[date] = Field(None, description="YYYY-MM-DD")
    data_fim: Optional[date] = Field(None, description="YYYY-MM-DD")
    ainda_dentro: Optional[bool] = None
    tem_veiculo: Optional[bool] = None
    periodo_dia: Optional[PeriodoDia] = None
    dia_semana: Optional[DiaSemana] = None
    limit: int = Field(10, ge=1, le=100)
    offset: int = Field(0, ge=0)


class TextSearchIn(BaseModel):
    query: str = Field(..., min_length=1)
    limit: int = Field(10, ge=1, le=100)
    offset: int = Field(0, ge=0)


class AdvancedSearchIn(TextSearchIn):
    score_threshold: float = Field(settings.DEFAULT_SCORE_THRESHOLD, ge=0, le=1)


class SearchResult(BaseModel):
    records: list[AccessRecord]
    total: int
    has_more: bool
    strategy: SearchStrategy


class ConnectionInfo(BaseModel):
    status: str
    collection_name: str
    points: int
    vectors_count: Optional[int] = None
    dimension: int = 0
    distance: str = "unknown"
