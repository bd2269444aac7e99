# portaria/schemas/access_record.py
"""
AccessRecord: one visitor's condominium visit as indexed in Qdrant.
Field names follow the payload written by the ingestion pipeline.
Every search result is validated against this model before it is returned.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, model_validator


class _Frozen(BaseModel):
    class Config:
        frozen = True


class Terminal(_Frozen):
    tipo: str
    descricao: str
    codigo: str
    nome: str


class Veiculo(_Frozen):
    tem_veiculo: bool
    cor: Optional[str] = None
    marca: Optional[str] = None
    placa: Optional[str] = None
    modelo: Optional[str] = None
    descricao_completa: Optional[str] = None
    referencia: Optional[str] = None


class TempoPermanencia(_Frozen):
    categoria: str
    texto: str
    minutos: float
    total_minutos: float
    horas: float


class Movimentacao(_Frozen):
    datetime_completo: str
    movimento: str
    data: str
    hora: str


class Acesso(_Frozen):
    tempo_permanencia: TempoPermanencia
    entrada: Movimentacao
    saida: Movimentacao
    status: str
    ainda_dentro: bool


class Usuario(_Frozen):
    nome: str
    telefone: str
    documento: str
    turno: str


class Usuarios(_Frozen):
    logado: Usuario
    porteiro: Usuario


class Pessoa(_Frozen):
    uf: str
    nome_busca: str
    tipo: str
    codigo: int
    nome: str
    cidade: str
    documento: str
    endereco_completo: str
    celular: str


class Morador(_Frozen):
    documento: str
    id: str
    celular: str
    nome: str
    email: str
    tipo: str


class Proprietario(_Frozen):
    telefone: Optional[str]
    nome: Optional[str]
    celular: Optional[str]


class Residencia(_Frozen):
    rua: str
    quadra: str
    id: str
    telefone: str
    endereco_completo: str
    numero: str
    lote: str


class Destino(_Frozen):
    morador: Morador
    proprietario: Proprietario
    residencia: Residencia
    tem_destino: bool


class Metadados(_Frozen):
    tem_destino: bool
    fonte_dados: str
    periodo_dia: str
    removido: bool
    tem_veiculo: bool
    dia_semana: str


class BuscaOtimizada(_Frozen):
    nomes_relacionados: list[str]
    texto_completo: str
    palavras_chave: list[str]
    documentos_relacionados: list[str]
    datas_relacionadas: list[str]


class OriginalRecord(_Frozen):
    id: str
    tipo_registro: str
    terminal: Terminal
    veiculo: Veiculo
    acesso: Acesso
    usuarios: Usuarios
    timestamp_indexacao: str
    conteudo_principal: str
    pessoa: Pessoa
    metadados: Metadados
    destino: Destino
    busca_otimizada: BuscaOtimizada


def _parse_stamp(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class AccessRecord(_Frozen):
    id: str
    tipo_registro: str
    fonte_dados: str

    # Visitor
    pessoa_nome: str
    pessoa_documento: str
    pessoa_cidade: str
    pessoa_uf: str

    # Destination
    morador_id: str
    morador_nome: str
    tem_destino: bool
    residencia_numero: str
    residencia_rua: str
    residencia_endereco: str

    # Vehicle / terminal
    tem_veiculo: bool
    terminal_nome: str
    terminal_codigo: str

    # Movement
    entrada_data: str
    entrada_hora: str
    entrada_datetime: str
    saida_data: str
    saida_hora: str
    saida_datetime: str
    tempo_permanencia_minutos: float
    periodo_dia: str
    dia_semana: str
    ainda_dentro: bool
    status_acesso: str

    timestamp_indexacao: str
    text_for_embedding: str
    original_record: OriginalRecord

    @model_validator(mode="after")
    def _check_exit_consistency(self):
        has_exit = bool(self.saida_datetime.strip())
        if self.ainda_dentro == has_exit:
            raise ValueError(
                f"ainda_dentro={self.ainda_dentro} contradicts saida_datetime={self.saida_datetime!r}"
            )
        if has_exit:
            entry, leave = _parse_stamp(self.entrada_datetime), _parse_stamp(self.saida_datetime)
            if entry is not None and leave is not None:
                if entry.tzinfo is None and leave.tzinfo is not None:
                    leave = leave.replace(tzinfo=None)
                elif leave.tzinfo is None and entry.tzinfo is not None:
                    entry = entry.replace(tzinfo=None)
                before = leave < entry
            else:
                before = self.saida_datetime < self.entrada_datetime
            if before:
                raise ValueError(
                    f"saida_datetime {self.saida_datetime} precedes entrada_datetime {self.entrada_datetime}"
                )
        return self
