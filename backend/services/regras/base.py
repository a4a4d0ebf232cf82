"""
Tipos base do motor de regras de normalização.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from repositories.volumetria_repository import VolumetriaRepository, volumetria_repository
from utils.periodo import eh_arquivo_retroativo
from utils.timeout import Prazo

from .registros import RegistrosReferencia


class TipoRegra(str, Enum):
    """Natureza da alteração feita pela regra."""
    EXCLUSAO = "exclusao"
    RENOMEACAO = "renomeacao"
    PREENCHIMENTO = "preenchimento"
    QUEBRA = "quebra"


@dataclass
class ContextoRegra:
    """Dados compartilhados por todas as regras de uma execução."""
    db: Session
    arquivo_fonte: str
    periodo_referencia: str
    registros: RegistrosReferencia
    prazo: Prazo
    repository: VolumetriaRepository = field(default=volumetria_repository)
    # Resultado detalhado de regras que retornam mais que uma contagem
    extras: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegraNormalizacao:
    """
    Uma etapa do pipeline.

    `aplicar` recebe o contexto e retorna a quantidade de registros
    afetados. Toda regra é idempotente: reaplicar não muda nada.
    """
    codigo: str
    descricao: str
    tipo: TipoRegra
    aplicar: Callable[[ContextoRegra], int]
    apenas_retroativo: bool = False
    # Motivo gravado em registros_rejeitados (regras de exclusão)
    motivo_rejeicao: Optional[str] = None

    def aplicavel(self, arquivo_fonte: str) -> bool:
        if self.apenas_retroativo:
            return eh_arquivo_retroativo(arquivo_fonte)
        return True


@dataclass
class ResultadoRegra:
    """Resultado de uma regra dentro da execução."""
    codigo: str
    sucesso: bool
    registros_afetados: int = 0
    duracao_ms: float = 0.0
    erro: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "codigo": self.codigo,
            "sucesso": self.sucesso,
            "registros_afetados": self.registros_afetados,
            "duracao_ms": round(self.duracao_ms, 2),
            "erro": self.erro,
        }


@dataclass
class ResultadoPipeline:
    """Resumo de uma execução do motor de regras."""
    arquivo_fonte: str
    periodo_referencia: str
    registros_antes: int = 0
    registros_depois: int = 0
    regras: List[ResultadoRegra] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)
    mensagem: Optional[str] = None

    @property
    def regras_aplicadas(self) -> List[str]:
        return [r.codigo for r in self.regras if r.sucesso]

    @property
    def regras_com_erro(self) -> List[str]:
        return [r.codigo for r in self.regras if not r.sucesso]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "arquivo_fonte": self.arquivo_fonte,
            "periodo_referencia": self.periodo_referencia,
            "registros_antes": self.registros_antes,
            "registros_depois": self.registros_depois,
            "registros_excluidos": max(self.registros_antes - self.registros_depois, 0),
            "regras_aplicadas": self.regras_aplicadas,
            "regras_com_erro": self.regras_com_erro,
            "detalhes_regras": [r.to_dict() for r in self.regras],
            "mensagem": self.mensagem,
            **self.extras,
        }
