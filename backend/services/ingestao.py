"""
Admissão de registros de volumetria.

Só laudos Assinados/Reassinados entram na base; modalidades excluídas
por configuração também são recusadas. Registros recusados vão para
registros_rejeitados e nunca chegam ao motor de regras.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from config import IngestaoConfig, Messages
from logging_config import get_logger, log_action
from models import ExameVolumetria, RegistroRejeitado
from services.metrics import record_rejeitados
from utils.periodo import parse_periodo
from utils.text_utils import normalizar_texto

logger = get_logger('services.ingestao')

MOTIVO_STATUS_NAO_ASSINADO = "STATUS_NAO_ASSINADO"
MOTIVO_MODALIDADE_EXCLUIDA = "MODALIDADE_EXCLUIDA"

_CAMPOS_TEXTO = (
    "empresa", "nome_paciente", "codigo_paciente", "accession_number",
    "estudo_descricao", "modalidade", "especialidade", "categoria",
    "prioridade", "medico", "status",
)
_CAMPOS_DATA = ("data_realizacao", "data_laudo", "data_prazo")


@dataclass
class ResultadoAdmissao:
    arquivo_fonte: str
    admitidos: int = 0
    rejeitados: int = 0
    motivos: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "arquivo_fonte": self.arquivo_fonte,
            "admitidos": self.admitidos,
            "rejeitados": self.rejeitados,
            "motivos": dict(self.motivos),
        }


def _como_data(valor: Any) -> Optional[date]:
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    return date.fromisoformat(str(valor)[:10])


def _json_seguro(registro: Mapping[str, Any]) -> Dict[str, Any]:
    dados = {}
    for chave, valor in registro.items():
        if isinstance(valor, Decimal):
            valor = float(valor)
        elif isinstance(valor, (date, datetime)):
            valor = valor.isoformat()
        dados[chave] = valor
    return dados


def motivo_rejeicao(registro: Mapping[str, Any]) -> Optional[str]:
    """Código do motivo de recusa do registro, ou None se admitido."""
    status = normalizar_texto(registro.get("status"))
    if status not in IngestaoConfig.STATUS_ACEITOS:
        return MOTIVO_STATUS_NAO_ASSINADO
    modalidade = normalizar_texto(registro.get("modalidade"))
    if modalidade and modalidade in IngestaoConfig.MODALIDADES_EXCLUIDAS:
        return MOTIVO_MODALIDADE_EXCLUIDA
    return None


_DETALHES = {
    MOTIVO_STATUS_NAO_ASSINADO: Messages.STATUS_NAO_ASSINADO,
    MOTIVO_MODALIDADE_EXCLUIDA: Messages.MODALIDADE_EXCLUIDA,
}


def montar_exame(
    registro: Mapping[str, Any],
    arquivo_fonte: str,
    periodo: str,
    lote_upload: Optional[str] = None,
) -> ExameVolumetria:
    exame = ExameVolumetria(
        arquivo_fonte=arquivo_fonte,
        periodo_referencia=periodo,
        lote_upload=lote_upload,
    )
    for campo in _CAMPOS_TEXTO:
        valor = registro.get(campo)
        setattr(exame, campo, valor.strip() if isinstance(valor, str) else valor)
    for campo in _CAMPOS_DATA:
        setattr(exame, campo, _como_data(registro.get(campo)))
    valores = registro.get("valores")
    exame.valores = Decimal(str(valores)) if valores not in (None, "") else None
    return exame


def admitir_registros(
    db: Session,
    arquivo_fonte: str,
    registros: Sequence[Mapping[str, Any]],
    periodo: str,
    lote_upload: Optional[str] = None,
) -> ResultadoAdmissao:
    """
    Grava os registros admitidos e os recusados, em uma transação.

    Args:
        db: Sessão do banco
        arquivo_fonte: Lote de upload
        registros: Linhas brutas (dicts com os campos da volumetria)
        periodo: Período de referência YYYY-MM
        lote_upload: Identificador do upload

    Raises:
        InvalidPeriodError: período inválido
    """
    parse_periodo(periodo)
    resultado = ResultadoAdmissao(arquivo_fonte=arquivo_fonte)
    motivos: Counter = Counter()

    for linha, registro in enumerate(registros, start=1):
        motivo = motivo_rejeicao(registro)
        if motivo is not None:
            db.add(RegistroRejeitado(
                arquivo_fonte=arquivo_fonte,
                lote_upload=lote_upload,
                linha_original=linha,
                dados_originais=_json_seguro(registro),
                motivo_rejeicao=motivo,
                detalhes_erro=_DETALHES[motivo],
            ))
            motivos[motivo] += 1
            continue
        db.add(montar_exame(registro, arquivo_fonte, periodo, lote_upload))
        resultado.admitidos += 1

    db.commit()

    resultado.rejeitados = sum(motivos.values())
    resultado.motivos = dict(motivos)
    for motivo, qtd in motivos.items():
        record_rejeitados(motivo, qtd)
    log_action(
        logger, "registros_admitidos",
        resource_type="arquivo", resource_id=arquivo_fonte,
        admitidos=resultado.admitidos, rejeitados=resultado.rejeitados,
    )
    return resultado
