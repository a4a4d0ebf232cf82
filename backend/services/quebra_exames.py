"""
Quebra de exames compostos em exames faturáveis.

Um exame composto (ex: "TC TORAX E ABDOME") é substituído por um
registro por regra de quebra. Cada página é gravada como um insert
em lote seguido de um delete em lote dos originais, na mesma
transação: nunca existe um instante sem nenhuma das duas versões.
"""
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from sqlalchemy import String, func

from config import CATEGORIA_PADRAO, SPLIT_PAGE_SIZE
from logging_config import get_logger
from models import ExameVolumetria
from repositories.volumetria_repository import VolumetriaRepository, volumetria_repository
from services.metrics import record_rejeitados
from services.regras.registros import RegraQuebra, RegistrosReferencia
from utils.text_utils import eh_vazio, normalizar_texto
from utils.timeout import PipelineTimeoutError, Prazo

logger = get_logger('services.quebra_exames')

MOTIVO_ORIGINAL_REMOVIDO = "QUEBRA_EXAME_ORIGINAL_REMOVIDO"

# Campos copiados do original para cada exame quebrado
_CAMPOS_HERDADOS = (
    "empresa", "nome_paciente", "codigo_paciente", "accession_number",
    "modalidade", "prioridade", "medico", "data_realizacao", "data_laudo",
    "data_prazo", "status", "arquivo_fonte", "lote_upload", "periodo_referencia",
)


def _primeiro_preenchido(*valores: Optional[str]) -> str:
    for valor in valores:
        if not eh_vazio(valor):
            return valor  # type: ignore[return-value]
    return CATEGORIA_PADRAO


class DivisorExames:
    """Aplica as regras de quebra a um arquivo de volumetria."""

    def __init__(
        self,
        repository: VolumetriaRepository = volumetria_repository,
        page_size: int = SPLIT_PAGE_SIZE,
    ):
        self._repository = repository
        self._page_size = page_size

    @staticmethod
    def agrupar_regras(regras) -> "OrderedDict[str, List[RegraQuebra]]":
        """Agrupa regras pelo exame original normalizado, mantendo a ordem."""
        grupos: "OrderedDict[str, List[RegraQuebra]]" = OrderedDict()
        for regra in regras:
            chave = normalizar_texto(regra.exame_original)
            # regra que gera o próprio original nunca terminaria
            if not chave or normalizar_texto(regra.exame_quebrado) == chave:
                logger.warning(f"Regra de quebra ignorada: {regra.exame_original} -> {regra.exame_quebrado}")
                continue
            grupos.setdefault(chave, []).append(regra)
        return grupos

    def criar_exame_quebrado(
        self,
        original: ExameVolumetria,
        regra: RegraQuebra,
        registros: RegistrosReferencia,
    ) -> ExameVolumetria:
        """
        Monta o registro filho de um exame composto.

        Quantidade sempre 1. Especialidade e categoria vêm do cadastro
        do exame resultante, depois do original, por fim SC.
        """
        item = registros.buscar_exame(regra.exame_quebrado)
        novo = ExameVolumetria(**{campo: getattr(original, campo) for campo in _CAMPOS_HERDADOS})
        novo.estudo_descricao = regra.exame_quebrado
        novo.valores = 1
        if item is not None and not eh_vazio(item.modalidade):
            novo.modalidade = item.modalidade
        novo.especialidade = _primeiro_preenchido(
            item.especialidade if item else None,
            original.especialidade,
        )
        novo.categoria = _primeiro_preenchido(
            regra.categoria_quebrada,
            item.categoria if item else None,
            original.categoria,
        )
        return novo

    def _quebrar_grupo(
        self,
        db,
        arquivo_fonte: str,
        regras: List[RegraQuebra],
        registros: RegistrosReferencia,
        prazo: Optional[Prazo],
    ) -> Dict[str, int]:
        alvo = " ".join(regras[0].exame_original.split()).upper()
        condicao = func.upper(func.trim(ExameVolumetria.estudo_descricao), type_=String) == alvo
        substituidos = 0
        criados = 0
        while True:
            if prazo:
                prazo.verificar("v027")
            pagina = self._repository.query_arquivo(db, arquivo_fonte, condicao).order_by(
                ExameVolumetria.id
            ).limit(self._page_size).all()
            if not pagina:
                break

            novos = [
                self.criar_exame_quebrado(original, regra, registros)
                for original in pagina
                for regra in regras
            ]
            db.add_all(novos)
            db.flush()

            self._repository.registrar_rejeicoes(
                db, pagina, MOTIVO_ORIGINAL_REMOVIDO,
                f"Quebrado em {len(regras)} exames",
            )
            ids = [o.id for o in pagina]
            db.query(ExameVolumetria).filter(
                ExameVolumetria.id.in_(ids)
            ).delete(synchronize_session=False)
            db.commit()

            substituidos += len(pagina)
            criados += len(novos)
        return {"substituidos": substituidos, "criados": criados}

    def dividir_exames(
        self,
        db,
        arquivo_fonte: str,
        registros: RegistrosReferencia,
        prazo: Optional[Prazo] = None,
    ) -> Dict[str, Any]:
        """
        Quebra os exames compostos do arquivo.

        Falha em um grupo é registrada e o próximo grupo segue;
        timeout interrompe tudo.

        Returns:
            originais_substituidos, novos_registros_criados,
            grupos_processados e erros por grupo
        """
        grupos = self.agrupar_regras(registros.regras_quebra)
        resultado: Dict[str, Any] = {
            "originais_substituidos": 0,
            "novos_registros_criados": 0,
            "grupos_processados": 0,
            "erros": [],
        }

        for regras in grupos.values():
            try:
                parcial = self._quebrar_grupo(db, arquivo_fonte, regras, registros, prazo)
            except PipelineTimeoutError:
                db.rollback()
                raise
            except Exception as e:
                db.rollback()
                logger.error(f"Erro ao quebrar '{regras[0].exame_original}' em {arquivo_fonte}: {e}")
                resultado["erros"].append({
                    "exame_original": regras[0].exame_original,
                    "erro": str(e),
                })
                continue

            resultado["grupos_processados"] += 1
            resultado["originais_substituidos"] += parcial["substituidos"]
            resultado["novos_registros_criados"] += parcial["criados"]

        record_rejeitados(MOTIVO_ORIGINAL_REMOVIDO, resultado["originais_substituidos"])
        logger.info(
            f"Quebra {arquivo_fonte}: {resultado['originais_substituidos']} originais -> "
            f"{resultado['novos_registros_criados']} novos ({len(resultado['erros'])} erros)"
        )
        return resultado
