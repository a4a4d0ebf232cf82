"""
Cálculo dos demonstrativos de faturamento por cliente e período.

Fluxo por cliente:
1. Valoração dos exames (tabela de preços + condição de volume)
2. Franquia
3. Portal de laudos e integração
4. Valor bruto = exames + franquia + portal + integração
5. Impostos (ISS, IRRF, PIS/COFINS/CSLL)
6. Valor líquido = bruto - impostos

Um erro em um cliente grava o demonstrativo com status de erro e o
lote segue com os demais clientes.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from config import CATEGORIA_PADRAO, DemonstrativoConfig, Messages, TipificacaoConfig
from exceptions import FaturamentoError, PricingError
from logging_config import get_logger, log_action
from models import DemonstrativoFaturamento, ParametrosFaturamento
from repositories.cadastro_repository import CadastroRepository, cadastro_repository
from repositories.demonstrativo_repository import DemonstrativoRepository, demonstrativo_repository
from repositories.parametros_repository import (
    ParametrosRepository,
    PrecoRepository,
    parametros_repository,
    preco_repository,
)
from repositories.volumetria_repository import VolumetriaRepository, volumetria_repository
from services.metrics import record_demonstrativo
from services.tipificacao import data_referencia, localizar_parametros
from utils.error_handlers import log_exception
from utils.periodo import parse_periodo
from utils.text_utils import eh_vazio, normalizar_texto

from .franquia import calcular_franquia, calcular_taxas_fixas
from .impostos import calcular_impostos
from .precificacao import LinhaPreco, TabelaPrecos, valorar_exames
from .valores import arredondar

logger = get_logger('services.faturamento.demonstrativo')

ZERO = Decimal("0.00")


@dataclass
class ResultadoPeriodo:
    periodo: str
    demonstrativos: List[DemonstrativoFaturamento] = field(default_factory=list)
    cache: bool = False
    clientes_ignorados: List[str] = field(default_factory=list)

    @property
    def resumo(self) -> Dict[str, Any]:
        calculados = [d for d in self.demonstrativos if d.status == DemonstrativoConfig.STATUS_CALCULADO]
        com_erro = [d for d in self.demonstrativos if d.status == DemonstrativoConfig.STATUS_ERRO]
        return {
            "clientes_processados": len(self.demonstrativos),
            "clientes_com_erro": len(com_erro),
            "clientes_ignorados": len(self.clientes_ignorados),
            "total_exames": float(sum((Decimal(str(d.total_exames or 0)) for d in calculados), ZERO)),
            "valor_bruto_total": float(sum((Decimal(str(d.valor_bruto or 0)) for d in calculados), ZERO)),
            "valor_impostos_total": float(sum((Decimal(str(d.valor_impostos or 0)) for d in calculados), ZERO)),
            "valor_liquido_total": float(sum((Decimal(str(d.valor_liquido or 0)) for d in calculados), ZERO)),
            "clientes_simples": sum(1 for d in calculados if d.simples),
            "clientes_regime_normal": sum(1 for d in calculados if not d.simples),
        }


def _catalogo_por_descricao(repository: CadastroRepository, db: Session) -> Dict[str, Any]:
    catalogo: Dict[str, Any] = {}
    for item in repository.listar_exames(db):
        chave = normalizar_texto(item.nome)
        if chave and chave not in catalogo:
            catalogo[chave] = item
    return catalogo


def completar_categorias(linhas: Sequence[LinhaPreco], catalogo: Mapping[str, Any]) -> int:
    """
    Preenche categoria vazia ou SC pelo cadastro de exames (e a
    especialidade, se vazia). Só altera as cópias usadas no cálculo.
    """
    ajustadas = 0
    for linha in linhas:
        if not eh_vazio(linha.categoria) and normalizar_texto(linha.categoria) != CATEGORIA_PADRAO:
            continue
        item = catalogo.get(normalizar_texto(linha.estudo_descricao))
        if item is None:
            continue
        if not eh_vazio(item.categoria):
            linha.categoria = item.categoria
            ajustadas += 1
        if eh_vazio(linha.especialidade) and not eh_vazio(item.especialidade):
            linha.especialidade = item.especialidade
    return ajustadas


class CalculadoraDemonstrativo:
    """
    Calcula e persiste demonstrativos de faturamento.

    Uso:
        calculadora = CalculadoraDemonstrativo()
        resultado = calculadora.calcular_periodo(db, "2025-06", forcar_recalculo=True)
    """

    def __init__(
        self,
        volumetria: VolumetriaRepository = volumetria_repository,
        parametros: ParametrosRepository = parametros_repository,
        precos: PrecoRepository = preco_repository,
        demonstrativos: DemonstrativoRepository = demonstrativo_repository,
        cadastros: CadastroRepository = cadastro_repository,
    ):
        self._volumetria = volumetria
        self._parametros = parametros
        self._precos = precos
        self._demonstrativos = demonstrativos
        self._cadastros = cadastros

    def montar_demonstrativo(
        self,
        db: Session,
        cliente: str,
        periodo: str,
        parametros: Optional[ParametrosFaturamento],
        catalogo: Optional[Mapping[str, Any]] = None,
    ) -> DemonstrativoFaturamento:
        """Calcula o demonstrativo de um cliente sem gravar."""
        exames = self._volumetria.listar_faturaveis(db, cliente, periodo)
        linhas = [LinhaPreco.de_registro(e) for e in exames]
        if catalogo is None:
            catalogo = _catalogo_por_descricao(self._cadastros, db)
        completar_categorias(linhas, catalogo)

        nome_precos = parametros.cliente_nome if parametros is not None else cliente
        try:
            tabela = TabelaPrecos(
                self._precos.listar_por_cliente(db, nome_precos),
                percentual_urgencia=parametros.percentual_urgencia if parametros else 0,
            )
            valoracao = valorar_exames(
                linhas, tabela, parametros.cond_volume if parametros else None
            )
        except (ArithmeticError, ValueError, TypeError) as e:
            raise PricingError(cliente, str(e)) from e

        if valoracao.itens_sem_preco:
            logger.warning(f"{cliente}: {valoracao.itens_sem_preco} grupos de exames sem preço em {periodo}")

        franquia = calcular_franquia(parametros, valoracao.total_exames)
        taxas = calcular_taxas_fixas(parametros)
        valor_exames = arredondar(valoracao.valor_exames)
        bruto = valor_exames + franquia.valor + taxas["portal"] + taxas["integracao"]

        simples = bool(parametros.simples) if parametros else False
        impostos = calcular_impostos(
            bruto,
            percentual_iss=parametros.percentual_iss if parametros else 0,
            simples=simples,
            valor_minimo=parametros.valor_minimo_retencao if parametros else None,
        )

        tipos = sorted({e.tipo_faturamento for e in exames if e.tipo_faturamento})
        return DemonstrativoFaturamento(
            cliente_nome=cliente,
            periodo_referencia=periodo,
            tipo_cliente=parametros.tipo_cliente if parametros else TipificacaoConfig.TIPO_CLIENTE_PADRAO,
            tipo_faturamento=tipos[0] if len(tipos) == 1 else None,
            total_exames=valoracao.total_exames,
            valor_exames=valor_exames,
            valor_franquia=franquia.valor,
            valor_portal_laudos=taxas["portal"],
            valor_integracao=taxas["integracao"],
            valor_bruto=bruto,
            valor_iss=impostos.iss,
            valor_irrf=impostos.irrf,
            valor_pis=impostos.pis,
            valor_cofins=impostos.cofins,
            valor_csll=impostos.csll,
            valor_impostos=impostos.total,
            valor_liquido=bruto - impostos.total,
            simples=simples,
            detalhes_exames=[item.to_dict() for item in valoracao.itens],
            status=DemonstrativoConfig.STATUS_CALCULADO,
        )

    def demonstrativo_com_erro(self, cliente: str, periodo: str, erro: str) -> DemonstrativoFaturamento:
        return DemonstrativoFaturamento(
            cliente_nome=cliente,
            periodo_referencia=periodo,
            total_exames=ZERO,
            valor_exames=ZERO,
            valor_franquia=ZERO,
            valor_portal_laudos=ZERO,
            valor_integracao=ZERO,
            valor_bruto=ZERO,
            valor_iss=ZERO,
            valor_irrf=ZERO,
            valor_pis=ZERO,
            valor_cofins=ZERO,
            valor_csll=ZERO,
            valor_impostos=ZERO,
            valor_liquido=ZERO,
            simples=False,
            detalhes_exames=[],
            status=DemonstrativoConfig.STATUS_ERRO,
            erro=erro,
        )

    @staticmethod
    def cliente_nao_faturado(parametros: Optional[ParametrosFaturamento]) -> bool:
        return (
            parametros is not None
            and normalizar_texto(parametros.tipo_faturamento) == TipificacaoConfig.TIPO_NAO_FATURADO
        )

    def calcular_cliente(
        self,
        db: Session,
        cliente: str,
        periodo: str,
        vigentes: Optional[Sequence[ParametrosFaturamento]] = None,
        catalogo: Optional[Mapping[str, Any]] = None,
    ) -> Optional[DemonstrativoFaturamento]:
        """
        Calcula e grava o demonstrativo do cliente no período.

        Substitui o demonstrativo existente do mesmo cliente/período.
        Retorna None para clientes NC-NF (não faturados).

        Raises:
            InvalidPeriodError: período inválido
            PricingError: falha na precificação
        """
        parse_periodo(periodo)
        if vigentes is None:
            vigentes = self._parametros.listar_vigentes(db, data_referencia(periodo))
        parametros = localizar_parametros(cliente, vigentes)
        if self.cliente_nao_faturado(parametros):
            logger.info(f"{cliente}: tipo de faturamento NC-NF, demonstrativo não gerado")
            return None

        demonstrativo = self.montar_demonstrativo(db, cliente, periodo, parametros, catalogo)
        salvo = self._demonstrativos.substituir(db, demonstrativo)
        record_demonstrativo(salvo.status)
        log_action(
            logger, "demonstrativo_calculado",
            resource_type="demonstrativo", resource_id=salvo.id,
            cliente=cliente, periodo=periodo, valor_liquido=float(salvo.valor_liquido),
        )
        return salvo

    def calcular_periodo(
        self,
        db: Session,
        periodo: str,
        forcar_recalculo: bool = False,
        clientes: Optional[Sequence[str]] = None,
    ) -> ResultadoPeriodo:
        """
        Calcula os demonstrativos de todos os clientes do período.

        Sem recálculo forçado, demonstrativos já gravados são devolvidos
        como estão. Com recálculo forçado, os do período são apagados antes.
        Com `clientes`, cache e exclusão valem só para esses clientes; o
        cache só é usado quando todos eles já têm demonstrativo gravado.
        """
        parse_periodo(periodo)
        clientes = list(dict.fromkeys(clientes)) if clientes else None
        existentes = self._demonstrativos.listar_periodo(db, periodo, clientes=clientes)
        em_cache = bool(existentes)
        if clientes:
            em_cache = {d.cliente_nome for d in existentes} >= set(clientes)
        if em_cache and not forcar_recalculo:
            logger.info(f"Demonstrativos de {periodo} retornados do cache ({len(existentes)})")
            return ResultadoPeriodo(periodo=periodo, demonstrativos=existentes, cache=True)

        if forcar_recalculo and existentes:
            removidos = self._demonstrativos.excluir_periodo(db, periodo, clientes=clientes)
            logger.info(f"Recálculo forçado: {removidos} demonstrativos de {periodo} removidos")

        vigentes = self._parametros.listar_vigentes(db, data_referencia(periodo))
        catalogo = _catalogo_por_descricao(self._cadastros, db)
        alvo = list(clientes) if clientes else self._volumetria.clientes_faturaveis(db, periodo)

        resultado = ResultadoPeriodo(periodo=periodo)
        for cliente in alvo:
            try:
                demonstrativo = self.calcular_cliente(db, cliente, periodo, vigentes, catalogo)
            except Exception as e:
                db.rollback()
                log_exception(logger, f"demonstrativo {cliente} ({periodo})", e)
                erro = str(e)
                if isinstance(e, FaturamentoError) and e.details:
                    erro = f"{e.message}: {e.details}"
                demonstrativo = self._demonstrativos.substituir(
                    db, self.demonstrativo_com_erro(cliente, periodo, erro)
                )
                record_demonstrativo(demonstrativo.status)
            if demonstrativo is None:
                resultado.clientes_ignorados.append(cliente)
                continue
            resultado.demonstrativos.append(demonstrativo)

        resumo = resultado.resumo
        logger.info(
            f"{Messages.DEMONSTRATIVOS_CALCULADOS} ({periodo}): "
            f"{resumo['clientes_processados']} clientes, {resumo['clientes_com_erro']} com erro, "
            f"líquido total {resumo['valor_liquido_total']:.2f}"
        )
        return resultado
