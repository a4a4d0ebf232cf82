"""
Tipificação de faturamento dos exames.

Cada exame recebe um tipo de cliente (CO, NC, NC1) e um tipo de
faturamento (CO-FT, CO-NF, NC-FT, NC-NF, NC1-NF). A decisão para
clientes não consolidados é feita por regras nomeadas por cliente,
registradas em REGRAS_CLIENTES.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from config import TipificacaoConfig
from exceptions import InvalidPeriodError
from logging_config import get_logger
from models import ExameVolumetria, ParametrosFaturamento
from repositories.parametros_repository import ParametrosRepository, parametros_repository
from repositories.volumetria_repository import VolumetriaRepository, volumetria_repository
from utils.periodo import parse_periodo
from utils.text_utils import normalizar_nome_medico, normalizar_texto
from utils.timeout import Prazo

logger = get_logger('services.tipificacao')

PAGE_SIZE = 1000


# === Dados usados na decisão ===

@dataclass(frozen=True)
class DadosExame:
    """Campos do exame relevantes para a tipificação."""
    empresa: Optional[str] = None
    modalidade: Optional[str] = None
    especialidade: Optional[str] = None
    categoria: Optional[str] = None
    prioridade: Optional[str] = None
    medico: Optional[str] = None
    estudo_descricao: Optional[str] = None

    @classmethod
    def de_registro(cls, exame: ExameVolumetria) -> "DadosExame":
        return cls(
            empresa=exame.empresa,
            modalidade=exame.modalidade,
            especialidade=exame.especialidade,
            categoria=exame.categoria,
            prioridade=exame.prioridade,
            medico=exame.medico,
            estudo_descricao=exame.estudo_descricao,
        )


@dataclass(frozen=True)
class ResultadoTipificacao:
    tipo_cliente: str
    tipo_faturamento: str


@dataclass(frozen=True)
class RegraClienteFaturamento:
    """Regra nomeada: decide se o exame de um cliente NC é faturado."""
    nome: str
    clientes: FrozenSet[str]
    faturado: Callable[[DadosExame], bool]

    def aplica_a(self, cliente: Optional[str]) -> bool:
        return normalizar_texto(cliente) in self.clientes


# === Predicados ===

DESCRICOES_NC_FATURADAS = frozenset({
    "ANGIOTC VENOSA TORAX CARDIOLOGIA",
    "RM CRANIO NEUROBRAIN",
})

MEDICOS_NC_FATURADOS = (
    "Dr. Antonio Gualberto Chianca Filho",
    "Dr. Daniel Chrispim",
    "Dr. Efraim Da Silva Ferreira",
    "Dr. Felipe Falcão de Sá",
    "Dr. Guilherme N. Schincariol",
    "Dr. Gustavo Andreis",
    "Dr. João Carlos Dantas do Amaral",
    "Dr. João Fernando Miranda Pompermayer",
    "Dr. Leonardo de Paula Ribeiro Figueiredo",
    "Dr. Raphael Sanfelice João",
    "Dr. Thiago P. Martins",
    "Dr. Virgílio Oliveira Barreto",
    "Dra. Adriana Giubilei Pimenta",
    "Dra. Aline Andrade Dorea",
    "Dra. Camila Amaral Campos",
    "Dra. Cynthia Mendes Vieira de Morais",
    "Dra. Fernanda Gama Barbosa",
    "Dra. Kenia Menezes Fernandes",
    "Dra. Lara M. Durante Bacelar",
    "Dr. Aguinaldo Cunha Zuppani",
    "Dr. Alex Gueiros de Barros",
    "Dr. Eduardo Caminha Nunes",
    "Dr. Márcio D'Andréa Rossi",
    "Dr. Rubens Pereira Moura Filho",
    "Dr. Wesley Walber da Silva",
    "Dra. Luna Azambuja Satte Alam",
    "Dra. Roberta Bertoldo Sabatini Treml",
    "Dra. Thais Nogueira D. Gastaldi",
    "Dra. Vanessa da Costa Maldonado",
)
_MEDICOS_NC_NORMALIZADOS = frozenset(normalizar_nome_medico(m) for m in MEDICOS_NC_FATURADOS)

MEDICO_EXCLUIDO_ESPECIAIS = "Dr. Rodrigo Vaz de Lima"

PRIORIDADES_PLANTAO_CEMVALENCA = frozenset({"URGENTE", "EMERGENCIA", "PLANTAO"})


def eh_plantao(d: DadosExame) -> bool:
    return normalizar_texto(d.prioridade) == "PLANTAO"


def eh_cardio(d: DadosExame) -> bool:
    return normalizar_texto(d.especialidade) == "CARDIO"


def medico_faturado(d: DadosExame) -> bool:
    return normalizar_nome_medico(d.medico) in _MEDICOS_NC_NORMALIZADOS


def _faturado_nc_padrao(d: DadosExame) -> bool:
    return (
        eh_cardio(d)
        or eh_plantao(d)
        or normalizar_texto(d.estudo_descricao) in DESCRICOES_NC_FATURADAS
    )


def _faturado_nc_medicos(d: DadosExame) -> bool:
    return eh_cardio(d) or eh_plantao(d) or medico_faturado(d)


def _faturado_radi_imagem(d: DadosExame) -> bool:
    return _faturado_nc_medicos(d) or normalizar_texto(d.especialidade) == "MAMA"


def _faturado_cemvalenca_rx(d: DadosExame) -> bool:
    return normalizar_texto(d.modalidade) == "RX"


def _faturado_cemvalenca_plantao(d: DadosExame) -> bool:
    return normalizar_texto(d.prioridade) in PRIORIDADES_PLANTAO_CEMVALENCA


def _faturado_especiais(d: DadosExame) -> bool:
    if eh_plantao(d):
        return True
    return (
        normalizar_texto(d.especialidade) == "MEDICINA INTERNA"
        and normalizar_nome_medico(d.medico) != normalizar_nome_medico(MEDICO_EXCLUIDO_ESPECIAIS)
    )


def _clientes(*nomes: str) -> FrozenSet[str]:
    return frozenset(normalizar_texto(n) for n in nomes)


REGRAS_CLIENTES: Sequence[RegraClienteFaturamento] = (
    RegraClienteFaturamento(
        "NC_PADRAO",
        _clientes("CDICARDIO", "CDIGOIAS", "CISP", "CLIRAM", "CRWANDERLEY",
                  "DIAGMAX-PR", "GOLD", "PRODIMAGEM", "TRANSDUSON", "ZANELLO"),
        _faturado_nc_padrao,
    ),
    RegraClienteFaturamento("NC_RADI_IMAGEM", _clientes("RADI-IMAGEM"), _faturado_radi_imagem),
    RegraClienteFaturamento("NC_MEDICOS", _clientes("CEMVALENCA", "RMPADUA"), _faturado_nc_medicos),
    RegraClienteFaturamento("CEMVALENCA_RX", _clientes("CEMVALENCA_RX"), _faturado_cemvalenca_rx),
    RegraClienteFaturamento("CEMVALENCA_PLANTAO", _clientes("CEMVALENCA_PLANTAO"), _faturado_cemvalenca_plantao),
    RegraClienteFaturamento(
        "ESPECIAIS",
        _clientes("CBU", "RADMED", "CEDIDIAG"),
        _faturado_especiais,
    ),
)


# === Parâmetros do cliente ===

def localizar_parametros(
    cliente: Optional[str],
    parametros: Iterable[ParametrosFaturamento],
) -> Optional[ParametrosFaturamento]:
    """
    Parâmetros do cliente: nome exato primeiro, depois o primeiro
    casamento parcial (um nome contido no outro).
    """
    nome = normalizar_texto(cliente)
    if not nome:
        return None
    candidatos = list(parametros)
    for p in candidatos:
        if normalizar_texto(p.cliente_nome) == nome:
            return p
    for p in candidatos:
        outro = normalizar_texto(p.cliente_nome)
        if outro and (nome in outro or outro in nome):
            return p
    return None


def data_referencia(periodo: Optional[str]) -> Optional[date]:
    if not periodo:
        return None
    ano, mes = parse_periodo(periodo)
    return date(ano, mes, 1)


def vigente_em(parametros: ParametrosFaturamento, data: Optional[date]) -> bool:
    """Se a vigência dos parâmetros cobre a data (sem data, qualquer vigência serve)."""
    if data is None:
        return True
    inicio = parametros.data_inicio_vigencia
    fim = parametros.data_fim_vigencia
    return (inicio is None or inicio <= data) and (fim is None or fim >= data)


def _data_do_exame(exame: ExameVolumetria) -> Optional[date]:
    try:
        return data_referencia(exame.periodo_referencia)
    except InvalidPeriodError:
        return None


# === Classificador ===

class ClassificadorFaturamento:
    """
    Decide tipo de cliente e tipo de faturamento de exames.

    Uso:
        classificador = ClassificadorFaturamento()
        resultado = classificador.classificar(dados, parametros)
    """

    def __init__(
        self,
        regras: Sequence[RegraClienteFaturamento] = REGRAS_CLIENTES,
        volumetria: VolumetriaRepository = volumetria_repository,
        parametros: ParametrosRepository = parametros_repository,
    ):
        self._regras = tuple(regras)
        self._volumetria = volumetria
        self._parametros = parametros

    def regra_do_cliente(self, cliente: Optional[str]) -> Optional[RegraClienteFaturamento]:
        for regra in self._regras:
            if regra.aplica_a(cliente):
                return regra
        return None

    def classificar(
        self,
        exame: DadosExame,
        parametros: Optional[ParametrosFaturamento],
    ) -> ResultadoTipificacao:
        """
        Tipifica um exame.

        1. Tipo de cliente pelos parâmetros (CO sem parâmetros).
        2. CO: override configurado (se for tag CO) ou CO-FT.
        3. NC/NC1: regra nomeada do cliente decide FT/NF; sem regra,
           vale o tipo configurado, senão <tipo>-NF.

        O resultado sempre pertence ao conjunto de tags válidas.
        """
        tipo_cliente = TipificacaoConfig.TIPO_CLIENTE_PADRAO
        override = None
        if parametros is not None:
            informado = normalizar_texto(parametros.tipo_cliente)
            if informado in TipificacaoConfig.TIPOS_CLIENTE:
                tipo_cliente = informado
            override = normalizar_texto(parametros.tipo_faturamento) or None

        prefixo = f"{tipo_cliente}-"
        if tipo_cliente == "CO":
            if override and override.startswith(prefixo) and override in TipificacaoConfig.TIPOS_FATURAMENTO_VALIDOS:
                tipo_faturamento = override
            else:
                tipo_faturamento = TipificacaoConfig.TIPO_FATURAMENTO_PADRAO
        else:
            regra = self.regra_do_cliente(exame.empresa)
            if regra is not None:
                tipo_faturamento = prefixo + ("FT" if regra.faturado(exame) else "NF")
            elif override and override.startswith(prefixo):
                tipo_faturamento = override
            else:
                tipo_faturamento = prefixo + "NF"

        # NC1 não fatura: NC1-FT não existe
        if tipo_faturamento not in TipificacaoConfig.TIPOS_FATURAMENTO_VALIDOS:
            tipo_faturamento = prefixo + "NF"

        return ResultadoTipificacao(tipo_cliente=tipo_cliente, tipo_faturamento=tipo_faturamento)

    def limpar_tipos_invalidos(
        self,
        db: Session,
        arquivo_fonte: Optional[str] = None,
        periodo: Optional[str] = None,
    ) -> int:
        """Apaga tags de faturamento fora do conjunto válido (e o tipo de cliente junto)."""
        query = self._volumetria.query_periodo(db, periodo, arquivo_fonte).filter(
            ExameVolumetria.tipo_faturamento.isnot(None),
            ExameVolumetria.tipo_faturamento.notin_(TipificacaoConfig.TIPOS_FATURAMENTO_VALIDOS),
        )
        count = query.update(
            {ExameVolumetria.tipo_faturamento: None, ExameVolumetria.tipo_cliente: None},
            synchronize_session=False,
        )
        db.commit()
        if count:
            logger.warning(f"{count} registros com tipo de faturamento inválido foram limpos")
        return count

    def reclassificar(
        self,
        db: Session,
        arquivo_fonte: Optional[str] = None,
        periodo: Optional[str] = None,
        prazo: Optional[Prazo] = None,
        data_vigencia: Optional[date] = None,
    ) -> Dict[str, int]:
        """
        Limpa tags inválidas e tipifica todos os exames do filtro.

        Os parâmetros usados são os vigentes em `data_vigencia`; sem ela,
        no primeiro dia de `periodo`; sem nenhum dos dois, no período de
        referência de cada exame.

        Falha em um exame conta como erro e o processamento segue.

        Returns:
            total_processados, registros_atualizados, registros_com_erro,
            tipos_invalidos_limpos
        """
        limpos = self.limpar_tipos_invalidos(db, arquivo_fonte, periodo)
        data_fixa = data_vigencia or data_referencia(periodo)
        vigentes = self._parametros.listar_vigentes(db, data_fixa)
        cache: Dict[Tuple[str, Optional[date]], Optional[ParametrosFaturamento]] = {}

        processados = atualizados = erros = 0
        ultimo_id = 0
        while True:
            if prazo:
                prazo.verificar("tipificacao")
            pagina = self._volumetria.query_periodo(db, periodo, arquivo_fonte).filter(
                ExameVolumetria.id > ultimo_id
            ).order_by(ExameVolumetria.id).limit(PAGE_SIZE).all()
            if not pagina:
                break

            for exame in pagina:
                processados += 1
                try:
                    data = data_fixa or _data_do_exame(exame)
                    chave = (normalizar_texto(exame.empresa), data)
                    if chave not in cache:
                        cache[chave] = localizar_parametros(
                            exame.empresa, [p for p in vigentes if vigente_em(p, data)]
                        )
                    resultado = self.classificar(DadosExame.de_registro(exame), cache[chave])
                except Exception as e:
                    erros += 1
                    logger.error(f"Erro ao tipificar exame {exame.id}: {e}")
                    continue
                if (exame.tipo_cliente, exame.tipo_faturamento) != (
                    resultado.tipo_cliente, resultado.tipo_faturamento
                ):
                    exame.tipo_cliente = resultado.tipo_cliente
                    exame.tipo_faturamento = resultado.tipo_faturamento
                    atualizados += 1

            ultimo_id = pagina[-1].id
            db.commit()

        logger.info(
            f"Tipificação: {processados} processados, {atualizados} atualizados, "
            f"{erros} erros, {limpos} tipos inválidos limpos"
        )
        return {
            "total_processados": processados,
            "registros_atualizados": atualizados,
            "registros_com_erro": erros,
            "tipos_invalidos_limpos": limpos,
        }
