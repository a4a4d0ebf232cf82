"""
Catálogo ordenado das regras de normalização da volumetria.

A ordem da tupla REGRAS é a ordem de execução. Cada função recebe o
ContextoRegra e retorna a quantidade de registros afetados.
"""
from typing import Iterable, Iterator, List, Sequence, Tuple

from sqlalchemy import String, func, or_

from config import CATEGORIA_PADRAO, PRIORIDADE_PADRAO, QUANTIDADE_PADRAO
from models import ExameVolumetria as E
from services.metrics import record_rejeitados
from utils.periodo import janela_faturamento
from utils.text_utils import normalizar_texto

from .base import ContextoRegra, RegraNormalizacao, TipoRegra

# === Constantes das regras ===

CLIENTES_EXCLUIDOS = ("CLINICA SERCOR", "INMED", "MEDICINA OCUPACIONAL")
CLIENTES_CEDI = ("CEDI-RJ", "CEDI-RO", "CEDI-UNIMED", "CEDI_RJ", "CEDI_RO", "CEDI_UNIMED")
CLIENTE_CEDI_UNIFICADO = "CEDIDIAG"
SUFIXO_TELE = "_TELE"

ESPECIALIDADES_MEDICINA_INTERNA = (
    "ANGIOTCS", "TÓRAX", "TORAX", "CORPO", "TOMOGRAFIA", "ONCO MEDICINA INTERNA",
)
ESPECIALIDADES_NEURO = ("CABEÇA-PESCOÇO", "CABECA-PESCOCO")
ESPECIALIDADES_CARDIO = ("CARDIO COM SCORE",)

PRIORIDADES_URGENTE = ("URG", "EMERGENCIA", "EMERGÊNCIA")
PRIORIDADES_ROTINA = ("ROT", "AMBULATORIO", "AMBULATÓRIO", "INTERNADO")
PRIORIDADES_PLANTAO_CEMVALENCA = ("URGENTE", "EMERGENCIA", "PLANTAO")

TERMOS_ONCO = ("ONCO", "PET", "CINTILOGRAFIA")
TERMOS_MAMOGRAFIA = ("MAMOGRAFIA", "TOMOSSINTESE")

MOTIVO_CLIENTE_EXCLUIDO = "CLIENTE_ESPECIFICO_EXCLUIDO"
MOTIVO_CAMPO_AUSENTE = "CAMPO_OBRIGATORIO_AUSENTE"
MOTIVO_DATA_REALIZACAO = "VALIDACAO_PERIODO_DATAS"
MOTIVO_DATA_LAUDO = "DATA_LAUDO_FORA_PERIODO"
MOTIVO_EXCLUIDO_PROCESSAMENTO = "REGISTRO_EXCLUIDO_PROCESSAMENTO"

_LOTE_IN = 500


# === Helpers de condição ===

def _upper(coluna):
    return func.upper(func.trim(coluna), type_=String)


def _vazio(coluna):
    return or_(coluna.is_(None), func.trim(coluna) == "")


def _quantidade_vazia():
    return or_(E.valores.is_(None), E.valores == 0)


def _diferente(coluna, valor):
    return or_(coluna.is_(None), coluna != valor)


def _em_lotes(itens: Sequence, tamanho: int = _LOTE_IN) -> Iterator[Sequence]:
    for i in range(0, len(itens), tamanho):
        yield itens[i:i + tamanho]


def _contem_algum(coluna, termos: Iterable[str]):
    return or_(*[_upper(coluna).contains(t) for t in termos])


def _excluir(ctx: ContextoRegra, codigo: str, motivo: str, detalhes: str, *condicoes) -> int:
    total = ctx.repository.excluir_com_rejeicao(
        ctx.db,
        ctx.arquivo_fonte,
        condicoes,
        motivo=motivo,
        detalhes=f"{codigo}: {detalhes}",
        prazo=ctx.prazo,
        etapa=codigo,
    )
    record_rejeitados(motivo, total)
    return total


def _atualizar(ctx: ContextoRegra, valores: dict, *condicoes) -> int:
    return ctx.repository.atualizar(ctx.db, ctx.arquivo_fonte, condicoes, valores)


# === Exclusões ===

def excluir_realizacao_periodo_atual(ctx: ContextoRegra) -> int:
    """v002: no retroativo, realizações a partir do 1º dia do mês de referência saem."""
    janela = janela_faturamento(ctx.periodo_referencia)
    return _excluir(
        ctx, "v002", MOTIVO_DATA_REALIZACAO,
        f"DATA_REALIZACAO >= {janela.primeiro_dia_mes.isoformat()}",
        E.data_realizacao >= janela.primeiro_dia_mes,
    )


def excluir_laudo_fora_janela(ctx: ContextoRegra) -> int:
    """v003: no retroativo, laudos fora da janela [dia 8, dia 7 do mês seguinte] saem."""
    janela = janela_faturamento(ctx.periodo_referencia)
    return _excluir(
        ctx, "v003", MOTIVO_DATA_LAUDO,
        f"DATA_LAUDO fora de {janela.inicio.isoformat()}..{janela.fim.isoformat()}",
        or_(E.data_laudo < janela.inicio, E.data_laudo > janela.fim),
    )


def excluir_clientes_especificos(ctx: ContextoRegra) -> int:
    return _excluir(
        ctx, "v004", MOTIVO_CLIENTE_EXCLUIDO, "cliente na lista de exclusão",
        _upper(E.empresa).in_(CLIENTES_EXCLUIDOS),
    )


def excluir_campos_obrigatorios(ctx: ContextoRegra) -> int:
    return _excluir(
        ctx, "v017", MOTIVO_CAMPO_AUSENTE, "ESTUDO_DESCRICAO ou EMPRESA vazio",
        or_(_vazio(E.estudo_descricao), _vazio(E.empresa)),
    )


def excluir_clientes_teste(ctx: ContextoRegra) -> int:
    return _excluir(
        ctx, "v032", MOTIVO_EXCLUIDO_PROCESSAMENTO, "cliente de teste",
        _upper(E.empresa).contains("TESTE"),
    )


# === Clientes ===

def unificar_cedi(ctx: ContextoRegra) -> int:
    return _atualizar(
        ctx, {E.empresa: CLIENTE_CEDI_UNIFICADO},
        _upper(E.empresa).in_(CLIENTES_CEDI),
    )


def remover_sufixo_tele(ctx: ContextoRegra) -> int:
    total = 0
    for empresa in ctx.repository.valores_distintos(ctx.db, ctx.arquivo_fonte, "empresa"):
        ctx.prazo.verificar("v001b")
        limpa = empresa.strip()
        if not limpa.upper().endswith(SUFIXO_TELE):
            continue
        total += _atualizar(
            ctx, {E.empresa: limpa[:-len(SUFIXO_TELE)].strip()},
            E.empresa == empresa,
        )
    return total


def mapear_santa_helena(ctx: ContextoRegra) -> int:
    return _atualizar(
        ctx, {E.empresa: "HOSPITAL SANTA HELENA"},
        _upper(E.empresa).contains("SANTA HELENA"),
        E.empresa != "HOSPITAL SANTA HELENA",
    )


def converter_p_cemvalenca_mg(ctx: ContextoRegra) -> int:
    return _atualizar(
        ctx, {E.empresa: "CEMVALENCA_MG"},
        _upper(E.empresa) == "P-CEMVALENCA_MG",
    )


def separar_cemvalenca(ctx: ContextoRegra) -> int:
    """v010b: CEMVALENCA urgente/plantão e RX viram clientes próprios."""
    total = _atualizar(
        ctx, {E.empresa: "CEMVALENCA_PLANTAO"},
        _upper(E.empresa) == "CEMVALENCA",
        _upper(E.prioridade).in_(PRIORIDADES_PLANTAO_CEMVALENCA),
    )
    total += _atualizar(
        ctx, {E.empresa: "CEMVALENCA_RX"},
        _upper(E.empresa) == "CEMVALENCA",
        _upper(E.modalidade) == "RX",
    )
    return total


# === Cadastros ===

def mapear_nomes_medicos(ctx: ContextoRegra) -> int:
    total = 0
    for medico in ctx.repository.valores_distintos(ctx.db, ctx.arquivo_fonte, "medico"):
        ctx.prazo.verificar("v001c")
        canonico = ctx.registros.medicos.get(normalizar_texto(medico))
        if canonico and canonico != medico:
            total += _atualizar(ctx, {E.medico: canonico}, E.medico == medico)
    return total


def preencher_valores_referencia(ctx: ContextoRegra) -> int:
    total = 0
    descricoes = ctx.repository.valores_distintos(
        ctx.db, ctx.arquivo_fonte, "estudo_descricao", _quantidade_vazia()
    )
    for descricao in descricoes:
        ctx.prazo.verificar("v001d")
        valor = ctx.registros.valores.get(normalizar_texto(descricao))
        if valor and valor > 0:
            total += _atualizar(
                ctx, {E.valores: valor},
                E.estudo_descricao == descricao, _quantidade_vazia(),
            )
    return total


def sincronizar_cadastro_exames(ctx: ContextoRegra) -> int:
    """v031: especialidade/categoria passam a ser as do cadastro de exames."""
    total = 0
    for descricao in ctx.repository.valores_distintos(ctx.db, ctx.arquivo_fonte, "estudo_descricao"):
        ctx.prazo.verificar("v031")
        item = ctx.registros.buscar_exame(descricao)
        if item is None:
            continue
        valores = {}
        divergentes = []
        if item.especialidade:
            valores[E.especialidade] = item.especialidade
            divergentes.append(_diferente(E.especialidade, item.especialidade))
        if item.categoria:
            valores[E.categoria] = item.categoria
            divergentes.append(_diferente(E.categoria, item.categoria))
        if valores:
            total += _atualizar(ctx, valores, E.estudo_descricao == descricao, or_(*divergentes))
    return total


def preencher_categoria_cadastro(ctx: ContextoRegra) -> int:
    """v011: categoria vazia vem do cadastro; sem cadastro vira SC."""
    total = 0
    descricoes = ctx.repository.valores_distintos(
        ctx.db, ctx.arquivo_fonte, "estudo_descricao", _vazio(E.categoria)
    )
    for descricao in descricoes:
        ctx.prazo.verificar("v011")
        item = ctx.registros.buscar_exame(descricao)
        if item and item.categoria:
            total += _atualizar(
                ctx, {E.categoria: item.categoria},
                E.estudo_descricao == descricao, _vazio(E.categoria),
            )
    total += _atualizar(ctx, {E.categoria: CATEGORIA_PADRAO}, _vazio(E.categoria))
    return total


def mapear_prioridades(ctx: ContextoRegra) -> int:
    total = 0
    for prioridade in ctx.repository.valores_distintos(ctx.db, ctx.arquivo_fonte, "prioridade"):
        ctx.prazo.verificar("v008")
        final = ctx.registros.prioridades.get(normalizar_texto(prioridade))
        if final and final != prioridade:
            total += _atualizar(ctx, {E.prioridade: final}, E.prioridade == prioridade)
    return total


def separar_colunas(ctx: ContextoRegra) -> int:
    """v034: COLUNAS vai para NEURO (laudo de neurologista) ou MUSCULO ESQUELETICO."""
    eh_colunas = _upper(E.especialidade) == "COLUNAS"
    medicos = ctx.repository.valores_distintos(ctx.db, ctx.arquivo_fonte, "medico", eh_colunas)
    neuros: List[str] = []
    for medico in medicos:
        ctx.prazo.verificar("v034")
        if ctx.registros.eh_neurologista(medico):
            neuros.append(medico)

    total = 0
    for lote in _em_lotes(neuros):
        ctx.prazo.verificar("v034")
        total += _atualizar(
            ctx, {E.especialidade: "NEURO", E.categoria: CATEGORIA_PADRAO},
            eh_colunas, E.medico.in_(lote),
        )
    total += _atualizar(ctx, {E.especialidade: "MUSCULO ESQUELETICO"}, eh_colunas)
    return total


# === Modalidade / especialidade ===

def corrigir_modalidades(ctx: ContextoRegra) -> int:
    """v005: CR/DX viram MG (MAMO), MR (MAMA) ou RX; OT/BMD viram DO."""
    cr_dx = _upper(E.modalidade).in_(("CR", "DX"))
    total = 0
    for descricao in ctx.repository.valores_distintos(ctx.db, ctx.arquivo_fonte, "estudo_descricao", cr_dx):
        ctx.prazo.verificar("v005")
        item = ctx.registros.buscar_exame(descricao)
        especialidade = normalizar_texto(item.especialidade) if item else ""
        destino = {"MAMO": "MG", "MAMA": "MR"}.get(especialidade)
        if destino:
            total += _atualizar(ctx, {E.modalidade: destino}, cr_dx, E.estudo_descricao == descricao)
    total += _atualizar(ctx, {E.modalidade: "RX"}, cr_dx)
    total += _atualizar(ctx, {E.modalidade: "DO"}, _upper(E.modalidade).in_(("OT", "BMD")))
    return total


def modalidade_mamografia(ctx: ContextoRegra) -> int:
    return _atualizar(
        ctx, {E.modalidade: "MG"},
        _contem_algum(E.estudo_descricao, TERMOS_MAMOGRAFIA),
        _diferente(E.modalidade, "MG"),
    )


def corrigir_especialidades(ctx: ContextoRegra) -> int:
    total = _atualizar(
        ctx, {E.especialidade: "MEDICINA INTERNA"},
        _upper(E.especialidade).in_(ESPECIALIDADES_MEDICINA_INTERNA),
    )
    total += _atualizar(
        ctx, {E.especialidade: "NEURO"},
        _upper(E.especialidade).in_(ESPECIALIDADES_NEURO),
    )
    total += _atualizar(
        ctx, {E.especialidade: "CARDIO"},
        _upper(E.especialidade).in_(ESPECIALIDADES_CARDIO),
    )
    total += _atualizar(
        ctx, {E.especialidade: "D.O"},
        _upper(E.modalidade) == "DO", _diferente(E.especialidade, "D.O"),
    )
    return total


def mama_para_mamo(ctx: ContextoRegra) -> int:
    return _atualizar(
        ctx, {E.especialidade: "MAMO"},
        _upper(E.modalidade) == "MG", _upper(E.especialidade) == "MAMA",
    )


def _especialidade_por_modalidade(modalidade: str, especialidade: str):
    def aplicar(ctx: ContextoRegra) -> int:
        return _atualizar(
            ctx, {E.especialidade: especialidade},
            _upper(E.modalidade) == modalidade, _vazio(E.especialidade),
        )
    aplicar.__name__ = f"especialidade_{especialidade.lower()}"
    return aplicar


def categoria_oncologia(ctx: ContextoRegra) -> int:
    return _atualizar(
        ctx, {E.categoria: "ONCO"},
        _contem_algum(E.estudo_descricao, TERMOS_ONCO), _vazio(E.categoria),
    )


# === Prioridade ===

def prioridade_urgente(ctx: ContextoRegra) -> int:
    return _atualizar(ctx, {E.prioridade: "URGENTE"}, _upper(E.prioridade).in_(PRIORIDADES_URGENTE))


def prioridade_rotina(ctx: ContextoRegra) -> int:
    return _atualizar(ctx, {E.prioridade: PRIORIDADE_PADRAO}, _upper(E.prioridade).in_(PRIORIDADES_ROTINA))


def prioridade_padrao(ctx: ContextoRegra) -> int:
    return _atualizar(ctx, {E.prioridade: PRIORIDADE_PADRAO}, _vazio(E.prioridade))


# === Preenchimentos finais ===

def preencher_periodo(ctx: ContextoRegra) -> int:
    return _atualizar(
        ctx, {E.periodo_referencia: ctx.periodo_referencia},
        _vazio(E.periodo_referencia),
    )


def quantidade_padrao(ctx: ContextoRegra) -> int:
    return _atualizar(ctx, {E.valores: QUANTIDADE_PADRAO}, _quantidade_vazia())


def quebrar_exames(ctx: ContextoRegra) -> int:
    from services.quebra_exames import DivisorExames

    resultado = DivisorExames(repository=ctx.repository).dividir_exames(
        ctx.db, ctx.arquivo_fonte, ctx.registros, ctx.prazo
    )
    ctx.extras["quebra"] = resultado
    return resultado["novos_registros_criados"]


# === Catálogo ===

REGRAS: Tuple[RegraNormalizacao, ...] = (
    RegraNormalizacao("v002", "Exclusão por data de realização (retroativo)", TipoRegra.EXCLUSAO,
                      excluir_realizacao_periodo_atual, apenas_retroativo=True,
                      motivo_rejeicao=MOTIVO_DATA_REALIZACAO),
    RegraNormalizacao("v003", "Exclusão por data de laudo fora da janela (retroativo)", TipoRegra.EXCLUSAO,
                      excluir_laudo_fora_janela, apenas_retroativo=True,
                      motivo_rejeicao=MOTIVO_DATA_LAUDO),
    RegraNormalizacao("v004", "Exclusão de clientes específicos", TipoRegra.EXCLUSAO,
                      excluir_clientes_especificos, motivo_rejeicao=MOTIVO_CLIENTE_EXCLUIDO),
    RegraNormalizacao("v017", "Exclusão de registros sem descrição ou cliente", TipoRegra.EXCLUSAO,
                      excluir_campos_obrigatorios, motivo_rejeicao=MOTIVO_CAMPO_AUSENTE),
    RegraNormalizacao("v032", "Exclusão de clientes de teste", TipoRegra.EXCLUSAO,
                      excluir_clientes_teste, motivo_rejeicao=MOTIVO_EXCLUIDO_PROCESSAMENTO),
    RegraNormalizacao("v001", "Unificação CEDI -> CEDIDIAG", TipoRegra.RENOMEACAO, unificar_cedi),
    RegraNormalizacao("v001b", "Remoção do sufixo _TELE", TipoRegra.RENOMEACAO, remover_sufixo_tele),
    RegraNormalizacao("v001c", "De-para de nomes de médicos", TipoRegra.RENOMEACAO, mapear_nomes_medicos),
    RegraNormalizacao("v001d", "Quantidade pelo cadastro de valores", TipoRegra.PREENCHIMENTO,
                      preencher_valores_referencia),
    RegraNormalizacao("v031", "Especialidade/categoria do cadastro de exames", TipoRegra.RENOMEACAO,
                      sincronizar_cadastro_exames),
    RegraNormalizacao("v005", "Correção de modalidades", TipoRegra.RENOMEACAO, corrigir_modalidades),
    RegraNormalizacao("v020", "Modalidade de mamografia", TipoRegra.RENOMEACAO, modalidade_mamografia),
    RegraNormalizacao("v007", "Correção de especialidades", TipoRegra.RENOMEACAO, corrigir_especialidades),
    RegraNormalizacao("v034", "Colunas -> Neuro ou Músculo Esquelético", TipoRegra.RENOMEACAO, separar_colunas),
    RegraNormalizacao("v044", "MAMA -> MAMO em mamografia", TipoRegra.RENOMEACAO, mama_para_mamo),
    RegraNormalizacao("v008", "De-para de prioridades", TipoRegra.RENOMEACAO, mapear_prioridades),
    RegraNormalizacao("v018", "Prioridade urgente", TipoRegra.RENOMEACAO, prioridade_urgente),
    RegraNormalizacao("v019", "Prioridade rotina", TipoRegra.RENOMEACAO, prioridade_rotina),
    RegraNormalizacao("v009", "Prioridade padrão", TipoRegra.PREENCHIMENTO, prioridade_padrao),
    RegraNormalizacao("v010", "Hospital Santa Helena", TipoRegra.RENOMEACAO, mapear_santa_helena),
    RegraNormalizacao("v010a", "P-CEMVALENCA_MG -> CEMVALENCA_MG", TipoRegra.RENOMEACAO,
                      converter_p_cemvalenca_mg),
    RegraNormalizacao("v010b", "Separação CEMVALENCA plantão/RX", TipoRegra.RENOMEACAO, separar_cemvalenca),
    RegraNormalizacao("v021", "Categoria oncologia", TipoRegra.PREENCHIMENTO, categoria_oncologia),
    RegraNormalizacao("v011", "Categoria pelo cadastro (padrão SC)", TipoRegra.PREENCHIMENTO,
                      preencher_categoria_cadastro),
    RegraNormalizacao("v012", "Especialidade RX", TipoRegra.PREENCHIMENTO,
                      _especialidade_por_modalidade("RX", "RX")),
    RegraNormalizacao("v013", "Especialidade TC", TipoRegra.PREENCHIMENTO,
                      _especialidade_por_modalidade("CT", "TC")),
    RegraNormalizacao("v014", "Especialidade RM", TipoRegra.PREENCHIMENTO,
                      _especialidade_por_modalidade("MR", "RM")),
    RegraNormalizacao("v016", "Período de referência", TipoRegra.PREENCHIMENTO, preencher_periodo),
    RegraNormalizacao("v023", "Quantidade padrão", TipoRegra.PREENCHIMENTO, quantidade_padrao),
    RegraNormalizacao("v027", "Quebra de exames compostos", TipoRegra.QUEBRA, quebrar_exames),
)
