"""
Precificação dos exames de um cliente.

O volume que escolhe a faixa de preço é o volume do grupo definido
pela condição de volume do cliente (MOD, MOD/ESP, MOD/ESP/CAT ou
GLOBAL). Prioridade de urgência usa o preço de urgência quando
cadastrado, senão o preço base com o percentual de urgência.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from config import DemonstrativoConfig
from models import PrecoServico
from utils.text_utils import normalizar_texto

from .valores import arredondar, como_decimal

ChaveVolume = Tuple[str, ...]


@dataclass
class LinhaPreco:
    """Campos do exame usados na precificação (cópia desacoplada da sessão)."""
    modalidade: Optional[str] = None
    especialidade: Optional[str] = None
    categoria: Optional[str] = None
    prioridade: Optional[str] = None
    estudo_descricao: Optional[str] = None
    valores: Any = None

    @classmethod
    def de_registro(cls, exame) -> "LinhaPreco":
        return cls(
            modalidade=exame.modalidade,
            especialidade=exame.especialidade,
            categoria=exame.categoria,
            prioridade=exame.prioridade,
            estudo_descricao=exame.estudo_descricao,
            valores=exame.valores,
        )


def chave_volume(exame: LinhaPreco, cond_volume: Optional[str]) -> ChaveVolume:
    """Chave de agrupamento do volume conforme a condição do cliente."""
    cond = normalizar_texto(cond_volume) or DemonstrativoConfig.CONDICAO_VOLUME_PADRAO
    if cond not in DemonstrativoConfig.CONDICOES_VOLUME:
        cond = DemonstrativoConfig.CONDICAO_VOLUME_PADRAO
    if cond == "GLOBAL":
        return ()
    partes = [normalizar_texto(exame.modalidade)]
    if cond in ("MOD/ESP", "MOD/ESP/CAT"):
        partes.append(normalizar_texto(exame.especialidade))
    if cond == "MOD/ESP/CAT":
        partes.append(normalizar_texto(exame.categoria))
    return tuple(partes)


def quantidade(exame: LinhaPreco) -> Decimal:
    qtd = como_decimal(exame.valores)
    return qtd if qtd > 0 else Decimal("1")


def volumes_por_grupo(
    exames: Iterable[LinhaPreco], cond_volume: Optional[str]
) -> Dict[ChaveVolume, Decimal]:
    volumes: Dict[ChaveVolume, Decimal] = {}
    for exame in exames:
        chave = chave_volume(exame, cond_volume)
        volumes[chave] = volumes.get(chave, Decimal("0")) + quantidade(exame)
    return volumes


def eh_urgencia(prioridade: Optional[str]) -> bool:
    return normalizar_texto(prioridade) in DemonstrativoConfig.PRIORIDADES_URGENCIA


class TabelaPrecos:
    """
    Índice da tabela de preços de um cliente.

    Uso:
        tabela = TabelaPrecos(precos, percentual_urgencia=20)
        valor = tabela.valor_unitario("CT", "NEURO", "SC", "ROTINA", volume=150)
    """

    def __init__(self, precos: Sequence[PrecoServico], percentual_urgencia: Any = 0):
        self._percentual_urgencia = como_decimal(percentual_urgencia)
        self._indice: Dict[Tuple[str, str], List[PrecoServico]] = {}
        for preco in precos:
            chave = (normalizar_texto(preco.modalidade), normalizar_texto(preco.especialidade))
            self._indice.setdefault(chave, []).append(preco)

    @staticmethod
    def _na_faixa(preco: PrecoServico, volume: Decimal) -> bool:
        if preco.volume_inicial is not None and volume < preco.volume_inicial:
            return False
        if preco.volume_final is not None and volume > preco.volume_final:
            return False
        return True

    def localizar(
        self,
        modalidade: Optional[str],
        especialidade: Optional[str],
        categoria: Optional[str],
        prioridade: Optional[str],
        volume: Decimal,
    ) -> Optional[PrecoServico]:
        """
        Preço mais específico para o exame.

        Categoria e prioridade cadastradas precisam casar; entrada sem
        categoria/prioridade vale para qualquer uma, com menor preferência.
        """
        candidatos = self._indice.get(
            (normalizar_texto(modalidade), normalizar_texto(especialidade)), []
        )
        cat = normalizar_texto(categoria)
        prio = normalizar_texto(prioridade)
        melhor: Optional[PrecoServico] = None
        melhor_peso = -1
        for preco in candidatos:
            if not self._na_faixa(preco, volume):
                continue
            cat_preco = normalizar_texto(preco.categoria)
            prio_preco = normalizar_texto(preco.prioridade)
            if cat_preco and cat_preco != cat:
                continue
            if prio_preco and prio_preco != prio:
                continue
            peso = (2 if cat_preco else 0) + (1 if prio_preco else 0)
            if peso > melhor_peso:
                melhor, melhor_peso = preco, peso
        return melhor

    def valor_unitario(
        self,
        modalidade: Optional[str],
        especialidade: Optional[str],
        categoria: Optional[str],
        prioridade: Optional[str],
        volume: Decimal,
    ) -> Decimal:
        preco = self.localizar(modalidade, especialidade, categoria, prioridade, volume)
        if preco is None:
            return Decimal("0")
        base = como_decimal(preco.valor_base)
        if eh_urgencia(prioridade):
            if preco.valor_urgencia is not None:
                return como_decimal(preco.valor_urgencia)
            if self._percentual_urgencia > 0:
                return arredondar(base * (1 + self._percentual_urgencia / Decimal("100")))
        return base


@dataclass
class ItemDemonstrativo:
    modalidade: str
    especialidade: str
    categoria: str
    prioridade: str
    quantidade: Decimal = Decimal("0")
    valor_unitario: Decimal = Decimal("0")
    valor_total: Decimal = Decimal("0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modalidade": self.modalidade,
            "especialidade": self.especialidade,
            "categoria": self.categoria,
            "prioridade": self.prioridade,
            "quantidade": float(self.quantidade),
            "valor_unitario": float(self.valor_unitario),
            "valor_total": float(self.valor_total),
            "status": "com_preco" if self.valor_unitario > 0 else "sem_preco",
        }


@dataclass
class ValoracaoExames:
    total_exames: Decimal = Decimal("0")
    valor_exames: Decimal = Decimal("0")
    itens: List[ItemDemonstrativo] = field(default_factory=list)

    @property
    def itens_sem_preco(self) -> int:
        return sum(1 for item in self.itens if item.valor_unitario <= 0)


def valorar_exames(
    exames: Sequence[LinhaPreco],
    tabela: TabelaPrecos,
    cond_volume: Optional[str],
) -> ValoracaoExames:
    """Soma preço unitário x quantidade, detalhando por mod/esp/cat/prioridade."""
    volumes = volumes_por_grupo(exames, cond_volume)
    itens: "OrderedDict[Tuple[str, str, str, str], ItemDemonstrativo]" = OrderedDict()
    resultado = ValoracaoExames()

    for exame in exames:
        qtd = quantidade(exame)
        volume = volumes[chave_volume(exame, cond_volume)]
        unitario = tabela.valor_unitario(
            exame.modalidade, exame.especialidade, exame.categoria, exame.prioridade, volume
        )
        total = arredondar(unitario * qtd)

        chave = (
            exame.modalidade or "",
            exame.especialidade or "",
            exame.categoria or "",
            exame.prioridade or "",
        )
        item = itens.get(chave)
        if item is None:
            item = itens[chave] = ItemDemonstrativo(*chave)
        item.quantidade += qtd
        item.valor_total += total

        resultado.total_exames += qtd
        resultado.valor_exames += total

    for item in itens.values():
        item.valor_unitario = arredondar(item.valor_total / item.quantidade) if item.quantidade else Decimal("0")
    resultado.itens = list(itens.values())
    return resultado
