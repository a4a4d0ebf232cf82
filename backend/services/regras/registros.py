"""
Snapshot imutável dos cadastros de referência.

Carregado uma vez por execução do pipeline e injetado em todas as
regras; nenhuma regra consulta os cadastros diretamente.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from exceptions import RegistryReadError
from logging_config import get_logger
from repositories.cadastro_repository import CadastroRepository, cadastro_repository
from utils.text_utils import normalizar_nome_medico, normalizar_texto

logger = get_logger('services.regras.registros')


@dataclass(frozen=True)
class ItemCatalogo:
    """Entrada do catálogo de exames."""
    nome: str
    modalidade: Optional[str] = None
    especialidade: Optional[str] = None
    categoria: Optional[str] = None


@dataclass(frozen=True)
class RegraQuebra:
    """Um exame resultante de uma regra de quebra."""
    exame_original: str
    exame_quebrado: str
    categoria_quebrada: Optional[str] = None


def _congelar(dados: dict) -> Mapping:
    return MappingProxyType(dict(dados))


@dataclass(frozen=True)
class RegistrosReferencia:
    """
    Cadastros de referência indexados pela forma normalizada da chave.

    Attributes:
        catalogo: descrição do exame -> ItemCatalogo
        medicos: grafia de origem do médico -> nome canônico
        valores: descrição do exame -> quantidade padrão
        prioridades: prioridade de origem -> prioridade final
        neurologistas: nomes normalizados (sem Dr./Dra.)
        regras_quebra: regras ativas de quebra de exames
    """
    catalogo: Mapping[str, ItemCatalogo] = field(default_factory=lambda: _congelar({}))
    medicos: Mapping[str, str] = field(default_factory=lambda: _congelar({}))
    valores: Mapping[str, Decimal] = field(default_factory=lambda: _congelar({}))
    prioridades: Mapping[str, str] = field(default_factory=lambda: _congelar({}))
    neurologistas: Tuple[str, ...] = ()
    regras_quebra: Tuple[RegraQuebra, ...] = ()

    def buscar_exame(self, descricao: Optional[str]) -> Optional[ItemCatalogo]:
        return self.catalogo.get(normalizar_texto(descricao))

    def eh_neurologista(self, medico: Optional[str]) -> bool:
        """
        Médico é neurologista quando o nome (sem Dr./Dra.) é igual a um
        nome do cadastro ou começa pelo primeiro nome dele.
        """
        nome = normalizar_nome_medico(medico)
        if not nome:
            return False
        for neuro in self.neurologistas:
            if nome == neuro:
                return True
            primeiro = neuro.split(" ")[0]
            if primeiro and nome.startswith(primeiro):
                return True
        return False

    @classmethod
    def criar(
        cls,
        catalogo=(),
        medicos=None,
        valores=None,
        prioridades=None,
        neurologistas=(),
        regras_quebra=(),
    ) -> "RegistrosReferencia":
        """
        Monta um snapshot a partir de estruturas simples.

        Args:
            catalogo: iterável de ItemCatalogo
            medicos: dict origem -> canônico
            valores: dict descrição -> quantidade
            prioridades: dict origem -> final
            neurologistas: iterável de nomes
            regras_quebra: iterável de RegraQuebra
        """
        itens = {}
        for item in catalogo:
            chave = normalizar_texto(item.nome)
            # primeira entrada ativa vence
            if chave and chave not in itens:
                itens[chave] = item
        return cls(
            catalogo=_congelar(itens),
            medicos=_congelar({
                normalizar_texto(k): v for k, v in (medicos or {}).items() if k and v
            }),
            valores=_congelar({
                normalizar_texto(k): Decimal(str(v)) for k, v in (valores or {}).items()
                if k and v is not None
            }),
            prioridades=_congelar({
                normalizar_texto(k): v for k, v in (prioridades or {}).items() if k and v
            }),
            neurologistas=tuple(
                n for n in (normalizar_nome_medico(x) for x in neurologistas) if n
            ),
            regras_quebra=tuple(regras_quebra),
        )


def carregar_registros(
    db: Session,
    repository: CadastroRepository = cadastro_repository,
) -> RegistrosReferencia:
    """
    Lê todos os cadastros ativos e monta o snapshot.

    Raises:
        RegistryReadError: falha ao ler qualquer cadastro (bloqueia o pipeline)
    """
    cadastro = "cadastro_exames"
    try:
        catalogo = [
            ItemCatalogo(
                nome=e.nome,
                modalidade=e.modalidade,
                especialidade=e.especialidade,
                categoria=e.categoria,
            )
            for e in repository.listar_exames(db)
        ]
        cadastro = "mapeamento_nomes_medicos"
        medicos = {m.nome_origem: m.medico_nome for m in repository.listar_mapeamentos_medicos(db)}
        cadastro = "valores_referencia"
        valores = {v.estudo_descricao: v.valores for v in repository.listar_valores_referencia(db)}
        cadastro = "prioridades_de_para"
        prioridades = {p.prioridade_original: p.nome_final for p in repository.listar_prioridades(db)}
        cadastro = "medicos_neurologistas"
        neurologistas = [n.nome for n in repository.listar_neurologistas(db)]
        cadastro = "regras_quebra_exames"
        regras_quebra = [
            RegraQuebra(
                exame_original=r.exame_original,
                exame_quebrado=r.exame_quebrado,
                categoria_quebrada=r.categoria_quebrada,
            )
            for r in repository.listar_regras_quebra(db)
        ]
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Falha ao carregar cadastro {cadastro}: {e}")
        raise RegistryReadError(cadastro, str(e)) from e

    registros = RegistrosReferencia.criar(
        catalogo=catalogo,
        medicos=medicos,
        valores=valores,
        prioridades=prioridades,
        neurologistas=neurologistas,
        regras_quebra=regras_quebra,
    )
    logger.info(
        f"Cadastros carregados: {len(registros.catalogo)} exames, "
        f"{len(registros.medicos)} médicos, {len(registros.regras_quebra)} regras de quebra"
    )
    return registros
