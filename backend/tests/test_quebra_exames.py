"""
Testes para a quebra de exames compostos (services/quebra_exames.py).
"""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from conftest import make_exame
from models import ExameVolumetria, RegistroRejeitado
from services.quebra_exames import MOTIVO_ORIGINAL_REMOVIDO, DivisorExames
from services.regras import ItemCatalogo, RegraQuebra, RegistrosReferencia
from utils.timeout import PipelineTimeoutError, Prazo

ARQUIVO = "volumetria_padrao"

REGRAS_TORAX_ABDOME = (
    RegraQuebra("TC TORAX E ABDOME", "TC TORAX"),
    RegraQuebra("TC TORAX E ABDOME", "TC ABDOME", "ONCO"),
)


def _registros(regras=REGRAS_TORAX_ABDOME, catalogo=()):
    return RegistrosReferencia.criar(catalogo=catalogo, regras_quebra=regras)


def _exames(db):
    db.expire_all()
    return db.query(ExameVolumetria).order_by(ExameVolumetria.id).all()


class TestAgruparRegras:

    def test_groups_by_normalized_original(self):
        regras = [
            RegraQuebra("TC Torax e Abdome", "TC TORAX"),
            RegraQuebra("RM COLUNA TOTAL", "RM COLUNA CERVICAL"),
            RegraQuebra("tc torax  e abdome", "TC ABDOME"),
        ]

        grupos = DivisorExames.agrupar_regras(regras)

        assert list(grupos) == ["TC TORAX E ABDOME", "RM COLUNA TOTAL"]
        assert len(grupos["TC TORAX E ABDOME"]) == 2

    def test_self_referencing_rule_ignored(self):
        grupos = DivisorExames.agrupar_regras([RegraQuebra("RM CRANIO", "rm cranio")])

        assert grupos == {}


class TestCriarExameQuebrado:

    def test_child_inherits_and_uses_catalog(self):
        original = make_exame(
            estudo_descricao="TC TORAX E ABDOME", valores=Decimal("2"),
            especialidade="CORPO", categoria="SC", prioridade="URGENTE",
        )
        registros = _registros(catalogo=[ItemCatalogo("TC TORAX", "CT", "MEDICINA INTERNA", "ANGIO")])

        novo = DivisorExames().criar_exame_quebrado(original, REGRAS_TORAX_ABDOME[0], registros)

        assert novo.estudo_descricao == "TC TORAX"
        assert novo.valores == 1
        assert novo.prioridade == "URGENTE"
        assert novo.empresa == original.empresa
        assert novo.especialidade == "MEDICINA INTERNA"
        assert novo.categoria == "ANGIO"

    def test_rule_category_has_priority(self):
        original = make_exame(estudo_descricao="TC TORAX E ABDOME", categoria="SC")

        novo = DivisorExames().criar_exame_quebrado(original, REGRAS_TORAX_ABDOME[1], _registros())

        assert novo.categoria == "ONCO"
        assert novo.especialidade == original.especialidade

    def test_default_category(self):
        original = make_exame(estudo_descricao="TC TORAX E ABDOME", categoria=None)

        novo = DivisorExames().criar_exame_quebrado(original, REGRAS_TORAX_ABDOME[0], _registros())

        assert novo.categoria == "SC"


class TestDividirExames:

    def test_split_replaces_originals(self, db_session, add_all):
        add_all(
            *[make_exame(estudo_descricao="TC TORAX E ABDOME", valores=Decimal("2")) for _ in range(3)],
            make_exame(estudo_descricao="RM CRANIO"),
        )

        resultado = DivisorExames(page_size=2).dividir_exames(db_session, ARQUIVO, _registros())

        assert resultado["originais_substituidos"] == 3
        assert resultado["novos_registros_criados"] == 6
        assert resultado["grupos_processados"] == 1
        assert resultado["erros"] == []

        descricoes = sorted(e.estudo_descricao for e in _exames(db_session))
        assert descricoes == ["RM CRANIO"] + ["TC ABDOME"] * 3 + ["TC TORAX"] * 3
        rejeitados = db_session.query(RegistroRejeitado).all()
        assert len(rejeitados) == 3
        assert all(r.motivo_rejeicao == MOTIVO_ORIGINAL_REMOVIDO for r in rejeitados)

    def test_matching_ignores_case_and_spaces(self, db_session, add_all):
        add_all(make_exame(estudo_descricao="  tc torax e abdome "))

        resultado = DivisorExames().dividir_exames(db_session, ARQUIVO, _registros())

        assert resultado["originais_substituidos"] == 1

    def test_second_run_is_noop(self, db_session, add_all):
        add_all(make_exame(estudo_descricao="TC TORAX E ABDOME"))
        divisor = DivisorExames()

        divisor.dividir_exames(db_session, ARQUIVO, _registros())
        resultado = divisor.dividir_exames(db_session, ARQUIVO, _registros())

        assert resultado["novos_registros_criados"] == 0
        assert len(_exames(db_session)) == 2

    def test_group_failure_does_not_stop_others(self, db_session, add_all):
        add_all(
            make_exame(estudo_descricao="TC TORAX E ABDOME"),
            make_exame(estudo_descricao="RM COLUNA TOTAL"),
        )
        regras = REGRAS_TORAX_ABDOME + (RegraQuebra("RM COLUNA TOTAL", "RM COLUNA CERVICAL"),)
        divisor = DivisorExames()
        original = divisor.criar_exame_quebrado

        def criar(exame, regra, registros):
            if regra.exame_original == "TC TORAX E ABDOME":
                raise ValueError("falha simulada")
            return original(exame, regra, registros)

        divisor.criar_exame_quebrado = criar

        resultado = divisor.dividir_exames(db_session, ARQUIVO, _registros(regras))

        assert resultado["grupos_processados"] == 1
        assert resultado["erros"][0]["exame_original"] == "TC TORAX E ABDOME"
        descricoes = sorted(e.estudo_descricao for e in _exames(db_session))
        assert descricoes == ["RM COLUNA CERVICAL", "TC TORAX E ABDOME"]

    def test_timeout_propagates(self, db_session, add_all):
        add_all(make_exame(estudo_descricao="TC TORAX E ABDOME"))
        prazo = MagicMock(spec=Prazo)
        prazo.verificar.side_effect = PipelineTimeoutError("estourou", 1)

        with pytest.raises(PipelineTimeoutError):
            DivisorExames().dividir_exames(db_session, ARQUIVO, _registros(), prazo)

        assert len(_exames(db_session)) == 1
