"""
Testes para o motor de regras de normalização.

Testa services/regras (snapshot de cadastros, motor e catálogo de regras).
O motor é testado com regras fake e repositório mockado; as regras do
catálogo rodam contra o banco SQLite de teste.
"""
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from conftest import make_cadastro, make_exame
from exceptions import InvalidPeriodError, RegistryReadError
from models import ExameVolumetria, RegistroRejeitado, ValorReferencia
from services.regras import (
    REGRAS,
    ContextoRegra,
    ItemCatalogo,
    MotorRegras,
    RegistrosReferencia,
    RegraNormalizacao,
    TipoRegra,
    carregar_registros,
)
from services.regras import catalogo
from utils.timeout import PipelineTimeoutError, Prazo

ARQUIVO = "volumetria_padrao"
RETROATIVO = "volumetria_padrao_retroativo"


# === Helpers ===

def _ctx(db, registros=None, arquivo=ARQUIVO, periodo="2025-06"):
    return ContextoRegra(
        db=db,
        arquivo_fonte=arquivo,
        periodo_referencia=periodo,
        registros=registros or RegistrosReferencia.criar(),
        prazo=Prazo(300, "teste"),
    )


def _regra(codigo, aplicar, apenas_retroativo=False):
    return RegraNormalizacao(codigo, f"Regra {codigo}", TipoRegra.RENOMEACAO, aplicar,
                             apenas_retroativo=apenas_retroativo)


def _exames(db, arquivo=ARQUIVO):
    db.expire_all()
    return db.query(ExameVolumetria).filter(
        ExameVolumetria.arquivo_fonte == arquivo
    ).order_by(ExameVolumetria.id).all()


class _Relogio:
    def __init__(self):
        self.agora = 0.0

    def __call__(self):
        return self.agora


@pytest.fixture
def mock_repository():
    repo = MagicMock()
    repo.contar_por_arquivo = MagicMock(side_effect=[10, 8])
    return repo


# === RegistrosReferencia ===

class TestRegistrosReferencia:

    def test_catalog_keys_are_normalized(self):
        registros = RegistrosReferencia.criar(
            catalogo=[ItemCatalogo("TC Tórax", "CT", "MEDICINA INTERNA", "SC")]
        )

        assert registros.buscar_exame("tc  torax").especialidade == "MEDICINA INTERNA"
        assert registros.buscar_exame("RM CRANIO") is None

    def test_first_catalog_entry_wins(self):
        registros = RegistrosReferencia.criar(catalogo=[
            ItemCatalogo("RM CRANIO", categoria="SC"),
            ItemCatalogo("rm cranio", categoria="ONCO"),
        ])

        assert registros.buscar_exame("RM CRANIO").categoria == "SC"

    def test_snapshot_is_read_only(self):
        registros = RegistrosReferencia.criar(medicos={"Dr Fulano": "Dr. Fulano de Tal"})

        with pytest.raises(TypeError):
            registros.medicos["X"] = "Y"

    def test_neurologist_exact_and_first_name(self):
        registros = RegistrosReferencia.criar(neurologistas=["Dr. Carlos Neuro"])

        assert registros.eh_neurologista("Dr. Carlos Neuro")
        assert registros.eh_neurologista("Dra Carlos N.")
        assert not registros.eh_neurologista("Dr. Paulo Osso")
        assert not registros.eh_neurologista(None)

    def test_load_from_database(self, db_session, add_all):
        add_all(
            make_cadastro("TC CRANIO", "CT", "NEURO", "SC"),
            ValorReferencia(estudo_descricao="RX TORAX", valores=Decimal("2"), ativo=True),
            ValorReferencia(estudo_descricao="RX MAO", valores=Decimal("3"), ativo=False),
        )

        registros = carregar_registros(db_session)

        assert registros.buscar_exame("TC CRANIO").modalidade == "CT"
        assert dict(registros.valores) == {"RX TORAX": Decimal("2")}

    def test_load_failure_raises_registry_error(self):
        from sqlalchemy.exc import OperationalError

        repo = MagicMock()
        repo.listar_exames.return_value = []
        repo.listar_mapeamentos_medicos.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(RegistryReadError) as exc_info:
            carregar_registros(MagicMock(), repository=repo)

        assert exc_info.value.cadastro == "mapeamento_nomes_medicos"


# === MotorRegras ===

class TestMotorRegras:

    def test_rules_run_in_order(self, mock_repository):
        chamadas = []
        regras = [
            _regra("a", lambda ctx: chamadas.append("a") or 1),
            _regra("b", lambda ctx: chamadas.append("b") or 2),
        ]
        motor = MotorRegras(regras=regras, repository=mock_repository,
                            carregar=lambda db: RegistrosReferencia.criar())

        resultado = motor.aplicar_regras(MagicMock(), ARQUIVO, "2025-06")

        assert chamadas == ["a", "b"]
        assert resultado.regras_aplicadas == ["a", "b"]
        assert resultado.registros_antes == 10
        assert resultado.registros_depois == 8
        assert resultado.to_dict()["registros_excluidos"] == 2

    def test_failing_rule_is_recorded_and_run_continues(self, mock_repository):
        def falha(ctx):
            raise ValueError("coluna inexistente")

        db = MagicMock()
        regras = [_regra("a", falha), _regra("b", lambda ctx: 3)]
        motor = MotorRegras(regras=regras, repository=mock_repository,
                            carregar=lambda db: RegistrosReferencia.criar())

        resultado = motor.aplicar_regras(db, ARQUIVO, "2025-06")

        assert resultado.regras_com_erro == ["a"]
        assert resultado.regras_aplicadas == ["b"]
        assert "coluna inexistente" in resultado.regras[0].erro
        db.rollback.assert_called()

    def test_no_records_skips_rules(self):
        repo = MagicMock()
        repo.contar_por_arquivo.return_value = 0
        aplicar = MagicMock(return_value=0)
        carregar = MagicMock()
        motor = MotorRegras(regras=[_regra("a", aplicar)], repository=repo, carregar=carregar)

        resultado = motor.aplicar_regras(MagicMock(), ARQUIVO, "2025-06")

        assert resultado.regras == []
        assert resultado.mensagem is not None
        aplicar.assert_not_called()
        carregar.assert_not_called()

    def test_invalid_period_raises(self, mock_repository):
        motor = MotorRegras(regras=[], repository=mock_repository)

        with pytest.raises(InvalidPeriodError):
            motor.aplicar_regras(MagicMock(), ARQUIVO, "2025-13")

    def test_registry_error_aborts(self, mock_repository):
        def carregar(db):
            raise RegistryReadError("cadastro_exames", "timeout")

        motor = MotorRegras(regras=[_regra("a", lambda ctx: 0)],
                            repository=mock_repository, carregar=carregar)

        with pytest.raises(RegistryReadError):
            motor.aplicar_regras(MagicMock(), ARQUIVO, "2025-06")

    def test_timeout_aborts_and_keeps_progress(self, mock_repository):
        relogio = _Relogio()

        def lenta(ctx):
            relogio.agora = 100
            return 1

        progresso = MagicMock()
        regras = [_regra("a", lenta), _regra("b", lambda ctx: 1)]
        motor = MotorRegras(regras=regras, timeout_seconds=50, repository=mock_repository,
                            carregar=lambda db: RegistrosReferencia.criar(), clock=relogio)

        with pytest.raises(PipelineTimeoutError):
            motor.aplicar_regras(MagicMock(), ARQUIVO, "2025-06", progress_callback=progresso)

        progresso.assert_called_once()
        args = progresso.call_args[0]
        assert args[0] == 1 and args[1] == 2 and args[2] == "a"
        assert args[4] == ["a"]

    def test_retroactive_rules_only_for_retroactive_files(self, mock_repository):
        regras = [_regra("r", lambda ctx: 0, apenas_retroativo=True), _regra("n", lambda ctx: 0)]
        motor = MotorRegras(regras=regras, repository=mock_repository)

        assert [r.codigo for r in motor.regras_para(ARQUIVO)] == ["n"]
        assert [r.codigo for r in motor.regras_para(RETROATIVO)] == ["r", "n"]

    def test_progress_callback_receives_applied_codes(self, mock_repository):
        progresso = MagicMock()
        regras = [_regra("a", lambda ctx: 0), _regra("b", lambda ctx: 0)]
        motor = MotorRegras(regras=regras, repository=mock_repository,
                            carregar=lambda db: RegistrosReferencia.criar())

        motor.aplicar_regras(MagicMock(), ARQUIVO, "2025-06", progress_callback=progresso)

        assert progresso.call_count == 2
        assert progresso.call_args_list[1][0][4] == ["a", "b"]


# === Catálogo ===

class TestCatalogo:

    def test_catalog_codes_are_unique(self):
        codigos = [r.codigo for r in REGRAS]
        assert len(codigos) == len(set(codigos))

    def test_split_is_last_rule(self):
        assert REGRAS[-1].codigo == "v027"
        assert REGRAS[-1].tipo == TipoRegra.QUEBRA

    def test_exclusions_come_first(self):
        tipos = [r.tipo for r in MotorRegras().regras_para(RETROATIVO)]
        ultima_exclusao = max(i for i, t in enumerate(tipos) if t == TipoRegra.EXCLUSAO)
        primeira_outra = min(i for i, t in enumerate(tipos) if t != TipoRegra.EXCLUSAO)
        assert ultima_exclusao < primeira_outra

    def test_exclusion_rules_have_reason(self):
        for regra in REGRAS:
            if regra.tipo == TipoRegra.EXCLUSAO:
                assert regra.motivo_rejeicao


class TestRegrasExclusao:

    def test_excluded_clients_go_to_rejected(self, db_session, add_all):
        add_all(
            make_exame(empresa="INMED"),
            make_exame(empresa=" clinica sercor "),
            make_exame(empresa="CLINICA ALFA"),
        )

        afetados = catalogo.excluir_clientes_especificos(_ctx(db_session))

        assert afetados == 2
        assert [e.empresa for e in _exames(db_session)] == ["CLINICA ALFA"]
        rejeitados = db_session.query(RegistroRejeitado).all()
        assert len(rejeitados) == 2
        assert {r.motivo_rejeicao for r in rejeitados} == {catalogo.MOTIVO_CLIENTE_EXCLUIDO}
        assert rejeitados[0].dados_originais["empresa"] in ("INMED", " clinica sercor ")

    def test_missing_required_fields(self, db_session, add_all):
        add_all(
            make_exame(estudo_descricao=None),
            make_exame(empresa="  "),
            make_exame(),
        )

        afetados = catalogo.excluir_campos_obrigatorios(_ctx(db_session))

        assert afetados == 2
        assert len(_exames(db_session)) == 1

    def test_test_clients_excluded(self, db_session, add_all):
        add_all(make_exame(empresa="CLINICA TESTE"), make_exame())

        assert catalogo.excluir_clientes_teste(_ctx(db_session)) == 1

    def test_retroactive_realization_date(self, db_session, add_all):
        add_all(
            make_exame(arquivo_fonte=RETROATIVO, data_realizacao=date(2025, 6, 1)),
            make_exame(arquivo_fonte=RETROATIVO, data_realizacao=date(2025, 5, 31)),
        )

        afetados = catalogo.excluir_realizacao_periodo_atual(_ctx(db_session, arquivo=RETROATIVO))

        assert afetados == 1
        assert _exames(db_session, RETROATIVO)[0].data_realizacao == date(2025, 5, 31)

    def test_retroactive_report_date_window(self, db_session, add_all):
        add_all(
            make_exame(arquivo_fonte=RETROATIVO, data_laudo=date(2025, 6, 7)),
            make_exame(arquivo_fonte=RETROATIVO, data_laudo=date(2025, 6, 8)),
            make_exame(arquivo_fonte=RETROATIVO, data_laudo=date(2025, 7, 7)),
            make_exame(arquivo_fonte=RETROATIVO, data_laudo=date(2025, 7, 8)),
        )

        afetados = catalogo.excluir_laudo_fora_janela(_ctx(db_session, arquivo=RETROATIVO))

        assert afetados == 2
        datas = [e.data_laudo for e in _exames(db_session, RETROATIVO)]
        assert datas == [date(2025, 6, 8), date(2025, 7, 7)]

    def test_exclusion_respects_other_files(self, db_session, add_all):
        add_all(make_exame(empresa="INMED", arquivo_fonte="outro_arquivo"))

        assert catalogo.excluir_clientes_especificos(_ctx(db_session)) == 0


class TestRegrasClientes:

    def test_cedi_unified(self, db_session, add_all):
        add_all(make_exame(empresa="CEDI-RJ"), make_exame(empresa="cedi_unimed"))

        catalogo.unificar_cedi(_ctx(db_session))

        assert {e.empresa for e in _exames(db_session)} == {"CEDIDIAG"}

    def test_tele_suffix_removed(self, db_session, add_all):
        add_all(make_exame(empresa="CLINICA ALFA_TELE"), make_exame(empresa="CLINICA BETA"))

        afetados = catalogo.remover_sufixo_tele(_ctx(db_session))

        assert afetados == 1
        assert [e.empresa for e in _exames(db_session)] == ["CLINICA ALFA", "CLINICA BETA"]

    def test_cemvalenca_split(self, db_session, add_all):
        add_all(
            make_exame(empresa="CEMVALENCA", prioridade="PLANTAO", modalidade="CT"),
            make_exame(empresa="CEMVALENCA", prioridade="ROTINA", modalidade="RX"),
            make_exame(empresa="CEMVALENCA", prioridade="ROTINA", modalidade="CT"),
        )

        catalogo.separar_cemvalenca(_ctx(db_session))

        assert [e.empresa for e in _exames(db_session)] == [
            "CEMVALENCA_PLANTAO", "CEMVALENCA_RX", "CEMVALENCA",
        ]

    def test_santa_helena_mapping(self, db_session, add_all):
        add_all(make_exame(empresa="HOSP SANTA HELENA GO"))

        catalogo.mapear_santa_helena(_ctx(db_session))

        assert _exames(db_session)[0].empresa == "HOSPITAL SANTA HELENA"


class TestRegrasCadastros:

    def test_doctor_names_mapped(self, db_session, add_all):
        add_all(make_exame(medico="Dr Fulano"), make_exame(medico="Dra. Ciclana"))
        registros = RegistrosReferencia.criar(medicos={"DR FULANO": "Dr. Fulano de Tal"})

        afetados = catalogo.mapear_nomes_medicos(_ctx(db_session, registros))

        assert afetados == 1
        assert [e.medico for e in _exames(db_session)] == ["Dr. Fulano de Tal", "Dra. Ciclana"]

    def test_reference_quantity_only_when_empty(self, db_session, add_all):
        add_all(
            make_exame(estudo_descricao="RX TORAX", valores=None),
            make_exame(estudo_descricao="RX TORAX", valores=Decimal("3")),
        )
        registros = RegistrosReferencia.criar(valores={"RX TORAX": 2})

        catalogo.preencher_valores_referencia(_ctx(db_session, registros))

        assert [e.valores for e in _exames(db_session)] == [Decimal("2"), Decimal("3")]

    def test_catalog_sync_overwrites_specialty_and_category(self, db_session, add_all):
        add_all(make_exame(estudo_descricao="TC TORAX", especialidade="CORPO", categoria="SC"))
        registros = RegistrosReferencia.criar(
            catalogo=[ItemCatalogo("TC TORAX", "CT", "MEDICINA INTERNA", "ONCO")]
        )

        afetados = catalogo.sincronizar_cadastro_exames(_ctx(db_session, registros))

        exame = _exames(db_session)[0]
        assert afetados == 1
        assert (exame.especialidade, exame.categoria) == ("MEDICINA INTERNA", "ONCO")

    def test_empty_category_from_catalog_or_default(self, db_session, add_all):
        add_all(
            make_exame(estudo_descricao="RM CRANIO", categoria=None),
            make_exame(estudo_descricao="RM JOELHO", categoria=""),
            make_exame(estudo_descricao="RM OMBRO", categoria="ONCO"),
        )
        registros = RegistrosReferencia.criar(catalogo=[ItemCatalogo("RM CRANIO", categoria="ANGIO")])

        catalogo.preencher_categoria_cadastro(_ctx(db_session, registros))

        assert [e.categoria for e in _exames(db_session)] == ["ANGIO", "SC", "ONCO"]

    def test_columns_split_by_neurologist(self, db_session, add_all):
        add_all(
            make_exame(especialidade="COLUNAS", medico="Dr. Carlos Neuro", categoria="ONCO"),
            make_exame(especialidade="COLUNAS", medico="Dr. Paulo Osso"),
        )
        registros = RegistrosReferencia.criar(neurologistas=["Carlos Neuro"])

        catalogo.separar_colunas(_ctx(db_session, registros))

        exames = _exames(db_session)
        assert (exames[0].especialidade, exames[0].categoria) == ("NEURO", "SC")
        assert exames[1].especialidade == "MUSCULO ESQUELETICO"


class TestRegrasModalidade:

    def test_cr_dx_modalities(self, db_session, add_all):
        add_all(
            make_exame(modalidade="CR", estudo_descricao="MAMOGRAFIA BILATERAL"),
            make_exame(modalidade="DX", estudo_descricao="RX TORAX"),
            make_exame(modalidade="OT", estudo_descricao="DENSITOMETRIA"),
        )
        registros = RegistrosReferencia.criar(
            catalogo=[ItemCatalogo("MAMOGRAFIA BILATERAL", especialidade="MAMO")]
        )

        catalogo.corrigir_modalidades(_ctx(db_session, registros))

        assert [e.modalidade for e in _exames(db_session)] == ["MG", "RX", "DO"]

    def test_specialty_corrections(self, db_session, add_all):
        add_all(
            make_exame(especialidade="CORPO"),
            make_exame(especialidade="CABECA-PESCOCO"),
            make_exame(especialidade="CARDIO COM SCORE"),
            make_exame(modalidade="DO", especialidade="MUSCULO"),
        )

        catalogo.corrigir_especialidades(_ctx(db_session))

        assert [e.especialidade for e in _exames(db_session)] == [
            "MEDICINA INTERNA", "NEURO", "CARDIO", "D.O",
        ]

    def test_priorities(self, db_session, add_all):
        add_all(
            make_exame(prioridade="URG"),
            make_exame(prioridade="AMBULATORIO"),
            make_exame(prioridade=None),
        )
        ctx = _ctx(db_session)

        catalogo.prioridade_urgente(ctx)
        catalogo.prioridade_rotina(ctx)
        catalogo.prioridade_padrao(ctx)

        assert [e.prioridade for e in _exames(db_session)] == ["URGENTE", "ROTINA", "ROTINA"]


class TestIdempotencia:

    def test_second_run_changes_nothing(self, db_session, add_all):
        add_all(
            make_exame(empresa="CEDI-RJ", especialidade="COLUNAS", medico="Dr. Carlos Neuro"),
            make_exame(empresa="CEMVALENCA", prioridade="URG", modalidade="DX", categoria=None),
            make_exame(empresa="INMED"),
            make_exame(empresa="CLINICA ALFA_TELE", valores=None, prioridade=None, especialidade="CORPO"),
        )
        registros = RegistrosReferencia.criar(neurologistas=["Carlos Neuro"])
        motor = MotorRegras(carregar=lambda db: registros)

        primeira = motor.aplicar_regras(db_session, ARQUIVO, "2025-06")
        estado = [
            (e.empresa, e.modalidade, e.especialidade, e.categoria, e.prioridade, e.valores)
            for e in _exames(db_session)
        ]
        segunda = motor.aplicar_regras(db_session, ARQUIVO, "2025-06")

        assert primeira.regras_com_erro == []
        assert primeira.registros_depois == 3
        assert segunda.registros_antes == segunda.registros_depois == 3
        assert all(r.registros_afetados == 0 for r in segunda.regras)
        assert estado == [
            (e.empresa, e.modalidade, e.especialidade, e.categoria, e.prioridade, e.valores)
            for e in _exames(db_session)
        ]
