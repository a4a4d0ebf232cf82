"""
Testes para a execução completa do pipeline de um arquivo.

Testa services/pipeline.py contra o banco SQLite de teste.
"""
from datetime import date
from unittest.mock import MagicMock

import pytest

from conftest import make_exame, make_parametros
from exceptions import RegistryReadError
from models import ExameVolumetria
from services.pipeline import executar_pipeline
from services.regras import MotorRegras, RegraNormalizacao, RegistrosReferencia, TipoRegra

ARQUIVO = "volumetria_padrao"


def _exames(db):
    db.expire_all()
    return db.query(ExameVolumetria).filter(
        ExameVolumetria.arquivo_fonte == ARQUIVO
    ).order_by(ExameVolumetria.id).all()


def _motor_simples(*regras):
    return MotorRegras(regras=regras, carregar=lambda db: RegistrosReferencia.criar())


def _renomear_cliente(ctx):
    return ctx.db.query(ExameVolumetria).filter(
        ExameVolumetria.arquivo_fonte == ctx.arquivo_fonte,
        ExameVolumetria.empresa == "CISP_TELE",
    ).update({ExameVolumetria.empresa: "CISP"}, synchronize_session=False)


class TestExecutarPipeline:

    def test_rules_then_classification(self, db_session, add_all):
        """Regras rodam antes da tipificação, que ve os nomes já normalizados."""
        add_all(
            make_parametros(cliente_nome="CISP", tipo_cliente="NC"),
            make_exame(empresa="CISP_TELE", especialidade="CARDIO"),
            make_exame(empresa="CLINICA ALFA"),
        )
        motor = _motor_simples(
            RegraNormalizacao("t001", "Renomear cliente", TipoRegra.RENOMEACAO, _renomear_cliente)
        )

        resultado = executar_pipeline(ARQUIVO, "2025-06", motor=motor)

        assert resultado["registros_antes"] == 2
        assert resultado["registros_depois"] == 2
        assert resultado["regras_aplicadas"] == ["t001"]
        assert resultado["tipificacao"]["registros_atualizados"] == 2
        exames = _exames(db_session)
        assert [(e.empresa, e.tipo_faturamento) for e in exames] == [
            ("CISP", "NC-FT"),
            ("CLINICA ALFA", "CO-FT"),
        ]

    def test_progress_includes_classification_stage(self, db_session, add_all):
        add_all(make_exame())
        motor = _motor_simples(
            RegraNormalizacao("t001", "Sem efeito", TipoRegra.RENOMEACAO, lambda ctx: 0)
        )
        callback = MagicMock()

        executar_pipeline(ARQUIVO, "2025-06", progress_callback=callback, motor=motor)

        estagios = [c.args[2] for c in callback.call_args_list]
        assert estagios == ["t001", "tipificacao"]

    def test_no_records_skips_classification(self, db_session):
        classificador = MagicMock()

        resultado = executar_pipeline(ARQUIVO, "2025-06", classificador=classificador)

        assert resultado["registros_antes"] == 0
        assert "tipificacao" not in resultado
        classificador.reclassificar.assert_not_called()

    def test_registry_failure_propagates(self, db_session, add_all):
        add_all(make_exame())

        def carregar(db):
            raise RegistryReadError("cadastro_exames", "indisponível")

        motor = MotorRegras(carregar=carregar)

        with pytest.raises(RegistryReadError):
            executar_pipeline(ARQUIVO, "2025-06", motor=motor)

    def test_full_catalog_end_to_end(self, db_session, add_all):
        """Catálogo completo seguido da tipificação, sem regras com erro."""
        add_all(
            make_exame(empresa="CLINICA ALFA_TELE"),
            make_exame(empresa="CLINICA ALFA", valores=None),
            make_exame(empresa="CLINICA TESTE"),
        )

        resultado = executar_pipeline(ARQUIVO, "2025-06")

        assert resultado["regras_com_erro"] == []
        assert resultado["rejeicoes"] == {"REGISTRO_EXCLUIDO_PROCESSAMENTO": 1}
        exames = _exames(db_session)
        assert {e.empresa for e in exames} == {"CLINICA ALFA"}
        assert all(e.tipo_faturamento == "CO-FT" for e in exames)

    def test_classification_uses_parameters_valid_in_period(self, db_session, add_all):
        """Cliente que passou de NC para CO usa os parâmetros vigentes no período."""
        add_all(
            make_parametros(cliente_nome="CLINICA GAMA", tipo_cliente="NC", tipo_faturamento="NC-NF",
                            data_fim_vigencia=date(2025, 3, 31)),
            make_parametros(cliente_nome="CLINICA GAMA", tipo_cliente="CO",
                            data_inicio_vigencia=date(2025, 4, 1)),
            make_exame(empresa="CLINICA GAMA"),
        )

        executar_pipeline(ARQUIVO, "2025-06", motor=_motor_simples())

        exame = _exames(db_session)[0]
        assert (exame.tipo_cliente, exame.tipo_faturamento) == ("CO", "CO-FT")
