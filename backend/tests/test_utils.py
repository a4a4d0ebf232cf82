"""
Testes para utils: períodos, prazo de execução e normalização de texto.
"""
from datetime import date

import pytest

from exceptions import InvalidPeriodError
from utils.periodo import eh_arquivo_retroativo, janela_faturamento, parse_periodo
from utils.text_utils import eh_vazio, normalizar_nome_medico, normalizar_texto, remover_acentos
from utils.timeout import PipelineTimeoutError, Prazo


class _Relogio:
    """Relógio controlável para o Prazo."""

    def __init__(self):
        self.agora = 0.0

    def __call__(self):
        return self.agora


class TestParsePeriodo:

    def test_valid_period(self):
        assert parse_periodo("2025-06") == (2025, 6)

    def test_strips_spaces(self):
        assert parse_periodo(" 2025-12 ") == (2025, 12)

    @pytest.mark.parametrize("periodo", ["2025-13", "2025-00", "2025/06", "25-06", "", None, "junho"])
    def test_invalid_period_raises(self, periodo):
        with pytest.raises(InvalidPeriodError):
            parse_periodo(periodo)


class TestJanelaFaturamento:

    def test_window_from_day_8_to_day_7(self):
        janela = janela_faturamento("2025-06")

        assert janela.primeiro_dia_mes == date(2025, 6, 1)
        assert janela.inicio == date(2025, 6, 8)
        assert janela.fim == date(2025, 7, 7)

    def test_december_crosses_year(self):
        janela = janela_faturamento("2025-12")

        assert janela.inicio == date(2025, 12, 8)
        assert janela.fim == date(2026, 1, 7)

    def test_retroactive_file_detection(self):
        assert eh_arquivo_retroativo("volumetria_padrao_retroativo")
        assert eh_arquivo_retroativo("VOLUMETRIA_FORA_PADRAO_RETROATIVO")
        assert not eh_arquivo_retroativo("volumetria_padrao")
        assert not eh_arquivo_retroativo(None)


class TestPrazo:

    def test_not_expired_within_budget(self):
        relogio = _Relogio()
        prazo = Prazo(10, "teste", clock=relogio)
        relogio.agora = 9.5

        assert not prazo.expirado()
        prazo.verificar("v001")
        assert prazo.restante == pytest.approx(0.5)

    def test_expired_raises_with_stage(self):
        relogio = _Relogio()
        prazo = Prazo(10, "Regras arquivo", clock=relogio)
        relogio.agora = 10.1

        with pytest.raises(PipelineTimeoutError) as exc_info:
            prazo.verificar("v031")

        assert exc_info.value.timeout_seconds == 10
        assert exc_info.value.operation == "Regras arquivo"
        assert "v031" in str(exc_info.value)


class TestNormalizacaoTexto:

    def test_remove_accents(self):
        assert remover_acentos("TÓRAX CABEÇA") == "TORAX CABECA"

    def test_normalize_case_and_spaces(self):
        assert normalizar_texto("  tc   tórax  ") == "TC TORAX"
        assert normalizar_texto(None) == ""

    def test_normalize_doctor_prefix(self):
        assert normalizar_nome_medico("Dr. João Silva") == "JOAO SILVA"
        assert normalizar_nome_medico("Dra Maria Souza") == "MARIA SOUZA"
        assert normalizar_nome_medico("DRA. Ana") == "ANA"

    def test_eh_vazio(self):
        assert eh_vazio(None)
        assert eh_vazio("   ")
        assert not eh_vazio("SC")
        assert not eh_vazio(0)
