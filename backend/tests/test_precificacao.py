"""
Testes para a precificação de exames (services/faturamento/precificacao.py).
"""
from decimal import Decimal

from conftest import make_preco
from services.faturamento.precificacao import (
    LinhaPreco,
    TabelaPrecos,
    chave_volume,
    valorar_exames,
    volumes_por_grupo,
)


def _linha(**kwargs) -> LinhaPreco:
    base = dict(modalidade="CT", especialidade="NEURO", categoria="SC",
                prioridade="ROTINA", valores=Decimal("1"))
    base.update(kwargs)
    return LinhaPreco(**base)


class TestChaveVolume:

    def test_conditions(self):
        linha = _linha(modalidade="ct", especialidade="Neuro", categoria="sc")

        assert chave_volume(linha, "MOD") == ("CT",)
        assert chave_volume(linha, "MOD/ESP") == ("CT", "NEURO")
        assert chave_volume(linha, "mod/esp/cat") == ("CT", "NEURO", "SC")
        assert chave_volume(linha, "GLOBAL") == ()

    def test_unknown_condition_uses_default(self):
        linha = _linha()

        assert chave_volume(linha, "QUALQUER") == chave_volume(linha, "MOD/ESP/CAT")
        assert chave_volume(linha, None) == ("CT", "NEURO", "SC")

    def test_volumes_per_group(self):
        linhas = [
            _linha(valores=Decimal("2")),
            _linha(especialidade="MSK"),
            _linha(valores=None),
        ]

        volumes = volumes_por_grupo(linhas, "MOD")

        assert volumes == {("CT",): Decimal("4")}


class TestTabelaPrecos:

    def test_most_specific_entry_wins(self):
        generico = make_preco(valor_base=Decimal("100"))
        categoria = make_preco(categoria="SC", valor_base=Decimal("120"))
        completo = make_preco(categoria="SC", prioridade="ROTINA", valor_base=Decimal("130"))
        tabela = TabelaPrecos([generico, categoria, completo])

        assert tabela.localizar("CT", "NEURO", "SC", "ROTINA", Decimal("1")) is completo
        assert tabela.localizar("CT", "NEURO", "SC", "URGENTE", Decimal("1")) is categoria
        assert tabela.localizar("CT", "NEURO", "CC", "ROTINA", Decimal("1")) is generico

    def test_volume_band(self):
        faixa1 = make_preco(volume_inicial=1, volume_final=100, valor_base=Decimal("100"))
        faixa2 = make_preco(volume_inicial=101, volume_final=None, valor_base=Decimal("80"))
        tabela = TabelaPrecos([faixa1, faixa2])

        assert tabela.valor_unitario("CT", "NEURO", "SC", "ROTINA", Decimal("50")) == Decimal("100")
        assert tabela.valor_unitario("CT", "NEURO", "SC", "ROTINA", Decimal("150")) == Decimal("80")

    def test_urgency_price(self):
        tabela = TabelaPrecos([make_preco(valor_urgencia=Decimal("150"))], percentual_urgencia=20)

        assert tabela.valor_unitario("CT", "NEURO", "SC", "URGENTE", Decimal("1")) == Decimal("150")

    def test_urgency_percentage_fallback(self):
        tabela = TabelaPrecos([make_preco()], percentual_urgencia=20)

        assert tabela.valor_unitario("CT", "NEURO", "SC", "Plantão", Decimal("1")) == Decimal("120.00")
        assert tabela.valor_unitario("CT", "NEURO", "SC", "ROTINA", Decimal("1")) == Decimal("100.00")

    def test_missing_price_is_zero(self):
        tabela = TabelaPrecos([make_preco()])

        assert tabela.valor_unitario("MR", "NEURO", "SC", "ROTINA", Decimal("1")) == Decimal("0")


class TestValorarExames:

    def test_totals_and_items(self):
        tabela = TabelaPrecos([
            make_preco(valor_base=Decimal("100")),
            make_preco(modalidade="MR", valor_base=Decimal("250")),
        ])
        linhas = [
            _linha(),
            _linha(valores=Decimal("2")),
            _linha(modalidade="MR"),
            _linha(modalidade="DX"),
        ]

        valoracao = valorar_exames(linhas, tabela, "MOD/ESP/CAT")

        assert valoracao.total_exames == Decimal("5")
        assert valoracao.valor_exames == Decimal("550.00")
        assert len(valoracao.itens) == 3
        assert valoracao.itens[0].quantidade == Decimal("3")
        assert valoracao.itens[0].valor_total == Decimal("300.00")
        assert valoracao.itens_sem_preco == 1
        assert valoracao.itens[2].to_dict()["status"] == "sem_preco"

    def test_volume_condition_selects_band(self):
        tabela = TabelaPrecos([
            make_preco(modalidade="CT", especialidade="NEURO", volume_final=2, valor_base=Decimal("100")),
            make_preco(modalidade="CT", especialidade="NEURO", volume_inicial=3, valor_base=Decimal("90")),
        ])
        linhas = [_linha(), _linha(), _linha(especialidade="MSK")]

        por_esp = valorar_exames(linhas, tabela, "MOD/ESP")
        por_mod = valorar_exames(linhas, tabela, "MOD")

        assert por_esp.valor_exames == Decimal("200.00")
        assert por_mod.valor_exames == Decimal("180.00")
