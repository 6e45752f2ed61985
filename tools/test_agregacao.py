#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Testes da agregacao financeira por cliente (processar_dados_clientes).

USO:
    python tools/test_agregacao.py
    pytest tools/
"""

import sys
from datetime import date
from pathlib import Path

# Adicionar raiz do projeto ao path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
import pytest

from financeiro.transform import (
    somar_saldo_aberto,
    somar_saldo_vencido,
    somar_valor_titulos,
    calcular_totais_cliente,
    calcular_totais_por_cliente,
    processar_dados_clientes,
    verificar_consistencia_totais,
    calcular_metricas_gerais,
)

HOJE = date(2024, 6, 1)


def _titulo(codigo, valor, saldo, vencimento):
    return {"PES_CODIGO": codigo, "VLRTITULO": valor, "VLRSALDO": saldo, "DTVENCIMENTO": vencimento}


def _processar(clientes, titulos, separacoes=None, hoje=HOJE):
    return processar_dados_clientes(clientes, separacoes or {}, {}, {}, titulos, hoje)


def test_saldo_futuro_acima_do_limite_fica_amarelo():
    df = _processar([{"PES_CODIGO": 1001}], [_titulo(1001, 6000, 6000, "2099-01-01")])

    registro = df.iloc[0]
    assert registro["valoresTotais"] == 6000
    assert registro["valoresEmAberto"] == 6000
    assert registro["valoresVencidos"] == 0
    assert registro["classificacao"] == "amber"


def test_saldo_vencido_fica_vermelho():
    df = _processar([{"PES_CODIGO": 1001}], [_titulo(1001, 6000, 6000, "2020-01-01")])

    registro = df.iloc[0]
    assert registro["valoresVencidos"] == 6000
    assert registro["classificacao"] == "red"


def test_codigo_texto_e_numero_sao_o_mesmo_cliente():
    titulos = [_titulo("1001", 100, 100, "2099-01-01"), _titulo(1001.0, 50, 50, "2099-01-01")]
    df = _processar([{"PES_CODIGO": 1001}], titulos)
    assert df.iloc[0]["valoresEmAberto"] == 150

    df = _processar([{"PES_CODIGO": " 1001 "}], [_titulo(1001, 100, 100, "2099-01-01")])
    assert df.iloc[0]["valoresEmAberto"] == 100


def test_sem_titulos_retorna_zeros_e_verde():
    df = _processar([{"PES_CODIGO": 1001}, {"PES_CODIGO": 1002}], [])

    assert df["valoresTotais"].tolist() == [0.0, 0.0]
    assert df["valoresEmAberto"].tolist() == [0.0, 0.0]
    assert df["valoresVencidos"].tolist() == [0.0, 0.0]
    assert df["classificacao"].tolist() == ["green", "green"]
    assert df["separacoes"].tolist() == [[], []]


def test_saldo_zero_ou_negativo_nunca_vence():
    titulos = [
        _titulo(1001, 100, 0, "2020-01-01"),
        _titulo(1001, 100, -50, "2020-01-01"),
    ]
    df = _processar([{"PES_CODIGO": 1001}], titulos)

    registro = df.iloc[0]
    assert registro["valoresVencidos"] == 0
    assert registro["valoresEmAberto"] == -50
    assert registro["classificacao"] == "green"


def test_vencimento_mal_formado_nao_e_vencido():
    titulos = [
        _titulo(1001, 100, 100, "not-a-date"),
        _titulo(1001, 100, 100, None),
    ]
    df = _processar([{"PES_CODIGO": 1001}], titulos)

    registro = df.iloc[0]
    assert registro["valoresVencidos"] == 0
    assert registro["valoresEmAberto"] == 200


def test_data_dia_mes_ano_nao_e_vencida():
    titulos = [
        _titulo(1001, 100, 100, "25/12/2020"),
        _titulo(1001, 100, 100, "31/01/2024"),
    ]
    df = _processar([{"PES_CODIGO": 1001}], titulos)

    assert df.iloc[0]["valoresVencidos"] == 0
    assert df.iloc[0]["valoresEmAberto"] == 200
    assert somar_saldo_vencido(titulos, 1001, HOJE) == 0


def test_data_mes_dia_ano_e_aceita():
    df = _processar([{"PES_CODIGO": 1001}], [_titulo(1001, 100, 100, "12/25/2020")])
    assert df.iloc[0]["valoresVencidos"] == 100


def test_vencimento_no_proprio_dia_nao_e_vencido():
    df = _processar([{"PES_CODIGO": 1001}], [_titulo(1001, 10, 10, "2024-06-01")])
    assert df.iloc[0]["valoresVencidos"] == 0


def test_valores_ausentes_contam_como_zero():
    titulos = [_titulo(1001, None, "abc", "2020-01-01"), _titulo(1001, 30, 20, "2020-01-01")]
    df = _processar([{"PES_CODIGO": 1001}], titulos)

    registro = df.iloc[0]
    assert registro["valoresTotais"] == 30
    assert registro["valoresEmAberto"] == 20
    assert registro["valoresVencidos"] == 20


def test_uma_linha_por_cliente_na_mesma_ordem():
    clientes = [{"PES_CODIGO": 3, "APELIDO": "C"}, {"PES_CODIGO": 1, "APELIDO": "A"},
                {"PES_CODIGO": 2, "APELIDO": "B"}]
    titulos = [_titulo(1, 10, 10, "2099-01-01"), _titulo(99, 500, 500, "2020-01-01")]

    df = _processar(clientes, titulos)

    assert len(df) == 3
    assert df["PES_CODIGO"].tolist() == [3, 1, 2]
    assert df["APELIDO"].tolist() == ["C", "A", "B"]
    assert df["valoresEmAberto"].tolist() == [0.0, 10.0, 0.0]


def test_cliente_com_codigo_invalido_recebe_zeros():
    clientes = [{"PES_CODIGO": "abc"}, {"PES_CODIGO": 1001}]
    df = _processar(clientes, [_titulo(1001, 10, 10, "2020-01-01")])

    assert len(df) == 2
    assert df.iloc[0]["valoresTotais"] == 0
    assert df.iloc[0]["classificacao"] == "green"
    assert df.iloc[1]["classificacao"] == "red"


def test_vencido_positivo_sempre_vermelho():
    titulos = [
        _titulo(1, 100, 100, "2020-01-01"),
        _titulo(2, 100000, 100000, "2099-01-01"),
        _titulo(2, 1, 0.01, "2024-05-31"),
        _titulo(3, 100, 100, "2099-01-01"),
    ]
    df = _processar([{"PES_CODIGO": c} for c in [1, 2, 3]], titulos)

    for _, registro in df.iterrows():
        if registro["valoresVencidos"] > 0:
            assert registro["classificacao"] == "red"
    assert df["classificacao"].tolist() == ["red", "red", "green"]


def test_separacoes_sao_anexadas_por_codigo():
    separacoes = {"1001": [{"id": "S1", "status": "pendente", "separacao_itens": []}]}
    df = _processar([{"PES_CODIGO": 1001}, {"PES_CODIGO": 1002}], [], separacoes)

    assert [s["id"] for s in df.iloc[0]["separacoes"]] == ["S1"]
    assert df.iloc[1]["separacoes"] == []


def test_entrada_nao_e_alterada():
    clientes = pd.DataFrame([{"PES_CODIGO": 1001}])
    titulos = pd.DataFrame([_titulo(1001, 10, 10, "2020-01-01")])

    _processar(clientes, titulos)

    assert list(clientes.columns) == ["PES_CODIGO"]
    assert list(titulos.columns) == ["PES_CODIGO", "VLRTITULO", "VLRSALDO", "DTVENCIMENTO"]


def test_data_de_referencia_invalida_nao_gera_vencidos():
    df = _processar([{"PES_CODIGO": 1001}], [_titulo(1001, 10, 10, "2020-01-01")], hoje="ontem")
    assert df.iloc[0]["valoresVencidos"] == 0
    assert df.iloc[0]["valoresEmAberto"] == 10


def test_somas_por_cliente():
    titulos = [
        _titulo(1001, 100, 80, "2020-01-01"),
        _titulo(1001, 200, 0, "2020-01-01"),
        _titulo(1001, 50, 50, "2099-01-01"),
        _titulo(1002, 999, 999, "2020-01-01"),
    ]

    assert somar_valor_titulos(titulos, 1001) == 350
    assert somar_saldo_aberto(titulos, "1001") == 130
    assert somar_saldo_vencido(titulos, {"value": 1001}, HOJE) == 80
    assert somar_saldo_aberto(titulos, 5555) == 0
    assert somar_saldo_aberto(titulos, "abc") == 0

    totais = calcular_totais_cliente(titulos, 1001, HOJE)
    assert totais == {"valoresTotais": 350.0, "valoresEmAberto": 130.0, "valoresVencidos": 80.0}


def test_totais_agrupados_batem_com_somas_individuais():
    titulos = [
        _titulo(1, 100, 80, "2020-01-01"),
        _titulo("2", 50, 50, "2099-01-01"),
        _titulo(1, 10, 10, "bad"),
        _titulo(None, 10, 10, "2020-01-01"),
    ]
    agrupado = calcular_totais_por_cliente(titulos, HOJE)

    assert sorted(agrupado.index.tolist()) == [1, 2]
    for codigo in [1, 2]:
        individual = calcular_totais_cliente(titulos, codigo, HOJE)
        for coluna, valor in individual.items():
            assert agrupado.at[codigo, coluna] == pytest.approx(valor)


def test_verificar_consistencia_totais():
    df = _processar(
        [{"PES_CODIGO": 1}, {"PES_CODIGO": 2}],
        [_titulo(1, 100, 50, "2020-01-01"), _titulo(2, 10, 50, "2099-01-01")],
    )

    inconsistencias = verificar_consistencia_totais(df)

    assert inconsistencias["PES_CODIGO"].tolist() == [2]
    assert inconsistencias["Inconsistencia"].tolist() == ["Em aberto maior que total"]


def test_calcular_metricas_gerais():
    separacoes = {1: [{"id": "S1", "status": "pendente"}, {"id": "S2", "status": "aprovado"}]}
    df = _processar(
        [{"PES_CODIGO": 1}, {"PES_CODIGO": 2}, {"PES_CODIGO": 3}],
        [_titulo(1, 100, 100, "2020-01-01"), _titulo(2, 6000, 6000, "2099-01-01")],
        separacoes,
    )

    metricas = calcular_metricas_gerais(df)

    assert metricas["total_clientes"] == 3
    assert metricas["clientes_vermelho"] == 1
    assert metricas["clientes_amarelo"] == 1
    assert metricas["clientes_verde"] == 1
    assert metricas["total_em_aberto"] == 6100
    assert metricas["total_vencido"] == 100
    assert metricas["separacoes_pendentes"] == 1

    assert calcular_metricas_gerais(pd.DataFrame())["total_clientes"] == 0


if __name__ == "__main__":
    print("=" * 60)
    print("TESTES DE AGREGACAO FINANCEIRA")
    print("=" * 60)
    sys.exit(pytest.main([__file__, "-v"]))
