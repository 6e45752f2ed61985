#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Testes do fluxo de aprovacao de separacoes e do volume saudavel.

USO:
    python tools/test_workflow.py
    pytest tools/
"""

import sys
from datetime import date, datetime
from pathlib import Path

# Adicionar raiz do projeto ao path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
import pytest

from financeiro.transform import processar_dados_clientes
from financeiro.workflow import (
    filtrar_separacoes_pendentes,
    clientes_com_separacoes_pendentes,
    aprovar_separacao,
    rejeitar_separacao,
    atualizar_volume_saudavel,
)


def _separacoes():
    return {
        1001: [
            {"id": "S1", "status": "pendente", "separacao_itens": []},
            {"id": "S2", "status": "aprovado", "separacao_itens": []},
        ],
        1002: [
            {"id": "S3", "status": "pendente", "separacao_itens": []},
        ],
        1003: [
            {"id": "S4", "status": "rejeitado", "separacao_itens": []},
        ],
    }


def test_filtrar_separacoes_pendentes():
    pendentes = filtrar_separacoes_pendentes(_separacoes())
    assert {c: [s["id"] for s in seps] for c, seps in pendentes.items()} == {
        1001: ["S1"],
        1002: ["S3"],
    }

    sem_ocultas = filtrar_separacoes_pendentes(_separacoes(), ocultas=["S3"])
    assert list(sem_ocultas.keys()) == [1001]


def test_aprovar_separacao_nao_altera_original():
    separacoes = _separacoes()
    momento = datetime(2024, 6, 1, 10, 30)

    novas, registro = aprovar_separacao(
        separacoes, "S1", {"PES_CODIGO": 1001, "separacoes": ["..."]}, momento
    )

    assert novas[1001][0]["status"] == "aprovado"
    assert separacoes[1001][0]["status"] == "pendente"
    assert registro == {
        "separacao_id": "S1",
        "acao": "aprovado",
        "cliente_data": {"PES_CODIGO": 1001},
        "created_at": "2024-06-01T10:30:00",
    }


def test_rejeitar_separacao_com_registro_enriquecido():
    df = processar_dados_clientes(
        [{"PES_CODIGO": 1002}], _separacoes(), {}, {}, [], date(2024, 6, 1)
    )

    novas, registro = rejeitar_separacao(_separacoes(), "S3", df.iloc[0])

    assert novas[1002][0]["status"] == "rejeitado"
    assert registro["acao"] == "rejeitado"
    assert "separacoes" not in registro["cliente_data"]
    assert registro["cliente_data"]["valoresEmAberto"] == 0


def test_somente_separacao_pendente_muda_de_status():
    with pytest.raises(ValueError):
        aprovar_separacao(_separacoes(), "S2")
    with pytest.raises(ValueError):
        rejeitar_separacao(_separacoes(), "S4")
    with pytest.raises(ValueError):
        aprovar_separacao(_separacoes(), "NAO_EXISTE")


def test_clientes_com_separacoes_pendentes():
    df = processar_dados_clientes(
        [{"PES_CODIGO": c} for c in [1001, 1002, 1003, 1004]],
        _separacoes(), {}, {}, [], date(2024, 6, 1)
    )

    pendentes = clientes_com_separacoes_pendentes(df)

    assert pendentes["PES_CODIGO"].tolist() == [1001, 1002]


def test_atualizar_volume_saudavel():
    clientes = pd.DataFrame([{"PES_CODIGO": "1001"}, {"PES_CODIGO": 1002}])

    atualizado = atualizar_volume_saudavel(clientes, 1001, "15000")

    assert atualizado["volume_saudavel_faturamento"].tolist() == [15000.0, None]
    assert "volume_saudavel_faturamento" not in clientes.columns


def test_atualizar_volume_saudavel_invalido():
    clientes = pd.DataFrame([{"PES_CODIGO": 1001}])

    for valor in [-1, "abc", None]:
        with pytest.raises(ValueError):
            atualizar_volume_saudavel(clientes, 1001, valor)

    with pytest.raises(ValueError):
        atualizar_volume_saudavel(clientes, 9999, 100)
    with pytest.raises(ValueError):
        atualizar_volume_saudavel(clientes, "abc", 100)


if __name__ == "__main__":
    print("=" * 60)
    print("TESTES DO FLUXO DE APROVACAO")
    print("=" * 60)
    sys.exit(pytest.main([__file__, "-v"]))
