#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Testes da fonte de dados (arquivos em diretorio + cache de consultas).

USO:
    python tools/test_source.py
    pytest tools/
"""

import sys
import tempfile
from datetime import date
from pathlib import Path

# Adicionar raiz do projeto ao path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from financeiro.cache import CacheConsultas
from financeiro.io import DataValidationError
from financeiro.source import FonteDadosFinanceiros
from financeiro.workflow import aprovar_separacao, rejeitar_separacao

HOJE = date(2024, 6, 1)

ARQUIVOS = {
    "clientes.csv": (
        "PES_CODIGO;APELIDO\n"
        "1001;Loja A\n"
        "1002;Loja B\n"
    ),
    "titulos.csv": (
        "PES_CODIGO;VLRTITULO;VLRSALDO;DTVENCIMENTO;STATUS\n"
        "1001;6000;6000;2099-01-01;1\n"
        "1002;100;100;2024-01-10;1\n"
    ),
    "separacao_itens.csv": (
        "separacao_id;cliente_codigo;pedido;item_codigo;quantidade_pedida;valor_unitario\n"
        "S1;1001;500;A;2;10\n"
    ),
    "pedidos.csv": (
        "PED_NUMPEDIDO;REPRESENTANTE\n"
        "500;13\n"
    ),
    "representantes.csv": (
        "codigo_representante;nome_representante\n"
        "13;Joao Silva\n"
    ),
}


def _criar_diretorio(destino, ignorar=()):
    for nome, conteudo in ARQUIVOS.items():
        if nome not in ignorar:
            (Path(destino) / nome).write_text(conteudo, encoding="utf-8")


def test_carregar_dados_financeiros_pendentes():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio)

        dados = fonte.carregar_dados_financeiros(HOJE)
        df = dados["df_clientes_financeiros"]

        assert len(df) == 1
        registro = df.iloc[0]
        assert registro["APELIDO"] == "Loja A"
        assert registro["valoresEmAberto"] == 6000
        assert registro["classificacao"] == "amber"
        assert registro["representanteNome"] == "Joao Silva"
        assert [s["id"] for s in registro["separacoes"]] == ["S1"]
        assert registro["separacoes"][0]["valor_total"] == 20.0
        assert dados["df_inconsistencias"].empty


def test_carregar_dados_financeiros_todos_os_clientes():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio)

        df = fonte.carregar_dados_financeiros(HOJE, apenas_pendentes=False)["df_clientes_financeiros"]

        assert df["APELIDO"].tolist() == ["Loja A", "Loja B"]
        assert df["classificacao"].tolist() == ["amber", "red"]
        assert df.iloc[1]["representanteNome"] is None


def test_separacao_oculta_sai_do_painel():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio)

        dados = fonte.carregar_dados_financeiros(HOJE, ocultas=["S1"])

        assert dados["df_clientes_financeiros"].empty
        assert dados["separacoes"] == {}


def test_tabelas_opcionais_ausentes_geram_aviso():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio, ignorar=["pedidos.csv", "representantes.csv"])
        fonte = FonteDadosFinanceiros(diretorio)

        dados = fonte.carregar_dados_financeiros(HOJE)

        assert "[Pedidos] Arquivo pedidos.csv nao encontrado" in dados["avisos"]
        assert dados["df_clientes_financeiros"].iloc[0]["representanteNome"] is None


def test_titulos_obrigatorios():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio, ignorar=["titulos.csv"])
        fonte = FonteDadosFinanceiros(diretorio)

        with pytest.raises(DataValidationError):
            fonte.carregar_dados_financeiros(HOJE)


def test_cache_evita_nova_leitura_ate_recarregar():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio, cache=CacheConsultas(ttl_segundos=300))

        fonte.carregar_dados_financeiros(HOJE)
        (Path(diretorio) / "clientes.csv").unlink()

        # Ainda em cache
        dados = fonte.carregar_dados_financeiros(HOJE)
        assert len(dados["df_clientes_financeiros"]) == 1

        fonte.recarregar()
        with pytest.raises(DataValidationError):
            fonte.carregar_dados_financeiros(HOJE)


def test_filtro_por_codigos():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio)

        df, _ = fonte.carregar_clientes(codigos=["1002"])
        assert df["APELIDO"].tolist() == ["Loja B"]

        df, _ = fonte.carregar_titulos(codigos=[])
        assert df.empty


def test_aprovacao_gravada_nao_volta_como_pendente():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio, cache=CacheConsultas(ttl_segundos=300))

        dados = fonte.carregar_dados_financeiros(HOJE)
        novas, registro = aprovar_separacao(
            dados["separacoes"], "S1", dados["df_clientes_financeiros"].iloc[0]
        )
        assert fonte.gravar_status_separacoes(novas) == 1
        fonte.registrar_aprovacao(registro)

        # Mesmo apos recarregar do disco, a separacao nao e mais pendente
        fonte.recarregar()
        dados = fonte.carregar_dados_financeiros(HOJE)
        assert dados["df_clientes_financeiros"].empty
        assert dados["separacoes"] == {}

        todos = fonte.carregar_dados_financeiros(HOJE, apenas_pendentes=False)
        assert todos["separacoes"][1001][0]["status"] == "aprovado"

        historico = fonte.carregar_aprovacoes()
        assert historico["separacao_id"].tolist() == ["S1"]
        assert historico["acao"].tolist() == ["aprovado"]
        assert historico["cliente_codigo"].tolist() == ["1001"]


def test_cache_invalidado_apos_gravar_status():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio, cache=CacheConsultas(ttl_segundos=300))

        dados = fonte.carregar_dados_financeiros(HOJE)
        novas, registro = rejeitar_separacao(dados["separacoes"], "S1")
        fonte.gravar_status_separacoes(novas)
        fonte.registrar_aprovacao(registro)

        assert fonte.carregar_dados_financeiros(HOJE)["separacoes"] == {}
        assert fonte.carregar_aprovacoes()["acao"].tolist() == ["rejeitado"]


def test_historico_de_aprovacoes_acumula():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio)

        assert fonte.carregar_aprovacoes().empty

        for separacao_id, acao in [("S1", "aprovado"), ("S9", "rejeitado")]:
            fonte.registrar_aprovacao({
                "separacao_id": separacao_id,
                "acao": acao,
                "cliente_data": {"PES_CODIGO": "1001"},
                "created_at": "2024-06-01T10:00:00",
            })

        historico = fonte.carregar_aprovacoes()
        assert historico["separacao_id"].tolist() == ["S1", "S9"]
        assert historico["acao"].tolist() == ["aprovado", "rejeitado"]


def test_gravar_status_sem_mudanca_nao_regrava():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio)

        dados = fonte.carregar_dados_financeiros(HOJE)
        assert fonte.gravar_status_separacoes(dados["separacoes"]) == 0
        assert (Path(diretorio) / "separacao_itens.csv").read_text(encoding="utf-8") == \
            ARQUIVOS["separacao_itens.csv"]


def test_gravar_volume_saudavel_persiste():
    with tempfile.TemporaryDirectory() as diretorio:
        _criar_diretorio(diretorio)
        fonte = FonteDadosFinanceiros(diretorio, cache=CacheConsultas(ttl_segundos=300))

        fonte.carregar_dados_financeiros(HOJE)
        fonte.gravar_volume_saudavel("1001", 15000)

        fonte.recarregar()
        df = fonte.carregar_dados_financeiros(HOJE, apenas_pendentes=False)["df_clientes_financeiros"]
        assert float(df.iloc[0]["volume_saudavel_faturamento"]) == 15000

        with pytest.raises(ValueError):
            fonte.gravar_volume_saudavel(5555, 100)
        with pytest.raises(ValueError):
            fonte.gravar_volume_saudavel(1001, -1)


if __name__ == "__main__":
    print("=" * 60)
    print("TESTES DA FONTE DE DADOS")
    print("=" * 60)
    sys.exit(pytest.main([__file__, "-v"]))
