"""
reports.py - Funcoes para formatacao de cards e tabelas do painel.

Este modulo contem funcoes para formatar e preparar dados
para exibicao na interface do usuario.
"""

import html
from typing import Any, Dict, List, Optional

import pandas as pd

from .constants import (
    CLI_COL_CODIGO,
    CLI_COL_APELIDO,
    CLI_COL_VOLUME_SAUDAVEL,
    TIT_COL_CLIENTE_NOME,
    COL_VALORES_TOTAIS,
    COL_VALORES_EM_ABERTO,
    COL_VALORES_VENCIDOS,
    COL_SEPARACOES,
    COL_REPRESENTANTE_NOME,
    COL_CLASSIFICACAO,
    COL_TOTAL_SALDO,
    COL_DIAS_VENCIDO_MAX,
    COL_QUANTIDADE_TITULOS,
    COR_CLASSIFICACAO,
    RISCO_VERMELHO,
    RISCO_AMARELO,
    RISCO_VERDE,
    REPRESENTANTE_NAO_INFORMADO,
    FORMATO_PERCENTUAL,
    FORMATO_NUMERO,
)
from .risk import classe_borda_card

ROTULO_CLASSIFICACAO = {
    RISCO_VERMELHO: 'Com vencidos',
    RISCO_AMARELO: 'Em aberto acima do limite',
    RISCO_VERDE: 'Regular',
}


def formatar_moeda(valor: Any) -> str:
    """
    Formata um valor no padrao brasileiro (R$ 1.234,56).

    Valores nulos sao exibidos como R$ 0,00.
    """
    numero = pd.to_numeric(valor, errors="coerce") if valor is not None else None
    if numero is None or pd.isna(numero):
        numero = 0.0
    texto = f"R$ {float(numero):,.2f}"
    return texto.replace(',', 'X').replace('.', ',').replace('X', '.')


def formatar_valor(valor: Any, formato: str) -> str:
    """
    Formata um valor de acordo com o tipo especificado.

    Args:
        valor: Valor a ser formatado
        formato: Tipo de formato ('numero', 'moeda', 'percentual')

    Returns:
        String formatada
    """
    if valor is None or pd.isna(valor):
        return "-"

    if formato == 'moeda':
        return formatar_moeda(valor)
    elif formato == 'percentual':
        return FORMATO_PERCENTUAL.format(valor)
    elif formato == 'numero':
        return FORMATO_NUMERO.format(valor).replace(',', '.')
    else:
        return str(valor)


def nome_cliente(registro: Dict[str, Any]) -> str:
    """Apelido do cliente ou 'Cliente <codigo>' quando nao houver."""
    apelido = registro.get(CLI_COL_APELIDO)
    if isinstance(apelido, str) and apelido.strip():
        return apelido.strip()
    return f"Cliente {registro.get(CLI_COL_CODIGO)}"


def _volume_definido(volume_saudavel: Any) -> bool:
    if volume_saudavel is None:
        return False
    volume = pd.to_numeric(volume_saudavel, errors="coerce")
    return not pd.isna(volume) and volume > 0


def percentual_volume_saudavel(valor_em_aberto: Any, volume_saudavel: Any) -> Optional[float]:
    """
    Percentual do volume saudavel ja comprometido pelo saldo em aberto.

    Returns:
        Percentual (0-100+), ou None se o volume nao estiver definido
    """
    if not _volume_definido(volume_saudavel):
        return None

    volume = pd.to_numeric(volume_saudavel, errors="coerce")
    aberto = pd.to_numeric(valor_em_aberto, errors="coerce") if valor_em_aberto is not None else 0.0
    if pd.isna(aberto):
        aberto = 0.0

    return round(float(aberto) / float(volume) * 100, 1)


def gerar_dados_card(registro: Any) -> Dict[str, Any]:
    """
    Prepara os dados de um card de cliente.

    Args:
        registro: Linha de processar_dados_clientes (Series ou dict)

    Returns:
        Dicionario com titulo, representante, valores formatados,
        classificacao e estilo da borda
    """
    if isinstance(registro, pd.Series):
        registro = registro.to_dict()

    classificacao = registro.get(COL_CLASSIFICACAO, RISCO_VERDE)
    representante = registro.get(COL_REPRESENTANTE_NOME)
    volume = registro.get(CLI_COL_VOLUME_SAUDAVEL)

    return {
        'codigo': registro.get(CLI_COL_CODIGO),
        'titulo': nome_cliente(registro),
        'representante': representante if representante else REPRESENTANTE_NAO_INFORMADO,
        'valores_totais': formatar_moeda(registro.get(COL_VALORES_TOTAIS)),
        'valores_em_aberto': formatar_moeda(registro.get(COL_VALORES_EM_ABERTO)),
        'valores_vencidos': formatar_moeda(registro.get(COL_VALORES_VENCIDOS)),
        'volume_saudavel': formatar_moeda(volume) if _volume_definido(volume) else "Nao definido",
        'percentual_volume': percentual_volume_saudavel(
            registro.get(COL_VALORES_EM_ABERTO), volume
        ),
        'tem_vencidos': classificacao == RISCO_VERMELHO,
        'classificacao': classificacao,
        'rotulo_classificacao': ROTULO_CLASSIFICACAO.get(classificacao, ''),
        'cor': COR_CLASSIFICACAO.get(classificacao, COR_CLASSIFICACAO[RISCO_VERDE]),
        'classe_borda': classe_borda_card(classificacao),
        'separacoes': list(registro.get(COL_SEPARACOES) or []),
    }


def gerar_html_card(card: Dict[str, Any]) -> str:
    """Cabecalho HTML do card; nome e representante vem dos dados e sao escapados."""
    return (
        f'<div class="cliente-card" style="--cor-card: {card["cor"]}">'
        f'<h4>{html.escape(str(card["titulo"]))}</h4>'
        f'<span class="representante">Representante: {html.escape(str(card["representante"]))}</span>'
        '</div>'
    )


def formatar_tabela_clientes(df_enriquecido: pd.DataFrame) -> pd.DataFrame:
    """
    Formata a tabela de clientes financeiros para exibicao/exportacao.

    Args:
        df_enriquecido: Resultado de processar_dados_clientes

    Returns:
        DataFrame formatado, ordenado pelo valor vencido
    """
    df_fmt = df_enriquecido.copy()

    if COL_SEPARACOES in df_fmt.columns:
        df_fmt['Separacoes'] = df_fmt[COL_SEPARACOES].map(lambda seps: len(seps or []))

    if COL_REPRESENTANTE_NOME in df_fmt.columns:
        df_fmt[COL_REPRESENTANTE_NOME] = df_fmt[COL_REPRESENTANTE_NOME].fillna(
            REPRESENTANTE_NAO_INFORMADO
        )

    if COL_CLASSIFICACAO in df_fmt.columns:
        df_fmt[COL_CLASSIFICACAO] = df_fmt[COL_CLASSIFICACAO].map(
            lambda c: ROTULO_CLASSIFICACAO.get(c, c)
        )

    colunas = [
        CLI_COL_CODIGO,
        CLI_COL_APELIDO,
        COL_REPRESENTANTE_NOME,
        COL_VALORES_TOTAIS,
        COL_VALORES_EM_ABERTO,
        COL_VALORES_VENCIDOS,
        CLI_COL_VOLUME_SAUDAVEL,
        'Separacoes',
        COL_CLASSIFICACAO,
    ]
    colunas_disponiveis = [c for c in colunas if c in df_fmt.columns]
    df_fmt = df_fmt[colunas_disponiveis]

    colunas_renomear = {
        CLI_COL_CODIGO: 'Codigo',
        CLI_COL_APELIDO: 'Cliente',
        COL_REPRESENTANTE_NOME: 'Representante',
        COL_VALORES_TOTAIS: 'Valores Totais',
        COL_VALORES_EM_ABERTO: 'Em Aberto',
        COL_VALORES_VENCIDOS: 'Vencidos',
        CLI_COL_VOLUME_SAUDAVEL: 'Volume Saudavel',
        COL_CLASSIFICACAO: 'Situacao',
    }
    df_fmt = df_fmt.rename(columns=colunas_renomear)

    if 'Vencidos' in df_fmt.columns:
        df_fmt = df_fmt.sort_values(['Vencidos', 'Em Aberto'], ascending=[False, False])

    return df_fmt.reset_index(drop=True)


def formatar_tabela_cobranca(df_resumo: pd.DataFrame) -> pd.DataFrame:
    """Formata o resumo de cobranca para exibicao."""
    df_fmt = df_resumo.copy()

    if COL_TOTAL_SALDO in df_fmt.columns:
        df_fmt[COL_TOTAL_SALDO] = df_fmt[COL_TOTAL_SALDO].map(formatar_moeda)

    if COL_DIAS_VENCIDO_MAX in df_fmt.columns:
        df_fmt[COL_DIAS_VENCIDO_MAX] = df_fmt[COL_DIAS_VENCIDO_MAX].map(lambda d: f"{d} dias")

    return df_fmt.rename(columns={
        CLI_COL_CODIGO: 'Codigo',
        TIT_COL_CLIENTE_NOME: 'Cliente',
        COL_TOTAL_SALDO: 'Saldo Vencido',
        COL_DIAS_VENCIDO_MAX: 'Maior Atraso',
        COL_QUANTIDADE_TITULOS: 'Titulos',
    })


def gerar_resumo_metricas(metricas: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Gera lista de metricas formatadas para exibicao em cards.

    Args:
        metricas: Dicionario de calcular_metricas_gerais

    Returns:
        Lista de dicionarios com label, valor e formato
    """
    return [
        {'label': 'Clientes', 'valor': metricas['total_clientes'], 'formato': 'numero'},
        {'label': 'Com Vencidos', 'valor': metricas['clientes_vermelho'], 'formato': 'numero'},
        {'label': 'Em Alerta', 'valor': metricas['clientes_amarelo'], 'formato': 'numero'},
        {'label': 'Em Aberto', 'valor': metricas['total_em_aberto'], 'formato': 'moeda'},
        {'label': 'Vencido', 'valor': metricas['total_vencido'], 'formato': 'moeda'},
        {'label': 'Separacoes Pendentes', 'valor': metricas['separacoes_pendentes'], 'formato': 'numero'},
    ]
