"""
risk.py - Classificacao de risco financeiro dos clientes.

Tabela de decisao usada para colorir os cards:
- valor vencido > 0                 -> vermelho
- valor em aberto > limite de alerta -> amarelo
- caso contrario                     -> verde
"""

from typing import Any

import numpy as np
import pandas as pd

from .constants import (
    RISCO_VERMELHO,
    RISCO_AMARELO,
    RISCO_VERDE,
    LIMITE_EM_ABERTO_ALERTA,
    CLASSE_BORDA_CARD,
)


def _como_numero(valor: Any) -> float:
    try:
        numero = pd.to_numeric(valor, errors="coerce")
    except (TypeError, ValueError):
        return 0.0
    if pd.isna(numero):
        return 0.0
    return float(numero)


def classificar_risco(valor_vencido: Any, valor_em_aberto: Any) -> str:
    """
    Classifica o cliente a partir dos totais vencido e em aberto.

    Valores nulos ou nao numericos sao tratados como 0.

    Args:
        valor_vencido: Total vencido do cliente
        valor_em_aberto: Total em aberto do cliente

    Returns:
        'red', 'amber' ou 'green'
    """
    if _como_numero(valor_vencido) > 0:
        return RISCO_VERMELHO
    if _como_numero(valor_em_aberto) > LIMITE_EM_ABERTO_ALERTA:
        return RISCO_AMARELO
    return RISCO_VERDE


def classificar_risco_serie(vencidos: pd.Series, em_aberto: pd.Series) -> pd.Series:
    """Versao vetorizada de classificar_risco para colunas de um DataFrame."""
    vencidos = pd.to_numeric(vencidos, errors="coerce").fillna(0)
    em_aberto = pd.to_numeric(em_aberto, errors="coerce").fillna(0)

    classificacao = np.select(
        [vencidos > 0, em_aberto > LIMITE_EM_ABERTO_ALERTA],
        [RISCO_VERMELHO, RISCO_AMARELO],
        default=RISCO_VERDE,
    )
    return pd.Series(classificacao, index=vencidos.index, dtype=object)


def classe_borda_card(classificacao: str) -> str:
    """Classe CSS da borda do card para a classificacao (verde se desconhecida)."""
    return CLASSE_BORDA_CARD.get(classificacao, CLASSE_BORDA_CARD[RISCO_VERDE])
