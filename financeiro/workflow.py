"""
workflow.py - Fluxo de aprovacao de separacoes e ajustes manuais do cliente.

As funcoes nao alteram as estruturas recebidas: devolvem copias atualizadas
junto com o registro da acao, para que a camada de persistencia grave.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .constants import (
    CLI_COL_CODIGO,
    CLI_COL_VOLUME_SAUDAVEL,
    COL_SEPARACOES,
    STATUS_PENDENTE,
    STATUS_APROVADO,
    STATUS_REJEITADO,
)
from .io import normalizar_codigo

logger = logging.getLogger(__name__)

SeparacoesPorCliente = Dict[int, List[Dict[str, Any]]]


def filtrar_separacoes_pendentes(
    separacoes_por_cliente: SeparacoesPorCliente,
    ocultas: Iterable[str] = ()
) -> SeparacoesPorCliente:
    """
    Mantem apenas separacoes pendentes que nao foram ocultadas na tela.

    Clientes sem nenhuma separacao restante saem do resultado.
    """
    ocultas = set(ocultas)
    resultado = {}
    for cliente, separacoes in separacoes_por_cliente.items():
        pendentes = [
            s for s in separacoes or []
            if s.get('status', STATUS_PENDENTE) == STATUS_PENDENTE and s.get('id') not in ocultas
        ]
        if pendentes:
            resultado[cliente] = pendentes
    return resultado


def clientes_com_separacoes_pendentes(df_enriquecido: pd.DataFrame) -> pd.DataFrame:
    """Filtra os clientes enriquecidos que tem ao menos uma separacao pendente."""
    if df_enriquecido.empty:
        return df_enriquecido.copy()

    mascara = df_enriquecido[COL_SEPARACOES].map(
        lambda seps: any(s.get('status', STATUS_PENDENTE) == STATUS_PENDENTE for s in seps or [])
    ).astype(bool)
    return df_enriquecido[mascara].copy()


def _como_dict(registro: Any) -> Dict[str, Any]:
    if registro is None:
        return {}
    if isinstance(registro, pd.Series):
        return registro.to_dict()
    return dict(registro)


def _alterar_status(
    separacoes_por_cliente: SeparacoesPorCliente,
    separacao_id: str,
    novo_status: str,
    registro_cliente: Any,
    momento: Optional[datetime]
) -> Tuple[SeparacoesPorCliente, Dict[str, Any]]:
    if novo_status not in (STATUS_APROVADO, STATUS_REJEITADO):
        raise ValueError(f"Status invalido para a separacao: {novo_status}")

    resultado = {}
    encontrada = False

    for cliente, separacoes in separacoes_por_cliente.items():
        novas = []
        for separacao in separacoes or []:
            if separacao.get('id') == separacao_id:
                status_atual = separacao.get('status', STATUS_PENDENTE)
                if status_atual != STATUS_PENDENTE:
                    raise ValueError(
                        f"Separacao {separacao_id} ja esta com status '{status_atual}'"
                    )
                separacao = {**separacao, 'status': novo_status}
                encontrada = True
            novas.append(separacao)
        resultado[cliente] = novas

    if not encontrada:
        raise ValueError(f"Separacao nao encontrada: {separacao_id}")

    cliente_data = _como_dict(registro_cliente)
    cliente_data.pop(COL_SEPARACOES, None)

    registro = {
        'separacao_id': separacao_id,
        'acao': novo_status,
        'cliente_data': cliente_data,
        'created_at': (momento or datetime.now()).isoformat(),
    }

    logger.info("Separacao %s marcada como %s", separacao_id, novo_status)
    return resultado, registro


def aprovar_separacao(
    separacoes_por_cliente: SeparacoesPorCliente,
    separacao_id: str,
    registro_cliente: Any = None,
    momento: Optional[datetime] = None
) -> Tuple[SeparacoesPorCliente, Dict[str, Any]]:
    """
    Aprova uma separacao pendente.

    Args:
        separacoes_por_cliente: {cliente_codigo: [separacao, ...]}
        separacao_id: Id da separacao
        registro_cliente: Dados do cliente gravados junto da aprovacao
        momento: Data/hora da acao (padrao: agora)

    Returns:
        Tupla (novo mapa de separacoes, registro da aprovacao)

    Raises:
        ValueError: Se a separacao nao existir ou nao estiver pendente
    """
    return _alterar_status(
        separacoes_por_cliente, separacao_id, STATUS_APROVADO, registro_cliente, momento
    )


def rejeitar_separacao(
    separacoes_por_cliente: SeparacoesPorCliente,
    separacao_id: str,
    registro_cliente: Any = None,
    momento: Optional[datetime] = None
) -> Tuple[SeparacoesPorCliente, Dict[str, Any]]:
    """Rejeita uma separacao pendente (mesmas regras de aprovar_separacao)."""
    return _alterar_status(
        separacoes_por_cliente, separacao_id, STATUS_REJEITADO, registro_cliente, momento
    )


def atualizar_volume_saudavel(df_clientes: pd.DataFrame, codigo: Any, valor: Any) -> pd.DataFrame:
    """
    Atualiza o volume saudavel de faturamento de um cliente.

    Returns:
        Copia do DataFrame de clientes com o valor atualizado

    Raises:
        ValueError: Se o valor for invalido/negativo ou o cliente nao existir
    """
    numero = pd.to_numeric(valor, errors="coerce") if valor is not None else None
    if numero is None or pd.isna(numero) or numero < 0:
        raise ValueError(f"Volume saudavel invalido: {valor}")

    codigo_normalizado = normalizar_codigo(codigo)
    if codigo_normalizado is None:
        raise ValueError(f"Codigo de cliente invalido: {codigo}")

    df = df_clientes.copy()
    mascara = df[CLI_COL_CODIGO].map(normalizar_codigo) == codigo_normalizado
    if not mascara.any():
        raise ValueError(f"Cliente nao encontrado: {codigo}")

    if CLI_COL_VOLUME_SAUDAVEL not in df.columns:
        df[CLI_COL_VOLUME_SAUDAVEL] = None
    df[CLI_COL_VOLUME_SAUDAVEL] = df[CLI_COL_VOLUME_SAUDAVEL].astype(object)
    df.loc[mascara, CLI_COL_VOLUME_SAUDAVEL] = float(numero)

    logger.info("Volume saudavel do cliente %s atualizado para %.2f", codigo_normalizado, numero)
    return df
