"""
transform.py - Funcoes de agregacao financeira por cliente.

Este modulo contem:
- Soma de titulos por cliente (total, em aberto, vencido)
- Vinculo cliente -> representante -> nome do representante
- Montagem do registro financeiro enriquecido de cada cliente
- Resumos de cobranca e totais gerais
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .constants import (
    CLI_COL_CODIGO,
    CLI_COL_APELIDO,
    TIT_COL_CODIGO_CLIENTE,
    TIT_COL_VALOR,
    TIT_COL_SALDO,
    TIT_COL_VENCIMENTO,
    TIT_COL_STATUS,
    TIT_COL_PAGAMENTO,
    TIT_COL_CLIENTE_NOME,
    STATUS_TITULO_PAGO,
    STATUS_TITULO_CANCELADO,
    PED_COL_NUMERO,
    PED_COL_REPRESENTANTE,
    PED_COL_CODIGO_CLIENTE,
    REP_COL_CODIGO,
    REP_COL_NOME,
    STATUS_PENDENTE,
    RISCO_VERMELHO,
    RISCO_AMARELO,
    RISCO_VERDE,
    COL_VALORES_TOTAIS,
    COL_VALORES_EM_ABERTO,
    COL_VALORES_VENCIDOS,
    COL_SEPARACOES,
    COL_REPRESENTANTE_NOME,
    COL_CLASSIFICACAO,
    COL_TOTAL_SALDO,
    COL_DIAS_VENCIDO_MAX,
    COL_QUANTIDADE_TITULOS,
)
from .io import (
    normalizar_codigo,
    converter_valores,
    converter_datas,
    converter_data_referencia,
)
from .risk import classificar_risco_serie

logger = logging.getLogger(__name__)

# Colunas internas dos titulos preparados
_CODIGO = "_codigo_cliente"
_SALDO = "_saldo"
_SALDO_BRUTO = "_saldo_bruto"
_VALOR = "_valor"
_VENCIMENTO = "_vencimento"

COL_DIAS_VENCIDO = "DIAS_VENCIDO"


def _como_dataframe(dados: Any) -> pd.DataFrame:
    if isinstance(dados, pd.DataFrame):
        return dados
    if dados is None:
        return pd.DataFrame()
    return pd.DataFrame(list(dados))


def _coluna(df: pd.DataFrame, nome: str) -> pd.Series:
    if nome in df.columns:
        return df[nome]
    return pd.Series([None] * len(df), index=df.index, dtype=object)


def _coluna_objetos(valores: List[Any]) -> np.ndarray:
    # Evita que listas de listas virem matriz 2D ao atribuir em coluna
    resultado = np.empty(len(valores), dtype=object)
    for i, valor in enumerate(valores):
        resultado[i] = valor
    return resultado


def _vazio(valor: Any) -> bool:
    if valor is None:
        return True
    if isinstance(valor, str):
        return not valor.strip()
    return bool(pd.isna(valor))


def normalizar_codigos(serie: pd.Series) -> pd.Series:
    """Aplica normalizar_codigo preservando inteiros e None (dtype object)."""
    return pd.Series(
        [normalizar_codigo(v) for v in serie], index=serie.index, dtype=object
    )


def _normalizar_chaves(mapa: Optional[Dict[Any, Any]]) -> Dict[int, Any]:
    resultado = {}
    for chave, valor in (mapa or {}).items():
        codigo = normalizar_codigo(chave)
        if codigo is not None:
            resultado[codigo] = valor
    return resultado


def _normalizar_status(valor: Any) -> str:
    codigo = normalizar_codigo(valor)
    if codigo is not None:
        return str(codigo)
    if _vazio(valor):
        return ""
    return str(valor).strip()


def preparar_titulos(df_titulos: Any) -> pd.DataFrame:
    """
    Prepara os titulos para os calculos.

    Cria colunas internas com o codigo do cliente normalizado, saldo e valor
    numericos (ausentes = 0) e vencimento convertido (invalido = NaT).

    Args:
        df_titulos: DataFrame (ou lista de dicionarios) de titulos

    Returns:
        Copia do DataFrame com as colunas internas
    """
    df = _como_dataframe(df_titulos)
    if _CODIGO in df.columns:
        return df

    df = df.copy()
    df[_CODIGO] = normalizar_codigos(_coluna(df, TIT_COL_CODIGO_CLIENTE))
    df[_SALDO_BRUTO] = pd.to_numeric(_coluna(df, TIT_COL_SALDO), errors="coerce")
    df[_SALDO] = converter_valores(_coluna(df, TIT_COL_SALDO))
    df[_VALOR] = converter_valores(_coluna(df, TIT_COL_VALOR))
    df[_VENCIMENTO] = converter_datas(_coluna(df, TIT_COL_VENCIMENTO))
    return df


def _mascara_vencidos(df: pd.DataFrame, referencia: pd.Timestamp) -> pd.Series:
    # NaT (data invalida ou referencia invalida) sempre resulta em False
    if pd.isna(referencia):
        return pd.Series(False, index=df.index)
    return (df[_VENCIMENTO] < referencia) & (df[_SALDO_BRUTO] > 0)


def _titulos_do_cliente(df: pd.DataFrame, codigo: Any) -> pd.DataFrame:
    codigo = normalizar_codigo(codigo)
    if codigo is None:
        return df.iloc[0:0]
    return df[df[_CODIGO] == codigo]


def somar_saldo_aberto(df_titulos: Any, codigo: Any) -> float:
    """
    Soma o saldo (VLRSALDO) de todos os titulos do cliente.

    Args:
        df_titulos: Titulos financeiros
        codigo: Codigo do cliente (qualquer representacao)

    Returns:
        Saldo em aberto (0 se nenhum titulo corresponder)
    """
    df = _titulos_do_cliente(preparar_titulos(df_titulos), codigo)
    return float(df[_SALDO].sum()) if not df.empty else 0.0


def somar_saldo_vencido(df_titulos: Any, codigo: Any, hoje: Any) -> float:
    """
    Soma o saldo dos titulos do cliente vencidos antes de `hoje`.

    Somente titulos com saldo positivo entram na soma. Titulos com
    vencimento invalido nunca sao considerados vencidos.

    Args:
        df_titulos: Titulos financeiros
        codigo: Codigo do cliente (qualquer representacao)
        hoje: Data de referencia

    Returns:
        Saldo vencido
    """
    df = _titulos_do_cliente(preparar_titulos(df_titulos), codigo)
    if df.empty:
        return 0.0
    mascara = _mascara_vencidos(df, converter_data_referencia(hoje))
    return float(df.loc[mascara, _SALDO].sum())


def somar_valor_titulos(df_titulos: Any, codigo: Any) -> float:
    """Soma o valor bruto (VLRTITULO) de todos os titulos do cliente."""
    df = _titulos_do_cliente(preparar_titulos(df_titulos), codigo)
    return float(df[_VALOR].sum()) if not df.empty else 0.0


def calcular_totais_cliente(df_titulos: Any, codigo: Any, hoje: Any) -> Dict[str, float]:
    """
    Calcula os tres totais financeiros de um cliente.

    Returns:
        Dicionario com valoresTotais, valoresEmAberto e valoresVencidos
    """
    df = preparar_titulos(df_titulos)
    return {
        COL_VALORES_TOTAIS: somar_valor_titulos(df, codigo),
        COL_VALORES_EM_ABERTO: somar_saldo_aberto(df, codigo),
        COL_VALORES_VENCIDOS: somar_saldo_vencido(df, codigo, hoje),
    }


def calcular_totais_por_cliente(df_titulos: Any, hoje: Any) -> pd.DataFrame:
    """
    Calcula os totais financeiros de todos os clientes de uma vez.

    Mesmas regras de calcular_totais_cliente, agrupadas por codigo.
    Titulos sem codigo valido ficam de fora.

    Returns:
        DataFrame indexado pelo codigo normalizado do cliente
    """
    df = preparar_titulos(df_titulos)
    colunas = [COL_VALORES_TOTAIS, COL_VALORES_EM_ABERTO, COL_VALORES_VENCIDOS]

    df = df[df[_CODIGO].notna()]
    if df.empty:
        return pd.DataFrame(columns=colunas, dtype=float)

    referencia = converter_data_referencia(hoje)
    vencido = df[_SALDO].where(_mascara_vencidos(df, referencia), 0.0)

    agg = pd.DataFrame({
        _CODIGO: df[_CODIGO].astype(object),
        COL_VALORES_TOTAIS: df[_VALOR],
        COL_VALORES_EM_ABERTO: df[_SALDO],
        COL_VALORES_VENCIDOS: vencido,
    }).groupby(_CODIGO, sort=False)[colunas].sum()

    agg.index = [int(c) for c in agg.index]
    return agg


def _numero_pedido(valor: Any) -> Optional[str]:
    codigo = normalizar_codigo(valor)
    if codigo is not None:
        return str(codigo)
    if _vazio(valor):
        return None
    return str(valor).strip()


def mapear_cliente_representante(
    separacoes_por_cliente: Optional[Dict[Any, List[Dict[str, Any]]]],
    df_pedidos: Any
) -> Dict[int, int]:
    """
    Vincula cada cliente ao representante do seu pedido mais recente.

    O vinculo principal vem dos pedidos citados nos itens das separacoes do
    cliente. Quando a tabela de pedidos traz PES_CODIGO, clientes sem
    separacao vinculada usam o proprio pedido. Em ambos os casos a ultima
    linha da tabela de pedidos prevalece.

    Args:
        separacoes_por_cliente: {cliente_codigo: [separacao, ...]}
        df_pedidos: Pedidos com PED_NUMPEDIDO e REPRESENTANTE

    Returns:
        Dicionario {cliente_codigo: representante_codigo}
    """
    df = _como_dataframe(df_pedidos)

    pedidos_por_cliente: Dict[int, set] = {}
    for cliente, separacoes in (separacoes_por_cliente or {}).items():
        codigo = normalizar_codigo(cliente)
        if codigo is None:
            continue
        numeros = {
            _numero_pedido(item.get('pedido'))
            for separacao in separacoes or []
            for item in separacao.get('separacao_itens') or []
        }
        numeros.discard(None)
        if numeros:
            pedidos_por_cliente[codigo] = numeros

    via_separacao: Dict[int, int] = {}
    via_pedido: Dict[int, int] = {}

    numeros_pedido = _coluna(df, PED_COL_NUMERO)
    representantes = _coluna(df, PED_COL_REPRESENTANTE)
    clientes_pedido = _coluna(df, PED_COL_CODIGO_CLIENTE)

    for numero, representante, cliente in zip(numeros_pedido, representantes, clientes_pedido):
        rep = normalizar_codigo(representante)
        if rep is None:
            continue

        numero = _numero_pedido(numero)
        for codigo, numeros in pedidos_por_cliente.items():
            if numero in numeros:
                via_separacao[codigo] = rep

        codigo_cliente = normalizar_codigo(cliente)
        if codigo_cliente is not None:
            via_pedido[codigo_cliente] = rep

    mapa = dict(via_pedido)
    mapa.update(via_separacao)
    return mapa


def mapear_nomes_representantes(df_representantes: Any) -> Dict[int, str]:
    """
    Monta o mapa codigo do representante -> nome.

    Linhas sem codigo valido ou sem nome sao ignoradas.
    """
    df = _como_dataframe(df_representantes)
    mapa = {}
    for codigo, nome in zip(_coluna(df, REP_COL_CODIGO), _coluna(df, REP_COL_NOME)):
        codigo = normalizar_codigo(codigo)
        if codigo is None or _vazio(nome):
            continue
        mapa[codigo] = str(nome).strip()
    return mapa


def resolver_nome_representante(
    codigo_cliente: Any,
    mapa_cliente_representante: Dict[int, int],
    mapa_representante_nome: Dict[int, str]
) -> Optional[str]:
    """
    Resolve o nome do representante de um cliente.

    Returns:
        Nome do representante, ou None se algum dos vinculos faltar
    """
    codigo = normalizar_codigo(codigo_cliente)
    if codigo is None:
        return None

    representante = normalizar_codigo(mapa_cliente_representante.get(codigo))
    if representante is None:
        return None

    return mapa_representante_nome.get(representante)


def processar_dados_clientes(
    df_clientes: Any,
    separacoes_por_cliente: Optional[Dict[Any, List[Dict[str, Any]]]],
    mapa_cliente_representante: Optional[Dict[Any, Any]],
    mapa_representante_nome: Optional[Dict[Any, str]],
    df_titulos: Any,
    hoje: Any
) -> pd.DataFrame:
    """
    Monta o registro financeiro enriquecido de cada cliente.

    Uma linha de saida por cliente de entrada, na mesma ordem. Para cada
    cliente sao calculados valoresTotais, valoresEmAberto e valoresVencidos,
    anexadas as separacoes (lista vazia se nao houver), o nome do
    representante e a classificacao de risco.

    Clientes com codigo invalido recebem totais zerados; nenhum registro
    isolado interrompe o processamento.

    Args:
        df_clientes: Clientes (DataFrame ou lista de dicionarios)
        separacoes_por_cliente: {cliente_codigo: [separacao, ...]}
        mapa_cliente_representante: {cliente_codigo: representante_codigo}
        mapa_representante_nome: {representante_codigo: nome}
        df_titulos: Titulos financeiros
        hoje: Data de referencia para vencimento

    Returns:
        DataFrame de clientes enriquecido
    """
    df = _como_dataframe(df_clientes).copy().reset_index(drop=True)

    separacoes = _normalizar_chaves(separacoes_por_cliente)
    mapa_cliente_rep = _normalizar_chaves(mapa_cliente_representante)
    mapa_rep_nome = _normalizar_chaves(mapa_representante_nome)

    codigos = [normalizar_codigo(v) for v in _coluna(df, CLI_COL_CODIGO)]
    invalidos = sum(1 for c in codigos if c is None)
    if invalidos > 0:
        logger.warning("%d clientes sem PES_CODIGO valido: totais zerados", invalidos)

    totais = calcular_totais_por_cliente(df_titulos, hoje)

    for col in [COL_VALORES_TOTAIS, COL_VALORES_EM_ABERTO, COL_VALORES_VENCIDOS]:
        df[col] = [
            float(totais.at[c, col]) if c is not None and c in totais.index else 0.0
            for c in codigos
        ]

    df[COL_SEPARACOES] = _coluna_objetos([
        list(separacoes.get(c) or []) if c is not None else [] for c in codigos
    ])
    df[COL_REPRESENTANTE_NOME] = _coluna_objetos([
        resolver_nome_representante(c, mapa_cliente_rep, mapa_rep_nome) for c in codigos
    ])
    df[COL_CLASSIFICACAO] = classificar_risco_serie(
        df[COL_VALORES_VENCIDOS], df[COL_VALORES_EM_ABERTO]
    )

    logger.info("Dados financeiros processados para %d clientes", len(df))
    return df


def verificar_consistencia_totais(df_enriquecido: pd.DataFrame) -> pd.DataFrame:
    """
    Lista clientes que violam vencido <= em aberto <= total.

    Os totais nao sao alterados; o resultado serve apenas para auditoria.

    Returns:
        DataFrame com codigo, totais e descricao da inconsistencia
    """
    colunas = [CLI_COL_CODIGO, COL_VALORES_TOTAIS, COL_VALORES_EM_ABERTO,
               COL_VALORES_VENCIDOS, 'Inconsistencia']
    if df_enriquecido.empty:
        return pd.DataFrame(columns=colunas)

    vencido_maior = df_enriquecido[COL_VALORES_VENCIDOS] > df_enriquecido[COL_VALORES_EM_ABERTO]
    aberto_maior = df_enriquecido[COL_VALORES_EM_ABERTO] > df_enriquecido[COL_VALORES_TOTAIS]

    df = df_enriquecido[vencido_maior | aberto_maior].copy()
    df['Inconsistencia'] = np.where(
        vencido_maior[df.index],
        'Vencido maior que em aberto',
        'Em aberto maior que total',
    )

    if not df.empty:
        logger.warning("%d clientes com totais inconsistentes", len(df))

    return df[[c for c in colunas if c in df.columns]].reset_index(drop=True)


def calcular_metricas_gerais(df_enriquecido: pd.DataFrame) -> Dict[str, Any]:
    """
    Calcula metricas gerais para exibicao em cards.

    Args:
        df_enriquecido: Resultado de processar_dados_clientes

    Returns:
        Dicionario com contagens por classificacao e totais
    """
    if df_enriquecido.empty:
        return {
            'total_clientes': 0,
            'clientes_vermelho': 0,
            'clientes_amarelo': 0,
            'clientes_verde': 0,
            'total_valores': 0.0,
            'total_em_aberto': 0.0,
            'total_vencido': 0.0,
            'separacoes_pendentes': 0,
        }

    contagem = df_enriquecido[COL_CLASSIFICACAO].value_counts()
    pendentes = sum(
        1
        for separacoes in df_enriquecido[COL_SEPARACOES]
        for separacao in separacoes or []
        if separacao.get('status', STATUS_PENDENTE) == STATUS_PENDENTE
    )

    return {
        'total_clientes': len(df_enriquecido),
        'clientes_vermelho': int(contagem.get(RISCO_VERMELHO, 0)),
        'clientes_amarelo': int(contagem.get(RISCO_AMARELO, 0)),
        'clientes_verde': int(contagem.get(RISCO_VERDE, 0)),
        'total_valores': float(df_enriquecido[COL_VALORES_TOTAIS].sum()),
        'total_em_aberto': float(df_enriquecido[COL_VALORES_EM_ABERTO].sum()),
        'total_vencido': float(df_enriquecido[COL_VALORES_VENCIDOS].sum()),
        'separacoes_pendentes': pendentes,
    }


def _status_titulos(df: pd.DataFrame) -> pd.Series:
    return _coluna(df, TIT_COL_STATUS).map(_normalizar_status)


def filtrar_titulos_vencidos_em_aberto(df_titulos: Any, hoje: Any) -> pd.DataFrame:
    """
    Filtra titulos vencidos e nao quitados (lista de cobranca).

    Exclui titulos pagos (STATUS 3) e cancelados (STATUS 4). Mantem
    apenas vencimento anterior a `hoje` e saldo positivo.

    Returns:
        Titulos filtrados, com a coluna DIAS_VENCIDO
    """
    df = preparar_titulos(df_titulos)
    referencia = converter_data_referencia(hoje)

    status = _status_titulos(df)
    ativos = ~status.isin([STATUS_TITULO_PAGO, STATUS_TITULO_CANCELADO])

    df = df[ativos & _mascara_vencidos(df, referencia)].copy()
    df[COL_DIAS_VENCIDO] = (referencia - df[_VENCIMENTO]).dt.days.astype(int)
    return df


def calcular_resumo_cobranca(
    df_titulos: Any,
    hoje: Any,
    df_clientes: Optional[pd.DataFrame] = None
) -> pd.DataFrame:
    """
    Agrupa os titulos vencidos em aberto por cliente.

    Args:
        df_titulos: Titulos financeiros
        hoje: Data de referencia
        df_clientes: Clientes opcionais para completar o nome (APELIDO)

    Returns:
        DataFrame com PES_CODIGO, CLIENTE_NOME, TOTAL_SALDO,
        DIAS_VENCIDO_MAX e QUANTIDADE_TITULOS, ordenado pelo saldo
    """
    colunas = [CLI_COL_CODIGO, TIT_COL_CLIENTE_NOME, COL_TOTAL_SALDO,
               COL_DIAS_VENCIDO_MAX, COL_QUANTIDADE_TITULOS]

    df = filtrar_titulos_vencidos_em_aberto(df_titulos, hoje)
    df = df[df[_CODIGO].notna()]
    if df.empty:
        return pd.DataFrame(columns=colunas)

    df = df.assign(**{
        _CODIGO: df[_CODIGO].astype(object),
        TIT_COL_CLIENTE_NOME: _coluna(df, TIT_COL_CLIENTE_NOME).map(
            lambda v: None if _vazio(v) else str(v).strip()
        ),
    })

    resumo = df.groupby(_CODIGO, sort=False).agg(**{
        TIT_COL_CLIENTE_NOME: (TIT_COL_CLIENTE_NOME, 'first'),
        COL_TOTAL_SALDO: (_SALDO, 'sum'),
        COL_DIAS_VENCIDO_MAX: (COL_DIAS_VENCIDO, 'max'),
        COL_QUANTIDADE_TITULOS: (_SALDO, 'count'),
    }).reset_index().rename(columns={_CODIGO: CLI_COL_CODIGO})

    resumo[CLI_COL_CODIGO] = resumo[CLI_COL_CODIGO].astype(int)

    if df_clientes is not None and not df_clientes.empty:
        apelidos = {}
        for codigo, apelido in zip(_coluna(df_clientes, CLI_COL_CODIGO),
                                   _coluna(df_clientes, CLI_COL_APELIDO)):
            codigo = normalizar_codigo(codigo)
            if codigo is not None and not _vazio(apelido):
                apelidos[codigo] = str(apelido).strip()
        resumo[TIT_COL_CLIENTE_NOME] = [
            apelidos.get(codigo) if _vazio(nome) else nome
            for codigo, nome in zip(resumo[CLI_COL_CODIGO], resumo[TIT_COL_CLIENTE_NOME])
        ]

    resumo[TIT_COL_CLIENTE_NOME] = resumo[TIT_COL_CLIENTE_NOME].fillna("")

    return resumo.sort_values(COL_TOTAL_SALDO, ascending=False).reset_index(drop=True)[colunas]


def calcular_resumo_financeiro(df_titulos: Any, hoje: Any) -> Dict[str, float]:
    """
    Calcula os totais gerais da carteira, sem titulos cancelados.

    - total_em_aberto: soma dos saldos positivos
    - total_vencido: saldos positivos com vencimento anterior a `hoje`
    - total_pago: VLRTITULO - VLRSALDO dos titulos com data de pagamento

    Returns:
        Dicionario com os tres totais
    """
    df = preparar_titulos(df_titulos)
    df = df[_status_titulos(df) != STATUS_TITULO_CANCELADO]

    referencia = converter_data_referencia(hoje)
    positivos = df[_SALDO_BRUTO] > 0
    com_pagamento = ~_coluna(df, TIT_COL_PAGAMENTO).map(_vazio).astype(bool)

    return {
        'total_em_aberto': float(df.loc[positivos, _SALDO].sum()),
        'total_vencido': float(df.loc[_mascara_vencidos(df, referencia), _SALDO].sum()),
        'total_pago': float((df.loc[com_pagamento, _VALOR] - df.loc[com_pagamento, _SALDO]).sum()),
    }
