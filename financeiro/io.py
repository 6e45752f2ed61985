"""
io.py - Funcoes de leitura, validacao e normalizacao de dados.

Este modulo contem:
- Leitura de arquivos Excel/CSV
- Validacao de colunas obrigatorias
- Normalizacao de codigos de cliente/representante (PES_CODIGO)
- Conversao tolerante de valores e datas
- Carga das tabelas de clientes, titulos, pedidos, representantes e separacoes
"""

import logging
import math
import numbers
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple
from io import BytesIO

import pandas as pd

from .constants import (
    CLIENTES_REQUIRED_COLUMNS,
    CLIENTES_OPTIONAL_COLUMNS,
    CLI_COL_CODIGO,
    TITULOS_REQUIRED_COLUMNS,
    TITULOS_OPTIONAL_COLUMNS,
    TIT_COL_CODIGO_CLIENTE,
    TIT_COL_VALOR,
    TIT_COL_SALDO,
    PEDIDOS_REQUIRED_COLUMNS,
    PED_COL_REPRESENTANTE,
    REPRESENTANTES_REQUIRED_COLUMNS,
    SEPARACOES_REQUIRED_COLUMNS,
    SEPARACOES_OPTIONAL_COLUMNS,
    SEP_COL_ID,
    SEP_COL_CLIENTE,
    SEP_COL_PEDIDO,
    SEP_COL_STATUS,
    SEP_COL_VALOR_TOTAL,
    SEP_COL_ITEM,
    SEP_COL_QUANTIDADE,
    SEP_COL_VALOR_UNITARIO,
    SEP_COL_CRIADO_EM,
    STATUS_PENDENTE,
)

logger = logging.getLogger(__name__)

# Formatos aceitos para datas em texto, na ordem de tentativa
FORMATOS_DATA = ["ISO8601", "%m/%d/%Y"]


class DataValidationError(Exception):
    """Excecao customizada para erros de validacao de dados."""
    pass


def normalizar_codigo(valor: Any) -> Optional[int]:
    """
    Normaliza um codigo de cliente/representante para inteiro.

    Aceita numero, string numerica ou objeto que exponha `value`
    (atributo ou chave, como as opcoes de um select).

    Args:
        valor: Codigo em qualquer representacao

    Returns:
        Codigo inteiro, ou None se nao for possivel interpretar
    """
    if isinstance(valor, Mapping):
        valor = valor.get("value")
    elif hasattr(valor, "value") and not isinstance(
        valor, (str, bytes, numbers.Number, date, pd.Timestamp)
    ):
        valor = getattr(valor, "value", None)

    if valor is None or isinstance(valor, bool):
        return None

    try:
        if isinstance(valor, numbers.Integral):
            return int(valor)

        if isinstance(valor, numbers.Real):
            numero = float(valor)
            if math.isfinite(numero) and numero.is_integer():
                return int(numero)
            return None

        if isinstance(valor, str):
            texto = valor.strip()
            if not texto:
                return None
            try:
                return int(texto)
            except ValueError:
                numero = float(texto)
                if math.isfinite(numero) and numero.is_integer():
                    return int(numero)
                return None
    except (TypeError, ValueError, OverflowError):
        return None

    return None


def converter_valores(serie: pd.Series) -> pd.Series:
    """
    Converte uma coluna de valores monetarios para float.

    Valores ausentes ou nao numericos viram 0 (mesmo tratamento de um
    valor zerado).
    """
    return pd.to_numeric(serie, errors="coerce").fillna(0.0).astype(float)


def converter_data(valor: Any) -> pd.Timestamp:
    """
    Converte um valor de data para Timestamp sem fuso horario.

    Strings so sao aceitas em ISO 8601 ou MM/DD/AAAA. Qualquer outro texto
    (inclusive DD/MM/AAAA) vira NaT, e qualquer comparacao com NaT e falsa.

    Args:
        valor: String, date, datetime ou Timestamp

    Returns:
        Timestamp ou NaT
    """
    if isinstance(valor, str):
        texto = valor.strip()
        if not texto:
            return pd.NaT

        data = pd.NaT
        for formato in FORMATOS_DATA:
            try:
                data = pd.to_datetime(texto, format=formato, errors="coerce")
            except (TypeError, ValueError, OverflowError):
                data = pd.NaT
            if not pd.isna(data):
                break
    elif isinstance(valor, date):
        data = pd.Timestamp(valor)
    else:
        return pd.NaT

    if not isinstance(data, pd.Timestamp) or pd.isna(data):
        return pd.NaT

    if data.tzinfo is not None:
        data = data.tz_convert(None)

    return data


def converter_datas(serie: pd.Series) -> pd.Series:
    """Converte uma coluna de datas elemento a elemento (ver converter_data)."""
    if serie.empty:
        return pd.Series(pd.NaT, index=serie.index, dtype="datetime64[ns]")
    return pd.to_datetime(serie.map(converter_data))


def converter_data_referencia(hoje: Any) -> pd.Timestamp:
    """
    Converte a data de referencia ("hoje") informada pelo chamador.

    Args:
        hoje: date, datetime, Timestamp ou string ISO

    Returns:
        Timestamp sem fuso (NaT se invalida)
    """
    if isinstance(hoje, date) and not isinstance(hoje, datetime):
        return pd.Timestamp(hoje.year, hoje.month, hoje.day)

    referencia = converter_data(hoje)
    if pd.isna(referencia):
        logger.warning("Data de referencia invalida: %r", hoje)
    return referencia


def ler_arquivo(arquivo: BytesIO, nome_arquivo: str) -> pd.DataFrame:
    """
    Le um arquivo Excel ou CSV e retorna um DataFrame.

    Args:
        arquivo: Buffer do arquivo carregado
        nome_arquivo: Nome do arquivo para detectar extensao

    Returns:
        DataFrame com os dados do arquivo

    Raises:
        DataValidationError: Se o formato do arquivo nao for suportado
    """
    nome_lower = nome_arquivo.lower()

    try:
        if nome_lower.endswith('.xlsx') or nome_lower.endswith('.xls'):
            engine = 'openpyxl' if nome_lower.endswith('.xlsx') else None
            df = pd.read_excel(arquivo, engine=engine)
        elif nome_lower.endswith('.csv'):
            arquivo.seek(0)
            conteudo_bruto = arquivo.read()

            # Detectar encoding
            conteudo_texto = None
            encoding_usado = None
            for enc in ['utf-8-sig', 'utf-8', 'latin-1', 'cp1252']:
                try:
                    conteudo_texto = conteudo_bruto.decode(enc)
                    encoding_usado = enc
                    break
                except UnicodeDecodeError:
                    continue

            if conteudo_texto is None:
                raise DataValidationError(
                    "Nao foi possivel decodificar o arquivo CSV. "
                    "Tente converter para Excel (.xlsx) antes de enviar."
                )

            linhas = conteudo_texto.splitlines()
            if not linhas:
                raise DataValidationError(f"Arquivo vazio: {nome_arquivo}")

            # Detectar separador pela primeira linha
            primeira_linha = linhas[0]
            contagem = {
                ';': primeira_linha.count(';'),
                ',': primeira_linha.count(','),
                '|': primeira_linha.count('|'),
                '\t': primeira_linha.count('\t')
            }
            separador = max(contagem, key=contagem.get)
            if contagem[separador] == 0:
                separador = ','

            df = pd.read_csv(
                BytesIO(conteudo_bruto),
                sep=separador,
                encoding=encoding_usado,
                dtype=str,
                quotechar='"',
                keep_default_na=False,
            )
        else:
            raise DataValidationError(
                f"Formato de arquivo nao suportado: {nome_arquivo}. "
                "Use .xlsx, .xls ou .csv"
            )

        return df

    except Exception as e:
        if isinstance(e, DataValidationError):
            raise
        raise DataValidationError(f"Erro ao ler arquivo {nome_arquivo}: {str(e)}") from e


def validar_colunas(
    df: pd.DataFrame,
    colunas_obrigatorias: List[str],
    nome_planilha: str
) -> Tuple[bool, List[str]]:
    """
    Valida se as colunas obrigatorias existem no DataFrame.

    Args:
        df: DataFrame a ser validado
        colunas_obrigatorias: Lista de nomes de colunas obrigatorias
        nome_planilha: Nome da planilha para mensagens de erro

    Returns:
        Tupla (sucesso, lista_colunas_faltantes)
    """
    colunas_existentes = set(str(c).strip() for c in df.columns)
    colunas_faltantes = [c for c in colunas_obrigatorias if c not in colunas_existentes]

    if colunas_faltantes:
        logger.warning(
            "Colunas faltando em %s: %s", nome_planilha, ", ".join(colunas_faltantes)
        )

    return (len(colunas_faltantes) == 0, colunas_faltantes)


def preparar_tabela(
    df: pd.DataFrame,
    obrigatorias: List[str],
    opcionais: List[str],
    nome_planilha: str
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Padroniza colunas, valida obrigatorias e cria opcionais ausentes.

    Raises:
        DataValidationError: Se colunas obrigatorias faltarem
    """
    avisos = []
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]

    valido, faltantes = validar_colunas(df, obrigatorias, nome_planilha)
    if not valido:
        raise DataValidationError(
            f"Colunas obrigatorias faltando em {nome_planilha}: {', '.join(faltantes)}"
        )

    for col in opcionais:
        if col not in df.columns:
            avisos.append(f"Coluna opcional '{col}' nao encontrada")
            df[col] = None

    return df, avisos


def contar_codigos_invalidos(serie: pd.Series) -> int:
    """Conta quantos codigos da coluna nao podem ser normalizados."""
    return int(serie.map(normalizar_codigo).isna().sum())


def processar_clientes(arquivo: BytesIO, nome_arquivo: str) -> Tuple[pd.DataFrame, List[str]]:
    """
    Le e processa a tabela de clientes.

    Clientes com codigo invalido sao mantidos (o calculo devolve zeros
    para eles), mas geram aviso.

    Returns:
        Tupla (DataFrame processado, lista de avisos)
    """
    df = ler_arquivo(arquivo, nome_arquivo)
    df, avisos = preparar_tabela(
        df, CLIENTES_REQUIRED_COLUMNS, CLIENTES_OPTIONAL_COLUMNS, "Clientes"
    )

    invalidos = contar_codigos_invalidos(df[CLI_COL_CODIGO])
    if invalidos > 0:
        avisos.append(f"{invalidos} clientes com PES_CODIGO invalido")

    avisos.append(f"Clientes carregados: {len(df)}")
    logger.info("Clientes carregados de %s: %d", nome_arquivo, len(df))

    return df, avisos


def processar_titulos(arquivo: BytesIO, nome_arquivo: str) -> Tuple[pd.DataFrame, List[str]]:
    """
    Le e processa a tabela de titulos financeiros.

    Os valores sao convertidos para numero, mas vencimentos sao mantidos
    como vieram: a conversao de data acontece no momento do calculo.

    Returns:
        Tupla (DataFrame processado, lista de avisos)
    """
    df = ler_arquivo(arquivo, nome_arquivo)
    df, avisos = preparar_tabela(
        df, TITULOS_REQUIRED_COLUMNS, TITULOS_OPTIONAL_COLUMNS, "Titulos"
    )

    for col in [TIT_COL_VALOR, TIT_COL_SALDO]:
        numericos = pd.to_numeric(df[col], errors="coerce")
        vazios = int(numericos.isna().sum())
        if vazios > 0:
            avisos.append(f"{vazios} titulos sem {col} numerico (considerados 0)")
        df[col] = numericos

    invalidos = contar_codigos_invalidos(df[TIT_COL_CODIGO_CLIENTE])
    if invalidos > 0:
        avisos.append(f"{invalidos} titulos sem cliente associavel")

    avisos.append(f"Titulos carregados: {len(df)}")
    logger.info("Titulos carregados de %s: %d", nome_arquivo, len(df))

    return df, avisos


def processar_pedidos(arquivo: BytesIO, nome_arquivo: str) -> Tuple[pd.DataFrame, List[str]]:
    """Le e processa a tabela de pedidos usada para vincular representantes."""
    df = ler_arquivo(arquivo, nome_arquivo)
    df, avisos = preparar_tabela(df, PEDIDOS_REQUIRED_COLUMNS, [], "Pedidos")

    sem_representante = int(df[PED_COL_REPRESENTANTE].map(normalizar_codigo).isna().sum())
    if sem_representante > 0:
        avisos.append(f"{sem_representante} pedidos sem representante")

    logger.info("Pedidos carregados de %s: %d", nome_arquivo, len(df))
    return df, avisos


def processar_representantes(arquivo: BytesIO, nome_arquivo: str) -> Tuple[pd.DataFrame, List[str]]:
    """Le e processa o cadastro de representantes."""
    df = ler_arquivo(arquivo, nome_arquivo)
    df, avisos = preparar_tabela(
        df, REPRESENTANTES_REQUIRED_COLUMNS, [], "Representantes"
    )
    logger.info("Representantes carregados de %s: %d", nome_arquivo, len(df))
    return df, avisos


def processar_separacoes(arquivo: BytesIO, nome_arquivo: str) -> Tuple[pd.DataFrame, List[str]]:
    """Le e processa os itens de separacao (uma linha por item)."""
    df = ler_arquivo(arquivo, nome_arquivo)
    df, avisos = preparar_tabela(
        df, SEPARACOES_REQUIRED_COLUMNS, SEPARACOES_OPTIONAL_COLUMNS, "Separacoes"
    )
    logger.info("Itens de separacao carregados de %s: %d", nome_arquivo, len(df))
    return df, avisos


def _texto_ou_none(valor: Any) -> Optional[str]:
    if valor is None or (not isinstance(valor, str) and pd.isna(valor)):
        return None
    texto = str(valor).strip()
    return texto or None


def agrupar_separacoes(df_itens: pd.DataFrame) -> Dict[int, List[Dict[str, Any]]]:
    """
    Agrupa os itens de separacao por cliente.

    Cada separacao vira um dicionario com seus itens em `separacao_itens`.
    A ordem de primeira aparicao no arquivo e preservada.

    Args:
        df_itens: DataFrame de itens de separacao processado

    Returns:
        Dicionario {cliente_codigo: [separacao, ...]}
    """
    separacoes: Dict[str, Dict[str, Any]] = {}
    ignorados = 0

    for _, row in df_itens.iterrows():
        cliente = normalizar_codigo(row.get(SEP_COL_CLIENTE))
        sep_id = _texto_ou_none(row.get(SEP_COL_ID))
        if cliente is None or sep_id is None:
            ignorados += 1
            continue

        if sep_id not in separacoes:
            separacoes[sep_id] = {
                'id': sep_id,
                'cliente_codigo': cliente,
                'status': (_texto_ou_none(row.get(SEP_COL_STATUS)) or STATUS_PENDENTE).lower(),
                'valor_total': None,
                'created_at': _texto_ou_none(row.get(SEP_COL_CRIADO_EM)),
                'separacao_itens': [],
            }

        separacao = separacoes[sep_id]

        quantidade = pd.to_numeric(row.get(SEP_COL_QUANTIDADE), errors="coerce")
        valor_unitario = pd.to_numeric(row.get(SEP_COL_VALOR_UNITARIO), errors="coerce")
        separacao['separacao_itens'].append({
            'pedido': _texto_ou_none(row.get(SEP_COL_PEDIDO)),
            'item_codigo': _texto_ou_none(row.get(SEP_COL_ITEM)),
            'quantidade_pedida': 0.0 if pd.isna(quantidade) else float(quantidade),
            'valor_unitario': 0.0 if pd.isna(valor_unitario) else float(valor_unitario),
        })

        valor_total = pd.to_numeric(row.get(SEP_COL_VALOR_TOTAL), errors="coerce")
        if separacao['valor_total'] is None and not pd.isna(valor_total):
            separacao['valor_total'] = float(valor_total)

    if ignorados > 0:
        logger.warning("%d itens de separacao sem cliente ou id foram ignorados", ignorados)

    resultado: Dict[int, List[Dict[str, Any]]] = {}
    for separacao in separacoes.values():
        if separacao['valor_total'] is None:
            separacao['valor_total'] = sum(
                item['quantidade_pedida'] * item['valor_unitario']
                for item in separacao['separacao_itens']
            )
        resultado.setdefault(separacao['cliente_codigo'], []).append(separacao)

    return resultado
