"""
export.py - Funcoes de exportacao de dados.

Este modulo contem funcoes para exportar DataFrames
para formatos CSV e Excel.
"""

from datetime import datetime
from io import BytesIO
from typing import Dict

import pandas as pd
from openpyxl.utils import get_column_letter


def exportar_csv(df: pd.DataFrame) -> bytes:
    """
    Exporta um DataFrame para formato CSV (separador ';', padrao Excel BR).

    Args:
        df: DataFrame a ser exportado

    Returns:
        Bytes do arquivo CSV
    """
    return df.to_csv(index=False, sep=';', decimal=',').encode('utf-8-sig')


def _ajustar_larguras(worksheet, df: pd.DataFrame) -> None:
    for idx, col in enumerate(df.columns):
        if len(df) > 0:
            max_content = df[col].astype(str).map(len).max()
        else:
            max_content = 0

        largura = max(max_content, len(str(col))) + 2

        # Limitar largura maxima e minima
        largura = max(min(largura, 50), 10)
        worksheet.column_dimensions[get_column_letter(idx + 1)].width = largura


def exportar_excel(df: pd.DataFrame, nome_aba: str = "Dados") -> bytes:
    """
    Exporta um DataFrame para formato Excel (.xlsx).

    Args:
        df: DataFrame a ser exportado
        nome_aba: Nome da aba na planilha

    Returns:
        Bytes do arquivo Excel
    """
    return exportar_multiplas_abas({nome_aba: df})


def exportar_multiplas_abas(dataframes: Dict[str, pd.DataFrame]) -> bytes:
    """
    Exporta multiplos DataFrames para um arquivo Excel com multiplas abas.

    Args:
        dataframes: Dicionario {nome_aba: DataFrame}

    Returns:
        Bytes do arquivo Excel
    """
    output = BytesIO()

    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        for nome_aba, df in dataframes.items():
            # Limite do Excel para nome de aba
            nome_aba_safe = nome_aba[:31]
            df.to_excel(writer, sheet_name=nome_aba_safe, index=False)
            _ajustar_larguras(writer.sheets[nome_aba_safe], df)

    return output.getvalue()


def gerar_nome_arquivo(prefixo: str, extensao: str) -> str:
    """
    Gera nome de arquivo com timestamp.

    Args:
        prefixo: Prefixo do nome do arquivo
        extensao: Extensao do arquivo (sem ponto)

    Returns:
        Nome do arquivo formatado
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefixo}_{timestamp}.{extensao}"
