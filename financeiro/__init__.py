"""
financeiro - Modulo principal da aplicacao Bluebay Financeiro.

Este pacote contem os modulos de processamento de dados:
- constants: Constantes e configuracoes
- io: Leitura, validacao e normalizacao de dados
- transform: Agregacao financeira por cliente
- risk: Classificacao de risco
- workflow: Aprovacao de separacoes e volume saudavel
- cache: Cache de consultas com TTL
- source: Carga das tabelas de origem
- reports: Formatacao de cards e tabelas
- export: Exportacao de dados
"""

from .constants import *
from .io import (
    normalizar_codigo,
    converter_valores,
    converter_data,
    converter_datas,
    converter_data_referencia,
    ler_arquivo,
    validar_colunas,
    processar_clientes,
    processar_titulos,
    processar_pedidos,
    processar_representantes,
    processar_separacoes,
    agrupar_separacoes,
    DataValidationError,
)
from .risk import (
    classificar_risco,
    classificar_risco_serie,
    classe_borda_card,
)
from .transform import (
    preparar_titulos,
    somar_saldo_aberto,
    somar_saldo_vencido,
    somar_valor_titulos,
    calcular_totais_cliente,
    calcular_totais_por_cliente,
    mapear_cliente_representante,
    mapear_nomes_representantes,
    resolver_nome_representante,
    processar_dados_clientes,
    verificar_consistencia_totais,
    calcular_metricas_gerais,
    filtrar_titulos_vencidos_em_aberto,
    calcular_resumo_cobranca,
    calcular_resumo_financeiro,
)
from .workflow import (
    filtrar_separacoes_pendentes,
    clientes_com_separacoes_pendentes,
    aprovar_separacao,
    rejeitar_separacao,
    atualizar_volume_saudavel,
)
from .cache import CacheConsultas
from .source import FonteDadosFinanceiros
from .reports import (
    formatar_moeda,
    formatar_valor,
    nome_cliente,
    percentual_volume_saudavel,
    gerar_dados_card,
    gerar_html_card,
    formatar_tabela_clientes,
    formatar_tabela_cobranca,
    gerar_resumo_metricas,
)
from .export import (
    exportar_csv,
    exportar_excel,
    exportar_multiplas_abas,
    gerar_nome_arquivo,
)
