"""
constants.py - Constantes e configuracoes do projeto Bluebay Financeiro.

Define nomes de colunas padronizados, status, limites de classificacao e
configuracoes gerais para garantir consistencia em todo o projeto.
"""

import os

# =============================================================================
# COLUNAS DA TABELA DE CLIENTES (BLUEBAY_PESSOA)
# =============================================================================
CLI_COL_CODIGO = "PES_CODIGO"
CLI_COL_APELIDO = "APELIDO"
CLI_COL_RAZAO_SOCIAL = "RAZAOSOCIAL"
CLI_COL_VOLUME_SAUDAVEL = "volume_saudavel_faturamento"
CLI_COL_FATOR_CORRECAO = "fator_correcao"

CLIENTES_REQUIRED_COLUMNS = [CLI_COL_CODIGO]
CLIENTES_OPTIONAL_COLUMNS = [
    CLI_COL_APELIDO,
    CLI_COL_RAZAO_SOCIAL,
    CLI_COL_VOLUME_SAUDAVEL,
    CLI_COL_FATOR_CORRECAO,
]

# =============================================================================
# COLUNAS DA TABELA DE TITULOS (BLUEBAY_TITULO)
# =============================================================================
TIT_COL_CODIGO_CLIENTE = "PES_CODIGO"
TIT_COL_VALOR = "VLRTITULO"
TIT_COL_SALDO = "VLRSALDO"
TIT_COL_VENCIMENTO = "DTVENCIMENTO"
TIT_COL_STATUS = "STATUS"
TIT_COL_PAGAMENTO = "DTPAGTO"
TIT_COL_NOTA = "NUMNOTA"
TIT_COL_CLIENTE_NOME = "CLIENTE_NOME"

TITULOS_REQUIRED_COLUMNS = [
    TIT_COL_CODIGO_CLIENTE,
    TIT_COL_VALOR,
    TIT_COL_SALDO,
    TIT_COL_VENCIMENTO,
]
TITULOS_OPTIONAL_COLUMNS = [
    TIT_COL_STATUS,
    TIT_COL_PAGAMENTO,
    TIT_COL_NOTA,
    TIT_COL_CLIENTE_NOME,
]

# Status de titulo vindos do ERP
STATUS_TITULO_PAGO = "3"
STATUS_TITULO_CANCELADO = "4"

# =============================================================================
# COLUNAS DA TABELA DE PEDIDOS (BLUEBAY_PEDIDO)
# =============================================================================
PED_COL_NUMERO = "PED_NUMPEDIDO"
PED_COL_REPRESENTANTE = "REPRESENTANTE"
PED_COL_CODIGO_CLIENTE = "PES_CODIGO"

PEDIDOS_REQUIRED_COLUMNS = [PED_COL_NUMERO, PED_COL_REPRESENTANTE]

# =============================================================================
# COLUNAS DO CADASTRO DE REPRESENTANTES (vw_representantes)
# =============================================================================
REP_COL_CODIGO = "codigo_representante"
REP_COL_NOME = "nome_representante"

REPRESENTANTES_REQUIRED_COLUMNS = [REP_COL_CODIGO, REP_COL_NOME]

# =============================================================================
# COLUNAS DOS ITENS DE SEPARACAO (uma linha por item)
# =============================================================================
SEP_COL_ID = "separacao_id"
SEP_COL_CLIENTE = "cliente_codigo"
SEP_COL_PEDIDO = "pedido"
SEP_COL_STATUS = "status"
SEP_COL_VALOR_TOTAL = "valor_total"
SEP_COL_ITEM = "item_codigo"
SEP_COL_QUANTIDADE = "quantidade_pedida"
SEP_COL_VALOR_UNITARIO = "valor_unitario"
SEP_COL_CRIADO_EM = "created_at"

SEPARACOES_REQUIRED_COLUMNS = [SEP_COL_ID, SEP_COL_CLIENTE, SEP_COL_PEDIDO]
SEPARACOES_OPTIONAL_COLUMNS = [
    SEP_COL_STATUS,
    SEP_COL_VALOR_TOTAL,
    SEP_COL_ITEM,
    SEP_COL_QUANTIDADE,
    SEP_COL_VALOR_UNITARIO,
    SEP_COL_CRIADO_EM,
]

# Status do fluxo de aprovacao
STATUS_PENDENTE = "pendente"
STATUS_APROVADO = "aprovado"
STATUS_REJEITADO = "rejeitado"
STATUS_SEPARACAO_VALIDOS = [STATUS_PENDENTE, STATUS_APROVADO, STATUS_REJEITADO]

# =============================================================================
# COLUNAS CALCULADAS (criadas durante processamento)
# =============================================================================
COL_VALORES_TOTAIS = "valoresTotais"
COL_VALORES_EM_ABERTO = "valoresEmAberto"
COL_VALORES_VENCIDOS = "valoresVencidos"
COL_SEPARACOES = "separacoes"
COL_REPRESENTANTE_NOME = "representanteNome"
COL_CLASSIFICACAO = "classificacao"

COL_TOTAL_SALDO = "TOTAL_SALDO"
COL_DIAS_VENCIDO_MAX = "DIAS_VENCIDO_MAX"
COL_QUANTIDADE_TITULOS = "QUANTIDADE_TITULOS"

# =============================================================================
# CLASSIFICACAO DE RISCO
# =============================================================================
RISCO_VERMELHO = "red"
RISCO_AMARELO = "amber"
RISCO_VERDE = "green"

# Acima deste valor em aberto (sem vencidos) o cliente fica em alerta
LIMITE_EM_ABERTO_ALERTA = 5000

CLASSE_BORDA_CARD = {
    RISCO_VERMELHO: "border-l-4 border-l-red-500",
    RISCO_AMARELO: "border-l-4 border-l-amber-500",
    RISCO_VERDE: "border-l-4 border-l-green-500",
}

COR_CLASSIFICACAO = {
    RISCO_VERMELHO: "#ef4444",
    RISCO_AMARELO: "#f59e0b",
    RISCO_VERDE: "#22c55e",
}

# =============================================================================
# CONFIGURACOES DE AMBIENTE
# =============================================================================
DATA_DIR = os.getenv("FINANCEIRO_DATA_DIR", "data")
CACHE_TTL_SEGUNDOS = int(os.getenv("FINANCEIRO_CACHE_TTL", "300"))

ARQUIVO_CLIENTES = "clientes.csv"
ARQUIVO_TITULOS = "titulos.csv"
ARQUIVO_PEDIDOS = "pedidos.csv"
ARQUIVO_REPRESENTANTES = "representantes.csv"
ARQUIVO_SEPARACOES = "separacao_itens.csv"
ARQUIVO_APROVACOES = "aprovacoes.csv"

# Colunas do historico de aprovacoes gravado pelo painel
APROVACOES_COLUMNS = ["separacao_id", "acao", "cliente_codigo", "cliente_data", "created_at"]

# =============================================================================
# TEXTOS DA INTERFACE
# =============================================================================
APP_TITLE = "Bluebay Financeiro"
APP_SUBTITLE = "Aprovacao de Pedidos e Exposicao Financeira por Cliente"

REPRESENTANTE_NAO_INFORMADO = "Nao informado"

TAB_APROVACAO = "Aprovacao"
TAB_CLIENTES = "Clientes"
TAB_COBRANCA = "Cobranca"

# =============================================================================
# FORMATACAO
# =============================================================================
FORMATO_MOEDA = "R$ {:,.2f}"
FORMATO_PERCENTUAL = "{:.1f}%"
FORMATO_NUMERO = "{:,.0f}"
