"""
app.py - Interface principal Streamlit para Bluebay Financeiro.

Painel de aprovacao de separacoes com a exposicao financeira de cada
cliente (valores totais, em aberto e vencidos) e lista de cobranca.

Autor: Bluebay Analytics
"""

import logging
from datetime import date

import pandas as pd
import streamlit as st

# Importar modulos do projeto
from financeiro.constants import (
    APP_TITLE,
    APP_SUBTITLE,
    DATA_DIR,
    CACHE_TTL_SEGUNDOS,
    TAB_APROVACAO,
    TAB_CLIENTES,
    TAB_COBRANCA,
)
from financeiro.io import DataValidationError
from financeiro.cache import CacheConsultas
from financeiro.source import FonteDadosFinanceiros
from financeiro.transform import (
    calcular_metricas_gerais,
    calcular_resumo_cobranca,
    calcular_resumo_financeiro,
)
from financeiro.workflow import (
    aprovar_separacao,
    rejeitar_separacao,
    clientes_com_separacoes_pendentes,
)
from financeiro.reports import (
    gerar_dados_card,
    gerar_html_card,
    formatar_tabela_clientes,
    formatar_tabela_cobranca,
    formatar_moeda,
    formatar_valor,
    gerar_resumo_metricas,
)
from financeiro.export import (
    exportar_csv,
    exportar_excel,
    exportar_multiplas_abas,
    gerar_nome_arquivo,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURACAO DA PAGINA
# =============================================================================
st.set_page_config(
    page_title=APP_TITLE,
    page_icon=":moneybag:",
    layout="wide",
    initial_sidebar_state="expanded"
)


# =============================================================================
# CSS CUSTOMIZADO
# =============================================================================
st.markdown("""
<style>
    /* Card do cliente: borda lateral colorida pela classificacao */
    .cliente-card {
        border-left: 6px solid var(--cor-card);
        border-radius: 8px;
        padding: 12px 16px;
        margin-bottom: 8px;
        background-color: #fafafa;
    }
    .cliente-card h4 {
        margin: 0;
    }
    .cliente-card .representante {
        font-size: 0.85em;
        opacity: 0.8;
    }

    /* Botoes de download */
    .stDownloadButton > button {
        width: 100%;
    }
</style>
""", unsafe_allow_html=True)


# =============================================================================
# FONTE DE DADOS
# =============================================================================
@st.cache_resource(show_spinner=False)
def obter_fonte(diretorio: str) -> FonteDadosFinanceiros:
    """
    Cria uma fonte de dados por diretorio, com seu proprio cache de consultas.
    """
    return FonteDadosFinanceiros(diretorio, cache=CacheConsultas(CACHE_TTL_SEGUNDOS))


def estado_sessao():
    """Inicializa as chaves usadas na sessao."""
    st.session_state.setdefault('ocultas', set())


def registrar_acao(fonte: FonteDadosFinanceiros, separacoes: dict, separacao_id: str,
                   registro_cliente, aprovar: bool):
    """Aprova ou rejeita a separacao e grava o novo status nos arquivos de dados."""
    acao = aprovar_separacao if aprovar else rejeitar_separacao
    try:
        novas_separacoes, registro = acao(separacoes, separacao_id, registro_cliente)
        fonte.gravar_status_separacoes(novas_separacoes)
        fonte.registrar_aprovacao(registro)
    except (ValueError, DataValidationError) as e:
        st.error(f":x: {str(e)}")
        return

    st.rerun()


def salvar_volume_saudavel(fonte: FonteDadosFinanceiros, codigo, valor):
    try:
        fonte.gravar_volume_saudavel(codigo, valor)
    except (ValueError, DataValidationError) as e:
        st.error(f":x: {str(e)}")
        return

    st.rerun()


def exibir_card_cliente(fonte: FonteDadosFinanceiros, registro: pd.Series, separacoes: dict):
    """Exibe o card de um cliente com suas separacoes pendentes."""
    card = gerar_dados_card(registro)

    st.markdown(gerar_html_card(card), unsafe_allow_html=True)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Valores Totais", card['valores_totais'])
    col2.metric("Em Aberto", card['valores_em_aberto'])
    col3.metric("Vencidos", card['valores_vencidos'])
    col4.metric(
        "Volume Saudavel",
        card['volume_saudavel'],
        delta=f"{card['percentual_volume']:.1f}% usado" if card['percentual_volume'] is not None else None,
        delta_color="off"
    )

    with st.expander("Editar volume saudavel"):
        valor = st.number_input(
            "Novo volume saudavel (R$)",
            min_value=0.0,
            step=1000.0,
            key=f"volume_{card['codigo']}"
        )
        if st.button("Salvar", key=f"salvar_volume_{card['codigo']}"):
            salvar_volume_saudavel(fonte, card['codigo'], valor)

    for separacao in card['separacoes']:
        with st.container(border=True):
            st.markdown(
                f"**Separacao {separacao['id']}** | "
                f"{len(separacao['separacao_itens'])} itens | "
                f"{formatar_moeda(separacao['valor_total'])}"
            )

            col_rej, col_apr, col_ocu, _ = st.columns([1, 1, 1, 3])
            with col_rej:
                if st.button("Reprovar", key=f"rej_{separacao['id']}", type="secondary"):
                    registrar_acao(fonte, separacoes, separacao['id'], registro, aprovar=False)
            with col_apr:
                if st.button("Aprovar", key=f"apr_{separacao['id']}", type="primary"):
                    registrar_acao(fonte, separacoes, separacao['id'], registro, aprovar=True)
            with col_ocu:
                if st.button("Ocultar", key=f"ocu_{separacao['id']}"):
                    st.session_state['ocultas'].add(separacao['id'])
                    st.rerun()


# =============================================================================
# INTERFACE PRINCIPAL
# =============================================================================
def main():
    estado_sessao()

    # Header
    st.title(f":moneybag: {APP_TITLE}")
    st.markdown(f"*{APP_SUBTITLE}*")
    st.markdown("---")

    # ==========================================================================
    # SIDEBAR
    # ==========================================================================
    with st.sidebar:
        st.header(":file_folder: Dados")

        diretorio = st.text_input("Diretorio de dados", value=DATA_DIR)
        hoje = st.date_input("Data de referencia", value=date.today(), format="DD/MM/YYYY")

        apenas_pendentes = st.checkbox(
            "Somente clientes com separacoes pendentes",
            value=True
        )

        if st.button(":arrows_counterclockwise: Recarregar dados", use_container_width=True):
            obter_fonte(diretorio).recarregar()
            st.session_state['ocultas'] = set()

    fonte = obter_fonte(diretorio)

    # ==========================================================================
    # PROCESSAMENTO
    # ==========================================================================
    with st.spinner("Carregando dados financeiros..."):
        try:
            dados = fonte.carregar_dados_financeiros(
                hoje,
                ocultas=st.session_state['ocultas'],
                apenas_pendentes=apenas_pendentes
            )
        except DataValidationError as e:
            st.error(f":x: Erro ao carregar dados: {str(e)}")
            st.info(
                f"Verifique se os arquivos `clientes.csv` e `titulos.csv` existem em `{diretorio}`."
            )
            return

    df_financeiro = dados['df_clientes_financeiros']

    # Exibir avisos
    if dados['avisos']:
        with st.expander(":information_source: Avisos do processamento", expanded=False):
            for aviso in dados['avisos']:
                if 'ALERTA' in aviso:
                    st.warning(aviso)
                else:
                    st.info(aviso)

    # ==========================================================================
    # METRICAS
    # ==========================================================================
    metricas = calcular_metricas_gerais(df_financeiro)

    cards_metricas = gerar_resumo_metricas(metricas)
    for coluna, card in zip(st.columns(len(cards_metricas)), cards_metricas):
        coluna.metric(card['label'], formatar_valor(card['valor'], card['formato']))

    st.markdown("---")

    tab_aprovacao, tab_clientes, tab_cobranca = st.tabs([
        f":white_check_mark: {TAB_APROVACAO}",
        f":busts_in_silhouette: {TAB_CLIENTES}",
        f":bell: {TAB_COBRANCA}",
    ])

    # ==========================================================================
    # TAB: APROVACAO
    # ==========================================================================
    with tab_aprovacao:
        df_pendentes = clientes_com_separacoes_pendentes(df_financeiro)

        if df_pendentes.empty:
            st.info("Nenhuma separacao pendente de aprovacao.")
        else:
            for _, registro in df_pendentes.iterrows():
                exibir_card_cliente(fonte, registro, dados['separacoes'])
                st.markdown("---")

        df_registros = fonte.carregar_aprovacoes()
        if not df_registros.empty:
            st.subheader("Historico de aprovacoes")
            st.dataframe(df_registros, use_container_width=True, hide_index=True)
            st.download_button(
                ":page_facing_up: Baixar acoes (CSV)",
                data=exportar_csv(df_registros),
                file_name=gerar_nome_arquivo("aprovacoes", "csv"),
                mime="text/csv"
            )

    # ==========================================================================
    # TAB: CLIENTES
    # ==========================================================================
    with tab_clientes:
        df_tabela = formatar_tabela_clientes(df_financeiro)
        st.dataframe(df_tabela, use_container_width=True, hide_index=True)

        if not dados['df_inconsistencias'].empty:
            st.warning("Clientes com totais inconsistentes:")
            st.dataframe(dados['df_inconsistencias'], use_container_width=True, hide_index=True)

        col_dl1, col_dl2, _ = st.columns([1, 1, 2])
        with col_dl1:
            st.download_button(
                ":page_facing_up: Baixar CSV",
                data=exportar_csv(df_tabela),
                file_name=gerar_nome_arquivo("clientes_financeiro", "csv"),
                mime="text/csv"
            )
        with col_dl2:
            st.download_button(
                ":bar_chart: Baixar Excel",
                data=exportar_excel(df_tabela, "Clientes"),
                file_name=gerar_nome_arquivo("clientes_financeiro", "xlsx"),
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
            )

    # ==========================================================================
    # TAB: COBRANCA
    # ==========================================================================
    with tab_cobranca:
        resumo = calcular_resumo_financeiro(dados['df_titulos'], hoje)

        col1, col2, col3 = st.columns(3)
        col1.metric("Total em Aberto", formatar_moeda(resumo['total_em_aberto']))
        col2.metric("Total Vencido", formatar_moeda(resumo['total_vencido']))
        col3.metric("Total Pago", formatar_moeda(resumo['total_pago']))

        df_cobranca = calcular_resumo_cobranca(dados['df_titulos'], hoje, dados['df_clientes'])

        if df_cobranca.empty:
            st.success("Nenhum titulo vencido em aberto.")
        else:
            df_cobranca_fmt = formatar_tabela_cobranca(df_cobranca)
            st.dataframe(df_cobranca_fmt, use_container_width=True, hide_index=True)

            st.download_button(
                ":bar_chart: Baixar relatorio completo (Excel)",
                data=exportar_multiplas_abas({
                    "Cobranca": df_cobranca,
                    "Clientes": formatar_tabela_clientes(df_financeiro),
                }),
                file_name=gerar_nome_arquivo("cobranca", "xlsx"),
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
            )


# =============================================================================
# EXECUCAO
# =============================================================================
if __name__ == "__main__":
    main()
