"""
source.py - Camada de busca dos dados financeiros.

Le as tabelas de origem de um diretorio de dados (CSV/Excel) usando um
cache de consultas injetado no construtor, e monta o resultado completo
usado pelo painel de aprovacao financeira.
"""

import json
import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from .cache import CacheConsultas
from .constants import (
    ARQUIVO_CLIENTES,
    ARQUIVO_TITULOS,
    ARQUIVO_PEDIDOS,
    ARQUIVO_REPRESENTANTES,
    ARQUIVO_SEPARACOES,
    ARQUIVO_APROVACOES,
    APROVACOES_COLUMNS,
    CLI_COL_CODIGO,
    CLIENTES_REQUIRED_COLUMNS,
    TIT_COL_CODIGO_CLIENTE,
    PEDIDOS_REQUIRED_COLUMNS,
    REPRESENTANTES_REQUIRED_COLUMNS,
    SEPARACOES_REQUIRED_COLUMNS,
    SEP_COL_ID,
    SEP_COL_STATUS,
    STATUS_PENDENTE,
    CACHE_TTL_SEGUNDOS,
)
from .io import (
    DataValidationError,
    normalizar_codigo,
    ler_arquivo,
    validar_colunas,
    processar_clientes,
    processar_titulos,
    processar_pedidos,
    processar_representantes,
    processar_separacoes,
    agrupar_separacoes,
)
from .transform import (
    mapear_cliente_representante,
    mapear_nomes_representantes,
    processar_dados_clientes,
    verificar_consistencia_totais,
)
from .workflow import filtrar_separacoes_pendentes, atualizar_volume_saudavel

logger = logging.getLogger(__name__)

Carregador = Callable[[BytesIO, str], Tuple[pd.DataFrame, List[str]]]


class FonteDadosFinanceiros:
    """
    Fonte das tabelas financeiras lidas de um diretorio.

    Args:
        diretorio: Pasta com os arquivos de dados
        cache: Cache de consultas (um novo com TTL padrao se omitido)
    """

    def __init__(self, diretorio: Union[str, Path], cache: Optional[CacheConsultas] = None):
        self.diretorio = Path(diretorio)
        self.cache = cache if cache is not None else CacheConsultas(CACHE_TTL_SEGUNDOS)

    def _localizar(self, nome_arquivo: str) -> Optional[Path]:
        caminho = self.diretorio / nome_arquivo
        if caminho.exists():
            return caminho

        # Aceitar a mesma tabela exportada como planilha
        caminho_xlsx = caminho.with_suffix('.xlsx')
        if caminho_xlsx.exists():
            return caminho_xlsx

        return None

    def _carregar(
        self,
        nome_arquivo: str,
        carregador: Carregador,
        obrigatorio: bool,
        colunas_vazias: Iterable[str] = ()
    ) -> Tuple[pd.DataFrame, List[str]]:
        def carregar():
            caminho = self._localizar(nome_arquivo)
            if caminho is None:
                if obrigatorio:
                    raise DataValidationError(
                        f"Arquivo nao encontrado: {self.diretorio / nome_arquivo}"
                    )
                logger.warning("Arquivo opcional ausente: %s", nome_arquivo)
                return pd.DataFrame(columns=list(colunas_vazias)), [
                    f"Arquivo {nome_arquivo} nao encontrado"
                ]

            return carregador(BytesIO(caminho.read_bytes()), caminho.name)

        df, avisos = self.cache.obter_ou_carregar(nome_arquivo, carregar)
        return df.copy(), list(avisos)

    def carregar_clientes(self, codigos: Optional[Iterable[Any]] = None) -> Tuple[pd.DataFrame, List[str]]:
        df, avisos = self._carregar(ARQUIVO_CLIENTES, processar_clientes, obrigatorio=True)
        return _filtrar_por_codigos(df, CLI_COL_CODIGO, codigos), avisos

    def carregar_titulos(self, codigos: Optional[Iterable[Any]] = None) -> Tuple[pd.DataFrame, List[str]]:
        df, avisos = self._carregar(ARQUIVO_TITULOS, processar_titulos, obrigatorio=True)
        return _filtrar_por_codigos(df, TIT_COL_CODIGO_CLIENTE, codigos), avisos

    def carregar_pedidos(self) -> Tuple[pd.DataFrame, List[str]]:
        return self._carregar(
            ARQUIVO_PEDIDOS, processar_pedidos, obrigatorio=False,
            colunas_vazias=PEDIDOS_REQUIRED_COLUMNS
        )

    def carregar_representantes(self) -> Tuple[pd.DataFrame, List[str]]:
        return self._carregar(
            ARQUIVO_REPRESENTANTES, processar_representantes, obrigatorio=False,
            colunas_vazias=REPRESENTANTES_REQUIRED_COLUMNS
        )

    def carregar_separacoes(self) -> Tuple[pd.DataFrame, List[str]]:
        return self._carregar(
            ARQUIVO_SEPARACOES, processar_separacoes, obrigatorio=False,
            colunas_vazias=SEPARACOES_REQUIRED_COLUMNS
        )

    def _ler_para_gravacao(self, nome_arquivo: str, obrigatorias: List[str]) -> Tuple[Path, pd.DataFrame]:
        # Le o arquivo bruto (sem colunas opcionais criadas) para regravar
        caminho = self._localizar(nome_arquivo)
        if caminho is None:
            raise DataValidationError(f"Arquivo nao encontrado: {self.diretorio / nome_arquivo}")

        df = ler_arquivo(BytesIO(caminho.read_bytes()), caminho.name)
        df.columns = [str(c).strip() for c in df.columns]

        valido, faltantes = validar_colunas(df, obrigatorias, nome_arquivo)
        if not valido:
            raise DataValidationError(
                f"Colunas obrigatorias faltando em {nome_arquivo}: {', '.join(faltantes)}"
            )
        return caminho, df

    def gravar_status_separacoes(self, separacoes_por_cliente: Dict[Any, List[Dict[str, Any]]]) -> int:
        """
        Grava no arquivo de itens o status atual de cada separacao do mapa.

        Args:
            separacoes_por_cliente: Mapa devolvido por aprovar/rejeitar_separacao

        Returns:
            Quantidade de linhas de item alteradas

        Raises:
            DataValidationError: Se o arquivo de separacoes nao puder ser lido
        """
        status_por_id = {
            str(separacao.get('id')).strip(): separacao.get('status') or STATUS_PENDENTE
            for separacoes in separacoes_por_cliente.values()
            for separacao in separacoes or []
        }

        caminho, df = self._ler_para_gravacao(ARQUIVO_SEPARACOES, SEPARACOES_REQUIRED_COLUMNS)
        if SEP_COL_STATUS not in df.columns:
            df[SEP_COL_STATUS] = ""

        atual = df[SEP_COL_STATUS].map(_status_normalizado)
        novo = df[SEP_COL_ID].map(lambda v: status_por_id.get(str(v).strip()))
        mascara = (novo.notna() & (novo != atual)).astype(bool)

        alteradas = int(mascara.sum())
        if alteradas > 0:
            df[SEP_COL_STATUS] = df[SEP_COL_STATUS].astype(object)
            df.loc[mascara, SEP_COL_STATUS] = novo[mascara]
            _escrever_tabela(caminho, df)
            self.cache.invalidar(ARQUIVO_SEPARACOES)
            logger.info("Status de separacao gravado em %s: %d itens", caminho.name, alteradas)

        return alteradas

    def registrar_aprovacao(self, registro: Dict[str, Any]) -> None:
        """
        Acrescenta o registro de aprovacao/rejeicao ao historico de aprovacoes.

        Args:
            registro: Registro devolvido por aprovar/rejeitar_separacao
        """
        cliente_data = registro.get('cliente_data') or {}
        linha = pd.DataFrame([{
            'separacao_id': registro.get('separacao_id'),
            'acao': registro.get('acao'),
            'cliente_codigo': normalizar_codigo(cliente_data.get(CLI_COL_CODIGO)),
            'cliente_data': json.dumps(cliente_data, default=str, ensure_ascii=False),
            'created_at': registro.get('created_at'),
        }], columns=APROVACOES_COLUMNS)

        caminho = self._localizar(ARQUIVO_APROVACOES)
        if caminho is None:
            caminho = self.diretorio / ARQUIVO_APROVACOES
            df = linha
        else:
            _, historico = self._ler_para_gravacao(ARQUIVO_APROVACOES, [])
            df = pd.concat([historico, linha], ignore_index=True)

        _escrever_tabela(caminho, df)
        logger.info("Aprovacao registrada: %s (%s)", registro.get('separacao_id'), registro.get('acao'))

    def carregar_aprovacoes(self) -> pd.DataFrame:
        """Historico de aprovacoes gravado (vazio se ainda nao houver)."""
        if self._localizar(ARQUIVO_APROVACOES) is None:
            return pd.DataFrame(columns=APROVACOES_COLUMNS)
        _, df = self._ler_para_gravacao(ARQUIVO_APROVACOES, [])
        return df

    def gravar_volume_saudavel(self, codigo: Any, valor: Any) -> None:
        """
        Atualiza o volume saudavel de faturamento do cliente no arquivo de clientes.

        Raises:
            ValueError: Se o valor for invalido ou o cliente nao existir
            DataValidationError: Se o arquivo de clientes nao puder ser lido
        """
        caminho, df = self._ler_para_gravacao(ARQUIVO_CLIENTES, CLIENTES_REQUIRED_COLUMNS)
        _escrever_tabela(caminho, atualizar_volume_saudavel(df, codigo, valor))
        self.cache.invalidar(ARQUIVO_CLIENTES)

    def recarregar(self) -> None:
        """Descarta o cache para forcar nova leitura dos arquivos."""
        self.cache.invalidar()

    def carregar_dados_financeiros(
        self,
        hoje: Any,
        ocultas: Iterable[str] = (),
        apenas_pendentes: bool = True
    ) -> Dict[str, Any]:
        """
        Carrega todas as tabelas e monta os clientes financeiros enriquecidos.

        Com `apenas_pendentes`, somente clientes com separacoes pendentes
        (e nao ocultas) entram no resultado, como no painel de aprovacao.

        Args:
            hoje: Data de referencia para vencimento
            ocultas: Ids de separacoes ocultadas pelo usuario
            apenas_pendentes: Restringe aos clientes com separacao pendente

        Returns:
            Dicionario com os DataFrames processados, separacoes e avisos

        Raises:
            DataValidationError: Se clientes ou titulos nao puderem ser lidos
        """
        avisos = []

        df_itens, avisos_sep = self.carregar_separacoes()
        avisos.extend([f"[Separacoes] {a}" for a in avisos_sep])
        separacoes = agrupar_separacoes(df_itens)
        if apenas_pendentes:
            separacoes = filtrar_separacoes_pendentes(separacoes, ocultas)

        codigos = list(separacoes.keys()) if apenas_pendentes else None

        df_clientes, avisos_cli = self.carregar_clientes(codigos)
        avisos.extend([f"[Clientes] {a}" for a in avisos_cli])

        df_titulos, avisos_tit = self.carregar_titulos(codigos)
        avisos.extend([f"[Titulos] {a}" for a in avisos_tit])

        df_pedidos, avisos_ped = self.carregar_pedidos()
        avisos.extend([f"[Pedidos] {a}" for a in avisos_ped])

        df_representantes, avisos_rep = self.carregar_representantes()
        avisos.extend([f"[Representantes] {a}" for a in avisos_rep])

        mapa_cliente_rep = mapear_cliente_representante(separacoes, df_pedidos)
        mapa_rep_nome = mapear_nomes_representantes(df_representantes)

        df_financeiro = processar_dados_clientes(
            df_clientes,
            separacoes,
            mapa_cliente_rep,
            mapa_rep_nome,
            df_titulos,
            hoje,
        )

        df_inconsistencias = verificar_consistencia_totais(df_financeiro)
        if not df_inconsistencias.empty:
            avisos.append(
                f"ALERTA: {len(df_inconsistencias)} clientes com totais inconsistentes "
                "(vencido > em aberto ou em aberto > total)"
            )

        return {
            'df_clientes_financeiros': df_financeiro,
            'df_clientes': df_clientes,
            'df_titulos': df_titulos,
            'df_inconsistencias': df_inconsistencias,
            'separacoes': separacoes,
            'avisos': avisos,
        }


def _filtrar_por_codigos(df: pd.DataFrame, coluna: str, codigos: Optional[Iterable[Any]]) -> pd.DataFrame:
    if codigos is None:
        return df
    alvo = {c for c in (normalizar_codigo(v) for v in codigos) if c is not None}
    mascara = df[coluna].map(lambda v: normalizar_codigo(v) in alvo).astype(bool)
    return df[mascara].copy()


def _status_normalizado(valor: Any) -> str:
    if valor is None or (not isinstance(valor, str) and pd.isna(valor)):
        return STATUS_PENDENTE
    return str(valor).strip().lower() or STATUS_PENDENTE


def _escrever_tabela(caminho: Path, df: pd.DataFrame) -> None:
    if caminho.suffix.lower() == '.xlsx':
        df.to_excel(caminho, index=False, engine='openpyxl')
    else:
        df.to_csv(caminho, index=False, sep=';', encoding='utf-8')
