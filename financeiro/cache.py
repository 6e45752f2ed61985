"""
cache.py - Cache de consultas com tempo de vida por entrada.

Substitui o cache global de consultas: cada fonte de dados recebe sua
propria instancia no construtor.
"""

import logging
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheConsultas:
    """
    Cache chave -> valor com expiracao por TTL.

    Args:
        ttl_segundos: Tempo de vida de cada entrada
        relogio: Funcao que retorna o instante atual em segundos
    """

    def __init__(self, ttl_segundos: float = 300, relogio: Callable[[], float] = time.monotonic):
        if ttl_segundos < 0:
            raise ValueError("ttl_segundos deve ser maior ou igual a zero")
        self.ttl_segundos = ttl_segundos
        self._relogio = relogio
        self._entradas: Dict[Hashable, Tuple[float, Any]] = {}

    def _expirada(self, gravado_em: float) -> bool:
        return self._relogio() - gravado_em >= self.ttl_segundos

    def obter(self, chave: Hashable, padrao: Optional[Any] = None) -> Any:
        entrada = self._entradas.get(chave)
        if entrada is None:
            return padrao

        gravado_em, valor = entrada
        if self._expirada(gravado_em):
            del self._entradas[chave]
            return padrao

        return valor

    def gravar(self, chave: Hashable, valor: Any) -> None:
        self._entradas[chave] = (self._relogio(), valor)

    def obter_ou_carregar(self, chave: Hashable, carregar: Callable[[], Any]) -> Any:
        """
        Retorna o valor em cache ou executa `carregar` e grava o resultado.

        Erros de `carregar` sao propagados e nada e gravado.
        """
        entrada = self._entradas.get(chave)
        if entrada is not None and not self._expirada(entrada[0]):
            logger.debug("Cache hit: %s", chave)
            return entrada[1]

        logger.debug("Cache miss: %s", chave)
        valor = carregar()
        self.gravar(chave, valor)
        return valor

    def invalidar(self, chave: Optional[Hashable] = None) -> None:
        """Remove uma entrada, ou todas quando `chave` e None."""
        if chave is None:
            self._entradas.clear()
        else:
            self._entradas.pop(chave, None)

    def __contains__(self, chave: Hashable) -> bool:
        entrada = self._entradas.get(chave)
        return entrada is not None and not self._expirada(entrada[0])

    def __len__(self) -> int:
        return sum(1 for gravado_em, _ in self._entradas.values() if not self._expirada(gravado_em))
