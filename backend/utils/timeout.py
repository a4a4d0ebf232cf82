"""
Utilitarios de timeout para operacoes longas.

O pipeline roda com orcamento de tempo de parede: cada laco que pode
demorar consulta um Prazo e aborta com PipelineTimeoutError ao estourar.
"""
import time
from typing import Callable, Optional

from logging_config import get_logger

logger = get_logger(__name__)


class PipelineTimeoutError(Exception):
    """Excecao levantada quando uma operacao excede o timeout."""

    def __init__(self, message: str, timeout_seconds: float, operation: str = "Operation"):
        self.timeout_seconds = timeout_seconds
        self.operation = operation
        super().__init__(message)


class Prazo:
    """
    Prazo de execucao (deadline) medido com relogio monotonico.

    Usage:
        prazo = Prazo(480, "regras arquivo.xlsx")
        for item in itens:
            prazo.verificar("v001c")
            ...
    """

    def __init__(
        self,
        timeout_seconds: float,
        operation: str = "Operation",
        clock: Optional[Callable[[], float]] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.operation = operation
        self._clock = clock or time.monotonic
        self._inicio = self._clock()

    @property
    def decorrido(self) -> float:
        """Segundos desde a criacao do prazo."""
        return self._clock() - self._inicio

    @property
    def restante(self) -> float:
        """Segundos restantes (negativo quando estourado)."""
        return self.timeout_seconds - self.decorrido

    def expirado(self) -> bool:
        return self.decorrido > self.timeout_seconds

    def verificar(self, etapa: str = "") -> None:
        """Levanta PipelineTimeoutError se o prazo foi excedido."""
        if not self.expirado():
            return
        onde = f" (etapa {etapa})" if etapa else ""
        logger.warning(
            f"{self.operation} timeout after {self.timeout_seconds}s{onde}"
        )
        raise PipelineTimeoutError(
            f"{self.operation} excedeu o tempo limite de {self.timeout_seconds:g} segundos{onde}",
            timeout_seconds=self.timeout_seconds,
            operation=self.operation,
        )
