"""
Exceções específicas do backend de faturamento.

Este módulo define exceções customizadas para melhor tratamento de erros
e mensagens mais claras para o usuário.
"""

from typing import Any, Optional


class FaturamentoError(Exception):
    """Exceção base para todas as exceções do sistema de faturamento."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


# === Exceções de Configuração ===

class ConfigurationError(FaturamentoError):
    """Erro de configuração do sistema."""
    pass


# === Exceções de Processamento ===

class ProcessingError(FaturamentoError):
    """Erro durante o processamento da volumetria."""
    pass


class RegistryReadError(ProcessingError):
    """Não foi possível ler os cadastros de referência."""

    def __init__(self, cadastro: str, details: Optional[str] = None):
        self.cadastro = cadastro
        super().__init__(f"Erro ao ler cadastro de referência '{cadastro}'", details)


class PricingError(ProcessingError):
    """Erro ao precificar exames de um cliente."""

    def __init__(self, cliente: str, details: Optional[str] = None):
        self.cliente = cliente
        super().__init__(f"Erro na precificação do cliente {cliente}", details)


class JobConflictError(ProcessingError):
    """Já existe um job ativo para o mesmo arquivo."""

    def __init__(self, arquivo_fonte: str, job_id: Optional[str] = None):
        self.arquivo_fonte = arquivo_fonte
        self.job_id = job_id
        super().__init__(
            f"Já existe um processamento ativo para o arquivo '{arquivo_fonte}'",
            f"job_id={job_id}" if job_id else None,
        )


# === Exceções de Validação ===

class ValidationError(FaturamentoError):
    """Erro de validação de dados."""
    pass


class InvalidPeriodError(ValidationError):
    """Período de referência fora do formato YYYY-MM."""

    def __init__(self, periodo: Any):
        super().__init__(f"Período de referência inválido: '{periodo}'. Formato esperado: YYYY-MM")


# === Exceções de Banco de Dados ===

class DatabaseError(FaturamentoError):
    """Erro base para operações de banco de dados."""
    pass


class RecordNotFoundError(DatabaseError):
    """Registro não encontrado no banco de dados."""

    def __init__(self, entity: str, identifier: Any = None):
        if identifier:
            message = f"{entity} com ID '{identifier}' não encontrado"
        else:
            message = f"{entity} não encontrado"
        super().__init__(message)

