"""
Configuração de logging do backend de faturamento.

Uso:
    from logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Mensagem de info")
    logger.error("Mensagem de erro")

Para logging estruturado (JSON):
    export LOG_FORMAT=json

Para logging com contexto de requisição/job:
    from logging_config import set_correlation_id
    set_correlation_id("job-123")
    logger.info("Processando")  # CorrelationFilter inclui o correlation_id

Para medir tempo de operações (ex: cada regra do pipeline):
    from logging_config import log_timing
    with log_timing(logger, "regra v031", level=logging.INFO):
        # código lento
"""
import json
import logging
import os
import re
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

# Context var para correlation ID (thread-safe)
_correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | [%(correlation_id)s] %(name)s | %(message)s"

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'exc_info', 'exc_text',
    'message', 'context', 'thread', 'threadName', 'taskName', 'correlation_id',
}


class StructuredFormatter(logging.Formatter):
    """
    Formatter que produz logs em formato JSON estruturado.

    Útil para integração com ferramentas de análise de logs
    como ELK Stack, Datadog, CloudWatch, etc.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Formata o registro de log como JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = getattr(record, 'correlation_id', None)
        if correlation_id in (None, '-'):
            correlation_id = _correlation_id.get()
        if correlation_id:
            log_data['correlation_id'] = correlation_id

        if hasattr(record, 'context'):
            log_data['context'] = record.context

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    use_json: Optional[bool] = None
) -> None:
    """
    Configura o logging para toda a aplicação.

    Args:
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR)
        log_file: Caminho para arquivo de log (opcional)
        format_string: Formato das mensagens de log
        use_json: Se True, usa formato JSON estruturado (útil para produção)

    Environment Variables:
        LOG_LEVEL: Nível de logging (default: INFO)
        LOG_FILE: Caminho para arquivo de log
        LOG_FORMAT: "json" para formato JSON
    """
    effective_level: str = level or os.getenv("LOG_LEVEL", "INFO") or "INFO"
    log_level = getattr(logging, effective_level.upper(), logging.INFO)

    if use_json is None:
        use_json = os.getenv("LOG_FORMAT", "").lower() == "json"

    effective_format: str = format_string or DEFAULT_FORMAT

    formatter: logging.Formatter
    if use_json:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(effective_format)

    handlers: List[Any] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    log_file_path = log_file or os.getenv("LOG_FILE")
    if log_file_path:
        log_path = Path(log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        format=effective_format,
        handlers=handlers
    )

    # Filtros nos handlers (filtros de logger não valem para registros propagados)
    for handler in handlers:
        handler.addFilter(CorrelationFilter())
        handler.addFilter(SanitizingFilter())

    # Reduzir verbosidade de bibliotecas externas
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Obtém um logger configurado para um módulo.

    Args:
        name: Nome do módulo (geralmente __name__)

    Returns:
        Logger configurado
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context
) -> None:
    """
    Loga uma mensagem com contexto adicional.

    Example:
        log_with_context(logger, logging.INFO, "Regra aplicada",
                        codigo="v031", arquivo_fonte="volumetria_padrao")
    """
    logger.log(level, message, extra={'context': context})


# === Correlation ID (Request/Job Tracking) ===

def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Define o correlation ID para a requisição (ou job) atual.

    Args:
        correlation_id: ID para usar (gera novo se None)

    Returns:
        O correlation ID definido
    """
    cid = correlation_id or str(uuid.uuid4())[:8]
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> Optional[str]:
    """Obtém o correlation ID atual."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Limpa o correlation ID (fim da requisição)."""
    _correlation_id.set(None)


class CorrelationFilter(logging.Filter):
    """Filter que adiciona correlation_id a todos os logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or '-'
        return True


# === Timing Utilities ===

@contextmanager
def log_timing(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    threshold_ms: Optional[float] = None
):
    """
    Context manager para medir e logar tempo de operações.

    Args:
        logger: Logger a usar
        operation: Nome da operação
        level: Nível de log (default: DEBUG)
        threshold_ms: Se definido, só loga se tempo > threshold

    Example:
        with log_timing(logger, "regra v001c"):
            aplicar(...)
        # Output: [timing] regra v001c completed in 123.45ms
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if threshold_ms is None or elapsed_ms > threshold_ms:
            logger.log(
                level,
                f"[timing] {operation} completed in {elapsed_ms:.2f}ms"
            )


# === Sensitive Data Sanitization ===

# Identificadores de paciente não devem ir para os logs
SENSITIVE_PATTERNS = [
    # CPF formatado (000.000.000-00) ou corrido (11 dígitos)
    (re.compile(r'\b\d{3}\.\d{3}\.\d{3}-\d{2}\b'), '[CPF]'),
    (re.compile(r'\b\d{11}\b'), '[CPF]'),
    # nome_paciente=xxx / paciente: xxx
    (re.compile(r'((?:nome_)?paciente)\s*[=:]\s*[^,;|]+', re.IGNORECASE), r'\1=[REDACTED]'),
    # Senhas/tokens eventualmente presentes em URLs de conexão
    (re.compile(r'(password|senha|secret|token)\s*[=:]\s*\S+', re.IGNORECASE), r'\1=[REDACTED]'),
]


def sanitizar_texto(texto: str) -> str:
    """Aplica os padrões de mascaramento em um texto."""
    for pattern, replacement in SENSITIVE_PATTERNS:
        texto = pattern.sub(replacement, texto)
    return texto


class SanitizingFilter(logging.Filter):
    """
    Filter que sanitiza automaticamente dados sensíveis em mensagens de log.

    Mascara CPFs e nomes de paciente que venham junto das mensagens.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Sanitiza a mensagem antes de ser logada."""
        if isinstance(record.msg, str):
            record.msg = sanitizar_texto(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                sanitizar_texto(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True


# === Structured Action Logging ===

def log_action(
    logger: logging.Logger,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    level: int = logging.INFO,
    **extra
) -> None:
    """
    Loga uma ação do pipeline com campos estruturados padronizados.

    Args:
        logger: Logger a usar
        action: Ação realizada (ex: "job_started", "demonstrativo_calculado")
        resource_type: Tipo do recurso (ex: "job", "demonstrativo")
        resource_id: ID do recurso afetado
        level: Nível de log (default: INFO)
        **extra: Campos adicionais

    Example:
        log_action(logger, "job_completed", resource_type="job",
                   resource_id=job.id, registros_depois=1234)
    """
    context: Dict[str, Any] = {
        'action': action,
        'request_id': get_correlation_id() or '-',
    }

    if resource_type:
        context['resource_type'] = resource_type
    if resource_id is not None:
        context['resource_id'] = resource_id

    context.update(extra)

    msg_parts = [f"[{action.upper()}]"]
    if resource_type:
        resource_str = f"{resource_type}"
        if resource_id:
            resource_str += f"#{resource_id}"
        msg_parts.append(resource_str)

    log_with_context(logger, level, " ".join(msg_parts), **context)


# Configurar logging na importação
setup_logging()
