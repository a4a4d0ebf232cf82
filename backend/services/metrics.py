"""
Metricas Prometheus para observabilidade do pipeline de faturamento.

Expoe metricas de jobs, regras, demonstrativos, fila e requisicoes HTTP.
"""
import re

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, Info
from prometheus_client.exposition import CONTENT_TYPE_LATEST, generate_latest

from logging_config import get_logger

logger = get_logger('services.metrics')


# === Metricas de Jobs ===

jobs_total = Counter(
    'faturamento_jobs_total',
    'Total de jobs do pipeline processados',
    ['type', 'status']  # labels: type=pipeline, status=completed/failed
)

jobs_duration_seconds = Histogram(
    'faturamento_job_duration_seconds',
    'Duracao dos jobs do pipeline em segundos',
    ['type'],
    buckets=[1, 5, 10, 30, 60, 120, 240, 480, 900]
)

queue_size = Gauge(
    'faturamento_queue_size',
    'Tamanho atual da fila de processamento'
)

processing_count = Gauge(
    'faturamento_processing_count',
    'Quantidade de jobs em processamento'
)


# === Metricas do Motor de Regras ===

rule_duration_seconds = Histogram(
    'faturamento_rule_duration_seconds',
    'Duracao de cada regra do pipeline em segundos',
    ['codigo'],
    buckets=[0.05, 0.1, 0.5, 1, 5, 15, 30, 60, 120]
)

rule_failures_total = Counter(
    'faturamento_rule_failures_total',
    'Falhas por regra do pipeline',
    ['codigo']
)

registros_rejeitados_total = Counter(
    'faturamento_registros_rejeitados_total',
    'Registros rejeitados ou excluidos',
    ['motivo']
)


# === Metricas de Demonstrativos ===

demonstrativos_total = Counter(
    'faturamento_demonstrativos_total',
    'Demonstrativos calculados por status',
    ['status']  # calculado / erro_processamento
)


# === Metricas HTTP ===

http_requests_total = Counter(
    'faturamento_http_requests_total',
    'Total de requisicoes HTTP',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'faturamento_http_request_duration_seconds',
    'Duracao das requisicoes HTTP em segundos',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10]
)


# === Metricas de Sistema ===

app_info = Info(
    'faturamento_app',
    'Informacoes da aplicacao'
)


# === Funcoes Auxiliares ===

def set_app_info(version: str, environment: str):
    """Define informacoes da aplicacao."""
    app_info.info({
        'version': version,
        'environment': environment
    })


def record_job_completed(job_type: str, duration_seconds: float):
    """Registra um job completado."""
    jobs_total.labels(type=job_type, status='completed').inc()
    jobs_duration_seconds.labels(type=job_type).observe(duration_seconds)


def record_job_failed(job_type: str):
    """Registra um job que falhou."""
    jobs_total.labels(type=job_type, status='failed').inc()


def update_queue_metrics(queue_len: int, processing_len: int):
    """Atualiza metricas da fila."""
    queue_size.set(queue_len)
    processing_count.set(processing_len)


def record_rule_step(codigo: str, duration_seconds: float, sucesso: bool = True):
    """Registra a execucao de uma regra."""
    rule_duration_seconds.labels(codigo=codigo).observe(duration_seconds)
    if not sucesso:
        rule_failures_total.labels(codigo=codigo).inc()


def record_rejeitados(motivo: str, quantidade: int):
    """Registra registros rejeitados por motivo."""
    if quantidade > 0:
        registros_rejeitados_total.labels(motivo=motivo).inc(quantidade)


def record_demonstrativo(status: str):
    """Registra um demonstrativo calculado."""
    demonstrativos_total.labels(status=status).inc()


def record_http_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
    """Registra uma requisicao HTTP."""
    normalized_endpoint = _normalize_endpoint(endpoint)
    status_class = f"{status_code // 100}xx"

    http_requests_total.labels(
        method=method,
        endpoint=normalized_endpoint,
        status=status_class
    ).inc()

    http_request_duration_seconds.labels(
        method=method,
        endpoint=normalized_endpoint
    ).observe(duration_seconds)


_UUID_RE = re.compile(r'/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}')
_ID_RE = re.compile(r'/\d+')


def _normalize_endpoint(path: str) -> str:
    """Normaliza endpoint removendo IDs para evitar alta cardinalidade."""
    normalized = _UUID_RE.sub('/{uuid}', path)
    return _ID_RE.sub('/{id}', normalized)


def get_metrics() -> bytes:
    """Retorna metricas no formato Prometheus."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Retorna content-type para metricas Prometheus."""
    return CONTENT_TYPE_LATEST
