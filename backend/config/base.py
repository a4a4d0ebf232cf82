"""
Configuracoes base do backend de faturamento.
Helpers de ambiente, CORS e fila.
"""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


# === Helpers para leitura de variaveis de ambiente ===
def env_bool(key: str, default: bool = False) -> bool:
    """Le variavel de ambiente como booleano."""
    val = os.getenv(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def env_int(key: str, default: int = 0) -> int:
    """Le variavel de ambiente como inteiro."""
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def env_float(key: str, default: float = 0.0) -> float:
    """Le variavel de ambiente como float."""
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


def env_list(key: str, default: str = "") -> List[str]:
    """Le variavel de ambiente como lista separada por virgula."""
    val = os.getenv(key, default)
    return [item.strip() for item in val.split(",") if item.strip()]


# === CORS ===
def get_cors_origins() -> List[str]:
    """
    Retorna lista de origens permitidas para CORS.

    Em producao, defina CORS_ORIGINS como lista separada por virgula:
    CORS_ORIGINS=https://painel.exemplo.com,https://api.exemplo.com
    """
    origins = env_list("CORS_ORIGINS")
    if origins:
        return origins

    # Em desenvolvimento, permitir localhost
    if os.getenv("ENVIRONMENT", "development") == "development":
        return [
            "http://localhost:8000",
            "http://127.0.0.1:8000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]

    # Em producao sem CORS_ORIGINS definido, nao permitir nada
    return []


CORS_ORIGINS = get_cors_origins()
CORS_ALLOW_CREDENTIALS = env_bool("CORS_ALLOW_CREDENTIALS", True)


# === Ambiente ===
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# Cria tabelas no startup (desligar quando o schema for gerido pelo alembic)
AUTO_CREATE_TABLES = env_bool("AUTO_CREATE_TABLES", True)

# Endpoint /metrics sem restricao
METRICS_PUBLIC = env_bool("METRICS_PUBLIC", True)


# === Fila de Processamento ===
# Execucao sequencial: um job por vez dentro do worker
QUEUE_MAX_CONCURRENT = 1
QUEUE_POLL_INTERVAL = env_float("QUEUE_POLL_INTERVAL", 1.0)

