from datetime import datetime, timezone
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError, IntegrityError as SAIntegrityError, OperationalError

from database import engine, Base, get_db
from sqlalchemy.orm import Session
from sqlalchemy import text
from routers import demonstrativos, pipeline, tipificacao, volumetria
from services.processing_queue import processing_queue
from services.metrics import get_metrics, get_metrics_content_type, set_app_info
from middleware.http_metrics import HTTPMetricsMiddleware
from starlette.middleware.gzip import GZipMiddleware
from config import (
    AUTO_CREATE_TABLES,
    CORS_ALLOW_CREDENTIALS,
    CORS_ORIGINS,
    ENVIRONMENT,
    METRICS_PUBLIC,
    Messages,
    API_PREFIX,
    API_VERSION,
)
from exceptions import (
    FaturamentoError,
    DatabaseError,
    JobConflictError,
    RecordNotFoundError,
    ValidationError,
    ProcessingError
)

from logging_config import get_logger, set_correlation_id, clear_correlation_id
logger = get_logger('main')

# Criar tabelas no banco de dados (produção usa alembic)
if AUTO_CREATE_TABLES:
    Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gerenciador de ciclo de vida da aplicação."""
    set_app_info(API_VERSION, ENVIRONMENT)

    # Startup: iniciar fila de processamento
    await processing_queue.start()
    logger.info("Fila de processamento iniciada")

    yield

    # Shutdown: parar fila de processamento
    await processing_queue.stop()
    logger.info("Fila de processamento parada")


# Criar aplicação FastAPI
app = FastAPI(
    title="Faturamento Volumetria",
    description="Normalização de volumetria de exames de imagem e cálculo de demonstrativos de faturamento",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configurar middlewares na ordem correta
# 1. Métricas HTTP (Prometheus)
app.add_middleware(HTTPMetricsMiddleware)

# 2. Compressao GZip (comprime respostas maiores que 1000 bytes)
app.add_middleware(GZipMiddleware, minimum_size=1000)


# Middleware para Correlation ID (request tracing)
@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Adiciona correlation ID para rastreamento de requisições."""
    # Usar header X-Correlation-ID se fornecido, senão gerar novo
    correlation_id = request.headers.get("X-Correlation-ID")
    correlation_id = set_correlation_id(correlation_id)

    response = await call_next(request)

    # Incluir correlation ID na resposta
    response.headers["X-Correlation-ID"] = correlation_id
    clear_correlation_id()

    return response

# Configurar CORS com origens da configuração
# Em desenvolvimento: localhost. Em produção: definir CORS_ORIGINS no .env
if not CORS_ORIGINS:
    if ENVIRONMENT == "production":
        logger.error("CORS_ORIGINS não definido em produção! Usando lista vazia.")
        cors_origins = []
    else:
        cors_origins = ["*"]
        logger.warning("CORS configurado para aceitar todas as origens (desenvolvimento)")
else:
    cors_origins = CORS_ORIGINS
    logger.info(f"CORS configurado para origens: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=CORS_ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# === Exception Handlers ===

@app.exception_handler(RecordNotFoundError)
async def record_not_found_handler(request: Request, exc: RecordNotFoundError):
    """Handler para registros não encontrados."""
    return JSONResponse(
        status_code=404,
        content={"detail": exc.message}
    )


@app.exception_handler(JobConflictError)
async def job_conflict_handler(request: Request, exc: JobConflictError):
    """Handler para disparo com job já ativo no mesmo arquivo."""
    return JSONResponse(
        status_code=409,
        content={"detail": exc.message, "job_id": exc.job_id}
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Handler para erros de validação."""
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message}
    )


@app.exception_handler(ProcessingError)
async def processing_error_handler(request: Request, exc: ProcessingError):
    """Handler para erros de processamento."""
    logger.error(f"Erro de processamento: {exc.message}", exc_info=True)
    content = {"detail": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(
        status_code=500,
        content=content
    )


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError):
    """Handler para erros de banco de dados customizados."""
    logger.error(f"Erro de banco de dados: {exc.message}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": Messages.DB_ERROR}
    )


@app.exception_handler(SAIntegrityError)
async def sqlalchemy_integrity_handler(request: Request, exc: SAIntegrityError):
    """Handler para violações de integridade do SQLAlchemy."""
    logger.error(f"Violação de integridade: {exc}", exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": Messages.DUPLICATE_ENTRY}
    )


@app.exception_handler(OperationalError)
async def sqlalchemy_operational_handler(request: Request, exc: OperationalError):
    """Handler para erros operacionais do SQLAlchemy (conexão, etc)."""
    logger.error(f"Erro operacional do banco: {exc}", exc_info=True)
    return JSONResponse(
        status_code=503,
        content={"detail": Messages.DB_UNAVAILABLE}
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_generic_handler(request: Request, exc: SQLAlchemyError):
    """Handler genérico para erros do SQLAlchemy."""
    logger.error(f"Erro SQLAlchemy: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": Messages.DB_ERROR}
    )


@app.exception_handler(FaturamentoError)
async def faturamento_error_handler(request: Request, exc: FaturamentoError):
    """Handler genérico para exceções da aplicação."""
    logger.error(f"Erro da aplicação: {exc.message}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": exc.message}
    )


# Registrar routers com prefixo de versão da API
app.include_router(volumetria.router, prefix=API_PREFIX)
app.include_router(pipeline.router, prefix=API_PREFIX)
app.include_router(tipificacao.router, prefix=API_PREFIX)
app.include_router(demonstrativos.router, prefix=API_PREFIX)


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Endpoint de verificação de saúde da API com checks de dependências."""
    checks = {
        "database": "unknown",
        "queue": "running" if processing_queue.is_running else "stopped",
    }

    # Verificar banco de dados
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError:
        checks["database"] = "unhealthy"

    return {
        "status": "healthy" if checks["database"] == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
        "checks": checks
    }


if METRICS_PUBLIC:
    @app.get("/metrics", include_in_schema=False)
    def metrics():
        """Métricas no formato Prometheus."""
        return Response(content=get_metrics(), media_type=get_metrics_content_type())


@app.get("/api/version")
def api_version():
    """Retorna informações sobre a versão da API."""
    return {
        "version": API_VERSION,
        "prefix": API_PREFIX,
        "status": "stable"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True  # Apenas para desenvolvimento
    )
