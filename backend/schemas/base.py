from pydantic import BaseModel, Field

# YYYY-MM com mês válido
PERIODO_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def periodo_field(**kwargs):
    """Campo de período de referência (YYYY-MM)."""
    return Field(pattern=PERIODO_PATTERN, examples=["2025-06"], **kwargs)


# ============== MENSAGENS ==============

class JobResponse(BaseModel):
    mensagem: str
    sucesso: bool = True
    job_id: str
    arquivo_fonte: str
    status: str = "queued"
