"""
Modelos compartilhados para os serviços do pipeline.

Centraliza enums e dataclasses usados por múltiplos módulos
para evitar dependências circulares e facilitar manutenção.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, List


# === Modelos do Processing Queue ===

class JobStatus(str, Enum):
    """Status de um job do pipeline."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = {JobStatus.QUEUED, JobStatus.PROCESSING}
FINAL_STATUSES = {JobStatus.COMPLETED, JobStatus.FAILED}


@dataclass
class ProcessingJob:
    """Representa uma execução do pipeline para um arquivo."""
    id: str
    arquivo_fonte: str
    periodo_referencia: str
    job_type: str = "pipeline"
    status: JobStatus = JobStatus.QUEUED
    created_at: str = ""
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    registros_antes: Optional[int] = None
    registros_depois: Optional[int] = None
    regras_aplicadas: List[str] = field(default_factory=list)
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    progress_current: int = 0
    progress_total: int = 0
    progress_stage: Optional[str] = None
    progress_message: Optional[str] = None

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now().astimezone().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Converte para dicionário."""
        data = asdict(self)
        data["status"] = self.status.value if isinstance(self.status, JobStatus) else self.status
        return data
