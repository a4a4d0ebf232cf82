from typing import Optional

from pydantic import BaseModel, Field, model_validator

from schemas.base import periodo_field


class TipificacaoRequest(BaseModel):
    """Filtro da tipificação: arquivo, período ou ambos."""
    arquivo_fonte: Optional[str] = Field(None, max_length=255)
    periodo_referencia: Optional[str] = periodo_field(default=None)

    @model_validator(mode="after")
    def validate_filtro(self) -> "TipificacaoRequest":
        if not self.arquivo_fonte and not self.periodo_referencia:
            raise ValueError("informe arquivo_fonte ou periodo_referencia")
        return self


class TipificacaoResponse(BaseModel):
    mensagem: str
    total_processados: int
    registros_atualizados: int
    registros_com_erro: int
    tipos_invalidos_limpos: int
