"""
Utilitarios de texto para comparacao de nomes vindos da volumetria.

Os arquivos de origem trazem variacoes de caixa, acentos e espacos;
as comparacoes do pipeline usam sempre a forma normalizada.
"""
import re
import unicodedata
from typing import Any, Optional

_PREFIXO_MEDICO = re.compile(r"^DRA?\.?\s+", re.IGNORECASE)


def remover_acentos(texto: str) -> str:
    """Remove diacriticos mantendo as letras base (TÓRAX -> TORAX)."""
    decomposto = unicodedata.normalize("NFKD", texto)
    return "".join(c for c in decomposto if not unicodedata.combining(c))


def normalizar_texto(texto: Optional[str]) -> str:
    """
    Normaliza um texto para comparacao.

    Args:
        texto: Texto original (pode ser None)

    Returns:
        Texto sem acentos, em caixa alta e com espacos colapsados
    """
    if not texto:
        return ""
    return " ".join(remover_acentos(texto).upper().split())


def normalizar_nome_medico(nome: Optional[str]) -> str:
    """Normaliza nome de medico removendo o prefixo Dr./Dra."""
    return _PREFIXO_MEDICO.sub("", normalizar_texto(nome)).strip()


def eh_vazio(valor: Any) -> bool:
    """True para None, string vazia/em branco."""
    if valor is None:
        return True
    if isinstance(valor, str):
        return not valor.strip()
    return False
