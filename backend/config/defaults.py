"""
Valores padrao do pipeline de volumetria e faturamento.

Centraliza constantes de configuracao padrao para evitar
hardcoding em multiplos lugares do codigo.
"""
from decimal import Decimal

from .base import env_int

# === Timeout ===
PIPELINE_TIMEOUT_SECONDS = env_int("PIPELINE_TIMEOUT_SECONDS", 480)  # 8 minutos

# === Paginacao interna do pipeline ===
SPLIT_PAGE_SIZE = env_int("SPLIT_PAGE_SIZE", 500)
EXCLUSION_PAGE_SIZE = env_int("EXCLUSION_PAGE_SIZE", 1000)

# === Valores padrao de normalizacao ===
CATEGORIA_PADRAO = "SC"  # sem categoria
PRIORIDADE_PADRAO = "ROTINA"
QUANTIDADE_PADRAO = 1

# === Impostos (percentuais sobre o valor bruto) ===
ALIQUOTA_IRRF = Decimal("1.5")
ALIQUOTA_PIS = Decimal("0.65")
ALIQUOTA_COFINS = Decimal("3")
ALIQUOTA_CSLL = Decimal("1")

# Retencoes abaixo deste valor nao sao cobradas
VALOR_MINIMO_RETENCAO = Decimal("10.00")
