# Services do pipeline de volumetria e faturamento
#
# processing_queue é carregado sob demanda: ele instancia o
# repositório de jobs e não deve ser criado só por importar services.


def __getattr__(name):
    """Lazy loading da fila de processamento."""
    if name == "processing_queue":
        from .processing_queue import processing_queue
        return processing_queue
    raise AttributeError(f"module 'services' has no attribute '{name}'")


__all__ = [
    "processing_queue",
]
