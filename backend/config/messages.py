"""
Mensagens padronizadas do backend de faturamento.
"""


class Messages:
    """Mensagens de erro e sucesso padronizadas."""
    # Recursos não encontrados
    JOB_NOT_FOUND = "Job não encontrado"
    # Erros genéricos
    DB_ERROR = "Erro ao acessar o banco de dados"
    DB_UNAVAILABLE = "Serviço de banco de dados temporariamente indisponível"
    DUPLICATE_ENTRY = "Registro já existe"
    # Pipeline
    PIPELINE_STARTED = "Processamento das regras iniciado"
    NO_RECORDS = "Nenhum registro encontrado para o arquivo informado"
    PIPELINE_TIMEOUT = "Processamento excedeu o tempo limite"
    # Ingestão
    STATUS_NAO_ASSINADO = "Status do laudo não admitido (esperado Assinado ou Reassinado)"
    MODALIDADE_EXCLUIDA = "Modalidade excluída na ingestão"
    # Faturamento
    DEMONSTRATIVOS_CACHE = "Demonstrativos retornados do cache"
    DEMONSTRATIVOS_CALCULADOS = "Demonstrativos calculados"
    TIPIFICACAO_CONCLUIDA = "Tipificação concluída"
