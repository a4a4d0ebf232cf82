"""
Repositórios para acesso a dados.
Implementa o padrão Repository para separar lógica de acesso ao banco.
"""
from .base import BaseRepository
from .cadastro_repository import CadastroRepository, cadastro_repository
from .demonstrativo_repository import DemonstrativoRepository, demonstrativo_repository
from .job_repository import JobRepository
from .parametros_repository import (
    ParametrosRepository,
    PrecoRepository,
    parametros_repository,
    preco_repository,
)
from .volumetria_repository import (
    VolumetriaRepository,
    registro_para_dict,
    volumetria_repository,
)

__all__ = [
    'BaseRepository',
    'CadastroRepository',
    'cadastro_repository',
    'DemonstrativoRepository',
    'demonstrativo_repository',
    'JobRepository',
    'ParametrosRepository',
    'parametros_repository',
    'PrecoRepository',
    'preco_repository',
    'VolumetriaRepository',
    'volumetria_repository',
    'registro_para_dict',
]
