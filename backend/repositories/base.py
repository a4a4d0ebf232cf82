"""
Repositório base com operações CRUD genéricas.
"""
from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """
    Repositório genérico com operações CRUD comuns.

    Uso:
        class VolumetriaRepository(BaseRepository[ExameVolumetria]):
            def __init__(self):
                super().__init__(ExameVolumetria)
    """

    def __init__(self, model: Type[ModelType]):
        """
        Inicializa o repositório com o modelo.

        Args:
            model: Classe do modelo SQLAlchemy
        """
        self.model = model

    def get_by_id(self, db: Session, id: int) -> Optional[ModelType]:
        """
        Busca entidade por ID.

        Args:
            db: Sessão do banco
            id: ID da entidade

        Returns:
            Entidade ou None
        """
        return db.query(self.model).filter(self.model.id == id).first()  # type: ignore[attr-defined]

    def create(self, db: Session, entity: ModelType) -> ModelType:
        """
        Cria nova entidade.

        Args:
            db: Sessão do banco
            entity: Entidade a criar

        Returns:
            Entidade criada
        """
        db.add(entity)
        db.commit()
        db.refresh(entity)
        return entity

    def query_filtered(
        self,
        db: Session,
        order_by: str = "id",
        order_desc: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
        **filters
    ) -> List[ModelType]:
        """
        Query flexível com filtros por igualdade, ordenação e paginação.

        Args:
            db: Sessão do banco
            order_by: Nome da coluna para ordenação (default: id)
            order_desc: Se True, ordena decrescente
            limit: Limite de resultados (opcional)
            offset: Offset para paginação (default: 0)
            **filters: Filtros como column=value (None é ignorado)

        Exemplo:
            repo.query_filtered(db, periodo_referencia="2025-06", status="calculado")
        """
        query = db.query(self.model)

        for column_name, value in filters.items():
            if value is not None and hasattr(self.model, column_name):
                query = query.filter(getattr(self.model, column_name) == value)

        if hasattr(self.model, order_by):
            order_column = getattr(self.model, order_by)
            query = query.order_by(
                order_column.desc() if order_desc else order_column
            )

        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)

        return query.all()

