"""Generic repository over a SQLAlchemy session: CRUD plus predicate-based queries."""

from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Session

from app.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """
    Data access for one mapped entity.

    Predicates are SQLAlchemy column expressions, e.g.
    repo.find_first(Account.username == "alice"). Nothing here commits;
    transaction boundaries belong to UnitOfWork.
    """

    def __init__(self, session: Session, model: type[ModelT]) -> None:
        self.session = session
        self.model = model

    def get_by_id(self, entity_id: Any) -> ModelT | None:
        return self.session.get(self.model, entity_id)

    def get_all(self) -> list[ModelT]:
        return self.session.query(self.model).order_by(self.model.id).all()

    def find(self, *criteria: Any) -> list[ModelT]:
        return self.session.query(self.model).filter(*criteria).order_by(self.model.id).all()

    def find_first(self, *criteria: Any) -> ModelT | None:
        return self.session.query(self.model).filter(*criteria).order_by(self.model.id).first()

    def add(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        return entity

    def add_many(self, entities: Iterable[ModelT]) -> list[ModelT]:
        items = list(entities)
        self.session.add_all(items)
        return items

    def update(self, entity: ModelT) -> ModelT:
        """Attach a modified entity; changes are written on the next flush or commit."""
        self.session.add(entity)
        return entity

    def delete(self, entity: ModelT) -> None:
        self.session.delete(entity)

    def delete_many(self, entities: Iterable[ModelT]) -> int:
        count = 0
        for entity in entities:
            self.session.delete(entity)
            count += 1
        return count

    def exists(self, *criteria: Any) -> bool:
        query = self.session.query(self.model).filter(*criteria)
        return bool(self.session.query(query.exists()).scalar())

    def count(self, *criteria: Any) -> int:
        return self.session.query(self.model).filter(*criteria).count()
