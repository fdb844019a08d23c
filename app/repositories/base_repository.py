"""
Generic repository for simple model CRUD.

Every aggregate repository composes one of these per model instead of
repeating the same get/create/update/delete block.
"""

from typing import Generic, List, Optional, Type, TypeVar
from sqlalchemy.exc import SQLAlchemyError
from db import db

ModelT = TypeVar("ModelT")


class Repository(Generic[ModelT]):
    """Database operations shared by all models"""

    def __init__(self, model: Type[ModelT]):
        self.model = model

    def get_all(self) -> List[ModelT]:
        """Get all records"""
        return self.model.query.all()

    def get_by_id(self, id) -> Optional[ModelT]:
        """Get record by primary key"""
        return db.session.get(self.model, id)

    def exists(self, id) -> bool:
        if id is None:
            return False
        return self.get_by_id(id) is not None

    def add(self, **kwargs) -> ModelT:
        """Stage a new record in the current transaction without committing"""
        item = self.model(**kwargs)
        db.session.add(item)
        return item

    def create(self, **kwargs) -> ModelT:
        """Create new record"""
        try:
            item = self.add(**kwargs)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    def update(self, id, **kwargs) -> Optional[ModelT]:
        """Update record"""
        item = self.get_by_id(id)
        if not item:
            return None

        for key, value in kwargs.items():
            if hasattr(item, key):
                setattr(item, key, value)

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e
        return item

    def delete(self, id) -> bool:
        """Delete record"""
        item = self.get_by_id(id)
        if not item:
            return False

        try:
            db.session.delete(item)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e
        return True

    def count(self) -> int:
        """Count total records"""
        return self.model.query.count()
