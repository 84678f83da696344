"""
Relational store for menus, categories, menu items and images.

Every lookup is scoped to the owning user, so a miss on (id, user_id) is
reported as NotFoundError whether the row is absent or belongs to someone
else.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.orm import (
    Session,
    declarative_base,
    relationship,
    selectinload,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

from menufic.errors import NotFoundError

logger = logging.getLogger(__name__)

IN_MEMORY_URL = "sqlite+pysqlite:///:memory:"


@dataclass
class ImageRecord:
    id: str
    blur_hash: Optional[str] = None
    color: Optional[str] = None


@dataclass
class MenuItemRecord:
    id: str
    category_id: str
    menu_id: str
    user_id: str
    name: str
    price: float
    position: int
    description: Optional[str] = None
    image_id: Optional[str] = None
    image: Optional[ImageRecord] = None


@dataclass
class CategoryRecord:
    id: str
    menu_id: str
    user_id: str
    name: str
    position: int
    image_url: Optional[str] = None
    items: list[MenuItemRecord] = field(default_factory=list)


@dataclass
class MenuRecord:
    id: str
    user_id: str
    name: str
    created_at: float = field(default_factory=lambda: time.time())


def _new_id() -> str:
    return uuid.uuid4().hex


class MenuStore:
    """
    SQLAlchemy-backed store. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str = IN_MEMORY_URL):
        if not database_url:
            raise ValueError("A database URL is required for MenuStore")
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection so every session sees the same in-memory DB.
            self.engine = create_engine(
                database_url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    # Menus

    def create_menu(self, user_id: str, name: str) -> MenuRecord:
        with self.Session() as session:
            row = MenuRow(id=_new_id(), user_id=user_id, name=name, created_at=time.time())
            session.add(row)
            session.commit()
            return _to_menu_record(row)

    def list_menus(self, user_id: str) -> list[MenuRecord]:
        with self.Session() as session:
            rows = session.execute(
                select(MenuRow)
                .where(MenuRow.user_id == user_id)
                .order_by(MenuRow.created_at.asc())
            ).scalars()
            return [_to_menu_record(row) for row in rows]

    def get_menu(self, menu_id: str, user_id: str) -> MenuRecord:
        with self.Session() as session:
            row = session.execute(
                select(MenuRow).where(MenuRow.id == menu_id, MenuRow.user_id == user_id)
            ).scalar_one_or_none()
            if not row:
                raise NotFoundError("Menu not found")
            return _to_menu_record(row)

    # Categories

    def create_category(
        self,
        *,
        menu_id: str,
        user_id: str,
        name: str,
        image_url: Optional[str] = None,
    ) -> CategoryRecord:
        """Insert a category at the end of the menu (last position + 1, or 0)."""
        with self.Session() as session, session.begin():
            last_position = session.execute(
                select(func.max(CategoryRow.position)).where(
                    CategoryRow.menu_id == menu_id, CategoryRow.user_id == user_id
                )
            ).scalar()
            row = CategoryRow(
                id=_new_id(),
                menu_id=menu_id,
                user_id=user_id,
                name=name,
                position=0 if last_position is None else last_position + 1,
                image_url=image_url,
            )
            session.add(row)
            session.flush()
            return _to_category_record(row)

    def get_category(self, category_id: str, user_id: str) -> CategoryRecord:
        with self.Session() as session:
            return _to_category_record(
                self._get_category_row(session, category_id, user_id)
            )

    def list_categories(self, menu_id: str, user_id: str) -> list[CategoryRecord]:
        with self.Session() as session:
            rows = session.execute(
                select(CategoryRow)
                .options(selectinload(CategoryRow.items).selectinload(MenuItemRow.image))
                .where(CategoryRow.menu_id == menu_id, CategoryRow.user_id == user_id)
                .order_by(CategoryRow.position.asc())
            ).scalars()
            return [_to_category_record(row) for row in rows]

    def update_category(
        self,
        category_id: str,
        user_id: str,
        *,
        name: str,
        image_url: Optional[str] = None,
    ) -> CategoryRecord:
        with self.Session() as session, session.begin():
            row = self._get_category_row(session, category_id, user_id)
            row.name = name
            if image_url is not None:
                row.image_url = image_url
            session.flush()
            return _to_category_record(row)

    def delete_category(
        self, category_id: str, user_id: str, image_ids: Iterable[str] = ()
    ) -> None:
        """
        Delete a category, its menu items and the given image rows in one transaction.
        """
        image_ids = list(image_ids)
        with self.Session() as session, session.begin():
            self._get_category_row(session, category_id, user_id)
            session.execute(
                delete(MenuItemRow).where(MenuItemRow.category_id == category_id)
            )
            session.execute(
                delete(CategoryRow).where(
                    CategoryRow.id == category_id, CategoryRow.user_id == user_id
                )
            )
            if image_ids:
                session.execute(delete(ImageRow).where(ImageRow.id.in_(image_ids)))
        logger.debug(
            "Deleted category %s with %d image rows", category_id, len(image_ids)
        )

    def update_category_positions(
        self, user_id: str, positions: Iterable[tuple[str, int]]
    ) -> list[CategoryRecord]:
        """
        Apply all position reassignments atomically. Any category not owned by
        the user aborts the whole batch.
        """
        with self.Session() as session, session.begin():
            updated = []
            for category_id, new_position in positions:
                row = self._get_category_row(session, category_id, user_id)
                row.position = new_position
                updated.append(row)
            session.flush()
            return [_to_category_record(row) for row in updated]

    # Menu items

    def create_menu_item(
        self,
        *,
        category_id: str,
        user_id: str,
        name: str,
        price: float,
        description: Optional[str] = None,
        image: Optional[ImageRecord] = None,
    ) -> MenuItemRecord:
        with self.Session() as session, session.begin():
            category = self._get_category_row(session, category_id, user_id)
            last_position = session.execute(
                select(func.max(MenuItemRow.position)).where(
                    MenuItemRow.category_id == category_id
                )
            ).scalar()
            image_row = None
            if image is not None:
                image_row = ImageRow(
                    id=image.id,
                    blur_hash=image.blur_hash,
                    color=image.color,
                    created_at=time.time(),
                )
                session.add(image_row)
            row = MenuItemRow(
                id=_new_id(),
                category_id=category_id,
                menu_id=category.menu_id,
                user_id=user_id,
                name=name,
                description=description,
                price=price,
                position=0 if last_position is None else last_position + 1,
                image_id=image_row.id if image_row else None,
            )
            row.image = image_row
            session.add(row)
            session.flush()
            return _to_item_record(row)

    def get_image(self, image_id: str) -> Optional[ImageRecord]:
        with self.Session() as session:
            row = session.get(ImageRow, image_id)
            return _to_image_record(row) if row else None

    def _get_category_row(
        self, session: Session, category_id: str, user_id: str
    ) -> "CategoryRow":
        row = session.execute(
            select(CategoryRow)
            .options(selectinload(CategoryRow.items).selectinload(MenuItemRow.image))
            .where(CategoryRow.id == category_id, CategoryRow.user_id == user_id)
        ).scalar_one_or_none()
        if not row:
            raise NotFoundError("Category not found")
        return row


def _to_menu_record(row: "MenuRow") -> MenuRecord:
    return MenuRecord(
        id=row.id, user_id=row.user_id, name=row.name, created_at=row.created_at
    )


def _to_image_record(row: "ImageRow") -> ImageRecord:
    return ImageRecord(id=row.id, blur_hash=row.blur_hash, color=row.color)


def _to_item_record(row: "MenuItemRow") -> MenuItemRecord:
    return MenuItemRecord(
        id=row.id,
        category_id=row.category_id,
        menu_id=row.menu_id,
        user_id=row.user_id,
        name=row.name,
        description=row.description,
        price=row.price,
        position=row.position,
        image_id=row.image_id,
        image=_to_image_record(row.image) if row.image else None,
    )


def _to_category_record(row: "CategoryRow") -> CategoryRecord:
    return CategoryRecord(
        id=row.id,
        menu_id=row.menu_id,
        user_id=row.user_id,
        name=row.name,
        position=row.position,
        image_url=row.image_url,
        items=[_to_item_record(item) for item in row.items],
    )


Base = declarative_base()


class MenuRow(Base):
    __tablename__ = "menus"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)


class CategoryRow(Base):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("id", "user_id", name="uq_category_id_user"),)

    id = Column(String, primary_key=True)
    menu_id = Column(String, ForeignKey("menus.id"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    image_url = Column(String, nullable=True)

    items = relationship(
        "MenuItemRow",
        back_populates="category",
        order_by="MenuItemRow.position",
    )


class ImageRow(Base):
    __tablename__ = "images"

    # Asset path in the image store.
    id = Column(String, primary_key=True)
    blur_hash = Column(String, nullable=True)
    color = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class MenuItemRow(Base):
    __tablename__ = "menu_items"

    id = Column(String, primary_key=True)
    category_id = Column(
        String, ForeignKey("categories.id"), nullable=False, index=True
    )
    menu_id = Column(String, ForeignKey("menus.id"), nullable=False)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    price = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    image_id = Column(String, ForeignKey("images.id"), nullable=True)

    category = relationship("CategoryRow", back_populates="items")
    image = relationship("ImageRow")
