"""
Genre View Repository for Sirened

A genre view is a reader's named, ranked selection of taxonomies used to
assemble a personalized book feed. At most one view per reader is the
default.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from loguru import logger

from sirened.board.ordering import assign_ranks, next_rank, validate_rank_updates
from sirened.exceptions import ForbiddenError, NotFoundError, ValidationError
from .database import Database
from .models import GenreTaxonomy, UserGenreView, ViewGenre


@dataclass
class StoredViewTaxonomy:
    taxonomy_id: int
    type: str
    rank: int
    name: Optional[str] = None


@dataclass
class StoredGenreView:
    id: int
    user_id: int
    name: str
    rank: int
    is_default: bool = False
    taxonomies: list[StoredViewTaxonomy] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: UserGenreView, taxonomies: Optional[list] = None) -> "StoredGenreView":
        return cls(
            id=model.id,
            user_id=model.user_id,
            name=model.name,
            rank=model.rank,
            is_default=bool(model.is_default),
            taxonomies=taxonomies or [],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @property
    def taxonomy_ids(self) -> list[int]:
        return [t.taxonomy_id for t in self.taxonomies]


class GenreViewRepository:
    """
    Repository for genre views and their ranked taxonomies.

    Usage:
        repo = GenreViewRepository(database)
        view = repo.create_view(user_id, "Cozy fantasy")
        repo.set_view_taxonomies(view.id, user_id, [12, 4, 9])
    """

    def __init__(self, database: Database):
        self.database = database

    def _owned_view(self, session, view_id: int, user_id: int) -> UserGenreView:
        view = session.get(UserGenreView, view_id)
        if not view:
            raise NotFoundError("Genre view", view_id)
        if view.user_id != user_id:
            raise ForbiddenError("Not authorized to access this genre view")
        return view

    def _view_taxonomies(self, session, view_id: int) -> list[StoredViewTaxonomy]:
        rows = (
            session.query(ViewGenre, GenreTaxonomy.name)
            .join(GenreTaxonomy, GenreTaxonomy.id == ViewGenre.taxonomy_id)
            .filter(ViewGenre.view_id == view_id)
            .order_by(ViewGenre.rank, ViewGenre.id)
            .all()
        )
        return [
            StoredViewTaxonomy(taxonomy_id=vg.taxonomy_id, type=vg.type, rank=vg.rank, name=name)
            for vg, name in rows
        ]

    def _clear_default(self, session, user_id: int, keep_id: Optional[int] = None) -> None:
        query = session.query(UserGenreView).filter(
            UserGenreView.user_id == user_id,
            UserGenreView.is_default.is_(True),
        )
        for view in query:
            if view.id != keep_id:
                view.is_default = False

    def list_views(self, user_id: int) -> list[StoredGenreView]:
        with self.database.session() as session:
            views = (
                session.query(UserGenreView)
                .filter(UserGenreView.user_id == user_id)
                .order_by(UserGenreView.rank, UserGenreView.id)
                .all()
            )
            return [StoredGenreView.from_model(v, self._view_taxonomies(session, v.id)) for v in views]

    def get_view(self, view_id: int, user_id: int) -> StoredGenreView:
        with self.database.session() as session:
            view = self._owned_view(session, view_id, user_id)
            return StoredGenreView.from_model(view, self._view_taxonomies(session, view.id))

    def get_default_view(self, user_id: int) -> Optional[StoredGenreView]:
        with self.database.session() as session:
            view = session.query(UserGenreView).filter(
                UserGenreView.user_id == user_id,
                UserGenreView.is_default.is_(True),
            ).first()
            if not view:
                return None
            return StoredGenreView.from_model(view, self._view_taxonomies(session, view.id))

    def create_view(self, user_id: int, name: str, is_default: bool = False) -> StoredGenreView:
        with self.database.session() as session:
            ranks = [r for (r,) in session.query(UserGenreView.rank).filter(UserGenreView.user_id == user_id)]
            if is_default:
                self._clear_default(session, user_id)

            view = UserGenreView(user_id=user_id, name=name, rank=next_rank(ranks), is_default=is_default)
            session.add(view)
            session.commit()
            session.refresh(view)

            logger.info(f"Created genre view {view.id} '{name}' for user {user_id}")
            return StoredGenreView.from_model(view)

    def update_view(
        self,
        view_id: int,
        user_id: int,
        name: Optional[str] = None,
        is_default: Optional[bool] = None,
    ) -> StoredGenreView:
        with self.database.session() as session:
            view = self._owned_view(session, view_id, user_id)
            if name is not None:
                view.name = name
            if is_default is not None:
                if is_default:
                    self._clear_default(session, user_id, keep_id=view.id)
                view.is_default = is_default
            session.commit()
            session.refresh(view)
            return StoredGenreView.from_model(view, self._view_taxonomies(session, view.id))

    def delete_view(self, view_id: int, user_id: int) -> None:
        with self.database.session() as session:
            view = self._owned_view(session, view_id, user_id)
            session.query(ViewGenre).filter(ViewGenre.view_id == view_id).delete(synchronize_session=False)
            session.delete(view)
            session.commit()

            logger.info(f"Deleted genre view {view_id}")

    def reorder_views(self, user_id: int, updates: Sequence) -> list[StoredGenreView]:
        with self.database.session() as session:
            views = {v.id: v for v in session.query(UserGenreView).filter(UserGenreView.user_id == user_id)}
            ranks = validate_rank_updates(updates, views.keys())
            for view_id, rank in ranks.items():
                views[view_id].rank = rank
            session.commit()

        return self.list_views(user_id)

    def set_view_taxonomies(self, view_id: int, user_id: int, taxonomy_ids: Sequence[int]) -> list[StoredViewTaxonomy]:
        """Replace a view's taxonomies; rank follows list position."""
        unique_ids = list(dict.fromkeys(taxonomy_ids))

        with self.database.session() as session:
            self._owned_view(session, view_id, user_id)

            taxonomies = {
                t.id: t
                for t in session.query(GenreTaxonomy).filter(
                    GenreTaxonomy.id.in_(unique_ids),
                    GenreTaxonomy.deleted_at.is_(None),
                )
            }
            missing = [t for t in unique_ids if t not in taxonomies]
            if missing:
                raise ValidationError("Unknown genre taxonomy", detail=f"Unknown ids: {missing}")

            session.query(ViewGenre).filter(ViewGenre.view_id == view_id).delete(synchronize_session=False)
            for taxonomy_id, rank in assign_ranks(unique_ids, key=lambda t: t):
                session.add(ViewGenre(
                    view_id=view_id,
                    taxonomy_id=taxonomy_id,
                    type=taxonomies[taxonomy_id].type,
                    rank=rank,
                ))
            session.commit()

            logger.info(f"Genre view {view_id} now has {len(unique_ids)} taxonomies")
            return self._view_taxonomies(session, view_id)
