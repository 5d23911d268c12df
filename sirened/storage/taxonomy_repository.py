"""
Taxonomy Repository for Sirened

Genres, subgenres, themes and tropes. Subgenres hang off a parent genre.
Deletion is soft so book links and genre views keep resolving history.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from loguru import logger

from sirened.exceptions import NotFoundError, SirenedException, ValidationError
from .database import Database
from .models import GenreTaxonomy

TAXONOMY_TYPES = ("genre", "subgenre", "theme", "trope")


@dataclass
class StoredTaxonomy:
    id: int
    name: str
    type: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: GenreTaxonomy) -> "StoredTaxonomy":
        return cls(
            id=model.id,
            name=model.name,
            type=model.type,
            description=model.description,
            parent_id=model.parent_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass
class ImportResult:
    """Per-item outcome of a bulk import."""

    name: str
    success: bool
    id: Optional[int] = None
    error: Optional[str] = None


class TaxonomyRepository:
    """Repository for genre taxonomies."""

    def __init__(self, database: Database):
        self.database = database

    def _active(self, session):
        return session.query(GenreTaxonomy).filter(GenreTaxonomy.deleted_at.is_(None))

    def _validate(self, session, type: str, parent_id: Optional[int]) -> None:
        if type not in TAXONOMY_TYPES:
            raise ValidationError("Invalid taxonomy type", detail=f"Expected one of {', '.join(TAXONOMY_TYPES)}")
        if parent_id is not None:
            parent = self._active(session).filter(GenreTaxonomy.id == parent_id).first()
            if parent is None:
                raise ValidationError("Unknown parent taxonomy", detail=str(parent_id))

    def _would_cycle(self, session, taxonomy_id: int, parent_id: Optional[int]) -> bool:
        """True when ``taxonomy_id`` appears on the parent chain starting at ``parent_id``."""
        seen = set()
        ancestor = parent_id
        while ancestor is not None and ancestor not in seen:
            if ancestor == taxonomy_id:
                return True
            seen.add(ancestor)
            ancestor = session.query(GenreTaxonomy.parent_id).filter(GenreTaxonomy.id == ancestor).scalar()
        return False

    def list_taxonomies(self, type: Optional[str] = None, parent_id: Optional[int] = None) -> list[StoredTaxonomy]:
        """
        Active taxonomies, optionally filtered.

        ``type="subgenre"`` without ``parent_id`` only returns subgenres that
        actually hang off a parent.
        """
        with self.database.session() as session:
            query = self._active(session)
            if type:
                query = query.filter(GenreTaxonomy.type == type)
            if parent_id is not None:
                query = query.filter(GenreTaxonomy.parent_id == parent_id)
            elif type == "subgenre":
                query = query.filter(GenreTaxonomy.parent_id.isnot(None))
            return [StoredTaxonomy.from_model(t) for t in query.order_by(GenreTaxonomy.name, GenreTaxonomy.id)]

    def get(self, taxonomy_id: int) -> Optional[StoredTaxonomy]:
        with self.database.session() as session:
            taxonomy = self._active(session).filter(GenreTaxonomy.id == taxonomy_id).first()
            return StoredTaxonomy.from_model(taxonomy) if taxonomy else None

    def get_many(self, taxonomy_ids: Iterable[int]) -> dict[int, StoredTaxonomy]:
        ids = list(taxonomy_ids)
        if not ids:
            return {}
        with self.database.session() as session:
            rows = self._active(session).filter(GenreTaxonomy.id.in_(ids)).all()
            return {t.id: StoredTaxonomy.from_model(t) for t in rows}

    def create(
        self,
        name: str,
        type: str,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
    ) -> StoredTaxonomy:
        with self.database.session() as session:
            self._validate(session, type, parent_id)
            taxonomy = GenreTaxonomy(name=name, type=type, description=description, parent_id=parent_id)
            session.add(taxonomy)
            session.commit()
            session.refresh(taxonomy)

            logger.info(f"Created {type} taxonomy {taxonomy.id}: {name}")
            return StoredTaxonomy.from_model(taxonomy)

    def update(self, taxonomy_id: int, **fields) -> StoredTaxonomy:
        with self.database.session() as session:
            taxonomy = self._active(session).filter(GenreTaxonomy.id == taxonomy_id).first()
            if not taxonomy:
                raise NotFoundError("Taxonomy", taxonomy_id)

            new_type = fields.get("type") or taxonomy.type
            new_parent = fields["parent_id"] if "parent_id" in fields else taxonomy.parent_id
            if self._would_cycle(session, taxonomy_id, new_parent):
                raise ValidationError("A taxonomy cannot be its own ancestor", detail=str(new_parent))
            self._validate(session, new_type, new_parent)

            for key in ("name", "description", "type"):
                if fields.get(key) is not None:
                    setattr(taxonomy, key, fields[key])
            if "parent_id" in fields:
                taxonomy.parent_id = fields["parent_id"]

            session.commit()
            session.refresh(taxonomy)
            return StoredTaxonomy.from_model(taxonomy)

    def delete(self, taxonomy_id: int) -> None:
        with self.database.session() as session:
            taxonomy = self._active(session).filter(GenreTaxonomy.id == taxonomy_id).first()
            if not taxonomy:
                raise NotFoundError("Taxonomy", taxonomy_id)
            taxonomy.deleted_at = datetime.utcnow()
            session.commit()

            logger.info(f"Soft-deleted taxonomy {taxonomy_id}")

    def bulk_import(self, items: list[dict]) -> list[ImportResult]:
        """
        Create many taxonomies, one at a time.

        A bad item is reported and skipped; it never aborts the batch.
        """
        results = []
        for item in items:
            name = str(item.get("name") or "").strip()
            if not name:
                results.append(ImportResult(name="", success=False, error="Name is required"))
                continue
            try:
                created = self.create(
                    name=name,
                    type=item.get("type", "genre"),
                    description=item.get("description"),
                    parent_id=item.get("parent_id"),
                )
            except SirenedException as e:
                results.append(ImportResult(name=name, success=False, error=e.message))
                continue
            results.append(ImportResult(name=name, success=True, id=created.id))

        imported = sum(1 for r in results if r.success)
        logger.info(f"Taxonomy import: {imported}/{len(items)} imported")
        return results
