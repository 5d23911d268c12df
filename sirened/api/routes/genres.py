"""
Genre Taxonomy Routes

Genres, subgenres, themes and tropes. Reading is public; changes are
admin only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from sirened.api.dependencies import get_taxonomy_repository
from sirened.api.routes.auth import require_admin
from sirened.api.schemas import (
    ErrorResponse,
    TaxonomyCreate,
    TaxonomyImportRequest,
    TaxonomyImportResponse,
    TaxonomyImportResult,
    TaxonomyResponse,
    TaxonomyType,
    TaxonomyUpdate,
)
from sirened.exceptions import NotFoundError


router = APIRouter(prefix="/genres", tags=["genres"])


@router.get("", response_model=list[TaxonomyResponse])
def list_taxonomies(
    type: Optional[TaxonomyType] = None,
    parent_id: Optional[int] = None,
    taxonomies=Depends(get_taxonomy_repository),
):
    """Active taxonomies; ``type=subgenre`` alone lists only parented subgenres."""
    return taxonomies.list_taxonomies(type=type.value if type else None, parent_id=parent_id)


@router.post(
    "/import",
    response_model=TaxonomyImportResponse,
    responses={403: {"model": ErrorResponse, "description": "Admin only"}},
)
def import_taxonomies(
    request: TaxonomyImportRequest,
    admin=Depends(require_admin),
    taxonomies=Depends(get_taxonomy_repository),
):
    """Bulk create; each item reports its own success or error."""
    results = taxonomies.bulk_import(request.items)
    imported = sum(1 for r in results if r.success)
    return TaxonomyImportResponse(
        imported=imported,
        failed=len(results) - imported,
        results=[TaxonomyImportResult.model_validate(r) for r in results],
    )


@router.get(
    "/{taxonomy_id}",
    response_model=TaxonomyResponse,
    responses={404: {"model": ErrorResponse, "description": "Taxonomy not found"}},
)
def get_taxonomy(taxonomy_id: int, taxonomies=Depends(get_taxonomy_repository)):
    taxonomy = taxonomies.get(taxonomy_id)
    if taxonomy is None:
        raise NotFoundError("Taxonomy", taxonomy_id)
    return taxonomy


@router.post("", response_model=TaxonomyResponse, status_code=status.HTTP_201_CREATED)
def create_taxonomy(
    taxonomy: TaxonomyCreate,
    admin=Depends(require_admin),
    taxonomies=Depends(get_taxonomy_repository),
):
    return taxonomies.create(
        name=taxonomy.name,
        type=taxonomy.type.value,
        description=taxonomy.description,
        parent_id=taxonomy.parent_id,
    )


@router.patch("/{taxonomy_id}", response_model=TaxonomyResponse)
def update_taxonomy(
    taxonomy_id: int,
    update: TaxonomyUpdate,
    admin=Depends(require_admin),
    taxonomies=Depends(get_taxonomy_repository),
):
    return taxonomies.update(taxonomy_id, **update.model_dump(mode="json", exclude_unset=True))


@router.delete("/{taxonomy_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_taxonomy(
    taxonomy_id: int,
    admin=Depends(require_admin),
    taxonomies=Depends(get_taxonomy_repository),
):
    """Soft delete: the taxonomy disappears from listings and lookups."""
    taxonomies.delete(taxonomy_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
