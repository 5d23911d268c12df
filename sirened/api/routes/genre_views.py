"""
Genre View Routes

Personalized content views: each reader arranges named views, picks the
taxonomies behind each one and gets a filtered book feed per view.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from sirened.api.dependencies import get_book_repository, get_genre_view_repository, get_view_book_selector
from sirened.api.routes.auth import get_current_user
from sirened.api.schemas import (
    BookResponse,
    ErrorResponse,
    GenreViewCreate,
    GenreViewResponse,
    GenreViewUpdate,
    RankUpdate,
    ViewBooksResponse,
    ViewTaxonomiesUpdate,
    ViewTaxonomyResponse,
)


router = APIRouter(prefix="/genre-views", tags=["genre-views"])


@router.get("", response_model=list[GenreViewResponse])
def list_views(current_user=Depends(get_current_user), views=Depends(get_genre_view_repository)):
    return views.list_views(current_user.id)


@router.post("", response_model=GenreViewResponse, status_code=status.HTTP_201_CREATED)
def create_view(
    view: GenreViewCreate,
    current_user=Depends(get_current_user),
    views=Depends(get_genre_view_repository),
):
    """New view at the end of the list. A new default replaces the old one."""
    return views.create_view(current_user.id, view.name, is_default=view.is_default)


@router.put(
    "/ranks",
    response_model=list[GenreViewResponse],
    responses={403: {"model": ErrorResponse, "description": "A view belongs to someone else"}},
)
def reorder_views(
    updates: list[RankUpdate],
    current_user=Depends(get_current_user),
    views=Depends(get_genre_view_repository),
):
    return views.reorder_views(current_user.id, updates)


@router.get(
    "/{view_id}",
    response_model=GenreViewResponse,
    responses={
        403: {"model": ErrorResponse, "description": "View belongs to someone else"},
        404: {"model": ErrorResponse, "description": "View not found"},
    },
)
def get_view(view_id: int, current_user=Depends(get_current_user), views=Depends(get_genre_view_repository)):
    return views.get_view(view_id, current_user.id)


@router.patch("/{view_id}", response_model=GenreViewResponse)
def update_view(
    view_id: int,
    update: GenreViewUpdate,
    current_user=Depends(get_current_user),
    views=Depends(get_genre_view_repository),
):
    return views.update_view(view_id, current_user.id, name=update.name, is_default=update.is_default)


@router.delete("/{view_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_view(view_id: int, current_user=Depends(get_current_user), views=Depends(get_genre_view_repository)):
    views.delete_view(view_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{view_id}/taxonomies", response_model=list[ViewTaxonomyResponse])
def get_view_taxonomies(
    view_id: int,
    current_user=Depends(get_current_user),
    views=Depends(get_genre_view_repository),
):
    """The view's taxonomies in rank order."""
    return views.get_view(view_id, current_user.id).taxonomies


@router.put("/{view_id}/taxonomies", response_model=list[ViewTaxonomyResponse])
def set_view_taxonomies(
    view_id: int,
    update: ViewTaxonomiesUpdate,
    current_user=Depends(get_current_user),
    views=Depends(get_genre_view_repository),
):
    """Replace the view's taxonomies; list position becomes the rank."""
    return views.set_view_taxonomies(view_id, current_user.id, update.taxonomy_ids)


@router.get("/{view_id}/books", response_model=ViewBooksResponse)
def get_view_books(
    view_id: int,
    count: Optional[int] = Query(None, ge=1, le=100),
    current_user=Depends(get_current_user),
    selector=Depends(get_view_book_selector),
    books=Depends(get_book_repository),
):
    """
    Books for a view.

    Tagged with any of the view's taxonomies, minus whatever the reader
    has blocked, best-ranked taxonomy first.
    """
    selection = selector.select(view_id, current_user.id, count=count)
    return ViewBooksResponse(
        view_id=view_id,
        books=[BookResponse.model_validate(b) for b in books.get_many(selection.book_ids)],
        candidates=selection.candidates,
        filtered_out=selection.filtered_out,
    )
