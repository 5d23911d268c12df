"""
Shelf Routes

A reader's shelves (ordered by drag-and-drop rank), the books on each
shelf, public shared shelves and reading notes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from loguru import logger

from sirened.api.dependencies import get_shelf_repository
from sirened.api.routes.auth import get_current_user
from sirened.api.schemas import (
    ErrorResponse,
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    PublicShelfResponse,
    RankUpdate,
    ShelfBookAdd,
    ShelfBookResponse,
    ShelfCreate,
    ShelfResponse,
    ShelfShareUpdate,
    ShelfUpdate,
)


router = APIRouter(prefix="/shelves", tags=["shelves"])
notes_router = APIRouter(prefix="/notes", tags=["notes"])


# =============================================================================
# Shelves
# =============================================================================

@router.get("", response_model=list[ShelfResponse])
def list_shelves(current_user=Depends(get_current_user), shelves=Depends(get_shelf_repository)):
    return shelves.list_shelves(current_user.id)


@router.post("", response_model=ShelfResponse, status_code=status.HTTP_201_CREATED)
def create_shelf(
    shelf: ShelfCreate,
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    """Create a shelf at the end of the reader's list."""
    return shelves.create_shelf(current_user.id, shelf.title, cover_image_url=shelf.cover_image_url)


@router.put(
    "/ranks",
    response_model=list[ShelfResponse],
    responses={403: {"model": ErrorResponse, "description": "A shelf belongs to someone else"}},
)
def reorder_shelves(
    updates: list[RankUpdate],
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    """Persist a drag-and-drop reorder of the reader's shelves."""
    logger.info(f"Reordering {len(updates)} shelves for user {current_user.id}")
    return shelves.reorder_shelves(current_user.id, updates)


@router.get(
    "/public/{username}/{title}",
    response_model=PublicShelfResponse,
    responses={404: {"model": ErrorResponse, "description": "No shared shelf with that title"}},
)
def get_public_shelf(username: str, title: str, shelves=Depends(get_shelf_repository)):
    """A shared shelf, looked up by its owner's username and its title."""
    shelf = shelves.get_shared_shelf(username, title)
    return PublicShelfResponse(
        shelf=ShelfResponse.model_validate(shelf),
        books=[ShelfBookResponse.model_validate(b) for b in shelves.list_shelf_books(shelf.id)],
    )


@router.get(
    "/{shelf_id}",
    response_model=ShelfResponse,
    responses={404: {"model": ErrorResponse, "description": "Shelf not found"}},
)
def get_shelf(shelf_id: int, current_user=Depends(get_current_user), shelves=Depends(get_shelf_repository)):
    return shelves.get_shelf(shelf_id, current_user.id)


@router.patch("/{shelf_id}", response_model=ShelfResponse)
def update_shelf(
    shelf_id: int,
    update: ShelfUpdate,
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    return shelves.update_shelf(
        shelf_id,
        current_user.id,
        title=update.title,
        cover_image_url=update.cover_image_url,
    )


@router.put("/{shelf_id}/share", response_model=ShelfResponse)
def share_shelf(
    shelf_id: int,
    share: ShelfShareUpdate,
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    """Make a shelf public (or private again)."""
    return shelves.update_shelf(shelf_id, current_user.id, is_shared=share.is_shared)


@router.delete("/{shelf_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shelf(shelf_id: int, current_user=Depends(get_current_user), shelves=Depends(get_shelf_repository)):
    """Delete a shelf with its books and notes."""
    shelves.delete_shelf(shelf_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Shelf books
# =============================================================================

@router.get("/{shelf_id}/books", response_model=list[ShelfBookResponse])
def list_shelf_books(shelf_id: int, current_user=Depends(get_current_user), shelves=Depends(get_shelf_repository)):
    return shelves.list_shelf_books(shelf_id, current_user.id)


@router.post(
    "/{shelf_id}/books",
    response_model=ShelfBookResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Shelf or book not found"},
        409: {"model": ErrorResponse, "description": "Book already on the shelf"},
    },
)
def add_shelf_book(
    shelf_id: int,
    payload: ShelfBookAdd,
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    return shelves.add_book(shelf_id, current_user.id, payload.book_id)


@router.put("/{shelf_id}/books/ranks", response_model=list[ShelfBookResponse])
def reorder_shelf_books(
    shelf_id: int,
    updates: list[RankUpdate],
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    """Reorder the books on a shelf; ``id`` is the book id."""
    return shelves.reorder_books(shelf_id, current_user.id, updates)


@router.delete("/{shelf_id}/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_shelf_book(
    shelf_id: int,
    book_id: int,
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    shelves.remove_book(shelf_id, current_user.id, book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Notes
# =============================================================================

@notes_router.get("", response_model=list[NoteResponse])
def list_notes(
    shelf_id: Optional[int] = None,
    book_id: Optional[int] = None,
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    """The reader's own notes, optionally for one shelf or one book."""
    return shelves.list_notes(current_user.id, shelf_id=shelf_id, book_id=book_id)


@notes_router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
def create_note(note: NoteCreate, current_user=Depends(get_current_user), shelves=Depends(get_shelf_repository)):
    return shelves.create_note(current_user.id, note.content, shelf_id=note.shelf_id, book_id=note.book_id)


@notes_router.patch("/{note_id}", response_model=NoteResponse)
def update_note(
    note_id: int,
    update: NoteUpdate,
    current_user=Depends(get_current_user),
    shelves=Depends(get_shelf_repository),
):
    return shelves.update_note(note_id, current_user.id, update.content)


@notes_router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(note_id: int, current_user=Depends(get_current_user), shelves=Depends(get_shelf_repository)):
    shelves.delete_note(note_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
