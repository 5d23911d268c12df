"""
Publisher Routes

Publishers group authors. Readers can block a publisher, which hides
books by every author linked to it; admins maintain the links.
"""

from fastapi import APIRouter, Depends, Response, status
from loguru import logger

from sirened.api.dependencies import get_book_repository
from sirened.api.routes.auth import require_admin
from sirened.api.schemas import ErrorResponse, PublisherAuthorLink, PublisherCreate, PublisherResponse
from sirened.exceptions import NotFoundError


router = APIRouter(prefix="/publishers", tags=["publishers"])


@router.get("", response_model=list[PublisherResponse])
def list_publishers(books=Depends(get_book_repository)):
    return books.list_publishers()


@router.get(
    "/{publisher_id}",
    response_model=PublisherResponse,
    responses={404: {"model": ErrorResponse, "description": "Publisher not found"}},
)
def get_publisher(publisher_id: int, books=Depends(get_book_repository)):
    publisher = books.get_publisher(publisher_id)
    if publisher is None:
        raise NotFoundError("Publisher", publisher_id)
    return publisher


@router.post("", response_model=PublisherResponse, status_code=status.HTTP_201_CREATED)
def create_publisher(
    publisher: PublisherCreate,
    admin=Depends(require_admin),
    books=Depends(get_book_repository),
):
    logger.info(f"Admin {admin.id} creating publisher '{publisher.name}'")
    return books.create_publisher(publisher.name, description=publisher.description)


@router.post(
    "/{publisher_id}/authors",
    response_model=PublisherResponse,
    responses={404: {"model": ErrorResponse, "description": "Publisher or author not found"}},
)
def link_author(
    publisher_id: int,
    link: PublisherAuthorLink,
    admin=Depends(require_admin),
    books=Depends(get_book_repository),
):
    """Link an author to the publisher. Linking twice changes nothing."""
    return books.add_publisher_author(publisher_id, link.author_id)


@router.delete("/{publisher_id}/authors/{author_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_author(
    publisher_id: int,
    author_id: int,
    admin=Depends(require_admin),
    books=Depends(get_book_repository),
):
    books.remove_publisher_author(publisher_id, author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
