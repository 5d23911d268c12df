"""
Content Block Routes

Readers hide authors, publishers, books or taxonomies from their feeds.
"""

from fastapi import APIRouter, Depends, Response, status

from sirened.api.dependencies import get_block_repository
from sirened.api.routes.auth import get_current_user
from sirened.api.schemas import BlockCreate, BlockResponse, ErrorResponse


router = APIRouter(prefix="/blocks", tags=["blocks"])


@router.get("", response_model=list[BlockResponse])
def list_blocks(current_user=Depends(get_current_user), blocks=Depends(get_block_repository)):
    return blocks.list_blocks(current_user.id)


@router.post(
    "",
    response_model=BlockResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Already blocked"}},
)
def add_block(block: BlockCreate, current_user=Depends(get_current_user), blocks=Depends(get_block_repository)):
    return blocks.add_block(
        current_user.id,
        block.block_type.value,
        block.block_id,
        block_name=block.block_name,
    )


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_block(block_id: int, current_user=Depends(get_current_user), blocks=Depends(get_block_repository)):
    """Unblock; ``block_id`` is the id of the block entry."""
    blocks.remove_block(current_user.id, block_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
