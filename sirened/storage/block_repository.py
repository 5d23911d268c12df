"""
Reader content blocks.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger

from sirened.exceptions import ConflictError, NotFoundError, ValidationError
from sirened.intelligence.content_filter import BlockSet, BlockType
from .database import Database
from .models import UserBlock


@dataclass
class StoredBlock:
    id: int
    user_id: int
    block_type: str
    block_id: int
    block_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: UserBlock) -> "StoredBlock":
        return cls(
            id=model.id,
            user_id=model.user_id,
            block_type=model.block_type,
            block_id=model.block_id,
            block_name=model.block_name,
            created_at=model.created_at,
        )


class BlockRepository:
    def __init__(self, database: Database):
        self.database = database

    def list_blocks(self, user_id: int) -> list[StoredBlock]:
        with self.database.session() as session:
            rows = session.query(UserBlock).filter(UserBlock.user_id == user_id).order_by(UserBlock.id).all()
            return [StoredBlock.from_model(b) for b in rows]

    def block_set(self, user_id: Optional[int]) -> BlockSet:
        """Blocks for filtering; anonymous readers block nothing."""
        if user_id is None:
            return BlockSet()
        return BlockSet.from_blocks(self.list_blocks(user_id))

    def add_block(
        self,
        user_id: int,
        block_type: str,
        block_id: int,
        block_name: Optional[str] = None,
    ) -> StoredBlock:
        valid = {t.value for t in BlockType}
        if block_type not in valid:
            raise ValidationError("Invalid block type", detail=f"Expected one of {', '.join(sorted(valid))}")

        with self.database.session() as session:
            existing = session.query(UserBlock).filter(
                UserBlock.user_id == user_id,
                UserBlock.block_type == block_type,
                UserBlock.block_id == block_id,
            ).first()
            if existing:
                raise ConflictError("Already blocked", detail=f"{block_type} {block_id}")

            block = UserBlock(user_id=user_id, block_type=block_type, block_id=block_id, block_name=block_name)
            session.add(block)
            session.commit()
            session.refresh(block)

            logger.info(f"User {user_id} blocked {block_type} {block_id}")
            return StoredBlock.from_model(block)

    def remove_block(self, user_id: int, block_id: int) -> None:
        """Remove by the block row id."""
        with self.database.session() as session:
            deleted = session.query(UserBlock).filter(
                UserBlock.user_id == user_id,
                UserBlock.id == block_id,
            ).delete(synchronize_session=False)
            if not deleted:
                raise NotFoundError("Block", block_id)
            session.commit()
