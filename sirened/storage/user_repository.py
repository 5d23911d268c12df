"""
User Repository for Sirened

Accounts and the author profiles attached to them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import func, or_

from sirened.exceptions import ConflictError, NotFoundError
from .database import Database
from .models import Author, User


@dataclass
class StoredUser:
    """Data class for user data transfer."""

    id: int
    email: str
    username: str
    hashed_password: str = field(repr=False, default="")
    display_name: Optional[str] = None
    bio: Optional[str] = None
    is_admin: bool = False
    has_completed_onboarding: bool = False
    social_links: list = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: User) -> "StoredUser":
        return cls(
            id=model.id,
            email=model.email,
            username=model.username,
            hashed_password=model.hashed_password,
            display_name=model.display_name,
            bio=model.bio,
            is_admin=bool(model.is_admin),
            has_completed_onboarding=bool(model.has_completed_onboarding),
            social_links=model.social_links or [],
            created_at=model.created_at,
        )


@dataclass
class StoredAuthor:
    id: int
    user_id: int
    author_name: str
    bio: Optional[str] = None
    author_image_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: Author) -> "StoredAuthor":
        return cls(
            id=model.id,
            user_id=model.user_id,
            author_name=model.author_name,
            bio=model.bio,
            author_image_url=model.author_image_url,
            created_at=model.created_at,
        )


class UserRepository:
    """
    Repository for user accounts and author profiles.

    Usage:
        repo = UserRepository(database)
        user = repo.create("reader@example.com", "reader", hashed)
        author = repo.ensure_author(user.id)
    """

    PROFILE_FIELDS = {"display_name", "bio", "social_links"}

    def __init__(self, database: Database):
        self.database = database

    def create(
        self,
        email: str,
        username: str,
        hashed_password: str,
        display_name: Optional[str] = None,
    ) -> StoredUser:
        """
        Create an account.

        Raises:
            ConflictError: Email or username already taken.
        """
        with self.database.session() as session:
            existing = session.query(User).filter(
                or_(
                    func.lower(User.email) == email.lower(),
                    func.lower(User.username) == username.lower(),
                )
            ).first()
            if existing:
                taken = "Email" if existing.email.lower() == email.lower() else "Username"
                raise ConflictError(f"{taken} already registered")

            user = User(
                email=email,
                username=username,
                hashed_password=hashed_password,
                display_name=display_name or username,
                social_links=[],
            )
            session.add(user)
            session.commit()
            session.refresh(user)

            logger.info(f"Created user {user.id} ({username})")
            return StoredUser.from_model(user)

    def get(self, user_id: int) -> Optional[StoredUser]:
        with self.database.session() as session:
            user = session.get(User, user_id)
            return StoredUser.from_model(user) if user else None

    def get_by_username(self, username: str) -> Optional[StoredUser]:
        with self.database.session() as session:
            user = session.query(User).filter(
                func.lower(User.username) == username.lower()
            ).first()
            return StoredUser.from_model(user) if user else None

    def get_by_login(self, identifier: str) -> Optional[StoredUser]:
        """Look up by e-mail or username."""
        with self.database.session() as session:
            user = session.query(User).filter(
                or_(
                    func.lower(User.email) == identifier.lower(),
                    func.lower(User.username) == identifier.lower(),
                )
            ).first()
            return StoredUser.from_model(user) if user else None

    def update_profile(self, user_id: int, **fields) -> StoredUser:
        with self.database.session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User", user_id)

            for key, value in fields.items():
                if key in self.PROFILE_FIELDS and value is not None:
                    setattr(user, key, value)

            session.commit()
            session.refresh(user)
            return StoredUser.from_model(user)

    def set_password(self, user_id: int, hashed_password: str) -> None:
        with self.database.session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User", user_id)
            user.hashed_password = hashed_password
            session.commit()
            logger.info(f"Password changed for user {user_id}")

    def set_admin(self, user_id: int, is_admin: bool = True) -> StoredUser:
        with self.database.session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User", user_id)
            user.is_admin = is_admin
            session.commit()
            session.refresh(user)
            logger.info(f"User {user_id} admin={is_admin}")
            return StoredUser.from_model(user)

    def mark_onboarded(self, user_id: int) -> None:
        with self.database.session() as session:
            user = session.get(User, user_id)
            if user and not user.has_completed_onboarding:
                user.has_completed_onboarding = True
                session.commit()

    # =========================================================================
    # Author profiles
    # =========================================================================

    def get_author(self, author_id: int) -> Optional[StoredAuthor]:
        with self.database.session() as session:
            author = session.get(Author, author_id)
            return StoredAuthor.from_model(author) if author else None

    def get_author_by_user(self, user_id: int) -> Optional[StoredAuthor]:
        with self.database.session() as session:
            author = session.query(Author).filter(Author.user_id == user_id).first()
            return StoredAuthor.from_model(author) if author else None

    def upsert_author(
        self,
        user_id: int,
        author_name: str,
        bio: Optional[str] = None,
        author_image_url: Optional[str] = None,
    ) -> StoredAuthor:
        with self.database.session() as session:
            author = session.query(Author).filter(Author.user_id == user_id).first()
            if author is None:
                author = Author(user_id=user_id, author_name=author_name)
                session.add(author)
                logger.info(f"Created author profile for user {user_id}")
            author.author_name = author_name
            if bio is not None:
                author.bio = bio
            if author_image_url is not None:
                author.author_image_url = author_image_url
            session.commit()
            session.refresh(author)
            return StoredAuthor.from_model(author)

    def ensure_author(self, user_id: int) -> StoredAuthor:
        """Author profile for ``user_id``, created from the display name when missing."""
        existing = self.get_author_by_user(user_id)
        if existing:
            return existing

        user = self.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return self.upsert_author(user_id, user.display_name or user.username)
