"""
API Schemas for Sirened

Pydantic models for request validation and response serialization:
- Auth and user models
- Book catalog models
- Rating and preference models
- Shelf and note models
- Feedback ticket models
- Genre taxonomy and genre view models
"""

from datetime import datetime
from typing import Optional, Any, Union
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict


# =============================================================================
# Enums
# =============================================================================

class TicketType(str, Enum):
    """Feedback ticket type."""
    BUG_REPORT = "bug_report"
    FEATURE_REQUEST = "feature_request"
    GENERAL_FEEDBACK = "general_feedback"
    QUESTION = "question"


class TicketStatus(str, Enum):
    """Feedback ticket status (board column)."""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ReportStatus(str, Enum):
    """Moderation state of a rating; approved hides it."""
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TaxonomyType(str, Enum):
    GENRE = "genre"
    SUBGENRE = "subgenre"
    THEME = "theme"
    TROPE = "trope"


class BookFormat(str, Enum):
    SOFTBACK = "softback"
    HARDBACK = "hardback"
    DIGITAL = "digital"
    AUDIOBOOK = "audiobook"


class BlockType(str, Enum):
    AUTHOR = "author"
    PUBLISHER = "publisher"
    BOOK = "book"
    TAXONOMY = "taxonomy"


# =============================================================================
# Shared
# =============================================================================

class RankUpdate(BaseModel):
    """One entry of a drag-and-drop reorder."""

    id: int
    rank: int = Field(..., ge=0)


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# Auth & Users
# =============================================================================

class UserCreate(BaseModel):
    """Sign-up request."""

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=8, max_length=128)
    display_name: Optional[str] = Field(None, max_length=100)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "reader@example.com",
                "username": "nightreader",
                "password": "correct-horse-battery",
                "display_name": "Night Reader",
            }
        }
    )


class UserUpdate(BaseModel):
    """Profile update. Changing the password needs the current one."""

    display_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=2000)
    social_links: Optional[list[dict[str, str]]] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=8, max_length=128)


class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    is_admin: bool = False
    has_completed_onboarding: bool = False
    social_links: list[dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PublicUserResponse(BaseModel):
    """Profile as seen by other readers."""

    username: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    social_links: list[dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthorUpsert(BaseModel):
    author_name: str = Field(..., min_length=1, max_length=200)
    bio: Optional[str] = None
    author_image_url: Optional[str] = None


class AuthorResponse(BaseModel):
    id: int
    user_id: int
    author_name: str
    bio: Optional[str] = None
    author_image_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Books
# =============================================================================

class ReferralLink(BaseModel):
    retailer: Optional[str] = None
    url: str = ""
    domain: Optional[str] = None
    favicon_url: Optional[str] = None


class BookBase(BaseModel):
    """Fields shared by book creation and responses."""

    title: str = Field(..., max_length=500)
    description: str = ""

    series: Optional[str] = None
    setting: Optional[str] = None
    characters: list[str] = Field(default_factory=list)
    awards: list[str] = Field(default_factory=list)
    formats: list[BookFormat] = Field(default_factory=list)

    page_count: Optional[int] = None
    published_date: Optional[str] = None
    isbn: Optional[str] = Field(None, max_length=20)
    asin: Optional[str] = Field(None, max_length=20)
    language: Optional[str] = Field(None, max_length=50)
    original_title: Optional[str] = None

    referral_links: list[ReferralLink] = Field(default_factory=list)


class BookCreate(BookBase):
    """
    Book submission.

    Validated with the upload wizard rules, so every step has to pass.
    """

    has_awards: bool = False
    genres: list[int] = Field(default_factory=list, description="Taxonomy ids in rank order")
    internal_details: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "The Hollow Tide",
                "description": "A lighthouse keeper hears the sea singing back.",
                "formats": ["softback", "digital"],
                "published_date": "2024-10-01",
                "genres": [1, 4],
                "referral_links": [{"retailer": "Amazon", "url": "https://www.amazon.com/dp/B000000"}],
            }
        }
    )


class BookUpdate(BaseModel):
    """Book update request (partial)."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, min_length=1)
    series: Optional[str] = None
    setting: Optional[str] = None
    characters: Optional[list[str]] = None
    awards: Optional[list[str]] = None
    formats: Optional[list[BookFormat]] = Field(None, min_length=1)
    page_count: Optional[int] = Field(None, ge=1)
    published_date: Optional[str] = None
    isbn: Optional[str] = Field(None, max_length=20)
    asin: Optional[str] = Field(None, max_length=20)
    language: Optional[str] = Field(None, max_length=50)
    original_title: Optional[str] = None
    referral_links: Optional[list[ReferralLink]] = None
    internal_details: Optional[str] = None
    genres: Optional[list[int]] = None

    @field_validator("referral_links")
    @classmethod
    def links_need_http(cls, links):
        if links:
            for link in links:
                if not link.url.strip().lower().startswith("http"):
                    raise ValueError("Referral link URLs must start with http:// or https://")
        return links


class BookResponse(BookBase):
    id: int
    author_id: int
    genres: list[int] = Field(default_factory=list)
    promoted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookListResponse(BaseModel):
    """Paginated book list response."""

    books: list[BookResponse]
    total: int
    page: int
    limit: int
    has_more: bool


class TaxonomyAssignment(BaseModel):
    taxonomy_ids: list[int]


class ReferralLinkMove(BaseModel):
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class WizardStepCheck(BaseModel):
    """Validate one wizard step; the form is the partial submission."""

    step: int
    current_step: Optional[int] = None
    form: dict[str, Any] = Field(default_factory=dict)


class WizardStepResult(BaseModel):
    step: int
    title: str
    errors: list[str]
    can_proceed: bool
    can_skip_to: Optional[bool] = None


# =============================================================================
# Ratings
# =============================================================================

class RatingScores(BaseModel):
    enjoyment: int = Field(..., ge=1, le=5)
    writing: int = Field(..., ge=1, le=5)
    themes: int = Field(..., ge=1, le=5)
    characters: int = Field(..., ge=1, le=5)
    worldbuilding: int = Field(..., ge=1, le=5)


class RatingCreate(RatingScores):
    book_id: int
    review: Optional[str] = Field(None, max_length=10000)
    analysis: Optional[dict[str, Any]] = None


class RatingResponse(RatingScores):
    id: int
    user_id: int
    book_id: int
    username: Optional[str] = None
    review: Optional[str] = None
    analysis: Optional[dict[str, Any]] = None
    featured: bool = False
    report_status: str = "none"
    weighted_rating: Optional[float] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RatingFeatureRequest(BaseModel):
    featured: bool = True


class RatingReportUpdate(BaseModel):
    report_status: ReportStatus


class RatingSummaryResponse(BaseModel):
    book_id: int
    count: int
    averages: dict[str, float]
    overall: float


class RatingWeights(BaseModel):
    enjoyment: float = Field(..., ge=0, le=1)
    writing: float = Field(..., ge=0, le=1)
    themes: float = Field(..., ge=0, le=1)
    characters: float = Field(..., ge=0, le=1)
    worldbuilding: float = Field(..., ge=0, le=1)


class RatingPreferencesUpdate(BaseModel):
    """
    Either an ordering of the criteria (weights derived by position) or
    explicit weights.
    """

    criteria_order: Optional[list[str]] = None
    weights: Optional[RatingWeights] = None
    auto_adjust: Optional[bool] = None


class RatingPreferencesResponse(BaseModel):
    user_id: Optional[int] = None
    weights: dict[str, float]
    criteria_order: list[str]
    auto_adjust: bool
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RebalanceRequest(BaseModel):
    criterion: str
    value: float


class CriterionComparisonResponse(BaseModel):
    criterion: str
    difference: float
    label: str


class CompatibilityResponse(BaseModel):
    username: str
    label: str
    score: int
    difference: float
    criteria: list[CriterionComparisonResponse]


# =============================================================================
# Reading status
# =============================================================================

class ReadingStatusResponse(BaseModel):
    user_id: int
    book_id: int
    is_wishlisted: bool = False
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Shelves & Notes
# =============================================================================

class ShelfCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    cover_image_url: Optional[str] = None


class ShelfUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    cover_image_url: Optional[str] = None


class ShelfShareUpdate(BaseModel):
    is_shared: bool


class ShelfResponse(BaseModel):
    id: int
    user_id: int
    title: str
    rank: int
    cover_image_url: Optional[str] = None
    is_shared: bool = False
    book_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ShelfBookAdd(BaseModel):
    book_id: int


class ShelfBookResponse(BaseModel):
    id: int
    shelf_id: int
    book_id: int
    rank: int
    title: Optional[str] = None
    added_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PublicShelfResponse(BaseModel):
    shelf: ShelfResponse
    books: list[ShelfBookResponse]


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    shelf_id: Optional[int] = None
    book_id: Optional[int] = None


class NoteUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class NoteResponse(BaseModel):
    id: int
    user_id: int
    content: str
    type: str
    shelf_id: Optional[int] = None
    book_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Feedback
# =============================================================================

class TicketCreate(BaseModel):
    """Public feedback submission; signed-in users are linked automatically."""

    type: TicketType
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=10000)
    device_info: Optional[dict[str, Any]] = None


class AdminTicketCreate(TicketCreate):
    status: TicketStatus = TicketStatus.NEW
    priority: int = Field(1, ge=0, le=5)
    user_id: Optional[int] = None


class TicketUpdate(BaseModel):
    status: Optional[TicketStatus] = None
    priority: Optional[int] = Field(None, ge=0, le=5)
    assigned_to: Optional[int] = None
    admin_notes: Optional[str] = None


class TicketResponse(BaseModel):
    id: int
    ticket_number: str
    type: str
    title: str
    description: str
    status: str
    priority: int
    user_id: Optional[int] = None
    assigned_to: Optional[int] = None
    admin_notes: Optional[str] = None
    device_info: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TicketPublicResponse(BaseModel):
    """What an anonymous submitter sees when looking a ticket up."""

    ticket_number: str
    type: str
    status: str
    created_at: Optional[datetime] = None


class BoardColumn(BaseModel):
    status: str
    tickets: list[TicketResponse]


class BoardResponse(BaseModel):
    columns: list[BoardColumn]


class BoardMoveRequest(BaseModel):
    """
    A drop on the board.

    ``over_id`` is whatever the ticket was dropped on: another ticket's id,
    a ``container-<status>`` / ``droppable-<status>`` column id, or null.
    """

    ticket_id: int
    over_id: Optional[Union[int, str]] = None
    initial_status: Optional[TicketStatus] = None


class BoardMoveResponse(BaseModel):
    ticket_id: int
    from_status: str
    to_status: str
    changed: bool
    ticket: TicketResponse


# =============================================================================
# Genres
# =============================================================================

class TaxonomyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: TaxonomyType
    description: Optional[str] = None
    parent_id: Optional[int] = None


class TaxonomyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[TaxonomyType] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None


class TaxonomyResponse(BaseModel):
    id: int
    name: str
    type: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TaxonomyImportRequest(BaseModel):
    # Items are validated one by one so a bad row does not sink the batch
    items: list[dict[str, Any]] = Field(..., min_length=1)


class TaxonomyImportResult(BaseModel):
    name: str
    success: bool
    id: Optional[int] = None
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TaxonomyImportResponse(BaseModel):
    imported: int
    failed: int
    results: list[TaxonomyImportResult]


# =============================================================================
# Genre views
# =============================================================================

class GenreViewCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    is_default: bool = False


class GenreViewUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    is_default: Optional[bool] = None


class ViewTaxonomyResponse(BaseModel):
    taxonomy_id: int
    type: str
    rank: int
    name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GenreViewResponse(BaseModel):
    id: int
    user_id: int
    name: str
    rank: int
    is_default: bool = False
    taxonomies: list[ViewTaxonomyResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ViewTaxonomiesUpdate(BaseModel):
    taxonomy_ids: list[int]


class ViewBooksResponse(BaseModel):
    view_id: int
    books: list[BookResponse]
    candidates: int
    filtered_out: int


# =============================================================================
# Publishers
# =============================================================================

class PublisherCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class PublisherAuthorLink(BaseModel):
    author_id: int


class PublisherResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    author_ids: list[int] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Blocks
# =============================================================================

class BlockCreate(BaseModel):
    block_type: BlockType
    block_id: int
    block_name: Optional[str] = Field(None, max_length=200)


class BlockResponse(BaseModel):
    id: int
    user_id: int
    block_type: str
    block_id: int
    block_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# System Schemas
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, str] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    detail: Optional[Any] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
