"""
API Routes for Sirened

Route modules:
- auth: Sign up, tokens and the current user
- users: Public profiles and author profiles
- books: Catalog CRUD, book ratings and reading status
- ratings: Ratings, rating preferences and compatibility
- shelves: Shelves, shelf books and notes
- feedback: Feedback tickets and the admin board
- genres: Genre taxonomy
- genre_views: Personalized genre views
- blocks: Content blocks
- publishers: Publishers and their authors
"""

from sirened.api.routes.auth import router as auth_router
from sirened.api.routes.users import router as users_router
from sirened.api.routes.books import router as books_router
from sirened.api.routes.ratings import router as ratings_router
from sirened.api.routes.shelves import router as shelves_router, notes_router
from sirened.api.routes.feedback import router as feedback_router
from sirened.api.routes.genres import router as genres_router
from sirened.api.routes.genre_views import router as genre_views_router
from sirened.api.routes.blocks import router as blocks_router
from sirened.api.routes.publishers import router as publishers_router

__all__ = [
    "auth_router",
    "users_router",
    "books_router",
    "ratings_router",
    "shelves_router",
    "notes_router",
    "feedback_router",
    "genres_router",
    "genre_views_router",
    "blocks_router",
    "publishers_router",
]
