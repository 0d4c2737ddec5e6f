"""
API Routers Package

Router Structure:
- me_books.py: /api/v1/me/books/* library write endpoints
- books.py: /api/v1/books/* catalog reads over book_stats
- users.py: /api/v1/users/* account endpoints

Each router is imported and registered in main.py.
"""

from readshelf.routers.books import router as books_router
from readshelf.routers.me_books import router as me_books_router
from readshelf.routers.users import router as users_router

__all__ = [
    "books_router",
    "me_books_router",
    "users_router",
]
