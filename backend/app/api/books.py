"""Books API: create, fetch, list and delete catalog books.

Implements:
  POST   /api/books            : validate and create a book (201)
  GET    /api/books            : list all books, in creation order
  GET    /api/books/{book_id}  : fetch one book profile
  DELETE /api/books/{book_id}  : delete a book (204)

Domain errors propagate as ``CatalogError`` subclasses and are rendered by
the exception handlers registered in ``app.main``.
"""

import logging
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from bookstore_catalog.state import CreateRequest, Profile

from app.config import settings
from app.database import SessionLocal
from app.services.catalog_service import CatalogService
from app.services.catalog_store import SqlCatalogStore
from app.services.list_cache import ListCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/books", tags=["books"])
_catalog_service = CatalogService(
    SqlCatalogStore(SessionLocal),
    cache=ListCache(settings.list_cache_ttl_seconds),
    price_format=settings.price_format,
)


def get_catalog_service() -> CatalogService:
    return _catalog_service


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class CreateBookRequest(BaseModel):
    """Create-book payload. Only types are checked here; rules run in the engine."""

    title: str = ""
    author: str = ""
    isbn: str = ""
    category: str = ""
    price: Decimal
    published_date: date
    cover_image_url: str | None = None
    stock_quantity: int = 1

    def to_domain(self) -> CreateRequest:
        return CreateRequest(
            title=self.title,
            author=self.author,
            isbn=self.isbn,
            category=self.category,
            price=self.price,
            published_date=self.published_date,
            cover_image_url=self.cover_image_url,
            stock_quantity=self.stock_quantity,
        )


class BookProfileResponse(BaseModel):
    """Display profile of a catalog book."""

    id: str
    title: str
    author: str
    isbn: str
    category_display_name: str
    price: Decimal
    formatted_price: str
    published_date: date
    created_at: datetime
    cover_image_url: str | None
    is_available: bool
    stock_quantity: int
    published_age: str
    author_initials: str
    availability_status: str

    @classmethod
    def from_profile(cls, profile: Profile) -> "BookProfileResponse":
        return cls(**asdict(profile))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=status.HTTP_201_CREATED, response_model=BookProfileResponse)
async def create_book(
    body: CreateBookRequest,
    response: Response,
    service: CatalogService = Depends(get_catalog_service),
):
    profile = await service.create_book(body.to_domain())
    response.headers["Location"] = f"/api/books/{profile.id}"
    return BookProfileResponse.from_profile(profile)


@router.get("", response_model=list[BookProfileResponse])
async def list_books(service: CatalogService = Depends(get_catalog_service)):
    return [BookProfileResponse.from_profile(p) for p in await service.list_books()]


@router.get("/{book_id}", response_model=BookProfileResponse)
async def get_book(book_id: str, service: CatalogService = Depends(get_catalog_service)):
    return BookProfileResponse.from_profile(await service.get_book(book_id))


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book(book_id: str, service: CatalogService = Depends(get_catalog_service)):
    await service.delete_book(book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
