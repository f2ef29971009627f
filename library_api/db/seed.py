"""Sample catalog and member list loaded into an empty database."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from library_api.schemas.book import BookCreate
from library_api.schemas.member import MemberCreate
from library_api.services.catalog_service import CatalogService
from library_api.services.membership_service import MembershipService

logger = logging.getLogger(__name__)

SAMPLE_BOOKS: list[dict] = [
    {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "isbn": "9780743273565",
        "category": "Fiction",
        "total_copies": 5,
        "publication_year": 1925,
        "publisher": "Scribner",
        "description": "A classic American novel set in the Jazz Age",
    },
    {
        "title": "To Kill a Mockingbird",
        "author": "Harper Lee",
        "isbn": "9780061120084",
        "category": "Fiction",
        "total_copies": 4,
        "publication_year": 1960,
        "publisher": "J.B. Lippincott & Co.",
        "description": "A gripping tale of racial injustice and childhood innocence",
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "isbn": "9780451524935",
        "category": "Science Fiction",
        "total_copies": 6,
        "publication_year": 1949,
        "publisher": "Secker & Warburg",
        "description": "A dystopian social science fiction novel",
    },
    {
        "title": "Pride and Prejudice",
        "author": "Jane Austen",
        "isbn": "9780141439518",
        "category": "Romance",
        "total_copies": 3,
        "publication_year": 1813,
        "publisher": "T. Egerton",
        "description": "A romantic novel of manners",
    },
    {
        "title": "The Catcher in the Rye",
        "author": "J.D. Salinger",
        "isbn": "9780316769174",
        "category": "Fiction",
        "total_copies": 4,
        "publication_year": 1951,
        "publisher": "Little, Brown and Company",
        "description": "A story about teenage rebellion",
    },
    {
        "title": "Harry Potter and the Sorcerer's Stone",
        "author": "J.K. Rowling",
        "isbn": "9780439708180",
        "category": "Fantasy",
        "total_copies": 8,
        "publication_year": 1997,
        "publisher": "Scholastic",
        "description": "The first book in the Harry Potter series",
    },
    {
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "isbn": "9780547928227",
        "category": "Fantasy",
        "total_copies": 5,
        "publication_year": 1937,
        "publisher": "George Allen & Unwin",
        "description": "A fantasy novel and children's book",
    },
    {
        "title": "Brave New World",
        "author": "Aldous Huxley",
        "isbn": "9780060850524",
        "category": "Science Fiction",
        "total_copies": 4,
        "publication_year": 1932,
        "publisher": "Chatto & Windus",
        "description": "A dystopian novel set in a futuristic World State",
    },
    {
        "title": "The Lord of the Rings",
        "author": "J.R.R. Tolkien",
        "isbn": "9780544003415",
        "category": "Fantasy",
        "total_copies": 6,
        "publication_year": 1954,
        "publisher": "George Allen & Unwin",
        "description": "An epic high-fantasy novel",
    },
    {
        "title": "Animal Farm",
        "author": "George Orwell",
        "isbn": "9780451526342",
        "category": "Fiction",
        "total_copies": 5,
        "publication_year": 1945,
        "publisher": "Secker & Warburg",
        "description": "An allegorical novella about Soviet Russia",
    },
]

SAMPLE_MEMBERS: list[dict] = [
    {
        "name": "John Doe",
        "email": "john.doe@email.com",
        "phone": "1234567890",
        "address": "123 Main St, City, State 12345",
    },
    {
        "name": "Jane Smith",
        "email": "jane.smith@email.com",
        "phone": "0987654321",
        "address": "456 Oak Ave, City, State 12345",
    },
    {
        "name": "Mike Johnson",
        "email": "mike.johnson@email.com",
        "phone": "1112223333",
        "address": "789 Pine Rd, City, State 12345",
    },
    {
        "name": "Sarah Williams",
        "email": "sarah.williams@email.com",
        "phone": "4445556666",
        "address": "321 Elm St, City, State 12345",
    },
    {
        "name": "David Brown",
        "email": "david.brown@email.com",
        "phone": "7778889999",
        "address": "654 Maple Dr, City, State 12345",
    },
]


def seed_database(session: Session) -> bool:
    """Load the sample data unless the catalog already has books.

    Returns True when data was loaded.
    """
    catalog = CatalogService(session)
    if catalog.count() > 0:
        logger.info("Catalog already populated, skipping seed data")
        return False

    membership = MembershipService(session)
    for book in SAMPLE_BOOKS:
        catalog.add(BookCreate(**book))
    for member in SAMPLE_MEMBERS:
        if membership.get_by_email(member["email"]) is None:
            membership.register(MemberCreate(**member))

    logger.info("Loaded %d books and %d members", len(SAMPLE_BOOKS), len(SAMPLE_MEMBERS))
    return True
