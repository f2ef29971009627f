from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    author: str = Field(min_length=1, max_length=255)
    isbn: str = Field(min_length=1, max_length=32)
    category: str = Field(min_length=1, max_length=255)
    total_copies: int = Field(alias="totalCopies", ge=1)
    publication_year: Optional[int] = Field(default=None, alias="publicationYear")
    publisher: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("title", "author", "isbn", "category")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class BookCreate(BookBase):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class BookUpdate(BookBase):
    """Full replacement of a book's details; copy availability is derived."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class BookOut(BookBase):
    id: str
    available_copies: int = Field(alias="availableCopies")
    created_date: date = Field(alias="createdDate")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra="forbid",
    )


class BookLite(BaseModel):
    id: str
    title: str
    author: str
    isbn: str

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra="forbid",
    )
