from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from book_catalog.errors import ValidationError
from book_catalog.utils.pagination import PageRequest


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


class BookCreate(_CamelModel):
    title: str = Field(max_length=255)
    author: str = Field(max_length=255)
    isbn: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = None
    genre: Optional[str] = Field(default=None, max_length=100)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    publication_year: Optional[int] = Field(default=None, alias="publicationYear")
    stock_quantity: Optional[int] = Field(default=None, ge=0, alias="stockQuantity")
    available: bool = True

    @field_validator("title", "author")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("isbn", "description", "genre", mode="before")
    @classmethod
    def _optional_text(cls, v):
        return _blank_to_none(v)


class BookUpdate(_CamelModel):
    """Partial update: title/author always replace, the rest only when given."""

    title: str = Field(max_length=255)
    author: str = Field(max_length=255)
    isbn: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = None
    genre: Optional[str] = Field(default=None, max_length=100)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    publication_year: Optional[int] = Field(default=None, alias="publicationYear")
    stock_quantity: Optional[int] = Field(default=None, ge=0, alias="stockQuantity")
    available: Optional[bool] = None


class PageParams(_CamelModel):
    page: int = Field(default=0, ge=0)
    size: int = Field(default=10, ge=1)
    sort_by: str = Field(default="id", alias="sortBy")
    sort_dir: str = Field(default="asc", alias="sortDir")

    @field_validator("sort_dir")
    @classmethod
    def _direction(cls, v: str) -> str:
        v = v.lower()
        if v not in ("asc", "desc"):
            raise ValueError("must be one of: asc, desc")
        return v

    @field_validator("sort_by", "sort_dir", mode="before")
    @classmethod
    def _default_when_blank(cls, v, info):
        if _blank_to_none(v) is None:
            return "id" if info.field_name == "sort_by" else "asc"
        return v

    def to_page_request(self) -> PageRequest:
        return PageRequest(page=self.page, size=self.size, sort_by=self.sort_by, sort_dir=self.sort_dir)


class SearchFilters(_CamelModel):
    title: Optional[str] = None
    author: Optional[str] = None
    genre: Optional[str] = None
    min_price: Optional[Decimal] = Field(default=None, alias="minPrice")
    max_price: Optional[Decimal] = Field(default=None, alias="maxPrice")
    min_year: Optional[int] = Field(default=None, alias="minYear")
    max_year: Optional[int] = Field(default=None, alias="maxYear")
    available: Optional[bool] = None

    @field_validator("*", mode="before")
    @classmethod
    def _absent_when_blank(cls, v):
        return _blank_to_none(v)

    def echo(self):
        """Filter values as sent back to clients; absent ones become ""."""
        def _v(x):
            if x is None:
                return ""
            if isinstance(x, Decimal):
                return float(x)
            return x

        return {
            "title": _v(self.title),
            "author": _v(self.author),
            "genre": _v(self.genre),
            "minPrice": _v(self.min_price),
            "maxPrice": _v(self.max_price),
            "minYear": _v(self.min_year),
            "maxYear": _v(self.max_year),
            "available": _v(self.available),
        }


class TextSearchParams(_CamelModel):
    q: str

    @field_validator("q")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be blank")
        return v


class PriceRangeParams(_CamelModel):
    min_price: Decimal = Field(alias="minPrice", ge=0)
    max_price: Decimal = Field(alias="maxPrice", ge=0)


def parse(model_cls, data):
    """Validate ``data`` into ``model_cls`` or raise the catalog ValidationError."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        field_errors = {}
        for err in e.errors():
            field = ".".join(str(p) for p in err.get("loc", ())) or "__root__"
            field_errors.setdefault(field, err.get("msg", "invalid value"))
        raise ValidationError("Validation failed", field_errors) from e
