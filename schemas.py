"""
Schemas for the Valença & Soares site backend

Every entity has a full shape (what the store keeps and the API returns) and an
"insert" shape (what a client may send when creating it). Server-assigned
fields (id, likes, status, createdAt, updatedAt) never appear in insert shapes.

JSON uses camelCase (imageUrl, readTime, createdAt, sessionId, ...); the
snake_case attribute names are accepted on input as well.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

ContactStatus = Literal["new", "read", "replied"]
Sender = Literal["user", "bot"]

M = TypeVar("M", bound=BaseModel)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ====== Users ======
class InsertUser(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class User(InsertUser):
    id: str


# ====== Blog ======
class InsertBlogPost(CamelModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    excerpt: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, description="Practice area, e.g. Direito Civil")
    image_url: Optional[str] = None
    read_time: str = Field(..., min_length=1, description="Display string such as '5 min'")
    published: bool = True


class BlogPost(InsertBlogPost):
    id: str
    likes: int = Field(0, ge=0)
    created_at: datetime
    updated_at: datetime


class BlogPostUpdate(CamelModel):
    """Partial update: any subset of the insert fields, none required."""

    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    read_time: Optional[str] = Field(None, min_length=1)
    published: Optional[bool] = None

    # Only imageUrl is nullable on the post itself.
    @field_validator("title", "content", "excerpt", "category", "read_time", "published")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    def changes(self) -> Dict[str, Any]:
        """Fields the client actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class InsertBlogLike(CamelModel):
    post_id: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1)


class BlogLike(InsertBlogLike):
    id: str
    created_at: datetime


class LikeRequest(CamelModel):
    session_id: Optional[str] = None


class LikeResponse(CamelModel):
    like: BlogLike
    like_count: int


class UnlikeResponse(CamelModel):
    message: str
    like_count: int


class LikeStatusResponse(CamelModel):
    liked: bool
    like_count: int


class LikeCountResponse(CamelModel):
    like_count: int


# ====== Contact ======
class InsertContactMessage(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    area: str = Field(..., min_length=1, description="Practice area the visitor is asking about")
    message: str = Field(..., min_length=1)


class ContactMessage(InsertContactMessage):
    id: str
    status: ContactStatus = "new"
    created_at: datetime


class ContactStatusUpdate(CamelModel):
    status: ContactStatus


# ====== Chat ======
class InsertChatMessage(CamelModel):
    session_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    sender: Sender = "user"
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ChatMessage(InsertChatMessage):
    id: str
    created_at: datetime


class ChatExchange(CamelModel):
    user_message: ChatMessage
    bot_message: ChatMessage


# ====== Admin ======
class AdminLoginRequest(CamelModel):
    password: str


class AdminLoginResponse(CamelModel):
    message: str
    is_admin: bool


class AdminStatus(CamelModel):
    is_admin: bool


class MessageResponse(CamelModel):
    message: str


# ====== Errors ======
class ErrorDetail(CamelModel):
    field: str
    message: str
    code: str


class ErrorResponse(CamelModel):
    error: str
    type: str
    details: Optional[List[ErrorDetail]] = None


# ====== Validation helpers ======
REQUEST_LOCATIONS = ("body", "query", "path", "header", "cookie")


def validate_payload(model: Type[M], data: Any) -> M:
    """Validate raw input against ``model``; raises pydantic.ValidationError."""
    return model.model_validate(data)


def field_errors(errors: Iterable[Dict[str, Any]]) -> List[ErrorDetail]:
    """Flatten pydantic error dicts into per-field details with dotted paths."""
    details = []
    for error in errors:
        loc = list(error.get("loc", ()))
        if loc and loc[0] in REQUEST_LOCATIONS:
            loc = loc[1:]
        details.append(ErrorDetail(
            field=".".join(str(part) for part in loc) or "__root__",
            message=error.get("msg", "Invalid value"),
            code=error.get("type", "value_error"),
        ))
    return details
