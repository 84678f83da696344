"""
Pydantic schemas for the Menufic API. JSON fields are camelCase.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

ID_PATTERN = r"^[A-Za-z0-9_-]+$"
# Roughly 10 MB of decoded image data.
MAX_IMAGE_BASE64_LENGTH = 14_000_000

Identifier = Annotated[str, Field(min_length=1, max_length=64, pattern=ID_PATTERN)]
ImageBase64 = Annotated[str, Field(max_length=MAX_IMAGE_BASE64_LENGTH)]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=30)]
ItemName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)
]


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class IdPayload(ApiModel):
    id: Identifier


class CategoryCreatePayload(ApiModel):
    menu_id: Identifier
    name: Name
    image_base64: Optional[ImageBase64] = None


class CategoryUpdatePayload(ApiModel):
    id: Identifier
    name: Name
    image_base64: Optional[ImageBase64] = None


class PositionPayload(ApiModel):
    id: Identifier
    new_position: int


class MenuCreatePayload(ApiModel):
    name: Name


class MenuItemCreatePayload(ApiModel):
    category_id: Identifier
    name: ItemName
    price: float = Field(..., ge=0)
    description: Optional[str] = Field(default=None, max_length=300)
    image_base64: Optional[ImageBase64] = None


class CredentialsPayload(ApiModel):
    login_key: str = Field(..., min_length=1)


class ImageResponse(ApiModel):
    id: str
    blur_hash: Optional[str] = None
    color: Optional[str] = None


class MenuItemResponse(ApiModel):
    id: str
    category_id: str
    menu_id: str
    name: str
    description: Optional[str] = None
    price: float
    position: int
    image_id: Optional[str] = None
    image: Optional[ImageResponse] = None


class CategoryResponse(ApiModel):
    id: str
    menu_id: str
    user_id: str
    name: str
    position: int
    image_url: Optional[str] = None
    items: list[MenuItemResponse] = []


class MenuResponse(ApiModel):
    id: str
    user_id: str
    name: str
    created_at: float


class SessionUserResponse(ApiModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


class SessionResponse(ApiModel):
    user: SessionUserResponse
    expires: str


class StatusResponse(ApiModel):
    status: Literal["ok"]
