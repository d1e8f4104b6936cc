from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RatingCreate(CamelModel):
    target_type: str = Field(alias="targetType")
    target_id: str = Field(alias="targetId")
    score: StrictInt
    dimension1: StrictInt | None = None
    dimension2: StrictInt | None = None
    dimension3: StrictInt | None = None
    is_anonymous: StrictBool = Field(default=False, alias="isAnonymous")
    show_username: StrictBool = Field(default=True, alias="showUsername")
    url: str | None = None
    title: str | None = None


class CommentCreate(CamelModel):
    target_type: str = Field(alias="targetType")
    target_id: str = Field(alias="targetId")
    body: str
    parent_id: str | None = Field(default=None, alias="parentId")
    is_anonymous: StrictBool = Field(default=False, alias="isAnonymous")
    url: str | None = None
    title: str | None = None


class CommentUpdate(CamelModel):
    body: str


class Rating(CamelModel):
    id: str
    target_type: str = Field(serialization_alias="targetType")
    target_id: str = Field(serialization_alias="targetId")
    user_id: str | None = Field(default=None, serialization_alias="userId")
    score: int
    dimension1: int | None = None
    dimension2: int | None = None
    dimension3: int | None = None
    is_anonymous: bool = Field(default=False, serialization_alias="isAnonymous")
    show_username: bool = Field(default=True, serialization_alias="showUsername")
    created_at: int | None = Field(default=None, serialization_alias="createdAt")
    updated_at: int | None = Field(default=None, serialization_alias="updatedAt")


class RatingAggregate(BaseModel):
    count: int = 0
    mean: float = 0.0
    dimensions: Dict[str, float | None] = Field(default_factory=dict)


class Comment(CamelModel):
    id: str
    target_type: str = Field(serialization_alias="targetType")
    target_id: str = Field(serialization_alias="targetId")
    user_id: str | None = Field(default=None, serialization_alias="userId")
    parent_id: str | None = Field(default=None, serialization_alias="parentId")
    body: str
    is_anonymous: bool = Field(default=False, serialization_alias="isAnonymous")
    is_own_comment: bool = Field(default=False, serialization_alias="isOwnComment")
    created_at: int | None = Field(default=None, serialization_alias="createdAt")
    updated_at: int | None = Field(default=None, serialization_alias="updatedAt")
    children: List["Comment"] = Field(default_factory=list)

