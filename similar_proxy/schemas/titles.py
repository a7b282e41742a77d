from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TitleKind = Literal["movie", "tv"]


class TitleRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = Field(min_length=1)
    poster: str = Field(min_length=1)
    year: str = Field(default="", pattern=r"^(\d{4})?$")
    kind: TitleKind = Field(default="movie", alias="type")


class AggregateResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    total: int
    movie_count: int = Field(alias="movies")
    tv_count: int = Field(alias="tvShows")
    items: list[TitleRecord] = Field(default_factory=list, alias="data")
