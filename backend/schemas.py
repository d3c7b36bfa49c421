from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from settings import settings


class NewGameRequest(BaseModel):
    tier: int = settings.DEFAULT_TIER
    active: Optional[int] = None
    empty: Optional[int] = None
    types: Optional[int] = None
    obstacles: Optional[int] = None
    seed: Optional[int] = None
    cover_seed: Optional[int] = None
    daily: Optional[str] = None

    @field_validator("daily", mode="before")  # runs before type conversion
    @classmethod
    def empty_str_to_none(cls, value):
        """Convert empty string to None for daily"""
        if value == "" or value is None:
            return None
        return str(value)


class FullCoverSchema(BaseModel):
    kind: Literal["full"]
    remaining: int = Field(ge=1)


class PartialCoverSchema(BaseModel):
    kind: Literal["partial"]
    positions: list[Annotated[int, Field(ge=0)]] = Field(min_length=1)


CoverSchema = Annotated[Union[FullCoverSchema, PartialCoverSchema], Field(discriminator="kind")]


class LoadLevelRequest(BaseModel):
    glasses: list[list[str]]
    active: int
    capacity: int = 4
    obstacles: dict[str, CoverSchema] = {}
    tier: int = settings.DEFAULT_TIER
    difficulty: Optional[int] = None
    seed: Optional[int] = None


class ClickRequest(BaseModel):
    index: int


class PourRequest(BaseModel):
    src: int
    dst: int
