from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator


class Item(BaseModel):
    """One entry of the user's media collection, as exposed by the host."""

    id: str = Field(..., description="Unique key of the item (the favorite's URL)")
    locator: str = Field(..., description="Media source URL submitted for indexing")
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    format: int | str | None = Field(default=None, description="Host-specific media format tag")
    order: int = Field(default=0)

    model_config = {"frozen": True}


class ValidatedItem(BaseModel):
    id: str
    locator: str

    model_config = {"frozen": True}


def wire_model_id(model_id: str) -> int | str:
    """Numeric model ids travel as integers, anything else as a string."""
    return int(model_id) if model_id.isdigit() else model_id


class IndexRequest(BaseModel):
    """Body of ``POST /{key}/index``."""

    names: list[str] = Field(..., description="Validated item ids, in submission order")
    media_srcs: list[str] = Field(..., description="Locators aligned with names")
    models: list[int | str] = Field(..., description="Models with weight > 0")

    @model_validator(mode="after")
    def _aligned(self) -> IndexRequest:
        if len(self.names) != len(self.media_srcs):
            raise ValueError("names and media_srcs must have the same length")
        return self

    @classmethod
    def from_validated(cls, items: list[ValidatedItem], model_ids: list[str]) -> IndexRequest:
        return cls(
            names=[v.id for v in items],
            media_srcs=[v.locator for v in items],
            models=[wire_model_id(m) for m in model_ids],
        )


class SearchResponse(BaseModel):
    """Body of ``GET /{key}/search``: per-model ``[locator, raw_score]`` pairs."""

    results: dict[str, list[tuple[str, float]]] = Field(default_factory=dict)


class ModelProgress(BaseModel):
    failed: int = 0
    downloading: int = 0
    processing: int = 0
    completed: int = 0

    @model_validator(mode="before")
    @classmethod
    def _from_array(cls, data: object) -> object:
        # The service reports [failed, downloading, processing, completed]
        if isinstance(data, (list, tuple)):
            if len(data) != 4:
                raise ValueError(f"expected 4 status counters, got {len(data)}")
            failed, downloading, processing, completed = data
            return {
                "failed": failed,
                "downloading": downloading,
                "processing": processing,
                "completed": completed,
            }
        return data

    @property
    def total(self) -> int:
        return self.failed + self.downloading + self.processing + self.completed

    @property
    def pending(self) -> int:
        return self.downloading + self.processing

    @property
    def is_settled(self) -> bool:
        return self.pending == 0


class StatusCounts(BaseModel):
    """Body of ``GET /{key}/statuscounts``."""

    status: str = ""
    counts: dict[str, ModelProgress] = Field(default_factory=dict)

    @field_validator("counts", mode="before")
    @classmethod
    def _stringify_keys(cls, v: object) -> object:
        if isinstance(v, dict):
            return {str(k): val for k, val in v.items()}
        return v

    @property
    def is_settled(self) -> bool:
        return all(p.is_settled for p in self.counts.values())


class FusedResult(BaseModel):
    item: Item
    score: float


__all__ = [
    "Item",
    "ValidatedItem",
    "IndexRequest",
    "SearchResponse",
    "ModelProgress",
    "StatusCounts",
    "FusedResult",
    "wire_model_id",
]
