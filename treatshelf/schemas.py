"""
Pydantic schemas for the treatshelf JSON API.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from treatshelf.db import Treat


class TreatPayload(BaseModel):
    """Fields a client may set when creating or updating a treat."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    author: str = ""
    published_date: str = Field(default="", alias="publishedDate")
    image_url: str = Field(default="", alias="imageURL")
    description: str = ""

    def to_treat(self, treat_id: str = "") -> Treat:
        return Treat(
            id=treat_id,
            title=self.title,
            author=self.author,
            published_date=self.published_date,
            image_url=self.image_url,
            description=self.description,
        )


class TreatResponse(TreatPayload):
    id: str

    @classmethod
    def from_treat(cls, treat: Treat) -> "TreatResponse":
        return cls(
            id=treat.id,
            title=treat.title,
            author=treat.author,
            published_date=treat.published_date,
            image_url=treat.image_url,
            description=treat.description,
        )


class ListTreatsResponse(BaseModel):
    treats: list[TreatResponse]


class HealthResponse(BaseModel):
    status: str
    database_backend: str
