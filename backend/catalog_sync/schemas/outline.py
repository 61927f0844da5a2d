"""Course outline structure returned by the outline extractor."""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class Lecture(BaseModel):
    title: str
    duration: Optional[str] = None

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, value):
        """Models sometimes return durations as numbers."""
        if value is None:
            return None
        return str(value)


class Section(BaseModel):
    title: str
    duration: Optional[str] = None
    lectures: List[Lecture] = Field(default_factory=list)

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, value):
        if value is None:
            return None
        return str(value)


class Outline(BaseModel):
    """Sections with their lectures.

    ``chapters`` is accepted as an alias of ``sections``.
    """

    sections: List[Section] = Field(
        default_factory=list,
        validation_alias=AliasChoices("sections", "chapters"),
    )

    @property
    def lecture_count(self) -> int:
        return sum(len(section.lectures) for section in self.sections)
