"""Payloads for the host viewer: selection, zoom and saved views."""

from datetime import datetime
from typing import Iterable

from pydantic import BaseModel, Field, field_validator

from marklist.row import ModelRef, Row


def group_by_container(refs: Iterable[ModelRef]) -> dict[str, list[int | str]]:
    """Group object references by container, keeping first-seen order."""
    grouped: dict[str, list[int | str]] = {}
    for ref in refs:
        members = grouped.setdefault(ref.container_id, [])
        if ref.member_id not in members:
            members.append(ref.member_id)
    return grouped


def zoom_target(row: Row) -> ModelRef | None:
    if not row.found_in_model:
        return None
    return row.model_ref


def default_view_name(now: datetime) -> str:
    return now.strftime("scan %d.%m.%y.%H.%M")


class ModelObjectIds(BaseModel, frozen=True):
    container_id: str
    member_ids: tuple[int | str, ...]


class ViewRequest(BaseModel, frozen=True):
    """A named view over a set of model objects."""

    name: str
    model_object_ids: tuple[ModelObjectIds, ...] = Field(default=())

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("view name must not be blank")
        return value

    @classmethod
    def from_refs(cls, name: str, refs: Iterable[ModelRef]) -> "ViewRequest":
        grouped = group_by_container(refs)
        return cls(
            name=name,
            model_object_ids=tuple(
                ModelObjectIds(container_id=container_id, member_ids=tuple(members))
                for container_id, members in grouped.items()
            ),
        )

    @property
    def object_count(self) -> int:
        return sum(len(ids.member_ids) for ids in self.model_object_ids)
