"""Test fixtures and fake collaborators.

This module provides:
- Sample list texts as they come back from OCR or a paste
- Factory helpers for rows and model entities
- In-memory implementations of the text and entity source interfaces
- Pytest fixtures wiring them together
"""

from typing import Iterable, Sequence

import pytest

from marklist.row import ModelEntity, Row
from marklist.sources import EntitySourceInterface, TextSourceInterface
from marklist.table import MarkTable
from marklist.tabulator import tabulate

MARK_QTY_TEXT = "Mark\tQty\nB-101\t3\nC-205\t2"

TRANSPORT_LIST_TEXT = """\
Transport list 14
Delivery 2024-05-02 Truck 3
Component  Profile  Length  Pcs
T5.11.MG2001  HEA200  5400  2
T5.11.MG2002  HEA200  5400  8
T5.11.MG2003  ???  3200  1
T5.11.MG2004  IPE300  6000
"""


def make_row(**cells: str) -> Row:
    """Row with the given cells and default (clean) annotations."""
    return Row(cells=dict(cells))


def make_entities(marks: Iterable[str], container_id: str = "m1", start_id: int = 1) -> list[ModelEntity]:
    """One entity per mark, numbered from ``start_id`` inside ``container_id``."""
    return [
        ModelEntity(container_id=container_id, member_id=start_id + i, mark=mark)
        for i, mark in enumerate(marks)
    ]


class StaticTextSource(TextSourceInterface):
    """Text source returning a fixed text and recording the calls.

    ``review`` is returned by `review_text`; None keeps the default (no review).
    """

    def __init__(self, text: str, review: str | None = None):
        self.text = text
        self.review = review
        self.calls: list[tuple[bytes, str, list[str]]] = []
        self.reviewed: list[str] = []

    async def extract_text(self, content: bytes, content_type: str, target_columns: Sequence[str] = ()) -> str:
        self.calls.append((content, content_type, list(target_columns)))
        return self.text

    async def review_text(self, text: str) -> str:
        self.reviewed.append(text)
        if self.review is None:
            return await super().review_text(text)
        return self.review


class FailingTextSource(TextSourceInterface):
    async def extract_text(self, content: bytes, content_type: str, target_columns: Sequence[str] = ()) -> str:
        raise ConnectionError("OCR service unavailable")

    async def review_text(self, text: str) -> str:
        raise ConnectionError("OCR service unavailable")


class InMemoryEntitySource(EntitySourceInterface):
    """Entity source backed by a dict of container id -> entities.

    Containers listed in ``failing`` raise on lookup; with ``listing_fails``
    the container listing itself raises.
    """

    def __init__(
        self,
        containers: dict[str, list[ModelEntity]],
        failing: Sequence[str] = (),
        listing_fails: bool = False,
    ):
        self.containers = containers
        self.failing = set(failing)
        self.listing_fails = listing_fails
        self.fetched: list[str] = []

    async def list_containers(self) -> list[str]:
        if self.listing_fails:
            raise RuntimeError("viewer object listing failed")
        return list(self.containers) + [c for c in self.failing if c not in self.containers]

    async def fetch_entities(self, container_id: str) -> list[ModelEntity]:
        self.fetched.append(container_id)
        if container_id in self.failing:
            raise RuntimeError(f"property lookup failed for {container_id}")
        return list(self.containers.get(container_id, []))


@pytest.fixture
def mark_qty_table() -> MarkTable:
    """Two-row table (B-101 x3, C-205 x2) with Mark/Qty roles guessed."""
    return tabulate(MARK_QTY_TEXT).table


@pytest.fixture
def model_entities() -> list[ModelEntity]:
    """B-101 twice and C-205 once, all in container m1."""
    return make_entities(["B-101", "B-101", "C-205"])


@pytest.fixture
def entity_source(model_entities: list[ModelEntity]) -> InMemoryEntitySource:
    return InMemoryEntitySource({"m1": model_entities})
