"""Shared fixtures: fixed clock, deterministic ids and small sample models."""

import itertools
from datetime import datetime, timezone

import pytest

from erd_core.model import (
    Entity,
    FKAction,
    Field,
    ForeignKeyConfig,
    JoinTableConfig,
    Relation,
    RelationType,
)

FIXED_TIME = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture(name="library")
def library_model() -> tuple[list[Entity], list[Relation]]:
    """Book -> Author, many-to-one on a non-nullable author_id."""
    author = Entity(id="author", name="Author", fields=[Field(name="name")])
    book = Entity(id="book", name="Book", fields=[Field(name="title")])
    relation = Relation(
        id="r1",
        type=RelationType.MANY_TO_ONE,
        source_entity_id="book",
        target_entity_id="author",
        foreign_key=ForeignKeyConfig(column_name="author_id", nullable=False),
    )
    # Book 을 먼저 두어 FK 없는 엔티티가 앞으로 오는지 확인한다
    return [book, author], [relation]


@pytest.fixture(name="school")
def school_model() -> tuple[list[Entity], list[Relation]]:
    """Student <-> Course through the student_course join table."""
    student = Entity(id="student", name="Student", fields=[Field(name="fullName", nullable=False)])
    course = Entity(id="course", name="Course", fields=[Field(name="title")])
    relation = Relation(
        id="r1",
        type=RelationType.MANY_TO_MANY,
        source_entity_id="student",
        target_entity_id="course",
        foreign_key=ForeignKeyConfig(on_delete=FKAction.CASCADE),
        join_table=JoinTableConfig(name="student_course", join_column="student_id", inverse_join_column="course_id"),
    )
    return [student, course], [relation]
