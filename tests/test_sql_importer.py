"""Tests for reading SQL DDL scripts back into the ERD model."""

from ddl_engine import generate_sql, parse_sql
from ddl_engine.sql_parser import split_statements, split_top_level, strip_comments
from erd_core.diagnostics import DiagnosticCode
from erd_core.model import FKAction, FieldType, RelationType, ValidationType

BLOG_SQL = """
/* blog schema */
CREATE TABLE users (
    id SERIAL PRIMARY KEY,
    email VARCHAR(120) UNIQUE NOT NULL, -- login
    display_name TEXT
);

CREATE TABLE posts (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title VARCHAR(255) NOT NULL,
    score NUMERIC(5, 2) DEFAULT 0,
    published_at TIMESTAMPTZ
);

CREATE TABLE comments (
    id SERIAL PRIMARY KEY,
    post_id INTEGER NOT NULL,
    author_id INTEGER,
    body TEXT NOT NULL,
    CONSTRAINT fk_comment_post FOREIGN KEY (post_id) REFERENCES posts(id),
    FOREIGN KEY (author_id) REFERENCES users(id) ON DELETE SET NULL
);

CREATE INDEX idx_posts_user ON posts(user_id);
"""


def _by_name(result):
    return {e.name: e for e in result.entities}


class TestHandWrittenScript:
    def test_tables_become_entities(self) -> None:
        result = parse_sql(BLOG_SQL)
        assert result.ok
        assert result.warnings == []
        assert [e.name for e in result.entities] == ["User", "Post", "Comment"]
        assert [e.table_name for e in result.entities] == ["users", "posts", "comments"]

    def test_columns_become_fields(self) -> None:
        entities = _by_name(parse_sql(BLOG_SQL))

        email, display_name = entities["User"].fields
        assert (email.name, email.type, email.nullable, email.unique) == ("email", FieldType.STRING, False, True)
        assert [(v.type, v.value) for v in email.validations] == [
            (ValidationType.NOT_NULL, None),
            (ValidationType.SIZE, "max=120"),
        ]
        assert (display_name.name, display_name.nullable, display_name.validations) == ("displayName", True, [])

        post_fields = {f.name: f for f in entities["Post"].fields}
        assert set(post_fields) == {"title", "score", "publishedAt"}
        assert post_fields["title"].validations[0].type is ValidationType.NOT_NULL
        assert len(post_fields["title"].validations) == 1
        assert post_fields["score"].type is FieldType.BIG_DECIMAL
        assert post_fields["score"].default_value == "0"
        assert post_fields["publishedAt"].type is FieldType.INSTANT
        assert post_fields["publishedAt"].column_name == "published_at"

    def test_foreign_keys_become_many_to_one(self) -> None:
        result = parse_sql(BLOG_SQL)
        ids = {e.name: e.id for e in result.entities}
        relations = {(r.source_entity_id, r.foreign_key.column_name): r for r in result.relations}
        assert len(result.relations) == 3

        post_user = relations[(ids["Post"], "user_id")]
        assert post_user.type is RelationType.MANY_TO_ONE
        assert post_user.target_entity_id == ids["User"]
        assert post_user.foreign_key.nullable is False
        assert post_user.foreign_key.on_delete is FKAction.CASCADE

        comment_post = relations[(ids["Comment"], "post_id")]
        assert comment_post.target_entity_id == ids["Post"]
        assert comment_post.foreign_key.on_delete is FKAction.NO_ACTION

        comment_author = relations[(ids["Comment"], "author_id")]
        assert comment_author.target_entity_id == ids["User"]
        assert comment_author.foreign_key.nullable is True
        assert comment_author.foreign_key.on_delete is FKAction.SET_NULL


class TestGeneratedScripts:
    def test_round_trip_many_to_one(self, library, fixed_clock) -> None:
        entities, relations = library
        result = parse_sql(generate_sql(entities, relations, "Library", clock=fixed_clock))

        assert result.ok
        assert result.warnings == []
        parsed = _by_name(result)
        assert list(parsed) == ["Author", "Book"]
        assert [f.name for f in parsed["Author"].fields] == ["name"]
        assert [f.name for f in parsed["Book"].fields] == ["title"]

        relation = result.relations[0]
        assert relation.type is RelationType.MANY_TO_ONE
        assert (relation.source_entity_id, relation.target_entity_id) == (parsed["Book"].id, parsed["Author"].id)
        assert relation.foreign_key.column_name == "author_id"
        assert relation.foreign_key.nullable is False

    def test_round_trip_join_table(self, school, fixed_clock) -> None:
        entities, relations = school
        result = parse_sql(generate_sql(entities, relations, clock=fixed_clock))

        parsed = _by_name(result)
        assert list(parsed) == ["Student", "Course"]
        assert parsed["Student"].fields[0].nullable is False
        relation = result.relations[0]
        assert relation.type is RelationType.MANY_TO_MANY
        assert (relation.source_entity_id, relation.target_entity_id) == (parsed["Student"].id, parsed["Course"].id)
        assert relation.join_table.name == "student_course"
        assert relation.join_table.join_column == "student_id"
        assert relation.join_table.inverse_join_column == "course_id"


class TestDiagnostics:
    def test_empty_script(self) -> None:
        result = parse_sql("-- nothing here\n")
        assert result.entities == []
        assert [w.code for w in result.warnings] == [DiagnosticCode.EMPTY_SCHEMA]

    def test_unsupported_statements_are_reported(self) -> None:
        result = parse_sql("CREATE TABLE tags (id SERIAL PRIMARY KEY, label TEXT);\nCREATE VIEW v AS SELECT 1;")
        assert [e.name for e in result.entities] == ["Tag"]
        assert [w.code for w in result.warnings] == [DiagnosticCode.UNSUPPORTED_FEATURE]

    def test_reference_to_unknown_table(self) -> None:
        result = parse_sql("CREATE TABLE orders (id SERIAL PRIMARY KEY, shop_id INT REFERENCES shops(id), note TEXT);")
        assert result.relations == []
        assert [w.code for w in result.warnings] == [DiagnosticCode.UNRESOLVED_REFERENCE]

    def test_composite_foreign_key_is_not_a_join_table(self) -> None:
        result = parse_sql(
            "CREATE TABLE parents (a INT NOT NULL, b INT NOT NULL, label TEXT, PRIMARY KEY (a, b));\n"
            "CREATE TABLE children (a INT NOT NULL, b INT NOT NULL, FOREIGN KEY (a, b) REFERENCES parents(a, b));"
        )
        assert result.ok
        assert [e.table_name for e in result.entities] == ["parents", "children"]
        assert [f.column_name for f in result.entities[1].fields] == ["a", "b"]
        assert result.relations == []
        assert [w.code for w in result.warnings] == [DiagnosticCode.UNSUPPORTED_FEATURE]

    def test_join_table_next_to_composite_key(self, id_factory) -> None:
        result = parse_sql(
            "CREATE TABLE tags (id SERIAL PRIMARY KEY, label TEXT);\n"
            "CREATE TABLE posts (id SERIAL PRIMARY KEY, title TEXT);\n"
            "CREATE TABLE post_tags (post_id INT NOT NULL REFERENCES posts(id), "
            "tag_id INT NOT NULL REFERENCES tags(id), PRIMARY KEY (post_id, tag_id));",
            id_factory=id_factory,
        )
        assert [e.name for e in result.entities] == ["Tag", "Post"]
        relation = result.relations[0]
        assert relation.type is RelationType.MANY_TO_MANY
        assert (relation.join_table.join_column, relation.join_table.inverse_join_column) == ("post_id", "tag_id")


def test_split_top_level_ignores_nested_commas() -> None:
    assert split_top_level("a NUMERIC(5, 2), b TEXT DEFAULT 'x,y', c INT") == [
        "a NUMERIC(5, 2)",
        "b TEXT DEFAULT 'x,y'",
        "c INT",
    ]


def test_strip_comments() -> None:
    assert strip_comments("a -- one\n/* two\nlines */b").split() == ["a", "b"]
    assert strip_comments("x DEFAULT '--' -- real comment") == "x DEFAULT '--' "
    assert strip_comments("note TEXT DEFAULT '/* keep */'") == "note TEXT DEFAULT '/* keep */'"


def test_split_statements_skips_quoted_semicolons() -> None:
    assert split_statements("CREATE TABLE a (x TEXT DEFAULT 'a;b'); ; SELECT 'it''s;ok'") == [
        "CREATE TABLE a (x TEXT DEFAULT 'a;b')",
        "SELECT 'it''s;ok'",
    ]


def test_quoted_defaults_survive_parsing() -> None:
    result = parse_sql(
        "CREATE TABLE notes (\n"
        "    id SERIAL PRIMARY KEY,\n"
        "    sep VARCHAR(10) DEFAULT 'a;b',\n"
        "    marker VARCHAR(10) DEFAULT '--', -- trailing comment\n"
        "    body TEXT\n"
        ");"
    )
    assert result.ok
    assert result.warnings == []
    fields = {f.name: f for f in result.entities[0].fields}
    assert fields["sep"].default_value == "'a;b'"
    assert fields["marker"].default_value == "'--'"
    assert "body" in fields
