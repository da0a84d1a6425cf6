import pytest
from chunkpipe.utils.data_models import FileRecord
from chunkpipe.utils.errors import ChunkingError
from chunkpipe.components.chunkers import (
    ContentAwareChunker,
    Strategy,
    chunk_document,
    split_block_tags,
    split_blank_lines,
    split_constructs,
    split_headings,
    split_paragraphs,
    split_statements,
    strategy_for_extension,
)


def make_record(relative_path: str, content: str, topic: str = "docs") -> FileRecord:
    extension = "." + relative_path.rsplit(".", 1)[-1] if "." in relative_path else ""
    return FileRecord(
        relative_path=relative_path,
        extension=extension,
        content=content,
        size=len(content.encode("utf-8")),
        topic=topic,
    )


GO_SOURCE = (
    'package main\n\nimport "fmt"\n\n'
    'func main() {\n\tfmt.Println("hi")\n}\n\n'
    "type Server struct {\n\tName string\n}\n\n"
    "var (\n\tx = 1\n)\n"
)


@pytest.mark.parametrize(
    "extension, expected",
    [
        (".go", Strategy.CONSTRUCT),
        (".md", Strategy.HEADING),
        (".MD", Strategy.HEADING),
        (".sql", Strategy.STATEMENT),
        (".json", Strategy.BLANK_LINE),
        (".yaml", Strategy.BLANK_LINE),
        (".yml", Strategy.BLANK_LINE),
        (".toml", Strategy.BLANK_LINE),
        (".html", Strategy.BLOCK_TAG),
        (".txt", Strategy.PARAGRAPH),
        ("", Strategy.PARAGRAPH),
    ],
)
def test_strategy_for_extension(extension, expected):
    assert strategy_for_extension(extension) == expected


def test_split_constructs_at_top_level_declarations():
    chunks = split_constructs(GO_SOURCE)
    assert [c.content for c in chunks] == [
        'package main\n\nimport "fmt"',
        'func main() {\n\tfmt.Println("hi")\n}',
        "type Server struct {\n\tName string\n}",
        "var (\n\tx = 1\n)",
    ]
    assert all(c.metadata["chunk_type"] == "go_construct" for c in chunks)


def test_split_constructs_declaration_at_start_keeps_indices_contiguous():
    chunks = split_constructs("func a() {\n}\n\nfunc b() {\n}\n")
    assert [c.content for c in chunks] == ["func a() {\n}", "func b() {\n}"]
    assert [c.index for c in chunks] == [0, 1]


def test_code_without_declarations_matches_paragraph_strategy():
    content = "package main\n\n// nothing declared here\n\n// still nothing\n"
    code_chunks = chunk_document(make_record("svc/api/doc.go", content))
    text_chunks = chunk_document(make_record("svc/api/doc.txt", content))

    def shape(chunks):
        return [(c.index, c.content, c.metadata["chunk_type"]) for c in chunks]

    assert shape(code_chunks) == shape(text_chunks)
    assert shape(split_constructs(content)) == shape(split_paragraphs(content))


def test_split_headings():
    content = "Preface line\n# Title\n\nIntro text.\n\n## Section\n\nBody.\n"
    chunks = split_headings(content)
    assert [c.content for c in chunks] == [
        "Preface line",
        "# Title\n\nIntro text.",
        "## Section\n\nBody.",
    ]
    assert all(c.metadata["chunk_type"] == "markdown_section" for c in chunks)


def test_split_statements_reappends_semicolons():
    content = "CREATE TABLE a (id INT);\nINSERT INTO a VALUES (1);\n"
    chunks = split_statements(content)
    assert [c.content for c in chunks] == [
        "CREATE TABLE a (id INT);",
        "INSERT INTO a VALUES (1);",
    ]
    assert all(c.metadata["chunk_type"] == "sql_statement" for c in chunks)


def test_split_statements_final_statement_without_semicolon():
    chunks = split_statements("SELECT 1; SELECT 2")
    assert [c.content for c in chunks] == ["SELECT 1;", "SELECT 2"]


def test_split_statements_only_separators_falls_back():
    chunks = split_statements(";;;")
    assert len(chunks) == 1
    assert chunks[0].metadata["chunk_type"] == "text_paragraph"


def test_split_blank_lines():
    content = "a: 1\nb: 2\n\n\nc: 3\n  \nd: 4\n"
    chunks = split_blank_lines(content)
    assert [c.content for c in chunks] == ["a: 1\nb: 2", "c: 3", "d: 4"]
    assert all(c.metadata["chunk_type"] == "config_section" for c in chunks)


def test_split_block_tags_is_case_insensitive():
    content = (
        "<html>\n<body>\n"
        '<div class="a">A</div>\n'
        "<SECTION>B</SECTION>\n"
        "</body>\n</html>\n"
    )
    chunks = split_block_tags(content)
    assert [c.content for c in chunks] == [
        "<html>\n<body>",
        '<div class="a">A</div>',
        "<SECTION>B</SECTION>\n</body>\n</html>",
    ]
    assert all(c.metadata["chunk_type"] == "html_section" for c in chunks)


def test_split_paragraphs_flushes_before_exceeding_limit():
    p1, p2, p3 = "a" * 10, "b" * 10, "c" * 10
    chunks = split_paragraphs(f"{p1}\n\n{p2}\n\n{p3}", max_chunk_size=20)
    assert [c.content for c in chunks] == [f"{p1}\n\n{p2}", p3]
    assert [c.index for c in chunks] == [0, 1]


def test_split_paragraphs_oversized_paragraph_stands_alone():
    chunks = split_paragraphs("x" * 30 + "\n\n" + "y" * 5, max_chunk_size=20)
    assert [c.content for c in chunks] == ["x" * 30, "y" * 5]


@pytest.mark.parametrize("max_chunk_size", [0, -5, None])
def test_non_positive_max_chunk_size_uses_default(max_chunk_size):
    content = "\n\n".join(["p" * 300] * 3)
    chunker = ContentAwareChunker(max_chunk_size=max_chunk_size)
    assert chunker.max_chunk_size == 1000
    assert len(chunker.chunk(make_record("notes/a.txt", content))) == 1


def test_chunker_adds_file_metadata_to_every_chunk():
    record = FileRecord(
        relative_path="docs/guide.MD",
        extension=".MD",
        content="# One\ntext\n# Two\nmore\n",
        size=24,
        topic="docs",
    )
    chunks = ContentAwareChunker().chunk(record)
    assert len(chunks) == 2
    for chunk in chunks:
        assert chunk.metadata["filename"] == "docs/guide.MD"
        assert chunk.metadata["topic"] == "docs"
        assert chunk.metadata["extension"] == ".md"
        assert chunk.metadata["total_chunks"] == "2"
        assert chunk.metadata["chunk_type"] == "markdown_section"


@pytest.mark.parametrize(
    "path, content",
    [
        ("svc/api/main.go", GO_SOURCE),
        ("docs/readme.md", "intro\n# A\none\n## B\ntwo\n"),
        ("db/schema.sql", "  ;\nSELECT 1;\n;SELECT 2;"),
        ("cfg/app.yaml", "\n\n\na: 1\n\nb: 2\n"),
        ("web/index.html", "   \n<div>a</div><nav>b</nav>"),
        ("notes/todo.txt", "one\n\ntwo\n\n\n\nthree"),
    ],
)
def test_indices_are_contiguous_and_content_is_trimmed(path, content):
    chunks = chunk_document(make_record(path, content), max_chunk_size=5)
    assert len(chunks) >= 1
    assert [c.index for c in chunks] == list(range(len(chunks)))
    for chunk in chunks:
        assert chunk.content
        assert chunk.content == chunk.content.strip()


def test_chunking_is_idempotent():
    record = make_record("svc/api/main.go", GO_SOURCE)
    first = chunk_document(record)
    second = chunk_document(record)
    assert [(c.index, c.content, c.metadata) for c in first] == [
        (c.index, c.content, c.metadata) for c in second
    ]


@pytest.mark.parametrize("content", ["", "   \n\n\t  "])
def test_blank_content_yields_no_chunks(content):
    assert ContentAwareChunker().chunk(make_record("notes/empty.txt", content)) == []


def test_non_text_content_raises_chunking_error():
    record = FileRecord(
        relative_path="bin/blob.txt", extension=".txt", content=None, size=3, topic="bin"
    )
    with pytest.raises(ChunkingError, match="bin/blob.txt"):
        ContentAwareChunker().chunk(record)


def test_large_file_without_boundaries_is_packed_into_paragraph_chunks():
    content = "\n\n".join(["x" * 1000] * 5)
    chunks = chunk_document(make_record("docs/notes.md", content))
    assert len(chunks) == 5
    assert all(c.metadata["chunk_type"] == "text_paragraph" for c in chunks)
    assert all(c.content == "x" * 1000 for c in chunks)
