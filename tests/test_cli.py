import yaml
import pytest
from typer.testing import CliRunner

from chunkpipe.cli import app, DEFAULT_YAML_CONTENT
from chunkpipe.components.sinks import JSONLinesSink

runner = CliRunner()


@pytest.fixture(autouse=True)
def clear_env_overrides(monkeypatch):
    for name in ("BATCH_SIZE", "MAX_CHUNK_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def jsonl_config(tmp_path):
    data = tmp_path / "data" / "docs"
    data.mkdir(parents=True)
    (data / "guide.md").write_text("# Guide\ntext\n")
    config = {
        "source": {"type": "local_directory", "config": {"path": str(tmp_path / "data")}},
        "sink": {"type": "jsonl", "config": {"output_dir": str(tmp_path / "out")}},
    }
    path = tmp_path / "pipeline.yaml"
    path.write_text(yaml.dump(config))
    return str(path)


def test_list_components():
    result = runner.invoke(app, ["list-components"])
    assert result.exit_code == 0
    for name in ("local_directory", "content_aware", "chromadb", "jsonl"):
        assert name in result.stdout


def test_init_creates_project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0
    assert (tmp_path / "data").is_dir()
    assert (tmp_path / "pipeline.yaml").read_text() == DEFAULT_YAML_CONTENT


def test_init_keeps_existing_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "pipeline.yaml").write_text("custom: true\n")

    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0
    assert (tmp_path / "pipeline.yaml").read_text() == "custom: true\n"


def test_run_and_list_namespaces(jsonl_config, tmp_path):
    result = runner.invoke(app, ["run", "-c", jsonl_config])
    assert result.exit_code == 0
    assert JSONLinesSink(str(tmp_path / "out")).namespace_path("docs").exists()

    result = runner.invoke(app, ["list-namespaces", "-c", jsonl_config])
    assert result.exit_code == 0
    assert "docs" in result.stdout


def test_ingest_file_command(jsonl_config, tmp_path):
    target = str(tmp_path / "data" / "docs" / "guide.md")
    result = runner.invoke(app, ["ingest-file", target, "-c", jsonl_config])
    assert result.exit_code == 0
    assert JSONLinesSink(str(tmp_path / "out")).namespace_path("docs").exists()

    result = runner.invoke(app, ["ingest-file", str(tmp_path / "nope.md"), "-c", jsonl_config])
    assert result.exit_code == 1


def test_validate(jsonl_config, tmp_path):
    assert runner.invoke(app, ["validate", "-c", jsonl_config]).exit_code == 0

    (tmp_path / "data" / "docs" / "empty.txt").write_text("")
    assert runner.invoke(app, ["validate", "-c", jsonl_config]).exit_code == 1


def test_test_connection(jsonl_config, tmp_path):
    assert runner.invoke(app, ["test-connection", "source", "-c", jsonl_config]).exit_code == 0
    assert runner.invoke(app, ["test-connection", "sink", "-c", jsonl_config]).exit_code == 0
    assert runner.invoke(app, ["test-connection", "chunker", "-c", jsonl_config]).exit_code == 1


def test_run_with_missing_config_fails(tmp_path):
    result = runner.invoke(app, ["run", "-c", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
