"""Unit tests for the fragment-search command line."""

from __future__ import annotations

import logging

import orjson
import pytest

from fragment_search.cli import EXIT_FAILURE, EXIT_OK, EXIT_USAGE, build_argument_parser, main


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def built_index(tmp_path, documenter_js_file):
    output = tmp_path / "out" / "index.json"
    assert main(["build", str(documenter_js_file), "-o", str(output)]) == EXIT_OK
    return output


def test_build_writes_index_and_prints_summary(tmp_path, documenter_js_file, capsys):
    output = tmp_path / "index.json"

    exit_code = main(["build", str(documenter_js_file), "-o", str(output), "--workers", "2"])

    out = capsys.readouterr().out
    assert exit_code == EXIT_OK
    assert output.exists()
    assert "=== Fragment Search Index Build ===" in out
    assert "Fragments indexed: 6" in out
    assert "Fingerprint:" in out


def test_build_dry_run_writes_nothing(tmp_path, documenter_js_file, capsys):
    output = tmp_path / "index.json"

    exit_code = main(["build", str(documenter_js_file), "-o", str(output), "--dry-run"])

    assert exit_code == EXIT_OK
    assert not output.exists()
    assert "Dry run" in capsys.readouterr().out


def test_build_reports_skipped_records(tmp_path, capsys):
    source = tmp_path / "search_index.js"
    source.write_text(
        'var documenterSearchIndex = {"docs": [{"location": "a/", "title": "Heap", "text": "", "category": "page"},'
        ' {"title": "orphan", "text": "no location", "category": "page"}]}',
        encoding="utf-8",
    )

    exit_code = main(["build", str(source), "-o", str(tmp_path / "index.json")])

    out = capsys.readouterr().out
    assert exit_code == EXIT_OK
    assert "Fragments indexed: 1" in out
    assert "Fragments skipped: 1" in out
    assert "missing location" in out


def test_build_missing_input_fails(tmp_path, capsys):
    exit_code = main(["build", str(tmp_path / "missing.js"), "-o", str(tmp_path / "index.json")])

    assert exit_code == EXIT_FAILURE
    assert "Cannot load fragments" in capsys.readouterr().err


def test_build_rejects_zero_workers(tmp_path, documenter_js_file):
    assert main(["build", str(documenter_js_file), "-o", str(tmp_path / "i.json"), "--workers", "0"]) == EXIT_USAGE


def test_search_json_output(built_index, capsys):
    capsys.readouterr()

    exit_code = main(["search", str(built_index), "heap", "--json"])

    response = orjson.loads(capsys.readouterr().out)
    assert exit_code == EXIT_OK
    assert response["query"] == "heap"
    assert response["total_count"] == 1
    assert response["results"][0]["location"] == "immutable/"
    assert response["results"][0]["rank"] == 1


def test_search_table_output(built_index, capsys):
    capsys.readouterr()

    assert main(["search", str(built_index), "home"]) == EXIT_OK
    assert "Home" in capsys.readouterr().out


def test_search_without_matches(built_index, capsys):
    capsys.readouterr()

    assert main(["search", str(built_index), "zzzznomatch"]) == EXIT_OK
    assert "No results" in capsys.readouterr().out


def test_search_invalid_limit_is_usage_error(built_index, capsys):
    assert main(["search", str(built_index), "heap", "--limit", "0"]) == EXIT_USAGE
    assert "limit" in capsys.readouterr().err


def test_search_incompatible_index_is_usage_error(tmp_path, capsys):
    index = tmp_path / "index.json"
    index.write_bytes(b'{"format": "bm25-segment", "version": 1}')

    assert main(["search", str(index), "heap"]) == EXIT_USAGE
    assert "Unrecognized index format" in capsys.readouterr().err


def test_search_missing_index_fails(tmp_path):
    assert main(["search", str(tmp_path / "missing.json"), "heap"]) == EXIT_FAILURE


def test_inspect_prints_metadata(built_index, capsys):
    capsys.readouterr()

    assert main(["inspect", str(built_index)]) == EXIT_OK
    out = capsys.readouterr().out
    assert "Index Information" in out
    assert "Fragments" in out


def test_inspect_incompatible_index_is_usage_error(tmp_path):
    index = tmp_path / "index.json"
    index.write_bytes(b"not json")

    assert main(["inspect", str(index)]) == EXIT_USAGE


def test_parser_requires_a_command():
    with pytest.raises(SystemExit) as excinfo:
        build_argument_parser().parse_args([])

    assert excinfo.value.code == 2


@pytest.mark.parametrize("command", [["search", "{path}", "heap"], ["inspect", "{path}"]])
def test_unreadable_index_path_fails(tmp_path, capsys, command):
    argv = [arg.format(path=tmp_path) for arg in command]

    assert main(argv) == EXIT_FAILURE
    assert "Cannot read index" in capsys.readouterr().err


def test_build_unwritable_output_fails(tmp_path, documenter_js_file, capsys):
    target = tmp_path / "occupied"
    target.mkdir()

    assert main(["build", str(documenter_js_file), "-o", str(target)]) == EXIT_FAILURE
    assert "Cannot write index" in capsys.readouterr().err
