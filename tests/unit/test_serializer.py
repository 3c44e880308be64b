"""Unit tests for index persistence."""

from __future__ import annotations

import orjson
import pytest

from fragment_search.search.analyzers import AnalyzerConfig, StandardAnalyzer
from fragment_search.search.engine import search
from fragment_search.search.errors import IncompatibleIndexFormatError
from fragment_search.search.fragment_store import FragmentStore
from fragment_search.search.index import InvertedIndex, build_index
from fragment_search.search.serializer import (
    FORMAT_TAG,
    deserialize,
    fingerprint,
    index_to_dict,
    load_index,
    save_index,
    serialize,
)


@pytest.fixture
def corpus_index(documenter_js_file) -> InvertedIndex:
    return build_index(FragmentStore.from_file(documenter_js_file))


def _payload(index: InvertedIndex) -> dict:
    return orjson.loads(serialize(index))


class TestSerialize:
    def test_round_trip_preserves_index(self, corpus_index):
        restored = deserialize(serialize(corpus_index))

        assert restored == corpus_index
        assert serialize(restored) == serialize(corpus_index)

    def test_restored_index_answers_queries_identically(self, corpus_index):
        restored = deserialize(serialize(corpus_index))

        for query in ["type instability", "heap", "home", "allocation bytes"]:
            assert search(restored, query, 10) == search(corpus_index, query, 10)

    def test_payload_carries_format_tag_and_version(self, corpus_index):
        payload = _payload(corpus_index)

        assert payload["format"] == FORMAT_TAG
        assert payload["version"] == 1

    def test_serialization_is_deterministic(self, documenter_js_file):
        store = FragmentStore.from_file(documenter_js_file)

        assert serialize(build_index(store)) == serialize(build_index(store))
        assert fingerprint(build_index(store)) == fingerprint(build_index(store))

    def test_fingerprint_changes_with_content(self, corpus_index, example_fragments):
        assert fingerprint(corpus_index) != fingerprint(build_index(example_fragments))
        assert len(fingerprint(corpus_index)) == 64

    def test_empty_index_round_trips(self):
        assert deserialize(serialize(InvertedIndex.empty())) == InvertedIndex.empty()

    def test_payload_records_the_analyzer(self, corpus_index):
        analyzer = _payload(corpus_index)["analyzer"]

        assert analyzer["name"] == "standard"
        assert analyzer["min_length"] == 2
        assert "the" in analyzer["stopwords"]

    def test_round_trip_preserves_a_non_default_analyzer(self, example_fragments):
        built = build_index(example_fragments, analyzer=StandardAnalyzer(min_length=1, stopwords=["heap"]))

        restored = deserialize(serialize(built))

        assert restored.analyzer == AnalyzerConfig(name="standard", min_length=1, stopwords=("heap",))
        assert restored == built


class TestIncompatiblePayloads:
    def test_rejects_unknown_format_tag(self, corpus_index):
        payload = index_to_dict(corpus_index)
        payload["format"] = "bm25-segment"

        with pytest.raises(IncompatibleIndexFormatError, match="Unrecognized index format") as excinfo:
            deserialize(orjson.dumps(payload))

        assert excinfo.value.found_format == "bm25-segment"

    def test_rejects_unsupported_version(self, corpus_index):
        payload = index_to_dict(corpus_index)
        payload["version"] = 99

        with pytest.raises(IncompatibleIndexFormatError, match="version") as excinfo:
            deserialize(orjson.dumps(payload))

        assert excinfo.value.found_version == 99

    @pytest.mark.parametrize("data", [b"", b"{truncated", b"[1, 2, 3]", b'"index"'])
    def test_rejects_non_index_bytes(self, data):
        with pytest.raises(IncompatibleIndexFormatError):
            deserialize(data)

    def test_rejects_corrupt_body(self, corpus_index):
        payload = index_to_dict(corpus_index)
        del payload["postings"]

        with pytest.raises(IncompatibleIndexFormatError, match="corrupt"):
            deserialize(orjson.dumps(payload))

    def test_rejects_postings_for_unknown_fragments(self, corpus_index):
        payload = index_to_dict(corpus_index)
        payload["postings"]["ghost"] = [[999, [0]]]

        with pytest.raises(IncompatibleIndexFormatError, match="unknown fragment"):
            deserialize(orjson.dumps(payload))

    @pytest.mark.parametrize("version", [True, 1.0, "1"])
    def test_version_must_be_the_integer_one(self, corpus_index, version):
        payload = index_to_dict(corpus_index)
        payload["version"] = version

        with pytest.raises(IncompatibleIndexFormatError, match="version"):
            deserialize(orjson.dumps(payload))

    @pytest.mark.parametrize(
        ("section", "value"),
        [
            ("postings", [["heap", [[0, [1]]]]]),
            ("postings", {"heap": {"0": [1]}}),
            ("fragments", {"0": {}}),
            ("fragments", ["not-an-object"]),
            ("lengths", {"0": [3, 1]}),
            ("analyzer", ["standard"]),
        ],
    )
    def test_rejects_sections_of_the_wrong_type(self, corpus_index, section, value):
        payload = index_to_dict(corpus_index)
        payload[section] = value

        with pytest.raises(IncompatibleIndexFormatError, match="corrupt"):
            deserialize(orjson.dumps(payload))

    def test_rejects_postings_without_positions(self, corpus_index):
        payload = index_to_dict(corpus_index)
        payload["postings"]["ghost"] = [[0, []]]

        with pytest.raises(IncompatibleIndexFormatError, match="has no positions"):
            deserialize(orjson.dumps(payload))

    def test_rejects_negative_positions(self, corpus_index):
        payload = index_to_dict(corpus_index)
        payload["postings"]["ghost"] = [[0, [-1]]]

        with pytest.raises(IncompatibleIndexFormatError, match="corrupt"):
            deserialize(orjson.dumps(payload))

    def test_rejects_missing_analyzer(self, corpus_index):
        payload = index_to_dict(corpus_index)
        del payload["analyzer"]

        with pytest.raises(IncompatibleIndexFormatError, match="corrupt"):
            deserialize(orjson.dumps(payload))

    @pytest.mark.parametrize(
        "analyzer",
        [
            {"name": "porter", "min_length": 2, "stopwords": []},
            {"name": "standard", "min_length": "2", "stopwords": []},
            {"name": "standard", "min_length": 2, "stopwords": "the"},
        ],
    )
    def test_rejects_unusable_analyzer(self, corpus_index, analyzer):
        payload = index_to_dict(corpus_index)
        payload["analyzer"] = analyzer

        with pytest.raises(IncompatibleIndexFormatError, match="corrupt"):
            deserialize(orjson.dumps(payload))


class TestFilePersistence:
    def test_save_and_load(self, tmp_path, corpus_index):
        target = tmp_path / "nested" / "index.json"

        written = save_index(corpus_index, target)

        assert written == target
        assert not target.with_name("index.json.tmp").exists()
        assert load_index(target) == corpus_index

    def test_save_replaces_existing_file(self, tmp_path, corpus_index, example_fragments):
        target = tmp_path / "index.json"
        save_index(corpus_index, target)

        small = build_index(example_fragments)
        save_index(small, target)

        assert load_index(target) == small

    def test_load_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_index(tmp_path / "missing.json")

    def test_load_foreign_file_raises(self, tmp_path):
        target = tmp_path / "index.json"
        target.write_bytes(b'{"format": "other", "version": 1}')

        with pytest.raises(IncompatibleIndexFormatError):
            load_index(target)
