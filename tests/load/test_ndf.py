"""Tests for NDF conversion (gqlload/commands/load/ndf.py, gqlload/formats/ndf.py)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from gqlload.commands.load.ndf import NdfConverter, NdfWriter
from gqlload.formats.ndf import NdfFile, write_ndf_file
from tests.conftest import people


def _read(path: Path) -> NdfFile:
    return NdfFile.model_validate_json(path.read_text(encoding="utf-8"))


def _values(root: Path, value_type: str) -> list[Any]:
    values: list[Any] = []
    for path in sorted((root / value_type).glob("*.json")):
        values.extend(_read(path).values)
    return values


def _converter(reflector, root: Path, **kwargs: Any) -> NdfConverter:
    return NdfConverter(reflector, reflector.get_type("Person"), NdfWriter(root), **kwargs)


class TestNdfFormat:
    def test_write_uses_value_type_alias(self, tmp_path: Path) -> None:
        path = tmp_path / "nodes" / "00001.json"
        write_ndf_file(path, "nodes", [{"_typeName": "Person", "id": "a"}])
        assert json.loads(path.read_text()) == {
            "valueType": "nodes",
            "values": [{"_typeName": "Person", "id": "a"}],
        }

    def test_read(self, tmp_path: Path) -> None:
        path = tmp_path / "lists.json"
        path.write_text('{"valueType": "lists", "values": []}')
        assert _read(path) == NdfFile(value_type="lists", values=[])


class TestNdfWriter:
    def test_nothing_to_write(self, tmp_path: Path) -> None:
        writer = NdfWriter(tmp_path)
        assert writer.write([], [], []) is None
        assert writer.generation == 0
        assert not (tmp_path / "nodes").exists()

    def test_only_non_empty_buffers_written(self, tmp_path: Path) -> None:
        writer = NdfWriter(tmp_path)
        assert writer.write([{"id": "a"}], [], []) == 1
        assert (tmp_path / "nodes" / "00001.json").exists()
        assert not (tmp_path / "lists").exists()
        assert not (tmp_path / "relations").exists()

    def test_generation_keeps_counting(self, tmp_path: Path) -> None:
        writer = NdfWriter(tmp_path)
        writer.write([{"id": "a"}], [], [])
        writer.write([], [{"id": "a"}], [])
        assert (tmp_path / "lists" / "00002.json").exists()
        assert not (tmp_path / "nodes" / "00002.json").exists()
        assert writer.generation == 2


class TestNdfConverter:
    def test_nodes_lists_and_relations(self, reflector, tmp_path: Path) -> None:
        converter = _converter(reflector, tmp_path)
        result = converter.convert(
            [
                {
                    "id": "p1",
                    "name": "Ann",
                    "born": "2020-01-05",
                    "tags": ["a", "b"],
                    "friends": ["p2", "p3"],
                    "employer": "c1",
                }
            ],
            source="person.json",
        )

        assert result.succeeded
        assert (result.nodes, result.lists, result.relations) == (1, 1, 3)
        assert _values(tmp_path, "nodes") == [
            {
                "_typeName": "Person",
                "id": "p1",
                "name": "Ann",
                "born": "2020-01-05T00:00:00.000Z",
            }
        ]
        assert _values(tmp_path, "lists") == [
            {"_typeName": "Person", "id": "p1", "tags": ["a", "b"]}
        ]
        assert _values(tmp_path, "relations") == [
            [
                {"_typeName": "Person", "id": "p1", "fieldName": "friends"},
                {"_typeName": "Person", "id": "p2"},
            ],
            [
                {"_typeName": "Person", "id": "p1", "fieldName": "friends"},
                {"_typeName": "Person", "id": "p3"},
            ],
            [
                {"_typeName": "Person", "id": "p1", "fieldName": "employer"},
                {"_typeName": "Company", "id": "c1"},
            ],
        ]

    def test_id_only_record_still_makes_a_node(self, reflector, tmp_path: Path) -> None:
        result = _converter(reflector, tmp_path).convert([{"id": "p1"}])
        assert result.nodes == 1
        assert _values(tmp_path, "nodes") == [{"_typeName": "Person", "id": "p1"}]
        assert not (tmp_path / "lists").exists()

    def test_duplicate_id(self, reflector, tmp_path: Path) -> None:
        result = _converter(reflector, tmp_path).convert([{"id": "a"}, {"id": "a"}])
        assert result.nodes == 1
        assert result.error_count == 1
        assert result.errors == ["record 2: Duplicate id: a"]
        assert not result.succeeded

    def test_missing_id(self, reflector, tmp_path: Path) -> None:
        result = _converter(reflector, tmp_path).convert([{"name": "Ann"}, {"id": "b"}])
        assert result.errors == ["record 1: Entity missing id"]
        assert result.converted == 1

    def test_bad_record_skipped_and_id_not_taken(self, reflector, tmp_path: Path) -> None:
        result = _converter(reflector, tmp_path).convert(
            [{"id": "a", "born": "someday"}, {"id": "a", "born": "2020-01-05"}]
        )
        assert result.error_count == 1
        assert result.errors[0].startswith("record 1: Invalid Date")
        assert result.nodes == 1

    def test_shape_mismatch_skips_record(self, reflector, tmp_path: Path) -> None:
        result = _converter(reflector, tmp_path).convert(
            [{"id": "a", "name": ["x"]}, {"id": "b"}]
        )
        assert result.error_count == 1
        assert "Unexpected collection" in result.errors[0]
        assert result.nodes == 1

    def test_relation_target_without_id_is_an_error(self, reflector, tmp_path: Path) -> None:
        result = _converter(reflector, tmp_path).convert(
            [
                {"id": "p1", "employer": {"name": "Acme"}},
                {"id": "p2", "friends": ["p3", ""]},
                {"id": "p3", "friends": ["p1"]},
            ]
        )
        assert result.errors == [
            'record 1: Missing id for employer target: {"name": "Acme"}',
            'record 2: Missing id for friends target: ""',
        ]
        assert result.nodes == 1
        assert result.relations == 1
        assert not result.succeeded

    def test_long_ids_normalized_everywhere(self, reflector, tmp_path: Path) -> None:
        long_id = "p" * 40
        _converter(reflector, tmp_path).convert([{"id": long_id, "employer": long_id}])
        node = _values(tmp_path, "nodes")[0]
        relation = _values(tmp_path, "relations")[0]
        assert len(node["id"]) == 25
        assert relation[0]["id"] == node["id"]
        assert relation[1]["id"] == node["id"]

    def test_completeness(self, reflector, tmp_path: Path) -> None:
        records = people(30) + [{"id": "p0"}, {}]
        result = _converter(reflector, tmp_path).convert(records)
        assert result.records == 32
        assert result.nodes + result.error_count == result.records


class TestFlushing:
    def test_threshold_produces_generations(self, reflector, tmp_path: Path) -> None:
        result = _converter(reflector, tmp_path, flush_every=10_000).convert(people(25_000))
        assert result.generations == [1, 2, 3]
        assert sorted(p.name for p in (tmp_path / "nodes").iterdir()) == [
            "00001.json",
            "00002.json",
            "00003.json",
        ]
        assert [len(_read(p).values) for p in sorted((tmp_path / "nodes").iterdir())] == [
            10_000,
            10_000,
            5_000,
        ]

    def test_flushed_output_equals_single_generation(self, reflector, tmp_path: Path) -> None:
        records = people(25_000)
        split = tmp_path / "split"
        whole = tmp_path / "whole"
        _converter(reflector, split, flush_every=10_000).convert(records)
        result = _converter(reflector, whole, flush_every=0).convert(records)

        assert result.generations == [1]
        assert _values(split, "nodes") == _values(whole, "nodes")

    def test_exact_multiple_writes_no_empty_generation(self, reflector, tmp_path: Path) -> None:
        result = _converter(reflector, tmp_path, flush_every=5).convert(people(10))
        assert result.generations == [1, 2]

    def test_generation_continues_across_files(self, reflector, tmp_path: Path) -> None:
        writer = NdfWriter(tmp_path)
        person = reflector.get_type("Person")
        NdfConverter(reflector, person, writer).convert(people(2))
        second = NdfConverter(reflector, person, writer).convert(people(2, start=2))
        assert second.generations == [2]
        assert (tmp_path / "nodes" / "00002.json").exists()

    def test_dedupe_table_is_per_file(self, reflector, tmp_path: Path) -> None:
        converter = _converter(reflector, tmp_path)
        converter.convert([{"id": "a"}])
        assert converter.convert([{"id": "a"}]).succeeded
