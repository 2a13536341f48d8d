"""Tests for the load driver in gqlload/commands/load/pipeline.py."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gqlload.commands.load.pipeline import LoadOptions, run_load
from gqlload.formats.ndf import NdfFile
from tests.conftest import FakeClient


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestUploadMode:
    @pytest.mark.asyncio
    async def test_mutation_inferred_from_file_name(self, reflector, tmp_path: Path) -> None:
        _write(tmp_path / "person.csv", "id,name\np1,Ann\n")
        client = FakeClient()

        report = await run_load(tmp_path, reflector, LoadOptions(), client=client)

        assert report.total == 1
        assert report.succeed == 1
        assert client.calls[0].startswith("mutation { addPersons(input: [")

    @pytest.mark.asyncio
    async def test_explicit_mutation(self, reflector, tmp_path: Path) -> None:
        _write(tmp_path / "firms.json", '[{"name": "Acme"}]')
        client = FakeClient()

        report = await run_load(
            tmp_path, reflector, LoadOptions(mutation="addCompanys"), client=client
        )

        assert report.succeed == 1
        assert "m0: addCompanys" in client.calls[0]

    @pytest.mark.asyncio
    async def test_files_processed_in_sorted_order(self, reflector, tmp_path: Path) -> None:
        _write(tmp_path / "b" / "person.csv", "id\nsecond\n")
        _write(tmp_path / "a" / "person.csv", "id\nfirst\n")
        _write(tmp_path / "readme.txt", "ignored")
        client = FakeClient()

        report = await run_load(tmp_path, reflector, LoadOptions(), client=client)

        assert report.total == 2
        assert '"first"' in client.calls[0]
        assert '"second"' in client.calls[1]

    @pytest.mark.asyncio
    async def test_unknown_mutation_is_a_mutation_error(self, reflector, tmp_path: Path) -> None:
        _write(tmp_path / "widget.csv", "id\nw1\n")
        client = FakeClient()

        report = await run_load(tmp_path, reflector, LoadOptions(), client=client)

        assert client.calls == []
        assert report.mutation_errors[0].target == "addWidgets"
        assert report.succeed == 0

    @pytest.mark.asyncio
    async def test_parse_failure_is_a_data_read_error(self, reflector, tmp_path: Path) -> None:
        _write(tmp_path / "person.json", "[1, 2]")
        _write(tmp_path / "person2.csv", "id\np1\n")

        report = await run_load(
            tmp_path, reflector, LoadOptions(mutation="addPersons"), client=FakeClient()
        )

        assert report.total == 2
        assert report.succeed == 1
        assert len(report.data_read_errors) == 1

    @pytest.mark.asyncio
    async def test_client_required(self, reflector, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            await run_load(tmp_path, reflector, LoadOptions())


class TestNdfMode:
    @pytest.mark.asyncio
    async def test_converts_to_ndf(self, reflector, tmp_path: Path) -> None:
        data = _write(
            tmp_path / "in" / "Person.json",
            json.dumps([{"id": "p1", "name": "Ann", "friends": ["p2"]}]),
        )
        out = tmp_path / "out"

        report = await run_load(data, reflector, LoadOptions(ndf_out=out))

        assert report.succeed == 1
        assert NdfFile.model_validate_json((out / "nodes" / "00001.json").read_text()).values == [
            {"_typeName": "Person", "id": "p1", "name": "Ann"}
        ]
        assert (out / "relations" / "00001.json").exists()

    @pytest.mark.asyncio
    async def test_generation_counter_spans_files(self, reflector, tmp_path: Path) -> None:
        _write(tmp_path / "in" / "a" / "Person.csv", "id\np1\n")
        _write(tmp_path / "in" / "b" / "Person.csv", "id\np1\n")
        out = tmp_path / "out"

        report = await run_load(tmp_path / "in", reflector, LoadOptions(ndf_out=out))

        assert report.succeed == 2
        assert sorted(p.name for p in (out / "nodes").iterdir()) == ["00001.json", "00002.json"]

    @pytest.mark.asyncio
    async def test_type_option_and_record_errors(self, reflector, tmp_path: Path) -> None:
        data = _write(tmp_path / "people.csv", "id,age\na,1\na,2\n")

        report = await run_load(
            data, reflector, LoadOptions(ndf_out=tmp_path / "out", type_name="Person")
        )

        assert report.succeed == 0
        assert report.ndf_errors[str(data)] == ["record 2: Duplicate id: a"]

    @pytest.mark.asyncio
    async def test_write_failure_recorded_against_file(self, reflector, tmp_path: Path) -> None:
        data = _write(tmp_path / "in" / "Person.csv", "id\np1\n")
        out = _write(tmp_path / "out", "not a directory")

        report = await run_load(data, reflector, LoadOptions(ndf_out=out))

        assert report.total == 1
        assert report.succeed == 0
        [message] = report.ndf_errors[str(data)]
        assert message.startswith("Cannot write NDF output:")

    @pytest.mark.asyncio
    async def test_type_without_id(self, reflector, tmp_path: Path) -> None:
        data = _write(tmp_path / "Label.csv", "name\nx\n")

        report = await run_load(data, reflector, LoadOptions(ndf_out=tmp_path / "out"))

        assert report.mutation_errors[0].reason == "Type Label has no id field."

    @pytest.mark.asyncio
    async def test_progress_reported(self, reflector, tmp_path: Path) -> None:
        data = _write(tmp_path / "Person.csv", "id,age\na,old\n")
        messages: list[str] = []

        await run_load(
            data,
            reflector,
            LoadOptions(ndf_out=tmp_path / "out"),
            on_progress=messages.append,
        )

        assert any("Cannot coerce" in m for m in messages)
        assert any("Converted 1 of 1 Person entities" in m for m in messages)
