"""End-to-end tests for the command line, with the dump tool stubbed out."""
import json

import pytest

from funcmatch import cli
from funcmatch.errors import DumpToolError
from funcmatch.image import encode_instructions

BASE = 0x80004000
STWU = 0x9421FFF0
ADD = 0x7C642A14
MR = 0x7C832378
B_10 = 0x48000010
B_20 = 0x48000020
BLR = 0x4E800020


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Reference image with two functions and a matching symbol table."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "image.bin").write_bytes(
        encode_instructions([STWU, ADD, BLR, STWU, B_10, BLR]))
    (tmp_path / "symbols.csv").write_text(
        "name,start,end\n"
        f"first__Fv,0x{BASE:X},0x{BASE + 12:X}\n"
        f"second__Fv,0x{BASE + 12:X},0x{BASE + 24:X}\n")
    return tmp_path


@pytest.fixture
def dump_output(monkeypatch):
    def install(text):
        calls = []

        def fake(object_path, tool, flags):
            calls.append((str(object_path), tool, tuple(flags)))
            return text

        monkeypatch.setattr(cli, "run_dump_tool", fake)
        return calls
    return install


def run(*args):
    cli.main(["image.bin", "symbols.csv", "rebuilt.o", *args, "--base", hex(BASE)])


class TestSingleSymbol:
    def test_identical(self, workspace, dump_output, listing, capsys):
        dump_output(listing([("first__Fv", [STWU, ADD, BLR])]))
        run("first__Fv")
        assert capsys.readouterr().out.strip() == "identical"

    def test_relocated_branch(self, workspace, dump_output, listing, capsys):
        dump_output(listing([("Mod_second__Fv", [STWU, B_20, BLR])]))
        run("second__Fv")
        assert capsys.readouterr().out.strip() == "identical"

    def test_mismatch_exits(self, workspace, dump_output, listing):
        dump_output(listing([("first__Fv", [STWU, MR, BLR])]))
        with pytest.raises(SystemExit) as excinfo:
            run("first__Fv")
        assert "mismatch at instruction 1" in str(excinfo.value.code)

    def test_short_candidate_exits(self, workspace, dump_output, listing):
        dump_output(listing([("first__Fv", [STWU])]))
        with pytest.raises(SystemExit) as excinfo:
            run("first__Fv")
        assert "ends early" in str(excinfo.value.code)

    def test_symbol_missing_from_dump(self, workspace, dump_output, listing):
        dump_output(listing([("other__Fv", [BLR])]))
        with pytest.raises(SystemExit) as excinfo:
            run("first__Fv")
        message = str(excinfo.value.code)
        assert "first__Fv" in message and "symbols.csv" in message

    def test_symbol_missing_from_table(self, workspace, dump_output, listing):
        dump_output(listing([("third__Fv", [BLR])]))
        with pytest.raises(SystemExit) as excinfo:
            run("third__Fv")
        assert "not listed" in str(excinfo.value.code)

    def test_listing(self, workspace, dump_output, listing, capsys):
        dump_output(listing([("first__Fv", [STWU, ADD, BLR])]))
        run("first__Fv", "--list")
        out = capsys.readouterr().out
        assert "first__Fv:" in out
        assert f"0x{BASE + 8:08X}:" in out
        assert out.strip().endswith("identical")

    def test_dump_tool_failure(self, workspace, monkeypatch):
        def fail(object_path, tool, flags):
            raise DumpToolError("gdump exited with status 1: bad object")

        monkeypatch.setattr(cli, "run_dump_tool", fail)
        with pytest.raises(SystemExit) as excinfo:
            run("first__Fv")
        assert "bad object" in str(excinfo.value.code)

    def test_negative_base_exits(self, workspace, dump_output, listing):
        dump_output(listing([("first__Fv", [STWU, ADD, BLR])]))
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["image.bin", "symbols.csv", "rebuilt.o", "first__Fv", "--base", "-16"])
        assert "negative base address -16" in str(excinfo.value.code)

    def test_negative_base_in_config_exits(self, workspace, dump_output, listing):
        (workspace / "funcmatch.json").write_text('{"base_address": -16}')
        dump_output(listing([("first__Fv", [STWU, ADD, BLR])]))
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["image.bin", "symbols.csv", "rebuilt.o", "first__Fv"])
        assert "negative base address" in str(excinfo.value.code)

    def test_list_rejected_with_all(self, workspace):
        with pytest.raises(SystemExit) as excinfo:
            run("--all", "--list")
        assert excinfo.value.code == 2

    @pytest.mark.parametrize("flags,expected", [
        ((), True),
        (("--paired-singles",), True),
        (("--no-paired-singles",), False),
    ])
    def test_paired_singles_switch(self, workspace, dump_output, listing, monkeypatch,
                                   flags, expected):
        seen = []

        class RecordingDecoder(cli.Decoder):
            def __init__(self, paired_singles=True):
                seen.append(paired_singles)
                super().__init__(paired_singles=paired_singles)

        monkeypatch.setattr(cli, "Decoder", RecordingDecoder)
        dump_output(listing([("first__Fv", [STWU, ADD, BLR])]))
        run("first__Fv", *flags)
        assert seen == [expected]

    def test_paired_singles_off_in_config(self, workspace, dump_output, listing, monkeypatch):
        (workspace / "funcmatch.json").write_text('{"paired_singles": false}')
        seen = []

        class RecordingDecoder(cli.Decoder):
            def __init__(self, paired_singles=True):
                seen.append(paired_singles)
                super().__init__(paired_singles=paired_singles)

        monkeypatch.setattr(cli, "Decoder", RecordingDecoder)
        dump_output(listing([("first__Fv", [STWU, ADD, BLR])]))
        run("first__Fv")
        assert seen == [False]

    def test_needs_symbol_or_all(self, workspace):
        with pytest.raises(SystemExit) as excinfo:
            run()
        assert excinfo.value.code == 2


class TestConfig:
    def test_config_supplies_base_and_tool(self, workspace, dump_output, listing, capsys):
        (workspace / "funcmatch.json").write_text(json.dumps({
            "base_address": hex(BASE),
            "dump_tool": "/opt/ghs/gdump",
            "dump_flags": ["-raw"],
        }))
        calls = dump_output(listing([("first__Fv", [STWU, ADD, BLR])]))
        cli.main(["image.bin", "symbols.csv", "rebuilt.o", "first__Fv"])
        assert capsys.readouterr().out.strip() == "identical"
        assert calls == [("rebuilt.o", "/opt/ghs/gdump", ("-raw",))]

    def test_bad_base_in_config(self, workspace, dump_output, listing):
        (workspace / "funcmatch.json").write_text('{"base_address": "nowhere"}')
        dump_output(listing([("first__Fv", [STWU, ADD, BLR])]))
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["image.bin", "symbols.csv", "rebuilt.o", "first__Fv"])
        assert "base_address" in str(excinfo.value.code)


class TestAll:
    def test_all_identical(self, workspace, dump_output, listing, capsys):
        dump_output(listing([
            ("first__Fv", [STWU, ADD, BLR]),
            ("second__Fv", [STWU, B_20, BLR]),
        ]))
        run("--all")
        assert capsys.readouterr().out.strip() == "identical (2 functions)"

    def test_report(self, workspace, dump_output, listing):
        dump_output(listing([("first__Fv", [STWU, MR, BLR])]))
        with pytest.raises(SystemExit) as excinfo:
            run("--all", "--report", "out/report.json")
        assert "2 of 2 functions differ" in str(excinfo.value.code)
        report = json.loads((workspace / "out" / "report.json").read_text())
        assert report["checked"] == 2
        assert report["failed"] == 2
        statuses = {f["symbol"]: f["status"] for f in report["functions"]}
        assert statuses == {"first__Fv": "mismatch", "second__Fv": "missing"}
        assert report["functions"][0]["index"] == 1
