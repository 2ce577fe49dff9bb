# tests/test_cli.py
"""
Tests for the command-line interface.
"""

import json

import pytest

from flowcomb import __version__
from flowcomb.main import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main
from tests.conftest import BAD_ARRAY_SRC, PERSON_SRC, TYPED_FUNCTION_SRC


@pytest.fixture
def sources(tmp_path):
    good = tmp_path / "person.fc"
    good.write_text(PERSON_SRC)
    bad = tmp_path / "bad.fc"
    bad.write_text(BAD_ARRAY_SRC)
    fn = tmp_path / "fn.fc"
    fn.write_text(TYPED_FUNCTION_SRC)
    return {"good": good, "bad": bad, "fn": fn}


class TestCompileCommand:

    def test_compile_to_stdout(self, sources, capsys):
        assert main(["compile", str(sources["good"])]) == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith("function _assert(x, type, name) {")
        assert 'const Person = t.interface(' in out

    def test_compile_to_directory(self, sources, tmp_path):
        out_dir = tmp_path / "build"
        rc = main(["compile", str(sources["good"]), str(sources["fn"]), "-o", str(out_dir)])
        assert rc == EXIT_OK
        assert (out_dir / "person.js").exists()
        assert "_assert(x, t.Number" in (out_dir / "fn.js").read_text()

    def test_skip_flags(self, sources, capsys):
        assert main(["compile", "--skip-asserts", str(sources["fn"])]) == EXIT_OK
        assert "_assert" not in capsys.readouterr().out

    def test_options_file(self, sources, tmp_path, capsys):
        opts = tmp_path / "opts.json"
        opts.write_text(json.dumps({"skipHelpers": True}))
        assert main(["compile", "--options", str(opts), str(sources["fn"])]) == EXIT_OK
        out = capsys.readouterr().out
        assert "function _assert(" not in out
        assert '_assert(x, t.Number, "x");' in out

    def test_bad_options_file(self, sources, tmp_path):
        opts = tmp_path / "opts.json"
        opts.write_text(json.dumps({"skipEverything": True}))
        assert main(["compile", "--options", str(opts), str(sources["fn"])]) == EXIT_INFRA

    def test_failed_file_reported_others_written(self, sources, tmp_path, capsys):
        out_dir = tmp_path / "build"
        rc = main(["compile", str(sources["bad"]), str(sources["good"]), "-o", str(out_dir)])
        assert rc == EXIT_ERROR
        assert (out_dir / "person.js").exists()
        assert not (out_dir / "bad.js").exists()
        err = capsys.readouterr().err
        assert "FLOW-2002" in err
        assert "1 error(s)" in err

    def test_missing_file(self, tmp_path):
        assert main(["compile", str(tmp_path / "nope.fc")]) == EXIT_INFRA


class TestCheckCommand:

    def test_check_ok(self, sources, capsys):
        assert main(["check", str(sources["good"])]) == EXIT_OK
        assert "1 file(s) OK" in capsys.readouterr().out

    def test_check_json(self, sources, capsys):
        assert main(["check", "--format", "json", str(sources["bad"])]) == EXIT_ERROR
        (diag,) = json.loads(capsys.readouterr().out)
        assert diag["code"] == "FLOW-2002"
        assert diag["line"] == 3


class TestMisc:

    def test_parse_dumps_forms(self, sources, capsys):
        assert main(["parse", str(sources["good"])]) == EXIT_OK
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("ImportDecl(")
        assert lines[1].startswith("TypeAlias(name='Person'")

    def test_no_command(self, capsys):
        assert main([]) == EXIT_INFRA

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            main(["--version"])
        assert __version__ in capsys.readouterr().out
