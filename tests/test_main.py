# tests/test_main.py
"""
End-to-end tests for the livexpr command line.
"""

import json
import re
from pathlib import Path

import pytest

from livexpr import __version__
from livexpr.codegen import compile_expression
from livexpr.main import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main


class TestParseCommand:

    def test_infix(self, capsys):
        assert main(["parse", "1+2*3"]) == EXIT_OK
        assert capsys.readouterr().out == "(1.000000+(2.000000*3.000000))\n"

    def test_sexp(self, capsys):
        assert main(["parse", "sin(t)", "--format", "sexp"]) == EXIT_OK
        assert capsys.readouterr().out.startswith("(sin (var ")

    def test_repr(self, capsys):
        assert main(["parse", "t", "-f", "repr"]) == EXIT_OK
        assert "Variable(name='t'" in capsys.readouterr().out

    @pytest.mark.parametrize("fmt", ["sexp", "repr", "infix"])
    def test_long_chain(self, fmt, capsys):
        src = "+".join(["t"] * 3000)
        assert main(["parse", src, "-f", fmt]) == EXIT_OK
        assert capsys.readouterr().out.count("t") >= 3000

    def test_parse_error(self, capsys):
        assert main(["parse", "1+2)"]) == EXIT_ERROR
        assert "Parse error here:\n1+2)\n   ^" in capsys.readouterr().err


class TestCompileCommand:

    def test_hex(self, capsys):
        assert main(["compile", "sin(t)"]) == EXIT_OK
        assert capsys.readouterr().out == "0x0000000000000001\n0x0000000000000009\n"

    def test_json(self, capsys):
        assert main(["compile", "sin(t)", "--format", "json"]) == EXIT_OK
        assert json.loads(capsys.readouterr().out) == {"length": 2, "words": [1, 9]}

    def test_asm(self, capsys):
        assert main(["compile", "u*20", "-f", "asm"]) == EXIT_OK
        assert capsys.readouterr().out == "var u\nlit 20.0\nmul\n"

    def test_bin_to_file(self, tmp_path):
        dest = tmp_path / "out" / "wave.bin"
        assert main(["compile", "u*20", "-f", "bin", "-o", str(dest)]) == EXIT_OK
        assert dest.read_bytes() == compile_expression("u*20").to_bytes()

    def test_unknown_variable(self, capsys):
        assert main(["compile", "w"]) == EXIT_ERROR
        err = capsys.readouterr().err
        assert "Unknown variable: w" in err
        assert "    w\n    ^\n" in err

    def test_unwritable_output(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        dest = blocker / "sub" / "out.txt"
        assert main(["compile", "t", "-o", str(dest)]) == EXIT_INFRA


class TestEvalCommand:

    def test_eval_defaults(self, capsys):
        assert main(["eval", "1+2*3"]) == EXIT_OK
        assert capsys.readouterr().out == "7.0\n"

    def test_eval_at(self, capsys):
        assert main(["eval", "u*20", "--at", "0", "0.5", "0"]) == EXIT_OK
        assert capsys.readouterr().out == "10.0\n"

    def test_eval_error(self):
        assert main(["eval", "sin t"]) == EXIT_ERROR


class TestLiveCommand:

    def test_session_from_file(self, tmp_path, capsys):
        script = tmp_path / "formulas.txt"
        script.write_text("u*2\nbad)\nsin(t)\n")
        rc = main(["live", "--input", str(script), "--no-prompt", "--fps", "500"])
        assert rc == EXIT_OK
        assert "Parse error here:\nbad)\n   ^" in capsys.readouterr().err

    def test_undecodable_line_is_rejected(self, tmp_path, capsys):
        script = tmp_path / "formulas.txt"
        script.write_bytes(b"u*2\n\xff\nsin(t)\n")
        rc = main(["live", "-i", str(script), "--no-prompt", "--fps", "500"])
        assert rc == EXIT_OK
        assert "Parse error here:\n\ufffd\n^" in capsys.readouterr().err

    def test_preview(self, tmp_path, capsys):
        script = tmp_path / "formulas.txt"
        script.write_text("u\n")
        rc = main([
            "live", "-i", str(script), "--no-prompt", "--preview",
            "--width", "8", "--height", "2",
        ])
        assert rc == EXIT_OK
        rows = [line for line in capsys.readouterr().out.splitlines() if line]
        assert rows[-2:] == [" .:-=*#%", " .:-=*#%"]

    def test_invalid_fps(self):
        assert main(["live", "--fps", "0"]) == EXIT_INFRA

    def test_missing_input(self, tmp_path):
        assert main(["live", "-i", str(tmp_path / "missing.txt")]) == EXIT_INFRA


class TestGlobalOptions:

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == EXIT_INFRA
        assert "usage:" in capsys.readouterr().err

    def test_verbose_logs_to_stderr(self, capsys):
        assert main(["-vv", "compile", "t"]) == EXIT_OK
        assert "Compiled 1 word(s)" in capsys.readouterr().err

    def test_version_has_single_source(self):
        root = Path(__file__).resolve().parent.parent
        init_text = (root / "livexpr" / "__init__.py").read_text(encoding="utf-8")
        match = re.search(r'^__version__(?::\s*str)?\s*=\s*"([^"]+)"', init_text, re.MULTILINE)
        assert match is not None
        assert match.group(1) == __version__
        pyproject = (root / "pyproject.toml").read_text(encoding="utf-8")
        assert re.search(r"^version\s*=", pyproject, re.MULTILINE) is None
        assert '"livexpr" / "__init__.py"' in (root / "setup.py").read_text(encoding="utf-8")
