"""Tests for compiler adapters."""

import asyncio
import hashlib
import sys

import pytest

from staticforge.compiler import HASH_LENGTH, CommandCompiler, NullCompiler
from staticforge.errors import CompilerError
from staticforge.utils import get_file_checksum


class TestCommandCompiler:
    def test_hash_from_stdout(self, tmp_path):
        compiler = CommandCompiler([sys.executable, "-c", "print('built')"], cwd=tmp_path)

        result = asyncio.run(compiler.run())

        assert result.hash == hashlib.sha256(b"built\n").hexdigest()[:HASH_LENGTH]
        assert result.duration_seconds >= 0

    def test_hash_from_manifest(self, tmp_path):
        manifest = tmp_path / "client.json"
        script = f"open({str(manifest)!r}, 'w').write('{{}}')"
        compiler = CommandCompiler([sys.executable, "-c", script], cwd=tmp_path, manifest_path=manifest)

        result = asyncio.run(compiler.run())

        assert result.hash == get_file_checksum(manifest)[:HASH_LENGTH]

    def test_runs_in_site_directory(self, tmp_path):
        compiler = CommandCompiler(
            [sys.executable, "-c", "open('marker.txt', 'w').write('x')"],
            cwd=tmp_path,
        )
        asyncio.run(compiler.run())
        assert (tmp_path / "marker.txt").exists()

    def test_nonzero_exit(self, tmp_path):
        script = "import sys; sys.stderr.write('syntax error in app.js'); sys.exit(3)"
        compiler = CommandCompiler([sys.executable, "-c", script], cwd=tmp_path)

        with pytest.raises(CompilerError, match="exited with code 3: syntax error in app.js"):
            asyncio.run(compiler.run())

    def test_missing_command(self, tmp_path):
        compiler = CommandCompiler("staticforge-no-such-compiler --prod", cwd=tmp_path)
        assert compiler.command == ["staticforge-no-such-compiler", "--prod"]

        with pytest.raises(CompilerError, match="not found: staticforge-no-such-compiler"):
            asyncio.run(compiler.run())

    def test_empty_command(self, tmp_path):
        with pytest.raises(ValueError):
            CommandCompiler("", cwd=tmp_path)


class TestNullCompiler:
    def test_hash_is_stable(self):
        first = asyncio.run(NullCompiler({"pages": ["/"]}).run())
        second = asyncio.run(NullCompiler({"pages": ["/"]}).run())
        assert first.hash == second.hash
        assert len(first.hash) == HASH_LENGTH

    def test_hash_follows_settings(self):
        first = asyncio.run(NullCompiler({"pages": ["/"]}).run())
        second = asyncio.run(NullCompiler({"pages": ["/", "/about/"]}).run())
        assert first.hash != second.hash
