"""
SubprocessService against real child processes (the running interpreter).
"""

import sys

import pytest

from cmake_driver.services.process import SubprocessService


class RecordingConsumer:
    def __init__(self):
        self.out = []
        self.err = []

    def output(self, line):
        self.out.append(line)

    def error(self, line):
        self.err.append(line)


class TestSubprocessService:
    @pytest.mark.asyncio
    async def test_captures_both_streams(self):
        consumer = RecordingConsumer()
        result = await SubprocessService().execute(
            sys.executable,
            ["-c", "import sys; print('hello'); print('oops', file=sys.stderr)"],
            output_consumer=consumer,
        )

        assert result.retc == 0
        assert result.stdout == "hello"
        assert result.stderr == "oops"
        assert consumer.out == ["hello"]
        assert consumer.err == ["oops"]

    @pytest.mark.asyncio
    async def test_nonzero_exit_code(self):
        result = await SubprocessService().execute(sys.executable, ["-c", "raise SystemExit(3)"])
        assert result.retc == 3

    @pytest.mark.asyncio
    async def test_environment_is_layered(self):
        result = await SubprocessService().execute(
            sys.executable,
            ["-c", "import os; print(os.environ['CMAKE_FILEAPI_TEST_VAR'])"],
            environment={"CMAKE_FILEAPI_TEST_VAR": "from-kit"},
        )
        assert result.stdout == "from-kit"

    @pytest.mark.asyncio
    async def test_missing_program_is_abnormal_exit(self, tmp_path):
        result = await SubprocessService().execute(str(tmp_path / "no-such-cmake"), ["--version"])
        assert result.retc is None
        assert result.stderr.startswith("Error:")
