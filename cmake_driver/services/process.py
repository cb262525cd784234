"""
Subprocess execution service.

Runs an external command without a shell, streams its output line by line to
an optional consumer and captures both streams. Spawn failures and signal
terminations are reported as ``retc=None`` rather than raised, so callers see a
single "abnormal exit" outcome.
"""

import asyncio
import os
import shlex
import time
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Protocol, Sequence

from loguru import logger


class OutputConsumer(Protocol):
    def output(self, line: str) -> None: ...

    def error(self, line: str) -> None: ...


@dataclass(frozen=True)
class ExecutionResult:
    retc: Optional[int]
    stdout: str
    stderr: str


class ProcessService(Protocol):
    async def execute(
        self,
        program: str,
        args: Sequence[str],
        output_consumer: Optional[OutputConsumer] = None,
        environment: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> ExecutionResult: ...


async def _pump(stream: asyncio.StreamReader, lines: List[str], sink: Optional[Callable[[str], None]]) -> None:
    while True:
        raw = await stream.readline()
        if not raw:
            break
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        lines.append(line)
        if sink is not None:
            try:
                sink(line)
            except Exception as e:
                logger.error(f"Output consumer failed: {e}")


class SubprocessService:
    """asyncio-based ProcessService"""

    async def execute(
        self,
        program: str,
        args: Sequence[str],
        output_consumer: Optional[OutputConsumer] = None,
        environment: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> ExecutionResult:
        """
        Execute a program and wait for it to exit.

        Args:
            program: Executable path or name looked up on PATH
            args: Argument vector, passed through without shell parsing
            output_consumer: Receives each stdout/stderr line as it arrives
            environment: Variables layered over the current environment
            cwd: Working directory for the child

        Returns:
            ExecutionResult with ``retc=None`` on spawn failure or signal exit
        """
        command_line = shlex.join([program, *args])
        env = {**os.environ, **environment} if environment else None
        start_time = time.time()
        logger.info(f"🚀 EXECUTING: {command_line}")

        try:
            process = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                cwd=cwd,
            )
        except OSError as e:
            logger.error(f"💥 ERROR: Failed to start {program}: {e}")
            return ExecutionResult(retc=None, stdout="", stderr=f"Error: {e}")

        logger.debug(f"🆔 PROCESS: PID {process.pid} started")
        stdout_lines: List[str] = []
        stderr_lines: List[str] = []
        await asyncio.gather(
            _pump(process.stdout, stdout_lines, output_consumer.output if output_consumer else None),
            _pump(process.stderr, stderr_lines, output_consumer.error if output_consumer else None),
        )
        returncode = await process.wait()
        duration = time.time() - start_time

        # Negative return codes mean the child was killed by a signal
        retc: Optional[int] = returncode if returncode >= 0 else None
        if retc == 0:
            logger.info(f"✅ SUCCESS: Exit Code: 0 | Duration: {duration:.2f}s")
        else:
            logger.warning(f"⚠️  WARNING: Command completed with errors | Exit Code: {returncode} | Duration: {duration:.2f}s")

        return ExecutionResult(retc=retc, stdout="\n".join(stdout_lines), stderr="\n".join(stderr_lines))
