"""Async process execution with classified, multiplexed output."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from spigot_tools.classify import Origin, classify_line, dispatch
from spigot_tools.errors import (
    CommandIOError,
    CommandTimeoutError,
    NonZeroExitError,
)
from spigot_tools.templating import render_command

logger = logging.getLogger(__name__)
output_logger = logging.getLogger(f"{__name__}.output")

ENV_DEFAULTS: dict[str, str] = {
    "_JAVA_OPTIONS": "-Djdk.net.URLClassPath.disableClassPathURLCheck=true",
    "MAVEN_OPTS": "-Xmx1024M",
}
DEFAULT_KILL_GRACE_SECONDS = 5.0
STREAM_LIMIT = 1024 * 1024


def apply_env(
    ambient: Mapping[str, str], defaults: Mapping[str, str] = ENV_DEFAULTS
) -> dict[str, str]:
    """Return *ambient* plus every entry of *defaults* it does not already set."""
    env = dict(ambient)
    for key, value in defaults.items():
        env.setdefault(key, value)
    return env


@dataclass(frozen=True)
class CommandSpec:
    """A fully resolved command, ready to spawn."""

    executable: str
    args: tuple[str, ...]
    cwd: Path
    env_defaults: Mapping[str, str] = field(default_factory=lambda: dict(ENV_DEFAULTS))

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]


@dataclass(frozen=True)
class CommandResult:
    """Successful execution of one command.

    ``errored`` is set when a Java exception header was seen in the output.
    It is informational and does not turn the run into a failure.
    """

    cmd: list[str]
    returncode: int
    errored: bool = False


class OptionalLineReader:
    """Line reader over a stream that may be missing.

    A missing stream, or one that already hit EOF, never yields: its
    ``next_line`` waits forever so it cannot win a selection.
    """

    def __init__(self, reader: asyncio.StreamReader | None) -> None:
        self._reader = reader

    @property
    def closed(self) -> bool:
        return self._reader is None

    async def next_line(self) -> bytes | None:
        if self._reader is None:
            await asyncio.get_running_loop().create_future()
        line = await _read_line(self._reader)
        if not line:
            self._reader = None
            return None
        return line


async def _read_line(reader: asyncio.StreamReader) -> bytes:
    """Read one line of any length; returns b"" at EOF.

    Lines longer than the stream limit are read in pieces and joined
    rather than rejected.
    """
    chunks: list[bytes] = []
    while True:
        try:
            chunks.append(await reader.readuntil(b"\n"))
        except asyncio.IncompleteReadError as exc:
            chunks.append(exc.partial)
        except asyncio.LimitOverrunError as exc:
            chunks.append(await reader.readexactly(exc.consumed))
            continue
        return b"".join(chunks)


async def terminate_process(
    process: asyncio.subprocess.Process,
    *,
    grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
) -> None:
    """Send SIGTERM, escalating to SIGKILL if the process outlives the grace period."""
    if process.returncode is not None:
        return

    try:
        process.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(process.wait(), timeout=grace_seconds)
    except asyncio.TimeoutError:
        if process.returncode is None:
            process.kill()
            await process.wait()


class Runner:
    """Single point of process execution.

    Every line the child writes to stdout or stderr is classified and
    logged on the ``spigot_tools.runner.output`` logger while the process
    runs. The call returns only after the process exited and both streams
    were drained.
    """

    def __init__(
        self,
        *,
        verbose: bool = False,
        timeout: float | None = None,
        stderr_as_error: bool = False,
        env_defaults: Mapping[str, str] | None = None,
        kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
    ) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0 when provided.")
        self.verbose = verbose
        self.timeout = timeout
        self.stderr_as_error = stderr_as_error
        self.env_defaults = dict(ENV_DEFAULTS if env_defaults is None else env_defaults)
        self.kill_grace_seconds = kill_grace_seconds

    async def run(
        self, working_dir: str | Path, executable: str, args: Sequence[str] = ()
    ) -> CommandResult:
        """Run *executable* with *args* inside *working_dir*."""
        spec = CommandSpec(
            executable=executable,
            args=tuple(args),
            cwd=Path(working_dir),
            env_defaults=self.env_defaults,
        )
        return await self.execute(spec)

    async def run_template(
        self,
        working_dir: str | Path,
        template: str,
        substitutions: Sequence[str] = (),
    ) -> CommandResult:
        """Run a one-line command template such as ``"mvn {0} install"``.

        Raises MissingCommandError before spawning anything if *template*
        is blank.
        """
        executable, args = render_command(template, substitutions)
        return await self.run(working_dir, executable, args)

    async def execute(self, spec: CommandSpec) -> CommandResult:
        cmd = spec.argv
        if self.verbose:
            logger.info("$ %s", " ".join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(spec.cwd),
                env=apply_env(os.environ, spec.env_defaults),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT,
            )
        except OSError as exc:
            raise CommandIOError(cmd, exc) from exc

        try:
            if self.timeout is None:
                returncode, errored = await self._pipe_and_wait(process)
            else:
                returncode, errored = await asyncio.wait_for(
                    self._pipe_and_wait(process), timeout=self.timeout
                )
        except asyncio.TimeoutError as exc:
            raise CommandTimeoutError(cmd, self.timeout) from exc
        except OSError as exc:
            raise CommandIOError(cmd, exc) from exc

        if errored:
            logger.debug("Exception reported in output of %s", cmd)

        code = 0 if returncode is None else returncode
        if code != 0:
            raise NonZeroExitError(cmd, code)
        return CommandResult(cmd=cmd, returncode=code, errored=errored)

    async def _pipe_and_wait(
        self, process: asyncio.subprocess.Process
    ) -> tuple[int | None, bool]:
        """Log output from both streams until the process exits and they are drained.

        Returns the raw exit status and whether a Java exception was seen.
        """
        readers = {
            Origin.STDOUT: OptionalLineReader(process.stdout),
            Origin.STDERR: OptionalLineReader(process.stderr),
        }
        errored = False

        def pipe_line(raw: bytes, origin: Origin) -> None:
            nonlocal errored
            classified = classify_line(
                raw.decode("utf-8", errors="replace"),
                origin,
                stderr_as_error=self.stderr_as_error,
            )
            errored = errored or classified.is_exception
            dispatch(classified, output_logger)

        pending: dict[asyncio.Future, Origin | None] = {
            asyncio.ensure_future(reader.next_line()): origin
            for origin, reader in readers.items()
        }
        pending[asyncio.ensure_future(process.wait())] = None

        try:
            exited = False
            while not exited:
                done, _ = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    origin = pending.pop(task)
                    if origin is None:
                        exited = True
                        continue
                    line = task.result()
                    if line is not None:
                        pipe_line(line, origin)
                    pending[asyncio.ensure_future(readers[origin].next_line())] = origin

            # Output flushed right before exit may still be buffered.
            for task, origin in list(pending.items()):
                reader = readers[origin]
                if reader.closed:
                    continue
                del pending[task]
                line = await task
                while line is not None:
                    pipe_line(line, origin)
                    line = await reader.next_line()
        except BaseException:
            await terminate_process(process, grace_seconds=self.kill_grace_seconds)
            raise
        finally:
            for task in pending:
                task.cancel()

        return process.returncode, errored
