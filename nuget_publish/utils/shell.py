"""Subprocess execution for the dotnet toolchain.

Commands run without a shell, inherit the parent environment and have their
output captured as text with terminal escape sequences removed, so it can be
embedded in reports as-is. Secret option values never appear in error text.
"""

import os
import re
import subprocess
import threading
import time
from pathlib import Path

# Options whose following argument is a credential
SECRET_OPTIONS = frozenset({"--api-key", "-k", "--password"})
MASK = "***"

# Cancellation polling while a command runs
POLL_INTERVAL_SECONDS = 0.2
TERMINATE_GRACE_SECONDS = 10

ANSI_PATTERN = re.compile(
    r"\x1b\[[0-9;]*[a-zA-Z]|\x1b\][^\x07]*\x07|\x1b[PX^_][^\x1b]*\x1b\\"
)

# Tab, newline and carriage return are kept
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def mask_secrets(args: list[str]) -> list[str]:
    """Replace the value after each secret option with a mask.

    Examples:
        >>> mask_secrets(["nuget", "push", "a.nupkg", "--api-key", "abc"])
        ['nuget', 'push', 'a.nupkg', '--api-key', '***']
    """
    masked = []
    hide_next = False
    for arg in args:
        masked.append(MASK if hide_next else arg)
        hide_next = arg in SECRET_OPTIONS
    return masked


class ShellError(Exception):
    """A command could not be started, or exited non-zero under check=True.

    Attributes:
        args_list: Command and arguments as given
        returncode: Exit code (-1 if the process never started)
        stdout: Captured standard output
        stderr: Captured standard error
    """

    def __init__(
        self,
        args_list: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.args_list = list(args_list)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"{self.command} exited with code {returncode}")

    @property
    def command(self) -> str:
        """Printable command line with secrets masked."""
        return " ".join(mask_secrets(self.args_list))

    @property
    def output(self) -> str:
        """Return stderr when present, otherwise stdout."""
        return self.stderr.strip() or self.stdout.strip()

    def __str__(self) -> str:
        if self.returncode == -1:
            return f"Unable to run {self.command}: {self.output}"
        message = f"{self.command} exited with code {self.returncode}"
        return f"{message}\n{self.output}" if self.output else message


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences and stray control characters."""
    if not text:
        return ""
    return CONTROL_CHARS_PATTERN.sub("", ANSI_PATTERN.sub("", text))


def run(
    cmd: list[str],
    cwd: Path | None = None,
    check: bool = True,
    timeout: int | None = None,
    env: dict[str, str] | None = None,
    cancel_event: threading.Event | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a command and capture its output.

    Args:
        cmd: Command and arguments, passed to the OS verbatim
        cwd: Working directory for the command
        check: Whether to raise ShellError on non-zero exit
        timeout: Seconds before the process is killed (None waits forever)
        env: Variables layered over the inherited environment
        cancel_event: When set while the command runs, the process is asked
            to terminate and its partial output is returned

    Returns:
        CompletedProcess with cleaned stdout/stderr (never None)

    Raises:
        ShellError: If the command cannot be started, or exits non-zero and check=True
        subprocess.TimeoutExpired: If the command exceeds timeout
    """
    args = [str(arg) for arg in cmd]
    environment = dict(os.environ)
    environment.update(env or {})

    try:
        proc = subprocess.Popen(
            args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            env=environment,
        )
    except OSError as e:
        raise ShellError(args, -1, stderr=str(e)) from e

    with proc:
        try:
            stdout, stderr = _communicate(proc, timeout, cancel_event)
        except BaseException:
            # Never leave the child running on Ctrl-C or timeout
            proc.kill()
            proc.wait()
            raise

    result = subprocess.CompletedProcess(
        args, proc.returncode, strip_ansi(stdout), strip_ansi(stderr)
    )
    if check and result.returncode != 0:
        raise ShellError(args, result.returncode, result.stdout, result.stderr)
    return result


def _communicate(
    proc: subprocess.Popen,
    timeout: int | None,
    cancel_event: threading.Event | None,
) -> tuple[str, str]:
    """Wait for ``proc``, terminating it once ``cancel_event`` is set."""
    if cancel_event is None:
        return proc.communicate(timeout=timeout)

    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        if cancel_event.is_set() and proc.poll() is None:
            proc.terminate()
            try:
                return proc.communicate(timeout=TERMINATE_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                proc.kill()
                return proc.communicate()

        wait = POLL_INTERVAL_SECONDS
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise subprocess.TimeoutExpired(proc.args, timeout)
            wait = min(wait, remaining)
        try:
            return proc.communicate(timeout=wait)
        except subprocess.TimeoutExpired:
            continue
