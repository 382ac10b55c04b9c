"""dotnet toolchain stages.

Builds the argument lists for restore, clean, build, pack and push and runs
them in the working directory. Output is captured whatever the exit code;
deciding whether a stage failed is left to the caller.
"""

import logging
import re
import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from nuget_publish.config.models import PublishRequest
from nuget_publish.exceptions import PublishCancelledError, SubprocessFailure
from nuget_publish.utils.shell import ShellError, run

logger = logging.getLogger(__name__)

DOTNET = "dotnet"
ARTIFACT_PATTERNS = ("*.nupkg", "*.snupkg")

ERROR_PATTERN = re.compile(r"\berror\b.*", re.IGNORECASE)
DUPLICATE_PATTERN = re.compile(
    r"already exists|\bconflict\b|\b409\b|duplicate",
    re.IGNORECASE,
)

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class PushVerdict:
    """Interpretation of dotnet nuget push output.

    Attributes:
        error: First error line that is not about a duplicate version, if any
        duplicate: Whether the registry reported the version as already present
    """

    error: str | None = None
    duplicate: bool = False


def evaluate_push(result: subprocess.CompletedProcess) -> PushVerdict:
    """Decide whether a push succeeded.

    ``--skip-duplicate`` makes dotnet exit 0 on a duplicate version, so the
    exit code is the primary signal; error lines in the output are a fallback
    for tool versions that report failures without a non-zero exit.
    """
    text = "\n".join(part for part in (result.stdout, result.stderr) if part)
    duplicate = False

    for line in text.splitlines():
        match = ERROR_PATTERN.search(line)
        if not match:
            continue
        if DUPLICATE_PATTERN.search(line):
            duplicate = True
            continue
        return PushVerdict(error=match.group(0).strip(), duplicate=duplicate)

    if result.returncode != 0:
        if duplicate or DUPLICATE_PATTERN.search(text):
            return PushVerdict(duplicate=True)
        return PushVerdict(
            error=f"dotnet nuget push exited with code {result.returncode}",
            duplicate=duplicate,
        )

    return PushVerdict(duplicate=duplicate or bool(DUPLICATE_PATTERN.search(text)))


def remove_stale_artifacts(directory: Path) -> list[Path]:
    """Delete package artifacts left over from earlier runs.

    Returns:
        Paths that were deleted
    """
    removed = []
    for pattern in ARTIFACT_PATTERNS:
        for path in sorted(directory.glob(pattern)):
            if path.is_file():
                logger.info("Deleting old NuGet package: %s", path)
                path.unlink()
                removed.append(path)
    return removed


def find_artifact(directory: Path) -> Path | None:
    """Return the first .nupkg in ``directory`` (sorted by name), if any."""
    packages = sorted(p for p in directory.glob("*.nupkg") if p.is_file())
    return packages[0] if packages else None


class DotnetToolchain:
    """Runs dotnet CLI stages for one project."""

    def __init__(
        self,
        working_directory: Path,
        request: PublishRequest,
        runner: Runner = run,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize the toolchain.

        Args:
            working_directory: cwd for every stage and pack output directory
            request: Build configuration, platform, verbosity and nuspec file
            runner: Subprocess runner (utils.shell.run signature)
            cancel_event: Checked before each stage and while it runs
        """
        self.working_directory = working_directory
        self.request = request
        self.runner = runner
        self.cancel_event = cancel_event or threading.Event()

    @property
    def _platform(self) -> str:
        return f"-property:Platform={self.request.platform.value}"

    def restore_args(self, project: Path, config_file: Path | None = None) -> list[str]:
        args = ["restore", str(project)]
        if config_file is not None:
            args += ["--configfile", str(config_file)]
        args += ["--no-cache", "--verbosity", self.request.verbosity.value]
        return args

    def clean_args(self, project: Path) -> list[str]:
        return [
            "clean",
            str(project),
            self._platform,
            "--configuration",
            self.request.configuration.value,
        ]

    def build_args(self, project: Path) -> list[str]:
        return [
            "build",
            str(project),
            self._platform,
            "--configuration",
            self.request.configuration.value,
            "--no-restore",
        ]

    def pack_args(self, project: Path) -> list[str]:
        args = ["pack", str(project)]
        if self.request.nuspec_file:
            args.append(f"-property:NuspecFile={self.request.nuspec_file}")
        args += [
            self._platform,
            "--configuration",
            self.request.configuration.value,
            "--nologo",
            "--no-build",
            "--no-restore",
            "--output",
            str(self.working_directory),
            "--verbosity",
            self.request.verbosity.value,
        ]
        return args

    def push_args(self, artifact: Path, source: str, api_key: str) -> list[str]:
        return [
            "nuget",
            "push",
            str(artifact),
            "--source",
            source,
            "--api-key",
            api_key,
            "--skip-duplicate",
            "--no-symbols",
        ]

    def run_stage(self, stage: str, args: list[str]) -> subprocess.CompletedProcess:
        """Run ``dotnet <args>`` for a named stage without checking the exit code.

        Setting the cancel event while the stage runs terminates dotnet; the
        partial output is still returned.

        Raises:
            PublishCancelledError: If cancellation was requested before the stage
            SubprocessFailure: If dotnet could not be started
        """
        if self.cancel_event.is_set():
            raise PublishCancelledError(f"Cancelled before the {stage} stage")

        logger.debug("Running dotnet %s", stage)
        try:
            return self.runner(
                [DOTNET, *args],
                cwd=self.working_directory,
                check=False,
                cancel_event=self.cancel_event,
            )
        except ShellError as e:
            raise SubprocessFailure(
                stage,
                f"Unable to start dotnet for the {stage} stage",
                details=e.output,
                fix_hint="Install the .NET SDK and make sure 'dotnet' is on PATH",
            ) from e

    @staticmethod
    def ensure_success(stage: str, result: subprocess.CompletedProcess) -> None:
        """Raise SubprocessFailure when a stage exited non-zero."""
        if result.returncode == 0:
            return
        output = (result.stderr or "").strip() or (result.stdout or "").strip()
        raise SubprocessFailure(
            stage,
            f"dotnet {stage} exited with code {result.returncode}",
            details=f"Process exited with:\n\t{output}" if output else None,
        )
