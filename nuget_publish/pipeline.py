"""Publish pipeline orchestration.

Drives a single publish attempt:
1. Resolve working directory, project and credentials
2. Resolve package name and version from the project
3. Check the registry for the version (stop here if it exists)
4. Restore, clean, build and pack with dotnet
5. Push the package

The outcome report is written on every exit path.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from nuget_publish.config.models import EnvironmentDefaults, PublishRequest
from nuget_publish.context import ResolvedContext, resolve_context
from nuget_publish.exceptions import (
    MissingApiKeyError,
    NoArtifactProducedError,
    PublishCancelledError,
    PublishToolError,
    PushRejectedError,
)
from nuget_publish.nuget_config import render_configuration, write_configuration
from nuget_publish.project import load_project, resolve_package_name, resolve_version
from nuget_publish.registry.client import RegistryClient, VersionStatus
from nuget_publish.report import OutcomeStatus, PublishOutcome, ReportWriter
from nuget_publish.toolchain import (
    DotnetToolchain,
    Runner,
    evaluate_push,
    find_artifact,
    remove_stale_artifacts,
)
from nuget_publish.utils.shell import run

logger = logging.getLogger(__name__)


class PublishState(Enum):
    """Pipeline states. SKIPPED, DONE, FAILED and CANCELLED are terminal."""

    RESOLVE_CONTEXT = "resolve_context"
    RESOLVE_METADATA = "resolve_metadata"
    CHECK_EXISTING = "check_existing"
    SKIPPED = "skipped"
    BUILD_PIPELINE = "build_pipeline"
    PUSH = "push"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class PublishPipeline:
    """Orchestrates one publish attempt."""

    request: PublishRequest
    environment: EnvironmentDefaults
    registry: RegistryClient = field(default_factory=RegistryClient)
    runner: Runner = run
    cancel_event: threading.Event = field(default_factory=threading.Event)

    # State tracking
    outcome: PublishOutcome = field(default_factory=PublishOutcome)
    state: PublishState = PublishState.RESOLVE_CONTEXT
    context: ResolvedContext | None = None

    def run(self, writer: ReportWriter) -> int:
        """Execute the pipeline and write the report.

        Args:
            writer: Report destination; written exactly once

        Returns:
            Process exit code (0 for published or already published)
        """
        try:
            self.execute()
            return 0
        except PublishCancelledError as e:
            self._fail(PublishState.CANCELLED, OutcomeStatus.CANCELLED, e)
            return e.exit_code
        except KeyboardInterrupt:
            self.cancel_event.set()
            self._fail(
                PublishState.CANCELLED,
                OutcomeStatus.CANCELLED,
                PublishCancelledError("Interrupted"),
            )
            return PublishCancelledError.exit_code
        except PublishToolError as e:
            self._fail(PublishState.FAILED, OutcomeStatus.FAILED, e)
            return e.exit_code
        except Exception as e:
            logger.critical(
                "Unexpected error: %s", e, exc_info=logger.isEnabledFor(logging.DEBUG)
            )
            self._enter(PublishState.FAILED)
            self.outcome.record("status", OutcomeStatus.FAILED)
            self.outcome.record("error", str(e) or type(e).__name__)
            return PublishToolError.exit_code
        finally:
            writer.write(self.outcome)

    def execute(self) -> PublishState:
        """Run every stage, raising on the first fatal error.

        Returns:
            The terminal state reached (SKIPPED or DONE)
        """
        self._enter(PublishState.RESOLVE_CONTEXT)
        context = resolve_context(self.request, self.environment)
        self.context = context

        self._enter(PublishState.RESOLVE_METADATA)
        metadata = load_project(context.project_file)
        version = resolve_version(metadata, self.request.version)
        logger.info("Using version: %s.", version)
        self.outcome.record("version", f"v{version}")
        name = resolve_package_name(
            metadata,
            explicit=self.request.package_name,
            scan=self.request.scan_for_package_name,
        )
        logger.info("Using package name: %s.", name)
        self._check_cancelled()

        self._enter(PublishState.CHECK_EXISTING)
        status = self.registry.check_version_exists(
            context.endpoint.package_index_url(name),
            version,
            context.credentials,
        )
        if status is VersionStatus.FOUND:
            logger.info("%s %s is already published, nothing to do.", name, version)
            self._enter(PublishState.SKIPPED)
            self.outcome.record("status", OutcomeStatus.ALREADY_PUBLISHED)
            return self.state

        api_key = self.request.nuget_api_key
        if not api_key:
            raise MissingApiKeyError(
                f"No API key to push {name} {version}",
                fix_hint="Pass --nuget-api-key",
            )

        self._enter(PublishState.BUILD_PIPELINE)
        toolchain = DotnetToolchain(
            context.working_directory,
            self.request,
            runner=self.runner,
            cancel_event=self.cancel_event,
        )
        artifact = self._build(toolchain, context)

        self._enter(PublishState.PUSH)
        self._push(toolchain, context, artifact, api_key)

        self._enter(PublishState.DONE)
        self.outcome.record("status", OutcomeStatus.PUBLISHED)
        logger.info("Published %s %s to %s.", name, version, context.endpoint.index_url)
        return self.state

    def _build(self, toolchain: DotnetToolchain, context: ResolvedContext) -> Path:
        """Run restore, clean, build and pack; return the produced package."""
        project = context.project_file
        config_file = self._prepare_build_auth(context)

        self._stage(toolchain, "restore", toolchain.restore_args(project, config_file))
        self._stage(toolchain, "clean", toolchain.clean_args(project))
        remove_stale_artifacts(context.working_directory)
        self._stage(toolchain, "build", toolchain.build_args(project))
        self._stage(toolchain, "pack", toolchain.pack_args(project))

        artifact = find_artifact(context.working_directory)
        if artifact is None:
            raise NoArtifactProducedError(
                f"No NuGet package found in {context.working_directory}",
                fix_hint="Check the pack output and the project's packaging properties",
            )
        self.outcome.record("package_name", artifact.name)
        self.outcome.record("package_path", str(artifact.resolve()))
        return artifact

    def _prepare_build_auth(self, context: ResolvedContext) -> Path | None:
        """Write registry credentials into nuget.config when requested.

        Returns:
            Path to pass to restore, or None to use ambient configuration
        """
        if not self.request.nuget_auth_for_build:
            return None
        if not context.credentials.complete:
            logger.warning(
                "Build-time registry authentication requested but the username or "
                "password is missing; restoring with ambient configuration."
            )
            return None
        path, document = write_configuration(
            context.working_directory, context.endpoint, context.credentials
        )
        self.outcome.record("nuget_config", document)
        return path

    def _stage(self, toolchain: DotnetToolchain, stage: str, args: list[str]) -> None:
        result = toolchain.run_stage(stage, args)
        self.outcome.record_stage(stage, result.stdout, result.stderr)
        self._check_cancelled()
        toolchain.ensure_success(stage, result)

    def _push(
        self,
        toolchain: DotnetToolchain,
        context: ResolvedContext,
        artifact: Path,
        api_key: str,
    ) -> None:
        result = toolchain.run_stage(
            "push", toolchain.push_args(artifact, context.endpoint.index_url, api_key)
        )
        self.outcome.record_stage("push", result.stdout, result.stderr)
        self._check_cancelled()

        verdict = evaluate_push(result)
        if verdict.error:
            raise PushRejectedError(
                f"Unable to push {artifact.name} to {context.endpoint.index_url}",
                details=verdict.error,
            )
        if verdict.duplicate:
            logger.warning("The registry already holds %s; treating as published.", artifact.name)

    def _enter(self, state: PublishState) -> None:
        logger.debug("State: %s -> %s", self.state.value, state.value)
        self.state = state

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise PublishCancelledError(f"Cancelled during {self.state.value}")

    def _fail(self, state: PublishState, status: str, error: PublishToolError) -> None:
        if state is PublishState.CANCELLED:
            logger.warning("%s", error)
        else:
            logger.error("%s", error)
        self._enter(state)
        self.outcome.record("status", status)
        self.outcome.record("error", error.message)


def generate_configuration(
    request: PublishRequest,
    environment: EnvironmentDefaults,
) -> str:
    """Return the nuget.config the publish run would use, without writing it."""
    context = resolve_context(request, environment, require_project=False)
    _, document = render_configuration(
        context.working_directory, context.endpoint, context.credentials
    )
    return document


def generate_package_name(
    request: PublishRequest,
    environment: EnvironmentDefaults,
) -> str:
    """Return the package name resolved from the options and project."""
    context = resolve_context(request, environment)
    metadata = load_project(context.project_file)
    return resolve_package_name(
        metadata,
        explicit=request.package_name,
        scan=request.scan_for_package_name,
    )


def generate_version(
    request: PublishRequest,
    environment: EnvironmentDefaults,
) -> str:
    """Return the package version resolved from the options and project."""
    context = resolve_context(request, environment)
    return resolve_version(load_project(context.project_file), request.version)
