"""Publish outcome reporting.

PublishOutcome accumulates what a run produced; ReportWriter emits it once
at the end of the run, whatever the exit path:

- console: json, plain, xml, or nothing (silent)
- file: Bash-style KEY="value" lines appended to an existing file
  (GitHub Actions' GITHUB_OUTPUT), independent of the console format
"""

import json
import logging
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import IO, NamedTuple

import typer
from lxml import etree

from nuget_publish.config.models import OutputFormat

logger = logging.getLogger(__name__)


class OutputField(NamedTuple):
    """Mapping of an outcome attribute to its serialized names."""

    attribute: str
    key: str
    file_key: str


OUTPUT_FIELDS: tuple[OutputField, ...] = (
    OutputField("error", "error", "ERROR"),
    OutputField("nuget_config", "nugetConfig", "NUGET_CONFIG"),
    OutputField("package_name", "packageName", "PACKAGE_NAME"),
    OutputField("package_path", "packagePath", "PACKAGE_PATH"),
    OutputField("process_build_error", "processBuildError", "PROCESS_BUILD_ERROR"),
    OutputField("process_build_output", "processBuildOutput", "PROCESS_BUILD_OUTPUT"),
    OutputField("process_clean_error", "processCleanError", "PROCESS_CLEAN_ERROR"),
    OutputField("process_clean_output", "processCleanOutput", "PROCESS_CLEAN_OUTPUT"),
    OutputField(
        "process_nuget_push_error", "processNuGetPushError", "PROCESS_NUGET_PUSH_ERROR"
    ),
    OutputField(
        "process_nuget_push_output", "processNuGetPushOutput", "PROCESS_NUGET_PUSH_OUTPUT"
    ),
    OutputField("process_pack_error", "processPackError", "PROCESS_PACK_ERROR"),
    OutputField("process_pack_output", "processPackOutput", "PROCESS_PACK_OUTPUT"),
    OutputField("process_restore_error", "processRestoreError", "PROCESS_RESTORE_ERROR"),
    OutputField("process_restore_output", "processRestoreOutput", "PROCESS_RESTORE_OUTPUT"),
    OutputField("status", "status", "STATUS"),
    OutputField("version", "version", "VERSION"),
)

# Pipeline stage -> (stdout attribute, stderr attribute)
STAGE_FIELDS: dict[str, tuple[str, str]] = {
    "restore": ("process_restore_output", "process_restore_error"),
    "clean": ("process_clean_output", "process_clean_error"),
    "build": ("process_build_output", "process_build_error"),
    "pack": ("process_pack_output", "process_pack_error"),
    "push": ("process_nuget_push_output", "process_nuget_push_error"),
}


class OutcomeStatus:
    """Values of PublishOutcome.status."""

    PUBLISHED = "published"
    ALREADY_PUBLISHED = "already-published"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class PublishOutcome:
    """Write-once record of a run's results.

    Every field starts as None and may be assigned once through record().
    """

    error: str | None = None
    nuget_config: str | None = None
    package_name: str | None = None
    package_path: str | None = None
    process_build_error: str | None = None
    process_build_output: str | None = None
    process_clean_error: str | None = None
    process_clean_output: str | None = None
    process_nuget_push_error: str | None = None
    process_nuget_push_output: str | None = None
    process_pack_error: str | None = None
    process_pack_output: str | None = None
    process_restore_error: str | None = None
    process_restore_output: str | None = None
    status: str | None = None
    version: str | None = None

    def record(self, attribute: str, value: str | None) -> None:
        """Assign a field exactly once.

        Raises:
            AttributeError: If the field does not exist
            ValueError: If the field already holds a value
        """
        if attribute not in {f.name for f in fields(self)}:
            raise AttributeError(f"PublishOutcome has no field {attribute!r}")
        if getattr(self, attribute) is not None:
            raise ValueError(f"PublishOutcome.{attribute} is already set")
        setattr(self, attribute, value)

    def record_stage(self, stage: str, stdout: str, stderr: str) -> None:
        """Record the captured output of a toolchain stage."""
        output_attr, error_attr = STAGE_FIELDS[stage]
        self.record(output_attr, stdout)
        self.record(error_attr, stderr)

    def as_dict(self) -> dict[str, str | None]:
        """Return the outcome keyed by serialized (camelCase) names."""
        return {f.key: getattr(self, f.attribute) for f in OUTPUT_FIELDS}

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.attribute) is None for f in OUTPUT_FIELDS)


def render_json(outcome: PublishOutcome) -> str:
    """Render the outcome as indented JSON (null for unset fields)."""
    return json.dumps(outcome.as_dict(), indent=2, ensure_ascii=False)


def render_plain(outcome: PublishOutcome) -> str:
    """Render the outcome as KEY=value lines."""
    lines = []
    for f in OUTPUT_FIELDS:
        value = getattr(outcome, f.attribute)
        lines.append(f"{f.file_key}={(value or '').strip()}")
    return "\n".join(lines)


def render_xml(outcome: PublishOutcome) -> str:
    """Render the outcome as an ``<output>`` XML document; unset fields are omitted."""
    root = etree.Element("output")
    for f in OUTPUT_FIELDS:
        value = getattr(outcome, f.attribute)
        if value is None:
            continue
        etree.SubElement(root, f.key).text = value
    return (
        etree.tostring(root, pretty_print=True, xml_declaration=True, encoding="utf-8")
        .decode("utf-8")
        .strip()
    )


def bash_quote(value: str | None) -> str:
    """Quote a value for a Bash-style ``KEY="value"`` line.

    Newlines are spliced in as ``"$'\\n'"`` so every entry stays on one line.
    """
    text = (value or "").strip().replace("\r\n", "\n").replace("\r", "\n")
    for char in ("\\", '"', "$", "`"):
        text = text.replace(char, "\\" + char)
    return '"' + text.replace("\n", "\"$'\\n'\"") + '"'


def render_file_lines(outcome: PublishOutcome) -> list[str]:
    """Render the outcome as Bash-style assignment lines."""
    return [f"{f.file_key}={bash_quote(getattr(outcome, f.attribute))}" for f in OUTPUT_FIELDS]


RENDERERS = {
    OutputFormat.JSON: render_json,
    OutputFormat.PLAIN: render_plain,
    OutputFormat.XML: render_xml,
}


class ReportWriter:
    """Emits a PublishOutcome to the console and an optional outputs file."""

    def __init__(
        self,
        output_format: OutputFormat = OutputFormat.PLAIN,
        output_file: str | Path | None = None,
        stream: IO[str] | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            output_format: Console format
            output_file: File receiving KEY="value" lines; only written if it exists
            stream: Console stream (defaults to stdout)
        """
        self.output_format = output_format
        self.output_file = Path(output_file) if output_file else None
        self.stream = stream
        self.written = False

    def write(self, outcome: PublishOutcome) -> None:
        """Write the outcome. Only the first call has any effect."""
        if self.written:
            return
        self.written = True

        logger.info("Writing outputs...")
        self._write_file(outcome)

        renderer = RENDERERS.get(self.output_format)
        if renderer is None:
            return
        typer.echo(renderer(outcome), file=self.stream or sys.stdout)

    def _write_file(self, outcome: PublishOutcome) -> None:
        if self.output_file is None:
            return
        if not self.output_file.is_file():
            logger.debug("Output file %s does not exist, skipping", self.output_file)
            return
        with open(self.output_file, "a", encoding="utf-8") as f:
            for line in render_file_lines(outcome):
                f.write(line + "\n")
