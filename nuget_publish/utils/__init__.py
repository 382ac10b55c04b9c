"""Utility modules for the publishing tool."""

from nuget_publish.utils.shell import ShellError, run, strip_ansi

__all__ = [
    "run",
    "strip_ansi",
    "ShellError",
]
