"""Process execution package."""

from vcsq.execution.base import CommandRunner, ProcessOutput
from vcsq.execution.local_exec import LocalRunner

__all__ = ["CommandRunner", "LocalRunner", "ProcessOutput"]
