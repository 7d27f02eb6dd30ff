"""Brand-specific drivers that shell out to a VCS binary."""

from vcsq.adapters.base import CliDriver, CliValidator
from vcsq.adapters.git import GitDriver, GitValidator
from vcsq.adapters.hg import HgDriver, HgValidator
from vcsq.adapters.jj import JjDriver, JjValidator

__all__ = [
    "CliDriver",
    "CliValidator",
    "GitDriver",
    "GitValidator",
    "HgDriver",
    "HgValidator",
    "JjDriver",
    "JjValidator",
]
