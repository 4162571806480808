"""Git configuration access: parsing, remote classification and mutation."""

from .config_parser import parse_git_config
from .mutator import GitConfigMutator, classify_fetch_failure
from .remotes import infer_provider, parse_remote_url
from .runner import CommandRunner, validate_git_installed

__all__ = [
    "CommandRunner",
    "GitConfigMutator",
    "classify_fetch_failure",
    "infer_provider",
    "parse_git_config",
    "parse_remote_url",
    "validate_git_installed",
]
