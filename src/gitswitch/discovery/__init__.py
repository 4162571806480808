"""Identity and repository discovery."""

from .engine import DiscoveryEngine
from .labels import DEFAULT_LABEL_RULES, suggest_label
from .walker import RepositoryWalker

__all__ = ["DEFAULT_LABEL_RULES", "DiscoveryEngine", "RepositoryWalker", "suggest_label"]
