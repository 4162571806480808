"""Remote URL classification."""

from __future__ import annotations

import re
from typing import Optional

from gitswitch.models import Remote, RemoteType

SSH_REMOTE = re.compile(r"^(?:ssh://)?[^@/\s]+@([^:/\s]+)[:/]([^/\s]+)/(.+?)(?:\.git)?/?$")
HTTPS_REMOTE = re.compile(r"^https?://(?:[^@/\s]+@)?([^/\s]+)/([^/\s]+)/(.+?)(?:\.git)?/?$")

# Ordered: first substring match wins.
PROVIDER_HOST_HINTS = (
    ("github", "github"),
    ("gitlab", "gitlab"),
    ("bitbucket", "bitbucket"),
    ("azure", "azure"),
    ("visualstudio", "azure"),
)


def infer_provider(hostname: Optional[str]) -> Optional[str]:
    """Provider name from a hostname substring, or None."""
    if not hostname:
        return None
    lowered = hostname.lower()
    for hint, provider in PROVIDER_HOST_HINTS:
        if hint in lowered:
            return provider
    return None


def parse_remote_url(url: str, name: str = "origin") -> Remote:
    """Classify ``url`` into type, host, provider, owner and repo.

    ``git@github.com:acme/widgets.git`` is ssh/github/acme/widgets.
    ``https://gitlab.com/acme/widgets`` is https/gitlab/acme/widgets.
    Anything else is reported as https with no provider.
    """

    url = url.strip()
    if not url.startswith(("http://", "https://")):
        match = SSH_REMOTE.match(url)
        if match:
            host, owner, repo = match.groups()
            return Remote(
                name=name,
                url=url,
                type=RemoteType.SSH,
                host=host,
                provider=infer_provider(host),
                owner=owner,
                repo=repo,
            )

    match = HTTPS_REMOTE.match(url)
    if match:
        host, owner, repo = match.groups()
        return Remote(
            name=name,
            url=url,
            type=RemoteType.HTTPS,
            host=host,
            provider=infer_provider(host),
            owner=owner,
            repo=repo,
        )

    return Remote(name=name, url=url, type=RemoteType.HTTPS)


def ssh_url_for_alias(alias: str, owner: str, repo: str) -> str:
    """Rewrite target for a remote routed through an SSH host alias."""
    return f"git@{alias}:{owner}/{repo}.git"
