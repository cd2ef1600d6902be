"""Repository identification from git remote URLs.

Every repository gets a short hash derived from its normalized remote URL.
The hash namespaces all on-disk state for that repository, so SSH and HTTPS
clones of the same project share one bare clone and one set of agents.

The hash is the first 8 hex characters of a SHA-256 digest (32 bits). That
keeps paths short and matches existing layouts, but collisions become
plausible past tens of thousands of distinct repositories.
"""

import hashlib
import re

from pydantic import BaseModel, ConfigDict

HASH_LENGTH = 8

_GIT_SUFFIX_RE = re.compile(r"(\.git)+$", re.IGNORECASE)
# user@host:path (scp-style SSH)
_SCP_RE = re.compile(r"^[^@/\s]+@([^:/\s]+):(.*)$")
# ssh://user@host/path
_SSH_URL_RE = re.compile(r"^ssh://[^@/]+@([^/]+)/(.*)$", re.IGNORECASE)
_HTTP_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
# user[:password]@ left at the front once the http(s) scheme is gone
_USERINFO_RE = re.compile(r"^[^@/\s]+@")


class RepoIdentity(BaseModel):
    """Identifier for a repository, derived from its remote URL."""

    model_config = ConfigDict(frozen=True)

    hash: str
    normalized_url: str
    original_url: str


def normalize_git_url(url: str) -> str:
    """Normalize a git URL to a canonical form for consistent hashing.

    Examples:
        git@github.com:user/repo.git -> github.com/user/repo
        https://github.com/user/repo.git -> github.com/user/repo
        https://github.com/user/repo -> github.com/user/repo
        ssh://git@github.com/user/repo.git -> github.com/user/repo

    Args:
        url: Remote URL in any supported format

    Returns:
        Normalized URL (idempotent)
    """
    normalized = _strip_suffixes(url.strip())
    if _HTTP_SCHEME_RE.match(normalized):
        normalized = _HTTP_SCHEME_RE.sub("", normalized)
        normalized = _USERINFO_RE.sub("", normalized)
    else:
        normalized = _SCP_RE.sub(r"\1/\2", normalized)
        normalized = _SSH_URL_RE.sub(r"\1/\2", normalized)
    return _strip_suffixes(normalized).lower()


def _strip_suffixes(url: str) -> str:
    """Strip trailing slashes and .git suffixes until neither is left."""
    previous = None
    while url != previous:
        previous = url
        url = _GIT_SUFFIX_RE.sub("", url.rstrip("/"))
    return url


def hash_remote_url(url: str) -> str:
    """Generate the short repository hash for a remote URL.

    Args:
        url: Remote URL

    Returns:
        First 8 hex characters of the SHA-256 of the normalized URL
    """
    digest = hashlib.sha256(normalize_git_url(url).encode("utf-8")).hexdigest()
    return digest[:HASH_LENGTH]


def get_repo_identity(remote_url: str) -> RepoIdentity:
    """Build the full repository identifier for a remote URL."""
    return RepoIdentity(
        hash=hash_remote_url(remote_url),
        normalized_url=normalize_git_url(remote_url),
        original_url=remote_url,
    )
