"""Branch name generation.

Branches follow the convention ``<type>/<agent>-<slug>``, for example
``fix/alice-login-redirect`` or ``feat/betty-work``.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

SLUG_MAX_LENGTH = 30
DEFAULT_SLUG = "work"


class BranchType(str, Enum):
    """Branch type prefixes."""

    FEAT = "feat"
    FIX = "fix"
    REFACTOR = "refactor"
    DOCS = "docs"
    TEST = "test"
    CHORE = "chore"


# Checked in order; the first type with a matching keyword wins
BRANCH_TYPE_KEYWORDS: tuple[tuple[BranchType, tuple[str, ...]], ...] = (
    (BranchType.FIX, ("fix", "bug", "issue")),
    (BranchType.TEST, ("test", "spec")),
    (BranchType.REFACTOR, ("refactor", "cleanup", "clean up")),
    (BranchType.DOCS, ("doc", "readme", "comment", "jsdoc")),
    (BranchType.CHORE, ("chore", "dep", "dependenc", "upgrade", "bump", "config")),
)


@dataclass(frozen=True)
class BranchSpec:
    """Inputs for a branch name."""

    type: BranchType
    agent_name: str
    description: Optional[str] = None


def slugify(text: str) -> str:
    """Convert text to a branch-safe slug.

    Examples:
        "Fix the auth bug!" -> "fix-the-auth-bug"
        "-fix bug-" -> "fix-bug"

    Args:
        text: Free text

    Returns:
        Lowercase hyphenated slug of at most 30 characters
    """
    slug = text.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    # Truncation can land right after a hyphen
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def infer_branch_type(
    description: str,
    keywords: Sequence[tuple[BranchType, Sequence[str]]] = BRANCH_TYPE_KEYWORDS,
) -> BranchType:
    """Infer the branch type from keywords in a task description.

    Examples:
        "fix the login bug" -> fix
        "write tests for auth" -> test
        "update deps" -> chore
        "add new feature" -> feat

    Args:
        description: Task description
        keywords: Ordered (type, keywords) table to match against

    Returns:
        The first matching branch type, or feat
    """
    lower = description.lower()
    for branch_type, words in keywords:
        if any(word in lower for word in words):
            return branch_type
    return BranchType.FEAT


def build_branch_name(spec: BranchSpec) -> str:
    """Build a branch name from a BranchSpec.

    Examples:
        BranchSpec(FEAT, "alice", "add auth") -> "feat/alice-add-auth"
        BranchSpec(FIX, "betty") -> "fix/betty-work"
    """
    slug = slugify(spec.description) if spec.description else ""
    return f"{spec.type.value}/{spec.agent_name}-{slug or DEFAULT_SLUG}"


def branch_name_for_agent(agent_name: str, description: Optional[str] = None) -> str:
    """Generate the branch name for an agent, inferring the type from the task.

    Args:
        agent_name: Agent name (e.g. "alice")
        description: Optional task description

    Returns:
        Branch name like "fix/alice-login-bug" or "feat/alice-work"
    """
    if description:
        return build_branch_name(
            BranchSpec(infer_branch_type(description), agent_name, description)
        )
    return build_branch_name(BranchSpec(BranchType.FEAT, agent_name))
