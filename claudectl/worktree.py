"""Git worktree management for claudectl.

Each repository gets one shared bare clone under <root>/repos/<hash>/bare,
and every agent works in its own worktree under <root>/repos/<hash>/worktrees/.
"""

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from claudectl.config import Config
from claudectl.errors import GitOperationError, WorktreeError

log = logging.getLogger("claudectl.worktree")

# `git clone --bare` always names its remote origin, whatever the user's
# checkout calls it.
REMOTE = "origin"

# Fetch into remote-tracking refs only. Git refuses to update a local branch
# that is checked out in any worktree.
FETCH_REFSPEC = "+refs/heads/*:refs/remotes/origin/*"

SHORT_COMMIT_LENGTH = 8

_REPO_NAME_RE = re.compile(r"[/:]([\w-]+/[\w.-]+?)(?:\.git)?$")


class WorktreeInfo(BaseModel):
    """An agent worktree known to a bare repository."""

    name: str
    path: Path
    branch: str
    commit: str


def run_git(args: Sequence[str], cwd: Path) -> str:
    """Run a git command and return its stdout.

    Args:
        args: Arguments after "git"
        cwd: Working directory

    Returns:
        Stripped stdout

    Raises:
        GitOperationError: If git exits non-zero, isn't installed, or cwd is missing
    """
    if not cwd.is_dir():
        raise GitOperationError(args, f"working directory {cwd} does not exist")

    log.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise GitOperationError(args, e.stderr) from e
    except FileNotFoundError as e:
        raise GitOperationError(args, "git executable not found") from e
    return (result.stdout or "").strip()


def ref_exists(cwd: Path, ref: str) -> bool:
    """Check whether a ref resolves in the repository at cwd."""
    try:
        run_git(["rev-parse", "--verify", "--quiet", ref], cwd=cwd)
        return True
    except GitOperationError:
        return False


def parse_worktree_list(output: str, worktrees_dir: Path) -> List[WorktreeInfo]:
    """Parse `git worktree list --porcelain` output.

    Only entries located under worktrees_dir are returned; the bare
    repository's own entry and unrelated worktrees are skipped.

    Args:
        output: Porcelain output
        worktrees_dir: Directory that agent worktrees live in

    Returns:
        List of WorktreeInfo
    """
    base = worktrees_dir.resolve()
    worktrees: List[WorktreeInfo] = []
    current: Dict[str, str] = {}

    def flush() -> None:
        path_str = current.get("worktree")
        if not path_str:
            return
        path = Path(path_str)
        try:
            relative = path.resolve().relative_to(base)
        except ValueError:
            return
        if not relative.parts:
            return
        worktrees.append(
            WorktreeInfo(
                name=relative.parts[0],
                path=path,
                branch=current.get("branch", "unknown").replace("refs/heads/", "", 1),
                commit=current.get("HEAD", "unknown")[:SHORT_COMMIT_LENGTH],
            )
        )

    for line in output.splitlines():
        line = line.strip()
        if not line:
            flush()
            current = {}
            continue
        key, _, value = line.partition(" ")
        current[key] = value

    flush()
    return worktrees


class WorktreeStore:
    """Owns the bare clones and agent worktrees under a claudectl root.

    Args:
        config: claudectl configuration (supplies the filesystem root)
    """

    def __init__(self, config: Config) -> None:
        self.config = config

    def bare_repo_exists(self, repo_hash: str) -> bool:
        return self.config.get_bare_repo_path(repo_hash).exists()

    def worktree_exists(self, repo_hash: str, agent_name: str) -> bool:
        return self.config.get_worktree_path(repo_hash, agent_name).exists()

    def ensure_bare_repo(self, remote_url: str, repo_hash: str) -> Path:
        """Make sure the bare clone exists and is up to date.

        Clones on first use, otherwise fetches all remote branches into
        remote-tracking refs and prunes stale ones. Safe to call before
        every spawn.

        Args:
            remote_url: URL to clone from
            repo_hash: Repository hash

        Returns:
            Path to the bare repository

        Raises:
            GitOperationError: If the clone or fetch fails
        """
        self.config.ensure_repo_dirs(repo_hash)
        bare_path = self.config.get_bare_repo_path(repo_hash)

        if not bare_path.exists():
            log.info("Cloning %s into %s", remote_url, bare_path)
            run_git(["clone", "--bare", remote_url, str(bare_path)], cwd=bare_path.parent)
            try:
                run_git(["remote", "set-head", REMOTE, "--auto"], cwd=bare_path)
            except GitOperationError as e:
                log.debug("Could not set remote HEAD for %s: %s", bare_path, e)
        else:
            self._fetch(bare_path)

        return bare_path

    def get_default_branch(self, bare_repo_path: Path) -> str:
        """Get the repository's default branch.

        Tries the remote's HEAD symbolic ref, then a local main branch,
        then falls back to master.

        Args:
            bare_repo_path: Path to the bare repository

        Returns:
            Default branch name
        """
        prefix = f"refs/remotes/{REMOTE}/"
        try:
            ref = run_git(["symbolic-ref", f"{prefix}HEAD"], cwd=bare_repo_path)
            if ref.startswith(prefix):
                return ref[len(prefix):]
        except GitOperationError:
            pass

        if ref_exists(bare_repo_path, "refs/heads/main"):
            return "main"
        return "master"

    def create_worktree(
        self,
        repo_hash: str,
        agent_name: str,
        branch_name: str,
        base_branch: Optional[str] = None,
    ) -> Path:
        """Create the worktree for an agent, replacing any existing one.

        If branch_name already exists it is checked out as-is; otherwise it
        is created from the base branch's remote-tracking ref, or from the
        local ref of the same name right after the initial clone.

        Args:
            repo_hash: Repository hash
            agent_name: Agent name
            branch_name: Branch to check out in the worktree
            base_branch: Branch to start new branches from (default: repo default)

        Returns:
            Path to the created worktree

        Raises:
            WorktreeError: If the bare repository does not exist
            GitOperationError: If git fails to add the worktree
        """
        bare_path = self.config.get_bare_repo_path(repo_hash)
        worktree_path = self.config.get_worktree_path(repo_hash, agent_name)

        if not bare_path.exists():
            raise WorktreeError(f"Bare repo does not exist at {bare_path}")

        if worktree_path.exists():
            self.remove_worktree(repo_hash, agent_name)
        # A worktree deleted by hand is still registered and blocks `worktree add`
        self._prune(bare_path)

        worktree_path.parent.mkdir(parents=True, exist_ok=True)
        base = base_branch or self.get_default_branch(bare_path)

        if ref_exists(bare_path, f"refs/heads/{branch_name}"):
            run_git(["worktree", "add", str(worktree_path), branch_name], cwd=bare_path)
        else:
            base_ref = self._resolve_base_ref(bare_path, base)
            run_git(
                ["worktree", "add", "-b", branch_name, str(worktree_path), base_ref],
                cwd=bare_path,
            )

        log.info("Created worktree %s on %s", worktree_path, branch_name)
        return worktree_path

    def remove_worktree(self, repo_hash: str, agent_name: str) -> None:
        """Remove an agent's worktree.

        Falls back to deleting the directory and pruning git's worktree
        metadata when `git worktree remove` fails. A worktree whose directory
        is already gone is only pruned from git's records.

        Raises:
            OSError: If the directory can't be deleted from disk
        """
        bare_path = self.config.get_bare_repo_path(repo_hash)
        worktree_path = self.config.get_worktree_path(repo_hash, agent_name)

        if not worktree_path.exists():
            if bare_path.exists():
                self._prune(bare_path)
            return

        try:
            run_git(["worktree", "remove", "--force", str(worktree_path)], cwd=bare_path)
            log.info("Removed worktree %s", worktree_path)
            return
        except GitOperationError as e:
            log.warning("git worktree remove failed for %s, deleting manually: %s", worktree_path, e)

        shutil.rmtree(worktree_path)
        if bare_path.exists():
            self._prune(bare_path)

    def list_worktrees(self, repo_hash: str) -> List[WorktreeInfo]:
        """List the agent worktrees of a repository.

        Returns:
            WorktreeInfo for each agent, or [] if there is no bare repo
        """
        bare_path = self.config.get_bare_repo_path(repo_hash)
        if not bare_path.exists():
            return []

        try:
            output = run_git(["worktree", "list", "--porcelain"], cwd=bare_path)
        except GitOperationError as e:
            log.warning("Could not list worktrees for %s: %s", repo_hash, e)
            return []

        return parse_worktree_list(output, self.config.get_worktrees_dir(repo_hash))

    def get_existing_agent_names(self, repo_hash: str) -> List[str]:
        return [wt.name for wt in self.list_worktrees(repo_hash)]

    def reset_worktree(
        self,
        repo_hash: str,
        agent_name: str,
        target_branch: str,
        base_branch: Optional[str] = None,
    ) -> None:
        """Reset a worktree to a clean checkout of target_branch.

        Fetches, checks out target_branch (creating it from the base if it
        doesn't exist locally), hard-resets to the remote-tracking branch
        when there is one, and removes untracked files.

        Raises:
            WorktreeError: If the worktree does not exist
            GitOperationError: If any git step fails
        """
        worktree_path = self._require_worktree(repo_hash, agent_name)

        self._fetch(worktree_path)
        self._checkout(worktree_path, target_branch, base_branch or target_branch)

        remote_ref = f"refs/remotes/{REMOTE}/{target_branch}"
        reset_to = remote_ref if ref_exists(worktree_path, remote_ref) else "HEAD"
        run_git(["reset", "--hard", reset_to], cwd=worktree_path)
        run_git(["clean", "-fd"], cwd=worktree_path)

    def switch_worktree_branch(
        self,
        repo_hash: str,
        agent_name: str,
        branch_name: str,
        base_branch: str,
    ) -> None:
        """Switch an existing worktree to another branch.

        Creates the branch from base_branch if it doesn't exist locally.

        Raises:
            WorktreeError: If the worktree does not exist
            GitOperationError: If any git step fails
        """
        worktree_path = self._require_worktree(repo_hash, agent_name)
        self._fetch(worktree_path)
        self._checkout(worktree_path, branch_name, base_branch)

    def list_repo_hashes(self) -> List[str]:
        """List the hashes of every repository under the root."""
        repos_dir = self.config.repos_dir
        if not repos_dir.exists():
            return []
        return sorted(p.name for p in repos_dir.iterdir() if p.is_dir())

    def get_repo_name(self, repo_hash: str) -> str:
        """Get a display name like "user/repo" from the bare repo's remote URL."""
        bare_path = self.config.get_bare_repo_path(repo_hash)
        try:
            url = run_git(["config", "--get", f"remote.{REMOTE}.url"], cwd=bare_path)
        except (GitOperationError, OSError):
            return "unknown"
        match = _REPO_NAME_RE.search(url)
        return match.group(1) if match else url

    def remove_empty_repos(self) -> List[str]:
        """Remove repository directories that have no worktrees left.

        Returns:
            Hashes of the removed repositories
        """
        removed = []
        for repo_hash in self.list_repo_hashes():
            worktrees_dir = self.config.get_worktrees_dir(repo_hash)
            if worktrees_dir.exists() and not any(worktrees_dir.iterdir()):
                shutil.rmtree(self.config.get_repo_dir(repo_hash))
                log.info("Removed empty repo directory %s", repo_hash)
                removed.append(repo_hash)
        return removed

    def _require_worktree(self, repo_hash: str, agent_name: str) -> Path:
        worktree_path = self.config.get_worktree_path(repo_hash, agent_name)
        if not worktree_path.exists():
            raise WorktreeError(f"Worktree does not exist at {worktree_path}")
        return worktree_path

    def _prune(self, bare_path: Path) -> None:
        """Drop git's records of worktrees whose directories are gone."""
        try:
            run_git(["worktree", "prune"], cwd=bare_path)
        except GitOperationError as e:
            log.warning("git worktree prune failed in %s: %s", bare_path, e)

    def _fetch(self, cwd: Path) -> None:
        run_git(["fetch", REMOTE, FETCH_REFSPEC, "--prune"], cwd=cwd)

    def _resolve_base_ref(self, cwd: Path, base_branch: str) -> str:
        remote_ref = f"refs/remotes/{REMOTE}/{base_branch}"
        if ref_exists(cwd, remote_ref):
            return remote_ref
        return base_branch

    def _checkout(self, worktree_path: Path, branch_name: str, base_branch: str) -> None:
        if ref_exists(worktree_path, f"refs/heads/{branch_name}"):
            run_git(["checkout", branch_name], cwd=worktree_path)
        else:
            base_ref = self._resolve_base_ref(worktree_path, base_branch)
            run_git(["checkout", "-b", branch_name, base_ref], cwd=worktree_path)
