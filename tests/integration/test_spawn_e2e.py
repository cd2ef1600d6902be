"""End-to-end lifecycle: spawn, list, prune and clean with real git."""

import random
import subprocess
from unittest.mock import patch

import pytest

from claudectl.names import NamePool
from claudectl.workflows import (
    AgentStatus,
    CleanRequest,
    CleanWorkflow,
    PruneRequest,
    PruneWorkflow,
    SpawnRequest,
    SpawnWorkflow,
    list_agents,
)
from claudectl.worktree import WorktreeStore


@pytest.fixture
def spawn(config, upstream_context, fake_launcher):
    def run(request: SpawnRequest, launcher=None):
        return SpawnWorkflow(
            request,
            config,
            repo_resolver=lambda: upstream_context,
            launcher_factory=lambda name: launcher or fake_launcher,
            pool=NamePool(rng=random.Random(7)),
        ).run()

    return run


def _clone_calls(mock_run) -> int:
    return sum(1 for c in mock_run.call_args_list if c.args[0][:2] == ["git", "clone"])


class TestSpawnLifecycle:
    def test_spawn_two_agents(self, spawn, config, upstream_context, fake_launcher, git) -> None:
        with patch("subprocess.run", wraps=subprocess.run) as mock_run:
            state = spawn(SpawnRequest(count=2, notify=False))

        assert state.phase == "done"
        assert [a.status for a in state.agents] == [AgentStatus.RUNNING, AgentStatus.RUNNING]
        assert _clone_calls(mock_run) == 1

        for agent in state.agents:
            assert agent.worktree_path.is_dir()
            assert git("rev-parse", "--abbrev-ref", "HEAD", cwd=agent.worktree_path) == agent.branch
        assert [name for name, _, _ in fake_launcher.launched] == [a.name for a in state.agents]

        report = list_agents(config, repo_resolver=lambda: upstream_context)
        assert report.total == 2
        assert {a.name for a in report.repos[0].agents} == {a.name for a in state.agents}

    def test_second_spawn_reuses_clone_and_agents(self, spawn, make_launcher) -> None:
        first = spawn(SpawnRequest(count=2, notify=False))

        with patch("subprocess.run", wraps=subprocess.run) as mock_run:
            second = spawn(SpawnRequest(count=2, notify=False), launcher=make_launcher())

        assert _clone_calls(mock_run) == 0
        assert {a.name for a in second.agents} == {a.name for a in first.agents}
        assert all(a.is_reused for a in second.agents)
        assert second.running_count == 2

    def test_agent_flag_switches_branch(self, spawn, git) -> None:
        first = spawn(SpawnRequest(count=1, notify=False))
        name = first.agents[0].name

        state = spawn(SpawnRequest(agent_name=name, task="fix login bug", notify=False))

        assert state.running_count == 1
        path = state.agents[0].worktree_path
        assert git("rev-parse", "--abbrev-ref", "HEAD", cwd=path) == f"fix/{name}-fix-login-bug"

    def test_launch_failure_keeps_worktree(self, make_launcher, config, upstream_context) -> None:
        launcher = make_launcher(fail_for={"alice", "betty", "clara"})
        pool_names = ("alice", "betty", "clara", "diana")
        state = SpawnWorkflow(
            SpawnRequest(count=4, notify=False),
            config,
            repo_resolver=lambda: upstream_context,
            launcher_factory=lambda name: launcher,
            pool=NamePool(names=pool_names, rng=random.Random(0)),
        ).run()

        assert state.phase == "done"
        assert state.running_count == 1
        assert state.failed_count == 3
        # The worktrees were created before the launch failed
        store = WorktreeStore(config)
        assert sorted(store.get_existing_agent_names(upstream_context.repo_hash)) == list(pool_names)


class TestTeardown:
    def test_prune_all_removes_repo_dir(self, spawn, config, upstream_context) -> None:
        spawn(SpawnRequest(count=2, notify=False))

        state = PruneWorkflow(
            PruneRequest(all_repos=True, force=True),
            config,
            repo_resolver=lambda: upstream_context,
        ).run()

        assert state.phase == "done"
        assert state.removed == 2
        assert state.removed_repos == (upstream_context.repo_hash,)
        assert not config.get_repo_dir(upstream_context.repo_hash).exists()

    def test_clean_closes_tabs_and_removes(self, spawn, config, upstream_context, make_launcher) -> None:
        spawned = spawn(SpawnRequest(count=2, notify=False))
        launcher = make_launcher(close_result=2)

        state = CleanWorkflow(
            CleanRequest(force=True),
            config,
            repo_resolver=lambda: upstream_context,
            launcher_factory=lambda name: launcher,
        ).run()

        assert state.phase == "done"
        assert state.tabs_closed == 2
        assert state.removed == 2
        assert {wt.name for wt in launcher.closed} == {a.name for a in spawned.agents}
        assert WorktreeStore(config).list_worktrees(upstream_context.repo_hash) == []
        # clean keeps the bare clone for the next spawn
        assert config.get_bare_repo_path(upstream_context.repo_hash).exists()

    def test_prune_all_keeps_repo_with_failed_removal(self, spawn, config, upstream_context) -> None:
        spawned = spawn(SpawnRequest(count=2, notify=False))
        stuck = spawned.agents[0].name
        real_remove = WorktreeStore.remove_worktree

        def remove(store, repo_hash, name):
            if name == stuck:
                raise OSError("Device or resource busy")
            real_remove(store, repo_hash, name)

        with patch.object(WorktreeStore, "remove_worktree", remove):
            state = PruneWorkflow(
                PruneRequest(all_repos=True, force=True),
                config,
                repo_resolver=lambda: upstream_context,
            ).run()

        assert state.phase == "done"
        assert state.removed == 1
        assert [f.name for f in state.failures] == [stuck]
        assert state.removed_repos == ()
        assert config.get_repo_dir(upstream_context.repo_hash).exists()
        assert WorktreeStore(config).get_existing_agent_names(upstream_context.repo_hash) == [stuck]
