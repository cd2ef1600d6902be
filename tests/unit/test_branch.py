"""Tests for branch name generation."""

import re

import pytest

from claudectl.branch import (
    BranchSpec,
    BranchType,
    branch_name_for_agent,
    build_branch_name,
    infer_branch_type,
    slugify,
)


class TestSlugify:
    """Tests for slugify."""

    def test_basic(self) -> None:
        assert slugify("Fix Auth Bug") == "fix-auth-bug"

    def test_strips_edge_hyphens(self) -> None:
        assert slugify("-fix bug-") == "fix-bug"

    def test_drops_punctuation(self) -> None:
        assert slugify("Fix the auth bug!") == "fix-the-auth-bug"

    def test_collapses_hyphens_and_spaces(self) -> None:
        assert slugify("a  --  b") == "a-b"

    def test_empty(self) -> None:
        assert slugify("!!!") == ""

    @pytest.mark.parametrize(
        "text",
        [
            "a very long description that goes on and on and on",
            "abcdefghijklmnopqrstuvwxyzabc defg",
            "Implement OAuth2 login for the admin dashboard",
        ],
    )
    def test_bounded_and_clean(self, text: str) -> None:
        slug = slugify(text)
        assert len(slug) <= 30
        assert re.fullmatch(r"[a-z0-9-]*", slug)
        assert not slug.startswith("-")
        assert not slug.endswith("-")
        assert "--" not in slug


class TestInferBranchType:
    """Tests for infer_branch_type."""

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("fix the login bug", BranchType.FIX),
            ("write tests for auth", BranchType.TEST),
            ("refactor the parser", BranchType.REFACTOR),
            ("update the README", BranchType.DOCS),
            ("update deps", BranchType.CHORE),
            ("bump version", BranchType.CHORE),
            ("add new feature", BranchType.FEAT),
        ],
    )
    def test_keywords(self, description: str, expected: BranchType) -> None:
        assert infer_branch_type(description) == expected

    def test_fix_wins_over_test(self) -> None:
        assert infer_branch_type("fix the flaky test") == BranchType.FIX

    def test_custom_keywords(self) -> None:
        table = ((BranchType.DOCS, ("wiki",)),)
        assert infer_branch_type("edit the wiki", keywords=table) == BranchType.DOCS
        assert infer_branch_type("fix a bug", keywords=table) == BranchType.FEAT


class TestBranchNames:
    def test_build_branch_name(self) -> None:
        spec = BranchSpec(BranchType.FEAT, "alice", "add auth")
        assert build_branch_name(spec) == "feat/alice-add-auth"

    def test_build_without_description(self) -> None:
        assert build_branch_name(BranchSpec(BranchType.FIX, "betty")) == "fix/betty-work"

    def test_description_without_slug_characters(self) -> None:
        assert build_branch_name(BranchSpec(BranchType.FEAT, "clara", "!!!")) == "feat/clara-work"

    def test_for_agent_with_task(self) -> None:
        assert branch_name_for_agent("alice", "fix the login bug") == "fix/alice-fix-the-login-bug"

    def test_for_agent_without_task(self) -> None:
        assert branch_name_for_agent("alice") == "feat/alice-work"
