# tests/test_classifier.py

import os

import pytest

from forgery.core.classifier import (
    classify_gist, classify_repo, namespace_for, placement_root, should_dedupe
)
from forgery.core.types import Category

from conftest import make_fork, make_gist, make_repo


@pytest.mark.parametrize("is_fork", [True, False])
@pytest.mark.parametrize("is_private", [True, False])
def test_fork_wins_over_visibility(is_fork, is_private):
    repo = make_repo(is_fork=is_fork, is_private=is_private)
    category = classify_repo(repo)

    if is_fork:
        assert category == Category.FORKED_REPO
    elif is_private:
        assert category == Category.PRIVATE_REPO
    else:
        assert category == Category.PUBLIC_REPO


def test_starred_listing_wins():
    assert classify_repo(make_fork(is_private=True), starred=True) == Category.STARRED_REPO
    assert classify_gist(make_gist(), starred=True) == Category.STARRED_GIST


def test_gist_classification():
    parent = make_gist("parent1", owner="bob")
    assert classify_gist(make_gist(fork_of=parent, is_public=False)) == Category.FORKED_GIST
    assert classify_gist(make_gist(is_public=True)) == Category.PUBLIC_GIST
    assert classify_gist(make_gist(is_public=False)) == Category.PRIVATE_GIST


def test_namespace_for_forks_is_parent_owner():
    fork = make_fork(owner="alice", parent_owner="torvalds")
    assert namespace_for(Category.FORKED_REPO, fork) == "torvalds"

    gist = make_gist(fork_of=make_gist("p", owner="bob"))
    assert namespace_for(Category.FORKED_GIST, gist) == "bob"


def test_namespace_for_starred_is_own_owner_and_flat_is_none():
    repo = make_repo(owner="carol")
    assert namespace_for(Category.STARRED_REPO, repo) == "carol"
    assert namespace_for(Category.PUBLIC_REPO, repo) is None


def test_placement_root(tmp_path):
    root = str(tmp_path)
    assert placement_root(Category.PUBLIC_REPO, make_repo(), root) == root
    assert placement_root(Category.FORKED_REPO, make_fork(parent_owner="x"), root) == os.path.join(root, "x")


def test_placement_root_requires_namespace(tmp_path):
    fork_without_parent = make_repo(is_fork=True)
    with pytest.raises(ValueError):
        placement_root(Category.FORKED_REPO, fork_without_parent, str(tmp_path))


def test_should_dedupe():
    org_repo = make_repo(owner="acme", organization="acme")
    own_repo = make_repo()

    assert should_dedupe(org_repo, organization_mode=False, dedupe_org_repos=True)
    assert not should_dedupe(own_repo, organization_mode=False, dedupe_org_repos=True)
    assert not should_dedupe(org_repo, organization_mode=True, dedupe_org_repos=True)
    assert not should_dedupe(org_repo, organization_mode=False, dedupe_org_repos=False)
