# tests/test_types.py

import pytest

from forgery.core.types import (
    Category, DescriptorError, GistDescriptor, IndexState, RemoteRegistry,
    RepoDescriptor, RepoSummary
)

from conftest import make_repo


def repo_payload(**overrides):
    payload = {
        "id": 42,
        "name": "widget",
        "owner": {"login": "alice", "type": "User"},
        "ssh_url": "git@github.com:alice/widget.git",
        "private": False,
        "fork": False,
        "has_wiki": True,
        "language": "Python",
        "topics": ["cli", "git"],
    }
    payload.update(overrides)
    return payload


# ---- RepoDescriptor ----

def test_repo_from_api():
    repo = RepoDescriptor.from_api(repo_payload())

    assert repo.full_name == "alice/widget"
    assert repo.topics == ("cli", "git")
    assert repo.has_wiki
    assert repo.organization is None
    assert repo.wiki_url == "git@github.com:alice/widget.wiki.git"


def test_repo_without_topics_key_needs_fetch():
    payload = repo_payload()
    del payload["topics"]
    assert RepoDescriptor.from_api(payload).topics is None


def test_repo_owned_by_organization():
    repo = RepoDescriptor.from_api(repo_payload(owner={"login": "acme", "type": "Organization"}))
    assert repo.organization == "acme"


@pytest.mark.parametrize("field_name,overrides", [
    ("name", {"name": None}),
    ("owner.login", {"owner": {}}),
    ("ssh_url", {"ssh_url": ""}),
])
def test_repo_missing_required_field(field_name, overrides):
    with pytest.raises(DescriptorError) as excinfo:
        RepoDescriptor.from_api(repo_payload(**overrides))
    assert excinfo.value.field_name == field_name
    assert "42" in str(excinfo.value)


def test_fork_parent_is_parsed():
    parent = repo_payload(name="widget", owner={"login": "upstream"},
                          ssh_url="git@github.com:upstream/widget.git")
    repo = RepoDescriptor.from_api(repo_payload(fork=True, parent=parent))

    assert repo.is_fork
    assert repo.parent.full_name == "upstream/widget"


def test_fork_parent_missing_ssh_url():
    parent = repo_payload(owner={"login": "upstream"}, ssh_url=None)
    with pytest.raises(DescriptorError) as excinfo:
        RepoDescriptor.from_api(repo_payload(fork=True, parent=parent))
    assert excinfo.value.field_name == "parent.ssh_url"


def test_parent_requires_fork_flag():
    with pytest.raises(ValueError):
        make_repo(is_fork=False, parent=make_repo(owner="someone"))


# ---- GistDescriptor ----

def test_gist_display_name_is_first_filename():
    gist = GistDescriptor.from_api({
        "id": "g1",
        "public": True,
        "git_pull_url": "https://gist.github.com/g1.git",
        "owner": {"login": "alice"},
        "files": {"hello.py": {"filename": "hello.py"}, "b.txt": {"filename": "b.txt"}},
    })
    assert gist.name == "hello.py"
    assert gist.full_name == "alice/hello.py"


def test_gist_display_name_falls_back_to_id():
    gist = GistDescriptor.from_api({
        "id": "g1", "public": False, "git_pull_url": "https://gist.github.com/g1.git", "files": {},
    })
    assert gist.name == "g1"
    assert not gist.is_public


@pytest.mark.parametrize("missing", ["id", "git_pull_url", "public"])
def test_gist_missing_required_field(missing):
    payload = {"id": "g1", "public": True, "git_pull_url": "https://gist.github.com/g1.git"}
    del payload[missing]
    with pytest.raises(DescriptorError):
        GistDescriptor.from_api(payload)


def test_gist_fork_of_is_parsed():
    gist = GistDescriptor.from_api({
        "id": "g2", "public": True, "git_pull_url": "https://gist.github.com/g2.git",
        "fork_of": {"id": "g1", "public": True, "git_pull_url": "https://gist.github.com/g1.git",
                    "owner": {"login": "bob"}},
    })
    assert gist.fork_of.owner == "bob"


# ---- Category, registry and summaries ----

def test_category_from_path():
    assert Category.from_path("/m/user/alice/repos/forked/bob/x") == Category.FORKED_REPO
    assert Category.from_path("/m/user/alice/gists/public/notes.md") == Category.PUBLIC_GIST
    assert Category.from_path("/m/elsewhere/x") is None


def test_category_labels():
    assert Category.STARRED_REPO.label == "Starred Repositories"
    assert Category.PRIVATE_GIST.label == "Private Gists"


def test_registry_slices():
    registry = RemoteRegistry()
    registry.add(Category.PUBLIC_REPO, make_repo("a"))
    registry.add(Category.PUBLIC_REPO, make_repo("b"))

    assert [r.name for r in registry.slice(Category.PUBLIC_REPO)] == ["a", "b"]
    assert registry.slice(Category.FORKED_REPO) == []
    assert len(registry) == 2


@pytest.mark.parametrize("state,branch_info,flags", [
    (IndexState.CLEAN, [], ""),
    (IndexState.DIRTY, [], "M"),
    (IndexState.PRESERVED, [], "W"),
    (IndexState.DIRTY, [("main", 2)], "MP"),
    (IndexState.CLEAN, [("main", 1)], "P"),
])
def test_summary_flags(state, branch_info, flags):
    summary = RepoSummary("/m/user/alice/repos/public/foo", state, branch_info)
    assert summary.flags == flags
    assert summary.needs_report == bool(flags)
    assert summary.name == "foo"
