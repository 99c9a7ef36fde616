# tests/conftest.py

import os
from collections import namedtuple
from typing import Any, Dict, List, Optional, Tuple

import pytest

from forgery.core.paths import CategoryPaths
from forgery.core.repo_types import RepoTypes
from forgery.core.types import GistDescriptor, IdentityKind, RepoDescriptor
from forgery.utils.git import GitCommandError
from forgery.utils.tags import TagToolError

Call = namedtuple('Call', ['path', 'method', 'args', 'kwargs'])


# ---- Git test double ----

class GitRecorder:
    """
    Factory standing in for forgery.utils.git.Git.

    Every FakeGit it builds records its calls here, so tests can assert on
    command order across working directories. Failures and outputs are
    configured per method name; a callable receives (path, args).
    """

    def __init__(self):
        self.calls: List[Call] = []
        self.failures: Dict[str, Any] = {}
        self.outputs: Dict[str, Any] = {}
        self.unreachable: set = set()
        self.remotes: Dict[str, List[str]] = {}
        self.config: Dict[Tuple[str, str], str] = {}

    def __call__(self, path: str) -> 'FakeGit':
        return FakeGit(path, self)

    def fail(self, method: str, returncode: int = 1, stderr: str = "boom", only_path: Optional[str] = None):
        """Make a method raise GitCommandError (optionally only for one path)."""
        def failure(path, args):
            if only_path is None or path == only_path:
                return GitCommandError([method, *map(str, args)], returncode, stderr)
            return None
        self.failures[method] = failure

    def methods(self, path: Optional[str] = None) -> List[str]:
        return [c.method for c in self.calls if path is None or c.path == path]

    def commands(self, path: Optional[str] = None) -> List[Tuple]:
        return [(c.method, *c.args) for c in self.calls if path is None or c.path == path]


class FakeGit:
    def __init__(self, path: str, recorder: GitRecorder):
        self.path = path
        self.recorder = recorder

    def _call(self, method: str, *args, default=None, **kwargs):
        self.recorder.calls.append(Call(self.path, method, args, kwargs))
        failure = self.recorder.failures.get(method)
        if failure is not None:
            error = failure(self.path, args)
            if error is not None:
                raise error
        if method in self.recorder.outputs:
            output = self.recorder.outputs[method]
            return output(self.path, args) if callable(output) else output
        return default

    def clone(self, url, directory=None):
        self._call('clone', url, directory)
        target = os.path.join(self.path, directory or os.path.basename(url))
        os.makedirs(os.path.join(target, '.git'), exist_ok=True)
        self.recorder.remotes[target] = ['origin']

    def remote_exists(self, url):
        self.recorder.calls.append(Call(self.path, 'remote_exists', (url,), {}))
        return url not in self.recorder.unreachable

    def rename_remote(self, old, new):
        self._call('rename_remote', old, new)
        remotes = self.recorder.remotes.setdefault(self.path, [])
        self.recorder.remotes[self.path] = [new if r == old else r for r in remotes]

    def add_remote(self, name, url):
        self._call('add_remote', name, url)
        self.recorder.remotes.setdefault(self.path, []).append(name)

    def remotes(self):
        self._call('remotes')
        return list(self.recorder.remotes.get(self.path, []))

    def config_set(self, key, value):
        self._call('config_set', key, value)
        self.recorder.config[(self.path, key)] = value

    def symbolic_ref(self, ref):
        return self._call('symbolic_ref', ref, default='refs/remotes/fork/main')

    def set_remote_head(self, remote):
        self._call('set_remote_head', remote)

    def current_branch(self):
        return self._call('current_branch', default='main')

    def fetch(self, remote):
        self._call('fetch', remote)

    def pull(self, remote, branch=None, rebase=False):
        self._call('pull', remote, branch, rebase=rebase)

    def push(self, remote, branch=None, set_upstream=False):
        self._call('push', remote, branch, set_upstream=set_upstream)

    def submodule_update(self, init=True, recursive=True, rebase=False):
        self._call('submodule_update', init=init, recursive=recursive, rebase=rebase)

    def status_short(self):
        return self._call('status_short', default='')

    def checkout(self, branch, create=False):
        self._call('checkout', branch, create=create)

    def add_all(self):
        self._call('add_all')

    def commit(self, message):
        self._call('commit', message)

    def branches(self):
        return self._call('branches', default=['main'])

    def unpushed_count(self, branch):
        return self._call('unpushed_count', branch, default=0)


# ---- Tag tool test double ----

class FakeTagTool:
    """In-memory stand-in for the `tag` executable."""

    def __init__(self):
        self.tags: Dict[str, List[str]] = {}
        self.calls: List[Tuple] = []
        self.broken = False

    def _check(self):
        if self.broken:
            raise TagToolError("'tag' is not installed")

    def read_tags(self, path):
        self._check()
        self.calls.append(('read', path))
        return list(self.tags.get(path, []))

    def add_tags(self, path, tags):
        self._check()
        tags = list(tags)
        self.calls.append(('add', path, tags))
        current = self.tags.setdefault(path, [])
        current.extend(t for t in tags if t not in current)

    def remove_tags(self, path, tags):
        self._check()
        tags = list(tags)
        self.calls.append(('remove', path, tags))
        self.tags[path] = [t for t in self.tags.get(path, []) if t not in tags]


# ---- Descriptor factories ----

def make_repo(name="foo", owner="alice", **kwargs) -> RepoDescriptor:
    """
    Returns a RepoDescriptor with sensible defaults for testing.
    """
    kwargs.setdefault('ssh_url', f"git@github.com:{owner}/{name}.git")
    kwargs.setdefault('topics', ())
    return RepoDescriptor(name=name, owner=owner, **kwargs)


def make_fork(name="foo", owner="alice", parent_owner="upstream-org", **kwargs) -> RepoDescriptor:
    parent = make_repo(name, parent_owner, topics=kwargs.pop('parent_topics', ()))
    return make_repo(name, owner, is_fork=True, parent=parent, **kwargs)


def make_gist(gist_id="abc123", display_name="notes.md", owner="alice", **kwargs) -> GistDescriptor:
    kwargs.setdefault('is_public', True)
    kwargs.setdefault('pull_url', f"https://gist.github.com/{gist_id}.git")
    return GistDescriptor(id=gist_id, display_name=display_name, owner=owner, **kwargs)


# ---- Fixtures ----

@pytest.fixture
def git():
    return GitRecorder()


@pytest.fixture
def tag_tool():
    return FakeTagTool()


@pytest.fixture
def layout(tmp_path):
    """User layout under a temporary base path, every category enabled."""
    return CategoryPaths(str(tmp_path), IdentityKind.USER, "alice", RepoTypes())
