"""Sync operation: reconcile local clones with the remote listing.

For every enabled category directory, each local entry is matched by name
against the remote descriptors of that category:

* no match: left alone, or deleted when pruning is enabled
* match: fetched and pulled (fork remote first, then upstream, for forks),
  optionally pushed, re-tagged, and its submodules updated
"""

import os
import shutil
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Set

from .base import Operation, OperationResult, GitFactory
from .clone import FORK_REMOTE, UPSTREAM_REMOTE
from ..core.classifier import namespace_for
from ..core.github_client import ForgeAPIError
from ..core.types import (
    CategoryPath,
    Descriptor,
    DescriptorError,
    LocalEntry,
    RemoteRegistry,
    RepoDescriptor,
)
from ..utils.git import Git, GitCommandError
from ..utils.progress import log_result
from ..utils.tags import TagSynchronizer

logger = logging.getLogger('forgery')

ORIGIN_REMOTE = "origin"
WIKI_SUFFIX = ".wiki"


@dataclass(frozen=True)
class SyncOptions:
    """Resolved sync flags for one run."""
    prune: bool = False
    pull_with_rebase: bool = False
    push_after_rebase: bool = False
    push_to_fork_remotes: bool = False
    rebase_submodules: bool = False


class SyncStepError(Exception):
    """A step of the pull sequence failed; later steps must not run."""

    def __init__(self, step: str, cause: object):
        self.step = step
        super().__init__(f"{step} failed: {cause}")


def _step(step: str, func, *args, **kwargs):
    try:
        return func(*args, **kwargs)
    except GitCommandError as e:
        raise SyncStepError(step, e) from e


def _checked_out_branch(git: Git) -> str:
    branch = _step("reading current branch", git.current_branch)
    if branch is None:
        raise SyncStepError("reading current branch", "HEAD is detached")
    return branch


class Reconciler:
    """Reconciles one category directory against its remote slice."""

    def __init__(
        self,
        git_factory: Optional[GitFactory] = None,
        tag_synchronizer: Optional[TagSynchronizer] = None,
        parent_resolver: Optional[Callable[[RepoDescriptor], Optional[RepoDescriptor]]] = None
    ):
        """Initialize reconciler.

        Args:
            git_factory: Builds a git runner for a path
            tag_synchronizer: Refreshes repository tags (None: no tagging)
            parent_resolver: Reads a fork's parent when the listing lacks it
        """
        self.git_factory: GitFactory = git_factory or Git
        self.tag_synchronizer = tag_synchronizer
        self.parent_resolver = parent_resolver

    # Discovery and matching

    def scan_entries(self, category_path: CategoryPath) -> List[LocalEntry]:
        """List the local entries of a category directory, in listing order.

        Nested categories hold entries one level down, under owner
        directories. Plain files are ignored.
        """
        root = category_path.path
        if not os.path.isdir(root):
            return []

        entries = []
        if category_path.category.nested:
            for owner in os.listdir(root):
                owner_dir = os.path.join(root, owner)
                if not os.path.isdir(owner_dir):
                    continue
                for name in os.listdir(owner_dir):
                    full_path = os.path.join(owner_dir, name)
                    if os.path.isdir(full_path):
                        entries.append(LocalEntry(name, full_path, category_path, namespace=owner))
        else:
            for name in os.listdir(root):
                full_path = os.path.join(root, name)
                if os.path.isdir(full_path):
                    entries.append(LocalEntry(name, full_path, category_path))
        return entries

    def match(self, entry: LocalEntry, remote_slice: Iterable[Descriptor],
              name: Optional[str] = None) -> Optional[Descriptor]:
        """Find the descriptor for a local entry by exact name.

        The first descriptor wins. For nested entries the owner directory
        must agree with the descriptor's namespace when that is known.
        """
        name = name or entry.name
        category = entry.category_path.category
        for descriptor in remote_slice:
            if descriptor.name != name:
                continue
            if entry.namespace is not None:
                namespace = namespace_for(category, descriptor)
                if namespace is not None and namespace != entry.namespace:
                    continue
            return descriptor
        return None

    def match_wiki(self, entry: LocalEntry, remote_slice: Iterable[Descriptor]) -> Optional[RepoDescriptor]:
        """Find the repository a `<name>.wiki` directory belongs to."""
        if entry.category_path.category.is_gist or not entry.name.endswith(WIKI_SUFFIX):
            return None
        base_name = entry.name[:-len(WIKI_SUFFIX)]
        descriptor = self.match(entry, remote_slice, name=base_name)
        return descriptor if isinstance(descriptor, RepoDescriptor) else None

    # Reconciliation

    def reconcile(
        self,
        category_path: CategoryPath,
        remote_slice: List[Descriptor],
        options: SyncOptions,
        unresolved: Optional[Set[str]] = None
    ) -> List[OperationResult]:
        """Reconcile a category directory with its remote descriptors.

        Args:
            category_path: Category directory to reconcile
            remote_slice: Remote descriptors classified into this category
            options: Sync flags
            unresolved: Names whose remote descriptor could not be built;
                these are never pruned

        Returns:
            One result per local entry
        """
        if not os.path.isdir(category_path.path):
            logger.debug(f"{category_path.path} does not exist, nothing to reconcile")
            return []

        unresolved = unresolved or set()
        results = []
        for entry in self.scan_entries(category_path):
            descriptor = self.match(entry, remote_slice)
            if descriptor is not None:
                result = self.reconcile_entry(entry, descriptor, options)
            else:
                wiki_owner = self.match_wiki(entry, remote_slice)
                if wiki_owner is not None:
                    result = self.sync_wiki(entry, wiki_owner, options)
                else:
                    result = self.handle_unmatched(entry, options, unresolved)
            log_result(result)
            results.append(result)
        return results

    def handle_unmatched(self, entry: LocalEntry, options: SyncOptions, unresolved: Set[str]) -> OperationResult:
        """Leave or prune a local entry that has no remote counterpart.

        Pruning deletes the whole working tree, uncommitted changes included.
        """
        display = self._display_name(entry)
        if not options.prune:
            logger.info(f"{entry.full_path} has no remote counterpart, leaving it in place")
            return OperationResult.skip("No remote match", entry.name, display)

        base_name = entry.name[:-len(WIKI_SUFFIX)] if entry.name.endswith(WIKI_SUFFIX) else entry.name
        if entry.name in unresolved or base_name in unresolved:
            logger.warning(f"Not pruning {entry.full_path}: its remote listing entry could not be read")
            return OperationResult.skip("Remote descriptor unresolved, not pruned", entry.name, display)

        logger.warning(f"Pruning {entry.full_path}: no longer present remotely")
        try:
            shutil.rmtree(entry.full_path)
        except OSError as e:
            return OperationResult.failure(f"Prune failed: {e}", entry.name, display)
        return OperationResult.succeeded("Pruned", entry.name, display)

    def reconcile_entry(self, entry: LocalEntry, descriptor: Descriptor, options: SyncOptions) -> OperationResult:
        """Pull, tag and update submodules for one matched entry."""
        category = entry.category_path.category
        git = self.git_factory(entry.full_path)
        errors = []

        try:
            self.pull_sequence(git, category.is_fork, options)
        except SyncStepError as e:
            logger.error(f"Failed to sync {entry.full_path}: {e}")
            errors.append(str(e))

        # Gists carry no topics or language
        if isinstance(descriptor, RepoDescriptor) and self.tag_synchronizer:
            tag_source = self.tag_source(descriptor) if category.is_fork else descriptor
            if tag_source is not None:
                self.tag_synchronizer.sync_tags(tag_source, entry.full_path, clear_first=True)

        try:
            git.submodule_update(init=True, recursive=True, rebase=options.rebase_submodules)
        except GitCommandError as e:
            logger.error(f"Failed to update submodules in {entry.full_path}: {e}")
            errors.append(f"submodule update failed: {e}")

        if errors:
            return OperationResult.failure("; ".join(errors), entry.name, descriptor.full_name)
        return OperationResult.succeeded("Synced", entry.name, descriptor.full_name)

    def tag_source(self, fork: RepoDescriptor) -> Optional[RepoDescriptor]:
        """Repository whose topics a fork's clone carries: its parent.

        Listings of the authenticated user's repositories omit the parent, so
        it is read through the resolver. Returns None, leaving the tags as
        they are, when the parent cannot be read.
        """
        if fork.parent is not None:
            return fork.parent
        if self.parent_resolver is None:
            return fork
        try:
            parent = self.parent_resolver(fork)
        except (ForgeAPIError, DescriptorError) as e:
            logger.warning(f"Not refreshing tags of {fork.full_name}: could not read fork parent: {e}")
            return None
        if parent is None:
            logger.warning(f"Not refreshing tags of {fork.full_name}: no fork parent information")
        return parent

    def pull_sequence(self, git: Git, is_fork: bool, options: SyncOptions) -> None:
        """Fetch and pull the current branch, then push if requested.

        Forks fetch and pull `fork` before `upstream`; everything else uses
        `origin`.

        Raises:
            SyncStepError: Naming the first step that failed
        """
        branch = None
        remotes = [FORK_REMOTE, UPSTREAM_REMOTE] if is_fork else [ORIGIN_REMOTE]
        for remote in remotes:
            _step(f"fetch {remote}", git.fetch, remote)
            if branch is None:
                branch = _checked_out_branch(git)
            _step(f"pull {remote}", git.pull, remote, branch, rebase=options.pull_with_rebase)

        if is_fork:
            if options.push_to_fork_remotes:
                _step(f"push {FORK_REMOTE}", git.push, FORK_REMOTE, branch)
        elif options.pull_with_rebase and options.push_after_rebase:
            _step(f"push {ORIGIN_REMOTE}", git.push, ORIGIN_REMOTE, branch)

    def sync_wiki(self, entry: LocalEntry, repo: RepoDescriptor, options: SyncOptions) -> OperationResult:
        """Fetch and pull a wiki clone from origin."""
        git = self.git_factory(entry.full_path)
        full_name = f"{repo.full_name}{WIKI_SUFFIX}"
        try:
            _step(f"fetch {ORIGIN_REMOTE}", git.fetch, ORIGIN_REMOTE)
            branch = _checked_out_branch(git)
            _step(f"pull {ORIGIN_REMOTE}", git.pull, ORIGIN_REMOTE, branch, rebase=options.pull_with_rebase)
        except SyncStepError as e:
            logger.error(f"Failed to sync wiki {entry.full_path}: {e}")
            return OperationResult.failure(str(e), entry.name, full_name)
        return OperationResult.succeeded("Wiki synced", entry.name, full_name)

    @staticmethod
    def _display_name(entry: LocalEntry) -> str:
        if entry.namespace:
            return f"{entry.namespace}/{entry.name}"
        return entry.name


class SyncOperation(Operation):
    """Reconcile every enabled category directory with the remote listing."""

    name = "sync"
    description = "Pull, push, re-tag and optionally prune cloned repositories and gists"
    creates_directories = False
    needs_registry = True

    def __init__(self, layout, repo_types, git_factory=None, tag_synchronizer=None,
                 parent_resolver=None, sync_options: Optional[SyncOptions] = None, **kwargs):
        super().__init__(layout, repo_types, git_factory)
        self.options = sync_options or SyncOptions()
        self.reconciler = Reconciler(self.git_factory, tag_synchronizer, parent_resolver)
        if self.options.prune:
            logger.warning("Pruning is enabled: local clones missing remotely are deleted "
                           "without checking for uncommitted changes")

    def execute(self, registry: Optional[RemoteRegistry]) -> List[OperationResult]:
        registry = registry or RemoteRegistry()
        results = []
        for category_path in self.selected_paths():
            logger.info(f"Reconciling {category_path.category.label} in {category_path.path}")
            results.extend(self.reconciler.reconcile(
                category_path,
                registry.slice(category_path.category),
                self.options,
                registry.unresolved
            ))
        return results
