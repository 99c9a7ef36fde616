"""Clone operation: acquire repositories, forks, wikis and gists."""

import os
import logging
from typing import Callable, List, Optional

from .base import Operation, OperationResult, GitFactory
from ..core.classifier import placement_root
from ..core.github_client import ForgeAPIError
from ..core.types import (
    CategoryPath,
    Descriptor,
    DescriptorError,
    GistDescriptor,
    RemoteRegistry,
    RepoDescriptor,
)
from ..utils.git import Git, GitCommandError, has_submodules, repo_exists
from ..utils.progress import log_result
from ..utils.tags import TagSynchronizer

logger = logging.getLogger('forgery')

FORK_REMOTE = "fork"
UPSTREAM_REMOTE = "upstream"


class CloneStepError(Exception):
    """A step of a clone protocol failed; later steps must not run."""

    def __init__(self, step: str, cause: object):
        self.step = step
        super().__init__(f"{step} failed: {cause}")


def set_fork_branch_remotes(git: Git) -> str:
    """Make the default branch pull from upstream and push to fork.

    The default branch is read from the fork remote's symbolic HEAD.

    Returns:
        The default branch name
    """
    ref_name = f"refs/remotes/{FORK_REMOTE}/HEAD"
    try:
        ref = git.symbolic_ref(ref_name)
    except GitCommandError:
        # Older clones may lack the symbolic HEAD; ask the remote once
        git.set_remote_head(FORK_REMOTE)
        ref = git.symbolic_ref(ref_name)

    branch = ref.replace(f"refs/remotes/{FORK_REMOTE}/", "", 1)
    git.config_set(f"branch.{branch}.remote", UPSTREAM_REMOTE)
    git.config_set(f"branch.{branch}.pushRemote", FORK_REMOTE)
    return branch


class CloneExecutor:
    """Performs the one-time acquisition of repositories and gists."""

    def __init__(
        self,
        git_factory: Optional[GitFactory] = None,
        tag_synchronizer: Optional[TagSynchronizer] = None,
        parent_resolver: Optional[Callable[[RepoDescriptor], Optional[RepoDescriptor]]] = None,
        no_wikis: bool = False,
        identity: str = ""
    ):
        """Initialize clone executor.

        Args:
            git_factory: Builds a git runner for a path
            tag_synchronizer: Tags freshly cloned repositories (None: no tags)
            parent_resolver: Reads a fork's parent when the listing lacks it,
                typically GitHubClient.get_parent
            no_wikis: Skip wiki clones
            identity: Owning account, included in failure messages
        """
        self.git_factory: GitFactory = git_factory or Git
        self.tag_synchronizer = tag_synchronizer
        self.parent_resolver = parent_resolver
        self.no_wikis = no_wikis
        self.identity = identity

    def _fail(self, descriptor: Descriptor, reason: str) -> OperationResult:
        entity_id = getattr(descriptor, 'id', None)
        logger.error(f"[{self.identity}] Failed to clone {descriptor.full_name} (id {entity_id}): {reason}")
        return OperationResult.failure(reason, descriptor.name, descriptor.full_name)

    def _clone(self, url: str, name: str, destination: str) -> str:
        """Clone url into destination/name and pull down submodules.

        Raises:
            CloneStepError: If the clone or the submodule update fails
        """
        target = os.path.join(destination, name)
        os.makedirs(destination, exist_ok=True)

        logger.info(f"Cloning {url} into {target}...")
        try:
            self.git_factory(destination).clone(url, name)
        except GitCommandError as e:
            raise CloneStepError("clone", e) from e

        if has_submodules(target):
            try:
                self.git_factory(target).submodule_update(init=True, recursive=True)
            except GitCommandError as e:
                raise CloneStepError("submodule update", e) from e
        return target

    # Repositories

    def clone_non_fork(self, descriptor: Descriptor, destination: str) -> OperationResult:
        """Clone a repository or gist into destination/name.

        An existing target directory means it is already cloned; that is
        reported as skipped, not as an error.
        """
        name = descriptor.name
        target = os.path.join(destination, name)
        if repo_exists(target):
            logger.info(f"{descriptor.full_name} already cloned")
            return OperationResult.skip("Already cloned", name, descriptor.full_name)

        url = descriptor.pull_url if isinstance(descriptor, GistDescriptor) else descriptor.ssh_url
        try:
            self._clone(url, name, destination)
        except CloneStepError as e:
            return self._fail(descriptor, str(e))
        return OperationResult.succeeded("Cloned successfully", name, descriptor.full_name)

    def clone_repo(self, category_path: CategoryPath, repo: RepoDescriptor) -> OperationResult:
        """Full workflow for one repository: clone, tag, wiki."""
        if category_path.category.is_fork:
            return self.clone_fork_with_upstream(repo, category_path.path)

        destination = placement_root(category_path.category, repo, category_path.path)
        result = self.clone_non_fork(repo, destination)
        target = os.path.join(destination, repo.name)

        if result.success and self.tag_synchronizer:
            self.tag_synchronizer.sync_tags(repo, target)
        if not result.failed and not self.no_wikis:
            self.clone_wiki(repo, target)
        return result

    def clone_fork_with_upstream(self, repo: RepoDescriptor, fork_root: str) -> OperationResult:
        """Clone a fork with `fork` and `upstream` remotes.

        The clone lands in fork_root/<parent owner>/<name>. Pulls on the
        default branch come from upstream, pushes go to fork. Any failing
        step stops the remaining ones; completed steps are not rolled back.
        """
        try:
            parent = repo.parent
            if parent is None and self.parent_resolver:
                parent = self.parent_resolver(repo)
        except (ForgeAPIError, DescriptorError) as e:
            return self._fail(repo, f"could not read fork parent: {e}")
        if parent is None:
            return self._fail(repo, "no fork parent information")

        destination = os.path.join(fork_root, parent.owner)
        target = os.path.join(destination, repo.name)
        if repo_exists(target):
            logger.info(f"{repo.full_name} already cloned")
            return OperationResult.skip("Already cloned", repo.name, repo.full_name)

        try:
            self._setup_fork(repo.ssh_url, parent.ssh_url, repo.name, destination)
        except CloneStepError as e:
            return self._fail(repo, str(e))

        # Forks usually carry no topics of their own
        if self.tag_synchronizer:
            self.tag_synchronizer.sync_tags(parent, target)
        if not self.no_wikis:
            self.clone_wiki(parent, target)

        return OperationResult.succeeded(
            f"Cloned fork of {parent.full_name}", repo.name, repo.full_name
        )

    def _setup_fork(self, fork_url: str, parent_url: str, name: str, destination: str) -> None:
        """Clone a fork and establish the fork/upstream remote topology.

        Raises:
            CloneStepError: Naming the first step that failed
        """
        target = self._clone(fork_url, name, destination)
        git = self.git_factory(target)

        logger.info("Renaming origin to fork.")
        try:
            git.rename_remote("origin", FORK_REMOTE)
        except GitCommandError as e:
            raise CloneStepError("renaming origin remote", e) from e

        if not git.remote_exists(parent_url):
            raise CloneStepError("probing upstream", f"{parent_url} is not reachable")

        logger.info("Adding upstream remote.")
        try:
            git.add_remote(UPSTREAM_REMOTE, parent_url)
        except GitCommandError as e:
            raise CloneStepError("adding upstream remote", e) from e

        logger.info("Setting default branch remotes.")
        try:
            set_fork_branch_remotes(git)
        except GitCommandError as e:
            raise CloneStepError("configuring default branch", e) from e

    def clone_wiki(self, repo: RepoDescriptor, repo_path: str) -> bool:
        """Clone a repository's wiki next to it, as <repo_path>.wiki.

        Wiki remotes may not exist even when has_wiki is set (empty wiki), so
        the remote is probed first. Failures are logged only.

        Returns:
            True if a wiki was cloned
        """
        if not repo.has_wiki:
            return False

        wiki_path = f"{repo_path}.wiki"
        if repo_exists(wiki_path):
            logger.debug(f"{repo.wiki_url} already cloned")
            return False

        destination = os.path.dirname(wiki_path)
        os.makedirs(destination, exist_ok=True)
        git = self.git_factory(destination)
        if not git.remote_exists(repo.wiki_url):
            logger.debug(f"No wiki remote for {repo.full_name}")
            return False

        logger.info(f"Cloning {repo.wiki_url}...")
        try:
            git.clone(repo.wiki_url, os.path.basename(wiki_path))
        except GitCommandError as e:
            logger.error(f"Failed to clone wiki for {repo.full_name}: {e}")
            return False
        return True

    # Gists

    def clone_gist(self, category_path: CategoryPath, gist: GistDescriptor) -> OperationResult:
        """Full workflow for one gist."""
        if category_path.category.is_fork:
            return self.clone_forked_gist(gist, category_path.path)
        try:
            destination = placement_root(category_path.category, gist, category_path.path)
        except ValueError as e:
            return self._fail(gist, str(e))
        return self.clone_non_fork(gist, destination)

    def clone_forked_gist(self, gist: GistDescriptor, fork_root: str) -> OperationResult:
        """Clone a forked gist with the same fork/upstream topology as repos."""
        parent = gist.fork_of
        if parent is None:
            return self._fail(gist, "no fork parent information")
        if not parent.owner:
            return self._fail(gist, "no fork parent owner login")

        destination = os.path.join(fork_root, parent.owner)
        target = os.path.join(destination, gist.name)
        if repo_exists(target):
            logger.info(f"{gist.full_name} already cloned")
            return OperationResult.skip("Already cloned", gist.name, gist.full_name)

        try:
            self._setup_fork(gist.pull_url, parent.pull_url, gist.name, destination)
        except CloneStepError as e:
            return self._fail(gist, str(e))
        return OperationResult.succeeded(
            f"Cloned fork of gist {parent.id}", gist.name, gist.full_name
        )

    def clone(self, category_path: CategoryPath, descriptor: Descriptor) -> OperationResult:
        """Dispatch to the repository or gist workflow."""
        if isinstance(descriptor, GistDescriptor):
            return self.clone_gist(category_path, descriptor)
        return self.clone_repo(category_path, descriptor)


class CloneOperation(Operation):
    """Clone every selected repository and gist that is not cloned yet."""

    name = "clone"
    description = "Clone repositories, forks, wikis and gists of an account"
    creates_directories = True
    needs_registry = True

    def __init__(self, layout, repo_types, git_factory=None, tag_synchronizer=None,
                 parent_resolver=None, identity: str = "", **kwargs):
        super().__init__(layout, repo_types, git_factory)
        self.executor = CloneExecutor(
            git_factory=self.git_factory,
            tag_synchronizer=tag_synchronizer,
            parent_resolver=parent_resolver,
            no_wikis=repo_types.no_wikis,
            identity=identity
        )

    def execute(self, registry: Optional[RemoteRegistry]) -> List[OperationResult]:
        results = []
        for category_path in self.selected_paths():
            for descriptor in (registry.slice(category_path.category) if registry else []):
                result = self.executor.clone(category_path, descriptor)
                log_result(result)
                results.append(result)
        return results
