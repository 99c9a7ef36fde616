"""Status operation: report local clones with pending work."""

import os
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .base import Operation, OperationResult, GitFactory
from ..core.types import Category, CategoryPath, IndexState, RemoteRegistry, RepoSummary
from ..utils.git import Git, GitCommandError, GIT_FATAL_EXIT, is_git_repo

logger = logging.getLogger('forgery')

WIP_BRANCH = "forgery-wip"


class StatusScanner:
    """Checks local repositories for uncommitted changes and unpushed commits."""

    def __init__(
        self,
        git_factory: Optional[GitFactory] = None,
        push_wip: bool = False,
        clock: Callable[[], datetime] = datetime.now
    ):
        """Initialize status scanner.

        Args:
            git_factory: Builds a git runner for a path
            push_wip: Commit and push dirty working trees to a WIP branch
            clock: Source of the WIP commit timestamp
        """
        self.git_factory: GitFactory = git_factory or Git
        self.push_wip = push_wip
        self.clock = clock
        self.failures: List[Tuple[str, GitCommandError]] = []

    def discover(self, category_paths: List[CategoryPath]) -> List[str]:
        """Find git working trees under the given category directories.

        Nested categories are searched one level deeper. Directories without
        a .git entry are logged and skipped.
        """
        repo_paths = []
        for category_path in category_paths:
            root = category_path.path
            if not os.path.isdir(root):
                logger.debug(f"Path does not exist: {root}")
                continue

            if category_path.category.nested:
                candidates = []
                for owner in os.listdir(root):
                    owner_dir = os.path.join(root, owner)
                    if os.path.isdir(owner_dir):
                        candidates.extend(os.path.join(owner_dir, name) for name in os.listdir(owner_dir))
            else:
                candidates = [os.path.join(root, name) for name in os.listdir(root)]

            for path in candidates:
                if not os.path.isdir(path):
                    continue
                if not is_git_repo(path):
                    logger.info(f"Skipping {path}: not a git repository")
                    continue
                repo_paths.append(path)
        return repo_paths

    def summarize(self, repo_path: str) -> RepoSummary:
        """Build the status summary of one repository.

        A branch without an upstream counts as having nothing unpushed.

        Raises:
            GitCommandError: If any other git check fails
        """
        git = self.git_factory(repo_path)
        logger.debug(f"Checking working index status of {repo_path}...")

        state = IndexState.CLEAN
        if git.status_short():
            state = IndexState.DIRTY
            if self.push_wip:
                try:
                    self.preserve_changes(git)
                    state = IndexState.PRESERVED
                except GitCommandError as e:
                    logger.error(f"Failed to preserve WIP changes in {repo_path}: {e}")

        branch_info = []
        for branch in git.branches():
            try:
                count = git.unpushed_count(branch)
            except GitCommandError as e:
                if e.returncode != GIT_FATAL_EXIT:
                    raise
                logger.debug(f"{repo_path}: branch {branch} has no upstream")
                count = 0
            if count > 0:
                branch_info.append((branch, count))

        return RepoSummary(path=repo_path, state=state, branch_info=branch_info)

    def preserve_changes(self, git: Git) -> None:
        """Commit all changes to the WIP branch and push it.

        The WIP branch stays checked out afterwards, so later runs commit on
        top of it. It is pushed to the `fork` remote when there is one,
        otherwise to `origin`.

        Raises:
            GitCommandError: If a step fails, e.g. the WIP branch already
                exists while another branch is checked out
        """
        if git.current_branch() != WIP_BRANCH:
            git.checkout(WIP_BRANCH, create=True)
        git.add_all()
        timestamp = self.clock().strftime("%Y-%m-%d %H:%M:%S")
        git.commit(f"wip on {timestamp}")

        remote = "fork" if "fork" in git.remotes() else "origin"
        git.push(remote, WIP_BRANCH, set_upstream=True)
        logger.info(f"Saved WIP changes in {git.path} to branch '{WIP_BRANCH}' on {remote}")

    def scan(self, category_paths: List[CategoryPath]) -> List[RepoSummary]:
        """Summarize every repository under the category paths.

        Repositories whose check fails are logged, left out of the summaries
        and kept in `failures` until the next scan.
        """
        self.failures = []
        summaries = []
        for repo_path in self.discover(category_paths):
            try:
                summaries.append(self.summarize(repo_path))
            except GitCommandError as e:
                logger.error(f"Failed to check status of {repo_path}: {e}")
                self.failures.append((repo_path, e))
        return summaries


def print_status_summary(summaries: List[RepoSummary]) -> None:
    """Print repositories with pending work, grouped by category.

    Args:
        summaries: Summaries to report; clean ones are left out
    """
    pending = [s for s in summaries if s.needs_report]

    print("\n" + "=" * 60)
    print("STATUS")
    print("=" * 60)

    if not pending:
        print("All repositories are clean and up to date!")
        print("=" * 60)
        return

    print("Repositories with pending work:")
    for category in Category:
        group = [s for s in pending if Category.from_path(s.path) == category]
        if not group:
            continue
        print(f"\n{category.label}:")
        for summary in sorted(group, key=lambda s: s.name):
            print(f"  {summary.name} [{summary.flags}]")

    print("=" * 60)


class StatusOperation(Operation):
    """Report uncommitted changes and unpushed commits in local clones."""

    name = "status"
    description = "Report local repositories with uncommitted changes or unpushed commits"
    creates_directories = False
    needs_registry = False

    def __init__(self, layout, repo_types, git_factory=None, push_wip: bool = False, **kwargs):
        super().__init__(layout, repo_types, git_factory)
        self.scanner = StatusScanner(self.git_factory, push_wip=push_wip)
        self.summaries: List[RepoSummary] = []

    def execute(self, registry: Optional[RemoteRegistry]) -> List[OperationResult]:
        self.summaries = self.scanner.scan(self.selected_paths())
        results = [self._result(summary) for summary in self.summaries]
        for repo_path, error in self.scanner.failures:
            results.append(OperationResult.failure(
                f"Status check failed: {error}", os.path.basename(repo_path), repo_path
            ))
        return results

    @staticmethod
    def _result(summary: RepoSummary) -> OperationResult:
        if summary.state == IndexState.PRESERVED:
            message = "Changes preserved on WIP branch"
        elif summary.is_dirty:
            message = "Uncommitted changes"
        else:
            message = "Clean"
        if summary.has_unpushed_commits:
            counts = ", ".join(f"{branch}: {count}" for branch, count in summary.branch_info)
            message += f", unpushed commits ({counts})"
        return OperationResult.succeeded(message, summary.name, summary.path)

    def post_batch_hook(self, results: List[OperationResult]) -> None:
        """Print the pending-work summary after all repositories are checked.

        Args:
            results: List of operation results
        """
        print_status_summary(self.summaries)
