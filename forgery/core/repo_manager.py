"""Repository manager for orchestrating operations."""

import logging
from typing import List, Optional, Tuple, Type

from .classifier import classify_gist, classify_repo, should_dedupe
from .github_client import GitHubClient, ForgeAPIError
from .paths import CategoryPaths
from .repo_types import RepoTypes
from .types import Category, DescriptorError, IdentityKind, RemoteRegistry
from ..config import Config
from ..operations.base import Operation, OperationResult, GitFactory
from ..utils.tags import TagSynchronizer, TagTool

logger = logging.getLogger('forgery')


class RepoManager:
    """Manager for orchestrating operations over one account."""

    def __init__(
        self,
        github_client: GitHubClient,
        config: Config,
        repo_types: RepoTypes,
        git_factory: Optional[GitFactory] = None,
        tag_tool: Optional[TagTool] = None
    ):
        """Initialize repository manager.

        Args:
            github_client: GitHub API client
            config: Run configuration
            repo_types: Selected categories
            git_factory: Builds a git runner for a path (default: Git)
            tag_tool: Filesystem tagging tool (default: the `tag` executable)
        """
        self.github_client = github_client
        self.config = config
        self.repo_types = repo_types
        self.git_factory = git_factory
        self.tag_synchronizer = TagSynchronizer(tag_tool, topics_fetcher=github_client.get_topics)

    def authenticate(self) -> Tuple[IdentityKind, str]:
        """Resolve the account whose repositories are mirrored.

        Returns:
            Identity kind and login

        Raises:
            ForgeAPIError: If authentication fails
        """
        if self.config.is_organization:
            login = self.github_client.authenticate_org(self.config.organization)
            logger.info(f"Authenticated organization {login}")
            return IdentityKind.ORGANIZATION, login

        login = self.github_client.authenticate()
        logger.info(f"Authenticated as {login}")
        return IdentityKind.USER, login

    def fetch_registry(self, identity_kind: IdentityKind, login: str) -> RemoteRegistry:
        """List and classify the account's remote repositories and gists.

        Only listings needed by enabled categories are fetched. A gist whose
        details cannot be read is recorded as unresolved rather than dropped,
        so sync will not prune its clone.

        Raises:
            ForgeAPIError: If a listing call fails
        """
        registry = RemoteRegistry()
        organization_mode = identity_kind == IdentityKind.ORGANIZATION
        repo_types = self.repo_types

        if not repo_types.no_nonstarred_repos:
            for repo in self.github_client.list_repositories(login, organization=organization_mode):
                if should_dedupe(repo, organization_mode, self.config.dedupe_org_repos):
                    logger.info(f"Skipping {repo.full_name}: owned by organization {repo.organization}")
                    continue
                category = classify_repo(repo)
                if repo_types.is_enabled(category):
                    registry.add(category, repo)

        if not organization_mode and not repo_types.no_starred_repos:
            for repo in self.github_client.list_starred(login):
                registry.add(Category.STARRED_REPO, repo)

        if not repo_types.no_nonstarred_gists:
            # Listings omit fork information, so each gist is read in full
            for listed in self.github_client.list_gists(login if organization_mode else None):
                try:
                    gist = self.github_client.read_gist(listed.id)
                except (ForgeAPIError, DescriptorError) as e:
                    logger.error(f"Failed to read gist {listed.id} ({listed.name}): {e}")
                    registry.unresolved.add(listed.name)
                    continue
                category = classify_gist(gist)
                if repo_types.is_enabled(category):
                    registry.add(category, gist)

        if not organization_mode and not repo_types.no_starred_gists:
            for gist in self.github_client.list_starred_gists():
                registry.add(Category.STARRED_GIST, gist)

        registry.unresolved.update(self.github_client.unparsed_names)
        logger.info(f"Remote registry: {len(registry)} entries, {len(registry.unresolved)} unresolved")
        return registry

    def execute_operation(
        self,
        operation_class: Type[Operation],
        **operation_kwargs
    ) -> List[OperationResult]:
        """Execute an operation over the account's category directories.

        Args:
            operation_class: Operation class to instantiate
            **operation_kwargs: Additional kwargs for operation constructor

        Returns:
            List of operation results

        Raises:
            ForgeAPIError: If authentication or a listing call fails
            PathLayoutError: If a category directory cannot be created
        """
        identity_kind, login = self.authenticate()

        layout = CategoryPaths.resolve(
            self.config.base_path,
            identity_kind,
            login,
            self.repo_types,
            create_on_disk=operation_class.creates_directories
        )

        registry = None
        if operation_class.needs_registry:
            logger.info("Fetching repositories and gists from GitHub...")
            registry = self.fetch_registry(identity_kind, login)

        operation = operation_class(
            layout,
            self.repo_types,
            git_factory=self.git_factory,
            tag_synchronizer=self.tag_synchronizer,
            parent_resolver=self.github_client.get_parent,
            identity=login,
            **operation_kwargs
        )

        logger.info(f"Executing operation: {operation.name}")
        logger.info(f"Description: {operation.description}")
        logger.info(f"Root: {layout.root}")
        for category_path in layout.enabled():
            logger.debug(f"  {category_path.category.label}: {category_path.path}")

        results = operation.execute(registry)

        operation.post_batch_hook(results)

        return results
