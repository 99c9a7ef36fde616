"""On-disk layout of mirrored repositories and gists."""

import os
import logging
from typing import Dict, List, Optional

from .types import Category, CategoryPath, IdentityKind
from .repo_types import RepoTypes

logger = logging.getLogger('forgery')

# Organizations cannot star repositories or gists
ORGANIZATION_CATEGORIES = [c for c in Category if not c.is_starred]


class PathLayoutError(Exception):
    """A required destination directory could not be created."""


class CategoryPaths:
    """Resolved category directories for one account.

    Layout: {base}/{user|organization}/{name}/{repos|gists}/{segment}
    """

    def __init__(
        self,
        base_path: str,
        identity_kind: IdentityKind,
        identity_name: str,
        repo_types: RepoTypes
    ):
        self.base_path = os.path.expanduser(base_path)
        self.identity_kind = identity_kind
        self.identity_name = identity_name
        self.repo_types = repo_types
        self.root = os.path.join(self.base_path, identity_kind.value, identity_name)

        if identity_kind == IdentityKind.ORGANIZATION:
            categories = ORGANIZATION_CATEGORIES
        else:
            categories = list(Category)

        self._paths: Dict[Category, str] = {
            category: os.path.join(self.root, category.kind, category.segment)
            for category in categories
        }

    @classmethod
    def resolve(
        cls,
        base_path: str,
        identity_kind: IdentityKind,
        identity_name: str,
        repo_types: RepoTypes,
        create_on_disk: bool = False
    ) -> 'CategoryPaths':
        """Compute the layout and optionally create enabled directories.

        Raises:
            PathLayoutError: If a directory cannot be created
        """
        paths = cls(base_path, identity_kind, identity_name, repo_types)
        if create_on_disk:
            paths.create_on_disk()
        return paths

    def create_on_disk(self) -> None:
        """Create the directories of enabled categories only."""
        for category_path in self.enabled():
            try:
                os.makedirs(category_path.path, exist_ok=True)
            except OSError as e:
                raise PathLayoutError(
                    f"Failed to create {category_path.path}: {e}"
                ) from e
            logger.debug(f"Ensured directory {category_path.path}")

    def path_for(self, category: Category) -> Optional[str]:
        """Get the directory for a category, or None if the identity has none."""
        return self._paths.get(category)

    def all(self) -> List[CategoryPath]:
        """All category paths for this identity, in processing order."""
        return [CategoryPath(category, path) for category, path in self._paths.items()]

    def enabled(self) -> List[CategoryPath]:
        """Category paths selected by the run's RepoTypes, in processing order."""
        return [cp for cp in self.all() if self.repo_types.is_enabled(cp.category)]
