"""Classification of remote descriptors into local categories.

This module is the only place category decisions are made. Everything else
consumes its output.
"""

import os
from typing import Optional

from .types import Category, RepoDescriptor, GistDescriptor, Descriptor


def classify_repo(repo: RepoDescriptor, starred: bool = False) -> Category:
    """Classify a repository.

    Starred repositories come from a separate listing and always land in the
    starred category. Otherwise forks win over visibility.

    Args:
        repo: Repository descriptor
        starred: True if the descriptor came from the starred listing

    Returns:
        Exactly one repository category
    """
    if starred:
        return Category.STARRED_REPO
    if repo.is_fork:
        return Category.FORKED_REPO
    if repo.is_private:
        return Category.PRIVATE_REPO
    return Category.PUBLIC_REPO


def classify_gist(gist: GistDescriptor, starred: bool = False) -> Category:
    """Classify a gist: starred, else forked, else public/private."""
    if starred:
        return Category.STARRED_GIST
    if gist.fork_of is not None:
        return Category.FORKED_GIST
    if gist.is_public:
        return Category.PUBLIC_GIST
    return Category.PRIVATE_GIST


def namespace_for(category: Category, descriptor: Descriptor) -> Optional[str]:
    """Owner directory an entity is nested under, if its category nests.

    Forks are namespaced by the parent's owner so forks of the same upstream
    by different users do not collide; starred entities by their own owner.
    Returns None for flat categories or when the owner is not known yet.
    """
    if not category.nested:
        return None
    if category.is_fork:
        if isinstance(descriptor, GistDescriptor):
            return descriptor.fork_of.owner if descriptor.fork_of else None
        return descriptor.parent.owner if descriptor.parent else None
    return descriptor.owner


def placement_root(category: Category, descriptor: Descriptor, category_root: str) -> str:
    """Directory a descriptor's clone is created in.

    Raises:
        ValueError: If the category nests but the owner is unknown
    """
    if not category.nested:
        return category_root
    namespace = namespace_for(category, descriptor)
    if not namespace:
        raise ValueError(f"No owner namespace known for {descriptor.full_name}")
    return os.path.join(category_root, namespace)


def should_dedupe(repo: RepoDescriptor, organization_mode: bool, dedupe_org_repos: bool) -> bool:
    """Check if a user's repository should be skipped as an organization repo.

    Such repositories are also listed (and cloned) through the organization
    itself, so skipping them avoids two local copies of one remote.
    """
    return dedupe_org_repos and not organization_mode and repo.organization is not None
