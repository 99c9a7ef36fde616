"""Resolved selection of repository and gist categories for a run."""

from dataclasses import dataclass

from .types import Category


@dataclass(frozen=True)
class RepoTypes:
    """Which categories a run works on.

    Computed once from the command line flags with `from_flags`; every
    component receives it explicitly.
    """

    no_public_repos: bool = False
    no_private_repos: bool = False
    no_forked_repos: bool = False
    no_starred_repos: bool = False
    no_wikis: bool = False
    no_public_gists: bool = False
    no_private_gists: bool = False
    no_forked_gists: bool = False
    no_starred_gists: bool = False

    @classmethod
    def from_flags(
        cls,
        no_repos: bool = False,
        no_public_repos: bool = False,
        no_private_repos: bool = False,
        no_forked_repos: bool = False,
        no_starred_repos: bool = False,
        only_public_repos: bool = False,
        only_private_repos: bool = False,
        only_forked_repos: bool = False,
        only_starred_repos: bool = False,
        no_wikis: bool = False,
        no_gists: bool = False,
        no_public_gists: bool = False,
        no_private_gists: bool = False,
        no_forked_gists: bool = False,
        no_starred_gists: bool = False,
        only_public_gists: bool = False,
        only_private_gists: bool = False,
        only_forked_gists: bool = False,
        only_starred_gists: bool = False,
    ) -> 'RepoTypes':
        """Resolve no/only flags into per-category switches.

        An "only" flag for a category disables its three siblings of the
        same kind; "no repos"/"no gists" disable the whole kind.
        """
        return cls(
            no_public_repos=(no_repos or no_public_repos or only_private_repos
                             or only_forked_repos or only_starred_repos),
            no_private_repos=(no_repos or no_private_repos or only_public_repos
                              or only_forked_repos or only_starred_repos),
            no_forked_repos=(no_repos or no_forked_repos or only_public_repos
                             or only_private_repos or only_starred_repos),
            no_starred_repos=(no_repos or no_starred_repos or only_public_repos
                              or only_private_repos or only_forked_repos),
            no_wikis=no_repos or no_wikis,
            no_public_gists=(no_gists or no_public_gists or only_private_gists
                             or only_forked_gists or only_starred_gists),
            no_private_gists=(no_gists or no_private_gists or only_public_gists
                              or only_forked_gists or only_starred_gists),
            no_forked_gists=(no_gists or no_forked_gists or only_public_gists
                             or only_private_gists or only_starred_gists),
            no_starred_gists=(no_gists or no_starred_gists or only_public_gists
                              or only_private_gists or only_forked_gists),
        )

    @property
    def no_nonstarred_repos(self) -> bool:
        """True when the owner's repository listing is not needed."""
        return self.no_public_repos and self.no_private_repos and self.no_forked_repos

    @property
    def no_nonstarred_gists(self) -> bool:
        """True when the owner's gist listing is not needed."""
        return self.no_public_gists and self.no_private_gists and self.no_forked_gists

    def is_enabled(self, category: Category) -> bool:
        """Check whether a category is selected for this run."""
        disabled = {
            Category.PUBLIC_REPO: self.no_public_repos,
            Category.PRIVATE_REPO: self.no_private_repos,
            Category.FORKED_REPO: self.no_forked_repos,
            Category.STARRED_REPO: self.no_starred_repos,
            Category.PUBLIC_GIST: self.no_public_gists,
            Category.PRIVATE_GIST: self.no_private_gists,
            Category.FORKED_GIST: self.no_forked_gists,
            Category.STARRED_GIST: self.no_starred_gists,
        }
        return not disabled[category]
