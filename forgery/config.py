"""Configuration management for forgery."""

import os
from typing import Optional
from dataclasses import dataclass


@dataclass
class Config:
    """Configuration for forgery.

    Merges environment variables with CLI arguments.
    CLI arguments take precedence over environment variables.
    """

    github_token: str
    base_path: str
    organization: Optional[str] = None
    dedupe_org_repos: bool = False

    @classmethod
    def from_env_and_args(
        cls,
        token: Optional[str] = None,
        base_path: Optional[str] = None,
        organization: Optional[str] = None,
        dedupe_org_repos: bool = False
    ) -> 'Config':
        """Create config from environment variables and CLI arguments.

        Args:
            token: GitHub token (overrides GITHUB_TOKEN)
            base_path: Root of the mirror tree (overrides FORGERY_BASE_PATH)
            organization: Organization to mirror instead of the token's user
            dedupe_org_repos: Skip user repositories owned by organizations

        Returns:
            Config instance

        Raises:
            ValueError: If required config is missing
        """
        final_token = token or os.getenv('GITHUB_TOKEN')
        final_base_path = base_path or os.getenv('FORGERY_BASE_PATH') or os.getcwd()

        if not final_token:
            raise ValueError(
                "GitHub token is required. "
                "Set GITHUB_TOKEN in .env or use --token"
            )

        return cls(
            github_token=final_token,
            base_path=os.path.abspath(os.path.expanduser(final_base_path)),
            organization=organization,
            dedupe_org_repos=dedupe_org_repos
        )

    @property
    def is_organization(self) -> bool:
        """Check if an organization is mirrored instead of the token's user.

        Returns:
            True if an organization name was given
        """
        return bool(self.organization)
