"""GitHub API client for account, repository and gist listings."""

import logging
import requests
from enum import Enum
from typing import List, Dict, Any, Optional, Callable, TypeVar

from .types import RepoDescriptor, GistDescriptor, DescriptorError

logger = logging.getLogger('forgery')

API_URL = "https://api.github.com"

T = TypeVar('T')


class FailureKind(Enum):
    """Why a forge API call failed."""
    CLIENT = "client"              # network layer
    HTTP = "http"                  # non-2xx status
    NO_DATA = "no_data"            # empty body
    INVALID_DATA = "invalid_data"  # body does not parse to the expected shape


class ForgeAPIError(Exception):
    """A forge API request failed."""

    def __init__(self, kind: FailureKind, message: str, status_code: Optional[int] = None):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)


class GitHubClient:
    """Client for interacting with GitHub API.

    Every call is synchronous and blocking.
    """

    def __init__(self, token: str, timeout: Optional[float] = None):
        """Initialize GitHub client.

        Args:
            token: GitHub personal access token
            timeout: Optional per-request timeout in seconds
        """
        self.token = token
        self.timeout = timeout
        self.headers = {
            'Authorization': f'token {token}',
            'Accept': 'application/vnd.github+json',
        }
        # Names seen in listings whose payload could not be parsed
        self.unparsed_names: List[str] = []

    # Transport

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a JSON document from the API.

        Raises:
            ForgeAPIError: On network failure, non-2xx status, or bad body
        """
        url = f"{API_URL}{path}"
        try:
            response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise ForgeAPIError(FailureKind.CLIENT, f"Request to {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            if response.status_code == 403:
                logger.error("GitHub API rate limit exceeded or access forbidden")
            raise ForgeAPIError(
                FailureKind.HTTP,
                f"Request to {url} failed with HTTP status {response.status_code}",
                status_code=response.status_code
            )

        if not response.content:
            raise ForgeAPIError(FailureKind.NO_DATA, f"Response from {url} contained no data")

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed decoding API response from {url}: {e} (contents: {response.text[:200]})")
            raise ForgeAPIError(FailureKind.INVALID_DATA, f"Response from {url} couldn't be decoded") from e

    def _get_object(self, path: str) -> Dict[str, Any]:
        data = self._get(path)
        if not isinstance(data, dict):
            raise ForgeAPIError(FailureKind.INVALID_DATA, f"Expected an object from {path}")
        return data

    def _get_paginated(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Fetch every page of a list endpoint."""
        items = []
        page = 1
        per_page = 100

        while True:
            page_params = dict(params or {})
            page_params.update({'page': page, 'per_page': per_page})
            page_items = self._get(path, params=page_params)

            if not isinstance(page_items, list):
                raise ForgeAPIError(FailureKind.INVALID_DATA, f"Expected a list from {path}")
            if not page_items:
                break

            items.extend(page_items)
            page += 1

        return items

    def _parse_each(self, items: List[Dict[str, Any]], parser: Callable[[Dict[str, Any]], T]) -> List[T]:
        """Parse listing elements, logging and skipping the ones that fail."""
        parsed = []
        for item in items:
            try:
                parsed.append(parser(item))
            except (DescriptorError, ValueError) as e:
                logger.error(f"Skipping unparseable listing entry: {e}")
                name = item.get('name') if isinstance(item, dict) else None
                if name:
                    self.unparsed_names.append(name)
        return parsed

    # Authentication

    def authenticate(self) -> str:
        """Authenticate as the token's owner.

        Returns:
            The user's login
        """
        user = self._get_object("/user")
        login = user.get('login')
        if not login:
            raise ForgeAPIError(FailureKind.INVALID_DATA, "No user login returned after authenticating")
        return login

    def authenticate_org(self, name: str) -> str:
        """Resolve an organization with the user's token.

        Organizations cannot own tokens, so a member's token is used.

        Returns:
            The organization's login
        """
        org = self._get_object(f"/users/{name}")
        login = org.get('login')
        if not login:
            raise ForgeAPIError(FailureKind.INVALID_DATA, f"No login returned for organization {name}")
        return login

    # Repositories

    def list_repositories(self, owner: str, organization: bool = False) -> List[RepoDescriptor]:
        """List repositories owned by the authenticated user or an organization.

        Args:
            owner: User or organization login
            organization: True to list an organization's repositories

        Returns:
            Repository descriptors
        """
        if organization:
            items = self._get_paginated(f"/orgs/{owner}/repos", {'type': 'all'})
        else:
            items = self._get_paginated("/user/repos", {'affiliation': 'owner,organization_member'})
        repos = self._parse_each(items, RepoDescriptor.from_api)
        logger.info(f"Found {len(repos)} repositories for {owner}")
        return repos

    def list_starred(self, owner: str) -> List[RepoDescriptor]:
        """List repositories starred by a user."""
        items = self._get_paginated(f"/users/{owner}/starred")
        repos = self._parse_each(items, RepoDescriptor.from_api)
        logger.info(f"Found {len(repos)} starred repositories for {owner}")
        return repos

    def read_repository(self, owner: str, name: str) -> RepoDescriptor:
        """Read a single repository, including its fork parent."""
        return RepoDescriptor.from_api(self._get_object(f"/repos/{owner}/{name}"))

    def get_topics(self, owner: str, repo: str) -> List[str]:
        """Get a repository's topics."""
        data = self._get_object(f"/repos/{owner}/{repo}/topics")
        names = data.get('names')
        if not isinstance(names, list):
            raise ForgeAPIError(
                FailureKind.INVALID_DATA,
                f"Response for {owner}/{repo} topics did not contain a list of names"
            )
        logger.debug(f"Topics for {owner}/{repo}: {names}")
        return names

    def get_parent(self, repo: RepoDescriptor) -> Optional[RepoDescriptor]:
        """Resolve a fork's parent repository, reading it if not embedded."""
        if repo.parent is not None:
            return repo.parent
        return self.read_repository(repo.owner, repo.name).parent

    # Gists

    def list_gists(self, owner: Optional[str] = None) -> List[GistDescriptor]:
        """List the authenticated user's gists, or another account's public gists."""
        path = f"/users/{owner}/gists" if owner else "/gists"
        gists = self._parse_each(self._get_paginated(path), GistDescriptor.from_api)
        logger.info(f"Found {len(gists)} gists")
        return gists

    def list_starred_gists(self) -> List[GistDescriptor]:
        """List gists starred by the authenticated user."""
        gists = self._parse_each(self._get_paginated("/gists/starred"), GistDescriptor.from_api)
        logger.info(f"Found {len(gists)} starred gists")
        return gists

    def read_gist(self, gist_id: str) -> GistDescriptor:
        """Read a single gist, including its fork parent."""
        return GistDescriptor.from_api(self._get_object(f"/gists/{gist_id}"))
