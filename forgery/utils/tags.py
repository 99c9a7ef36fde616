"""Filesystem tags for mirrored repositories.

Tags are applied with jdberry's `tag` command line tool
(https://github.com/jdberry/tag). The tag set for a repository is its forge
topics plus its primary language, lower-cased.
"""

import logging
import subprocess
from typing import Callable, Iterable, List, Optional

from ..core.types import RepoDescriptor
from ..core.github_client import ForgeAPIError

logger = logging.getLogger('forgery')


class TagToolError(Exception):
    """The external tagging tool failed or is not installed."""


class TagTool:
    """Thin wrapper over the `tag` executable."""

    def __init__(self, executable: str = "tag"):
        self.executable = executable

    def _run(self, *args: str) -> str:
        try:
            result = subprocess.run(
                [self.executable, *args],
                capture_output=True,
                text=True
            )
        except FileNotFoundError as e:
            raise TagToolError(f"'{self.executable}' is not installed") from e

        if result.returncode != 0:
            raise TagToolError(
                f"{self.executable} {' '.join(args)} exited with {result.returncode}: {result.stderr.strip()}"
            )
        return result.stdout.strip()

    def read_tags(self, path: str) -> List[str]:
        output = self._run("--list", "--no-name", path)
        return [tag.strip() for tag in output.split(",") if tag.strip()]

    def add_tags(self, path: str, tags: Iterable[str]) -> None:
        self._run("--add", ",".join(tags), path)

    def remove_tags(self, path: str, tags: Iterable[str]) -> None:
        self._run("--remove", ",".join(tags), path)


def compute_tags(topics: Iterable[str], language: Optional[str]) -> List[str]:
    """Topics plus the lower-cased language, deduplicated, order kept."""
    tags = list(topics)
    if language:
        tags.append(language.lower())
    return list(dict.fromkeys(tag for tag in tags if tag))


class TagSynchronizer:
    """Applies a repository's topics/language as filesystem tags."""

    def __init__(
        self,
        tag_tool: Optional[TagTool] = None,
        topics_fetcher: Optional[Callable[[str, str], List[str]]] = None
    ):
        """Initialize tag synchronizer.

        Args:
            tag_tool: Tool wrapper (default: the `tag` executable)
            topics_fetcher: Called as (owner, name) when a descriptor carries
                no topics, typically GitHubClient.get_topics
        """
        self.tag_tool = tag_tool or TagTool()
        self.topics_fetcher = topics_fetcher

    def sync_tags(self, repo: RepoDescriptor, local_path: str, clear_first: bool = False) -> bool:
        """Tag a local directory from a repository descriptor.

        With clear_first, currently applied tags are removed before the fresh
        set is added, so tags dropped upstream disappear locally. When there
        is nothing to apply the directory is left untouched.

        Args:
            repo: Descriptor whose topics/language are applied
            local_path: Directory to tag
            clear_first: Remove existing tags first

        Returns:
            True if tags were applied (or nothing needed applying)
        """
        topics = repo.topics
        if topics is None and self.topics_fetcher:
            try:
                topics = self.topics_fetcher(repo.owner, repo.name)
            except ForgeAPIError as e:
                logger.error(f"Failed to get topic list for {repo.full_name}: {e}")
                return False

        tags = compute_tags(topics or [], repo.language)
        if not tags:
            logger.debug(f"No topics or language for {repo.full_name}, leaving tags alone")
            return True

        try:
            if clear_first:
                current = self.tag_tool.read_tags(local_path)
                if current:
                    self.tag_tool.remove_tags(local_path, current)
            self.tag_tool.add_tags(local_path, tags)
        except TagToolError as e:
            logger.warning(f"Failed to tag {local_path}: {e}")
            return False

        logger.info(f"Tagged {local_path}: {', '.join(tags)}")
        return True
