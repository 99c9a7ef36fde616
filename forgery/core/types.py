"""Core types: categories, remote descriptors, local entries and summaries."""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Set, Tuple, Union
from enum import Enum


class IdentityKind(Enum):
    """Kind of forge account whose repositories are mirrored."""
    USER = "user"
    ORGANIZATION = "organization"


class Category(Enum):
    """Mutually exclusive placement categories for cloned entities.

    Declaration order is the fixed order categories are processed in.
    """
    PUBLIC_REPO = ("repos", "public")
    PRIVATE_REPO = ("repos", "private")
    FORKED_REPO = ("repos", "forked")
    STARRED_REPO = ("repos", "starred")
    PUBLIC_GIST = ("gists", "public")
    PRIVATE_GIST = ("gists", "private")
    FORKED_GIST = ("gists", "forked")
    STARRED_GIST = ("gists", "starred")

    @property
    def kind(self) -> str:
        """Top-level directory segment ('repos' or 'gists')."""
        return self.value[0]

    @property
    def segment(self) -> str:
        """Category directory segment ('public', 'private', 'forked', 'starred')."""
        return self.value[1]

    @property
    def is_gist(self) -> bool:
        return self.kind == "gists"

    @property
    def is_fork(self) -> bool:
        return self.segment == "forked"

    @property
    def is_starred(self) -> bool:
        return self.segment == "starred"

    @property
    def nested(self) -> bool:
        """Entries live one level down, under an owner login directory."""
        return self.is_fork or self.is_starred

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'Forked Repositories'."""
        noun = "Gists" if self.is_gist else "Repositories"
        return f"{self.segment.capitalize()} {noun}"

    @classmethod
    def from_path(cls, path: str) -> Optional['Category']:
        """Infer the category of a local path from its directory segments."""
        normalized = path.replace("\\", "/")
        for category in cls:
            if f"/{category.kind}/{category.segment}/" in normalized:
                return category
        return None


class DescriptorError(Exception):
    """A forge API payload lacks a field required to build a descriptor."""

    def __init__(self, field_name: str, context: Optional[str] = None):
        self.field_name = field_name
        self.context = context
        message = f"missing required field '{field_name}'"
        if context:
            message += f" ({context})"
        super().__init__(message)


def _require(data: Dict[str, Any], key: str, context: Optional[str], prefix: str = "") -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise DescriptorError(f"{prefix}{key}", context)
    return value


@dataclass(frozen=True)
class RepoDescriptor:
    """Normalized, immutable view of a remote repository."""
    name: str
    owner: str
    ssh_url: str
    is_private: bool = False
    is_fork: bool = False
    has_wiki: bool = False
    parent: Optional['RepoDescriptor'] = None
    # None means the listing did not include topics; they must be fetched
    topics: Optional[Tuple[str, ...]] = None
    language: Optional[str] = None
    organization: Optional[str] = None
    id: Optional[int] = None

    def __post_init__(self):
        if self.parent is not None and not self.is_fork:
            raise ValueError(f"{self.full_name} has a parent but is not a fork")

    @property
    def full_name(self) -> str:
        """Full repository name (owner/name)."""
        return f"{self.owner}/{self.name}"

    @property
    def wiki_url(self) -> str:
        """SSH URL of the repository's wiki."""
        if self.ssh_url.endswith(".git"):
            return self.ssh_url[:-len(".git")] + ".wiki.git"
        return self.ssh_url + ".wiki.git"

    @classmethod
    def from_api(cls, data: Dict[str, Any], prefix: str = "") -> 'RepoDescriptor':
        """Build a descriptor from a GitHub repository payload.

        Args:
            data: Repository dictionary from the GitHub API
            prefix: Field name prefix used in errors for nested payloads

        Returns:
            Fully populated RepoDescriptor

        Raises:
            DescriptorError: If a required field is missing
        """
        context = f"repository id {data.get('id')}"
        name = _require(data, 'name', context, prefix)
        owner_data = data.get('owner') or {}
        owner = _require(owner_data, 'login', context, f"{prefix}owner.")
        ssh_url = _require(data, 'ssh_url', context, prefix)

        parent = None
        if data.get('parent'):
            parent = cls.from_api(data['parent'], prefix=f"{prefix}parent.")

        topics = data.get('topics')
        organization = owner if owner_data.get('type') == 'Organization' else None

        return cls(
            name=name,
            owner=owner,
            ssh_url=ssh_url,
            is_private=bool(data.get('private', False)),
            is_fork=bool(data.get('fork', False)) or parent is not None,
            has_wiki=bool(data.get('has_wiki', False)),
            parent=parent,
            topics=tuple(topics) if topics is not None else None,
            language=data.get('language'),
            organization=organization,
            id=data.get('id'),
        )


@dataclass(frozen=True)
class GistDescriptor:
    """Normalized, immutable view of a remote gist."""
    id: str
    display_name: str
    is_public: bool
    pull_url: str
    owner: Optional[str] = None
    fork_of: Optional['GistDescriptor'] = None

    @property
    def name(self) -> str:
        """Name used for the local directory and for matching."""
        return self.display_name

    @property
    def full_name(self) -> str:
        """Canonical owner/name path, mimicking a repository's."""
        return f"{self.owner or '?'}/{self.display_name}"

    @classmethod
    def from_api(cls, data: Dict[str, Any], prefix: str = "") -> 'GistDescriptor':
        """Build a descriptor from a GitHub gist payload.

        The display name is the first file's name, falling back to the id.

        Raises:
            DescriptorError: If a required field is missing
        """
        gist_id = _require(data, 'id', "gist", prefix)
        context = f"gist id {gist_id}"
        pull_url = _require(data, 'git_pull_url', context, prefix)
        if data.get('public') is None:
            raise DescriptorError(f"{prefix}public", context)

        display_name = gist_id
        files = data.get('files') or {}
        if files:
            first_key, first_file = next(iter(files.items()))
            display_name = (first_file or {}).get('filename') or first_key or gist_id

        fork_of = None
        if data.get('fork_of'):
            fork_of = cls.from_api(data['fork_of'], prefix=f"{prefix}fork_of.")

        return cls(
            id=gist_id,
            display_name=display_name,
            is_public=bool(data['public']),
            pull_url=pull_url,
            owner=(data.get('owner') or {}).get('login'),
            fork_of=fork_of,
        )


Descriptor = Union[RepoDescriptor, GistDescriptor]


@dataclass(frozen=True)
class CategoryPath:
    """An absolute directory tagged with the category it holds."""
    category: Category
    path: str


@dataclass(frozen=True)
class LocalEntry:
    """A directory discovered while scanning a category path."""
    name: str
    full_path: str
    category_path: CategoryPath
    namespace: Optional[str] = None  # owner directory for nested categories


@dataclass
class RemoteRegistry:
    """Descriptors fetched for one run, grouped by category."""
    slices: Dict[Category, List[Descriptor]] = field(default_factory=dict)
    # Names whose descriptor could not be parsed or classified
    unresolved: Set[str] = field(default_factory=set)

    def add(self, category: Category, descriptor: Descriptor) -> None:
        self.slices.setdefault(category, []).append(descriptor)

    def slice(self, category: Category) -> List[Descriptor]:
        return list(self.slices.get(category, []))

    def __len__(self) -> int:
        return sum(len(items) for items in self.slices.values())


class IndexState(Enum):
    """Working-tree state of a local repository."""
    CLEAN = "clean"
    DIRTY = "dirty"
    PRESERVED = "preserved"  # dirty changes pushed to a WIP branch


@dataclass
class RepoSummary:
    """Status report for one local repository."""
    path: str
    state: IndexState
    branch_info: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.path.rstrip("/").split("/")[-1]

    @property
    def is_dirty(self) -> bool:
        return self.state == IndexState.DIRTY

    @property
    def has_unpushed_commits(self) -> bool:
        return any(count > 0 for _, count in self.branch_info)

    @property
    def per_branch_unpushed_counts(self) -> Dict[str, int]:
        return dict(self.branch_info)

    @property
    def needs_report(self) -> bool:
        return self.state != IndexState.CLEAN or self.has_unpushed_commits

    @property
    def flags(self) -> str:
        """Status letters: W (WIP preserved) or M (modified), then P (unpushed)."""
        flags = ""
        if self.state == IndexState.PRESERVED:
            flags += "W"
        elif self.state == IndexState.DIRTY:
            flags += "M"
        if self.has_unpushed_commits:
            flags += "P"
        return flags
