"""Base classes for forgery operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, TYPE_CHECKING
from enum import Enum

from ..core.repo_types import RepoTypes
from ..utils.git import Git

if TYPE_CHECKING:
    from ..core.paths import CategoryPaths
    from ..core.types import CategoryPath, RemoteRegistry


class OperationStatus(Enum):
    """Status of an operation on one entity."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class OperationResult:
    """Result of an operation on a single repository or gist."""
    status: OperationStatus
    message: str
    repo_name: str
    repo_full_name: str

    @property
    def success(self) -> bool:
        """Check if operation was successful."""
        return self.status == OperationStatus.SUCCESS

    @property
    def skipped(self) -> bool:
        """Check if operation was skipped."""
        return self.status == OperationStatus.SKIPPED

    @property
    def failed(self) -> bool:
        """Check if operation failed."""
        return self.status == OperationStatus.FAILED

    @classmethod
    def succeeded(cls, message: str, name: str, full_name: str) -> 'OperationResult':
        return cls(OperationStatus.SUCCESS, message, name, full_name)

    @classmethod
    def skip(cls, message: str, name: str, full_name: str) -> 'OperationResult':
        return cls(OperationStatus.SKIPPED, message, name, full_name)

    @classmethod
    def failure(cls, message: str, name: str, full_name: str) -> 'OperationResult':
        return cls(OperationStatus.FAILED, message, name, full_name)


GitFactory = Callable[[str], Git]


class Operation(ABC):
    """Abstract base class for subcommands run over an account's layout."""

    # Class attributes to be overridden by subclasses
    name: str = "base"
    description: str = "Base operation"
    # Whether enabled category directories are created before executing
    creates_directories: bool = False
    # Whether the remote listing is fetched before executing
    needs_registry: bool = True

    def __init__(
        self,
        layout: 'CategoryPaths',
        repo_types: RepoTypes,
        git_factory: Optional[GitFactory] = None,
        **kwargs
    ):
        """Initialize operation.

        Args:
            layout: Resolved category directories for the account
            repo_types: Selected categories
            git_factory: Builds a git runner for a path (default: Git)
            **kwargs: Operation-specific parameters (ignored by base class)
        """
        self.layout = layout
        self.repo_types = repo_types
        self.git_factory: GitFactory = git_factory or Git

    def selected_paths(self) -> List['CategoryPath']:
        """Category directories of the layout this operation's repo types select."""
        return [cp for cp in self.layout.all() if self.repo_types.is_enabled(cp.category)]

    @abstractmethod
    def execute(self, registry: Optional['RemoteRegistry']) -> List[OperationResult]:
        """Run the operation.

        Args:
            registry: Remote listing for the run (None if not needed)

        Returns:
            One result per entity acted on
        """
        pass

    def post_batch_hook(self, results: List[OperationResult]) -> None:
        """Hook called after all entities are processed.

        Args:
            results: List of operation results
        """
        pass
