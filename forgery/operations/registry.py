"""Discovery of the subcommands under forgery.operations."""

import pkgutil
import importlib
import inspect
import logging
from types import ModuleType
from typing import Dict, List, Tuple, Type

from .base import Operation

logger = logging.getLogger('forgery')

PACKAGE = 'forgery.operations'
# Modules holding plumbing rather than subcommands
SUPPORT_MODULES = ('base', 'registry')


def operations_in(module: ModuleType) -> List[Type[Operation]]:
    """Concrete Operation subclasses defined by a module.

    Classes a module merely imports are left out, so each operation is
    found in exactly one place.
    """
    def is_operation(obj) -> bool:
        return (inspect.isclass(obj)
                and issubclass(obj, Operation)
                and not inspect.isabstract(obj)
                and obj.__module__ == module.__name__)

    return [obj for _, obj in inspect.getmembers(module, is_operation)]


class OperationRegistry:
    """Subcommands keyed by their `name` attribute."""

    def __init__(self):
        self._operations: Dict[str, Type[Operation]] = {}
        package = importlib.import_module(PACKAGE)
        for _, module_name, _ in pkgutil.iter_modules(package.__path__):
            if module_name in SUPPORT_MODULES:
                continue
            try:
                module = importlib.import_module(f'{PACKAGE}.{module_name}')
            except ImportError as e:
                logger.warning(f"Failed to load operation module {module_name}: {e}")
                continue
            for operation_class in operations_in(module):
                self.register(operation_class)

    def register(self, operation_class: Type[Operation]) -> None:
        """Add an operation under its name.

        Raises:
            ValueError: If another class already uses the name
        """
        existing = self._operations.get(operation_class.name)
        if existing is not None and existing is not operation_class:
            raise ValueError(
                f"Operation name '{operation_class.name}' used by both "
                f"{existing.__qualname__} and {operation_class.__qualname__}"
            )
        self._operations[operation_class.name] = operation_class
        logger.debug(f"Registered operation: {operation_class.name} ({operation_class.description})")

    def get(self, name: str) -> Type[Operation]:
        """Get an operation class by subcommand name.

        Raises:
            KeyError: If no operation has that name
        """
        if name not in self._operations:
            available = ", ".join(self.list_operations())
            raise KeyError(f"Unknown operation: {name} (available: {available})")
        return self._operations[name]

    def list_operations(self) -> List[str]:
        """Subcommand names, sorted."""
        return sorted(self._operations)

    def items(self) -> List[Tuple[str, Type[Operation]]]:
        """(name, class) pairs in subcommand name order."""
        return [(name, self._operations[name]) for name in self.list_operations()]


registry = OperationRegistry()
