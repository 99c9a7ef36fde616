"""Result logging and summary utilities."""

import logging
from typing import List
from ..operations.base import OperationResult, OperationStatus

logger = logging.getLogger('forgery')


def log_result(result: OperationResult) -> None:
    """Log an operation result with its status marker.

    Args:
        result: Operation result
    """
    if result.success:
        logger.info(f"✓ {result.repo_full_name}: {result.message}")
    elif result.skipped:
        logger.info(f"⊘ {result.repo_full_name}: {result.message}")
    else:
        logger.error(f"✗ {result.repo_full_name}: {result.message}")


def print_summary(results: List[OperationResult], operation_name: str) -> None:
    """Print operation summary.

    Args:
        results: List of operation results
        operation_name: Name of the operation
    """
    total = len(results)
    success = sum(1 for r in results if r.status == OperationStatus.SUCCESS)
    skipped = sum(1 for r in results if r.status == OperationStatus.SKIPPED)
    failed = sum(1 for r in results if r.status == OperationStatus.FAILED)

    print("\n" + "=" * 60)
    print(f"SUMMARY: {operation_name.upper()}")
    print("=" * 60)
    print(f"Total entries: {total}")
    print(f"✓ Success: {success}")
    print(f"⊘ Skipped: {skipped}")
    print(f"✗ Failed: {failed}")

    if failed > 0:
        print("\nFailed:")
        for result in results:
            if result.failed:
                print(f"  - {result.repo_full_name}: {result.message}")

    # Skips are routine on re-runs; only list them when there are few
    if 0 < skipped <= 10:
        print("\nSkipped:")
        for result in results:
            if result.skipped:
                print(f"  - {result.repo_full_name}: {result.message}")

    print("=" * 60)
