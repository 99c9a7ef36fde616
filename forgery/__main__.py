"""Main entry point for the forgery CLI."""

from dotenv import load_dotenv
load_dotenv()

import sys
import argparse
from typing import Any, Dict, List, Optional

from .config import Config
from .core.logger import setup_logging
from .core.github_client import GitHubClient, ForgeAPIError
from .core.paths import PathLayoutError
from .core.repo_manager import RepoManager
from .core.repo_types import RepoTypes
from .operations.registry import registry
from .operations.sync import SyncOptions
from .utils.progress import print_summary

REPO_CATEGORIES = ('public', 'private', 'forked', 'starred')


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='forgery',
        description='Mirror and sync a GitHub account\'s repositories, gists and wikis',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Clone everything the token's user owns, forked and starred
  forgery clone --base-path ~/Developer

  # Clone an organization's repositories but no gists
  forgery clone --organization mycompany --no-gists

  # Pull everything, rebasing forks onto upstream and pushing them back
  forgery sync --pull-with-rebase --push-to-fork-remotes

  # Delete local clones whose remote is gone
  forgery sync --prune

  # Report uncommitted or unpushed work, saving dirty trees to a WIP branch
  forgery status --wip
        """
    )

    parser.add_argument(
        '--list-operations',
        action='store_true',
        help='List available operations and exit'
    )

    subparsers = parser.add_subparsers(
        dest='operation',
        help='Operation to perform',
        required=False
    )

    for op_name, op_class in registry.items():
        op_parser = subparsers.add_parser(
            op_name,
            help=op_class.description
        )
        _add_common_args(op_parser)

        if op_name == 'sync':
            sync_group = op_parser.add_argument_group('sync')
            sync_group.add_argument(
                '--prune',
                action='store_true',
                help='Delete local clones that no longer exist remotely (uncommitted work is lost)'
            )
            sync_group.add_argument(
                '--pull-with-rebase',
                action='store_true',
                help='Pull with --rebase instead of fast-forward only'
            )
            sync_group.add_argument(
                '--push-after-rebase',
                action='store_true',
                help='Push to origin after a rebasing pull'
            )
            sync_group.add_argument(
                '--push-to-fork-remotes',
                action='store_true',
                help='Push forks to their fork remote after pulling from upstream'
            )
            sync_group.add_argument(
                '--rebase-submodules',
                action='store_true',
                help='Rebase submodules onto their updated pointers'
            )
        elif op_name == 'status':
            op_parser.add_argument(
                '--wip',
                action='store_true',
                help='Commit and push dirty working trees to a forgery-wip branch'
            )

    return parser


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser.

    Args:
        parser: Parser to add arguments to
    """
    config_group = parser.add_argument_group('configuration')
    config_group.add_argument(
        '--base-path',
        help='Root of the mirror tree (default: current directory, overrides FORGERY_BASE_PATH)'
    )
    config_group.add_argument(
        '--token',
        help='GitHub token (overrides GITHUB_TOKEN)'
    )
    config_group.add_argument(
        '--organization',
        metavar='NAME',
        help='Work on an organization\'s repositories instead of the token owner\'s'
    )
    config_group.add_argument(
        '--dedupe-org-repos-created-by-user',
        action='store_true',
        help='Skip the user\'s repositories that are owned by an organization'
    )
    config_group.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log debug output, including every git command'
    )

    repo_group = parser.add_argument_group('repository selection')
    repo_group.add_argument('--no-repos', action='store_true', help='Skip all repositories and wikis')
    for category in REPO_CATEGORIES:
        repo_group.add_argument(
            f'--no-{category}-repos',
            action='store_true',
            help=f'Skip {category} repositories'
        )
    for category in REPO_CATEGORIES:
        repo_group.add_argument(
            f'--only-{category}-repos',
            action='store_true',
            help=f'Only {category} repositories (other repository kinds are skipped)'
        )
    repo_group.add_argument('--no-wikis', action='store_true', help='Skip repository wikis')

    gist_group = parser.add_argument_group('gist selection')
    gist_group.add_argument('--no-gists', action='store_true', help='Skip all gists')
    for category in REPO_CATEGORIES:
        gist_group.add_argument(
            f'--no-{category}-gists',
            action='store_true',
            help=f'Skip {category} gists'
        )
    for category in REPO_CATEGORIES:
        gist_group.add_argument(
            f'--only-{category}-gists',
            action='store_true',
            help=f'Only {category} gists (other gist kinds are skipped)'
        )


def repo_types_from_args(args: argparse.Namespace) -> RepoTypes:
    """Resolve the selection flags into a RepoTypes value."""
    flags: Dict[str, bool] = {
        'no_repos': args.no_repos,
        'no_wikis': args.no_wikis,
        'no_gists': args.no_gists,
    }
    for category in REPO_CATEGORIES:
        for kind in ('repos', 'gists'):
            for mode in ('no', 'only'):
                key = f'{mode}_{category}_{kind}'
                flags[key] = getattr(args, key)
    return RepoTypes.from_flags(**flags)


def operation_kwargs_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Build operation-specific constructor arguments."""
    if args.operation == 'sync':
        return {'sync_options': SyncOptions(
            prune=args.prune,
            pull_with_rebase=args.pull_with_rebase,
            push_after_rebase=args.push_after_rebase,
            push_to_fork_remotes=args.push_to_fork_remotes,
            rebase_submodules=args.rebase_submodules
        )}
    if args.operation == 'status':
        return {'push_wip': args.wip}
    return {}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.list_operations:
        print("Available operations:")
        for name, op_class in registry.items():
            print(f"  {name}: {op_class.description}")
        return 0

    if not args.operation:
        parser.print_help()
        return 1

    logger = setup_logging(operation=args.operation, verbose=args.verbose)

    try:
        config = Config.from_env_and_args(
            token=args.token,
            base_path=args.base_path,
            organization=args.organization,
            dedupe_org_repos=args.dedupe_org_repos_created_by_user
        )

        logger.info("Configuration loaded")
        logger.info(f"  Base path: {config.base_path}")
        if config.is_organization:
            logger.info(f"  Organization: {config.organization}")

        repo_types = repo_types_from_args(args)
        github_client = GitHubClient(token=config.github_token)
        repo_manager = RepoManager(
            github_client=github_client,
            config=config,
            repo_types=repo_types
        )

        results = repo_manager.execute_operation(
            operation_class=registry.get(args.operation),
            **operation_kwargs_from_args(args)
        )

        print_summary(results, operation_name=args.operation)

        # Per-entity failures are reported in the summary, not the exit code
        return 0

    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except ForgeAPIError as e:
        logger.error(f"GitHub API error: {e}")
        return 1
    except PathLayoutError as e:
        logger.error(f"Could not create directories: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("\nOperation cancelled by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
