"""Git operations and utilities."""

import os
import subprocess
import logging
from typing import List, Optional, Sequence

logger = logging.getLogger('forgery')

# Exit status git uses for fatal errors such as a missing upstream
GIT_FATAL_EXIT = 128


class GitCommandError(Exception):
    """A git command exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(f"git {' '.join(self.args_list)} exited with {returncode}{detail}")


class Git:
    """Runs git commands in one working directory."""

    def __init__(self, path: str, timeout: Optional[float] = None):
        """Initialize git runner.

        Args:
            path: Working directory for commands
            timeout: Optional timeout in seconds per command
        """
        self.path = path
        self.timeout = timeout

    def run(self, *args: str) -> str:
        """Run a git command and return its trimmed stdout.

        Raises:
            GitCommandError: If git exits non-zero or cannot be started
        """
        logger.debug(f"[{self.path}] git {' '.join(args)}")
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except FileNotFoundError as e:
            raise GitCommandError(args, 127, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise GitCommandError(args, -1, f"timed out after {self.timeout}s") from e

        if result.returncode != 0:
            raise GitCommandError(args, result.returncode, result.stderr.strip())
        return result.stdout.strip()

    # Acquisition

    def clone(self, url: str, directory: Optional[str] = None) -> None:
        args = ["clone", url]
        if directory:
            args.append(directory)
        self.run(*args)

    def remote_exists(self, url: str) -> bool:
        """Probe a remote without cloning it (git ls-remote --heads)."""
        try:
            self.run("ls-remote", "--heads", url)
            return True
        except GitCommandError as e:
            logger.debug(f"Remote {url} not reachable: {e}")
            return False

    # Remotes and configuration

    def rename_remote(self, old: str, new: str) -> None:
        self.run("remote", "rename", old, new)

    def add_remote(self, name: str, url: str) -> None:
        self.run("remote", "add", name, url)

    def remotes(self) -> List[str]:
        output = self.run("remote")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def config_set(self, key: str, value: str) -> None:
        self.run("config", key, value)

    def symbolic_ref(self, ref: str) -> str:
        return self.run("symbolic-ref", ref)

    def set_remote_head(self, remote: str) -> None:
        self.run("remote", "set-head", remote, "--auto")

    def current_branch(self) -> Optional[str]:
        """Checked-out branch name, or None when HEAD is detached.

        Also answers on an unborn branch, before the first commit.
        """
        try:
            return self.run("symbolic-ref", "--quiet", "--short", "HEAD")
        except GitCommandError as e:
            # --quiet exits 1 without output when HEAD is not a symbolic ref
            if e.returncode == 1:
                return None
            raise

    # Synchronization

    def fetch(self, remote: str) -> None:
        self.run("fetch", remote)

    def pull(self, remote: str, branch: Optional[str] = None, rebase: bool = False) -> None:
        args = ["pull", "--rebase" if rebase else "--ff-only", remote]
        if branch:
            args.append(branch)
        self.run(*args)

    def push(self, remote: str, branch: Optional[str] = None, set_upstream: bool = False) -> None:
        args = ["push"]
        if set_upstream:
            args.append("--set-upstream")
        args.append(remote)
        if branch:
            args.append(branch)
        self.run(*args)

    def submodule_update(self, init: bool = True, recursive: bool = True, rebase: bool = False) -> None:
        args = ["submodule", "update"]
        if init:
            args.append("--init")
        if recursive:
            args.append("--recursive")
        if rebase:
            args.append("--rebase")
        self.run(*args)

    # Working tree

    def status_short(self) -> str:
        return self.run("status", "--short")

    def checkout(self, branch: str, create: bool = False) -> None:
        if create:
            self.run("checkout", "-b", branch)
        else:
            self.run("checkout", branch)

    def add_all(self) -> None:
        self.run("add", "--all")

    def commit(self, message: str) -> None:
        self.run("commit", "-m", message)

    def branches(self) -> List[str]:
        output = self.run("branch", "--format=%(refname:short)")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def unpushed_count(self, branch: str) -> int:
        """Count commits on a branch that its upstream does not have.

        Raises:
            GitCommandError: Exit 128 when the branch has no upstream
        """
        output = self.run("rev-list", "--count", f"{branch}@{{upstream}}..{branch}")
        return int(output or 0)


def repo_exists(repo_path: str) -> bool:
    """Check if a path exists and is a directory.

    Args:
        repo_path: Path to check

    Returns:
        True if the path exists and is a directory
    """
    return os.path.exists(repo_path) and os.path.isdir(repo_path)


def is_git_repo(path: str) -> bool:
    """Check if a directory holds a git working tree (.git entry)."""
    return os.path.exists(os.path.join(path, ".git"))


def has_submodules(repo_path: str) -> bool:
    """Check if a working tree declares submodules."""
    return os.path.exists(os.path.join(repo_path, ".gitmodules"))
