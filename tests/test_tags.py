# tests/test_tags.py

from unittest.mock import MagicMock, patch

import pytest

from forgery.core.github_client import FailureKind, ForgeAPIError
from forgery.utils.tags import TagSynchronizer, TagTool, TagToolError, compute_tags

from conftest import make_repo


def test_compute_tags_adds_lowercased_language_and_dedupes():
    assert compute_tags(["cli", "python", "cli"], "Python") == ["cli", "python"]
    assert compute_tags([], None) == []


def test_refresh_is_not_additive(tag_tool):
    tag_tool.tags["/r"] = ["a", "b", "c"]
    synchronizer = TagSynchronizer(tag_tool)

    assert synchronizer.sync_tags(make_repo(topics=("b", "d")), "/r", clear_first=True)

    assert sorted(tag_tool.tags["/r"]) == ["b", "d"]


def test_without_clear_first_tags_accumulate(tag_tool):
    tag_tool.tags["/r"] = ["a"]
    TagSynchronizer(tag_tool).sync_tags(make_repo(topics=("b",)), "/r")

    assert tag_tool.tags["/r"] == ["a", "b"]


def test_nothing_to_apply_leaves_directory_untouched(tag_tool):
    tag_tool.tags["/r"] = ["old"]
    fetcher = MagicMock(return_value=[])

    ok = TagSynchronizer(tag_tool, fetcher).sync_tags(
        make_repo(topics=(), language=None), "/r", clear_first=True
    )

    assert ok
    assert tag_tool.calls == []
    assert tag_tool.tags["/r"] == ["old"]
    fetcher.assert_not_called()


def test_topics_are_fetched_when_missing(tag_tool):
    fetcher = MagicMock(return_value=["infra"])
    repo = make_repo(topics=None, language="Go")

    TagSynchronizer(tag_tool, fetcher).sync_tags(repo, "/r")

    fetcher.assert_called_once_with("alice", "foo")
    assert tag_tool.tags["/r"] == ["infra", "go"]


def test_topic_fetch_failure_skips_tagging(tag_tool):
    fetcher = MagicMock(side_effect=ForgeAPIError(FailureKind.HTTP, "nope", 500))

    ok = TagSynchronizer(tag_tool, fetcher).sync_tags(make_repo(topics=None), "/r")

    assert not ok
    assert tag_tool.calls == []


def test_tool_failure_is_not_fatal(tag_tool):
    tag_tool.broken = True

    assert not TagSynchronizer(tag_tool).sync_tags(make_repo(topics=("x",)), "/r")


# ---- TagTool ----

def test_tag_tool_command_lines():
    tool = TagTool()
    with patch("forgery.utils.tags.subprocess.run") as run:
        run.return_value = MagicMock(returncode=0, stdout="a,b\n", stderr="")

        assert tool.read_tags("/r") == ["a", "b"]
        tool.add_tags("/r", ["x", "y"])
        tool.remove_tags("/r", ["a"])

    commands = [call.args[0] for call in run.call_args_list]
    assert commands == [
        ["tag", "--list", "--no-name", "/r"],
        ["tag", "--add", "x,y", "/r"],
        ["tag", "--remove", "a", "/r"],
    ]


def test_tag_tool_missing_executable():
    with patch("forgery.utils.tags.subprocess.run", side_effect=FileNotFoundError()):
        with pytest.raises(TagToolError):
            TagTool().read_tags("/r")


def test_tag_tool_non_zero_exit():
    with patch("forgery.utils.tags.subprocess.run") as run:
        run.return_value = MagicMock(returncode=1, stdout="", stderr="bad path")
        with pytest.raises(TagToolError):
            TagTool().add_tags("/r", ["x"])
