"""Tests for tree-splice helpers."""

import pytest

from skillsync.core.modules.comment.models import Comment
from skillsync.core.modules.comment.normalizer import normalize_comments
from skillsync.core.modules.comment.tree import (
    count_comments,
    find_comment,
    insert_reply,
    remove_comment,
    replace_comment,
    walk,
)


@pytest.fixture
def tree(raw_comments):
    return normalize_comments(raw_comments)


class TestTraversal:
    """Tests for walk, find and count."""

    def test_walk_is_depth_first(self, tree):
        assert [comment.id for comment in walk(tree)] == ["1", "2", "3", "4"]

    def test_find_nested_comment(self, tree):
        assert find_comment(tree, "3").content == "Shipping it"

    def test_find_missing_comment(self, tree):
        assert find_comment(tree, "404") is None

    def test_count_includes_every_depth(self, tree):
        assert count_comments(tree) == 4
        assert count_comments([]) == 0


class TestInsertReply:
    """Tests for appending replies under a parent."""

    def test_reply_appended_last(self, tree):
        """Test that a new reply goes after the existing replies of its parent."""
        reply = Comment(id="50", content="hello", parent_id="1")
        updated = insert_reply(tree, "1", reply)

        assert [child.id for child in find_comment(updated, "1").replies] == ["2", "50"]

    def test_reply_to_deep_comment(self, tree):
        reply = Comment(id="51", content="deep", parent_id="3")
        updated = insert_reply(tree, "3", reply)
        assert find_comment(updated, "3").replies == [reply]

    def test_untouched_branches_shared(self, tree):
        """Test that branches off the insertion path are reused, not copied."""
        updated = insert_reply(tree, "3", Comment(id="51", parent_id="3"))
        assert updated[1] is tree[1]
        assert updated[0] is not tree[0]

    def test_input_not_mutated(self, tree):
        insert_reply(tree, "1", Comment(id="50", parent_id="1"))
        assert [child.id for child in tree[0].replies] == ["2"]

    def test_unknown_parent_returns_none(self, tree):
        assert insert_reply(tree, "404", Comment(id="50")) is None


class TestReplaceComment:
    """Tests for replacing fields of a node."""

    def test_nested_content_replaced(self, tree):
        updated = replace_comment(tree, "2", {"content": "new"})
        assert find_comment(updated, "2").content == "new"

    def test_siblings_and_subtree_unchanged(self, tree):
        """Test that only the target node changes; its children and other branches are shared."""
        updated = replace_comment(tree, "2", {"content": "new"})
        edited = find_comment(updated, "2")

        assert edited.replies[0] is tree[0].replies[0].replies[0]
        assert updated[1] is tree[1]
        assert updated[0].content == tree[0].content
        assert updated[0].like_count == tree[0].like_count

    def test_unknown_id_returns_none(self, tree):
        assert replace_comment(tree, "404", {"content": "x"}) is None


class TestRemoveComment:
    """Tests for removing nodes at any depth."""

    def test_remove_reply(self, tree):
        updated = remove_comment(tree, "2")
        assert len(updated) == 2
        assert updated[0].replies == []

    def test_removed_id_absent_everywhere(self, tree):
        for comment_id in ("1", "2", "3", "4"):
            updated = remove_comment(tree, comment_id)
            assert all(comment.id != comment_id for comment in walk(updated))

    def test_remove_top_level_drops_subtree(self, tree):
        updated = remove_comment(tree, "1")
        assert [comment.id for comment in walk(updated)] == ["4"]

    def test_sibling_order_preserved(self):
        comments = [Comment(id="a"), Comment(id="b"), Comment(id="c")]
        assert [comment.id for comment in remove_comment(comments, "b")] == ["a", "c"]

    def test_unknown_id_returns_none(self, tree):
        assert remove_comment(tree, "404") is None
