"""Tests for the content store."""

import pytest

from twittish import content, identity
from twittish.errors import NotFound
from twittish.models import State


@pytest.fixture
def state(new_id):
    s = State()
    identity.register(s, "a@x.com", "amy", "pw", new_id=new_id)
    identity.register(s, "b@x.com", "bob", "pw", new_id=new_id)
    return s


def _post(state, new_id, clock, author="amy", text="hello", media="", parent=None):
    return content.create_post(state, author, text, media, parent, new_id=new_id, now=clock)


# ── create_post ──────────────────────────────────────────────


def test_create_post_inserts_at_head(state, new_id, clock):
    first = _post(state, new_id, clock, text="one")
    second = _post(state, new_id, clock, text="two")
    assert [p.id for p in state.posts] == [second.id, first.id]


def test_create_post_snapshots_author(state, new_id, clock):
    amy = identity.lookup_by_username(state, "amy")
    amy.display = "Amy"
    amy.avatar_ref = "old.png"
    post = _post(state, new_id, clock)
    identity.update_profile(state, amy.id, "Amelia", "", "new.png")
    assert post.author_display == "Amy"
    assert post.author_avatar_ref == "old.png"


def test_create_post_unknown_author(state, new_id, clock):
    with pytest.raises(NotFound):
        _post(state, new_id, clock, author="ghost")
    assert state.posts == []


def test_reply_links_both_directions(state, new_id, clock):
    root = _post(state, new_id, clock)
    reply = _post(state, new_id, clock, author="bob", text="re", parent=root.id)
    assert reply.in_reply_to_id == root.id
    assert root.reply_ids == [reply.id]


def test_reply_ids_keep_creation_order(state, new_id, clock):
    root = _post(state, new_id, clock)
    r1 = _post(state, new_id, clock, author="bob", parent=root.id)
    r2 = _post(state, new_id, clock, author="amy", parent=root.id)
    assert root.reply_ids == [r1.id, r2.id]


def test_reply_to_missing_parent_changes_nothing(state, new_id, clock):
    _post(state, new_id, clock)
    before = state.model_copy(deep=True)
    with pytest.raises(NotFound):
        _post(state, new_id, clock, parent="missing")
    assert state == before


# ── toggle_like ──────────────────────────────────────────────


def test_toggle_like_twice_restores(state, new_id, clock):
    post = _post(state, new_id, clock)
    original = list(post.liked_by)
    assert content.toggle_like(state, post.id, "bob") is True
    assert post.liked_by == ["bob"]
    assert content.toggle_like(state, post.id, "bob") is False
    assert post.liked_by == original


def test_toggle_like_no_duplicates(state, new_id, clock):
    post = _post(state, new_id, clock)
    content.toggle_like(state, post.id, "bob")
    content.toggle_like(state, post.id, "amy")
    assert sorted(post.liked_by) == ["amy", "bob"]


def test_toggle_like_missing_post(state):
    with pytest.raises(NotFound):
        content.toggle_like(state, "missing", "bob")


# ── search ───────────────────────────────────────────────────


def test_search_content_case_insensitive(state, new_id, clock):
    p = _post(state, new_id, clock, text="Hello World")
    _post(state, new_id, clock, text="other")
    assert content.search(state, "WORLD") == [p]


def test_search_matches_tag_substring(state, new_id, clock):
    p = _post(state, new_id, clock, text="new level #GameDev")
    assert content.search(state, "gamedev") == [p]
    assert content.search(state, "dev") == [p]


def test_search_keeps_global_order(state, new_id, clock):
    a = _post(state, new_id, clock, text="#demo a")
    b = _post(state, new_id, clock, text="#demo b")
    assert content.search(state, "demo") == [b, a]


def test_search_blank_query(state, new_id, clock):
    _post(state, new_id, clock)
    assert content.search(state, "") == []


def test_find_by_id(state, new_id, clock):
    p = _post(state, new_id, clock)
    assert content.find_by_id(state, p.id) is p
    assert content.find_by_id(state, "nope") is None


def test_posts_by_and_replies_to(state, new_id, clock):
    root = _post(state, new_id, clock)
    reply = _post(state, new_id, clock, author="bob", parent=root.id)
    assert content.posts_by(state, "bob") == [reply]
    assert content.replies_to(state, root.id) == [reply]
