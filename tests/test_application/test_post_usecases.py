"""
Tests for feed use cases
"""
from datetime import datetime, timedelta, timezone

import pytest

from ourlittleworld.application.errors import Forbidden, NotFound, Unauthorized, ValidationError
from ourlittleworld.application.posts import (
    AddCommentUseCase, AddReplyUseCase, CreatePostUseCase, DeletePostUseCase, ToggleLikeUseCase,
    get_post, list_posts,
)
from ourlittleworld.infrastructure.db.models import EventLog, PostModel


def test_create_post_with_images(db_session, couple, partner_a):
    post = CreatePostUseCase(db_session).execute(
        partner_a, "  Sunday brunch  ", ["https://img/1.jpg", "https://img/2.jpg"], {"mood": "cozy"}
    )

    assert post.content == "Sunday brunch"
    assert post.image_url == "https://img/1.jpg"
    assert post.meta["images"] == ["https://img/1.jpg", "https://img/2.jpg"]
    assert post.meta["mood"] == "cozy"
    assert post.couple_id == couple.id

    event = db_session.query(EventLog).filter(EventLog.event_type == "post_created").one()
    assert event.payload_json["author"]["full_name"] == "Alex"


def test_post_needs_text_or_image(db_session, couple, partner_a):
    with pytest.raises(ValidationError):
        CreatePostUseCase(db_session).execute(partner_a, "   ", [])


def test_post_requires_a_world(db_session, user_factory):
    loner = user_factory("loner@example.com")
    with pytest.raises(Forbidden):
        CreatePostUseCase(db_session).execute(loner, "hello")
    with pytest.raises(Unauthorized):
        CreatePostUseCase(db_session).execute(None, "hello")


def test_like_toggle_by_both_partners(db_session, couple, partner_a, partner_b):
    post = CreatePostUseCase(db_session).execute(partner_a, "hi")
    like = ToggleLikeUseCase(db_session)

    post, liked = like.execute(partner_b, post.id)
    assert liked is True
    post, liked = like.execute(partner_a, post.id)
    assert post.meta["likes_count"] == 2

    post, liked = like.execute(partner_b, post.id)
    assert liked is False
    assert post.meta["likes"] == [partner_a.id]
    assert post.meta["likes_count"] == 1


def test_comments_and_replies_update_count(db_session, couple, partner_a, partner_b):
    post = CreatePostUseCase(db_session).execute(partner_a, "hi")

    post, comment = AddCommentUseCase(db_session).execute(partner_b, post.id, "cute!")
    post, reply = AddReplyUseCase(db_session).execute(partner_a, post.id, comment["id"], "thanks")

    assert post.meta["comments_count"] == 2
    assert post.meta["comments"][0]["replies"][0]["id"] == reply["id"]
    assert db_session.query(EventLog).filter(EventLog.event_type == "post_updated").count() == 2


def test_reply_to_unknown_comment(db_session, couple, partner_a):
    post = CreatePostUseCase(db_session).execute(partner_a, "hi")
    with pytest.raises(NotFound):
        AddReplyUseCase(db_session).execute(partner_a, post.id, "nope", "hey")


def test_only_author_deletes(db_session, couple, partner_a, partner_b, outsider):
    post = CreatePostUseCase(db_session).execute(partner_a, "mine")
    post_id = post.id

    with pytest.raises(NotFound):
        DeletePostUseCase(db_session).execute(outsider, post_id)
    with pytest.raises(Forbidden):
        DeletePostUseCase(db_session).execute(partner_b, post_id)

    DeletePostUseCase(db_session).execute(partner_a, post_id)
    assert db_session.get(PostModel, post_id) is None


def test_get_post_of_other_couple_is_not_found(db_session, couple, partner_a, outsider):
    post = CreatePostUseCase(db_session).execute(partner_a, "private")

    found, author = get_post(db_session, partner_a, post.id)
    assert author.id == partner_a.id
    with pytest.raises(NotFound):
        get_post(db_session, outsider, post.id)


def test_list_posts_newest_first_with_pages(db_session, couple, partner_a):
    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    ids = []
    for i in range(5):
        post = PostModel(couple_id=couple.id, author_id=partner_a.id, content=f"post {i}",
                         created_at=base + timedelta(hours=i))
        db_session.add(post)
        db_session.flush()
        ids.append(post.id)
    db_session.commit()

    first, cursor = list_posts(db_session, partner_a, couple.id, page=0, page_size=2)
    assert [p.id for p, _ in first] == [ids[4], ids[3]]
    assert cursor == 1

    last, cursor = list_posts(db_session, partner_a, couple.id, page=2, page_size=2)
    assert [p.id for p, _ in last] == [ids[0]]
    assert cursor is None
    assert last[0][1].full_name == "Alex"


@pytest.mark.parametrize("page,page_size", [(-1, 10), (0, 0), (0, 500)])
def test_list_posts_rejects_bad_paging(db_session, couple, partner_a, page, page_size):
    with pytest.raises(ValidationError):
        list_posts(db_session, partner_a, couple.id, page=page, page_size=page_size)


def test_like_from_partner_is_kept_when_post_was_already_loaded(db_session, session_factory, couple, partner_a, partner_b):
    post = CreatePostUseCase(db_session).execute(partner_a, "Picnic")
    post_id = post.id
    assert post.meta["likes"] == []

    other = session_factory()
    try:
        ToggleLikeUseCase(other).execute(partner_b, post_id)
    finally:
        other.close()

    post, liked = ToggleLikeUseCase(db_session).execute(partner_a, post_id)

    assert liked is True
    assert set(post.meta["likes"]) == {partner_a.id, partner_b.id}
    assert post.meta["likes_count"] == 2
