"""
Feed use cases: posts, likes, comments, replies.

Likes and comments live inside the post's metadata document; every write
re-derives likes_count / comments_count (see domain.feed).
"""
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ourlittleworld.application.access import require_couple, require_membership, require_owned, require_user
from ourlittleworld.application.errors import Forbidden, ValidationError
from ourlittleworld.config import get_settings
from ourlittleworld.domain import feed
from ourlittleworld.domain.feed import PostValidationError
from ourlittleworld.infrastructure.db.models import PostModel, User
from ourlittleworld.infrastructure.eventlog.repository import EventLogRepository


def post_to_dict(post: PostModel, author: Optional[User] = None) -> Dict[str, Any]:
    return {
        "id": post.id,
        "couple_id": post.couple_id,
        "author_id": post.author_id,
        "content": post.content,
        "image_url": post.image_url,
        "metadata": post.meta,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
        "author": {
            "id": author.id,
            "full_name": author.full_name,
            "avatar_url": author.avatar_url,
        } if author is not None else None,
    }


class _PostUseCase:

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def _load(self, user: Optional[User], post_id: str, for_update: bool = False) -> PostModel:
        require_user(user)
        query = self.db.query(PostModel).filter(PostModel.id == post_id)
        if for_update:
            # metadata is read-modify-write: lock the row, reload a fresh copy
            query = query.with_for_update().populate_existing()
        post = query.first()
        return require_owned(post, user, "Post")

    def _save(self, user: User, post: PostModel, event_type: str) -> None:
        self.db.flush()
        self.event_repo.append_event(
            couple_id=post.couple_id,
            event_type=event_type,
            payload=post_to_dict(post, self.db.get(User, post.author_id)),
            entity_id=post.id,
            actor_user_id=user.id,
        )
        self.db.commit()


class CreatePostUseCase(_PostUseCase):
    """Use case: publish a post to the couple's feed (text and/or image URLs)"""

    def execute(
        self,
        user: Optional[User],
        content: Optional[str],
        image_urls: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PostModel:
        couple_id = require_couple(user)

        text = (content or "").strip()
        images = [url for url in (image_urls or []) if url]
        if not text and not images:
            raise PostValidationError("Content or image is required")

        post = PostModel(
            couple_id=couple_id,
            author_id=user.id,
            content=text,
            image_url=images[0] if images else None,
            meta=feed.initial_metadata(metadata if isinstance(metadata, dict) else None, images),
        )
        self.db.add(post)
        self._save(user, post, "post_created")
        return post


class ToggleLikeUseCase(_PostUseCase):

    def execute(self, user: Optional[User], post_id: str) -> Tuple[PostModel, bool]:
        """
        Returns:
            (post, liked_now)
        """
        post = self._load(user, post_id, for_update=True)
        post.meta, liked = feed.toggle_like(post.meta, user.id)
        self._save(user, post, "post_updated")
        return post, liked


class AddCommentUseCase(_PostUseCase):

    def execute(self, user: Optional[User], post_id: str, content: str) -> Tuple[PostModel, Dict[str, Any]]:
        post = self._load(user, post_id, for_update=True)
        post.meta, comment = feed.add_comment(post.meta, user.id, content)
        self._save(user, post, "post_updated")
        return post, comment


class AddReplyUseCase(_PostUseCase):

    def execute(
        self, user: Optional[User], post_id: str, comment_id: str, content: str
    ) -> Tuple[PostModel, Dict[str, Any]]:
        post = self._load(user, post_id, for_update=True)
        post.meta, reply = feed.add_reply(post.meta, comment_id, user.id, content)
        self._save(user, post, "post_updated")
        return post, reply


class DeletePostUseCase(_PostUseCase):
    """Only the author can delete their post"""

    def execute(self, user: Optional[User], post_id: str) -> None:
        post = self._load(user, post_id)
        if post.author_id != user.id:
            raise Forbidden("Only the author can delete a post")
        couple_id = post.couple_id

        self.db.delete(post)
        self.db.flush()
        self.event_repo.append_event(
            couple_id=couple_id,
            event_type="post_deleted",
            payload={"id": post_id},
            entity_id=post_id,
            actor_user_id=user.id,
        )
        self.db.commit()


def get_post(db: Session, user: Optional[User], post_id: str) -> Tuple[PostModel, Optional[User]]:
    require_user(user)
    post = require_owned(db.query(PostModel).filter(PostModel.id == post_id).first(), user, "Post")
    return post, db.get(User, post.author_id)


def list_posts(
    db: Session,
    user: Optional[User],
    couple_id: Optional[str],
    page: int = 0,
    page_size: Optional[int] = None,
) -> Tuple[List[Tuple[PostModel, Optional[User]]], Optional[int]]:
    """
    Newest first, offset pagination.

    Returns:
        ([(post, author), ...], next_cursor) - next_cursor is None on the last page
    """
    require_membership(user, couple_id)

    settings = get_settings()
    if page_size is None:
        page_size = settings.POSTS_PAGE_SIZE_DEFAULT
    if page < 0:
        raise ValidationError("Invalid page")
    if page_size <= 0 or page_size > settings.POSTS_PAGE_SIZE_MAX:
        raise ValidationError("Invalid pageSize")

    rows = (
        db.query(PostModel, User)
        .outerjoin(User, User.id == PostModel.author_id)
        .filter(PostModel.couple_id == couple_id)
        .order_by(PostModel.created_at.desc())
        .offset(page * page_size)
        .limit(page_size)
        .all()
    )
    posts = [(post, author) for post, author in rows]
    next_cursor = page + 1 if len(posts) == page_size else None
    return posts, next_cursor
