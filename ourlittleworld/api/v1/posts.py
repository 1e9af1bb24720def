"""
Feed API: posts, likes, comments and replies
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ourlittleworld.api.deps import CamelModel, get_current_user, get_db
from ourlittleworld.application.posts import (
    AddCommentUseCase,
    AddReplyUseCase,
    CreatePostUseCase,
    DeletePostUseCase,
    ToggleLikeUseCase,
    get_post,
    list_posts,
    post_to_dict,
)
from ourlittleworld.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


class CreatePostRequest(CamelModel):
    content: str | None = None
    image_urls: List[str] = []
    metadata: Dict[str, Any] | None = None


class CommentRequest(CamelModel):
    content: str | None = None


@router.get("")
def get_posts(
    couple_id: str | None = Query(None, alias="coupleId"),
    page: int = 0,
    page_size: int | None = Query(None, alias="pageSize"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows, next_cursor = list_posts(db, user, couple_id, page=page, page_size=page_size)
    return {
        "posts": [post_to_dict(post, author) for post, author in rows],
        "next_cursor": next_cursor,
    }


@router.get("/{post_id}")
def get_single_post(
    post_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post, author = get_post(db, user, post_id)
    return post_to_dict(post, author)


@router.post("", status_code=201)
def create_post(
    req: CreatePostRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post = CreatePostUseCase(db).execute(user, req.content, req.image_urls, req.metadata)
    return post_to_dict(post, user)


@router.post("/{post_id}/like")
def toggle_like(
    post_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post, liked = ToggleLikeUseCase(db).execute(user, post_id)
    return {"liked": liked, "likes_count": post.meta["likes_count"], "post": post_to_dict(post)}


@router.post("/{post_id}/comments", status_code=201)
def add_comment(
    post_id: str,
    req: CommentRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post, comment = AddCommentUseCase(db).execute(user, post_id, req.content)
    return {"comment": comment, "comments_count": post.meta["comments_count"], "post": post_to_dict(post)}


@router.post("/{post_id}/comments/{comment_id}/replies", status_code=201)
def add_reply(
    post_id: str,
    comment_id: str,
    req: CommentRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post, reply = AddReplyUseCase(db).execute(user, post_id, comment_id, req.content)
    return {"reply": reply, "comments_count": post.meta["comments_count"], "post": post_to_dict(post)}


@router.delete("/{post_id}")
def delete_post(
    post_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeletePostUseCase(db).execute(user, post_id)
    return {"success": True, "id": post_id}
