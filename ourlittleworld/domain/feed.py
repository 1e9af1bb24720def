"""
Feed post metadata: embedded likes, comments and replies.

A post's `metadata` JSON is a small document owned by the post:

    {
        "images": ["https://..."],
        "likes": ["<user id>", ...],
        "likes_count": 1,
        "comments": [
            {"id": ..., "author_id": ..., "content": ..., "created_at": ...,
             "replies": [{"id": ..., "author_id": ..., "content": ..., "created_at": ...}]}
        ],
        "comments_count": 1
    }

Every function here is a pure transform: it returns a new document and never
edits its input. Counters are recomputed from the lists on every write, never
incremented, so they cannot drift.
"""
import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ourlittleworld.application.errors import NotFound, ValidationError


class PostValidationError(ValidationError):
    """Invalid post / comment input"""
    pass


def _now_iso(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def count_comments(comments: List[Dict[str, Any]]) -> int:
    """Each comment counts once, plus one per reply"""
    return sum(1 + len(c.get("replies") or []) for c in comments)


def recount(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    doc = copy.deepcopy(metadata) if metadata else {}
    likes = doc.get("likes") or []
    comments = doc.get("comments") or []
    doc["likes"] = likes
    doc["comments"] = comments
    doc["likes_count"] = len(likes)
    doc["comments_count"] = count_comments(comments)
    return doc


def initial_metadata(base: Optional[Dict[str, Any]], image_urls: List[str]) -> Optional[Dict[str, Any]]:
    """
    Metadata for a new post: caller-supplied keys, image list, zeroed counters.
    None when there is nothing to store.
    """
    if not base and not image_urls:
        return None
    doc = copy.deepcopy(base) if isinstance(base, dict) else {}
    if image_urls:
        doc["images"] = list(image_urls)
    return recount(doc)


def toggle_like(metadata: Optional[Dict[str, Any]], user_id: str) -> Tuple[Dict[str, Any], bool]:
    """
    Like if not liked, unlike otherwise.

    Returns:
        (new metadata, liked_now)
    """
    doc = recount(metadata)
    likes = [uid for uid in doc["likes"] if uid != user_id]
    liked = len(likes) == len(doc["likes"])
    if liked:
        likes.append(user_id)
    doc["likes"] = likes
    return recount(doc), liked


def _require_content(content: Optional[str]) -> str:
    text = (content or "").strip()
    if not text:
        raise PostValidationError("Comment cannot be empty")
    return text


def add_comment(
    metadata: Optional[Dict[str, Any]],
    author_id: str,
    content: str,
    now: Optional[datetime] = None,
    comment_id: Optional[str] = None,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Args:
        comment_id: caller-chosen id (optimistic clients pass a temp id); uuid4 by default

    Returns:
        (new metadata, the stored comment)
    """
    comment = {
        "id": comment_id or str(uuid.uuid4()),
        "author_id": author_id,
        "content": _require_content(content),
        "created_at": _now_iso(now),
        "replies": [],
    }
    doc = recount(metadata)
    doc["comments"] = doc["comments"] + [comment]
    return recount(doc), comment


def add_reply(
    metadata: Optional[Dict[str, Any]],
    comment_id: str,
    author_id: str,
    content: str,
    now: Optional[datetime] = None,
    reply_id: Optional[str] = None,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Append a reply under an existing comment.

    Raises:
        NotFound: no comment with that id on this post
    """
    reply = {
        "id": reply_id or str(uuid.uuid4()),
        "author_id": author_id,
        "content": _require_content(content),
        "created_at": _now_iso(now),
    }
    doc = recount(metadata)
    found = False
    comments = []
    for comment in doc["comments"]:
        if comment.get("id") == comment_id:
            comment = {**comment, "replies": list(comment.get("replies") or []) + [reply]}
            found = True
        comments.append(comment)
    if not found:
        raise NotFound("Comment not found")
    doc["comments"] = comments
    return recount(doc), reply
