"""Reader community: article comments, likes, the leaderboard and newsletter sign-ups."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from cardinalnews.errors import InvalidRequestError, NotFoundError
from cardinalnews.storage.postgres_community import PostgresCommunityStore

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000
LEADERBOARD_SIZE = 10
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def clean_comment(content: Any) -> str:
    text = (content or "").strip() if isinstance(content, str) else ""
    if not text:
        raise InvalidRequestError("Comment cannot be empty")
    if len(text) > MAX_COMMENT_LENGTH:
        raise InvalidRequestError(f"Comment must be {MAX_COMMENT_LENGTH} characters or fewer")
    return text


def normalize_email(email: Any) -> str:
    value = (email or "").strip().lower() if isinstance(email, str) else ""
    if not EMAIL_RE.match(value) or len(value) > 255:
        raise InvalidRequestError("Please enter a valid email address")
    return value


@dataclass
class CommunityService:
    store: PostgresCommunityStore

    def comments(self, article_id: str) -> List[Dict[str, Any]]:
        return self.store.list_comments(article_id)

    def post_comment(
        self,
        article_id: Optional[str],
        user_id: Optional[str],
        content: Any,
        *,
        parent_comment_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not article_id or not user_id:
            raise InvalidRequestError("articleId and userId are required")
        text = clean_comment(content)
        comment = self.store.add_comment(
            article_id, user_id, text, parent_comment_id=parent_comment_id, display_name=display_name
        )
        logger.info(f"Comment {comment['id']} posted on article {article_id}")
        return comment

    def delete_comment(self, comment_id: str, user_id: Optional[str]) -> None:
        if not user_id:
            raise InvalidRequestError("userId is required")
        if not self.store.delete_comment(comment_id, user_id):
            raise NotFoundError("Comment not found")

    def toggle_like(self, comment_id: str, user_id: Optional[str]) -> Dict[str, Any]:
        if not user_id:
            raise InvalidRequestError("userId is required")
        result = self.store.toggle_like(comment_id, user_id)
        if result is None:
            raise NotFoundError("Comment not found")
        return result

    def profile(self, user_id: str) -> Dict[str, Any]:
        profile = self.store.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    def leaderboard(self) -> List[Dict[str, Any]]:
        return self.store.leaderboard(limit=LEADERBOARD_SIZE)

    def subscribe(self, email: Any) -> Dict[str, Any]:
        address = normalize_email(email)
        created = self.store.subscribe(address)
        if created:
            logger.info("New newsletter subscriber")
        return {
            "success": True,
            "subscribed": True,
            "message": "Successfully subscribed!" if created else "You're already subscribed!",
        }
