"""Comments, likes, leaderboard and newsletter subscriptions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from cardinalnews.storage.pg import PostgresStore, row_to_dict

COMMENT_POINTS = 5
LIKE_POINTS = 2


@dataclass
class PostgresCommunityStore(PostgresStore):
    def list_comments(self, article_id: str, *, limit: int = 100) -> List[Dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT c.id, c.article_id, c.user_id, c.content, c.likes_count, c.is_pinned,
                   c.created_at, c.updated_at,
                   p.display_name, p.avatar_url
            FROM article_comments c
            LEFT JOIN user_profiles p ON p.user_id = c.user_id
            WHERE c.article_id = %s AND c.parent_comment_id IS NULL AND c.is_flagged = FALSE
            ORDER BY c.created_at DESC
            LIMIT %s
            """,
            (article_id, int(limit)),
        )

    def add_comment(
        self,
        article_id: str,
        user_id: str,
        content: str,
        *,
        parent_comment_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self._transaction() as cur:
            cur.execute(
                """
                INSERT INTO article_comments (article_id, user_id, content, parent_comment_id)
                VALUES (%s, %s, %s, %s)
                RETURNING *
                """,
                (article_id, user_id, content, parent_comment_id),
            )
            comment = cur.fetchone()
            cur.execute(
                """
                INSERT INTO user_profiles (user_id, display_name, total_comments, reputation_points)
                VALUES (%s, %s, 1, %s)
                ON CONFLICT (user_id) DO UPDATE SET
                  total_comments = user_profiles.total_comments + 1,
                  reputation_points = user_profiles.reputation_points + EXCLUDED.reputation_points,
                  display_name = COALESCE(user_profiles.display_name, EXCLUDED.display_name),
                  updated_at = now()
                """,
                (user_id, display_name, COMMENT_POINTS),
            )
        return row_to_dict(comment)

    def delete_comment(self, comment_id: str, user_id: str) -> bool:
        return self._execute("DELETE FROM article_comments WHERE id = %s AND user_id = %s", (comment_id, user_id)) > 0

    def toggle_like(self, comment_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Like or unlike a comment. Returns None when the comment does not exist."""
        with self._transaction() as cur:
            cur.execute("SELECT user_id FROM article_comments WHERE id = %s FOR UPDATE", (comment_id,))
            owner = cur.fetchone()
            if owner is None:
                return None
            cur.execute(
                "DELETE FROM comment_likes WHERE comment_id = %s AND user_id = %s RETURNING id",
                (comment_id, user_id),
            )
            liked = cur.fetchone() is None
            delta = 1 if liked else -1
            if liked:
                cur.execute(
                    "INSERT INTO comment_likes (comment_id, user_id) VALUES (%s, %s)", (comment_id, user_id)
                )
            cur.execute(
                """
                UPDATE article_comments
                SET likes_count = GREATEST(0, likes_count + %s), updated_at = now()
                WHERE id = %s
                RETURNING likes_count
                """,
                (delta, comment_id),
            )
            likes_count = cur.fetchone()["likes_count"]
            cur.execute(
                """
                UPDATE user_profiles SET
                  total_likes = GREATEST(0, total_likes + %s),
                  reputation_points = GREATEST(0, reputation_points + %s),
                  updated_at = now()
                WHERE user_id = %s
                """,
                (delta, delta * LIKE_POINTS, owner["user_id"]),
            )
        return {"liked": liked, "likes_count": int(likes_count)}

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM user_profiles WHERE user_id = %s", (user_id,))

    def leaderboard(self, *, limit: int = 10) -> List[Dict[str, Any]]:
        return self._fetch_all("SELECT * FROM community_leaderboard LIMIT %s", (int(limit),))

    def subscribe(self, email: str) -> bool:
        """Returns True when the address is new (or was reactivated)."""
        row = self._fetch_one(
            """
            INSERT INTO newsletter_subscribers (email) VALUES (%s)
            ON CONFLICT (email) DO UPDATE SET is_active = TRUE
            WHERE newsletter_subscribers.is_active = FALSE
            RETURNING id
            """,
            (email,),
        )
        return row is not None
