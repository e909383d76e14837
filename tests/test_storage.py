import unittest
from unittest import mock

import psycopg
import psycopg.errors

from cardinalnews.errors import DatabaseError, DuplicateArticleError, InvalidRequestError
from cardinalnews.storage.postgres_articles import PostgresArticleStore
from cardinalnews.storage.postgres_community import COMMENT_POINTS, LIKE_POINTS, PostgresCommunityStore


def fake_connection():
    """A psycopg connection double whose context managers let exceptions through."""
    conn = mock.MagicMock()
    conn.__enter__.return_value = conn
    conn.__exit__.return_value = False
    conn.transaction.return_value.__exit__.return_value = False
    cur = conn.cursor.return_value
    cur.__enter__.return_value = cur
    cur.__exit__.return_value = False
    return conn, cur


class StoreTestCase(unittest.TestCase):
    def setUp(self):
        self.conn, self.cur = fake_connection()
        patcher = mock.patch("cardinalnews.storage.pg.psycopg.connect", return_value=self.conn)
        self.connect = patcher.start()
        self.addCleanup(patcher.stop)


class TestErrorTranslation(StoreTestCase):
    def test_bad_value_is_invalid_request(self):
        self.cur.execute.side_effect = psycopg.errors.InvalidTextRepresentation(
            'invalid input syntax for type uuid: "abc"'
        )
        with self.assertRaises(InvalidRequestError) as ctx:
            PostgresArticleStore("dbname=test").get_article("abc")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_unique_violation_is_conflict(self):
        self.cur.execute.side_effect = psycopg.errors.UniqueViolation(
            'duplicate key value violates unique constraint "articles_slug_key"'
        )
        with self.assertRaises(DuplicateArticleError) as ctx:
            PostgresArticleStore("dbname=test").insert_article({"title": "T", "slug": "t"})
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertIn("articles_slug_key", str(ctx.exception))

    def test_unreachable_database(self):
        self.connect.side_effect = psycopg.OperationalError("connection refused")
        with self.assertRaises(DatabaseError):
            PostgresArticleStore("dbname=test").recent_titles()


class TestBatchInsert(StoreTestCase):
    def test_batch_runs_in_one_transaction(self):
        self.cur.fetchone.side_effect = [{"id": "a1", "title": "One"}, {"id": "a2", "title": "Two"}]
        rows = PostgresArticleStore("dbname=test").insert_articles(
            [{"title": "One", "slug": "one"}, {"title": "Two", "slug": "two"}]
        )
        self.assertEqual([r["id"] for r in rows], ["a1", "a2"])
        self.conn.transaction.assert_called_once_with()
        self.assertEqual(self.cur.execute.call_count, 2)
        self.assertEqual(self.connect.call_count, 1)

    def test_failing_row_aborts_the_batch(self):
        self.cur.fetchone.return_value = {"id": "a1"}
        self.cur.execute.side_effect = [None, psycopg.errors.UniqueViolation("duplicate key value")]
        tx = self.conn.transaction.return_value
        with self.assertRaises(DuplicateArticleError):
            PostgresArticleStore("dbname=test").insert_articles(
                [{"title": "One", "slug": "one"}, {"title": "Two", "slug": "one"}]
            )
        # the transaction block saw the error, so psycopg rolls it back
        exc_type = tx.__exit__.call_args[0][0]
        self.assertTrue(issubclass(exc_type, psycopg.errors.UniqueViolation))

    def test_unknown_column_is_rejected_before_connecting(self):
        with self.assertRaises(ValueError):
            PostgresArticleStore("dbname=test").insert_articles([{"title": "One", "nope": 1}])
        self.connect.assert_not_called()

    def test_empty_batch(self):
        self.assertEqual(PostgresArticleStore("dbname=test").insert_articles([]), [])
        self.connect.assert_not_called()


class TestCommunityPoints(StoreTestCase):
    def test_comment_awards_points(self):
        self.cur.fetchone.return_value = {"id": "c1", "user_id": "u1"}
        comment = PostgresCommunityStore("dbname=test").add_comment("a1", "u1", "Nice piece")
        self.assertEqual(comment["id"], "c1")
        self.conn.transaction.assert_called_once_with()
        profile_params = self.cur.execute.call_args_list[1][0][1]
        self.assertEqual(profile_params, ("u1", None, COMMENT_POINTS))
        self.assertEqual(COMMENT_POINTS, 5)

    def test_like_then_unlike(self):
        store = PostgresCommunityStore("dbname=test")
        self.cur.fetchone.side_effect = [{"user_id": "author"}, None, {"likes_count": 1}]
        self.assertEqual(store.toggle_like("c1", "fan"), {"liked": True, "likes_count": 1})
        self.assertEqual(self.cur.execute.call_args[0][1], (1, LIKE_POINTS, "author"))

        self.cur.execute.reset_mock()
        self.cur.fetchone.side_effect = [{"user_id": "author"}, {"id": "l1"}, {"likes_count": 0}]
        self.assertEqual(store.toggle_like("c1", "fan"), {"liked": False, "likes_count": 0})
        self.assertEqual(self.cur.execute.call_args[0][1], (-1, -LIKE_POINTS, "author"))
        self.assertEqual(LIKE_POINTS, 2)

    def test_like_on_missing_comment(self):
        self.cur.fetchone.return_value = None
        self.assertIsNone(PostgresCommunityStore("dbname=test").toggle_like("gone", "fan"))
        self.assertEqual(self.cur.execute.call_count, 1)


if __name__ == "__main__":
    unittest.main()
