# tests/unit/test_retention/test_sql_flagging_store.py
"""Tests for the SQLAlchemy flagging store against in-memory SQLite."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError


class TestSelect:
    """Tests for SqlFlaggingStore.select()."""

    def test_returns_oldest_first(self, db_session, add_flaggings):
        """Older flaggings come first regardless of insert order."""
        from flag_retention.storage import SqlFlaggingStore

        newer = add_flaggings("bookmark", age_days=1)
        older = add_flaggings("bookmark", age_days=5)

        records = SqlFlaggingStore(db_session).select(flag_type_id="bookmark")

        assert [r.id for r in records] == older + newer

    def test_ties_broken_by_id(self, db_session, add_flaggings):
        """Flaggings created at the same moment are ordered by id."""
        from flag_retention.storage import SqlFlaggingStore

        ids = add_flaggings("bookmark", age_days=3, count=4)

        records = SqlFlaggingStore(db_session).select(flag_type_id="bookmark")

        assert [r.id for r in records] == sorted(ids)

    def test_filters_by_cutoff_strictly(self, db_session, add_flaggings, clock):
        """created_before excludes flaggings created exactly at the cutoff."""
        from flag_retention.storage import SqlFlaggingStore

        add_flaggings("bookmark", age_days=10)
        older = add_flaggings("bookmark", age_days=11)

        records = SqlFlaggingStore(db_session).select(
            flag_type_id="bookmark",
            created_before=clock.now() - timedelta(days=10),
        )

        assert [r.id for r in records] == older

    def test_empty_allow_list_returns_nothing(self, db_session, add_flaggings):
        """An empty flag_type_ids allow-list matches no flag types."""
        from flag_retention.storage import SqlFlaggingStore

        add_flaggings("bookmark")

        assert SqlFlaggingStore(db_session).select(flag_type_ids=[]) == []

    def test_filters_by_owner_and_allow_list(self, db_session, add_flaggings):
        """Owner and allow-list filters combine."""
        from flag_retention.storage import SqlFlaggingStore

        mine = add_flaggings("bookmark", owner_id="7")
        add_flaggings("favorite", owner_id="7")
        add_flaggings("bookmark", owner_id="8")

        records = SqlFlaggingStore(db_session).select(owner_id="7", flag_type_ids={"bookmark"})

        assert [r.id for r in records] == mine
        assert records[0].owner_id == "7"

    def test_respects_limit(self, db_session, add_flaggings):
        """Limit caps the number of records returned."""
        from flag_retention.storage import SqlFlaggingStore

        add_flaggings("bookmark", count=5)

        assert len(SqlFlaggingStore(db_session).select(flag_type_id="bookmark", limit=2)) == 2


class TestDeleteMany:
    """Tests for SqlFlaggingStore.delete_many()."""

    def test_counts_only_existing_rows(self, db_session, add_flaggings, count_flaggings):
        """IDs that do not exist are ignored and not counted."""
        from flag_retention.storage import SqlFlaggingStore

        ids = add_flaggings("bookmark", count=2)

        deleted = SqlFlaggingStore(db_session).delete_many(ids + [9999, 10000])

        assert deleted == 2
        assert count_flaggings() == 0

    def test_overlapping_deletes_never_double_count(self, db_session, add_flaggings, count_flaggings):
        """Two deletes sharing IDs report each row once."""
        from flag_retention.storage import SqlFlaggingStore

        ids = add_flaggings("bookmark", count=8)
        store = SqlFlaggingStore(db_session)

        first = store.delete_many(ids[4:7])
        second = store.delete_many(ids[5:8])

        assert first == 3
        assert second == 1
        assert first + second <= 4
        assert count_flaggings() == 4

    def test_deletes_across_chunks(self, db_session, add_flaggings, count_flaggings):
        """IDs beyond one chunk are all deleted."""
        from flag_retention.storage import SqlFlaggingStore

        ids = add_flaggings("bookmark", count=5)

        deleted = SqlFlaggingStore(db_session, chunk_size=2).delete_many(ids)

        assert deleted == 5
        assert count_flaggings() == 0

    def test_empty_ids_is_noop(self):
        """No IDs means no query."""
        from flag_retention.storage import SqlFlaggingStore

        mock_db = MagicMock()

        assert SqlFlaggingStore(mock_db).delete_many([]) == 0
        mock_db.query.assert_not_called()

    def test_rolls_back_on_error(self):
        """A database error rolls back the whole call and propagates."""
        from flag_retention.storage import SqlFlaggingStore

        mock_db = MagicMock()
        mock_db.query.return_value.filter.return_value.with_for_update.return_value.all.side_effect = (
            OperationalError("DELETE", {}, Exception("database is locked"))
        )

        with pytest.raises(OperationalError):
            SqlFlaggingStore(mock_db).delete_many([1, 2])

        mock_db.rollback.assert_called_once()
        mock_db.commit.assert_not_called()

    def test_rolls_back_on_non_database_error(self):
        """Errors that are not SQLAlchemy errors roll back too."""
        from flag_retention.storage import SqlFlaggingStore

        mock_db = MagicMock()
        mock_db.flush.side_effect = RuntimeError("listener failed")
        mock_db.query.return_value.filter.return_value.with_for_update.return_value.all.return_value = [
            MagicMock()
        ]

        with pytest.raises(RuntimeError):
            SqlFlaggingStore(mock_db).delete_many([1])

        mock_db.rollback.assert_called_once()
        mock_db.commit.assert_not_called()

    def test_session_usable_after_hook_error(self, db_session, add_flaggings, count_flaggings):
        """A delete hook raising a plain exception leaves the session ready for the next call."""
        from flag_retention.models import Flagging
        from flag_retention.storage import SqlFlaggingStore

        ids = add_flaggings("abuse", count=2)
        kept = add_flaggings("bookmark", count=3)

        def refuse(mapper, connection, target):
            raise ValueError("abuse reports are held for review")

        store = SqlFlaggingStore(db_session)
        event.listen(Flagging, "before_delete", refuse)
        try:
            with pytest.raises(ValueError):
                store.delete_many(ids)
        finally:
            event.remove(Flagging, "before_delete", refuse)

        records = store.select(flag_type_id="bookmark")

        assert [r.id for r in records] == kept
        assert store.delete_many(kept) == 3
        assert count_flaggings("abuse") == 2
        assert count_flaggings("bookmark") == 0


class TestCounts:
    """Tests for the aggregate queries."""

    def test_count_by_type(self, db_session, add_flaggings):
        """Totals and distinct owners per flag type."""
        from flag_retention.storage import FlagTypeCounts, SqlFlaggingStore

        add_flaggings("bookmark", owner_id="1", count=2)
        add_flaggings("bookmark", owner_id="2")
        add_flaggings("favorite", owner_id="1")

        counts = SqlFlaggingStore(db_session).count_by_type()

        assert counts == {
            "bookmark": FlagTypeCounts(total_count=3, unique_owner_count=2),
            "favorite": FlagTypeCounts(total_count=1, unique_owner_count=1),
        }

    def test_count_by_owner_with_allow_list(self, db_session, add_flaggings):
        """Only allowed flag types are counted."""
        from flag_retention.storage import SqlFlaggingStore

        add_flaggings("bookmark", owner_id="7", count=2)
        add_flaggings("favorite", owner_id="7")

        store = SqlFlaggingStore(db_session)

        assert store.count_by_owner("7") == {"bookmark": 2, "favorite": 1}
        assert store.count_by_owner("7", ["bookmark"]) == {"bookmark": 2}
        assert store.count_by_owner("7", []) == {}

    def test_list_flag_types_sorted(self, db_session, add_flaggings):
        """Distinct flag types in name order."""
        from flag_retention.storage import SqlFlaggingStore

        add_flaggings("wishlist")
        add_flaggings("bookmark", count=2)

        assert SqlFlaggingStore(db_session).list_flag_types() == ["bookmark", "wishlist"]
