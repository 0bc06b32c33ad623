# tests/unit/test_retention/test_batch_deleter.py
"""Unit tests for batch deletion."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest


def _record(record_id, flag_type_id="bookmark"):
    from flag_retention.storage import FlagRecord

    return FlagRecord(id=record_id, flag_type_id=flag_type_id, owner_id="1", created_at=None)


def _selected_defaults(*flag_type_ids):
    from flag_retention.models import FlagAccessMode
    from flag_retention.services import GlobalDefaults

    return GlobalDefaults(
        flag_access_mode=FlagAccessMode.ALLOW_SELECTED,
        enabled_flag_ids=frozenset(flag_type_ids),
    )


class TestDeleteByIds:
    """Tests for BatchDeleter.delete_by_ids()."""

    def test_empty_ids_skip_store(self):
        """No IDs returns 0 without calling the store."""
        from flag_retention.services import BatchDeleter

        store = MagicMock()

        assert BatchDeleter(store).delete_by_ids([]) == 0
        store.delete_many.assert_not_called()

    def test_collapses_duplicates(self):
        """Each ID is sent to the store once, in order."""
        from flag_retention.services import BatchDeleter

        store = MagicMock()
        store.delete_many.return_value = 2

        assert BatchDeleter(store).delete_by_ids([5, 6, 5]) == 2
        store.delete_many.assert_called_once_with([5, 6])

    def test_reports_only_existing(self):
        """The store's count is returned as-is when some IDs were already gone."""
        from flag_retention.services import BatchDeleter

        store = MagicMock()
        store.delete_many.return_value = 1

        assert BatchDeleter(store).delete_by_ids([1, 2, 3]) == 1

    def test_store_error_becomes_deletion_failed(self):
        """A storage error surfaces as DeletionFailed with the request size."""
        from flag_retention.exceptions import DeletionFailed
        from flag_retention.services import BatchDeleter

        store = MagicMock()
        store.delete_many.side_effect = RuntimeError("connection reset")

        with pytest.raises(DeletionFailed) as exc_info:
            BatchDeleter(store).delete_by_ids([1, 2], flag_type_id="bookmark")

        assert exc_info.value.flag_type_id == "bookmark"
        assert exc_info.value.requested == 2
        assert "connection reset" in exc_info.value.message

    def test_overlapping_deletes_against_real_rows(self, db_session, add_flaggings):
        """[5,6,7] then [6,7,8] on rows 5..8 reports at most 4 in total."""
        from flag_retention.services import BatchDeleter
        from flag_retention.storage import SqlFlaggingStore

        ids = add_flaggings("bookmark", count=8)
        deleter = BatchDeleter(SqlFlaggingStore(db_session))

        total = deleter.delete_by_ids(ids[4:7]) + deleter.delete_by_ids(ids[5:8])

        assert total == 4


class TestClearByOwner:
    """Tests for BatchDeleter.clear_by_owner()."""

    def test_disallowed_type_raises_before_select(self):
        """An explicit flag type outside the allow-list is refused."""
        from flag_retention.exceptions import AccessDenied
        from flag_retention.services import BatchDeleter

        store = MagicMock()

        with pytest.raises(AccessDenied):
            BatchDeleter(store).clear_by_owner("7", _selected_defaults("bookmark"), flag_type_id="favorite")

        store.select.assert_not_called()
        store.delete_many.assert_not_called()

    def test_all_types_uses_allow_list(self):
        """Without a flag type only allowed types are selected."""
        from flag_retention.services import BatchDeleter

        store = MagicMock()
        store.select.return_value = [_record(1), _record(2)]
        store.delete_many.return_value = 2

        deleted = BatchDeleter(store).clear_by_owner("7", _selected_defaults("bookmark"))

        assert deleted == 2
        store.select.assert_called_once_with(
            flag_type_id=None,
            owner_id="7",
            flag_type_ids=frozenset({"bookmark"}),
        )

    def test_allow_all_does_not_filter(self):
        """ALLOW_ALL passes no allow-list to the store."""
        from flag_retention.services import BatchDeleter, GlobalDefaults

        store = MagicMock()
        store.select.return_value = []

        assert BatchDeleter(store).clear_by_owner("7", GlobalDefaults()) == 0
        store.select.assert_called_once_with(flag_type_id=None, owner_id="7", flag_type_ids=None)

    def test_select_error_becomes_deletion_failed(self):
        """A failing lookup fails the clear the same way a failing delete does."""
        from flag_retention.exceptions import DeletionFailed
        from flag_retention.services import BatchDeleter, GlobalDefaults

        store = MagicMock()
        store.select.side_effect = RuntimeError("timeout")

        with pytest.raises(DeletionFailed):
            BatchDeleter(store).clear_by_owner("7", GlobalDefaults(), flag_type_id="bookmark")


class TestClearByType:
    """Tests for BatchDeleter.clear_by_type()."""

    def test_clears_every_owner(self, db_session, add_flaggings, count_flaggings):
        """Every flagging of the type goes; other types stay."""
        from flag_retention.services import BatchDeleter
        from flag_retention.storage import SqlFlaggingStore

        add_flaggings("bookmark", owner_id="1", count=2)
        add_flaggings("bookmark", owner_id="2")
        add_flaggings("favorite", owner_id="1")

        assert BatchDeleter(SqlFlaggingStore(db_session)).clear_by_type("bookmark") == 3
        assert count_flaggings("bookmark") == 0
        assert count_flaggings("favorite") == 1


class TestClearOlderThan:
    """Tests for BatchDeleter.clear_older_than()."""

    @pytest.mark.parametrize("days_old", [0, -3, True])
    def test_rejects_invalid_days(self, clock, days_old):
        """days_old must be an integer of at least 1."""
        from flag_retention.exceptions import InvalidPolicyValue
        from flag_retention.services import BatchDeleter

        store = MagicMock()

        with pytest.raises(InvalidPolicyValue):
            BatchDeleter(store).clear_older_than("bookmark", days_old, clock.now())

        store.select.assert_not_called()

    def test_selects_before_cutoff(self, clock):
        """Only flaggings older than days_old are selected."""
        from flag_retention.services import BatchDeleter

        store = MagicMock()
        store.select.return_value = [_record(9)]
        store.delete_many.return_value = 1

        assert BatchDeleter(store).clear_older_than("bookmark", 10, clock.now()) == 1
        store.select.assert_called_once_with(
            flag_type_id="bookmark",
            created_before=clock.now() - timedelta(days=10),
        )
