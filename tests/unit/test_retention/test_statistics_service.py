# tests/unit/test_retention/test_statistics_service.py
"""Unit tests for flagging statistics."""

from unittest.mock import MagicMock


class TestCountsByType:
    """Tests for StatisticsAggregator.counts_by_type()."""

    def test_explicit_type_without_flaggings_is_zero(self):
        """Asking for an unused flag type returns a zero entry, not nothing."""
        from flag_retention.services import StatisticsAggregator
        from flag_retention.storage import FlagTypeCounts

        store = MagicMock()
        store.count_by_type.return_value = {}

        assert StatisticsAggregator(store).counts_by_type("bookmark") == {"bookmark": FlagTypeCounts()}

    def test_recomputes_every_call(self, db_session, add_flaggings):
        """Counts reflect writes made between calls."""
        from flag_retention.services import StatisticsAggregator
        from flag_retention.storage import SqlFlaggingStore

        stats = StatisticsAggregator(SqlFlaggingStore(db_session))

        add_flaggings("bookmark", owner_id="1")
        before = stats.counts_by_type("bookmark")["bookmark"]
        add_flaggings("bookmark", owner_id="2")
        after = stats.counts_by_type("bookmark")["bookmark"]

        assert (before.total_count, before.unique_owner_count) == (1, 1)
        assert (after.total_count, after.unique_owner_count) == (2, 2)


class TestCountsByOwner:
    """Tests for StatisticsAggregator.counts_by_owner()."""

    def test_disallowed_type_is_zero_without_query(self):
        """Under ALLOW_SELECTED {bookmark}, favorites count as zero and are never queried."""
        from flag_retention.models import FlagAccessMode
        from flag_retention.services import GlobalDefaults, StatisticsAggregator

        store = MagicMock()
        defaults = GlobalDefaults(
            flag_access_mode=FlagAccessMode.ALLOW_SELECTED,
            enabled_flag_ids=frozenset({"bookmark"}),
        )

        counts = StatisticsAggregator(store).counts_by_owner("7", defaults, flag_type_id="favorite")

        assert counts == {"favorite": 0}
        store.count_by_owner.assert_not_called()

    def test_disallowed_type_ignored_in_totals(self, db_session, add_flaggings):
        """Owner totals only include allowed flag types."""
        from flag_retention.models import FlagAccessMode
        from flag_retention.services import GlobalDefaults, StatisticsAggregator
        from flag_retention.storage import SqlFlaggingStore

        add_flaggings("bookmark", owner_id="7", count=2)
        add_flaggings("favorite", owner_id="7", count=3)
        defaults = GlobalDefaults(
            flag_access_mode=FlagAccessMode.ALLOW_SELECTED,
            enabled_flag_ids=frozenset({"bookmark"}),
        )

        stats = StatisticsAggregator(SqlFlaggingStore(db_session))

        assert stats.counts_by_owner("7", defaults) == {"bookmark": 2}
        assert stats.total_for_owner("7", defaults) == 2
        assert stats.total_for_owner("7", GlobalDefaults()) == 5

    def test_allowed_type_missing_is_zero(self):
        """An allowed flag type the owner never used reports zero."""
        from flag_retention.services import GlobalDefaults, StatisticsAggregator

        store = MagicMock()
        store.count_by_owner.return_value = {}

        counts = StatisticsAggregator(store).counts_by_owner("7", GlobalDefaults(), flag_type_id="bookmark")

        assert counts == {"bookmark": 0}
        store.count_by_owner.assert_called_once_with("7", ["bookmark"])
