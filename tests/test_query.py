import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from db.models import ListingStatus
from db.query import ListingQuery, eq, fold_text, gte, ieq, ilike


class TestConditions:
    def test_unknown_column_rejected(self):
        with pytest.raises(ValueError):
            eq("status; DROP TABLE listings", "active")

    def test_enum_values_unwrapped(self):
        sql, value = eq("status", ListingStatus.ACTIVE).to_sql()
        assert sql == "status = ?"
        assert value == "active"

    def test_ieq_lowercases_value(self):
        sql, value = ieq("city", "Karachi").to_sql()
        assert sql == "casefold(city) = ?"
        assert value == "karachi"

    def test_fold_handles_non_ascii(self):
        assert fold_text("ÖRNEK") == "örnek"
        assert fold_text(None) is None
        _, value = ilike("material_name", "ÉMAIL").to_sql()
        assert value == "%émail%"

    def test_ilike_escapes_wildcards(self):
        _, value = ilike("material_name", "100%_Pure\\").to_sql()
        assert value == "%100\\%\\_pure\\\\%"


class TestListingQuery:
    def test_groups_are_or_inside_and_between(self):
        query = (
            ListingQuery()
            .where(eq("status", "active"))
            .any_of(ieq("city", "Lahore"), ilike("location", "Lahore"))
            .order("created_at")
            .limit(50)
        )
        sql, params = query.to_sql()
        assert "WHERE status = ? AND (casefold(city) = ? OR casefold(location) LIKE ? ESCAPE" in sql
        assert sql.endswith("ORDER BY created_at DESC, id DESC LIMIT ?")
        assert params == ["active", "lahore", "%lahore%", 50]

    def test_no_filters_no_where(self):
        sql, params = ListingQuery().to_sql()
        assert "WHERE" not in sql
        assert params == []

    def test_ascending_order(self):
        sql, _ = ListingQuery().order("views_count", descending=False).to_sql()
        assert "ORDER BY views_count ASC, id ASC" in sql

    def test_count_sql_ignores_limit(self):
        query = ListingQuery().where(gte("price", 10)).limit(5)
        sql, params = query.to_count_sql()
        assert sql == "SELECT COUNT(*) FROM listings WHERE price >= ?"
        assert params == [10]

    def test_invalid_limit_and_order(self):
        with pytest.raises(ValueError):
            ListingQuery().limit(0)
        with pytest.raises(ValueError):
            ListingQuery().order("password")
        with pytest.raises(ValueError):
            ListingQuery().any_of()
