"""Tests for the branch history store."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import inspect, text

from branchkit.branches.history import (
    DEFAULT_CONFIG_KEY,
    BranchHistoryStore,
    create_history_engine,
    init_db,
)
from branchkit.branches.models import BranchPattern, FeatureType

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _pattern(workspace="api", feature_type=FeatureType.FEATURE, description=None):
    return BranchPattern(
        workspace=workspace,
        username="john.doe",
        machine="MacBook-Pro",
        feature_type=feature_type,
        description=description,
    )


class TestSchema:
    """Test engine creation and table layout."""

    def test_tables_created(self):
        """Test tables created."""
        engine = create_history_engine(":memory:")
        init_db(engine)

        tables = set(inspect(engine).get_table_names())

        assert {"branch_history", "branch_configs"} <= tables
        engine.dispose()

    def test_history_indexes(self):
        """Test history indexes."""
        engine = create_history_engine(":memory:")
        init_db(engine)

        names = {index["name"] for index in inspect(engine).get_indexes("branch_history")}

        assert "idx_branch_history_created_at" in names
        assert "idx_branch_history_workspace" in names
        engine.dispose()

    def test_file_database_uses_wal(self, tmp_path):
        """Test file database uses wal."""
        db_path = tmp_path / "nested" / "history.db"
        store = BranchHistoryStore.open(db_path)

        with store.engine.connect() as conn:
            mode = conn.execute(text("PRAGMA journal_mode")).scalar()

        assert db_path.exists()
        assert mode == "wal"
        store.close()

    def test_file_database_persists(self, tmp_path):
        """Test file database persists."""
        db_path = tmp_path / "history.db"
        store = BranchHistoryStore.open(db_path)
        store.append("api/john-doe-macbook-pro/feature", _pattern(), BASE_TIME)
        store.close()

        reopened = BranchHistoryStore.open(db_path)
        records = reopened.recent()
        reopened.close()

        assert [r.branch_name for r in records] == ["api/john-doe-macbook-pro/feature"]


class TestHistory:
    """Test appending and reading history."""

    def test_empty(self, history_store):
        """Test a new store has no history."""
        assert history_store.recent() == []

    def test_append_and_read(self, history_store):
        """Test append and read."""
        pattern = _pattern(description="add login")

        history_store.append("api/john-doe-macbook-pro/feature-add-login", pattern, BASE_TIME)
        records = history_store.recent()

        assert len(records) == 1
        record = records[0]
        assert record.branch_name == "api/john-doe-macbook-pro/feature-add-login"
        assert BranchPattern.from_json(record.pattern_json) == pattern
        assert record.created_at == BASE_TIME
        assert record.created_at.tzinfo is not None

    def test_default_timestamp_is_now(self, history_store):
        """Test default timestamp is now."""
        before = datetime.now(timezone.utc) - timedelta(seconds=1)

        history_store.append("topic", _pattern())

        created_at = history_store.recent()[0].created_at
        assert before <= created_at <= datetime.now(timezone.utc) + timedelta(seconds=1)

    def test_non_utc_timestamp_is_normalized(self, history_store):
        """Test non utc timestamp is normalized."""
        local = BASE_TIME.astimezone(timezone(timedelta(hours=2)))

        history_store.append("topic", _pattern(), local)

        assert history_store.recent()[0].created_at == BASE_TIME

    @pytest.mark.parametrize("limit", [1, 3, 5, 10])
    def test_most_recent_first_with_limit(self, history_store, limit):
        """Test most recent first with limit."""
        for i in range(7):
            history_store.append(f"branch-{i}", _pattern(), BASE_TIME + timedelta(minutes=i))

        records = history_store.recent(limit=limit)

        expected = [f"branch-{i}" for i in range(6, -1, -1)][:limit]
        assert [r.branch_name for r in records] == expected
        times = [r.created_at for r in records]
        assert times == sorted(times, reverse=True)

    def test_ties_broken_by_insertion_order(self, history_store):
        """Test ties broken by insertion order."""
        history_store.append("first", _pattern(), BASE_TIME)
        history_store.append("second", _pattern(), BASE_TIME)

        assert [r.branch_name for r in history_store.recent()] == ["second", "first"]

    def test_filter_by_workspace(self, history_store):
        """Test filter by workspace."""
        history_store.append("api-branch", _pattern("api"), BASE_TIME)
        history_store.append("web-branch", _pattern("web"), BASE_TIME + timedelta(minutes=1))

        records = history_store.recent(workspace="api")

        assert [r.branch_name for r in records] == ["api-branch"]

    def test_denormalized_columns(self, history_store):
        """Test denormalized columns."""
        history_store.append("fix", _pattern("api", FeatureType.BUGFIX), BASE_TIME)

        with history_store.engine.connect() as conn:
            row = conn.execute(
                text(
                    "SELECT workspace_name, feature_type, username, machine_name "
                    "FROM branch_history"
                )
            ).one()

        assert tuple(row) == ("api", "bugfix", "john.doe", "MacBook-Pro")


class TestConfigBlob:
    """Test the persisted branch configuration."""

    def test_missing(self, history_store):
        """Test loading a config blob that was never saved."""
        assert history_store.load_config_blob() is None

    def test_save_and_update(self, history_store):
        """Test save and update."""
        history_store.save_config_blob('{"max_branch_name_length": 40}')
        history_store.save_config_blob('{"max_branch_name_length": 60}')

        assert history_store.load_config_blob() == '{"max_branch_name_length": 60}'

        with history_store.engine.connect() as conn:
            count = conn.execute(text("SELECT COUNT(*) FROM branch_configs")).scalar()
        assert count == 1

    def test_default_key(self, history_store):
        """Test the config blob is saved under the default key."""
        history_store.save_config_blob("{}")

        with history_store.engine.connect() as conn:
            key = conn.execute(text("SELECT config_key FROM branch_configs")).scalar()

        assert key == DEFAULT_CONFIG_KEY
