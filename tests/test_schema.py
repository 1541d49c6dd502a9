"""Tests for the persistence schema built from the models."""
from sqlalchemy import create_engine, inspect

from roadmap_core import models


class TestSchema:
    """Test that the model metadata creates a working schema."""

    def _indexes(self, table_name: str) -> dict:
        engine = create_engine("sqlite://")
        try:
            models.Base.metadata.create_all(engine)
            return {ix["name"]: ix["column_names"] for ix in inspect(engine).get_indexes(table_name)}
        finally:
            engine.dispose()

    def test_stage_status_index_is_composite(self):
        """Stage status is only indexed together with its project, as in the migration."""
        indexes = self._indexes("project_roadmap_stages")

        assert indexes["ix_project_roadmap_stages_status"] == ["project_id", "status"]

    def test_one_active_indexes_exist(self):
        assert self._indexes("project_phase_status")["uq_project_phase_status_one_active"] == ["project_id"]
        assert self._indexes("project_roadmap_stages")["uq_project_roadmap_stages_one_active"] == [
            "project_id",
            "phase_id",
        ]

    def test_index_names_unique_across_tables(self):
        engine = create_engine("sqlite://")
        try:
            models.Base.metadata.create_all(engine)
            inspector = inspect(engine)
            names = [
                ix["name"]
                for table_name in inspector.get_table_names()
                for ix in inspector.get_indexes(table_name)
            ]
        finally:
            engine.dispose()

        assert len(names) == len(set(names))
