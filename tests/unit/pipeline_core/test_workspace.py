"""Unit tests for the Workspace class."""

import os

from genostage.pipeline_core.workspace import Workspace


class TestWorkspace:
    """Test temporary artifact naming and cleanup."""

    def test_defaults_to_system_temp(self):
        workspace = Workspace()
        assert workspace.temp_dir.is_dir()

    def test_creates_temp_dir(self, tmp_path):
        workspace = Workspace(tmp_path / "nested" / "scratch")
        assert workspace.temp_dir.is_dir()

    def test_artifact_names(self, tmp_path):
        workspace = Workspace(tmp_path)
        path = workspace.new_artifact(".annotatorOutputFile")

        assert path.parent == tmp_path
        assert path.name.startswith(f"{os.getpid()}-")
        assert path.name.endswith(".annotatorOutputFile")
        assert not path.exists()
        assert workspace.artifacts == [path]

    def test_names_unique_within_run(self, tmp_path):
        workspace = Workspace(tmp_path)
        names = {workspace.new_artifact(".x") for _ in range(100)}
        assert len(names) == 100

    def test_names_unique_across_runs(self, tmp_path):
        first = Workspace(tmp_path)
        second = Workspace(tmp_path)
        assert first.run_id != second.run_id
        assert first.new_artifact(".x") != second.new_artifact(".x")

    def test_discard(self, tmp_path):
        workspace = Workspace(tmp_path)
        path = workspace.new_artifact(".x")
        path.write_text("data")

        workspace.discard(path)

        assert not path.exists()
        assert workspace.artifacts == []

    def test_discard_never_written(self, tmp_path):
        workspace = Workspace(tmp_path)
        path = workspace.new_artifact(".x")
        workspace.discard(path)
        assert workspace.artifacts == []

    def test_context_manager_cleans_up(self, tmp_path):
        with Workspace(tmp_path) as workspace:
            for suffix in (".a", ".b"):
                workspace.new_artifact(suffix).write_text("data")
        assert list(tmp_path.iterdir()) == []

    def test_cleanup_leaves_foreign_files(self, tmp_path):
        foreign = tmp_path / "keep.txt"
        foreign.write_text("keep")
        workspace = Workspace(tmp_path)
        workspace.new_artifact(".x").write_text("data")

        workspace.cleanup()

        assert list(tmp_path.iterdir()) == [foreign]

    def test_repr(self, tmp_path):
        workspace = Workspace(tmp_path)
        assert workspace.run_id in repr(workspace)
