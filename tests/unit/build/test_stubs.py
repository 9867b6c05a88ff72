"""Tests for stub rounds and the stub post-processor."""

from pathlib import Path
from unittest.mock import patch

import pytest

from gbuild.build.messages import MessageKind
from gbuild.build.output_parser import OutputItem
from gbuild.build.state import BuildSession, ChunkBuildState
from gbuild.build.stubs import RecompileStubSources, StubRoundCoordinator
from gbuild.project import BuildTarget, ModuleChunk, TargetKind


class TestStubGenerationOutputs:
    """Test stub output directory management."""

    def test_directories_per_target(self, context, workspace, tmp_path):
        test_target = BuildTarget("a", tmp_path / "out" / "a-test", TargetKind.TEST)
        chunk = ModuleChunk((workspace["target_a"], test_target))

        outputs = StubRoundCoordinator().get_stub_generation_outputs(context, chunk)

        stub_root = tmp_path / "data" / "groovyStubs"
        assert outputs[workspace["target_a"]] == (stub_root / "a" / "production").as_posix()
        assert outputs[test_target] == (stub_root / "a" / "test").as_posix()
        assert all(Path(path).is_dir() for path in outputs.values())

    def test_previous_stubs_are_removed(self, context, single_chunk, tmp_path):
        stale = tmp_path / "data" / "groovyStubs" / "a" / "production" / "pkg" / "Old.java"
        stale.parent.mkdir(parents=True)
        stale.write_text("class Old {}")

        StubRoundCoordinator().get_stub_generation_outputs(context, single_chunk)

        assert not stale.exists()

    def test_clean_failure_is_fatal(self, context, single_chunk, tmp_path):
        (tmp_path / "data" / "groovyStubs" / "a" / "production").mkdir(parents=True)

        with patch("gbuild.build.stubs.shutil.rmtree", side_effect=OSError("busy")):
            with pytest.raises(OSError, match="External make cannot clean"):
                StubRoundCoordinator().get_stub_generation_outputs(context, single_chunk)

    def test_clean_stub_root_failure_is_reported(self, context, tmp_path):
        (tmp_path / "data" / "groovyStubs").mkdir(parents=True)

        with patch("gbuild.build.stubs.shutil.rmtree", side_effect=OSError("busy")):
            StubRoundCoordinator("Groovy stub generator").clean_stub_root(context)

        errors = [m for m in context.messages.messages if m.kind is MessageKind.ERROR]
        assert len(errors) == 1
        assert "External make cannot clean" in errors[0].text

    def test_stub_roots_become_source_roots(self, context, workspace, single_chunk):
        coordinator = StubRoundCoordinator()
        outputs = coordinator.get_stub_generation_outputs(context, single_chunk)

        coordinator.add_stub_roots_to_source_path(context, outputs)

        stub = Path(outputs[workspace["target_a"]]) / "pkg" / "Foo.java"
        assert context.project.find_source_target(stub) == workspace["target_a"]


class TestRecompileStubSources:
    """Test the stub-to-source round trip."""

    @pytest.fixture
    def state(self, workspace):
        state = ChunkBuildState()
        StubRoundCoordinator.remember_stub_sources(state, {
            workspace["target_a"]: [OutputItem("/stubs/a/pkg/Foo.java", "/src/a/pkg/Foo.groovy")],
        })
        return state

    def test_stub_index_populated(self, state):
        assert state.stub_to_source == {"/stubs/a/pkg/Foo.java": "/src/a/pkg/Foo.groovy"}

    def test_marks_source_dirty_once(self, context, state):
        processor = RecompileStubSources()

        processor.process(context, state, Path("/stubs/a/pkg/Foo.java"))

        assert context.round_tracker.next_round_dirty == [Path("/src/a/pkg/Foo.groovy")]
        assert state.files_marked_dirty_for_next_round is True

        processor.process(context, state, Path("/stubs/a/pkg/Foo.java"))

        assert context.round_tracker.next_round_dirty == [Path("/src/a/pkg/Foo.groovy")]
        assert state.files_marked_dirty_for_next_round is True

    def test_source_dirty_in_current_round_is_left_alone(self, context, state):
        context.round_tracker.current_round_dirty = {Path("/src/a/pkg/Foo.groovy")}

        RecompileStubSources().process(context, state, Path("/stubs/a/pkg/Foo.java"))

        assert context.round_tracker.next_round_dirty == []
        assert state.files_marked_dirty_for_next_round is False

    def test_unknown_java_source_ignored(self, context, state):
        RecompileStubSources().process(context, state, Path("/src/java/Plain.java"))
        RecompileStubSources().process(context, state, None)

        assert context.round_tracker.next_round_dirty == []
        assert state.files_marked_dirty_for_next_round is False

    def test_session_runs_registered_post_processors(self, context, single_chunk):
        session = BuildSession()
        session.chunk_state(single_chunk).stub_to_source["/stubs/Foo.java"] = "/src/Foo.groovy"

        session.post_process(context, single_chunk, "/stubs/Foo.java")

        assert session.chunk_state(single_chunk).files_marked_dirty_for_next_round is True

    def test_state_dropped_when_chunk_finishes(self, single_chunk):
        session = BuildSession()
        session.chunk_state(single_chunk).stub_to_source["/stubs/Foo.java"] = "/src/Foo.groovy"

        session.chunk_build_finished(single_chunk)

        assert not session.has_state(single_chunk)
        assert session.chunk_state(single_chunk).stub_to_source == {}
