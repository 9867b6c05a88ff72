"""Tests for multi-module output reconciliation."""

from pathlib import Path
from unittest.mock import patch

from gbuild.build.messages import MessageKind
from gbuild.build.output_parser import OutputItem
from gbuild.build.reconciler import OutputReconciler


class TestReconcile:
    """Test OutputReconciler.reconcile."""

    def test_single_module_chunk_is_identity(self, workspace, single_chunk):
        reconciler = OutputReconciler()
        outputs = {workspace["target_a"]: "/out/a/"}
        for path in ("/tmp/build/pkg/X.class", "/tmp/build/Y.class", "/elsewhere/Z.class"):
            item = OutputItem(path, "/src/a/X.groovy")
            assert reconciler.reconcile(single_chunk, item, workspace["target_a"], outputs, "/tmp/build/") == path

    def test_representative_target_is_identity(self, workspace, pair_chunk):
        item = OutputItem("/tmp/build/pkg/X.class", "/src/a/X.groovy")
        outputs = {workspace["target_a"]: "/out/a/", workspace["target_b"]: "/out/b/"}

        result = OutputReconciler().reconcile(pair_chunk, item, workspace["target_a"], outputs, "/tmp/build/")

        assert result == "/tmp/build/pkg/X.class"

    def test_non_representative_item_is_moved(self, workspace, pair_chunk, tmp_path):
        shared = tmp_path / "tmp" / "build"
        out_a = tmp_path / "out" / "A"
        out_b = tmp_path / "out" / "B"
        class_file = shared / "pkg" / "X.class"
        class_file.parent.mkdir(parents=True)
        class_file.write_bytes(b"\xca\xfe\xba\xbe")
        item = OutputItem(class_file.as_posix(), (workspace["src_b"] / "X.groovy").as_posix())
        outputs = {workspace["target_a"]: out_a.as_posix() + "/", workspace["target_b"]: out_b.as_posix() + "/"}

        result = OutputReconciler().reconcile(
            pair_chunk, item, workspace["target_b"], outputs, shared.as_posix() + "/"
        )

        assert result == (out_b / "pkg" / "X.class").as_posix()
        assert (out_b / "pkg" / "X.class").read_bytes() == b"\xca\xfe\xba\xbe"
        assert not class_file.exists()

    def test_missing_generation_output_keeps_path(self, workspace, pair_chunk):
        item = OutputItem("/tmp/build/pkg/X.class", "/src/b/X.groovy")

        result = OutputReconciler().reconcile(
            pair_chunk, item, workspace["target_b"], {workspace["target_a"]: "/out/a/"}, "/tmp/build/"
        )

        assert result == "/tmp/build/pkg/X.class"


class TestProcessCompiledFiles:
    """Test grouping and reconciliation of a round's compiled items."""

    def test_items_grouped_by_owning_target(self, workspace, context, pair_chunk, tmp_path):
        shared = Path(workspace["target_a"].output_dir)
        out_b = Path(workspace["target_b"].output_dir)
        for name in ("A", "B"):
            (shared / "pkg").mkdir(parents=True, exist_ok=True)
            (shared / "pkg" / f"{name}.class").write_bytes(b"x")
        items = [
            OutputItem((shared / "pkg" / "A.class").as_posix(), (workspace["src_a"] / "A.groovy").as_posix()),
            OutputItem((shared / "pkg" / "B.class").as_posix(), (workspace["src_b"] / "B.groovy").as_posix()),
            OutputItem("/nowhere/C.class", "/not/a/source/root/C.groovy"),
        ]
        outputs = {workspace["target_a"]: shared.as_posix() + "/", workspace["target_b"]: out_b.as_posix() + "/"}

        compiled = OutputReconciler().process_compiled_files(
            context, pair_chunk, outputs, shared.as_posix() + "/", items
        )

        assert list(compiled) == [workspace["target_a"], workspace["target_b"]]
        assert compiled[workspace["target_a"]][0].output_path == (shared / "pkg" / "A.class").as_posix()
        assert compiled[workspace["target_b"]][0].output_path == (out_b / "pkg" / "B.class").as_posix()
        assert (out_b / "pkg" / "B.class").exists()

    def test_move_failure_is_a_warning(self, workspace, context, pair_chunk):
        item = OutputItem("/tmp/build/pkg/B.class", (workspace["src_b"] / "B.groovy").as_posix())
        outputs = {workspace["target_a"]: "/tmp/build/", workspace["target_b"]: "/out/b/"}

        with patch("gbuild.build.reconciler.shutil.move", side_effect=OSError("disk full")), \
                patch("pathlib.Path.mkdir"):
            compiled = OutputReconciler("Groovy compiler").process_compiled_files(
                context, pair_chunk, outputs, "/tmp/build/", [item]
            )

        assert compiled[workspace["target_b"]][0].output_path == "/tmp/build/pkg/B.class"
        warnings = [m for m in context.messages.messages if m.kind is MessageKind.WARNING]
        assert len(warnings) == 1
        assert warnings[0].source_path == item.source_path
