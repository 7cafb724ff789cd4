"""End-to-end buffer lifecycle tests through the in-memory host.

Covers load phases and out-of-order adapter callbacks, window bookkeeping
across splits and leaving the engine, session restore, and writes.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from diredit.app import setup
from diredit.entries import DIRECTORY, FILE
from diredit.host import ERROR, WARN, Editor

from engine_harness import MEM_SCHEME, make_session, open_dir

ROOT = MEM_SCHEME + "/"
TREE = {
    "/": [("sub", DIRECTORY), ("b.txt", FILE)],
    "/sub/": [("inner.txt", FILE)],
}


class DirectoryHijackTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(os.path.realpath(self._tmp.name))
        (self.root / "proj").mkdir()
        (self.root / "proj" / "x.py").write_text("print('x')\n", encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_editing_a_directory_path_opens_a_view(self) -> None:
        editor = Editor(cwd=self.root)
        session = setup(editor, use_persisted=False)

        bufnr = editor.edit("proj")
        editor.run_pending()

        self.assertEqual(editor.buffer(bufnr).name, f"diredit://{self.root / 'proj'}/")
        self.assertEqual(editor.buf_get_lines(bufnr), ["/001 x.py"])
        self.assertEqual(session.lifecycle.phase(bufnr), "loaded-directory")
        self.assertEqual(session.get_current_dir(), f"{self.root / 'proj'}/")

    def test_directory_buffer_present_at_setup_is_loaded(self) -> None:
        editor = Editor(cwd=self.root)
        editor.buffer(editor.current_buf()).name = "proj"

        session = setup(editor, use_persisted=False)
        editor.run_pending()

        bufnr = editor.current_buf()
        self.assertEqual(editor.buffer(bufnr).name, f"diredit://{self.root / 'proj'}/")
        self.assertEqual(editor.buf_get_lines(bufnr), ["/001 x.py"])
        self.assertTrue(session.view.is_engine_buffer(bufnr))

    def test_plain_files_are_left_alone(self) -> None:
        editor = Editor(cwd=self.root)
        session = setup(editor, use_persisted=False)

        bufnr = editor.edit("proj/x.py")
        editor.run_pending()

        self.assertEqual(editor.buffer(bufnr).name, "proj/x.py")
        self.assertEqual(editor.buf_get_lines(bufnr), ["print('x')"])
        self.assertEqual(session.lifecycle.phase(bufnr), "unbound")


class LoadPhaseTests(unittest.TestCase):
    def setUp(self) -> None:
        self.editor, self.session, self.adapter = make_session(TREE, hold=True)
        self.lifecycle = self.session.lifecycle

    def test_phases_advance_as_callbacks_arrive(self) -> None:
        bufnr = self.editor.edit(ROOT)

        self.assertEqual(self.lifecycle.phase(bufnr), "resolving")
        self.assertTrue(self.session.view.is_engine_buffer(bufnr))
        self.assertTrue(self.session.view.is_loading(bufnr))

        self.adapter.release()
        self.assertEqual(self.lifecycle.phase(bufnr), "loaded-directory")
        self.assertTrue(self.session.view.is_loading(bufnr))

        self.adapter.release()
        self.assertFalse(self.session.view.is_loading(bufnr))
        self.assertEqual(self.editor.buf_get_lines(bufnr), ["/001 sub/", "/002 b.txt"])
        self.assertEqual(self.editor.buffer(bufnr).buftype, "acwrite")

        self.editor.buf_set_lines(bufnr, ["/001 sub/"])
        self.assertEqual(self.lifecycle.phase(bufnr), "modified")

    def test_stale_normalize_result_is_ignored(self) -> None:
        bufnr = self.editor.edit(ROOT)
        self.lifecycle.load_buffer(bufnr)
        self.assertEqual(len(self.adapter.held), 2)

        self.adapter.release(0)
        self.assertEqual(self.lifecycle.phase(bufnr), "resolving")
        self.assertEqual(len(self.adapter.held), 1)

        self.adapter.release(0)
        self.assertEqual(self.lifecycle.phase(bufnr), "loaded-directory")

    def test_older_listing_does_not_overwrite_newer_render(self) -> None:
        bufnr = self.editor.edit(ROOT)
        self.adapter.release()
        self.session.view.render_buffer_async(bufnr, {})

        self.adapter.release(1)
        rendered = self.editor.buf_get_lines(bufnr)
        self.adapter.tree["/"].append(("zzz", FILE))
        self.adapter.release(0)

        self.assertEqual(self.editor.buf_get_lines(bufnr), rendered)

    def test_callbacks_for_a_wiped_buffer_do_nothing(self) -> None:
        bufnr = self.editor.edit(ROOT)
        self.editor.delete_buf(bufnr, force=True)

        self.adapter.release()

        self.assertEqual(self.lifecycle.phase(bufnr), "closed")
        self.assertEqual(self.adapter.held, [])


class NormalizeRenameTests(unittest.TestCase):
    def test_directory_url_without_slash_is_renamed_in_place(self) -> None:
        editor, session, _adapter = make_session(TREE)

        bufnr = open_dir(editor, ROOT + "sub")

        self.assertEqual(editor.buffer(bufnr).name, ROOT + "sub/")
        self.assertEqual(editor.buf_get_lines(bufnr), ["/001 inner.txt"])
        self.assertEqual(session.lifecycle.phase(bufnr), "loaded-directory")

    def test_url_normalizing_onto_an_open_view_is_superseded(self) -> None:
        editor, session, adapter = make_session(TREE)
        existing = open_dir(editor, ROOT + "sub/")
        adapter.redirects[ROOT + "other/"] = ROOT + "sub/"

        duplicate = editor.edit(ROOT + "other/")
        editor.run_pending()

        self.assertFalse(editor.buf_is_valid(duplicate))
        self.assertEqual(session.lifecycle.phase(duplicate), "closed")
        self.assertEqual(editor.current_buf(), existing)
        self.assertEqual(editor.buf_get_lines(existing), ["/001 inner.txt"])


class WindowStateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.editor, self.session, self.adapter = make_session(TREE, {"/b.txt": ["bee"]}, cwd="/nonexistent-root")
        self.first = self.editor.edit("first.txt")
        self.view_buf = open_dir(self.editor)
        self.win = self.editor.current_win

    def test_entering_the_engine_records_the_original_buffer(self) -> None:
        record = self.session.state.window_record(self.win)

        self.assertTrue(record.did_enter)
        self.assertEqual(record.original_buffer, self.first)
        self.assertEqual(record.original_alternate, 1)
        self.assertFalse(self.editor.window().options["wrap"])
        self.assertEqual(self.editor.window().options["conceallevel"], 3)

    def test_split_inherits_the_parent_record(self) -> None:
        new_win = self.editor.split()

        record = self.session.state.window_record(new_win)
        self.assertTrue(record.did_enter)
        self.assertEqual(record.original_buffer, self.first)
        self.assertEqual(record.original_alternate, 1)
        self.assertEqual(record.saved_options, self.session.state.window_record(self.win).saved_options)
        self.assertEqual(self.editor.window(new_win).options["signcolumn"], "no")

    def test_split_copies_the_record_of_the_window_it_was_split_from(self) -> None:
        self.editor.split()
        second_win = self.editor.current_win
        second = self.editor.edit("second.txt")
        open_dir(self.editor, ROOT + "sub/")
        self.assertEqual(self.session.state.window_record(second_win).original_buffer, second)

        new_win = self.editor.split()

        record = self.session.state.window_record(new_win)
        self.assertTrue(record.did_enter)
        self.assertEqual(record.original_buffer, second)
        self.assertEqual(self.session.state.window_record(self.win).original_buffer, self.first)

    def test_split_without_a_parent_record_warns(self) -> None:
        self.session.state.windows.clear()

        with self.assertLogs("diredit.host.editor", level="WARNING"):
            self.editor.split()

        self.assertEqual(
            self.editor.notifications[-1].message,
            "Split could not find a parent diredit window; window state not copied",
        )
        self.assertEqual(self.editor.notifications[-1].level, WARN)

    def test_opening_a_file_makes_the_original_buffer_alternate(self) -> None:
        self.editor.win_set_cursor(None, (2, 0))
        self.session.select()
        self.editor.run_pending()

        self.assertEqual(self.editor.buffer(self.editor.current_buf()).name, ROOT + "b.txt")
        self.assertEqual(self.editor.alternate, self.first)
        self.assertTrue(self.editor.window().options["wrap"])

    def test_returning_to_the_original_buffer_restores_its_alternate(self) -> None:
        self.editor.edit("first.txt")

        self.assertEqual(self.editor.current_buf(), self.first)
        self.assertEqual(self.editor.alternate, 1)
        self.assertTrue(self.editor.window().options["wrap"])
        self.assertFalse(self.session.state.window_record(self.win).did_enter)

    def test_redisplaying_a_hidden_view_reapplies_window_options(self) -> None:
        self.editor.edit("first.txt")
        self.editor.edit(ROOT)

        self.assertEqual(self.editor.current_buf(), self.view_buf)
        self.assertFalse(self.editor.window().options["wrap"])
        self.assertTrue(self.session.state.window_record(self.win).did_enter)


class SessionAndWriteTests(unittest.TestCase):
    def test_restored_session_buffers_are_loaded(self) -> None:
        editor, _session, _adapter = make_session(TREE)

        view_buf, notes = editor.restore_session([ROOT + "sub/", "notes.txt"])
        editor.run_pending()

        self.assertEqual(editor.buf_get_lines(view_buf), ["/001 inner.txt"])
        self.assertEqual(editor.buf_get_lines(notes), [""])

    def test_discard_all_changes_rerenders_modified_views(self) -> None:
        editor, session, _adapter = make_session(TREE)
        bufnr = open_dir(editor)
        editor.buf_set_lines(bufnr, ["/001 sub/", "typed.txt"])

        session.discard_all_changes()
        editor.run_pending()

        self.assertEqual(editor.buf_get_lines(bufnr), ["/001 sub/", "/002 b.txt"])
        self.assertFalse(editor.buffer(bufnr).modified)

    def test_discard_reports_render_errors(self) -> None:
        editor, session, adapter = make_session(TREE)
        bufnr = open_dir(editor)
        editor.buf_set_lines(bufnr, [""])
        del adapter.tree["/"]

        with self.assertLogs("diredit.host.editor", level="ERROR"):
            session.discard_all_changes()
            editor.run_pending()

        self.assertEqual(editor.notifications[-1].message, f"Error rendering diredit buffer {ROOT}: No such directory: /")
        self.assertEqual(editor.notifications[-1].level, ERROR)

    def test_file_buffers_write_through_their_adapter(self) -> None:
        editor, _session, adapter = make_session(TREE, {"/b.txt": ["bee"]})
        bufnr = open_dir(editor, ROOT + "b.txt")
        editor.buf_set_lines(bufnr, ["buzz"])

        editor.write()

        self.assertEqual(adapter.written, {"/b.txt": ["buzz"]})
        self.assertFalse(editor.buffer(bufnr).modified)
        self.assertEqual(adapter.performed, [])

    def test_failed_file_write_is_reported_to_the_caller(self) -> None:
        editor, session, adapter = make_session(TREE, {"/b.txt": ["bee"]})
        bufnr = open_dir(editor, ROOT + "b.txt")
        editor.buf_set_lines(bufnr, ["buzz"])
        adapter.fail_write = "quota exceeded"
        results: list[str | None] = []

        with self.assertLogs("diredit.host.editor", level="ERROR"):
            session.lifecycle.write_buffer(bufnr, results.append)

        self.assertEqual(results, [f"Failed to write {ROOT}b.txt"])
        self.assertTrue(editor.buffer(bufnr).modified)
        self.assertEqual(adapter.written, {})


if __name__ == "__main__":
    unittest.main()
