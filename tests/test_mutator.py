from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from diredit.adapters.base import COPY, CREATE, DELETE, MOVE, Action
from diredit.app import setup
from diredit.entries import DIRECTORY, FILE
from diredit.host import ERROR, WARN, Editor
from diredit.mutator import MUTATION_IN_PROGRESS, WRITE_CANCELED, is_simple_edit

from engine_harness import MEM_SCHEME, make_session, open_dir

ROOT = MEM_SCHEME + "/"


def _tree() -> dict[str, list[tuple[str, str]]]:
    return {"/": [("sub", DIRECTORY), ("a.txt", FILE)], "/sub/": []}


class ActionDiffTests(unittest.TestCase):
    def setUp(self) -> None:
        self.editor, self.session, self.adapter = make_session(_tree())
        self.bufnr = open_dir(self.editor)
        self.mutator = self.session.mutator

    def _actions(self, lines: list[str]) -> list[Action]:
        self.editor.buf_set_lines(self.bufnr, lines)
        return self.mutator.create_actions_from_diffs()

    def test_unchanged_buffer_produces_no_actions(self) -> None:
        self.assertEqual(self._actions(["/001 sub/", "/002 a.txt"]), [])

    def test_typed_lines_become_creates(self) -> None:
        actions = self._actions(["/001 sub/", "/002 a.txt", "new.txt", "  pkg/  ", ""])

        self.assertEqual(
            actions,
            [
                Action(CREATE, FILE, url=ROOT + "new.txt"),
                Action(CREATE, DIRECTORY, url=ROOT + "pkg/"),
            ],
        )

    def test_renamed_line_becomes_a_move(self) -> None:
        actions = self._actions(["/001 sub/", "/002 b.txt"])

        self.assertEqual(actions, [Action(MOVE, FILE, src_url=ROOT + "a.txt", dest_url=ROOT + "b.txt")])

    def test_missing_line_becomes_a_delete(self) -> None:
        actions = self._actions(["/002 a.txt"])

        self.assertEqual(actions, [Action(DELETE, DIRECTORY, url=ROOT + "sub/")])

    def test_duplicated_id_becomes_a_copy(self) -> None:
        actions = self._actions(["/001 sub/", "/002 a.txt", "/002 c.txt"])

        self.assertEqual(actions, [Action(COPY, FILE, src_url=ROOT + "a.txt", dest_url=ROOT + "c.txt")])

    def test_copies_and_deletes_run_before_moves_and_creates(self) -> None:
        actions = self._actions(["/002 b.txt", "/002 c.txt", "fresh"])

        self.assertEqual([action.type for action in actions], [COPY, DELETE, MOVE, CREATE])

    def test_entry_moved_between_directory_buffers(self) -> None:
        sub = open_dir(self.editor, ROOT + "sub/")
        self.editor.buf_set_lines(self.bufnr, ["/001 sub/"])
        self.editor.buf_set_lines(sub, ["/002 a.txt"])

        actions = self.mutator.create_actions_from_diffs()

        self.assertEqual(actions, [Action(MOVE, FILE, src_url=ROOT + "a.txt", dest_url=ROOT + "sub/a.txt")])

    def test_render_action_without_adapter_support_uses_urls(self) -> None:
        move = Action(MOVE, FILE, src_url=ROOT + "a", dest_url=ROOT + "b")
        self.assertEqual(self.mutator.render_action(move), f"MOVE {ROOT}a -> {ROOT}b")
        self.assertEqual(self.mutator.render_action(Action(DELETE, FILE, url=ROOT + "a")), f"DELETE {ROOT}a")


class SimpleEditTests(unittest.TestCase):
    def test_creates_and_file_moves_are_simple(self) -> None:
        self.assertTrue(is_simple_edit([Action(CREATE, FILE, url="x"), Action(MOVE, FILE, src_url="a", dest_url="b")]))
        self.assertTrue(is_simple_edit([]))

    def test_deletes_and_directory_moves_are_not(self) -> None:
        self.assertFalse(is_simple_edit([Action(DELETE, FILE, url="x")]))
        self.assertFalse(is_simple_edit([Action(COPY, DIRECTORY, src_url="a/", dest_url="b/")]))


class WriteChangesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.editor, self.session, self.adapter = make_session(_tree())
        self.bufnr = open_dir(self.editor)
        self.results: list[str | None] = []

    def test_applied_changes_clear_modified_and_rerender(self) -> None:
        self.editor.buf_set_lines(self.bufnr, ["/001 sub/", "/002 a.txt", "new.txt"])

        self.session.save(confirm=False, callback=self.results.append)
        self.editor.run_pending()

        self.assertEqual(self.results, [None])
        self.assertEqual(self.adapter.performed, [Action(CREATE, FILE, url=ROOT + "new.txt")])
        self.assertFalse(self.editor.buffer(self.bufnr).modified)
        self.assertEqual(self.editor.buf_get_lines(self.bufnr), ["/001 sub/", "/002 a.txt", "/003 new.txt"])

    def test_declined_confirmation_cancels_the_write(self) -> None:
        self.editor.confirm_answer = False
        self.editor.buf_set_lines(self.bufnr, ["/001 sub/"])

        with self.assertLogs("diredit.host.editor", level="WARNING"):
            self.session.save(confirm=True, callback=self.results.append)
        self.editor.run_pending()

        self.assertEqual(self.results, [WRITE_CANCELED])
        self.assertEqual(self.editor.notifications[-1].level, WARN)
        self.assertEqual(self.adapter.performed, [])
        self.assertTrue(self.editor.buffer(self.bufnr).modified)

    def test_simple_edits_skip_confirmation_when_configured(self) -> None:
        editor, session, adapter = make_session(_tree(), opts={"skip_confirm_for_simple_edits": True})
        bufnr = open_dir(editor)
        prompts: list[str] = []
        editor.confirm_handler = lambda message: prompts.append(message) or True

        editor.buf_set_lines(bufnr, ["/001 sub/", "/002 a.txt", "more.txt"])
        session.save(callback=self.results.append)
        editor.run_pending()
        self.assertEqual(prompts, [])

        editor.buf_set_lines(bufnr, ["/001 sub/", "/003 more.txt"])
        session.save(callback=self.results.append)
        editor.run_pending()
        self.assertEqual(prompts, [f"DELETE {ROOT}a.txt"])
        self.assertEqual(self.results, [None, None])
        self.assertEqual([action.type for action in adapter.performed], [CREATE, DELETE])

    def test_failed_action_stops_and_keeps_buffers_modified(self) -> None:
        self.adapter.fail_actions = "disk full"
        self.editor.buf_set_lines(self.bufnr, ["/001 sub/", "/002 a.txt", "x", "y"])

        with self.assertLogs("diredit.host.editor", level="ERROR"):
            self.session.save(confirm=False, callback=self.results.append)
            self.editor.run_pending()

        self.assertEqual(self.results, ["disk full"])
        self.assertEqual(self.editor.notifications[-1].message, "Error applying changes: disk full")
        self.assertEqual(self.editor.notifications[-1].level, ERROR)
        self.assertTrue(self.editor.buffer(self.bufnr).modified)

    def test_save_while_actions_are_running_is_refused(self) -> None:
        self.editor.buf_set_lines(self.bufnr, ["/001 sub/", "/002 a.txt", "new.txt"])

        self.session.save(confirm=False, callback=self.results.append)
        with self.assertLogs("diredit.host.editor", level="ERROR"):
            self.session.save(confirm=False, callback=self.results.append)
        self.editor.run_pending()

        self.assertEqual(self.results, [MUTATION_IN_PROGRESS, None])
        self.assertEqual(self.adapter.performed, [Action(CREATE, FILE, url=ROOT + "new.txt")])

        self.editor.buf_set_lines(self.bufnr, [*self.editor.buf_get_lines(self.bufnr), "later.txt"])
        self.session.save(confirm=False, callback=self.results.append)
        self.editor.run_pending()

        self.assertEqual(self.results, [MUTATION_IN_PROGRESS, None, None])
        self.assertEqual(self.adapter.performed[-1], Action(CREATE, FILE, url=ROOT + "later.txt"))

    def test_host_write_routes_directory_buffers_through_the_mutator(self) -> None:
        self.editor.buf_set_lines(self.bufnr, ["/001 sub/", "/002 renamed.txt"])

        self.editor.write(self.bufnr)
        self.editor.run_pending()

        self.assertEqual(
            self.adapter.performed,
            [Action(MOVE, FILE, src_url=ROOT + "a.txt", dest_url=ROOT + "renamed.txt")],
        )
        self.assertEqual(self.editor.buf_get_lines(self.bufnr), ["/001 sub/", "/003 renamed.txt"])


class ColumnRoundTripTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(os.path.realpath(self._tmp.name))
        (self.root / " lead.txt").write_text("lead\n", encoding="utf-8")
        (self.root / "plain.txt").write_text("plain\n", encoding="utf-8")
        self.editor = Editor(cwd=self.root)
        self.session = setup(self.editor, {"columns": ["type"]}, use_persisted=False)
        self.session.open(str(self.root))
        self.editor.run_pending()
        self.bufnr = self.editor.current_buf()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_unchanged_listing_keeps_leading_spaces_in_names(self) -> None:
        lines = self.editor.buf_get_lines(self.bufnr)
        self.assertIn("-  lead.txt", [line.split(" ", 1)[1] for line in lines])
        self.editor.buf_set_lines(self.bufnr, lines)

        self.assertEqual(self.session.mutator.create_actions_from_diffs(), [])

        self.session.save(confirm=False)
        self.editor.run_pending()
        self.assertTrue((self.root / " lead.txt").is_file())
        self.assertFalse((self.root / "lead.txt").exists())


if __name__ == "__main__":
    unittest.main()
