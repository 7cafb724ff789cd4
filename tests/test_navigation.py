from __future__ import annotations

import unittest

from diredit.entries import DIRECTORY, FILE
from diredit.host import ERROR, WARN
from diredit.navigation import ENTRY_ID_VAR, SelectOptions

from engine_harness import MEM_SCHEME, make_session, open_dir

ROOT_TREE = {
    "/": [("foo", DIRECTORY), ("a.txt", FILE), ("b.txt", FILE)],
    "/foo/": [("bar", DIRECTORY)],
    "/foo/bar/": [],
}


class SelectTests(unittest.TestCase):
    def setUp(self) -> None:
        self.editor, self.session, self.adapter = make_session(ROOT_TREE, {"/a.txt": ["alpha"]})
        self.bufnr = open_dir(self.editor)

    def test_root_listing_renders_directories_first(self) -> None:
        self.assertEqual(self.editor.buf_get_lines(self.bufnr), ["/001 foo/", "/002 a.txt", "/003 b.txt"])

    def test_selecting_a_directory_opens_it_in_the_same_window(self) -> None:
        self.editor.win_set_cursor(None, (1, 0))

        self.session.select()
        self.editor.run_pending()

        current = self.editor.current_buf()
        self.assertEqual(self.editor.buffer(current).name, MEM_SCHEME + "/foo/")
        self.assertEqual(self.editor.buf_get_lines(current), ["/004 bar/"])
        self.assertEqual(self.editor.list_wins(), [self.editor.current_win])

    def test_selecting_a_file_loads_its_contents(self) -> None:
        self.editor.win_set_cursor(None, (2, 0))

        self.session.select()
        self.editor.run_pending()

        current = self.editor.current_buf()
        self.assertEqual(self.editor.buffer(current).name, MEM_SCHEME + "/a.txt")
        self.assertEqual(self.editor.buf_get_lines(current), ["alpha"])
        self.assertEqual(self.editor.buffer(current).buftype, "acwrite")
        self.assertEqual(self.session.lifecycle.phase(current), "loaded-file")

    def test_new_directory_sharing_a_cached_name_is_refused(self) -> None:
        self.editor.buf_set_lines(self.bufnr, ["/002 a.txt", "/003 b.txt", "foo/"])
        self.editor.win_set_cursor(None, (3, 0))
        windows = self.editor.list_wins()

        self.session.select()
        self.editor.run_pending()

        self.assertEqual(self.editor.notifications[-1].message, "Please save changes before entering new directory")
        self.assertEqual(self.editor.notifications[-1].level, ERROR)
        self.assertEqual(self.editor.list_wins(), windows)
        self.assertEqual(self.editor.current_buf(), self.bufnr)

    def test_blank_line_reports_missing_entry(self) -> None:
        self.editor.buf_set_lines(self.bufnr, ["/001 foo/", ""])
        self.editor.win_set_cursor(None, (2, 0))

        self.session.select()

        self.assertEqual(self.editor.notifications[-1].message, "Could not find entry under cursor")
        self.assertEqual(self.editor.notifications[-1].level, ERROR)

    def test_preview_is_refused_inside_a_floating_window(self) -> None:
        scratch = self.editor.create_buf(listed=False, scratch=True)
        self.editor.open_win(scratch, enter=True, relative="editor", width=10, height=5)

        self.session.select(preview=True)

        self.assertEqual(self.editor.notifications[-1].message, "diredit preview doesn't work in a floating window")


class MultiSelectTests(unittest.TestCase):
    def setUp(self) -> None:
        tree = {"/": [(f"f{index}", FILE) for index in range(1, 7)]}
        files = {f"/f{index}": [f"content {index}"] for index in range(1, 7)}
        self.editor, self.session, _adapter = make_session(tree, files)
        self.bufnr = open_dir(self.editor)
        self.origin = self.editor.current_win

    def test_visual_selection_opens_each_entry_in_order(self) -> None:
        self.editor.win_set_cursor(None, (3, 0))
        self.editor.start_visual()
        self.editor.win_set_cursor(None, (5, 0))

        self.session.select(SelectOptions(vertical=True))
        self.editor.run_pending()

        names = [self.editor.buffer(self.editor.window(winid).bufnr).name for winid in self.editor.tabpage_list_wins()]
        self.assertEqual(names, [MEM_SCHEME + "/", MEM_SCHEME + "/f3", MEM_SCHEME + "/f4", MEM_SCHEME + "/f5"])
        self.assertEqual(self.editor.window(self.origin).bufnr, self.bufnr)
        self.assertIsNone(self.editor.visual_range())
        last = self.editor.tabpage_list_wins()[-1]
        self.assertEqual(self.editor.window(last).layout, "belowright vsplit")
        self.assertEqual(self.editor.buf_get_lines(self.editor.window(last).bufnr), ["content 5"])

    def test_preview_opens_one_window_and_keeps_focus(self) -> None:
        self.editor.win_set_cursor(None, (2, 0))

        self.session.select(preview=True)
        self.editor.run_pending()

        self.assertEqual(self.editor.current_win, self.origin)
        preview_win = self.editor.tabpage_list_wins()[-1]
        self.assertTrue(self.editor.window(preview_win).options["previewwindow"])
        self.assertEqual(self.editor.window(preview_win).vars[ENTRY_ID_VAR], 2)
        self.assertEqual(self.editor.window(preview_win).layout, "belowright vsplit")

    def test_new_preview_replaces_the_previous_preview_window(self) -> None:
        self.editor.win_set_cursor(None, (1, 0))
        self.session.select(preview=True)
        self.editor.run_pending()
        first_preview = self.editor.tabpage_list_wins()[-1]

        self.editor.win_set_cursor(None, (4, 0))
        self.session.select(preview=True)
        self.editor.run_pending()

        self.assertFalse(self.editor.win_is_valid(first_preview))
        self.assertEqual(len(self.editor.tabpage_list_wins()), 2)
        second_preview = self.editor.tabpage_list_wins()[-1]
        self.assertEqual(self.editor.window(second_preview).vars[ENTRY_ID_VAR], 4)

    def test_preview_of_a_selection_warns_and_previews_the_first_entry(self) -> None:
        self.editor.win_set_cursor(None, (1, 0))
        self.editor.start_visual()
        self.editor.win_set_cursor(None, (3, 0))

        with self.assertLogs("diredit.host.editor", level="WARNING"):
            self.session.select(preview=True)
        self.editor.run_pending()

        self.assertIn(("Cannot preview multiple entries", WARN), [(n.message, n.level) for n in self.editor.notifications])
        self.assertEqual(len(self.editor.tabpage_list_wins()), 2)
        preview_win = self.editor.tabpage_list_wins()[-1]
        self.assertEqual(self.editor.buffer(self.editor.window(preview_win).bufnr).name, MEM_SCHEME + "/f1")


class ParentUrlTests(unittest.TestCase):
    def setUp(self) -> None:
        self.editor, self.session, _adapter = make_session(ROOT_TREE, cwd="/work")
        self.navigator = self.session.navigator

    def test_adapter_url_parent_and_child_name(self) -> None:
        self.assertEqual(self.navigator.get_buffer_parent_url(MEM_SCHEME + "/foo/bar.txt"), (MEM_SCHEME + "/foo/", "bar.txt"))
        self.assertEqual(self.navigator.get_buffer_parent_url(MEM_SCHEME + "/foo/bar/"), (MEM_SCHEME + "/foo/", "bar"))

    def test_root_is_its_own_parent(self) -> None:
        self.assertEqual(self.navigator.get_buffer_parent_url(MEM_SCHEME + "/"), (MEM_SCHEME + "/", None))

    def test_plain_buffers_resolve_through_the_working_directory(self) -> None:
        self.assertEqual(self.navigator.get_buffer_parent_url("notes/todo.txt"), ("diredit:///work/notes/", "todo.txt"))
        self.assertEqual(self.navigator.get_buffer_parent_url(""), ("diredit:///work/", None))

    def test_terminal_buffers_open_their_working_directory(self) -> None:
        self.assertEqual(self.navigator.get_buffer_parent_url("term:///srv/app//4242:bash"), ("diredit:///srv/app/", None))

    def test_current_dir_only_for_files_adapter_buffers(self) -> None:
        open_dir(self.editor)
        self.assertIsNone(self.session.get_current_dir())

        self.editor.buffer(self.editor.current_buf()).name = "diredit:///srv/app/"
        self.assertEqual(self.session.get_current_dir(), "/srv/app/")


class CloseTests(unittest.TestCase):
    def test_close_returns_to_the_original_buffer(self) -> None:
        editor, session, _adapter = make_session(ROOT_TREE)
        editor.edit("scratch.txt")
        original = editor.current_buf()
        open_dir(editor)

        session.close()

        self.assertEqual(editor.current_buf(), original)

    def test_close_without_an_original_buffer_deletes_the_view(self) -> None:
        editor, session, _adapter = make_session(ROOT_TREE)
        bufnr = open_dir(editor)
        session.state.windows.clear()

        session.close()

        self.assertFalse(editor.buf_is_valid(bufnr))


if __name__ == "__main__":
    unittest.main()
