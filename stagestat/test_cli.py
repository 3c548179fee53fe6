import contextlib
import io
import os
import sys
import tempfile
import unittest

from stagestat.cli import main
from stagestat.exceptions import RootResolutionError
from stagestat.report import HEADER_INDENT
from stagestat.tasks.status import status
from stagestat.test_engine import GitTestBase


def _run(argv):
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        code = main(argv)
    return code, out.getvalue()


class TestStatusTask(GitTestBase):

    def test_clean_repository_prints_blank_line(self):
        self._commit_file('a.txt', "a\n")
        out = io.StringIO()
        status(self._path('.'), color='never', stream=out)
        self.assertEqual(out.getvalue(), "\n")

    def test_report(self):
        self._commit_file('a.txt', "1\n2\n3\n")
        self._write_file('a.txt', "1\n2\n3\n4\n5\n6\n")
        self._stage_file('b.txt', "x\n")

        out = io.StringIO()
        status(self._path('.'), color='never', stream=out)
        lines = out.getvalue().splitlines()

        self.assertEqual(lines[0], HEADER_INDENT + "      staged     unstaged path")
        self.assertEqual(lines[1].split(), ['1:', 'unchanged', '+3/-0', 'a.txt'])
        self.assertEqual(lines[2].split(), ['2:', '+1/-0', 'nothing', 'b.txt'])
        self.assertEqual(lines[3], "")
        self.assertEqual(len(lines), 4)

    def test_always_colour_marks_header(self):
        self._stage_file('b.txt', "x\n")
        out = io.StringIO()
        status(self._path('.'), color='always', stream=out)
        self.assertIn("\x1b[", out.getvalue().splitlines()[0])

    @unittest.skipUnless(sys.platform.startswith('linux'), "filesystem must keep raw filename bytes")
    def test_report_with_undecodable_filename(self):
        name = os.fsdecode(b'caf\xe9.txt')
        self._write_file(name, "x\n")
        self.repo.git.add('--', name)

        raw = io.BytesIO()
        out = io.TextIOWrapper(raw, encoding='utf-8')
        status(self._path('.'), color='never', stream=out)
        lines = raw.getvalue().split(b'\n')
        self.assertEqual(lines[1].split(), [b'1:', b'+1/-0', b'nothing', b'caf\xe9.txt'])

    def test_not_a_repository(self):
        with tempfile.TemporaryDirectory() as plain:
            out = io.StringIO()
            with self.assertRaises(RootResolutionError):
                status(plain, stream=out)
            self.assertEqual(out.getvalue(), "")


class TestCommandLine(GitTestBase):

    def test_no_command_prints_help(self):
        code, out = _run([])
        self.assertEqual(code, 0)
        self.assertIn("status", out)

    def test_status_command(self):
        self._stage_file('new.txt', "1\n2\n")
        code, out = _run(['status', '-C', self.repo_path, '--color', 'never'])
        self.assertEqual(code, 0)
        self.assertEqual(out.splitlines()[1].split(), ['1:', '+2/-0', 'nothing', 'new.txt'])

    def test_status_command_with_pathspec(self):
        self._stage_file('keep.txt', "1\n")
        self._stage_file('skip.txt', "1\n")
        code, out = _run(['status', '-C', self.repo_path, '--color', 'never', 'keep.txt'])
        self.assertEqual(code, 0)
        self.assertIn('keep.txt', out)
        self.assertNotIn('skip.txt', out)

    def test_status_command_failure(self):
        with tempfile.TemporaryDirectory() as plain:
            code, out = _run(['status', '-C', plain, '--color', 'never'])
        self.assertEqual(code, 1)
        self.assertTrue(out.startswith("[✗] Not a git repository"))
