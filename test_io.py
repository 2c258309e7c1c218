import argparse
import contextlib
import io
import os
import tempfile
import unittest

from nonogram_fixpoint import *

HERE = os.path.dirname(os.path.abspath(__file__))


def scripted(*answers):
    answers = list(answers)

    def read():
        if not answers:
            raise EOFError()
        return answers.pop(0)

    return read


class PromptTestCase(unittest.TestCase):
    def setUp(self):
        self.io = NonogramIO()
        self.prompts = []

    def test_prompt_puzzle(self):
        puzzle = self.io.prompt_puzzle(scripted('3 2', '3', '1', '1 1', '1', '2'), self.prompts.append)
        self.assertEqual(puzzle.row_clues, ((3,), (1,)))
        self.assertEqual(puzzle.col_clues, ((1, 1), (1,), (2,)))
        self.assertEqual(self.prompts, [
            'Enter dimensions (Format: {width} {height}): ',
            'Enter row 1 parameters',
            'Enter row 2 parameters',
            'Enter column 1 parameters',
            'Enter column 2 parameters',
            'Enter column 3 parameters',
        ])

    def test_malformed_clues_become_empty(self):
        puzzle = self.io.prompt_puzzle(scripted('2 1', 'one', '', '1 -1'), self.prompts.append)
        self.assertEqual(puzzle.row_clues, ((),))
        self.assertEqual(puzzle.col_clues, ((), ()))

    def test_malformed_dimensions(self):
        with self.assertRaises(FailedError):
            self.io.prompt_puzzle(scripted('3'), self.prompts.append)
        with self.assertRaises(FailedError):
            self.io.prompt_puzzle(scripted('0 2', '', ''), self.prompts.append)

    def test_end_of_input(self):
        with self.assertRaises(FailedError):
            self.io.prompt_puzzle(scripted('2 2', '1'), self.prompts.append)


class FormatTestCase(unittest.TestCase):
    def setUp(self):
        self.io = NonogramIO()

    def test_format_solution(self):
        result = NonogramSolver().solve(build_puzzle(2, 2, [[2], [1]], [[2], [1]]))
        self.assertEqual(self.io.format_solution(result), 'SOLVED\nSOLUTION\n1 1\n1 0')

    def test_format_unsolved(self):
        result = NonogramSolver().solve(build_puzzle(2, 2, [[1], [1]], [[1], [1]]))
        self.assertEqual(self.io.format_solution(result), 'UNSOLVED')

    def test_format_impossible(self):
        result = NonogramSolver().solve(build_puzzle(1, 1, [[1]], [[2]]))
        self.assertEqual(self.io.format_solution(result), 'IMPOSSIBLE')

    def test_format_line_with_fence(self):
        line = self.io.parse_line('oox|..', 6)
        self.assertEqual(line, [CellType.BOX, CellType.BOX, CellType.SPACE, None, None, None])
        self.assertEqual(self.io.format_line(line, fence=3), '@@*|...')
        self.assertEqual(self.io.format_line(line), '@@*...')

    def test_parse_line_too_long(self):
        with self.assertRaises(ValueError):
            self.io.parse_line('ooo', 2)

    def test_format_board(self):
        board = Board(2, 2)
        board[Coord(0, 0)] = CellType.BOX
        board[Coord(1, 1)] = CellType.SPACE
        self.assertEqual(self.io.format_board(board), '@.\n.*')
        self.assertEqual(self.io.format_board(board, full_width=True), '䨻、\n、ｘ')


class LoadTestCase(unittest.TestCase):
    def setUp(self):
        self.io = NonogramIO()

    def _write(self, text):
        fd, path = tempfile.mkstemp(suffix='.txt')
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
        self.addCleanup(os.remove, path)
        return path

    def test_load_puzzle(self):
        puzzle = self.io.load_puzzle(os.path.join(HERE, 'puzzles', 'empty-row.txt'))
        self.assertEqual(puzzle.row_clues, ((3,), (), (1, 1)))
        self.assertEqual(puzzle.col_clues, ((1, 1), (1,), (1, 1)))
        self.assertIsNone(puzzle.board)

    def test_load_pre_marked(self):
        puzzle = self.io.load_puzzle(os.path.join(HERE, 'puzzles', 'pre-marked.txt'))
        self.assertEqual(puzzle.board.to_matrix(), [[1, -1], [-1, -1]])

    def test_bad_clue_line(self):
        path = self._write('1 a\n\n1\n')
        with self.assertRaises(FailedError):
            self.io.load_puzzle(path)

    def test_missing_col_clues(self):
        path = self._write('1\n')
        with self.assertRaises(FailedError):
            self.io.load_puzzle(path)


class MainTestCase(unittest.TestCase):
    def _run(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_gram_binary(self):
        code, output = self._run('gram', os.path.join(HERE, 'puzzles', 'letter-h.txt'), '--binary')
        self.assertEqual(code, 0)
        self.assertEqual(output.splitlines(), [
            'SOLVED',
            'SOLUTION',
            '1 0 0 0 1',
            '1 0 0 0 1',
            '1 1 1 1 1',
            '1 0 0 0 1',
            '1 0 0 0 1',
        ])

    def test_line_mode(self):
        code, output = self._run('line', '10', '8')
        self.assertEqual(code, 0)
        self.assertIn('result: ..@@@|@@@..', output)
        self.assertIn('status: UNSOLVED', output)

    def test_missing_file(self):
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            code, _ = self._run('gram', os.path.join(HERE, 'puzzles', 'missing.txt'))
        self.assertEqual(code, 1)

    def test_str_to_bool(self):
        self.assertTrue(str_to_bool('Yes'))
        self.assertFalse(str_to_bool('off'))
        with self.assertRaises(argparse.ArgumentTypeError):
            str_to_bool('maybe')


if __name__ == '__main__':
    unittest.main()
