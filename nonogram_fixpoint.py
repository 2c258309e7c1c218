#!/usr/bin/env python3

import argparse
import copy
import enum
import itertools
import math
import sys
import time
import typing

__version__ = '1.0.0'


class CellType(enum.Enum):
    SPACE = 0
    BOX = 1

    def __str__(self):
        return self.name


class SolveStatus(enum.Enum):
    SOLVED = enum.auto()
    UNSOLVED = enum.auto()
    IMPOSSIBLE = enum.auto()

    def __str__(self):
        return self.name


class LineKind(enum.Enum):
    ROW = enum.auto()
    COL = enum.auto()

    def orthogonal(self) -> 'LineKind':
        if self is self.ROW:
            return self.COL
        elif self is self.COL:
            return self.ROW
        else:
            raise ValueError(f'{self} has no orthogonal line')

    def __str__(self):
        return self.name


class Coord(typing.NamedTuple):
    row: int
    col: int

    def __str__(self):
        return f'[{self.row + 1}, {self.col + 1}]'


class Line(typing.NamedTuple):
    kind: LineKind
    n: int

    def get_coord(self, index: int) -> Coord:
        if self.kind == LineKind.ROW:
            return Coord(self.n, index)
        elif self.kind == LineKind.COL:
            return Coord(index, self.n)

    def __str__(self):
        return f'{self.kind} {self.n + 1}'


class NonogramError(Exception):
    pass


class ParadoxError(NonogramError):
    pass


class FailedError(NonogramError):
    pass


class Board:
    def __init__(self, height: int, width: int):
        self._height = height
        self._width = width
        self._cells = [[None] * width for r in range(height)]
        self._confirmed = 0

    @property
    def height(self) -> int:
        return self._height

    @property
    def width(self) -> int:
        return self._width

    def __getitem__(self, coord: Coord) -> CellType:
        return self._cells[coord.row][coord.col]

    def __setitem__(self, coord: Coord, value: CellType):
        curr = self._cells[coord.row][coord.col]
        if curr == value:
            return
        elif curr is not None:
            # Cells only ever move from unknown to BOX or SPACE.
            raise ParadoxError(f'cell {coord} is already {curr}, cannot be {value}')

        self._cells[coord.row][coord.col] = value
        self._confirmed += 1

    def finished(self) -> bool:
        return self._confirmed == self._height * self._width

    def line_length(self, kind: LineKind) -> int:
        return self._width if (kind == LineKind.ROW) else self._height

    def get_line_content(self, line: Line) -> typing.List[CellType]:
        return [self[line.get_coord(i)] for i in range(self.line_length(line.kind))]

    def set_line_content(self, line: Line, content: typing.Sequence[CellType]) -> typing.List[int]:
        """Write a line back into the board, returns indexes of newly confirmed cells."""
        changes = []
        for i, value in enumerate(content):
            coord = line.get_coord(i)
            if value is not None and self[coord] is None:
                changes.append(i)
            self[coord] = value

        return changes

    def to_matrix(self) -> typing.List[typing.List[int]]:
        """Rows of 1 (box), 0 (space) and -1 (unknown)."""
        return [[-1 if value is None else value.value for value in row] for row in self._cells]

    def __str__(self):
        return NonogramIO().format_board(self)


class NonogramPuzzle(typing.NamedTuple):
    row_clues: typing.Tuple[typing.Tuple[int]]
    col_clues: typing.Tuple[typing.Tuple[int]]
    board: typing.Optional[Board] = None

    @property
    def height(self) -> int:
        return len(self.row_clues)

    @property
    def width(self) -> int:
        return len(self.col_clues)

    def get_line_clues(self, line: Line) -> typing.Tuple[int]:
        if line.kind == LineKind.ROW:
            return self.row_clues[line.n]
        elif line.kind == LineKind.COL:
            return self.col_clues[line.n]

    def iter_lines(self, kind: LineKind) -> typing.Iterator[Line]:
        count = self.height if (kind == LineKind.ROW) else self.width
        return (Line(kind, i) for i in range(count))


def build_puzzle(width: int, height: int,
                 row_clues: typing.Sequence[typing.Sequence[int]],
                 col_clues: typing.Sequence[typing.Sequence[int]]) -> NonogramPuzzle:
    if width < 1 or height < 1:
        raise FailedError(f'puzzle size {width}x{height} is invalid, both must be at least 1')
    if len(row_clues) != height:
        raise FailedError(f'got {len(row_clues)} row clues for a puzzle of height {height}')
    if len(col_clues) != width:
        raise FailedError(f'got {len(col_clues)} col clues for a puzzle of width {width}')

    return NonogramPuzzle(tuple(tuple(c) for c in row_clues), tuple(tuple(c) for c in col_clues))


def format_clue_tokens(blocks: typing.Iterable[int]) -> typing.Tuple[int, ...]:
    """Interleave zero-length gaps around and between the blocks.

    ``[3, 1]`` becomes ``(0, 3, 0, 1, 0)``. A line without blocks is treated as a
    single block of length 0, so ``[]`` becomes ``(0, 0, 0)``.
    """
    tokens = [0]
    for block in (tuple(blocks) or (0,)):
        tokens.extend((block, 0))

    return tuple(tokens)


def token_blocks(tokens: typing.Sequence[int]) -> typing.Tuple[int, ...]:
    return tuple(tokens[1::2])


def block_count(tokens: typing.Sequence[int]) -> int:
    return len(tokens) // 2


def count_gap_placements(num_gaps: int, slack: int) -> int:
    if num_gaps < 1:
        raise ValueError(f'num_gaps must be positive, got {num_gaps}')
    if slack < 0:
        raise ValueError(f'slack must not be negative, got {slack}')

    if num_gaps == 1:
        return 1

    free = slack - (num_gaps - 2)
    if free < 0:
        return 0

    return math.comb(free + num_gaps - 1, num_gaps - 1)


def iter_gap_placements(num_gaps: int, slack: int) -> typing.Iterator[typing.Tuple[int, ...]]:
    """Yield every way to spread ``slack`` cells over ``num_gaps`` gaps.

    The first and last gap may be empty, every interior gap holds at least one
    cell. Placements come out in ascending lexicographic order, and each call
    returns an independent generator.
    """
    if num_gaps < 1:
        raise ValueError(f'num_gaps must be positive, got {num_gaps}')
    if slack < 0:
        raise ValueError(f'slack must not be negative, got {slack}')

    if num_gaps == 1:
        yield (slack,)
        return

    free = slack - (num_gaps - 2)
    if free < 0:
        return

    # Stars and bars: `num_gaps - 1` bars among `free + num_gaps - 1` positions.
    positions = free + num_gaps - 1
    for bars in itertools.combinations(range(positions), num_gaps - 1):
        gaps = []
        prev = -1
        for bar in itertools.chain(bars, (positions,)):
            gaps.append(bar - prev - 1)
            prev = bar

        for i in range(1, num_gaps - 1):
            gaps[i] += 1

        yield tuple(gaps)


def get_box_runs(content: typing.Iterable[CellType]) -> typing.Tuple[int, ...]:
    return tuple(len(list(group)) for value, group in itertools.groupby(content) if value == CellType.BOX)


class LineView(typing.NamedTuple):
    line: Line
    content: typing.Tuple[CellType]
    tokens: typing.Tuple[int]

    @property
    def block_count(self) -> int:
        return block_count(self.tokens)


class LineUpdate(typing.NamedTuple):
    content: typing.Tuple[CellType]
    status: SolveStatus
    changes: typing.Tuple[int] = ()


class LineSolver:
    """Deduce a single line by intersecting every placement of its blocks.

    The solver only keeps the clue tokens, ``update`` never mutates its input
    and can be called on any number of lines sharing the same clues.
    """

    def __init__(self, clues: typing.Iterable[int]):
        self._tokens = format_clue_tokens(clues)
        self._blocks = token_blocks(self._tokens)

    @property
    def tokens(self) -> typing.Tuple[int]:
        return self._tokens

    @property
    def blocks(self) -> typing.Tuple[int]:
        return self._blocks

    def matches(self, content: typing.Sequence[CellType]) -> bool:
        return get_box_runs(content) == tuple(b for b in self._blocks if b > 0)

    def iter_candidates(self, length: int) -> typing.Iterator[typing.Tuple[CellType]]:
        slack = length - sum(self._blocks)
        if slack < 0:
            return

        for gaps in iter_gap_placements(len(self._blocks) + 1, slack):
            candidate = []
            for gap, block in itertools.zip_longest(gaps, self._blocks, fillvalue=0):
                candidate.extend(itertools.repeat(CellType.SPACE, gap))
                candidate.extend(itertools.repeat(CellType.BOX, block))

            yield tuple(candidate)

    def update(self, content: typing.Sequence[CellType]) -> LineUpdate:
        content = tuple(content)

        # Already finished, only need to check it.
        if None not in content:
            status = SolveStatus.SOLVED if self.matches(content) else SolveStatus.IMPOSSIBLE
            return LineUpdate(content, status)

        common = None
        for candidate in self.iter_candidates(len(content)):
            if any(known is not None and known != value for known, value in zip(content, candidate)):
                continue

            if common is None:
                common = list(candidate)
            else:
                for i, value in enumerate(candidate):
                    if common[i] != value:
                        common[i] = None

        if common is None:
            return LineUpdate(content, SolveStatus.IMPOSSIBLE)

        changes = tuple(i for i, value in enumerate(common) if value is not None and content[i] is None)
        status = SolveStatus.UNSOLVED if None in common else SolveStatus.SOLVED
        return LineUpdate(tuple(common), status, changes)


def solve_line(clues: typing.Iterable[int], content: typing.Sequence[CellType]) -> LineUpdate:
    return LineSolver(clues).update(content)


class SolveResult(typing.NamedTuple):
    status: SolveStatus
    board: Board
    passes: int


class NonogramIO:
    class SymbolColl(typing.NamedTuple):
        box: str
        space: str
        unknown: str
        col_fence: str
        row_fence: str
        cross_fence: str

    def __init__(self):
        self.line_fence = 0
        self.row_fence = 0
        self.col_fence = 0
        self.full_width_enabled = False

        self.symbols = self.SymbolColl('@', '*', '.', '|', '-', '+')
        self.full_width_symbols = self.SymbolColl('䨻', 'ｘ', '、', '｜', '－', '＋')
        self.box_symbols = { 'o', self.symbols.box, self.full_width_symbols.box }
        self.space_symbols = { 'x', self.symbols.space, self.full_width_symbols.space }

    def _cell_symbol(self, value: CellType, symbols: 'NonogramIO.SymbolColl') -> str:
        if value == CellType.BOX:
            return symbols.box
        elif value == CellType.SPACE:
            return symbols.space
        else:
            return symbols.unknown

    def format_line(self, content: typing.Sequence[CellType], fence=None) -> str:
        fence = self.line_fence if fence is None else fence
        parts = []
        for col, value in enumerate(content):
            if fence > 0 and col > 0 and col % fence == 0:
                parts.append(self.symbols.col_fence)
            parts.append(self._cell_symbol(value, self.symbols))

        return ''.join(parts)

    def format_board(self, board: Board, row_fence=None, col_fence=None, full_width=None, highlights=None) -> str:
        row_fence = self.row_fence if row_fence is None else row_fence
        col_fence = self.col_fence if col_fence is None else col_fence
        full_width = self.full_width_enabled if full_width is None else full_width
        symbols = self.full_width_symbols if full_width else self.symbols
        highlights = highlights or set()

        csi = '\x1b'
        c_highlight = csi + '[34m'
        c_reset = csi + '[0m'

        fence_parts = []
        for col in range(board.width):
            if col_fence > 0 and col > 0 and col % col_fence == 0:
                fence_parts.append(symbols.cross_fence)
            fence_parts.append(symbols.row_fence)

        fence_line = ''.join(fence_parts)

        lines = []
        for row in range(board.height):
            if row_fence > 0 and row > 0 and row % row_fence == 0:
                lines.append(fence_line)

            parts = []
            for col in range(board.width):
                if col_fence > 0 and col > 0 and col % col_fence == 0:
                    parts.append(symbols.col_fence)

                coord = Coord(row, col)
                if coord in highlights:
                    parts.append(c_highlight)
                parts.append(self._cell_symbol(board[coord], symbols))
                if coord in highlights:
                    parts.append(c_reset)

            lines.append(''.join(parts))

        return '\n'.join(lines)

    def format_solution(self, result: SolveResult) -> str:
        lines = [str(result.status)]
        if result.status is SolveStatus.SOLVED:
            lines.append('SOLUTION')
            lines.extend(' '.join(str(v) for v in row) for row in result.board.to_matrix())

        return '\n'.join(lines)

    def parse_line(self, text: str, length: int) -> typing.List[CellType]:
        content = []
        for c in text:
            c = c.lower()
            if c in self.box_symbols:
                content.append(CellType.BOX)
            elif c in self.space_symbols:
                content.append(CellType.SPACE)
            elif c in { self.symbols.col_fence, self.full_width_symbols.col_fence }:
                continue
            else:
                content.append(None)

        if len(content) < length:
            content.extend(itertools.repeat(None, length - len(content)))
        elif len(content) > length:
            raise ValueError(f'line `{text}` is longer than given length {length}')

        return content

    @staticmethod
    def parse_clues(text: str) -> typing.Tuple[int]:
        """Parse space separated block lengths, malformed text gives no blocks."""
        try:
            values = tuple(int(x) for x in text.split())
        except ValueError:
            return ()

        if any(v < 0 for v in values):
            return ()

        return tuple(v for v in values if v > 0)

    def load_puzzle(self, file_path) -> NonogramPuzzle:
        row_clues = []
        col_clues = []
        board: Board = None
        with (open(file_path, encoding='utf-8') if file_path else sys.stdin) as f:
            section = 0
            row = 0
            for line_no, line in enumerate(f, 1):
                line = line.rstrip('\r\n')
                if line.startswith('#'):
                    continue

                if section < 2:
                    if line == '':
                        section += 1
                    elif line[0] == self.symbols.row_fence:
                        continue
                    else:
                        try:
                            clues = tuple(int(x) for x in line.split())
                        except ValueError as e:
                            raise FailedError(f'{file_path or "<stdin>"}:{line_no}: bad clue line `{line}`') from e
                        clues = tuple(x for x in clues if x > 0)
                        (row_clues if section == 0 else col_clues).append(clues)
                elif section == 2:
                    if line == '':
                        break
                    elif line[0] in { self.symbols.row_fence, self.full_width_symbols.row_fence }:
                        continue
                    else:
                        if board is None:
                            board = Board(len(row_clues), len(col_clues))
                        if row >= board.height:
                            raise FailedError(f'{file_path or "<stdin>"}:{line_no}: too many board rows')

                        try:
                            row_content = self.parse_line(line, board.width)
                        except ValueError as e:
                            raise FailedError(f'{file_path or "<stdin>"}:{line_no}: {e}') from e
                        for col, value in enumerate(row_content):
                            if value is not None:
                                board[Coord(row, col)] = value

                        row += 1

        if not row_clues or not col_clues:
            raise FailedError(f'{file_path or "<stdin>"}: puzzle needs both row and col clues')

        return NonogramPuzzle(tuple(row_clues), tuple(col_clues), board)

    def prompt_puzzle(self, read=input, write=print) -> NonogramPuzzle:
        """Ask for the size and every clue line interactively."""
        try:
            write('Enter dimensions (Format: {width} {height}): ')
            try:
                width, height = (int(x) for x in read().split())
            except ValueError as e:
                raise FailedError('dimensions must be two integers: {width} {height}') from e

            row_clues = []
            for i in range(height):
                write(f'Enter row {i + 1} parameters')
                row_clues.append(self.parse_clues(read()))

            col_clues = []
            for i in range(width):
                write(f'Enter column {i + 1} parameters')
                col_clues.append(self.parse_clues(read()))
        except EOFError as e:
            raise FailedError('unexpected end of input') from e

        return build_puzzle(width, height, row_clues, col_clues)


class NonogramSolver:
    def __init__(self):
        self.line_deduce_visible = False
        self.deduce_board_visible = False
        self.deduce_board_pause = 0
        self.pass_summary_visible = False

        self.io = NonogramIO()

    def solve(self, puzzle: NonogramPuzzle) -> SolveResult:
        board = copy.deepcopy(puzzle.board) if puzzle.board is not None else Board(puzzle.height, puzzle.width)
        statuses: typing.Dict[Line, SolveStatus] = {}

        passes = 0
        while True:
            passes += 1
            status, changes = self.iterate(puzzle, board, statuses)
            if self.pass_summary_visible:
                print(f'pass {passes}: {changes} cells confirmed, {status}')

            if status is not SolveStatus.UNSOLVED:
                return SolveResult(status, board, passes)
            elif changes == 0:
                # Fixed point: more passes would not confirm anything.
                return SolveResult(SolveStatus.UNSOLVED, board, passes)

    def iterate(self, puzzle: NonogramPuzzle, board: Board,
                statuses: typing.Dict[Line, SolveStatus]) -> typing.Tuple[SolveStatus, int]:
        """Run one full pass, all rows then all columns.

        ``statuses`` keeps each line's latest status between passes, lines already
        solved are skipped. Returns the board status and the count of newly
        confirmed cells.
        """
        changes = 0
        for kind in (LineKind.ROW, LineKind.COL):
            for line in puzzle.iter_lines(kind):
                if statuses.get(line) is SolveStatus.SOLVED:
                    continue

                update = self.solve_board_line(puzzle, board, line)
                statuses[line] = update.status
                if update.status is SolveStatus.IMPOSSIBLE:
                    return SolveStatus.IMPOSSIBLE, changes

                changes += len(update.changes)

        if all(statuses.get(line) is SolveStatus.SOLVED
               for kind in (LineKind.ROW, LineKind.COL) for line in puzzle.iter_lines(kind)):
            return SolveStatus.SOLVED, changes

        return SolveStatus.UNSOLVED, changes

    def solve_board_line(self, puzzle: NonogramPuzzle, board: Board, line: Line) -> LineUpdate:
        line_solver = LineSolver(puzzle.get_line_clues(line))
        view = LineView(line, tuple(board.get_line_content(line)), line_solver.tokens)
        update = line_solver.update(view.content)
        if update.status is SolveStatus.IMPOSSIBLE:
            if self.line_deduce_visible:
                print(f'paradox in {line}: {puzzle.get_line_clues(line)} cannot fit {self.io.format_line(view.content)}')
                print()
            return update

        changes = board.set_line_content(line, update.content)
        if changes:
            if self.line_deduce_visible:
                print(f'solving {line}: {puzzle.get_line_clues(line)} ({view.block_count} blocks)')
                print(f'origin: {self.io.format_line(view.content)}')
                print(f'result: {self.io.format_line(update.content)}')
                print()
            if self.deduce_board_visible:
                highlights = set(line.get_coord(i) for i in changes)
                print(self.io.format_board(board, highlights=highlights))
                print()
                time.sleep(self.deduce_board_pause)

        return update

    def verify(self, puzzle: NonogramPuzzle, board: Board):
        for kind in (LineKind.ROW, LineKind.COL):
            for line in puzzle.iter_lines(kind):
                content = board.get_line_content(line)
                if None in content:
                    index = content.index(None)
                    raise FailedError(f'cell {line.get_coord(index)} is not marked')

                boxes = get_box_runs(content)
                clues = tuple(c for c in puzzle.get_line_clues(line) if c > 0)
                if boxes != clues:
                    raise FailedError(f'{line} boxes {boxes} not match with clues {clues}')


def str_to_bool(text: str) -> bool:
    value = text.lower()
    if value in ('y', 'yes', 't', 'true', 'on', '1'):
        return True
    elif value in ('n', 'no', 'f', 'false', 'off', '0'):
        return False
    raise argparse.ArgumentTypeError(f'invalid truth value `{text}`')


def create_arg_parser() -> argparse.ArgumentParser:
    int_pair = lambda s: tuple(int(x) for x in s.split(',', 1))

    parser = argparse.ArgumentParser(description='Nonograms Fixed-Point Solver', allow_abbrev=False)
    parser.add_argument('--version', action='version', version=f'nonogram_fixpoint {__version__}')
    subparsers = parser.add_subparsers(dest='mode', required=True, help='choose a mode')

    parser_g = subparsers.add_parser('gram', help='gram mode')
    parser_g.add_argument('puzzle_file', nargs='?',
                          help='a file contains the nanogram puzzle, see puzzles/*.txt for example'
                          ' (default: read from stdin)')
    parser_g.add_argument('--binary', type=str_to_bool,
                          nargs='?', const=True, default=False, choices=[True, False],
                          help='print status and 0/1 rows instead of symbols (default: false)')
    parser_g.add_argument('--grid', type=int_pair, nargs='?', default=(0, 0), const=(5, 5), metavar='WIDTH[,HEIGHT]',
                          help='show major grid line when printing gram with the given size (default: 5,5)')
    parser_g.add_argument('--full-width', type=str_to_bool,
                          nargs='?', const=True, default=True, choices=[True, False],
                          help='whether use full width char when print gram (default: true)')

    parser_p = subparsers.add_parser('prompt', help='enter size and clues interactively')

    for sub in (parser_g, parser_p):
        sub.add_argument('--show-progress', type=str_to_bool,
                         nargs='?', const=True, default=False, choices=[True, False],
                         help='whether print board after each deducing step (highlight changes) (default: false)')
        sub.add_argument('--progress-pause', type=float, default=0.2,
                         help='pause some time (in seconds) between each progress board view (default: 0.2)')
        sub.add_argument('--show-deduce', type=str_to_bool,
                         nargs='?', const=True, default=False, choices=[True, False],
                         help='whether print every line deducing result (default: false)')
        sub.add_argument('--show-passes', type=str_to_bool,
                         nargs='?', const=True, default=False, choices=[True, False],
                         help='whether print a summary after each row and column pass (default: false)')
        sub.add_argument('--line-fence', type=int, default=5,
                         help='if greater than 0, print fence when printing single line (default: 5)')

    parser_l = subparsers.add_parser('line', help='single line mode')
    parser_l.add_argument('length', type=int,
                          help='length of line')
    parser_l.add_argument('clues', type=int, nargs='*', metavar='clue',
                          help='clue numbers (none for an empty line)')
    parser_l.add_argument('--content', default='',
                          help='content of the line, `o` or `@` for box, `x` or `*` for space,'
                          ' `|` for border (optional), other character for unknown (case insensitive)')
    parser_l.add_argument('--line-fence', type=int, default=5,
                          help='if greater than 0, print fence when printing single line (default: 5)')

    return parser


def create_solver(args) -> NonogramSolver:
    solver = NonogramSolver()
    solver.io.line_fence = args.line_fence
    if args.mode in ('gram', 'prompt'):
        solver.deduce_board_visible = args.show_progress
        solver.deduce_board_pause = args.progress_pause
        solver.line_deduce_visible = args.show_deduce
        solver.pass_summary_visible = args.show_passes
    if args.mode == 'gram':
        solver.io.col_fence = args.grid[0]
        solver.io.row_fence = args.grid[-1]
        solver.io.full_width_enabled = args.full_width

    return solver


def main(argv=None) -> int:
    parser = create_arg_parser()
    args = parser.parse_args(argv)

    solver = create_solver(args)
    try:
        if args.mode == 'gram':
            puzzle = solver.io.load_puzzle(args.puzzle_file)
            result = solver.solve(puzzle)
            if result.status is SolveStatus.SOLVED:
                solver.verify(puzzle, result.board)

            if args.binary:
                print(solver.io.format_solution(result))
            else:
                print(solver.io.format_board(result.board))
                if result.status is SolveStatus.UNSOLVED:
                    print()
                    print('NOT Solved!!!')
                elif result.status is SolveStatus.IMPOSSIBLE:
                    print()
                    print('Impossible!!!')
        elif args.mode == 'prompt':
            puzzle = solver.io.prompt_puzzle()
            result = solver.solve(puzzle)
            print(solver.io.format_solution(result))
        elif args.mode == 'line':
            content = solver.io.parse_line(args.content, args.length)
            update = solve_line(args.clues, content)
            print(f'solving line: {args.clues}')
            print(f'origin: {solver.io.format_line(content)}')
            print(f'result: {solver.io.format_line(update.content)}')
            print(f'status: {update.status}')
            print()
    except (FailedError, ValueError, OSError) as e:
        print(f'error: {e}', file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
