"""Interactive shell for narrowing down a working set of stacks."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from rich.console import Console
from rich.markup import escape

from stackparse.analysis import bucket_sameish, find_suspicious, frame_statistics
from stackparse.models import AnalysisOptions, Stack
from stackparse.query import (
    Filter,
    apply_filters,
    has_frame_matching,
    match_state,
    negate,
    summarize,
)
from stackparse.render import TextFormatter, console

PROMPT = "stackparse> "

REPL_HELP = """\
fm, frame-match P...       keep stacks with a frame containing every P
fnm, frame-not-match P...  drop stacks with a frame containing any P
sm, state-match S          keep stacks in state S
snm, state-not-match S     drop stacks in state S
s, sum, summary            summarize the working set by innermost function
p, show, print [N]         print the working set, or goroutine N
diff                       list the filter history with set sizes
pop                        undo the last filter
sus                        suspicious-pattern report
framestat                  frame occurrence counts
uu, unique                 cluster the working set into same-shape groups
help                       show this help
quit, exit                 leave the shell"""


class StackRepl:
    """A stack of successively filtered working sets.

    Every filter command pushes a new working set labelled with the command
    text; ``pop`` returns to the previous one.
    """

    def __init__(
        self,
        stacks: Sequence[Stack],
        output: Console | None = None,
        options: AnalysisOptions | None = None,
    ) -> None:
        self.console = output or console
        self.options = options or AnalysisOptions()
        self.formatter = TextFormatter(self.console)
        self.by_number: dict[int, Stack] = {stack.number: stack for stack in stacks}
        self.history: list[tuple[str, list[Stack]]] = [(".", list(stacks))]
        self.commands: dict[str, Callable[[list[str]], None]] = {
            "fm": self.do_frame_match,
            "frame-match": self.do_frame_match,
            "fnm": self.do_frame_not_match,
            "frame-not-match": self.do_frame_not_match,
            "sm": self.do_state_match,
            "state-match": self.do_state_match,
            "snm": self.do_state_not_match,
            "state-not-match": self.do_state_not_match,
            "s": self.do_summary,
            "sum": self.do_summary,
            "summary": self.do_summary,
            "p": self.do_show,
            "show": self.do_show,
            "print": self.do_show,
            "diff": self.do_diff,
            "pop": self.do_pop,
            "sus": self.do_suspicious,
            "framestat": self.do_framestat,
            "uu": self.do_unique,
            "unique": self.do_unique,
            "help": self.do_help,
        }

    @property
    def current(self) -> list[Stack]:
        return self.history[-1][1]

    def run(self, lines: Iterable[str] | None = None) -> None:
        """Execute commands from lines, or prompt on the console until EOF."""
        if lines is not None:
            for line in lines:
                if not self.execute(line):
                    return
            return

        while True:
            try:
                line = self.console.input(PROMPT)
            except (EOFError, KeyboardInterrupt):
                self.console.print()
                return
            if not self.execute(line):
                return

    def execute(self, line: str) -> bool:
        """Run one command line; return False when the session should end."""
        parts = line.split()
        if not parts:
            return True

        name, args = parts[0], parts[1:]
        if name in ("quit", "exit"):
            return False

        command = self.commands.get(name)
        if command is None:
            self.console.print(
                f"[warning]unknown command {escape(repr(name))}, try 'help'[/warning]"
            )
            return True

        command(args)
        return True

    def push(self, label: str, filters: Sequence[Filter]) -> None:
        self.history.append((label, apply_filters(self.current, filters)))

    # ============================================================
    # COMMANDS
    # ============================================================

    def do_frame_match(self, args: list[str]) -> None:
        self.push(" ".join(["fm", *args]), [has_frame_matching(p) for p in args])

    def do_frame_not_match(self, args: list[str]) -> None:
        self.push(" ".join(["fnm", *args]), [negate(has_frame_matching(p)) for p in args])

    def do_state_match(self, args: list[str]) -> None:
        state = " ".join(args)
        self.push(f"sm {state}", [match_state(state)])

    def do_state_not_match(self, args: list[str]) -> None:
        state = " ".join(args)
        self.push(f"snm {state}", [negate(match_state(state))])

    def do_summary(self, args: list[str]) -> None:
        self.formatter.format_summaries(summarize(self.current))

    def do_show(self, args: list[str]) -> None:
        if not args:
            self.formatter.format_stacks(self.current)
            return

        try:
            number = int(args[0])
        except ValueError:
            self.console.print(f"[critical]not a goroutine number: {escape(args[0])}[/critical]")
            return

        stack = self.by_number.get(number)
        if stack is None:
            self.console.print("[warning]no stack found with that number[/warning]")
            return
        self.formatter.format_stacks([stack])

    def do_diff(self, args: list[str]) -> None:
        for index, (label, stacks) in enumerate(self.history):
            self.console.print(f"{index} ({len(stacks)}): {escape(label)}", highlight=False)

    def do_pop(self, args: list[str]) -> None:
        if len(self.history) > 1:
            self.history.pop()

    def do_suspicious(self, args: list[str]) -> None:
        self.formatter.format_report(find_suspicious(self.current, self.options))

    def do_framestat(self, args: list[str]) -> None:
        self.formatter.format_frame_counts(frame_statistics(self.current))

    def do_unique(self, args: list[str]) -> None:
        self.formatter.format_clusters(bucket_sameish(self.current))

    def do_help(self, args: list[str]) -> None:
        self.console.out(REPL_HELP, highlight=False)
