"""Interactive confirmation gates for the fleet pipeline.

A gate asks one question per repository and step:

    y  proceed with this step
    n  skip the rest of this repository
    a  proceed, and stop asking for the rest of the run
    q  abort the whole run
    d  show the diff and ask again (commit gate only)

The controller only reads and validates answers. Remembering an `a`
answer is the pipeline's job (FleetSession.accept_all).
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from enum import Enum

from rfleet.output.console import ConsoleProtocol

__all__ = ["GateAnswer", "GateController", "ReadLine", "ShowDiff"]

ReadLine = Callable[[str], str]
ShowDiff = Callable[[str], None]

_DIFF = "d"


class GateAnswer(Enum):
    YES = "y"
    NO = "n"
    ALL = "a"
    QUIT = "q"


_TERMINAL = tuple(a.value for a in GateAnswer)


class GateController:
    def __init__(self, read_line: ReadLine, console: ConsoleProtocol, show_diff: ShowDiff) -> None:
        self._read_line = read_line
        self._console = console
        self._show_diff = show_diff

    def ask(self, prompt: str, accepted: Collection[str]) -> str:
        """Read until the trimmed answer is one of accepted.

        End of input answers "q".
        """
        choices = "/".join(accepted)
        while True:
            try:
                answer = self._read_line(f"{prompt} [{choices}] ").strip().lower()
            except EOFError:
                return GateAnswer.QUIT.value
            if answer in accepted:
                return answer
            self._console.warning(f"please answer one of: {', '.join(accepted)}")

    def decide(self, prompt: str, path: str, *, with_diff: bool = False) -> GateAnswer:
        """Ask a gate question; `d` shows the diff of path and asks again."""
        accepted = (*_TERMINAL, _DIFF) if with_diff else _TERMINAL
        while True:
            answer = self.ask(prompt, accepted)
            if answer == _DIFF:
                self._show_diff(path)
                continue
            return GateAnswer(answer)
