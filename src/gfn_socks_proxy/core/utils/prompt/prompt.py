"""Shared console and table helpers for terminal output."""

from collections.abc import Iterable, Sequence

from rich.console import Console
from rich.spinner import Spinner
from rich.table import Table

console = Console()


class PromptHandler:
    """Base class for live terminal displays."""

    def __init__(self) -> None:
        self._refresh_rate = 1.0
        self._spinner = Spinner("dots", text="")


def build_table(title: str, columns: Sequence[str], rows: Iterable[Sequence[str]]) -> Table:
    """Build a two-tone table; the first column is the key column.

    Args:
        title: Table title
        columns: Column headers
        rows: Cell values, one sequence per row

    Returns:
        Table: Table ready for ``console.print``
    """
    table = Table(title=title)
    for index, column in enumerate(columns):
        table.add_column(column, style="cyan" if index == 0 else "green")
    for row in rows:
        table.add_row(*row)
    return table
