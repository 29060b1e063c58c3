"""
Extensions over the tabulate package.
"""

from __future__ import annotations

import tabulate

from typing import (
    Any,
    List,
    Tuple,
)


class Tabular:
    """Tabular contains tabular data that you can format using the tabulatex method."""

    def __init__(self):
        self._columns: List[str] = []
        self._rows: List[List[Any]] = []

    def columns(self) -> List[str]:
        """Returns the table columns"""
        return self._columns

    @staticmethod
    def create(pairs: List[Tuple[str, Any]]) -> Tabular:
        tab = Tabular()
        row: List[Any] = []
        for key, val in pairs:
            tab._columns.append(key)
            row.append(val)
        tab._rows.append(row)
        return tab

    def append(self, tab: Tabular):
        """Appends the given tabular to the current tabular, if the
        columns are compatible, otherwise raise TypeError."""
        if not tab.columns():
            return
        if not self._columns:
            self._columns = tab._columns
            self._rows = tab._rows
            return
        if self._columns != tab._columns:
            raise TypeError("incompatible columns")
        self._rows.extend(tab._rows)

    def appendrow(self, pairs: List[Tuple[str, Any]]):
        """Appends a single row generated on the fly from the given pairs"""
        self.append(self.create(pairs))

    def __len__(self) -> int:
        return len(self._rows)

    def tabulatex(self, format: str = "grid") -> str:
        """Returns a representation of the rows currently in the table
        using the given tabulate format."""
        return tabulate.tabulate(self._rows, headers=self._columns, tablefmt=format)


def formats() -> List[str]:
    """Returns the table formats that tabulate supports."""
    return list(tabulate.tabulate_formats)
