# File: genostage/matrix.py
# Location: genostage/genostage/matrix.py

"""
Tabular data matrix module.

Builds an in-memory DataMatrix (header plus rows of string cells) from a
delimited byte stream. A correlation set built from a companion matrix can
prune rows while the stream is read, so a large probe-level table never has
to be held in memory before filtering.
"""

import logging
from typing import IO, Collection, Iterable, List, Optional, Sequence, TextIO

import pandas as pd

from .archive import ARCHIVE_ERRORS
from .constants import CORRELATE_METH_PROBE_COLUMN_HEADER, VALUE_DELIMITER
from .pipeline_core.error_handling import (
    FileFormatError,
    MalformedRowError,
    UnreadableSourceError,
)

logger = logging.getLogger("genostage")

MALFORMED_ROW_POLICIES = ("keep", "pad", "reject")


class DataMatrix:
    """
    Column names paired with rows of string cells, both in file order.

    Parameters
    ----------
    column_names : Sequence[str]
        Header fields.
    rows : Iterable[Sequence[str]]
        Data rows aligned positionally with ``column_names``.
    """

    def __init__(self, column_names: Sequence[str], rows: Iterable[Sequence[str]]):
        self._column_names = list(column_names)
        self._rows = [list(row) for row in rows]

        if len(set(self._column_names)) != len(self._column_names):
            logger.warning("DataMatrix header contains duplicate column names")

    @property
    def column_names(self) -> List[str]:
        return list(self._column_names)

    @property
    def rows(self) -> List[List[str]]:
        return self._rows

    @property
    def num_rows(self) -> int:
        return len(self._rows)

    @property
    def num_columns(self) -> int:
        return len(self._column_names)

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"DataMatrix(columns={self.num_columns}, rows={self.num_rows})"

    def get_column_index(self, column_name: str) -> int:
        """
        Return the position of a column.

        Raises
        ------
        KeyError
            If no column has this name.
        """
        try:
            return self._column_names.index(column_name)
        except ValueError:
            raise KeyError(f"Column '{column_name}' not found in DataMatrix")

    def get_column_data(self, column_name: str) -> List[str]:
        """
        Return every value of one column, in row order.

        Rows too short to hold the column contribute an empty string.
        """
        index = self.get_column_index(column_name)
        return [row[index] if index < len(row) else "" for row in self._rows]

    def write(self, out: TextIO, delimiter: str = VALUE_DELIMITER) -> None:
        """
        Write the matrix as delimited text, header first.

        Empty trailing cells are written as-is so they survive a re-read.
        """
        out.write(delimiter.join(self._column_names) + "\n")
        for row in self._rows:
            out.write(delimiter.join(row) + "\n")

    def to_dataframe(self) -> pd.DataFrame:
        """Return the matrix as a DataFrame of strings."""
        return pd.DataFrame(self._rows, columns=self._column_names, dtype=str)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "DataMatrix":
        """Build a matrix from a DataFrame, writing missing values as empty cells."""
        rows = df.astype(object).where(df.notna(), "").astype(str).values.tolist()
        return cls([str(c) for c in df.columns], rows)


def build_correlation_set(
    correlation_matrix: Optional[DataMatrix],
    column_name: str = CORRELATE_METH_PROBE_COLUMN_HEADER,
) -> Optional[frozenset]:
    """
    Collect the admissible row keys from one column of a companion matrix.

    Parameters
    ----------
    correlation_matrix : DataMatrix or None
        The smaller correlate table. None means "no filtering".
    column_name : str
        Column holding the keys, by default the methylation probe column.

    Returns
    -------
    frozenset or None
        Set of keys, or None when no correlation matrix was given.
    """
    if correlation_matrix is None:
        return None
    try:
        keys = frozenset(correlation_matrix.get_column_data(column_name))
    except KeyError:
        raise FileFormatError("correlation matrix", f"a '{column_name}' column", "correlate")
    logger.debug(f"Correlation set built from column '{column_name}': {len(keys)} keys")
    return keys


def split_line(line: str, delimiter: str = VALUE_DELIMITER) -> List[str]:
    """Split one line into fields, keeping empty trailing fields."""
    return line.rstrip("\r\n").split(delimiter)


def _fit_row(row: List[str], width: int) -> List[str]:
    if len(row) < width:
        return row + [""] * (width - len(row))
    return row[:width]


def build_data_matrix(
    stream: Optional[IO[bytes]],
    correlation: Optional[Collection[str]] = None,
    delimiter: str = VALUE_DELIMITER,
    malformed_rows: str = "pad",
    encoding: str = "utf-8",
) -> Optional[DataMatrix]:
    """
    Build a DataMatrix from a delimited byte stream.

    The first line is the header. Every following line becomes a row; when
    a correlation set is given, only rows whose first cell is in the set
    are kept. The stream is not closed.

    Parameters
    ----------
    stream : binary file-like or None
        Source lines. None (e.g. no matching tar entry) yields no data.
    correlation : collection of str, optional
        Admissible first-cell keys.
    delimiter : str
        Field delimiter.
    malformed_rows : str
        What to do with rows whose field count differs from the header:
        ``"keep"`` leaves them as-is, ``"pad"`` pads short rows with empty
        cells and truncates long ones, ``"reject"`` raises.
    encoding : str
        Text encoding of the stream.

    Returns
    -------
    DataMatrix or None
        None when the stream holds no data row after filtering.

    Raises
    ------
    UnreadableSourceError
        If reading or decoding the stream fails.
    MalformedRowError
        Under the ``"reject"`` policy.
    ValueError
        If ``malformed_rows`` is not a known policy.
    """
    if malformed_rows not in MALFORMED_ROW_POLICIES:
        raise ValueError(
            f"Unknown malformed row policy '{malformed_rows}'. "
            f"Expected one of {MALFORMED_ROW_POLICIES}"
        )

    if stream is None:
        logger.info("No data stream to build a DataMatrix from, returning None")
        return None

    if correlation is not None and not isinstance(correlation, (set, frozenset)):
        correlation = frozenset(correlation)

    column_names: Optional[List[str]] = None
    rows: List[List[str]] = []
    mismatched = 0
    filtered_out = 0

    try:
        for line_number, raw_line in enumerate(stream, start=1):
            fields = split_line(raw_line.decode(encoding), delimiter)

            if column_names is None:
                column_names = fields
                continue

            if correlation is not None and fields[0] not in correlation:
                filtered_out += 1
                continue

            if len(fields) != len(column_names):
                if malformed_rows == "reject":
                    raise MalformedRowError(line_number, len(column_names), len(fields), "build")
                mismatched += 1
                if malformed_rows == "pad":
                    fields = _fit_row(fields, len(column_names))

            rows.append(fields)
    except (UnicodeDecodeError,) + ARCHIVE_ERRORS as e:
        source = getattr(stream, "name", "<stream>")
        raise UnreadableSourceError(str(source), str(e), stage="build")

    if column_names is None or not rows:
        logger.info(
            "Problem creating DataMatrix from file data, data file probably missing data, "
            "returning None"
        )
        return None

    if mismatched:
        action = "padded/truncated" if malformed_rows == "pad" else "kept unchanged"
        logger.warning(
            f"{mismatched} row(s) did not match the header width of {len(column_names)}; "
            f"{action}"
        )
    if correlation is not None:
        logger.debug(f"Correlation filter dropped {filtered_out} row(s)")

    logger.info(f"Creating new DataMatrix from file data, num rows: {len(rows)}")
    return DataMatrix(column_names, rows)
