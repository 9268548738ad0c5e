"""
AggregateDesign: the value buffer fed to the aggregation pipeline.

Wraps a one-dimensional float32 array and provides validation and
metadata. The array is read-only for the lifetime of the design; every
component that needs to pad or transform it works on a copy.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any
import numpy as np
from numpy.typing import NDArray

from parstats.core.exceptions import ValidationError
from parstats.core.validation import (
    check_1d,
    check_array,
    check_finite,
    check_min_samples,
)


@dataclass(frozen=True)
class AggregateDesign:
    """
    Design for the aggregation pipeline.

    Holds n >= 1 finite float32 values. Immutable after construction.

    Construction:
        AggregateDesign.from_array(values)
        AggregateDesign.from_file('temp_lincolnshire.txt')
    """
    _values: NDArray[np.float32]
    _source: str | None

    @classmethod
    def from_array(cls, data: Any, *, source: str | None = None) -> AggregateDesign:
        """
        Build AggregateDesign from array-like data.

        Parameters
        ----------
        data : array-like
            1D values. numpy arrays, lists, pandas Series, or a single-column
            2D array (flattened).
        source : str, optional
            Where the values came from, kept for reporting.
        """
        if hasattr(data, 'to_numpy'):
            data = data.to_numpy()
        array = check_array(data, 'values')
        if array.ndim == 2 and array.shape[1] == 1:
            array = array.ravel()
        check_1d(array, 'values')
        check_min_samples(array, 1, 'values')

        # float64 values outside the float32 range overflow to inf here
        with np.errstate(over='ignore'):
            values = array.astype(np.float32)
        check_finite(values, 'values')
        values.flags.writeable = False
        return cls(_values=values, _source=source)

    @classmethod
    def from_file(cls, path: str | Path, *, column: int = -1) -> AggregateDesign:
        """
        Build AggregateDesign from one column of a data file.

        Parameters
        ----------
        path : str or Path
            '.npy' files are loaded with numpy (must hold a 1D array, or a 2D
            array from which `column` is taken). Anything else is read as
            whitespace-delimited text without a header, e.g. weather-station
            records 'STATION YEAR MONTH DAY TIME TEMP'.
        column : int
            Column to use, counted from 0; negative counts from the end.
            Default is the last column.

        Raises
        ------
        ValidationError
            If the file cannot be read, the column does not exist or holds
            non-numeric values, or there are no values.
        """
        path = Path(path)
        if not path.is_file():
            raise ValidationError(f"Cannot read values: no such file {str(path)!r}")

        if path.suffix.lower() == '.npy':
            try:
                data = np.load(path, allow_pickle=False)
            except (OSError, ValueError) as e:
                raise ValidationError(f"{path}: cannot load array: {e}") from e
            if data.ndim == 2:
                data = cls._select_column(data, column, data.shape[1], path)
            return cls.from_array(data, source=str(path))

        import pandas as pd

        try:
            frame = pd.read_csv(path, sep=r'\s+', header=None)
        except pd.errors.EmptyDataError as e:
            raise ValidationError(f"{path}: file contains no values") from e
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ValidationError(f"{path}: malformed text data: {e}") from e

        series = cls._select_column(frame, column, frame.shape[1], path)
        try:
            values = series.to_numpy(dtype=np.float64)
        except (ValueError, TypeError) as e:
            raise ValidationError(
                f"{path}: column {column} is not numeric: {e}"
            ) from e
        return cls.from_array(values, source=str(path))

    @staticmethod
    def _select_column(table: Any, column: int, n_columns: int, path: Path) -> Any:
        if not -n_columns <= column < n_columns:
            raise ValidationError(
                f"{path}: column {column} out of range, file has {n_columns} columns"
            )
        if isinstance(table, np.ndarray):
            return table[:, column]
        return table.iloc[:, column]

    @property
    def values(self) -> NDArray[np.float32]:
        """Read-only float32 values, shape (n,)."""
        return self._values

    @property
    def n(self) -> int:
        """Number of values."""
        return len(self._values)

    @property
    def source(self) -> str | None:
        """File the values were read from, if any."""
        return self._source

    def __len__(self) -> int:
        return self.n

    def __repr__(self) -> str:
        src = f", source={self._source!r}" if self._source else ""
        return f"AggregateDesign(n={self.n}{src})"
