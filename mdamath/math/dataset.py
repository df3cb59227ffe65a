"""
Dataset implementation for the mdamath engine.

This module provides a dense numeric matrix with named variables and objects.
Values are stored variable-major: ``values[variable][object]``, so a dataset
with 3 variables measured on 10 objects has shape (3, 10).
"""

import numpy as np
import pandas as pd
from typing import Any, List, Optional, Sequence, Union

from mdamath.exceptions import DimensionMismatch, NotFoundError


Selector = Optional[Union[int, str, Sequence[Any], np.ndarray]]


class IndexHash:
    """
    Maintains an ordered list of names with fast lookup.

    Names are unique by convention only; if a name occurs twice, lookups
    resolve to its first position.
    """

    def __init__(self, names: Optional[Sequence[Any]] = None):
        """
        Initialize an IndexHash with optional initial names.

        Args:
            names: Optional list of initial names
        """
        self._names = [] if names is None else list(names)
        self._index_hash = {}
        for idx, name in enumerate(self._names):
            self._index_hash.setdefault(name, idx)

    def get_names(self) -> List[Any]:
        """Return the ordered list of names."""
        return self._names.copy()

    def index(self, name: Any) -> Optional[int]:
        """
        Get the index for a given name, or None if not found.

        Args:
            name: The name to look up

        Returns:
            The index if found, None otherwise
        """
        return self._index_hash.get(name)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: Any) -> bool:
        return name in self._index_hash


def seq(start: int, end: int) -> List[int]:
    """Return the integers from start to end, both inclusive."""
    return list(range(start, end + 1))


def _as_matrix(values: Any) -> np.ndarray:
    """
    Convert raw input to a 2D float array, promoting 1D input to one row.

    Raises:
        DimensionMismatch: If the rows have different lengths
    """
    if isinstance(values, np.ndarray):
        matrix = values.astype(float)
    else:
        values = list(values)
        if len(values) > 0 and not isinstance(values[0], (list, tuple, np.ndarray)):
            values = [values]
        lengths = {len(row) for row in values}
        if len(lengths) > 1:
            raise DimensionMismatch(
                "All rows of a dataset must have the same number of objects",
                context={'row_lengths': sorted(lengths)}
            )
        matrix = np.array(values, dtype=float)

    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    elif matrix.ndim != 2:
        raise DimensionMismatch(
            "Dataset values must be a 1D or 2D array",
            context={'ndim': matrix.ndim}
        )
    return matrix


class Dataset:
    """
    A numeric matrix with named variables (rows) and objects (columns).

    Besides the names, every dataset carries axis metadata used by renderers:
    a name and a vector of values for each of the two dimensions. All
    transformations return a new Dataset; the only in-place operation is
    :meth:`sort`.
    """

    def __init__(self,
                 values: Any,
                 var_names: Optional[Sequence[Any]] = None,
                 obj_names: Optional[Sequence[Any]] = None,
                 name: str = '',
                 info: str = '',
                 var_axis_name: Optional[str] = 'Variables',
                 var_axis_values: Optional[Sequence[Any]] = None,
                 obj_axis_name: Optional[str] = 'Objects',
                 obj_axis_values: Optional[Sequence[Any]] = None):
        """
        Initialize a Dataset.

        Names and axis values that are missing or have the wrong length are
        replaced by defaults (``X1..Xn``, ``O1..On`` and ``1..n``).

        Args:
            values: Numeric 2D array (variables x objects) or a 1D vector
            var_names: Names of the variables
            obj_names: Names of the objects
            name: Name of the dataset
            info: Short description of the dataset
            var_axis_name: Label of the variables' axis
            var_axis_values: Values for the variables' axis
            obj_axis_name: Label of the objects' axis
            obj_axis_values: Values for the objects' axis
        """
        self.values = _as_matrix(values)
        self.name = name
        self.info = info
        self.var_axis_name = var_axis_name
        self.obj_axis_name = obj_axis_name

        n_var, n_obj = self.values.shape

        if var_names is None or len(var_names) != n_var:
            self.var_names = [f'X{i}' for i in seq(1, n_var)]
        else:
            self.var_names = list(var_names)

        if obj_names is None or len(obj_names) != n_obj:
            self.obj_names = [f'O{i}' for i in seq(1, n_obj)]
        else:
            self.obj_names = list(obj_names)

        if var_axis_values is None or len(var_axis_values) != n_var:
            self.var_axis_values = seq(1, n_var)
        else:
            self.var_axis_values = list(var_axis_values)

        if obj_axis_values is None or len(obj_axis_values) != n_obj:
            self.obj_axis_values = seq(1, n_obj)
        else:
            self.obj_axis_values = list(obj_axis_values)

    @property
    def n_var(self) -> int:
        """Number of variables (rows)."""
        return self.values.shape[0]

    @property
    def n_obj(self) -> int:
        """Number of objects (columns)."""
        return self.values.shape[1]

    @property
    def shape(self):
        return self.values.shape

    def _copy_with(self, **changes: Any) -> 'Dataset':
        # Build a new dataset that shares nothing mutable with this one
        params = {
            'values': self.values.copy(),
            'var_names': self.var_names,
            'obj_names': self.obj_names,
            'name': self.name,
            'info': self.info,
            'var_axis_name': self.var_axis_name,
            'var_axis_values': self.var_axis_values,
            'obj_axis_name': self.obj_axis_name,
            'obj_axis_values': self.obj_axis_values,
        }
        params.update(changes)
        return Dataset(**params)

    def _resolve(self, selector: Selector, names: List[Any], what: str) -> List[int]:
        """
        Convert a selector into a list of positional indices.

        Args:
            selector: None (all), an index, a name, a boolean mask or a
                sequence of indices/names
            names: Names along the selected dimension
            what: 'variable' or 'object', used in error messages

        Returns:
            List of indices
        """
        n = len(names)
        if selector is None:
            return list(range(n))

        if isinstance(selector, (str, int, np.integer)) and not isinstance(selector, bool):
            selector = [selector]
        else:
            selector = list(selector)

        if len(selector) > 0 and all(isinstance(s, (bool, np.bool_)) for s in selector):
            if len(selector) != n:
                raise DimensionMismatch(
                    f"Boolean {what} mask has wrong length",
                    context={'expected': n, 'actual': len(selector)}
                )
            return [i for i, keep in enumerate(selector) if keep]

        lookup = IndexHash(names)
        indices = []
        for item in selector:
            if isinstance(item, str):
                idx = lookup.index(item)
                if idx is None:
                    raise NotFoundError(f"Unknown {what} name", context={'name': item})
            elif isinstance(item, (int, np.integer)) and not isinstance(item, (bool, np.bool_)):
                idx = int(item)
                if idx < 0 or idx >= n:
                    raise NotFoundError(
                        f"{what.capitalize()} index out of range",
                        context={'index': idx, 'size': n}
                    )
            else:
                raise NotFoundError(f"Cannot select {what} by {item!r}")
            indices.append(idx)
        return indices

    def get_variable(self, name: Any) -> np.ndarray:
        """
        Return the values of a single variable.

        Args:
            name: Name of the variable

        Returns:
            Copy of the variable's values across all objects
        """
        idx = self._resolve(name, self.var_names, 'variable')[0]
        return self.values[idx].copy()

    def subset(self, var_ind: Selector = None, obj_ind: Selector = None) -> 'Dataset':
        """
        Create a subset of the dataset.

        Args:
            var_ind: Names, indices or boolean mask for variables (None for all)
            obj_ind: Names, indices or boolean mask for objects (None for all)

        Returns:
            A new Dataset with the selected variables and objects
        """
        v = self._resolve(var_ind, self.var_names, 'variable')
        o = self._resolve(obj_ind, self.obj_names, 'object')

        return Dataset(
            self.values[np.ix_(v, o)],
            [self.var_names[i] for i in v],
            [self.obj_names[i] for i in o],
            self.name,
            self.info,
            self.var_axis_name,
            [self.var_axis_values[i] for i in v],
            self.obj_axis_name,
            [self.obj_axis_values[i] for i in o]
        )

    def rbind(self, other: 'Dataset') -> 'Dataset':
        """
        Append the objects of another dataset to this one.

        Args:
            other: Dataset with the same number of variables

        Returns:
            A new Dataset with n_obj = self.n_obj + other.n_obj
        """
        if other.n_var != self.n_var:
            raise DimensionMismatch(
                "rbind: number of variables is not consistent",
                context={'left': self.n_var, 'right': other.n_var}
            )

        return self._copy_with(
            values=np.hstack([self.values, other.values]),
            obj_names=self.obj_names + other.obj_names,
            obj_axis_values=self.obj_axis_values + other.obj_axis_values
        )

    def cbind(self, other: 'Dataset') -> 'Dataset':
        """
        Append the variables of another dataset to this one.

        Args:
            other: Dataset with the same number of objects

        Returns:
            A new Dataset with n_var = self.n_var + other.n_var
        """
        if other.n_obj != self.n_obj:
            raise DimensionMismatch(
                "cbind: number of objects is not consistent",
                context={'left': self.n_obj, 'right': other.n_obj}
            )

        return self._copy_with(
            values=np.vstack([self.values, other.values]),
            var_names=self.var_names + other.var_names,
            var_axis_values=self.var_axis_values + other.var_axis_values
        )

    def transpose(self) -> 'Dataset':
        """Swap the roles of variables and objects, including axis metadata."""
        return Dataset(
            self.values.T.copy(),
            self.obj_names,
            self.var_names,
            self.name,
            self.info,
            self.obj_axis_name,
            self.obj_axis_values,
            self.var_axis_name,
            self.var_axis_values
        )

    t = transpose

    def mean(self) -> 'Dataset':
        """Return a single-object dataset with the mean of every variable."""
        return Dataset(
            self.values.mean(axis=1).reshape(-1, 1),
            self.var_names,
            ['Mean'],
            self.name,
            self.info,
            self.var_axis_name,
            self.var_axis_values,
            None,
            None
        )

    def sort(self, var_ind: Union[int, str]) -> None:
        """
        Reorder the objects in place by ascending values of one variable.

        Ties keep their original order.

        Args:
            var_ind: Index or name of the variable to sort by
        """
        idx = self._resolve(var_ind, self.var_names, 'variable')[0]
        order = np.argsort(self.values[idx], kind='stable')

        self.values = self.values[:, order]
        self.obj_names = [self.obj_names[i] for i in order]
        self.obj_axis_values = [self.obj_axis_values[i] for i in order]

    def to_frame(self) -> pd.DataFrame:
        """
        Convert the dataset to a DataFrame with objects as rows.

        Returns:
            DataFrame indexed by object names, one column per variable
        """
        return pd.DataFrame(
            self.values.T,
            index=self.obj_names,
            columns=self.var_names
        )

    @classmethod
    def from_frame(cls, df: pd.DataFrame, name: str = '', info: str = '') -> 'Dataset':
        """
        Create a dataset from a DataFrame with objects as rows.

        Args:
            df: DataFrame with numeric columns
            name: Name of the dataset
            info: Short description of the dataset

        Returns:
            A new Dataset
        """
        return cls(
            df.to_numpy(dtype=float).T,
            [str(c) for c in df.columns],
            [str(i) for i in df.index],
            name,
            info
        )

    def __len__(self) -> int:
        return self.n_obj

    def __repr__(self) -> str:
        return f"Dataset(name={self.name!r}, vars={self.n_var}, objs={self.n_obj})"

    def __str__(self) -> str:
        return (f"Dataset '{self.name}' with {self.n_var} variables and "
                f"{self.n_obj} objects\n{self.to_frame()}")
