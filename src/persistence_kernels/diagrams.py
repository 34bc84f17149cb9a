"""
Persistence diagrams with homological dimension, and their normalization.
"""

import numpy as np
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import DiagramValidationError, ParameterError


class PersistenceDiagram:
    """A finite persistence diagram as rows of (dimension, birth, death).

    Instances are created through :func:`as_diagram`, which validates the
    input; the underlying array is read-only.
    """

    __slots__ = ("points",)

    def __init__(self, points: np.ndarray):
        """Wrap an already validated (n, 3) float array."""
        points = np.array(points, dtype=float)
        points.setflags(write=False)
        self.points = points

    def __len__(self):
        return len(self.points)

    def __repr__(self):
        dims = sorted(set(self.dimensions.astype(int).tolist()))
        return f"PersistenceDiagram({len(self.points)} points, dims={dims})"

    def __eq__(self, other):
        if not isinstance(other, PersistenceDiagram):
            return NotImplemented
        return np.array_equal(self.points, other.points)

    def __hash__(self):
        return hash(self.points.tobytes())

    def __getstate__(self):
        """Support pickle serialization for worker processes."""
        return (np.asarray(self.points),)

    def __setstate__(self, state):
        points = np.array(state[0], dtype=float)
        points.setflags(write=False)
        self.points = points

    @property
    def dimensions(self) -> np.ndarray:
        return self.points[:, 0]

    @property
    def births(self) -> np.ndarray:
        return self.points[:, 1]

    @property
    def deaths(self) -> np.ndarray:
        return self.points[:, 2]

    def points_in_dim(self, dim: int) -> np.ndarray:
        """Return the (birth, death) pairs of dimension ``dim``, shape (k, 2)."""
        mask = self.points[:, 0] == dim
        return np.array(self.points[mask, 1:3])

    def to_array(self) -> np.ndarray:
        """Writable copy of the (n, 3) table."""
        return np.array(self.points)


def _table_from_mapping(d: Mapping) -> np.ndarray:
    missing = [k for k in ("dimension", "birth", "death") if k not in d]
    if missing:
        raise DiagramValidationError(
            f"Diagram mappings need 'dimension', 'birth' and 'death' columns, missing {missing}."
        )
    columns = [np.atleast_1d(np.asarray(d[k])) for k in ("dimension", "birth", "death")]
    if len({len(c) for c in columns}) != 1:
        raise DiagramValidationError("Diagram columns must all have the same length.")
    return np.column_stack(columns) if len(columns[0]) > 0 else np.empty((0, 3))


def as_diagram(d, index: Optional[int] = None) -> PersistenceDiagram:
    """Validate a diagram and convert it to a :class:`PersistenceDiagram`.

    Args:
        d: A PersistenceDiagram, an (n, 3) array-like of
           (dimension, birth, death) rows, or a mapping with
           'dimension', 'birth' and 'death' columns
        index: Position of the diagram in its collection, for error messages

    Returns:
        Validated diagram

    Raises:
        DiagramValidationError: If the diagram breaks any structural invariant
    """
    if isinstance(d, PersistenceDiagram):
        return d

    if isinstance(d, Mapping):
        table = _table_from_mapping(d)
    elif hasattr(d, "to_numpy") and hasattr(d, "columns"):
        # data frames
        table = np.asarray(d.to_numpy(), dtype=object)
        if table.size == 0:
            table = np.empty((0, 3))
    elif isinstance(d, (np.ndarray, list, tuple)):
        table = np.asarray(d, dtype=object)
        if table.size == 0:
            table = np.empty((0, 3))
    else:
        raise DiagramValidationError(
            "Diagrams must be a PersistenceDiagram, an (n, 3) array or a mapping of columns, "
            f"got {type(d).__name__}.", index
        )

    if table.ndim == 1 and len(table) == 3 and not isinstance(d, Mapping):
        table = table.reshape(1, 3)

    if table.ndim != 2 or len(table) == 0:
        if table.ndim == 2 or table.size == 0:
            raise DiagramValidationError("Every diagram must be non-empty.", index)
        raise DiagramValidationError("Every diagram must have three columns.", index)

    if table.shape[1] != 3:
        raise DiagramValidationError("Every diagram must have three columns.", index)

    try:
        values = np.asarray(table, dtype=float)
    except (TypeError, ValueError):
        raise DiagramValidationError("Diagrams must have numeric columns.", index) from None
    if np.any([isinstance(v, (str, bytes, bool, np.bool_)) for v in table.ravel()]):
        raise DiagramValidationError("Diagrams must have numeric columns.", index)

    if np.any(np.isnan(values)):
        raise DiagramValidationError("Diagrams can't have missing values.", index)

    if not np.all(np.isfinite(values)):
        raise DiagramValidationError("Birth and death values must be finite.", index)

    dims = values[:, 0]
    if np.any(dims != np.floor(dims)):
        raise DiagramValidationError("Homology dimensions must be whole numbers.", index)
    if np.any(dims < 0):
        raise DiagramValidationError("Homology dimensions must be >= 0.", index)

    if np.any(values[:, 1] < 0) or np.any(values[:, 2] < 0):
        raise DiagramValidationError("Birth and death values must be >= 0.", index)

    if np.any(values[:, 2] < values[:, 1]):
        raise DiagramValidationError("Death values must be >= birth values.", index)

    return PersistenceDiagram(values)


def check_diagrams(diagrams, name: str = "diagrams",
                   min_length: int = 1) -> List[PersistenceDiagram]:
    """Validate a collection of diagrams.

    Raises:
        ParameterError: If ``diagrams`` is not a list or is too short
        DiagramValidationError: If any diagram is invalid
    """
    if diagrams is None:
        raise ParameterError(f"{name} must not be None.", name, diagrams)
    if isinstance(diagrams, PersistenceDiagram) or not isinstance(diagrams, (list, tuple)):
        raise ParameterError(
            f"{name} must be a list of persistence diagrams of length at least {min_length}.",
            name, type(diagrams).__name__
        )
    if len(diagrams) < min_length:
        noun = "diagram" if min_length == 1 else "diagrams"
        raise ParameterError(
            f"{name} must be a list of persistence diagrams containing at least "
            f"{min_length} {noun}.", name, len(diagrams)
        )
    return [as_diagram(d, index=i) for i, d in enumerate(diagrams)]


def from_ripser(dgms: Sequence[np.ndarray]) -> PersistenceDiagram:
    """Convert ripser output (one (k, 2) array per dimension).

    Points with infinite death are dropped.
    """
    rows = []
    for dim, pairs in enumerate(dgms):
        pairs = np.asarray(pairs, dtype=float).reshape(-1, 2)
        pairs = pairs[np.isfinite(pairs[:, 1]), :]
        rows.extend((dim, b, d) for b, d in pairs)
    return as_diagram(np.array(rows) if rows else np.empty((0, 3)))


def from_gudhi(persistence: Iterable[Tuple[int, Tuple[float, float]]]) -> PersistenceDiagram:
    """Convert gudhi ``SimplexTree.persistence()`` output.

    Points with infinite death are dropped.
    """
    rows = [(dim, birth, death) for dim, (birth, death) in persistence
            if np.isfinite(death)]
    return as_diagram(np.array(rows, dtype=float) if rows else np.empty((0, 3)))
