"""
Cross-validation planning for the mdamath models.

A plan splits object indices into calibration/validation segments, one list
of segments per repetition. Models use the plan to refit a fresh copy of
themselves on every calibration set and predict the held-out objects.
"""

from dataclasses import dataclass
from enum import Enum
import logging
import numpy as np
from typing import Any, Iterator, List, Optional, Tuple

from mdamath.exceptions import InvalidMethodError, MissingReferenceError, ParameterError
from mdamath.math.dataset import Dataset

logger = logging.getLogger(__name__)

MAX_REPETITIONS = 20


class CVMethod(Enum):
    """Cross-validation partitioning schemes."""
    NONE = 'none'
    FULL = 'full'
    RANDOM = 'random'
    VENETIAN = 'venetian'

    @classmethod
    def parse(cls, value: Any) -> 'CVMethod':
        """
        Convert a method name (or member) to a CVMethod member.

        Besides the member values, the short names 'loo', 'rand' and 'ven'
        are accepted.

        Raises:
            InvalidMethodError: If the name is not known
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE

        key = str(value).strip().lower()
        aliases = {'loo': cls.FULL, 'rand': cls.RANDOM, 'ven': cls.VENETIAN}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise InvalidMethodError(
                "Unknown cross-validation method",
                context={'method': value}
            ) from None


@dataclass(frozen=True)
class Segment:
    """Indices of calibration and validation objects for one fold."""
    cal: Tuple[int, ...]
    val: Tuple[int, ...]


def segment_size(n_obj: int, nseg: int) -> int:
    """Number of objects per segment: n_obj / nseg rounded half up."""
    return int(np.floor(n_obj / nseg + 0.5))


def split_segments(order: np.ndarray, nseg: int) -> List[Segment]:
    """
    Slice an ordering of object indices into contiguous segments.

    All segments get :func:`segment_size` objects except the last one,
    which takes whatever remains (possibly nothing).

    Args:
        order: Permutation of object indices
        nseg: Number of segments

    Returns:
        List with nseg segments
    """
    order = [int(i) for i in order]
    size = segment_size(len(order), nseg)

    segments = []
    for j in range(nseg):
        start = j * size
        end = (j + 1) * size if j < nseg - 1 else len(order)
        val = order[start:end]
        cal = order[:start] + order[end:]
        segments.append(Segment(cal=tuple(cal), val=tuple(val)))
    return segments


def venetian_order(y: np.ndarray, nseg: int) -> np.ndarray:
    """
    Interleave objects sorted by response into strata.

    Stratum k holds every nseg-th object of the sorted list starting at k,
    so each stratum spans the whole response range.

    Args:
        y: Response values
        nseg: Number of strata

    Returns:
        Concatenation of the strata
    """
    ind = np.argsort(np.asarray(y, dtype=float), kind='stable')
    return np.concatenate([ind[k::nseg] for k in range(nseg)])


class Crossval:
    """
    Cross-validation plan.

    Attributes:
        method: Partitioning scheme
        requested_nseg, requested_nrep: Values asked for by the caller
        nseg: Number of segments used by the last computed plan
        nrep: Number of repetitions used by the last computed plan
        seed: Seed used for the random generator, if known
        indices: Repetitions x segments, or None before compute_indices
    """

    def __init__(self,
                 method: Any = 'none',
                 nseg: int = 10,
                 nrep: int = 1,
                 seed: Optional[int] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize a cross-validation plan.

        Args:
            method: 'none', 'full', 'random' or 'venetian'
            nseg: Number of segments
            nrep: Number of repetitions (random method only)
            seed: Seed for shuffling objects
            rng: Random generator to use instead of creating one from seed
        """
        self.method = CVMethod.parse(method)
        self.requested_nseg = int(nseg)
        self.requested_nrep = 1 if self.method == CVMethod.FULL else int(nrep)
        self.nseg = self.requested_nseg
        self.nrep = self.requested_nrep

        if rng is None:
            if seed is None:
                seed = int(np.random.SeedSequence().entropy % (2 ** 32))
            rng = np.random.default_rng(seed)
        self.seed = seed
        self._rng = rng

        self.indices: Optional[List[List[Segment]]] = None

    @classmethod
    def from_config(cls, config) -> 'Crossval':
        """
        Create a plan from the 'crossval' section of a configuration.

        Args:
            config: Config instance

        Returns:
            Crossval instance
        """
        return cls(
            method=config.get('crossval.method', 'none'),
            nseg=config.get('crossval.nseg', 10),
            nrep=config.get('crossval.nrep', 1),
            seed=config.get('crossval.seed')
        )

    @property
    def is_none(self) -> bool:
        return self.method == CVMethod.NONE

    def compute_indices(self, n_obj: int, y: Any = None) -> Optional[List[List[Segment]]]:
        """
        Build calibration/validation segments for n_obj objects.

        Args:
            n_obj: Number of objects
            y: Reference values (Dataset or vector), required for venetian

        Returns:
            List of repetitions, each a list of segments, or None for method none
        """
        if self.method == CVMethod.NONE:
            self.indices = None
            return None

        if n_obj is None or n_obj < 2:
            raise ParameterError(
                "Cross-validation needs at least two objects",
                context={'n_obj': n_obj}
            )

        if self.method == CVMethod.VENETIAN:
            if y is None:
                raise MissingReferenceError("Venetian blinds cross-validation requires reference values")
            if isinstance(y, Dataset):
                y = y.values[0]
            y = np.asarray(y, dtype=float).reshape(-1)

        nseg = self.requested_nseg
        if self.method == CVMethod.FULL:
            nseg = n_obj
        elif nseg < 2 or nseg > n_obj:
            nseg = min(max(nseg, 2), n_obj)
            logger.warning(f"Number of segments {self.requested_nseg} is out of range "
                           f"for {n_obj} objects, using {nseg}")

        nrep = self.requested_nrep
        if self.method in (CVMethod.FULL, CVMethod.VENETIAN):
            nrep = 1
        elif nrep < 1 or nrep > MAX_REPETITIONS:
            logger.warning(f"Number of repetitions {nrep} is out of range, using 1")
            nrep = 1

        indices = []
        for _ in range(nrep):
            if self.method == CVMethod.FULL:
                order = np.arange(n_obj)
            elif self.method == CVMethod.RANDOM:
                order = self._rng.permutation(n_obj)
            else:
                order = venetian_order(y, nseg)
            indices.append(split_segments(order, nseg))

        logger.debug(f"Computed {self.method.value} cross-validation plan: "
                     f"{nrep} repetition(s) of {nseg} segments for {n_obj} objects")

        self.nseg = nseg
        self.nrep = nrep
        self.indices = indices
        return indices

    def segments(self) -> Iterator[Tuple[int, int, Segment]]:
        """
        Iterate over all folds of the computed plan.

        Yields:
            Tuples (repetition, segment number, Segment)
        """
        if self.indices is None:
            return
        for rep, segments in enumerate(self.indices):
            for seg, segment in enumerate(segments):
                yield rep, seg, segment

    def __repr__(self) -> str:
        return (f"Crossval(method={self.method.value!r}, nseg={self.requested_nseg}, "
                f"nrep={self.requested_nrep}, seed={self.seed})")
