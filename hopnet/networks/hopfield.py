import logging
import math
import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Literal, Optional, Sequence

from hopnet.networks.errors import (
    DimensionMismatchError,
    EmptyInputError,
    EmptyPatternError,
    InvalidIterationCountError,
    InvalidSizeError,
    UnsupportedMethodError,
    UnsupportedModeError,
)
from hopnet.networks.pattern import Pattern, Seed

logger = logging.getLogger(__name__)

METHODS = ("hebbian", "storkey")
MODES = ("sync", "async")


class HopfieldNetwork:
    """
    Hopfield associative memory over bipolar (+1/-1) patterns.

    Weights accumulate across `store` calls: storing a second batch
    superimposes it on the first. The bias acts as a per-unit activation
    threshold (a unit turns on when its input field reaches the bias).
    """

    def __init__(self, size: int, method: Literal['hebbian', 'storkey'] = 'hebbian', seed: Seed = None) -> None:
        if isinstance(size, bool) or not isinstance(size, (int, np.integer)) or size <= 0:
            raise InvalidSizeError(f"invalid network size: {size}")
        if not isinstance(method, str) or method.lower() not in METHODS:
            raise UnsupportedMethodError(f"unsupported training method: {method}")

        self.size = int(size)
        self.method = method.lower()
        self.rng = np.random.default_rng(seed)
        self._weights: NDArray[np.float64] = np.zeros((self.size, self.size))
        self._bias: NDArray[np.float64] = np.zeros(self.size)
        self._trainers = {"hebbian": self._hebbian, "storkey": self._storkey}
        self.memorised = 0
        # bookkeeping of the last restore call
        self.sweeps = 0
        self.converged = False

    def __repr__(self) -> str:
        return f"HopfieldNetwork(size={self.size}, method={self.method!r}, memorised={self.memorised})"

    # --------------------------
    # Views

    def weights(self) -> NDArray[np.float64]:
        """Read-only view of the symmetric N x N weight matrix."""
        view = self._weights.view()
        view.flags.writeable = False
        return view

    def bias(self) -> NDArray[np.float64]:
        """Read-only view of the N bias (threshold) vector."""
        view = self._bias.view()
        view.flags.writeable = False
        return view

    def set_bias(self, values: ArrayLike) -> None:
        values = np.asarray(values, dtype=np.float64).ravel()
        if values.size != self.size:
            raise DimensionMismatchError(f"invalid bias dimension: {values.size}")
        self._bias = values.copy()

    def capacity(self) -> int:
        """ Advisory number of patterns the network can hold; never enforced."""
        if self.size < 2:
            return 0
        log_n = math.log(self.size)
        if self.method == "storkey":
            return int(math.floor(self.size / (2 * math.sqrt(log_n))))
        return int(math.floor(self.size / (2 * log_n)))

    def reset(self) -> None:
        """ Forget every stored pattern (bias is kept)."""
        self._weights = np.zeros((self.size, self.size))
        self.memorised = 0

    # --------------------------
    # Store

    def store(self, patterns: Sequence[ArrayLike]) -> None:
        """
        Store a batch of bipolar patterns, adding the learned update to the weights.

        Every pattern is validated before the weights are touched, so a
        failing call leaves the network unchanged.
        """
        if patterns is None or len(patterns) == 0:
            raise EmptyInputError(f"invalid patterns supplied: {patterns}")

        batch = []
        for pattern in patterns:
            if pattern is None:
                raise EmptyPatternError(f"invalid pattern supplied: {pattern}")
            vector = np.asarray(pattern, dtype=np.float64)
            if vector.size == 0:
                raise EmptyPatternError(f"invalid pattern supplied: {pattern}")
            if vector.ndim != 1 or vector.size != self.size:
                raise DimensionMismatchError(f"invalid pattern dimension: {vector.size}")
            batch.append(vector)

        delta = self._trainers[self.method](np.stack(batch))
        self._weights += delta
        self.memorised += len(batch)

        logger.debug("stored %d pattern(s) with %s learning, %d memorised",
                     len(batch), self.method, self.memorised)
        if self.memorised > self.capacity():
            logger.warning("%d patterns memorised exceeds the estimated %s capacity of %d",
                           self.memorised, self.method, self.capacity())

    def _hebbian(self, patterns: NDArray[np.float64]) -> NDArray[np.float64]:
        """ Hebbian update: correlation of each unit pair across the batch, scaled by 1/N."""
        delta = patterns.T @ patterns / self.size
        # Remove self-connections
        np.fill_diagonal(delta, 0.0)
        return delta

    def _storkey(self, patterns: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Storkey update.

        Pairs (i, j), i < j, are visited row by row and, for each pair, the
        patterns in order. The local fields read the update matrix as it
        stands at that moment, so each write is immediately visible to the
        next term.
        """
        n = self.size
        delta = np.zeros((n, n))
        for i in range(n):
            for j in range(i + 1, n):
                for p in patterns:
                    # the diagonal of delta stays zero, so only the other excluded index is removed
                    h_ji = np.dot(delta[j], p) - delta[j, i] * p[i]
                    h_ij = np.dot(delta[i], p) - delta[i, j] * p[j]
                    update = (p[i] * p[j] - p[i] * h_ji - p[j] * h_ij) / n
                    delta[i, j] += update
                    delta[j, i] = delta[i, j]
        return delta

    # --------------------------
    # Recall

    def _check_pattern(self, pattern: Optional[ArrayLike]) -> Pattern:
        if pattern is None:
            raise EmptyPatternError(f"invalid pattern supplied: {pattern}")
        if isinstance(pattern, np.ndarray) and pattern.dtype == np.float64:
            vector = pattern
        else:
            vector = np.asarray(pattern, dtype=np.float64)
        if vector.size == 0:
            raise EmptyPatternError(f"invalid pattern supplied: {pattern}")
        if vector.ndim != 1 or vector.size != self.size:
            raise DimensionMismatchError(f"invalid pattern dimension: {vector.size}")
        return vector

    def restore(self, pattern: ArrayLike, mode: Literal['sync', 'async'] = 'async',
                iters: Optional[int] = None, eqiters: Optional[int] = None) -> Pattern:
        """
        Recall the stored pattern closest to `pattern`.

        Parameters:
        - pattern: 1D bipolar pattern of length N. A float64 numpy array is
          updated in place and returned; other inputs are copied first.
        - mode: 'sync' (one simultaneous update of all units) or 'async'
          (random-order sweeps of single-unit updates)
        - iters: max number of async sweeps (required for 'async')
        - eqiters: consecutive unchanged unit updates that count as
          equilibrium; defaults to N

        Running out of sweeps is not an error: the pattern is returned as it stands.
        """
        vector = self._check_pattern(pattern)
        if not isinstance(mode, str) or mode.lower() not in MODES:
            raise UnsupportedModeError(f"unsupported mode: {mode}")
        mode = mode.lower()

        if mode == "sync":
            return self._restore_sync(vector)

        if iters is None or iters <= 0:
            raise InvalidIterationCountError(f"invalid number of iterations: {iters}")
        if eqiters is None:
            eqiters = self.size
        elif eqiters <= 0:
            raise InvalidIterationCountError(f"invalid number of equilibrium iterations: {eqiters}")
        return self._restore_async(vector, int(iters), int(eqiters))

    def _restore_sync(self, pattern: Pattern) -> Pattern:
        activation = self._weights @ pattern - self._bias
        new_state = np.where(activation >= 0.0, 1.0, -1.0)
        self.converged = bool(np.array_equal(new_state, pattern))
        pattern[:] = new_state
        self.sweeps = 1
        logger.debug("sync restore done, changed=%s", not self.converged)
        return pattern

    def update_unit(self, pattern: Pattern, i: int) -> bool:
        """ Asynchronous update of unit `i` in place; returns True if its state flipped."""
        field = np.dot(self._weights[i], pattern)
        new_state = 1.0 if field >= self._bias[i] else -1.0
        if new_state != pattern[i]:
            pattern[i] = new_state
            return True
        return False

    def _restore_async(self, pattern: Pattern, maxiters: int, eqiters: int) -> Pattern:
        self.sweeps = 0
        self.converged = False
        stable = 0
        for _ in range(maxiters):
            self.sweeps += 1
            for i in self.rng.permutation(self.size):
                if self.update_unit(pattern, i):
                    stable = 0
                else:
                    stable += 1
                if stable >= eqiters:
                    self.converged = True
                    logger.debug("async restore reached equilibrium after %d sweep(s)", self.sweeps)
                    return pattern

        logger.debug("async restore stopped after %d sweep(s) without equilibrium", self.sweeps)
        return pattern

    # --------------------------
    # Energy

    def energy(self, pattern: ArrayLike) -> float:
        """
        Lyapunov energy of a pattern: -sum_{i<j} W_ij p_i p_j + sum_i b_i p_i.
        Accepted asynchronous flips never increase it.
        """
        vector = self._check_pattern(pattern)
        interaction = 0.5 * np.dot(vector, self._weights @ vector)
        return float(-interaction + np.dot(self._bias, vector))


def new_network(size: int, method: Literal['hebbian', 'storkey'] = 'hebbian', seed: Seed = None) -> HopfieldNetwork:
    """ Build an empty network of `size` units trained with `method`."""
    return HopfieldNetwork(size, method, seed=seed)
