"""Discrete graphical-model problem descriptions handed to inference backends.

The engine never minimizes energies itself. Concrete algorithms build a
:class:`ProblemDescription` over the valid ROI pixels and pass it to a
pluggable :class:`InferenceBackend`; :func:`summarize_problem` gives a
read-only overview for diagnostics.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FactorBlock:
    """``len(variables)`` factors of one order stored as arrays.

    ``variables`` has shape ``(K, order)``. ``values`` is either one table
    shared by every factor (``ndim == order``) or one table per factor with a
    leading axis of length ``K``.
    """

    variables: np.ndarray
    values: np.ndarray

    @property
    def order(self) -> int:
        return int(self.variables.shape[1])

    @property
    def count(self) -> int:
        return int(self.variables.shape[0])

    @property
    def shared(self) -> bool:
        return self.values.ndim == self.order

    def tables(self) -> np.ndarray:
        """Per-factor tables of shape ``(K, *labels)``; shared tables are broadcast."""
        if self.shared:
            return np.broadcast_to(self.values, (self.count, *self.values.shape))
        return self.values


@dataclass(slots=True)
class ProblemDescription:
    label_counts: np.ndarray
    blocks: list[FactorBlock] = field(default_factory=list)

    @property
    def variable_count(self) -> int:
        return int(np.asarray(self.label_counts).size)

    @property
    def factor_count(self) -> int:
        return sum(block.count for block in self.blocks)

    def add_factors(self, variables: np.ndarray, values: np.ndarray) -> None:
        """Add ``len(variables)`` factors sharing one order.

        ``values`` is a single table used by every factor or a stack of one
        table per factor.
        """
        var_arr = np.asarray(variables, dtype=np.int64)
        if var_arr.ndim != 2 or var_arr.shape[1] == 0:
            raise ValueError(f"Factor variables must have shape (K, order), got {var_arr.shape}")
        if var_arr.shape[0] == 0:
            return
        if int(var_arr.min()) < 0 or int(var_arr.max()) >= self.variable_count:
            raise ValueError(f"Factor variables must lie in [0, {self.variable_count}).")

        order = int(var_arr.shape[1])
        table = np.asarray(values, dtype=np.float32)
        if table.ndim == order:
            label_shape = table.shape
        elif table.ndim == order + 1 and table.shape[0] == var_arr.shape[0]:
            label_shape = table.shape[1:]
        else:
            raise ValueError(
                f"{var_arr.shape[0]} factors of order {order} cannot use a table of shape {table.shape}"
            )
        expected = np.asarray(self.label_counts, dtype=np.int64)[var_arr]
        if not np.all(expected == np.asarray(label_shape, dtype=np.int64)):
            raise ValueError(f"Factor tables of shape {label_shape} do not match the variables' label counts.")
        self.blocks.append(FactorBlock(variables=var_arr, values=table))

    def add_factor(self, variables: tuple[int, ...], values: np.ndarray) -> None:
        self.add_factors(np.asarray([tuple(int(v) for v in variables)], dtype=np.int64), values)


@runtime_checkable
class InferenceBackend(Protocol):
    """External optimizer (graph-cut, QPBO, ...) producing one label per variable."""

    def infer(self, problem: ProblemDescription) -> np.ndarray:
        ...


@dataclass(slots=True)
class ModelSummary:
    variable_count: int
    min_label_count: int
    max_label_count: int
    factor_count: int
    factor_order_histogram: dict[int, int]

    def lines(self) -> list[str]:
        if self.min_label_count == self.max_label_count:
            labels = f"{self.min_label_count} labels each"
        else:
            labels = f"{self.min_label_count} labels min, {self.max_label_count} labels max"
        out = [
            f"Model has {self.variable_count} variables ({labels})",
            f"Model has {self.factor_count} factors;",
        ]
        for order in sorted(self.factor_order_histogram):
            out.append(f"\t{self.factor_order_histogram[order]} factors w/ order={order}")
        return out


def summarize_problem(problem: ProblemDescription) -> ModelSummary:
    counts = np.asarray(problem.label_counts, dtype=np.int64)
    histogram: Counter[int] = Counter()
    for block in problem.blocks:
        histogram[block.order] += block.count
    return ModelSummary(
        variable_count=int(counts.size),
        min_label_count=int(counts.min()) if counts.size else 0,
        max_label_count=int(counts.max()) if counts.size else 0,
        factor_count=problem.factor_count,
        factor_order_histogram=dict(histogram),
    )


def log_problem_summary(problem: ProblemDescription, log: logging.Logger | None = None) -> ModelSummary:
    summary = summarize_problem(problem)
    target = log or logger
    for line in summary.lines():
        target.debug("%s", line)
    return summary
