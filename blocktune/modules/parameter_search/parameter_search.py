import itertools

import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from blocktune.modules.base.base_engine import BaseEngine
from blocktune.utils import constants
from blocktune.utils.blocks import is_positive_int
from blocktune.utils.exceptions import DataValidationError


@dataclass(frozen=True)
class ParameterCombination:
    """Component count plus the number of variables kept in each block."""
    ncomp: int
    keep_x: Mapping[str, int] = field(default_factory=dict)

    def as_row(self) -> Dict[str, int]:
        row = {constants.NCOMP_COLUMN: self.ncomp}
        for block_name, keep in self.keep_x.items():
            row[f"{constants.KEEPX_PREFIX}{block_name}"] = keep
        return row


def grid_size(ncomp: Sequence[int], test_keep_x: Mapping[str, Sequence[int]]) -> int:
    """Number of rows the full grid would contain."""
    size = len(ncomp)
    for candidates in test_keep_x.values():
        size *= len(candidates)
    return size


def _as_int(value: Any) -> int:
    return int(value.item()) if isinstance(value, np.generic) else int(value)


def _grid(ncomp: Sequence[int], test_keep_x: Mapping[str, Sequence[int]]) -> List[ParameterCombination]:
    """
    Full grid with ``ncomp`` varying fastest, then the first block, then the
    next, so table order (and with it tie-breaking) follows the caller's block order.
    """
    block_names = list(test_keep_x.keys())
    slowest_first = [list(test_keep_x[b]) for b in reversed(block_names)] + [list(ncomp)]

    combinations = []
    for values in itertools.product(*slowest_first):
        keep_x = dict(zip(block_names, (_as_int(v) for v in reversed(values[:-1]))))
        combinations.append(ParameterCombination(_as_int(values[-1]), keep_x))
    return combinations


def _random(ncomp: Sequence[int], test_keep_x: Mapping[str, Sequence[int]],
            n_random: int, rng: np.random.Generator) -> List[ParameterCombination]:
    n_draws = min(n_random, grid_size(ncomp, test_keep_x))

    # Sample each parameter independently, with replacement; duplicates are kept.
    ncomp_draws = rng.choice(np.asarray(ncomp), size=n_draws, replace=True)
    keep_draws = {
        block_name: rng.choice(np.asarray(candidates), size=n_draws, replace=True)
        for block_name, candidates in test_keep_x.items()
    }

    return [
        ParameterCombination(
            _as_int(ncomp_draws[i]),
            {block_name: _as_int(draws[i]) for block_name, draws in keep_draws.items()},
        )
        for i in range(n_draws)
    ]


def generate_combinations(ncomp: Sequence[int], test_keep_x: Mapping[str, Sequence[int]],
                          search_type: str = constants.SEARCH_GRID,
                          n_random: int = constants.DEFAULT_N_RANDOM,
                          seed: Any = None) -> List[ParameterCombination]:
    """
    Create all combinations of ncomp and keepX values for grid search,
    or a random sample of them for random search.

    Random search never returns more rows than the full grid would contain.
    """
    if search_type == constants.SEARCH_GRID:
        return _grid(ncomp, test_keep_x)

    if search_type == constants.SEARCH_RANDOM:
        if not is_positive_int(n_random):
            raise DataValidationError("n_random must be a positive integer")
        return _random(ncomp, test_keep_x, int(n_random), np.random.default_rng(seed))

    raise DataValidationError("search_type must be either 'grid' or 'random'")


def combinations_to_frame(combinations: Sequence[ParameterCombination],
                          block_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Parameter table with columns ``ncomp, keepX_<block>...`` in block order."""
    if block_names is None:
        block_names = list(combinations[0].keep_x.keys()) if combinations else []
    columns = [constants.NCOMP_COLUMN] + [f"{constants.KEEPX_PREFIX}{b}" for b in block_names]
    return pd.DataFrame([c.as_row() for c in combinations], columns=columns)


class ParameterSearchEngine(BaseEngine):
    """Produces the ordered list of parameter combinations to evaluate."""

    def _get_engine_directory_name(self) -> str:
        return constants.TUNING_RESULTS_DIR

    def execute(self, ncomp: Sequence[int], test_keep_x: Mapping[str, Sequence[int]],
                search_type: Optional[str] = None, n_random: Optional[int] = None,
                seed: Any = None) -> List[ParameterCombination]:
        search_config = self.config.get('search', {})
        search_type = search_config.get('type', constants.SEARCH_GRID) if search_type is None else search_type
        n_random = search_config.get('n_random', constants.DEFAULT_N_RANDOM) if n_random is None else n_random
        if seed is None:
            seed = self.config.get('_internal_seeds', {}).get('search')

        combinations = generate_combinations(ncomp, test_keep_x, search_type, n_random, seed)
        total = grid_size(ncomp, test_keep_x)
        self.logger.info(
            f"Generated {len(combinations)} parameter combinations using {search_type} search "
            f"(full grid: {total})."
        )
        return combinations
