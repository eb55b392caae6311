#!/usr/bin/env python
"""
blocktune - Main Entry Point
Loads the configured data blocks and outcome, tunes ncomp and keepX by
cross-validation and writes the result artifacts.
"""
import sys
import logging
import argparse
import traceback
from pathlib import Path
from typing import Any, Dict, Tuple

import pandas as pd

from blocktune.modules.config_manager import ConfigurationManager
from blocktune.modules.logging_config import LoggingConfigurator
from blocktune.modules.model_factory import ModelKind
from blocktune.modules.reporting_engine import ReportingEngine
from blocktune.modules.tuning_engine import TuningEngine
from blocktune.utils.exceptions import BlockTuneException, DataValidationError
from blocktune.utils.file_io import read_dataframe


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="blocktune - cross-validated ncomp/keepX tuning for block sPLS and sPLS-DA",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run identifier (defaults to timestamp if not provided)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and load data without tuning"
    )

    return parser.parse_args(argv)


def load_inputs(config: Dict[str, Any], logger: logging.Logger) -> Tuple[Dict[str, pd.DataFrame], pd.Series]:
    """
    Read every block and the outcome column named in ``config['data']``.

    Blocks use their first column as the sample index. The outcome is
    aligned to the block samples and cast to a categorical for
    classification methods.

    Raises:
        DataValidationError: If blocks disagree on samples or the outcome
            column is missing.
    """
    data_config = config['data']
    blocks: Dict[str, pd.DataFrame] = {}
    for name, path in data_config['blocks'].items():
        blocks[name] = read_dataframe(Path(path), index_col=0)
        logger.info(f"Loaded block '{name}' from {path}: shape={blocks[name].shape}")

    index = next(iter(blocks.values())).index
    for name, block in blocks.items():
        if not block.index.equals(index):
            raise DataValidationError(f"Block '{name}' rows do not match the samples of the first block")

    outcome_df = read_dataframe(Path(data_config['outcome_file']), index_col=0)
    column = data_config['outcome_column']
    if column not in outcome_df.columns:
        raise DataValidationError(f"Outcome column '{column}' not found in {data_config['outcome_file']}")

    outcome = outcome_df[column]
    missing = index.difference(outcome.index)
    if len(missing):
        raise DataValidationError(f"Outcome is missing {len(missing)} sample(s) present in the blocks")
    outcome = outcome.loc[index]

    if ModelKind.from_name(config['model']['method']).is_classification:
        outcome = outcome.astype('category')
    else:
        outcome = pd.to_numeric(outcome, errors='raise')
    return blocks, outcome


def main(argv=None):
    """
    Run a tuning job from a configuration file.

    Returns:
        int: Exit code (0 for success, 1 for errors)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        # 1. Load and validate configuration
        config_manager = ConfigurationManager(config_path=args.config)
        config = config_manager.load_and_validate()

        if args.verbose:
            config.setdefault('logging', {})['level'] = 'DEBUG'

        # 2. Setup logging
        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('blocktune')
        logger.info(f"Configuration loaded from: {args.config}")

        # 3. Run directory and artifacts
        if args.run_id:
            config_manager.run_id = args.run_id
        run_id = config_manager.generate_run_id()
        run_dir = Path(config.get('outputs', {}).get('base_results_dir', 'results'))
        config_manager.save_artifacts(str(run_dir))

        # 4. Data
        blocks, outcome = load_inputs(config, logger)

        if args.dry_run:
            logger.info("Dry run complete: configuration and data are valid.")
            return 0

        # 5. Tune
        search = config['search']
        result = TuningEngine(config, logger).execute(blocks, outcome, search['ncomp'], search['test_keep_x'])

        # 6. Report
        reporting = ReportingEngine(config, logger)
        reporting.execute(result, run_id)
        print(reporting.format_summary(result))
        return 0

    except BlockTuneException as e:
        msg = f"Tuning Error: {str(e)}"
        print(f"\n[ERROR] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        return 1

    except KeyboardInterrupt:
        print("\n[INTERRUPTED] Tuning interrupted by user.")
        if logger:
            logger.warning("Tuning interrupted by user (Ctrl+C)")
        return 130

    except Exception as e:
        msg = f"Unexpected Error: {str(e)}"
        print(f"\n[CRITICAL] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
