# utils/constants.py

# --- Result Directories ---
CONFIG_DIR = "01_RunConfiguration"          # Run config, metadata, seeds
TUNING_RESULTS_DIR = "02_TuningResults"     # Result tables, best configuration

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
RESULTS_TABLE_FILE = "results_table.parquet"
BEST_CONFIGURATION_FILE = "best_configuration.json"
DIAGNOSTICS_FILE = "diagnostics.json"

# --- Search Types ---
SEARCH_GRID = "grid"
SEARCH_RANDOM = "random"
SEARCH_TYPES = (SEARCH_GRID, SEARCH_RANDOM)

# --- Result Table Columns ---
NCOMP_COLUMN = "ncomp"
KEEPX_PREFIX = "keepX_"
MEAN_SUFFIX = "_mean"
SD_SUFFIX = "_sd"
FAILED_FOLDS_COLUMN = "failed_folds"

# --- Metric Names ---
ERROR_RATE = "error_rate"
ACCURACY = "accuracy"
MSE = "mse"
RMSE = "rmse"
Q2_SCORE = "q2_score"

# --- Diagnostic Codes ---
MORE_FOLDS_THAN_SAMPLES = "MoreFoldsThanSamples"
EMPTY_FOLDS_DROPPED = "EmptyFoldsDropped"
STRATIFICATION_DISABLED = "StratificationDisabled"
FOLD_FAILED = "FoldFailed"
SD_NOT_AVAILABLE = "SdNotAvailable"
DEADLINE_EXCEEDED = "DeadlineExceeded"

# --- Defaults ---
DEFAULT_NFOLDS = 5
DEFAULT_N_RANDOM = 50
DEFAULT_MAX_COMBINATIONS = 1000  # Prevent accidental combinatoric explosions
PROGRESS_LOG_EVERY = 10

# Offsets applied to the master seed so component streams do not correlate.
FOLDS_SEED_OFFSET = 0
SEARCH_SEED_OFFSET = 1000
