import json
import os
import hashlib
import sys
import logging
import jsonschema
import psutil  # Required for memory awareness
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from blocktune.modules.parameter_search import grid_size
from blocktune.modules.tuning_engine.tuning_engine import generate_seed
from blocktune.utils.exceptions import ConfigurationError
from blocktune.utils import constants

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parents[2] / "config" / "schema.json"


class ConfigurationManager:
    """
    Manages configuration loading, validation, and access.
    Acts as the single source of truth and safety guard for a tuning run.
    """

    DEFAULT_MAX_COMBINATIONS = constants.DEFAULT_MAX_COMBINATIONS

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: Optional[str] = None):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Path to the JSON schema definition. Defaults to
                the schema shipped with the package.
        """
        self.config_path = config_path
        self.schema_path = schema_path or str(DEFAULT_SCHEMA_PATH)
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads config, validates schema/logic/resources,
        and propagates seeds.

        Returns:
            Dict[str, Any]: The fully validated and hydrated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        # 1. Load Files
        self.config = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)

        # 2. Structural Validation (Schema)
        self._validate_schema()

        # 3. Logical Validation (Business Rules & Bounds)
        self._validate_logic()

        # 4. Resource Validation (Prevent Exhaustion)
        self._validate_resources()

        # 5. Internal Seed Propagation (Reproducibility)
        self._propagate_seeds()

        return self.config

    def generate_run_id(self) -> str:
        """
        Generate or retrieve a unique run identifier based on timestamp.
        Used for directory naming and metadata.
        """
        if not self.run_id:
            timestamp = datetime.now()
            # Format: YYYYMMDD_HHMMSS
            self.run_id = timestamp.strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save configuration artifacts to the run directory for full reproducibility.

        Saves:
        1. config_used.json: The exact config object in memory.
        2. config_hash.txt: SHA256 hash for versioning.
        3. run_metadata.json: Environment details (Python version, Platform, etc.).
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        # 1. Save Config
        with open(config_dir / constants.CONFIG_USED_FILE, 'w') as f:
            json.dump(self.config, f, indent=2)

        # 2. Calculate and Save Hash
        config_str = json.dumps(self.config, sort_keys=True)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()

        with open(config_dir / constants.CONFIG_HASH_FILE, 'w') as f:
            f.write(config_hash)

        # 3. Save Metadata (Environment Capture)
        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': sys.platform,
            'config_hash': config_hash,
            'working_directory': os.getcwd()
        }

        with open(config_dir / constants.RUN_METADATA_FILE, 'w') as f:
            json.dump(metadata, f, indent=2)

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    def _validate_logic(self) -> None:
        """
        Validate logical constraints that the schema cannot express.
        """
        # --- Data Section ---
        data = self.config['data']
        search = self.config['search']
        blocks = set(data['blocks'])
        keep_blocks = set(search['test_keep_x'])
        if blocks != keep_blocks:
            raise ConfigurationError(
                f"search.test_keep_x must list exactly the blocks in data.blocks "
                f"(missing: {sorted(blocks - keep_blocks)}, unexpected: {sorted(keep_blocks - blocks)})"
            )

        # --- Search Section ---
        search_type = search.get('type', constants.SEARCH_GRID)
        if search_type not in constants.SEARCH_TYPES:
            raise ConfigurationError(f"search.type must be either 'grid' or 'random', got '{search_type}'")
        n_random = search.get('n_random', constants.DEFAULT_N_RANDOM)
        if search_type == constants.SEARCH_RANDOM and n_random <= 0:
            raise ConfigurationError(f"search.n_random must be > 0, got {n_random}.")

        # --- CV Section ---
        cv = self.config.get('cv', {})
        nfolds = cv.get('nfolds', constants.DEFAULT_NFOLDS)
        if nfolds < 2:
            raise ConfigurationError(f"cv.nfolds must be >= 2, got {nfolds}.")

        # Execution validation
        execution = self.config.get('execution', {})
        max_seconds = execution.get('max_seconds')
        if max_seconds is not None and max_seconds <= 0:
            raise ConfigurationError(f"execution.max_seconds must be > 0, got {max_seconds}")
        if 'n_jobs' in execution:
            n_jobs = execution['n_jobs']
            if n_jobs == 0 or n_jobs < -1:
                raise ConfigurationError(f"execution.n_jobs must be -1 (all cores) or a positive integer, got {n_jobs}")

    def _validate_resources(self) -> None:
        """
        Validate against system resources.
        Calculates the number of combinations and ensures it fits within safe limits.
        """
        resources = self.config.get('resources', {})
        search = self.config['search']

        # 1. Grid Explosion Check
        total = grid_size(search['ncomp'], search['test_keep_x'])
        if search.get('type', constants.SEARCH_GRID) == constants.SEARCH_RANDOM:
            total = min(total, search.get('n_random', constants.DEFAULT_N_RANDOM))

        max_combinations = resources.get('max_combinations', self.DEFAULT_MAX_COMBINATIONS)
        if total > max_combinations:
            raise ConfigurationError(
                f"Grid Explosion Detected! Total combinations ({total}) exceeds "
                f"safety limit ({max_combinations}). Reduce the candidate lists or increase "
                f"'resources.max_combinations'."
            )
        self.logger.info(f"Search size validated: {total} combinations (Limit: {max_combinations})")

        # 2. Memory Limits Check
        system_ram_mb = int(psutil.virtual_memory().total / (1024 * 1024))
        # Default safety buffer: 80% of system RAM
        safe_ram_limit = int(system_ram_mb * 0.8)

        config_max_ram = resources.get('max_memory_mb', safe_ram_limit)

        if config_max_ram > system_ram_mb:
            self.logger.warning(
                f"Configured max_memory_mb ({config_max_ram}MB) exceeds physical system RAM ({system_ram_mb}MB). "
                "This may lead to instability."
            )

        # Inject the limits back into config for other modules to use
        self.config.setdefault('resources', {})
        self.config['resources']['max_memory_mb'] = config_max_ram
        self.config['resources']['max_combinations'] = max_combinations

    def _propagate_seeds(self) -> None:
        """
        Propagate the master seed to fold building and random search.
        A missing seed is generated once and written back so the run can be repeated.
        """
        cv = self.config.setdefault('cv', {})
        master_seed = cv.get('seed')
        if master_seed is None:
            master_seed = generate_seed()
            cv['seed'] = master_seed
            self.logger.info(f"No cv.seed configured; generated seed {master_seed}.")

        self.config['_internal_seeds'] = {
            'folds': master_seed + constants.FOLDS_SEED_OFFSET,
            'search': master_seed + constants.SEARCH_SEED_OFFSET,
        }
        self.logger.debug(f"Seeds propagated from master ({master_seed}): {self.config['_internal_seeds']}")
