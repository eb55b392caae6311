import pytest
import json
import hashlib
from pathlib import Path
from unittest.mock import Mock, patch

from blocktune.modules.config_manager import ConfigurationManager
from blocktune.utils import constants
from blocktune.utils.exceptions import ConfigurationError


@pytest.fixture
def valid_config(tmp_path):
    return {
        "data": {
            "blocks": {"mrna": "data/mrna.csv", "protein": "data/protein.csv"},
            "outcome_file": "data/outcome.csv",
            "outcome_column": "subtype"
        },
        "model": {"method": "block.splsda"},
        "search": {
            "type": "grid",
            "ncomp": [1, 2],
            "test_keep_x": {"mrna": [5, 10], "protein": [3]}
        },
        "cv": {"nfolds": 5, "stratified": True, "seed": 42},
        "execution": {"n_jobs": -1},
        "outputs": {"base_results_dir": str(tmp_path / "results")}
    }


@pytest.fixture
def write_config(tmp_path):
    def _write(content):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(content))
        return str(path)
    return _write


def test_load_valid_config_propagates_seeds(valid_config, write_config):
    config = ConfigurationManager(write_config(valid_config)).load_and_validate()

    assert config['_internal_seeds'] == {'folds': 42, 'search': 1042}
    assert config['resources']['max_combinations'] == constants.DEFAULT_MAX_COMBINATIONS
    assert config['resources']['max_memory_mb'] > 0


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="File not found"):
        ConfigurationManager(str(tmp_path / "nope.json")).load_and_validate()


def test_invalid_json_raises(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        ConfigurationManager(str(path)).load_and_validate()


def test_schema_rejects_unknown_method(valid_config, write_config):
    valid_config['model']['method'] = 'pls'
    with pytest.raises(ConfigurationError, match="Schema validation failed"):
        ConfigurationManager(write_config(valid_config)).load_and_validate()


def test_schema_rejects_non_positive_keep_x(valid_config, write_config):
    valid_config['search']['test_keep_x']['mrna'] = [0]
    with pytest.raises(ConfigurationError, match="Schema validation failed"):
        ConfigurationManager(write_config(valid_config)).load_and_validate()


def test_keep_x_blocks_must_match_data_blocks(valid_config, write_config):
    del valid_config['search']['test_keep_x']['protein']
    with pytest.raises(ConfigurationError, match="missing: \\['protein'\\]"):
        ConfigurationManager(write_config(valid_config)).load_and_validate()


@pytest.mark.parametrize("section, key, value, message", [
    ("cv", "nfolds", 1, "cv.nfolds must be >= 2"),
    ("execution", "n_jobs", 0, "execution.n_jobs"),
    ("execution", "n_jobs", -2, "execution.n_jobs"),
    ("execution", "max_seconds", 0, "execution.max_seconds must be > 0"),
])
def test_logical_validation(valid_config, write_config, section, key, value, message):
    valid_config[section][key] = value
    with pytest.raises(ConfigurationError, match=message):
        ConfigurationManager(write_config(valid_config)).load_and_validate()


def test_random_search_needs_positive_n_random(valid_config, write_config):
    valid_config['search'].update({'type': 'random', 'n_random': 0})
    with pytest.raises(ConfigurationError, match="n_random"):
        ConfigurationManager(write_config(valid_config)).load_and_validate()


def test_grid_explosion_detected(valid_config, write_config):
    valid_config['resources'] = {'max_combinations': 3}
    with pytest.raises(ConfigurationError, match="Grid Explosion Detected"):
        ConfigurationManager(write_config(valid_config)).load_and_validate()


def test_random_search_counts_only_sampled_rows(valid_config, write_config):
    valid_config['search'].update({'type': 'random', 'n_random': 2})
    valid_config['resources'] = {'max_combinations': 3}
    config = ConfigurationManager(write_config(valid_config)).load_and_validate()
    assert config['resources']['max_combinations'] == 3


def test_missing_seed_is_generated(valid_config, write_config):
    del valid_config['cv']['seed']
    config = ConfigurationManager(write_config(valid_config)).load_and_validate()

    seed = config['cv']['seed']
    assert isinstance(seed, int)
    assert config['_internal_seeds'] == {'folds': seed, 'search': seed + 1000}


def test_memory_above_physical_ram_warns(valid_config, write_config):
    valid_config['resources'] = {'max_memory_mb': 4096}
    manager = ConfigurationManager(write_config(valid_config))
    manager.logger = Mock()

    with patch('psutil.virtual_memory') as virtual_memory:
        virtual_memory.return_value.total = 1024 * 1024 * 1024  # 1024 MB
        manager.load_and_validate()

    manager.logger.warning.assert_called_once()


def test_custom_schema_path(valid_config, write_config, tmp_path):
    schema_path = tmp_path / "schema.json"
    schema_path.write_text(json.dumps({"type": "object", "required": ["cv"]}))
    config = ConfigurationManager(write_config(valid_config), str(schema_path)).load_and_validate()
    assert config['cv']['seed'] == 42


def test_generate_run_id_is_stable(valid_config, write_config):
    manager = ConfigurationManager(write_config(valid_config))
    run_id = manager.generate_run_id()

    assert len(run_id) == len("YYYYMMDD_HHMMSS")
    assert manager.generate_run_id() == run_id


def test_save_artifacts(valid_config, write_config, tmp_path):
    manager = ConfigurationManager(write_config(valid_config))
    config = manager.load_and_validate()
    manager.generate_run_id()
    manager.save_artifacts(str(tmp_path / "out"))

    config_dir = tmp_path / "out" / constants.CONFIG_DIR
    saved = json.loads((config_dir / constants.CONFIG_USED_FILE).read_text())
    assert saved == config

    expected_hash = hashlib.sha256(json.dumps(config, sort_keys=True).encode()).hexdigest()
    assert (config_dir / constants.CONFIG_HASH_FILE).read_text() == expected_hash

    metadata = json.loads((config_dir / constants.RUN_METADATA_FILE).read_text())
    assert metadata['run_id'] == manager.run_id
    assert metadata['config_hash'] == expected_hash
