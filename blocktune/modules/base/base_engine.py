import abc
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from blocktune.utils.diagnostics import DiagnosticsCollector

class BaseEngine(abc.ABC):
    """
    Abstract base class for all processing engines.

    Provides common functionality for:
    - Configuration and logger attachment.
    - A diagnostics collector mirrored to the engine logger.
    - Output directory resolution for engines that persist artifacts.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, logger: Optional[logging.Logger] = None):
        self.config = config or {}
        self.logger = logger or logging.getLogger(f"blocktune.{self.__class__.__name__}")
        self.diagnostics = DiagnosticsCollector(self.logger)
        self.base_dir = Path(self.config.get('outputs', {}).get('base_results_dir', 'results'))
        self.engine_dir_name = self._get_engine_directory_name()
        self.output_dir = self.base_dir / self.engine_dir_name

    @abc.abstractmethod
    def _get_engine_directory_name(self) -> str:
        """
        Determines the directory name for the engine's output.
        e.g., '02_TuningResults'
        This should be implemented by subclasses.
        """
        raise NotImplementedError("Subclasses must implement _get_engine_directory_name.")

    def _setup_directories(self) -> Path:
        """
        Creates the main output directory for the engine.
        Compute-only engines never call this.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Output directory for {self.__class__.__name__}: {self.output_dir}")
        return self.output_dir

    @abc.abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """
        Main execution method for the engine.
        This must be implemented by all subclasses.
        """
        pass
