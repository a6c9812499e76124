"""
Shooting Pulse - Dataset Stage

Shared run loop for the ingest, preprocess and feature stages.

A stage never raises out of run(): the outcome is reported as a result
record with success=False and the error message, and the produced frame is
only kept when the stage succeeds. The orchestrator decides whether a
failed result is fatal.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, ClassVar

import pandas as pd

from shooting_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


@dataclass(kw_only=True)
class StageResult:
    """Fields every stage result carries."""

    dataset: str
    execution_date: str
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return asdict(self)


class DatasetStage(ABC):
    """
    Base class for one stage of a dataset pipeline.

    Subclasses set stage_name and result_class, implement get_dataset_name()
    and call _run_stage() from their own run().
    """

    stage_name: ClassVar[str] = "stage"
    result_class: ClassVar[type[StageResult]] = StageResult

    def __init__(self, config: Settings | None = None):
        """
        Initialize the stage.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()
        self._data: pd.DataFrame | None = None

    @abstractmethod
    def get_dataset_name(self) -> str:
        """
        Get the dataset name.

        Returns:
            Dataset name (e.g., "shootings")
        """

    def get_data(self) -> pd.DataFrame | None:
        """Frame produced by the last successful run, else None."""
        return self._data

    def _run_stage(
        self,
        execution_date: str,
        work: Callable[[], tuple[pd.DataFrame, dict[str, Any]]],
        **known: Any,
    ) -> StageResult:
        """
        Run work() and report its outcome.

        Args:
            execution_date: Execution date in YYYY-MM-DD format
            work: Returns the produced frame and the result fields it measured
            **known: Result fields known before the work starts; also reported
                on failure

        Returns:
            Instance of result_class
        """
        dataset = self.get_dataset_name()
        started = time.perf_counter()
        self._data = None

        logger.info(
            f"Starting {self.stage_name} for {dataset}",
            extra={"dataset": dataset, "execution_date": execution_date, **known},
        )

        try:
            df, measured = work()
        except Exception as e:
            logger.error(
                f"{self.stage_name.capitalize()} failed for {dataset}: {e}",
                extra={"dataset": dataset, "error": str(e)},
                exc_info=True,
            )
            return self.result_class(
                dataset=dataset,
                execution_date=execution_date,
                duration_seconds=time.perf_counter() - started,
                success=False,
                error_message=str(e),
                **known,
            )

        result = self.result_class(
            dataset=dataset,
            execution_date=execution_date,
            duration_seconds=time.perf_counter() - started,
            **known,
            **measured,
        )
        self._data = df

        logger.info(
            f"{self.stage_name.capitalize()} complete for {dataset}: {len(df)} rows",
            extra=result.to_dict(),
        )
        return result
