"""
Prediction Service
Serves the cloudburst forecast table from the cleaned weather CSV

The ``prediction`` column is the recorded CloudBurstTomorrow label and
``confidence`` is drawn uniformly from [0.7, 1.0) on every request; no model
is evaluated here.
"""
import csv
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from cloudburst.config.app_config import PredictionConfig
from cloudburst.core.error_handling import CloudburstError, ErrorCode

logger = logging.getLogger(__name__)

LOCATION_PREFIX = "Location_"

# Output field -> CSV column index
FIELD_COLUMNS = {
    "minTemp": 0,
    "maxTemp": 1,
    "rainfall": 2,
    "windGustSpeed": 3,
    "humidity9am": 6,
    "humidity3pm": 7,
    "pressure9am": 8,
    "pressure3pm": 9,
    "temp9am": 10,
    "temp3pm": 11,
    "cloudBurstToday": 12,
    "cloudBurstTomorrow": 13,
}

PREDICTION_COLUMN = 13

# Source dataset locations renamed to the deployment site
LOCATION_ALIASES = {"albury": "Jaynagar"}


def _to_float(value: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if np.isnan(number) else number


class PredictionService:
    """Read the forecast CSV and attach per-request confidence scores"""

    def __init__(self, config: Optional[PredictionConfig] = None, seed: Optional[int] = None):
        self.config = config or PredictionConfig()
        self.rng = np.random.default_rng(seed)

    def _location(self, headers: List[str], values: List[str]) -> str:
        for header, value in zip(headers, values):
            if header.startswith(LOCATION_PREFIX) and _to_float(value) == 1:
                location = header[len(LOCATION_PREFIX):]
                return LOCATION_ALIASES.get(location.lower(), location)
        return self.config.default_location

    def predictions(self) -> List[Dict[str, Any]]:
        """
        Build prediction rows from the first ``max_rows`` data lines.

        Lines with fewer cells than the header are skipped but still count
        towards ``max_rows``.

        Raises:
            CloudburstError: The CSV cannot be read
        """
        path = Path(self.config.csv_path)
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                reader = csv.reader(f)
                headers = [header.strip() for header in next(reader, [])]
                lines = [row for _, row in zip(range(self.config.max_rows), reader)]
        except OSError as e:
            logger.error(f"Failed to read prediction data {path}: {e}")
            raise CloudburstError(
                "Failed to generate predictions",
                ErrorCode.CONFIGURATION_ERROR,
                details={"path": str(path), "reason": str(e)}
            ) from e

        rows = []
        for line_number, values in enumerate(lines, start=1):
            if len(values) < len(headers) or len(values) <= PREDICTION_COLUMN:
                continue

            row: Dict[str, Any] = {"id": line_number}
            for name, index in FIELD_COLUMNS.items():
                row[name] = _to_float(values[index])
            row["prediction"] = _to_float(values[PREDICTION_COLUMN])
            row["confidence"] = float(self.rng.random() * 0.3 + 0.7)
            row["location"] = self._location(headers, values)
            rows.append(row)

        logger.debug(f"Generated {len(rows)} prediction rows from {path}")
        return rows

    def forecast(self) -> Dict[str, Any]:
        """Response body of the prediction endpoint"""
        return {
            "success": True,
            "predictions": self.predictions(),
            "date": self.config.forecast_date,
            "message": "Predictions generated successfully",
        }
