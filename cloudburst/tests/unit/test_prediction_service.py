"""
Unit tests for the CSV-backed prediction table
"""
import pytest
from pathlib import Path

from cloudburst.config.app_config import PredictionConfig
from cloudburst.core.error_handling import CloudburstError
from cloudburst.services.prediction.prediction_service import PredictionService

HEADER = (
    "MinTemp,MaxTemp,Rainfall,WindGustSpeed,WindSpeed9am,WindSpeed3pm,Humidity9am,Humidity3pm,"
    "Pressure9am,Pressure3pm,Temp9am,Temp3pm,CloudBurstToday,CloudBurstTomorrow,"
    "Location_Albury,Location_Darjeeling,Location_Kedarnath"
)

BUNDLED_CSV = Path(__file__).resolve().parents[2] / "data" / "cloudburst_cleaned.csv"


@pytest.fixture
def csv_file(tmp_path):
    def write(*lines):
        path = tmp_path / "forecast.csv"
        path.write_text("\n".join((HEADER,) + lines) + "\n")
        return path
    return write


def service_for(path, max_rows=10):
    return PredictionService(PredictionConfig(csv_path=str(path), max_rows=max_rows), seed=7)


class TestPredictions:

    @pytest.mark.unit
    def test_row_fields(self, csv_file):
        path = csv_file("13.4,22.9,0.6,44,20,24,71,22,1007.7,1007.1,16.9,21.8,0,1,0,1,0")

        [row] = service_for(path).predictions()

        assert row["id"] == 1
        assert row["minTemp"] == 13.4
        assert row["humidity9am"] == 71.0
        assert row["pressure3pm"] == 1007.1
        assert row["cloudBurstTomorrow"] == 1.0
        assert row["prediction"] == 1.0
        assert row["location"] == "Darjeeling"
        assert 0.7 <= row["confidence"] < 1.0

    @pytest.mark.unit
    def test_albury_renamed(self, csv_file):
        path = csv_file("7.4,25.1,0,44,4,22,44,25,1010.6,1007.8,17.2,24.3,0,0,1,0,0")
        assert service_for(path).predictions()[0]["location"] == "Jaynagar"

    @pytest.mark.unit
    def test_no_location_flag_uses_default(self, csv_file):
        path = csv_file("7.4,25.1,0,44,4,22,44,25,1010.6,1007.8,17.2,24.3,0,0,0,0,0")
        assert service_for(path).predictions()[0]["location"] == "Jaynagar"

    @pytest.mark.unit
    def test_unparseable_cells_become_zero(self, csv_file):
        path = csv_file("NA,25.1,nan,44,4,22,44,25,1010.6,1007.8,17.2,24.3,0,0,0,0,1")

        [row] = service_for(path).predictions()
        assert row["minTemp"] == 0.0
        assert row["rainfall"] == 0.0
        assert row["location"] == "Kedarnath"

    @pytest.mark.unit
    def test_short_lines_skipped_but_counted(self, csv_file):
        path = csv_file(
            "1,2,3",
            "7.4,25.1,0,44,4,22,44,25,1010.6,1007.8,17.2,24.3,0,0,1,0,0",
            "8.4,26.1,0,44,4,22,44,25,1010.6,1007.8,17.2,24.3,0,0,1,0,0",
        )

        rows = service_for(path, max_rows=2).predictions()
        assert [row["id"] for row in rows] == [2]

    @pytest.mark.unit
    def test_confidence_varies_per_request(self, csv_file):
        path = csv_file("7.4,25.1,0,44,4,22,44,25,1010.6,1007.8,17.2,24.3,0,0,1,0,0")
        service = service_for(path)

        first = service.predictions()[0]["confidence"]
        second = service.predictions()[0]["confidence"]
        assert first != second

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        with pytest.raises(CloudburstError) as exc_info:
            service_for(tmp_path / "missing.csv").predictions()
        assert exc_info.value.message == "Failed to generate predictions"
        assert exc_info.value.status_code == 500

    @pytest.mark.unit
    def test_bundled_dataset(self):
        response = service_for(BUNDLED_CSV).forecast()

        assert response["success"] is True
        assert response["date"] == "2025-10-05"
        assert response["message"] == "Predictions generated successfully"
        assert len(response["predictions"]) == 10
        assert all(0.7 <= row["confidence"] < 1.0 for row in response["predictions"])
