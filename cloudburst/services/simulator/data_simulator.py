"""
Data Simulator
Writes realistic sensor readings the way node firmware does, for demos and
for exercising the dashboard without hardware
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import numpy as np

from cloudburst.core.error_handling import ResourceNotFoundError, ValidationError
from cloudburst.core.timeutils import MINUTE_MS, current_millis
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)

# Substituted when a node still carries its zeroed registration readings
BASELINE = {
    "temperature": 25.0,
    "pressure": 1013.25,
    "altitude": 0.0,
    "humidity": 60.0,
    "rssi": -70,
}


def _check_backfill_range(hours_back: int, interval_minutes: int) -> None:
    if not isinstance(hours_back, int) or hours_back < 1:
        raise ValidationError("Hours back must be at least 1", details={"hoursBack": hours_back})
    if not isinstance(interval_minutes, int) or interval_minutes < 1:
        raise ValidationError(
            "Interval must be at least 1 minute", details={"intervalMinutes": interval_minutes}
        )


def _seconds_string(timestamp_ms: int) -> str:
    """Firmware timestamp format: epoch seconds as a string"""
    return str(timestamp_ms // 1000)


class DataSimulator:
    """
    Simulated sensor traffic

    Readings are written in the firmware format (``lastUpdate`` and history
    ``timestamp`` as epoch-second strings) so consumers see the same mixed
    representation real hardware produces.
    """

    def __init__(self, store: RealtimeStore, seed: Optional[int] = None):
        self.store = store
        self.rng = np.random.default_rng(seed)
        self.running = False
        self.simulator_task: Optional[asyncio.Task] = None

    def _variation(self) -> float:
        return float(self.rng.random() - 0.5) * 2

    @staticmethod
    def _base(realtime: Dict[str, Any], key: str) -> float:
        value = realtime.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value:
            return float(value)
        return BASELINE[key]

    def generate_reading(
        self,
        realtime: Dict[str, Any],
        is_gateway: bool = False,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Next realtime reading derived from the current one.

        Gateways report humidity and no RSSI; sensors report RSSI and only
        report humidity if they already did.
        """
        now = now if now is not None else current_millis()
        has_humidity = is_gateway or realtime.get("humidity") is not None

        return {
            "temperature": round(self._base(realtime, "temperature") + self._variation(), 2),
            "pressure": round(self._base(realtime, "pressure") + self._variation() * 2, 2),
            "altitude": round(float(realtime.get("altitude") or 0) + self._variation() * 0.5, 2),
            "humidity": (
                round(self._base(realtime, "humidity") + self._variation() * 3, 2)
                if has_humidity else None
            ),
            "rssi": None if is_gateway else int(np.floor(self._base(realtime, "rssi") + self._variation() * 5)),
            "status": "online",
            "lastUpdate": _seconds_string(now),
        }

    def write_reading(self, node_id: str, reading: Dict[str, Any], now: Optional[int] = None) -> None:
        """Merge ``reading`` into realtime and append a history row keyed by write time"""
        now = now if now is not None else current_millis()
        is_sensor = reading.get("rssi") is not None

        rainfall = None
        if is_sensor:
            rainfall = round(float(self.rng.random() * 5), 1) if self.rng.random() > 0.9 else 0

        self.store.update(f"nodes/{node_id}", {
            **{f"realtime/{key}": value for key, value in reading.items()},
            f"history/{now}": {
                "temperature": reading.get("temperature"),
                "pressure": reading.get("pressure"),
                "altitude": reading.get("altitude"),
                "humidity": reading.get("humidity"),
                "rainfall": rainfall,
                "rssi": reading.get("rssi"),
                "timestamp": reading.get("lastUpdate"),
            },
        })

    def simulate_all_nodes(self, now: Optional[int] = None) -> int:
        """
        One round of readings for every node with a realtime subtree.

        Returns:
            Number of nodes updated
        """
        nodes = self.store.get("nodes") or {}
        if not nodes:
            logger.warning("No nodes found. Register nodes first.")
            return 0

        updated = 0
        for node_id, node in nodes.items():
            realtime = node.get("realtime") if isinstance(node, dict) else None
            if not isinstance(realtime, dict):
                logger.warning(f"Node {node_id} has no realtime data structure")
                continue

            is_gateway = (node.get("metadata") or {}).get("type") == "gateway"
            reading = self.generate_reading(realtime, is_gateway, now)
            self.write_reading(node_id, reading, now)
            updated += 1
            logger.debug(f"Simulated reading for {node_id}: {reading}")

        return updated

    def generate_historical_data(
        self,
        node_id: str,
        hours_back: int = 24,
        interval_minutes: int = 10,
        now: Optional[int] = None,
    ) -> int:
        """
        Backfill history for one node with a falling-pressure trend.

        Points are written one at a time; a store failure aborts the rest.

        Returns:
            Number of history rows written

        Raises:
            ValidationError: ``hours_back`` or ``interval_minutes`` below 1
            ResourceNotFoundError: Unknown node
        """
        _check_backfill_range(hours_back, interval_minutes)
        node = self.store.get(f"nodes/{node_id}")
        if not isinstance(node, dict):
            raise ResourceNotFoundError(f"Node {node_id} not found")

        is_gateway = (node.get("metadata") or {}).get("type") == "gateway"
        base = node.get("realtime") or {}
        now = now if now is not None else current_millis()
        total_points = (hours_back * 60) // interval_minutes

        base_temperature = self._base(base, "temperature")
        base_pressure = self._base(base, "pressure")
        base_humidity = self._base(base, "humidity")
        base_altitude = float(base.get("altitude") or 0)
        base_rssi = self._base(base, "rssi")
        has_humidity = is_gateway or base.get("humidity") is not None

        written = 0
        for i in range(total_points, -1, -1):
            timestamp = now - i * interval_minutes * MINUTE_MS

            pressure = base_pressure - 0.05 * (total_points - i)
            temperature = base_temperature + np.sin(i / 10) * 2
            humidity = base_humidity + np.cos(i / 8) * 5

            row = {
                "temperature": round(float(temperature + (self.rng.random() - 0.5) * 2), 2),
                "pressure": round(float(pressure + (self.rng.random() - 0.5) * 2), 2),
                "altitude": round(float(base_altitude + (self.rng.random() - 0.5) * 0.5), 2),
                "humidity": (
                    round(float(humidity + (self.rng.random() - 0.5) * 3), 2)
                    if has_humidity else None
                ),
                "rainfall": (
                    None if is_gateway
                    else round(float(self.rng.random() * 3), 1) if self.rng.random() > 0.8 else 0
                ),
                "rssi": None if is_gateway else int(np.floor(base_rssi + (self.rng.random() - 0.5) * 10)),
                "timestamp": _seconds_string(timestamp),
            }
            self.store.set(f"nodes/{node_id}/history/{timestamp}", row)
            written += 1

            if written % 20 == 0:
                logger.debug(f"  Generated {written}/{total_points + 1} points for {node_id}...")

        logger.info(f"Generated {written} historical data points for {node_id}")
        return written

    def generate_historical_data_for_all(
        self, hours_back: int = 24, interval_minutes: int = 10
    ) -> Dict[str, int]:
        """Backfill every node in turn; returns rows written per node"""
        _check_backfill_range(hours_back, interval_minutes)
        nodes = self.store.get("nodes") or {}
        return {
            node_id: self.generate_historical_data(node_id, hours_back, interval_minutes)
            for node_id in nodes
        }

    async def start(self, interval_seconds: float = 10) -> None:
        """Start continuous simulation"""
        if self.running:
            logger.warning("Simulator is already running")
            return

        self.running = True
        self.simulator_task = asyncio.create_task(self._simulation_loop(interval_seconds))
        logger.info(f"Data simulator started (update every {interval_seconds}s)")

    async def stop(self) -> None:
        """Stop continuous simulation"""
        if not self.running:
            return

        self.running = False

        if self.simulator_task:
            self.simulator_task.cancel()
            try:
                await self.simulator_task
            except asyncio.CancelledError:
                pass
            self.simulator_task = None

        logger.info("Data simulator stopped")

    async def _simulation_loop(self, interval_seconds: float) -> None:
        while self.running:
            try:
                updated = self.simulate_all_nodes()
                logger.debug(f"Simulation round updated {updated} node(s)")
                await asyncio.sleep(interval_seconds)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in simulation loop: {e}", exc_info=True)
                await asyncio.sleep(interval_seconds)
