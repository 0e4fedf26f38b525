#!/usr/bin/env python3
"""
Cloudburst Management Script

Seeds a simulated sensor network, backfills history, runs the reading
simulator and removes old history from the configured store.

Usage:
    python -m cloudburst.scripts.manage seed
    python -m cloudburst.scripts.manage generate-history --hours 48
    python -m cloudburst.scripts.manage simulate --rounds 6 --interval 10
    python -m cloudburst.scripts.manage cleanup --days 30
    python -m cloudburst.scripts.manage export --output backup.json
    python -m cloudburst.scripts.manage sms-test --to +919876543210
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from cloudburst.api.dependencies import ServiceContainer
from cloudburst.config.app_config import AppConfigLoader
from cloudburst.core.error_handling import CloudburstError, DuplicateIdError
from cloudburst.core.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Gateway plus sensors along the Mandakini valley
SAMPLE_NODES = [
    {
        "nodeId": "gateway1",
        "name": "Kedarnath Gateway",
        "type": "gateway",
        "latitude": 30.7346,
        "longitude": 79.0669,
        "altitude": 3583,
        "nearbyNodes": ["node1", "node2"],
        "description": "Base camp relay",
    },
    {
        "nodeId": "node1",
        "name": "Rambara Sensor",
        "type": "sensor",
        "latitude": 30.6988,
        "longitude": 79.0436,
        "altitude": 2740,
        "nearbyNodes": ["gateway1", "node3"],
    },
    {
        "nodeId": "node2",
        "name": "Garud Chatti Sensor",
        "type": "sensor",
        "latitude": 30.7211,
        "longitude": 79.0594,
        "altitude": 3210,
        "nearbyNodes": ["gateway1"],
    },
    {
        "nodeId": "node3",
        "name": "Gaurikund Sensor",
        "type": "sensor",
        "latitude": 30.6533,
        "longitude": 79.0250,
        "altitude": 1982,
        "nearbyNodes": ["node1"],
    },
]

SAMPLE_CONTACTS = [
    {"name": "District Control Room", "phone": "9876543210", "nodes": ["gateway1", "node1", "node2", "node3"]},
    {"name": "Gaurikund Field Officer", "phone": "9123456780", "nodes": ["node1", "node3"]},
]


def seed(container: ServiceContainer, with_contacts: bool = True) -> None:
    """Register the sample network, skipping nodes that already exist"""
    for node in SAMPLE_NODES:
        metadata = {key: value for key, value in node.items() if key != "nodeId"}
        metadata["installedBy"] = "manage.py"
        try:
            container.node_registry.register_node(node["nodeId"], metadata)
            logger.info(f"✓ Registered {node['nodeId']}")
        except DuplicateIdError:
            logger.info(f"- {node['nodeId']} already exists, skipped")

    if with_contacts:
        for contact in SAMPLE_CONTACTS:
            container.contact_registry.add_contact(
                contact["name"], contact["phone"], associated_node_ids=contact["nodes"]
            )
            logger.info(f"✓ Added contact {contact['name']}")

    updated = container.simulator.simulate_all_nodes()
    logger.info(f"Seed complete: {updated} node(s) have fresh readings")


def generate_history(container: ServiceContainer, node_id: str, hours: int, interval: int) -> None:
    if node_id:
        written = {node_id: container.simulator.generate_historical_data(node_id, hours, interval)}
    else:
        written = container.simulator.generate_historical_data_for_all(hours, interval)
    for key, count in written.items():
        logger.info(f"{key}: {count} history rows")


async def simulate(container: ServiceContainer, rounds: int, interval: float) -> None:
    for index in range(rounds):
        updated = container.simulator.simulate_all_nodes()
        logger.info(f"Round {index + 1}/{rounds}: {updated} node(s) updated")
        if index < rounds - 1:
            await asyncio.sleep(interval)


def cleanup(container: ServiceContainer, days: int) -> None:
    if days is None:
        days = container.settings.load().system.data_retention
    deleted = container.history.cleanup_old_data(days)
    logger.info(f"Deleted {deleted} history row(s) older than {days} day(s)")


def export(container: ServiceContainer, output: str) -> None:
    payload = container.admin.export_all()
    Path(output).write_text(json.dumps(payload, indent=2))
    logger.info(f"Exported store to {output}")


def sms_test(container: ServiceContainer, to_number: str) -> bool:
    status = container.sms_client.status()
    logger.info(f"SMS provider {container.sms_client.provider}: {status.status}")
    if not status.configured:
        return False
    return container.sms_client.test_connection(to_number)


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Cloudburst network management',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Register sample nodes and contacts
  python -m cloudburst.scripts.manage seed

  # Two days of 10-minute history for node1
  python -m cloudburst.scripts.manage generate-history --node node1 --hours 48

  # Drop history older than the retention setting
  python -m cloudburst.scripts.manage cleanup
        """
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to YAML configuration (default: $CLOUDBURST_CONFIG)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    seed_parser = commands.add_parser('seed', help='Register the sample network')
    seed_parser.add_argument('--no-contacts', action='store_true', help='Skip sample contacts')

    history_parser = commands.add_parser('generate-history', help='Backfill history')
    history_parser.add_argument('--node', type=str, default=None, help='Node id (default: all)')
    history_parser.add_argument('--hours', type=int, default=24, help='Hours back (default: 24)')
    history_parser.add_argument('--interval', type=int, default=10, help='Minutes between points (default: 10)')

    simulate_parser = commands.add_parser('simulate', help='Write simulated readings')
    simulate_parser.add_argument('--rounds', type=int, default=1, help='Number of rounds (default: 1)')
    simulate_parser.add_argument('--interval', type=float, default=10, help='Seconds between rounds (default: 10)')

    cleanup_parser = commands.add_parser('cleanup', help='Delete old history')
    cleanup_parser.add_argument('--days', type=int, default=None, help='Age in days (default: retention setting)')

    export_parser = commands.add_parser('export', help='Write a JSON dump of the store')
    export_parser.add_argument('--output', type=str, default='cloudburst_export.json')

    sms_parser = commands.add_parser('sms-test', help='Check the SMS provider connection')
    sms_parser.add_argument('--to', type=str, default=None, help='Also send a test message to this number')

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_arguments(argv)
    config = AppConfigLoader.load(args.config)
    setup_logging(log_level=args.log_level, log_file=config.logging.file)

    container = ServiceContainer(config)
    try:
        if args.command == 'seed':
            seed(container, with_contacts=not args.no_contacts)
        elif args.command == 'generate-history':
            generate_history(container, args.node, args.hours, args.interval)
        elif args.command == 'simulate':
            asyncio.run(simulate(container, args.rounds, args.interval))
        elif args.command == 'cleanup':
            cleanup(container, args.days)
        elif args.command == 'export':
            export(container, args.output)
        elif args.command == 'sms-test':
            return 0 if sms_test(container, args.to) else 1
        return 0

    except CloudburstError as e:
        logger.error(f"{args.command} failed: {e.message}")
        return 1

    finally:
        asyncio.run(container.shutdown())


if __name__ == "__main__":
    sys.exit(main())
