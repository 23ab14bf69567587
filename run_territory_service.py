#!/usr/bin/env python3
"""
Territory Service - Entry Point
===============================

Runs one territory registry behind an MQTT control plane: layers are
created, drawn and edited through commands, every accepted change is
published as a retained snapshot, and classify commands publish the
adders matching a coordinate.

Usage:
    territory-service --config config/territory_config.yaml
    territory-service --config config/territory_config.yaml --service-id pricing_02 --no-log-file

Lifecycle:
    1. Load YAML configuration, apply CLI overrides
    2. Build control plane, publishers and TerritoryService
    3. Start (connect, publish startup snapshot), block until SIGINT/SIGTERM
    4. Stop publishers and control plane
"""

import argparse
import dataclasses
import signal
import sys
import logging
from pathlib import Path
from typing import Optional

from territory_registry import TerritoryService, TerritoryConfig
from territory_control import MQTTControlPlane
from territory_mqtt import LayerSnapshotPublisher, ClassificationPublisher, create_logger


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """Console logging, plus a file handler when log_file is given."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    return logging.getLogger("territory.app")


def apply_overrides(config: TerritoryConfig, service_id: Optional[str] = None,
                    broker: Optional[str] = None) -> TerritoryConfig:
    """Return config with CLI overrides applied (config is frozen)."""
    if broker:
        config = dataclasses.replace(
            config, mqtt_config=dataclasses.replace(config.mqtt_config, broker=broker)
        )
    if service_id:
        config = dataclasses.replace(config, service_id=service_id)
    return config


def _publisher(cls, config: TerritoryConfig, topic_template: str, role: str, logger):
    mqtt_config = config.mqtt_config
    return cls(
        broker_host=mqtt_config.broker,
        broker_port=mqtt_config.port,
        topic=topic_template.format(service_id=config.service_id),
        logger=logger,
        client_id=f"publisher_{role}_{config.service_id}",
        username=mqtt_config.username,
        password=mqtt_config.password,
        qos=mqtt_config.qos,
    )


def build_components(config: TerritoryConfig) -> TerritoryService:
    """Wire control plane and publishers into a TerritoryService."""
    service_id = config.service_id
    mqtt_config = config.mqtt_config
    mqtt_logger = create_logger("mqtt_publisher", service_id=service_id)

    control_plane = MQTTControlPlane(
        broker_host=mqtt_config.broker,
        broker_port=mqtt_config.port,
        command_topic=mqtt_config.command_topic(service_id),
        status_topic=mqtt_config.status_topic(service_id),
        client_id=f"territory_{service_id}",
        username=mqtt_config.username,
        password=mqtt_config.password,
    )

    return TerritoryService(
        config=config,
        control_plane=control_plane,
        snapshot_publisher=_publisher(
            LayerSnapshotPublisher, config, mqtt_config.layers_topic, "layers", mqtt_logger
        ),
        classification_publisher=_publisher(
            ClassificationPublisher, config, mqtt_config.classification_topic,
            "classifications", mqtt_logger
        ),
    )


class TerritoryApp:
    """
    Process wrapper: owns signal handling and orderly shutdown.
    """

    def __init__(self, config: TerritoryConfig, log_file: Optional[Path] = None,
                 log_level: int = logging.INFO):
        self.config = config
        self.logger = setup_logging(log_file, log_level)
        self.service: Optional[TerritoryService] = None
        self._shutdown_requested = False

    def setup(self):
        self.logger.info(f"🚀 Territory service {self.config.service_id} starting")
        self.service = build_components(self.config)
        mqtt_config = self.config.mqtt_config
        self.logger.info(f"🔌 Broker {mqtt_config.broker}:{mqtt_config.port}")
        self.logger.info(f"   Commands: {mqtt_config.command_topic(self.config.service_id)}")
        self.logger.info(f"   Layers:   {self.service.snapshot_publisher.topic}")

    def run(self):
        """Start the service and block until a stop signal arrives."""
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self.service.start()
            self.logger.info("✅ Service running (Ctrl+C to stop)")
            self.service.wait()
        except KeyboardInterrupt:
            self.shutdown()
        except RuntimeError as e:
            self.logger.error(f"❌ Service error: {e}", exc_info=True)
            self.shutdown()
            sys.exit(1)

    def shutdown(self):
        if self._shutdown_requested:
            return
        self._shutdown_requested = True

        self.logger.info("🛑 Shutting down territory service")
        if self.service:
            self.service.stop()
        self.logger.info("✅ Shutdown complete")

    def _signal_handler(self, signum, frame):
        self.logger.info(f"⚠️  Received {signal.Signals(signum).name}")
        self.shutdown()
        sys.exit(0)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Territory Service - layer registry and containment queries over MQTT",
    )
    parser.add_argument('--config', type=Path, required=True,
                        help='Path to territory configuration YAML file')
    parser.add_argument('--service-id', help='Override service_id from the config file')
    parser.add_argument('--broker', help='Override the MQTT broker host')
    parser.add_argument('--log-file', type=Path, default=Path('logs/territory.log'),
                        help='Path to log file (default: logs/territory.log)')
    parser.add_argument('--no-log-file', action='store_true',
                        help='Disable file logging (console only)')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    try:
        config = apply_overrides(
            TerritoryConfig.from_yaml(args.config), args.service_id, args.broker
        )
        app = TerritoryApp(
            config,
            log_file=None if args.no_log_file else args.log_file,
            log_level=getattr(logging, args.log_level),
        )
        app.setup()
        app.run()
    except (OSError, ValueError, RuntimeError) as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
