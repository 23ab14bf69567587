"""
Territory CLI - Main entry point.

Provides command-line interface for sending MQTT commands to the territory
service.
"""

import argparse
import json
import yaml
import sys
from pathlib import Path
from typing import Dict, Any, Optional

from .mqtt_client import MQTTCommandClient


# Subcommands that only carry a layer id, mapped to the command they send
LAYER_ID_COMMANDS = {
    'select-layer': 'select_layer',
    'start-drawing': 'start_drawing',
    'cancel-drawing': 'cancel_drawing',
    'start-editing': 'start_editing',
    'cancel-editing': 'cancel_editing',
    'clear-geometry': 'clear_geometry',
    'delete-layer': 'delete_layer',
}


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load YAML (or JSON, which YAML accepts) configuration file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(config, dict):
        raise ValueError(f"Expected a mapping in {config_path}")
    return config


def _adder_fields(args) -> Dict[str, Any]:
    fields = {}
    if args.kind is not None:
        fields['kind'] = args.kind
    if args.amount is not None:
        fields['amount'] = args.amount
    return fields


def _geometry_command(command: str, args) -> Dict[str, Any]:
    payload = {'command': command, 'geometry': load_yaml_config(args.geometry)}
    if args.layer_id is not None:
        payload['layer_id'] = args.layer_id
    return payload


def build_command(args) -> Optional[Dict[str, Any]]:
    """
    Translate parsed CLI arguments into a control-plane command payload.

    Returns:
        Command dict, or None if args.command is unknown
    """
    if args.command in LAYER_ID_COMMANDS:
        return {'command': LAYER_ID_COMMANDS[args.command], 'layer_id': args.layer_id}

    if args.command == 'create-layer':
        command = {'command': 'create_layer', **_adder_fields(args)}
        if args.name is not None:
            command['name'] = args.name
        return command

    if args.command == 'rename-layer':
        return {'command': 'rename_layer', 'layer_id': args.layer_id, 'name': args.name}

    if args.command == 'set-adder':
        return {'command': 'set_adder', 'layer_id': args.layer_id, **_adder_fields(args)}

    if args.command == 'commit-drawing':
        return _geometry_command('commit_drawing', args)

    if args.command == 'commit-editing':
        return _geometry_command('commit_editing', args)

    if args.command == 'classify':
        return {'command': 'classify', 'lat': args.lat, 'lng': args.lng}

    if args.command == 'export':
        return {'command': 'export_layers', 'format': args.format}

    if args.command == 'render':
        command = {'command': 'render'}
        if args.output is not None:
            command['output_path'] = args.output
        return command

    if args.command == 'send':
        return load_yaml_config(args.config)

    if args.command == 'status':
        return {'command': 'status'}

    return None


def send_command(
    command: Dict[str, Any],
    service_id: str = "pricing_01",
    broker: str = "localhost",
    port: int = 1883,
    wait: Optional[float] = None
) -> Optional[Dict[str, Any]]:
    """
    Send command to the territory service via MQTT.

    With wait (seconds), block for the reply on the status topic, print
    and return it. Raises TimeoutError when no reply arrives in time.
    """
    topic = f"territory/control/{service_id}/commands"
    client = MQTTCommandClient(broker=broker, port=port)

    if wait is None:
        client.send_command(topic, command, qos=1)
        print(f"✅ Command sent: {command.get('command', 'unknown')}")
        return None

    reply_topic = f"territory/control/{service_id}/status"
    reply = client.request(topic, reply_topic, command, qos=1, timeout=wait)
    if reply is None:
        raise TimeoutError(f"No reply from service '{service_id}' within {wait}s")
    print(json.dumps(reply, indent=2))
    return reply


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Territory CLI - Send MQTT commands to the territory service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a layer with a 10% adder
  territory-cli create-layer --name "Downtown" --kind percentage --amount 10

  # Draw and commit a polygon (YAML/JSON with geometryRing or GeoJSON)
  territory-cli start-drawing 2
  territory-cli commit-drawing config/commands/downtown_ring.yaml --layer-id 2

  # Edit, then restore
  territory-cli start-editing 2
  territory-cli cancel-editing 2

  # Classify a coordinate and print the matching adders
  territory-cli --wait 5 classify 51.505 -0.09

  # Export and render
  territory-cli export --format geojson
  territory-cli render --output renders/territories.png

  # Raw command from YAML
  territory-cli send config/commands/create_layer.yaml
"""
    )

    # Global arguments
    parser.add_argument(
        "--service-id",
        default="pricing_01",
        help="Target service ID (default: pricing_01)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )
    parser.add_argument(
        "--wait",
        type=float,
        metavar="SECONDS",
        help="Wait for the service reply and print it"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    create = subparsers.add_parser('create-layer', help='Create a layer')
    create.add_argument('--name', help='Display name')
    create.add_argument('--kind', help='Adder kind (percentage, perUnitArea, flatFee)')
    create.add_argument('--amount', help='Adder amount')

    for name, command in LAYER_ID_COMMANDS.items():
        sub = subparsers.add_parser(name, help=f"Send {command}")
        sub.add_argument('layer_id', type=int, help='Layer ID')

    rename = subparsers.add_parser('rename-layer', help='Rename a layer')
    rename.add_argument('layer_id', type=int, help='Layer ID')
    rename.add_argument('name', help='New name')

    adder = subparsers.add_parser('set-adder', help="Set a layer's adder")
    adder.add_argument('layer_id', type=int, help='Layer ID')
    adder.add_argument('--kind', help='Adder kind (percentage, perUnitArea, flatFee)')
    adder.add_argument('--amount', help='Adder amount')

    for name in ('commit-drawing', 'commit-editing'):
        sub = subparsers.add_parser(name, help='Commit a polygon from a YAML/JSON file')
        sub.add_argument('geometry', help='Path to geometry file')
        sub.add_argument('--layer-id', type=int, help='Target layer ID')

    classify = subparsers.add_parser('classify', help='Classify a coordinate')
    classify.add_argument('lat', help='Latitude')
    classify.add_argument('lng', help='Longitude')

    export = subparsers.add_parser('export', help='Export layers')
    export.add_argument('--format', choices=['json', 'geojson'], default='json')

    render = subparsers.add_parser('render', help='Render layers to an image')
    render.add_argument('--output', help='Output image path')

    send = subparsers.add_parser('send', help='Send a raw command from YAML')
    send.add_argument('config', help='Path to command YAML')

    subparsers.add_parser('status', help='Query service status')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        command = build_command(args)
        send_command(command, args.service_id, args.broker, args.port, wait=args.wait)
    except (OSError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
