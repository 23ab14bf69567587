"""
Territory CLI - Command-line interface for territory service control.

This package provides a CLI for sending MQTT commands to the territory
service without manually writing JSON.

Usage:
    territory-cli create-layer --name Downtown --kind percentage --amount 10
    territory-cli commit-drawing ring.yaml --layer-id 2
    territory-cli classify 51.505 -0.09
    territory-cli status
"""

__version__ = "1.0.0"
