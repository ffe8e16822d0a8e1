"""Bluetooth Low Energy host helpers: advertising data, UUIDs, GATT service and server definitions, and sizing configuration."""

__version__ = "0.1.0"