"""Bluetooth remote control for an RC kart."""
