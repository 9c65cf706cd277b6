"""Telemetry Lab desktop application."""
