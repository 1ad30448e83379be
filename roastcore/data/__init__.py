"""Loading telemetry and profile files into core types."""
