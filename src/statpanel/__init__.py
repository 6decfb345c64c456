"""Terminal viewer for live system-resource telemetry."""
