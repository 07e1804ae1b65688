"""Smoke test to verify the toolchain works."""


def test_import_fleet_telemetry():
    """Verify the fleet_telemetry package can be imported."""
    import fleet_telemetry

    assert fleet_telemetry.__version__


def test_subpackages_importable():
    """Verify all subpackages can be imported."""
    import fleet_telemetry.behavior
    import fleet_telemetry.config
    import fleet_telemetry.geofence
    import fleet_telemetry.scoring
    import fleet_telemetry.track

    assert fleet_telemetry.behavior is not None
    assert fleet_telemetry.config is not None
    assert fleet_telemetry.geofence is not None
    assert fleet_telemetry.scoring is not None
    assert fleet_telemetry.track is not None
