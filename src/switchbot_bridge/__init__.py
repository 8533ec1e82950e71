"""SwitchBot Bridge - SwitchBot Meter advertisements to statsd."""

__version__ = "0.1.0"

from .bridge import Bridge, run_bridge
from .config import load_config, AppConfig
from .ble.switchbot_parse import SensorReading, decode_meter
from .statsd_output import StatsdReporter

__all__ = [
    "AppConfig",
    "Bridge",
    "SensorReading",
    "StatsdReporter",
    "decode_meter",
    "load_config",
    "run_bridge",
]
