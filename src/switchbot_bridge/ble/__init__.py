"""BLE package for SwitchBot Meter advertisements relayed by BlueZ."""

from .advertisements import METER_SERVICE_UUID, ServiceDataEvent, classify, match_service_data
from .identity import device_id_from_path, metric_device_id
from .switchbot_parse import SensorReading, decode_meter

__all__ = [
    "METER_SERVICE_UUID",
    "SensorReading",
    "ServiceDataEvent",
    "classify",
    "decode_meter",
    "device_id_from_path",
    "match_service_data",
    "metric_device_id",
]
