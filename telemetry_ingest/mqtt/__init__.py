"""MQTT Receiver para telemetría.

Estructura modular:
- decoder.py: topic + payload → Reading
- receiver_stats.py: contadores y métricas Prometheus
- receiver.py: loop de recepción con reconexión
- factory.py: receptor armado desde Settings
"""

from .decoder import SUBSCRIPTION_TOPIC, decode_message
from .factory import build_receiver
from .receiver import TelemetryReceiver
from .receiver_stats import ReceiverStats

__all__ = [
    "SUBSCRIPTION_TOPIC",
    "decode_message",
    "TelemetryReceiver",
    "build_receiver",
    "ReceiverStats",
]
