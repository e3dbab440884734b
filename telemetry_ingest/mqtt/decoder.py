"""Decoder de mensajes MQTT de telemetría.

Convierte (topic, payload) en un ``Reading`` validado.

Formato esperado:
    topic   device/{deviceId}/{metric}
    payload "23.5"   (número decimal en UTF-8)

Función pura: sin I/O, determinista. El timestamp queda sin asignar;
lo pone el writer al persistir.
"""

from __future__ import annotations

import math
import re

from ..core.domain import InvalidValueError, MalformedTopicError, Reading

TOPIC_PREFIX = "device"
SUBSCRIPTION_TOPIC = f"{TOPIC_PREFIX}/+/+"

# Número decimal plano con dígitos ASCII: sin nan/inf, sin "_" ni dígitos Unicode que float() aceptaría.
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def split_topic(topic: str) -> tuple[str, str]:
    """Devuelve (device_id, metric) o lanza MalformedTopicError."""
    parts = topic.split("/")
    if len(parts) != 3:
        raise MalformedTopicError(
            f"expected 3 topic segments, got {len(parts)}", topic=topic
        )

    prefix, device_id, metric = parts
    # La suscripción device/+/+ ya filtra esto; se mantiene como invariante.
    if prefix != TOPIC_PREFIX:
        raise MalformedTopicError(
            f"topic prefix must be {TOPIC_PREFIX!r}, got {prefix!r}", topic=topic
        )
    if not device_id:
        raise MalformedTopicError("empty deviceId segment", topic=topic)
    if not metric:
        raise MalformedTopicError("empty metric segment", topic=topic)

    return device_id, metric


def parse_value(payload: bytes, *, topic: str = "") -> float:
    """Parsea el payload como float64 finito o lanza InvalidValueError."""
    try:
        text = payload.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise InvalidValueError(f"payload is not valid UTF-8: {e}", topic=topic) from None

    if not _DECIMAL_RE.fullmatch(text):
        raise InvalidValueError(f"payload is not a decimal number: {text[:64]!r}", topic=topic)

    value = float(text)
    if not math.isfinite(value):
        raise InvalidValueError(f"payload out of float64 range: {text[:64]!r}", topic=topic)
    return value


def decode_message(topic: str, payload: bytes) -> Reading:
    """Decodifica un mensaje MQTT.

    Args:
        topic: Topic completo, p.ej. ``device/dev-001/temperature``
        payload: Bytes crudos del mensaje

    Returns:
        Reading con device_id, metric y value (timestamp=None)

    Raises:
        MalformedTopicError: topic con != 3 segmentos, prefijo distinto
            de ``device`` o segmentos vacíos
        InvalidValueError: payload no numérico
    """
    device_id, metric = split_topic(topic)
    value = parse_value(payload, topic=topic)
    return Reading(device_id=device_id, metric=metric, value=value)
