"""Receptor MQTT de telemetría.

Usa paho-mqtt para recibir lecturas de ``device/+/+`` y las persiste con
el TimeSeriesWriter.

El cliente paho no corre su propio thread (no ``loop_start``): un único
thread del receptor ejecuta ``run()``, que llama a ``client.loop()`` en
un loop bloqueante. Cada mensaje se decodifica e inserta dentro de esa
llamada, así que se procesa completo (o se descarta) antes de leer el
siguiente. La reconexión con backoff vive en el mismo loop.

Flujo:
  MQTT topic device/{deviceId}/{metric}
  → decode_message
  → TimeSeriesWriter.append
  → tabla telemetry
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

import paho.mqtt.client as mqtt

from ..core.domain import BrokerConnectionError, DecodeError, Reading, WriteError
from ..infrastructure.persistence import TimeSeriesWriter
from ..ingest.resilience import RetryConfig
from .decoder import SUBSCRIPTION_TOPIC, decode_message
from .receiver_stats import MQTT_RECEIVER_CONNECTED, ReceiverStats

logger = logging.getLogger(__name__)


class TelemetryReceiver:
    """Receptor MQTT que decodifica y persiste lecturas de telemetría."""

    def __init__(
        self,
        writer: TimeSeriesWriter,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "telemetry-ingest",
        qos: int = 0,
        keepalive: int = 60,
        retry: Optional[RetryConfig] = None,
        loop_timeout: float = 1.0,
        client_factory: Optional[Callable[[], Any]] = None,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.client_id = f"{client_id}-{int(time.time())}"
        self.qos = qos
        self.keepalive = keepalive

        self._writer = writer
        self._retry = retry or RetryConfig()
        self._loop_timeout = loop_timeout
        self._client_factory = client_factory or self._create_client
        self._on_fatal = on_fatal

        self._client: Optional[Any] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False
        self._connected = False
        self._failures = 0
        self._fatal_error: Optional[BaseException] = None

        # Stats
        self._stats = ReceiverStats()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Lanza el loop de recepción en un thread dedicado."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("[MQTT] Receiver already running")
            return

        self._stop_event.clear()
        self._fatal_error = None
        self._thread = threading.Thread(
            target=self._run_guarded,
            name="telemetry-mqtt-receiver",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 10.0) -> None:
        """Deja de aceptar mensajes y espera a que termine el mensaje en curso."""
        self._stop_event.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("[MQTT] Receiver thread did not stop within %.1fs", timeout)

        logger.info("[MQTT] Stopped. %s", self._stats)

    def wait(self, timeout: Optional[float] = None) -> None:
        """Bloquea hasta que el thread termina; re-lanza un error fatal."""
        if self._thread is not None:
            self._thread.join(timeout)
        if self._fatal_error is not None:
            raise self._fatal_error

    def _run_guarded(self) -> None:
        try:
            self.run()
        except BrokerConnectionError as e:
            self._fatal_error = e
            logger.critical("[MQTT] Ingestion stopped: %s", e)
            if self._on_fatal is not None:
                self._on_fatal(e)
        except Exception as e:
            self._fatal_error = e
            logger.exception("[MQTT] Receiver loop crashed: %s", e)
            if self._on_fatal is not None:
                self._on_fatal(e)

    # ------------------------------------------------------------------
    # Receive loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Loop de recepción bloqueante; vuelve cuando se llama a ``stop()``.

        Raises:
            BrokerConnectionError: si se agotan los reintentos de conexión
        """
        client = self._client_factory()
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        self._client = client
        self._running = True

        socket_open = False
        self._failures = 0
        logger.info("[MQTT] Receiver loop started (%s)", self.client_id)

        try:
            while not self._stop_event.is_set():
                if not socket_open:
                    if self._failures > 0 and not self._backoff():
                        break
                    socket_open = self._connect(client)
                    if not socket_open:
                        continue

                rc = client.loop(timeout=self._loop_timeout)
                if rc != mqtt.MQTT_ERR_SUCCESS:
                    socket_open = False
                    self._set_connected(False)
                    self._failures += 1
                    logger.warning(
                        "[MQTT] Connection lost (rc=%s), failures=%d",
                        rc,
                        self._failures,
                    )
        finally:
            self._running = False
            self._set_connected(False)
            if socket_open:
                try:
                    client.disconnect()
                except Exception as e:
                    logger.warning("[MQTT] Error disconnecting: %s", e)

    def _connect(self, client: Any) -> bool:
        logger.info("[MQTT] Connecting to %s:%d", self.broker_host, self.broker_port)
        try:
            client.connect(self.broker_host, self.broker_port, keepalive=self.keepalive)
            return True
        except OSError as e:
            self._failures += 1
            logger.warning(
                "[MQTT] Connect to %s:%d failed (%s), failures=%d",
                self.broker_host,
                self.broker_port,
                e,
                self._failures,
            )
            return False

    def _backoff(self) -> bool:
        """Espera antes de reconectar. False si se pidió stop durante la espera."""
        if self._retry.is_exhausted(self._failures):
            raise BrokerConnectionError(
                f"broker {self.broker_host}:{self.broker_port} unreachable after "
                f"{self._failures} consecutive failures",
                attempts=self._failures,
            )

        delay = self._retry.calculate_delay(self._failures)
        logger.info("[MQTT] Reconnecting in %.2fs (attempt %d)", delay, self._failures)
        if self._stop_event.wait(delay):
            return False
        self._stats.record_reconnect()
        return True

    # ------------------------------------------------------------------
    # paho callbacks (se ejecutan dentro de client.loop())
    # ------------------------------------------------------------------

    def _create_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
        )
        if self.username and self.password:
            client.username_pw_set(self.username, self.password)
        return client

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de conexión."""
        if reason_code.is_failure:
            self._set_connected(False)
            logger.error("[MQTT] Connection refused: %s", reason_code)
            return

        self._set_connected(True)
        self._failures = 0
        logger.info("[MQTT] Connected to broker")

        # Suscribirse en cada conexión: tras reconectar la sesión es nueva
        client.subscribe(SUBSCRIPTION_TOPIC, qos=self.qos)
        logger.info("[MQTT] Subscribed to %s qos=%d", SUBSCRIPTION_TOPIC, self.qos)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """Callback de desconexión."""
        self._set_connected(False)
        if self._stop_event.is_set():
            return
        logger.warning("[MQTT] Disconnected (%s)", reason_code)

    def _on_message(self, client, userdata, msg):
        self.handle_message(msg.topic, msg.payload)

    def _set_connected(self, connected: bool) -> None:
        self._connected = connected
        MQTT_RECEIVER_CONNECTED.set(1 if connected else 0)

    # ------------------------------------------------------------------
    # Message processing
    # ------------------------------------------------------------------

    def handle_message(self, topic: str, payload: bytes) -> Optional[Reading]:
        """Decodifica y persiste un mensaje.

        Nunca lanza: un mensaje inválido o un INSERT fallido se cuenta y
        se descarta, y el stream sigue con el próximo mensaje.

        Returns:
            La lectura persistida, o None si se descartó
        """
        self._stats.record_received(time.time())
        start_time = time.perf_counter()

        try:
            reading = decode_message(topic, payload)
        except DecodeError as e:
            self._stats.record_decode_error()
            logger.warning("[MQTT] Dropped %s: %s (topic=%s)", e.kind.value, e, topic)
            return None

        try:
            stored = self._writer.append(reading)
        except WriteError as e:
            self._stats.record_write_error()
            logger.warning("[MQTT] Dropped reading, write failed: %s (topic=%s)", e, topic)
            return None
        except Exception as e:
            self._stats.record_failure()
            logger.exception("[MQTT] Processing error: %s (topic=%s)", e, topic)
            return None

        self._stats.record_persisted(time.perf_counter() - start_time)

        # Log periódico
        if self._stats.persisted % 100 == 0:
            logger.info("[MQTT] %s", self._stats)

        return stored

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def fatal_error(self) -> Optional[BaseException]:
        return self._fatal_error

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "connected": self._connected,
            "broker": f"{self.broker_host}:{self.broker_port}",
            "topic": SUBSCRIPTION_TOPIC,
            "qos": self.qos,
            **self._stats.to_dict(),
        }

    def health_check(self) -> dict:
        last = self._stats.last_message_at
        return {
            "healthy": self._running and self._connected,
            "running": self._running,
            "connected": self._connected,
            "messages_persisted": self._stats.persisted,
            "messages_dropped": self._stats.dropped,
            "fatal_error": str(self._fatal_error) if self._fatal_error else None,
            "last_message_age_seconds": time.time() - last if last > 0 else None,
        }
