#!/usr/bin/env python3
"""
Server lifecycle for MediaShelf
Builds the shared application state and runs the HTTP server in a background
thread so a desktop shell (or the CLI) can start and stop it on demand.
"""

import logging
import socket
import threading
import time
from typing import Any, Dict, Optional

import uvicorn

from config import ServerConfig
from errors import MediaShelfError, PortInUseError, ServerAlreadyRunningError
from playback import PlaybackTracker
from scanner import MediaScanner
from storage import StorageManager
from tags import TagReader
from webui.api.deps import AppContext
from webui.main import create_app
from webui.services.control_service import ControlService


STARTUP_TIMEOUT = 10.0
SHUTDOWN_TIMEOUT = 10.0


def bind_socket(host: str, port: int) -> socket.socket:
    """
    Bind a listening TCP socket

    Raises:
        PortInUseError: If the address cannot be bound
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise PortInUseError(port) from e
    sock.set_inheritable(True)
    return sock


class MediaServer:
    """Owns the storage, scanner and HTTP server of one data directory"""

    def __init__(self, config: ServerConfig, logger: Optional[logging.Logger] = None,
                 tag_reader: Optional[TagReader] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self.storage = StorageManager(config.data_dir, self.logger)
        self.storage.init()
        self.tracker = PlaybackTracker(self.storage)
        self.scanner = MediaScanner(self.storage, config, tag_reader=tag_reader, logger=self.logger)
        self.control = ControlService(self.storage, self.scanner,
                                      status_provider=self.status, logger=self.logger)
        self.context = AppContext(
            config=config,
            storage=self.storage,
            tracker=self.tracker,
            control=self.control,
            logger=self.logger,
        )
        self.app = create_app(self.context)

        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._port: Optional[int] = None
        self._sock: Optional[socket.socket] = None
        self._lock = threading.Lock()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def get_port(self) -> Optional[int]:
        return self._port if self.is_running() else None

    def status(self) -> Dict[str, Any]:
        return {'running': self.is_running(), 'port': self.get_port()}

    def start(self, port: Optional[int] = None) -> int:
        """
        Start serving in a background thread

        Args:
            port: Port to listen on (saved settings port if None, 0 for any free port)

        Returns:
            The port the server listens on; it is saved to the settings

        Raises:
            ServerAlreadyRunningError: If the server is already running
            PortInUseError: If the port cannot be bound
            MediaShelfError: If the server did not come up in time
        """
        with self._lock:
            if self.is_running():
                raise ServerAlreadyRunningError(self._port)

            if port is None:
                port = self.storage.get_settings().port

            sock = bind_socket(self.config.host, port)
            bound_port = sock.getsockname()[1]

            uv_config = uvicorn.Config(
                self.app,
                log_level="debug" if self.config.verbose else "warning",
                access_log=self.config.verbose,
            )
            server = uvicorn.Server(uv_config)
            thread = threading.Thread(
                target=server.run,
                kwargs={'sockets': [sock]},
                name=f"mediashelf-http-{bound_port}",
                daemon=True,
            )
            thread.start()

            deadline = time.monotonic() + STARTUP_TIMEOUT
            while not server.started and thread.is_alive() and time.monotonic() < deadline:
                time.sleep(0.05)

            if not server.started:
                server.should_exit = True
                thread.join(SHUTDOWN_TIMEOUT)
                sock.close()
                raise MediaShelfError(f"Server failed to start on port {bound_port}")

            self._server = server
            self._thread = thread
            self._port = bound_port
            self._sock = sock

        self.logger.info(f"Server running at http://{self.config.host}:{bound_port}")
        try:
            self.storage.update_settings(lambda settings: setattr(settings, 'port', bound_port))
        except OSError as e:
            self.logger.warning(f"Could not save port {bound_port} to settings: {e}")
        return bound_port

    def stop(self) -> bool:
        """
        Stop the server and wait for it to shut down

        Returns:
            True if a running server was stopped
        """
        with self._lock:
            if not self.is_running():
                return False
            self._server.should_exit = True
            self._thread.join(SHUTDOWN_TIMEOUT)
            self._sock.close()
            port = self._port
            self._sock = None
            self._server = None
            self._thread = None
            self._port = None
        self.logger.info(f"Server on port {port} stopped")
        return True

    def serve_forever(self, port: Optional[int] = None) -> None:
        """Start the server and block until interrupted"""
        self.start(port)
        thread = self._thread
        try:
            while thread.is_alive():
                thread.join(0.5)
        except KeyboardInterrupt:
            self.logger.info("Interrupted, shutting down")
        finally:
            self.stop()
