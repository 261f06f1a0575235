# src/flowgraph_sync/core/session/realtime.py
"""
RealtimeDiffTicker — timer periódico e cancelável do modo realtime.

A cada intervalo chama `tick()` (na sessão: recalcula o diff contra o
baseline e publica se não estiver vazio).

Decisões arquiteturais:
    - Thread daemon única com `threading.Event` para parada cooperativa
    - `start()` com o ticker já ativo é no-op
    - `stop()` é idempotente
    - Exceções do tick são registradas no SessionContext e o laço continua;
      um tick ruim não derruba o modo realtime
    - Ticks não se sobrepõem: o próximo só é agendado após o anterior
    - A exclusão contra save/undo/redo fica na sessão (lock em
      `broadcast_changes`), não no ticker
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable, Optional

from ..exceptions import exception_to_error

if TYPE_CHECKING:
    from .context import SessionContext


class RealtimeDiffTicker:
    def __init__(
        self,
        interval_s: float,
        tick: Callable[[], None],
        ctx: Optional["SessionContext"] = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self.interval_s = interval_s
        self.tick = tick
        self.ctx = ctx
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop.is_set()

    def start(self) -> bool:
        """Inicia o ticker; retorna False se já estava ativo."""
        with self._lock:
            if self.running:
                return False
            self._stop = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop,),
                name="flowgraph-realtime",
                daemon=True,
            )
            self._thread.start()
        self._log("info", "realtime started", interval_s=self.interval_s)
        return True

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Para o ticker; retorna False se já estava parado."""
        with self._lock:
            thread = self._thread
            if thread is None:
                return False
            self._stop.set()
            self._thread = None
        if thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self.interval_s * 4)
        self._log("info", "realtime stopped")
        return True

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval_s):
            try:
                self.tick()
            except Exception as exc:  # noqa: BLE001
                err = exception_to_error(exc)
                self._log("error", err.message, error=err.to_dict())

    def _log(self, level: str, message: str, **extra) -> None:
        if self.ctx is not None:
            self.ctx.log(scope="realtime", level=level, message=message, **extra)
