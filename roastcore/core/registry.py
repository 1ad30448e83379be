from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .buffers import TemporalRingBuffer
from .codec import encode, estimate_memory_usage
from ..utils.logging import device_logger
from .models import CompressedSample, CompressionState, TelemetrySample


logger = logging.getLogger(__name__)


@dataclass
class BufferStats:
    total_points: int = 0
    memory_usage: int = 0
    is_full: bool = False
    oldest_timestamp: Optional[float] = None
    newest_timestamp: Optional[float] = None
    compression_base_timestamp: Optional[float] = None


class DeviceBufferRegistry:
    """One ring buffer and one delta-coding chain per device.

    The ingestion path calls :meth:`push`; query paths read copies through
    :meth:`get_device_data`. Buffers are created on a device's first sample.
    """

    def __init__(self, capacity: int = 3000, precision: float = 10) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.precision = precision
        self._lock = threading.RLock()
        self._buffers: Dict[str, TemporalRingBuffer[TelemetrySample]] = {}
        self._states: Dict[str, CompressionState] = {}
        # samples pushed but not yet handed to the encoder, per device
        self._pending: Dict[str, int] = {}

    def _buffer(self, device_id: str) -> Optional[TemporalRingBuffer[TelemetrySample]]:
        with self._lock:
            return self._buffers.get(device_id)

    def push(self, device_id: str, sample: TelemetrySample) -> None:
        with self._lock:
            buffer = self._buffers.get(device_id)
            if buffer is None:
                device_logger(logger, device_id).info(
                    "Initializing ring buffer", extra={"capacity": self.capacity}
                )
                buffer = TemporalRingBuffer(self.capacity)
                self._buffers[device_id] = buffer
                self._states[device_id] = CompressionState()
                self._pending[device_id] = 0
            buffer.push(sample)
            self._pending[device_id] += 1

    def devices(self) -> List[str]:
        with self._lock:
            return sorted(self._buffers)

    def get_device_data(
        self, device_id: str, start: Optional[float] = None, end: Optional[float] = None
    ) -> List[TelemetrySample]:
        buffer = self._buffer(device_id)
        if buffer is None:
            return []
        if start is None and end is None:
            return buffer.get_all()
        return buffer.get_range(
            start if start is not None else -math.inf,
            end if end is not None else math.inf,
        )

    def latest(self, device_id: str) -> Optional[TelemetrySample]:
        buffer = self._buffer(device_id)
        return buffer.latest() if buffer is not None else None

    def clear_device(self, device_id: str) -> None:
        with self._lock:
            buffer = self._buffers.get(device_id)
            if buffer is None:
                return
            buffer.clear()
            self._states[device_id] = CompressionState()
            self._pending[device_id] = 0

    def compression_state(self, device_id: str) -> Optional[CompressionState]:
        with self._lock:
            return self._states.get(device_id)

    def compress_pending(self, device_id: str) -> Tuple[List[CompressedSample], CompressionState]:
        """Encode samples pushed since the last call, continuing the device's chain.

        Pending samples are counted at push time rather than found by
        timestamp, so repeated or out-of-order timestamps are still encoded.
        Returns the compressed batch and the state needed to decode it. Samples
        evicted from the ring before being compressed are not recovered.
        """
        with self._lock:
            buffer = self._buffers.get(device_id)
            if buffer is None:
                return [], CompressionState()
            state = self._states[device_id]
            samples = buffer.get_all()
            pending = min(self._pending[device_id], len(samples))
            if pending == 0:
                return [], state
            if pending < self._pending[device_id]:
                device_logger(logger, device_id).warning(
                    f"{self._pending[device_id] - pending} samples evicted before compression"
                )
            compressed, new_state = encode(samples[-pending:], self.precision, state)
            self._states[device_id] = new_state
            self._pending[device_id] = 0
        device_logger(logger, device_id).debug(f"Compressed {len(compressed)} pending samples")
        return compressed, new_state

    def stats(self, device_id: str) -> BufferStats:
        with self._lock:
            buffer = self._buffers.get(device_id)
            state = self._states.get(device_id)
        if buffer is None:
            return BufferStats()
        points = buffer.get_all()
        return BufferStats(
            total_points=len(points),
            memory_usage=estimate_memory_usage(points),
            is_full=buffer.is_full(),
            oldest_timestamp=points[0].timestamp if points else None,
            newest_timestamp=points[-1].timestamp if points else None,
            compression_base_timestamp=(
                state.base_timestamp if state is not None and state.last_sample is not None else None
            ),
        )
