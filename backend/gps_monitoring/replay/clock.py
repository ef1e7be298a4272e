"""
Playback Clock

Owns the replay playhead and advances it over wall-clock time.

States:
- PAUSED: playhead frozen (initial state for every new route)
- PLAYING: each tick advances the playhead by
  elapsed_ms * speed / base_step_ms, clamped to N-1

Seeking is momentary: the playhead is set directly and the clock is left
PAUSED. Every tick re-derives its advance from the time elapsed since the
previous tick, so late or dropped ticks never drift from real time.
"""

import asyncio
import time
from enum import Enum
from typing import Callable, Optional, Sequence


DEFAULT_BASE_STEP_MS = 800.0
DEFAULT_TICK_INTERVAL = 0.1
DEFAULT_SPEED_OPTIONS = (0.25, 0.5, 1.0, 2.0, 4.0)


class PlaybackState(Enum):
    """Playback states"""
    PAUSED = "paused"
    PLAYING = "playing"


class PlaybackClock:
    """
    Time-driven replay cursor for one route

    A clock belongs to exactly one route; loading a new route means
    closing this clock and creating a new one.

    Usage:
        clock = PlaybackClock(point_count=len(points))
        clock.play()          # inside a running event loop
        ...
        clock.seek(12.5)      # scrubbing always pauses
        clock.close()
    """

    def __init__(
        self,
        point_count: int,
        base_step_ms: float = DEFAULT_BASE_STEP_MS,
        speed: float = 1.0,
        speed_options: Sequence[float] = DEFAULT_SPEED_OPTIONS,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        time_source: Callable[[], float] = time.monotonic,
        autoschedule: bool = True,
    ):
        """
        Initialize playback clock

        Args:
            point_count: Number of route points (N)
            base_step_ms: Wall-clock milliseconds per point at 1x
            speed: Initial speed multiplier (must be one of speed_options)
            speed_options: Selectable multipliers
            tick_interval: Seconds between scheduled ticks
            time_source: Monotonic clock in seconds
            autoschedule: Run ticks as an asyncio task while playing;
                when False the owner calls tick() itself
        """
        if base_step_ms <= 0:
            raise ValueError("base_step_ms must be positive")

        self.point_count = max(0, int(point_count))
        self.base_step_ms = float(base_step_ms)
        self.speed_options = tuple(float(s) for s in speed_options)
        self.tick_interval = tick_interval
        self._time_source = time_source
        self._autoschedule = autoschedule

        self.state = PlaybackState.PAUSED
        self.playhead = 0.0
        self.speed = 1.0
        self.set_speed(speed)

        self._last_tick_at: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._closed = False
        self.tick_count = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def max_playhead(self) -> float:
        return float(max(0, self.point_count - 1))

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def at_end(self) -> bool:
        return self.playhead >= self.max_playhead

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def play(self):
        """Start automatic advance (no-op if playing, at the end, or under 2 points)"""
        if self._closed or self.is_playing or self.point_count < 2 or self.at_end:
            return
        self.state = PlaybackState.PLAYING
        self._last_tick_at = self._time_source()
        self._schedule()

    def pause(self):
        """Freeze the playhead at its current value"""
        if not self.is_playing:
            return
        self.state = PlaybackState.PAUSED
        self._cancel_scheduled()

    def toggle(self):
        """Play if paused, pause if playing"""
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def reset(self):
        """Rewind to the first point and restart playback"""
        self._cancel_scheduled()
        self.state = PlaybackState.PAUSED
        self.playhead = 0.0
        self.play()

    def seek(self, value: float):
        """Set the playhead directly (clamped) and pause"""
        self._cancel_scheduled()
        self.state = PlaybackState.PAUSED
        self.playhead = min(self.max_playhead, max(0.0, float(value)))

    def set_speed(self, multiplier: float):
        """
        Change the speed multiplier

        While playing, time elapsed up to the change is credited at the
        old speed first; only later time uses the new divisor.

        Raises:
            ValueError: If multiplier is not a selectable option
        """
        multiplier = float(multiplier)
        if multiplier not in self.speed_options:
            raise ValueError(
                f"Unsupported speed {multiplier}x (options: {list(self.speed_options)})"
            )
        if self.is_playing:
            self.tick()
        self.speed = multiplier

    def close(self):
        """Cancel any pending tick; the clock never advances again"""
        self._closed = True
        self._cancel_scheduled()
        self.state = PlaybackState.PAUSED

    # ------------------------------------------------------------------
    # Advance
    # ------------------------------------------------------------------

    def step_duration_ms(self) -> float:
        """Wall-clock milliseconds per point at the current speed"""
        return self.base_step_ms / self.speed

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Advance the playhead by the wall-clock time since the last tick

        Args:
            now: Current time from the clock's time source (default: read it)

        Returns:
            True if the playhead moved
        """
        if self._closed or not self.is_playing:
            return False

        now = self._time_source() if now is None else now
        last = self._last_tick_at if self._last_tick_at is not None else now
        self._last_tick_at = now
        elapsed_ms = max(0.0, (now - last) * 1000.0)
        self.tick_count += 1

        before = self.playhead
        self.playhead = min(self.max_playhead, self.playhead + elapsed_ms / self.step_duration_ms())

        if self.at_end:
            self.state = PlaybackState.PAUSED
            self._cancel_scheduled(current_task_ok=True)

        return self.playhead != before

    def _schedule(self):
        if not self._autoschedule:
            return
        if self._task is not None and not self._task.done():
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(self._generation))

    def _cancel_scheduled(self, current_task_ok: bool = False):
        self._generation += 1
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        if current_task_ok and task is asyncio.current_task():
            return
        task.cancel()

    async def _run(self, generation: int):
        """Tick loop; exits as soon as its generation is superseded"""
        try:
            while generation == self._generation and self.is_playing:
                await asyncio.sleep(self.tick_interval)
                if generation != self._generation:
                    return
                self.tick()
        except asyncio.CancelledError:
            return

    async def wait_idle(self):
        """Wait for the scheduled tick task (if any) to finish"""
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def get_status(self) -> dict:
        """Get clock status"""
        return {
            "state": self.state.value,
            "playhead": self.playhead,
            "pointCount": self.point_count,
            "speed": self.speed,
            "speedOptions": list(self.speed_options),
            "stepDurationMs": self.step_duration_ms(),
            "atEnd": self.at_end,
        }
