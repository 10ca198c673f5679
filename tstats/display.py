"""Terminal presentation: a tqdm progress bar driven by pipeline events."""
from __future__ import annotations

import sys
from typing import IO, Optional

from tqdm import tqdm

from tstats.pipeline import PipelineResult, PipelineState, ProgressEvent

# Bar position reached when each state is entered.
STEP_POSITIONS = {
    PipelineState.CHECKING_CACHE: 0,
    PipelineState.FETCHING_IP: 1,
    PipelineState.FETCHING_GEO: 2,
    PipelineState.FETCHING_WEATHER: 3,
    PipelineState.DONE: 4,
}
TOTAL_STEPS = STEP_POSITIONS[PipelineState.DONE]


class ProgressDisplay:
    """
    Pipeline listener that renders progress on stderr.

    The bar only reads events; it never touches pipeline state. A cache hit
    jumps straight from the first position to the end.
    """

    def __init__(self, *, file: Optional[IO[str]] = None, disable: bool = False) -> None:
        self.file = file
        self.disable = disable
        self._bar: Optional[tqdm] = None

    def __call__(self, event: ProgressEvent) -> None:
        if self._bar is None:
            self._bar = tqdm(
                total=TOTAL_STEPS,
                desc=event.label,
                file=self.file or sys.stderr,
                disable=self.disable,
                leave=False,
                bar_format="{desc}: {bar} {n_fmt}/{total_fmt}",
            )
        bar = self._bar

        position = STEP_POSITIONS.get(event.state)
        if position is not None and position > bar.n:
            bar.update(position - bar.n)
        bar.set_description_str(event.label)

        if event.state.terminal:
            bar.close()
            self._bar = None


def format_result(result: PipelineResult) -> str:
    """Render the location block followed by city, temperature and conditions."""
    geo = result.geolocation
    weather = result.weather
    lines = [
        "---",
        f"Location Found: {geo.city}, {geo.country}",
        f"Internet Provider: {geo.isp}",
        f"Coordinates: Latitude={geo.latitude:f}, Longitude={geo.longitude:f}",
        "---",
        "",
        geo.city,
        f"{weather.temperature:.1f}{weather.temperature_unit}",
        weather.description,
    ]
    return "\n".join(lines)


def print_result(result: PipelineResult, stream: Optional[IO[str]] = None) -> None:
    print(format_result(result), file=stream or sys.stdout)
