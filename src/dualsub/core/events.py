"""Event types flowing into and out of the playback orchestrator.

Settings changes come from the outside (an options page, a config reload);
caption frames go out to whatever renders them. Consumers register a plain
callback, no subscription machinery.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from dualsub.core.config import DualSubConfig, diff_settings
from dualsub.core.models import CaptionFrame


@dataclass(frozen=True)
class SettingsChangeEvent:
    """A settings update.

    Attributes:
        previous: Settings in effect before the change.
        next: Settings to apply.
    """

    previous: DualSubConfig
    next: DualSubConfig

    @property
    def changed(self) -> set[str]:
        return diff_settings(self.previous, self.next)


FrameCallback = Callable[[CaptionFrame], None]
