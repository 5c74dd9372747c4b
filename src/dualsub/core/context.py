"""Playback context shared by every component of one player session.

The context replaces ambient globals: the orchestrator owns it and passes it
to each component call. ``epoch`` increases whenever the video or the
translation settings change, so async work can tell whether the world it
was started in still exists.
"""

from __future__ import annotations

from dataclasses import dataclass

from dualsub.core.config import DualSubConfig, effective_source_language
from dualsub.core.languages import AUTO, detect_language


@dataclass
class PlaybackContext:
    config: DualSubConfig
    video_id: str = ""
    epoch: int = 0

    def bump(self) -> int:
        """Invalidate everything captured under the current epoch."""
        self.epoch += 1
        return self.epoch

    def is_current(self, epoch: int) -> bool:
        return epoch == self.epoch

    @property
    def model(self) -> str:
        return self.config.translation.model

    @property
    def target_lang(self) -> str:
        return self.config.translation.target_lang

    def source_lang_for(self, text: str) -> str:
        """Effective source language, falling back to script detection."""
        source = effective_source_language(self.config)
        if source.lower() == AUTO:
            return detect_language(text) or source
        return source
