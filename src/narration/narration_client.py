# src/narration/narration_client.py — v1
"""Speak page text aloud through the platform speech engine.

One narration at a time. Each ``speak`` gets a fresh process id from the
engine; a finished event whose id is not the current one (a stopped or
replaced narration) is ignored. The finished callback is a single slot:
registering a new callback replaces the old one, so a stale callback can
never fire for a newer narration.
"""

from __future__ import annotations

import logging
from typing import Callable

from pagereader.config.settings import SettingsProvider, load_settings
from pagereader.core.errors import NarrationFailed
from pagereader.narration.speech_engine import SpeechEngine, VoiceInfo, create_speech_engine

logger = logging.getLogger(__name__)

FinishedCallback = Callable[[], None]
SpeakingListener = Callable[[bool], None]

# Offered when the engine cannot list its voices.
DEFAULT_LANGUAGES = ["zh-CN", "en-US", "ja-JP", "ko-KR"]
DEFAULT_VOICES: dict[str, list[str]] = {
    "zh-CN": ["Ting-Ting", "Tingting"],
    "en-US": ["Samantha"],
}


class NarrationClient:
    """Start, stop and observe narration of page text."""

    def __init__(
        self,
        engine: SpeechEngine | None = None,
        settings_provider: SettingsProvider = load_settings,
    ) -> None:
        self._settings_provider = settings_provider
        self._engine: SpeechEngine | None = None
        self._current_id: str | None = None
        self._finished_callback: FinishedCallback | None = None
        self._speaking_listeners: list[SpeakingListener] = []
        if engine is not None:
            self._attach(engine)

    @property
    def is_speaking(self) -> bool:
        return self._current_id is not None

    @property
    def current_process_id(self) -> str | None:
        return self._current_id

    async def speak(self, text: str) -> None:
        """Stop any current narration and start speaking *text*.

        Raises:
            NarrationFailed: The engine could not start.
        """
        if self._current_id is not None:
            await self.stop()
        settings = self._settings_provider()
        engine = self._ensure_engine()
        voice = settings.tts_voice or await self._installed_voice(settings.tts_language)
        process_id = await engine.start(text, voice)
        self._current_id = process_id
        logger.info("Narration started (%d characters)", len(text))
        self._notify_speaking(True)

    async def stop(self) -> None:
        """Stop the current narration. No-op when idle."""
        process_id = self._current_id
        if process_id is None:
            return
        self._current_id = None
        self._notify_speaking(False)
        try:
            await self._ensure_engine().stop(process_id)
        except NarrationFailed as e:
            logger.warning("Failed to stop narration %s: %s", process_id, e)

    def on_finished(self, callback: FinishedCallback) -> None:
        """Install *callback* as the finished callback, replacing any other."""
        self._finished_callback = callback

    def off_finished(self, callback: FinishedCallback) -> None:
        """Remove *callback* if it is the installed one."""
        if self._finished_callback == callback:
            self._finished_callback = None

    def on_speaking_changed(self, listener: SpeakingListener) -> None:
        self._speaking_listeners.append(listener)

    def off_speaking_changed(self, listener: SpeakingListener) -> None:
        if listener in self._speaking_listeners:
            self._speaking_listeners.remove(listener)

    async def get_voices(self) -> list[VoiceInfo]:
        """Installed voices. Raises NarrationFailed if the engine cannot list them."""
        return await self._ensure_engine().list_voices()

    async def get_supported_languages(self) -> list[str]:
        """Languages with at least one installed voice."""
        try:
            voices = await self.get_voices()
        except NarrationFailed as e:
            logger.warning("Cannot list voices, using defaults: %s", e)
            return list(DEFAULT_LANGUAGES)
        languages = sorted({voice.language for voice in voices})
        return languages or list(DEFAULT_LANGUAGES)

    async def get_voices_for_language(self, language: str) -> list[str]:
        """Voice names for *language* (``en-US``, or just ``en``)."""
        try:
            voices = await self.get_voices()
        except NarrationFailed as e:
            logger.warning("Cannot list voices, using defaults: %s", e)
            return list(DEFAULT_VOICES.get(language, []))
        wanted = language.lower()
        names = [
            v.name for v in voices
            if v.language.lower() == wanted or v.language.lower().split("-")[0] == wanted
        ]
        return names or list(DEFAULT_VOICES.get(language, []))

    # --- Internals ---

    def _attach(self, engine: SpeechEngine) -> None:
        self._engine = engine
        engine.set_finished_listener(self._handle_engine_finished)

    def _ensure_engine(self) -> SpeechEngine:
        if self._engine is None:
            self._attach(create_speech_engine(self._settings_provider()))
        return self._engine  # type: ignore[return-value]

    async def _installed_voice(self, language: str) -> str | None:
        """First installed voice for *language*, or None to use the engine default."""
        if not language:
            return None
        try:
            voices = await self.get_voices()
        except NarrationFailed as e:
            logger.debug("Cannot list voices, using the engine default: %s", e)
            return None
        wanted = language.lower()
        for voice in voices:
            if voice.language.lower() == wanted:
                return voice.name
        return None

    def _handle_engine_finished(self, process_id: str) -> None:
        if process_id != self._current_id:
            logger.debug("Ignoring finished event for stale narration %s", process_id)
            return
        self._current_id = None
        logger.info("Narration finished")
        self._notify_speaking(False)
        callback = self._finished_callback
        if callback is not None:
            callback()

    def _notify_speaking(self, speaking: bool) -> None:
        for listener in list(self._speaking_listeners):
            listener(speaking)
