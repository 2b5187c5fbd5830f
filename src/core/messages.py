# src/core/messages.py — v1
"""Localized, user-facing messages for the error taxonomy."""

from __future__ import annotations

from pagereader.core.errors import (
    ConfigurationMissing,
    PageReaderError,
    ProviderRequestFailed,
)

_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "generic": "Something went wrong: {detail}",
        "configuration_missing": "{component} is not configured. Please set: {fields}.",
        "provider_failed": "The {provider} service failed: {reason}",
        "recognition_failed": "Text recognition failed: {reason}",
        "translation_failed": "Translation failed: {reason}",
        "narration_failed": "Reading aloud failed: {reason}",
        "render_failed": "The page could not be rendered: {detail}",
        "cancelled": "",
        "cache_unavailable": "The page cache is unavailable: {detail}",
        "no_text": "No text was found on this page.",
    },
    "zh-CN": {
        "generic": "出现错误：{detail}",
        "configuration_missing": "{component} 尚未配置，请设置：{fields}。",
        "provider_failed": "{provider} 服务请求失败：{reason}",
        "recognition_failed": "文字识别失败：{reason}",
        "translation_failed": "翻译失败：{reason}",
        "narration_failed": "朗读失败：{reason}",
        "render_failed": "页面渲染失败：{detail}",
        "cancelled": "",
        "cache_unavailable": "页面缓存不可用：{detail}",
        "no_text": "未在此页面中识别到文字。",
    },
}

DEFAULT_LANGUAGE = "en"


def _catalog(language: str) -> dict[str, str]:
    return _MESSAGES.get(language, _MESSAGES[DEFAULT_LANGUAGE])


def message(key: str, language: str = DEFAULT_LANGUAGE, **values: object) -> str:
    """Look up a message by key and format it."""
    template = _catalog(language).get(key) or _MESSAGES[DEFAULT_LANGUAGE][key]
    return template.format(**values)


def user_message(error: BaseException, language: str = DEFAULT_LANGUAGE) -> str:
    """Render *error* for display. Cancellation renders as an empty string."""
    key = error.message_key if isinstance(error, PageReaderError) else "generic"
    values: dict[str, object] = {"detail": str(error)}
    if isinstance(error, ConfigurationMissing):
        values.update(component=error.component, fields=", ".join(error.fields))
    elif isinstance(error, ProviderRequestFailed):
        values.update(provider=error.provider, reason=error.reason)
    return message(key, language, **values)
