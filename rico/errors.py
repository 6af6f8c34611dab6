"""Иерархия исключений RICO.

Фатальные ошибки (`DiscoveryError`, `ConfigError`) прерывают запуск целиком,
остальные возникают внутри задачи и превращаются планировщиком в `Outcome.failed`.
"""
from __future__ import annotations


class RicoError(Exception):
    """Базовое исключение приложения."""


class DiscoveryError(RicoError):
    """Исходная директория отсутствует или не является директорией."""


class ConfigError(RicoError):
    """Файл конфигурации не читается или содержит неверные значения."""


class UnsupportedTargetFormat(RicoError, ValueError):
    """Запрошенный формат вывода не поддерживается."""


class DecodeError(RicoError, ValueError):
    """Байты файла не удалось декодировать в изображение."""


class EncodeError(RicoError):
    """Не удалось закодировать буфер пикселей в целевой формат."""
