# src/shared/__init__.py
"""
Общий код HTTP API и realtime-шлюза.

Модули:
- models: модели ответов (ошибки, health, счётчики)
"""

__all__: list[str] = []
