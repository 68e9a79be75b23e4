# src/services/__init__.py
"""
Процессы приложения.

Сервисы:
- api: HTTP API (бронирования, лента заказов, платежи, чат, уведомления, оценки)
- realtime_ws: WebSocket-шлюз (чат, уведомления, статусы бронирований, геопозиция мойщика)

Общая PostgreSQL, Redis Pub/Sub между API и шлюзами,
RabbitMQ для доменных событий (опционально).
"""

__all__: list[str] = []
