# src/services/realtime_ws/__init__.py
"""
Realtime WebSocket Gateway.

Обеспечивает:
- Аутентификацию соединений по JWT
- Чат клиент <-> мойщик
- Доставку уведомлений и статусов бронирований
- Трансляцию геопозиции мойщика
- Подписку на Redis Pub/Sub для работы нескольких экземпляров
"""
