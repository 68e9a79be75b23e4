# src/services/api/__init__.py
"""
HTTP API: бронирования, заказы мойщиков, платежи, чат, уведомления, оценки.
"""
