"""Núcleo del servicio de telemetría HeatSync.

Estructura:
- domain/      → Modelos de dominio y errores
- validation/  → Validación de payloads y reglas
- adapters/    → Conversión payload → Dominio
- storage/     → Lecturas, agregados, reglas y dispositivos
- alerts/      → Evaluación de reglas y notificación
- fanout/      → Broadcast en tiempo real (Redis)
- pipeline/    → Procesamiento y carriles por dispositivo
- transport/   → MQTT
- monitoring/  → Stats, health y métricas
"""
