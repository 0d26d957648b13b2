"""Change-Gate: decide si una lectura difiere de la anterior del dispositivo."""

from __future__ import annotations

from typing import Optional

from ..domain.reading import Reading

# Precisión de comparación (0.01 °C / 0.01 %RH)
DECIMALS = 2


def _q(value: float) -> float:
    return round(float(value), DECIMALS)


def has_material_change(
    prior: Optional[Reading],
    temperature: float,
    humidity: Optional[float] = None,
) -> bool:
    """True si la lectura nueva debe persistirse.

    - Sin lectura previa: siempre se acepta.
    - Temperatura distinta a 2 decimales.
    - Humedad presente y distinta a 2 decimales, o presente por primera vez
      (la lectura previa no tenía humedad).

    Una humedad ausente en la lectura nueva nunca cuenta como cambio.
    """
    if prior is None:
        return True

    if _q(prior.temperature) != _q(temperature):
        return True

    if humidity is not None:
        if prior.humidity is None:
            return True
        return _q(prior.humidity) != _q(humidity)

    return False
