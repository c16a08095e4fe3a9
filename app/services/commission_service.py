"""
Lógica de comisiones: reparto de cada sesión entre instituto y profesional.
Funciones puras con aritmética Decimal, redondeo half-up a 2 decimales.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CommissionSplit:
    """Reparto de un ingreso: lo que se adeuda al instituto y lo que retiene el profesional."""
    institute_share: Decimal
    professional_share: Decimal

    @property
    def total(self) -> Decimal:
        return self.institute_share + self.professional_share


def to_decimal(value) -> Decimal:
    """Convierte float/int/str/None a Decimal (None → 0)."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value) -> Decimal:
    """Redondea a 2 decimales con half-up (el redondeo que se persiste)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_commission(percent) -> Decimal:
    """
    Ajusta un porcentaje de comisión al rango [0, 100].
    Un valor fuera de rango se lleva al límite más cercano en lugar de rechazarse,
    así nunca se producen repartos negativos.
    """
    value = round2(percent)
    if value < ZERO:
        logger.warning(f"Comisión {value}% fuera de rango, se ajusta a 0%")
        return round2(ZERO)
    if value > HUNDRED:
        logger.warning(f"Comisión {value}% fuera de rango, se ajusta a 100%")
        return round2(HUNDRED)
    return value


def compute_split(session_revenue, commission_percent) -> CommissionSplit:
    """
    Calcula el reparto de un ingreso de sesión.

    instituteShare = round2(revenue * percent / 100)
    professionalShare = round2(revenue) - instituteShare

    La suma de ambas partes siempre es round2(revenue) y el resultado es
    estable ante recálculos con las mismas entradas.
    """
    revenue = round2(session_revenue)
    percent = clamp_commission(commission_percent)

    institute_share = round2(revenue * percent / HUNDRED)
    return CommissionSplit(
        institute_share=institute_share,
        professional_share=revenue - institute_share,
    )


def institute_share_of(saldo_total, commission_percent) -> Decimal:
    """Parte del instituto sobre el saldo total acumulado (estado de cuenta)."""
    return compute_split(saldo_total, commission_percent).institute_share
