# ==============================================================================
# SERVICIO DE PRECIOS - Cálculo de totales de pedido
# ==============================================================================
# Funciones puras (sin BD ni efectos secundarios). Se usan tanto al crear
# y modificar pedidos como para la vista previa del formulario admin.
#
# REGLAS:
# - Bruto  = Σ(precio_unitario × cantidad) de las líneas válidas
# - Remise = "10%" → bruto × 10 / 100 ; 300 → 300 ; ilegible → 0
# - Neto   = max(0, bruto − remise)
#
# RANGOS (columnas Numeric(10, 2) y stock entero):
# - Línea con precio o importe > MAX_AMOUNT → inválida
# - Cantidad > MAX_QUANTITY → inválida
# - Remise mayor que el bruto → se limita al bruto
# ==============================================================================

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


MONEY_QUANT = Decimal('0.01')
ZERO = Decimal('0.00')
MAX_AMOUNT = Decimal('99999999.99')
MAX_QUANTITY = 1_000_000

# Dígitos de trabajo para redondear montos muy grandes sin InvalidOperation
_MONEY_PRECISION = 60

# Claves aceptadas para cada campo de línea (API nueva y formulario original)
PRODUCT_KEYS = ('productId', 'product_id', 'produit_id', 'id')
QUANTITY_KEYS = ('quantity', 'quantite', 'qty')
PRICE_KEYS = ('unitPrice', 'unit_price', 'prix_unitaire', 'price')


def to_money(value: Any) -> Decimal:
    """
    Redondea a 2 decimales (ROUND_HALF_UP).

    Raises:
        decimal.InvalidOperation: Si el valor no cabe en la precisión de trabajo
    """
    with localcontext() as ctx:
        ctx.prec = _MONEY_PRECISION
        return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Convierte un valor numérico o string numérico a Decimal.

    Returns:
        Decimal finito, o None si el valor no es un número válido
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        number = Decimal(str(value).strip().replace(',', '.'))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def parse_quantity(value: Any) -> Optional[int]:
    """Convierte a entero positivo; None si no es un entero entre 1 y MAX_QUANTITY."""
    number = parse_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    if number <= 0 or number > MAX_QUANTITY:
        return None
    return int(number)


def _pick(line: Mapping, keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in line:
            return line[key]
    return None


@dataclass(frozen=True)
class LineInput:
    """
    Línea de pedido validada.

    Attributes:
        product_id: ID del producto
        quantity: Cantidad (> 0)
        unit_price: Precio unitario al momento del pedido (> 0, 2 decimales)
    """
    product_id: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class OrderTotals:
    """Totales de un pedido: bruto, remise y neto."""
    gross: Decimal
    discount: Decimal
    net: Decimal

    def to_dict(self) -> Dict[str, float]:
        return {
            'gross': float(self.gross),
            'discount': float(self.discount),
            'net': float(self.net),
        }


def _line_amounts(line: Any) -> Tuple[Optional[Decimal], Optional[int]]:
    if isinstance(line, LineInput):
        return line.unit_price, line.quantity
    if isinstance(line, Mapping):
        return parse_decimal(_pick(line, PRICE_KEYS)), parse_quantity(_pick(line, QUANTITY_KEYS))
    return None, None


def _line_amount(price: Optional[Decimal], quantity: Optional[int]) -> Optional[Decimal]:
    """Importe de la línea, o None si es inválida o no cabe en MAX_AMOUNT."""
    if price is None or quantity is None or price <= 0 or price > MAX_AMOUNT:
        return None
    amount = price * quantity
    if amount > MAX_AMOUNT:
        return None
    return amount


def parse_discount(raw: Any, gross: Decimal) -> Decimal:
    """
    Interpreta la remise.

    Args:
        raw: "10%" (porcentaje), 300 / "300" (monto), None / "" (sin remise)
        gross: Total bruto sobre el que se aplica un porcentaje

    Returns:
        Monto de remise con 2 decimales (0 si no se puede interpretar
        o si es negativo; nunca mayor que el bruto)
    """
    if raw is None or isinstance(raw, bool):
        return ZERO
    text = str(raw).strip()
    if not text:
        return ZERO

    if text.endswith('%'):
        percentage = parse_decimal(text[:-1])
        if percentage is None or percentage < 0:
            return ZERO
        if percentage >= 100:
            return to_money(gross)
        return to_money(gross * percentage / 100)

    amount = parse_decimal(text)
    if amount is None or amount < 0:
        return ZERO
    if amount >= gross:
        return to_money(gross)
    return to_money(amount)


def compute_totals(lines: Optional[Iterable[Any]], discount: Any = None) -> OrderTotals:
    """
    Calcula bruto, remise y neto de un pedido.

    Las líneas con precio o cantidad inválidos (no numéricos, <= 0, fuera
    de rango) se ignoran en el cálculo.

    Args:
        lines: LineInput o dicts con unitPrice/quantity (o prix_unitaire/quantite)
        discount: Especificación de remise (ver parse_discount)

    Returns:
        OrderTotals con montos de 2 decimales

    Ejemplo:
        compute_totals([{'unitPrice': 1000, 'quantity': 2}], '10%')
        → gross=2000.00, discount=200.00, net=1800.00
    """
    gross = ZERO
    for line in lines or []:
        amount = _line_amount(*_line_amounts(line))
        if amount is not None:
            gross += amount
    gross = to_money(gross)

    if gross == ZERO:
        # Sin líneas válidas no hay nada que descontar
        return OrderTotals(gross=ZERO, discount=ZERO, net=ZERO)

    discount_value = parse_discount(discount, gross)
    net = max(ZERO, to_money(gross - discount_value))
    return OrderTotals(gross=gross, discount=discount_value, net=net)


def normalize_lines(raw_lines: Iterable[Any]) -> Tuple[List[LineInput], List[Dict[str, Any]]]:
    """
    Valida líneas crudas (JSON) y las convierte a LineInput.

    Args:
        raw_lines: Lista de dicts de la petición

    Returns:
        Tupla (líneas válidas, líneas rechazadas con motivo)
    """
    valid: List[LineInput] = []
    rejected: List[Dict[str, Any]] = []

    for index, line in enumerate(raw_lines or []):
        if isinstance(line, LineInput):
            valid.append(line)
            continue
        if not isinstance(line, Mapping):
            rejected.append({'index': index, 'reason': 'formato de línea inválido'})
            continue

        product_id = _pick(line, PRODUCT_KEYS)
        price, quantity = _line_amounts(line)

        if product_id is None or str(product_id).strip() == '':
            rejected.append({'index': index, 'reason': 'producto requerido'})
        elif quantity is None:
            rejected.append({'index': index, 'reason': 'cantidad inválida'})
        elif price is None or price <= 0:
            rejected.append({'index': index, 'reason': 'precio unitario inválido'})
        elif _line_amount(price, quantity) is None:
            rejected.append({'index': index, 'reason': 'importe fuera de rango'})
        elif to_money(price) == ZERO:
            rejected.append({'index': index, 'reason': 'precio unitario inválido'})
        else:
            valid.append(LineInput(
                product_id=str(product_id).strip(),
                quantity=quantity,
                unit_price=to_money(price),
            ))

    return valid, rejected
