# ==============================================================================
# SISTEMA DE PROFILING Y LOGGING
# ==============================================================================
# Mide rendimiento de rutas y funciones sin afectar la respuesta.
# Guarda logs legibles en LOGS_DIR para análisis humano:
#   - performance.log     → todas las rutas
#   - slow_routes.log     → rutas que superan los umbrales
#   - slow_functions.log  → funciones perfiladas lentas
#
# ACTIVAR/DESACTIVAR: config ENABLE_PROFILING
# ==============================================================================

import logging
import os
import time
from functools import wraps
from logging.handlers import RotatingFileHandler

from flask import g, request


logger = logging.getLogger(__name__)

# Loggers dedicados (cada uno escribe a su propio archivo)
performance_log = logging.getLogger('layette_stock.performance')
slow_routes_log = logging.getLogger('layette_stock.performance.slow_routes')
slow_functions_log = logging.getLogger('layette_stock.performance.slow_functions')

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

# Umbrales de tiempo (en milisegundos); init_profiling los toma de la config
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

# Mapeo de rutas a nombres legibles (para logs más humanos)
ROUTE_NAMES = {
    # Pedidos
    'GET /api/admin/orders': 'Listar pedidos',
    'GET /api/admin/orders/benefits': 'Ver beneficios por pedido',
    'POST /api/admin/orders/preview': 'Previsualizar totales',
    'GET /api/admin/orders/<order_id>': 'Ver pedido',
    'POST /api/admin/orders': 'Crear pedido',
    'PUT /api/admin/orders/<order_id>': 'Modificar pedido',
    'DELETE /api/admin/orders/<order_id>': 'Eliminar pedido',

    # Stock
    'PUT /api/admin/products/<product_id>/stock': 'Modificar stock',
    'GET /api/admin/stocks/low': 'Ver stock bajo',

    # Estadísticas
    'GET /api/admin/stats/revenue': 'Ver ingresos',
    'GET /api/admin/stats/top-products': 'Ver productos más vendidos',
}


# ═══════════════════════════════════════════════════════════════════════════
# INICIALIZACIÓN DE LOGGING
# ═══════════════════════════════════════════════════════════════════════════

def _has_handler(target: logging.Logger, tag: str) -> bool:
    return any(getattr(handler, '_layette_tag', None) == tag for handler in target.handlers)


def _attach(target: logging.Logger, handler: logging.Handler, tag: str) -> None:
    """Agrega un handler una sola vez (create_app puede llamarse varias veces)."""
    if _has_handler(target, tag):
        return
    handler._layette_tag = tag
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    target.addHandler(handler)


def configure_logging(app):
    """
    Configura el logging del paquete layette_stock.

    - Consola: siempre, con el nivel LOG_LEVEL
    - Archivos rotativos en LOGS_DIR: solo si ENABLE_PROFILING
    """
    package_logger = logging.getLogger('layette_stock')
    package_logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    _attach(package_logger, logging.StreamHandler(), 'console')

    if not app.config.get('ENABLE_PROFILING'):
        return

    logs_dir = app.config['LOGS_DIR']
    os.makedirs(logs_dir, exist_ok=True)

    for target, filename in [
        (performance_log, 'performance.log'),
        (slow_routes_log, 'slow_routes.log'),
        (slow_functions_log, 'slow_functions.log'),
    ]:
        path = os.path.join(logs_dir, filename)
        _attach(
            target,
            RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding='utf-8'),
            path,
        )
        # Los detalles de rendimiento no se repiten en la consola
        target.propagate = False


def _get_route_name(method, path, rule=None):
    """
    Obtiene nombre legible para una ruta.
    Intenta hacer match con ROUTE_NAMES, si no, devuelve la ruta raw.
    """
    key = f"{method} {path}"
    if key in ROUTE_NAMES:
        return ROUTE_NAMES[key]

    # Con la regla de Flask se resuelven las rutas con parámetros
    if rule:
        rule_key = f"{method} {rule}"
        if rule_key in ROUTE_NAMES:
            return ROUTE_NAMES[rule_key]

    return key


# ═══════════════════════════════════════════════════════════════════════════
# PROFILING DE RUTAS (hooks Flask)
# ═══════════════════════════════════════════════════════════════════════════

def log_route_performance(method, path, rule, time_ms, status_code=None):
    """Registra el rendimiento de una ruta en performance.log"""
    performance_log.info(
        'Acción: %s | Ruta: %s %s | Estado: %s | Tiempo: %.0f ms',
        _get_route_name(method, path, rule), method, path, status_code, time_ms,
    )


def log_slow_route(method, path, rule, time_ms, level=logging.WARNING):
    """
    Registra una ruta lenta en slow_routes.log

    Args:
        level: logging.WARNING (> THRESHOLD_WARNING) o logging.CRITICAL
    """
    critical = level >= logging.CRITICAL
    slow_routes_log.log(
        level,
        'Ruta %s: %s | %s %s | Tiempo: %.0f ms (umbral: %s ms)',
        'MUY LENTA' if critical else 'LENTA',
        _get_route_name(method, path, rule), method, path, time_ms,
        THRESHOLD_CRITICAL if critical else THRESHOLD_WARNING,
    )


def init_profiling(app):
    """
    Inicializa el profiling de rutas en una app Flask.
    Registra hooks before_request y after_request.

    Uso:
        from layette_stock.performance_logger import init_profiling
        init_profiling(app)
    """
    global THRESHOLD_WARNING, THRESHOLD_CRITICAL

    if not app.config.get('ENABLE_PROFILING'):
        return

    THRESHOLD_WARNING = app.config.get('SLOW_REQUEST_MS', THRESHOLD_WARNING)
    THRESHOLD_CRITICAL = app.config.get('CRITICAL_REQUEST_MS', THRESHOLD_CRITICAL)

    @app.before_request
    def _start_timer():
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        if not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000  # ms
        method = request.method
        path = request.path
        rule = str(request.url_rule) if request.url_rule else path

        log_route_performance(method, path, rule, elapsed, response.status_code)

        if elapsed >= THRESHOLD_CRITICAL:
            log_slow_route(method, path, rule, elapsed, logging.CRITICAL)
        elif elapsed >= THRESHOLD_WARNING:
            log_slow_route(method, path, rule, elapsed, logging.WARNING)

        return response


# ═══════════════════════════════════════════════════════════════════════════
# DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Decorador para los servicios que mutan pedidos.

    Uso:
        @profile_function(name="Crear pedido")
        def create_order():
            ...

    Las llamadas que superan THRESHOLD_WARNING van a slow_functions.log,
    también cuando la función termina con una excepción.
    """
    def decorator(fn):
        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                if elapsed_ms >= THRESHOLD_WARNING:
                    _log_slow_function_call(func_name, elapsed_ms)

        return wrapper

    # Permitir uso sin paréntesis: @profile_function
    if func is not None:
        return decorator(func)
    return decorator


def _log_slow_function_call(func_name, time_ms):
    """Registra una llamada lenta a una función"""
    critical = time_ms >= THRESHOLD_CRITICAL
    slow_functions_log.log(
        logging.CRITICAL if critical else logging.WARNING,
        'Función %s: %s | Tiempo: %.0f ms',
        'CRÍTICA' if critical else 'LENTA', func_name, time_ms,
    )


__all__ = [
    'ROUTE_NAMES',
    'configure_logging',
    'init_profiling',
    'profile_function',
]
